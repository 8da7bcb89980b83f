# snesil

`snesil` is a small compiler toolkit. It is built around an SSA intermediate
language and has a code generator that writes WDC 65816 assembly (for SNES
development, in WLA-DX syntax). It has no dependencies outside the standard
library.

## What is in the package

- `snesil.ops`: the operation table. It has the `Op` and `Jmp` enums, the
  value classes `Kind`, the comparison kinds `Cmp`, and `op_info(op)`, which
  returns an `OpInfo` with argument classes and folding properties. It also
  has predicates such as `is_load`, `is_store`, `is_par`, `is_arg`, `is_ret`
  and `is_jf`, and `kwide` and `kbase` for classes.
- `snesil.ir`: the data structures. `Ref` (with `tmp_ref`, `con_ref`,
  `slot_ref` and others, plus `rtype` and `rsval`), `Con`, `Ins`, `Phi`,
  `Blk`, `Tmp`, `Fn`, `Typ`, `Dat`, `Lnk` and `Target`.
- `snesil.bitset`: `BitSet`, a fixed-capacity set of small integers in
  64-bit words. It has set operations that work in place, `iter_from`,
  `word` and `dump`.
- `snesil.util`: helpers for the IR.
  - `Interner` for symbol names and `hash_string` for the keyword hash.
  - `InsBuffer`, which collects instructions back to front.
  - Comparison helpers: `iscmp`, `cmpneg`, `cmpop` and `cmpwlneg`.
  - `clsmerge` and `phicls`.
  - Constant pools: `newcon`, `getcon`, `addcon` and `isconbits`.
  - `newtmp`, `igroup`, `argcls`, `phiarg` and `phiargn`.
  - `salloc` for 16-byte aligned dynamic stack allocation, and `runmatch`,
    a bytecode matcher.
  - Errors are raised as `CompileError` (bad input) or `InternalError`
    (broken invariants).
- `snesil.ssa`:
  - `filluse` fills in use, definition, width, phi-class and class
    information.
  - `adduse` records one use.
  - `insert_phis` places empty phis at the dominance frontiers of
    temporaries that are defined more than once.
- `snesil.w65816`: the 65816 back end.
  - `target`: `Reg` (eight virtual registers `R0`–`R7` in the direct page),
    `dp_addr`, `memargs` and `make_target()`.
  - `abi`: a stack-based calling convention.
    - `scan_allocations` records stack allocations in an `AllocTable`.
    - `lower_abi` turns parameters into loads from the caller's frame.
    - `retregs`, `argregs` and `count_pars`.
  - `isel`: `select` and `is_immediate`. Instruction selection passes
    instructions through unchanged.
  - `operands`: `OperandWriter`, which addresses registers, slots and
    constants, `assign_slots`, which gives every temporary its own stack
    slot, and `strip_symbol`.
  - `arith`, `memory`, `emit`: code for each instruction, phi moves, jumps,
    and the function prologue and epilogue. The entry points are `emit_fn`
    and `emit_fin`.

## Library use

```python
from snesil.util import Interner, hash_string

names = Interner()
ident = names.intern("main")
assert names.lookup(ident) == "main"
print(hash_string("add"))
```

```python
from snesil.bitset import BitSet

live = BitSet(128)
live.add(70)
live.add(3)
print(list(live), len(live), 70 in live)   # [3, 70] 2 True
```

Emitting a function that is already in SSA form:

```python
import sys
from snesil.w65816 import abi, isel
from snesil.w65816.emit import emit_fn, emit_fin

allocs = abi.scan_allocations(fn)    # before allocations are optimised away
abi.lower_abi(fn)
isel.select(fn)
emit_fn(fn, allocs, interner, sys.stdout)
emit_fin(sys.stdout)
```

Pass `interner` as the `Interner` that holds the names of address constants.
The output puts each function in `.SECTION ".text.<name>" SUPERFREE`. A
leading `.L` is removed from symbol names.

## Notes on the generated code

- Values are 16-bit and the accumulator is the only scratch register. A
  long store writes the low word and a zero high word. `sar` is emitted as
  a logical shift.
- Multiplication, division and remainder by constants without a short
  sequence call `__mul16`, `__div16` and `__mod16`. They also use the
  scratch locations `tcc__r0`, `tcc__r1` and `tcc__r9`. The runtime must
  provide all of these.
- Floating-point and other unsupported operations produce a
  `; unhandled op N` comment instead of code.

## Command-line tools

```
snesil-lexhash [TOKEN ...] [--max-tries N]
```

This checks that the keyword hash has no collisions over the given tokens,
or over the built-in list of parser keywords if none are given. It then
searches for a shift `M` and an odd multiplier `K` that put every token in
its own bucket. Without `--max-tries` the search can take very long.

```
snesil-debruijn
```

This searches for a 64-bit constant whose six-bit windows are all distinct.
It prints the constant and the bit-index table that goes with it.

## What the package does not do

The package has no reader or printer for the text form of the
intermediate language, and no compiler command. Build functions directly
from the `snesil.ir` classes.

It does not compute dominators, dominance frontiers or liveness.
`insert_phis` expects `Blk.fron`, `Blk.live_in` and `Blk.live_out` to be
filled in already. It also does not rename temporaries after placing phis.

There are no optimisation passes, no register allocator, and no emitter
for data definitions (`Dat`).

## Running the tests

```
pip install ".[test]"
pytest
```
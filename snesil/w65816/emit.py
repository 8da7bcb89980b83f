"""Function emission of the 65816 backend."""

from __future__ import annotations

from typing import Callable, TextIO

from ..ir import TMP0, Blk, Fn, Ins, RefKind, rtype
from ..ops import Jmp, Op, is_jf, is_ret
from ..util import Interner
from . import arith, memory
from .abi import AllocTable
from .operands import OperandWriter, assign_slots

# op -> (swap operands, branch, value when the branch is not taken)
_COMPARE: dict[Op, tuple[bool, str, int]] = {}
for _ops, _spec in (
    ((Op.CEQW, Op.CEQL), (False, "beq", 0)),
    ((Op.CNEW, Op.CNEL), (False, "bne", 0)),
    ((Op.CSLTW, Op.CSLTL), (False, "bmi", 0)),
    ((Op.CSGTW, Op.CSGTL), (True, "bmi", 0)),
    ((Op.CSLEW, Op.CSLEL), (True, "bmi", 1)),
    ((Op.CSGEW, Op.CSGEL), (False, "bmi", 1)),
    ((Op.CULTW, Op.CULTL), (False, "bcc", 0)),
    ((Op.CUGTW, Op.CUGTL), (True, "bcc", 0)),
    ((Op.CULEW, Op.CULEL), (True, "bcc", 1)),
    ((Op.CUGEW, Op.CUGEL), (False, "bcc", 1)),
):
    for _op in _ops:
        _COMPARE[_op] = _spec


def emit_compare(w: OperandWriter, ins: Ins) -> None:
    """Integer comparison producing 0 or 1."""
    try:
        swap, branch, fallthrough = _COMPARE[Op(ins.op)]
    except KeyError:
        raise ValueError(f"not an integer comparison: {Op(ins.op).name}") from None
    a, b = ins.arg
    if swap:
        a, b = b, a
    w.load(a)
    w.op2("cmp", b)
    w.line(f"\t{branch} +")
    w.line(f"\tlda.w #{fallthrough}")
    w.line("\tbra ++")
    w.line(f"+\tlda.w #{1 - fallthrough}")
    w.line("++")
    w.store(ins.to)


_Handler = Callable[[OperandWriter, Ins], None]

_HANDLERS: dict[Op, _Handler] = {
    Op.ADD: arith.emit_add,
    Op.SUB: arith.emit_sub,
    Op.NEG: arith.emit_neg,
    Op.MUL: arith.emit_mul,
    Op.DIV: arith.emit_div,
    Op.UDIV: arith.emit_div,
    Op.REM: arith.emit_rem,
    Op.UREM: arith.emit_rem,
    Op.AND: lambda w, i: arith.emit_logic(w, i, "and"),
    Op.OR: lambda w, i: arith.emit_logic(w, i, "ora"),
    Op.XOR: lambda w, i: arith.emit_logic(w, i, "eor"),
    Op.SHL: lambda w, i: arith.emit_shift(w, i, "asl"),
    Op.SAR: lambda w, i: arith.emit_shift(w, i, "lsr"),
    Op.SHR: lambda w, i: arith.emit_shift(w, i, "lsr"),
    Op.COPY: arith.emit_copy,
    Op.STOREL: memory.emit_store_long,
    Op.STOREW: memory.emit_store_word,
    Op.STOREH: memory.emit_store_word,
    Op.STOREB: memory.emit_store_byte,
    Op.LOADSW: memory.emit_load_word,
    Op.LOADUW: memory.emit_load_word,
    Op.LOAD: memory.emit_load_word,
    Op.LOADSB: memory.emit_load_byte,
    Op.LOADUB: memory.emit_load_byte,
    Op.EXTSB: memory.emit_extend,
    Op.EXTUB: memory.emit_extend,
    Op.EXTSH: memory.emit_extend,
    Op.EXTUH: memory.emit_extend,
    Op.EXTSW: memory.emit_extend,
    Op.EXTUW: memory.emit_extend,
    Op.ARG: memory.emit_arg,
    Op.ARGSB: memory.emit_arg,
    Op.ARGUB: memory.emit_arg,
    Op.ARGSH: memory.emit_arg,
    Op.ARGUH: memory.emit_arg,
    Op.CALL: memory.emit_call,
    Op.ALLOC4: memory.emit_alloc,
    Op.ALLOC8: memory.emit_alloc,
    Op.ALLOC16: memory.emit_alloc,
}
_HANDLERS.update({op: emit_compare for op in _COMPARE})


def emit_ins(w: OperandWriter, ins: Ins) -> None:
    """Write the code of one instruction; unsupported ones leave a comment."""
    handler = _HANDLERS.get(ins.op)
    if handler is None:
        w.line(f"\t; unhandled op {int(ins.op)}")
    else:
        handler(w, ins)


def emit_phi_moves(w: OperandWriter, src: Blk, dst: Blk | None) -> None:
    """Copy into the phi results of dst the values flowing in from src."""
    if dst is None:
        return
    tmps = w.fn.tmps
    for p in dst.phis:
        n = next((k for k, blk in enumerate(p.blks) if blk is src), None)
        if n is None:
            continue
        if rtype(p.to) != RefKind.TMP or p.to.val < TMP0:
            continue
        dstslot = tmps[p.to.val].slot
        if dstslot < 0:
            continue
        arg = p.args[n]
        if rtype(arg) == RefKind.CON:
            w.load(arg)
            w.line(f"\tsta {(dstslot + 1) * 2},s")
        elif rtype(arg) == RefKind.TMP and arg.val >= TMP0:
            srcslot = tmps[arg.val].slot
            if srcslot >= 0 and srcslot != dstslot:
                w.line(f"\tlda {(srcslot + 1) * 2},s")
                w.line(f"\tsta {(dstslot + 1) * 2},s")


def _branch(w: OperandWriter, b: Blk) -> None:
    w.load(b.jmp_arg)
    w.line("\tbne +")
    emit_phi_moves(w, b, b.s2)
    w.line(f"\tjmp @{b.s2.name}")
    w.line("+")
    emit_phi_moves(w, b, b.s1)
    w.line(f"\tjmp @{b.s1.name}")


def emit_jump(w: OperandWriter, b: Blk) -> None:
    """Write the terminator of a block, phi moves included."""
    j = b.jmp_type
    if j in (Jmp.RET0, Jmp.RETW, Jmp.RETL):
        if not b.jmp_arg.is_none():
            w.load(b.jmp_arg)
    elif j == Jmp.JMP:
        emit_phi_moves(w, b, b.s1)
        w.line(f"\tjmp @{b.s1.name}")
    elif j == Jmp.JNZ or is_jf(j):
        _branch(w, b)


def emit_fn(
    fn: Fn,
    allocs: AllocTable | None,
    interner: Interner | None,
    out: TextIO,
) -> None:
    """Write the assembly of a function.

    Stack allocations take the lowest slots, then every temporary gets a
    slot of its own.
    """
    allocs = AllocTable() if allocs is None else allocs
    offsets = allocs.offsets()
    fn.slot = sum(allocs.sizes.values())
    fn.slot = assign_slots(fn)
    framesize = (fn.slot + 1) * 2
    w = OperandWriter(fn, out, interner, offsets, framesize)

    w.line(
        f"\n; Function: {fn.name} (framesize={framesize}, slots={fn.slot}, "
        f"alloc_slots={allocs.total_slots})"
    )
    for t in range(TMP0, len(fn.tmps)):
        w.line(f"; temp {t}: slot={fn.tmps[t].slot}, alloc={offsets.get(t, -1)}")
    w.line(f'.SECTION ".text.{fn.name}" SUPERFREE')
    w.line(f"{fn.name}:")

    w.line("\tphp")
    w.line("\trep #$30")
    if framesize > 2:
        for m in ("tsa", "sec", f"sbc.w #{framesize}", "tas"):
            w.line(f"\t{m}")

    for b in fn.blocks:
        w.line(f"@{b.name}:")
        for ins in b.ins:
            emit_ins(w, ins)
        emit_jump(w, b)
        if is_ret(b.jmp_type):
            if framesize > 2:
                for m in ("tax", "tsa", "clc", f"adc.w #{framesize}", "tas", "txa"):
                    w.line(f"\t{m}")
            w.line("\tplp")
            w.line("\trtl")

    w.line(".ENDS")


def emit_fin(out: TextIO) -> None:
    out.write("\n; End of generated code\n")
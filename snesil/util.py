"""Shared helpers: errors, interning, instruction buffers, IR utilities."""

from __future__ import annotations

import itertools
from dataclasses import replace
from typing import MutableSequence, Sequence

from .ir import (
    NINS,
    NSTRING,
    R,
    TMP0,
    Blk,
    Con,
    ConKind,
    Fn,
    Ins,
    Num,
    Phi,
    Ref,
    RefKind,
    Tmp,
    con_ref,
    rtype,
    tmp_ref,
)
from .ops import (
    CMPD,
    CMPD1,
    CMPL,
    CMPL1,
    CMPS,
    CMPS1,
    CMPW,
    CMPW1,
    NCMP,
    NCMPI,
    Cmp,
    Kind,
    Op,
    is_arg,
    is_par,
    op_info,
)

IBITS = 12
IMASK = (1 << IBITS) - 1
_MASK32 = 0xFFFFFFFF
_INT_MAX = 2**31 - 1
_MATCH_STACK = 20


class CompileError(Exception):
    """An error in the program being compiled."""


class InternalError(Exception):
    """A broken invariant inside the compiler."""


def hash_string(s: str) -> int:
    """32-bit string hash used by the interning table and the lexer."""
    h = 0
    for b in s.encode():
        c = b - 256 if b >= 128 else b
        h = (c + 17 * h) & _MASK32
    return h


class Interner:
    """Maps strings to stable 32-bit identifiers and back."""

    def __init__(self) -> None:
        self._buckets: dict[int, list[str]] = {}

    def intern(self, s: str) -> int:
        h = hash_string(s) & IMASK
        bucket = self._buckets.setdefault(h, [])
        try:
            return h + (bucket.index(s) << IBITS)
        except ValueError:
            pass
        n = len(bucket)
        if n == 1 << (32 - IBITS):
            raise InternalError("interning table overflow")
        bucket.append(s)
        return h + (n << IBITS)

    def lookup(self, ident: int) -> str:
        bucket = self._buckets.get(ident & IMASK, [])
        index = ident >> IBITS
        if index >= len(bucket):
            raise KeyError(ident)
        return bucket[index]


class InsBuffer:
    """Collects instructions emitted in reverse order."""

    def __init__(self, capacity: int = NINS) -> None:
        self.capacity = capacity
        self._reversed: list[Ins] = []

    def __len__(self) -> int:
        return len(self._reversed)

    def emit(self, op: int, k: int, to: Ref = R, arg0: Ref = R, arg1: Ref = R) -> None:
        """Prepend one instruction."""
        if len(self._reversed) >= self.capacity:
            raise InternalError("emit, too many instructions")
        self._reversed.append(Ins(op=Op(op), cls=Kind(k), to=to, arg=[arg0, arg1]))

    def emiti(self, ins: Ins) -> None:
        self.emit(ins.op, ins.cls, ins.to, ins.arg[0], ins.arg[1])

    def instructions(self) -> list[Ins]:
        """The emitted instructions in program order."""
        return self._reversed[::-1]

    def reset(self) -> None:
        self._reversed.clear()


def isreg(r: Ref) -> bool:
    return rtype(r) == RefKind.TMP and r.val < TMP0


def iscmp(op: int) -> tuple[Kind, Cmp] | None:
    """Class and comparison kind of a comparison opcode, else None."""
    ranges = (
        (CMPW, CMPW1, Kind.W, 0),
        (CMPL, CMPL1, Kind.L, 0),
        (CMPS, CMPS1, Kind.S, NCMPI),
        (CMPD, CMPD1, Kind.D, NCMPI),
    )
    for lo, hi, k, base in ranges:
        if lo <= op <= hi:
            return k, Cmp(base + op - lo)
    return None


# comparison: (negation, operands swapped)
_CMPTAB = {
    Cmp.IULE: (Cmp.IUGT, Cmp.IUGE),
    Cmp.IULT: (Cmp.IUGE, Cmp.IUGT),
    Cmp.IUGT: (Cmp.IULE, Cmp.IULT),
    Cmp.IUGE: (Cmp.IULT, Cmp.IULE),
    Cmp.ISLE: (Cmp.ISGT, Cmp.ISGE),
    Cmp.ISLT: (Cmp.ISGE, Cmp.ISGT),
    Cmp.ISGT: (Cmp.ISLE, Cmp.ISLT),
    Cmp.ISGE: (Cmp.ISLT, Cmp.ISLE),
    Cmp.IEQ: (Cmp.INE, Cmp.IEQ),
    Cmp.INE: (Cmp.IEQ, Cmp.INE),
    Cmp.FLE: (Cmp.FGT, Cmp.FGE),
    Cmp.FLT: (Cmp.FGE, Cmp.FGT),
    Cmp.FGT: (Cmp.FLE, Cmp.FLT),
    Cmp.FGE: (Cmp.FLT, Cmp.FLE),
    Cmp.FEQ: (Cmp.FNE, Cmp.FEQ),
    Cmp.FNE: (Cmp.FEQ, Cmp.FNE),
    Cmp.FO: (Cmp.FUO, Cmp.FO),
    Cmp.FUO: (Cmp.FO, Cmp.FUO),
}


def _cmp_entry(c: int) -> tuple[Cmp, Cmp]:
    if not 0 <= c < NCMP:
        raise ValueError(f"no such comparison: {c}")
    return _CMPTAB[Cmp(c)]


def cmpneg(c: int) -> Cmp:
    """The comparison that holds exactly when c does not."""
    return _cmp_entry(c)[0]


def cmpop(c: int) -> Cmp:
    """The comparison equivalent to c with its operands swapped."""
    return _cmp_entry(c)[1]


def cmpwlneg(op: int) -> Op:
    """Negate an integer comparison opcode, keeping its class."""
    for lo, hi in ((CMPW, CMPW1), (CMPL, CMPL1)):
        if lo <= op <= hi:
            return Op(cmpneg(op - lo) + lo)
    raise InternalError("not a wl comparison")


def clsmerge(k1: int, k: int) -> Kind:
    """Merge class k into k1; raises ValueError if they are incompatible."""
    if k1 == Kind.X:
        return Kind(k)
    if (k1, k) in ((Kind.W, Kind.L), (Kind.L, Kind.W)):
        return Kind.W
    if k1 != k:
        raise ValueError(f"incompatible classes {Kind(k1).name} and {Kind(k).name}")
    return Kind(k1)


def phicls(t: int, tmps: Sequence[Tmp]) -> int:
    """Representative of the phi class of t, compressing the path."""
    path = []
    while tmps[t].phi:
        path.append(t)
        t = tmps[t].phi
    for p in path[:-1]:
        tmps[p].phi = t
    return t


def phiargn(p: Phi | None, b: Blk) -> int | None:
    """Index of the phi argument coming from b, or None."""
    if p is None:
        return None
    return next((n for n, blk in enumerate(p.blks) if blk is b), None)


def phiarg(p: Phi, b: Blk) -> Ref:
    n = phiargn(p, b)
    if n is None:
        raise ValueError("block not found")
    return p.args[n]


def argcls(ins: Ins, n: int) -> Kind:
    """Class expected for argument n of an instruction."""
    return op_info(ins.op).argcls[n][ins.cls]


def igroup(b: Blk, index: int) -> tuple[int, int]:
    """Bounds [start, end) of the instruction group around b.ins[index]."""
    ins = b.ins
    op = ins[index].op
    if op == Op.BLIT0:
        return index, index + 2
    if op == Op.BLIT1:
        return index - 1, index + 1
    if is_par(op):
        i = index
        while i > 0 and is_par(ins[i - 1].op):
            i -= 1
        start = i
        while i < len(ins) and is_par(ins[i].op):
            i += 1
        return start, i
    if op == Op.CALL or is_arg(op):
        i = index
        while i > 0 and is_arg(ins[i - 1].op):
            i -= 1
        start = i
        while i < len(ins) and ins[i].op != Op.CALL:
            i += 1
        if i >= len(ins):
            raise InternalError("argument group without call")
        return start, i + 1
    return index, index + 1


_tmp_names = itertools.count(1)


def newtmp(prefix: str | None, k: int, fn: Fn) -> Ref:
    """Append a fresh temporary of class k to fn."""
    t = len(fn.tmps)
    name = f"{prefix}.{next(_tmp_names)}"[: NSTRING - 1] if prefix else ""
    fn.tmps.append(Tmp(name=name, cls=Kind(k), slot=-1, nuse=1, ndef=1))
    return tmp_ref(t)


def chuse(r: Ref, du: int, fn: Fn) -> None:
    if rtype(r) == RefKind.TMP:
        fn.tmps[r.val].nuse += du


def newcon(c: Con, fn: Fn) -> Ref:
    """Reference to a constant equal to c, adding it if needed."""
    for i, c1 in enumerate(fn.cons[1:], start=1):
        if c.kind == c1.kind and c.sym == c1.sym and c.bits == c1.bits:
            return con_ref(i)
    fn.cons.append(replace(c))
    return con_ref(len(fn.cons) - 1)


def getcon(val: int, fn: Fn) -> Ref:
    """Reference to the integer constant val, adding it if needed."""
    for i, c in enumerate(fn.cons[1:], start=1):
        if c.kind == ConKind.BITS and c.bits == val:
            return con_ref(i)
    fn.cons.append(Con(ConKind.BITS, bits=val))
    return con_ref(len(fn.cons) - 1)


def _wrap64(v: int) -> int:
    return ((v + 2**63) % 2**64) - 2**63


def addcon(c0: Con, c1: Con, m: int) -> bool:
    """Add m * c1 into c0; False if the result is not representable."""
    if m != 1 and c1.kind == ConKind.ADDR:
        return False
    if c0.kind == ConKind.UNDEF:
        c0.kind = c1.kind
        c0.sym = c1.sym
        c0.flt = c1.flt
        c0.bits = _wrap64(c1.bits * m)
    else:
        if c1.kind == ConKind.ADDR:
            if c0.kind == ConKind.ADDR:
                return False
            c0.kind = ConKind.ADDR
            c0.sym = c1.sym
        c0.bits = _wrap64(c0.bits + c1.bits * m)
    return True


def isconbits(fn: Fn, r: Ref) -> int | None:
    """The value of r if it is an integer constant, else None."""
    if rtype(r) == RefKind.CON:
        c = fn.cons[r.val]
        if c.kind == ConKind.BITS:
            return c.bits
    return None


def salloc(rt: Ref, rs: Ref, fn: Fn, buf: InsBuffer) -> None:
    """Emit a dynamic stack allocation of rs bytes into rt, kept 16-aligned."""
    fn.dynalloc = True
    if rtype(rs) == RefKind.CON:
        sz = fn.cons[rs.val].bits
        if sz < 0 or sz >= _INT_MAX - 15:
            raise CompileError(f"invalid alloc size {sz}")
        sz = (sz + 15) & -16
        buf.emit(Op.SALLOC, Kind.L, rt, getcon(sz, fn), R)
    else:
        r0 = newtmp("isel", Kind.L, fn)
        r1 = newtmp("isel", Kind.L, fn)
        buf.emit(Op.SALLOC, Kind.L, rt, r0, R)
        buf.emit(Op.AND, Kind.L, r0, r1, getcon(-16, fn))
        buf.emit(Op.ADD, Kind.L, r1, rs, getcon(15, fn))
        if fn.tmps[rs.val].slot != -1:
            raise CompileError(
                f"unlikely alloc argument %{fn.tmps[rs.val].name} "
                f"for %{fn.tmps[rt.val].name}"
            )


def _require_tmp(ref: Ref) -> None:
    if rtype(ref) != RefKind.TMP:
        raise InternalError("matcher expects a temporary")


def runmatch(
    code: Sequence[int], tn: Sequence[Num], ref: Ref, var: MutableSequence[Ref]
) -> MutableSequence[Ref]:
    """Run matcher bytecode over the numbering tn, binding refs into var."""
    _require_tmp(ref)
    stack: list[Ref] = []

    def pop() -> Ref:
        if not stack:
            raise InternalError("matcher stack underflow")
        return stack.pop()

    pc = 0
    while (bc := code[pc]) != 0:
        if bc in (1, 2):  # pushsym, push
            if len(stack) >= _MATCH_STACK:
                raise InternalError("matcher stack overflow")
            _require_tmp(ref)
            num = tn[ref.val]
            if bc == 1 and num.nl > num.nr:
                stack.append(num.l)
                ref = num.r
            else:
                stack.append(num.r)
                ref = num.l
            pc += 1
        elif bc == 3:  # set, then pop unless last
            pc += 1
            var[code[pc]] = ref
            if code[pc + 1] == 0:
                return var
            ref = pop()
            pc += 1
        elif bc == 4:  # pop
            ref = pop()
            pc += 1
        elif bc == 5:  # switch
            _require_tmp(ref)
            n = tn[ref.val].n
            s = pc + 1
            count = code[s]
            s += 1
            for _ in range(count):
                value = code[s]
                s += 1
                if n == value:
                    break
                s += 1
            pc += code[s]
        else:  # jump
            if bc < 10:
                raise InternalError(f"bad matcher opcode {bc}")
            pc = bc - 10
    return var
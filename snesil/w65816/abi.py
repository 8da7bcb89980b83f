"""Calling convention of the 65816 backend: everything on the stack."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..ir import TMP0, Blk, ConKind, Fn, Ins, Ref, RefKind, rtype, slot_ref
from ..ops import Kind, Op, is_alloc, is_par

MAX_ALLOC_TEMPS = 256

_STACK_PARS = (Op.PAR, Op.PARSB, Op.PARUB, Op.PARSH, Op.PARUH)


@dataclass
class AllocTable:
    """Stack allocations of a function, recorded before they are optimised away."""

    sizes: dict[int, int] = field(default_factory=dict)  # temporary -> words
    total_slots: int = 0

    def size_of(self, t: int) -> int:
        """Size in words of the allocation held by temporary t, 0 if none."""
        return self.sizes.get(t, 0)

    def offsets(self) -> dict[int, int]:
        """Slot offset of each allocation, packed in temporary order."""
        result = {}
        slot = 0
        for t in sorted(self.sizes):
            result[t] = slot
            slot += self.sizes[t]
        return result


def scan_allocations(fn: Fn) -> AllocTable:
    """Record the size of every stack allocation in fn."""
    table = AllocTable()
    for b in fn.blocks:
        for ins in b.ins:
            if not is_alloc(ins.op):
                continue
            nbytes = 2
            arg = ins.arg[0]
            if rtype(arg) == RefKind.CON:
                c = fn.cons[arg.val]
                if c.kind == ConKind.BITS:
                    nbytes = c.bits
            words = max((nbytes + 1) // 2, 1)
            if rtype(ins.to) == RefKind.TMP and ins.to.val >= TMP0:
                if ins.to.val - TMP0 < MAX_ALLOC_TEMPS:
                    table.sizes[ins.to.val] = words
                    table.total_slots += words
    return table


def retregs(r: Ref) -> tuple[int, tuple[int, int]]:
    """Return registers: none as bits, the accumulator counted as one GPR."""
    return 0, (1, 0)


def argregs(r: Ref) -> tuple[int, tuple[int, int]]:
    """Argument registers: none, all arguments are on the stack."""
    return 0, (0, 0)


def count_pars(b: Blk) -> int:
    return sum(1 for ins in b.ins if is_par(ins.op))


def lower_abi(fn: Fn) -> None:
    """Turn parameters into loads from the caller's frame.

    The last parameter is closest to the return address; parameter n
    counted from the end is at negative slot -2*(n+1).
    """
    for b in fn.blocks:
        lowered = []
        parn = 0
        for ins in reversed(b.ins):
            if ins.op in _STACK_PARS:
                parn += 1
                lowered.append(Ins(Op.LOADSW, Kind.W, ins.to, [slot_ref(-2 * parn), ins.arg[1].__class__()]))
            else:
                lowered.append(Ins(ins.op, ins.cls, ins.to, list(ins.arg)))
        b.ins = lowered[::-1]
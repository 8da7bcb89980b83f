"""Instruction selection of the 65816 backend: a pass-through for now."""

from __future__ import annotations

from ..ir import ConKind, Fn, Ins, Ref, RefKind, rtype


def is_immediate(r: Ref, fn: Fn) -> int | None:
    """The value of r if it is an integer constant fitting in 16 bits, else None."""
    if rtype(r) != RefKind.CON:
        return None
    c = fn.cons[r.val]
    if c.kind != ConKind.BITS:
        return None
    if -32768 <= c.bits <= 65535:
        return c.bits
    return None


def select(fn: Fn) -> None:
    """Rebuild every block's instructions; code generation happens at emission."""
    for b in fn.blocks:
        b.ins = [Ins(i.op, i.cls, i.to, list(i.arg)) for i in b.ins]
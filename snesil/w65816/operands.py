"""Operand addressing for 65816 code emission: slots, loads, stores."""

from __future__ import annotations

from typing import TextIO

from ..ir import TMP0, Con, ConKind, Fn, Ref, RefKind, rsval, rtype
from ..util import Interner
from .target import Reg, dp_addr


def strip_symbol(name: str) -> str:
    """Drop a leading ".L" from a symbol; the assembler rejects labels starting with '.'."""
    if name.startswith(".L"):
        return name[2:]
    return name


def _int32(v: int) -> int:
    v &= 0xFFFFFFFF
    return v - 2**32 if v >= 2**31 else v


def assign_slots(fn: Fn) -> int:
    """Give a stack slot to every temporary that has none; return the slot count.

    Phi results are placed first, starting at fn.slot, which is advanced
    past them. Phi arguments are not coalesced with their results.
    """
    tmps = fn.tmps
    for b in fn.blocks:
        for p in b.phis:
            if rtype(p.to) != RefKind.TMP or p.to.val < TMP0:
                continue
            if tmps[p.to.val].slot < 0:
                tmps[p.to.val].slot = fn.slot
                fn.slot += 1

    maxslot = fn.slot

    def assign(r: Ref) -> None:
        nonlocal maxslot
        if rtype(r) == RefKind.TMP and r.val >= TMP0 and tmps[r.val].slot < 0:
            tmps[r.val].slot = maxslot
            maxslot += 1

    for b in fn.blocks:
        for p in b.phis:
            assign(p.to)
            for a in p.args:
                assign(a)
        for ins in b.ins:
            assign(ins.to)
            assign(ins.arg[0])
            assign(ins.arg[1])
        assign(b.jmp_arg)
    return maxslot


class OperandWriter:
    """Writes assembly lines for one function, addressing its operands.

    The accumulator is the only scratch register: virtual registers live
    in the direct page, temporaries and slots are stack-relative.
    """

    def __init__(
        self,
        fn: Fn,
        out: TextIO,
        interner: Interner | None = None,
        alloc_offsets: dict[int, int] | None = None,
        framesize: int = 0,
    ) -> None:
        self.fn = fn
        self.out = out
        self.interner = Interner() if interner is None else interner
        self.alloc_offsets = dict(alloc_offsets or {})
        self.framesize = framesize
        self.argbytes = 0  # bytes pushed for the call being set up

    def line(self, text: str) -> None:
        """Write one line of output."""
        self.out.write(text + "\n")

    def alloc_slot(self, r: Ref) -> int | None:
        """Slot offset of the stack allocation r points to, or None."""
        if rtype(r) != RefKind.TMP:
            return None
        return self.alloc_offsets.get(r.val)

    def is_vreg(self, r: Ref) -> bool:
        """True if r is one of the direct-page virtual registers."""
        return rtype(r) == RefKind.TMP and Reg.R0 <= r.val <= Reg.R7

    def symbol_text(self, con: Con) -> str:
        """Symbol of an address constant, with its offset if any."""
        name = strip_symbol(self.interner.lookup(con.sym.id))
        if con.bits:
            name += f"+{_int32(con.bits)}"
        return name

    def _tmp_slot(self, r: Ref) -> int | None:
        slot = self.fn.tmps[r.val].slot
        return slot if slot >= 0 else None

    def _slot_offset(self, r: Ref) -> int:
        slot = rsval(r)
        if slot < 0:
            # caller's frame: locals, saved P, 3-byte return address, then params
            return self.framesize + 3 + (-slot)
        return (slot + 1) * 2

    def _immediate(self, r: Ref) -> str | None:
        c = self.fn.cons[r.val]
        if c.kind == ConKind.BITS:
            return str(c.bits & 0xFFFF)
        if c.kind == ConKind.ADDR:
            return self.symbol_text(c)
        return None

    def load(self, r: Ref, adjust: int = 0) -> None:
        """Load r into the accumulator; adjust compensates for pushed bytes."""
        kind = rtype(r)
        if kind == RefKind.TMP:
            if self.is_vreg(r):
                self.line(f"\tlda.b ${dp_addr(r.val):02X}")
            elif r.val >= TMP0:
                slot = self._tmp_slot(r)
                if slot is not None:
                    self.line(f"\tlda {(slot + 1) * 2 + adjust},s")
                else:
                    self.line(f"\t; unallocated temp {r.val}")
            else:
                self.line(f"\t; unknown temp {r.val}")
        elif kind == RefKind.CON:
            text = self._immediate(r)
            if text is not None:
                self.line(f"\tlda.w #{text}")
        elif kind == RefKind.SLOT:
            self.line(f"\tlda {self._slot_offset(r) + adjust},s")
        else:
            code = -1 if kind is None else int(kind)
            self.line(f"\t; unknown ref type {code}")

    def store(self, r: Ref) -> None:
        """Store the accumulator into r; the empty reference is ignored."""
        if r.is_none():
            return
        kind = rtype(r)
        if kind == RefKind.TMP:
            if self.is_vreg(r):
                self.line(f"\tsta.b ${dp_addr(r.val):02X}")
            elif r.val >= TMP0:
                slot = self._tmp_slot(r)
                if slot is not None:
                    self.line(f"\tsta {(slot + 1) * 2},s")
        elif kind == RefKind.SLOT:
            self.line(f"\tsta {self._slot_offset(r)},s")

    def op2(self, mnemonic: str, r: Ref) -> None:
        """Write an accumulator instruction taking r as its second operand."""
        kind = rtype(r)
        if kind == RefKind.TMP:
            if self.is_vreg(r):
                self.line(f"\t{mnemonic}.b ${dp_addr(r.val):02X}")
            elif r.val >= TMP0:
                slot = self._tmp_slot(r)
                if slot is not None:
                    self.line(f"\t{mnemonic} {(slot + 1) * 2},s")
        elif kind == RefKind.CON:
            text = self._immediate(r)
            if text is not None:
                self.line(f"\t{mnemonic}.w #{text}")
        elif kind == RefKind.SLOT:
            self.line(f"\t{mnemonic} {self._slot_offset(r)},s")
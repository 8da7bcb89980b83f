"""Memory, extension, call and allocation instructions of the 65816 backend."""

from __future__ import annotations

from ..ir import ConKind, Ins, Ref, RefKind, rtype
from ..ops import Op
from .operands import OperandWriter, strip_symbol
from .target import dp_addr

_ULONG = (1 << 64) - 1


def _code(w: OperandWriter, *mnemonics: str) -> None:
    for m in mnemonics:
        w.line(f"\t{m}")


def _int32(v: int) -> int:
    v &= 0xFFFFFFFF
    return v - 2**32 if v >= 2**31 else v


def _literal(bits: int) -> str:
    return f"${bits & _ULONG:06X}"


def _store_through(w: OperandWriter, r1: Ref, byte: bool) -> None:
    """Store the accumulator at the address r1 holds or names."""
    aslot = w.alloc_slot(r1)
    if aslot is not None:
        _code(w, f"sta {(aslot + 1) * 2},s")
    elif w.is_vreg(r1):
        _code(w, f"sta (${dp_addr(r1.val):02X})")
    elif rtype(r1) == RefKind.CON:
        c = w.fn.cons[r1.val]
        if c.kind == ConKind.ADDR:
            _code(w, f"sta.l {w.symbol_text(c)}")
        else:
            _code(w, f"sta.l {_literal(c.bits)}")
    elif byte:
        _code(w, "rep #$20", "pha")  # the address needs 16-bit mode
        w.load(r1, 2)
        _code(w, "tax", "pla", "sep #$20", "sta.l $0000,x")
    else:
        _code(w, "pha")
        w.load(r1, 2)  # one word already pushed
        _code(w, "tax", "pla", "sta.l $0000,x")


def emit_store_long(w: OperandWriter, ins: Ins) -> None:
    """Store a long as its low word, with a zero high word two bytes above."""
    r1 = ins.arg[1]
    w.load(ins.arg[0])
    aslot = w.alloc_slot(r1)
    if aslot is not None:
        _code(w, f"sta {(aslot + 1) * 2},s", "lda.w #0", f"sta {(aslot + 1) * 2 + 2},s")
    elif w.is_vreg(r1):
        addr = dp_addr(r1.val)
        _code(w, f"sta (${addr:02X})", "lda.w #0", "ldy.w #2", f"sta (${addr:02X}),y")
    elif rtype(r1) == RefKind.CON:
        c = w.fn.cons[r1.val]
        if c.kind == ConKind.ADDR:
            name = strip_symbol(w.interner.lookup(c.sym.id))
            _code(w, f"sta.l {w.symbol_text(c)}", "lda.w #0",
                  f"sta.l {name}+{_int32(c.bits) + 2}")
        else:
            _code(w, f"sta.l {_literal(c.bits)}", "lda.w #0",
                  f"sta.l {_literal((c.bits & _ULONG) + 2)}")
    else:
        _code(w, "pha")
        w.load(r1, 2)
        _code(w, "tax", "pla", "sta.l $0000,x", "lda.w #0", "sta.l $0002,x")


def emit_store_word(w: OperandWriter, ins: Ins) -> None:
    w.load(ins.arg[0])
    _store_through(w, ins.arg[1], byte=False)


def emit_store_byte(w: OperandWriter, ins: Ins) -> None:
    """Store the low byte; the value is loaded before switching to 8-bit mode."""
    w.load(ins.arg[0])
    _code(w, "sep #$20")
    _store_through(w, ins.arg[1], byte=True)
    _code(w, "rep #$20")


def emit_load_word(w: OperandWriter, ins: Ins) -> None:
    r0 = ins.arg[0]
    aslot = w.alloc_slot(r0)
    if aslot is not None:
        _code(w, f"lda {(aslot + 1) * 2},s")
    elif rtype(r0) == RefKind.SLOT:
        w.load(r0)
    elif w.is_vreg(r0):
        _code(w, f"lda (${dp_addr(r0.val):02X})")
    elif rtype(r0) == RefKind.CON and w.fn.cons[r0.val].kind == ConKind.ADDR:
        _code(w, f"lda.l {w.symbol_text(w.fn.cons[r0.val])}")
    else:
        w.load(r0)
        _code(w, "tax", "lda.l $0000,x")
    w.store(ins.to)


_SIGN_EXTEND_BYTE = ("cmp.w #$0080", "bcc +", "ora.w #$FF00")


def _sign_extend(w: OperandWriter) -> None:
    _code(w, *_SIGN_EXTEND_BYTE)
    w.line("+")


def emit_load_byte(w: OperandWriter, ins: Ins) -> None:
    """Load a byte and extend it to a word, by sign for loadsb."""
    r0 = ins.arg[0]
    if w.is_vreg(r0):
        _code(w, "sep #$20", f"lda (${dp_addr(r0.val):02X})", "rep #$20")
    elif rtype(r0) == RefKind.CON and w.fn.cons[r0.val].kind == ConKind.ADDR:
        _code(w, "sep #$20", f"lda.l {w.symbol_text(w.fn.cons[r0.val])}", "rep #$20")
    else:
        w.load(r0)
        _code(w, "tax", "sep #$20", "lda.l $0000,x", "rep #$20")
    _code(w, "and.w #$00FF")
    if ins.op == Op.LOADSB:
        _sign_extend(w)
    w.store(ins.to)


def emit_extend(w: OperandWriter, ins: Ins) -> None:
    """Integer extension; only byte extensions need code on a 16-bit machine."""
    op = ins.op
    if not Op.EXTSB <= op <= Op.EXTUW:
        raise ValueError(f"not an extension: {Op(op).name}")
    w.load(ins.arg[0])
    if op == Op.EXTSB:
        _code(w, "and.w #$00FF")
        _sign_extend(w)
    elif op == Op.EXTUB:
        _code(w, "and.w #$00FF")
    w.store(ins.to)


def emit_arg(w: OperandWriter, ins: Ins) -> None:
    """Push an argument; earlier pushes shift stack-relative offsets."""
    w.load(ins.arg[0], w.argbytes)
    _code(w, "pha")
    w.argbytes += 2


def emit_call(w: OperandWriter, ins: Ins) -> None:
    """Call, then pop the pushed arguments, keeping the result in A."""
    r0 = ins.arg[0]
    if rtype(r0) == RefKind.CON:
        c = w.fn.cons[r0.val]
        if c.kind == ConKind.ADDR:
            _code(w, f"jsl {strip_symbol(w.interner.lookup(c.sym.id))}")
        else:
            _code(w, f"jsl {_literal(c.bits)}")
    else:
        w.load(r0, w.argbytes)
        _code(w, "sta.b tcc__r9", "sep #$20", "lda #$00", "sta.b tcc__r9+2",
              "rep #$20", "phk", "pea ++-1", "jml [tcc__r9]")
        w.line("++")
    cleanup = w.argbytes
    w.argbytes = 0
    has_result = not ins.to.is_none()
    if has_result and cleanup > 0:
        _code(w, "tax")
    if cleanup > 0:
        _code(w, "tsa", "clc", f"adc.w #{cleanup}", "tas")
    if has_result:
        if cleanup > 0:
            _code(w, "txa")
        w.store(ins.to)


def emit_alloc(w: OperandWriter, ins: Ins) -> None:
    """Materialise the offset of a stack allocation, if it was recorded."""
    aslot = w.alloc_slot(ins.to)
    if aslot is not None:
        _code(w, f"lda.w #{(aslot + 1) * 2}")
        w.store(ins.to)
"""Arithmetic, logic, shift and copy instructions of the 65816 backend."""

from __future__ import annotations

from ..ir import Ins, RefKind, rtype
from .operands import OperandWriter

_R9 = "tcc__r9"

# multiplier -> code applied to the loaded value
_MUL_SEQ: dict[int, tuple[str, ...]] = {
    1: (),
    2: ("asl a",),
    4: ("asl a",) * 2,
    8: ("asl a",) * 3,
    16: ("asl a",) * 4,
    32: ("xba", "lsr a", "lsr a", "lsr a"),
    3: (f"sta.l {_R9}", "asl a", "clc", f"adc.l {_R9}"),
    5: (f"sta.l {_R9}", "asl a", "asl a", "clc", f"adc.l {_R9}"),
    6: (f"sta.l {_R9}", "asl a", "clc", f"adc.l {_R9}", "asl a"),
    7: (f"sta.l {_R9}", "asl a", "asl a", "asl a", "sec", f"sbc.l {_R9}"),
    9: (f"sta.l {_R9}", "asl a", "asl a", "asl a", "clc", f"adc.l {_R9}"),
    10: (f"sta.l {_R9}", "asl a", "asl a", "clc", f"adc.l {_R9}", "asl a"),
}

_DIV_SEQ: dict[int, tuple[str, ...]] = {
    1: (),
    2: ("lsr a",),
    4: ("lsr a",) * 2,
    8: ("lsr a",) * 3,
    16: ("lsr a",) * 4,
    256: ("xba", "and.w #$00FF"),
}

_REM_SEQ: dict[int, tuple[str, ...]] = {
    2: ("and.w #1",),
    4: ("and.w #3",),
    8: ("and.w #7",),
    16: ("and.w #15",),
    256: ("and.w #255",),
}


def _code(w: OperandWriter, *mnemonics: str) -> None:
    for m in mnemonics:
        w.line(f"\t{m}")


def _const_int(w: OperandWriter, ins: Ins) -> int | None:
    r1 = ins.arg[1]
    if rtype(r1) != RefKind.CON:
        return None
    v = w.fn.cons[r1.val].bits & 0xFFFFFFFF
    return v - 2**32 if v >= 2**31 else v


def emit_add(w: OperandWriter, ins: Ins) -> None:
    w.load(ins.arg[0])
    _code(w, "clc")
    w.op2("adc", ins.arg[1])
    w.store(ins.to)


def emit_sub(w: OperandWriter, ins: Ins) -> None:
    w.load(ins.arg[0])
    _code(w, "sec")
    w.op2("sbc", ins.arg[1])
    w.store(ins.to)


def emit_neg(w: OperandWriter, ins: Ins) -> None:
    """Two's complement negation: invert and increment."""
    w.load(ins.arg[0])
    _code(w, "eor.w #$FFFF", "inc a")
    w.store(ins.to)


def _call_mul(w: OperandWriter, ins: Ins) -> None:
    w.load(ins.arg[1])
    _code(w, "pha")
    w.load(ins.arg[0], 2)  # one word already pushed
    _code(w, "pha", "jsl __mul16", "tax", "tsa", "clc", "adc.w #4", "tas", "txa")


def emit_mul(w: OperandWriter, ins: Ins) -> None:
    """Multiplication: shift-and-add for small constants, else a library call."""
    val = _const_int(w, ins)
    if val == 0:
        _code(w, "lda.w #0")
    elif val is not None and val in _MUL_SEQ:
        w.load(ins.arg[0])
        _code(w, *_MUL_SEQ[val])
    else:
        _call_mul(w, ins)
    w.store(ins.to)


def _call_helper(w: OperandWriter, ins: Ins, helper: str) -> None:
    w.load(ins.arg[0])
    _code(w, "sta.l tcc__r0")
    w.load(ins.arg[1])
    _code(w, "sta.l tcc__r1", f"jsl {helper}", "lda.l tcc__r0")


def emit_div(w: OperandWriter, ins: Ins) -> None:
    """Division: shifts for small powers of two, else a library call."""
    val = _const_int(w, ins)
    if val is not None and val in _DIV_SEQ:
        w.load(ins.arg[0])
        _code(w, *_DIV_SEQ[val])
    else:
        _call_helper(w, ins, "__div16")
    w.store(ins.to)


def emit_rem(w: OperandWriter, ins: Ins) -> None:
    """Remainder: a mask for small powers of two, else a library call."""
    val = _const_int(w, ins)
    if val is not None and val in _REM_SEQ:
        w.load(ins.arg[0])
        _code(w, *_REM_SEQ[val])
    else:
        _call_helper(w, ins, "__mod16")
    w.store(ins.to)


def emit_logic(w: OperandWriter, ins: Ins, mnemonic: str) -> None:
    """A bitwise operation: and, ora or eor."""
    w.load(ins.arg[0])
    w.op2(mnemonic, ins.arg[1])
    w.store(ins.to)


def emit_shift(w: OperandWriter, ins: Ins, mnemonic: str) -> None:
    """A shift by asl or lsr; constant counts are unrolled up to 16."""
    w.load(ins.arg[0])
    r1 = ins.arg[1]
    if rtype(r1) == RefKind.CON:
        count = min(max(w.fn.cons[r1.val].bits, 0), 16)
        _code(w, *([f"{mnemonic} a"] * count))
    else:
        _code(w, "pha")
        w.load(r1)
        _code(w, "tax", "pla", "cpx #0", "beq +")
        w.line(f"-\t{mnemonic} a")
        _code(w, "dex", "bne -")
        w.line("+")
    w.store(ins.to)


def emit_copy(w: OperandWriter, ins: Ins) -> None:
    if ins.to != ins.arg[0]:
        w.load(ins.arg[0])
        w.store(ins.to)
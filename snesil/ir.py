"""Core data structures of the intermediate representation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable

from .ops import Jmp, Kind, Op

NSTRING = 80
NINS = 1 << 20
NALIGN = 3
NFIELD = 32
NBIT = 64

RXX = 0
TMP0 = NBIT  # first temporary that is not a register

_VAL_BITS = 29
_VAL_MASK = (1 << _VAL_BITS) - 1


class RefKind(IntEnum):
    TMP = 0
    CON = 1
    INT = 2
    TYPE = 3  # last kind produced by the parser
    SLOT = 4
    CALL = 5
    MEM = 6


@dataclass(frozen=True)
class Ref:
    """A reference to a temporary, constant, slot or other operand."""

    kind: RefKind = RefKind.TMP
    val: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.val <= _VAL_MASK:
            raise ValueError(f"reference value out of range: {self.val}")

    def is_none(self) -> bool:
        """True for the empty reference."""
        return self.kind == RefKind.TMP and self.val == 0


R = Ref(RefKind.TMP, 0)
UNDEF = Ref(RefKind.CON, 0)  # uninitialised data
CON_Z = Ref(RefKind.CON, 1)


def tmp_ref(x: int) -> Ref:
    return Ref(RefKind.TMP, x)


def con_ref(x: int) -> Ref:
    return Ref(RefKind.CON, x)


def slot_ref(x: int) -> Ref:
    return Ref(RefKind.SLOT, x & _VAL_MASK)


def int_ref(x: int) -> Ref:
    return Ref(RefKind.INT, x & _VAL_MASK)


def type_ref(x: int) -> Ref:
    return Ref(RefKind.TYPE, x)


def call_ref(x: int) -> Ref:
    return Ref(RefKind.CALL, x)


def mem_ref(x: int) -> Ref:
    return Ref(RefKind.MEM, x)


def rtype(r: Ref) -> RefKind | None:
    """Kind of a reference, or None for the empty reference."""
    if r.is_none():
        return None
    return r.kind


def rsval(r: Ref) -> int:
    """Signed value of a slot or integer reference."""
    return (r.val ^ 0x10000000) - 0x10000000


class UseKind(IntEnum):
    XXX = 0
    PHI = 1
    INS = 2
    JMP = 3


class SymKind(IntEnum):
    GLO = 0
    THR = 1


@dataclass(frozen=True)
class Sym:
    kind: SymKind = SymKind.GLO
    id: int = 0


class ConKind(IntEnum):
    UNDEF = 0
    BITS = 1
    ADDR = 2


@dataclass
class Con:
    """A constant: raw bits, or a symbol address plus offset."""

    kind: ConKind = ConKind.UNDEF
    sym: Sym = field(default_factory=Sym)
    bits: int = 0
    flt: int = 0  # 1 to print as single, 2 as double


@dataclass
class Addr:
    """An addressing-mode operand: offset + base + index * scale."""

    offset: Con = field(default_factory=Con)
    base: Ref = R
    index: Ref = R
    scale: int = 0


Mem = Addr


class Width(IntEnum):
    """Known width of a temporary; order matches loads and extensions."""

    FULL = 0
    SB = 1
    UB = 2
    SH = 3
    UH = 4
    SW = 5
    UW = 6


@dataclass(eq=False)
class Ins:
    op: Op = Op.NOP
    cls: Kind = Kind.W
    to: Ref = R
    arg: list[Ref] = field(default_factory=lambda: [R, R])


@dataclass(eq=False)
class Phi:
    to: Ref = R
    args: list[Ref] = field(default_factory=list)
    blks: list[Blk] = field(default_factory=list)
    cls: Kind = Kind.W
    visit: bool = False


@dataclass(eq=False)
class Use:
    kind: UseKind = UseKind.XXX
    bid: int = 0
    ins: Ins | None = None
    phi: Phi | None = None


@dataclass(eq=False)
class Blk:
    """A basic block."""

    name: str = ""
    id: int = 0
    phis: list[Phi] = field(default_factory=list)
    ins: list[Ins] = field(default_factory=list)
    jmp_type: Jmp = Jmp.XXX
    jmp_arg: Ref = R
    s1: Blk | None = None
    s2: Blk | None = None
    visit: int = 0
    idom: Blk | None = None
    dom: list[Blk] = field(default_factory=list)
    fron: list[Blk] = field(default_factory=list)
    depth: int = 0
    preds: list[Blk] = field(default_factory=list)
    live_in: Any = None
    live_out: Any = None
    gen: Any = None
    nlive: list[int] = field(default_factory=lambda: [0, 0])
    loop: int = 0

    def successors(self) -> list[Blk]:
        """The distinct successors, s1 first."""
        if self.s1 is None:
            return []
        if self.s2 is None or self.s2 is self.s1:
            return [self.s1]
        return [self.s1, self.s2]


@dataclass(eq=False)
class Num:
    """Matcher numbering of a temporary."""

    n: int = 0
    nl: int = 0
    nr: int = 0
    l: Ref = R
    r: Ref = R


@dataclass(eq=False)
class Tmp:
    """A temporary (or a machine register for the first TMP0 entries)."""

    name: str = ""
    defn: Ins | None = None
    uses: list[Use] | None = None
    ndef: int = 0
    nuse: int = 0
    bid: int = 0
    cost: int = 0
    slot: int = -1
    cls: Kind = Kind.W
    hint_r: int = -1
    hint_w: int = 0
    hint_m: int = 0
    phi: int = 0
    width: Width = Width.FULL
    visit: int = 0
    gcmbid: int = 0


@dataclass
class Lnk:
    export: bool = False
    thread: bool = False
    common: bool = False
    align: int = 0
    sec: str | None = None
    secf: str | None = None


def _default_cons() -> list[Con]:
    return [Con(ConKind.UNDEF), Con(ConKind.BITS, bits=0)]


def _default_tmps() -> list[Tmp]:
    return [Tmp() for _ in range(TMP0)]


@dataclass(eq=False)
class Fn:
    """A function: blocks in layout order plus its temporaries and constants."""

    name: str = ""
    blocks: list[Blk] = field(default_factory=list)
    tmps: list[Tmp] = field(default_factory=_default_tmps)
    cons: list[Con] = field(default_factory=_default_cons)
    mems: list[Addr] = field(default_factory=list)
    retty: int = -1
    retr: Ref = R
    rpo: list[Blk] = field(default_factory=list)
    reg: int = 0
    slot: int = 0
    salign: int = 0
    vararg: bool = False
    dynalloc: bool = False
    leaf: bool = False
    lnk: Lnk = field(default_factory=Lnk)

    @property
    def start(self) -> Blk | None:
        return self.blocks[0] if self.blocks else None


class FieldKind(IntEnum):
    END = 0
    B = 1
    H = 2
    W = 3
    L = 4
    S = 5
    D = 6
    PAD = 7
    TYP = 8


@dataclass
class Field:
    kind: FieldKind = FieldKind.END
    len: int = 0  # or index of the type for TYP


@dataclass
class Typ:
    name: str = ""
    isdark: bool = False
    isunion: bool = False
    align: int = 0
    size: int = 0
    nunion: int = 0
    fields: list[list[Field]] = field(default_factory=list)


class DatKind(IntEnum):
    START = 0
    END = 1
    B = 2
    H = 3
    W = 4
    L = 5
    Z = 6


@dataclass
class Dat:
    kind: DatKind = DatKind.START
    name: str = ""
    lnk: Lnk | None = None
    value: int | float | str = 0
    ref_name: str = ""
    ref_off: int = 0
    isref: bool = False
    isstr: bool = False


@dataclass
class Target:
    """Description of a code generation target."""

    name: str
    apple: bool = False
    skiprega: bool = False
    gpr0: int = 0
    ngpr: int = 0
    fpr0: int = 0
    nfpr: int = 0
    rglob: int = 0
    nrglob: int = 0
    rsave: list[int] = field(default_factory=list)
    nrsave: tuple[int, int] = (0, 0)
    retregs: Callable[..., Any] | None = None
    argregs: Callable[..., Any] | None = None
    memargs: Callable[[int], int] | None = None
    abi0: Callable[[Fn], Any] | None = None
    abi1: Callable[[Fn], Any] | None = None
    isel: Callable[[Fn], Any] | None = None
    emitfn: Callable[..., Any] | None = None
    emitfin: Callable[..., Any] | None = None
    asloc: str = ""
    assym: str = ""
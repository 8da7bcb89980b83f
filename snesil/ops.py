"""Operation table of the intermediate language: opcodes, jumps, classes, comparisons."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class Kind(IntEnum):
    """Value classes of instructions and temporaries."""

    E = -2  # class not allowed in this position
    X = -1  # "top" class, accepts anything
    W = 0
    L = 1
    S = 2
    D = 3
    M = 1  # memory operand: a pointer, hence long


class Cmp(IntEnum):
    """Comparison kinds; float comparisons follow the integer ones."""

    IEQ = 0
    INE = 1
    ISGE = 2
    ISGT = 3
    ISLE = 4
    ISLT = 5
    IUGE = 6
    IUGT = 7
    IULE = 8
    IULT = 9
    FEQ = 10
    FGE = 11
    FGT = 12
    FLE = 13
    FLT = 14
    FNE = 15
    FO = 16
    FUO = 17


NCMPI = 10
NCMPF = 8
NCMP = NCMPI + NCMPF

# name  argcls[0] argcls[1]  flags(10)  amd64(3)  rv64-imm
# flags: canfold hasid idval commutes assoc idemp cmpeqwl cmplgtewl eqval pinned
# amd64: memory args, sets zero flag, leaves flags
_SPEC = """
add      wlsd wlsd 1101100000 210 1
sub      wlsd wlsd 1100000000 210 0
neg      wlsd xxxx 1000000000 110 0
div      wlsd wlsd 1110000000 000 0
rem      wlee wlee 1000000000 000 0
udiv     wlee wlee 1110000000 000 0
urem     wlee wlee 1000000000 000 0
mul      wlsd wlsd 1111000000 200 0
and      wlee wlee 1001110000 210 1
or       wlee wlee 1101110000 210 1
xor      wlee wlee 1101100000 210 1
sar      wlee wwee 1100000000 110 1
shr      wlee wwee 1100000000 110 1
shl      wlee wwee 1100000000 110 1
ceqw     wwee wwee 1111001010 010 0
cnew     wwee wwee 1101001000 010 0
csgew    wwee wwee 1000000110 010 0
csgtw    wwee wwee 1000000100 010 0
cslew    wwee wwee 1000000110 010 0
csltw    wwee wwee 1000000100 010 1
cugew    wwee wwee 1000000110 010 0
cugtw    wwee wwee 1000000100 010 0
culew    wwee wwee 1000000110 010 0
cultw    wwee wwee 1000000100 010 1
ceql     llee llee 1001001010 010 0
cnel     llee llee 1001001000 010 0
csgel    llee llee 1000000110 010 0
csgtl    llee llee 1000000100 010 0
cslel    llee llee 1000000110 010 0
csltl    llee llee 1000000100 010 1
cugel    llee llee 1000000110 010 0
cugtl    llee llee 1000000100 010 0
culel    llee llee 1000000110 010 0
cultl    llee llee 1000000100 010 1
ceqs     ssee ssee 1001000000 010 0
cges     ssee ssee 1000000000 010 0
cgts     ssee ssee 1000000000 010 0
cles     ssee ssee 1000000000 010 0
clts     ssee ssee 1000000000 010 0
cnes     ssee ssee 1001000000 010 0
cos      ssee ssee 1001000000 010 0
cuos     ssee ssee 1001000000 010 0
ceqd     ddee ddee 1001000000 010 0
cged     ddee ddee 1000000000 010 0
cgtd     ddee ddee 1000000000 010 0
cled     ddee ddee 1000000000 010 0
cltd     ddee ddee 1000000000 010 0
cned     ddee ddee 1001000000 010 0
cod      ddee ddee 1001000000 010 0
cuod     ddee ddee 1001000000 010 0
storeb   weee meee 0000000001 001 0
storeh   weee meee 0000000001 001 0
storew   weee meee 0000000001 001 0
storel   leee meee 0000000001 001 0
stores   seee meee 0000000001 001 0
stored   deee meee 0000000001 001 0
loadsb   mmee xxee 0000000001 001 0
loadub   mmee xxee 0000000001 001 0
loadsh   mmee xxee 0000000001 001 0
loaduh   mmee xxee 0000000001 001 0
loadsw   mmee xxee 0000000001 001 0
loaduw   mmee xxee 0000000001 001 0
load     mmmm xxxx 0000000001 001 0
extsb    wwee xxee 1000000000 001 0
extub    wwee xxee 1000000000 001 0
extsh    wwee xxee 1000000000 001 0
extuh    wwee xxee 1000000000 001 0
extsw    ewee exee 1000000000 001 0
extuw    ewee exee 1000000000 001 0
exts     eees eeex 1000000000 001 0
truncd   eede eexe 1000000000 001 0
stosi    ssee xxee 1000000000 001 0
stoui    ssee xxee 1000000000 001 0
dtosi    ddee xxee 1000000000 001 0
dtoui    ddee xxee 1000000000 001 0
swtof    eeww eexx 1000000000 001 0
uwtof    eeww eexx 1000000000 001 0
sltof    eell eexx 1000000000 001 0
ultof    eell eexx 1000000000 001 0
cast     sdwl xxxx 1000000000 001 0
alloc4   elee exee 0000000001 000 0
alloc8   elee exee 0000000001 000 0
alloc16  elee exee 0000000001 000 0
vaarg    mmmm xxxx 0000000001 000 0
vastart  meee xeee 0000000001 000 0
copy     wlsd xxxx 0000000000 001 0
dbgloc   weee weee 0000000001 001 0
nop      xxxx xxxx 0000000000 001 0
addr     mmee xxee 0000000000 001 0
blit0    meee meee 0000000001 010 0
blit1    weee xeee 0000000001 010 0
swap     wlsd wlsd 0000000000 100 0
sign     wlee xxee 0000000000 000 0
salloc   elee exee 0000000000 000 0
xidiv    wlee xxee 0000000000 100 0
xdiv     wlee xxee 0000000000 100 0
xcmp     wlsd wlsd 0000000000 110 0
xtest    wlee wlee 0000000000 110 0
acmp     wlee wlee 0000000000 000 0
acmn     wlee wlee 0000000000 000 0
afcmp    eesd eesd 0000000000 000 0
reqz     wlee xxee 0000000000 000 0
rnez     wlee xxee 0000000000 000 0
par      xxxx xxxx 0000000001 000 0
parsb    xxxx xxxx 0000000001 000 0
parub    xxxx xxxx 0000000001 000 0
parsh    xxxx xxxx 0000000001 000 0
paruh    xxxx xxxx 0000000001 000 0
parc     exee exee 0000000001 000 0
pare     exee exee 0000000001 000 0
arg      wlsd xxxx 0000000001 000 0
argsb    weee xxxx 0000000001 000 0
argub    weee xxxx 0000000001 000 0
argsh    weee xxxx 0000000001 000 0
arguh    weee xxxx 0000000001 000 0
argc     exee elee 0000000001 000 0
arge     elee exee 0000000001 000 0
argv     xxxx xxxx 0000000001 000 0
call     mmmm xxxx 0000000001 000 0
flagieq  xxee xxee 0000000000 001 0
flagine  xxee xxee 0000000000 001 0
flagisge xxee xxee 0000000000 001 0
flagisgt xxee xxee 0000000000 001 0
flagisle xxee xxee 0000000000 001 0
flagislt xxee xxee 0000000000 001 0
flagiuge xxee xxee 0000000000 001 0
flagiugt xxee xxee 0000000000 001 0
flagiule xxee xxee 0000000000 001 0
flagiult xxee xxee 0000000000 001 0
flagfeq  xxee xxee 0000000000 001 0
flagfge  xxee xxee 0000000000 001 0
flagfgt  xxee xxee 0000000000 001 0
flagfle  xxee xxee 0000000000 001 0
flagflt  xxee xxee 0000000000 001 0
flagfne  xxee xxee 0000000000 001 0
flagfo   xxee xxee 0000000000 001 0
flagfuo  xxee xxee 0000000000 001 0
"""

_ROWS = [line.split() for line in _SPEC.strip().splitlines()]

Op = IntEnum(
    "Op",
    [("XXX", 0)] + [(row[0].upper(), n) for n, row in enumerate(_ROWS, start=1)],
    module=__name__,
)
Op.__doc__ = "Opcodes; the first entry, XXX, is the empty opcode."

_JMP_NAMES = (
    "retw retl rets retd retsb retub retsh retuh retc ret0 jmp jnz "
    "jfieq jfine jfisge jfisgt jfisle jfislt jfiuge jfiugt jfiule jfiult "
    "jffeq jffge jffgt jffle jfflt jffne jffo jffuo hlt"
).split()

Jmp = IntEnum(
    "Jmp",
    [("XXX", 0)] + [(name.upper(), n) for n, name in enumerate(_JMP_NAMES, start=1)],
    module=__name__,
)
Jmp.__doc__ = "Block terminators; the first entry, XXX, is the missing jump."

N_OPS = len(Op)
N_JMPS = len(Jmp)

CMPW, CMPW1 = Op.CEQW, Op.CULTW
CMPL, CMPL1 = Op.CEQL, Op.CULTL
CMPS, CMPS1 = Op.CEQS, Op.CUOS
CMPD, CMPD1 = Op.CEQD, Op.CUOD
ALLOC, ALLOC1 = Op.ALLOC4, Op.ALLOC16
FLAG, FLAG1 = Op.FLAGIEQ, Op.FLAGFUO
NPUBOP = Op.NOP
JF, JF1 = Jmp.JFIEQ, Jmp.JFFUO

_KIND_CHARS = {
    "w": Kind.W,
    "l": Kind.L,
    "s": Kind.S,
    "d": Kind.D,
    "x": Kind.X,
    "e": Kind.E,
    "m": Kind.M,
}


@dataclass(frozen=True)
class OpInfo:
    """Static properties of one opcode."""

    name: str
    argcls: tuple[tuple[Kind, ...], tuple[Kind, ...]]
    canfold: bool
    hasid: bool
    idval: bool
    commutes: bool
    assoc: bool
    idemp: bool
    cmpeqwl: bool
    cmplgtewl: bool
    eqval: bool
    pinned: bool
    nmemargs: int
    sets_zero_flag: bool
    leaves_flags: bool
    imm: bool


def _info(row: list[str]) -> OpInfo:
    name, cls0, cls1, flags, x86, imm = row
    f = [c == "1" for c in flags]
    return OpInfo(
        name=name,
        argcls=(
            tuple(_KIND_CHARS[c] for c in cls0),
            tuple(_KIND_CHARS[c] for c in cls1),
        ),
        canfold=f[0],
        hasid=f[1],
        idval=f[2],
        commutes=f[3],
        assoc=f[4],
        idemp=f[5],
        cmpeqwl=f[6],
        cmplgtewl=f[7],
        eqval=f[8],
        pinned=f[9],
        nmemargs=int(x86[0]),
        sets_zero_flag=x86[1] == "1",
        leaves_flags=x86[2] == "1",
        imm=imm == "1",
    )


_TABLE = {Op(n): _info(row) for n, row in enumerate(_ROWS, start=1)}


def op_info(op: int) -> OpInfo:
    """Return the table entry of an opcode."""
    try:
        return _TABLE[Op(op)]
    except (KeyError, ValueError):
        raise ValueError(f"no such operation: {op!r}") from None


def _inrange(x: int, lo: int, hi: int) -> bool:
    return lo <= x <= hi


def is_store(op: int) -> bool:
    return _inrange(op, Op.STOREB, Op.STORED)


def is_load(op: int) -> bool:
    return _inrange(op, Op.LOADSB, Op.LOAD)


def is_alloc(op: int) -> bool:
    return _inrange(op, Op.ALLOC4, Op.ALLOC16)


def is_ext(op: int) -> bool:
    return _inrange(op, Op.EXTSB, Op.EXTUW)


def is_par(op: int) -> bool:
    return _inrange(op, Op.PAR, Op.PARE)


def is_arg(op: int) -> bool:
    return _inrange(op, Op.ARG, Op.ARGV)


def is_parbh(op: int) -> bool:
    return _inrange(op, Op.PARSB, Op.PARUH)


def is_argbh(op: int) -> bool:
    return _inrange(op, Op.ARGSB, Op.ARGUH)


def is_ret(j: int) -> bool:
    return _inrange(j, Jmp.RETW, Jmp.RET0)


def is_retbh(j: int) -> bool:
    return _inrange(j, Jmp.RETSB, Jmp.RETUH)


def is_jf(j: int) -> bool:
    return _inrange(j, JF, JF1)


def kwide(k: int) -> int:
    """1 for the 64-bit classes (l, d), 0 otherwise."""
    return k & 1


def kbase(k: int) -> int:
    """0 for integer classes, 1 for floating point classes."""
    return k >> 1
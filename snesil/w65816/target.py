"""Register model and target description of the 65816 backend."""

from __future__ import annotations

from enum import IntEnum

from ..ir import RXX, Target
from . import abi, isel


class Reg(IntEnum):
    """Virtual registers, each a word of the direct page."""

    R0 = RXX + 1  # also the return value
    R1 = RXX + 2
    R2 = RXX + 3
    R3 = RXX + 4
    R4 = RXX + 5
    R5 = RXX + 6
    R6 = RXX + 7
    R7 = RXX + 8


NGPR = 8
NFPR = 0
NGPS = 4  # caller-save: R0-R3
NFPS = 0
NCLR = 4  # callee-save: R4-R7

RSAVE = (Reg.R0, Reg.R1, Reg.R2, Reg.R3)
RCLOB = (Reg.R4, Reg.R5, Reg.R6, Reg.R7)
RGLOB = 0  # no globally reserved registers


def dp_addr(r: int) -> int:
    """Direct page address of a virtual register."""
    return (r - Reg.R0) * 2


def memargs(op: int) -> int:
    """Memory operands an instruction accepts: none on this target."""
    return 0


def make_target() -> Target:
    """The target description of the 65816 backend."""
    from .emit import emit_fin, emit_fn

    return Target(
        name="w65816",
        apple=False,
        skiprega=True,
        gpr0=Reg.R0,
        ngpr=NGPR,
        fpr0=Reg.R0,
        nfpr=NFPR,
        rglob=RGLOB,
        nrglob=0,
        rsave=list(RSAVE),
        nrsave=(NGPS, NFPS),
        retregs=abi.retregs,
        argregs=abi.argregs,
        memargs=memargs,
        abi0=abi.scan_allocations,
        abi1=abi.lower_abi,
        isel=isel.select,
        emitfn=emit_fn,
        emitfin=emit_fin,
        asloc="@",
        assym="",
    )
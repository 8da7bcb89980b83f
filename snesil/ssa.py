"""Use information and phi placement for SSA construction."""

from __future__ import annotations

from .bitset import BitSet
from .ir import TMP0, Blk, Fn, Ins, Phi, Ref, RefKind, Tmp, Use, UseKind, Width, rtype, tmp_ref
from .ops import Kind, Op, is_ext, is_load, is_parbh
from .util import InternalError, clsmerge, iscmp, newtmp, phicls


def adduse(tmp: Tmp, kind: UseKind, blk: Blk, ref: Ins | Phi | None = None) -> None:
    """Record a use of tmp in blk; ref is the using instruction or phi."""
    if tmp.uses is None:
        return
    if kind == UseKind.PHI:
        use = Use(kind=kind, bid=blk.id, phi=ref)
    elif kind == UseKind.INS:
        use = Use(kind=kind, bid=blk.id, ins=ref)
    elif kind == UseKind.JMP:
        use = Use(kind=kind, bid=blk.id)
    else:
        raise InternalError("unreachable")
    tmp.uses.append(use)
    tmp.nuse += 1


def _width(ins: Ins) -> Width:
    op = ins.op
    w = Width.FULL
    if is_parbh(op):
        w = Width(Width.SB + (op - Op.PARSB))
    if is_load(op) and op != Op.LOAD:
        w = Width(Width.SB + (op - Op.LOADSB))
    if is_ext(op):
        w = Width(Width.SB + (op - Op.EXTSB))
    if iscmp(op) is not None:
        w = Width.UB
    if w in (Width.SW, Width.UW) and ins.cls == Kind.W:
        w = Width.FULL
    return w


def filluse(fn: Fn) -> None:
    """Fill use, definition, width, phi-class and class information."""
    tmps = fn.tmps
    for tmp in tmps[TMP0:]:
        tmp.defn = None
        tmp.bid = -1
        tmp.ndef = 0
        tmp.nuse = 0
        tmp.cls = Kind.W
        tmp.phi = 0
        tmp.width = Width.FULL
        tmp.uses = []
    for b in fn.blocks:
        for p in b.phis:
            if rtype(p.to) != RefKind.TMP:
                raise InternalError("phi must define a temporary")
            tp = p.to.val
            tmps[tp].bid = b.id
            tmps[tp].ndef += 1
            tmps[tp].cls = p.cls
            tp = phicls(tp, tmps)
            for a in p.args:
                if rtype(a) == RefKind.TMP:
                    adduse(tmps[a.val], UseKind.PHI, b, p)
                    t = phicls(a.val, tmps)
                    if t != tp:
                        tmps[t].phi = tp
        for ins in b.ins:
            if not ins.to.is_none():
                if rtype(ins.to) != RefKind.TMP:
                    raise InternalError("instruction must define a temporary")
                tmp = tmps[ins.to.val]
                tmp.width = _width(ins)
                tmp.defn = ins
                tmp.bid = b.id
                tmp.ndef += 1
                tmp.cls = ins.cls
            for a in ins.arg:
                if rtype(a) == RefKind.TMP:
                    adduse(tmps[a.val], UseKind.INS, b, ins)
        if rtype(b.jmp_arg) == RefKind.TMP:
            adduse(tmps[b.jmp_arg.val], UseKind.JMP, b)


def _refindex(t: int, fn: Fn) -> Ref:
    return newtmp(fn.tmps[t].name, fn.tmps[t].cls, fn)


def insert_phis(fn: Fn) -> None:
    """Place empty phis at the dominance frontiers of multiply defined temporaries.

    Requires use information, frontiers (Blk.fron) and liveness
    (Blk.live_in, Blk.live_out). Definitions that are dead at the end of
    their block are renamed locally to fresh temporaries.
    """
    start = fn.start
    if start is None:
        return
    nblk = len(fn.blocks)
    pending = BitSet(nblk)
    defs = BitSet(nblk)
    for t in range(TMP0, len(fn.tmps)):
        tmp = fn.tmps[t]
        tmp.visit = 0
        if tmp.phi != 0:
            continue
        if tmp.ndef == 1:
            defb = tmp.bid
            if all(u.bid == defb for u in tmp.uses or []) or defb == start.id:
                continue
        ref_t = tmp_ref(t)
        pending.clear()
        k = Kind.X
        worklist: list[Blk] = []
        for b in fn.blocks:
            b.visit = 0
            r = None
            for ins in b.ins:
                if r is not None:
                    ins.arg = [r if a == ref_t else a for a in ins.arg]
                if ins.to == ref_t:
                    if t not in b.live_out:
                        r = _refindex(t, fn)
                        ins.to = r
                    else:
                        if b.id not in pending:
                            pending.add(b.id)
                            worklist.append(b)
                        try:
                            k = clsmerge(k, ins.cls)
                        except ValueError:
                            raise InternalError("invalid input") from None
            if r is not None and b.jmp_arg == ref_t:
                b.jmp_arg = r
        defs.copy_from(pending)
        while worklist:
            tmp.visit = t
            b = worklist.pop()
            pending.discard(b.id)
            for a in b.fron:
                first = a.visit == 0
                a.visit += 1
                if first and t in a.live_in:
                    a.phis.insert(0, Phi(to=ref_t, cls=k))
                    if a.id not in defs and a.id not in pending:
                        pending.add(a.id)
                        worklist.append(a)
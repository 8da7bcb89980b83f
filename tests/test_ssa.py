import pytest

from snesil.bitset import BitSet
from snesil.ir import R, Blk, Fn, Ins, Phi, UseKind, Width, Tmp
from snesil.ops import Jmp, Kind, Op
from snesil.ssa import adduse, filluse, insert_phis
from snesil.util import InternalError, getcon, newtmp


def test_adduse_ignores_tmp_without_use_list():
    tmp = Tmp()
    adduse(tmp, UseKind.INS, Blk(id=3), Ins())
    assert tmp.uses is None
    assert tmp.nuse == 0


def test_adduse_records_use():
    tmp = Tmp(uses=[])
    ins = Ins()
    adduse(tmp, UseKind.INS, Blk(id=3), ins)
    assert tmp.nuse == 1
    assert tmp.uses[0].kind == UseKind.INS
    assert tmp.uses[0].bid == 3
    assert tmp.uses[0].ins is ins


def test_adduse_rejects_bad_kind():
    with pytest.raises(InternalError):
        adduse(Tmp(uses=[]), UseKind.XXX, Blk(), None)


def test_filluse_widths_and_uses():
    fn = Fn()
    p = newtmp("p", Kind.L, fn)
    a = newtmp("a", Kind.W, fn)
    b = newtmp("b", Kind.L, fn)
    c = newtmp("c", Kind.W, fn)
    d = newtmp("d", Kind.W, fn)
    blk = Blk(name="start", id=0)
    blk.ins = [
        Ins(Op.LOADSB, Kind.L, a, [p, R]),
        Ins(Op.EXTSW, Kind.L, b, [a, R]),
        Ins(Op.LOADSW, Kind.W, c, [p, R]),
        Ins(Op.CEQW, Kind.W, d, [a, c]),
    ]
    blk.jmp_type = Jmp.RETW
    blk.jmp_arg = d
    fn.blocks = [blk]
    filluse(fn)
    assert fn.tmps[a.val].width == Width.SB
    assert fn.tmps[b.val].width == Width.SW
    assert fn.tmps[c.val].width == Width.FULL
    assert fn.tmps[d.val].width == Width.UB
    assert fn.tmps[a.val].nuse == 2
    assert fn.tmps[p.val].ndef == 0
    assert fn.tmps[d.val].uses[0].kind == UseKind.JMP
    assert fn.tmps[b.val].defn is blk.ins[1]
    assert fn.tmps[b.val].cls == Kind.L


def test_filluse_links_phi_classes():
    fn = Fn()
    t1 = newtmp("t", Kind.W, fn)
    t2 = newtmp("t", Kind.W, fn)
    b0 = Blk(name="b0", id=0)
    b1 = Blk(name="b1", id=1)
    b0.ins = [Ins(Op.COPY, Kind.W, t1, [getcon(1, fn), R])]
    phi = Phi(to=t2, args=[t1], blks=[b0], cls=Kind.W)
    b1.phis = [phi]
    fn.blocks = [b0, b1]
    filluse(fn)
    assert fn.tmps[t1.val].phi == t2.val
    assert fn.tmps[t1.val].uses[0].phi is phi
    assert fn.tmps[t2.val].ndef == 1
    assert fn.tmps[t2.val].bid == b1.id


def _diamond(cls_a, cls_b):
    fn = Fn()
    x = newtmp("x", Kind.W, fn)
    s = Blk(name="s", id=0)
    a = Blk(name="a", id=1)
    b = Blk(name="b", id=2)
    j = Blk(name="j", id=3)
    a.ins = [Ins(Op.COPY, cls_a, x, [getcon(1, fn), R])]
    b.ins = [Ins(Op.COPY, cls_b, x, [getcon(2, fn), R])]
    j.jmp_type = Jmp.RETW
    j.jmp_arg = x
    fn.blocks = [s, a, b, j]
    for blk in fn.blocks:
        blk.live_in = BitSet(len(fn.tmps))
        blk.live_out = BitSet(len(fn.tmps))
    a.live_out.add(x.val)
    b.live_out.add(x.val)
    j.live_in.add(x.val)
    a.fron = [j]
    b.fron = [j]
    filluse(fn)
    return fn, x, a, b, j


def test_insert_phis_at_join():
    fn, x, a, b, j = _diamond(Kind.W, Kind.W)
    insert_phis(fn)
    assert len(j.phis) == 1
    assert j.phis[0].to == x
    assert j.phis[0].cls == Kind.W
    assert j.phis[0].args == []
    assert fn.tmps[x.val].visit == x.val
    assert a.ins[0].to == x


def test_insert_phis_merges_word_and_long():
    fn, x, a, b, j = _diamond(Kind.W, Kind.L)
    insert_phis(fn)
    assert j.phis[0].cls == Kind.W


def test_insert_phis_rejects_mixed_classes():
    fn, x, a, b, j = _diamond(Kind.W, Kind.S)
    with pytest.raises(InternalError):
        insert_phis(fn)


def test_insert_phis_renames_dead_local_definitions():
    fn = Fn()
    x = newtmp("x", Kind.W, fn)
    y = newtmp("y", Kind.W, fn)
    s = Blk(name="s", id=0)
    a = Blk(name="a", id=1)
    b = Blk(name="b", id=2)
    a.ins = [
        Ins(Op.COPY, Kind.W, x, [getcon(1, fn), R]),
        Ins(Op.ADD, Kind.W, y, [x, x]),
    ]
    b.ins = [Ins(Op.COPY, Kind.W, x, [getcon(2, fn), R])]
    fn.blocks = [s, a, b]
    for blk in fn.blocks:
        blk.live_in = BitSet(len(fn.tmps))
        blk.live_out = BitSet(len(fn.tmps))
    filluse(fn)
    ntmp = len(fn.tmps)
    insert_phis(fn)
    renamed = a.ins[0].to
    assert renamed != x
    assert renamed.val >= ntmp
    assert a.ins[1].arg == [renamed, renamed]
    assert all(not blk.phis for blk in fn.blocks)


def test_insert_phis_skips_single_block_temporary():
    fn = Fn()
    x = newtmp("x", Kind.W, fn)
    a = Blk(name="a", id=0)
    a.ins = [Ins(Op.COPY, Kind.W, x, [getcon(1, fn), R])]
    a.jmp_type = Jmp.RETW
    a.jmp_arg = x
    fn.blocks = [a]
    a.live_in = BitSet(len(fn.tmps))
    a.live_out = BitSet(len(fn.tmps))
    filluse(fn)
    insert_phis(fn)
    assert a.ins[0].to == x
    assert fn.tmps[x.val].visit == 0
    assert a.phis == []
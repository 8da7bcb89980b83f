import io

import pytest

from snesil.ir import (
    TMP0,
    Blk,
    Con,
    ConKind,
    Fn,
    Ins,
    Phi,
    R,
    Sym,
    slot_ref,
    tmp_ref,
)
from snesil.ops import Kind, Op
from snesil.util import Interner, getcon, newcon, newtmp
from snesil.w65816.operands import OperandWriter, assign_slots, strip_symbol
from snesil.w65816.target import Reg


def _writer(fn=None, **kw):
    fn = fn or Fn(name="f")
    out = io.StringIO()
    return OperandWriter(fn, out, **kw), out


def _offset(line):
    return int(line.split()[1].split(",")[0])


def test_strip_symbol():
    assert strip_symbol(".Lstring.1") == "string.1"
    assert strip_symbol("main") == "main"
    assert strip_symbol(".x") == ".x"


def test_load_vreg_r0():
    w, out = _writer()
    w.load(tmp_ref(Reg.R0))
    assert out.getvalue() == "\tlda.b $00\n"


def test_op2_matches_load_for_vreg():
    w, out = _writer()
    w.load(tmp_ref(Reg.R3))
    w.op2("adc", tmp_ref(Reg.R3))
    lda, adc = out.getvalue().splitlines()
    assert adc == lda.replace("lda", "adc")


def test_load_constant_masks_to_16_bits():
    fn = Fn(name="f")
    w, out = _writer(fn)
    w.load(getcon(5, fn))
    w.load(getcon(-1, fn))
    assert out.getvalue().splitlines() == ["\tlda.w #5", "\tlda.w #65535"]


def test_load_address_constant_with_offset():
    fn = Fn(name="f")
    interner = Interner()
    sym = Sym(id=interner.intern(".Lfoo"))
    ref = newcon(Con(ConKind.ADDR, sym=sym, bits=3), fn)
    w, out = _writer(fn, interner=interner)
    w.load(ref)
    assert out.getvalue() == "\tlda.w #foo+3\n"


def test_temp_load_store_share_offset_and_adjust():
    fn = Fn(name="f")
    t = newtmp("x", Kind.W, fn)
    fn.tmps[t.val].slot = 1
    w, out = _writer(fn)
    w.load(t)
    w.store(t)
    w.load(t, 2)
    w.load(slot_ref(1))
    lda, sta, lda2, lda_slot = out.getvalue().splitlines()
    assert sta.startswith("\tsta ")
    assert _offset(lda) == _offset(sta)
    assert _offset(lda2) == _offset(lda) + 2
    assert _offset(lda_slot) == _offset(lda)


def test_parameter_slots_follow_framesize():
    w1, out1 = _writer(framesize=10)
    w2, out2 = _writer(framesize=14)
    w1.load(slot_ref(-2))
    w1.load(slot_ref(-4))
    w2.load(slot_ref(-2))
    a, b = out1.getvalue().splitlines()
    (c,) = out2.getvalue().splitlines()
    assert _offset(b) == _offset(a) + 2
    assert _offset(c) == _offset(a) + 4


def test_unallocated_and_unknown():
    fn = Fn(name="f")
    t = newtmp("x", Kind.W, fn)
    w, out = _writer(fn)
    w.load(t)
    w.load(R)
    assert out.getvalue().splitlines() == [
        f"\t; unallocated temp {TMP0}",
        "\t; unknown ref type -1",
    ]


def test_store_of_empty_ref_writes_nothing():
    w, out = _writer()
    w.store(R)
    assert out.getvalue() == ""


def test_alloc_slot_and_is_vreg():
    fn = Fn(name="f")
    t = newtmp("p", Kind.L, fn)
    u = newtmp("q", Kind.L, fn)
    w, _ = _writer(fn, alloc_offsets={t.val: 3})
    assert w.alloc_slot(t) == 3
    assert w.alloc_slot(u) is None
    assert w.alloc_slot(getcon(1, fn)) is None
    assert w.is_vreg(tmp_ref(Reg.R7))
    assert not w.is_vreg(t)


def test_lookup_of_unknown_symbol_raises():
    fn = Fn(name="f")
    ref = newcon(Con(ConKind.ADDR, sym=Sym(id=7)), fn)
    w, _ = _writer(fn)
    with pytest.raises(KeyError):
        w.load(ref)


def test_assign_slots_places_phis_first():
    fn = Fn(name="f")
    start = 2
    fn.slot = start
    t1 = newtmp("a", Kind.W, fn)
    t2 = newtmp("b", Kind.W, fn)
    t3 = newtmp("c", Kind.W, fn)
    b = Blk(name="start")
    b.phis.append(Phi(to=t1, args=[t2], blks=[b]))
    b.ins.append(Ins(Op.ADD, Kind.W, t3, [t2, getcon(1, fn)]))
    fn.blocks.append(b)
    total = assign_slots(fn)
    slots = [fn.tmps[t.val].slot for t in (t1, t2, t3)]
    assert slots[0] == start
    assert len(set(slots)) == 3
    assert all(s >= start for s in slots)
    assert total == start + 3
    assert fn.slot == start + 1


def test_assign_slots_keeps_existing():
    fn = Fn(name="f")
    t = newtmp("a", Kind.W, fn)
    fn.tmps[t.val].slot = 9
    b = Blk(name="s", jmp_arg=t)
    fn.blocks.append(b)
    assert assign_slots(fn) == 0
    assert fn.tmps[t.val].slot == 9
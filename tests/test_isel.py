from snesil.ir import R, Blk, Con, ConKind, Fn, Ins, Sym
from snesil.ops import Kind, Op
from snesil.util import getcon, newcon, newtmp
from snesil.w65816.isel import is_immediate, select


def test_is_immediate_accepts_sixteen_bit_range():
    fn = Fn()
    assert is_immediate(getcon(100, fn), fn) == 100
    assert is_immediate(getcon(-32768, fn), fn) == -32768
    assert is_immediate(getcon(65535, fn), fn) == 65535


def test_is_immediate_rejects_out_of_range_and_non_constants():
    fn = Fn()
    assert is_immediate(getcon(65536, fn), fn) is None
    assert is_immediate(getcon(-32769, fn), fn) is None
    addr = newcon(Con(ConKind.ADDR, Sym(id=5)), fn)
    assert is_immediate(addr, fn) is None
    t = newtmp("t", Kind.W, fn)
    assert is_immediate(t, fn) is None


def test_select_preserves_instructions():
    fn = Fn()
    a = newtmp("a", Kind.W, fn)
    b = newtmp("b", Kind.W, fn)
    blk = Blk(name="start", id=0)
    original = [
        Ins(Op.COPY, Kind.W, a, [getcon(3, fn), R]),
        Ins(Op.MUL, Kind.W, b, [a, a]),
    ]
    blk.ins = list(original)
    fn.blocks = [blk]
    select(fn)
    assert [(i.op, i.cls, i.to, i.arg) for i in blk.ins] == [
        (i.op, i.cls, i.to, i.arg) for i in original
    ]
    assert all(new is not old for new, old in zip(blk.ins, original))
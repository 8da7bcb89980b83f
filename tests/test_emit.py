import io

import pytest

from snesil.ir import R, TMP0, Blk, Con, ConKind, Fn, Ins, Phi, Tmp, con_ref, tmp_ref
from snesil.ops import Jmp, Op
from snesil.w65816 import emit
from snesil.w65816.abi import AllocTable
from snesil.w65816.operands import OperandWriter


def make_fn(slots):
    fn = Fn(name="f")
    for n, s in enumerate(slots):
        fn.tmps.append(Tmp(name=f"t{n}", slot=s))
    return fn


def t(i):
    return tmp_ref(TMP0 + i)


def writer(fn):
    return OperandWriter(fn, io.StringIO())


def out(w):
    return w.out.getvalue().splitlines()


def loaded(fn, r):
    w = writer(fn)
    w.load(r)
    return out(w)


def stored(fn, r):
    w = writer(fn)
    w.store(r)
    return out(w)


def op2(fn, m, r):
    w = writer(fn)
    w.op2(m, r)
    return out(w)


def add_con(fn, value):
    fn.cons.append(Con(ConKind.BITS, bits=value))
    return con_ref(len(fn.cons) - 1)


def test_compare_equal():
    fn = make_fn([0, 1, 2])
    w = writer(fn)
    emit.emit_compare(w, Ins(Op.CEQW, to=t(0), arg=[t(1), t(2)]))
    assert out(w) == (
        loaded(fn, t(1)) + op2(fn, "cmp", t(2))
        + ["\tbeq +", "\tlda.w #0", "\tbra ++", "+\tlda.w #1", "++"]
        + stored(fn, t(0))
    )


@pytest.mark.parametrize(
    "op, first, second, branch, values",
    [
        (Op.CSGTW, 2, 1, "bmi", ("0", "1")),
        (Op.CSLEL, 2, 1, "bmi", ("1", "0")),
        (Op.CULTW, 1, 2, "bcc", ("0", "1")),
        (Op.CUGEL, 1, 2, "bcc", ("1", "0")),
    ],
)
def test_compare_variants(op, first, second, branch, values):
    fn = make_fn([0, 1, 2])
    w = writer(fn)
    emit.emit_compare(w, Ins(op, to=t(0), arg=[t(1), t(2)]))
    lines = out(w)
    assert lines[:2] == loaded(fn, t(first)) + op2(fn, "cmp", t(second))
    assert lines[2] == f"\t{branch} +"
    assert lines[3] == f"\tlda.w #{values[0]}"
    assert lines[5] == f"+\tlda.w #{values[1]}"


def test_compare_rejects_float_comparison():
    fn = make_fn([0, 1, 2])
    with pytest.raises(ValueError):
        emit.emit_compare(writer(fn), Ins(Op.CEQS, to=t(0), arg=[t(1), t(2)]))


def test_emit_ins_dispatches_add():
    fn = make_fn([0, 1, 2])
    w = writer(fn)
    emit.emit_ins(w, Ins(Op.ADD, to=t(0), arg=[t(1), t(2)]))
    assert out(w) == loaded(fn, t(1)) + ["\tclc"] + op2(fn, "adc", t(2)) + stored(fn, t(0))


def test_emit_ins_shifts():
    fn = make_fn([0, 1])
    three = add_con(fn, 3)
    w = writer(fn)
    emit.emit_ins(w, Ins(Op.SHL, to=t(0), arg=[t(1), three]))
    assert out(w).count("\tasl a") == 3
    w = writer(fn)
    emit.emit_ins(w, Ins(Op.SAR, to=t(0), arg=[t(1), three]))
    assert out(w).count("\tlsr a") == 3


def test_emit_ins_unhandled():
    fn = make_fn([0, 1])
    w = writer(fn)
    emit.emit_ins(w, Ins(Op.LOADSH, to=t(0), arg=[t(1), R]))
    assert out(w) == [f"\t; unhandled op {int(Op.LOADSH)}"]


def phi_blocks(arg):
    src = Blk(name="a")
    dst = Blk(name="b", phis=[Phi(to=t(0), args=[arg], blks=[src])])
    return src, dst


def test_phi_move_constant():
    fn = make_fn([0])
    c = add_con(fn, 7)
    src, dst = phi_blocks(c)
    w = writer(fn)
    emit.emit_phi_moves(w, src, dst)
    assert out(w) == loaded(fn, c) + stored(fn, t(0))


def test_phi_move_between_slots():
    fn = make_fn([0, 1])
    src, dst = phi_blocks(t(1))
    w = writer(fn)
    emit.emit_phi_moves(w, src, dst)
    assert out(w) == loaded(fn, t(1)) + stored(fn, t(0))


def test_phi_move_same_slot_or_other_block_is_empty():
    fn = make_fn([0, 0])
    src, dst = phi_blocks(t(1))
    w = writer(fn)
    emit.emit_phi_moves(w, src, dst)
    emit.emit_phi_moves(w, Blk(name="z"), dst)
    emit.emit_phi_moves(w, src, None)
    assert out(w) == []


def test_jump_and_return():
    fn = make_fn([0])
    target = Blk(name="next")
    w = writer(fn)
    emit.emit_jump(w, Blk(name="b", jmp_type=Jmp.JMP, s1=target))
    assert out(w) == ["\tjmp @next"]
    w = writer(fn)
    emit.emit_jump(w, Blk(name="b", jmp_type=Jmp.RETW, jmp_arg=t(0)))
    assert out(w) == loaded(fn, t(0))
    w = writer(fn)
    emit.emit_jump(w, Blk(name="b", jmp_type=Jmp.RET0))
    assert out(w) == []


@pytest.mark.parametrize("jmp", [Jmp.JNZ, Jmp.JFIEQ])
def test_conditional_jump(jmp):
    fn = make_fn([0])
    b = Blk(name="b", jmp_type=jmp, jmp_arg=t(0), s1=Blk(name="yes"), s2=Blk(name="no"))
    w = writer(fn)
    emit.emit_jump(w, b)
    assert out(w) == loaded(fn, t(0)) + ["\tbne +", "\tjmp @no", "+", "\tjmp @yes"]


def build_fn():
    fn = make_fn([-1, -1])
    one = add_con(fn, 1)
    b = Blk(
        name="start",
        ins=[Ins(Op.ADD, to=t(0), arg=[one, one]), Ins(Op.COPY, to=t(1), arg=[t(0), R])],
        jmp_type=Jmp.RETW,
        jmp_arg=t(1),
    )
    fn.blocks = [b]
    return fn


def test_emit_fn_layout():
    fn = build_fn()
    buf = io.StringIO()
    emit.emit_fn(fn, None, None, buf)
    lines = buf.getvalue().splitlines()
    assert lines[0] == ""
    assert lines[1].startswith("; Function: f (")
    assert '.SECTION ".text.f" SUPERFREE' in lines
    assert lines.index("f:") < lines.index("\tphp") < lines.index("@start:")
    assert lines[-3:] == ["\tplp", "\trtl", ".ENDS"]
    assert sorted(tmp.slot for tmp in fn.tmps[TMP0:]) == [0, 1]
    sub = [ln for ln in lines if ln.startswith("\tsbc.w #")]
    add = [ln for ln in lines if ln.startswith("\tadc.w #")]
    assert len(sub) == 1
    assert add[-1].split("#")[1] == sub[0].split("#")[1]


def test_emit_fn_places_temps_after_allocations():
    fn = build_fn()
    buf = io.StringIO()
    emit.emit_fn(fn, AllocTable(sizes={TMP0 + 5: 2}, total_slots=2), None, buf)
    assert all(tmp.slot >= 2 for tmp in fn.tmps[TMP0:])
    assert "alloc_slots=2" in buf.getvalue()


def test_emit_fin():
    buf = io.StringIO()
    emit.emit_fin(buf)
    assert buf.getvalue() == "\n; End of generated code\n"
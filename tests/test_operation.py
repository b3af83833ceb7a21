import math

import pytest

from exprdag import ArityError, Associativity, Fix, OperationKind

ARITIES = {
    OperationKind.Addition: 2,
    OperationKind.Subtraction: 2,
    OperationKind.Multiplication: 2,
    OperationKind.Division: 2,
    OperationKind.Negation: 1,
    OperationKind.Pow: 2,
    OperationKind.Exp: 1,
    OperationKind.Sin: 1,
    OperationKind.Cos: 1,
    OperationKind.Tan: 1,
    OperationKind.Ln: 1,
}


def test_every_kind_has_an_arity():
    assert {kind: kind.arity for kind in OperationKind} == ARITIES


def test_opcodes_are_unique():
    assert sorted(kind.opcode for kind in OperationKind) == list(range(1, 12))


@pytest.mark.parametrize("kind", list(OperationKind))
def test_eval_with_exact_arity(kind):
    result = kind.eval([0.5] * kind.arity)
    assert isinstance(result, float)


@pytest.mark.parametrize("kind", list(OperationKind))
@pytest.mark.parametrize("count", [0, 1, 2, 3])
def test_eval_with_wrong_arity_fails(kind, count):
    if count == kind.arity:
        return
    with pytest.raises(ArityError):
        kind.eval([1.0] * count)


def test_eval_values():
    assert OperationKind.Addition.eval([1.0, 2.0]) == 3.0
    assert OperationKind.Subtraction.eval([1.0, 2.0]) == -1.0
    assert OperationKind.Multiplication.eval([3.0, 2.0]) == 6.0
    assert OperationKind.Division.eval([3.0, 2.0]) == 1.5
    assert OperationKind.Negation.eval([3.0]) == -3.0
    assert OperationKind.Pow.eval([2.0, 10.0]) == 1024.0
    assert OperationKind.Exp.eval([0.0]) == 1.0
    assert OperationKind.Sin.eval([0.0]) == 0.0
    assert OperationKind.Cos.eval([0.0]) == 1.0
    assert OperationKind.Tan.eval([0.0]) == 0.0
    assert OperationKind.Ln.eval([math.e]) == pytest.approx(1.0)


def test_eval_follows_ieee_semantics():
    assert OperationKind.Ln.eval([0.0]) == -math.inf
    assert OperationKind.Division.eval([1.0, 0.0]) == math.inf
    assert math.isnan(OperationKind.Pow.eval([-1.0, 0.5]))
    assert math.isnan(OperationKind.Ln.eval([-1.0]))


def test_arity_error_is_descriptive():
    with pytest.raises(ArityError, match="Pow"):
        OperationKind.Pow.eval([1.0])


def test_fix():
    assert OperationKind.Negation.is_prefix
    assert not OperationKind.Negation.is_infix
    for kind in (OperationKind.Addition, OperationKind.Subtraction, OperationKind.Multiplication,
                 OperationKind.Division, OperationKind.Pow):
        assert kind.is_infix
        assert kind.fix == Fix.Infix
    for kind in (OperationKind.Exp, OperationKind.Sin, OperationKind.Cos, OperationKind.Tan, OperationKind.Ln):
        assert kind.fix == Fix.Function


def test_associativity():
    assert OperationKind.Pow.associativity == Associativity.Right
    assert OperationKind.Subtraction.associativity == Associativity.Left
    assert OperationKind.Division.associativity == Associativity.Left
    assert OperationKind.Sin.associativity == Associativity.Neither


def test_precedence_order():
    add, sub = OperationKind.Addition, OperationKind.Subtraction
    mul, div = OperationKind.Multiplication, OperationKind.Division
    assert add.compare(sub) == 0
    assert mul.compare(div) == 0
    assert add < mul < OperationKind.Pow
    assert sub < div
    assert OperationKind.Pow.compare(OperationKind.Negation) == 0
    assert OperationKind.Ln >= OperationKind.Exp
    assert mul.compare(add) == 1
    assert add.compare(OperationKind.Cos) == -1


def test_precedence_order_is_total():
    kinds = list(OperationKind)
    for a in kinds:
        for b in kinds:
            assert a.compare(b) == -b.compare(a)
            for c in kinds:
                if a <= b and b <= c:
                    assert a <= c


def test_display():
    assert [str(k) for k in OperationKind] == ["+", "-", "*", "/", "-", "^", "exp", "sin", "cos", "tan", "ln"]

import random
import re

import pytest

from exprdag import (
    ArityError,
    Expression,
    Operation,
    OperationKind,
    e,
    i,
    inf,
    pi,
    rational,
    render,
    reset_exprdag,
    variable,
)
from exprdag.operation import Associativity, Fix


@pytest.fixture
def reset():
    yield
    reset_exprdag()


def test_addition(reset):
    assert str(variable("x") + variable("y")) == "x+y"


def test_sum_times_variable(reset):
    assert str((variable("x") + variable("y")) * variable("z")) == "(x+y)*z"


def test_power_is_right_associative(reset):
    x, y, z = variable("x"), variable("y"), variable("z")
    assert str(x.pow(y).pow(z)) == "(x^y)^z"
    assert str(x.pow(y.pow(z))) == "x^y^z"


def test_left_associative_operators(reset):
    x, y, z = variable("x"), variable("y"), variable("z")
    assert str(x - y - z) == "x-y-z"
    assert str(x - (y - z)) == "x-(y-z)"
    assert str(x / y / z) == "x/y/z"
    assert str(x / (y / z)) == "x/(y/z)"
    assert str(x / (y * z)) == "x/(y*z)"
    assert str(x * y / z) == "x*y/z"
    assert str(x + (y + z)) == "x+(y+z)"


def test_tighter_children_are_bare(reset):
    x, y, z = variable("x"), variable("y"), variable("z")
    assert str(x * y + z) == "x*y+z"
    assert str(x + y * z) == "x+y*z"
    assert str(x * y.pow(z)) == "x*y^z"
    assert str(x + y.sin()) == "x+sin(y)"


def test_negation(reset):
    x, y = variable("x"), variable("y")
    assert str(-x) == "-x"
    assert str(-(x + y)) == "-(x+y)"
    assert str(-(x * y)) == "-(x*y)"
    assert str(-(-x)) == "-(-x)"
    assert str(-x.pow(y)) == "-(x^y)"
    assert str(-x * y) == "-x*y"
    assert str((-x).pow(y)) == "(-x)^y"
    assert str(x.pow(-y)) == "x^-y"


def test_functions(reset):
    x, y = variable("x"), variable("y")
    assert str(x.sin()) == "sin(x)"
    assert str((x + y).ln().exp()) == "exp(ln(x+y))"
    assert str(x.tan().cos()) == "cos(tan(x))"
    assert str(x.sin().pow(y)) == "(sin(x))^y"
    assert str(-x.sin()) == "-(sin(x))"


def test_leaves(reset):
    assert str(rational(1, 2)) == "1/2"
    assert str(pi() * e() + i() - inf()) == "π*e+i-∞"
    assert str(variable("x") * 2) == "x*2/1"


def test_rational_leaves_render_bare_inside_operations(reset):
    # A rational is a leaf, so it never gets parentheses of its own even
    # though its text contains a division sign.
    x = variable("x")
    assert str(rational(1, 2) ** x) == "1/2^x"
    assert str(x / rational(1, 2)) == "x/1/2"
    assert str(x ** rational(1, 2)) == "x^1/2"


def test_render_function_matches_str(reset):
    expr = (variable("x") + variable("y")) * variable("z")
    assert render(expr) == str(expr)


def test_corrupted_node_fails_loudly(reset):
    x, y = variable("x"), variable("y")
    op = Operation(OperationKind.Addition, (x, y))
    object.__setattr__(op, "children", (x,))
    with pytest.raises(ArityError):
        str(Expression(op))


# A small precedence-climbing parser over the rendered grammar, used to check
# that rendering always reproduces the same tree.

_TOKEN = re.compile(r"\s*([A-Za-z]+|[-+*/^(),])")
_INFIX = {
    "+": OperationKind.Addition,
    "-": OperationKind.Subtraction,
    "*": OperationKind.Multiplication,
    "/": OperationKind.Division,
    "^": OperationKind.Pow,
}
_FUNCTIONS = {
    kind.symbol: kind
    for kind in OperationKind
    if kind.fix == Fix.Function
}


def _tokenize(text):
    tokens = []
    pos = 0
    while pos < len(text):
        m = _TOKEN.match(text, pos)
        assert m is not None, f"Cannot tokenize {text[pos:]!r}"
        tokens.append(m.group(1))
        pos = m.end()
    return tokens


class _Parser:
    def __init__(self, text):
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self):
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, expected=None):
        tok = self.peek()
        if expected is not None:
            assert tok == expected, f"Expected {expected!r}, got {tok!r}"
        self.pos += 1
        return tok

    def parse(self):
        expr = self.expr(0)
        assert self.peek() is None
        return expr

    def expr(self, min_prec):
        lhs = self.unary()
        while self.peek() in _INFIX and _INFIX[self.peek()].precedence >= min_prec:
            kind = _INFIX[self.take()]
            next_min = kind.precedence + 1 if kind.associativity == Associativity.Left else kind.precedence
            rhs = self.expr(next_min)
            lhs = Expression.operation(kind, lhs, rhs)
        return lhs

    def unary(self):
        if self.peek() == "-":
            self.take()
            return Expression.operation(OperationKind.Negation, self.primary())
        return self.primary()

    def primary(self):
        tok = self.take()
        if tok == "(":
            inner = self.expr(0)
            self.take(")")
            return inner
        if tok in _FUNCTIONS:
            self.take("(")
            arg = self.expr(0)
            self.take(")")
            return Expression.operation(_FUNCTIONS[tok], arg)
        return variable(tok)


def _random_expression(rng, depth):
    if depth == 0 or rng.random() < 0.2:
        return variable(rng.choice("xyz"))
    kind = rng.choice(list(OperationKind))
    children = [_random_expression(rng, depth - 1) for _ in range(kind.arity)]
    return Expression.operation(kind, *children)


def test_rendering_round_trips_through_a_parser(reset):
    rng = random.Random(1234)
    for _ in range(500):
        expr = _random_expression(rng, 5)
        text = str(expr)
        parsed = _Parser(text).parse()
        assert parsed.structurally_equal(expr), text
        assert parsed == expr


def test_no_parentheses_around_leaves(reset):
    rng = random.Random(99)
    for _ in range(200):
        text = str(_random_expression(rng, 4))
        for m in re.finditer(r"\([xyz]\)", text):
            # only a function call may wrap a bare leaf
            assert m.start() > 0 and text[m.start() - 1].isalpha(), text

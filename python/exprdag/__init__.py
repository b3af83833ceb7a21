from .value import (
    E,
    EULER,
    I,
    IMAGINARY,
    INFINITY,
    Inf,
    PI,
    Pi,
    Rational,
    Value,
    Variable,
    g_variable_registry,
)
from .operation import ArityError, Associativity, Fix, OperationKind
from .expression import (
    Expression,
    Operation,
    add,
    constant,
    cos,
    div,
    e,
    exp,
    i,
    inf,
    ln,
    mul,
    neg,
    pi,
    power,
    rational,
    sin,
    sub,
    tan,
    variable,
)
from .render import render
from .egraph import (
    EclassID,
    Enode,
    EquivalenceClass,
    EquivalenceGraph,
    Rule,
    UnionFind,
    ast_depth,
    ast_size,
)


def reset_exprdag():
    g_variable_registry.clear()


def exprs_equivalent(
    a : Expression,
    b : Expression,
    rules=(),
    max_iters : int = 10,
) -> bool:
    egraph = EquivalenceGraph(a, rules)
    return egraph.incrementally_check_equivalence(a, b, max_iters)

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, TypeVar

from .hashing import hash_leaf, hash_operation
from .operation import OperationKind
from .value import (
    EULER,
    IMAGINARY,
    INFINITY,
    PI,
    Rational,
    Value,
    Variable,
    evaluate_value,
    register_variable,
)

T = TypeVar("T")


@dataclass(frozen=True, eq=False)
class Operation:
    kind : OperationKind
    children : tuple[Expression, ...]

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))
        for child in self.children:
            if not isinstance(child, Expression):
                raise TypeError(f"Operation children must be expressions, got {child!r}")
        self.kind.check_arity(len(self.children), self.children)


class Expression:
    """Immutable handle to a node of the expression DAG.

    A handle wraps either an ``Operation`` or a leaf ``Value``. Building a new
    expression from existing ones shares them rather than copying, so a
    subgraph lives as long as its longest-lived parent.

    Equality and hashing go through the structural hash, which is computed on
    first use and cached on the handle. See ``exprdag.hashing`` for what that
    equality does and does not guarantee.
    """

    __slots__ = ("_node", "_hash")

    def __init__(self, node : Operation | Value):
        if not (isinstance(node, Operation) or isinstance(node, Value)):
            raise TypeError(f"Expected an Operation or a Value, got {node!r}")
        object.__setattr__(self, "_node", node)
        object.__setattr__(self, "_hash", None)

    @classmethod
    def leaf(cls, value : Value) -> Expression:
        return cls(value)

    @classmethod
    def operation(cls, kind : OperationKind, *children : Expression) -> Expression:
        return cls(Operation(kind, children))

    def __setattr__(self, name, value):
        raise AttributeError(f"Expression is immutable, cannot set {name}")

    def __delattr__(self, name):
        raise AttributeError(f"Expression is immutable, cannot delete {name}")

    @property
    def node(self) -> Operation | Value:
        return self._node

    @property
    def is_leaf(self) -> bool:
        return not isinstance(self._node, Operation)

    @property
    def is_operation(self) -> bool:
        return isinstance(self._node, Operation)

    @property
    def kind(self) -> OperationKind | None:
        return self._node.kind if self.is_operation else None

    @property
    def children(self) -> tuple[Expression, ...]:
        return self._node.children if self.is_operation else ()

    @property
    def value(self) -> Value | None:
        return None if self.is_operation else self._node

    def _compute_hash(self) -> int:
        if self.is_operation:
            return hash_operation(self._node)
        return hash_leaf(self._node)

    def _uncached_postorder(self) -> Iterator[Expression]:
        # Stops at nodes that already carry a hash
        seen = set()
        stack = [(self, False)]
        while stack:
            expr, expanded = stack.pop()
            if id(expr) in seen or expr._hash is not None:
                continue
            if expanded or expr.is_leaf:
                seen.add(id(expr))
                yield expr
            else:
                stack.append((expr, True))
                for child in reversed(expr.children):
                    stack.append((child, False))

    def hash(self) -> int:
        """The 64-bit structural hash, computed at most once per handle."""
        if self._hash is None:
            for expr in self._uncached_postorder():
                object.__setattr__(expr, "_hash", expr._compute_hash())
        return self._hash

    def __hash__(self):
        return self.hash()

    def __eq__(self, other):
        if not isinstance(other, Expression):
            return NotImplemented
        return self is other or self.hash() == other.hash()

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def structurally_equal(self, other : Expression) -> bool:
        """Exact structural comparison, immune to hash collisions."""
        stack = [(self, other)]
        while stack:
            a, b = stack.pop()
            if a is b:
                continue
            if a.is_leaf or b.is_leaf:
                if a.value != b.value:
                    return False
                continue
            if a.kind != b.kind or len(a.children) != len(b.children):
                return False
            stack.extend(zip(a.children, b.children))
        return True

    def walk(self) -> Iterator[Expression]:
        """Post-order traversal visiting every distinct node handle once."""
        seen = set()
        stack = [(self, False)]
        while stack:
            expr, expanded = stack.pop()
            if id(expr) in seen:
                continue
            if expanded or expr.is_leaf:
                seen.add(id(expr))
                yield expr
            else:
                stack.append((expr, True))
                for child in reversed(expr.children):
                    stack.append((child, False))

    def fold(
        self,
        leaf_fn : Callable[[Value], T],
        op_fn : Callable[[OperationKind, list[T]], T],
    ) -> T:
        """Bottom-up fold. Shared nodes are folded once."""
        results : dict[int, Any] = {}
        for expr in self.walk():
            if expr.is_leaf:
                results[id(expr)] = leaf_fn(expr.value)
            else:
                args = [results[id(child)] for child in expr.children]
                results[id(expr)] = op_fn(expr.kind, args)
        return results[id(self)]

    def variables(self) -> set[Value]:
        """Every leaf value referenced by the expression, constants included."""
        return {expr.value for expr in self.walk() if expr.is_leaf}

    def free_variables(self) -> set[Variable]:
        return {v for v in self.variables() if isinstance(v, Variable)}

    def node_count(self) -> int:
        return sum(1 for _ in self.walk())

    def depth(self) -> int:
        return self.fold(lambda _: 1, lambda _, child_depths: 1 + max(child_depths))

    def evaluate(self, bindings : Mapping[str, float] | None = None, /, **kwargs : float) -> float:
        bindings = {**(bindings or {}), **kwargs}
        return self.fold(
            lambda value: evaluate_value(value, bindings),
            lambda kind, args: kind.eval(args),
        )

    def __str__(self):
        from .render import render
        return render(self)

    def __repr__(self):
        return f"Expression({self})"

    # Builders. None of these evaluate or simplify anything.

    def __add__(self, other):
        return _binary_op_helper(self, other, OperationKind.Addition)

    def __sub__(self, other):
        return _binary_op_helper(self, other, OperationKind.Subtraction)

    def __mul__(self, other):
        return _binary_op_helper(self, other, OperationKind.Multiplication)

    def __truediv__(self, other):
        return _binary_op_helper(self, other, OperationKind.Division)

    def __pow__(self, other):
        return _binary_op_helper(self, other, OperationKind.Pow)

    def __radd__(self, other):
        return _binary_op_helper(other, self, OperationKind.Addition)

    def __rsub__(self, other):
        return _binary_op_helper(other, self, OperationKind.Subtraction)

    def __rmul__(self, other):
        return _binary_op_helper(other, self, OperationKind.Multiplication)

    def __rtruediv__(self, other):
        return _binary_op_helper(other, self, OperationKind.Division)

    def __rpow__(self, other):
        return _binary_op_helper(other, self, OperationKind.Pow)

    def __neg__(self):
        return Expression.operation(OperationKind.Negation, self)

    def neg(self) -> Expression:
        return -self

    def pow(self, other) -> Expression:
        result = self.__pow__(other)
        if result is NotImplemented:
            raise TypeError(f"Cannot raise an expression to {other!r}")
        return result

    def exp(self) -> Expression:
        return Expression.operation(OperationKind.Exp, self)

    def sin(self) -> Expression:
        return Expression.operation(OperationKind.Sin, self)

    def cos(self) -> Expression:
        return Expression.operation(OperationKind.Cos, self)

    def tan(self) -> Expression:
        return Expression.operation(OperationKind.Tan, self)

    def ln(self) -> Expression:
        return Expression.operation(OperationKind.Ln, self)


def _wrap(x) -> Expression | None:
    if isinstance(x, Expression):
        return x
    if isinstance(x, int) and not isinstance(x, bool):
        if x < 0:
            return -rational(-x)
        return rational(x)
    return None


def _binary_op_helper(lhs, rhs, kind : OperationKind):
    lhs, rhs = _wrap(lhs), _wrap(rhs)
    if lhs is None or rhs is None:
        return NotImplemented
    return Expression.operation(kind, lhs, rhs)


def _binary(lhs, rhs, kind : OperationKind) -> Expression:
    result = _binary_op_helper(lhs, rhs, kind)
    if result is NotImplemented:
        raise TypeError(f"Unsupported operands for {kind.name}: {lhs!r}, {rhs!r}")
    return result


def _unary(x, kind : OperationKind) -> Expression:
    arg = _wrap(x)
    if arg is None:
        raise TypeError(f"Unsupported operand for {kind.name}: {x!r}")
    return Expression.operation(kind, arg)


def add(a, b) -> Expression:
    return _binary(a, b, OperationKind.Addition)


def sub(a, b) -> Expression:
    return _binary(a, b, OperationKind.Subtraction)


def mul(a, b) -> Expression:
    return _binary(a, b, OperationKind.Multiplication)


def div(a, b) -> Expression:
    return _binary(a, b, OperationKind.Division)


def power(a, b) -> Expression:
    return _binary(a, b, OperationKind.Pow)


def neg(x) -> Expression:
    return _unary(x, OperationKind.Negation)


def exp(x) -> Expression:
    return _unary(x, OperationKind.Exp)


def sin(x) -> Expression:
    return _unary(x, OperationKind.Sin)


def cos(x) -> Expression:
    return _unary(x, OperationKind.Cos)


def tan(x) -> Expression:
    return _unary(x, OperationKind.Tan)


def ln(x) -> Expression:
    return _unary(x, OperationKind.Ln)


def variable(name : str) -> Expression:
    return Expression.leaf(register_variable(name))


def rational(numerator : int, denominator : int = 1) -> Expression:
    return Expression.leaf(Rational(numerator, denominator))


def constant(value : Value) -> Expression:
    return Expression.leaf(value)


def pi() -> Expression:
    return Expression.leaf(PI)


def e() -> Expression:
    return Expression.leaf(EULER)


def i() -> Expression:
    return Expression.leaf(IMAGINARY)


def inf() -> Expression:
    return Expression.leaf(INFINITY)

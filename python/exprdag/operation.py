from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

import numpy as np


class ArityError(ValueError):
    """Raised when an operator is given a different number of arguments than it takes.

    This always indicates a bug in whatever built the node or called the
    evaluator, never bad input data.
    """


class Fix(Enum):
    Infix = "infix"
    Prefix = "prefix"
    Function = "function"


class Associativity(Enum):
    Left = "left"
    Right = "right"
    Neither = "neither"


@dataclass(frozen=True)
class OperationProperties:
    symbol : str
    opcode : int
    arity : int
    fix : Fix
    associativity : Associativity
    precedence : int
    eval_fn : Callable[..., np.float64]


ADDITIVE = 1
MULTIPLICATIVE = 2
TIGHTEST = 3


class OperationKind(Enum):
    Addition = OperationProperties("+", 1, 2, Fix.Infix, Associativity.Left, ADDITIVE, np.add)
    Subtraction = OperationProperties("-", 2, 2, Fix.Infix, Associativity.Left, ADDITIVE, np.subtract)
    Multiplication = OperationProperties("*", 3, 2, Fix.Infix, Associativity.Left, MULTIPLICATIVE, np.multiply)
    Division = OperationProperties("/", 4, 2, Fix.Infix, Associativity.Left, MULTIPLICATIVE, np.divide)
    Negation = OperationProperties("-", 5, 1, Fix.Prefix, Associativity.Neither, TIGHTEST, np.negative)
    Pow = OperationProperties("^", 6, 2, Fix.Infix, Associativity.Right, TIGHTEST, np.power)
    Exp = OperationProperties("exp", 7, 1, Fix.Function, Associativity.Neither, TIGHTEST, np.exp)
    Sin = OperationProperties("sin", 8, 1, Fix.Function, Associativity.Neither, TIGHTEST, np.sin)
    Cos = OperationProperties("cos", 9, 1, Fix.Function, Associativity.Neither, TIGHTEST, np.cos)
    Tan = OperationProperties("tan", 10, 1, Fix.Function, Associativity.Neither, TIGHTEST, np.tan)
    Ln = OperationProperties("ln", 11, 1, Fix.Function, Associativity.Neither, TIGHTEST, np.log)

    @property
    def symbol(self) -> str:
        return self.value.symbol

    @property
    def opcode(self) -> int:
        return self.value.opcode

    @property
    def arity(self) -> int:
        return self.value.arity

    @property
    def fix(self) -> Fix:
        return self.value.fix

    @property
    def is_infix(self) -> bool:
        return self.value.fix == Fix.Infix

    @property
    def is_prefix(self) -> bool:
        return self.value.fix == Fix.Prefix

    @property
    def associativity(self) -> Associativity:
        return self.value.associativity

    @property
    def precedence(self) -> int:
        return self.value.precedence

    @property
    def eval_fn(self) -> Callable[..., np.float64]:
        return self.value.eval_fn

    def compare(self, other : "OperationKind") -> int:
        """Compare binding strength: -1 if self binds looser than other, 1 if tighter."""
        return (self.precedence > other.precedence) - (self.precedence < other.precedence)

    def __lt__(self, other):
        if not isinstance(other, OperationKind):
            return NotImplemented
        return self.precedence < other.precedence

    def __le__(self, other):
        if not isinstance(other, OperationKind):
            return NotImplemented
        return self.precedence <= other.precedence

    def __gt__(self, other):
        if not isinstance(other, OperationKind):
            return NotImplemented
        return self.precedence > other.precedence

    def __ge__(self, other):
        if not isinstance(other, OperationKind):
            return NotImplemented
        return self.precedence >= other.precedence

    def check_arity(self, count : int, args=None):
        if count != self.arity:
            detail = f" with arguments {list(args)}" if args is not None else ""
            raise ArityError(
                f"{self.name} ({self.symbol}) takes {self.arity} argument(s) but was given {count}{detail}"
            )

    def eval(self, args : Sequence[float]) -> float:
        self.check_arity(len(args), args)
        with np.errstate(all="ignore"):
            result = self.eval_fn(*(np.float64(a) for a in args))
        return float(result)

    def __str__(self):
        return self.symbol

    def __repr__(self):
        return f"OperationKind.{self.name}"

import math
import sys

from dataclasses import dataclass

U64_MAX = 2**64 - 1


@dataclass(frozen=True, repr=False)
class Rational:
    numerator : int
    denominator : int

    def __post_init__(self):
        if self.denominator == 0:
            raise ValueError(f"Rational {self.numerator}/0 has a zero denominator")
        for part in (self.numerator, self.denominator):
            if not 0 <= part <= U64_MAX:
                raise ValueError(f"Rational component {part} does not fit in an unsigned 64-bit integer")

    def __str__(self):
        return f"{self.numerator}/{self.denominator}"

    __repr__ = __str__


@dataclass(frozen=True, repr=False)
class Pi:
    def __str__(self):
        return "π"

    __repr__ = __str__


@dataclass(frozen=True, repr=False)
class E:
    def __str__(self):
        return "e"

    __repr__ = __str__


@dataclass(frozen=True, repr=False)
class I:
    def __str__(self):
        return "i"

    __repr__ = __str__


@dataclass(frozen=True, repr=False)
class Inf:
    def __str__(self):
        return "∞"

    __repr__ = __str__


@dataclass(frozen=True, repr=False)
class Variable:
    name : str

    def __post_init__(self):
        object.__setattr__(self, "name", sys.intern(self.name))

    def __str__(self):
        return self.name

    __repr__ = __str__


Value = Rational | Pi | E | I | Inf | Variable

PI = Pi()
EULER = E()
IMAGINARY = I()
INFINITY = Inf()



def discriminant(value : Value) -> int:
    match value:
        case Rational():
            return 0
        case Pi():
            return 1
        case E():
            return 2
        case I():
            return 3
        case Inf():
            return 4
        case Variable():
            return 5
    raise TypeError(f"Not a leaf value: {value!r}")


def evaluate_value(value : Value, bindings : dict[str, float]) -> float:
    match value:
        case Rational(num, den):
            return num / den
        case Pi():
            return math.pi
        case E():
            return math.e
        case Inf():
            return math.inf
        case I():
            raise ValueError("The imaginary unit has no real value")
        case Variable(name):
            if name not in bindings:
                raise KeyError(f"No binding for variable {name}")
            return float(bindings[name])
    raise TypeError(f"Not a leaf value: {value!r}")


g_variable_registry : dict[str, Variable] = {}


def register_variable(name : str) -> Variable:
    if name not in g_variable_registry:
        g_variable_registry[name] = Variable(name)
    return g_variable_registry[name]

from typing import Any, Mapping

import numpy as np

from ..expression import Expression
from ..operation import OperationKind
from ..value import E, I, Inf, Pi, Rational, Value, Variable


def _leaf_array(value : Value, bindings : dict) -> np.ndarray | complex | float:
    match value:
        case Rational(num, den):
            return np.float64(num) / np.float64(den)
        case Pi():
            return np.pi
        case E():
            return np.e
        case I():
            return 1j
        case Inf():
            return np.inf
        case Variable(name):
            if name not in bindings:
                raise KeyError(f"No binding for variable {name}")
            return np.asarray(bindings[name])


def _apply(kind : OperationKind, args : list) -> np.ndarray:
    match kind:
        case OperationKind.Addition:
            return np.add(*args)
        case OperationKind.Subtraction:
            return np.subtract(*args)
        case OperationKind.Multiplication:
            return np.multiply(*args)
        case OperationKind.Division:
            return np.divide(*args)
        case OperationKind.Negation:
            return np.negative(*args)
        case OperationKind.Pow:
            return np.power(*args)
        case OperationKind.Exp:
            return np.exp(*args)
        case OperationKind.Sin:
            return np.sin(*args)
        case OperationKind.Cos:
            return np.cos(*args)
        case OperationKind.Tan:
            return np.tan(*args)
        case OperationKind.Ln:
            return np.log(*args)
    raise ValueError(f"Unknown op {kind}")


def evaluate(expr : Expression, bindings : Mapping[str, Any] | None = None, /, **kwargs) -> np.ndarray:
    """Evaluate elementwise over numpy arrays bound to the expression's variables.

    Bindings come from the ``bindings`` mapping and from keyword arguments,
    keywords winning on conflict.

    Results follow IEEE semantics (``ln(0) = -inf``, ``1/0 = inf``) and are
    complex when the expression mentions ``i``.
    """
    bindings = {**(bindings or {}), **kwargs}
    with np.errstate(all="ignore"):
        return expr.fold(
            lambda value: _leaf_array(value, bindings),
            _apply,
        )


def sample(
    expr : Expression,
    var : str | Expression,
    start : float,
    stop : float,
    bindings : Mapping[str, Any] | None = None,
    /,
    *,
    num : int = 100,
    **kwargs,
) -> tuple[np.ndarray, np.ndarray]:
    """Sample ``expr`` at ``num`` evenly spaced points of one variable, for plotting.

    Other variables are bound as in ``evaluate``. A variable whose name
    clashes with a keyword option such as ``num`` is bound through the
    ``bindings`` mapping.
    """
    bindings = {**(bindings or {}), **kwargs}
    if isinstance(var, Expression):
        if not isinstance(var.value, Variable):
            raise ValueError(f"Can only sample over a variable, got {var}")
        var = var.value.name
    xs = np.linspace(start, stop, num)
    ys = evaluate(expr, {**bindings, var: xs})
    return xs, np.broadcast_to(ys, xs.shape)

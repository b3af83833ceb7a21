from typing import Any, Mapping

import jax.numpy as jnp

from ..expression import Expression
from ..operation import OperationKind
from ..value import E, I, Inf, Pi, Rational, Value, Variable


def _leaf_array(value : Value, bindings : dict):
    match value:
        case Rational(num, den):
            return jnp.asarray(num / den)
        case Pi():
            return jnp.asarray(jnp.pi)
        case E():
            return jnp.asarray(jnp.e)
        case I():
            return jnp.asarray(1j)
        case Inf():
            return jnp.asarray(jnp.inf)
        case Variable(name):
            if name not in bindings:
                raise KeyError(f"No binding for variable {name}")
            return jnp.asarray(bindings[name])


def _apply(kind : OperationKind, args : list):
    match kind:
        case OperationKind.Addition:
            return jnp.add(*args)
        case OperationKind.Subtraction:
            return jnp.subtract(*args)
        case OperationKind.Multiplication:
            return jnp.multiply(*args)
        case OperationKind.Division:
            return jnp.divide(*args)
        case OperationKind.Negation:
            return jnp.negative(*args)
        case OperationKind.Pow:
            return jnp.power(*args)
        case OperationKind.Exp:
            return jnp.exp(*args)
        case OperationKind.Sin:
            return jnp.sin(*args)
        case OperationKind.Cos:
            return jnp.cos(*args)
        case OperationKind.Tan:
            return jnp.tan(*args)
        case OperationKind.Ln:
            return jnp.log(*args)
    raise ValueError(f"Unknown op {kind}")


def evaluate(expr : Expression, bindings : Mapping[str, Any] | None = None, /, **kwargs):
    """Evaluate with jax arrays. Traceable, so it composes with ``jax.jit`` and ``jax.grad``."""
    bindings = {**(bindings or {}), **kwargs}
    return expr.fold(
        lambda value: _leaf_array(value, bindings),
        _apply,
    )

import math

from typing import Any, Mapping

import torch

from ..expression import Expression
from ..operation import OperationKind
from ..value import E, I, Inf, Pi, Rational, Value, Variable


def _leaf_tensor(value : Value, bindings : dict, dtype : torch.dtype) -> torch.Tensor:
    match value:
        case Rational(num, den):
            return torch.tensor(num / den, dtype=dtype)
        case Pi():
            return torch.tensor(math.pi, dtype=dtype)
        case E():
            return torch.tensor(math.e, dtype=dtype)
        case I():
            return torch.tensor(1j, dtype=torch.complex128 if dtype == torch.float64 else torch.complex64)
        case Inf():
            return torch.tensor(math.inf, dtype=dtype)
        case Variable(name):
            if name not in bindings:
                raise KeyError(f"No binding for variable {name}")
            x = bindings[name]
            return x if torch.is_tensor(x) else torch.as_tensor(x, dtype=dtype)


def _apply(kind : OperationKind, args : list[torch.Tensor]) -> torch.Tensor:
    match kind:
        case OperationKind.Addition:
            return args[0] + args[1]
        case OperationKind.Subtraction:
            return args[0] - args[1]
        case OperationKind.Multiplication:
            return args[0] * args[1]
        case OperationKind.Division:
            return args[0] / args[1]
        case OperationKind.Negation:
            return -args[0]
        case OperationKind.Pow:
            return torch.pow(*args)
        case OperationKind.Exp:
            return torch.exp(*args)
        case OperationKind.Sin:
            return torch.sin(*args)
        case OperationKind.Cos:
            return torch.cos(*args)
        case OperationKind.Tan:
            return torch.tan(*args)
        case OperationKind.Ln:
            return torch.log(*args)
    raise ValueError(f"Unknown op {kind}")


def evaluate(
    expr : Expression,
    bindings : Mapping[str, Any] | None = None,
    /,
    *,
    dtype : torch.dtype = torch.float32,
    **kwargs,
) -> torch.Tensor:
    """Evaluate with torch tensors. Gradients flow through bound tensors.

    A variable named ``dtype`` is bound through the ``bindings`` mapping.
    """
    bindings = {**(bindings or {}), **kwargs}
    return expr.fold(
        lambda value: _leaf_tensor(value, bindings, dtype),
        _apply,
    )

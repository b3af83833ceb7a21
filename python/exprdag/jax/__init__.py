try:
    import jax
except ImportError:
    raise ImportError(
        "JAX support requires the jax extra: pip install exprdag[jax]"
    ) from None

from ._core import evaluate

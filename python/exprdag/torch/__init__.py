try:
    import torch
except ImportError:
    raise ImportError(
        "PyTorch support requires the torch extra: pip install exprdag[torch]"
    ) from None

from ._core import evaluate

from ._core import evaluate, sample

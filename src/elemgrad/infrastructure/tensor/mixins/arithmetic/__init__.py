"""
Arithmetic mixin for Tensor.

Only the mixin class is exported; the operators it forwards to live in
``infrastructure.ops``.
"""

from ._base import TensorMixinArithmetic

__all__ = [
    TensorMixinArithmetic.__name__,
]

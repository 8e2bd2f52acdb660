"""
Tensor creation helpers.

These are the user-facing entry points for building leaf tensors. They share
the literal handling of `convert_to_tensor` (shape inference, dtype
inference, ragged-input errors) and allocate through the engine's backend.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import numpy as np

from ...domain._dtype import DType
from ...domain._errors import InvalidInputError
from ..engine import Engine, resolve_engine
from ..tensor._tensor import Tensor
from ._normalize import convert_to_tensor

DTypeLike = Union[DType, str]


def tensor(
    values: Any,
    dtype: Optional[DTypeLike] = None,
    *,
    requires_grad: bool = False,
    engine: Optional[Engine] = None,
) -> Tensor:
    """
    Create a leaf tensor from a literal.

    Parameters
    ----------
    values : Any
        Scalar, NumPy array, nested lists/tuples, or an existing Tensor.
    dtype : Optional[DType | str], optional
        Requested dtype. Inferred when omitted (see `convert_to_tensor`).
    requires_grad : bool, optional
        Whether gradients should flow to the new tensor.
    engine : Optional[Engine], optional
        Engine whose backend allocates the tensor.

    Returns
    -------
    Tensor
        A new leaf tensor. An existing Tensor is copied (and cast when
        `dtype` differs) so the result never shares autograd state.
    """
    engine = resolve_engine(engine)
    if isinstance(values, Tensor):
        target = DType.parse(dtype) if dtype is not None else values.dtype
        values = engine.backend.cast(
            engine.backend.make_tensor(values.to_numpy(), values.shape, values.dtype),
            target,
        )._bind_engine(engine)
    else:
        values = convert_to_tensor(values, "values", "tensor", dtype=dtype, engine=engine)
    if requires_grad:
        values.requires_grad = True
    return values


def scalar(
    value: Any,
    dtype: Optional[DTypeLike] = None,
    *,
    requires_grad: bool = False,
    engine: Optional[Engine] = None,
) -> Tensor:
    """
    Create a rank-0 leaf tensor.

    Raises
    ------
    InvalidInputError
        If `value` is a sequence or array with at least one dimension.
    """
    if isinstance(value, (list, tuple)) or (
        isinstance(value, np.ndarray) and value.ndim > 0
    ):
        raise InvalidInputError(
            "scalar() requires a primitive value, got a sequence; use tensor()",
            arg_name="value",
            op_name="scalar",
        )
    return tensor(value, dtype, requires_grad=requires_grad, engine=engine)


def _filled(
    shape: Sequence[int], fill: float, dtype: DTypeLike, engine: Optional[Engine]
) -> Tensor:
    shape = tuple(int(d) for d in shape)
    if any(d < 0 for d in shape):
        raise ValueError(f"Shape dimensions must be non-negative, got {shape}")
    engine = resolve_engine(engine)
    return engine.backend.make_tensor(
        np.full(shape, fill), shape, DType.parse(dtype)
    )._bind_engine(engine)


def zeros(
    shape: Sequence[int],
    dtype: DTypeLike = DType.FLOAT32,
    *,
    engine: Optional[Engine] = None,
) -> Tensor:
    """Create a tensor of zeros."""
    return _filled(shape, 0, dtype, engine)


def ones(
    shape: Sequence[int],
    dtype: DTypeLike = DType.FLOAT32,
    *,
    engine: Optional[Engine] = None,
) -> Tensor:
    """Create a tensor of ones."""
    return _filled(shape, 1, dtype, engine)

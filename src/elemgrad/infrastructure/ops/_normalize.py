"""
Input normalization for operators.

`convert_to_tensor` coerces an operator argument (a `Tensor`, a Python or
NumPy scalar, a NumPy array, or nested lists/tuples of numbers) into a
`Tensor` on the engine's backend. `make_types_match` promotes two tensors to
their common dtype before a binary kernel runs.

Shape inference walks nested sequences and rejects ragged input with an
`InvalidInputError` naming the offending element, e.g.::

    Element arr[1] should have 2 elements, but has 3 elements
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union

import numpy as np

from ...domain._dtype import DType, upcast_type
from ...domain._errors import InvalidInputError
from ..backend._numpy_backend import from_numpy_dtype
from ..engine import Engine, resolve_engine
from ..tensor._tensor import Tensor

TensorLike = Union[Tensor, int, float, bool, np.ndarray, Sequence[Any]]

_SEQ_TYPES = (list, tuple, np.ndarray)


def _fmt_indices(indices: List[int]) -> str:
    return "".join(f"[{i}]" for i in indices)


def _deep_assert_shape_consistency(
    val: Any, shape: Sequence[int], indices: List[int], arg_name: str, op_name: str
) -> None:
    if len(shape) == 0:
        if isinstance(val, _SEQ_TYPES) and not (
            isinstance(val, np.ndarray) and val.ndim == 0
        ):
            raise InvalidInputError(
                f"Element arr{_fmt_indices(indices)} should be a primitive, "
                f"but is an array of {len(val)} elements",
                arg_name=arg_name,
                op_name=op_name,
            )
        return

    if not isinstance(val, _SEQ_TYPES) or (
        isinstance(val, np.ndarray) and val.ndim == 0
    ):
        raise InvalidInputError(
            f"Element arr{_fmt_indices(indices)} should be an array of "
            f"{shape[0]} elements, but is a primitive",
            arg_name=arg_name,
            op_name=op_name,
        )
    if len(val) != shape[0]:
        raise InvalidInputError(
            f"Element arr{_fmt_indices(indices)} should have {shape[0]} "
            f"elements, but has {len(val)} elements",
            arg_name=arg_name,
            op_name=op_name,
        )
    for i, item in enumerate(val):
        _deep_assert_shape_consistency(item, shape[1:], indices + [i], arg_name, op_name)


def infer_shape(value: Any, arg_name: str = "x", op_name: str = "") -> tuple[int, ...]:
    """
    Infer the shape of a (possibly nested) literal and check it is rectangular.

    Parameters
    ----------
    value : Any
        Scalar, NumPy array, or nested lists/tuples.
    arg_name : str, optional
        Argument name used in error messages.
    op_name : str, optional
        Operator name used in error messages.

    Returns
    -------
    tuple[int, ...]
        Inferred shape; ``()`` for scalars.

    Raises
    ------
    InvalidInputError
        If nested sequences are ragged.
    """
    if isinstance(value, np.ndarray):
        return tuple(int(d) for d in value.shape)
    if not isinstance(value, (list, tuple)):
        return ()

    shape: List[int] = []
    first: Any = value
    while isinstance(first, _SEQ_TYPES):
        if isinstance(first, np.ndarray):
            shape.extend(int(d) for d in first.shape)
            break
        shape.append(len(first))
        if len(first) == 0:
            break
        first = first[0]

    if len(shape) > 1 or (shape and shape[0] > 0):
        _deep_assert_shape_consistency(value, shape, [], arg_name, op_name)
    return tuple(shape)


def _infer_dtype(arr: np.ndarray, value: Any) -> Optional[DType]:
    dtype = from_numpy_dtype(arr.dtype)
    if dtype is None:
        return None
    # Python literals default to float32 unless purely boolean; NumPy inputs
    # keep their own kind.
    if dtype is DType.INT32 and not isinstance(value, (np.ndarray, np.integer)):
        return DType.FLOAT32
    return dtype


def convert_to_tensor(
    value: Any,
    arg_name: str,
    op_name: str,
    *,
    dtype: Optional[Union[DType, str]] = None,
    engine: Optional[Engine] = None,
) -> Tensor:
    """
    Coerce an operator argument into a `Tensor`.

    Parameters
    ----------
    value : Any
        A `Tensor` (returned unchanged), or a literal: Python/NumPy scalar,
        NumPy array, or nested lists/tuples of numbers or booleans.
    arg_name : str
        Argument name inside the operator, for error messages.
    op_name : str
        Operator name, for error messages.
    dtype : Optional[DType | str], optional
        Requested dtype for literals. Inferred when omitted: all-boolean
        literals become ``bool``, Python numbers ``float32``, NumPy integer
        arrays ``int32`` and NumPy float arrays ``float32``.
    engine : Optional[Engine], optional
        Engine whose backend allocates the tensor.

    Returns
    -------
    Tensor
        The normalized tensor.

    Raises
    ------
    InvalidInputError
        If the value is not numeric or not rectangular, or if integer
        values do not fit the int32 range.
    """
    if isinstance(value, Tensor):
        return value

    shape = infer_shape(value, arg_name, op_name)
    try:
        arr = np.asarray(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(
            f"Argument '{arg_name}' passed to '{op_name}' must be a Tensor or "
            f"TensorLike, but got '{type(value).__name__}'",
            arg_name=arg_name,
            op_name=op_name,
        ) from e

    inferred = _infer_dtype(arr, value)
    if inferred is None:
        if arr.dtype.kind in ("U", "S"):
            msg = (
                f"Argument '{arg_name}' passed to '{op_name}' must be numeric "
                f"tensor, but got string tensor"
            )
        else:
            msg = (
                f"Argument '{arg_name}' passed to '{op_name}' must be a Tensor "
                f"or TensorLike, but got '{type(value).__name__}'"
            )
        raise InvalidInputError(msg, arg_name=arg_name, op_name=op_name)

    target = DType.parse(dtype) if dtype is not None else inferred
    if target is DType.INT32 and arr.dtype.kind in ("i", "u") and arr.size:
        info = np.iinfo(np.int32)
        if arr.min() < info.min or arr.max() > info.max:
            raise InvalidInputError(
                f"Argument '{arg_name}' passed to '{op_name}' has values "
                f"outside the int32 range [{info.min}, {info.max}]",
                arg_name=arg_name,
                op_name=op_name,
            )
    engine = resolve_engine(engine)
    return engine.backend.make_tensor(arr, shape, target)._bind_engine(engine)


def cast(x: Tensor, dtype: Union[DType, str], *, engine: Optional[Engine] = None) -> Tensor:
    """
    Differentiable dtype conversion.

    Returns `x` unchanged if it already has `dtype`. The gradient of a cast
    passes the upstream gradient through unchanged.
    """
    dtype = DType.parse(dtype)
    if x.dtype is dtype:
        return x
    engine = resolve_engine(engine)

    def forward(backend, save):
        return backend.cast(x, dtype)

    def gradient(dy, saved):
        return {"x": lambda: dy}

    return engine.run_kernel(forward, {"x": x}, gradient, "Cast")


def make_types_match(
    a: Tensor, b: Tensor, *, engine: Optional[Engine] = None
) -> tuple[Tensor, Tensor]:
    """
    Promote two tensors to their common dtype.

    Parameters
    ----------
    a : Tensor
        First operand.
    b : Tensor
        Second operand.
    engine : Optional[Engine], optional
        Engine used for the casts.

    Returns
    -------
    tuple[Tensor, Tensor]
        The same objects if the dtypes already match; otherwise both operands
        cast to ``upcast_type(a.dtype, b.dtype)``. Applying the function to its
        own output returns that output unchanged.
    """
    if a.dtype is b.dtype:
        return a, b
    dtype = upcast_type(a.dtype, b.dtype)
    return cast(a, dtype, engine=engine), cast(b, dtype, engine=engine)

"""
NumPy CPU backend.

This module implements the `IBackend` kernel set on top of NumPy. Each kernel
reads the (read-only) arrays behind its input tensors, computes a new array
with NumPy broadcasting, and wraps it in a fresh `Tensor` with a canonical
dtype.

Dtype conventions
-----------------
- `DType.BOOL`, `DType.INT32` and `DType.FLOAT32` map to ``np.bool_``,
  ``np.int32`` and ``np.float32``. Results are always cast back to the
  canonical dtype (NumPy promotes ``int32`` reductions to ``int64``).
- Arithmetic kernels reject ``bool`` operands with `UnsupportedDTypeError`.
- ``atan2``, ``real_divide`` and ``log`` always produce ``float32``.
- Division by zero follows IEEE semantics for floats; NumPy's runtime warnings
  are silenced inside kernels because the resulting ``inf``/``nan`` values are
  part of the contract.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, Union

import numpy as np

from ...domain._dtype import DType
from ...domain._errors import UnsupportedDTypeError
from ...domain._tensor import ITensor
from ...domain.device._device import Device
from ..tensor._tensor import Tensor

_NP_DTYPES: dict[DType, np.dtype] = {
    DType.BOOL: np.dtype(np.bool_),
    DType.INT32: np.dtype(np.int32),
    DType.FLOAT32: np.dtype(np.float32),
}


def to_numpy_dtype(dtype: Union[DType, str]) -> np.dtype:
    return _NP_DTYPES[DType.parse(dtype)]


def from_numpy_dtype(dtype: Any) -> Optional[DType]:
    """
    Map a NumPy dtype onto the supported `DType` kinds.

    Returns
    -------
    Optional[DType]
        ``BOOL`` for booleans, ``INT32`` for any integer kind, ``FLOAT32`` for
        any floating kind, or None for anything else (complex, strings,
        objects).
    """
    kind = np.dtype(dtype).kind
    if kind == "b":
        return DType.BOOL
    if kind in ("i", "u"):
        return DType.INT32
    if kind == "f":
        return DType.FLOAT32
    return None


class NumpyBackend:
    """
    CPU kernel implementation backed by NumPy.

    Parameters
    ----------
    device : Device | str, optional
        Device label stamped on produced tensors. Defaults to ``"cpu"``.
    """

    name = "numpy"

    def __init__(self, device: Union[Device, str] = "cpu") -> None:
        self._device = Device.parse(device)

    def __repr__(self) -> str:
        return f"NumpyBackend(device={self._device})"

    @property
    def device(self) -> Device:
        return self._device

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _wrap(self, arr: Any, dtype: DType) -> Tensor:
        # keeps rank-0 results rank-0, unlike ascontiguousarray
        out = np.asarray(arr, dtype=to_numpy_dtype(dtype), order="C")
        return Tensor(out, dtype, self._device)

    @staticmethod
    def _arr(x: ITensor) -> np.ndarray:
        if isinstance(x, Tensor):
            return x.data
        return np.asarray(x.to_numpy())

    @staticmethod
    def _reject_bool(op: str, *xs: ITensor) -> None:
        for x in xs:
            if x.dtype is DType.BOOL:
                raise UnsupportedDTypeError(op, str(x.dtype))

    def _binary(
        self,
        op: str,
        a: ITensor,
        b: ITensor,
        fn: Callable[[np.ndarray, np.ndarray], np.ndarray],
        *,
        out_dtype: Optional[DType] = None,
        allow_bool: bool = False,
    ) -> Tensor:
        if not allow_bool:
            self._reject_bool(op, a, b)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            res = fn(self._arr(a), self._arr(b))
        return self._wrap(res, out_dtype or a.dtype)

    # ------------------------------------------------------------------
    # Data movement
    # ------------------------------------------------------------------
    def make_tensor(self, values: Any, shape: Sequence[int], dtype: DType) -> Tensor:
        dtype = DType.parse(dtype)
        arr = np.array(values, dtype=to_numpy_dtype(dtype), copy=True)
        return self._wrap(arr.reshape(tuple(int(d) for d in shape)), dtype)

    def read(self, x: ITensor) -> np.ndarray:
        return np.array(self._arr(x), copy=True)

    def cast(self, x: ITensor, dtype: DType) -> Tensor:
        dtype = DType.parse(dtype)
        if x.dtype is dtype and isinstance(x, Tensor):
            return x
        with np.errstate(invalid="ignore"):
            return self._wrap(self._arr(x).astype(to_numpy_dtype(dtype)), dtype)

    def reshape(self, x: ITensor, shape: Sequence[int]) -> Tensor:
        shape = tuple(int(d) for d in shape)
        arr = self._arr(x)
        if int(np.prod(shape, dtype=np.int64)) != arr.size:
            raise ValueError(f"Cannot reshape tensor of shape {x.shape} into {shape}")
        return self._wrap(arr.reshape(shape), x.dtype)

    def zeros_like(self, x: ITensor) -> Tensor:
        return self._wrap(np.zeros(x.shape), x.dtype)

    def ones_like(self, x: ITensor) -> Tensor:
        return self._wrap(np.ones(x.shape), x.dtype)

    # ------------------------------------------------------------------
    # Binary arithmetic kernels
    # ------------------------------------------------------------------
    def add(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary("add", a, b, np.add)

    def sub(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary("sub", a, b, np.subtract)

    def multiply(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary("multiply", a, b, np.multiply)

    def real_divide(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary(
            "real_divide",
            a,
            b,
            lambda x, y: np.true_divide(x.astype(np.float32), y.astype(np.float32)),
            out_dtype=DType.FLOAT32,
        )

    def floor_div(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary("floor_div", a, b, np.floor_divide)

    def mod(self, a: ITensor, b: ITensor) -> Tensor:
        # sign follows the divisor: floor(a / b) * b + mod(a, b) == a
        return self._binary("mod", a, b, np.mod)

    def atan2(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary(
            "atan2",
            a,
            b,
            lambda x, y: np.arctan2(x.astype(np.float32), y.astype(np.float32)),
            out_dtype=DType.FLOAT32,
        )

    def minimum(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary("minimum", a, b, np.minimum)

    def maximum(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary("maximum", a, b, np.maximum)

    def squared_difference(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary(
            "squared_difference", a, b, lambda x, y: np.square(np.subtract(x, y))
        )

    def pow(self, a: ITensor, b: ITensor) -> Tensor:
        def _pow(x: np.ndarray, y: np.ndarray) -> np.ndarray:
            if x.dtype.kind == "f":
                return np.power(x, y)
            # NumPy refuses negative integer exponents on integer arrays
            return np.power(x.astype(np.float64), y.astype(np.float64))

        return self._binary("pow", a, b, _pow)

    # ------------------------------------------------------------------
    # Comparison kernels
    # ------------------------------------------------------------------
    def less(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary("less", a, b, np.less, out_dtype=DType.BOOL, allow_bool=True)

    def less_equal(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary(
            "less_equal", a, b, np.less_equal, out_dtype=DType.BOOL, allow_bool=True
        )

    def greater(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary(
            "greater", a, b, np.greater, out_dtype=DType.BOOL, allow_bool=True
        )

    def greater_equal(self, a: ITensor, b: ITensor) -> Tensor:
        return self._binary(
            "greater_equal", a, b, np.greater_equal, out_dtype=DType.BOOL, allow_bool=True
        )

    # ------------------------------------------------------------------
    # Helpers used by gradient rules
    # ------------------------------------------------------------------
    def neg(self, x: ITensor) -> Tensor:
        self._reject_bool("neg", x)
        return self._wrap(np.negative(self._arr(x)), x.dtype)

    def square(self, x: ITensor) -> Tensor:
        self._reject_bool("square", x)
        return self._wrap(np.square(self._arr(x)), x.dtype)

    def floor(self, x: ITensor) -> Tensor:
        self._reject_bool("floor", x)
        return self._wrap(np.floor(self._arr(x)), x.dtype)

    def log(self, x: ITensor) -> Tensor:
        self._reject_bool("log", x)
        with np.errstate(divide="ignore", invalid="ignore"):
            res = np.log(self._arr(x).astype(np.float32))
        return self._wrap(res, DType.FLOAT32)

    def where(self, condition: ITensor, a: ITensor, b: ITensor) -> Tensor:
        if condition.dtype is not DType.BOOL:
            raise UnsupportedDTypeError(
                "where", str(condition.dtype), "The condition must be a bool tensor."
            )
        return self._wrap(
            np.where(self._arr(condition), self._arr(a), self._arr(b)), a.dtype
        )

    def sum(self, x: ITensor, axes: Sequence[int]) -> Tensor:
        self._reject_bool("sum", x)
        axes = tuple(int(ax) for ax in axes)
        if not axes:
            return self.cast(x, x.dtype)
        return self._wrap(np.sum(self._arr(x), axis=axes), x.dtype)

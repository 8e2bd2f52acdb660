"""
Backend interface definitions.

A backend is the capability set the engine dispatches numeric work to. It
exposes one method per kernel, each taking already-normalized tensors and
returning a new tensor. Backends are injected into an `Engine` explicitly, so
swapping the CPU implementation for an accelerator implementation requires no
change to operator code.

Kernel contracts
----------------
- Binary kernels receive two tensors of the *same* dtype (the operator layer
  promotes them first) whose shapes are broadcast-compatible, and return a
  tensor of the broadcast shape.
- Comparison kernels return ``bool`` tensors.
- A kernel that cannot handle an operand dtype raises
  `UnsupportedDTypeError`; the operator layer lets it propagate.
- Kernels never mutate their inputs.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from ._dtype import DType
from ._tensor import ITensor
from .device._device import Device


@runtime_checkable
class IBackend(Protocol):
    """
    Kernel capability set for one device.

    Notes
    -----
    One method per kernel name. `NumpyBackend` is the CPU implementation.
    """

    @property
    def device(self) -> Device:
        """Device every tensor produced by this backend lives on."""
        ...

    # ------------------------------------------------------------------
    # Data movement
    # ------------------------------------------------------------------
    def make_tensor(self, values: Any, shape: Sequence[int], dtype: DType) -> ITensor:
        """
        Allocate a tensor from host values.

        Parameters
        ----------
        values : Any
            Host array-like data already validated as rectangular.
        shape : Sequence[int]
            Target shape; `values` is reshaped to it.
        dtype : DType
            Element dtype of the new tensor.
        """
        ...

    def read(self, x: ITensor) -> Any:
        """Return a host copy of the tensor data."""
        ...

    def cast(self, x: ITensor, dtype: DType) -> ITensor: ...

    def reshape(self, x: ITensor, shape: Sequence[int]) -> ITensor: ...

    def zeros_like(self, x: ITensor) -> ITensor: ...

    def ones_like(self, x: ITensor) -> ITensor: ...

    # ------------------------------------------------------------------
    # Binary arithmetic kernels
    # ------------------------------------------------------------------
    def add(self, a: ITensor, b: ITensor) -> ITensor: ...

    def sub(self, a: ITensor, b: ITensor) -> ITensor: ...

    def multiply(self, a: ITensor, b: ITensor) -> ITensor: ...

    def real_divide(self, a: ITensor, b: ITensor) -> ITensor: ...

    def floor_div(self, a: ITensor, b: ITensor) -> ITensor: ...

    def mod(self, a: ITensor, b: ITensor) -> ITensor: ...

    def atan2(self, a: ITensor, b: ITensor) -> ITensor: ...

    def minimum(self, a: ITensor, b: ITensor) -> ITensor: ...

    def maximum(self, a: ITensor, b: ITensor) -> ITensor: ...

    def squared_difference(self, a: ITensor, b: ITensor) -> ITensor: ...

    def pow(self, a: ITensor, b: ITensor) -> ITensor: ...

    # ------------------------------------------------------------------
    # Comparison kernels (bool results)
    # ------------------------------------------------------------------
    def less(self, a: ITensor, b: ITensor) -> ITensor: ...

    def less_equal(self, a: ITensor, b: ITensor) -> ITensor: ...

    def greater(self, a: ITensor, b: ITensor) -> ITensor: ...

    def greater_equal(self, a: ITensor, b: ITensor) -> ITensor: ...

    # ------------------------------------------------------------------
    # Helpers used by gradient rules
    # ------------------------------------------------------------------
    def neg(self, x: ITensor) -> ITensor: ...

    def square(self, x: ITensor) -> ITensor: ...

    def floor(self, x: ITensor) -> ITensor: ...

    def log(self, x: ITensor) -> ITensor: ...

    def where(self, condition: ITensor, a: ITensor, b: ITensor) -> ITensor: ...

    def sum(self, x: ITensor, axes: Sequence[int]) -> ITensor:
        """
        Sum over `axes`, removing them from the result shape.
        """
        ...

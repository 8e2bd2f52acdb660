"""
Tensor interface definitions.

This module defines the domain-level interface for tensor-like objects using
structural typing. The interface captures the backend-agnostic properties
the operator core relies on: shape, dtype, device placement, host readback,
and the autograd hooks used by reverse-mode differentiation.

Notes
-----
Tensors satisfying this protocol are immutable value handles. Operators never
write into an input; every operator returns a new tensor.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Union, runtime_checkable

from ._dtype import DType
from .device._device import Device

Number = Union[int, float, bool]


@runtime_checkable
class ITensor(Protocol):
    """
    Tensor interface.

    An `ITensor` is a shape- and dtype-tagged handle to a numeric buffer that
    may live on any device. The buffer is owned by the backend that produced
    it and is never mutated after construction.
    """

    # ---------------------------------------------------------------------
    # Core identity / placement
    # ---------------------------------------------------------------------
    @property
    def shape(self) -> tuple[int, ...]:
        """
        Return the shape of the tensor.

        Returns
        -------
        tuple[int, ...]
            Ordered sequence of non-negative dimension sizes.
        """
        ...

    @property
    def dtype(self) -> DType:
        """
        Return the element dtype of the tensor.

        Returns
        -------
        DType
            One of the supported numeric kinds.
        """
        ...

    @property
    def device(self) -> Device:
        """
        Return the device on which this tensor resides.
        """
        ...

    @property
    def rank(self) -> int:
        """Number of dimensions."""
        ...

    @property
    def size(self) -> int:
        """Total number of elements."""
        ...

    # ---------------------------------------------------------------------
    # Autograd flags and gradient storage
    # ---------------------------------------------------------------------
    @property
    def requires_grad(self) -> bool:
        """
        Indicate whether gradients should flow to this tensor.

        Returns
        -------
        bool
            True if operators consuming this tensor must record a gradient
            node, False otherwise.
        """
        ...

    @property
    def grad(self) -> Optional["ITensor"]:
        """
        Return the gradient accumulated by `backward`, if any.
        """
        ...

    def backward(
        self, grad_out: Optional["ITensor"] = None, *, retain_graph: bool = False
    ) -> None:
        """
        Backpropagate from this tensor through the recorded gradient nodes.

        Parameters
        ----------
        grad_out : Optional[ITensor], optional
            Upstream gradient shaped like this tensor. Defaults to ones.
        retain_graph : bool, optional
            Keep saved tensors alive so a second backward pass is possible.
        """
        ...

    # ---------------------------------------------------------------------
    # Host interop
    # ---------------------------------------------------------------------
    def to_numpy(self) -> Any:
        """
        Copy the tensor contents to a host array.

        Returns
        -------
        Any
            Backend-native host array (a NumPy ndarray for the CPU backend).
        """
        ...

    def tolist(self) -> Any:
        """Return the contents as (nested) Python scalars."""
        ...

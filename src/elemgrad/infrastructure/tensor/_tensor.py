"""
Concrete Tensor implementation (NumPy storage) and autograd hooks.

This module provides the `Tensor` class that satisfies the domain-level
`ITensor` protocol. A tensor is an immutable handle: its buffer is a NumPy
array whose write flag is cleared at construction, and no method ever writes
into it. Every operator returns a new tensor.

Tensors are created by a backend (``backend.make_tensor`` or a kernel); user
code normally goes through the creation helpers ``tensor`` / ``scalar``.

Autograd
--------
A tensor produced by a differentiable operator whose inputs require gradients
carries a `Node` (see ``_tensor_context``). `backward` walks these nodes in
reverse topological order through the engine and accumulates the results
into ``.grad`` of leaf tensors that require gradients.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ...domain._dtype import DType
from ...domain._tensor import ITensor
from ...domain.device._device import Device
from ._tensor_context import Node
from .mixins.arithmetic import TensorMixinArithmetic


class Tensor(TensorMixinArithmetic, ITensor):
    """
    Immutable, shape- and dtype-tagged tensor handle.

    Parameters
    ----------
    data : np.ndarray
        Backing storage. It is made read-only; callers must not keep a
        writable alias.
    dtype : DType
        Element dtype. The storage must already have the matching NumPy dtype.
    device : Device
        Device on which the producing backend executes.
    requires_grad : bool, optional
        Whether gradients should flow to this tensor. Defaults to False.
    node : Optional[Node], optional
        Gradient record. Set internally by `Engine.run_kernel`.

    Notes
    -----
    - ``__array_ufunc__ = None`` makes NumPy defer mixed expressions such as
      ``ndarray * Tensor`` to the reflected Tensor operator.
    - ``.grad`` is autograd metadata and is replaced (never written into) by
      `backward`.
    """

    __array_ufunc__ = None

    def __init__(
        self,
        data: np.ndarray,
        dtype: DType,
        device: Device,
        *,
        requires_grad: bool = False,
        node: Optional[Node] = None,
    ) -> None:
        # read-only view; the caller's array keeps its own flags
        arr = np.asarray(data).view()
        arr.setflags(write=False)
        self._data = arr
        self._shape: tuple[int, ...] = tuple(int(d) for d in arr.shape)
        self._dtype = DType.parse(dtype)
        self._device = device

        # --- autograd fields (optional) ---
        self._requires_grad: bool = bool(requires_grad) or node is not None
        self._grad: Optional["Tensor"] = None
        self._node: Optional[Node] = node
        self._engine: Any = None

    def __repr__(self) -> str:
        return (
            f"Tensor(shape={self._shape}, dtype={self._dtype}, device={self._device}"
            + (", requires_grad=True" if self._requires_grad else "")
            + ")"
        )

    def __str__(self) -> str:
        return f"Tensor({np.array2string(self._data, separator=', ')})"

    # ----------------------------
    # Core properties
    # ----------------------------
    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def dtype(self) -> DType:
        return self._dtype

    @property
    def device(self) -> Device:
        return self._device

    @property
    def rank(self) -> int:
        return len(self._shape)

    @property
    def size(self) -> int:
        n = 1
        for d in self._shape:
            n *= d
        return n

    @property
    def data(self) -> np.ndarray:
        """
        Return the read-only backing array.

        Backends use this to feed kernels without a copy. It is not part of the
        `ITensor` protocol; host code should prefer `to_numpy`.
        """
        return self._data

    @property
    def engine(self) -> Any:
        """
        Engine that created this tensor.

        Operator overloads and `backward` run on it. Tensors built directly
        by a backend have no engine and resolve the calling thread's
        `current_engine`.
        """
        if self._engine is not None:
            return self._engine
        from ..engine import current_engine

        return current_engine()

    def _bind_engine(self, engine: Any) -> "Tensor":
        self._engine = engine
        return self

    # ----------------------------
    # Autograd
    # ----------------------------
    @property
    def requires_grad(self) -> bool:
        return self._requires_grad

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None:
        """
        Enable or disable gradient tracking on a leaf tensor.

        Raises
        ------
        RuntimeError
            If the tensor was produced by a recorded operator; only leaves can
            change their flag.
        """
        if self._node is not None:
            raise RuntimeError(
                "requires_grad can only be changed on leaf tensors "
                f"(this tensor was produced by '{self._node.op_label}')."
            )
        self._requires_grad = bool(value)

    @property
    def grad(self) -> Optional["Tensor"]:
        return self._grad

    def zero_grad(self) -> None:
        self._grad = None

    @property
    def is_leaf(self) -> bool:
        return self._node is None

    def _set_node(self, node: Optional[Node]) -> None:
        """
        Attach the gradient record of the operator that produced this tensor.

        Notes
        -----
        Called by the engine only, before the tensor is handed to user code.
        """
        self._node = node
        if node is not None:
            self._requires_grad = True

    def _get_node(self) -> Optional[Node]:
        return self._node

    def _accumulate_grad_(self, g: "Tensor", backend: Any) -> None:
        """
        Accumulate `g` into ``self.grad`` by replacing it with ``grad + g``.
        """
        if g.shape != self._shape:
            raise ValueError(f"Grad shape mismatch: {self._shape} vs {g.shape}")
        if self._grad is None:
            self._grad = g
            return
        self._grad = backend.add(self._grad, g)

    def backward(
        self, grad_out: Optional[ITensor] = None, *, retain_graph: bool = False
    ) -> None:
        """
        Backpropagate gradients from this tensor through the recorded graph.

        Parameters
        ----------
        grad_out : Optional[Tensor], optional
            Gradient w.r.t. this tensor. Defaults to a float32 tensor of ones
            with this tensor's shape.
        retain_graph : bool, optional
            If False (default), every visited node releases its saved tensors
            after use.

        Raises
        ------
        ValueError
            If `grad_out` does not match this tensor's shape.
        RuntimeError
            If a node on the path was already released, or if a gradient rule
            returns a gradient whose shape differs from its input's shape.

        Notes
        -----
        Gradients are accumulated into ``.grad`` of every leaf tensor reached
        whose `requires_grad` is True. The pass runs on this tensor's `engine`.
        """
        self.engine.backward(self, grad_out, retain_graph=retain_graph)

    # ----------------------------
    # Host interop
    # ----------------------------
    def to_numpy(self) -> np.ndarray:
        """
        Return a writable host copy of the tensor data.
        """
        return np.array(self._data, copy=True)

    def __array__(self, dtype: Any = None, copy: Any = None) -> np.ndarray:
        arr = self.to_numpy()
        return arr if dtype is None else arr.astype(dtype)

    def tolist(self) -> Any:
        return self._data.tolist()

    def item(self) -> Any:
        """
        Return the single element of a size-1 tensor as a Python scalar.

        Raises
        ------
        ValueError
            If the tensor does not hold exactly one element.
        """
        if self.size != 1:
            raise ValueError(
                f"item() requires a tensor with one element, got shape={self._shape}"
            )
        return self._data.reshape(()).item()

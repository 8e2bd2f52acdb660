"""
Execution engine: kernel dispatch, gradient recording and scoping.

An `Engine` binds a backend to the operator layer. Operators never touch the
backend directly; they hand the engine a forward function and a gradient
rule through `Engine.run_kernel`, which

1. checks that every input lives on the backend's device,
2. runs the forward function with the backend and a ``save`` callback,
3. optionally checks the result for NaN values (``DEBUG`` flag),
4. attaches a `Node` holding the saved tensors and the gradient rule to the
   result, but only when at least one input requires gradients.

Scoping
-------
Engines are activated with ``with engine:``. Activation is thread-local: each
thread sees its own stack of active engines, and `current_engine` returns the
innermost one. When no engine is active, a per-thread default engine over
`NumpyBackend` is used. Every operator also accepts an explicit ``engine=``
keyword, which bypasses the stack entirely.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Mapping, Optional, Sequence

import numpy as np

from ...domain._backend import IBackend
from ...domain._dtype import DType
from ...domain._errors import DeviceMismatchError
from ...domain._function import ForwardFn, GradientFn
from ...domain.device._device import Device
from .._environment import env
from ..backend._numpy_backend import NumpyBackend
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Node, make_save_fn
from ._autograd import backpropagate

logger = logging.getLogger(__name__)

_local = threading.local()


def _engine_stack() -> List["Engine"]:
    stack = getattr(_local, "stack", None)
    if stack is None:
        stack = _local.stack = []
    return stack


def current_engine() -> "Engine":
    """
    Return the innermost active engine of the calling thread.

    Falls back to a per-thread default engine over `NumpyBackend` when no
    engine has been activated.
    """
    stack = _engine_stack()
    if stack:
        return stack[-1]
    default = getattr(_local, "default", None)
    if default is None:
        default = _local.default = Engine(NumpyBackend())
    return default


def resolve_engine(engine: Optional["Engine"] = None) -> "Engine":
    return engine if engine is not None else current_engine()


class Engine:
    """
    Operator execution context over a single backend.

    Parameters
    ----------
    backend : Optional[IBackend], optional
        Kernel implementation. Defaults to a new CPU `NumpyBackend`.

    Notes
    -----
    - The engine keeps no reference to tensors it dispatched: saved tensors
      live only in the `Node` attached to the result.
    - The op-name stack (see `op_scope`) is thread-local, so a single engine
      may be shared by threads as long as its backend is thread-safe.
    """

    def __init__(self, backend: Optional[IBackend] = None) -> None:
        self._backend: IBackend = backend if backend is not None else NumpyBackend()
        self._local = threading.local()

    def __repr__(self) -> str:
        return f"Engine(backend={self._backend!r})"

    @property
    def backend(self) -> IBackend:
        return self._backend

    @property
    def device(self) -> Device:
        return self._backend.device

    # ------------------------------------------------------------------
    # Scoping
    # ------------------------------------------------------------------
    def __enter__(self) -> "Engine":
        _engine_stack().append(self)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        stack = _engine_stack()
        if not stack or stack[-1] is not self:
            raise RuntimeError("Engine scopes must be exited in LIFO order.")
        stack.pop()

    @contextmanager
    def activate(self) -> Iterator["Engine"]:
        """Context-manager form of ``with engine:``."""
        with self:
            yield self

    def _op_stack(self) -> List[str]:
        stack = getattr(self._local, "ops", None)
        if stack is None:
            stack = self._local.ops = []
        return stack

    @contextmanager
    def op_scope(self, name: str) -> Iterator[None]:
        """
        Record `name` as the operator currently executing on this thread.

        Nested operators (e.g. a strict variant delegating to its broadcasting
        form) push nested names. The name is always popped, even when the
        operator raises.
        """
        stack = self._op_stack()
        stack.append(name)
        try:
            yield
        finally:
            stack.pop()

    @property
    def active_op(self) -> Optional[str]:
        stack = self._op_stack()
        return stack[-1] if stack else None

    @property
    def op_path(self) -> str:
        return "/".join(self._op_stack())

    # ------------------------------------------------------------------
    # Kernel dispatch
    # ------------------------------------------------------------------
    def _check_devices(self, inputs: Mapping[str, Tensor], op_label: str) -> None:
        for t in inputs.values():
            if t.device != self.device:
                logger.debug(
                    "%s rejected: input on %s, backend on %s", op_label, t.device, self.device
                )
                raise DeviceMismatchError(str(self.device), str(t.device))

    def _check_for_nan(self, out: Tensor, op_label: str) -> None:
        if not out.dtype.is_floating:
            return
        if np.isnan(np.asarray(self._backend.read(out))).any():
            logger.warning(
                "The result of the '%s' kernel (op %s) contains NaN values.",
                op_label,
                self.op_path or "<none>",
            )

    def run_kernel(
        self,
        forward_fn: ForwardFn,
        inputs: Mapping[str, Tensor],
        gradient_fn: Optional[GradientFn],
        op_label: str,
    ) -> Tensor:
        """
        Execute a forward kernel and record its gradient rule.

        Parameters
        ----------
        forward_fn : Callable[[IBackend, SaveFn], Tensor]
            Invokes backend kernels on the already-normalized inputs and calls
            ``save(*tensors)`` with exactly the tensors `gradient_fn` needs.
        inputs : Mapping[str, Tensor]
            Named inputs of the operator (``{"a": ..., "b": ...}``). The names
            are the keys `gradient_fn` must return thunks for.
        gradient_fn : Optional[GradientFn]
            ``(dy, saved) -> {name: thunk}``; None for non-differentiable
            kernels.
        op_label : str
            Kernel label recorded on the node (e.g., "Mul").

        Returns
        -------
        Tensor
            The forward result. If any input requires gradients, it carries a
            `Node` and ``requires_grad=True``.

        Raises
        ------
        DeviceMismatchError
            If an input does not live on the backend's device.
        TypeError
            If `forward_fn` does not return a Tensor.

        Notes
        -----
        Only the forward kernel runs eagerly. Errors raised by the backend
        propagate unchanged, and no node is attached when the forward raises.
        """
        self._check_devices(inputs, op_label)

        saved: list = []
        out = forward_fn(self._backend, make_save_fn(saved))
        if not isinstance(out, Tensor):
            raise TypeError(
                f"Kernel '{op_label}' must return a Tensor, got {type(out)!r}"
            )
        out._bind_engine(self)

        if env().get_bool("DEBUG"):
            logger.debug(
                "kernel %s (op %s): %s -> %s",
                op_label,
                self.op_path or "<none>",
                {k: v.shape for k, v in inputs.items()},
                out.shape,
            )
            self._check_for_nan(out, op_label)

        req = gradient_fn is not None and any(t.requires_grad for t in inputs.values())
        if req:
            node = Node(
                op_label=op_label,
                inputs=dict(inputs),
                gradient_fn=gradient_fn,
                saved_tensors=saved,
                out_shape=tuple(out.shape),
            )
            out._set_node(node)
            logger.debug("recorded node %s with %d saved tensors", op_label, len(saved))
        return out

    # ------------------------------------------------------------------
    # Reverse-mode differentiation
    # ------------------------------------------------------------------
    def _seed(self, y: Tensor, dy: Optional[Tensor]) -> Tensor:
        if dy is None:
            return self._backend.cast(self._backend.ones_like(y), DType.FLOAT32)
        if not isinstance(dy, Tensor):
            raise TypeError(f"dy must be a Tensor, got {type(dy)!r}")
        if tuple(dy.shape) != tuple(y.shape):
            raise ValueError(
                f"dy shape mismatch: expected {y.shape}, got {dy.shape}"
            )
        if dy.device != self.device:
            raise DeviceMismatchError(str(self.device), str(dy.device))
        return self._backend.cast(dy, DType.FLOAT32)

    def gradients(
        self,
        y: Tensor,
        xs: Sequence[Tensor],
        dy: Optional[Tensor] = None,
        *,
        retain_graph: bool = False,
    ) -> List[Optional[Tensor]]:
        """
        Compute ``d(y)/d(x)`` for each `x` without touching ``.grad``.

        Parameters
        ----------
        y : Tensor
            Result tensor.
        xs : Sequence[Tensor]
            Tensors to differentiate with respect to. They must have
            ``requires_grad=True`` when `y` was computed.
        dy : Optional[Tensor], optional
            Upstream gradient shaped like `y`. Defaults to ones.
        retain_graph : bool, optional
            Keep saved tensors for another backward pass.

        Returns
        -------
        list[Optional[Tensor]]
            One float32 gradient per entry of `xs`, or None where `y` does not
            depend on that tensor.
        """
        seed = self._seed(y, dy)
        result = backpropagate(y, seed, self._backend, retain_graph=retain_graph)
        return [
            result[id(x)][1]._bind_engine(self) if id(x) in result else None
            for x in xs
        ]

    def backward(
        self, y: Tensor, dy: Optional[Tensor] = None, *, retain_graph: bool = False
    ) -> None:
        """
        Accumulate gradients of `y` into ``.grad`` of the leaves it depends on.

        Raises
        ------
        RuntimeError
            If `y` does not require gradients.
        """
        if not y.requires_grad:
            raise RuntimeError(
                "backward() called on a tensor that does not require grad and "
                "has no recorded gradient node."
            )
        seed = self._seed(y, dy)
        result = backpropagate(y, seed, self._backend, retain_graph=retain_graph)
        for t, g in result.values():
            if t.is_leaf and t.requires_grad:
                t._accumulate_grad_(g, self._backend)
                t.grad._bind_engine(self)

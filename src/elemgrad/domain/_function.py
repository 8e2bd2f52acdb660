"""
Kernel-function and gradient-rule contracts.

Every differentiable operator hands the engine two callables:

- a *forward function* ``forward_fn(backend, save) -> ITensor`` that invokes
  backend kernels on already-normalized inputs and calls ``save(*tensors)``
  with exactly the tensors its gradient rule needs;
- a *gradient rule* ``gradient_fn(dy, saved) -> {name: thunk}`` mapping the
  upstream gradient and the saved tensors to one zero-argument callable per
  named input.

Thunks are evaluated lazily by the autograd traversal, and only for inputs
that require gradients, so an unused gradient is never computed.

Both callables are created fresh for each forward call and must not retain
tensors beyond what ``save`` records.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Mapping, Sequence

from ._tensor import ITensor

if TYPE_CHECKING:
    from ._backend import IBackend

SaveFn = Callable[..., None]
"""``save(*tensors)``: record tensors for the backward pass."""

ForwardFn = Callable[["IBackend", SaveFn], ITensor]
"""``forward_fn(backend, save) -> result``."""

GradientThunk = Callable[[], ITensor]
"""Zero-argument callable producing one input's gradient."""

GradientFn = Callable[[ITensor, Sequence[ITensor]], Mapping[str, GradientThunk]]
"""``gradient_fn(dy, saved) -> {input_name: thunk}``."""

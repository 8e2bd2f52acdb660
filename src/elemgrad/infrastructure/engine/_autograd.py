"""
Reverse-mode traversal over recorded gradient nodes.

Starting from a result tensor, this module orders every tensor reachable
through `Node.inputs` topologically, then walks that order backwards: each
node's gradient rule is applied to the upstream gradient, and the lazy thunk
of every input that requires gradients is evaluated and accumulated.

The traversal is iterative so long operator chains do not hit Python's
recursion limit.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from ...domain._backend import IBackend
from ...domain._dtype import DType
from ..tensor._tensor import Tensor

logger = logging.getLogger(__name__)


def _topological_order(root: Tensor) -> List[Tensor]:
    """
    Return tensors reachable from `root`, inputs before the tensors using them.
    """
    order: List[Tensor] = []
    visited: set[int] = set()
    stack: List[Tuple[Tensor, bool]] = [(root, False)]

    while stack:
        t, expanded = stack.pop()
        if expanded:
            order.append(t)
            continue
        if id(t) in visited:
            continue
        visited.add(id(t))
        stack.append((t, True))

        node = t._get_node()
        if node is not None:
            for parent in node.inputs.values():
                if id(parent) not in visited:
                    stack.append((parent, False))
    return order


def backpropagate(
    root: Tensor,
    seed: Tensor,
    backend: IBackend,
    *,
    retain_graph: bool = False,
) -> Dict[int, Tuple[Tensor, Tensor]]:
    """
    Propagate `seed` from `root` back to every reachable tensor.

    Parameters
    ----------
    root : Tensor
        Tensor the gradient flows from.
    seed : Tensor
        Gradient w.r.t. `root`, float32 and shaped like `root`.
    backend : IBackend
        Backend used to accumulate gradients that reach a tensor twice.
    retain_graph : bool, optional
        If False, every visited node releases its saved tensors after use.

    Returns
    -------
    dict[int, tuple[Tensor, Tensor]]
        Maps ``id(tensor)`` to ``(tensor, gradient)`` for every tensor that
        requires gradients and received one (including `root`).

    Raises
    ------
    RuntimeError
        If a gradient rule does not provide a thunk for an input requiring
        gradients, returns a gradient whose shape differs from its input, or
        was already released.
    """
    grads: Dict[int, Tensor] = {id(root): seed}
    tensors: Dict[int, Tensor] = {id(root): root}

    for t in reversed(_topological_order(root)):
        node = t._get_node()
        if node is None:
            continue
        dy = grads.get(id(t))
        if dy is None:
            # No gradient flowing to this node; skip
            continue

        thunks = node.gradient_thunks(dy)
        for name, x in node.inputs.items():
            if not x.requires_grad:
                continue
            thunk = thunks.get(name)
            if thunk is None:
                raise RuntimeError(
                    f"Cannot compute gradient: gradient function not found for "
                    f"input '{name}' of '{node.op_label}'."
                )
            dx = thunk()
            if tuple(dx.shape) != tuple(x.shape):
                raise RuntimeError(
                    f"Error in gradient for op {node.op_label}. The gradient of "
                    f"input '{name}' must have the same shape as the input: "
                    f"expected {x.shape}, got {dx.shape}."
                )
            if dx.dtype is not DType.FLOAT32:
                dx = backend.cast(dx, DType.FLOAT32)

            pid = id(x)
            tensors[pid] = x
            if pid in grads:
                grads[pid] = backend.add(grads[pid], dx)
            else:
                grads[pid] = dx

        logger.debug("backprop through %s (out_shape=%s)", node.op_label, node.out_shape)
        if not retain_graph:
            node.release()

    return {tid: (tensors[tid], g) for tid, g in grads.items()}

from typing import Callable, Mapping, Optional
from dataclasses import dataclass, field

from ...domain._function import GradientFn, GradientThunk
from ...domain._tensor import ITensor


@dataclass
class Node:
    """
    Gradient record attached to a Tensor produced by a differentiable operator.

    A `Node` is created by `Engine.run_kernel` for each forward call whose
    inputs require gradients, and is consumed by the reverse-mode traversal.

    Attributes
    ----------
    op_label : str
        Kernel label of the operator that produced the output (e.g., "Mul").
    inputs : Mapping[str, ITensor]
        Named operator inputs (e.g., ``{"a": ..., "b": ...}``). Gradients are
        produced for these tensors during the backward pass.
    gradient_fn : Optional[GradientFn]
        Maps ``(dy, saved_tensors)`` to one lazy thunk per input name. Set to
        None once the node is released.
    saved_tensors : list[ITensor]
        Tensors explicitly saved by the forward function for the gradient rule.
        These are the only tensors retained beyond the forward call.
    out_shape : tuple[int, ...]
        Shape of the output tensor; the upstream gradient must have this shape.
    """

    op_label: str
    inputs: Mapping[str, ITensor]
    gradient_fn: Optional[GradientFn]
    saved_tensors: list = field(default_factory=list)
    out_shape: tuple = ()

    @property
    def released(self) -> bool:
        return self.gradient_fn is None

    def gradient_thunks(self, dy: ITensor) -> Mapping[str, GradientThunk]:
        """
        Apply the gradient rule to the upstream gradient.

        Parameters
        ----------
        dy : ITensor
            Gradient w.r.t. the output, shaped like `out_shape`.

        Returns
        -------
        Mapping[str, Callable[[], ITensor]]
            One zero-argument callable per input name. Nothing is computed
            until a thunk is called.

        Raises
        ------
        RuntimeError
            If the node was already released by a previous backward pass.
        """
        if self.gradient_fn is None:
            raise RuntimeError(
                f"Trying to backward through the graph of '{self.op_label}' a "
                "second time; its saved tensors were released. Pass "
                "retain_graph=True to the first backward call."
            )
        return self.gradient_fn(dy, tuple(self.saved_tensors))

    def release(self) -> None:
        """Drop the saved tensors and the gradient rule."""
        self.saved_tensors.clear()
        self.gradient_fn = None


def make_save_fn(sink: list) -> Callable[..., None]:
    """
    Build the ``save(*tensors)`` callback handed to forward functions.

    Parameters
    ----------
    sink : list
        List that receives every saved tensor, in call order.
    """

    def save(*tensors: ITensor) -> None:
        # accepts save(a, b) as well as save([a, b])
        if len(tensors) == 1 and isinstance(tensors[0], (list, tuple)):
            tensors = tuple(tensors[0])
        sink.extend(tensors)

    return save

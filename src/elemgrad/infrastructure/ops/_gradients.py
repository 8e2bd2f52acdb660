"""
Un-broadcasting helpers shared by binary gradient rules.

If an input of shape ``in_shape`` was broadcast to ``out_shape`` in the
forward pass, its gradient is the output-shaped partial derivative summed
over the reduction axes and reshaped back to ``in_shape``. The reshape is
always applied: summation removes axes entirely, while a stretched size-1
axis must survive as a size-1 dimension.
"""

from typing import Sequence

from ...domain._backend import IBackend
from ...domain._dtype import DType
from ...domain._tensor import ITensor
from ...domain.utils._broadcast import get_reduction_axes


def reduce_to_shape(
    backend: IBackend,
    grad: ITensor,
    in_shape: Sequence[int],
    out_shape: Sequence[int],
) -> ITensor:
    """
    Reduce an output-shaped gradient to an input's pre-broadcast shape.

    Parameters
    ----------
    backend : IBackend
        Backend providing ``sum`` and ``reshape``.
    grad : ITensor
        Partial derivative shaped like `out_shape`.
    in_shape : Sequence[int]
        Original input shape.
    out_shape : Sequence[int]
        Broadcast output shape.

    Returns
    -------
    ITensor
        Gradient with shape exactly `in_shape`.

    Examples
    --------
    A ``(1, 3)`` input broadcast to ``(4, 3)``: the ``(4, 3)`` gradient is
    summed over axis 0 to ``(3,)`` and reshaped to ``(1, 3)``.
    """
    axes = get_reduction_axes(in_shape, out_shape)
    # a size-1 input stretched over an empty axis sums to a single zero
    offset = len(out_shape) - len(in_shape)
    axes = sorted(
        set(axes)
        | {offset + i for i, d in enumerate(in_shape) if d == 1 and out_shape[offset + i] == 0}
    )
    if axes:
        grad = backend.sum(grad, axes)
    return backend.reshape(grad, tuple(in_shape))


def to_float(backend: IBackend, x: ITensor) -> ITensor:
    return backend.cast(x, DType.FLOAT32)


def float_scalar(backend: IBackend, value: float) -> ITensor:
    return backend.make_tensor(value, (), DType.FLOAT32)

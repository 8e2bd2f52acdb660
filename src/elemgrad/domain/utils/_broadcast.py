"""
Broadcasting rules for elementwise binary operators.

Two shapes are broadcast-compatible when, aligned at their trailing
dimension (the shorter shape conceptually left-padded with ones), every pair
of sizes is equal or one of them is 1. This module provides:

- `assert_and_get_broadcast_shape`: validate two shapes and compute the
  output shape of a broadcast binary operation.
- `reduction_axes` / `get_reduction_axes`: the output axes an input was
  stretched along, i.e. the axes an output-shaped gradient must be summed
  over before it is reshaped back to the input's shape.
- `get_broadcast_dims`: the same information indexed in the input's own rank.

Everything here is pure shape arithmetic on tuples of ints, so it is shared
by every backend.
"""

from __future__ import annotations

from typing import Sequence

from .._errors import BroadcastIncompatibleError

Shape = tuple[int, ...]


def as_shape(shape: Sequence[int]) -> Shape:
    """
    Normalize a shape-like sequence to a tuple of non-negative ints.

    Raises
    ------
    ValueError
        If any dimension is negative.
    """
    out = tuple(int(d) for d in shape)
    for i, d in enumerate(out):
        if d < 0:
            raise ValueError(f"Invalid shape {list(shape)}: negative size at axis {i}")
    return out


def assert_and_get_broadcast_shape(
    shape_a: Sequence[int], shape_b: Sequence[int]
) -> Shape:
    """
    Compute the broadcast output shape of two operand shapes.

    Shapes are aligned at the trailing dimension. For each aligned pair the
    output takes the non-1 size (1 if both are 1). Leading dimensions of the
    longer shape pass through unchanged.

    Parameters
    ----------
    shape_a : Sequence[int]
        Shape of the first operand.
    shape_b : Sequence[int]
        Shape of the second operand.

    Returns
    -------
    tuple[int, ...]
        The broadcast output shape.

    Raises
    ------
    BroadcastIncompatibleError
        If an aligned pair differs and neither size is 1. The error reports
        the first conflicting axis scanning from the trailing end, indexed in
        the output rank.

    Examples
    --------
    >>> assert_and_get_broadcast_shape((4, 1, 3), (2, 1))
    (4, 2, 3)
    """
    a = as_shape(shape_a)
    b = as_shape(shape_b)
    rank = max(len(a), len(b))

    result: list[int] = []
    for i in range(rank):
        a_dim = a[len(a) - i - 1] if i < len(a) else 1
        b_dim = b[len(b) - i - 1] if i < len(b) else 1
        if a_dim == 1:
            result.append(b_dim)
        elif b_dim == 1 or a_dim == b_dim:
            result.append(a_dim)
        else:
            raise BroadcastIncompatibleError(a, b, axis=rank - i - 1)
    return tuple(reversed(result))


def reduction_axes(in_shape: Sequence[int], out_shape: Sequence[int]) -> set[int]:
    """
    Return the output axes along which `in_shape` was broadcast.

    An output axis is a reduction axis when the input has no dimension there
    (rank padding) or when the input's size there is 1 while the output's
    size is greater than 1. Summing an output-shaped gradient over these axes
    and reshaping the result to `in_shape` recovers the input's gradient.

    Parameters
    ----------
    in_shape : Sequence[int]
        Original (pre-broadcast) input shape.
    out_shape : Sequence[int]
        Broadcast output shape.

    Returns
    -------
    set[int]
        Reduction axes, indexed in the output rank.

    Examples
    --------
    >>> reduction_axes((1, 3), (4, 3))
    {0}
    >>> reduction_axes((3,), (2, 4, 3))
    {0, 1}
    """
    in_s = as_shape(in_shape)
    out_s = as_shape(out_shape)
    if len(in_s) > len(out_s):
        raise ValueError(
            f"Input rank {len(in_s)} exceeds output rank {len(out_s)} "
            f"({list(in_s)} vs {list(out_s)})"
        )

    axes: set[int] = set()
    for i in range(len(out_s)):
        out_axis = len(out_s) - i - 1
        out_dim = out_s[out_axis]
        if i >= len(in_s):
            axes.add(out_axis)
            continue
        in_dim = in_s[len(in_s) - i - 1]
        if in_dim == 1 and out_dim > 1:
            axes.add(out_axis)
    return axes


def get_reduction_axes(in_shape: Sequence[int], out_shape: Sequence[int]) -> list[int]:
    """Sorted-list form of `reduction_axes`, convenient for reduce kernels."""
    return sorted(reduction_axes(in_shape, out_shape))


def get_broadcast_dims(in_shape: Sequence[int], out_shape: Sequence[int]) -> list[int]:
    """
    Return the input axes (in the input's own rank) that were stretched.

    Unlike `reduction_axes`, rank-padding axes are not reported because they
    do not exist in the input.

    Examples
    --------
    >>> get_broadcast_dims((1, 3), (5, 4, 3))
    [0]
    """
    in_s = as_shape(in_shape)
    out_s = as_shape(out_shape)
    in_rank = len(in_s)
    dims: list[int] = []
    for i in range(in_rank):
        dim = in_rank - 1 - i
        a = in_s[dim]
        b = out_s[len(out_s) - 1 - i] if i < len(out_s) else 1
        if b > 1 and a == 1:
            dims.insert(0, dim)
    return dims

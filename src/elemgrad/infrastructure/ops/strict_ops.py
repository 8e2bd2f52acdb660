"""
Deprecated strict (non-broadcasting) operator variants.

Each ``<op>_strict`` emits a `DeprecationWarning` (unless disabled through
``disable_deprecation_warnings``), requires both operands to have identical
shapes, then delegates to the broadcasting operator. The result and gradient
are exactly those of the delegate.
"""

from __future__ import annotations

from typing import Callable

from ...domain._errors import ShapeMismatchError
from .._deprecation import deprecation_warn
from ..engine import Engine
from ..tensor._tensor import Tensor
from . import arithmetic_ops, binary_ops
from ._normalize import TensorLike, convert_to_tensor
from ._operation import op

_DEPRECATION_MSG = (
    "strict variants of ops have been deprecated and will be removed in future"
)


def strict_variant(delegate: Callable[..., Tensor], name: str) -> Callable[..., Tensor]:
    """
    Build the strict operator named `name` on top of `delegate`.

    Parameters
    ----------
    delegate : Callable[..., Tensor]
        Public broadcasting operator accepting ``(a, b, *, engine=...)``.
    name : str
        Public name of the strict operator (e.g., "mul_strict").

    Returns
    -------
    Callable[..., Tensor]
        The wrapped strict operator.

    Notes
    -----
    The deprecation warning fires once per call, before the operands are
    validated, so it is emitted even for calls that then fail.
    """

    def impl(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
        deprecation_warn(_DEPRECATION_MSG, stacklevel=4)
        a_t = convert_to_tensor(a, "a", name, engine=engine)
        b_t = convert_to_tensor(b, "b", name, engine=engine)
        if tuple(a_t.shape) != tuple(b_t.shape):
            raise ShapeMismatchError(a_t.shape, b_t.shape, name)
        return delegate(a_t, b_t, engine=engine)

    impl.__name__ = name + "_"
    impl.__qualname__ = name + "_"
    impl.__doc__ = (
        f"Strict version of ``{delegate.__name__}``: identical shapes are "
        f"required, no broadcasting.\n\n"
        f"Deprecated; use ``{delegate.__name__}`` instead."
    )
    return op(impl)


add_strict = strict_variant(arithmetic_ops.add, "add_strict")
sub_strict = strict_variant(arithmetic_ops.sub, "sub_strict")
mul_strict = strict_variant(binary_ops.mul, "mul_strict")
div_strict = strict_variant(arithmetic_ops.div, "div_strict")
mod_strict = strict_variant(binary_ops.mod, "mod_strict")
minimum_strict = strict_variant(arithmetic_ops.minimum, "minimum_strict")
maximum_strict = strict_variant(arithmetic_ops.maximum, "maximum_strict")
squared_difference_strict = strict_variant(
    arithmetic_ops.squared_difference, "squared_difference_strict"
)
pow_strict = strict_variant(arithmetic_ops.pow, "pow_strict")

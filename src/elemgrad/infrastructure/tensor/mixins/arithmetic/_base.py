"""
Arithmetic mixin exposing the binary operators as Tensor methods.

This module declares :class:`TensorMixinArithmetic`, which gives `Tensor`
Python operator overloads (``*``, ``//``, ``%``, ``+``, ``-``, ``/``,
``**``) and chainable methods (``a.mul(b)``, ``a.atan2(b)``,
``a.mul_strict(b)``, ...).

The mixin holds no numerical logic. Every method forwards to the functional
operator of the same name in ``infrastructure.ops``, which normalizes the
operands, broadcasts them, dispatches the backend kernel through the receiver's
`engine` and attaches the gradient rule. Operator modules are imported inside
the methods because they themselves import `Tensor`.
"""

from typing import Any, Union
from abc import ABC

from .....domain._tensor import ITensor

Operand = Union["ITensor", int, float, bool, Any]
"""Anything `convert_to_tensor` accepts: tensors, scalars, nested sequences."""


class TensorMixinArithmetic(ABC):
    """
    Mixin providing elementwise binary operators with broadcasting.

    Notes
    -----
    - The right-hand operand may be any tensor-like value; it is converted on
      the receiver's engine.
    - Reflected operators (``__rmul__`` etc.) place the literal operand first
      so that non-commutative operators keep their argument order.
    - Strict chain methods reject mismatched shapes and emit a
      `DeprecationWarning`.
    """

    # ----------------------------
    # Multiplication
    # ----------------------------
    def __mul__(self, other: Operand) -> "ITensor":
        """
        Elementwise multiplication with broadcasting.

        Notes
        -----
        Backward rule (before un-broadcasting):
        - ``d(a * b) / da = b``
        - ``d(a * b) / db = a``
        """
        from ....ops.binary_ops import mul

        return mul(self, other, engine=self.engine)

    def __rmul__(self, other: Operand) -> "ITensor":
        from ....ops.binary_ops import mul

        return mul(other, self, engine=self.engine)

    def mul(self, other: Operand) -> "ITensor":
        return self.__mul__(other)

    # ----------------------------
    # Floor division
    # ----------------------------
    def __floordiv__(self, other: Operand) -> "ITensor":
        """
        Elementwise division rounded down, with broadcasting.

        Notes
        -----
        Backward rule (before un-broadcasting):
        - ``da = dy / b``
        - ``db = -dy * a / b^2``
        """
        from ....ops.binary_ops import floor_div

        return floor_div(self, other, engine=self.engine)

    def __rfloordiv__(self, other: Operand) -> "ITensor":
        from ....ops.binary_ops import floor_div

        return floor_div(other, self, engine=self.engine)

    def floor_div(self, other: Operand) -> "ITensor":
        return self.__floordiv__(other)

    # ----------------------------
    # Modulo
    # ----------------------------
    def __mod__(self, other: Operand) -> "ITensor":
        """
        Elementwise remainder, ``floor(a / b) * b + mod(a, b) == a``.

        Notes
        -----
        Backward rule (before un-broadcasting):
        - ``da = dy``
        - ``db = -dy * floor(a / b)``
        """
        from ....ops.binary_ops import mod

        return mod(self, other, engine=self.engine)

    def __rmod__(self, other: Operand) -> "ITensor":
        from ....ops.binary_ops import mod

        return mod(other, self, engine=self.engine)

    def mod(self, other: Operand) -> "ITensor":
        return self.__mod__(other)

    def atan2(self, other: Operand) -> "ITensor":
        """
        Elementwise ``atan2(self, other)``.

        Notes
        -----
        Backward rule (before un-broadcasting):
        - ``da = dy * b / (a^2 + b^2)``
        - ``db = -dy * a / (a^2 + b^2)``
        """
        from ....ops.binary_ops import atan2

        return atan2(self, other, engine=self.engine)

    # ----------------------------
    # Addition / subtraction / true division / power
    # ----------------------------
    def __add__(self, other: Operand) -> "ITensor":
        from ....ops.arithmetic_ops import add

        return add(self, other, engine=self.engine)

    def __radd__(self, other: Operand) -> "ITensor":
        from ....ops.arithmetic_ops import add

        return add(other, self, engine=self.engine)

    def __sub__(self, other: Operand) -> "ITensor":
        from ....ops.arithmetic_ops import sub

        return sub(self, other, engine=self.engine)

    def __rsub__(self, other: Operand) -> "ITensor":
        from ....ops.arithmetic_ops import sub

        return sub(other, self, engine=self.engine)

    def __truediv__(self, other: Operand) -> "ITensor":
        """
        Elementwise division. Two int32 operands divide with flooring.
        """
        from ....ops.arithmetic_ops import div

        return div(self, other, engine=self.engine)

    def __rtruediv__(self, other: Operand) -> "ITensor":
        from ....ops.arithmetic_ops import div

        return div(other, self, engine=self.engine)

    def __pow__(self, other: Operand) -> "ITensor":
        from ....ops.arithmetic_ops import pow

        return pow(self, other, engine=self.engine)

    def __rpow__(self, other: Operand) -> "ITensor":
        from ....ops.arithmetic_ops import pow

        return pow(other, self, engine=self.engine)

    def minimum(self, other: Operand) -> "ITensor":
        from ....ops.arithmetic_ops import minimum

        return minimum(self, other, engine=self.engine)

    def maximum(self, other: Operand) -> "ITensor":
        from ....ops.arithmetic_ops import maximum

        return maximum(self, other, engine=self.engine)

    def squared_difference(self, other: Operand) -> "ITensor":
        from ....ops.arithmetic_ops import squared_difference

        return squared_difference(self, other, engine=self.engine)

    # ----------------------------
    # Deprecated strict variants
    # ----------------------------
    def add_strict(self, other: Operand) -> "ITensor":
        from ....ops.strict_ops import add_strict

        return add_strict(self, other, engine=self.engine)

    def sub_strict(self, other: Operand) -> "ITensor":
        from ....ops.strict_ops import sub_strict

        return sub_strict(self, other, engine=self.engine)

    def mul_strict(self, other: Operand) -> "ITensor":
        from ....ops.strict_ops import mul_strict

        return mul_strict(self, other, engine=self.engine)

    def div_strict(self, other: Operand) -> "ITensor":
        from ....ops.strict_ops import div_strict

        return div_strict(self, other, engine=self.engine)

    def mod_strict(self, other: Operand) -> "ITensor":
        from ....ops.strict_ops import mod_strict

        return mod_strict(self, other, engine=self.engine)

    def minimum_strict(self, other: Operand) -> "ITensor":
        from ....ops.strict_ops import minimum_strict

        return minimum_strict(self, other, engine=self.engine)

    def maximum_strict(self, other: Operand) -> "ITensor":
        from ....ops.strict_ops import maximum_strict

        return maximum_strict(self, other, engine=self.engine)

    def squared_difference_strict(self, other: Operand) -> "ITensor":
        from ....ops.strict_ops import squared_difference_strict

        return squared_difference_strict(self, other, engine=self.engine)

    def pow_strict(self, other: Operand) -> "ITensor":
        from ....ops.strict_ops import pow_strict

        return pow_strict(self, other, engine=self.engine)

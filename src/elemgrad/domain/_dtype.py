"""
Element dtype enumeration and promotion rules.

This module defines :class:`DType`, the fixed set of numeric kinds a tensor
can hold, together with the upcast table used when two operands of different
dtypes meet in a binary operator.

The domain layer does not import NumPy; the mapping from `DType` to a
concrete array dtype lives in the backend.
"""

from __future__ import annotations

from enum import Enum
from typing import Union


class DType(Enum):
    """
    Enumeration of supported tensor element kinds.

    Attributes
    ----------
    BOOL : DType
        Boolean values.
    INT32 : DType
        32-bit signed integers.
    FLOAT32 : DType
        32-bit IEEE floats. This is the default dtype for numeric literals and
        the dtype of every gradient.
    """

    BOOL = "bool"
    INT32 = "int32"
    FLOAT32 = "float32"

    def __str__(self) -> str:
        return self.value

    @property
    def is_floating(self) -> bool:
        return self is DType.FLOAT32

    @classmethod
    def parse(cls, value: Union["DType", str]) -> "DType":
        """
        Normalize a user-facing dtype spelling to a `DType` member.

        Parameters
        ----------
        value : DType | str
            A `DType` member or one of "bool", "int32", "float32".

        Returns
        -------
        DType
            The matching enum member.

        Raises
        ------
        ValueError
            If `value` does not name a supported dtype.
        """
        if isinstance(value, DType):
            return value
        try:
            return cls(str(value))
        except ValueError:
            raise ValueError(
                f"Unsupported dtype {value!r}. Expected one of "
                f"{[d.value for d in cls]}."
            ) from None


# Row: dtype of the first operand. Column: dtype of the second operand.
_UPCAST: dict[DType, dict[DType, DType]] = {
    DType.BOOL: {
        DType.BOOL: DType.BOOL,
        DType.INT32: DType.INT32,
        DType.FLOAT32: DType.FLOAT32,
    },
    DType.INT32: {
        DType.BOOL: DType.INT32,
        DType.INT32: DType.INT32,
        DType.FLOAT32: DType.FLOAT32,
    },
    DType.FLOAT32: {
        DType.BOOL: DType.FLOAT32,
        DType.INT32: DType.FLOAT32,
        DType.FLOAT32: DType.FLOAT32,
    },
}


def upcast_type(a: DType, b: DType) -> DType:
    """
    Return the common dtype two operands are promoted to.

    The table is symmetric: ``upcast_type(a, b) == upcast_type(b, a)``.
    Integer and boolean operands combined with a float become float32;
    boolean combined with int32 becomes int32.

    Parameters
    ----------
    a : DType
        Dtype of the first operand.
    b : DType
        Dtype of the second operand.

    Returns
    -------
    DType
        The promoted dtype.
    """
    return _UPCAST[DType.parse(a)][DType.parse(b)]

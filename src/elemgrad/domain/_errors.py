"""
Operator- and execution-related exceptions for elemgrad.

This module defines the custom errors raised by the operator core when an
input cannot be interpreted, when operand shapes cannot be combined, or when
an operation is requested on an unsupported device or dtype.

All errors are raised at the failing call site, before any gradient node is
attached to a result, so a failed call never leaves autograd state behind.
Each exception keeps the offending values as attributes to aid debugging and
testing.
"""

from typing import Optional, Sequence


def _fmt_shape(shape: Sequence[int]) -> str:
    return "[" + ",".join(str(int(d)) for d in shape) + "]"


class InvalidInputError(ValueError):
    """
    Raised when an operator argument cannot be converted into a tensor.

    Typical causes are non-numeric values (strings, ``None``, arbitrary
    objects) and ragged nested sequences that do not describe a rectangular
    array.

    Attributes
    ----------
    arg_name : str
        Name of the argument inside the operator (e.g., "a", "b").
    op_name : str
        Name of the operator that received the argument (e.g., "mul").
    """

    def __init__(self, message: str, *, arg_name: str = "", op_name: str = "") -> None:
        """
        Initialize the InvalidInputError.

        Parameters
        ----------
        message : str
            Human-readable description of the conversion failure.
        arg_name : str, optional
            Argument name that failed conversion.
        op_name : str, optional
            Operator name that received the argument.
        """
        super().__init__(message)
        self.arg_name = arg_name
        self.op_name = op_name


class BroadcastIncompatibleError(ValueError):
    """
    Raised when two shapes cannot be broadcast together.

    Attributes
    ----------
    shape_a : tuple[int, ...]
        First operand shape.
    shape_b : tuple[int, ...]
        Second operand shape.
    axis : int
        First conflicting axis, indexed in the broadcast output rank.
    """

    def __init__(
        self, shape_a: Sequence[int], shape_b: Sequence[int], axis: int
    ) -> None:
        """
        Initialize the BroadcastIncompatibleError.

        Parameters
        ----------
        shape_a : Sequence[int]
            First operand shape.
        shape_b : Sequence[int]
            Second operand shape.
        axis : int
            First conflicting axis in the output rank.
        """
        super().__init__(
            f"Operands could not be broadcast together with shapes "
            f"{_fmt_shape(shape_a)} and {_fmt_shape(shape_b)} "
            f"(conflict at axis {axis})."
        )
        self.shape_a = tuple(shape_a)
        self.shape_b = tuple(shape_b)
        self.axis = axis


class ShapeMismatchError(ValueError):
    """
    Raised by strict (non-broadcasting) operators when shapes differ.
    """

    def __init__(
        self, shape_a: Sequence[int], shape_b: Sequence[int], op_name: str
    ) -> None:
        """
        Initialize the ShapeMismatchError.

        Parameters
        ----------
        shape_a : Sequence[int]
            Shape of the first operand.
        shape_b : Sequence[int]
            Shape of the second operand.
        op_name : str
            Strict operator that rejected the operands (e.g., "mul_strict").
        """
        super().__init__(
            f"Error in {op_name}: Shapes {_fmt_shape(shape_a)} and "
            f"{_fmt_shape(shape_b)} must match"
        )
        self.shape_a = tuple(shape_a)
        self.shape_b = tuple(shape_b)
        self.op_name = op_name


class DeviceMismatchError(RuntimeError):
    """
    Raised when an operation is attempted between tensors on different devices.

    This error is used to prevent undefined behavior when combining tensors
    that reside on a device other than the one the active backend executes on.
    """

    def __init__(self, device_a: str, device_b: str) -> None:
        """
        Initialize the DeviceMismatchError.

        Parameters
        ----------
        device_a : str
            Device identifier of the first operand (or of the backend).
        device_b : str
            Device identifier of the second operand.
        """
        super().__init__(f"Device mismatch: '{device_a}' vs '{device_b}'.")
        self.device_a = device_a
        self.device_b = device_b


class UnsupportedDTypeError(TypeError):
    """
    Raised by a backend kernel that does not support an operand dtype.

    Attributes
    ----------
    op : str
        Kernel name (e.g., "mod", "atan2").
    dtype : str
        Name of the rejected dtype.
    """

    def __init__(self, op: str, dtype: str, reason: Optional[str] = None) -> None:
        msg = f"{op} does not support dtype '{dtype}'."
        if reason:
            msg = f"{msg} {reason}"
        super().__init__(msg)
        self.op = op
        self.dtype = dtype

from .arithmetic_ops import add, div, maximum, minimum, pow, squared_difference, sub
from .binary_ops import atan2, floor_div, mod, mul
from .creation import ones, scalar, tensor, zeros
from ._normalize import cast, convert_to_tensor, infer_shape, make_types_match
from ._operation import op
from .strict_ops import (
    add_strict,
    div_strict,
    maximum_strict,
    minimum_strict,
    mod_strict,
    mul_strict,
    pow_strict,
    squared_difference_strict,
    sub_strict,
)

__all__ = [
    "add",
    "sub",
    "div",
    "minimum",
    "maximum",
    "squared_difference",
    "pow",
    "mul",
    "floor_div",
    "mod",
    "atan2",
    "add_strict",
    "sub_strict",
    "mul_strict",
    "div_strict",
    "mod_strict",
    "minimum_strict",
    "maximum_strict",
    "squared_difference_strict",
    "pow_strict",
    "tensor",
    "scalar",
    "zeros",
    "ones",
    "cast",
    "convert_to_tensor",
    "infer_shape",
    "make_types_match",
    "op",
]

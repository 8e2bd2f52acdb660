"""
elemgrad: broadcasting elementwise binary operators with reverse-mode
automatic differentiation on a pluggable backend.

Typical use::

    import elemgrad as eg

    a = eg.tensor([[1.0, 2.0], [3.0, 4.0]], requires_grad=True)
    b = eg.tensor([10.0, 20.0], requires_grad=True)
    y = eg.mul(a, b)
    y.backward()
    a.grad.tolist()  # [[10.0, 20.0], [10.0, 20.0]]
    b.grad.tolist()  # [4.0, 6.0]
"""

from .domain._dtype import DType, upcast_type
from .domain._errors import (
    BroadcastIncompatibleError,
    DeviceMismatchError,
    InvalidInputError,
    ShapeMismatchError,
    UnsupportedDTypeError,
)
from .domain.device._device import Device
from .domain.utils._broadcast import (
    assert_and_get_broadcast_shape,
    get_broadcast_dims,
    get_reduction_axes,
    reduction_axes,
)
from .infrastructure._deprecation import (
    disable_deprecation_warnings,
    enable_deprecation_warnings,
)
from .infrastructure._environment import env
from .infrastructure.backend import NumpyBackend
from .infrastructure.engine import Engine, current_engine
from .infrastructure.ops import (
    add,
    add_strict,
    atan2,
    cast,
    convert_to_tensor,
    div,
    div_strict,
    floor_div,
    make_types_match,
    maximum,
    maximum_strict,
    minimum,
    minimum_strict,
    mod,
    mod_strict,
    mul,
    mul_strict,
    ones,
    pow,
    pow_strict,
    scalar,
    squared_difference,
    squared_difference_strict,
    sub,
    sub_strict,
    tensor,
    zeros,
)
from .infrastructure.tensor import Tensor

__version__ = "0.1.0"

"""
Companion broadcasting binary operators.

Addition, subtraction, true division, elementwise minimum/maximum, squared
difference and power. They share the normalization, broadcasting and
gradient-reduction pattern of ``binary_ops``.
"""

from __future__ import annotations

from ...domain._dtype import DType
from ...domain.utils._broadcast import assert_and_get_broadcast_shape
from ..engine import Engine
from ..tensor._tensor import Tensor
from ._gradients import float_scalar, reduce_to_shape, to_float
from ._normalize import TensorLike, convert_to_tensor, make_types_match
from ._operation import op
from .binary_ops import floor_div


def _prepare(a: TensorLike, b: TensorLike, op_name: str, engine: Engine):
    a_t = convert_to_tensor(a, "a", op_name, engine=engine)
    b_t = convert_to_tensor(b, "b", op_name, engine=engine)
    a_t, b_t = make_types_match(a_t, b_t, engine=engine)
    out_shape = assert_and_get_broadcast_shape(a_t.shape, b_t.shape)
    return a_t, b_t, out_shape


def add_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """
    Add two tensors elementwise, ``a + b``. Supports broadcasting.

    Examples
    --------
    >>> add([1, 2, 3, 4], [10, 20, 30, 40]).tolist()
    [11.0, 22.0, 33.0, 44.0]
    """
    a_t, b_t, out_shape = _prepare(a, b, "add", engine)

    def forward(backend, save):
        save(a_t, b_t)
        return backend.add(a_t, b_t)

    def gradient(dy, saved):
        a_s, b_s = saved
        backend = engine.backend
        return {
            "a": lambda: reduce_to_shape(backend, dy, a_s.shape, out_shape),
            "b": lambda: reduce_to_shape(backend, dy, b_s.shape, out_shape),
        }

    return engine.run_kernel(forward, {"a": a_t, "b": b_t}, gradient, "Add")


def sub_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """Subtract two tensors elementwise, ``a - b``. Supports broadcasting."""
    a_t, b_t, out_shape = _prepare(a, b, "sub", engine)

    def forward(backend, save):
        save(a_t, b_t)
        return backend.sub(a_t, b_t)

    def gradient(dy, saved):
        a_s, b_s = saved
        backend = engine.backend
        return {
            "a": lambda: reduce_to_shape(backend, dy, a_s.shape, out_shape),
            "b": lambda: reduce_to_shape(backend, backend.neg(dy), b_s.shape, out_shape),
        }

    return engine.run_kernel(forward, {"a": a_t, "b": b_t}, gradient, "Sub")


def div_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """
    Divide two tensors elementwise, ``a / b``. Supports broadcasting.

    If both operands are ``int32`` after type promotion, the result is
    ``floor_div(a, b)``; otherwise it is true division in float32.

    Examples
    --------
    >>> div([1, 4, 9, 16], [1, 2, 3, 4]).tolist()
    [1.0, 2.0, 3.0, 4.0]
    """
    a_t = convert_to_tensor(a, "a", "div", engine=engine)
    b_t = convert_to_tensor(b, "b", "div", engine=engine)
    a_t, b_t = make_types_match(a_t, b_t, engine=engine)
    if a_t.dtype is DType.INT32 and b_t.dtype is DType.INT32:
        return floor_div(a_t, b_t, engine=engine)
    out_shape = assert_and_get_broadcast_shape(a_t.shape, b_t.shape)

    def forward(backend, save):
        save(a_t, b_t)
        return backend.real_divide(a_t, b_t)

    def gradient(dy, saved):
        a_s, b_s = saved
        backend = engine.backend

        def der_a():
            res = backend.real_divide(dy, to_float(backend, b_s))
            return reduce_to_shape(backend, res, a_s.shape, out_shape)

        def der_b():
            fb = to_float(backend, b_s)
            res = backend.multiply(dy, to_float(backend, a_s))
            res = backend.neg(backend.real_divide(res, backend.square(fb)))
            return reduce_to_shape(backend, res, b_s.shape, out_shape)

        return {"a": der_a, "b": der_b}

    return engine.run_kernel(forward, {"a": a_t, "b": b_t}, gradient, "RealDiv")


def minimum_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """
    Elementwise minimum of `a` and `b`. Supports broadcasting.

    Notes
    -----
    Ties route the gradient to `a`.
    """
    a_t, b_t, out_shape = _prepare(a, b, "minimum", engine)

    def forward(backend, save):
        save(a_t, b_t)
        return backend.minimum(a_t, b_t)

    def gradient(dy, saved):
        a_s, b_s = saved
        backend = engine.backend

        def der_a():
            mask = to_float(backend, backend.less_equal(a_s, b_s))
            return reduce_to_shape(backend, backend.multiply(dy, mask), a_s.shape, out_shape)

        def der_b():
            mask = to_float(backend, backend.greater(a_s, b_s))
            return reduce_to_shape(backend, backend.multiply(dy, mask), b_s.shape, out_shape)

        return {"a": der_a, "b": der_b}

    return engine.run_kernel(forward, {"a": a_t, "b": b_t}, gradient, "Minimum")


def maximum_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """
    Elementwise maximum of `a` and `b`. Supports broadcasting.

    Notes
    -----
    Ties route the gradient to `a`.
    """
    a_t, b_t, out_shape = _prepare(a, b, "maximum", engine)

    def forward(backend, save):
        save(a_t, b_t)
        return backend.maximum(a_t, b_t)

    def gradient(dy, saved):
        a_s, b_s = saved
        backend = engine.backend

        def der_a():
            mask = to_float(backend, backend.greater_equal(a_s, b_s))
            return reduce_to_shape(backend, backend.multiply(dy, mask), a_s.shape, out_shape)

        def der_b():
            mask = to_float(backend, backend.less(a_s, b_s))
            return reduce_to_shape(backend, backend.multiply(dy, mask), b_s.shape, out_shape)

        return {"a": der_a, "b": der_b}

    return engine.run_kernel(forward, {"a": a_t, "b": b_t}, gradient, "Maximum")


def squared_difference_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """
    Elementwise ``(a - b) * (a - b)``. Supports broadcasting.

    Examples
    --------
    >>> squared_difference([1, 4, 3, 16], [1, 2, 9, 4]).tolist()
    [0.0, 4.0, 36.0, 144.0]
    """
    a_t, b_t, out_shape = _prepare(a, b, "squared_difference", engine)

    def forward(backend, save):
        save(a_t, b_t)
        return backend.squared_difference(a_t, b_t)

    def gradient(dy, saved):
        a_s, b_s = saved
        backend = engine.backend

        def twice_diff():
            diff = backend.sub(to_float(backend, a_s), to_float(backend, b_s))
            return backend.multiply(float_scalar(backend, 2.0), diff)

        def der_a():
            res = backend.multiply(dy, twice_diff())
            return reduce_to_shape(backend, res, a_s.shape, out_shape)

        def der_b():
            res = backend.neg(backend.multiply(dy, twice_diff()))
            return reduce_to_shape(backend, res, b_s.shape, out_shape)

        return {"a": der_a, "b": der_b}

    return engine.run_kernel(
        forward, {"a": a_t, "b": b_t}, gradient, "SquaredDifference"
    )


def pow_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """
    Elementwise power, ``a ** b``. Supports broadcasting.

    Examples
    --------
    >>> pow([[2, 3], [4, 5]], [[1, 2], [3, 0]]).tolist()
    [[2.0, 9.0], [64.0, 1.0]]

    Notes
    -----
    ``da = dy * b * a^(b - 1)``. ``db = dy * y * log(a)`` where ``a > 0``
    and 0 elsewhere.
    """
    a_t, b_t, out_shape = _prepare(a, b, "pow", engine)

    def forward(backend, save):
        save(a_t, b_t)
        return backend.pow(a_t, b_t)

    def gradient(dy, saved):
        a_s, b_s = saved
        backend = engine.backend

        def der_a():
            fa, fb = to_float(backend, a_s), to_float(backend, b_s)
            exp_minus_one = backend.sub(fb, float_scalar(backend, 1.0))
            res = backend.multiply(dy, backend.multiply(fb, backend.pow(fa, exp_minus_one)))
            return reduce_to_shape(backend, res, a_s.shape, out_shape)

        def der_b():
            fa = to_float(backend, a_s)
            positive = backend.greater(fa, float_scalar(backend, 0.0))
            log_base = backend.where(positive, backend.log(fa), backend.zeros_like(fa))
            y = to_float(backend, backend.pow(a_s, b_s))
            res = backend.multiply(dy, backend.multiply(y, log_base))
            return reduce_to_shape(backend, res, b_s.shape, out_shape)

        return {"a": der_a, "b": der_b}

    return engine.run_kernel(forward, {"a": a_t, "b": b_t}, gradient, "Pow")


add = op(add_)
sub = op(sub_)
div = op(div_)
minimum = op(minimum_)
maximum = op(maximum_)
squared_difference = op(squared_difference_)
pow = op(pow_)

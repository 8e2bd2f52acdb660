"""
Broadcasting binary operators: multiply, floor division, modulo, atan2.

Every operator here follows the same pattern:

1. normalize both arguments with `convert_to_tensor` and promote them to a
   common dtype with `make_types_match`;
2. compute the broadcast output shape (fails fast on incompatible shapes);
3. dispatch the backend kernel through `Engine.run_kernel`, saving exactly
   the operands the gradient rule needs;
4. provide a gradient rule returning one lazy thunk per input, each summing
   the output-shaped partial derivative over that input's reduction axes and
   reshaping it to the input's original shape.

Gradients are computed in float32 regardless of the operand dtype.
"""

from __future__ import annotations

from ...domain.utils._broadcast import assert_and_get_broadcast_shape
from ..engine import Engine
from ..tensor._tensor import Tensor
from ._gradients import reduce_to_shape, to_float
from ._normalize import TensorLike, convert_to_tensor, make_types_match
from ._operation import op


def mul_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """
    Multiply two tensors elementwise, ``a * b``. Supports broadcasting.

    Parameters
    ----------
    a : TensorLike
        First operand.
    b : TensorLike
        Second operand.

    Returns
    -------
    Tensor
        Product with the broadcast shape of `a` and `b`.

    Examples
    --------
    >>> mul([1, 2, 3, 4], [2, 3, 4, 5]).tolist()
    [2.0, 6.0, 12.0, 20.0]
    >>> mul([1, 2, 3, 4], 5).tolist()
    [5.0, 10.0, 15.0, 20.0]

    Notes
    -----
    ``da = dy * b`` and ``db = dy * a``, each un-broadcast to its input shape.
    """
    a_t = convert_to_tensor(a, "a", "mul", engine=engine)
    b_t = convert_to_tensor(b, "b", "mul", engine=engine)
    a_t, b_t = make_types_match(a_t, b_t, engine=engine)
    out_shape = assert_and_get_broadcast_shape(a_t.shape, b_t.shape)

    def forward(backend, save):
        res = backend.multiply(a_t, b_t)
        save(a_t, b_t)
        return res

    def gradient(dy, saved):
        a_s, b_s = saved
        backend = engine.backend

        def der_a():
            res = backend.multiply(dy, to_float(backend, b_s))
            return reduce_to_shape(backend, res, a_s.shape, out_shape)

        def der_b():
            res = backend.multiply(dy, to_float(backend, a_s))
            return reduce_to_shape(backend, res, b_s.shape, out_shape)

        return {"a": der_a, "b": der_b}

    return engine.run_kernel(forward, {"a": a_t, "b": b_t}, gradient, "Mul")


def floor_div_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """
    Divide two tensors elementwise and round down, ``floor(a / b)``.
    Supports broadcasting.

    Examples
    --------
    >>> floor_div([1, 4, 9, 16], [1, 2, 3, 4]).tolist()
    [1.0, 2.0, 3.0, 4.0]
    >>> floor_div([2, 4, 6, 8], 3).tolist()
    [0.0, 1.0, 2.0, 2.0]

    Notes
    -----
    The gradient is that of true division: ``da = dy / b`` and
    ``db = -dy * a / b^2``.
    """
    a_t = convert_to_tensor(a, "a", "floor_div", engine=engine)
    b_t = convert_to_tensor(b, "b", "floor_div", engine=engine)
    a_t, b_t = make_types_match(a_t, b_t, engine=engine)
    out_shape = assert_and_get_broadcast_shape(a_t.shape, b_t.shape)

    def forward(backend, save):
        res = backend.floor_div(a_t, b_t)
        save(a_t, b_t)
        return res

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

    return engine.run_kernel(forward, {"a": a_t, "b": b_t}, gradient, "FloorDiv")


def mod_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """
    Elementwise remainder of ``a / b``. Supports broadcasting.

    The result satisfies ``floor(a / b) * b + mod(a, b) == a`` and takes the
    sign of the divisor.

    Examples
    --------
    >>> mod([1, 4, 3, 16], [1, 2, 9, 4]).tolist()
    [0.0, 0.0, 3.0, 0.0]
    >>> mod([2, 4, 6, 8], 5).tolist()
    [2.0, 4.0, 1.0, 3.0]

    Notes
    -----
    ``mod`` has unit slope in `a` almost everywhere, so ``da = dy``.
    From the identity above, ``db = -dy * floor(a / b)``.
    """
    a_t = convert_to_tensor(a, "a", "mod", engine=engine)
    b_t = convert_to_tensor(b, "b", "mod", engine=engine)
    a_t, b_t = make_types_match(a_t, b_t, engine=engine)
    out_shape = assert_and_get_broadcast_shape(a_t.shape, b_t.shape)

    def forward(backend, save):
        res = backend.mod(a_t, b_t)
        save(a_t, b_t)
        return res

    def gradient(dy, saved):
        a_s, b_s = saved
        backend = engine.backend

        def der_a():
            return reduce_to_shape(backend, dy, a_s.shape, out_shape)

        def der_b():
            quotient = backend.floor(
                backend.real_divide(to_float(backend, a_s), to_float(backend, b_s))
            )
            res = backend.multiply(dy, backend.neg(quotient))
            return reduce_to_shape(backend, res, b_s.shape, out_shape)

        return {"a": der_a, "b": der_b}

    return engine.run_kernel(forward, {"a": a_t, "b": b_t}, gradient, "Mod")


def atan2_(a: TensorLike, b: TensorLike, *, engine: Engine) -> Tensor:
    """
    Elementwise arctangent of ``a / b`` using the signs of both arguments to
    pick the quadrant. Supports broadcasting. The result is float32.

    Examples
    --------
    >>> [round(v, 4) for v in atan2([1.0, 1.0, -1.0, 0.7], [2.0, 13.0, 3.5, 0.21]).tolist()]
    [0.4636, 0.0768, -0.2783, 1.2793]

    Notes
    -----
    With ``d = a^2 + b^2``: ``da = dy * b / d`` and ``db = -dy * a / d``.
    """
    a_t = convert_to_tensor(a, "a", "atan2", engine=engine)
    b_t = convert_to_tensor(b, "b", "atan2", engine=engine)
    a_t, b_t = make_types_match(a_t, b_t, engine=engine)
    out_shape = assert_and_get_broadcast_shape(a_t.shape, b_t.shape)

    def forward(backend, save):
        res = backend.atan2(a_t, b_t)
        save(a_t, b_t)
        return res

    def gradient(dy, saved):
        a_s, b_s = saved
        backend = engine.backend

        def denominator(fa, fb):
            return backend.add(backend.square(fa), backend.square(fb))

        def der_a():
            fa, fb = to_float(backend, a_s), to_float(backend, b_s)
            res = backend.multiply(dy, backend.real_divide(fb, denominator(fa, fb)))
            return reduce_to_shape(backend, res, a_s.shape, out_shape)

        def der_b():
            fa, fb = to_float(backend, a_s), to_float(backend, b_s)
            res = backend.neg(
                backend.multiply(dy, backend.real_divide(fa, denominator(fa, fb)))
            )
            return reduce_to_shape(backend, res, b_s.shape, out_shape)

        return {"a": der_a, "b": der_b}

    return engine.run_kernel(forward, {"a": a_t, "b": b_t}, gradient, "Atan2")


mul = op(mul_)
floor_div = op(floor_div_)
mod = op(mod_)
atan2 = op(atan2_)

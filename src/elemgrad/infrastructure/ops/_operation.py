"""
Operator wrapper turning an implementation function into a public operator.

Implementation functions are written with a trailing underscore and a
keyword-only ``engine`` parameter::

    def mul_(a, b, *, engine): ...

    mul = op(mul_)

The wrapper

- exposes the function under its public name (``mul``),
- resolves the engine (explicit ``engine=`` keyword, else the calling
  thread's `current_engine`),
- records the operator name on the engine's op stack for the duration of
  the call, popping it even when the call raises.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable

from typing_extensions import ParamSpec, TypeVar

from ..engine import resolve_engine

P = ParamSpec("P")
R = TypeVar("R")


def op(fn: Callable[P, R]) -> Callable[P, R]:
    """
    Wrap an operator implementation.

    Parameters
    ----------
    fn : Callable[P, R]
        Implementation named ``<opname>_`` accepting an ``engine`` keyword.

    Returns
    -------
    Callable[P, R]
        The public operator, named ``<opname>``, whose ``engine`` keyword is
        optional.

    Raises
    ------
    ValueError
        If `fn`'s name does not end with an underscore.
    """
    if not fn.__name__.endswith("_"):
        raise ValueError(
            f"The implementation of an op must end with '_', got {fn.__name__!r}"
        )
    op_name = fn.__name__[:-1]

    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        engine = resolve_engine(kwargs.pop("engine", None))
        with engine.op_scope(op_name):
            return fn(*args, engine=engine, **kwargs)

    wrapper.__name__ = op_name
    wrapper.__qualname__ = op_name
    return wrapper  # type: ignore[return-value]

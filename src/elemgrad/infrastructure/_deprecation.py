"""
Deprecation reporter used by legacy operator entry points.
"""

import warnings

from ._environment import env


def deprecation_warn(msg: str, *, stacklevel: int = 3) -> None:
    """
    Emit a `DeprecationWarning` unless deprecation warnings are disabled.

    Parameters
    ----------
    msg : str
        Description of the deprecated behavior.
    stacklevel : int, optional
        Passed to `warnings.warn` so the warning points at user code.
    """
    if not env().get_bool("DEPRECATION_WARNINGS_ENABLED"):
        return
    warnings.warn(
        msg
        + " You can disable deprecation warnings with "
        "elemgrad.disable_deprecation_warnings().",
        DeprecationWarning,
        stacklevel=stacklevel,
    )


def disable_deprecation_warnings() -> None:
    env().set("DEPRECATION_WARNINGS_ENABLED", False)


def enable_deprecation_warnings() -> None:
    env().set("DEPRECATION_WARNINGS_ENABLED", True)

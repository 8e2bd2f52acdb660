"""
Process-wide feature flags.

Flags are registered with a default, may be overridden by an environment
variable read on first access, and may be set programmatically afterwards.
The flags are read by the engine (debug checks) and by the deprecation
reporter; they carry no per-call state.

Recognized flags
----------------
DEBUG
    ``ELEMGRAD_DEBUG``. When enabled, the engine logs every dispatched kernel
    and inspects float results for NaN values.
DEPRECATION_WARNINGS_ENABLED
    ``ELEMGRAD_DEPRECATION_WARNINGS``. When disabled, strict-variant operators
    stop emitting `DeprecationWarning`.
"""

from __future__ import annotations

import os
import threading
from typing import Dict, Optional

_FALSE_STRINGS = ("", "0", "false", "no", "off")


class Environment:
    """
    Registry of boolean feature flags backed by environment variables.

    Notes
    -----
    - Environment variables are consulted lazily, the first time a flag is
      read, and cached until `reset` is called.
    - Access is guarded by a lock so flags can be toggled from any thread.
    """

    def __init__(self) -> None:
        self._defaults: Dict[str, bool] = {}
        self._env_vars: Dict[str, str] = {}
        self._values: Dict[str, bool] = {}
        self._lock = threading.Lock()

    def register_flag(self, name: str, default: bool, env_var: Optional[str] = None) -> None:
        """
        Register a flag.

        Parameters
        ----------
        name : str
            Flag name, e.g. ``"DEBUG"``.
        default : bool
            Value used when the environment variable is unset.
        env_var : Optional[str], optional
            Environment variable that overrides the default.
        """
        with self._lock:
            self._defaults[name] = bool(default)
            if env_var:
                self._env_vars[name] = env_var
            self._values.pop(name, None)

    def get_bool(self, name: str) -> bool:
        with self._lock:
            if name not in self._defaults:
                raise KeyError(f"Unknown flag {name!r}")
            if name not in self._values:
                self._values[name] = self._evaluate(name)
            return self._values[name]

    def set(self, name: str, value: bool) -> None:
        with self._lock:
            if name not in self._defaults:
                raise KeyError(f"Unknown flag {name!r}")
            self._values[name] = bool(value)

    def reset(self) -> None:
        """Drop cached and programmatic values; re-read the environment."""
        with self._lock:
            self._values.clear()

    def _evaluate(self, name: str) -> bool:
        env_var = self._env_vars.get(name)
        if env_var is not None and env_var in os.environ:
            return os.environ[env_var].strip().lower() not in _FALSE_STRINGS
        return self._defaults[name]


_ENV = Environment()
_ENV.register_flag("DEBUG", False, "ELEMGRAD_DEBUG")
_ENV.register_flag("DEPRECATION_WARNINGS_ENABLED", True, "ELEMGRAD_DEPRECATION_WARNINGS")


def env() -> Environment:
    """Return the process-wide flag registry."""
    return _ENV

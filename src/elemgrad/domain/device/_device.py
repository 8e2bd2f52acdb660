"""
Device descriptors for tensors and backends.

Every tensor records the device its buffer lives on, and every backend
declares the single device it executes kernels on. The engine compares the
two before dispatching a kernel, so tensors produced by one backend cannot be
silently consumed by another.

Supported spellings are ``"cpu"`` and ``"cuda:<index>"``. No hardware is
probed here; a `Device` is only a validated, hashable label.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union
import re


class DeviceType(Enum):
    """
    Enumeration of supported device categories.
    """

    CPU = "cpu"
    CUDA = "cuda"


class Device:
    """
    Normalized computation device label.

    Parameters
    ----------
    device : str
        ``"cpu"`` or ``"cuda:<index>"`` with a non-negative integer index.

    Raises
    ------
    ValueError
        If the device string does not match a supported format.

    Notes
    -----
    Equality and hashing use ``(type, index)`` so devices can be compared
    directly and used as dictionary keys.
    """

    __slots__ = ("type", "index")

    _CUDA_PATTERN = re.compile(r"^cuda:(\d+)$")

    def __init__(self, device: str) -> None:
        self.index: Optional[int]
        if device == "cpu":
            self.type = DeviceType.CPU
            self.index = None
            return
        m = self._CUDA_PATTERN.match(device)
        if not m:
            raise ValueError(
                f"Invalid device '{device}'. Expected 'cpu' or 'cuda:<index>'"
            )
        self.type = DeviceType.CUDA
        self.index = int(m.group(1))

    @classmethod
    def parse(cls, device: Union["Device", str]) -> "Device":
        """Return `device` unchanged if it is a `Device`, else parse the string."""
        if isinstance(device, Device):
            return device
        return cls(str(device))

    def __str__(self) -> str:
        return "cpu" if self.type is DeviceType.CPU else f"cuda:{self.index}"

    def __repr__(self) -> str:
        return f"Device('{self}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Device):
            return NotImplemented
        return (self.type, self.index) == (other.type, other.index)

    def __hash__(self) -> int:
        return hash((self.type, self.index))

    def is_cpu(self) -> bool:
        return self.type is DeviceType.CPU

    def is_cuda(self) -> bool:
        return self.type is DeviceType.CUDA

"""
Error taxonomy for the inventory core.

Invalid caller input raises; sparse data returns an ``InsufficientData`` value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable


class InventoryIntelError(Exception):
    """Base class for errors raised by the inventory core."""


class InvalidArgumentError(InventoryIntelError, ValueError):
    """Raised for inputs that indicate a caller bug (negative quantities, unknown method...)."""


@dataclass(frozen=True)
class InsufficientData:
    """Typed "no result" returned when there is not enough history to compute something."""
    reason: str
    required: int
    available: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "insufficient_data",
            "reason": self.reason,
            "required": self.required,
            "available": self.available,
        }


def require_non_negative(name: str, value: float) -> None:
    if value is not None and value < 0:
        raise InvalidArgumentError(f"{name} must be >= 0, got {value}")


def require_non_negative_series(name: str, values: Iterable[float]) -> None:
    for i, v in enumerate(values):
        if v < 0:
            raise InvalidArgumentError(f"{name}[{i}] must be >= 0, got {v}")


def require_positive_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {value!r}")


def require_probability(name: str, value: float) -> None:
    if not 0.0 < value < 1.0:
        raise InvalidArgumentError(f"{name} must be in (0, 1), got {value}")

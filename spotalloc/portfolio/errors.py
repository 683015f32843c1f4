from __future__ import annotations

__all__ = [
    "AllocationError",
    "InvalidSnapshot",
    "UnknownAsset",
    "ConfigError",
    "StateStoreError",
]


class AllocationError(RuntimeError):
    """Base class for integration errors raised by the allocation core."""


class InvalidSnapshot(AllocationError, ValueError):
    """Portfolio snapshot carries negative, non-finite or unpriced values."""


class UnknownAsset(AllocationError, KeyError):
    """Symbol is not registered in the target registry."""

    def __init__(self, symbol: str) -> None:
        super().__init__(symbol)
        self.symbol = symbol

    def __str__(self) -> str:
        return f"asset not registered: {self.symbol}"


class ConfigError(AllocationError, ValueError):
    """Target, band or bot configuration failed validation."""


class StateStoreError(AllocationError):
    """Persisted allocation state could not be read or written."""

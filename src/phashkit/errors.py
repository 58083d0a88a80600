"""Exception types raised by the hash engine."""

from __future__ import annotations

from typing import List, Optional


class PHashError(Exception):
    """Base class for every error raised by phashkit."""


class ConfigError(PHashError, ValueError):
    """Invalid hash configuration or engine settings."""


class HashInputError(PHashError, ValueError):
    """Malformed hash strings passed to decoding or distance helpers."""


class SourceUnavailableError(PHashError):
    """No luminance backend could turn the source into a grid."""

    def __init__(self, message: str, failures: Optional[List[str]] = None):
        super().__init__(message)
        self.failures: List[str] = list(failures or [])

    def __str__(self) -> str:
        base = super().__str__()
        if not self.failures:
            return base
        return f"{base} ({'; '.join(self.failures)})"


__all__ = ["PHashError", "ConfigError", "HashInputError", "SourceUnavailableError"]

from __future__ import annotations


class StyleLabError(Exception):
    """Base class for errors raised by the style lab."""


class InvalidArgument(StyleLabError, ValueError):
    """Raised for malformed numeric ranges and out-of-domain inputs."""


class InvalidState(StyleLabError, RuntimeError):
    """Raised when an operation runs before its required prior state."""


class ProviderError(StyleLabError):
    """Raised when a completion or render provider call fails."""


__all__ = ["StyleLabError", "InvalidArgument", "InvalidState", "ProviderError"]

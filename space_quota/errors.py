"""Exceptions raised by the space quota observer."""

from __future__ import annotations


class QuotaError(Exception):
    """Base class for quota evaluation errors."""


class InvalidQuotaConfiguration(QuotaError, ValueError):
    """A quota record carries no usable violation policy."""

    def __init__(self, message: str, *, code: object = None) -> None:
        super().__init__(message)
        self.code = code

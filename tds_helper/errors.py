"""
Exception types raised by the helper itself.

Errors coming from the driver (``pymssql.OperationalError``,
``pymssql.ProgrammingError`` and friends) are never wrapped; they reach
the caller unchanged.
"""

from __future__ import annotations


class TdsHelperError(Exception):
    """Base class for errors raised by ``tds_helper``."""


class MissingRequiredParameterError(TdsHelperError, ValueError):
    """A required parameter has no value and is not an output parameter."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing required parameter {name}")
        self.name = name


class ResultParseError(TdsHelperError, ValueError):
    """Accumulated JSON text could not be decoded."""


class ConfigurationError(TdsHelperError, ValueError):
    """The connection configuration is empty or cannot be parsed."""

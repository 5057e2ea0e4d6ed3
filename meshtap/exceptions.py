"""
Shared exceptions for meshtap.

Exception Hierarchy:
    TapError (base)
    ├── TapStreamError (decode/transport failure, ends the session)
    └── TapOptionsError (invalid command options)
        ├── OutputFormatError (unrecognised --output value)
        └── MissingResourceKindError (wide output without a resource kind)

Rendering problems are never raised: they degrade to placeholders or an
inline error string.
"""

from __future__ import annotations


class TapError(Exception):
    """Base exception for all meshtap errors."""


class TapStreamError(TapError):
    """Raised by an event source when the next event cannot be decoded."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f'line {line_number}: {message}'
        super().__init__(message)


class TapOptionsError(TapError):
    """Base exception for invalid tap options."""


class OutputFormatError(TapOptionsError):
    """Raised when the requested output format is not recognised."""

    def __init__(self, output: str) -> None:
        self.output = output
        super().__init__(f'output format "{output}" not recognized')


class MissingResourceKindError(TapOptionsError):
    """Raised when wide output is requested without a resource kind."""

    def __init__(self) -> None:
        super().__init__('wide output requires a resource kind (use --resource)')

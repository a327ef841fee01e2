"""
Inspection error taxonomy and message extraction.

Only ``ValidationError`` and ``LaunchFailure`` escape
:func:`consent_inspector.inspect`; the other errors are
recovered where they are raised and degrade the result.
"""

from __future__ import annotations


class InspectionError(Exception):
    """Base class for all errors raised by the inspection engine."""


class ValidationError(InspectionError):
    """The target URL is malformed; raised before any browser work."""


class LaunchFailure(InspectionError):
    """The browser process could not be started."""


class NavigationTimeout(InspectionError):
    """The page did not settle within the navigation budget."""


class ProbeEvaluationError(InspectionError):
    """An in-page script threw, hung, or its page went away."""

    def __init__(self, message: str, *, script: str | None = None) -> None:
        super().__init__(message)
        self.script = script


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.

    Falls back to the exception class name when the
    exception carries no message (e.g. ``TimeoutError()``).
    """
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return "Unknown error"

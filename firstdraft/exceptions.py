"""
Exception types raised by the orchestrator.

Every error carries an ``error_code`` so the relay and the CLI can report
failures without string matching.
"""

from __future__ import annotations


class FirstDraftError(Exception):
    """Base exception for all firstdraft errors."""

    error_code = "FIRSTDRAFT_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(FirstDraftError):
    """Raised when the backend credential (or another required setting) is missing."""

    error_code = "CONFIGURATION_ERROR"


class TransportError(FirstDraftError):
    """Raised on network failure or a non-success status from the relay."""

    error_code = "TRANSPORT_ERROR"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class OutlineParseError(FirstDraftError):
    """Raised when the outline response is not valid structured data."""

    error_code = "OUTLINE_PARSE_ERROR"

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class PhaseError(FirstDraftError):
    """Raised when an operation is not allowed in the current phase."""

    error_code = "PHASE_ERROR"


#!/usr/bin/env python3
"""
Custom Exception Classes for the Circadian Tracker
Provides structured error handling with specific exception types.

The estimation path itself degrades to neutral results on sparse or noisy
data. These exceptions cover programmer errors: bad configuration and invalid
input entities. Unknown algorithm identifiers raise ValueError from the
factory.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class CircadianTrackerError(Exception):
    """Base exception for all circadian tracker errors."""

    def __init__(self, message: str, error_code: str | None = None, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ValidationError(CircadianTrackerError):
    """Raised when input validation fails."""


class ConfigurationError(CircadianTrackerError):
    """Raised when configuration is invalid."""


# Error codes for specific error types
class ErrorCodes(StrEnum):
    """Standardized error codes."""

    # Validation errors
    INVALID_INPUT = "INVALID_INPUT"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    MISSING_REQUIRED = "MISSING_REQUIRED"

    # Configuration errors
    CONFIG_INVALID = "CONFIG_INVALID"

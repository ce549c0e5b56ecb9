"""
Custom exceptions for the membership bridge.

These exceptions give the reconciliation flow and the HTTP layer a common
vocabulary for failures, so handlers can report a clear message and pick
an appropriate response without inspecting library-specific errors.
"""
from typing import Any, Optional


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    def __init__(self, message: str, code: str = "BRIDGE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(BridgeError):
    """Application configuration error (missing program id, credentials)."""

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")


class ValidationError(BridgeError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class UpstreamError(BridgeError):
    """Error communicating with an upstream API."""

    service = "upstream"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Any = None,
        original_error: Exception = None
    ):
        self.status_code = status_code
        self.detail = detail
        self.original_error = original_error
        super().__init__(message, f"{self.service.upper()}_ERROR")


class AcuityError(UpstreamError):
    """Error communicating with the Acuity Scheduling API."""

    service = "acuity"


class PassKitError(UpstreamError):
    """Error communicating with the PassKit API."""

    service = "passkit"

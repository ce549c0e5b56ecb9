"""
Utility modules for the membership bridge.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    not_found,
    method_not_allowed,
    internal_error
)
from .exceptions import (
    BridgeError,
    ConfigurationError,
    ValidationError,
    UpstreamError,
    AcuityError,
    PassKitError
)
from .durable_store import DurableStore, StoreResult

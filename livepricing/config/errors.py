"""Live pricing error handling.

Custom exceptions and error codes for the pricing engine.

Incomplete wizard data is never an error: it is reported through
``PricingResult.missing_data`` and a lowered confidence instead.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Configuration Errors (1xxx)
    CONFIGURATION_INVALID = "CONFIGURATION_INVALID"
    CONFIGURATION_IGNORED = "CONFIGURATION_IGNORED"

    # Calculator Errors (2xxx)
    CALCULATOR_FAILED = "CALCULATOR_FAILED"
    CALCULATOR_INVALID_OUTPUT = "CALCULATOR_INVALID_OUTPUT"

    # Engine State Errors (3xxx)
    ENGINE_DISPOSED = "ENGINE_DISPOSED"
    NO_EVENT_LOOP = "NO_EVENT_LOOP"

    # Input Errors (4xxx)
    INVALID_FLOW_DATA = "INVALID_FLOW_DATA"


class LivePricingError(Exception):
    """Base exception for live pricing errors.

    Provides structured error information for logging.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize LivePricingError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for structured logging.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"LivePricingError(code={self.code!r}, message={self.message!r})"


class ConfigurationError(LivePricingError):
    """Invalid engine configuration value.

    Raised by the coercion helpers and caught by the config model,
    which clamps the value to its default.
    """

    def __init__(self, message: str, option: str, value: Any = None):
        super().__init__(
            code=ErrorCode.CONFIGURATION_INVALID,
            message=message,
            details={"option": option, "value": repr(value)}
        )
        self.option = option


class CalculatorFailure(LivePricingError):
    """Per-service calculator failure, isolated to a single service."""

    def __init__(
        self,
        message: str,
        service_type: str,
        code: str = ErrorCode.CALCULATOR_FAILED,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "service_type": service_type}
        )
        self.service_type = service_type


class EngineStateError(LivePricingError):
    """Engine used in a state it does not support (programmer error)."""

    def __init__(self, code: str, message: str, details: Optional[Dict] = None):
        super().__init__(code=code, message=message, details=details)

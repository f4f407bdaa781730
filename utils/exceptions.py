"""
Custom exception hierarchy for scalargrad.
"""
from typing import Any, Dict, Optional


class ScalarGradError(Exception):
    """Base exception for all scalargrad errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'details': self.details
        }


# Core Engine Exceptions
class CoreEngineError(ScalarGradError):
    """Base exception for core engine errors."""
    pass


class InvalidOperationError(CoreEngineError, ValueError):
    """Raised when an operation's result is undefined in real arithmetic."""
    pass


class DivisionByZeroError(InvalidOperationError, ZeroDivisionError):
    """Raised when dividing by (or inverting) a zero-valued node."""
    pass


class DomainError(InvalidOperationError):
    """Raised when operands fall outside an operation's real domain."""
    pass


class GraphMutationError(CoreEngineError):
    """Raised when code tries to rewrite a node derived by an operation."""
    pass


class DimensionMismatchError(CoreEngineError, ValueError):
    """Raised when layer or input sizes do not chain."""
    pass


# Configuration Exceptions
class ConfigurationError(ScalarGradError):
    """Raised when configuration is invalid."""
    pass


# Data Exceptions
class DataError(ScalarGradError):
    """Raised when dataset arguments are invalid."""
    pass

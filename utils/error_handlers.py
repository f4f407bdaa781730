"""
Error handling utilities.
"""
from typing import Callable, Optional
from .logging_config import get_logger


class ErrorContext:
    """Context manager that logs a named operation and runs cleanup on failure."""

    def __init__(
        self,
        operation_name: str,
        cleanup_func: Optional[Callable] = None,
        raise_on_error: bool = True
    ):
        self.operation_name = operation_name
        self.cleanup_func = cleanup_func
        self.raise_on_error = raise_on_error
        self.logger = get_logger(__name__)

    def __enter__(self):
        self.logger.info(f"Starting operation: {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.logger.error(
                f"Error in operation {self.operation_name}: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )

            # Run cleanup if provided
            if self.cleanup_func:
                try:
                    self.cleanup_func()
                except Exception as cleanup_error:
                    self.logger.error(
                        f"Error during cleanup: {cleanup_error}",
                        exc_info=True
                    )

            # Suppress exception if raise_on_error is False
            return not self.raise_on_error
        else:
            self.logger.info(f"Completed operation: {self.operation_name}")
            return False

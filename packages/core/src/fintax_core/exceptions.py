"""Custom exceptions for the fintax engine.

This module provides the exception hierarchy used across the calculation
engine. All exceptions inherit from FintaxError, making it easy to catch
every engine-specific error at the service boundary.

Only two conditions raise:

- ConfigurationError: the constant table for a fiscal year is missing or
  invalid. The engine refuses to compute rather than guess a rate.
- ValidationError: the caller passed parameters outside their domain
  (a quarter of 5, a date window that ends before it starts).

Problems with individual ledger records never raise. They are reported in
the ``excluded`` list of each result instead.

Example:
    try:
        result = Usn6Calculator().calculate(snapshot, year=2031)
    except ConfigurationError as e:
        logger.error("tax_constants_missing", **e.details)
        raise
"""

from typing import Any, Optional


class FintaxError(Exception):
    """Base exception for all fintax engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.

    Example:
        >>> raise FintaxError("Something went wrong", details={"year": 2024})
        FintaxError: Something went wrong
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize FintaxError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the caller can fix the problem and call again.
                Defaults to False.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation of the error."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class ValidationError(FintaxError):
    """Error raised when call parameters fail validation.

    Raised for parameters supplied by the caller, never for ledger records.

    Attributes:
        field: The parameter that failed validation.
        value: The invalid value.
        constraint: The validation constraint that was violated.

    Example:
        >>> raise ValidationError(
        ...     "Quarter must be between 1 and 4",
        ...     field="quarter",
        ...     value=5,
        ...     constraint="1 <= quarter <= 4",
        ... )
        ValidationError: Quarter must be between 1 and 4
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize ValidationError.

        Args:
            message: Human-readable error description.
            field: The name of the parameter that failed validation.
            value: The invalid value.
            constraint: Description of the validation rule violated.
            details: Optional dictionary with additional context.
            recoverable: Defaults to True since the caller can correct
                the parameter and call again.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.field = field
        self.value = value
        self.constraint = constraint

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = value
        if constraint:
            self.details["constraint"] = constraint


class ConfigurationError(FintaxError):
    """Error raised when the law-defined constant table is invalid or missing.

    Configuration errors are fatal for the call: a calculator never falls
    back to another year's rates.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).

    Example:
        >>> raise ConfigurationError(
        ...     "No tax constants for fiscal year 2031",
        ...     config_key="fiscal_year",
        ...     expected="one of [2024, 2025]",
        ...     actual=2031,
        ... )
        ConfigurationError: No tax constants for fiscal year 2031
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Human-readable error description.
            config_key: The name of the configuration key that is problematic.
            expected: Description of what value was expected.
            actual: The actual value found.
            details: Optional dictionary with additional context.
            recoverable: Defaults to False since a missing or broken constant
                table needs an operator to fix it.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.config_key = config_key
        self.expected = expected
        self.actual = actual

        if config_key:
            self.details["config_key"] = config_key
        if expected:
            self.details["expected"] = expected
        if actual is not None:
            self.details["actual"] = actual


__all__ = [
    "FintaxError",
    "ValidationError",
    "ConfigurationError",
]

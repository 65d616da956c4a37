"""Custom exception hierarchy for fluentql.

All public errors inherit from FluentQLError so callers can catch the base
class for any fluentql-specific failure.  Errors raised by the database
driver while executing SQL are never wrapped.
"""
from __future__ import annotations

from typing import Any


class FluentQLError(Exception):
    """Base exception for all fluentql errors."""


class UsageError(FluentQLError):
    """Raised when a builder method is called with arguments it cannot accept.

    Args:
        message: Human-readable description.
        method: Name of the offending builder method.
        details: Arguments and context of the rejected call.
    """

    def __init__(
        self,
        message: str,
        method: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.details: dict[str, Any] = details or {}

    def to_error_response(self) -> dict[str, Any]:
        """Returns a structured description of the rejected call."""
        return {
            "error": type(self).__name__,
            "message": str(self),
            "method": self.method,
            "details": self.details,
        }


class InvalidOperatorError(UsageError):
    """Raised when a comparison operator is not known to the builder or grammar."""

    def __init__(self, operator: Any, method: str = "where") -> None:
        super().__init__(
            f"Operator {operator!r} is not supported.",
            method=method,
            details={"operator": operator},
        )


class IllegalOperatorValueError(UsageError):
    """Raised when a null value is compared with an operator other than =, <>, !=."""

    def __init__(self, operator: str, value: Any, method: str = "where") -> None:
        super().__init__(
            "Illegal operator and value combination.",
            method=method,
            details={"operator": operator, "value": value},
        )


class InvalidBindingTypeError(UsageError):
    """Raised when a binding bucket name is not one of the fixed buckets."""

    def __init__(self, bucket: str, allowed: list[str]) -> None:
        super().__init__(
            f"Invalid binding type: {bucket}",
            method="add_binding",
            details={"bucket": bucket, "allowed": allowed},
        )


class MissingOrderByError(UsageError):
    """Raised when a helper needs a deterministic order and none was given."""

    def __init__(self, method: str) -> None:
        super().__init__(
            "You must specify an order_by clause when using this function.",
            method=method,
        )


class MissingConnectionError(UsageError):
    """Raised when an execution method is called on a builder with no connection."""

    def __init__(self, method: str) -> None:
        super().__init__(
            f"'{method}' needs a connection to run the query.",
            method=method,
        )


class InvalidArgumentError(UsageError):
    """Raised when an argument has the wrong shape or type."""


class CompilationError(FluentQLError):
    """Raised when a statement cannot be rendered for the target dialect.

    Args:
        message: Human-readable description.
        clause: The clause or command being compiled when the error occurred.
    """

    def __init__(self, message: str, clause: str | None = None) -> None:
        super().__init__(message)
        self.clause = clause


class UnsupportedCommandError(CompilationError):
    """Raised when a schema command has no equivalent in the target dialect."""

    def __init__(self, command: str, dialect: str) -> None:
        super().__init__(
            f"The '{command}' command is not supported by the {dialect} grammar.",
            clause=command,
        )
        self.dialect = dialect


class ConfigError(FluentQLError):
    """Raised when a connection or grammar configuration is invalid.

    Args:
        message: Human-readable description.
        field: The configuration field at fault.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

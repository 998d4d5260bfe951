"""
Exception hierarchy for the crash analysis engine.

- CrashScopeError: Base exception for all crashscope-specific errors
- ConfigurationError: Settings file and validation issues
- AnalysisInputError: Malformed arguments handed to the analyzer
- RuleDefinitionError: Invalid cause rules (built-in or loaded from YAML)

Data-quality problems inside a log (garbage lines, odd severities,
non-log prose) are never errors; only programming mistakes raise.

Each exception includes:
- error_code: Machine-readable error identifier
- context: Additional structured data for debugging
- is_retryable: Whether the operation can be retried
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    # Configuration errors (1xxx)
    CONFIG_INVALID = "CRASHSCOPE_1001"
    CONFIG_MISSING = "CRASHSCOPE_1002"
    CONFIG_VALIDATION = "CRASHSCOPE_1003"

    # Input errors (2xxx)
    INPUT_NOT_SEQUENCE = "CRASHSCOPE_2001"
    INPUT_INVALID_LINE = "CRASHSCOPE_2002"

    # Rule table errors (3xxx)
    RULE_INVALID = "CRASHSCOPE_3001"
    RULE_BAD_PATTERN = "CRASHSCOPE_3002"
    RULE_DUPLICATE_ID = "CRASHSCOPE_3003"

    UNKNOWN = "CRASHSCOPE_9999"


@dataclass
class CrashScopeError(Exception):
    """
    Base exception for all crashscope errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        context: Additional structured data for debugging
        is_retryable: Whether the operation can be safely retried
        cause: Original exception that caused this error
    """

    message: str
    error_code: ErrorCode = ErrorCode.UNKNOWN
    context: dict[str, Any] = field(default_factory=dict)
    is_retryable: bool = False
    cause: Exception | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.error_code.value}] {self.message}"]
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f" ({context_str})")
        return "".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"context={self.context!r}, "
            f"is_retryable={self.is_retryable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "context": self.context,
            "is_retryable": self.is_retryable,
            "cause": str(self.cause) if self.cause else None,
        }


@dataclass
class ConfigurationError(CrashScopeError):
    """Raised when settings are invalid or missing."""

    error_code: ErrorCode = ErrorCode.CONFIG_INVALID

    @classmethod
    def missing_file(cls, path: str) -> ConfigurationError:
        """Create error for a missing settings or rules file."""
        return cls(
            message=f"Configuration file not found: {path}",
            error_code=ErrorCode.CONFIG_MISSING,
            context={"path": path},
        )

    @classmethod
    def validation_failed(cls, field: str, value: Any, reason: str) -> ConfigurationError:
        """Create error for validation failure."""
        return cls(
            message=f"Configuration validation failed for '{field}': {reason}",
            error_code=ErrorCode.CONFIG_VALIDATION,
            context={"field": field, "value": str(value), "reason": reason},
        )


@dataclass
class AnalysisInputError(CrashScopeError):
    """Raised when the analyzer is called with something that is not a line list."""

    error_code: ErrorCode = ErrorCode.INPUT_NOT_SEQUENCE

    @classmethod
    def not_a_sequence(cls, value: Any) -> AnalysisInputError:
        return cls(
            message=f"Expected a sequence of log lines, got {type(value).__name__}",
            error_code=ErrorCode.INPUT_NOT_SEQUENCE,
            context={"type": type(value).__name__},
        )

    @classmethod
    def not_text(cls, value: Any) -> AnalysisInputError:
        return cls(
            message=f"Expected log text, got {type(value).__name__}",
            error_code=ErrorCode.INPUT_NOT_SEQUENCE,
            context={"type": type(value).__name__},
        )

    @classmethod
    def invalid_line(cls, position: int, value: Any) -> AnalysisInputError:
        return cls(
            message=f"Unsupported log line at position {position}: {type(value).__name__}",
            error_code=ErrorCode.INPUT_INVALID_LINE,
            context={"position": position, "type": type(value).__name__},
        )


@dataclass
class RuleDefinitionError(CrashScopeError):
    """Raised when a cause rule cannot be built."""

    error_code: ErrorCode = ErrorCode.RULE_INVALID

    @classmethod
    def invalid_rule(cls, rule_id: str, reason: str) -> RuleDefinitionError:
        """Create error for a structurally invalid rule."""
        return cls(
            message=f"Invalid cause rule '{rule_id}': {reason}",
            error_code=ErrorCode.RULE_INVALID,
            context={"rule_id": rule_id, "reason": reason},
        )

    @classmethod
    def invalid_pattern(cls, rule_id: str, pattern: str, reason: str) -> RuleDefinitionError:
        """Create error for a pattern that does not compile."""
        return cls(
            message=f"Cause rule '{rule_id}' has an invalid pattern: {reason}",
            error_code=ErrorCode.RULE_BAD_PATTERN,
            context={"rule_id": rule_id, "pattern": pattern, "reason": reason},
        )

    @classmethod
    def duplicate_id(cls, rule_id: str) -> RuleDefinitionError:
        """Create error for a rule id that is already taken."""
        return cls(
            message=f"Cause rule id '{rule_id}' is defined more than once",
            error_code=ErrorCode.RULE_DUPLICATE_ID,
            context={"rule_id": rule_id},
        )

"""
Lexiscan Exception Hierarchy

Setup-time problems are raised as structured errors before any scanning
starts. Per-item problems found while a call is running are never raised:
they are recorded as PartialEvaluationFailure entries next to the results
that did compute.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Severity levels for engine errors"""
    INPUT = "input"                  # Caller supplied unusable text
    CONFIGURATION = "configuration"  # Invalid patterns, recognizers or criteria
    PARTIAL = "partial"              # One item failed, the call completed


class LexiscanError(Exception):
    """
    Base class for engine errors

    Attributes:
        message: Human-readable error message
        severity: ErrorSeverity level
        original_error: Original exception if wrapped
    """

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.CONFIGURATION,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.original_error = original_error

    def __str__(self):
        return f"{self.severity.value.upper()}: {self.message}"


class InvalidEncoding(LexiscanError):
    """
    Input text is not valid UTF-8

    Raised for undecodable byte input and for str input holding codepoints
    that cannot be encoded (lone surrogates).
    """

    def __init__(self, message: str, position: Optional[int] = None, original_error: Optional[Exception] = None):
        super().__init__(message, severity=ErrorSeverity.INPUT, original_error=original_error)
        self.position = position


class PatternCompileError(LexiscanError):
    """A pattern could not be compiled; carries the offending pattern's label"""

    def __init__(
        self,
        message: str,
        label: str,
        pattern_text: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, severity=ErrorSeverity.CONFIGURATION, original_error=original_error)
        self.label = label
        self.pattern_text = pattern_text

    def __str__(self):
        return f"{super().__str__()} (pattern: {self.label})"


class InvalidConfiguration(LexiscanError):
    """Structurally invalid criteria or recognizer configuration"""

    def __init__(self, message: str, field: Optional[str] = None, original_error: Optional[Exception] = None):
        super().__init__(message, severity=ErrorSeverity.CONFIGURATION, original_error=original_error)
        self.field = field


@dataclass(frozen=True)
class PartialEvaluationFailure:
    """
    Inline record of a single isolated failure

    Attributes:
        source: Component that failed ("dictionary", "pattern_class",
            "heuristic", "custom_rule", "criterion")
        name: Name of the failing item (rule, entry or criterion)
        message: What went wrong
    """
    source: str
    name: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'name': self.name,
            'message': self.message
        }

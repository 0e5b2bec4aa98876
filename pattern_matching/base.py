"""
Base types for pattern compilation and matching
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple
from enum import Enum

from exceptions import InvalidConfiguration


class PatternKind(Enum):
    """Kinds of pattern specification"""
    LITERAL = "literal"
    REGEX = "regex"


@dataclass(frozen=True)
class PatternSpec:
    """
    A user-supplied matching rule

    Attributes:
        label: Identifying label reported with every match
        pattern_text: Literal string or regular expression source
        kind: LITERAL or REGEX
        case_sensitive: Whether matching respects case (default True)
        metadata: Free-form data carried onto matches (entity type, weight...)
    """
    label: str
    pattern_text: str
    kind: PatternKind = PatternKind.LITERAL
    case_sensitive: bool = True
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def literal(cls, label: str, text: str, case_sensitive: bool = True, **metadata) -> "PatternSpec":
        return cls(label, text, PatternKind.LITERAL, case_sensitive, dict(metadata))

    @classmethod
    def regex(cls, label: str, pattern: str, case_sensitive: bool = True, **metadata) -> "PatternSpec":
        return cls(label, pattern, PatternKind.REGEX, case_sensitive, dict(metadata))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PatternSpec":
        """Build a spec from plain data; ``pattern`` is accepted for ``pattern_text``"""
        pattern_text = data.get("pattern_text", data.get("pattern"))
        if pattern_text is None:
            raise InvalidConfiguration("Pattern specification requires 'pattern_text'", field="pattern_text")
        label = data.get("label") or str(pattern_text)
        kind = data.get("kind", PatternKind.LITERAL.value)
        if isinstance(kind, str):
            try:
                kind = PatternKind(kind.lower())
            except ValueError as e:
                raise InvalidConfiguration(f"Unknown pattern kind: {kind}", field="kind", original_error=e) from e
        return cls(
            label=str(label),
            pattern_text=str(pattern_text),
            kind=kind,
            case_sensitive=bool(data.get("case_sensitive", True)),
            metadata=dict(data.get("metadata") or {})
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'pattern_text': self.pattern_text,
            'kind': self.kind.value,
            'case_sensitive': self.case_sensitive,
            'metadata': dict(self.metadata)
        }


@dataclass(frozen=True)
class Match:
    """A matched pattern occurrence; ``span`` is a half-open codepoint range"""
    pattern_label: str
    start: int
    end: int
    matched_text: str
    pattern_index: int
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def span(self) -> Tuple[int, int]:
        return self.start, self.end

    def __len__(self) -> int:
        return self.end - self.start

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pattern_label': self.pattern_label,
            'span': [self.start, self.end],
            'matched_text': self.matched_text,
            'metadata': dict(self.metadata)
        }


@dataclass(frozen=True)
class MatchOptions:
    """
    Matching mode configuration

    Attributes:
        overlapping: Report every match instead of leftmost-longest selection
        max_matches: Cap on returned matches; scanning stops once reached
        step_budget: Cap on scan work; exhausting it truncates the result
    """
    overlapping: bool = False
    max_matches: Optional[int] = None
    step_budget: Optional[int] = None

    def __post_init__(self):
        if self.max_matches is not None and self.max_matches < 0:
            raise InvalidConfiguration(f"max_matches cannot be negative: {self.max_matches}", field="max_matches")
        if self.step_budget is not None and self.step_budget <= 0:
            raise InvalidConfiguration(f"step_budget must be positive: {self.step_budget}", field="step_budget")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "MatchOptions":
        data = data or {}
        return cls(
            overlapping=bool(data.get("overlapping", False)),
            max_matches=data.get("max_matches"),
            step_budget=data.get("step_budget")
        )


@dataclass
class MatchResult:
    """Matches sorted by start offset, plus the truncation flag"""
    matches: List[Match] = field(default_factory=list)
    truncated: bool = False

    def __iter__(self):
        return iter(self.matches)

    def __len__(self) -> int:
        return len(self.matches)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'matches': [m.to_dict() for m in self.matches],
            'truncated': self.truncated
        }

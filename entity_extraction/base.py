"""
Base types for the entity extraction pipeline

This module defines the entity records, the recognizer contract and the
extraction configuration shared by every recognizer stage.
"""
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from exceptions import InvalidConfiguration, PartialEvaluationFailure


class EntityType(str, Enum):
    """Built-in entity labels; dictionaries and custom rules may use others"""
    PERSON = "PERSON"
    ORG = "ORG"
    LOCATION = "LOCATION"
    DATE = "DATE"
    EMAIL = "EMAIL"
    URL = "URL"
    NUMBER = "NUMBER"
    PHONE = "PHONE"
    CUSTOM = "CUSTOM"


# Structurally regular classes served by the pattern-class recognizer
PATTERN_CLASSES: Tuple[EntityType, ...] = (
    EntityType.EMAIL,
    EntityType.URL,
    EntityType.DATE,
    EntityType.NUMBER,
    EntityType.PHONE,
)


class Stage(str, Enum):
    """Recognizer stages, most precise first"""
    DICTIONARY = "dictionary"
    PATTERN = "pattern"
    HEURISTIC = "heuristic"

    @property
    def rank(self) -> int:
        return _STAGE_RANKS[self]


_STAGE_RANKS = {Stage.DICTIONARY: 0, Stage.PATTERN: 1, Stage.HEURISTIC: 2}


def entity_label(value: Any) -> str:
    """Normalise an entity type to its upper-case label"""
    if isinstance(value, EntityType):
        return value.value
    label = str(value).strip().upper()
    if not label:
        raise InvalidConfiguration("Entity type cannot be empty", field="entity_type")
    return label


@dataclass
class Candidate:
    """A proposed entity before conflict resolution"""
    type: str
    start: int
    end: int
    stage: Stage
    confidence: float = 1.0
    order: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Entity:
    """A resolved entity; ``span`` is a half-open codepoint range"""
    type: str
    start: int
    end: int
    surface_text: str
    confidence: float
    stage: Stage
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def span(self) -> Tuple[int, int]:
        return self.start, self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "span": [self.start, self.end],
            "surface_text": self.surface_text,
            "confidence": self.confidence,
            "stage": self.stage.value,
            "metadata": dict(self.metadata)
        }


@dataclass(frozen=True)
class Dictionary:
    """
    Known-entity list for the dictionary recognizer

    Attributes:
        entity_type: Label given to every term's matches
        terms: Surface forms to look up
        case_sensitive: Exact lookup when True, case-folded otherwise
        name: Identifier used in failure reports
    """
    entity_type: str
    terms: Tuple[Any, ...]
    case_sensitive: bool = False
    name: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Dictionary":
        if not isinstance(data, Mapping):
            raise InvalidConfiguration(f"Dictionary must be a mapping, got {type(data).__name__}", field="dictionaries")
        if "entity_type" not in data:
            raise InvalidConfiguration("Dictionary requires 'entity_type'", field="dictionaries")

        terms = data.get("terms")
        if not isinstance(terms, (list, tuple)):
            raise InvalidConfiguration("Dictionary 'terms' must be a list", field="dictionaries")

        entity_type = entity_label(data["entity_type"])
        return cls(
            entity_type=entity_type,
            terms=tuple(terms),
            case_sensitive=bool(data.get("case_sensitive", False)),
            name=str(data.get("name") or entity_type.lower())
        )


@dataclass(frozen=True)
class CustomRule:
    """Host-supplied regex recognizer run with the pattern classes"""
    name: str
    pattern: str
    entity_type: str = EntityType.CUSTOM.value
    case_sensitive: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CustomRule":
        if not isinstance(data, Mapping):
            raise InvalidConfiguration(f"Custom rule must be a mapping, got {type(data).__name__}", field="custom_rules")
        pattern = data.get("pattern")
        if not isinstance(pattern, str):
            raise InvalidConfiguration("Custom rule requires a 'pattern' string", field="custom_rules")
        return cls(
            name=str(data.get("name") or pattern),
            pattern=pattern,
            entity_type=entity_label(data.get("entity_type", EntityType.CUSTOM)),
            case_sensitive=bool(data.get("case_sensitive", True))
        )


@dataclass(frozen=True)
class HeuristicWeights:
    """
    Weighted cues behind heuristic confidence

    confidence = base
        + per_extra_token * (tokens - 1)
        + designator * has_designator
        + relationship_cue * has_relationship
        - sentence_start_penalty * at_sentence_start

    clamped to [0, max_confidence]. max_confidence stays below 1 so a
    heuristic guess never ties a deterministic rule.
    """
    base: float = 0.5
    per_extra_token: float = 0.1
    designator: float = 0.25
    relationship_cue: float = 0.3
    sentence_start_penalty: float = 0.1
    max_confidence: float = 0.95

    def __post_init__(self):
        for name in ("base", "per_extra_token", "designator", "relationship_cue", "sentence_start_penalty"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise InvalidConfiguration(f"Heuristic weight '{name}' must be finite and non-negative", field=name)
        if not 0.0 <= self.max_confidence < 1.0:
            raise InvalidConfiguration("max_confidence must be within [0, 1)", field="max_confidence")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "HeuristicWeights":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidConfiguration("heuristic_weights must be a mapping", field="heuristic_weights")
        known = cls.__dataclass_fields__
        unknown = set(data) - set(known)
        if unknown:
            raise InvalidConfiguration(f"Unknown heuristic weights: {sorted(unknown)}", field="heuristic_weights")
        try:
            return cls(**{key: float(value) for key, value in data.items()})
        except (TypeError, ValueError) as e:
            raise InvalidConfiguration(f"Invalid heuristic weight: {e}", field="heuristic_weights", original_error=e) from e

    def score(
        self,
        tokens: int,
        has_designator: bool = False,
        has_relationship: bool = False,
        at_sentence_start: bool = False
    ) -> float:
        value = (
            self.base
            + self.per_extra_token * max(tokens - 1, 0)
            + self.designator * has_designator
            + self.relationship_cue * has_relationship
            - self.sentence_start_penalty * at_sentence_start
        )
        return min(max(value, 0.0), self.max_confidence)


@dataclass(frozen=True)
class ExtractionConfig:
    """
    Recognizer set for one extraction call

    Attributes:
        dictionaries: Known-entity lists (dictionary stage)
        enabled_classes: Built-in pattern classes to run
        heuristics_enabled: Run the heuristic stage
        custom_rules: Extra regex recognizers (pattern stage)
        heuristic_weights: Cue weights for heuristic confidence
        max_entities: Cap on returned entities
        step_budget: Cap on scan work across all stages
        min_confidence: Candidates below this are discarded before resolution
    """
    dictionaries: Tuple[Dictionary, ...] = ()
    enabled_classes: Tuple[str, ...] = tuple(c.value for c in PATTERN_CLASSES)
    heuristics_enabled: bool = True
    custom_rules: Tuple[CustomRule, ...] = ()
    heuristic_weights: HeuristicWeights = field(default_factory=HeuristicWeights)
    max_entities: Optional[int] = None
    step_budget: Optional[int] = None
    min_confidence: float = 0.0

    def __post_init__(self):
        known = {c.value for c in PATTERN_CLASSES}
        for name in self.enabled_classes:
            if name not in known:
                raise InvalidConfiguration(
                    f"Unknown pattern class: {name}. Valid options: {sorted(known)}",
                    field="enabled_classes"
                )
        if self.max_entities is not None and self.max_entities < 0:
            raise InvalidConfiguration(f"max_entities cannot be negative: {self.max_entities}", field="max_entities")
        if self.step_budget is not None and self.step_budget <= 0:
            raise InvalidConfiguration(f"step_budget must be positive: {self.step_budget}", field="step_budget")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise InvalidConfiguration("min_confidence must be within [0, 1]", field="min_confidence")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ExtractionConfig":
        """
        Build a config from plain data

        ``dictionaries`` may be a list of dictionary mappings or a mapping of
        entity type to term list. ``enabled_classes`` defaults to every
        built-in class.

        Raises:
            InvalidConfiguration: For structurally invalid input
        """
        data = data or {}
        if not isinstance(data, Mapping):
            raise InvalidConfiguration("Extraction config must be a mapping", field="config")

        defaults = cls()
        enabled = data.get("enabled_classes")
        if enabled is None:
            enabled_classes = defaults.enabled_classes
        elif isinstance(enabled, (list, tuple)):
            enabled_classes = tuple(entity_label(c) for c in enabled)
        else:
            raise InvalidConfiguration("enabled_classes must be a list", field="enabled_classes")

        custom_rules = data.get("custom_rules") or []
        if not isinstance(custom_rules, (list, tuple)):
            raise InvalidConfiguration("custom_rules must be a list", field="custom_rules")

        return cls(
            dictionaries=_parse_dictionaries(data.get("dictionaries")),
            enabled_classes=enabled_classes,
            heuristics_enabled=bool(data.get("heuristics_enabled", True)),
            custom_rules=tuple(CustomRule.from_dict(rule) for rule in custom_rules),
            heuristic_weights=HeuristicWeights.from_dict(data.get("heuristic_weights")),
            max_entities=data.get("max_entities"),
            step_budget=data.get("step_budget"),
            min_confidence=float(data.get("min_confidence", 0.0))
        )


def _parse_dictionaries(value: Any) -> Tuple[Dictionary, ...]:
    if value is None:
        return ()
    if isinstance(value, Mapping):
        dictionaries = []
        for entity_type, terms in value.items():
            dictionaries.append(Dictionary.from_dict({"entity_type": entity_type, "terms": terms}))
        return tuple(dictionaries)
    if isinstance(value, (list, tuple)):
        return tuple(d if isinstance(d, Dictionary) else Dictionary.from_dict(d) for d in value)
    raise InvalidConfiguration(
        f"dictionaries must be a list or a mapping, got {type(value).__name__}",
        field="dictionaries"
    )


@dataclass
class ExtractionResult:
    """Resolved entities sorted by start offset, with truncation and isolated failures"""
    entities: List[Entity] = field(default_factory=list)
    truncated: bool = False
    failures: List[PartialEvaluationFailure] = field(default_factory=list)

    def __iter__(self):
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "truncated": self.truncated,
            "failures": [f.to_dict() for f in self.failures]
        }


class Recognizer(ABC):
    """Abstract base class for recognizer stages"""

    stage: Stage

    def __init__(self):
        # Problems found while building the recognizer (bad entries, failed rules)
        self.setup_failures: List[PartialEvaluationFailure] = []

    @abstractmethod
    def recognize(self, buffer, budget, failures: List[PartialEvaluationFailure]) -> List[Candidate]:
        """
        Propose candidate entities

        Args:
            buffer: TextBuffer to scan
            budget: Shared StepBudget for the extraction call
            failures: Collects isolated failures found during this call

        Returns:
            Candidates in the stage's own deterministic order
        """
        pass

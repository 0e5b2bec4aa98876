"""
Base types for text scoring
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from exceptions import InvalidConfiguration, PartialEvaluationFailure


class EvaluatorKind(str, Enum):
    """Evaluation strategies a criterion can select"""
    KEYWORD_PRESENCE = "keyword_presence"
    PATTERN_DENSITY = "pattern_density"
    ENTITY_PRESENCE = "entity_presence"
    LENGTH_RATIO = "length_ratio"
    CUSTOM = "custom"


class Reduction(str, Enum):
    """How weighted criterion values combine into the total"""
    SUM = "sum"
    AVERAGE = "average"
    MAX = "max"

    @classmethod
    def parse(cls, value: Any) -> "Reduction":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as e:
            raise InvalidConfiguration(
                f"Unknown reduction: {value}. Valid options: {[r.value for r in cls]}",
                field="reduction",
                original_error=e
            ) from e


CRITERION_KEYS = {"name", "weight", "evaluator_kind", "kind", "parameters"}


@dataclass(frozen=True)
class Criterion:
    """
    A named, weighted scoring rule

    Attributes:
        name: Unique name within a criteria set
        weight: Non-negative finite multiplier
        evaluator_kind: Strategy computing the raw value
        parameters: Strategy-specific settings (keywords, patterns...)
    """
    name: str
    weight: float
    evaluator_kind: EvaluatorKind
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise InvalidConfiguration("Criterion name must be a non-empty string", field="name")

        if isinstance(self.weight, bool) or not isinstance(self.weight, (int, float)):
            raise InvalidConfiguration(f"Criterion '{self.name}' weight must be a number", field="weight")
        if not math.isfinite(self.weight) or self.weight < 0:
            raise InvalidConfiguration(
                f"Criterion '{self.name}' weight must be finite and non-negative, got {self.weight}",
                field="weight"
            )

        if not isinstance(self.evaluator_kind, EvaluatorKind):
            try:
                kind = EvaluatorKind(str(self.evaluator_kind).lower())
            except ValueError as e:
                raise InvalidConfiguration(
                    f"Criterion '{self.name}' has unknown evaluator kind: {self.evaluator_kind}",
                    field="evaluator_kind",
                    original_error=e
                ) from e
            object.__setattr__(self, "evaluator_kind", kind)

        if not isinstance(self.parameters, Mapping):
            raise InvalidConfiguration(f"Criterion '{self.name}' parameters must be a mapping", field="parameters")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Criterion":
        """
        Build a criterion from plain data

        Keys beyond name/weight/evaluator_kind/parameters are treated as
        parameters, so ``{"name": "kw", "weight": 2,
        "evaluator_kind": "keyword_presence", "keywords": ["urgent"]}`` works.
        """
        if not isinstance(data, Mapping):
            raise InvalidConfiguration(f"Criterion must be a mapping, got {type(data).__name__}", field="criteria")

        kind = data.get("evaluator_kind", data.get("kind"))
        if kind is None:
            raise InvalidConfiguration(f"Criterion '{data.get('name')}' requires 'evaluator_kind'", field="evaluator_kind")

        parameters = dict(data.get("parameters") or {})
        parameters.update({key: value for key, value in data.items() if key not in CRITERION_KEYS})

        return cls(
            name=data.get("name"),
            weight=data.get("weight", 1.0),
            evaluator_kind=kind,
            parameters=parameters
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "weight": self.weight,
            "evaluator_kind": self.evaluator_kind.value,
            "parameters": dict(self.parameters)
        }


@dataclass(frozen=True)
class CriterionResult:
    """
    One breakdown slot

    A failed criterion has raw_value and weighted_value set to NaN, the
    ``failed`` flag raised and the failure recorded in ``error``.
    """
    name: str
    raw_value: float
    weighted_value: float
    failed: bool = False
    error: Optional[PartialEvaluationFailure] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "criterion_name": self.name,
            "raw_value": self.raw_value,
            "weighted_value": self.weighted_value,
            "failed": self.failed,
            "error": self.error.to_dict() if self.error else None
        }


@dataclass
class ScoreResult:
    """Reduced total plus the ordered per-criterion breakdown"""
    total: float
    breakdown: List[CriterionResult] = field(default_factory=list)
    reduction: Reduction = Reduction.SUM

    @property
    def failures(self) -> List[PartialEvaluationFailure]:
        return [entry.error for entry in self.breakdown if entry.error is not None]

    def get(self, name: str) -> Optional[CriterionResult]:
        for entry in self.breakdown:
            if entry.name == name:
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "reduction": self.reduction.value,
            "breakdown": [entry.to_dict() for entry in self.breakdown]
        }


def validate_criteria(criteria: Sequence[Criterion]) -> None:
    """Reject duplicate criterion names"""
    seen = set()
    for criterion in criteria:
        if criterion.name in seen:
            raise InvalidConfiguration(f"Duplicate criterion name: {criterion.name}", field="name")
        seen.add(criterion.name)

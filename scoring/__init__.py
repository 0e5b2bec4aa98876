"""
Scoring Module

Reduces a text to a numeric score with an auditable per-criterion
breakdown. Each criterion selects an evaluator kind:
- keyword_presence: keywords found (count, fraction or occurrences)
- pattern_density: matches per token, codepoint or sentence
- entity_presence: required entity types found
- length_ratio: closeness to a target length range
- custom: a named host or built-in function

Quick Start:
    from scoring import TextScorer

    scorer = TextScorer([
        {"name": "kw", "weight": 2, "evaluator_kind": "keyword_presence", "keywords": ["urgent"]},
    ])
    result = scorer.score("this is urgent")
    result.total                     # 2.0
    result.breakdown[0].raw_value    # 1.0
"""

from .base import (
    EvaluatorKind,
    Reduction,
    Criterion,
    CriterionResult,
    ScoreResult,
    validate_criteria
)
from .context import BufferStatistics, ScoringContext
from .evaluators import EVALUATORS, BUILTIN_FUNCTIONS, CustomFunction
from .scorer import TextScorer, reduce_values
from .loader import load_criteria, load_scoring_config

__all__ = [
    # Base classes
    "EvaluatorKind",
    "Reduction",
    "Criterion",
    "CriterionResult",
    "ScoreResult",
    "validate_criteria",

    # Evaluation
    "BufferStatistics",
    "ScoringContext",
    "EVALUATORS",
    "BUILTIN_FUNCTIONS",
    "CustomFunction",
    "TextScorer",
    "reduce_values",

    # Loading
    "load_criteria",
    "load_scoring_config",
]

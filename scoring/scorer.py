"""
Text Scorer

Evaluates a criteria set against a text and reduces the weighted values to
one total. Criteria are validated when the scorer is built; a criterion
that fails during evaluation only blanks its own breakdown slot.
"""
import math
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .base import Criterion, CriterionResult, EvaluatorKind, Reduction, ScoreResult, validate_criteria
from .context import ScoringContext, coerce_patterns
from .evaluators import BUILTIN_FUNCTIONS, EVALUATORS, CustomFunction, criterion_patterns
from config import settings
from entity_extraction import Entity
from exceptions import InvalidConfiguration, LexiscanError, PartialEvaluationFailure
from logger import get_logger
from pattern_matching import CompiledMatcher, Match, PatternCompiler, fingerprint_specs
from text_buffer import TextBuffer, TextInput

logger = get_logger(__name__)

CriterionInput = Union[Criterion, Mapping[str, Any]]


def reduce_values(values: Sequence[float], reduction: Reduction) -> float:
    """Combine weighted values; 0.0 when there are none"""
    if not values:
        return 0.0
    if reduction is Reduction.MAX:
        return max(values)
    total = math.fsum(values)
    if reduction is Reduction.AVERAGE:
        return total / len(values)
    return total


class TextScorer:
    """
    Weighted multi-criteria scorer

    Example:
        scorer = TextScorer([
            {"name": "kw", "weight": 2, "evaluator_kind": "keyword_presence", "keywords": ["urgent"]},
        ])
        result = scorer.score("this is urgent")
        result.total   # 2.0
    """

    def __init__(
        self,
        criteria: Iterable[CriterionInput],
        reduction: Optional[Union[str, Reduction]] = None,
        functions: Optional[Mapping[str, CustomFunction]] = None
    ):
        """
        Args:
            criteria: Criterion instances or plain mappings
            reduction: sum, average or max (defaults to settings.default_reduction)
            functions: Host functions available to custom criteria by name

        Raises:
            InvalidConfiguration: For any invalid criterion, duplicate name,
                unknown reduction or non-callable function
        """
        if isinstance(criteria, (Mapping, str)):
            raise InvalidConfiguration("criteria must be a list", field="criteria")

        self.criteria = tuple(c if isinstance(c, Criterion) else Criterion.from_dict(c) for c in criteria)
        validate_criteria(self.criteria)
        self.reduction = Reduction.parse(reduction or settings.default_reduction)

        self.functions = dict(BUILTIN_FUNCTIONS)
        for name, function in (functions or {}).items():
            if not callable(function):
                raise InvalidConfiguration(f"Custom function '{name}' is not callable", field="functions")
            self.functions[name] = function

        self._matchers = MappingProxyType(self._precompile())
        logger.debug(f"Scorer ready with {len(self.criteria)} criteria ({self.reduction.value})")

    @property
    def matchers(self) -> Mapping[str, CompiledMatcher]:
        """Read-only matchers for the criteria's own patterns, keyed by fingerprint"""
        return self._matchers

    def _precompile(self) -> Dict[str, CompiledMatcher]:
        """
        Compile each criterion's keywords or patterns once

        A criterion whose patterns do not compile is left out; evaluating it
        raises the same error and fails only that criterion.
        """
        compiler = PatternCompiler(strict=True)
        matchers: Dict[str, CompiledMatcher] = {}

        for criterion in self.criteria:
            try:
                patterns = criterion_patterns(criterion)
                if patterns is None:
                    continue
                specs = coerce_patterns(patterns, compiler)
                handle = fingerprint_specs(specs, True)
                if handle not in matchers:
                    matchers[handle] = compiler.compile(specs)
            except (LexiscanError, ValueError) as e:
                logger.debug(f"Criterion '{criterion.name}' not precompiled: {e}")

        return matchers

    def score(
        self,
        text: Union[TextInput, TextBuffer],
        matches: Optional[Sequence[Match]] = None,
        entities: Optional[Sequence[Entity]] = None
    ) -> ScoreResult:
        """
        Score a text

        Args:
            text: Raw text or an existing TextBuffer
            matches: Optional pattern matches, used by density/intensity criteria
                that name no patterns of their own
            entities: Optional entities, used by entity_presence instead of
                running an extraction

        Returns:
            ScoreResult with one breakdown entry per criterion, in order
        """
        buffer = text if isinstance(text, TextBuffer) else TextBuffer(text)
        context = ScoringContext.build(buffer, matches=matches, entities=entities, matchers=self._matchers)

        breakdown: List[CriterionResult] = [self._evaluate(criterion, context) for criterion in self.criteria]
        values = [entry.weighted_value for entry in breakdown if not entry.failed]

        return ScoreResult(
            total=reduce_values(values, self.reduction),
            breakdown=breakdown,
            reduction=self.reduction
        )

    def _evaluate(self, criterion: Criterion, context: ScoringContext) -> CriterionResult:
        try:
            raw_value = float(self._raw_value(criterion, context))
            if not math.isfinite(raw_value):
                raise ValueError(f"Evaluator produced a non-finite value: {raw_value}")
        except Exception as e:
            message = getattr(e, "message", None) or str(e)
            logger.warning(f"Criterion '{criterion.name}' failed: {message}")
            return CriterionResult(
                name=criterion.name,
                raw_value=math.nan,
                weighted_value=math.nan,
                failed=True,
                error=PartialEvaluationFailure("criterion", criterion.name, message)
            )

        return CriterionResult(
            name=criterion.name,
            raw_value=raw_value,
            weighted_value=raw_value * criterion.weight
        )

    def _raw_value(self, criterion: Criterion, context: ScoringContext) -> float:
        if criterion.evaluator_kind is EvaluatorKind.CUSTOM:
            name = criterion.parameters.get("function")
            if name is None:
                raise ValueError("Missing required parameter 'function'")
            function = self.functions.get(name)
            if function is None:
                raise ValueError(f"Unknown custom function '{name}'")
            return function(context, criterion.parameters)

        return EVALUATORS[criterion.evaluator_kind](criterion, context)

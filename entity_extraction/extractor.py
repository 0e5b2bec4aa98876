"""
Entity Extractor

Runs the recognizer stages over a text buffer, pools their candidates and
resolves them into a non-overlapping, start-sorted entity list.
"""
from typing import List, Optional, Union

from .base import Candidate, Entity, ExtractionConfig, ExtractionResult, Recognizer
from .dictionary import DictionaryRecognizer
from .heuristics import HeuristicRecognizer
from .pattern_classes import PatternClassRecognizer
from .resolver import resolve_overlaps
from config import settings
from exceptions import PartialEvaluationFailure
from logger import get_logger
from pattern_matching import PatternCompiler, StepBudget
from text_buffer import TextBuffer, TextInput

logger = get_logger(__name__)


class EntityExtractor:
    """
    Layered entity recognition pipeline

    Construction validates and compiles every recognizer once; ``extract``
    may then be called on any number of texts, from several threads.

    Example:
        extractor = EntityExtractor(ExtractionConfig(enabled_classes=("EMAIL",)))
        result = extractor.extract("Contact alice@example.com or bob@test.org")
        [e.surface_text for e in result]   # ['alice@example.com', 'bob@test.org']
    """

    def __init__(self, config: Optional[ExtractionConfig] = None, compiler: Optional[PatternCompiler] = None):
        self.config = config or ExtractionConfig()
        compiler = compiler or PatternCompiler(strict=False)

        self.recognizers: List[Recognizer] = []
        if self.config.dictionaries:
            self.recognizers.append(DictionaryRecognizer(self.config.dictionaries, compiler))
        if self.config.enabled_classes or self.config.custom_rules:
            self.recognizers.append(
                PatternClassRecognizer(self.config.enabled_classes, self.config.custom_rules, compiler)
            )
        if self.config.heuristics_enabled:
            self.recognizers.append(HeuristicRecognizer(self.config.heuristic_weights))

        logger.info(
            f"Entity extractor ready with stages: "
            f"{', '.join(r.stage.value for r in self.recognizers) or 'none'}"
        )

    @property
    def heuristics(self) -> Optional[HeuristicRecognizer]:
        for recognizer in self.recognizers:
            if isinstance(recognizer, HeuristicRecognizer):
                return recognizer
        return None

    def extract(self, text: Union[TextInput, TextBuffer]) -> ExtractionResult:
        """
        Extract entities from text

        Args:
            text: Raw text or an existing TextBuffer

        Returns:
            ExtractionResult with entities sorted by start offset
        """
        buffer = text if isinstance(text, TextBuffer) else TextBuffer(text)
        budget = StepBudget(self.config.step_budget or settings.default_step_budget)

        failures: List[PartialEvaluationFailure] = []
        candidates: List[Candidate] = []

        for recognizer in self.recognizers:
            failures.extend(recognizer.setup_failures)
            if budget.exhausted:
                continue
            candidates.extend(recognizer.recognize(buffer, budget, failures))

        if self.config.min_confidence > 0:
            candidates = [c for c in candidates if c.confidence >= self.config.min_confidence]

        resolved = resolve_overlaps(candidates)

        truncated = budget.exhausted
        if self.config.max_entities is not None and len(resolved) > self.config.max_entities:
            resolved = resolved[:self.config.max_entities]
            truncated = True

        if truncated:
            logger.debug(f"Extraction truncated ({budget.steps} steps, {len(resolved)} entities kept)")

        entities = [self._to_entity(buffer, candidate) for candidate in resolved]
        return ExtractionResult(entities=entities, truncated=truncated, failures=failures)

    @staticmethod
    def _to_entity(buffer: TextBuffer, candidate: Candidate) -> Entity:
        return Entity(
            type=candidate.type,
            start=candidate.start,
            end=candidate.end,
            surface_text=buffer.slice(candidate.start, candidate.end),
            confidence=candidate.confidence,
            stage=candidate.stage,
            metadata=candidate.metadata
        )

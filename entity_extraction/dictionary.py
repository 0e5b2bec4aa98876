"""
Dictionary recognizer

Exact or case-folded lookup of known entity names. All dictionaries are
compiled into one literal automaton, so the lookup is a single pass however
many terms are configured. Matches must sit on word boundaries: "Paris" is
not found inside "Parisian".
"""
from typing import List, Optional, Sequence

from .base import Candidate, Dictionary, Recognizer, Stage
from exceptions import PartialEvaluationFailure
from logger import get_logger
from pattern_matching import MatchOptions, PatternCompiler, PatternMatcher, PatternSpec
from text_buffer import on_word_boundaries

logger = get_logger(__name__)


class DictionaryRecognizer(Recognizer):
    """
    Dictionary lookup stage

    Example:
        recognizer = DictionaryRecognizer([
            Dictionary("ORG", ("Acme Corp", "Globex")),
            Dictionary("LOCATION", ("Paris", "New York")),
        ])
        candidates = recognizer.recognize(TextBuffer(text), StepBudget(), failures=[])
    """

    stage = Stage.DICTIONARY

    def __init__(self, dictionaries: Sequence[Dictionary], compiler: Optional[PatternCompiler] = None):
        super().__init__()
        specs: List[PatternSpec] = []

        for dictionary in dictionaries:
            for position, term in enumerate(dictionary.terms):
                entry_name = f"{dictionary.name}[{position}]"
                if not isinstance(term, str) or not term.strip():
                    message = f"Dictionary entry must be a non-empty string, got {term!r}"
                    logger.warning(f"Skipping dictionary entry {entry_name}: {message}")
                    self.setup_failures.append(PartialEvaluationFailure("dictionary", entry_name, message))
                    continue

                specs.append(PatternSpec.literal(
                    label=dictionary.entity_type,
                    text=term.strip(),
                    case_sensitive=dictionary.case_sensitive,
                    dictionary=dictionary.name,
                    term=term.strip()
                ))

        compiler = compiler or PatternCompiler(strict=False)
        self.matcher = PatternMatcher(compiler.compile(specs, strict=False))
        logger.debug(f"Dictionary recognizer built with {len(specs)} terms")

    @property
    def term_count(self) -> int:
        return self.matcher.compiled.pattern_count

    def recognize(self, buffer, budget, failures) -> List[Candidate]:
        # Overlapping mode: the resolver, not the matcher, picks between nested terms
        result = self.matcher.match(buffer, MatchOptions(overlapping=True), budget=budget)
        text = buffer.text

        candidates = []
        for match in result:
            if not on_word_boundaries(text, match.start, match.end):
                continue
            candidates.append(Candidate(
                type=match.pattern_label,
                start=match.start,
                end=match.end,
                stage=self.stage,
                confidence=1.0,
                order=match.pattern_index,
                metadata={"dictionary": match.metadata.get("dictionary")}
            ))
        return candidates

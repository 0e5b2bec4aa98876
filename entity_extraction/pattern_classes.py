"""
Pattern-class recognizer

Regex classes for structurally regular entities (emails, URLs, dates,
numbers, phone numbers), run through the shared pattern matcher together
with any host-supplied custom rules.
"""
from typing import Dict, List, Optional, Sequence

from .base import Candidate, CustomRule, EntityType, Recognizer, Stage
from exceptions import PartialEvaluationFailure
from logger import get_logger
from pattern_matching import MatchOptions, PatternCompiler, PatternMatcher, PatternSpec

logger = get_logger(__name__)

_MONTHS = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|Jul(?:y)?|"
    r"Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)

# Built-in classes: entity type -> named regexes
PATTERN_CLASS_RULES: Dict[str, Dict[str, str]] = {
    EntityType.EMAIL.value: {
        "email": r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b",
    },
    EntityType.URL.value: {
        "url": r"\b(?:https?://|www\.)[^\s<>\"'{}|\\^`\[\]]*[^\s<>\"'{}|\\^`\[\].,;:!?)]",
    },
    EntityType.DATE.value: {
        "date_iso": r"\b\d{4}-\d{2}-\d{2}\b",
        "date_numeric": r"\b\d{1,2}[/.]\d{1,2}[/.](?:\d{4}|\d{2})\b",
        "date_month_first": rf"\b{_MONTHS}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}\b",
        "date_day_first": rf"\b\d{{1,2}}(?:st|nd|rd|th)?\s+{_MONTHS}\.?,?\s+\d{{4}}\b",
    },
    EntityType.PHONE.value: {
        "phone_us": r"(?<!\w)(?:\+?1[-.\s]?)?(?:\([0-9]{3}\)\s?|[0-9]{3}[-.\s]?)[0-9]{3}[-.\s]?[0-9]{4}\b",
        "phone_international": r"(?<!\w)\+\d{1,3}(?:[-.\s]?\d{2,4}){2,4}\b",
    },
    EntityType.NUMBER.value: {
        "number": r"(?<![\w.])[-+]?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?%?(?![\w@])",
    },
}


class PatternClassRecognizer(Recognizer):
    """
    Regex-class stage

    Built-in classes and custom rules share one CompiledMatcher and are
    scanned in overlapping mode so the resolver sees every candidate.
    Custom rules that fail to compile are reported as failures and left out.
    """

    stage = Stage.PATTERN

    def __init__(
        self,
        enabled_classes: Sequence[str],
        custom_rules: Sequence[CustomRule] = (),
        compiler: Optional[PatternCompiler] = None
    ):
        super().__init__()
        specs: List[PatternSpec] = []

        for entity_type in enabled_classes:
            for name, pattern in PATTERN_CLASS_RULES[entity_type].items():
                specs.append(PatternSpec.regex(name, pattern, entity_type=entity_type))

        for rule in custom_rules:
            specs.append(PatternSpec.regex(
                rule.name,
                rule.pattern,
                case_sensitive=rule.case_sensitive,
                entity_type=rule.entity_type,
                custom_rule=True
            ))

        compiler = compiler or PatternCompiler(strict=False)
        compiled = compiler.compile(specs, strict=False)

        for error in compiled.errors:
            self.setup_failures.append(PartialEvaluationFailure("custom_rule", error.label, error.message))

        self.matcher = PatternMatcher(compiled)
        logger.debug(
            f"Pattern-class recognizer built: {len(enabled_classes)} classes, "
            f"{len(custom_rules)} custom rules, {len(compiled.errors)} rejected"
        )

    def recognize(self, buffer, budget, failures) -> List[Candidate]:
        result = self.matcher.match(buffer, MatchOptions(overlapping=True), budget=budget)
        return [
            Candidate(
                type=match.metadata["entity_type"],
                start=match.start,
                end=match.end,
                stage=self.stage,
                confidence=1.0,
                order=match.pattern_index,
                metadata={"rule": match.pattern_label}
            )
            for match in result
        ]

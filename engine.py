"""
Lexiscan engine boundary

Plain-data entry points for hosts: each call takes text plus configuration
and returns dicts and lists only. Spans are codepoint offsets unless
``offset_unit="byte"`` is requested; every result names its unit.

    from engine import match_patterns, extract_entities, score_text

    match_patterns("category", [{"label": "cat", "pattern_text": "cat"},
                                {"label": "category", "pattern_text": "category"}])
    extract_entities("Contact alice@example.com", {"enabled_classes": ["EMAIL"]})
    score_text("this is urgent", [{"name": "kw", "weight": 2,
                                   "evaluator_kind": "keyword_presence",
                                   "keywords": ["urgent"]}])
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from config import settings
from entity_extraction import EntityExtractor, ExtractionConfig
from exceptions import InvalidConfiguration, PartialEvaluationFailure
from logger import get_logger
from pattern_matching import (
    CompiledMatcher,
    MatchOptions,
    MatcherCache,
    PatternCompiler,
    PatternMatcher,
    PatternSpec,
    load_catalog,
    match_intensity
)
from pattern_matching.compiler import PatternInput
from pattern_matching.loader import match_weight
from scoring import TextScorer
from scoring.evaluators import CustomFunction
from text_buffer import TextBuffer, TextInput, on_word_boundaries

logger = get_logger(__name__)

OFFSET_UNITS = ("codepoint", "byte")

# Judgment vocabulary used when extract_keywords gets no list
DEFAULT_KEYWORDS = (
    "you", "your", "always", "never", "constantly", "selfish", "lazy", "stupid", "idiot",
    "hate", "blame", "fault", "terrible", "awful", "horrible", "worthless", "useless",
    "pathetic", "incompetent", "manipulative", "narcissist", "abuser", "psycho",
    "sociopath", "liar", "loser",
)


def _check_offset_unit(offset_unit: str) -> str:
    if offset_unit not in OFFSET_UNITS:
        raise InvalidConfiguration(
            f"Unknown offset unit: {offset_unit}. Valid options: {list(OFFSET_UNITS)}",
            field="offset_unit"
        )
    return offset_unit


def _span(buffer: TextBuffer, start: int, end: int, offset_unit: str) -> List[int]:
    if offset_unit == "byte":
        return list(buffer.span_to_bytes(start, end))
    return [start, end]


def _resolve_matcher(
    patterns: Iterable[PatternInput],
    matcher: Optional[Union[str, CompiledMatcher]],
    cache: Optional[MatcherCache],
    strict: Optional[bool]
) -> CompiledMatcher:
    if isinstance(matcher, CompiledMatcher):
        return matcher
    if isinstance(matcher, str):
        if cache is None:
            raise InvalidConfiguration("A matcher handle needs the cache that issued it", field="matcher")
        return cache.get(matcher)
    if matcher is not None:
        raise InvalidConfiguration(f"Unsupported matcher: {type(matcher).__name__}", field="matcher")
    if cache is not None:
        _, compiled = cache.get_or_compile(patterns, strict=strict)
        return compiled
    return PatternCompiler(strict=strict).compile(patterns)


def match_patterns(
    text: TextInput,
    patterns: Iterable[PatternInput] = (),
    options: Optional[Union[MatchOptions, Mapping[str, Any]]] = None,
    matcher: Optional[Union[str, CompiledMatcher]] = None,
    cache: Optional[MatcherCache] = None,
    strict: Optional[bool] = None,
    offset_unit: str = "codepoint"
) -> Dict[str, Any]:
    """
    Find pattern matches

    Args:
        text: UTF-8 bytes or str
        patterns: PatternSpecs or mappings ({label, pattern_text, kind, case_sensitive})
        options: MatchOptions or mapping (overlapping, max_matches, step_budget)
        matcher: A CompiledMatcher, or a handle issued by ``cache``; replaces ``patterns``
        cache: Host-owned MatcherCache to compile into or look handles up in
        strict: Fail on the first invalid pattern instead of skipping it
        offset_unit: "codepoint" (default) or "byte"

    Returns:
        {"matches": [...], "truncated": bool, "failures": [...], "offset_unit": str}
    """
    _check_offset_unit(offset_unit)
    if not isinstance(options, MatchOptions):
        options = MatchOptions.from_dict(options)
    compiled = _resolve_matcher(patterns, matcher, cache, strict)

    buffer = TextBuffer(text)
    result = PatternMatcher(compiled).match(buffer, options)

    matches = []
    for match in result:
        data = match.to_dict()
        data["span"] = _span(buffer, match.start, match.end, offset_unit)
        matches.append(data)

    failures = [PartialEvaluationFailure("pattern", e.label, e.message).to_dict() for e in compiled.errors]
    return {
        "matches": matches,
        "truncated": result.truncated,
        "failures": failures,
        "offset_unit": offset_unit
    }


def extract_entities(
    text: TextInput,
    config: Optional[Union[ExtractionConfig, Mapping[str, Any]]] = None,
    offset_unit: str = "codepoint"
) -> Dict[str, Any]:
    """
    Extract typed, non-overlapping entities

    Args:
        text: UTF-8 bytes or str
        config: ExtractionConfig or mapping (dictionaries, enabled_classes,
            heuristics_enabled, custom_rules, heuristic_weights, max_entities,
            step_budget, min_confidence)
        offset_unit: "codepoint" (default) or "byte"

    Returns:
        {"entities": [...], "truncated": bool, "failures": [...], "offset_unit": str}
    """
    _check_offset_unit(offset_unit)
    if not isinstance(config, ExtractionConfig):
        config = ExtractionConfig.from_dict(config)
    extractor = EntityExtractor(config)

    buffer = TextBuffer(text)
    result = extractor.extract(buffer)

    data = result.to_dict()
    for entity, serialized in zip(result.entities, data["entities"]):
        serialized["span"] = _span(buffer, entity.start, entity.end, offset_unit)
    data["offset_unit"] = offset_unit
    return data


def score_text(
    text: TextInput,
    criteria: Iterable[Any],
    reduction: Optional[str] = None,
    functions: Optional[Mapping[str, CustomFunction]] = None,
    patterns: Optional[Iterable[PatternInput]] = None,
    extraction: Optional[Union[ExtractionConfig, Mapping[str, Any]]] = None,
    offset_unit: str = "codepoint"
) -> Dict[str, Any]:
    """
    Score text against weighted criteria

    Args:
        text: UTF-8 bytes or str
        criteria: Criterion instances or mappings
        reduction: sum, average or max (defaults to settings.default_reduction)
        functions: Host functions for custom criteria
        patterns: Optional pattern set whose matches feed density/intensity criteria
        extraction: Optional extraction config whose entities feed entity_presence
        offset_unit: Recorded in the result; scores carry no spans

    Returns:
        {"total": float, "reduction": str, "breakdown": [...], "offset_unit": str}
    """
    _check_offset_unit(offset_unit)
    scorer = TextScorer(criteria, reduction=reduction, functions=functions)

    matches = None
    compiled = None
    if patterns is not None:
        compiled = PatternCompiler().compile(patterns)
    extractor = None
    if extraction is not None:
        if not isinstance(extraction, ExtractionConfig):
            extraction = ExtractionConfig.from_dict(extraction)
        extractor = EntityExtractor(extraction)

    buffer = TextBuffer(text)
    if compiled is not None:
        matches = PatternMatcher(compiled).match(buffer, MatchOptions(overlapping=True)).matches
    entities = extractor.extract(buffer).entities if extractor is not None else None

    data = scorer.score(buffer, matches=matches, entities=entities).to_dict()
    data["offset_unit"] = offset_unit
    return data


def detect_patterns(
    text: TextInput,
    catalog: Optional[Sequence[PatternInput]] = None,
    cache: Optional[MatcherCache] = None,
    threshold: Optional[float] = None,
    offset_unit: str = "codepoint"
) -> Dict[str, Any]:
    """
    Run the high-entropy catalogue and summarise its intensity

    Args:
        text: UTF-8 bytes or str
        catalog: Pattern set to use instead of the bundled catalogue
        cache: Host-owned MatcherCache so the catalogue compiles once
        threshold: Detection threshold (defaults to settings.detection_threshold)
        offset_unit: Unit of each pattern's ``position``

    Returns:
        {"detected", "confidence", "score", "patterns": [{pattern_type,
        match_text, position, severity, weight}], "offset_unit"}
    """
    _check_offset_unit(offset_unit)
    threshold = settings.detection_threshold if threshold is None else threshold
    if not 0.0 <= threshold <= 1.0:
        raise InvalidConfiguration("threshold must be within [0, 1]", field="threshold")

    specs = list(catalog) if catalog is not None else load_catalog()
    compiled = _resolve_matcher(specs, None, cache, strict=None)

    buffer = TextBuffer(text)
    matches = PatternMatcher(compiled).match(buffer, MatchOptions(overlapping=True)).matches

    score = match_intensity(matches)
    patterns = [
        {
            "pattern_type": match.pattern_label,
            "match_text": match.matched_text,
            "position": _span(buffer, match.start, match.end, offset_unit)[0],
            "severity": match.metadata.get("severity", "medium"),
            "weight": match_weight(match),
        }
        for match in matches
    ]

    logger.debug(f"Detected {len(patterns)} catalogue matches, score {score:.3f}")
    return {
        "detected": score > threshold,
        "confidence": min(score, 1.0),
        "score": score,
        "patterns": patterns,
        "offset_unit": offset_unit
    }


def extract_keywords(text: TextInput, keywords: Optional[Iterable[str]] = None) -> List[str]:
    """
    Distinct whole-word keywords present in the text

    Args:
        text: UTF-8 bytes or str
        keywords: Vocabulary to look for (defaults to DEFAULT_KEYWORDS)

    Returns:
        Lower-cased keywords found, sorted
    """
    vocabulary = sorted({k.lower() for k in (DEFAULT_KEYWORDS if keywords is None else keywords) if k})
    if not vocabulary:
        return []

    compiled = PatternCompiler(strict=True).compile(
        PatternSpec.literal(keyword, keyword, case_sensitive=False) for keyword in vocabulary
    )
    buffer = TextBuffer(text)
    result = PatternMatcher(compiled).match(buffer, MatchOptions(overlapping=True))

    found = {
        match.pattern_label
        for match in result
        if on_word_boundaries(buffer.text, match.start, match.end)
    }
    return sorted(found)


__all__ = [
    "OFFSET_UNITS",
    "DEFAULT_KEYWORDS",
    "match_patterns",
    "extract_entities",
    "score_text",
    "detect_patterns",
    "extract_keywords",
]

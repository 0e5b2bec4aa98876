"""
Criterion evaluators

One function per built-in evaluator kind, each mapping (criterion,
context) to a raw numeric value. Missing or invalid parameters raise
ValueError; the scorer turns that into a failed breakdown slot.

Custom criteria call a named function from the scorer's function
registry with (context, parameters). Two are built in:
- match_intensity: weighted intensity of pattern matches
- lexical_diversity: distinct tokens over tokens
"""
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .base import Criterion, EvaluatorKind
from .context import ScoringContext
from entity_extraction import ExtractionConfig
from entity_extraction.base import entity_label
from pattern_matching import Match, MatchOptions, PatternMatcher, PatternSpec, match_intensity as intensity_of
from text_buffer import on_word_boundaries

CustomFunction = Callable[[ScoringContext, Mapping[str, Any]], float]


def _require(parameters: Mapping[str, Any], key: str) -> Any:
    if key not in parameters or parameters[key] is None:
        raise ValueError(f"Missing required parameter '{key}'")
    return parameters[key]


def _string_list(parameters: Mapping[str, Any], key: str) -> List[str]:
    value = _require(parameters, key)
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not value:
        raise ValueError(f"Parameter '{key}' must be a non-empty list")
    if not all(isinstance(item, str) for item in value):
        raise ValueError(f"Parameter '{key}' must contain only strings")
    return list(value)


def _mode(parameters: Mapping[str, Any], valid: Sequence[str]) -> str:
    mode = str(parameters.get("mode", valid[0])).lower()
    if mode not in valid:
        raise ValueError(f"Unknown mode '{mode}'. Valid options: {list(valid)}")
    return mode


def _run_patterns(context: ScoringContext, patterns: Sequence[Any], overlapping: bool = False) -> List[Match]:
    compiled = context.compiled(patterns)
    return PatternMatcher(compiled).match(context.buffer, MatchOptions(overlapping=overlapping)).matches


def _keyword_specs(parameters: Mapping[str, Any]) -> List[PatternSpec]:
    """One literal per keyword; keywords equal under the case mode count once"""
    keywords = _string_list(parameters, "keywords")
    case_sensitive = bool(parameters.get("case_sensitive", False))

    distinct: Dict[str, str] = {}
    for keyword in keywords:
        distinct.setdefault(keyword if case_sensitive else keyword.lower(), keyword)

    return [PatternSpec.literal(key, keyword, case_sensitive) for key, keyword in distinct.items()]


def criterion_patterns(criterion: Criterion) -> Optional[List[Any]]:
    """The pattern list a criterion compiles, or None when it runs no patterns"""
    if criterion.evaluator_kind is EvaluatorKind.KEYWORD_PRESENCE:
        return _keyword_specs(criterion.parameters)
    if criterion.evaluator_kind in (EvaluatorKind.PATTERN_DENSITY, EvaluatorKind.CUSTOM):
        patterns = criterion.parameters.get("patterns")
        if isinstance(patterns, (list, tuple)):
            return list(patterns)
    return None


def keyword_presence(criterion: Criterion, context: ScoringContext) -> float:
    """
    Keywords found in the text

    Parameters:
        keywords: Required keyword list
        mode: count (distinct keywords found, default), fraction, occurrences
        whole_word: Only count matches on word boundaries (default True)
        case_sensitive: Default False
    """
    params = criterion.parameters
    specs = _keyword_specs(params)
    mode = _mode(params, ("count", "fraction", "occurrences"))
    whole_word = bool(params.get("whole_word", True))

    matches = _run_patterns(context, specs, overlapping=True)

    text = context.buffer.text
    if whole_word:
        matches = [m for m in matches if on_word_boundaries(text, m.start, m.end)]

    if mode == "occurrences":
        return float(len(matches))

    found = len({m.pattern_index for m in matches})
    if mode == "fraction":
        return found / len(specs)
    return float(found)


def pattern_density(criterion: Criterion, context: ScoringContext) -> float:
    """
    Matches per unit of text

    Parameters:
        patterns: Pattern specs (mappings or literal strings); when omitted
            the caller-supplied matches are used
        per: token (default), codepoint or sentence
        overlapping: Count overlapping matches (default False)
    """
    params = criterion.parameters
    patterns = params.get("patterns")

    if patterns is not None:
        if not isinstance(patterns, (list, tuple)):
            raise ValueError("Parameter 'patterns' must be a list")
        matches = _run_patterns(context, patterns, overlapping=bool(params.get("overlapping", False)))
    elif context.matches is not None:
        matches = context.matches
    else:
        raise ValueError("Missing required parameter 'patterns' (and no matches were supplied)")

    per = str(params.get("per", "token")).lower()
    units = {
        "token": context.stats.tokens,
        "codepoint": context.stats.codepoints,
        "sentence": context.stats.sentences,
    }
    if per not in units:
        raise ValueError(f"Unknown unit '{per}'. Valid options: {list(units)}")

    denominator = units[per]
    return len(matches) / denominator if denominator else 0.0


def entity_presence(criterion: Criterion, context: ScoringContext) -> float:
    """
    Required entity types found

    Parameters:
        entity_types: Required type list
        mode: count (matching entities, default), any, all, fraction
        extraction: ExtractionConfig data used when no entities were supplied
    """
    params = criterion.parameters
    required = [entity_label(t) for t in _string_list(params, "entity_types")]
    mode = _mode(params, ("count", "any", "all", "fraction"))

    extraction = params.get("extraction")
    config = ExtractionConfig.from_dict(extraction) if extraction is not None else None
    entities = context.entities_for(config)

    wanted = set(required)
    present = {e.type for e in entities} & wanted

    if mode == "any":
        return 1.0 if present else 0.0
    if mode == "all":
        return 1.0 if present == wanted else 0.0
    if mode == "fraction":
        return len(present) / len(wanted)
    return float(sum(1 for e in entities if e.type in wanted))


def length_ratio(criterion: Criterion, context: ScoringContext) -> float:
    """
    Closeness of the text length to a target range

    1.0 inside [target_min, target_max]; length / target_min below the
    range; target_max / length above it.

    Parameters:
        target_min, target_max: At least one is required
        unit: codepoints (default), tokens or bytes
    """
    params = criterion.parameters
    target_min: Optional[float] = params.get("target_min")
    target_max: Optional[float] = params.get("target_max")
    if target_min is None and target_max is None:
        raise ValueError("Missing required parameter 'target_min' or 'target_max'")

    for name, value in (("target_min", target_min), ("target_max", target_max)):
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0):
            raise ValueError(f"Parameter '{name}' must be a non-negative number")
    if target_min is not None and target_max is not None and target_min > target_max:
        raise ValueError("target_min cannot exceed target_max")

    unit = str(params.get("unit", "codepoints")).lower()
    lengths = {
        "codepoints": context.stats.codepoints,
        "tokens": context.stats.tokens,
        "bytes": context.stats.bytes,
    }
    if unit not in lengths:
        raise ValueError(f"Unknown unit '{unit}'. Valid options: {list(lengths)}")
    length = lengths[unit]

    if target_min is not None and length < target_min:
        return length / target_min
    if target_max is not None and length > target_max:
        return target_max / length
    return 1.0


def match_intensity(context: ScoringContext, parameters: Mapping[str, Any]) -> float:
    """Weighted match intensity over ``patterns`` or the supplied matches"""
    patterns = parameters.get("patterns")
    if patterns is not None:
        matches = _run_patterns(context, patterns, overlapping=True)
    elif context.matches is not None:
        matches = context.matches
    else:
        raise ValueError("Missing required parameter 'patterns' (and no matches were supplied)")
    return intensity_of(matches)


def lexical_diversity(context: ScoringContext, parameters: Mapping[str, Any]) -> float:
    return context.stats.lexical_diversity


EVALUATORS: Dict[EvaluatorKind, Callable[[Criterion, ScoringContext], float]] = {
    EvaluatorKind.KEYWORD_PRESENCE: keyword_presence,
    EvaluatorKind.PATTERN_DENSITY: pattern_density,
    EvaluatorKind.ENTITY_PRESENCE: entity_presence,
    EvaluatorKind.LENGTH_RATIO: length_ratio,
}

BUILTIN_FUNCTIONS: Dict[str, CustomFunction] = {
    "match_intensity": match_intensity,
    "lexical_diversity": lexical_diversity,
}

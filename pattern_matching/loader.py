"""
Pattern catalogues

YAML files describing pattern sets, and the bundled high-entropy
communication catalogue. A document looks like:

    kind: regex              # default kind for entries (literal if omitted)
    case_sensitive: false    # default case mode for entries
    patterns:                # flat list of entries...
      - {label: greeting, pattern: hello}
    categories:              # ...and/or entries grouped by category
      gaslighting:
        - {label: gaslighting, pattern: 'you\\s+never\\s+remember', weight: 1.0}

Keys other than label/pattern/kind/case_sensitive/metadata are folded into
the entry's metadata, together with its category.
"""
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .base import Match, PatternSpec
from config import load_yaml_file, settings
from exceptions import InvalidConfiguration
from logger import get_logger

logger = get_logger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "catalog" / "high_entropy.yaml"

SPEC_KEYS = {"label", "pattern", "pattern_text", "kind", "case_sensitive", "metadata"}


def parse_pattern_document(document: Mapping[str, Any]) -> List[PatternSpec]:
    """
    Convert a parsed pattern document into PatternSpecs

    Raises:
        InvalidConfiguration: If the document or an entry is malformed
    """
    if not isinstance(document, Mapping):
        raise InvalidConfiguration("Pattern document must be a mapping", field="patterns")

    defaults = {
        "kind": document.get("kind", "literal"),
        "case_sensitive": document.get("case_sensitive", True),
    }

    entries = document.get("patterns") or []
    categories = document.get("categories") or {}
    if not isinstance(entries, list):
        raise InvalidConfiguration("'patterns' must be a list", field="patterns")
    if not isinstance(categories, Mapping):
        raise InvalidConfiguration("'categories' must map category names to lists", field="categories")

    specs = [_parse_entry(entry, defaults, None) for entry in entries]
    for category, category_entries in categories.items():
        if not isinstance(category_entries, list):
            raise InvalidConfiguration(f"Category '{category}' must be a list", field="categories")
        specs.extend(_parse_entry(entry, defaults, str(category)) for entry in category_entries)

    return specs


def _parse_entry(entry: Any, defaults: Dict[str, Any], category: Optional[str]) -> PatternSpec:
    if not isinstance(entry, Mapping):
        raise InvalidConfiguration(f"Pattern entry must be a mapping, got {type(entry).__name__}", field="patterns")

    metadata = dict(entry.get("metadata") or {})
    metadata.update({key: value for key, value in entry.items() if key not in SPEC_KEYS})
    if category is not None:
        metadata.setdefault("category", category)

    data = dict(defaults)
    data.update({key: value for key, value in entry.items() if key in SPEC_KEYS})
    data["metadata"] = metadata
    return PatternSpec.from_dict(data)


def load_pattern_specs(path: Union[str, Path]) -> List[PatternSpec]:
    """
    Load a pattern set from a YAML file

    Args:
        path: YAML file path

    Returns:
        PatternSpecs in file order (flat list first, then categories)
    """
    specs = parse_pattern_document(load_yaml_file(path))
    logger.info(f"Loaded {len(specs)} patterns from {path}")
    return specs


def load_catalog(path: Optional[Union[str, Path]] = None) -> List[PatternSpec]:
    """
    Load the high-entropy pattern catalogue

    Args:
        path: Catalogue file; defaults to settings.pattern_catalog_path,
            then the bundled catalogue
    """
    path = path or settings.pattern_catalog_path or DEFAULT_CATALOG_PATH
    return load_pattern_specs(path)


def match_weight(match: Match) -> float:
    """Weight carried in a match's metadata (1.0 when absent)"""
    try:
        return float(match.metadata.get("weight", 1.0))
    except (TypeError, ValueError):
        return 1.0


def match_intensity(matches: Iterable[Match]) -> float:
    """
    Intensity of a set of weighted matches

    sum(weights) / (1 + 0.1 * count), capped at 1.0; 0.0 without matches.
    More matches raise the score, with diminishing returns.
    """
    weights = [match_weight(m) for m in matches]
    if not weights:
        return 0.0
    return min(1.0, sum(weights) / (1.0 + 0.1 * len(weights)))

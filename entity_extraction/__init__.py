"""
Entity Extraction Module

Layered, rule-driven entity recognition over text buffers:
- Dictionary lookup of known names (exact or case-folded)
- Built-in regex classes: EMAIL, URL, DATE, NUMBER, PHONE, plus custom rules
- Heuristics for capitalized names, organizations and relationship mentions

Candidates from all stages are resolved into a non-overlapping,
start-sorted entity list.

Quick Start:
    from entity_extraction import EntityExtractor, ExtractionConfig

    extractor = EntityExtractor(ExtractionConfig.from_dict({
        "dictionaries": {"ORG": ["Acme Corp"]},
        "enabled_classes": ["EMAIL", "DATE"],
    }))
    result = extractor.extract("Mail jane@acme.com before 2024-05-01")
"""

from .base import (
    EntityType,
    PATTERN_CLASSES,
    Stage,
    Candidate,
    Entity,
    Dictionary,
    CustomRule,
    HeuristicWeights,
    ExtractionConfig,
    ExtractionResult,
    Recognizer
)

from .dictionary import DictionaryRecognizer
from .pattern_classes import PatternClassRecognizer, PATTERN_CLASS_RULES
from .heuristics import HeuristicRecognizer, detect_pronouns, detect_sentiment
from .resolver import resolve_overlaps, spans_overlap
from .extractor import EntityExtractor
from .loader import load_extraction_config

__all__ = [
    # Base classes
    "EntityType",
    "PATTERN_CLASSES",
    "Stage",
    "Candidate",
    "Entity",
    "Dictionary",
    "CustomRule",
    "HeuristicWeights",
    "ExtractionConfig",
    "ExtractionResult",
    "Recognizer",

    # Recognizers
    "DictionaryRecognizer",
    "PatternClassRecognizer",
    "PATTERN_CLASS_RULES",
    "HeuristicRecognizer",
    "detect_pronouns",
    "detect_sentiment",

    # Resolution and pipeline
    "resolve_overlaps",
    "spans_overlap",
    "EntityExtractor",
    "load_extraction_config",
]

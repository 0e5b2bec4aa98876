"""
Pattern Matching Module

Compiles literal and regex pattern sets into a single searchable matcher
and runs it over text buffers:
- Literals share an Aho-Corasick automaton per case mode
- Regexes are scanned lazily alongside the literal pass
- Leftmost-longest selection or overlapping reporting
- max_matches and step budgets for bounded scans

Quick Start:
    from pattern_matching import PatternCompiler, PatternMatcher, PatternSpec, MatchOptions
    from text_buffer import TextBuffer

    compiled = PatternCompiler().compile([
        PatternSpec.literal("cat", "cat"),
        PatternSpec.literal("category", "category"),
    ])
    result = PatternMatcher(compiled).match(TextBuffer("category"), MatchOptions())

    # Bundled high-entropy catalogue
    catalog = load_catalog()
"""

# Base classes and enums
from .base import (
    PatternKind,
    PatternSpec,
    Match,
    MatchOptions,
    MatchResult
)

# Compilation and matching
from .automaton import LiteralAutomaton, fold_char, fold_text
from .compiler import CompiledMatcher, PatternCompiler, fingerprint_specs
from .matcher import PatternMatcher, StepBudget

# Host-owned matcher cache
from .registry import MatcherCache, CacheStats

# YAML pattern sets and the bundled catalogue
from .loader import (
    DEFAULT_CATALOG_PATH,
    load_catalog,
    load_pattern_specs,
    parse_pattern_document,
    match_intensity
)

__all__ = [
    # Base classes
    "PatternKind",
    "PatternSpec",
    "Match",
    "MatchOptions",
    "MatchResult",

    # Compilation and matching
    "LiteralAutomaton",
    "fold_char",
    "fold_text",
    "CompiledMatcher",
    "PatternCompiler",
    "fingerprint_specs",
    "PatternMatcher",
    "StepBudget",

    # Cache
    "MatcherCache",
    "CacheStats",

    # Catalogue
    "DEFAULT_CATALOG_PATH",
    "load_catalog",
    "load_pattern_specs",
    "parse_pattern_document",
    "match_intensity",
]

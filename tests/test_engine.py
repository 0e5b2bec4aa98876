"""
Tests for the plain-data engine entry points.
"""

import pytest

from engine import detect_patterns, extract_entities, extract_keywords, match_patterns, score_text
from exceptions import InvalidConfiguration, InvalidEncoding
from pattern_matching import MatcherCache, PatternSpec


CAT_PATTERNS = [
    {"label": "cat", "pattern_text": "cat"},
    {"label": "category", "pattern_text": "category"},
]


# ==================== Matching Tests ====================

class TestMatchPatterns:
    """Tests for match_patterns"""

    def test_plain_data_result(self):
        result = match_patterns("category", CAT_PATTERNS)

        assert result == {
            "matches": [{
                "pattern_label": "category",
                "span": [0, 8],
                "matched_text": "category",
                "metadata": {},
            }],
            "truncated": False,
            "failures": [],
            "offset_unit": "codepoint",
        }

    def test_byte_offsets(self):
        codepoints = match_patterns("café cat", [{"label": "cat", "pattern_text": "cat"}])
        byte_spans = match_patterns("café cat", [{"label": "cat", "pattern_text": "cat"}], offset_unit="byte")

        assert codepoints["matches"][0]["span"] == [5, 8]
        assert byte_spans["matches"][0]["span"] == [6, 9]
        assert byte_spans["offset_unit"] == "byte"

    def test_bytes_input(self):
        result = match_patterns("café cat".encode("utf-8"), [{"label": "cat", "pattern_text": "cat"}])

        assert result["matches"][0]["span"] == [5, 8]

    def test_invalid_bytes(self):
        with pytest.raises(InvalidEncoding):
            match_patterns(b"\xff\xfe", CAT_PATTERNS)

    def test_unknown_offset_unit(self):
        with pytest.raises(InvalidConfiguration):
            match_patterns("category", CAT_PATTERNS, offset_unit="utf16")

    def test_options_mapping(self):
        result = match_patterns("category", CAT_PATTERNS, options={"overlapping": True, "max_matches": 1})

        assert [m["pattern_label"] for m in result["matches"]] == ["cat"]
        assert result["truncated"] is True

    def test_lenient_compile_reports_failures(self):
        patterns = [{"label": "bad", "pattern_text": "(unclosed", "kind": "regex"}] + CAT_PATTERNS

        result = match_patterns("category", patterns, strict=False)

        assert [m["pattern_label"] for m in result["matches"]] == ["category"]
        assert [(f["source"], f["name"]) for f in result["failures"]] == [("pattern", "bad")]

    def test_cached_matcher_handle(self):
        cache = MatcherCache()
        handle, _ = cache.get_or_compile([PatternSpec.literal("cat", "cat")])

        result = match_patterns("a cat", matcher=handle, cache=cache)

        assert result["matches"][0]["span"] == [2, 5]

    def test_handle_without_cache(self):
        with pytest.raises(InvalidConfiguration):
            match_patterns("a cat", matcher="abc123")


# ==================== Extraction Tests ====================

class TestExtractEntities:
    """Tests for extract_entities"""

    def test_email_scenario(self):
        result = extract_entities("Contact alice@example.com or bob@test.org", {"enabled_classes": ["EMAIL"]})

        assert [(e["type"], e["span"]) for e in result["entities"]] == [
            ("EMAIL", [8, 25]),
            ("EMAIL", [29, 41]),
        ]
        assert result["truncated"] is False
        assert result["failures"] == []
        assert result["offset_unit"] == "codepoint"

    def test_byte_offsets(self):
        result = extract_entities("Café: bob@test.org", {"enabled_classes": ["EMAIL"]}, offset_unit="byte")

        assert result["entities"][0]["span"] == [7, 19]
        assert result["entities"][0]["surface_text"] == "bob@test.org"

    def test_invalid_config(self):
        with pytest.raises(InvalidConfiguration):
            extract_entities("text", {"enabled_classes": ["POSTCODE"]})


# ==================== Scoring Tests ====================

class TestScoreText:
    """Tests for score_text"""

    def test_keyword_scenario(self):
        result = score_text("this is urgent", [{
            "name": "kw",
            "weight": 2,
            "evaluator_kind": "keyword_presence",
            "keywords": ["urgent"],
        }])

        assert result["total"] == 2.0
        assert result["reduction"] == "sum"
        assert result["offset_unit"] == "codepoint"
        assert result["breakdown"] == [{
            "criterion_name": "kw",
            "raw_value": 1.0,
            "weighted_value": 2.0,
            "failed": False,
            "error": None,
        }]

    def test_patterns_feed_density(self):
        result = score_text(
            "cat dog cat bird",
            [{"name": "d", "weight": 1.0, "evaluator_kind": "pattern_density"}],
            patterns=[{"label": "cat", "pattern_text": "cat"}]
        )

        assert result["breakdown"][0]["raw_value"] == pytest.approx(0.5)

    def test_extraction_feeds_entity_presence(self):
        result = score_text(
            "Mail bob@test.org",
            [{"name": "e", "weight": 1.0, "evaluator_kind": "entity_presence", "entity_types": ["EMAIL"]}],
            extraction={"enabled_classes": ["EMAIL"]}
        )

        assert result["total"] == 1.0

    def test_invalid_criteria(self):
        with pytest.raises(InvalidConfiguration):
            score_text("text", [{"name": "kw", "weight": -2, "evaluator_kind": "keyword_presence"}])


# ==================== Catalogue Detection Tests ====================

class TestDetectPatterns:
    """Tests for detect_patterns over the bundled catalogue"""

    def test_detects_dehumanization(self):
        result = detect_patterns("They are just a plague of vermin")

        assert result["detected"] is True
        assert 0.0 < result["score"] <= 1.0
        assert result["confidence"] == result["score"]
        types = {p["pattern_type"] for p in result["patterns"]}
        assert "dehumanization" in types
        texts = {p["match_text"].lower() for p in result["patterns"]}
        assert "vermin" in texts

    def test_pattern_entries(self):
        result = detect_patterns("You're so selfish")

        entry = next(p for p in result["patterns"] if p["pattern_type"] == "character_judgment")
        assert entry["position"] == 0
        assert entry["severity"] == "high"
        assert entry["weight"] == 1.0

    def test_neutral_text(self):
        result = detect_patterns("Have a nice day")

        assert result["detected"] is False
        assert result["score"] == 0.0
        assert result["patterns"] == []

    def test_shared_cache_compiles_once(self):
        cache = MatcherCache()

        detect_patterns("You're so selfish", cache=cache)
        detect_patterns("They are vermin", cache=cache)

        assert len(cache) == 1

    def test_custom_catalog_and_threshold(self):
        catalog = [PatternSpec.literal("rude", "whatever", case_sensitive=False, weight=0.2)]

        low = detect_patterns("Whatever.", catalog=catalog)
        strict = detect_patterns("Whatever.", catalog=catalog, threshold=0.1)

        assert low["score"] == pytest.approx(0.2 / 1.1)
        assert low["detected"] is False
        assert strict["detected"] is True

    def test_invalid_threshold(self):
        with pytest.raises(InvalidConfiguration):
            detect_patterns("text", threshold=1.5)


# ==================== Keyword Tests ====================

class TestExtractKeywords:
    """Tests for extract_keywords"""

    def test_default_vocabulary(self):
        assert extract_keywords("You are always so lazy") == ["always", "lazy", "you"]

    def test_whole_words_only(self):
        assert extract_keywords("Yourself") == []

    def test_custom_vocabulary(self):
        assert extract_keywords("Ship it ASAP, please", ["asap", "Please", "later"]) == ["asap", "please"]

    def test_empty_vocabulary(self):
        assert extract_keywords("anything", []) == []

"""
Tests for pattern compilation, matching, the matcher cache and the
bundled pattern catalogue.
"""

import logging

import pytest

from exceptions import InvalidConfiguration, PatternCompileError
from pattern_matching import (
    LiteralAutomaton,
    Match,
    MatchOptions,
    MatcherCache,
    PatternCompiler,
    PatternKind,
    PatternMatcher,
    PatternSpec,
    fold_char,
    fold_text,
    load_catalog,
    load_pattern_specs,
    match_intensity,
    parse_pattern_document
)
from text_buffer import TextBuffer


def run(patterns, text, **options):
    compiled = PatternCompiler(strict=True).compile(patterns)
    return PatternMatcher(compiled).match(TextBuffer(text), MatchOptions(**options))


# ==================== Automaton Tests ====================

class TestLiteralAutomaton:
    """Tests for the Aho-Corasick automaton"""

    def test_finds_all_keys_in_one_pass(self):
        automaton = LiteralAutomaton([("he", 0), ("she", 1), ("hers", 2)])

        hits = set()
        state = automaton.ROOT
        for position, char in enumerate("ushers"):
            state = automaton.step(state, char)
            for index in automaton.outputs(state):
                hits.add((index, position + 1))

        assert hits == {(0, 4), (1, 4), (2, 6)}

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            LiteralAutomaton([("", 0)])

    def test_fold_keeps_length(self):
        assert fold_text("ÀB") == "àb"
        # Dotted capital I lower-cases to two codepoints, so it is left as is
        assert fold_char("İ") == "İ"
        assert len(fold_text("İstanbul")) == len("İstanbul")


# ==================== Compiler Tests ====================

class TestPatternCompiler:
    """Tests for PatternCompiler"""

    def test_mixed_pattern_set(self):
        compiled = PatternCompiler().compile([
            PatternSpec.literal("word", "abc"),
            PatternSpec.regex("digits", r"\d+"),
        ])

        assert compiled.pattern_count == 2
        assert compiled.has_literals
        assert len(compiled.regexes) == 1
        assert compiled.errors == ()

    def test_strict_compile_names_failing_pattern(self):
        compiler = PatternCompiler(strict=True)

        with pytest.raises(PatternCompileError) as exc_info:
            compiler.compile([
                PatternSpec.literal("ok", "fine"),
                PatternSpec.regex("broken", "(unclosed"),
            ])

        assert exc_info.value.label == "broken"

    def test_lenient_compile_skips_failing_pattern(self):
        compiled = PatternCompiler(strict=False).compile([
            PatternSpec.regex("broken", "(unclosed"),
            PatternSpec.literal("ok", "fine"),
        ])

        assert compiled.pattern_count == 1
        assert [e.label for e in compiled.errors] == ["broken"]

        result = PatternMatcher(compiled).match(TextBuffer("all fine"))
        assert [m.pattern_label for m in result] == ["ok"]

    def test_empty_literal_is_compile_error(self):
        with pytest.raises(PatternCompileError):
            PatternCompiler(strict=True).compile([PatternSpec.literal("empty", "")])

    def test_mapping_input(self):
        compiled = PatternCompiler().compile([
            {"label": "year", "pattern_text": r"\d{4}", "kind": "regex"},
            {"pattern": "cat"},
        ])

        assert compiled.spec(0).kind is PatternKind.REGEX
        assert compiled.spec(1).label == "cat"

    def test_unknown_kind_rejected(self):
        with pytest.raises(InvalidConfiguration):
            PatternCompiler().compile([{"label": "x", "pattern_text": "x", "kind": "glob"}])

    def test_non_spec_input_rejected(self):
        with pytest.raises(InvalidConfiguration):
            PatternCompiler().compile([42])

    def test_fingerprint_is_deterministic(self):
        specs = [PatternSpec.literal("a", "alpha"), PatternSpec.regex("b", "b+")]

        first = PatternCompiler().compile(specs)
        second = PatternCompiler().compile(list(specs))

        assert first.fingerprint == second.fingerprint

    def test_compile_logs_pattern_count_at_info(self):
        records = []

        class Collector(logging.Handler):
            def emit(self, record):
                records.append(record)

        handler = Collector()
        compiler_logger = logging.getLogger("pattern_matching.compiler")
        compiler_logger.addHandler(handler)
        try:
            PatternCompiler().compile([PatternSpec.literal("a", "alpha"), PatternSpec.regex("b", "b+")])
        finally:
            compiler_logger.removeHandler(handler)

        assert any(
            record.levelno == logging.INFO and record.getMessage().startswith("Compiled 2 patterns")
            for record in records
        )


# ==================== Matcher Tests ====================

class TestPatternMatcher:
    """Tests for PatternMatcher selection and caps"""

    def test_longest_match_wins(self):
        result = run([PatternSpec.literal("cat", "cat"), PatternSpec.literal("category", "category")], "category")

        assert len(result) == 1
        match = result.matches[0]
        assert match.pattern_label == "category"
        assert match.span == (0, 8)
        assert match.matched_text == "category"
        assert result.truncated is False

    def test_leftmost_match_wins_over_longer_later_one(self):
        result = run([PatternSpec.literal("long", "bcd"), PatternSpec.literal("short", "ab")], "abcd")

        assert [m.pattern_label for m in result] == ["short"]

    def test_equal_length_tie_goes_to_registration_order(self):
        result = run([PatternSpec.regex("regex", "c.t"), PatternSpec.literal("literal", "cat")], "cat")

        assert [m.pattern_label for m in result] == ["regex"]

    def test_overlapping_mode_reports_everything(self):
        result = run(
            [PatternSpec.literal("cat", "cat"), PatternSpec.literal("category", "category")],
            "category",
            overlapping=True
        )

        assert [(m.pattern_label, m.span) for m in result] == [("cat", (0, 3)), ("category", (0, 8))]

    def test_case_insensitive_literal(self):
        result = run([PatternSpec.literal("greeting", "HELLO", case_sensitive=False)], "say hello")

        assert len(result) == 1
        assert result.matches[0].span == (4, 9)
        assert result.matches[0].matched_text == "hello"

    def test_case_sensitive_literal(self):
        result = run([PatternSpec.literal("greeting", "HELLO")], "say hello")

        assert len(result) == 0

    def test_case_insensitive_regex(self):
        result = run([PatternSpec.regex("word", "urgent", case_sensitive=False)], "URGENT now")

        assert result.matches[0].span == (0, 6)

    def test_literals_and_regexes_together(self):
        result = run([PatternSpec.literal("word", "abc"), PatternSpec.regex("digits", r"\d+")], "abc 123")

        assert [(m.pattern_label, m.span) for m in result] == [("word", (0, 3)), ("digits", (4, 7))]

    def test_max_matches_truncates(self):
        result = run([PatternSpec.literal("a", "a")], "a a a", max_matches=1)

        assert len(result) == 1
        assert result.truncated is True

    def test_max_matches_exactly_reached_is_not_truncated(self):
        result = run([PatternSpec.literal("a", "a")], "a a a", max_matches=3)

        assert len(result) == 3
        assert result.truncated is False

    def test_empty_pattern_set(self):
        result = run([], "anything at all")

        assert result.matches == []
        assert result.truncated is False

    def test_step_budget_truncates(self):
        result = run([PatternSpec.literal("a", "a")], "a" * 100, overlapping=True, step_budget=10)

        assert result.truncated is True
        assert 0 < len(result) < 100

    def test_zero_width_regex_matches_are_skipped(self):
        assert len(run([PatternSpec.regex("xs", "x*")], "abc")) == 0

        result = run([PatternSpec.regex("xs", "x*")], "axxb")
        assert [m.span for m in result] == [(1, 3)]

    def test_regex_resumes_after_claimed_region(self):
        result = run([PatternSpec.literal("ab", "ab"), PatternSpec.regex("bc", "[bc]+")], "abc")

        assert [(m.pattern_label, m.span) for m in result] == [("ab", (0, 2)), ("bc", (2, 3))]

    def test_regex_match_cut_by_earlier_literal_is_found_again(self):
        result = run([PatternSpec.literal("xa", "xa"), PatternSpec.regex("ab", "a+b")], "xaab")

        assert [(m.pattern_label, m.span) for m in result] == [("xa", (0, 2)), ("ab", (2, 4))]

    def test_matches_are_sorted_and_disjoint(self):
        patterns = [
            PatternSpec.literal("the", "the"),
            PatternSpec.literal("then", "then"),
            PatternSpec.literal("hen", "hen"),
            PatternSpec.regex("word", r"[a-z]+"),
        ]
        result = run(patterns, "then the hen went")

        starts = [m.start for m in result]
        assert starts == sorted(starts)
        for previous, current in zip(result.matches, result.matches[1:]):
            assert previous.end <= current.start

    def test_results_are_deterministic(self):
        patterns = [PatternSpec.literal("a", "ab"), PatternSpec.regex("b", "b.")]
        text = "abababab"

        assert run(patterns, text).to_dict() == run(patterns, text).to_dict()

    def test_metadata_is_carried_onto_matches(self):
        result = run([PatternSpec.literal("kw", "urgent", weight=2.0)], "urgent")

        assert result.matches[0].metadata == {"weight": 2.0}

    def test_non_ascii_offsets_are_codepoints(self):
        result = run([PatternSpec.literal("cat", "cat")], "café cat")

        assert result.matches[0].span == (5, 8)

    def test_negative_max_matches_rejected(self):
        with pytest.raises(InvalidConfiguration):
            MatchOptions(max_matches=-1)


# ==================== Cache Tests ====================

class TestMatcherCache:
    """Tests for the host-owned matcher cache"""

    def test_same_set_same_handle(self):
        cache = MatcherCache()
        specs = [PatternSpec.literal("a", "alpha")]

        handle, compiled = cache.get_or_compile(specs)
        again, compiled_again = cache.get_or_compile(list(specs))

        assert handle == again
        assert compiled is compiled_again
        assert len(cache) == 1
        assert cache.get(handle) is compiled

    def test_unknown_handle(self):
        with pytest.raises(InvalidConfiguration):
            MatcherCache().get("missing")

    def test_evict_and_stats(self):
        cache = MatcherCache()
        handle, _ = cache.get_or_compile([PatternSpec.literal("a", "alpha"), PatternSpec.literal("b", "beta")])

        stats = cache.get_stats()
        assert stats.total_matchers == 1
        assert stats.total_patterns == 2

        assert cache.evict(handle) is True
        assert cache.evict(handle) is False
        assert handle not in cache


# ==================== Catalogue Tests ====================

class TestCatalog:
    """Tests for YAML pattern sets and the bundled catalogue"""

    def test_bundled_catalog_compiles(self):
        specs = load_catalog()

        assert specs
        assert all(spec.kind is PatternKind.REGEX for spec in specs)
        assert all(not spec.case_sensitive for spec in specs)
        assert all("category" in spec.metadata for spec in specs)

        compiled = PatternCompiler(strict=True).compile(specs)
        assert compiled.errors == ()

    @pytest.mark.parametrize("text,label", [
        ("They are just a plague of vermin", "dehumanization"),
        ("You're so selfish", "character_judgment"),
        ("If you really cared about me, you would do this", "double_bind"),
        ("I am blocking you everywhere", "digital_withdrawal"),
        ("He has been ghosting me for weeks", "withdrawal"),
        ("She keeps walling off", "emotional_barrier"),
        ("You started it", "childish_blame"),
        ("You pushed my buttons", "responsibility_avoidance"),
        ("Define your terms first", "sealioning_definitions"),
        ("It is game over for us", "termination_thinking"),
        ("This is never going to work", "catastrophizing"),
        ("Let us get drunk tonight", "substance_use"),
        ("Please validate my feelings", "reassurance_seeking"),
        ("Don't take this the wrong way", "negging"),
        ("That is a double standard", "whataboutism"),
        ("I would never stoop that low", "moral_grandstanding"),
        ("My ideas aren't mine anymore", "perspecticide"),
        ("He said that you lied", "triangulation"),
        ("I hate to see you like this", "concern_trolling"),
        ("Technically correct is still correct", "bad_faith_pedantry"),
        ("Typical of you people", "dog_whistling"),
    ])
    def test_catalog_detects(self, text, label):
        compiled = PatternCompiler().compile(load_catalog())
        result = PatternMatcher(compiled).match(TextBuffer(text), MatchOptions(overlapping=True))

        assert label in {m.pattern_label for m in result}

    def test_load_pattern_file(self, tmp_path):
        path = tmp_path / "patterns.yaml"
        path.write_text(
            "kind: regex\n"
            "patterns:\n"
            "  - {label: year, pattern: '\\d{4}', weight: 0.5}\n"
            "categories:\n"
            "  greetings:\n"
            "    - {label: hello, pattern: hello, kind: literal, case_sensitive: false}\n"
        )

        specs = load_pattern_specs(path)

        assert [spec.label for spec in specs] == ["year", "hello"]
        assert specs[0].kind is PatternKind.REGEX
        assert specs[0].metadata == {"weight": 0.5}
        assert specs[1].kind is PatternKind.LITERAL
        assert specs[1].case_sensitive is False
        assert specs[1].metadata == {"category": "greetings"}

    def test_malformed_documents(self):
        with pytest.raises(InvalidConfiguration):
            parse_pattern_document(["not", "a", "mapping"])
        with pytest.raises(InvalidConfiguration):
            parse_pattern_document({"patterns": {"label": "x"}})
        with pytest.raises(InvalidConfiguration):
            parse_pattern_document({"patterns": ["bare string"]})

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidConfiguration):
            load_pattern_specs(tmp_path / "missing.yaml")


class TestMatchIntensity:
    """Tests for weighted match intensity"""

    @staticmethod
    def make_match(weight=None):
        metadata = {} if weight is None else {"weight": weight}
        return Match("label", 0, 1, "x", 0, metadata)

    def test_no_matches(self):
        assert match_intensity([]) == 0.0

    def test_single_match(self):
        assert match_intensity([self.make_match()]) == pytest.approx(1.0 / 1.1)

    def test_weights_are_used(self):
        matches = [self.make_match(0.5), self.make_match(0.5)]

        assert match_intensity(matches) == pytest.approx(1.0 / 1.2)

    def test_capped_at_one(self):
        assert match_intensity([self.make_match(1.0) for _ in range(10)]) == 1.0

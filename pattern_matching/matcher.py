"""
Pattern Matcher

Runs a CompiledMatcher over a TextBuffer. Literal patterns are found in one
left-to-right pass that advances the case-sensitive and case-insensitive
automata together; each regex is scanned lazily next to it. Candidates come
out ordered by the selection key, so scanning stops as soon as
``max_matches`` is satisfied. In non-overlapping mode a regex whose pending
match is cut by an accepted one is searched again from the claimed end.
"""
import heapq
from typing import Iterator, List, Optional, Tuple

from .automaton import fold_char
from .base import Match, MatchOptions, MatchResult
from .compiler import CompiledMatcher
from config import settings
from logger import get_logger
from text_buffer import TextBuffer

logger = get_logger(__name__)

# (start, order, pattern_index, end); ``order`` is -length for leftmost-longest
# selection and 0 when every match is reported
Candidate = Tuple[int, int, int, int]


class StepBudget:
    """Counts scan work; once the limit is passed the scan winds down"""

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit
        self.steps = 0
        self.exhausted = False

    def charge(self, steps: int = 1) -> bool:
        """Record work; returns False once the budget is spent"""
        if self.exhausted:
            return False
        self.steps += steps
        if self.limit is not None and self.steps > self.limit:
            self.exhausted = True
            return False
        return True


class PatternMatcher:
    """
    Executes a compiled pattern set against text buffers

    Stateless between calls: the same instance (and the same CompiledMatcher)
    may be used from several threads at once.

    Example:
        compiled = PatternCompiler().compile(specs)
        matcher = PatternMatcher(compiled)
        result = matcher.match(TextBuffer("category"), MatchOptions())
    """

    def __init__(self, compiled: CompiledMatcher):
        self.compiled = compiled

    def match(
        self,
        buffer: TextBuffer,
        options: Optional[MatchOptions] = None,
        budget: Optional[StepBudget] = None
    ) -> MatchResult:
        """
        Find matches sorted by start offset

        Non-overlapping mode (default) keeps, at each earliest unclaimed
        position, the longest candidate, then the lowest registration index.
        Overlapping mode reports every candidate ordered by start offset,
        then registration index.

        Args:
            buffer: Text to scan
            options: Matching mode, caps and step budget
            budget: Shared StepBudget; overrides options.step_budget so several
                scans can draw from one allowance
        """
        options = options or MatchOptions()
        if self.compiled.is_empty:
            return MatchResult()

        if budget is None:
            budget = StepBudget(options.step_budget or settings.default_step_budget)
        candidates = self.iter_candidates(buffer, options.overlapping, budget)

        matches: List[Match] = []
        truncated = False

        for start, _, index, end in candidates:
            if options.max_matches is not None and len(matches) >= options.max_matches:
                truncated = True
                break
            matches.append(self._build_match(buffer, start, end, index))

        if budget.exhausted:
            logger.debug(f"Scan stopped after {budget.steps} steps (budget {budget.limit})")
            truncated = True
        elif truncated:
            logger.debug(f"Scan stopped at max_matches={options.max_matches}")

        return MatchResult(matches=matches, truncated=truncated)

    def iter_candidates(
        self,
        buffer: TextBuffer,
        overlapping: bool = False,
        budget: Optional[StepBudget] = None
    ) -> Iterator[Candidate]:
        """
        Lazily ordered candidate stream across literal and regex patterns

        In overlapping mode every candidate is produced; otherwise only the
        selected, mutually disjoint ones.
        """
        budget = budget or StepBudget()
        if not overlapping:
            return self._select_disjoint(buffer.text, budget)

        streams = []
        if self.compiled.has_literals:
            streams.append(self._scan_literals(buffer.text, True, budget))

        for index, regex in self.compiled.regexes:
            streams.append(self._scan_regex(buffer.text, index, regex, budget))

        return heapq.merge(*streams)

    def _select_disjoint(self, text: str, budget: StepBudget) -> Iterator[Candidate]:
        """
        Leftmost-longest selection over the literal stream and every regex

        The literal stream already carries every literal hit. A regex only
        holds its next match, so when an accepted candidate overlaps that
        match the regex is searched again from the first unclaimed position.
        """
        regexes = dict(self.compiled.regexes)
        heads: List[Candidate] = []

        literals = None
        if self.compiled.has_literals:
            literals = self._scan_literals(text, False, budget)
            self._push_next(heads, literals)

        for index, regex in self.compiled.regexes:
            self._push_search(heads, text, index, regex, 0, budget)

        claimed_until = 0
        while heads:
            candidate = heapq.heappop(heads)
            start, _, index, end = candidate
            accepted = start >= claimed_until
            if accepted:
                claimed_until = end

            regex = regexes.get(index)
            if regex is None:
                self._push_next(heads, literals)
            else:
                self._push_search(heads, text, index, regex, claimed_until, budget)

            if accepted:
                yield candidate

    def _build_match(self, buffer: TextBuffer, start: int, end: int, index: int) -> Match:
        spec = self.compiled.spec(index)
        return Match(
            pattern_label=spec.label,
            start=start,
            end=end,
            matched_text=buffer.text[start:end],
            pattern_index=index,
            metadata=spec.metadata
        )

    @staticmethod
    def _candidate(start: int, end: int, index: int, overlapping: bool) -> Candidate:
        return start, (0 if overlapping else start - end), index, end

    @staticmethod
    def _push_next(heads: List[Candidate], stream: Iterator[Candidate]):
        candidate = next(stream, None)
        if candidate is not None:
            heapq.heappush(heads, candidate)

    def _push_search(
        self,
        heads: List[Candidate],
        text: str,
        index: int,
        regex,
        position: int,
        budget: StepBudget
    ):
        """Queue the regex's first non-empty match at or after ``position``"""
        while position <= len(text):
            found = regex.search(text, position)
            if found is None or not budget.charge():
                return
            start, end = found.span()
            if start < end:
                heapq.heappush(heads, self._candidate(start, end, index, False))
                return
            position = end + 1

    def _scan_literals(self, text: str, overlapping: bool, budget: StepBudget) -> Iterator[Candidate]:
        """
        Single pass over the text advancing both literal automata

        Hits surface at their end position; they are held back until no later
        hit can start at or before them, which keeps the stream start-ordered.
        """
        sensitive = self.compiled.sensitive_literals
        insensitive = self.compiled.insensitive_literals
        max_length = self.compiled.max_literal_length

        pending: List[Candidate] = []
        sensitive_state = insensitive_state = 0

        for position, char in enumerate(text):
            if not budget.charge():
                break

            end = position + 1
            if sensitive is not None:
                sensitive_state = sensitive.step(sensitive_state, char)
                for index in sensitive.outputs(sensitive_state):
                    start = end - sensitive.length(index)
                    heapq.heappush(pending, self._candidate(start, end, index, overlapping))

            if insensitive is not None:
                insensitive_state = insensitive.step(insensitive_state, fold_char(char))
                for index in insensitive.outputs(insensitive_state):
                    start = end - insensitive.length(index)
                    heapq.heappush(pending, self._candidate(start, end, index, overlapping))

            # Later hits end past ``end`` so they start at or after this bound
            settled_before = end + 1 - max_length
            while pending and pending[0][0] < settled_before:
                yield heapq.heappop(pending)

        while pending:
            yield heapq.heappop(pending)

    def _scan_regex(self, text: str, index: int, regex, budget: StepBudget) -> Iterator[Candidate]:
        for found in regex.finditer(text):
            if not budget.charge():
                return
            start, end = found.span()
            if start == end:
                continue
            yield self._candidate(start, end, index, True)

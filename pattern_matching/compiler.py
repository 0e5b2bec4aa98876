"""
Pattern Compiler

Turns a heterogeneous set of pattern specifications into one
CompiledMatcher: literals share an Aho-Corasick automaton per case mode,
regexes are compiled individually and scanned alongside it.
"""
import hashlib
import json
import re
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from .automaton import LiteralAutomaton, fold_text
from .base import PatternKind, PatternSpec
from config import settings
from exceptions import InvalidConfiguration, PatternCompileError
from logger import get_logger

logger = get_logger(__name__)

PatternInput = Union[PatternSpec, Mapping[str, Any]]


class CompiledMatcher:
    """
    Immutable automaton built from a pattern set

    Holds no reference to any text, so one instance can serve many buffers
    and many threads once construction has finished. Pattern indices are
    registration order and are what tie-breaks compare.
    """

    def __init__(
        self,
        specs: Tuple[PatternSpec, ...],
        sensitive_literals: Optional[LiteralAutomaton],
        insensitive_literals: Optional[LiteralAutomaton],
        regexes: Tuple[Tuple[int, "re.Pattern[str]"], ...],
        errors: Tuple[PatternCompileError, ...],
        fingerprint: str
    ):
        self._specs = specs
        self._sensitive_literals = sensitive_literals
        self._insensitive_literals = insensitive_literals
        self._regexes = regexes
        self._errors = errors
        self._fingerprint = fingerprint

        lengths = [a.max_key_length for a in (sensitive_literals, insensitive_literals) if a is not None]
        self._max_literal_length = max(lengths, default=0)

    @property
    def specs(self) -> Tuple[PatternSpec, ...]:
        return self._specs

    @property
    def sensitive_literals(self) -> Optional[LiteralAutomaton]:
        return self._sensitive_literals

    @property
    def insensitive_literals(self) -> Optional[LiteralAutomaton]:
        return self._insensitive_literals

    @property
    def regexes(self) -> Tuple[Tuple[int, "re.Pattern[str]"], ...]:
        return self._regexes

    @property
    def errors(self) -> Tuple[PatternCompileError, ...]:
        """Patterns that failed to compile and were left out (non-strict mode)"""
        return self._errors

    @property
    def fingerprint(self) -> str:
        return self._fingerprint

    @property
    def max_literal_length(self) -> int:
        return self._max_literal_length

    @property
    def has_literals(self) -> bool:
        return self._max_literal_length > 0

    @property
    def is_empty(self) -> bool:
        return not self.has_literals and not self._regexes

    @property
    def pattern_count(self) -> int:
        return len(self._specs) - len(self._errors)

    def spec(self, index: int) -> PatternSpec:
        return self._specs[index]

    def __repr__(self) -> str:
        return (
            f"CompiledMatcher(patterns={self.pattern_count}, regexes={len(self._regexes)}, "
            f"errors={len(self._errors)})"
        )


def fingerprint_specs(specs: Iterable[PatternSpec], strict: bool) -> str:
    """Deterministic digest of a pattern set, used as a cache handle"""
    payload = json.dumps(
        {"strict": strict, "patterns": [spec.to_dict() for spec in specs]},
        sort_keys=True,
        default=str
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class PatternCompiler:
    """
    Compiles pattern specifications into a CompiledMatcher

    Example:
        compiler = PatternCompiler()
        compiled = compiler.compile([
            PatternSpec.literal("cat", "cat"),
            PatternSpec.regex("year", r"\\b\\d{4}\\b"),
        ])
    """

    def __init__(self, strict: Optional[bool] = None):
        """
        Args:
            strict: Fail the whole compile on the first bad pattern
                (defaults to settings.strict_compile)
        """
        self.strict = settings.strict_compile if strict is None else strict

    def compile(self, patterns: Iterable[PatternInput], strict: Optional[bool] = None) -> CompiledMatcher:
        """
        Compile a pattern set

        Args:
            patterns: PatternSpec instances or plain mappings
            strict: Override the compiler's strict flag for this call

        Returns:
            CompiledMatcher; invalid patterns are listed in ``errors``

        Raises:
            PatternCompileError: In strict mode, for the first invalid pattern
            InvalidConfiguration: For entries that are not pattern specifications
        """
        strict = self.strict if strict is None else strict
        specs = tuple(self.coerce(pattern) for pattern in patterns)

        sensitive_keys: List[Tuple[str, int]] = []
        insensitive_keys: List[Tuple[str, int]] = []
        regexes: List[Tuple[int, "re.Pattern[str]"]] = []
        errors: List[PatternCompileError] = []

        for index, spec in enumerate(specs):
            try:
                if spec.kind is PatternKind.LITERAL:
                    key = self._compile_literal(spec)
                    if spec.case_sensitive:
                        sensitive_keys.append((key, index))
                    else:
                        insensitive_keys.append((key, index))
                else:
                    regexes.append((index, self._compile_regex(spec)))
            except PatternCompileError as e:
                if strict:
                    logger.error(f"Strict compile aborted: {e}")
                    raise
                logger.warning(f"Skipping pattern that failed to compile: {e}")
                errors.append(e)

        compiled = CompiledMatcher(
            specs=specs,
            sensitive_literals=LiteralAutomaton(sensitive_keys) if sensitive_keys else None,
            insensitive_literals=LiteralAutomaton(insensitive_keys) if insensitive_keys else None,
            regexes=tuple(regexes),
            errors=tuple(errors),
            fingerprint=fingerprint_specs(specs, strict)
        )

        logger.info(
            f"Compiled {compiled.pattern_count} patterns "
            f"({len(sensitive_keys) + len(insensitive_keys)} literals, {len(regexes)} regexes, "
            f"{len(errors)} errors)"
        )
        return compiled

    def coerce(self, pattern: PatternInput) -> PatternSpec:
        if isinstance(pattern, PatternSpec):
            return pattern
        if isinstance(pattern, Mapping):
            return PatternSpec.from_dict(pattern)
        raise InvalidConfiguration(
            f"Expected a pattern specification, got {type(pattern).__name__}",
            field="patterns"
        )

    def _compile_literal(self, spec: PatternSpec) -> str:
        if not spec.pattern_text:
            raise PatternCompileError("Empty literal pattern", label=spec.label, pattern_text=spec.pattern_text)
        return spec.pattern_text if spec.case_sensitive else fold_text(spec.pattern_text)

    def _compile_regex(self, spec: PatternSpec) -> "re.Pattern[str]":
        flags = 0 if spec.case_sensitive else re.IGNORECASE
        try:
            return re.compile(spec.pattern_text, flags)
        except re.error as e:
            raise PatternCompileError(
                f"Invalid regex pattern '{spec.pattern_text}': {e}",
                label=spec.label,
                pattern_text=spec.pattern_text,
                original_error=e
            ) from e

"""
Evaluation context shared by all criteria of one scoring call
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from entity_extraction import Entity, EntityExtractor, ExtractionConfig
from pattern_matching import CompiledMatcher, Match, PatternCompiler, PatternSpec, fingerprint_specs
from text_buffer import TextBuffer


@dataclass(frozen=True)
class BufferStatistics:
    """Size and vocabulary figures derived once per buffer"""
    codepoints: int
    bytes: int
    tokens: int
    sentences: int
    distinct_tokens: int

    @property
    def lexical_diversity(self) -> float:
        return self.distinct_tokens / self.tokens if self.tokens else 0.0

    @classmethod
    def from_buffer(cls, buffer: TextBuffer) -> "BufferStatistics":
        tokens = buffer.tokens()
        text = buffer.text
        return cls(
            codepoints=buffer.codepoint_length,
            bytes=buffer.byte_length,
            tokens=len(tokens),
            sentences=len(buffer.sentences()),
            distinct_tokens=len({text[start:end].lower() for start, end in tokens})
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "codepoints": self.codepoints,
            "bytes": self.bytes,
            "tokens": self.tokens,
            "sentences": self.sentences,
            "distinct_tokens": self.distinct_tokens,
            "lexical_diversity": self.lexical_diversity,
        }


def coerce_patterns(patterns: Sequence[Any], compiler: PatternCompiler) -> List[PatternSpec]:
    """PatternSpecs for a criterion pattern list; bare strings are literals"""
    return [compiler.coerce(PatternSpec.literal(p, p) if isinstance(p, str) else p) for p in patterns]


@dataclass
class ScoringContext:
    """
    Everything an evaluator may consult

    Attributes:
        buffer: The scored text
        stats: Precomputed buffer statistics
        matches: Pattern matches supplied by the caller, if any
        entities: Entities supplied by the caller, if any
        matchers: Read-only matchers compiled when the scorer was built,
            keyed by pattern-set fingerprint
    """
    buffer: TextBuffer
    stats: BufferStatistics
    matches: Optional[Sequence[Match]] = None
    entities: Optional[Sequence[Entity]] = None
    matchers: Mapping[str, CompiledMatcher] = field(default_factory=lambda: MappingProxyType({}))
    _extracted: Dict[str, List[Entity]] = field(default_factory=dict, repr=False)

    @classmethod
    def build(
        cls,
        buffer: TextBuffer,
        matches: Optional[Sequence[Match]] = None,
        entities: Optional[Sequence[Entity]] = None,
        matchers: Optional[Mapping[str, CompiledMatcher]] = None
    ) -> "ScoringContext":
        return cls(
            buffer=buffer,
            stats=BufferStatistics.from_buffer(buffer),
            matches=matches,
            entities=entities,
            matchers=matchers if matchers is not None else MappingProxyType({})
        )

    def compiled(self, patterns: Sequence[Any]) -> CompiledMatcher:
        """Precompiled matcher for a pattern list, or one compiled for this call only"""
        compiler = PatternCompiler(strict=True)
        specs = coerce_patterns(patterns, compiler)
        compiled = self.matchers.get(fingerprint_specs(specs, True))
        return compiled if compiled is not None else compiler.compile(specs)

    def entities_for(self, config: Optional[ExtractionConfig] = None) -> Sequence[Entity]:
        """Caller-supplied entities, or an extraction run once per config"""
        if self.entities is not None:
            return self.entities

        config = config or ExtractionConfig()
        key = repr(config)
        if key not in self._extracted:
            self._extracted[key] = EntityExtractor(config).extract(self.buffer).entities
        return self._extracted[key]

"""
Matcher Cache

Host-owned store of compiled pattern sets. Compiling is the expensive part
of matching, so a host that reuses the same patterns across many texts can
keep the CompiledMatcher here and pass its handle back on later calls.
There is no process-wide instance: whoever creates a cache owns it.
"""
from typing import Dict, Iterable, List, Optional, Tuple
from dataclasses import dataclass

from .compiler import CompiledMatcher, PatternCompiler, PatternInput, fingerprint_specs
from exceptions import InvalidConfiguration
from logger import get_logger

logger = get_logger(__name__)


@dataclass
class CacheStats:
    """Statistics about cached matchers"""
    total_matchers: int
    total_patterns: int
    handles: List[str]


class MatcherCache:
    """
    Handle -> CompiledMatcher store

    Handles are the pattern-set fingerprint, so compiling an identical set
    twice returns the same handle and the same matcher. Populate the cache
    before sharing it between threads; lookups are read-only.

    Example:
        cache = MatcherCache()
        handle, compiled = cache.get_or_compile(specs)

        # Later, from the host side
        matches = match_patterns(text, matcher=cache.get(handle))
    """

    def __init__(self, compiler: Optional[PatternCompiler] = None):
        self._compiler = compiler or PatternCompiler()
        self._matchers: Dict[str, CompiledMatcher] = {}

    def get_or_compile(
        self,
        patterns: Iterable[PatternInput],
        strict: Optional[bool] = None
    ) -> Tuple[str, CompiledMatcher]:
        """
        Return the cached matcher for a pattern set, compiling it on first use

        Args:
            patterns: Pattern specifications
            strict: Strict compile flag (defaults to the compiler's)

        Returns:
            (handle, CompiledMatcher)
        """
        strict = self._compiler.strict if strict is None else strict
        specs = tuple(self._compiler.coerce(p) for p in patterns)
        handle = fingerprint_specs(specs, strict)

        compiled = self._matchers.get(handle)
        if compiled is None:
            compiled = self._compiler.compile(specs, strict=strict)
            self._matchers[handle] = compiled
            logger.info(f"Cached matcher {handle[:12]} with {compiled.pattern_count} patterns")

        return handle, compiled

    def register(self, compiled: CompiledMatcher) -> str:
        """Store an already compiled matcher and return its handle"""
        handle = compiled.fingerprint
        if handle in self._matchers:
            logger.debug(f"Matcher {handle[:12]} already cached")
        self._matchers[handle] = compiled
        return handle

    def get(self, handle: str) -> CompiledMatcher:
        """Look up a matcher by handle"""
        compiled = self._matchers.get(handle)
        if compiled is None:
            raise InvalidConfiguration(f"Unknown matcher handle: {handle}", field="matcher")
        return compiled

    def evict(self, handle: str) -> bool:
        """Drop a matcher; returns False when the handle was not cached"""
        if handle in self._matchers:
            del self._matchers[handle]
            logger.info(f"Evicted matcher {handle[:12]}")
            return True
        logger.warning(f"Cannot evict unknown matcher handle: {handle[:12]}")
        return False

    def clear(self) -> None:
        self._matchers.clear()

    def __contains__(self, handle: str) -> bool:
        return handle in self._matchers

    def __len__(self) -> int:
        return len(self._matchers)

    def get_stats(self) -> CacheStats:
        """Get statistics about cached matchers"""
        return CacheStats(
            total_matchers=len(self._matchers),
            total_patterns=sum(m.pattern_count for m in self._matchers.values()),
            handles=sorted(self._matchers)
        )

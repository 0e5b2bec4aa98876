"""
Overlap resolution for pooled entity candidates

Candidates from every stage are ranked and accepted greedily:
1. Larger span first, so a partial overlap keeps the longer candidate
2. Earlier start
3. More precise stage (dictionary > pattern > heuristic), which settles
   exact span collisions
4. Higher confidence, then the stage's own emission order

The accepted set never shares a codepoint and comes back sorted by start.
"""
import bisect
from typing import Iterable, List, Tuple

from .base import Candidate


def resolution_key(candidate: Candidate) -> Tuple[int, int, int, float, int]:
    return (
        -candidate.length,
        candidate.start,
        candidate.stage.rank,
        -candidate.confidence,
        candidate.order
    )


def resolve_overlaps(candidates: Iterable[Candidate]) -> List[Candidate]:
    """
    Pick a non-overlapping subset of candidates

    Args:
        candidates: Pooled candidates from all stages

    Returns:
        Accepted candidates sorted by start offset
    """
    ranked = sorted((c for c in candidates if c.length > 0), key=resolution_key)

    # Parallel sorted lists of accepted spans
    starts: List[int] = []
    ends: List[int] = []
    accepted: List[Candidate] = []

    for candidate in ranked:
        span = (candidate.start, candidate.end)
        position = bisect.bisect_left(starts, candidate.start)
        # Neighbour on the left must end before we start
        if position > 0 and spans_overlap((starts[position - 1], ends[position - 1]), span):
            continue
        # Neighbour on the right must start at or after our end
        if position < len(starts) and spans_overlap((starts[position], ends[position]), span):
            continue

        starts.insert(position, candidate.start)
        ends.insert(position, candidate.end)
        accepted.insert(position, candidate)

    return accepted


def spans_overlap(first: Tuple[int, int], second: Tuple[int, int]) -> bool:
    """Check if two half-open spans share a position"""
    return not (first[1] <= second[0] or second[1] <= first[0])

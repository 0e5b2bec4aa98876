"""
Aho-Corasick automaton for single-pass multi-literal search

States live in flat lists indexed by state id: a goto table per state, a
failure link, and the tuple of pattern indices that end at the state
(including the outputs inherited through failure links).
"""
from collections import deque
from typing import Dict, Iterable, List, Tuple


def fold_char(char: str) -> str:
    """Lower-case one codepoint, keeping it one codepoint long"""
    lowered = char.lower()
    return lowered if len(lowered) == 1 else char


def fold_text(text: str) -> str:
    """Length-preserving case fold, so folded offsets equal original offsets"""
    if text.isascii():
        return text.lower()
    return "".join(fold_char(char) for char in text)


class LiteralAutomaton:
    """
    Trie of literal keys with failure links

    Example:
        automaton = LiteralAutomaton([("he", 0), ("she", 1), ("hers", 2)])
        state = 0
        for char in "ushers":
            state = automaton.step(state, char)
            automaton.outputs(state)   # pattern indices ending here
    """

    ROOT = 0

    def __init__(self, keys: Iterable[Tuple[str, int]]):
        self._goto: List[Dict[str, int]] = [{}]
        self._fail: List[int] = [self.ROOT]
        self._outputs: List[Tuple[int, ...]] = [()]
        self._lengths: Dict[int, int] = {}

        for key, index in keys:
            self._insert(key, index)

        self._build_failure_links()

    def _insert(self, key: str, index: int) -> None:
        if not key:
            raise ValueError("Automaton keys must be non-empty")

        state = self.ROOT
        for char in key:
            next_state = self._goto[state].get(char)
            if next_state is None:
                next_state = len(self._goto)
                self._goto.append({})
                self._fail.append(self.ROOT)
                self._outputs.append(())
                self._goto[state][char] = next_state
            state = next_state

        self._outputs[state] = self._outputs[state] + (index,)
        self._lengths[index] = len(key)

    def _build_failure_links(self) -> None:
        """Breadth-first pass so every failure target is finished before its dependents"""
        queue = deque(self._goto[self.ROOT].values())

        while queue:
            current = queue.popleft()
            for char, child in self._goto[current].items():
                queue.append(child)

                fallback = self._fail[current]
                while fallback != self.ROOT and char not in self._goto[fallback]:
                    fallback = self._fail[fallback]

                target = self._goto[fallback].get(char, self.ROOT)
                self._fail[child] = target
                self._outputs[child] = self._outputs[child] + self._outputs[target]

    def step(self, state: int, char: str) -> int:
        """Follow the goto/failure transitions for one codepoint"""
        goto = self._goto
        while state != self.ROOT and char not in goto[state]:
            state = self._fail[state]
        return goto[state].get(char, self.ROOT)

    def outputs(self, state: int) -> Tuple[int, ...]:
        return self._outputs[state]

    def length(self, index: int) -> int:
        return self._lengths[index]

    @property
    def state_count(self) -> int:
        return len(self._goto)

    @property
    def key_count(self) -> int:
        return len(self._lengths)

    @property
    def max_key_length(self) -> int:
        return max(self._lengths.values(), default=0)

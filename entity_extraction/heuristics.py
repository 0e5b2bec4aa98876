"""
Heuristic recognizer

Rule-based detection for entities with orthographic cues but no fixed
grammar:
- capitalized_sequence: runs of capitalized tokens as PERSON candidates,
  ORG when the run ends in a designator (Inc, Corp, University...)
- relationship_mention: "my sister Sarah" / "Sarah, my sister" as PERSON
  candidates carrying the relationship

Boundaries come from the text buffer's token and sentence spans. Each
rule runs in isolation: a rule that raises is logged, reported as a
failure and contributes no candidates.
"""
import re
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .base import Candidate, EntityType, HeuristicWeights, Recognizer, Stage
from config import settings
from exceptions import PartialEvaluationFailure
from logger import get_logger

logger = get_logger(__name__)

HeuristicRule = Callable[..., Iterable[Candidate]]

# Capitalized words that are not names on their own
EXCLUDED_WORDS = frozenset([
    "my", "the", "a", "an", "i", "me", "we", "you", "he", "she", "it", "they",
    "this", "that", "these", "those", "who", "what", "when", "where", "why", "how",
    "today", "yesterday", "tomorrow", "monday", "tuesday", "wednesday", "thursday",
    "friday", "saturday", "sunday", "january", "february", "march", "april", "may",
    "june", "july", "august", "september", "october", "november", "december",
    "just", "really", "very", "also", "too", "even", "still", "already",
    "talked", "said", "told", "asked", "called", "met", "saw", "went",
    "good", "great", "bad", "nice", "happy", "sad", "angry", "upset",
    "dinner", "lunch", "breakfast", "meeting", "conversation", "call", "text",
    "last", "next", "first", "new", "old", "other", "another",
    "and", "but", "or", "so", "then", "if", "dear", "hi", "hello", "thanks",
])

ORG_DESIGNATORS = frozenset([
    "inc", "corp", "corporation", "ltd", "llc", "plc", "gmbh", "co", "company",
    "university", "institute", "college", "bank", "group", "foundation",
    "association", "agency", "department", "hospital", "society", "partners",
])

# Designators usually written with a trailing period
ABBREVIATED_DESIGNATORS = frozenset(["inc", "corp", "ltd", "co"])

# Lower-case words allowed inside a capitalized run ("Bank of America")
CONNECTORS = frozenset(["of", "the", "and", "de", "del", "da", "van", "von", "for"])

# Whitespace (optionally around an ampersand) may join two run tokens
RUN_GAP = re.compile(r"[ \t]+(?:&[ \t]+)?")

# Surface variants -> normalised relationship
RELATIONSHIPS: Dict[str, str] = {
    "mom": "mother", "mother": "mother", "mommy": "mother", "mama": "mother",
    "dad": "father", "father": "father", "daddy": "father", "papa": "father",
    "parent": "parent", "brother": "brother", "bro": "brother",
    "sister": "sister", "sis": "sister", "sibling": "sibling",
    "son": "son", "daughter": "daughter", "kid": "child", "child": "child",
    "grandma": "grandmother", "grandmother": "grandmother", "nana": "grandmother", "granny": "grandmother",
    "grandpa": "grandfather", "grandfather": "grandfather", "gramps": "grandfather",
    "aunt": "aunt", "auntie": "aunt", "uncle": "uncle", "cousin": "cousin",
    "niece": "niece", "nephew": "nephew",
    "stepmom": "step_mother", "step-mom": "step_mother", "stepmother": "step_mother",
    "stepdad": "step_father", "step-dad": "step_father", "stepfather": "step_father",
    "mother-in-law": "mother_in_law", "father-in-law": "father_in_law",
    "brother-in-law": "brother_in_law", "sister-in-law": "sister_in_law",
    "co-parent": "co_parent", "coparent": "co_parent",
    "husband": "husband", "hubby": "husband", "wife": "wife", "wifey": "wife",
    "spouse": "spouse", "partner": "partner", "significant other": "significant_other",
    "boyfriend": "boyfriend", "girlfriend": "girlfriend",
    "fiance": "fiance", "fiancé": "fiance", "fiancee": "fiancee", "fiancée": "fiancee",
    "ex": "ex_partner", "ex-boyfriend": "ex_partner", "ex-girlfriend": "ex_partner", "ex-partner": "ex_partner",
    "ex-husband": "ex_spouse", "ex-wife": "ex_spouse",
    "best friend": "best_friend", "bestie": "best_friend", "close friend": "close_friend",
    "friend": "friend", "roommate": "roommate", "flatmate": "roommate", "housemate": "roommate",
    "boss": "boss", "manager": "boss", "supervisor": "boss",
    "coworker": "colleague", "co-worker": "colleague", "colleague": "colleague",
    "mentor": "mentor", "mentee": "mentee", "client": "client",
    "teacher": "teacher", "professor": "teacher", "instructor": "teacher", "student": "student",
    "therapist": "therapist", "counselor": "therapist", "psychologist": "therapist", "psychiatrist": "therapist",
    "doctor": "doctor", "physician": "doctor", "coach": "coach",
    "neighbor": "neighbor", "neighbour": "neighbor", "landlord": "landlord",
}

_RELATION_ALTERNATION = "|".join(
    r"\s+".join(re.escape(part) for part in term.split()) for term in sorted(RELATIONSHIPS, key=len, reverse=True)
)
_NAME = r"[A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)?"

# "my sister Sarah", "my sister, Sarah"
RELATION_THEN_NAME = re.compile(
    rf"(?i:\bmy\s+(?P<relation>{_RELATION_ALTERNATION}))\b[ \t]*,?[ \t]*(?P<name>{_NAME})\b"
)

# "Sarah, my sister", "Sarah, who is my sister"
NAME_THEN_RELATION = re.compile(
    rf"\b(?P<name>{_NAME}),?\s+(?i:(?:who\s+is\s+|who's\s+)?my\s+(?P<relation>{_RELATION_ALTERNATION}))\b"
)

HE_HIM = re.compile(r"\b(?:he|him|his|himself)\b", re.IGNORECASE)
SHE_HER = re.compile(r"\b(?:she|her|hers|herself)\b", re.IGNORECASE)
THEY_THEM = re.compile(r"\b(?:they|them|their|theirs|themselves)\b", re.IGNORECASE)

POSITIVE_SENTIMENT = re.compile(
    r"\b(?:love|happy|grateful|appreciate|enjoy|like|wonderful|great|amazing|fantastic|"
    r"supportive|helpful|kind|caring)\b",
    re.IGNORECASE
)
NEGATIVE_SENTIMENT = re.compile(
    r"\b(?:hate|angry|frustrated|annoyed|upset|disappointed|sad|hurt|betrayed|difficult|"
    r"problematic|toxic|abusive)\b",
    re.IGNORECASE
)


def is_valid_name(word: str) -> bool:
    """Capitalized, at least two characters, not an excluded word"""
    return len(word) >= 2 and word[0].isupper() and word.lower() not in EXCLUDED_WORDS


def detect_pronouns(context: str) -> Optional[str]:
    """Majority pronoun set in a context window"""
    he = len(HE_HIM.findall(context))
    she = len(SHE_HER.findall(context))
    they = len(THEY_THEM.findall(context))

    if he > 0 and he > she and he > they:
        return "he/him"
    if she > 0 and she > he and she > they:
        return "she/her"
    if they > 0:
        return "they/them"
    return None


def detect_sentiment(context: str) -> Optional[str]:
    positive = len(POSITIVE_SENTIMENT.findall(context))
    negative = len(NEGATIVE_SENTIMENT.findall(context))

    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    if positive > 0:
        return "mixed"
    return None


class HeuristicRecognizer(Recognizer):
    """
    Orthographic-cue stage

    Extra rules can be registered with ``add_rule``; a rule is a callable
    taking (buffer, budget) and returning candidates.

    Example:
        recognizer = HeuristicRecognizer(HeuristicWeights(base=0.4))
        recognizer.add_rule("titles", find_titles)
    """

    stage = Stage.HEURISTIC

    def __init__(self, weights: Optional[HeuristicWeights] = None, context_window: Optional[int] = None):
        super().__init__()
        self.weights = weights or HeuristicWeights()
        self.context_window = settings.context_window if context_window is None else context_window
        self.rules: List[Tuple[str, HeuristicRule]] = [
            ("capitalized_sequence", self.capitalized_sequences),
            ("relationship_mention", self.relationship_mentions),
        ]

    def add_rule(self, name: str, rule: HeuristicRule) -> None:
        self.rules.append((name, rule))
        logger.debug(f"Registered heuristic rule: {name}")

    def recognize(self, buffer, budget, failures) -> List[Candidate]:
        candidates: List[Candidate] = []

        for name, rule in self.rules:
            if budget.exhausted:
                break
            try:
                found = list(rule(buffer, budget))
                for candidate in found:
                    buffer.check_span(candidate.start, candidate.end)
            except Exception as e:
                logger.warning(f"Heuristic rule '{name}' failed, contributing no candidates: {e}")
                failures.append(PartialEvaluationFailure("heuristic", name, str(e)))
                continue

            for candidate in found:
                candidate.stage = self.stage
                candidate.order = len(candidates)
                candidate.metadata.setdefault("rule", name)
                if candidate.type == EntityType.PERSON.value:
                    self._enrich_person(buffer, candidate)
                candidates.append(candidate)

        return candidates

    def capitalized_sequences(self, buffer, budget) -> List[Candidate]:
        """Runs of capitalized tokens joined by spaces or connectors"""
        text = buffer.text
        tokens = buffer.tokens()
        sentence_starts = set(buffer.sentence_starts())

        candidates = []
        run: List[int] = []
        connectors: List[int] = []

        for position, (start, end) in enumerate(tokens):
            if not budget.charge():
                break

            word = text[start:end]
            if run or connectors:
                previous_end = tokens[position - 1][1]
                if start in sentence_starts or not RUN_GAP.fullmatch(text[previous_end:start]):
                    self._close_run(buffer, run, sentence_starts, candidates)
                    run, connectors = [], []

            if word[0].isupper():
                run.extend(connectors)
                connectors = []
                run.append(position)
            elif run and word.lower() in CONNECTORS:
                connectors.append(position)
            else:
                self._close_run(buffer, run, sentence_starts, candidates)
                run, connectors = [], []

        self._close_run(buffer, run, sentence_starts, candidates)
        return candidates

    def _close_run(self, buffer, run: List[int], sentence_starts, candidates: List[Candidate]) -> None:
        if not run:
            return

        text = buffer.text
        tokens = buffer.tokens()
        words = [text[tokens[i][0]:tokens[i][1]] for i in run]

        # Trim excluded words and connectors from both edges
        first, last = 0, len(run) - 1
        while first <= last and (words[first].lower() in EXCLUDED_WORDS or words[first].lower() in CONNECTORS):
            first += 1
        while last >= first and (words[last].lower() in EXCLUDED_WORDS or words[last].lower() in CONNECTORS):
            last -= 1
        if first > last:
            return

        kept = words[first:last + 1]
        start = tokens[run[first]][0]
        end = tokens[run[last]][1]
        token_count = sum(1 for word in kept if word[0].isupper())
        at_sentence_start = start in sentence_starts
        designator = kept[-1].lower() in ORG_DESIGNATORS

        if token_count == 1 and not designator and (at_sentence_start or len(kept[0]) < 2):
            return
        if token_count == 1 and (designator or kept[0].isupper()):
            return

        if designator and kept[-1].lower() in ABBREVIATED_DESIGNATORS and text[end:end + 1] == ".":
            end += 1

        candidates.append(Candidate(
            type=EntityType.ORG.value if designator else EntityType.PERSON.value,
            start=start,
            end=end,
            stage=self.stage,
            confidence=self.weights.score(
                tokens=token_count,
                has_designator=designator,
                at_sentence_start=at_sentence_start
            )
        ))

    def relationship_mentions(self, buffer, budget) -> List[Candidate]:
        """Names introduced by a relationship phrase"""
        text = buffer.text
        sentence_starts = set(buffer.sentence_starts())
        candidates = []

        for regex in (RELATION_THEN_NAME, NAME_THEN_RELATION):
            for found in regex.finditer(text):
                if not budget.charge():
                    return candidates

                start, end = self._trim_name(text, *found.span("name"))
                if start is None:
                    continue

                relation = re.sub(r"\s+", " ", found.group("relation").lower())
                token_count = len(text[start:end].split())
                candidates.append(Candidate(
                    type=EntityType.PERSON.value,
                    start=start,
                    end=end,
                    stage=self.stage,
                    confidence=self.weights.score(
                        tokens=token_count,
                        has_relationship=True,
                        at_sentence_start=start in sentence_starts
                    ),
                    metadata={"relationship": RELATIONSHIPS[relation]}
                ))

        return candidates

    @staticmethod
    def _trim_name(text: str, start: int, end: int) -> Tuple[Optional[int], Optional[int]]:
        """Drop excluded leading/trailing words from a captured name"""
        words = [(m.start() + start, m.end() + start) for m in re.finditer(r"\S+", text[start:end])]
        while words and not is_valid_name(text[words[0][0]:words[0][1]]):
            words.pop(0)
        while words and not is_valid_name(text[words[-1][0]:words[-1][1]]):
            words.pop()
        if not words:
            return None, None
        return words[0][0], words[-1][1]

    def _enrich_person(self, buffer, candidate: Candidate) -> None:
        before, after = buffer.window(candidate.start, candidate.end, self.context_window)
        context = before + buffer.text[candidate.start:candidate.end] + after

        pronouns = detect_pronouns(context)
        if pronouns:
            candidate.metadata.setdefault("pronouns", pronouns)
        sentiment = detect_sentiment(context)
        if sentiment:
            candidate.metadata.setdefault("sentiment", sentiment)

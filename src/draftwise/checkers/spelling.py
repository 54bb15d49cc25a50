"""Spelling checker adapter backed by ``pyspellchecker``."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Iterable, Mapping, Sequence

from spellchecker import SpellChecker

from ..core.ranges import TextRange
from ..suggestions.models import Suggestion, SuggestionKind
from .base import CheckerError, new_suggestion_id

LOGGER = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\b\w+(?:['\-]\w+)*\b")
_MAX_CANDIDATES = 5
_CONFIDENT = 0.9
_UNSURE = 0.3

# Tokens accepted by check_word without a dictionary lookup.
_NON_WORD_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^-?\d+(\.\d+)?%?$"),
    re.compile(r"^\d{1,4}[/\-.]\d{1,2}[/\-.]\d{2,4}$"),
    re.compile(r"^\d{1,2}:\d{2}(\s?(AM|PM|am|pm))?$"),
    re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"),
    re.compile(r"^(https?://)?(www\.)?[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
    re.compile(r"^[$€£¥₹¢]?\d+(\.\d{2})?$"),
    re.compile(r"^\.[a-zA-Z0-9]{2,4}$"),
    re.compile(r"^v?\d+(\.\d+)*$"),
    re.compile(r"^\+?\d{1,3}[-.\s]?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}$"),
    re.compile(r"^[a-zA-Z]$"),
)
# Spans removed from the text before tokenizing; the word pattern would split them.
_SKIPPED_SPAN_RE = re.compile(
    r"[\w.%+-]+@[\w.-]+\.[A-Za-z]{2,}"
    r"|(?:https?://|www\.)\S+"
    r"|\b\d{1,2}:\d{2}(?:\s?[AaPp][Mm])?\b"
    r"|[$€£¥₹¢]\d+(?:[.,]\d+)*"
    r"|(?<![\w.])\.[A-Za-z0-9]{2,4}\b"
)
_ACRONYM_RE = re.compile(r"^[A-Z]{2,6}$")
_YEAR_RE = re.compile(r"^\d{4}$")

# Common misspellings whose corrections beat edit-distance guesses.
COMMON_MISSPELLINGS: Mapping[str, tuple[str, ...]] = {
    "teh": ("the",),
    "hte": ("the",),
    "adn": ("and",),
    "nad": ("and",),
    "recieve": ("receive",),
    "recieved": ("received",),
    "reciept": ("receipt",),
    "beleive": ("believe",),
    "seperate": ("separate",),
    "definately": ("definitely",),
    "occured": ("occurred",),
    "neccessary": ("necessary",),
    "accomodate": ("accommodate",),
    "acommodate": ("accommodate",),
    "begining": ("beginning",),
    "buisness": ("business",),
    "calender": ("calendar",),
    "cemetary": ("cemetery",),
    "changable": ("changeable",),
    "completly": ("completely",),
    "concious": ("conscious",),
    "embarass": ("embarrass",),
    "embarassed": ("embarrassed",),
    "enviroment": ("environment",),
    "existance": ("existence",),
    "goverment": ("government",),
    "independant": ("independent",),
    "occassion": ("occasion",),
    "occassionally": ("occasionally",),
    "recomend": ("recommend",),
    "reccomend": ("recommend",),
    "reccommend": ("recommend",),
    "similiar": ("similar",),
    "suprise": ("surprise",),
    "tommorrow": ("tomorrow",),
    "truely": ("truly",),
    "untill": ("until",),
    "usefull": ("useful",),
    "wierd": ("weird",),
    "adress": ("address",),
    "agressive": ("aggressive",),
    "allready": ("already",),
    "comming": ("coming",),
    "commited": ("committed",),
    "dilemna": ("dilemma",),
    "dissapoint": ("disappoint",),
    "exagerate": ("exaggerate",),
    "fourty": ("forty",),
    "gratefull": ("grateful",),
    "questionaire": ("questionnaire",),
    "succesful": ("successful",),
    "alot": ("a lot",),
    "nite": ("night",),
    "thru": ("through",),
    "altho": ("although",),
    "enuf": ("enough",),
    "acheive": ("achieve",),
    "peice": ("piece",),
    "freind": ("friend",),
    "anwser": ("answer",),
    "dont": ("don't",),
    "wont": ("won't",),
    "cant": ("can't",),
    "isnt": ("isn't",),
    "arent": ("aren't",),
    "wasnt": ("wasn't",),
    "werent": ("weren't",),
    "havent": ("haven't",),
    "hasnt": ("hasn't",),
    "hadnt": ("hadn't",),
    "shouldnt": ("shouldn't",),
    "wouldnt": ("wouldn't",),
    "couldnt": ("couldn't",),
    "mustnt": ("mustn't",),
}

# Contractions and modern vocabulary missing from word-frequency dictionaries.
EXTRA_WORDS: tuple[str, ...] = (
    "don't", "won't", "can't", "isn't", "aren't", "wasn't", "weren't", "haven't", "hasn't",
    "hadn't", "shouldn't", "wouldn't", "couldn't", "mustn't", "needn't", "shan't",
    "i'm", "you're", "he's", "she's", "it's", "we're", "they're", "you'll", "he'll", "she'll",
    "we'll", "they'll", "i've", "you've", "we've", "they've", "i'd", "you'd", "we'd", "they'd",
    "covid", "blockchain", "cryptocurrency", "bitcoin", "smartphone", "iphone", "android",
    "wifi", "bluetooth", "email", "online", "offline", "webpage",
)


def is_valid_non_word(word: str) -> bool:
    """Return ``True`` for numbers, dates, addresses and similar tokens."""

    if _YEAR_RE.match(word) and 1800 < int(word) < 2100:
        return True
    if _ACRONYM_RE.match(word):
        return True
    return any(pattern.match(word) for pattern in _NON_WORD_PATTERNS)


def match_case(template: str, word: str) -> str:
    """Return ``word`` re-cased to follow ``template`` (UPPER, Title or as-is)."""

    if len(template) > 1 and template.isupper():
        return word.upper()
    if template[:1].isupper() and word[:1].islower():
        return word[:1].upper() + word[1:]
    return word


class SpellingChecker:
    """Flags unknown words and proposes dictionary corrections.

    The backend is a :class:`spellchecker.SpellChecker`; tests may inject any
    object exposing ``known``, ``candidates`` and item access for word
    frequencies.
    """

    kind = SuggestionKind.SPELLING

    def __init__(
        self,
        *,
        language: str = "en",
        backend: Any | None = None,
        custom_words: Iterable[str] = (),
        misspellings: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self._language = language
        self._misspellings = {
            key.lower(): tuple(value) for key, value in (misspellings or COMMON_MISSPELLINGS).items()
        }
        self._custom_words: set[str] = set()
        self._backend: Any | None = None
        self._error: str | None = None
        try:
            self._backend = backend if backend is not None else SpellChecker(language=language)
        except (ValueError, OSError) as exc:
            self._error = f"Dictionary for {language!r} could not be loaded: {exc}"
            LOGGER.warning("Spelling checker unavailable: %s", self._error)
            return
        self.add_words(EXTRA_WORDS)
        self.add_words(custom_words)

    @property
    def error(self) -> str | None:
        return self._error

    def is_ready(self) -> bool:
        return self._backend is not None

    def add_words(self, words: Iterable[str]) -> None:
        """Teach the checker words it must never flag."""

        normalized = [word.strip().lower() for word in words if word and word.strip()]
        if not normalized:
            return
        self._custom_words.update(normalized)
        frequency = getattr(self._backend, "word_frequency", None)
        if frequency is not None:
            frequency.load_words(normalized)

    def check_word(self, word: str) -> tuple[bool, list[str]]:
        """Return ``(is_correct, candidates)`` for a single token."""

        if is_valid_non_word(word):
            return True, []
        clean = word.lower().strip()
        if clean in self._custom_words or self._backend.known([clean]):
            return True, []
        if clean in self._misspellings:
            return False, list(self._misspellings[clean])[:_MAX_CANDIDATES]
        candidates = self._backend.candidates(clean) or set()
        candidates.discard(clean)
        ranked = sorted(candidates, key=lambda item: (-self._frequency(item), item))
        return False, ranked[:_MAX_CANDIDATES]

    async def check_text(self, text: str) -> list[Suggestion]:
        if not self.is_ready():
            raise CheckerError(
                self._error or "Spelling checker is not ready",
                kind=self.kind,
                reason="not_ready",
            )
        # Candidate generation is edit-distance work; keep it off the event loop.
        suggestions = await asyncio.to_thread(self._scan, text)
        LOGGER.debug("Spelling checker flagged %d word(s)", len(suggestions))
        return suggestions

    def _scan(self, text: str) -> list[Suggestion]:
        skipped = [match.span() for match in _SKIPPED_SPAN_RE.finditer(text)]
        suggestions: list[Suggestion] = []
        for match in _WORD_RE.finditer(text):
            start, end = match.span()
            if any(lo <= start and end <= hi for lo, hi in skipped):
                continue
            word = match.group(0)
            is_correct, candidates = self.check_word(word)
            if not is_correct:
                suggestions.append(self._build_suggestion(word, candidates, start, end))
        return suggestions

    def _build_suggestion(self, word: str, candidates: list[str], start: int, end: int) -> Suggestion:
        if candidates:
            replacement = match_case(word, candidates[0])
            explanation = f'Misspelled word: "{word}"'
            if len(candidates) > 1:
                explanation += f" ({len(candidates)} suggestions)"
            confidence = _CONFIDENT
        else:
            replacement = word
            explanation = f'Potential misspelling: "{word}"'
            confidence = _UNSURE
        return Suggestion(
            id=new_suggestion_id(self.kind),
            kind=self.kind,
            original_text=word,
            replacement_text=replacement,
            explanation=explanation,
            range=TextRange(start, end),
            confidence=confidence,
        )

    def _frequency(self, word: str) -> int:
        try:
            return int(self._backend[word])
        except (KeyError, TypeError, ValueError):
            return 0


__all__ = ["COMMON_MISSPELLINGS", "EXTRA_WORDS", "SpellingChecker", "is_valid_non_word", "match_case"]

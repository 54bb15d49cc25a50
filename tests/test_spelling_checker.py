"""Tests for :mod:`draftwise.checkers.spelling`."""

from __future__ import annotations

import threading

import pytest

from draftwise.checkers.base import CheckerError
from draftwise.checkers.spelling import SpellingChecker, is_valid_non_word, match_case
from draftwise.core.ranges import TextRange
from draftwise.suggestions.models import SuggestionKind
from tests.helpers import FakeSpellBackend

KNOWN = ["the", "cat", "sat", "on", "mat", "we", "met", "in", "with", "a", "i"]


def _checker(**kwargs) -> SpellingChecker:
    backend = kwargs.pop("backend", None) or FakeSpellBackend(
        KNOWN,
        candidates={"cta": ["cat", "act"], "mta": ["mat", "met", "mta", "ma", "at", "am", "tam"]},
        frequencies={"act": 5, "cat": 10, "ma": 1, "at": 9, "am": 7, "tam": 2},
    )
    return SpellingChecker(backend=backend, **kwargs)


class TestSpellingCheckText:
    """Unknown words become spelling suggestions anchored at their offsets."""

    @pytest.mark.asyncio
    async def test_common_misspellings_keep_case(self) -> None:
        text = "Teh cat sat on teh mat."
        suggestions = await _checker().check_text(text)

        assert [(item.original_text, item.replacement_text) for item in suggestions] == [
            ("Teh", "The"),
            ("teh", "the"),
        ]
        assert suggestions[0].range == TextRange(0, 3)
        assert suggestions[1].range == TextRange(15, 18)
        assert all(item.kind is SuggestionKind.SPELLING for item in suggestions)
        assert all(item.matches(text) for item in suggestions)

    @pytest.mark.asyncio
    async def test_confident_suggestion_fields(self) -> None:
        (suggestion,) = await _checker().check_text("Teh")
        assert suggestion.confidence == pytest.approx(0.9)
        assert suggestion.explanation == 'Misspelled word: "Teh"'
        assert suggestion.priority == 1
        assert suggestion.id.startswith("spelling_")

    @pytest.mark.asyncio
    async def test_candidates_ranked_by_frequency(self) -> None:
        (suggestion,) = await _checker().check_text("the cta")
        assert suggestion.replacement_text == "cat"
        assert suggestion.explanation == 'Misspelled word: "cta" (2 suggestions)'

    def test_at_most_five_candidates(self) -> None:
        ok, candidates = _checker().check_word("mta")
        assert not ok
        assert "mta" not in candidates
        assert len(candidates) == 5
        assert candidates[:2] == ["at", "am"]

    @pytest.mark.asyncio
    async def test_word_without_candidates_is_low_confidence(self) -> None:
        (suggestion,) = await _checker().check_text("the zzxq")
        assert suggestion.replacement_text == "zzxq"
        assert suggestion.confidence == pytest.approx(0.3)
        assert suggestion.explanation == 'Potential misspelling: "zzxq"'

    @pytest.mark.asyncio
    async def test_non_words_are_never_flagged(self) -> None:
        suggestions = await _checker().check_text("We met NASA in 1999 with 42 cats on a mat")
        assert [item.original_text for item in suggestions] == ["cats"]

    @pytest.mark.asyncio
    async def test_addresses_times_and_amounts_are_skipped(self) -> None:
        backend = FakeSpellBackend(["mail", "or", "see", "at", "for", "the", "cat"])
        text = "Mail bob@exmple.com or see https://exmple.org/pth at 10:30am, $12.50 for teh .docx cat"

        suggestions = await _checker(backend=backend).check_text(text)

        assert [(item.original_text, item.start) for item in suggestions] == [("teh", text.index("teh"))]

    @pytest.mark.asyncio
    async def test_words_are_checked_off_the_event_loop_thread(self) -> None:
        threads: set[int] = set()

        class RecordingBackend(FakeSpellBackend):
            def known(self, words):
                threads.add(threading.get_ident())
                return super().known(words)

        await _checker(backend=RecordingBackend(KNOWN)).check_text("the cat")

        assert threads
        assert threading.get_ident() not in threads

    @pytest.mark.asyncio
    async def test_contractions_are_known(self) -> None:
        suggestions = await _checker().check_text("I don't know, I dont")
        flagged = {item.original_text: item.replacement_text for item in suggestions}
        assert "don't" not in flagged
        assert flagged["dont"] == "don't"

    @pytest.mark.asyncio
    async def test_empty_text_has_no_suggestions(self) -> None:
        assert await _checker().check_text("") == []

    @pytest.mark.asyncio
    async def test_ids_are_unique(self) -> None:
        suggestions = await _checker().check_text("teh teh teh")
        assert len({item.id for item in suggestions}) == 3


class TestSpellingCustomWords:
    @pytest.mark.asyncio
    async def test_custom_words_from_constructor(self) -> None:
        checker = _checker(custom_words=["Draftwise"])
        assert await checker.check_text("the Draftwise cat") == []

    @pytest.mark.asyncio
    async def test_add_words_teaches_backend(self) -> None:
        backend = FakeSpellBackend(KNOWN)
        checker = _checker(backend=backend)
        assert await checker.check_text("the blorp")

        checker.add_words(["Blorp", "  "])

        assert await checker.check_text("the blorp") == []
        assert "blorp" in backend.frequencies

    def test_custom_misspelling_table(self) -> None:
        checker = _checker(misspellings={"Kat": ["cat"]})
        assert checker.check_word("kat") == (False, ["cat"])
        # The default table is replaced, not extended.
        assert checker.check_word("teh") == (False, [])


class TestSpellingReadiness:
    def test_ready_with_backend(self) -> None:
        checker = _checker()
        assert checker.is_ready()
        assert checker.error is None

    @pytest.mark.asyncio
    async def test_unknown_language_is_not_ready(self) -> None:
        checker = SpellingChecker(language="xx-not-a-language")

        assert not checker.is_ready()
        assert "xx-not-a-language" in checker.error
        with pytest.raises(CheckerError) as excinfo:
            await checker.check_text("teh")
        assert excinfo.value.reason == "not_ready"
        assert excinfo.value.kind is SuggestionKind.SPELLING


class TestSpellingHelpers:
    @pytest.mark.parametrize(
        "word",
        ["1999", "42", "3.14", "50%", "NASA", "v1.2.3", "x", "12/31/2024", "$10.00"],
    )
    def test_valid_non_words(self, word: str) -> None:
        assert is_valid_non_word(word)

    @pytest.mark.parametrize("word", ["teh", "Cat", "NASAFOREVER"])
    def test_regular_words_are_not_non_words(self, word: str) -> None:
        assert not is_valid_non_word(word)

    @pytest.mark.parametrize(
        "template,word,expected",
        [("TEH", "the", "THE"), ("Teh", "the", "The"), ("teh", "the", "the"), ("I", "a", "A")],
    )
    def test_match_case(self, template: str, word: str, expected: str) -> None:
        assert match_case(template, word) == expected

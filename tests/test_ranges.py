"""Tests for :mod:`draftwise.core.ranges`."""

from __future__ import annotations

import pytest

from draftwise.core.ranges import TextRange, from_utf16_offset, to_utf16_offset


class TestTextRangeConstruction:
    """Validation performed when a range is built."""

    def test_accepts_caret(self) -> None:
        span = TextRange(4, 4)
        assert span.is_caret
        assert span.length == 0

    @pytest.mark.parametrize("start,end", [(-1, 2), (3, 1), (True, 2)])
    def test_rejects_invalid_bounds(self, start, end) -> None:
        with pytest.raises(ValueError):
            TextRange(start, end)

    def test_from_value_accepts_mapping_and_sequence(self) -> None:
        assert TextRange.from_value({"start": 1, "end": 3}) == TextRange(1, 3)
        assert TextRange.from_value([2, 5]) == TextRange(2, 5)
        assert TextRange.from_value((0, 1)) == TextRange(0, 1)

    def test_from_value_rejects_strings(self) -> None:
        with pytest.raises(TypeError):
            TextRange.from_value("0:3")

    def test_behaves_like_a_pair(self) -> None:
        start, end = TextRange(2, 7)
        assert (start, end) == (2, 7)
        assert TextRange(2, 7)[1] == 7


class TestTextRangeOverlap:
    """Half-open overlap semantics used by invalidation and apply."""

    def test_adjacent_ranges_do_not_overlap(self) -> None:
        assert not TextRange(0, 3).overlaps(TextRange(3, 5))
        assert not TextRange(3, 5).overlaps(TextRange(0, 3))

    def test_shared_characters_overlap(self) -> None:
        assert TextRange(0, 4).overlaps(TextRange(3, 5))

    def test_caret_inside_overlaps(self) -> None:
        assert TextRange(2, 6).overlaps(TextRange(4, 4))

    def test_caret_on_boundary_does_not_overlap(self) -> None:
        assert not TextRange(2, 6).overlaps(TextRange(2, 2))
        assert not TextRange(2, 6).overlaps(TextRange(6, 6))


class TestTextRangeHelpers:
    def test_shifted_moves_both_ends(self) -> None:
        assert TextRange(15, 18).shifted(-1) == TextRange(14, 17)

    def test_slice_and_fits(self) -> None:
        span = TextRange(4, 7)
        assert span.slice("The cat sat.") == "cat"
        assert span.fits("The cat")
        assert not span.fits("The c")

    def test_to_dict(self) -> None:
        assert TextRange(1, 2).to_dict() == {"start": 1, "end": 2}


class TestUtf16Offsets:
    """Conversion between code points and UTF-16 code units."""

    TEXT = "a😀b"

    def test_to_utf16_counts_astral_characters_twice(self) -> None:
        assert to_utf16_offset(self.TEXT, 0) == 0
        assert to_utf16_offset(self.TEXT, 2) == 3
        assert to_utf16_offset(self.TEXT, 3) == 4

    def test_from_utf16_round_trips_boundaries(self) -> None:
        assert from_utf16_offset(self.TEXT, 3) == 2
        assert from_utf16_offset(self.TEXT, 4) == 3

    def test_from_utf16_rounds_up_inside_surrogate_pair(self) -> None:
        assert from_utf16_offset(self.TEXT, 2) == 2

    def test_out_of_range_offsets_raise(self) -> None:
        with pytest.raises(ValueError):
            to_utf16_offset(self.TEXT, 4)
        with pytest.raises(ValueError):
            from_utf16_offset(self.TEXT, 5)

    def test_range_conversion(self) -> None:
        span = TextRange(2, 3)
        assert span.to_utf16(self.TEXT) == TextRange(3, 4)
        assert TextRange.from_utf16(self.TEXT, 3, 4) == span

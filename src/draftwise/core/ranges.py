"""Character spans over a document buffer.

Offsets are Python string indices (code points). Editing surfaces that count
UTF-16 code units convert at the boundary with :meth:`TextRange.to_utf16` and
:meth:`TextRange.from_utf16`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterator


def _offset(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"TextRange {label} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"TextRange {label} must be an integer, got {value!r}") from exc
    if number < 0:
        raise ValueError(f"TextRange {label} must be non-negative")
    return number


@dataclass(slots=True, frozen=True)
class TextRange:
    """Half-open ``[start, end)`` span; a range with ``start == end`` is a caret."""

    start: int
    end: int

    def __post_init__(self) -> None:
        start, end = _offset(self.start, "start"), _offset(self.end, "end")
        if end < start:
            raise ValueError(f"TextRange end ({end}) precedes start ({start})")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    # Unpacks as ``start, end = span``.
    def __iter__(self) -> Iterator[int]:
        return iter(self.to_tuple())

    def __getitem__(self, index: int) -> int:
        return self.to_tuple()[index]

    def __len__(self) -> int:
        return 2

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_caret(self) -> bool:
        return self.start == self.end

    def overlaps(self, other: TextRange) -> bool:
        """Return ``True`` when the spans share a character.

        A caret strictly inside this range overlaps it; a caret on either
        boundary does not.
        """

        return self.start < other.end and other.start < self.end

    def shifted(self, delta: int) -> TextRange:
        return TextRange(self.start + delta, self.end + delta)

    def fits(self, text: str) -> bool:
        return self.end <= len(text)

    def slice(self, text: str) -> str:
        return text[self.start : self.end]

    def to_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}

    def to_utf16(self, text: str) -> TextRange:
        """Return this range in UTF-16 code units of ``text``."""

        return TextRange(to_utf16_offset(text, self.start), to_utf16_offset(text, self.end))

    @classmethod
    def from_utf16(cls, text: str, start: int, end: int) -> TextRange:
        """Build a range from UTF-16 code-unit offsets into ``text``."""

        return cls(from_utf16_offset(text, start), from_utf16_offset(text, end))

    @classmethod
    def from_value(cls, value: Any) -> TextRange:
        """Accept a range, a ``{"start", "end"}`` mapping, a pair, or an object with ``start``/``end``."""

        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            if value.get("start") is None or value.get("end") is None:
                raise ValueError("TextRange mappings require start and end keys")
            return cls(value["start"], value["end"])
        if isinstance(value, (tuple, list)):
            if len(value) != 2:
                raise ValueError("TextRange sequences must have exactly two entries")
            return cls(*value)
        if value is not None and hasattr(value, "start") and hasattr(value, "end"):
            return cls(value.start, value.end)
        raise TypeError(f"Cannot build a TextRange from {type(value).__name__}")


def to_utf16_offset(text: str, index: int) -> int:
    """Return the UTF-16 code-unit offset matching code-point ``index`` in ``text``."""

    if index < 0 or index > len(text):
        raise ValueError(f"Offset {index} is outside text of length {len(text)}")
    prefix = text[:index]
    return index + sum(1 for char in prefix if ord(char) > 0xFFFF)


def from_utf16_offset(text: str, offset: int) -> int:
    """Return the code-point index matching UTF-16 code-unit ``offset`` in ``text``.

    Offsets that land between the two halves of a surrogate pair are rounded
    up to the following code point.
    """

    if offset < 0:
        raise ValueError("UTF-16 offsets must be non-negative")
    units = 0
    for index, char in enumerate(text):
        if units >= offset:
            return index
        units += 2 if ord(char) > 0xFFFF else 1
    if units >= offset:
        return len(text)
    raise ValueError(f"UTF-16 offset {offset} is outside the text")


__all__ = ["TextRange", "to_utf16_offset", "from_utf16_offset"]

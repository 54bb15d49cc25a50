"""Core domain types shared by the suggestion engine and checkers."""

from .ranges import TextRange, from_utf16_offset, to_utf16_offset

__all__ = ["TextRange", "from_utf16_offset", "to_utf16_offset"]

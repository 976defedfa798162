"""Tests for ANSI-aware width measurement and clipping."""

from __future__ import annotations

import unittest

from e6term.ansi import clip_ansi_line, display_width


class AnsiWidthTests(unittest.TestCase):
    def test_escape_sequences_have_no_width(self) -> None:
        self.assertEqual(display_width("\x1b[38;2;1;2;3mabc\x1b[0m"), 3)

    def test_wide_characters_count_double(self) -> None:
        self.assertEqual(display_width("猫a"), 3)

    def test_clip_keeps_styles_and_stops_at_width(self) -> None:
        self.assertEqual(clip_ansi_line("\x1b[1mabcdef\x1b[0m", 3), "\x1b[1mabc")

    def test_clip_does_not_split_wide_character(self) -> None:
        self.assertEqual(clip_ansi_line("a猫b", 2), "a")

    def test_clip_to_zero_is_empty(self) -> None:
        self.assertEqual(clip_ansi_line("abc", 0), "")


if __name__ == "__main__":
    unittest.main()

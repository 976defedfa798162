"""Tests for query tokenization, canned queries, and the edit buffer."""

from __future__ import annotations

import unittest

from e6term.query import (
    POPULAR_QUERY,
    TextInput,
    parse_filters,
    pool_query,
    shortcut_query,
)


class ParseFiltersTests(unittest.TestCase):
    def test_key_value_words_are_filters_with_spans(self) -> None:
        tokens = parse_filters("cat order:rank")

        self.assertEqual([t.kind for t in tokens], ["text", "filter"])
        self.assertEqual(tokens[1].span, (4, 14))
        self.assertEqual(tokens[1].key, "order")
        self.assertEqual(tokens[1].value, "rank")
        self.assertEqual(tokens[1].key_span, (4, 9))
        self.assertEqual(tokens[1].value_span, (10, 14))

    def test_empty_key_or_value_stays_plain_text(self) -> None:
        tokens = parse_filters("order: :rank")

        self.assertEqual([t.kind for t in tokens], ["text", "text"])

    def test_only_first_colon_splits(self) -> None:
        (token,) = parse_filters("source:http://x")

        self.assertEqual(token.key, "source")
        self.assertEqual(token.value, "http://x")

    def test_blank_query_has_no_tokens(self) -> None:
        self.assertEqual(parse_filters("   "), [])


class CannedQueryTests(unittest.TestCase):
    def test_shortcut_buttons(self) -> None:
        self.assertEqual(shortcut_query(0), "")
        self.assertEqual(shortcut_query(1), POPULAR_QUERY)

    def test_pool_query(self) -> None:
        self.assertEqual(pool_query(4521), "pool:4521")


class TextInputTests(unittest.TestCase):
    def test_typing_inserts_at_cursor(self) -> None:
        text_input = TextInput("ct")
        text_input.handle_key("LEFT")
        text_input.handle_key("a")

        self.assertEqual(text_input.value, "cat")
        self.assertEqual(text_input.cursor, 2)

    def test_backspace_and_delete(self) -> None:
        text_input = TextInput("abc")
        text_input.handle_key("BACKSPACE")
        self.assertEqual(text_input.value, "ab")

        text_input.handle_key("HOME")
        text_input.handle_key("DELETE")
        self.assertEqual(text_input.value, "b")
        self.assertEqual(text_input.cursor, 0)

    def test_ctrl_w_deletes_previous_word(self) -> None:
        text_input = TextInput("wolf order:score ")
        text_input.handle_key("CTRL_W")

        self.assertEqual(text_input.value, "wolf ")
        self.assertEqual(text_input.cursor, 5)

    def test_ctrl_u_and_ctrl_k_cut_around_cursor(self) -> None:
        text_input = TextInput("abcdef")
        for _ in range(3):
            text_input.handle_key("LEFT")
        text_input.handle_key("CTRL_K")
        self.assertEqual(text_input.value, "abc")

        text_input.handle_key("LEFT")
        text_input.handle_key("CTRL_U")
        self.assertEqual(text_input.value, "c")
        self.assertEqual(text_input.cursor, 0)

    def test_char_limit_is_enforced(self) -> None:
        text_input = TextInput(char_limit=3)
        for key in "abcd":
            text_input.handle_key(key)

        self.assertEqual(text_input.value, "abc")

    def test_unknown_keys_are_not_consumed(self) -> None:
        text_input = TextInput("x")

        self.assertFalse(text_input.handle_key("PAGE_UP"))
        self.assertEqual(text_input.value, "x")


if __name__ == "__main__":
    unittest.main()

"""Regression tests for raw-key decoding.

Covers ESC timing, CSI sequences, CRLF folding, and UTF-8 text.
"""

from __future__ import annotations

import os
import time
import unittest

from e6term.input import KeyReader, fd_byte_source


def scripted_source(data: bytes, eof: bool = False):
    chunks = [bytes([b]) for b in data]

    def read_byte(timeout: float | None) -> bytes | None:
        if chunks:
            return chunks.pop(0)
        return b"" if eof else None

    return read_byte


def read_all(data: bytes) -> list[str]:
    reader = KeyReader(scripted_source(data))
    keys: list[str] = []
    while True:
        key = reader.read_key(0)
        if not key:
            return keys
        keys.append(key)


class KeyReaderTests(unittest.TestCase):
    def test_arrow_and_navigation_sequences(self) -> None:
        self.assertEqual(
            read_all(b"\x1b[A\x1b[B\x1b[C\x1b[D\x1bOA\x1b[H\x1b[F"),
            ["UP", "DOWN", "RIGHT", "LEFT", "UP", "HOME", "END"],
        )

    def test_tilde_sequences(self) -> None:
        self.assertEqual(
            read_all(b"\x1b[5~\x1b[6~\x1b[3~\x1b[1~\x1b[4~"),
            ["PAGE_UP", "PAGE_DOWN", "DELETE", "HOME", "END"],
        )

    def test_modified_arrow_reports_bare_arrow(self) -> None:
        self.assertEqual(read_all(b"\x1b[1;5C"), ["RIGHT"])

    def test_shift_tab_and_control_keys(self) -> None:
        self.assertEqual(
            read_all(b"\x1b[Z\t\x03\x04\x15\x17\x7f"),
            ["SHIFT_TAB", "TAB", "CTRL_C", "CTRL_D", "CTRL_U", "CTRL_W", "BACKSPACE"],
        )

    def test_crlf_is_one_enter(self) -> None:
        self.assertEqual(read_all(b"\r\nx"), ["ENTER", "x"])

    def test_escape_does_not_swallow_following_key(self) -> None:
        self.assertEqual(read_all(b"\x1bq"), ["ESC", "q"])

    def test_lone_escape(self) -> None:
        self.assertEqual(read_all(b"\x1b"), ["ESC"])

    def test_utf8_character_is_one_token(self) -> None:
        self.assertEqual(read_all("é猫".encode("utf-8")), ["é", "猫"])

    def test_timeout_returns_empty_string(self) -> None:
        reader = KeyReader(scripted_source(b""))

        self.assertEqual(reader.read_key(0), "")
        self.assertFalse(reader.closed)

    def test_end_of_stream_returns_none(self) -> None:
        reader = KeyReader(scripted_source(b"a", eof=True))

        self.assertEqual(reader.read_key(0), "a")
        self.assertIsNone(reader.read_key(0))
        self.assertTrue(reader.closed)


class FdByteSourceTests(unittest.TestCase):
    def test_single_escape_over_pipe_does_not_wait_for_next_key(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, b"\x1b")
            reader = KeyReader(fd_byte_source(read_fd))
            started = time.monotonic()
            key = reader.read_key(1.0)
            elapsed = time.monotonic() - started
        finally:
            os.close(read_fd)
            os.close(write_fd)

        self.assertEqual(key, "ESC")
        self.assertLess(elapsed, 0.2)

    def test_idle_pipe_times_out(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            reader = KeyReader(fd_byte_source(read_fd))
            key = reader.read_key(0.02)
        finally:
            os.close(read_fd)
            os.close(write_fd)

        self.assertEqual(key, "")

    def test_closed_pipe_is_end_of_stream(self) -> None:
        read_fd, write_fd = os.pipe()
        os.close(write_fd)
        try:
            reader = KeyReader(fd_byte_source(read_fd))
            key = reader.read_key(0.5)
        finally:
            os.close(read_fd)

        self.assertIsNone(key)


if __name__ == "__main__":
    unittest.main()

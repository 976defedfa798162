"""Low-level terminal input decoding.

Turns a raw byte stream into normalized key tokens (``"UP"``, ``"ENTER"``,
``"CTRL_C"``, printable characters). The byte source is a callable so the
same decoder serves an SSH channel and a local tty.
"""

from __future__ import annotations

import os
import select
from collections.abc import Callable

ESC_SEQUENCE_TIMEOUT_MS = 25

# read_byte(timeout_seconds) -> one byte, b"" at end of stream, None on timeout.
ByteSource = Callable[[float | None], "bytes | None"]

_CONTROL_KEYS: dict[bytes, str] = {
    b"\x01": "CTRL_A",
    b"\x03": "CTRL_C",
    b"\x04": "CTRL_D",
    b"\x05": "CTRL_E",
    b"\x0b": "CTRL_K",
    b"\x15": "CTRL_U",
    b"\x17": "CTRL_W",
    b"\t": "TAB",
    b"\x08": "BACKSPACE",
    b"\x7f": "BACKSPACE",
    b"\r": "ENTER",
    b"\n": "ENTER",
}

_CSI_FINAL_KEYS: dict[bytes, str] = {
    b"A": "UP",
    b"B": "DOWN",
    b"C": "RIGHT",
    b"D": "LEFT",
    b"H": "HOME",
    b"F": "END",
    b"Z": "SHIFT_TAB",
}

_CSI_TILDE_KEYS: dict[bytes, str] = {
    b"1": "HOME",
    b"3": "DELETE",
    b"4": "END",
    b"5": "PAGE_UP",
    b"6": "PAGE_DOWN",
    b"7": "HOME",
    b"8": "END",
}


def _utf8_length(lead: int) -> int:
    if lead >= 0xF0:
        return 4
    if lead >= 0xE0:
        return 3
    if lead >= 0xC0:
        return 2
    return 1


class KeyReader:
    """Decode key tokens from a byte source, one token per :meth:`read_key`."""

    def __init__(self, read_byte: ByteSource) -> None:
        self._read_byte = read_byte
        self._pending: list[bytes] = []
        self.closed = False

    def _next_byte(self, timeout: float | None) -> bytes | None:
        if self._pending:
            return self._pending.pop(0)
        return self._read_byte(timeout)

    def _sequence_byte(self) -> bytes | None:
        ch = self._next_byte(ESC_SEQUENCE_TIMEOUT_MS / 1000.0)
        if not ch:
            return None
        return ch

    def read_key(self, timeout: float | None = None) -> str | None:
        """Return the next key token.

        ``""`` means the timeout elapsed with no input; ``None`` means the
        stream ended.
        """
        ch = self._next_byte(timeout)
        if ch is None:
            return ""
        if ch == b"":
            self.closed = True
            return None

        control = _CONTROL_KEYS.get(ch)
        if control is not None:
            # Swallow the LF of a CRLF pair so one Enter is one token.
            if ch == b"\r":
                follow = self._next_byte(0.0)
                if follow not in (None, b"", b"\n"):
                    self._pending.append(follow)
            return control
        if ch != b"\x1b":
            return self._decode_text(ch)

        seq = self._sequence_byte()
        if seq is None:
            return "ESC"
        if seq != b"[" and seq != b"O":
            self._pending.append(seq)
            return "ESC"
        final = self._sequence_byte()
        if final is None:
            return "ESC"
        key = _CSI_FINAL_KEYS.get(final)
        if key is not None:
            return key
        if final.isdigit():
            params = final
            while True:
                part = self._sequence_byte()
                if part is None:
                    return "ESC"
                if part == b"~":
                    return _CSI_TILDE_KEYS.get(params[:1], "ESC") if len(params) == 1 else "ESC"
                if part in _CSI_FINAL_KEYS:
                    # Modified arrows (ESC [ 1 ; 5 A) report the bare arrow.
                    return _CSI_FINAL_KEYS[part]
                params += part
                if len(params) > 16:
                    return "ESC"
        return "ESC"

    def _decode_text(self, lead: bytes) -> str:
        data = lead
        for _ in range(_utf8_length(lead[0]) - 1):
            nxt = self._sequence_byte()
            if nxt is None:
                break
            data += nxt
        return data.decode("utf-8", errors="replace")


def fd_byte_source(fd: int) -> ByteSource:
    """Byte source backed by a file descriptor (local tty mode)."""

    def read_byte(timeout: float | None) -> bytes | None:
        if timeout is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout))
            if not ready:
                return None
        return os.read(fd, 1)

    return read_byte


__all__ = ["ByteSource", "ESC_SEQUENCE_TIMEOUT_MS", "KeyReader", "fd_byte_source"]

"""Terminal output for one session.

Owns alternate-screen switching, frame drawing, and the escape sequences
for clipboard writes and kitty image cleanup. Output goes through a single
``write`` callable so the same writer serves an SSH channel or a local tty.
"""

from __future__ import annotations

import base64
import contextlib
import os
import termios
import threading
import tty
from collections.abc import Callable, Iterator

from .ansi import clip_ansi_line
from .render import Frame

ENTER_ALT_SCREEN = "\x1b[?1049h\x1b[?25l"
LEAVE_ALT_SCREEN = "\x1b[?25h\x1b[?1049l"
CLEAR_SCREEN = "\x1b[2J\x1b[H"
# Delete all kitty images and placements from the screen.
KITTY_CLEAR_IMAGES = "\x1b_Ga=d,d=A,q=2;\x1b\\"
RESET_STYLE = "\x1b[0m"


def clipboard_sequence(text: str) -> str:
    """OSC 52 sequence asking the terminal to put ``text`` on the clipboard."""
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return f"\x1b]52;c;{encoded}\x07"


class TerminalWriter:
    """Draw frames by rewriting only the lines that changed."""

    def __init__(self, write: Callable[[bytes], object]) -> None:
        self._write = write
        self._lock = threading.Lock()
        self._lines: list[str] | None = None
        self._overlay = ""
        self._width = 0

    def write(self, text: str) -> None:
        with self._lock:
            self._write(text.encode("utf-8"))

    def enter(self) -> None:
        self.write(ENTER_ALT_SCREEN + CLEAR_SCREEN)

    def leave(self) -> None:
        self.write(KITTY_CLEAR_IMAGES + RESET_STYLE + LEAVE_ALT_SCREEN)

    def invalidate(self) -> None:
        """Forget the last frame so the next draw repaints everything."""
        with self._lock:
            self._lines = None

    def copy_to_clipboard(self, text: str) -> None:
        self.write(clipboard_sequence(text))

    def draw(self, frame: Frame, width: int) -> None:
        out: list[str] = []
        with self._lock:
            full = self._lines is None or len(self._lines) != len(frame.lines) or width != self._width
            if full:
                out.append(KITTY_CLEAR_IMAGES + CLEAR_SCREEN)
            for row, line in enumerate(frame.lines):
                if not full and self._lines is not None and self._lines[row] == line:
                    continue
                out.append(f"\x1b[{row + 1};1H{clip_ansi_line(line, width)}{RESET_STYLE}\x1b[K")
            overlay_changed = frame.overlay != self._overlay
            if overlay_changed and not full and self._overlay:
                out.append(KITTY_CLEAR_IMAGES)
            if frame.overlay and (full or overlay_changed):
                out.append(frame.overlay)
            self._lines = list(frame.lines)
            self._overlay = frame.overlay
            self._width = width
            if out:
                self._write("".join(out).encode("utf-8"))


class LocalTerminal:
    """Raw-mode handling for running a session on the local tty."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)

    def write_bytes(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            written = os.write(self.stdout_fd, view)
            view = view[written:]

    def size(self) -> tuple[int, int]:
        size = os.get_terminal_size(self.stdout_fd)
        return size.columns, size.lines

    @contextlib.contextmanager
    def raw_mode(self) -> Iterator[None]:
        try:
            tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
            yield
        finally:
            termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)


__all__ = [
    "KITTY_CLEAR_IMAGES",
    "LocalTerminal",
    "TerminalWriter",
    "clipboard_sequence",
]

"""Per-session control loop.

Wires the scheduler inbox, the state machine, the renderer and the terminal
writer together. Feature logic lives in :mod:`e6term.session`; this module
only executes the commands the machine returns.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx

from .catalog import CatalogClient, FetchError
from .commands import (
    CancelPreview,
    ClearScreen,
    ClearStatusAfter,
    Command,
    CopyToClipboard,
    FetchPosts,
    Quit,
    UpdatePreview,
)
from .events import Event, FetchFailed, InputClosed, KeyPressed, PostsFetched, PreviewLoaded, SpinnerTick, StatusExpired
from .input import ByteSource, KeyReader
from .preview import PreviewPipeline, PreviewRequest, renderer_available
from .render import render
from .scheduler import CancelToken, CommandScheduler
from .session import SessionMachine, startup_events
from .state import SessionState
from .terminal import TerminalWriter
from .ui_theme import DEFAULT_THEME, UITheme

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

IDLE_TICK_SECONDS = 0.1
KEY_POLL_SECONDS = 0.2


class SessionRuntime:
    """Run one session until the user quits or input closes."""

    def __init__(
        self,
        state: SessionState,
        scheduler: CommandScheduler,
        writer: TerminalWriter,
        catalog: CatalogClient,
        pipeline: PreviewPipeline,
        key_reader: KeyReader,
        theme: UITheme = DEFAULT_THEME,
    ) -> None:
        self.state = state
        self.scheduler = scheduler
        self.writer = writer
        self.catalog = catalog
        self.pipeline = pipeline
        self.key_reader = key_reader
        self.theme = theme
        self.machine = SessionMachine(state)
        self._stop = threading.Event()
        self._reader_thread: threading.Thread | None = None

    # input
    def _read_keys(self) -> None:
        while not self._stop.is_set():
            try:
                key = self.key_reader.read_key(KEY_POLL_SECONDS)
            except OSError as exc:
                logger.info("Input stream failed: %s", exc)
                key = None
            if key is None:
                self.scheduler.post(InputClosed())
                return
            if key:
                self.scheduler.post(KeyPressed(key))

    def start_reader(self) -> None:
        self._reader_thread = threading.Thread(target=self._read_keys, name="e6term-keys", daemon=True)
        self._reader_thread.start()

    # workers
    def _fetch(self, query: str, page: int, generation: int) -> Event:
        try:
            posts = self.catalog.search(query, page)
        except FetchError as exc:
            return FetchFailed(generation, str(exc))
        return PostsFetched(generation, tuple(posts))

    def _preview(self, request: PreviewRequest, token: CancelToken) -> Event | None:
        content = self.pipeline.run(request, token)
        if content is None:
            return None
        return PreviewLoaded(request.generation, content)

    def _copy(self, text: str) -> None:
        self.writer.copy_to_clipboard(text)

    # commands
    def execute(self, commands: list[Command]) -> bool:
        """Run ``commands``; return ``False`` once a :class:`Quit` is seen."""
        keep_running = True
        for command in commands:
            if isinstance(command, FetchPosts):
                self.scheduler.submit("fetch", self._fetch, command.query, command.page, command.generation)
            elif isinstance(command, UpdatePreview):
                token = self.scheduler.new_preview_token()
                self.scheduler.submit("preview", self._preview, command.request, token)
            elif isinstance(command, CancelPreview):
                self.scheduler.cancel_preview()
            elif isinstance(command, CopyToClipboard):
                self.scheduler.submit("clipboard", self._copy, command.text)
            elif isinstance(command, ClearStatusAfter):
                self.scheduler.call_later(command.seconds, StatusExpired())
            elif isinstance(command, ClearScreen):
                self.writer.invalidate()
            elif isinstance(command, Quit):
                keep_running = False
            else:
                raise TypeError(f"unknown command: {command!r}")
        return keep_running

    def handle(self, event: Event) -> bool:
        return self.execute(self.machine.dispatch(event))

    def draw(self) -> None:
        self.writer.draw(render(self.state, self.theme), self.state.terminal_width)

    # loop
    def run(self) -> None:
        self.writer.enter()
        try:
            for event in startup_events(renderer_available(self.pipeline.renderer), self.pipeline.renderer):
                self.scheduler.post(event)
            self.start_reader()
            self.draw()
            self._loop()
        finally:
            self.close()

    def _loop(self) -> None:
        while True:
            event = self.scheduler.next_event(IDLE_TICK_SECONDS)
            if event is None:
                if not self.state.loading:
                    continue
                event = SpinnerTick()
            if not self.handle(event):
                return
            for queued in self.scheduler.drain():
                if not self.handle(queued):
                    return
            self.draw()

    def close(self) -> None:
        self._stop.set()
        self.scheduler.shutdown()
        try:
            self.writer.leave()
        except OSError as exc:
            logger.debug("Could not restore terminal on close: %s", exc)
        self.catalog.close()
        self.pipeline.http.close()
        logger.info("Session closed")


def create_session(
    settings: Settings,
    write: Callable[[bytes], object],
    read_byte: ByteSource,
    width: int,
    height: int,
    theme: UITheme = DEFAULT_THEME,
) -> SessionRuntime:
    """Build a runtime with its own scheduler, HTTP clients and writer."""
    state = SessionState(terminal_width=width, terminal_height=height)
    pipeline = PreviewPipeline(
        httpx.Client(follow_redirects=True),
        user_agent=settings.user_agent,
        renderer=settings.renderer,
    )
    return SessionRuntime(
        state,
        CommandScheduler(),
        TerminalWriter(write),
        CatalogClient(settings.api_endpoint, settings.user_agent),
        pipeline,
        KeyReader(read_byte),
        theme,
    )


__all__ = ["IDLE_TICK_SECONDS", "SessionRuntime", "create_session"]

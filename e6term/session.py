"""Session state machine.

:meth:`SessionMachine.dispatch` is the only place session state changes. It
takes one event, mutates :class:`~e6term.state.SessionState` in place, and
returns the commands the runtime should execute. It never blocks and never
performs I/O, so every transition is testable without threads.
"""

from __future__ import annotations

import logging

from .commands import CancelPreview, ClearScreen, ClearStatusAfter, Command, CopyToClipboard, FetchPosts, Quit, UpdatePreview
from .events import (
    Event,
    FetchFailed,
    InputClosed,
    KeyPressed,
    PostsFetched,
    PreviewLoaded,
    Resized,
    SpinnerTick,
    StartupCheckFailed,
    StatusExpired,
    TaskFailed,
)
from .keymap import KeyBinding, KeyMap
from .preview import EMPTY_PREVIEW, NO_RESULTS_MESSAGE, PreviewContent, PreviewRequest, renderer_missing_message, resolve_display_url
from .query import pool_query, shortcut_query
from .render import max_preview_scroll, max_tag_scroll
from .state import MIN_PAGE, Mode, SessionState

logger = logging.getLogger(__name__)

STATUS_SECONDS = 2.0
COPIED_MESSAGE = "Copied link to clipboard!"
LOADING_PREVIEW_TEXT = "Loading preview..."

_BROWSING_MODES = (Mode.BROWSING, Mode.TAG_POPUP)


def startup_events(renderer_ok: bool, renderer: str = "kitty") -> list[Event]:
    """Events to feed the machine before the first key press."""
    if renderer_ok:
        return []
    return [StartupCheckFailed(renderer_missing_message(renderer))]


class SessionMachine:
    """Transition table for one session, keyed on mode and event variant."""

    def __init__(self, state: SessionState) -> None:
        self.state = state
        self._quit_confirm_keys = KeyMap(
            KeyBinding(("y", "Y"), self._quit),
            KeyBinding(("n", "N", "ESC"), self._cancel_quit),
        )
        self._fatal_keys = KeyMap(KeyBinding(("q", "ESC", "CTRL_C"), self._ask_quit))
        self._menu_search_keys = KeyMap(
            KeyBinding(("ENTER",), self._commit_from_menu),
            KeyBinding(("TAB", "SHIFT_TAB"), self._focus_buttons),
            KeyBinding(("ESC", "CTRL_C"), self._ask_quit),
        )
        self._menu_button_keys = KeyMap(
            KeyBinding(("ENTER",), self._apply_shortcut),
            KeyBinding(("TAB", "SHIFT_TAB"), self._focus_search),
            KeyBinding(("LEFT", "h"), lambda: self._select_button(0)),
            KeyBinding(("RIGHT", "l"), lambda: self._select_button(1)),
            KeyBinding(("q", "ESC", "CTRL_C"), self._ask_quit),
        )
        self._browse_keys = KeyMap(
            KeyBinding(("q", "ESC"), self._back_to_menu),
            KeyBinding(("CTRL_C",), self._ask_quit),
            KeyBinding(("c",), self._copy_link),
            KeyBinding(("/",), self._focus_filter),
            KeyBinding(("r",), self._refresh),
            KeyBinding(("e",), self._toggle_full_image),
            KeyBinding(("p",), self._open_pool),
            KeyBinding(("t",), self._open_tags),
            KeyBinding(("LEFT", "h"), lambda: self._change_page(-1)),
            KeyBinding(("RIGHT", "l"), lambda: self._change_page(1)),
        )
        self._browse_filter_keys = KeyMap(
            KeyBinding(("ENTER",), self._commit_filter),
            KeyBinding(("ESC",), self._blur_filter),
            KeyBinding(("CTRL_C",), self._ask_quit),
        )
        self._tag_keys = KeyMap(
            KeyBinding(("t", "ESC"), self._close_tags),
            KeyBinding(("CTRL_C",), self._ask_quit),
            KeyBinding(("UP", "k"), lambda: self._scroll_tags(-1)),
            KeyBinding(("DOWN", "j"), lambda: self._scroll_tags(1)),
            KeyBinding(("PAGE_UP", "b"), lambda: self._scroll_tags(-self.state.layout.inner_rows)),
            KeyBinding(("PAGE_DOWN", "f", " "), lambda: self._scroll_tags(self.state.layout.inner_rows)),
        )

    # dispatch
    def dispatch(self, event: Event) -> list[Command]:
        """Apply one event and return the commands it produces."""
        state = self.state
        if isinstance(event, KeyPressed):
            return self._handle_key(event.key)
        if isinstance(event, PostsFetched):
            return self._on_posts_fetched(event)
        if isinstance(event, FetchFailed):
            return self._on_fetch_failed(event)
        if isinstance(event, PreviewLoaded):
            return self._on_preview_loaded(event)
        if isinstance(event, Resized):
            return self._on_resized(event)
        if isinstance(event, StatusExpired):
            state.status_message = ""
            return []
        if isinstance(event, SpinnerTick):
            if state.loading:
                state.spinner_frame += 1
            return []
        if isinstance(event, StartupCheckFailed):
            self._fail(event.message)
            return []
        if isinstance(event, TaskFailed):
            state.status_message = f"{event.task} failed: {event.message}"
            return [ClearStatusAfter(STATUS_SECONDS)]
        if isinstance(event, InputClosed):
            return self._quit()
        raise TypeError(f"unknown event: {event!r}")

    def _handle_key(self, key: str) -> list[Command]:
        state = self.state
        if state.mode is Mode.QUIT_CONFIRM:
            return self._quit_confirm_keys.dispatch(key) or []
        if state.mode is Mode.FATAL_ERROR:
            return self._fatal_keys.dispatch(key) or []
        if state.mode is Mode.ENTRANCE_MENU:
            if state.menu_focus == "search":
                handled = self._menu_search_keys.dispatch(key)
                if handled is None:
                    state.search_input.handle_key(key)
                    return []
                return handled
            return self._menu_button_keys.dispatch(key) or []
        if state.mode is Mode.TAG_POPUP:
            return self._tag_keys.dispatch(key) or []

        if state.search_focused:
            handled = self._browse_filter_keys.dispatch(key)
            if handled is None:
                state.search_input.handle_key(key)
                return []
            return handled
        handled = self._browse_keys.dispatch(key)
        if handled is not None:
            return handled
        commands = self._move_cursor(key)
        if not commands:
            self._scroll_preview(key)
        return commands

    # quit confirmation
    def _ask_quit(self) -> list[Command]:
        self.state.previous_mode = self.state.mode
        self.state.mode = Mode.QUIT_CONFIRM
        return []

    def _cancel_quit(self) -> list[Command]:
        self.state.mode = self.state.previous_mode
        return []

    def _quit(self) -> list[Command]:
        self.state.quitting = True
        return [Quit()]

    def _fail(self, message: str) -> None:
        state = self.state
        logger.error("Session entered fatal error: %s", message)
        state.last_error = message
        state.loading = False
        state.tag_popup_open = False
        if state.mode is Mode.QUIT_CONFIRM:
            state.previous_mode = Mode.FATAL_ERROR
        else:
            state.mode = Mode.FATAL_ERROR

    # entrance menu
    def _focus_buttons(self) -> list[Command]:
        self.state.menu_focus = "buttons"
        return []

    def _focus_search(self) -> list[Command]:
        self.state.menu_focus = "search"
        return []

    def _select_button(self, index: int) -> list[Command]:
        self.state.selected_button = index
        return []

    def _commit_from_menu(self) -> list[Command]:
        self._commit(self.state.search_input.value)
        self.state.mode = Mode.BROWSING
        return self._start_fetch()

    def _apply_shortcut(self) -> list[Command]:
        query = shortcut_query(self.state.selected_button)
        self.state.search_input.set_value(query)
        self._commit(query)
        self.state.mode = Mode.BROWSING
        return self._start_fetch()

    def _commit(self, text: str) -> None:
        # Sent verbatim; the API tolerates surrounding whitespace.
        self.state.active_query = text
        self.state.page = MIN_PAGE
        self.state.selected_index = 0
        self.state.search_focused = False

    def _back_to_menu(self) -> list[Command]:
        state = self.state
        state.mode = Mode.ENTRANCE_MENU
        state.menu_focus = "search"
        state.search_input.set_value(state.active_query)
        state.search_focused = False
        self._clear_results()
        state.loading = False
        state.jump_to_post_id = None
        # Anything still in flight belongs to the abandoned view.
        state.fetch_generation += 1
        state.preview_generation += 1
        return [CancelPreview(), ClearScreen()]

    # fetching
    def _clear_results(self) -> None:
        state = self.state
        state.results = ()
        state.selected_index = 0
        state.table_offset = 0
        state.preview_content = EMPTY_PREVIEW
        state.preview_scroll = 0
        state.tag_popup_open = False
        state.current_tags = ""

    def _start_fetch(self) -> list[Command]:
        state = self.state
        self._clear_results()
        state.loading = True
        state.fetch_generation += 1
        state.preview_generation += 1
        logger.debug(
            "Fetch %d scheduled for query %r page %d",
            state.fetch_generation,
            state.active_query,
            state.page,
        )
        return [FetchPosts(state.active_query, state.page, state.fetch_generation), CancelPreview(), ClearScreen()]

    def _on_posts_fetched(self, event: PostsFetched) -> list[Command]:
        state = self.state
        if event.generation != state.fetch_generation:
            logger.debug("Dropping stale fetch result %d (current %d)", event.generation, state.fetch_generation)
            return []
        returns_to_browsing = state.mode is Mode.QUIT_CONFIRM and state.previous_mode in _BROWSING_MODES
        if state.mode not in _BROWSING_MODES and not returns_to_browsing:
            return []

        state.loading = False
        state.results = tuple(event.posts)
        state.selected_index = 0
        state.table_offset = 0
        state.narrow_table = state.layout.narrow_table
        if state.mode is Mode.TAG_POPUP:
            state.mode = Mode.BROWSING
        if returns_to_browsing:
            state.previous_mode = Mode.BROWSING
        state.tag_popup_open = False

        if state.jump_to_post_id is not None:
            for idx, post in enumerate(state.results):
                if post.id == state.jump_to_post_id:
                    state.selected_index = idx
                    break
            state.jump_to_post_id = None
            self._keep_cursor_visible()

        if state.results:
            return self._request_preview()
        state.preview_content = PreviewContent.text(NO_RESULTS_MESSAGE)
        return []

    def _on_fetch_failed(self, event: FetchFailed) -> list[Command]:
        if event.generation != self.state.fetch_generation:
            logger.debug("Dropping stale fetch failure %d", event.generation)
            return []
        self._fail(event.message)
        return []

    def _refresh(self) -> list[Command]:
        return self._start_fetch()

    def _change_page(self, delta: int) -> list[Command]:
        state = self.state
        state.page = state.clamp_page(state.page + delta)
        return self._start_fetch()

    def _open_pool(self) -> list[Command]:
        state = self.state
        post = state.selected_post
        if state.loading or post is None or not post.pools:
            return []
        query = pool_query(post.pools[0])
        if query == state.active_query:
            return []
        state.jump_to_post_id = post.id
        state.search_input.set_value(query)
        self._commit(query)
        return self._start_fetch()

    # filter editing while browsing
    def _focus_filter(self) -> list[Command]:
        self.state.search_focused = True
        self.state.search_input.cursor = len(self.state.search_input.value)
        return []

    def _blur_filter(self) -> list[Command]:
        self.state.search_focused = False
        return []

    def _commit_filter(self) -> list[Command]:
        self._commit(self.state.search_input.value)
        return self._start_fetch()

    # preview
    def _request_preview(self) -> list[Command]:
        state = self.state
        post = state.selected_post
        if post is None:
            return []
        state.current_tags = post.tags.popup_text()
        state.preview_generation += 1
        state.preview_content = PreviewContent.text(f"{state.spinner} {LOADING_PREVIEW_TEXT}")
        state.preview_scroll = 0
        request = PreviewRequest(
            post_id=post.id,
            url=resolve_display_url(post, state.show_full_image),
            geometry=state.layout.preview_geometry(),
            generation=state.preview_generation,
        )
        return [ClearScreen(), UpdatePreview(request)]

    def _on_preview_loaded(self, event: PreviewLoaded) -> list[Command]:
        state = self.state
        if event.generation != state.preview_generation:
            logger.debug("Dropping stale preview %d (current %d)", event.generation, state.preview_generation)
            return []
        state.preview_content = event.content
        state.preview_scroll = 0
        return []

    def _toggle_full_image(self) -> list[Command]:
        state = self.state
        state.show_full_image = not state.show_full_image
        if state.results:
            return self._request_preview()
        return []

    # browsing
    def _move_cursor(self, key: str) -> list[Command]:
        state = self.state
        if state.loading or not state.results:
            return []
        rows = state.layout.table_rows
        last = len(state.results) - 1
        previous = state.selected_index
        if key in {"UP", "k"}:
            target = previous - 1
        elif key in {"DOWN", "j"}:
            target = previous + 1
        elif key in {"PAGE_UP", "b"}:
            target = previous - rows
        elif key in {"PAGE_DOWN", "f", " "}:
            target = previous + rows
        elif key in {"CTRL_U", "u"}:
            target = previous - max(1, rows // 2)
        elif key in {"CTRL_D", "d"}:
            target = previous + max(1, rows // 2)
        elif key in {"HOME", "g"}:
            target = 0
        elif key in {"END", "G"}:
            target = last
        else:
            return []
        state.selected_index = max(0, min(last, target))
        self._keep_cursor_visible()
        if state.selected_index == previous:
            return []
        return self._request_preview()

    def _scroll_preview(self, key: str) -> None:
        # The preview viewport follows the same motion keys as the table.
        state = self.state
        rows = state.layout.inner_rows
        half = max(1, rows // 2)
        deltas = {
            "UP": -1,
            "k": -1,
            "DOWN": 1,
            "j": 1,
            "PAGE_UP": -rows,
            "b": -rows,
            "PAGE_DOWN": rows,
            "f": rows,
            " ": rows,
            "CTRL_U": -half,
            "u": -half,
            "CTRL_D": half,
            "d": half,
        }
        delta = deltas.get(key)
        if delta is None:
            return
        state.preview_scroll = max(0, min(state.preview_scroll + delta, max_preview_scroll(state)))

    def _keep_cursor_visible(self) -> None:
        state = self.state
        rows = state.layout.table_rows
        if state.selected_index < state.table_offset:
            state.table_offset = state.selected_index
        elif state.selected_index >= state.table_offset + rows:
            state.table_offset = state.selected_index - rows + 1
        state.table_offset = max(0, min(state.table_offset, max(0, len(state.results) - rows)))

    def _copy_link(self) -> list[Command]:
        post = self.state.selected_post
        if post is None:
            return []
        self.state.status_message = COPIED_MESSAGE
        return [CopyToClipboard(post.file.url), ClearStatusAfter(STATUS_SECONDS)]

    # tags popup
    def _open_tags(self) -> list[Command]:
        state = self.state
        if not state.results:
            return []
        post = state.selected_post
        if post is not None:
            state.current_tags = post.tags.popup_text()
        state.mode = Mode.TAG_POPUP
        state.tag_popup_open = True
        state.tag_scroll = 0
        return []

    def _close_tags(self) -> list[Command]:
        self.state.mode = Mode.BROWSING
        self.state.tag_popup_open = False
        return []

    def _scroll_tags(self, delta: int) -> list[Command]:
        self.state.tag_scroll = max(0, min(self.state.tag_scroll + delta, max_tag_scroll(self.state)))
        return []

    # geometry
    def _on_resized(self, event: Resized) -> list[Command]:
        state = self.state
        if (event.width, event.height) == (state.terminal_width, state.terminal_height):
            return []
        state.terminal_width = max(0, event.width)
        state.terminal_height = max(0, event.height)
        if state.results:
            self._keep_cursor_visible()
        if state.mode in _BROWSING_MODES and state.results and not state.loading:
            return self._request_preview()
        return [ClearScreen()]


def dispatch(state: SessionState, event: Event) -> list[Command]:
    """Apply ``event`` to ``state`` with a throwaway :class:`SessionMachine`."""
    return SessionMachine(state).dispatch(event)


__all__ = [
    "COPIED_MESSAGE",
    "LOADING_PREVIEW_TEXT",
    "STATUS_SECONDS",
    "SessionMachine",
    "dispatch",
    "startup_events",
]

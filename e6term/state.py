from __future__ import annotations

import enum
from dataclasses import dataclass, field

from .catalog import MAX_PAGE
from .layout import ScreenLayout
from .models import Post
from .preview import EMPTY_PREVIEW, PreviewContent
from .query import TextInput

SPINNER_FRAMES: tuple[str, ...] = ("⣾", "⣽", "⣻", "⢿", "⡿", "⣟", "⣯", "⣷")
MIN_PAGE = 1


class Mode(enum.Enum):
    ENTRANCE_MENU = "entrance_menu"
    QUIT_CONFIRM = "quit_confirm"
    BROWSING = "browsing"
    TAG_POPUP = "tag_popup"
    FATAL_ERROR = "fatal_error"


@dataclass
class SessionState:
    terminal_width: int = 0
    terminal_height: int = 0
    mode: Mode = Mode.ENTRANCE_MENU
    previous_mode: Mode = Mode.ENTRANCE_MENU
    menu_focus: str = "search"
    selected_button: int = 0
    search_input: TextInput = field(default_factory=TextInput)
    search_focused: bool = False
    active_query: str = ""
    page: int = MIN_PAGE
    results: tuple[Post, ...] = ()
    selected_index: int = 0
    table_offset: int = 0
    narrow_table: bool = False
    loading: bool = False
    fetch_generation: int = 0
    jump_to_post_id: int | None = None
    preview_content: PreviewContent = EMPTY_PREVIEW
    preview_generation: int = 0
    preview_scroll: int = 0
    show_full_image: bool = False
    tag_popup_open: bool = False
    current_tags: str = ""
    tag_scroll: int = 0
    status_message: str = ""
    spinner_frame: int = 0
    last_error: str | None = None
    quitting: bool = False

    @property
    def layout(self) -> ScreenLayout:
        return ScreenLayout(self.terminal_width, self.terminal_height)

    @property
    def spinner(self) -> str:
        return SPINNER_FRAMES[self.spinner_frame % len(SPINNER_FRAMES)]

    @property
    def selected_post(self) -> Post | None:
        if 0 <= self.selected_index < len(self.results):
            return self.results[self.selected_index]
        return None

    def clamp_page(self, page: int) -> int:
        return max(MIN_PAGE, min(MAX_PAGE, page))


__all__ = ["MIN_PAGE", "Mode", "SPINNER_FRAMES", "SessionState"]

"""Pure frame rendering.

``render(state)`` turns session state into a :class:`Frame`: exactly
``terminal_height`` ANSI lines plus an optional raw overlay (renderer output
that paints the preview image in place). Nothing here mutates state or
performs I/O; layout and styling are delegated to ``rich``.
"""

from __future__ import annotations

import io
from collections.abc import Iterable
from dataclasses import dataclass

from rich import box
from rich.align import Align
from rich.color import ColorSystem
from rich.console import Console, Group, RenderableType
from rich.padding import Padding
from rich.panel import Panel
from rich.segment import Segment
from rich.table import Table
from rich.text import Text

from .layout import TOP_BAR_HEIGHT
from .query import SHORTCUT_LABELS, TextInput, parse_filters
from .state import Mode, SessionState
from .ui_theme import DEFAULT_THEME, UITheme

BANNER = r"""
            /$$$$$$   /$$$$$$    /$$                 /$$
           /$$__  $$ /$$__  $$ /$$$$                | $$
  /$$$$$$ | $$  \__/|__/  \ $$|_  $$        /$$$$$$$| $$$$$$$
 /$$__  $$| $$$$$$$   /$$$$$$/  | $$       /$$_____/| $$__  $$
| $$$$$$$$| $$__  $$ /$$____/   | $$      |  $$$$$$ | $$  \ $$
| $$_____/| $$  \ $$| $$        | $$       \____  $$| $$  | $$
|  $$$$$$$|  $$$$$$/| $$$$$$$$ /$$$$$$ /$$ /$$$$$$$/| $$  | $$
 \_______/ \______/ |________/|______/|__/|_______/ |__/  |__/
"""

SEARCH_PLACEHOLDER = "Search posts by tag"
SEARCH_BOX_WIDTH = 50
INITIALIZING_TEXT = "Initializing..."
MENU_HELP_SEARCH = "enter: search | tab: select buttons | esc: quit"
MENU_HELP_BUTTONS = "←/→: nav | enter: select | tab: edit search | esc: quit"
TAGS_HELP = "t/esc: close tags popup | ↑/↓: scroll"
QUIT_PROMPT = "Are you sure you want to quit? (y/n)"

FULL_TABLE_COLUMNS: tuple[tuple[str, int], ...] = (("ID", 7), ("Artist", 22), ("Score", 6))
NARROW_TABLE_COLUMNS: tuple[tuple[str, int], ...] = (("ID", 7), ("Score", 6))


@dataclass(frozen=True)
class Frame:
    lines: tuple[str, ...]
    overlay: str = ""


def _console(width: int, height: int) -> Console:
    return Console(
        width=max(1, width),
        height=max(1, height),
        file=io.StringIO(),
        force_terminal=True,
        color_system="truecolor",
        legacy_windows=False,
        highlight=False,
        emoji=False,
    )


def _segments_to_ansi(segments: Iterable[Segment]) -> str:
    parts: list[str] = []
    for segment in segments:
        if segment.control:
            continue
        if segment.style:
            parts.append(segment.style.render(segment.text, color_system=ColorSystem.TRUECOLOR))
        else:
            parts.append(segment.text)
    return "".join(parts)


def render_lines(renderable: RenderableType, width: int, height: int) -> list[str]:
    """Render into exactly ``height`` lines of ``width`` columns."""
    if width <= 0 or height <= 0:
        return [""] * max(0, height)
    console = _console(width, height)
    options = console.options.update(width=width, height=height)
    return [_segments_to_ansi(line) for line in console.render_lines(renderable, options, pad=True)]


def styled_query(text_input: TextInput, theme: UITheme, show_cursor: bool) -> Text:
    """Query text with ``key:value`` filters highlighted."""
    value = text_input.value
    if not value:
        placeholder = Text(SEARCH_PLACEHOLDER, style=theme.subtle, no_wrap=True)
        if show_cursor:
            placeholder.stylize(theme.cursor, 0, 1)
        return placeholder
    text = Text(value, style=theme.text, no_wrap=True)
    for token in parse_filters(value):
        if token.kind != "filter" or token.key_span is None or token.value_span is None:
            continue
        text.stylize(theme.filter_key, *token.key_span)
        text.stylize(theme.filter_value, *token.value_span)
    if show_cursor:
        if text_input.cursor < len(value):
            text.stylize(theme.cursor, text_input.cursor, text_input.cursor + 1)
        else:
            text.append(" ", style=theme.cursor)
    return text


def _centered(renderable: RenderableType, height: int) -> Align:
    return Align.center(renderable, vertical="middle", height=height)


def _menu_view(state: SessionState, theme: UITheme) -> RenderableType:
    search_focused = state.menu_focus == "search"
    search_box = Panel(
        styled_query(state.search_input, theme, show_cursor=search_focused),
        box=box.ROUNDED,
        border_style=theme.highlight if search_focused else theme.subtle,
        padding=(0, 1),
        width=SEARCH_BOX_WIDTH + 4,
    )
    buttons = Table.grid(padding=(0, 2))
    buttons.add_row(
        *(
            Padding(
                Panel(
                    Text(label, style=theme.text if selected else theme.subtle),
                    box=box.ROUNDED,
                    border_style=theme.highlight if selected else theme.subtle,
                    padding=(0, 3),
                    expand=False,
                ),
                (1, 2),
            )
            for label, selected in (
                (label, not search_focused and idx == state.selected_button)
                for idx, label in enumerate(SHORTCUT_LABELS)
            )
        )
    )
    help_text = MENU_HELP_SEARCH if search_focused else MENU_HELP_BUTTONS
    return _centered(
        Group(
            Align.center(Text(BANNER, style=theme.text, no_wrap=True)),
            Align.center(search_box),
            Align.center(buttons),
            Align.center(Text(help_text, style=theme.subtle)),
        ),
        state.terminal_height,
    )


def _quit_view(state: SessionState, theme: UITheme) -> RenderableType:
    prompt = Panel(
        Text(QUIT_PROMPT, style=theme.text),
        box=box.ROUNDED,
        border_style=theme.error,
        padding=(1, 2),
        expand=False,
    )
    return _centered(prompt, state.terminal_height)


def _error_view(state: SessionState, theme: UITheme) -> RenderableType:
    message = f"An error occurred:\n\n{state.last_error or 'unknown error'}\n\nPress q to quit."
    error_box = Panel(
        Text(message, style=theme.error),
        box=box.DOUBLE,
        border_style=theme.error,
        padding=(1, 3),
        expand=False,
        width=min(max(20, state.terminal_width - 4), 100),
    )
    return _centered(error_box, state.terminal_height)


def _loading_view(state: SessionState, theme: UITheme) -> RenderableType:
    text = Text.assemble(
        (state.spinner, theme.highlight),
        (f" Fetching data for '{state.active_query}'...", theme.text),
    )
    return _centered(text, state.terminal_height)


def _top_bar(state: SessionState, theme: UITheme) -> list[str]:
    bar = Padding(
        Text(f"Query: {state.active_query}   Page: {state.page}", no_wrap=True, overflow="ellipsis"),
        (0, 1),
        style=theme.bar,
        expand=True,
    )
    return [""] * (TOP_BAR_HEIGHT - 1) + render_lines(bar, state.terminal_width, 1)


def _status_text(state: SessionState, theme: UITheme) -> Text:
    if state.mode is Mode.TAG_POPUP:
        return Text(TAGS_HELP)
    if state.search_focused:
        return Text("Filter: ") + styled_query(state.search_input, theme, show_cursor=True)
    if state.status_message:
        return Text(state.status_message)
    image_mode = "[full]/sample" if state.show_full_image else "full/[sample]"
    status = (
        "↑/↓: nav | ←/→: page | c: copy url | /: filter | r: refresh "
        f"| e: {image_mode} | t: show tags popup"
    )
    post = state.selected_post
    if not state.loading and post is not None and post.pools:
        status += " | p: view pool"
    return Text(status + " | esc: back to menu")


def _status_bar(state: SessionState, theme: UITheme) -> list[str]:
    text = _status_text(state, theme)
    text.no_wrap = True
    text.overflow = "ellipsis"
    bar = Padding(text, (0, 1), style=theme.bar, expand=True)
    return render_lines(bar, state.terminal_width, 1)


def _preview_pane(state: SessionState, theme: UITheme) -> list[str]:
    layout = state.layout
    content = state.preview_content
    body: RenderableType
    if content.is_raw:
        body = Text("")
    else:
        lines = content.body.split("\n")[min(state.preview_scroll, max_preview_scroll(state)) :]
        body = Align.center(Text("\n".join(lines), justify="center", style=theme.text), vertical="middle")
    pane = Panel(
        body,
        box=box.HEAVY,
        border_style=theme.subtle,
        padding=(0, 1),
        width=layout.preview_width,
        height=layout.content_height,
    )
    return render_lines(pane, layout.preview_width, layout.content_height)


def _post_table(state: SessionState, theme: UITheme) -> Table:
    columns = NARROW_TABLE_COLUMNS if state.narrow_table else FULL_TABLE_COLUMNS
    table = Table(
        box=box.SIMPLE_HEAD,
        show_edge=False,
        pad_edge=False,
        header_style=theme.highlight,
        border_style=theme.subtle,
        expand=False,
    )
    for title, width in columns:
        table.add_column(title, width=width, no_wrap=True, overflow="ellipsis")
    rows = state.layout.table_rows
    window = state.results[state.table_offset : state.table_offset + rows]
    for offset, post in enumerate(window):
        idx = state.table_offset + offset
        cells = [str(post.id), str(post.score)]
        if not state.narrow_table:
            cells.insert(1, post.artists_label)
        table.add_row(*cells, style=theme.selected_row if idx == state.selected_index else theme.text)
    return table


def _wrapped_tags(state: SessionState, style: str = "") -> list[Text]:
    inner_width = max(1, state.layout.side_width - 4)
    wrapped = Text(f"Tags:\n\n{state.current_tags}", style=style).wrap(
        _console(inner_width, state.layout.inner_rows),
        inner_width,
    )
    return list(wrapped)


def max_tag_scroll(state: SessionState) -> int:
    """Largest ``tag_scroll`` that still fills the tags pane."""
    return max(0, len(_wrapped_tags(state)) - state.layout.inner_rows)


def max_preview_scroll(state: SessionState) -> int:
    """Largest ``preview_scroll`` for a text placeholder; raw output never scrolls."""
    content = state.preview_content
    if content.is_raw:
        return 0
    return max(0, len(content.body.split("\n")) - state.layout.inner_rows)


def _tags_body(state: SessionState, theme: UITheme) -> Text:
    wrapped = _wrapped_tags(state, theme.text)
    rows = state.layout.inner_rows
    start = max(0, min(state.tag_scroll, max_tag_scroll(state)))
    return Text("\n").join(wrapped[start : start + rows])


def _side_pane(state: SessionState, theme: UITheme) -> list[str]:
    layout = state.layout
    body: RenderableType = _tags_body(state, theme) if state.mode is Mode.TAG_POPUP else _post_table(state, theme)
    pane = Panel(
        body,
        box=box.HEAVY,
        border_style=theme.subtle,
        padding=(0, 1),
        width=layout.side_width,
        height=layout.content_height,
    )
    return render_lines(pane, layout.side_width, layout.content_height)


def _browsing_lines(state: SessionState, theme: UITheme) -> list[str]:
    preview = _preview_pane(state, theme)
    side = _side_pane(state, theme)
    middle = [left + right for left, right in zip(preview, side)]
    lines = _top_bar(state, theme) + middle + _status_bar(state, theme)
    return lines[: state.terminal_height]


def render(state: SessionState, theme: UITheme = DEFAULT_THEME) -> Frame:
    """Render ``state`` into a frame sized to the terminal."""
    width, height = state.terminal_width, state.terminal_height
    if width <= 0 or height <= 0:
        return Frame((INITIALIZING_TEXT,))

    if state.mode is Mode.QUIT_CONFIRM:
        return Frame(tuple(render_lines(_quit_view(state, theme), width, height)))
    if state.mode is Mode.FATAL_ERROR:
        return Frame(tuple(render_lines(_error_view(state, theme), width, height)))
    if state.mode is Mode.ENTRANCE_MENU:
        return Frame(tuple(render_lines(_menu_view(state, theme), width, height)))
    if state.loading:
        return Frame(tuple(render_lines(_loading_view(state, theme), width, height)))

    lines = _browsing_lines(state, theme)
    lines += [""] * (height - len(lines))
    overlay = state.preview_content.body if state.preview_content.is_raw else ""
    return Frame(tuple(lines), overlay)


__all__ = ["Frame", "max_preview_scroll", "max_tag_scroll", "render", "render_lines", "styled_query"]

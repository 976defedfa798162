"""UI palettes for the renderer.

Values are ``rich`` style strings. ``plain`` drops all color for terminals
that cannot show it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UITheme:
    """Semantic palette used by :mod:`e6term.render`."""

    name: str
    text: str
    highlight: str
    subtle: str
    bar: str
    filter_key: str
    filter_value: str
    error: str
    selected_row: str
    cursor: str


DRACULA_THEME = UITheme(
    name="dracula",
    text="#f8f8f2",
    highlight="#bd93f9",
    subtle="#6272a4",
    bar="#f8f8f2 on #282a36",
    filter_key="#50fa7b",
    filter_value="#f1fa8c",
    error="#ff5555",
    selected_row="bold #f8f8f2 on #44475a",
    cursor="reverse",
)

OCEAN_THEME = UITheme(
    name="ocean",
    text="color(252)",
    highlight="color(45)",
    subtle="color(31)",
    bar="color(252) on color(23)",
    filter_key="color(81)",
    filter_value="color(229)",
    error="color(203)",
    selected_row="bold color(231) on color(24)",
    cursor="reverse",
)

PLAIN_THEME = UITheme(
    name="plain",
    text="none",
    highlight="bold",
    subtle="dim",
    bar="reverse",
    filter_key="bold",
    filter_value="underline",
    error="bold",
    selected_row="reverse",
    cursor="reverse",
)

DEFAULT_THEME = DRACULA_THEME

_THEMES: dict[str, UITheme] = {
    DRACULA_THEME.name: DRACULA_THEME,
    OCEAN_THEME.name: OCEAN_THEME,
    PLAIN_THEME.name: PLAIN_THEME,
}


def available_theme_names() -> tuple[str, ...]:
    return tuple(sorted(_THEMES))


def resolve_theme(name: str | None) -> UITheme:
    """Return the theme called ``name``, falling back to the default."""
    if not name:
        return DEFAULT_THEME
    return _THEMES.get(str(name).strip().lower(), DEFAULT_THEME)


__all__ = [
    "DEFAULT_THEME",
    "DRACULA_THEME",
    "OCEAN_THEME",
    "PLAIN_THEME",
    "UITheme",
    "available_theme_names",
    "resolve_theme",
]

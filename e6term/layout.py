"""Screen geometry shared by the state machine and the renderer."""

from __future__ import annotations

from dataclasses import dataclass

from .preview import PreviewGeometry

TOP_BAR_HEIGHT = 3
STATUS_BAR_HEIGHT = 1
PANE_BORDER_ROWS = 2
TABLE_HEADER_ROWS = 2
NARROW_TABLE_MAX_COLS = 42


@dataclass(frozen=True)
class ScreenLayout:
    width: int
    height: int

    @property
    def content_height(self) -> int:
        return max(0, self.height - TOP_BAR_HEIGHT - STATUS_BAR_HEIGHT)

    @property
    def preview_width(self) -> int:
        return self.width * 3 // 4

    @property
    def side_width(self) -> int:
        return max(0, self.width - self.preview_width)

    @property
    def narrow_table(self) -> bool:
        """Whether the post table drops the artist column."""
        return self.width // 4 - 4 < NARROW_TABLE_MAX_COLS

    @property
    def table_rows(self) -> int:
        return max(1, self.content_height - PANE_BORDER_ROWS - TABLE_HEADER_ROWS)

    @property
    def inner_rows(self) -> int:
        return max(1, self.content_height - PANE_BORDER_ROWS)

    def preview_geometry(self) -> PreviewGeometry:
        # One row down so the image starts below the pane's top border.
        return PreviewGeometry(
            width=max(0, self.preview_width - 2),
            height=self.content_height,
            x_offset=0,
            y_offset=TOP_BAR_HEIGHT + 1,
        )


__all__ = ["ScreenLayout", "TOP_BAR_HEIGHT", "STATUS_BAR_HEIGHT"]

"""Events consumed by the session state machine.

Each variant is a small frozen dataclass; ``Event`` is their union. Worker
results carry the generation they were started with so stale ones can be
dropped by the state machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .models import Post
    from .preview import PreviewContent


@dataclass(frozen=True)
class KeyPressed:
    key: str


@dataclass(frozen=True)
class Resized:
    width: int
    height: int


@dataclass(frozen=True)
class PostsFetched:
    generation: int
    posts: tuple[Post, ...]


@dataclass(frozen=True)
class FetchFailed:
    generation: int
    message: str


@dataclass(frozen=True)
class PreviewLoaded:
    generation: int
    content: PreviewContent


@dataclass(frozen=True)
class StatusExpired:
    pass


@dataclass(frozen=True)
class SpinnerTick:
    pass


@dataclass(frozen=True)
class StartupCheckFailed:
    message: str


@dataclass(frozen=True)
class TaskFailed:
    task: str
    message: str


@dataclass(frozen=True)
class InputClosed:
    pass


Event = Union[
    KeyPressed,
    Resized,
    PostsFetched,
    FetchFailed,
    PreviewLoaded,
    StatusExpired,
    SpinnerTick,
    StartupCheckFailed,
    TaskFailed,
    InputClosed,
]

__all__ = [
    "Event",
    "FetchFailed",
    "InputClosed",
    "KeyPressed",
    "PostsFetched",
    "PreviewLoaded",
    "Resized",
    "SpinnerTick",
    "StartupCheckFailed",
    "StatusExpired",
    "TaskFailed",
]

"""Commands emitted by the session state machine for the runtime to execute."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .preview import PreviewRequest


@dataclass(frozen=True)
class FetchPosts:
    query: str
    page: int
    generation: int


@dataclass(frozen=True)
class UpdatePreview:
    request: PreviewRequest


@dataclass(frozen=True)
class CancelPreview:
    """Abandon the in-flight preview without requesting another."""


@dataclass(frozen=True)
class CopyToClipboard:
    text: str


@dataclass(frozen=True)
class ClearStatusAfter:
    seconds: float


@dataclass(frozen=True)
class ClearScreen:
    pass


@dataclass(frozen=True)
class Quit:
    pass


Command = Union[FetchPosts, UpdatePreview, CancelPreview, CopyToClipboard, ClearStatusAfter, ClearScreen, Quit]

__all__ = [
    "CancelPreview",
    "ClearScreen",
    "ClearStatusAfter",
    "Command",
    "CopyToClipboard",
    "FetchPosts",
    "Quit",
    "UpdatePreview",
]

"""Catalog post records decoded from the ``posts.json`` response.

Decoding is lenient: absent, ``null``, or mistyped optional fields fall back
to empty collections, empty strings, ``False`` or ``0``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

TAG_CATEGORIES: tuple[str, ...] = (
    "general",
    "species",
    "character",
    "copyright",
    "artist",
    "invalid",
    "lore",
    "meta",
)

# Order used for the tags popup.
POPUP_TAG_CATEGORIES: tuple[str, ...] = ("general", "species", "character", "copyright", "artist")


@dataclass(frozen=True)
class PostTags:
    general: tuple[str, ...] = ()
    species: tuple[str, ...] = ()
    character: tuple[str, ...] = ()
    copyright: tuple[str, ...] = ()
    artist: tuple[str, ...] = ()
    invalid: tuple[str, ...] = ()
    lore: tuple[str, ...] = ()
    meta: tuple[str, ...] = ()

    def popup_text(self) -> str:
        """Join popup categories into one comma separated string."""
        combined: list[str] = []
        for category in POPUP_TAG_CATEGORIES:
            combined.extend(getattr(self, category))
        return ", ".join(combined)


@dataclass(frozen=True)
class PostFile:
    url: str = ""
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class PostSample:
    url: str = ""
    has: bool = False


@dataclass(frozen=True)
class Post:
    id: int
    pools: tuple[int, ...] = ()
    score: int = 0
    rating: str = ""
    tags: PostTags = field(default_factory=PostTags)
    file: PostFile = field(default_factory=PostFile)
    sample: PostSample = field(default_factory=PostSample)

    @property
    def artists_label(self) -> str:
        return ", ".join(self.tags.artist) or "unknown"

    @property
    def has_sample(self) -> bool:
        return self.sample.has and bool(self.sample.url)


def _as_mapping(value: object) -> Mapping[str, object]:
    return value if isinstance(value, Mapping) else {}


def _as_int(value: object) -> int:
    # bool is an int subclass; the API never sends booleans here.
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def _as_str(value: object) -> str:
    return value if isinstance(value, str) else ""


def _as_str_tuple(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def post_from_json(data: Mapping[str, object]) -> Post:
    """Build a :class:`Post` from one element of the ``posts`` array.

    Raises ``ValueError`` when the element is not an object or has no integer
    ``id``; every other field is optional.
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"post entry must be an object, got {type(data).__name__}")
    post_id = data.get("id")
    if isinstance(post_id, bool) or not isinstance(post_id, int):
        raise ValueError(f"post entry has no integer id: {post_id!r}")

    pools_raw = data.get("pools")
    pools = tuple(
        pool for pool in (pools_raw if isinstance(pools_raw, list) else [])
        if isinstance(pool, int) and not isinstance(pool, bool)
    )
    tags_raw = _as_mapping(data.get("tags"))
    file_raw = _as_mapping(data.get("file"))
    sample_raw = _as_mapping(data.get("sample"))

    return Post(
        id=post_id,
        pools=pools,
        score=_as_int(_as_mapping(data.get("score")).get("total")),
        rating=_as_str(data.get("rating")),
        tags=PostTags(**{category: _as_str_tuple(tags_raw.get(category)) for category in TAG_CATEGORIES}),
        file=PostFile(
            url=_as_str(file_raw.get("url")),
            width=_as_int(file_raw.get("width")),
            height=_as_int(file_raw.get("height")),
        ),
        sample=PostSample(
            url=_as_str(sample_raw.get("url")),
            has=sample_raw.get("has") is True,
        ),
    )


def posts_from_payload(payload: object) -> list[Post]:
    """Decode a whole response body into posts.

    Raises ``ValueError`` when the body is not an object with a ``posts``
    array.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("response body is not a JSON object")
    entries = payload.get("posts")
    if not isinstance(entries, list):
        raise ValueError("response body has no 'posts' array")
    return [post_from_json(entry) for entry in entries]


__all__ = [
    "POPUP_TAG_CATEGORIES",
    "Post",
    "PostFile",
    "PostSample",
    "PostTags",
    "TAG_CATEGORIES",
    "post_from_json",
    "posts_from_payload",
]

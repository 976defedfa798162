"""Catalog API client.

Issues one ``GET`` per (query, page) pair and decodes the ``posts`` array.
Every failure is reported as :class:`FetchError`; nothing is retried.
"""

from __future__ import annotations

import logging

import httpx

from .models import Post, posts_from_payload

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://e621.net/posts.json"
DEFAULT_USER_AGENT = "e6tea1/v3 t.me/TankKittyCat"
DEFAULT_TIMEOUT_SECONDS = 30.0
PAGE_LIMIT = 75
MAX_PAGE = 750
BODY_SNIPPET_CHARS = 200


class FetchError(Exception):
    """A catalog search failed; ``str(error)`` is the user-facing cause."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CatalogClient:
    """Thin synchronous wrapper around one :class:`httpx.Client`."""

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        limit: int = PAGE_LIMIT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.user_agent = user_agent
        self.limit = limit
        self.http = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> CatalogClient:
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def search(self, query: str, page: int) -> list[Post]:
        """Fetch one page of posts matching ``query``.

        Raises :class:`FetchError` for request construction, network,
        non-200 status, and decoding failures.
        """
        logger.info("Fetching posts for query %r page %d", query, page)
        params = {"tags": query, "page": str(page), "limit": str(self.limit)}
        try:
            request = self.http.build_request("GET", self.endpoint, params=params)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError) as exc:
            logger.warning("Error creating request: %s", exc)
            raise FetchError(f"could not build request: {exc}") from exc

        try:
            response = self.http.send(request)
        except httpx.HTTPError as exc:
            logger.warning("Error performing request: %s", exc)
            raise FetchError(f"request failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            snippet = response.text[:BODY_SNIPPET_CHARS]
            message = (
                f"API request failed with status {response.status_code} "
                f"{response.reason_phrase}: {snippet}"
            )
            logger.warning("%s", message)
            raise FetchError(message, status_code=response.status_code)

        try:
            posts = posts_from_payload(response.json())
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError subclass.
            logger.warning("Error decoding JSON response: %s", exc)
            raise FetchError(f"could not decode response: {exc}") from exc

        logger.info("Successfully fetched %d posts.", len(posts))
        return posts


__all__ = [
    "CatalogClient",
    "DEFAULT_ENDPOINT",
    "DEFAULT_USER_AGENT",
    "FetchError",
    "MAX_PAGE",
    "PAGE_LIMIT",
]

"""Preview pipeline: download the selected image and render it with kitty.

One :meth:`PreviewPipeline.run` call is one preview attempt. The attempt owns
a temporary file and at most one child process; both are released before
``run`` returns, whatever the outcome. Cancellation is cooperative: the
token is checked between download chunks and while the renderer runs.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import httpx

from .catalog import DEFAULT_USER_AGENT
from .models import Post
from .scheduler import CancelToken, PreviewCancelled

logger = logging.getLogger(__name__)

DEFAULT_RENDERER = "kitty"
NO_URL_MESSAGE = "No image URL available."
FAILED_MESSAGE = "\n\n⚠️\n\nPreview failed to load"
NO_RESULTS_MESSAGE = "\nNo results found for your query."
DOWNLOAD_CHUNK_BYTES = 64 * 1024
RENDER_POLL_SECONDS = 0.05
# Cells trimmed from both pane dimensions, and the border inset added to the offsets.
PLACE_PADDING = 2
BORDER_INSET_COLS = 2
BORDER_INSET_ROWS = 0

SAVE_CURSOR = "\x1b[s"
RESTORE_CURSOR = "\x1b[u"


class PreviewError(Exception):
    """Download or render failure; shown inline, never fatal."""


@dataclass(frozen=True)
class PreviewContent:
    """What the preview pane shows.

    ``kind`` is ``"text"`` for placeholders drawn inside the pane and
    ``"raw"`` for renderer output written verbatim over the frame.
    """

    kind: str
    body: str

    @classmethod
    def text(cls, body: str) -> PreviewContent:
        return cls("text", body)

    @classmethod
    def raw(cls, body: str) -> PreviewContent:
        return cls("raw", body)

    @property
    def is_raw(self) -> bool:
        return self.kind == "raw"


EMPTY_PREVIEW = PreviewContent.text("")


@dataclass(frozen=True)
class PreviewGeometry:
    """Preview pane rectangle in terminal cells (0-based offsets)."""

    width: int
    height: int
    x_offset: int = 0
    y_offset: int = 0

    def placement(self) -> tuple[int, int, int, int]:
        """Return ``(width, height, x, y)`` for the renderer's place directive."""
        return (
            max(self.width - PLACE_PADDING, 0),
            max(self.height - PLACE_PADDING, 0),
            self.x_offset + BORDER_INSET_COLS,
            self.y_offset + BORDER_INSET_ROWS,
        )

    def place_arg(self) -> str:
        width, height, x, y = self.placement()
        return f"--place={width}x{height}@{x}x{y}"


@dataclass(frozen=True)
class PreviewRequest:
    post_id: int
    url: str
    geometry: PreviewGeometry
    generation: int


def resolve_display_url(post: Post, show_full_image: bool) -> str:
    """Pick the full-resolution URL or the sample, falling back to full."""
    if show_full_image or not post.has_sample:
        return post.file.url
    return post.sample.url


def renderer_available(renderer: str = DEFAULT_RENDERER) -> bool:
    return shutil.which(renderer) is not None


def renderer_missing_message(renderer: str = DEFAULT_RENDERER) -> str:
    return f"'{renderer}' command not found in your PATH. Required for image previews"


class PreviewPipeline:
    """Download-then-render pipeline shared by all previews of one session."""

    def __init__(
        self,
        http: httpx.Client,
        user_agent: str = DEFAULT_USER_AGENT,
        renderer: str = DEFAULT_RENDERER,
        download_timeout: float = 30.0,
        render_timeout: float = 30.0,
        temp_dir: Path | None = None,
    ) -> None:
        self.http = http
        self.user_agent = user_agent
        self.renderer = renderer
        self.download_timeout = download_timeout
        self.render_timeout = render_timeout
        self.temp_dir = temp_dir

    def run(self, request: PreviewRequest, token: CancelToken) -> PreviewContent | None:
        """Produce preview content, or ``None`` when the request was cancelled."""
        if not request.url:
            return PreviewContent.text(NO_URL_MESSAGE)

        path: Path | None = None
        try:
            token.raise_if_cancelled()
            path = self._download(request.url, token)
            token.raise_if_cancelled()
            output = self._render(path, request.geometry, token)
        except PreviewCancelled:
            logger.debug("Preview for post %d cancelled (generation %d)", request.post_id, request.generation)
            return None
        except PreviewError as exc:
            logger.warning("Preview for post %d failed: %s", request.post_id, exc)
            return PreviewContent.text(FAILED_MESSAGE)
        finally:
            if path is not None:
                path.unlink(missing_ok=True)
        return PreviewContent.raw(f"{SAVE_CURSOR}{output}{RESTORE_CURSOR}")

    def _download(self, url: str, token: CancelToken) -> Path:
        try:
            suffix = Path(urlsplit(url).path).suffix or ".png"
        except ValueError as exc:
            raise PreviewError(f"invalid image URL {url!r}: {exc}") from exc
        try:
            handle = tempfile.NamedTemporaryFile(
                prefix="e6term-",
                suffix=suffix,
                dir=self.temp_dir,
                delete=False,
            )
        except OSError as exc:
            raise PreviewError(f"failed to create temp file: {exc}") from exc
        path = Path(handle.name)
        try:
            with handle:
                with self.http.stream(
                    "GET",
                    url,
                    headers={"User-Agent": self.user_agent},
                    timeout=self.download_timeout,
                ) as response:
                    if response.status_code != httpx.codes.OK:
                        raise PreviewError(f"failed to download image, status: {response.status_code}")
                    for chunk in response.iter_bytes(DOWNLOAD_CHUNK_BYTES):
                        token.raise_if_cancelled()
                        handle.write(chunk)
        except (httpx.HTTPError, httpx.StreamError, httpx.InvalidURL) as exc:
            path.unlink(missing_ok=True)
            raise PreviewError(f"failed to download image: {exc}") from exc
        except OSError as exc:
            path.unlink(missing_ok=True)
            raise PreviewError(f"failed to save image to temp file: {exc}") from exc
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        return path

    def renderer_args(self, path: Path, geometry: PreviewGeometry) -> list[str]:
        return [
            self.renderer,
            "+kitten",
            "icat",
            "-z",
            "-5",
            "--align=center",
            "--scale-up",
            "--stdin=no",
            geometry.place_arg(),
            str(path),
        ]

    def _render(self, path: Path, geometry: PreviewGeometry, token: CancelToken) -> str:
        args = self.renderer_args(path, geometry)
        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as exc:
            raise PreviewError(f"could not start renderer: {exc}") from exc

        deadline = time.monotonic() + self.render_timeout
        while True:
            try:
                output, _ = process.communicate(timeout=RENDER_POLL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                if token.cancelled:
                    process.kill()
                    process.communicate()
                    raise PreviewCancelled() from None
                if time.monotonic() >= deadline:
                    process.kill()
                    process.communicate()
                    raise PreviewError(f"renderer timed out after {self.render_timeout:g}s") from None

        text = output.decode("utf-8", errors="replace")
        if process.returncode != 0:
            logger.warning("Failed to run command '%s': %s", shlex.join(args), text.strip())
            raise PreviewError(f"renderer exited with status {process.returncode}")
        return text


__all__ = [
    "DEFAULT_RENDERER",
    "EMPTY_PREVIEW",
    "FAILED_MESSAGE",
    "NO_RESULTS_MESSAGE",
    "NO_URL_MESSAGE",
    "PreviewCancelled",
    "PreviewContent",
    "PreviewError",
    "PreviewGeometry",
    "PreviewPipeline",
    "PreviewRequest",
    "renderer_available",
    "renderer_missing_message",
    "resolve_display_url",
]

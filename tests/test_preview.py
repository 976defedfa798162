"""Tests for the download-then-render preview pipeline.

A small shell script stands in for the renderer so the subprocess path runs
for real; HTTP goes through ``httpx.MockTransport``.
"""

from __future__ import annotations

import os
import stat
import tempfile
import threading
import time
import unittest
from pathlib import Path

import httpx

from e6term.models import Post, PostFile, PostSample
from e6term.preview import (
    FAILED_MESSAGE,
    NO_URL_MESSAGE,
    RESTORE_CURSOR,
    SAVE_CURSOR,
    PreviewGeometry,
    PreviewPipeline,
    PreviewRequest,
    renderer_missing_message,
    resolve_display_url,
)
from e6term.scheduler import CancelToken

IMAGE_URL = "https://static.test/data/ab/cd/image.png"
GEOMETRY = PreviewGeometry(width=88, height=36, x_offset=0, y_offset=4)


def image_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("missing.png"):
        return httpx.Response(404, text="not found")
    return httpx.Response(200, content=b"\x89PNG fake image bytes")


class PreviewPipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.downloads = self.root / "downloads"
        self.downloads.mkdir()
        self.http = httpx.Client(transport=httpx.MockTransport(image_handler))
        self.addCleanup(self.http.close)

    def write_renderer(self, body: str) -> str:
        script = self.root / "fake-kitty"
        script.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR)
        return str(script)

    def pipeline(self, renderer: str, render_timeout: float = 10.0) -> PreviewPipeline:
        return PreviewPipeline(
            self.http,
            renderer=renderer,
            render_timeout=render_timeout,
            temp_dir=self.downloads,
        )

    def request(self, url: str = IMAGE_URL) -> PreviewRequest:
        return PreviewRequest(post_id=1, url=url, geometry=GEOMETRY, generation=3)

    def test_successful_render_wraps_output_and_removes_temp_file(self) -> None:
        renderer = self.write_renderer('echo "ICAT $*"')

        content = self.pipeline(renderer).run(self.request(), CancelToken())

        self.assertIsNotNone(content)
        assert content is not None
        self.assertTrue(content.is_raw)
        self.assertTrue(content.body.startswith(SAVE_CURSOR))
        self.assertTrue(content.body.endswith(RESTORE_CURSOR))
        self.assertIn("ICAT +kitten icat -z -5 --align=center --scale-up --stdin=no --place=86x34@2x4", content.body)
        self.assertEqual(os.listdir(self.downloads), [])

    def test_empty_url_returns_placeholder_without_download(self) -> None:
        renderer = self.write_renderer("exit 0")

        content = self.pipeline(renderer).run(self.request(url=""), CancelToken())

        assert content is not None
        self.assertFalse(content.is_raw)
        self.assertEqual(content.body, NO_URL_MESSAGE)

    def test_download_failure_returns_warning_placeholder(self) -> None:
        renderer = self.write_renderer("exit 0")

        content = self.pipeline(renderer).run(self.request(url="https://static.test/missing.png"), CancelToken())

        assert content is not None
        self.assertEqual(content.body, FAILED_MESSAGE)
        self.assertEqual(os.listdir(self.downloads), [])

    def test_malformed_url_returns_warning_placeholder(self) -> None:
        renderer = self.write_renderer("exit 0")

        content = self.pipeline(renderer).run(self.request(url="http://[bad"), CancelToken())

        assert content is not None
        self.assertEqual(content.body, FAILED_MESSAGE)
        self.assertEqual(os.listdir(self.downloads), [])

    def test_url_rejected_by_client_returns_warning_placeholder(self) -> None:
        def reject(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("rejected")

        renderer = self.write_renderer("exit 0")
        with httpx.Client(transport=httpx.MockTransport(reject)) as http:
            pipeline = PreviewPipeline(http, renderer=renderer, temp_dir=self.downloads)
            content = pipeline.run(self.request(), CancelToken())

        assert content is not None
        self.assertEqual(content.body, FAILED_MESSAGE)
        self.assertEqual(os.listdir(self.downloads), [])

    def test_missing_temp_dir_returns_warning_placeholder(self) -> None:
        renderer = self.write_renderer("exit 0")
        pipeline = PreviewPipeline(self.http, renderer=renderer, temp_dir=self.root / "gone")

        content = pipeline.run(self.request(), CancelToken())

        assert content is not None
        self.assertEqual(content.body, FAILED_MESSAGE)

    def test_renderer_failure_returns_warning_placeholder(self) -> None:
        renderer = self.write_renderer("echo broken >&2\nexit 3")

        content = self.pipeline(renderer).run(self.request(), CancelToken())

        assert content is not None
        self.assertEqual(content.body, FAILED_MESSAGE)
        self.assertEqual(os.listdir(self.downloads), [])

    def test_missing_renderer_binary_returns_warning_placeholder(self) -> None:
        content = self.pipeline(str(self.root / "does-not-exist")).run(self.request(), CancelToken())

        assert content is not None
        self.assertEqual(content.body, FAILED_MESSAGE)

    def test_cancelled_token_produces_nothing(self) -> None:
        renderer = self.write_renderer("exit 0")
        token = CancelToken()
        token.cancel()

        self.assertIsNone(self.pipeline(renderer).run(self.request(), token))
        self.assertEqual(os.listdir(self.downloads), [])

    def test_cancel_while_rendering_kills_child_promptly(self) -> None:
        renderer = self.write_renderer("exec sleep 5")
        token = CancelToken()
        threading.Timer(0.2, token.cancel).start()

        started = time.monotonic()
        content = self.pipeline(renderer).run(self.request(), token)
        elapsed = time.monotonic() - started

        self.assertIsNone(content)
        self.assertLess(elapsed, 3.0)
        self.assertEqual(os.listdir(self.downloads), [])

    def test_render_timeout_is_a_failure(self) -> None:
        renderer = self.write_renderer("exec sleep 5")

        content = self.pipeline(renderer, render_timeout=0.2).run(self.request(), CancelToken())

        assert content is not None
        self.assertEqual(content.body, FAILED_MESSAGE)


class PreviewHelperTests(unittest.TestCase):
    def test_placement_insets_inside_border(self) -> None:
        self.assertEqual(GEOMETRY.placement(), (86, 34, 2, 4))
        self.assertEqual(GEOMETRY.place_arg(), "--place=86x34@2x4")

    def test_tiny_geometry_never_goes_negative(self) -> None:
        self.assertEqual(PreviewGeometry(1, 1).placement(), (0, 0, 2, 0))

    def test_display_url_prefers_sample_unless_full_requested(self) -> None:
        post = Post(
            id=1,
            file=PostFile(url="https://x/full.png"),
            sample=PostSample(url="https://x/sample.jpg", has=True),
        )

        self.assertEqual(resolve_display_url(post, show_full_image=False), "https://x/sample.jpg")
        self.assertEqual(resolve_display_url(post, show_full_image=True), "https://x/full.png")

    def test_display_url_falls_back_to_full_without_sample(self) -> None:
        post = Post(id=1, file=PostFile(url="https://x/full.png"))

        self.assertEqual(resolve_display_url(post, show_full_image=False), "https://x/full.png")

    def test_missing_renderer_message_names_binary(self) -> None:
        self.assertEqual(
            renderer_missing_message("kitty"),
            "'kitty' command not found in your PATH. Required for image previews",
        )


if __name__ == "__main__":
    unittest.main()

"""Tests for lenient post decoding."""

from __future__ import annotations

import unittest

from e6term.models import Post, PostTags, post_from_json, posts_from_payload


class PostDecodingTests(unittest.TestCase):
    def test_full_post_decodes(self) -> None:
        post = post_from_json(
            {
                "id": 42,
                "pools": [7, 9],
                "score": {"up": 10, "down": -2, "total": 8},
                "rating": "s",
                "tags": {"general": ["solo"], "artist": ["someone"], "species": ["fox"]},
                "file": {"url": "https://static.example/full.png", "width": 800, "height": 600},
                "sample": {"has": True, "url": "https://static.example/sample.jpg"},
            }
        )

        self.assertEqual(post.id, 42)
        self.assertEqual(post.pools, (7, 9))
        self.assertEqual(post.score, 8)
        self.assertEqual(post.file.width, 800)
        self.assertTrue(post.has_sample)
        self.assertEqual(post.artists_label, "someone")

    def test_missing_and_null_fields_fall_back(self) -> None:
        post = post_from_json({"id": 1, "pools": None, "tags": None, "file": {"url": None}})

        self.assertEqual(post.pools, ())
        self.assertEqual(post.file.url, "")
        self.assertEqual(post.score, 0)
        self.assertFalse(post.has_sample)
        self.assertEqual(post.artists_label, "unknown")

    def test_post_without_integer_id_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            post_from_json({"id": "12"})

    def test_popup_text_orders_categories(self) -> None:
        tags = PostTags(
            general=("a",),
            species=("b",),
            character=("c",),
            copyright=("d",),
            artist=("e",),
            meta=("hidden",),
        )

        self.assertEqual(tags.popup_text(), "a, b, c, d, e")

    def test_sample_without_url_does_not_count(self) -> None:
        post = post_from_json({"id": 3, "sample": {"has": True, "url": None}})

        self.assertFalse(post.has_sample)


class PayloadTests(unittest.TestCase):
    def test_payload_decodes_posts_array(self) -> None:
        posts = posts_from_payload({"posts": [{"id": 1}, {"id": 2}]})

        self.assertEqual([p.id for p in posts], [1, 2])
        self.assertIsInstance(posts[0], Post)

    def test_payload_without_posts_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            posts_from_payload({"post": []})
        with self.assertRaises(ValueError):
            posts_from_payload([])


if __name__ == "__main__":
    unittest.main()

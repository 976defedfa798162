"""Tests for settings resolution.

Covers defaults, the JSON config file, ``E6TEA_*`` environment overrides,
explicit overrides, and rejection of bad values.
"""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from e6term.config import ConfigError, Settings, load_config, load_settings


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.config_path = Path(self._tmp.name) / "config.json"

    def load(self, env: dict[str, str] | None = None, overrides: dict[str, object] | None = None) -> Settings:
        return load_settings(env=env or {}, overrides=overrides, config_path=self.config_path)

    def test_defaults_without_config_or_env(self) -> None:
        settings = self.load()

        self.assertEqual(settings, Settings())
        self.assertEqual(settings.host, "0.0.0.0")
        self.assertEqual(settings.port, 2222)
        self.assertEqual(settings.log_file, "e6tea.log")
        self.assertEqual(settings.host_key, ".ssh/term_info_ed25519")
        self.assertEqual(settings.renderer, "kitty")

    def test_environment_overrides_defaults(self) -> None:
        settings = self.load(
            env={
                "E6TEA_HOST": "127.0.0.1",
                "E6TEA_PORT": "2022",
                "E6TEA_API_ENDPOINT": "https://mirror.test/posts.json",
                "E6TEA_USER_AGENT": "tester/1.0",
            }
        )

        self.assertEqual(settings.host, "127.0.0.1")
        self.assertEqual(settings.port, 2022)
        self.assertEqual(settings.api_endpoint, "https://mirror.test/posts.json")
        self.assertEqual(settings.user_agent, "tester/1.0")

    def test_precedence_is_file_then_env_then_overrides(self) -> None:
        self.config_path.write_text(json.dumps({"port": 3000, "theme": "ocean", "log_file": "file.log"}), encoding="utf-8")

        settings = self.load(env={"E6TEA_PORT": "3001"}, overrides={"log_file": "flag.log", "host": None})

        self.assertEqual(settings.port, 3001)
        self.assertEqual(settings.theme, "ocean")
        self.assertEqual(settings.log_file, "flag.log")
        self.assertEqual(settings.host, "0.0.0.0")

    def test_malformed_config_file_is_ignored(self) -> None:
        self.config_path.write_text("{oops", encoding="utf-8")

        self.assertEqual(self.load(), Settings())
        self.assertEqual(load_config(self.config_path), {})

    def test_non_object_config_file_is_ignored(self) -> None:
        self.config_path.write_text("[1, 2]", encoding="utf-8")

        self.assertEqual(load_config(self.config_path), {})

    def test_invalid_port_is_rejected(self) -> None:
        for raw in ("abc", "0", "70000"):
            with self.subTest(port=raw):
                with self.assertRaises(ConfigError):
                    self.load(env={"E6TEA_PORT": raw})

    def test_unknown_override_is_rejected(self) -> None:
        with self.assertRaises(ConfigError):
            self.load(overrides={"colour": "red"})


if __name__ == "__main__":
    unittest.main()

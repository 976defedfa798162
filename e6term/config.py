"""Process settings.

Resolution order is defaults, then the JSON config file under the user
config dir, then ``E6TEA_*`` environment variables, then explicit overrides
(CLI flags). A missing or malformed config file counts as empty.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path

from platformdirs import user_config_dir

from .catalog import DEFAULT_ENDPOINT, DEFAULT_USER_AGENT
from .preview import DEFAULT_RENDERER
from .ui_theme import DEFAULT_THEME

APP_NAME = "e6term"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

ENV_VARS: dict[str, str] = {
    "host": "E6TEA_HOST",
    "port": "E6TEA_PORT",
    "log_file": "E6TEA_LOG_FILE",
    "host_key": "E6TEA_HOST_KEY",
    "api_endpoint": "E6TEA_API_ENDPOINT",
    "user_agent": "E6TEA_USER_AGENT",
    "renderer": "E6TEA_RENDERER",
    "theme": "E6TEA_THEME",
}


class ConfigError(Exception):
    """Raised when a setting has an unusable value."""


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 2222
    log_file: str = "e6tea.log"
    host_key: str = ".ssh/term_info_ed25519"
    api_endpoint: str = DEFAULT_ENDPOINT
    user_agent: str = DEFAULT_USER_AGENT
    renderer: str = DEFAULT_RENDERER
    theme: str = DEFAULT_THEME.name


def load_config(path: Path | None = None) -> dict[str, object]:
    """Load the JSON config object, or ``{}`` when it is missing or malformed."""
    config_path = path or CONFIG_PATH
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _parse_port(value: object) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"invalid port: {value!r}")
    try:
        port = int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"invalid port: {value!r}") from exc
    if not 0 < port < 65536:
        raise ConfigError(f"port out of range: {port}")
    return port


def load_settings(
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, object] | None = None,
    config_path: Path | None = None,
) -> Settings:
    """Resolve :class:`Settings` from config file, environment and overrides."""
    environ = os.environ if env is None else env
    names = {f.name for f in fields(Settings)}
    values: dict[str, object] = {}

    for key, value in load_config(config_path).items():
        if key in names and value is not None:
            values[key] = value
    for key, var in ENV_VARS.items():
        raw = environ.get(var)
        if raw:
            values[key] = raw
    for key, value in (overrides or {}).items():
        if key not in names:
            raise ConfigError(f"unknown setting: {key}")
        if value is not None:
            values[key] = value

    if "port" in values:
        values["port"] = _parse_port(values["port"])
    for key in names - {"port"}:
        if key in values:
            values[key] = str(values[key])
    return replace(Settings(), **values)


__all__ = ["CONFIG_PATH", "ConfigError", "ENV_VARS", "Settings", "load_config", "load_settings"]

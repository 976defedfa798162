"""Command-line front door for e6term.

``e6term serve`` runs the SSH server; ``e6term local`` runs one session on
the current terminal, which is handy for development.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys

from .config import ConfigError, Settings, load_settings
from .events import Resized
from .input import fd_byte_source
from .logs import setup_logging
from .runtime import create_session
from .server import HostKeyError, serve
from .terminal import LocalTerminal
from .ui_theme import UITheme, available_theme_names, resolve_theme

logger = logging.getLogger(__name__)


def _port(value: str) -> int:
    """argparse type for TCP port numbers."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from exc
    if not 0 < parsed < 65536:
        raise argparse.ArgumentTypeError("port must be between 1 and 65535")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="e6term",
        description="Browse an e621-style image catalog in the terminal, locally or over SSH.",
    )
    parser.add_argument(
        "--theme",
        default=None,
        help=f"UI theme name ({', '.join(available_theme_names())}).",
    )
    parser.add_argument("--log-file", default=None, help="Append logs to this file.")
    parser.add_argument("--renderer", default=None, help="Image renderer executable (default: kitty).")
    parser.add_argument("--debug", action="store_true", help="Log at debug level.")
    commands = parser.add_subparsers(dest="command")

    serve_parser = commands.add_parser("serve", help="Run the SSH server (default).")
    serve_parser.add_argument("--host", default=None, help="Address to listen on.")
    serve_parser.add_argument("--port", type=_port, default=None, help="Port to listen on.")
    serve_parser.add_argument("--host-key", default=None, help="Path of the SSH host key.")

    commands.add_parser("local", help="Run one session on this terminal.")
    return parser


def run_local(settings: Settings, theme: UITheme) -> None:
    """Run a single session on the controlling terminal."""
    stdin_fd = sys.stdin.fileno()
    stdout_fd = sys.stdout.fileno()
    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        raise SystemExit("e6term local needs an interactive terminal.")

    terminal = LocalTerminal(stdin_fd, stdout_fd)
    width, height = terminal.size()
    runtime = create_session(settings, terminal.write_bytes, fd_byte_source(stdin_fd), width, height, theme)

    def on_resize(_signum: int, _frame: object) -> None:
        runtime.scheduler.post(Resized(*terminal.size()))

    previous = signal.signal(signal.SIGWINCH, on_resize)
    try:
        with terminal.raw_mode():
            runtime.run()
    finally:
        signal.signal(signal.SIGWINCH, previous)


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, configure logging, and start the requested command."""
    args = build_parser().parse_args(argv)
    overrides: dict[str, object] = {
        "theme": args.theme,
        "log_file": args.log_file,
        "renderer": args.renderer,
    }
    if args.command in (None, "serve"):
        overrides.update(
            host=getattr(args, "host", None),
            port=getattr(args, "port", None),
            host_key=getattr(args, "host_key", None),
        )
    try:
        settings = load_settings(overrides=overrides)
    except ConfigError as exc:
        raise SystemExit(f"e6term: {exc}") from exc

    try:
        setup_logging(settings.log_file, logging.DEBUG if args.debug else logging.INFO)
    except OSError as exc:
        raise SystemExit(f"e6term: cannot open log file {settings.log_file}: {exc}") from exc
    theme = resolve_theme(settings.theme)

    if args.command == "local":
        run_local(settings, theme)
        return
    try:
        serve(settings, theme)
    except (HostKeyError, OSError) as exc:
        logger.error("Server failed: %s", exc)
        raise SystemExit(f"e6term: {exc}") from exc


__all__ = ["build_parser", "main", "run_local"]

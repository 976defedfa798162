"""SSH front door.

Every connection gets its own paramiko transport, one session channel and
one :class:`~e6term.runtime.SessionRuntime`. Authentication is accepted
unconditionally; the service is a public read-only browser.
"""

from __future__ import annotations

import logging
import select
import socket
import threading
from collections.abc import Callable
from pathlib import Path

import paramiko

from .config import Settings
from .events import Resized
from .input import ByteSource
from .runtime import create_session
from .ui_theme import DEFAULT_THEME, UITheme

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 80
DEFAULT_HEIGHT = 24
ACCEPT_TIMEOUT_SECONDS = 30.0
SHELL_TIMEOUT_SECONDS = 30.0
LISTEN_BACKLOG = 100
GENERATED_KEY_BITS = 3072

_HOST_KEY_CLASSES: tuple[type[paramiko.PKey], ...] = (
    paramiko.Ed25519Key,
    paramiko.RSAKey,
    paramiko.ECDSAKey,
)


class HostKeyError(Exception):
    """Raised when an existing host key file cannot be loaded."""


def load_host_key(path: Path) -> paramiko.PKey:
    """Load the host key at ``path``, generating an RSA key when it is missing."""
    if path.exists():
        failures: list[str] = []
        for key_class in _HOST_KEY_CLASSES:
            try:
                return key_class.from_private_key_file(str(path))
            except paramiko.SSHException as exc:
                failures.append(f"{key_class.__name__}: {exc}")
        raise HostKeyError(f"could not load host key {path}: {'; '.join(failures)}")

    logger.info("Host key %s not found, generating RSA %d key", path, GENERATED_KEY_BITS)
    key = paramiko.RSAKey.generate(GENERATED_KEY_BITS)
    path.parent.mkdir(parents=True, exist_ok=True)
    key.write_private_key_file(str(path))
    return key


class SessionServer(paramiko.ServerInterface):
    """Channel negotiation for one connection."""

    def __init__(self) -> None:
        self.width = DEFAULT_WIDTH
        self.height = DEFAULT_HEIGHT
        self.shell_requested = threading.Event()
        self.on_resize: Callable[[int, int], None] | None = None

    def get_allowed_auths(self, username: str) -> str:
        return "none,password,publickey"

    def check_auth_none(self, username: str) -> int:
        return paramiko.AUTH_SUCCESSFUL

    def check_auth_password(self, username: str, password: str) -> int:
        return paramiko.AUTH_SUCCESSFUL

    def check_auth_publickey(self, username: str, key: paramiko.PKey) -> int:
        return paramiko.AUTH_SUCCESSFUL

    def check_channel_request(self, kind: str, chanid: int) -> int:
        if kind == "session":
            return paramiko.OPEN_SUCCEEDED
        return paramiko.OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED

    def check_channel_pty_request(
        self,
        channel: paramiko.Channel,
        term: bytes,
        width: int,
        height: int,
        pixelwidth: int,
        pixelheight: int,
        modes: bytes,
    ) -> bool:
        self.width = width or DEFAULT_WIDTH
        self.height = height or DEFAULT_HEIGHT
        return True

    def check_channel_shell_request(self, channel: paramiko.Channel) -> bool:
        self.shell_requested.set()
        return True

    def check_channel_window_change_request(
        self,
        channel: paramiko.Channel,
        width: int,
        height: int,
        pixelwidth: int,
        pixelheight: int,
    ) -> bool:
        self.width = width
        self.height = height
        if self.on_resize is not None:
            self.on_resize(width, height)
        return True


def channel_byte_source(channel: paramiko.Channel) -> ByteSource:
    """Byte source reading one byte at a time from an SSH channel."""

    def read_byte(timeout: float | None) -> bytes | None:
        if timeout is not None:
            ready, _, _ = select.select([channel], [], [], max(0.0, timeout))
            if not ready:
                return None
        return channel.recv(1)

    return read_byte


def handle_connection(
    client: socket.socket,
    address: tuple[str, int],
    host_key: paramiko.PKey,
    settings: Settings,
    theme: UITheme = DEFAULT_THEME,
) -> None:
    """Serve one TCP connection until the session ends."""
    peer = f"{address[0]}:{address[1]}"
    transport = paramiko.Transport(client)
    transport.add_server_key(host_key)
    server = SessionServer()
    try:
        transport.start_server(server=server)
        channel = transport.accept(ACCEPT_TIMEOUT_SECONDS)
        if channel is None:
            logger.info("No session channel from %s", peer)
            return
        if not server.shell_requested.wait(SHELL_TIMEOUT_SECONDS):
            logger.info("No shell request from %s", peer)
            channel.close()
            return

        logger.info("Session started for %s (%dx%d)", peer, server.width, server.height)
        runtime = create_session(
            settings,
            channel.sendall,
            channel_byte_source(channel),
            server.width,
            server.height,
            theme,
        )
        server.on_resize = lambda width, height: runtime.scheduler.post(Resized(width, height))
        try:
            runtime.run()
        finally:
            server.on_resize = None
            if not channel.closed:
                channel.send_exit_status(0)
                channel.close()
        logger.info("Session ended for %s", peer)
    except (paramiko.SSHException, EOFError, OSError) as exc:
        logger.warning("Connection from %s failed: %s", peer, exc)
    finally:
        transport.close()


def serve(settings: Settings, theme: UITheme = DEFAULT_THEME) -> None:
    """Listen on the configured address and serve connections until interrupted."""
    host_key = load_host_key(Path(settings.host_key))
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        listener.bind((settings.host, settings.port))
        listener.listen(LISTEN_BACKLOG)
        logger.info("Starting SSH server on %s:%d", settings.host, settings.port)
        while True:
            client, address = listener.accept()
            logger.info("Connection from %s:%d", address[0], address[1])
            threading.Thread(
                target=handle_connection,
                args=(client, address, host_key, settings, theme),
                name=f"e6term-conn-{address[0]}:{address[1]}",
                daemon=True,
            ).start()
    except KeyboardInterrupt:
        logger.info("Stopping SSH server")
    finally:
        listener.close()


__all__ = [
    "HostKeyError",
    "SessionServer",
    "channel_byte_source",
    "handle_connection",
    "load_host_key",
    "serve",
]

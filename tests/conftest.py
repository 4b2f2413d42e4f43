import logging
import socket
from collections.abc import Iterator
from typing import Callable, List, Optional

import pytest

from mdns_scanner.config import ENV_SSH_PASSWORDS, ENV_SSH_USER
from mdns_scanner.logger import LOGGER_NAME


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv(ENV_SSH_USER, raising=False)
    monkeypatch.delenv(ENV_SSH_PASSWORDS, raising=False)
    logger = logging.getLogger(LOGGER_NAME)
    original_handlers = list(logger.handlers)
    original_level = logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in original_handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(original_level)


class FakeSocket:
    """Stands in for a connected TCP socket."""

    def __init__(
        self,
        port: int,
        data: bytes = b"",
        recv_exc: Optional[BaseException] = None,
        settimeout_exc: Optional[BaseException] = None,
    ) -> None:
        self.port = port
        self.data = data
        self.recv_exc = recv_exc
        self.settimeout_exc = settimeout_exc
        self.closed = False
        self.timeout: Optional[float] = None

    def settimeout(self, value: float) -> None:
        if self.settimeout_exc is not None:
            raise self.settimeout_exc
        self.timeout = value

    def recv(self, n: int) -> bytes:
        if self.recv_exc is not None:
            raise self.recv_exc
        return self.data[:n]

    def close(self) -> None:
        self.closed = True


class FakeNetwork:
    """
    Fake for socket.create_connection: ports in `open_ports` accept,
    everything else is refused. Every socket handed out is kept.
    """

    def __init__(self, open_ports=(), banners=None) -> None:
        self.open_ports = set(open_ports)
        self.banners = dict(banners or {})
        self.attempts: List[int] = []
        self.sockets: List[FakeSocket] = []

    def __call__(self, address, timeout=None) -> FakeSocket:
        host, port = address
        self.attempts.append(port)
        if port not in self.open_ports:
            raise ConnectionRefusedError(f"{host}:{port} refused")
        data = self.banners.get(port)
        sock = FakeSocket(port, data=data or b"", recv_exc=None if data else socket.timeout("timed out"))
        self.sockets.append(sock)
        return sock


@pytest.fixture
def fake_network(monkeypatch: pytest.MonkeyPatch) -> Callable[..., FakeNetwork]:
    from mdns_scanner import banner

    def install(open_ports=(), banners=None) -> FakeNetwork:
        net = FakeNetwork(open_ports, banners)
        monkeypatch.setattr(banner.socket, "create_connection", net)
        return net

    return install

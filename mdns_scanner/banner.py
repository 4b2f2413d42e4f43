from __future__ import annotations

import logging
import re
import socket
from typing import Optional

from .config import DEFAULT_BANNER_BUFSIZE, DEFAULT_BANNER_TIMEOUT, DEFAULT_CONNECT_TIMEOUT
from .logger import get_logger, log_event
from .models import PortResult

logger = get_logger("banner")

_PRINTABLE = re.compile(r"[^\x09\x0a\x0d\x20-\x7e]")


def clean_banner(data: Optional[bytes], max_len: int = 300) -> str:
    """Printable, length-capped rendition of raw banner bytes for display."""
    if not data:
        return ""
    s = _PRINTABLE.sub("", data.decode(errors="ignore")).strip()
    if len(s) > max_len:
        return s[:max_len] + "..."
    return s


def _close(sock: Optional[socket.socket]) -> None:
    if sock is None:
        return
    try:
        sock.close()
    except OSError:
        pass


def probe_port(host: str, port: int, timeout_s: float = DEFAULT_CONNECT_TIMEOUT) -> PortResult:
    """
    Open/closed check: connect, then close straight away.
    Refused, timed out and unreachable all mean closed.
    """
    sock: Optional[socket.socket] = None
    try:
        sock = socket.create_connection((host, port), timeout=timeout_s)
        return PortResult(port=port, is_open=True)
    except OSError:
        return PortResult(port=port, is_open=False)
    finally:
        _close(sock)


def grab_banner(
    host: str,
    port: int,
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT,
    read_timeout_s: float = DEFAULT_BANNER_TIMEOUT,
    bufsize: int = DEFAULT_BANNER_BUFSIZE,
) -> PortResult:
    """
    Opens a fresh connection and reads whatever the service sends first.
    Returns banner=None when nothing arrives inside the read window.
    """
    sock: Optional[socket.socket] = None
    try:
        try:
            sock = socket.create_connection((host, port), timeout=connect_timeout_s)
        except OSError:
            return PortResult(port=port, is_open=False)

        try:
            sock.settimeout(read_timeout_s)
        except OSError as e:
            log_event(logger, "banner_error", {
                "host": host,
                "port": port,
                "message": f"failed to set read timeout: {e}",
            }, level=logging.WARNING)
            return PortResult(port=port, is_open=True)

        try:
            data = sock.recv(bufsize)
        except OSError:
            # socket.timeout included
            data = b""

        return PortResult(port=port, is_open=True, banner=data[:bufsize] or None)
    finally:
        _close(sock)

"""
Active, one-shot protocol exchanges against services classified as HTTP or SSH.

Every failure here is an expected outcome: it is recorded on the returned
outcome object and never raised.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import paramiko
import requests

from .config import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_SSH_PASSWORDS,
    DEFAULT_SSH_USER,
)
from .logger import get_logger, log_event
from .models import HttpOutcome, SshAttempt, SshOutcome

logger = get_logger("interact")

BODY_PREVIEW_CHARS = 100
TRUNCATION_MARKER = "..."
ROOT_IDENTITY = "root"
IDENTITY_COMMAND = "whoami"


def truncate_body(body: str, limit: int = BODY_PREVIEW_CHARS) -> str:
    if len(body) > limit:
        return body[:limit] + TRUNCATION_MARKER
    return body


def _read_preview(response: requests.Response, limit: int = BODY_PREVIEW_CHARS) -> str:
    """
    Reads just enough of a streamed body to fill the preview.
    Endless bodies (camera streams and the like) are cut off, not drained.
    """
    # utf-8 needs at most 4 bytes per character
    cap = (limit + 1) * 4
    buf = b""
    for chunk in response.iter_content(chunk_size=1024):
        buf += chunk
        if len(buf) >= cap:
            break
    encoding = response.encoding or "utf-8"
    try:
        text = buf[:cap].decode(encoding, errors="replace")
    except LookupError:
        text = buf[:cap].decode("utf-8", errors="replace")
    return truncate_body(text, limit)


def interact_http(host: str, port: int, timeout_s: float = DEFAULT_HTTP_TIMEOUT) -> HttpOutcome:
    url = f"http://{host}:{port}/"
    try:
        with requests.get(url, timeout=timeout_s, stream=True) as response:
            status = f"{response.status_code} {response.reason or ''}".strip()
            body = _read_preview(response)
    except requests.RequestException as e:
        log_event(logger, "http_error", {"url": url, "message": str(e)})
        return HttpOutcome(url=url, error=str(e))

    log_event(logger, "http_response", {"url": url, "status": status, "body": body})
    return HttpOutcome(url=url, status=status, body=body)


def _try_password(
    host: str,
    port: int,
    user: str,
    password: str,
    timeout_s: float,
) -> SshAttempt:
    client = paramiko.SSHClient()
    try:
        # host keys are not verified
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        client.connect(
            host,
            port=port,
            username=user,
            password=password,
            timeout=timeout_s,
            banner_timeout=timeout_s,
            auth_timeout=timeout_s,
            allow_agent=False,
            look_for_keys=False,
        )
        _, stdout, _ = client.exec_command(IDENTITY_COMMAND, timeout=timeout_s)
        identity = stdout.read().decode(errors="ignore").strip()
        return SshAttempt(password=password, connected=True, is_root=identity == ROOT_IDENTITY)
    except (paramiko.SSHException, OSError, EOFError) as e:
        return SshAttempt(password=password, connected=False, error=str(e) or type(e).__name__)
    finally:
        client.close()


def interact_ssh(
    host: str,
    port: int,
    user: str = DEFAULT_SSH_USER,
    passwords: Sequence[str] = DEFAULT_SSH_PASSWORDS,
    timeout_s: float = DEFAULT_CONNECT_TIMEOUT,
) -> SshOutcome:
    """
    Tries every candidate password, in order, as `user`.
    A success does not stop the loop; each candidate gets exactly one attempt.
    """
    address = f"{host}:{port}"
    attempts: List[SshAttempt] = []
    for password in passwords:
        attempt = _try_password(host, port, user, password, timeout_s)
        attempts.append(attempt)
        log_event(logger, "ssh_attempt", {
            "address": address,
            "username": user,
            "password": password,
            "connected": attempt.connected,
            "is_root": attempt.is_root,
            "error": attempt.error,
        }, level=logging.INFO if attempt.connected else logging.DEBUG)
    return SshOutcome(address=address, attempts=tuple(attempts))


def describe_attempt(attempt: SshAttempt, user: str = DEFAULT_SSH_USER) -> Optional[str]:
    if not attempt.connected:
        return None
    if attempt.is_root:
        return f"SSH server responds to {user} user with password: {attempt.password!r}"
    return f"SSH server does not respond to {user} user with password: {attempt.password!r}"

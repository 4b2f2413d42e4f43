from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

DEFAULT_PORT_START = 1
DEFAULT_PORT_END = 10000
DEFAULT_CONNECT_TIMEOUT = 3.0
DEFAULT_BANNER_TIMEOUT = 2.0
DEFAULT_BANNER_BUFSIZE = 1024
DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_BROWSE_TIMEOUT = 5.0
DEFAULT_SSH_USER = "root"
DEFAULT_SSH_PASSWORDS = ("password", "admin", "administrator", "root", "")

ENV_SSH_USER = "MDNS_SCANNER_SSH_USER"
ENV_SSH_PASSWORDS = "MDNS_SCANNER_SSH_PASSWORDS"
CONFIG_SECTION = "mdns_scanner"


@dataclass(frozen=True)
class ScanConfig:
    port_start: int = DEFAULT_PORT_START
    port_end: int = DEFAULT_PORT_END
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT
    banner_timeout_s: float = DEFAULT_BANNER_TIMEOUT
    banner_bufsize: int = DEFAULT_BANNER_BUFSIZE
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT
    browse_timeout_s: float = DEFAULT_BROWSE_TIMEOUT
    ssh_user: str = DEFAULT_SSH_USER
    ssh_passwords: Tuple[str, ...] = DEFAULT_SSH_PASSWORDS
    workers: int = 1
    queue_depth: int = 4

    @property
    def ports(self) -> range:
        return range(self.port_start, self.port_end + 1)

    def validate(self) -> "ScanConfig":
        if not (1 <= self.port_start <= self.port_end <= 65535):
            raise ValueError(f"Invalid port range: {self.port_start}-{self.port_end}")
        for name in ("connect_timeout_s", "banner_timeout_s", "http_timeout_s", "browse_timeout_s"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.banner_bufsize < 1:
            raise ValueError("banner_bufsize must be >= 1")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.queue_depth < 1:
            raise ValueError("queue_depth must be >= 1")
        return self

    def with_overrides(self, **overrides: Any) -> "ScanConfig":
        """Returns a copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        changes = {}
        for key, value in overrides.items():
            if key not in known:
                raise ValueError(f"Unknown config key: {key}")
            if value is None:
                continue
            if key == "ssh_passwords":
                value = tuple(str(p) for p in value)
            changes[key] = value
        return replace(self, **changes)


def parse_port_range(spec: str) -> Tuple[int, int]:
    """
    Parses "START-END" (or a single port) into an inclusive range.
    """
    spec = spec.strip()
    if not spec:
        raise ValueError("Empty port spec")

    if "-" in spec:
        start_s, end_s = spec.split("-", 1)
        start = int(start_s)
        end = int(end_s)
    else:
        start = end = int(spec)

    if start < 1 or end > 65535 or start > end:
        raise ValueError(f"Invalid port range: {spec}")
    return start, end


def _load_file(path: Path) -> Dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    section = data.get(CONFIG_SECTION, data)
    if not isinstance(section, dict):
        raise ValueError(f"'{CONFIG_SECTION}' section in {path} must be an object")
    if "ports" in section:
        section = dict(section)
        section["port_start"], section["port_end"] = parse_port_range(str(section.pop("ports")))
    return section


def _load_env() -> Dict[str, Any]:
    env: Dict[str, Any] = {}
    user = os.getenv(ENV_SSH_USER)
    if user:
        env["ssh_user"] = user
    passwords = os.getenv(ENV_SSH_PASSWORDS)
    if passwords is not None:
        # a trailing comma keeps the empty password in the list
        env["ssh_passwords"] = tuple(p.strip() for p in passwords.split(","))
    return env


def load_config(path: Optional[Path] = None, **cli_overrides: Any) -> ScanConfig:
    """
    Builds the run configuration.
    Precedence: defaults < JSON file < environment < CLI flags.
    """
    config = ScanConfig()
    if path is not None:
        config = config.with_overrides(**_load_file(Path(path)))
    config = config.with_overrides(**_load_env())
    config = config.with_overrides(**cli_overrides)
    return config.validate()

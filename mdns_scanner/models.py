from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from .services import ServiceLabel


@dataclass(frozen=True)
class HostRecord:
    """One device as advertised over DNS-SD."""

    name: str
    host: str
    addr_v4: Optional[str] = None
    addr_v6: Optional[str] = None
    port: int = 0
    info: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        # read-only copy; callers may keep mutating the dict they passed
        object.__setattr__(self, "info", MappingProxyType(dict(self.info)))


@dataclass(frozen=True)
class PortResult:
    port: int
    is_open: bool
    banner: Optional[bytes] = None


@dataclass(frozen=True)
class HttpOutcome:
    url: str
    status: Optional[str] = None
    body: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SshAttempt:
    password: str
    connected: bool
    is_root: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class SshOutcome:
    address: str
    attempts: Tuple[SshAttempt, ...] = ()

    @property
    def root_passwords(self) -> List[str]:
        return [a.password for a in self.attempts if a.is_root]


@dataclass(frozen=True)
class PortFinding:
    port: int
    service: ServiceLabel
    banner: Optional[bytes] = None
    http: Optional[HttpOutcome] = None
    ssh: Optional[SshOutcome] = None


@dataclass
class ScanStatistics:
    hosts: int = 0
    open_ports: int = 0
    service_counts: Counter = field(default_factory=Counter)

    def record_open(self, service: ServiceLabel) -> None:
        self.open_ports += 1
        if service is not ServiceLabel.UNKNOWN:
            self.service_counts[service] += 1

    def merge(self, other: "ScanStatistics") -> None:
        self.hosts += other.hosts
        self.open_ports += other.open_ports
        self.service_counts.update(other.service_counts)


@dataclass
class HostReport:
    record: HostRecord
    findings: List[PortFinding] = field(default_factory=list)
    stats: ScanStatistics = field(default_factory=ScanStatistics)


@dataclass
class ScanReport:
    """Run-wide accumulator returned by the discovery consumer."""

    stats: ScanStatistics = field(default_factory=ScanStatistics)
    hosts: List[HostReport] = field(default_factory=list)

    def add(self, report: HostReport) -> None:
        self.hosts.append(report)
        self.stats.merge(report.stats)

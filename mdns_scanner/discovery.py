"""
DNS-SD discovery over zeroconf and the consumer that scans each discovered host.

HostDiscovery browses on a producer thread and hands HostRecords over a small
bounded queue. consume() pulls them one at a time, in arrival order, and runs a
full HostScanner pass per record before taking the next one.
"""
from __future__ import annotations

import queue
import threading
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import zeroconf
from zeroconf import IPVersion, ServiceBrowser, Zeroconf, ZeroconfServiceTypes

from .config import ScanConfig
from .logger import get_logger, log_event
from .models import HostRecord, ScanReport
from .scanner import ProgressFn, scan_host

logger = get_logger("discovery")

RESOLVE_TIMEOUT_MS = 2000
_PUT_POLL_S = 0.5


class DiscoveryError(RuntimeError):
    """The service lookup failed for a reason other than "nobody answered"."""


class _Failure:
    def __init__(self, exc: BaseException):
        self.exc = exc


_END = object()


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    return str(value)


def record_from_info(info) -> HostRecord:
    v4 = info.parsed_addresses(IPVersion.V4Only)
    v6 = info.parsed_addresses(IPVersion.V6Only)
    props = {_text(k): _text(v) for k, v in (info.properties or {}).items()}
    return HostRecord(
        name=info.name,
        host=info.server or "",
        addr_v4=v4[0] if v4 else None,
        addr_v6=v6[0] if v6 else None,
        port=info.port or 0,
        info=props,
    )


class _Collector:
    """ServiceBrowser listener; remembers (type, name) pairs in arrival order."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.seen: Dict[Tuple[str, str], None] = {}

    def add_service(self, zc, type_, name):
        with self.lock:
            self.seen.setdefault((type_, name), None)

    def update_service(self, zc, type_, name):
        self.add_service(zc, type_, name)

    def remove_service(self, zc, type_, name):
        pass

    def drain(self) -> List[Tuple[str, str]]:
        with self.lock:
            return list(self.seen)


class HostDiscovery:
    """
    Iterable of HostRecords found on the local segment.

    Construction is cheap; start() (or entering the context manager) opens the
    multicast sockets and raises DiscoveryError right away if that fails.
    """

    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=self.config.queue_depth)
        self._stop = threading.Event()
        self._zc: Optional[Zeroconf] = None
        self._browsers: List[ServiceBrowser] = []
        self._thread: Optional[threading.Thread] = None
        # set once the end of the stream has been handed out
        self._finished = False

    def __enter__(self) -> "HostDiscovery":
        self.start()
        return self

    def __exit__(self, *exc) -> bool:
        self.close()
        return False

    def start(self) -> None:
        if self._thread is not None:
            return
        try:
            self._zc = Zeroconf()
        except (OSError, zeroconf.Error) as e:
            raise DiscoveryError(f"Could not start mDNS lookup: {e}") from e

        log_event(logger, "discovery_start", {"browse_timeout_s": self.config.browse_timeout_s})
        self._thread = threading.Thread(target=self._produce, name="mdns-discovery", daemon=True)
        self._thread.start()

    def close(self) -> None:
        self._stop.set()
        for browser in self._browsers:
            browser.cancel()
        self._browsers = []
        if self._zc is not None:
            self._zc.close()
            self._zc = None
        if self._thread is not None:
            self._thread.join(timeout=self.config.browse_timeout_s + 1)
            self._thread = None

    def _put(self, item: object) -> bool:
        while not self._stop.is_set():
            try:
                self._queue.put(item, timeout=_PUT_POLL_S)
                return True
            except queue.Full:
                continue
        return False

    def _produce(self) -> None:
        found = 0
        try:
            types = ZeroconfServiceTypes.find(zc=self._zc, timeout=self.config.browse_timeout_s)
            if types:
                listener = _Collector()
                self._browsers = [ServiceBrowser(self._zc, t, listener) for t in types]
                self._stop.wait(self.config.browse_timeout_s)

                for type_, name in listener.drain():
                    if self._stop.is_set():
                        break
                    info = self._zc.get_service_info(type_, name, timeout=RESOLVE_TIMEOUT_MS)
                    if info is None:
                        continue
                    if not self._put(record_from_info(info)):
                        break
                    found += 1
            log_event(logger, "discovery_done", {"service_types": len(types), "hosts": found})
        except Exception as e:  # handed to the consumer, which raises it
            self._put(_Failure(e))
        finally:
            self._put(_END)

    def __iter__(self) -> Iterator[HostRecord]:
        if self._finished or self._stop.is_set():
            return
        self.start()
        while True:
            item = self._queue.get()
            if item is _END:
                self._finished = True
                return
            if isinstance(item, _Failure):
                self._finished = True
                raise DiscoveryError(f"mDNS lookup failed: {item.exc}") from item.exc
            yield item


def consume(
    records: Iterable[HostRecord],
    config: Optional[ScanConfig] = None,
    progress: Optional[ProgressFn] = None,
) -> ScanReport:
    """
    Scans each record to completion, in arrival order, and folds the
    per-host statistics into one run-wide report.
    """
    config = config or ScanConfig()
    report = ScanReport()
    for record in records:
        log_event(logger, "host_found", {
            "name": record.name,
            "host": record.host,
            "addr_v4": record.addr_v4,
            "addr_v6": record.addr_v6,
            "port": record.port,
            "info": dict(record.info),
        })
        report.add(scan_host(record, config, progress=progress))
    return report


def discover_and_scan(
    config: Optional[ScanConfig] = None,
    progress: Optional[ProgressFn] = None,
) -> ScanReport:
    config = config or ScanConfig()
    with HostDiscovery(config) as discovery:
        return consume(discovery, config, progress=progress)

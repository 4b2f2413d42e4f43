from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Callable, Iterator, List, Optional

from . import banner, interact
from .config import ScanConfig
from .logger import get_logger, log_event
from .models import HostRecord, HostReport, PortFinding, ScanStatistics
from .services import ServiceLabel, classify, needs_interaction

logger = get_logger("scanner")

# progress(port, last_port) is called once per probed port
ProgressFn = Callable[[int, int], None]


def _probe_sequential(
    host: str,
    config: ScanConfig,
    progress: Optional[ProgressFn],
) -> Iterator[int]:
    last = config.port_end
    for port in config.ports:
        if progress is not None:
            progress(port, last)
        result = banner.probe_port(host, port, timeout_s=config.connect_timeout_s)
        if result.is_open:
            yield port


def _probe_pooled(
    host: str,
    config: ScanConfig,
    progress: Optional[ProgressFn],
) -> List[int]:
    """
    Bounded-futures probing (won't create 10k futures at once).
    Returns open ports sorted ascending.
    """
    ports = iter(config.ports)
    last = config.port_end
    open_ports: List[int] = []
    scanned = 0
    max_pending = config.workers * 4

    with ThreadPoolExecutor(max_workers=config.workers) as pool:
        pending = set()

        def submit_next() -> bool:
            try:
                p = next(ports)
            except StopIteration:
                return False
            pending.add(pool.submit(banner.probe_port, host, p, config.connect_timeout_s))
            return True

        while len(pending) < max_pending and submit_next():
            pass

        while pending:
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for fut in done:
                r = fut.result()
                scanned += 1
                if progress is not None:
                    progress(config.port_start + scanned - 1, last)
                if r.is_open:
                    open_ports.append(r.port)

                while len(pending) < max_pending and submit_next():
                    pass

    return sorted(open_ports)


def _inspect_port(host: str, port: int, config: ScanConfig) -> PortFinding:
    service = classify(port)
    log_event(logger, "port_open", {"host": host, "port": port, "service": str(service)})

    # second, short-lived connection just for the banner
    grabbed = banner.grab_banner(
        host,
        port,
        connect_timeout_s=config.connect_timeout_s,
        read_timeout_s=config.banner_timeout_s,
        bufsize=config.banner_bufsize,
    )
    if grabbed.banner:
        log_event(logger, "banner", {
            "host": host,
            "port": port,
            "banner": banner.clean_banner(grabbed.banner),
        })

    if not needs_interaction(service):
        return PortFinding(port=port, service=service, banner=grabbed.banner)

    http = ssh = None
    if service is ServiceLabel.HTTP:
        http = interact.interact_http(host, port, timeout_s=config.http_timeout_s)
    elif service is ServiceLabel.SSH:
        ssh = interact.interact_ssh(
            host,
            port,
            user=config.ssh_user,
            passwords=config.ssh_passwords,
            timeout_s=config.connect_timeout_s,
        )

    return PortFinding(port=port, service=service, banner=grabbed.banner, http=http, ssh=ssh)


def scan_host(
    record: HostRecord,
    config: Optional[ScanConfig] = None,
    progress: Optional[ProgressFn] = None,
) -> HostReport:
    """
    Full-range TCP scan of one discovered host.

    Every port in the configured range is probed exactly once, lowest first,
    and the range is never cut short. Open ports are classified, banner
    grabbed, and HTTP/SSH ports get an active exchange.
    """
    config = config or ScanConfig()
    report = HostReport(record=record, stats=ScanStatistics(hosts=1))

    host = record.addr_v4
    if not host:
        log_event(logger, "host_skipped", {
            "name": record.name,
            "reason": "no IPv4 address advertised",
        })
        return report

    if config.workers > 1:
        open_ports = iter(_probe_pooled(host, config, progress))
    else:
        open_ports = _probe_sequential(host, config, progress)

    for port in open_ports:
        finding = _inspect_port(host, port, config)
        report.findings.append(finding)
        report.stats.record_open(finding.service)

    log_event(logger, "scan_done", {
        "host": host,
        "name": record.name,
        "open_ports": report.stats.open_ports,
    })
    return report

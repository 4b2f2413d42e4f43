from __future__ import annotations

import json
import sys
from typing import Any, Dict, List, Optional, TextIO

from .banner import clean_banner
from .interact import describe_attempt
from .models import HostRecord, HostReport, PortFinding, ScanReport
from .services import ServiceLabel


def format_host(record: HostRecord) -> List[str]:
    lines = [
        "Found entry:",
        f"Name: {record.name}",
        f"Host: {record.host}",
        f"AddrV4: {record.addr_v4 or '-'}",
        f"AddrV6: {record.addr_v6 or '-'}",
        f"Port: {record.port}",
    ]
    if record.info:
        lines.append("Info:")
        for key, value in record.info.items():
            lines.append(f"  {key}: {value}")
    lines.append("-------------------")
    return lines


def format_finding(f: PortFinding, ssh_user: str = "root") -> List[str]:
    lines = [f"Port {f.port} is open"]
    if f.banner:
        lines.append(f"Service message: {clean_banner(f.banner)}")
    if f.service is not ServiceLabel.UNKNOWN:
        lines.append(f"Port {f.port} is likely associated with {f.service}")
    if f.http is not None:
        if f.http.ok:
            lines.append(f"Got HTTP response from {f.http.url}: {f.http.status}")
            lines.append(f"Beginning of response body from {f.http.url}: {f.http.body}")
        else:
            lines.append(f"Error making HTTP request to {f.http.url}: {f.http.error}")
    if f.ssh is not None:
        for attempt in f.ssh.attempts:
            msg = describe_attempt(attempt, ssh_user)
            if msg is None:
                lines.append(f"Error connecting to SSH server at {f.ssh.address}: {attempt.error}")
            else:
                lines.append(msg)
    return lines


def format_summary(report: ScanReport) -> List[str]:
    lines = [
        f"Total devices: {report.stats.hosts}",
        f"Total open ports: {report.stats.open_ports}",
    ]
    for service, count in report.stats.service_counts.most_common():
        lines.append(f"Service {service} found {count} times")
    return lines


def print_report(report: ScanReport, ssh_user: str = "root", out: Optional[TextIO] = None) -> None:
    # resolved per call so redirected stdout is honoured
    out = out or sys.stdout
    for host in report.hosts:
        for line in format_host(host.record):
            print(line, file=out)
        for finding in host.findings:
            for line in format_finding(finding, ssh_user):
                print(line, file=out)
    for line in format_summary(report):
        print(line, file=out)


def _finding_dict(f: PortFinding) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "port": f.port,
        "service": f.service.value,
        "banner": clean_banner(f.banner) or None,
    }
    if f.http is not None:
        data["http"] = {
            "url": f.http.url,
            "status": f.http.status,
            "body": f.http.body,
            "error": f.http.error,
        }
    if f.ssh is not None:
        data["ssh"] = {
            "address": f.ssh.address,
            "attempts": [
                {
                    "password": a.password,
                    "connected": a.connected,
                    "is_root": a.is_root,
                    "error": a.error,
                }
                for a in f.ssh.attempts
            ],
        }
    return data


def _host_dict(h: HostReport) -> Dict[str, Any]:
    r = h.record
    return {
        "name": r.name,
        "host": r.host,
        "addr_v4": r.addr_v4,
        "addr_v6": r.addr_v6,
        "port": r.port,
        "info": dict(r.info),
        "open_ports": h.stats.open_ports,
        "findings": [_finding_dict(f) for f in h.findings],
    }


def to_json(report: ScanReport) -> str:
    payload = {
        "total_devices": report.stats.hosts,
        "total_open_ports": report.stats.open_ports,
        "services": {
            service.value: count
            for service, count in sorted(report.stats.service_counts.items(), key=lambda kv: kv[0].value)
        },
        "hosts": [_host_dict(h) for h in report.hosts],
    }
    return json.dumps(payload, indent=2)

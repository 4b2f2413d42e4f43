from __future__ import annotations

import argparse
import sys
from pathlib import Path
from threading import Event
from typing import Optional, Sequence

from .config import load_config, parse_port_range
from .discovery import DiscoveryError, discover_and_scan
from .logger import create_logger
from .output import print_report, to_json


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="mdns-scanner",
        description="Discover DNS-SD devices on the local network, port scan them and probe what answers",
    )
    p.add_argument("--config", type=Path, help="JSON config file")
    p.add_argument("--ports", help="Scan range START-END (default: 1-10000)")
    p.add_argument("--connect-timeout", type=float, help="TCP connect timeout seconds (default: 3)")
    p.add_argument("--banner-timeout", type=float, help="Banner read timeout seconds (default: 2)")
    p.add_argument("--http-timeout", type=float, help="HTTP request timeout seconds (default: 10)")
    p.add_argument("--browse-timeout", type=float, help="mDNS browse window seconds (default: 5)")
    p.add_argument("--ssh-user", help="SSH user for the credential check (default: root)")
    p.add_argument(
        "--ssh-password",
        action="append",
        dest="ssh_passwords",
        help="Candidate SSH password; repeat to build the list (replaces the defaults)",
    )
    p.add_argument("--workers", type=int, help="Parallel port probes per host (default: 1, sequential)")
    p.add_argument("--json", action="store_true", help="Print the report as JSON")
    p.add_argument("--no-wait", action="store_true", help="Exit after the report instead of waiting for Ctrl+C")
    p.add_argument("--verbose", action="store_true", help="Debug-level event log")
    p.add_argument("--log-file", help="Also write the JSON event log to this file")
    return p


def _progress(port: int, last: int) -> None:
    print(f"Scanning port {port}/{last}...", end="\r", flush=True)
    if port == last:
        print()


def wait_for_interrupt() -> None:
    try:
        Event().wait()
    except KeyboardInterrupt:
        print("\nLeaving...")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    create_logger(verbose=args.verbose, log_path=args.log_file)

    try:
        port_start = port_end = None
        if args.ports:
            port_start, port_end = parse_port_range(args.ports)
        config = load_config(
            args.config,
            port_start=port_start,
            port_end=port_end,
            connect_timeout_s=args.connect_timeout,
            banner_timeout_s=args.banner_timeout,
            http_timeout_s=args.http_timeout,
            browse_timeout_s=args.browse_timeout,
            ssh_user=args.ssh_user,
            ssh_passwords=args.ssh_passwords,
            workers=args.workers,
        )
        report = discover_and_scan(config, progress=None if args.json else _progress)
    except (DiscoveryError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(to_json(report))
    else:
        print_report(report, ssh_user=config.ssh_user)

    if not args.no_wait:
        wait_for_interrupt()
    return 0

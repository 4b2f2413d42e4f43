import json

import pytest

from mdns_scanner import cli
from mdns_scanner.discovery import DiscoveryError
from mdns_scanner.models import ScanReport


def test_main_prints_report(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    seen = {}

    def fake_run(config, progress=None):
        seen["config"] = config
        return ScanReport()

    monkeypatch.setattr(cli, "discover_and_scan", fake_run)
    rc = cli.main([
        "--no-wait",
        "--ports", "1-100",
        "--ssh-user", "admin",
        "--ssh-password", "admin",
        "--ssh-password", "",
        "--workers", "4",
    ])
    assert rc == 0
    out = capsys.readouterr().out
    assert "Total devices: 0" in out
    config = seen["config"]
    assert (config.port_start, config.port_end) == (1, 100)
    assert config.ssh_user == "admin"
    assert config.ssh_passwords == ("admin", "")
    assert config.workers == 4


def test_main_json(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr(cli, "discover_and_scan", lambda config, progress=None: ScanReport())
    assert cli.main(["--no-wait", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["total_devices"] == 0


def test_discovery_error_exit_code(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    def boom(config, progress=None):
        raise DiscoveryError("mDNS lookup failed: no interfaces")

    monkeypatch.setattr(cli, "discover_and_scan", boom)
    assert cli.main(["--no-wait"]) == 1
    assert "Error: mDNS lookup failed" in capsys.readouterr().err


def test_invalid_ports_exit_code(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr(cli, "discover_and_scan", lambda config, progress=None: ScanReport())
    assert cli.main(["--no-wait", "--ports", "0-10"]) == 1
    assert "Invalid port range" in capsys.readouterr().err


def test_waits_for_interrupt(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    class Interrupted:
        def wait(self, timeout=None):
            raise KeyboardInterrupt

    monkeypatch.setattr(cli, "discover_and_scan", lambda config, progress=None: ScanReport())
    monkeypatch.setattr(cli, "Event", Interrupted)
    assert cli.main([]) == 0
    assert "Leaving..." in capsys.readouterr().out


def test_progress_line(capsys: pytest.CaptureFixture) -> None:
    cli._progress(5, 10)
    cli._progress(10, 10)
    out = capsys.readouterr().out
    assert "Scanning port 5/10..." in out
    assert out.endswith("\n")

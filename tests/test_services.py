from mdns_scanner.services import PORT_SERVICES, ServiceLabel, classify, needs_interaction


def test_known_ports() -> None:
    assert classify(22) is ServiceLabel.SSH
    assert classify(80) is ServiceLabel.HTTP
    assert classify(443) is ServiceLabel.HTTP
    assert classify(8009) is ServiceLabel.GOOGLE_CAST
    assert classify(32469) is ServiceLabel.ROKU
    assert str(classify(5353)) == "mDNS"


def test_unknown_ports_and_odd_input() -> None:
    assert classify(1) is ServiceLabel.UNKNOWN
    assert classify(0) is ServiceLabel.UNKNOWN
    assert classify(-22) is ServiceLabel.UNKNOWN
    assert classify(70000) is ServiceLabel.UNKNOWN
    assert classify("22") is ServiceLabel.UNKNOWN  # type: ignore[arg-type]
    assert classify(True) is ServiceLabel.UNKNOWN


def test_classify_is_deterministic_over_scan_range() -> None:
    labels = set(ServiceLabel)
    for port in range(1, 10001):
        first = classify(port)
        assert first in labels
        assert classify(port) is first


def test_table_size_and_interaction_policy() -> None:
    assert len(PORT_SERVICES) == 23
    assert ServiceLabel.UNKNOWN not in PORT_SERVICES.values()
    interactive = {label for label in ServiceLabel if needs_interaction(label)}
    assert interactive == {ServiceLabel.HTTP, ServiceLabel.SSH}

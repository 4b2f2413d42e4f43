from __future__ import annotations

from enum import Enum
from typing import Dict


class ServiceLabel(str, Enum):
    SSH = "SSH"
    HTTP = "HTTP"
    RTSP = "RTSP"
    MDNS = "mDNS"
    GOOGLE_CAST = "Google Cast"
    DLNA = "DLNA"
    NTP = "NTP"
    SSDP = "SSDP"
    UPNP = "UPnP"
    BONJOUR_SLEEP_PROXY = "Bonjour Sleep Proxy"
    AIRPLAY = "AirPlay"
    AIRTUNES = "AirTunes"
    PLAYSTATION = "PlayStation"
    PLEX = "Plex Media Server"
    ITUNES = "iTunes"
    WSD = "Web Services for Devices"
    WINRM = "Windows Remote Management"
    SYNOLOGY_DSM = "Synology DiskStation Manager"
    UPNP_IGD = "UPnP IGD"
    ROKU = "Roku Media Server"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


PORT_SERVICES: Dict[int, ServiceLabel] = {
    22: ServiceLabel.SSH,
    80: ServiceLabel.HTTP,
    443: ServiceLabel.HTTP,
    554: ServiceLabel.RTSP,
    5353: ServiceLabel.MDNS,
    8008: ServiceLabel.GOOGLE_CAST,
    8009: ServiceLabel.GOOGLE_CAST,
    9000: ServiceLabel.DLNA,
    123: ServiceLabel.NTP,
    1900: ServiceLabel.SSDP,
    2869: ServiceLabel.UPNP,
    5350: ServiceLabel.BONJOUR_SLEEP_PROXY,
    5351: ServiceLabel.BONJOUR_SLEEP_PROXY,
    9090: ServiceLabel.AIRPLAY,
    9091: ServiceLabel.AIRTUNES,
    1901: ServiceLabel.PLAYSTATION,
    32400: ServiceLabel.PLEX,
    3689: ServiceLabel.ITUNES,
    5357: ServiceLabel.WSD,
    10243: ServiceLabel.WINRM,
    5000: ServiceLabel.SYNOLOGY_DSM,
    5431: ServiceLabel.UPNP_IGD,
    32469: ServiceLabel.ROKU,
}

# Labels that get an active protocol exchange after the banner grab.
INTERACTIVE = frozenset({ServiceLabel.HTTP, ServiceLabel.SSH})


def classify(port: int) -> ServiceLabel:
    """
    Maps a TCP port to its well-known service label.
    Unlisted ports (and anything that isn't a port number) are UNKNOWN.
    """
    if isinstance(port, bool) or not isinstance(port, int):
        return ServiceLabel.UNKNOWN
    return PORT_SERVICES.get(port, ServiceLabel.UNKNOWN)


def needs_interaction(label: ServiceLabel) -> bool:
    return label in INTERACTIVE

"""
pathdraw: Fingerprint, Commands, and Parser Strategy

Fingerprint: which OS family is this host? Decided once, from platform.system().
Commands: per-platform command sets mapped to the three lookup questions.
Parsers: column/keyword scraping of plain text output (see parsers.py).
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import platform as _platform
import re

from .models import AddressFamily


# ============================================================
# Fingerprinting: which command dialect does this host speak?
# ============================================================
#
# Two dialects, both read-only:
#
#   Linux:  iproute2 ("ip route get", "ip neigh", "ip addr")
#   BSD:    route(8), ifconfig(8), arp(8), ndp(8)
#           FreeBSD, OpenBSD, NetBSD, DragonFly and macOS (Darwin)
#           all share the same output shapes for the fields we read.
#
# Anything else (Windows, Solaris, ...) is rejected up front.
#

class Platform(Enum):
    LINUX = "linux"
    BSD = "bsd"
    UNKNOWN = "unknown"


@dataclass
class FingerprintSignature:
    """Pattern to match against platform.system() output."""
    platform: Platform
    patterns: list[str]                 # any match = positive ID


FINGERPRINTS = [
    FingerprintSignature(
        platform=Platform.LINUX,
        patterns=[r"^Linux$"],
    ),
    FingerprintSignature(
        platform=Platform.BSD,
        patterns=[
            r"^Darwin$",
            r"^FreeBSD$",
            r"^OpenBSD$",
            r"^NetBSD$",
            r"^DragonFly$",
            r"^GNU/kFreeBSD$",
        ],
    ),
]


def fingerprint_from_system(system: str) -> Platform:
    """First signature that matches wins; no match is UNKNOWN."""
    name = (system or "").strip()
    for sig in FINGERPRINTS:
        for pattern in sig.patterns:
            if re.match(pattern, name, re.IGNORECASE):
                return sig.platform
    return Platform.UNKNOWN


def detect_platform() -> tuple[Platform, str]:
    """Fingerprint the running host. Returns (platform, raw system name)."""
    system = _platform.system()
    return fingerprint_from_system(system), system


# ============================================================
# Command Sets: per platform, per lookup question
# ============================================================
#
# Each command set maps to the three questions asked per endpoint:
#   1. Route?      → longest-prefix-match lookup towards {ip}
#   2. Interface?  → link address + configured addresses of {interface}
#   3. Neighbor?   → ARP (v4) / NDP (v6) entry for the next hop {ip}
#
# Commands use {ip} and {interface} as placeholders.
# Empty string = the platform answers that question elsewhere.
#

@dataclass
class CommandSet:
    """All commands needed to resolve one endpoint."""

    # 1. Route lookup
    route_get: str
    route_get_v6: str
    route_match: str = ""               # covering routes, for the prefix
    route_match_v6: str = ""

    # 2. Interface
    link_show: str = ""                 # link-layer address
    addr_show: str = ""                 # configured v4 addresses
    addr_show_v6: str = ""
    addr_owner: str = ""                # which interface owns {ip}
    addr_owner_v6: str = ""

    # 3. Neighbor resolution
    neighbor: str = ""                  # ARP
    neighbor_v6: str = ""               # NDP

    def for_family(self, name: str, family: AddressFamily) -> str:
        """Pick the v4 or v6 template for a question by attribute name."""
        if family is AddressFamily.IPV6:
            v6 = getattr(self, f"{name}_v6", None)
            if v6 is not None:
                return v6
        return getattr(self, name)


COMMAND_SETS: dict[Platform, CommandSet] = {

    Platform.LINUX: CommandSet(
        # Route
        route_get="ip -4 route get {ip}",
        route_get_v6="ip -6 route get {ip}",
        route_match="ip -4 route show match {ip}",
        route_match_v6="ip -6 route show match {ip}",

        # Interface
        link_show="ip -o link show dev {interface}",
        addr_show="ip -o -4 addr show dev {interface}",
        addr_show_v6="ip -o -6 addr show dev {interface}",
        addr_owner="ip -o -4 addr show to {ip}",
        addr_owner_v6="ip -o -6 addr show to {ip}",

        # Neighbor
        neighbor="ip -4 neigh show to {ip} dev {interface}",
        neighbor_v6="ip -6 neigh show to {ip} dev {interface}",
    ),

    Platform.BSD: CommandSet(
        # route(8) prints destination, mask and gateway in one go
        route_get="route -n get -inet {ip}",
        route_get_v6="route -n get -inet6 {ip}",

        # ifconfig answers link address and both families at once
        link_show="ifconfig {interface}",
        addr_owner="ifconfig -a",
        addr_owner_v6="ifconfig -a",

        neighbor="arp -n {ip}",
        neighbor_v6="ndp -n {ip}",
    ),
}


def get_command_set(platform: Platform) -> Optional[CommandSet]:
    return COMMAND_SETS.get(platform)


# ============================================================
# Sample output: what the parsers expect
# ============================================================
#
# Linux, ip -4 route get 10.0.12.12:
#   10.0.12.12 via 10.0.1.12 dev bridge1 src 10.0.1.1 uid 0
#       cache
#
# Linux, ip -4 route show match 10.0.12.12:
#   default via 192.168.0.1 dev eth0 proto dhcp metric 100
#   10.0.12.0/24 via 10.0.1.12 dev bridge1 proto static
#
# Linux, ip -4 neigh show to 10.0.1.12 dev bridge1:
#   10.0.1.12 lladdr 02:01:32:38:b0:04 REACHABLE
#
# BSD, route -n get -inet 10.0.12.12:
#      route to: 10.0.12.12
#   destination: 10.0.12.0
#          mask: 255.255.255.0
#       gateway: 10.0.1.12
#     interface: bridge1
#         flags: <UP,GATEWAY,DONE,STATIC>
#
# BSD, arp -n 10.0.1.12:
#   ? (10.0.1.12) at 02:01:32:38:b0:04 on bridge1 expires in 1187 seconds [ethernet]
#
# Total commands per endpoint (typical):
#   Linux: route get, route match, link, addr, neigh  → 5
#   BSD:   route get, ifconfig, arp/ndp               → 3
#

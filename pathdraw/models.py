"""
pathdraw: Core Data Models

One route lookup per endpoint, held in memory, handed from the resolver
to the classifier to the renderer. Nothing here does I/O.

The question for each endpoint:
  Which interface? → Which gateway? → Is the next hop in the neighbor cache?
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union
from ipaddress import IPv4Address, IPv6Address, ip_address


# Sentinels carried in ResolvedRoute string fields
DIRECT = "direct"                       # on-link, no gateway
EMPTY = "empty"                         # neighbor entry has no link address


# ============================================================
# Address Family
# ============================================================

class AddressFamily(Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"

    @property
    def width(self) -> int:
        """Interior column width of every box drawn for this family."""
        return 28 if self is AddressFamily.IPV4 else 50

    @property
    def neighbor_label(self) -> str:
        return "ARP" if self is AddressFamily.IPV4 else "NDP"

    @property
    def host_bits(self) -> int:
        return 32 if self is AddressFamily.IPV4 else 128


def family_of(addr: Union[IPv4Address, IPv6Address, str]) -> AddressFamily:
    if isinstance(addr, str):
        addr = ip_address(addr.strip())
    return AddressFamily.IPV4 if isinstance(addr, IPv4Address) else AddressFamily.IPV6


# ============================================================
# Parsed command records: what a single command told us
# ============================================================

class RouteType(Enum):
    UNICAST = "unicast"
    LOCAL = "local"                     # destined to this device
    UNREACHABLE = "unreachable"
    BLACKHOLE = "blackhole"
    PROHIBIT = "prohibit"

    @property
    def is_usable(self) -> bool:
        return self in (RouteType.UNICAST, RouteType.LOCAL)


@dataclass
class RouteRecord:
    """One route lookup result, before interface and neighbor queries."""
    route_type: RouteType = RouteType.UNICAST
    interface: Optional[str] = None
    gateway: Optional[str] = None       # None = on-link
    destination: Optional[str] = None   # BSD: network; Linux: folded prefix
    mask: Optional[str] = None          # BSD v4 only
    source: Optional[str] = None        # Linux preferred source ("src")
    flags: list[str] = field(default_factory=list)

    @property
    def is_direct(self) -> bool:
        return self.gateway is None


@dataclass
class LinkRecord:
    """Interface link layer + configured addresses."""
    interface: str
    mac: Optional[str] = None
    addresses: list[str] = field(default_factory=list)


class NeighborState(Enum):
    RESOLVED = "resolved"
    INCOMPLETE = "incomplete"
    NO_ENTRY = "no-entry"


@dataclass
class NeighborRecord:
    """ARP (v4) or NDP (v6) cache entry for one address."""
    ip_address: str
    mac: Optional[str] = None
    state: NeighborState = NeighborState.NO_ENTRY
    interface: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.state == NeighborState.RESOLVED and self.mac is not None


# ============================================================
# ResolvedRoute: one endpoint, fully resolved
# ============================================================

@dataclass(frozen=True)
class ResolvedRoute:
    """
    Everything the local device knows about reaching one endpoint.
    Passed by value from resolver → classifier → renderer.
    """
    ip: str
    family: AddressFamily
    interface: str
    interface_ip: str
    network: str
    gateway: str = DIRECT
    neighbor_mac: str = EMPTY
    interface_mac: Optional[str] = None
    mask: Optional[str] = None

    @property
    def is_direct(self) -> bool:
        return self.gateway == DIRECT

    @property
    def is_local(self) -> bool:
        """The device itself owns this address: no HOST box for it."""
        return ip_address(self.ip) == ip_address(self.interface_ip)

    @property
    def has_neighbor(self) -> bool:
        return self.neighbor_mac != EMPTY

    @property
    def next_hop(self) -> str:
        """Address whose neighbor entry we need: gateway, else the endpoint."""
        return self.ip if self.is_direct else self.gateway


@dataclass(frozen=True)
class RoutePair:
    """Source and destination side, always the same family."""
    source: ResolvedRoute
    destination: ResolvedRoute

    @property
    def family(self) -> AddressFamily:
        return self.source.family

    @property
    def same_interface(self) -> bool:
        return self.source.interface == self.destination.interface

    @property
    def same_gateway(self) -> bool:
        return self.source.gateway == self.destination.gateway

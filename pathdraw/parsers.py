"""
pathdraw: Platform Parsers

The fragile layer: raw command output → small record dataclasses.

Two dialects:
  Linux: iproute2 one-line records, keyword/value token pairs
  BSD:   route(8) "key: value" blocks, ifconfig(8), arp(8)/ndp(8) rows

Every parser function:
  - Takes raw command output (str)
  - Returns a record dataclass or None
  - Never raises: failures return None and are captured by diagnostics
  - Handles both expected and degenerate output gracefully

Parser dispatch:
  get_parser(platform, data_type) → callable
  The resolver calls this to get the right parser for the platform and data type.
"""

from __future__ import annotations
import re
import logging
from ipaddress import (
    IPv4Address, IPv6Address, IPv4Network, IPv6Network,
    ip_address, ip_network,
)
from typing import Optional, Callable

from .models import (
    AddressFamily, RouteType, RouteRecord, LinkRecord,
    NeighborRecord, NeighborState,
)
from .commands_and_parsers import Platform

logger = logging.getLogger("pathdraw.parsers")


# ============================================================
# Utility: safe extraction helpers
# ============================================================

def _safe_ip(addr_str: str) -> Optional[IPv4Address | IPv6Address]:
    """Parse an IPv4 or IPv6 address, return None on failure."""
    if not addr_str:
        return None
    try:
        return ip_address(addr_str.strip().split("%", 1)[0])
    except (ValueError, AttributeError):
        return None


def _same_ip(a: str, b: str) -> bool:
    """Compare two address strings by value (handles v6 compression)."""
    left, right = _safe_ip(a), _safe_ip(b)
    return left is not None and left == right


def _strip_scope(addr_str: str) -> str:
    """fe80::1%em0 → fe80::1"""
    return addr_str.split("%", 1)[0]


def _normalize_mac(mac_str: str) -> Optional[str]:
    """
    Normalize MAC to aa:bb:cc:dd:ee:ff format.

    BSD prints unpadded octets (2:1:32:38:b0:4); Cisco-style dotted
    (0201.3238.b004) is accepted too.
    """
    if not mac_str:
        return None
    mac = mac_str.strip().lower()
    if re.fullmatch(r"[0-9a-f]{1,2}([:\-])[0-9a-f]{1,2}(?:\1[0-9a-f]{1,2}){4}", mac):
        return ":".join(part.zfill(2) for part in re.split(r"[:\-]", mac))
    mac = re.sub(r"[.:\-]", "", mac)
    if not re.fullmatch(r"[0-9a-f]{12}", mac):
        return None
    return ":".join(mac[i:i+2] for i in range(0, 12, 2))


def _default_network(family: AddressFamily) -> str:
    return "0.0.0.0/0" if family is AddressFamily.IPV4 else "::/0"


def _mask_to_prefixlen(mask: str) -> Optional[int]:
    """ffff:ffff:ffff:ffff:: → 64, 255.255.255.0 → 24. None if not contiguous."""
    addr = _safe_ip(mask)
    if addr is None:
        return None
    bits = bin(int(addr))[2:].zfill(addr.max_prefixlen)
    if "01" in bits:
        return None
    return bits.count("1")


_ROUTE_TYPES = {
    "unicast": RouteType.UNICAST,
    "local": RouteType.LOCAL,
    "broadcast": RouteType.UNICAST,
    "anycast": RouteType.UNICAST,
    "multicast": RouteType.UNICAST,
    "unreachable": RouteType.UNREACHABLE,
    "blackhole": RouteType.BLACKHOLE,
    "prohibit": RouteType.PROHIBIT,
    "throw": RouteType.UNREACHABLE,
}


# ============================================================
# Linux: iproute2 text parsers
# ============================================================
# "ip" prints one record per line as keyword/value token pairs.
# Order varies between kernel and iproute2 versions, so we scan
# for keywords instead of cutting columns.

class LinuxParser:
    """Parse iproute2 text output into record dataclasses."""

    @staticmethod
    def parse_route(raw: str, family: AddressFamily) -> Optional[RouteRecord]:
        """
        Parse: ip -4|-6 route get {ip}

        Sample output:
        10.0.12.12 via 10.0.1.12 dev bridge1 src 10.0.1.1 uid 0
            cache

        Or local:
        local 10.0.1.1 dev lo table local src 10.0.1.1 uid 0

        Or v6:
        2001:db8:12::12 from :: via fe80::1 dev eth0 proto static src 2001:db8::1 metric 1024 pref medium
        """
        if not raw or not raw.strip():
            return None

        if re.search(r"RTNETLINK answers|Network is unreachable|No route to host",
                     raw, re.IGNORECASE):
            return None

        try:
            tokens = raw.split()
            route = RouteRecord()

            idx = 0
            if tokens[0] in _ROUTE_TYPES:
                route.route_type = _ROUTE_TYPES[tokens[0]]
                idx = 1
            if _safe_ip(tokens[idx]) is None:
                return None
            idx += 1

            while idx < len(tokens):
                tok = tokens[idx]
                nxt = tokens[idx + 1] if idx + 1 < len(tokens) else None
                if tok == "via" and nxt:
                    # "via inet6 fe80::1" appears for cross-family gateways
                    if nxt in ("inet", "inet6") and idx + 2 < len(tokens):
                        route.gateway = tokens[idx + 2]
                        idx += 3
                        continue
                    route.gateway = nxt
                    idx += 2
                elif tok == "dev" and nxt:
                    route.interface = nxt
                    idx += 2
                elif tok == "src" and nxt:
                    route.source = nxt
                    idx += 2
                elif tok in ("from", "table", "proto", "metric", "uid",
                             "pref", "mtu", "expires", "realm", "scope") and nxt:
                    idx += 2
                else:
                    if tok in ("onlink", "linkdown", "cache", "notify"):
                        route.flags.append(tok)
                    idx += 1

            if route.route_type.is_usable and route.interface is None:
                return None
            return route

        except Exception as e:
            logger.debug(f"Linux route parse error: {e}")
            return None

    @staticmethod
    def parse_route_match(raw: str, family: AddressFamily,
                          interface: str = "") -> Optional[str]:
        """
        Parse: ip -4|-6 route show match {ip}

        Sample output:
        default via 192.168.0.1 dev eth0 proto dhcp metric 100
        10.0.12.0/24 via 10.0.1.12 dev bridge1 proto static
        10.0.12.12 dev bridge1 scope link

        Returns the longest prefix as "network/len". Ties go to the
        route on `interface`.
        """
        if not raw or not raw.strip():
            return None

        best: Optional[IPv4Network | IPv6Network] = None
        best_on_iface = False

        for line in raw.splitlines():
            tokens = line.split()
            if not tokens:
                continue
            try:
                idx = 1 if tokens[0] in _ROUTE_TYPES else 0
                if idx >= len(tokens):
                    continue
                dst = tokens[idx]
                if dst == "default":
                    dst = _default_network(family)
                net = ip_network(dst, strict=False)
            except (ValueError, IndexError):
                continue

            on_iface = False
            if "dev" in tokens:
                dev_idx = tokens.index("dev")
                if dev_idx + 1 < len(tokens):
                    on_iface = tokens[dev_idx + 1] == interface

            if (best is None
                    or net.prefixlen > best.prefixlen
                    or (net.prefixlen == best.prefixlen and on_iface and not best_on_iface)):
                best = net
                best_on_iface = on_iface

        return str(best) if best is not None else None

    @staticmethod
    def parse_link(raw: str, interface: str = "") -> Optional[LinkRecord]:
        """
        Parse: ip -o link show dev {interface}

        Sample:
        5: bridge1: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc noqueue state UP \\    link/ether 02:ab:de:8c:30:01 brd ff:ff:ff:ff:ff:ff

        Or a tunnel without link address:
        7: tun0: <POINTOPOINT,MULTICAST,NOARP,UP,LOWER_UP> mtu 1500 \\    link/none
        """
        if not raw or not raw.strip():
            return None

        try:
            m = re.search(r"^\d+:\s+([^:\s]+?)(?:@\S+)?:\s", raw, re.MULTILINE)
            name = m.group(1) if m else interface
            if not name:
                return None

            mac = None
            m = re.search(r"link/(\S+)(?:\s+(\S+))?", raw)
            if m and m.group(1) != "none" and m.group(2):
                mac = _normalize_mac(m.group(2))

            return LinkRecord(interface=name, mac=mac)

        except Exception as e:
            logger.debug(f"Linux link parse error: {e}")
            return None

    @staticmethod
    def parse_addr(raw: str) -> Optional[LinkRecord]:
        """
        Parse: ip -o -4|-6 addr show dev {interface}  (or: show to {ip})

        Sample:
        5: bridge1    inet 10.0.1.1/24 brd 10.0.1.255 scope global bridge1\\       valid_lft forever preferred_lft forever
        5: bridge1    inet 10.0.1.254/24 scope global secondary bridge1\\       valid_lft forever preferred_lft forever

        Addresses are returned in output order, prefix length dropped.
        The interface is the first one listed.
        """
        if not raw or not raw.strip():
            return None

        record: Optional[LinkRecord] = None
        for m in re.finditer(
            r"^\d+:\s+(\S+?)(?:@\S+)?\s+inet6?\s+([0-9a-fA-F:.]+)(?:/\d+)?",
            raw, re.MULTILINE,
        ):
            if record is None:
                record = LinkRecord(interface=m.group(1))
            if _safe_ip(m.group(2)) is not None:
                record.addresses.append(m.group(2))

        return record

    @staticmethod
    def parse_addr_owner(raw: str, target_ip: str = "") -> Optional[LinkRecord]:
        """
        Parse: ip -o -4|-6 addr show to {ip}

        The kernel already filtered by address; the first listed
        interface owns it.
        """
        record = LinuxParser.parse_addr(raw)
        if record is None:
            return None
        if target_ip and not any(_same_ip(a, target_ip) for a in record.addresses):
            return None
        return record

    @staticmethod
    def parse_neighbor(raw: str, target_ip: str = "") -> Optional[NeighborRecord]:
        """
        Parse: ip -4|-6 neigh show to {ip} dev {interface}

        Sample:
        10.0.1.12 lladdr 02:01:32:38:b0:04 REACHABLE
        fe80::1 lladdr 02:01:32:38:b0:04 router STALE

        Or unresolved:
        10.0.1.12  FAILED
        10.0.1.12  INCOMPLETE

        Empty output = no entry at all.
        """
        if not raw or not raw.strip():
            return NeighborRecord(ip_address=target_ip, state=NeighborState.NO_ENTRY)

        try:
            for line in raw.splitlines():
                tokens = line.split()
                if not tokens:
                    continue
                if target_ip and not _same_ip(tokens[0], target_ip):
                    continue

                record = NeighborRecord(ip_address=tokens[0])
                if "dev" in tokens:
                    dev_idx = tokens.index("dev")
                    if dev_idx + 1 < len(tokens):
                        record.interface = tokens[dev_idx + 1]

                if "lladdr" in tokens:
                    ll_idx = tokens.index("lladdr")
                    if ll_idx + 1 < len(tokens):
                        record.mac = _normalize_mac(tokens[ll_idx + 1])

                if record.mac and tokens[-1] not in ("FAILED", "INCOMPLETE"):
                    record.state = NeighborState.RESOLVED
                else:
                    record.mac = None
                    record.state = NeighborState.INCOMPLETE
                return record

            return NeighborRecord(ip_address=target_ip, state=NeighborState.NO_ENTRY)

        except Exception as e:
            logger.debug(f"Linux neighbor parse error: {e}")
            return None


# ============================================================
# BSD: route(8), ifconfig(8), arp(8), ndp(8)
# ============================================================
# Same field meanings on FreeBSD, OpenBSD, NetBSD and macOS;
# the differences are cosmetic (unpadded MAC octets on macOS,
# "lladdr" vs "ether" in ifconfig, table vs sentence form in arp).

class BSDParser:
    """Parse BSD-family tool output into record dataclasses."""

    @staticmethod
    def parse_route(raw: str, family: AddressFamily) -> Optional[RouteRecord]:
        """
        Parse: route -n get -inet|-inet6 {ip}

        Sample output:
           route to: 10.0.12.12
        destination: 10.0.12.0
               mask: 255.255.255.0
            gateway: 10.0.1.12
          interface: bridge1
              flags: <UP,GATEWAY,DONE,STATIC,PRCLONING>
         recvpipe  sendpipe  ssthresh  rtt,msec    mtu        weight    expire
               0         0         0         0      1500         1         0

        Or:
        route: route has not been found
        route: writing to routing socket: not in table
        """
        if not raw or not raw.strip():
            return None

        if re.search(r"not in table|has not been found|bad address", raw, re.IGNORECASE):
            return None

        try:
            fields: dict[str, str] = {}
            for m in re.finditer(r"^\s*([a-z][a-z ]*?):\s+(\S+)", raw, re.MULTILINE):
                fields.setdefault(m.group(1).strip(), m.group(2))

            interface = fields.get("interface")
            if not interface:
                return None

            flags_str = fields.get("flags", "")
            flags = [f for f in re.split(r"[<>,]", flags_str) if f]

            route = RouteRecord(interface=interface, flags=flags)

            # Destination: "default" for the default route
            destination = fields.get("destination") or fields.get("route to")
            if destination == "default":
                destination = _default_network(family).split("/")[0]
            if destination:
                destination = _strip_scope(destination)

            mask = fields.get("mask")
            if mask == "default":
                mask = "0.0.0.0" if family is AddressFamily.IPV4 else "::"

            if family is AddressFamily.IPV6:
                # v6 prefix length is folded into the destination
                if mask:
                    plen = _mask_to_prefixlen(mask)
                elif "HOST" in flags:
                    plen = 128
                else:
                    plen = None
                route.destination = (f"{destination}/{plen}"
                                     if destination and plen is not None else destination)
                route.mask = None
            else:
                route.destination = destination
                route.mask = mask

            # Gateway: absent, link#N, a link address, or no GATEWAY flag = on-link
            gateway = fields.get("gateway")
            if gateway:
                gateway = _strip_scope(gateway)
            if (not gateway
                    or gateway.startswith("link#")
                    or gateway == interface
                    or _safe_ip(gateway) is None
                    or (flags and "GATEWAY" not in flags)):
                gateway = None
            route.gateway = gateway

            if "LOCAL" in flags and gateway is None:
                route.route_type = RouteType.LOCAL
            elif "REJECT" in flags:
                route.route_type = RouteType.UNREACHABLE
            elif "BLACKHOLE" in flags:
                route.route_type = RouteType.BLACKHOLE

            return route

        except Exception as e:
            logger.debug(f"BSD route parse error: {e}")
            return None

    @staticmethod
    def parse_ifconfig(raw: str, interface: str = "") -> Optional[LinkRecord]:
        """
        Parse: ifconfig {interface}

        Sample:
        bridge1: flags=8843<UP,BROADCAST,RUNNING,SIMPLEX,MULTICAST> metric 0 mtu 1500
                ether 02:ab:de:8c:30:01
                inet 10.0.1.1 netmask 0xffffff00 broadcast 10.0.1.255
                inet6 fe80::ab:deff:fe8c:3001%bridge1 prefixlen 64 scopeid 0x5
                inet6 2001:db8:1::1 prefixlen 64

        OpenBSD says "lladdr", NetBSD says "address:".
        """
        if not raw or not raw.strip():
            return None

        try:
            m = re.match(r"^(\S+?):\s+flags=", raw.lstrip())
            name = m.group(1) if m else interface
            if not name:
                return None

            record = LinkRecord(interface=name)

            m = re.search(r"^\s+(?:ether|lladdr|address:)\s+([0-9a-fA-F:.\-]+)",
                          raw, re.MULTILINE)
            if m:
                record.mac = _normalize_mac(m.group(1))

            for m in re.finditer(r"^\s+inet6?\s+(\S+)", raw, re.MULTILINE):
                addr = _strip_scope(m.group(1)).split("/", 1)[0]
                if _safe_ip(addr) is not None:
                    record.addresses.append(addr)

            return record

        except Exception as e:
            logger.debug(f"BSD ifconfig parse error: {e}")
            return None

    @staticmethod
    def parse_ifconfig_owner(raw: str, target_ip: str = "") -> Optional[LinkRecord]:
        """
        Parse: ifconfig -a, returning the interface that owns target_ip.

        Each interface block starts in column 0; its address lines are
        indented.
        """
        if not raw or not raw.strip():
            return None

        blocks: list[str] = []
        for line in raw.splitlines():
            if line and not line[0].isspace():
                blocks.append(line)
            elif blocks:
                blocks[-1] += "\n" + line

        for block in blocks:
            record = BSDParser.parse_ifconfig(block)
            if record is None:
                continue
            if any(_same_ip(addr, target_ip) for addr in record.addresses):
                return record
        return None

    @staticmethod
    def parse_arp(raw: str, target_ip: str = "") -> Optional[NeighborRecord]:
        """
        Parse: arp -n {ip}

        Sample (FreeBSD, macOS):
        ? (10.0.1.12) at 02:01:32:38:b0:04 on bridge1 expires in 1187 seconds [ethernet]
        ? (10.0.1.12) at (incomplete) on bridge1 [ethernet]
        10.0.1.12 (10.0.1.12) -- no entry

        Sample (OpenBSD, table form):
        Host                                 Ethernet Address    Netif Expire    Flags
        10.0.1.12                            02:01:32:38:b0:04    em0 19m59s
        """
        if not raw or not raw.strip():
            return NeighborRecord(ip_address=target_ip, state=NeighborState.NO_ENTRY)

        if re.search(r"no entry|no match found", raw, re.IGNORECASE):
            return NeighborRecord(ip_address=target_ip, state=NeighborState.NO_ENTRY)

        try:
            for m in re.finditer(r"\(([0-9a-fA-F:.%\w]+)\)\s+at\s+(\S+)(?:\s+on\s+(\S+))?", raw):
                if target_ip and not _same_ip(m.group(1), target_ip):
                    continue
                mac = _normalize_mac(m.group(2))
                return NeighborRecord(
                    ip_address=_strip_scope(m.group(1)),
                    mac=mac,
                    state=NeighborState.RESOLVED if mac else NeighborState.INCOMPLETE,
                    interface=m.group(3),
                )

            return BSDParser._parse_neighbor_table(raw, target_ip)

        except Exception as e:
            logger.debug(f"BSD ARP parse error: {e}")
            return None

    @staticmethod
    def parse_ndp(raw: str, target_ip: str = "") -> Optional[NeighborRecord]:
        """
        Parse: ndp -n {ip}

        Sample:
        Neighbor                             Linklayer Address  Netif Expire    S Flags
        2001:db8:1::12                       2:1:32:38:b0:4     bridge1 23h59m58s S R

        Or:
        2001:db8:1::12 (2001:db8:1::12) -- no entry
        """
        if not raw or not raw.strip():
            return NeighborRecord(ip_address=target_ip, state=NeighborState.NO_ENTRY)

        if re.search(r"no entry", raw, re.IGNORECASE):
            return NeighborRecord(ip_address=target_ip, state=NeighborState.NO_ENTRY)

        try:
            return BSDParser._parse_neighbor_table(raw, target_ip)
        except Exception as e:
            logger.debug(f"BSD NDP parse error: {e}")
            return None

    @staticmethod
    def _parse_neighbor_table(raw: str, target_ip: str) -> NeighborRecord:
        """Rows of: address  link-address  netif  ... (header lines skipped)."""
        for line in raw.splitlines():
            tokens = line.split()
            if len(tokens) < 2 or _safe_ip(tokens[0]) is None:
                continue
            if target_ip and not _same_ip(tokens[0], target_ip):
                continue
            mac = _normalize_mac(tokens[1])
            return NeighborRecord(
                ip_address=_strip_scope(tokens[0]),
                mac=mac,
                state=NeighborState.RESOLVED if mac else NeighborState.INCOMPLETE,
                interface=tokens[2] if len(tokens) > 2 else None,
            )
        return NeighborRecord(ip_address=target_ip, state=NeighborState.NO_ENTRY)


# ============================================================
# Parser Registry: dispatch by platform and data type
# ============================================================

# Data types that can be parsed
PARSE_ROUTE = "route"
PARSE_ROUTE_MATCH = "route_match"       # Linux only: covering prefix
PARSE_LINK = "link"
PARSE_ADDR = "addr"
PARSE_ADDR_OWNER = "addr_owner"         # which interface holds a local address
PARSE_ARP = "arp"
PARSE_ND = "nd"                         # Neighbor Discovery (IPv6 ARP equivalent)

# Registry: (Platform, data_type) → parser callable
# Route parsers take (raw_output, family)
# Link parsers take (raw_output, interface)
# Neighbor parsers take (raw_output, target_ip)

_PARSER_REGISTRY: dict[tuple[Platform, str], Callable] = {
    # Linux
    (Platform.LINUX, PARSE_ROUTE):        LinuxParser.parse_route,
    (Platform.LINUX, PARSE_ROUTE_MATCH):  LinuxParser.parse_route_match,
    (Platform.LINUX, PARSE_LINK):         LinuxParser.parse_link,
    (Platform.LINUX, PARSE_ADDR):         LinuxParser.parse_addr,
    (Platform.LINUX, PARSE_ADDR_OWNER):   LinuxParser.parse_addr_owner,
    (Platform.LINUX, PARSE_ARP):          LinuxParser.parse_neighbor,
    (Platform.LINUX, PARSE_ND):           LinuxParser.parse_neighbor,

    # BSD family
    (Platform.BSD, PARSE_ROUTE):       BSDParser.parse_route,
    (Platform.BSD, PARSE_LINK):        BSDParser.parse_ifconfig,
    (Platform.BSD, PARSE_ADDR_OWNER):  BSDParser.parse_ifconfig_owner,
    (Platform.BSD, PARSE_ARP):         BSDParser.parse_arp,
    (Platform.BSD, PARSE_ND):          BSDParser.parse_ndp,
}


def get_parser(platform: Platform, data_type: str) -> Optional[Callable]:
    """
    Get the parser function for a platform and data type.

    Returns None if no parser is registered; the caller should fall back
    or record a diagnostic.
    """
    return _PARSER_REGISTRY.get((platform, data_type))


def get_parser_name(platform: Platform, data_type: str) -> str:
    """Human-readable parser name for diagnostics."""
    parser = get_parser(platform, data_type)
    if parser is None:
        return "none"
    return parser.__qualname__

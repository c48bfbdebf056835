"""
pathdraw: Route Resolver

One lookup per endpoint, three questions each:
    1. Route?      → egress interface, gateway, destination network
    2. Interface?  → link address, first address of the right family
    3. Neighbor?   → ARP/NDP entry for the gateway (or the endpoint itself
                     when it is on-link)

The platform difference lives entirely in RouteQuery subclasses:
    LinuxRouteQuery: iproute2
    BSDRouteQuery: route(8), ifconfig(8), arp(8), ndp(8)

Both return the same frozen ResolvedRoute. Nothing is cached between
calls and every command runs exactly once; a failed route lookup is
fatal, a missing neighbor entry is only a warning.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from ipaddress import ip_address, IPv6Address
from typing import Callable, Optional
import logging
import shlex
import subprocess
import tempfile
import time
import warnings

from .models import (
    AddressFamily, DIRECT, EMPTY,
    RouteRecord, RouteType, LinkRecord, NeighborRecord,
    ResolvedRoute, RoutePair, family_of,
)
from .commands_and_parsers import (
    Platform, CommandSet, detect_platform, get_command_set,
)
from .parsers import (
    get_parser, get_parser_name,
    PARSE_ROUTE, PARSE_ROUTE_MATCH, PARSE_LINK, PARSE_ADDR,
    PARSE_ADDR_OWNER, PARSE_ARP, PARSE_ND,
)
from .diagnostics import (
    CommandRecord, CommandStatus, ResolveDiagnostic, RunDiagnostic,
    parse_with_diagnostics,
)
from .errors import (
    InputError, RouteNotFoundError, UnsupportedPlatformError,
    UnresolvedNeighborWarning,
)

logger = logging.getLogger("pathdraw.resolver")


# ============================================================
# Command Execution
# ============================================================

@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str = ""


CommandRunner = Callable[[list[str]], CommandResult]


def run_command(argv: list[str]) -> CommandResult:
    """
    Run one read-only query. stdout is captured into an anonymous
    temporary file that is closed and removed on every exit path.
    """
    with tempfile.TemporaryFile(mode="w+", prefix="pathdraw-") as capture:
        try:
            proc = subprocess.run(
                argv,
                stdout=capture,
                stderr=subprocess.PIPE,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(returncode=127, stdout="", stderr=str(e))
        capture.seek(0)
        return CommandResult(
            returncode=proc.returncode,
            stdout=capture.read(),
            stderr=proc.stderr or "",
        )


# ============================================================
# Resolver Configuration
# ============================================================

@dataclass
class ResolverConfig:
    platform: Platform
    runner: CommandRunner = run_command  # swapped for a scripted runner in tests


# ============================================================
# Input validation: before any query is issued
# ============================================================

def validate_pair(source: str, destination: str) -> AddressFamily:
    """
    Reject malformed, identical or mixed-family addresses.
    Returns the shared address family.
    """
    try:
        src = ip_address(source.strip())
    except ValueError:
        raise InputError(f"Invalid source address: {source}",
                         suggestion="Use a plain IPv4 or IPv6 address, no prefix length.")
    try:
        dst = ip_address(destination.strip())
    except ValueError:
        raise InputError(f"Invalid destination address: {destination}",
                         suggestion="Use a plain IPv4 or IPv6 address, no prefix length.")

    if src.version != dst.version:
        raise InputError(
            f"Address families differ: {source} is IPv{src.version}, "
            f"{destination} is IPv{dst.version}",
            suggestion="Source and destination must both be IPv4 or both IPv6.",
        )
    if src == dst:
        raise InputError(
            f"Source and destination are the same address: {source}",
            suggestion="Give two different addresses.",
        )
    return family_of(src)


# ============================================================
# RouteQuery: one capability, two dialects
# ============================================================

class RouteQuery(ABC):
    """
    Resolve one endpoint into a ResolvedRoute.

    Usage:
        query = get_route_query()
        route = query.resolve("10.0.12.12", AddressFamily.IPV4)

        # route.interface, route.gateway ("direct" when on-link),
        # route.neighbor_mac ("empty" when unresolved)
    """

    platform: Platform = Platform.UNKNOWN

    def __init__(self, config: Optional[ResolverConfig] = None):
        self.config = config or ResolverConfig(platform=self.platform)
        self.commands: CommandSet = get_command_set(self.platform)

    # ────────────────────────────────────────────
    # Public
    # ────────────────────────────────────────────

    def resolve(self, ip: str, family: AddressFamily,
                diagnostic: Optional[ResolveDiagnostic] = None) -> ResolvedRoute:
        diag = diagnostic or ResolveDiagnostic(endpoint=ip, role="endpoint")

        # ── 1. Route lookup ──
        route = self._lookup_route(ip, family, diag)

        interface = route.interface
        owner: Optional[LinkRecord] = None
        if self._is_local_route(route, ip):
            owner = self._lookup_owner(ip, family, diag)
            if owner is not None:
                interface = owner.interface
                logger.info(f"[{ip}] Local address, owned by {interface}")

        network = self._destination_network(ip, family, route, interface, diag)

        # ── 2. Interface ──
        link = self._lookup_interface(interface, family, diag)
        interface_ip = self._pick_address(ip, family, link, route, owner)

        resolved = ResolvedRoute(
            ip=ip,
            family=family,
            interface=interface,
            interface_ip=interface_ip,
            network=network,
            gateway=route.gateway or DIRECT,
            interface_mac=link.mac if link else None,
            mask=route.mask,
        )

        # ── 3. Neighbor ──
        # A local endpoint is the device itself, with no next hop to resolve
        if not resolved.is_local:
            neighbor_mac = self._lookup_neighbor(resolved.next_hop, interface, family, diag)
            resolved = replace(resolved, neighbor_mac=neighbor_mac)

        diag.outcome = (
            f"{resolved.interface} via {resolved.gateway} "
            f"({self._neighbor_label(family)} {resolved.neighbor_mac})"
        )
        logger.info(f"[{ip}] {diag.outcome}")
        return resolved

    # ────────────────────────────────────────────
    # The three questions
    # ────────────────────────────────────────────

    def _lookup_route(self, ip: str, family: AddressFamily,
                      diag: ResolveDiagnostic) -> RouteRecord:
        template = self.commands.for_family("route_get", family)
        record = self._execute(diag, template, ip=ip)

        if record.status != CommandStatus.SUCCESS:
            reason = record.error_message.strip() or record.status.value
            raise RouteNotFoundError(ip, reason=reason)

        route: Optional[RouteRecord] = self._parse(
            record, PARSE_ROUTE, lambda raw: get_parser(self.platform, PARSE_ROUTE)(raw, family)
        )
        if route is None:
            raise RouteNotFoundError(ip, reason="no route in lookup output")
        if not route.route_type.is_usable:
            raise RouteNotFoundError(ip, reason=f"{route.route_type.value} route")
        return route

    def _lookup_owner(self, ip: str, family: AddressFamily,
                      diag: ResolveDiagnostic) -> Optional[LinkRecord]:
        template = self.commands.for_family("addr_owner", family)
        if not template:
            return None
        record = self._execute(diag, template, ip=ip)
        if record.status != CommandStatus.SUCCESS:
            return None
        return self._parse(
            record, PARSE_ADDR_OWNER,
            lambda raw: get_parser(self.platform, PARSE_ADDR_OWNER)(raw, ip),
        )

    def _destination_network(self, ip: str, family: AddressFamily,
                             route: RouteRecord, interface: str,
                             diag: ResolveDiagnostic) -> str:
        return route.destination or f"{ip}/{family.host_bits}"

    @abstractmethod
    def _lookup_interface(self, interface: str, family: AddressFamily,
                          diag: ResolveDiagnostic) -> Optional[LinkRecord]:
        """Link address and configured addresses of interface, or None."""

    def _lookup_neighbor(self, next_hop: str, interface: str,
                         family: AddressFamily, diag: ResolveDiagnostic) -> str:
        """Link address of next_hop, or EMPTY (with a warning)."""
        template = self.commands.for_family("neighbor", family)
        data_type = PARSE_ND if family is AddressFamily.IPV6 else PARSE_ARP
        target = self._neighbor_target(next_hop, interface)
        record = self._execute(diag, template, ip=target, interface=interface)

        # arp(8) exits 1 on "no entry" but still says so on stdout
        neighbor: Optional[NeighborRecord] = None
        if record.status != CommandStatus.NOT_FOUND:
            neighbor = self._parse(
                record, data_type,
                lambda raw: get_parser(self.platform, data_type)(raw, next_hop),
            )

        if neighbor is not None and neighbor.is_resolved:
            return neighbor.mac

        state = neighbor.state.value if neighbor else "lookup failed"
        diag.warnings.append(f"No {self._neighbor_label(family)} entry for {next_hop} ({state})")
        warnings.warn(UnresolvedNeighborWarning(next_hop, interface), stacklevel=2)
        return EMPTY

    # ────────────────────────────────────────────
    # Platform hooks
    # ────────────────────────────────────────────

    def _is_local_route(self, route: RouteRecord, ip: str) -> bool:
        return route.route_type == RouteType.LOCAL

    def _neighbor_target(self, next_hop: str, interface: str) -> str:
        return next_hop

    @staticmethod
    def _neighbor_label(family: AddressFamily) -> str:
        return family.neighbor_label

    # ────────────────────────────────────────────
    # Helpers
    # ────────────────────────────────────────────

    @staticmethod
    def _pick_address(ip: str, family: AddressFamily,
                      link: Optional[LinkRecord], route: RouteRecord,
                      owner: Optional[LinkRecord]) -> str:
        """
        First address of the right family on the interface. v6 link-local
        addresses only win when there is nothing else.
        """
        candidates: list[str] = []
        for record in (owner, link):
            if record is None:
                continue
            for addr in record.addresses:
                try:
                    if family_of(addr) is family:
                        candidates.append(addr)
                except ValueError:
                    continue

        # A local endpoint is its own interface address
        for addr in candidates:
            if ip_address(addr) == ip_address(ip):
                return addr

        for addr in candidates:
            parsed = ip_address(addr)
            if not (isinstance(parsed, IPv6Address) and parsed.is_link_local):
                return addr
        if candidates:
            return candidates[0]

        if route.source:
            return route.source
        return "0.0.0.0" if family is AddressFamily.IPV4 else "::"

    def _execute(self, diag: ResolveDiagnostic, template: str, **fields) -> CommandRecord:
        """Format, run and record one command. Never raises."""
        command = template.format(**fields)
        record = CommandRecord(
            endpoint=diag.endpoint,
            platform=self.platform.value,
            command=command,
        )
        diag.commands.append(record)

        start = time.monotonic()
        try:
            result = self.config.runner(shlex.split(command))
        except OSError as e:
            logger.error(f"Command failed: {command}: {e}")
            record.status = CommandStatus.ERROR
            record.error_message = str(e)
            return record
        finally:
            record.duration_ms = (time.monotonic() - start) * 1000
            record.timestamp = datetime.now()

        record.return_code = result.returncode
        record.raw_output = result.stdout
        record.error_message = result.stderr

        if result.returncode == 127:
            record.status = CommandStatus.NOT_FOUND
        elif result.returncode != 0:
            record.status = CommandStatus.ERROR
        elif not result.stdout.strip():
            record.status = CommandStatus.EMPTY
        else:
            record.status = CommandStatus.SUCCESS

        logger.debug(
            f"[{diag.endpoint}] {command} → rc={result.returncode} "
            f"({len(result.stdout.splitlines())} lines, {record.duration_ms:.0f}ms)"
        )
        return record

    def _parse(self, record: CommandRecord, data_type: str, parser_func):
        return parse_with_diagnostics(
            record,
            parser_func=parser_func,
            parser_name=get_parser_name(self.platform, data_type),
            logger=logger,
        )


class LinuxRouteQuery(RouteQuery):
    """iproute2: one command per question, keyword/value output."""

    platform = Platform.LINUX

    def _destination_network(self, ip: str, family: AddressFamily,
                             route: RouteRecord, interface: str,
                             diag: ResolveDiagnostic) -> str:
        # "ip route get" never prints the matched prefix; the covering
        # routes do, prefix length folded into the destination.
        template = self.commands.for_family("route_match", family)
        record = self._execute(diag, template, ip=ip)
        network = None
        if record.status == CommandStatus.SUCCESS:
            network = self._parse(
                record, PARSE_ROUTE_MATCH,
                lambda raw: get_parser(self.platform, PARSE_ROUTE_MATCH)(raw, family, interface),
            )
        return network or f"{ip}/{family.host_bits}"

    def _lookup_interface(self, interface: str, family: AddressFamily,
                          diag: ResolveDiagnostic) -> Optional[LinkRecord]:
        link_record = self._execute(diag, self.commands.link_show, interface=interface)
        link: Optional[LinkRecord] = None
        if link_record.status == CommandStatus.SUCCESS:
            link = self._parse(
                link_record, PARSE_LINK,
                lambda raw: get_parser(self.platform, PARSE_LINK)(raw, interface),
            )

        addr_template = self.commands.for_family("addr_show", family)
        addr_record = self._execute(diag, addr_template, interface=interface)
        addrs: Optional[LinkRecord] = None
        if addr_record.status == CommandStatus.SUCCESS:
            addrs = self._parse(
                addr_record, PARSE_ADDR,
                lambda raw: get_parser(self.platform, PARSE_ADDR)(raw),
            )

        if link is None and addrs is None:
            return None
        merged = LinkRecord(interface=interface, mac=link.mac if link else None)
        if addrs is not None:
            merged.addresses = list(addrs.addresses)
        return merged


class BSDRouteQuery(RouteQuery):
    """route(8) + ifconfig(8) + arp(8)/ndp(8)."""

    platform = Platform.BSD

    def _is_local_route(self, route: RouteRecord, ip: str) -> bool:
        if route.route_type == RouteType.LOCAL:
            return True
        # Own addresses route through the loopback interface
        return (route.interface or "").startswith("lo") and not ip_address(ip).is_loopback

    def _lookup_interface(self, interface: str, family: AddressFamily,
                          diag: ResolveDiagnostic) -> Optional[LinkRecord]:
        # One ifconfig answers both the link address and the addresses
        record = self._execute(diag, self.commands.link_show, interface=interface)
        if record.status != CommandStatus.SUCCESS:
            return None
        return self._parse(
            record, PARSE_LINK,
            lambda raw: get_parser(self.platform, PARSE_LINK)(raw, interface),
        )

    def _neighbor_target(self, next_hop: str, interface: str) -> str:
        # ndp needs the zone for link-local neighbors
        addr = ip_address(next_hop)
        if isinstance(addr, IPv6Address) and addr.is_link_local and "%" not in next_hop:
            return f"{next_hop}%{interface}"
        return next_hop


_ROUTE_QUERIES: dict[Platform, type[RouteQuery]] = {
    Platform.LINUX: LinuxRouteQuery,
    Platform.BSD: BSDRouteQuery,
}


def get_route_query(platform: Optional[Platform] = None,
                    runner: Optional[CommandRunner] = None) -> RouteQuery:
    """
    Pick the RouteQuery for this host (or an explicit platform).
    Unknown operating systems fail here, before any command runs.
    """
    system = ""
    if platform is None:
        platform, system = detect_platform()
    query_cls = _ROUTE_QUERIES.get(platform)
    if query_cls is None:
        raise UnsupportedPlatformError(system or platform.value)

    config = ResolverConfig(platform=platform)
    if runner is not None:
        config.runner = runner
    return query_cls(config)


# ============================================================
# Module-level entry points
# ============================================================

def resolve(ip: str, family: AddressFamily,
            query: Optional[RouteQuery] = None) -> ResolvedRoute:
    """resolve(ip, family) → ResolvedRoute on the running host."""
    query = query or get_route_query()
    return query.resolve(ip, family)


def resolve_pair(source: str, destination: str,
                 query: Optional[RouteQuery] = None,
                 diagnostic: Optional[RunDiagnostic] = None) -> RoutePair:
    """
    Validate, then resolve source and destination in that order.
    Validation failures happen before any command is run.
    """
    family = validate_pair(source, destination)
    query = query or get_route_query()

    diag = diagnostic or RunDiagnostic(source=source, destination=destination)
    diag.platform = query.platform.value
    diag.started_at = diag.started_at or datetime.now()

    routes = []
    for role, ip in (("source", source.strip()), ("destination", destination.strip())):
        endpoint_diag = ResolveDiagnostic(endpoint=ip, role=role)
        diag.endpoints.append(endpoint_diag)
        routes.append(query.resolve(ip, family, endpoint_diag))

    diag.completed_at = datetime.now()
    return RoutePair(source=routes[0], destination=routes[1])

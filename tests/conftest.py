"""Shared fixtures: scripted command output and resolved-route builders."""

import pytest

from pathdraw.commands_and_parsers import Platform
from pathdraw.models import AddressFamily, DIRECT, EMPTY, ResolvedRoute, RoutePair
from pathdraw.resolver import (
    BSDRouteQuery, CommandResult, LinuxRouteQuery, ResolverConfig,
)


class ScriptedRunner:
    """Answers commands from a dict keyed by the full command line."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def __call__(self, argv):
        command = " ".join(argv)
        self.calls.append(command)
        response = self.responses.get(command)
        if response is None:
            return CommandResult(returncode=1, stdout="", stderr=f"unscripted: {command}")
        if isinstance(response, CommandResult):
            return response
        return CommandResult(returncode=0, stdout=response)


# ── Linux router: bridge1 (10.0.1.1) towards two routed LANs ──

LINUX_LINK_BRIDGE1 = (
    "5: bridge1: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc noqueue state UP "
    "mode DEFAULT group default qlen 1000\\    link/ether 02:ab:de:8c:30:01 "
    "brd ff:ff:ff:ff:ff:ff\n"
)
LINUX_ADDR_BRIDGE1 = (
    "5: bridge1    inet 10.0.1.1/24 brd 10.0.1.255 scope global bridge1\\"
    "       valid_lft forever preferred_lft forever\n"
)

LINUX_OUTPUT = {
    "ip -4 route get 10.0.11.11":
        "10.0.11.11 via 10.0.1.11 dev bridge1 src 10.0.1.1 uid 0 \n    cache \n",
    "ip -4 route show match 10.0.11.11":
        "default via 192.168.0.1 dev eth0 proto dhcp metric 100 \n"
        "10.0.11.0/24 via 10.0.1.11 dev bridge1 proto static \n",
    "ip -4 neigh show to 10.0.1.11 dev bridge1":
        "10.0.1.11 lladdr 02:01:32:38:b0:03 REACHABLE\n",

    "ip -4 route get 10.0.12.12":
        "10.0.12.12 via 10.0.1.12 dev bridge1 src 10.0.1.1 uid 0 \n    cache \n",
    "ip -4 route show match 10.0.12.12":
        "default via 192.168.0.1 dev eth0 proto dhcp metric 100 \n"
        "10.0.12.0/24 via 10.0.1.12 dev bridge1 proto static \n",
    "ip -4 neigh show to 10.0.1.12 dev bridge1":
        "10.0.1.12 lladdr 02:01:32:38:b0:04 REACHABLE\n",

    # The router's own address
    "ip -4 route get 10.0.1.1":
        "local 10.0.1.1 dev lo table local src 10.0.1.1 uid 0 \n    cache <local> \n",
    "ip -o -4 addr show to 10.0.1.1": LINUX_ADDR_BRIDGE1,
    "ip -4 route show match 10.0.1.1":
        "10.0.1.0/24 dev bridge1 proto kernel scope link src 10.0.1.1 \n",

    # On-link host with a stale, failed neighbor entry
    "ip -4 route get 10.0.1.50":
        "10.0.1.50 dev bridge1 src 10.0.1.1 uid 0 \n    cache \n",
    "ip -4 route show match 10.0.1.50":
        "10.0.1.0/24 dev bridge1 proto kernel scope link src 10.0.1.1 \n",
    "ip -4 neigh show to 10.0.1.50 dev bridge1": "10.0.1.50  FAILED\n",

    # Unreachable
    "ip -4 route get 10.9.9.9": CommandResult(
        returncode=2, stdout="", stderr="RTNETLINK answers: Network is unreachable\n"),
    "ip -4 route get 10.6.6.6": "blackhole 10.6.6.6 table main \n",

    "ip -o link show dev bridge1": LINUX_LINK_BRIDGE1,
    "ip -o -4 addr show dev bridge1": LINUX_ADDR_BRIDGE1,
}


# ── BSD router: same topology, route(8)/ifconfig(8)/arp(8) dialect ──

BSD_IFCONFIG_BRIDGE1 = (
    "bridge1: flags=8843<UP,BROADCAST,RUNNING,SIMPLEX,MULTICAST> metric 0 mtu 1500\n"
    "\tether 2:ab:de:8c:30:1\n"
    "\tinet 10.0.1.1 netmask 0xffffff00 broadcast 10.0.1.255\n"
    "\tinet6 fe80::ab:deff:fe8c:3001%bridge1 prefixlen 64 scopeid 0x5\n"
    "\tinet6 2001:db8:1::1 prefixlen 64\n"
    "\tstatus: active\n"
)

BSD_OUTPUT = {
    "route -n get -inet 10.0.12.12": (
        "   route to: 10.0.12.12\n"
        "destination: 10.0.12.0\n"
        "       mask: 255.255.255.0\n"
        "    gateway: 10.0.1.12\n"
        "        fib: 0\n"
        "  interface: bridge1\n"
        "      flags: <UP,GATEWAY,DONE,STATIC>\n"
        " recvpipe  sendpipe  ssthresh  rtt,msec    mtu        weight    expire\n"
        "       0         0         0         0      1500         1         0\n"
    ),
    "arp -n 10.0.1.12":
        "? (10.0.1.12) at 2:1:32:38:b0:4 on bridge1 expires in 1187 seconds [ethernet]\n",

    "route -n get -inet 10.0.1.50": (
        "   route to: 10.0.1.50\n"
        "destination: 10.0.1.0\n"
        "       mask: 255.255.255.0\n"
        "        fib: 0\n"
        "  interface: bridge1\n"
        "      flags: <UP,DONE,PINNED>\n"
    ),
    "arp -n 10.0.1.50": CommandResult(
        returncode=1, stdout="10.0.1.50 (10.0.1.50) -- no entry\n"),

    "route -n get -inet6 2001:db8:12::12": (
        "   route to: 2001:db8:12::12\n"
        "destination: 2001:db8:12::\n"
        "       mask: ffff:ffff:ffff:ffff::\n"
        "    gateway: fe80::1%bridge1\n"
        "  interface: bridge1\n"
        "      flags: <UP,GATEWAY,DONE,STATIC>\n"
    ),
    "ndp -n fe80::1%bridge1": (
        "Neighbor                             Linklayer Address  Netif Expire    S Flags\n"
        "fe80::1%bridge1                      2:1:32:38:b0:4     bridge1 23h59m58s S R\n"
    ),

    # Own address: routed through the loopback interface
    "route -n get -inet 10.0.1.1": (
        "   route to: 10.0.1.1\n"
        "destination: 10.0.1.1\n"
        "        fib: 0\n"
        "  interface: lo0\n"
        "      flags: <UP,HOST,DONE,STATIC,PINNED>\n"
    ),
    "ifconfig -a": (
        "lo0: flags=8049<UP,LOOPBACK,RUNNING,MULTICAST> metric 0 mtu 16384\n"
        "\tinet 127.0.0.1 netmask 0xff000000\n"
        "\tinet6 ::1 prefixlen 128\n"
        + BSD_IFCONFIG_BRIDGE1
    ),

    "route -n get -inet 10.9.9.9":
        "route: route has not been found\n",

    "ifconfig bridge1": BSD_IFCONFIG_BRIDGE1,
}


@pytest.fixture
def linux_runner():
    return ScriptedRunner(dict(LINUX_OUTPUT))


@pytest.fixture
def linux_query(linux_runner):
    return LinuxRouteQuery(ResolverConfig(platform=Platform.LINUX, runner=linux_runner))


@pytest.fixture
def bsd_runner():
    return ScriptedRunner(dict(BSD_OUTPUT))


@pytest.fixture
def bsd_query(bsd_runner):
    return BSDRouteQuery(ResolverConfig(platform=Platform.BSD, runner=bsd_runner))


def make_route(ip, gateway=DIRECT, neighbor_mac=EMPTY, interface="bridge1",
               interface_ip="10.0.1.1", network="10.0.11.0", mask="255.255.255.0",
               interface_mac="02:ab:de:8c:30:01", family=None):
    if family is None:
        family = AddressFamily.IPV6 if ":" in ip else AddressFamily.IPV4
    return ResolvedRoute(
        ip=ip,
        family=family,
        interface=interface,
        interface_ip=interface_ip,
        network=network,
        gateway=gateway,
        neighbor_mac=neighbor_mac,
        interface_mac=interface_mac,
        mask=mask,
    )


@pytest.fixture
def two_gateway_pair():
    """10.0.11.11 and 10.0.12.12 behind two routers on bridge1."""
    return RoutePair(
        source=make_route("10.0.11.11", gateway="10.0.1.11",
                          neighbor_mac="02:01:32:38:b0:03"),
        destination=make_route("10.0.12.12", gateway="10.0.1.12",
                               neighbor_mac="02:01:32:38:b0:04",
                               network="10.0.12.0"),
    )

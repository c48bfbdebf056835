"""Tests for the Linux and BSD command output parsers."""

from pathdraw.commands_and_parsers import Platform
from pathdraw.models import AddressFamily, NeighborState, RouteType
from pathdraw.parsers import (
    BSDParser, LinuxParser, PARSE_ARP, PARSE_LINK, PARSE_ND, PARSE_ROUTE,
    PARSE_ROUTE_MATCH, _normalize_mac, get_parser, get_parser_name,
)

from conftest import BSD_IFCONFIG_BRIDGE1, BSD_OUTPUT, LINUX_LINK_BRIDGE1, LINUX_OUTPUT


V4 = AddressFamily.IPV4
V6 = AddressFamily.IPV6


class TestNormalizeMac:

    def test_colon_form(self):
        assert _normalize_mac("02:AB:DE:8C:30:01") == "02:ab:de:8c:30:01"

    def test_bsd_unpadded_octets(self):
        assert _normalize_mac("2:1:32:38:b0:4") == "02:01:32:38:b0:04"

    def test_dotted_and_dashed(self):
        assert _normalize_mac("0201.3238.b004") == "02:01:32:38:b0:04"
        assert _normalize_mac("02-01-32-38-B0-04") == "02:01:32:38:b0:04"

    def test_garbage(self):
        assert _normalize_mac("(incomplete)") is None
        assert _normalize_mac("") is None


class TestLinuxRoute:

    def test_gateway_route(self):
        route = LinuxParser.parse_route(LINUX_OUTPUT["ip -4 route get 10.0.12.12"], V4)
        assert route.route_type == RouteType.UNICAST
        assert route.gateway == "10.0.1.12"
        assert route.interface == "bridge1"
        assert route.source == "10.0.1.1"
        assert "cache" in route.flags

    def test_on_link_route_has_no_gateway(self):
        route = LinuxParser.parse_route(LINUX_OUTPUT["ip -4 route get 10.0.1.50"], V4)
        assert route.is_direct
        assert route.interface == "bridge1"

    def test_local_route(self):
        route = LinuxParser.parse_route(LINUX_OUTPUT["ip -4 route get 10.0.1.1"], V4)
        assert route.route_type == RouteType.LOCAL
        assert route.interface == "lo"

    def test_blackhole_route_is_not_usable(self):
        route = LinuxParser.parse_route(LINUX_OUTPUT["ip -4 route get 10.6.6.6"], V4)
        assert route.route_type == RouteType.BLACKHOLE
        assert not route.route_type.is_usable

    def test_v6_route_with_from(self):
        raw = ("2001:db8:12::12 from :: via fe80::1 dev eth0 proto static "
               "src 2001:db8::1 metric 1024 pref medium\n")
        route = LinuxParser.parse_route(raw, V6)
        assert route.gateway == "fe80::1"
        assert route.interface == "eth0"
        assert route.source == "2001:db8::1"

    def test_cross_family_gateway(self):
        raw = "10.0.12.12 via inet6 fe80::1 dev eth0 src 10.0.1.1 uid 0\n"
        route = LinuxParser.parse_route(raw, V4)
        assert route.gateway == "fe80::1"
        assert route.interface == "eth0"

    def test_rtnetlink_error(self):
        assert LinuxParser.parse_route("RTNETLINK answers: Network is unreachable", V4) is None

    def test_empty(self):
        assert LinuxParser.parse_route("", V4) is None
        assert LinuxParser.parse_route("   \n", V4) is None


class TestLinuxRouteMatch:

    def test_longest_prefix_wins(self):
        raw = LINUX_OUTPUT["ip -4 route show match 10.0.12.12"]
        assert LinuxParser.parse_route_match(raw, V4, "bridge1") == "10.0.12.0/24"

    def test_default_only(self):
        raw = "default via 192.168.0.1 dev eth0 proto dhcp metric 100\n"
        assert LinuxParser.parse_route_match(raw, V4, "eth0") == "0.0.0.0/0"

    def test_tie_prefers_egress_interface(self):
        raw = ("10.0.12.0/24 dev eth0 proto kernel scope link\n"
               "10.0.12.0/24 dev bridge1 proto static metric 200\n")
        assert LinuxParser.parse_route_match(raw, V4, "bridge1") == "10.0.12.0/24"

    def test_host_route(self):
        raw = "2001:db8:12::12 dev eth0 proto static metric 1024\n"
        assert LinuxParser.parse_route_match(raw, V6, "eth0") == "2001:db8:12::12/128"

    def test_typed_route(self):
        raw = "unreachable 10.0.0.0/8 metric 9999\n10.0.12.0/24 dev bridge1\n"
        assert LinuxParser.parse_route_match(raw, V4, "bridge1") == "10.0.12.0/24"


class TestLinuxLinkAndAddr:

    def test_link_ether(self):
        link = LinuxParser.parse_link(LINUX_LINK_BRIDGE1, "bridge1")
        assert link.interface == "bridge1"
        assert link.mac == "02:ab:de:8c:30:01"

    def test_link_none(self):
        raw = "7: tun0: <POINTOPOINT,MULTICAST,NOARP,UP,LOWER_UP> mtu 1500 \\    link/none \n"
        link = LinuxParser.parse_link(raw, "tun0")
        assert link.interface == "tun0"
        assert link.mac is None

    def test_vlan_suffix_stripped(self):
        raw = ("9: eth0.100@eth0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 \\"
               "    link/ether 02:00:00:00:01:00 brd ff:ff:ff:ff:ff:ff\n")
        assert LinuxParser.parse_link(raw).interface == "eth0.100"

    def test_addr_in_order(self):
        raw = (LINUX_OUTPUT["ip -o -4 addr show dev bridge1"]
               + "5: bridge1    inet 10.0.1.254/24 scope global secondary bridge1\\"
                 "       valid_lft forever preferred_lft forever\n")
        record = LinuxParser.parse_addr(raw)
        assert record.interface == "bridge1"
        assert record.addresses == ["10.0.1.1", "10.0.1.254"]

    def test_addr_v6(self):
        raw = ("5: bridge1    inet6 2001:db8:1::1/64 scope global \\       valid_lft forever\n"
               "5: bridge1    inet6 fe80::ab:deff:fe8c:3001/64 scope link \\       valid_lft forever\n")
        record = LinuxParser.parse_addr(raw)
        assert record.addresses == ["2001:db8:1::1", "fe80::ab:deff:fe8c:3001"]

    def test_addr_owner_requires_target(self):
        raw = LINUX_OUTPUT["ip -o -4 addr show to 10.0.1.1"]
        assert LinuxParser.parse_addr_owner(raw, "10.0.1.1").interface == "bridge1"
        assert LinuxParser.parse_addr_owner(raw, "10.0.1.2") is None


class TestLinuxNeighbor:

    def test_reachable(self):
        n = LinuxParser.parse_neighbor(LINUX_OUTPUT["ip -4 neigh show to 10.0.1.12 dev bridge1"],
                                       "10.0.1.12")
        assert n.is_resolved
        assert n.mac == "02:01:32:38:b0:04"

    def test_router_flag_v6(self):
        n = LinuxParser.parse_neighbor("fe80::1 lladdr 02:01:32:38:b0:04 router STALE\n",
                                       "fe80::1")
        assert n.is_resolved

    def test_failed(self):
        n = LinuxParser.parse_neighbor("10.0.1.50  FAILED\n", "10.0.1.50")
        assert n.state == NeighborState.INCOMPLETE
        assert n.mac is None

    def test_empty_output_is_no_entry(self):
        n = LinuxParser.parse_neighbor("", "10.0.1.50")
        assert n.state == NeighborState.NO_ENTRY
        assert not n.is_resolved


class TestBSDRoute:

    def test_gateway_route(self):
        route = BSDParser.parse_route(BSD_OUTPUT["route -n get -inet 10.0.12.12"], V4)
        assert route.interface == "bridge1"
        assert route.gateway == "10.0.1.12"
        assert route.destination == "10.0.12.0"
        assert route.mask == "255.255.255.0"
        assert "GATEWAY" in route.flags

    def test_on_link_without_gateway_line(self):
        route = BSDParser.parse_route(BSD_OUTPUT["route -n get -inet 10.0.1.50"], V4)
        assert route.is_direct
        assert route.destination == "10.0.1.0"

    def test_link_gateway_is_direct(self):
        raw = ("   route to: 10.0.1.50\n"
               "destination: 10.0.1.0\n"
               "       mask: 255.255.255.0\n"
               "    gateway: link#5\n"
               "  interface: bridge1\n"
               "      flags: <UP,DONE,CLONING>\n")
        assert BSDParser.parse_route(raw, V4).is_direct

    def test_default_route(self):
        raw = ("   route to: 8.8.8.8\n"
               "destination: default\n"
               "       mask: default\n"
               "    gateway: 192.168.0.1\n"
               "  interface: em0\n"
               "      flags: <UP,GATEWAY,DONE,STATIC>\n")
        route = BSDParser.parse_route(raw, V4)
        assert route.destination == "0.0.0.0"
        assert route.mask == "0.0.0.0"
        assert route.gateway == "192.168.0.1"

    def test_v6_mask_folded_into_destination(self):
        route = BSDParser.parse_route(BSD_OUTPUT["route -n get -inet6 2001:db8:12::12"], V6)
        assert route.destination == "2001:db8:12::/64"
        assert route.mask is None
        assert route.gateway == "fe80::1"

    def test_reject_flag(self):
        raw = ("   route to: 10.7.7.7\n"
               "destination: 10.7.0.0\n"
               "       mask: 255.255.0.0\n"
               "  interface: lo0\n"
               "      flags: <UP,DONE,STATIC,REJECT>\n")
        assert BSDParser.parse_route(raw, V4).route_type == RouteType.UNREACHABLE

    def test_not_found(self):
        assert BSDParser.parse_route(BSD_OUTPUT["route -n get -inet 10.9.9.9"], V4) is None
        assert BSDParser.parse_route(
            "route: writing to routing socket: not in table\n", V4) is None


class TestBSDIfconfig:

    def test_link_and_addresses(self):
        record = BSDParser.parse_ifconfig(BSD_IFCONFIG_BRIDGE1)
        assert record.interface == "bridge1"
        assert record.mac == "02:ab:de:8c:30:01"
        assert record.addresses == ["10.0.1.1", "fe80::ab:deff:fe8c:3001", "2001:db8:1::1"]

    def test_openbsd_lladdr(self):
        raw = ("em0: flags=8843<UP,BROADCAST,RUNNING,SIMPLEX,MULTICAST> mtu 1500\n"
               "\tlladdr 08:00:27:aa:bb:cc\n"
               "\tinet 192.168.0.10 netmask 0xffffff00 broadcast 192.168.0.255\n")
        record = BSDParser.parse_ifconfig(raw)
        assert record.mac == "08:00:27:aa:bb:cc"
        assert record.addresses == ["192.168.0.10"]

    def test_owner_from_ifconfig_all(self):
        raw = ("lo0: flags=8049<UP,LOOPBACK,RUNNING,MULTICAST> mtu 16384\n"
               "\tinet 127.0.0.1 netmask 0xff000000\n"
               + BSD_IFCONFIG_BRIDGE1)
        assert BSDParser.parse_ifconfig_owner(raw, "10.0.1.1").interface == "bridge1"
        assert BSDParser.parse_ifconfig_owner(raw, "2001:db8:1::1").interface == "bridge1"
        assert BSDParser.parse_ifconfig_owner(raw, "10.0.1.2") is None


class TestBSDNeighbor:

    def test_arp_sentence(self):
        n = BSDParser.parse_arp(BSD_OUTPUT["arp -n 10.0.1.12"], "10.0.1.12")
        assert n.is_resolved
        assert n.mac == "02:01:32:38:b0:04"
        assert n.interface == "bridge1"

    def test_arp_incomplete(self):
        n = BSDParser.parse_arp("? (10.0.1.12) at (incomplete) on bridge1 [ethernet]\n",
                                "10.0.1.12")
        assert n.state == NeighborState.INCOMPLETE

    def test_arp_no_entry(self):
        n = BSDParser.parse_arp(BSD_OUTPUT["arp -n 10.0.1.50"].stdout, "10.0.1.50")
        assert n.state == NeighborState.NO_ENTRY

    def test_arp_table_form(self):
        raw = ("Host                                 Ethernet Address    Netif Expire    Flags\n"
               "10.0.1.12                            02:01:32:38:b0:04    em0 19m59s\n")
        n = BSDParser.parse_arp(raw, "10.0.1.12")
        assert n.mac == "02:01:32:38:b0:04"
        assert n.interface == "em0"

    def test_ndp_scoped_link_local(self):
        n = BSDParser.parse_ndp(BSD_OUTPUT["ndp -n fe80::1%bridge1"], "fe80::1")
        assert n.is_resolved
        assert n.ip_address == "fe80::1"
        assert n.mac == "02:01:32:38:b0:04"

    def test_ndp_no_entry(self):
        n = BSDParser.parse_ndp("2001:db8:1::12 (2001:db8:1::12) -- no entry\n", "2001:db8:1::12")
        assert n.state == NeighborState.NO_ENTRY


class TestParserRegistry:

    def test_linux_dispatch(self):
        assert get_parser(Platform.LINUX, PARSE_ROUTE) is LinuxParser.parse_route
        assert get_parser(Platform.LINUX, PARSE_ARP) is LinuxParser.parse_neighbor
        assert get_parser(Platform.LINUX, PARSE_ND) is LinuxParser.parse_neighbor

    def test_bsd_dispatch(self):
        assert get_parser(Platform.BSD, PARSE_LINK) is BSDParser.parse_ifconfig
        assert get_parser(Platform.BSD, PARSE_ND) is BSDParser.parse_ndp

    def test_missing_entry(self):
        assert get_parser(Platform.BSD, PARSE_ROUTE_MATCH) is None
        assert get_parser_name(Platform.BSD, PARSE_ROUTE_MATCH) == "none"
        assert get_parser_name(Platform.LINUX, PARSE_ROUTE) == "LinuxParser.parse_route"

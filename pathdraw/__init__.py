"""
pathdraw: the path between two addresses, drawn from this host's
routing and neighbor tables.

Not a traceroute: one lookup pass, one picture.
"""

__version__ = "0.1.0"

from .models import (
    AddressFamily, DIRECT, EMPTY,
    ResolvedRoute, RoutePair,
    RouteRecord, RouteType, LinkRecord, NeighborRecord, NeighborState,
)

from .commands_and_parsers import Platform
from .errors import (
    PathDrawError, InputError, RouteNotFoundError,
    UnsupportedPlatformError, UnresolvedNeighborWarning,
)
from .resolver import RouteQuery, LinuxRouteQuery, BSDRouteQuery, resolve, resolve_pair
from .layout import Layout, LayoutFamily, classify
from .render import render
from .diagnostics import RunDiagnostic, ResolveDiagnostic

"""
pathdraw: Topology Classifier

classify(source, destination) → Layout

Two families of drawing:

  SPLIT:  different egress interfaces. One column, top to bottom:

             [SOURCE HOST]
                   |
         [ROUTER TOWARDS SOURCE]
                   |
            [  THIS ROUTER  ]     ← both interfaces, mirrored
                   |
      [ROUTER TOWARDS DESTINATION]
                   |
          [DESTINATION HOST]

  SHARED: same egress interface. Hosts side by side, the two paths
          merge on a LAN line before the device:

       [SOURCE HOST]  [DESTINATION HOST]
             |                |
       [ROUTER ...]   [ROUTER ...]        ← omitted/passed through if direct
             |                |
        -----+----------------+-----
                     |
              [  THIS ROUTER  ]

          With one gateway for both, the merge comes first and a single
          router box sits between the LAN line and the device.

A side's HOST box is dropped when its endpoint is local (the device is
that host); its ROUTER box is dropped when the route is direct, and the
HOST box then carries the ARP/NDP line itself.

Pure: no I/O, same input → same Layout.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .models import ResolvedRoute, RoutePair


# ============================================================
# Directives
# ============================================================

class LayoutFamily(Enum):
    SPLIT = "split"                     # different egress interfaces
    SHARED = "shared"                   # same egress interface


class Column(Enum):
    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"


class BoxRole(Enum):
    SOURCE_HOST = "source_host"
    DESTINATION_HOST = "destination_host"
    SOURCE_ROUTER = "source_router"
    DESTINATION_ROUTER = "destination_router"
    SHARED_ROUTER = "shared_router"

    @property
    def is_router(self) -> bool:
        return self in (BoxRole.SOURCE_ROUTER, BoxRole.DESTINATION_ROUTER,
                        BoxRole.SHARED_ROUTER)

    @property
    def is_source_side(self) -> bool:
        return self in (BoxRole.SOURCE_HOST, BoxRole.SOURCE_ROUTER,
                        BoxRole.SHARED_ROUTER)


class _Pass:
    """Row cell with no box: the sibling path's connector passes through."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "PASS"


PASS = _Pass()


@dataclass(frozen=True)
class BoxDirective:
    role: BoxRole
    column: Column = Column.CENTER
    with_neighbor: bool = False         # draw the ARP/NDP line


Cell = Union[BoxDirective, _Pass]


@dataclass(frozen=True)
class RowDirective:
    """Two cells side by side with a fixed gutter."""
    left: Cell
    right: Cell


@dataclass(frozen=True)
class ConnectorDirective:
    columns: tuple[Column, ...] = (Column.CENTER,)


@dataclass(frozen=True)
class LanDirective:
    """Shared medium: the LEFT and RIGHT paths merge here."""


@dataclass(frozen=True)
class DeviceDirective:
    split: bool = False                 # two interfaces → doubled box


Directive = Union[BoxDirective, RowDirective, ConnectorDirective,
                  LanDirective, DeviceDirective]


LABEL_ROUTER = "THIS ROUTER"
LABEL_HOST = "THIS HOST"


@dataclass(frozen=True)
class Layout:
    family: LayoutFamily
    directives: tuple[Directive, ...] = field(default_factory=tuple)
    dual: bool = False                  # two-column canvas
    label: str = LABEL_ROUTER

    def boxes(self) -> list[BoxDirective]:
        """Every box directive, rows flattened, in drawing order."""
        found: list[BoxDirective] = []
        for d in self.directives:
            if isinstance(d, BoxDirective):
                found.append(d)
            elif isinstance(d, RowDirective):
                found.extend(c for c in (d.left, d.right) if isinstance(c, BoxDirective))
        return found

    def roles(self) -> list[BoxRole]:
        return [b.role for b in self.boxes()]

    def count(self, kind: type) -> int:
        return sum(1 for d in self.directives if isinstance(d, kind))


# ============================================================
# Classification
# ============================================================

def classify(source: ResolvedRoute, destination: ResolvedRoute) -> Layout:
    """Pick the layout family and enumerate the directives for it."""
    pair = RoutePair(source=source, destination=destination)
    label = LABEL_HOST if (source.is_local or destination.is_local) else LABEL_ROUTER

    if not pair.same_interface:
        return Layout(
            family=LayoutFamily.SPLIT,
            directives=tuple(_split_directives(source, destination)),
            dual=False,
            label=label,
        )

    directives, dual = _shared_directives(pair)
    return Layout(
        family=LayoutFamily.SHARED,
        directives=tuple(directives),
        dual=dual,
        label=label,
    )


def _side_boxes(route: ResolvedRoute, host: BoxRole, router: BoxRole,
                column: Column = Column.CENTER) -> list[BoxDirective]:
    """HOST then ROUTER for one endpoint, far end first."""
    boxes = []
    if not route.is_local:
        boxes.append(BoxDirective(host, column, with_neighbor=route.is_direct))
        if not route.is_direct:
            boxes.append(BoxDirective(router, column, with_neighbor=True))
    return boxes


def _chain(elements: list[Directive], columns: tuple[Column, ...] = (Column.CENTER,)
           ) -> list[Directive]:
    """Interleave a connector between every pair of adjacent elements."""
    out: list[Directive] = []
    for element in elements:
        if out:
            out.append(ConnectorDirective(columns))
        out.append(element)
    return out


def _split_directives(source: ResolvedRoute,
                      destination: ResolvedRoute) -> list[Directive]:
    above = _side_boxes(source, BoxRole.SOURCE_HOST, BoxRole.SOURCE_ROUTER)
    below = _side_boxes(destination, BoxRole.DESTINATION_HOST, BoxRole.DESTINATION_ROUTER)
    # Destination side reads outward from the device
    below.reverse()
    return _chain([*above, DeviceDirective(split=True), *below])


def _shared_directives(pair: RoutePair) -> tuple[list[Directive], bool]:
    source, destination = pair.source, pair.destination
    device = DeviceDirective(split=False)

    # Only one path reaches the interface: a plain column
    if source.is_local or destination.is_local:
        elements: list[Directive] = []
        if not source.is_local:
            elements += _side_boxes(source, BoxRole.SOURCE_HOST, BoxRole.SOURCE_ROUTER)
        if not destination.is_local:
            elements += _side_boxes(destination, BoxRole.DESTINATION_HOST,
                                    BoxRole.DESTINATION_ROUTER)
        return _chain([*elements, device]), False

    both = (Column.LEFT, Column.RIGHT)
    hosts = RowDirective(
        left=BoxDirective(BoxRole.SOURCE_HOST, Column.LEFT, with_neighbor=source.is_direct),
        right=BoxDirective(BoxRole.DESTINATION_HOST, Column.RIGHT,
                           with_neighbor=destination.is_direct),
    )
    directives: list[Directive] = [hosts, ConnectorDirective(both)]

    if pair.same_gateway and not source.is_direct:
        # One router serves both: merge first, then the router
        directives += [
            LanDirective(),
            ConnectorDirective(),
            BoxDirective(BoxRole.SHARED_ROUTER, Column.CENTER, with_neighbor=True),
            ConnectorDirective(),
            device,
        ]
        return directives, True

    if not (source.is_direct and destination.is_direct):
        routers = RowDirective(
            left=PASS if source.is_direct else
            BoxDirective(BoxRole.SOURCE_ROUTER, Column.LEFT, with_neighbor=True),
            right=PASS if destination.is_direct else
            BoxDirective(BoxRole.DESTINATION_ROUTER, Column.RIGHT, with_neighbor=True),
        )
        directives += [routers, ConnectorDirective(both)]

    directives += [LanDirective(), ConnectorDirective(), device]
    return directives, True

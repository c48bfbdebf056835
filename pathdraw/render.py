"""
pathdraw: ASCII Renderer

render(layout, fields, family) → text

Interprets the directives produced by classify(). Every box in one
drawing has the same interior width: 28 columns for IPv4, 50 for IPv6.

    +----------------------------+
    | ROUTER TOWARDS DESTINATION |      ← label
    | IP: 10.0.1.12              |      ← address
    | ARP: 02:01:32:38:b0:04     |      ← optional neighbor line
    +----------------------------+

Canvas:
  single column: every element starts at column 0
  dual column:   LEFT at 0, RIGHT after a 2-column gutter,
                 CENTER midway between the two

Pure: no I/O, no color, same input → same text.
"""

from __future__ import annotations
from typing import Optional

from .layout import (
    PASS, BoxDirective, BoxRole, Column, ConnectorDirective, DeviceDirective,
    LanDirective, Layout, RowDirective,
)
from .models import AddressFamily, ResolvedRoute, RoutePair


GUTTER = 2

BOX_LABELS = {
    BoxRole.SOURCE_HOST: "SOURCE HOST",
    BoxRole.DESTINATION_HOST: "DESTINATION HOST",
    BoxRole.SOURCE_ROUTER: "ROUTER TOWARDS SOURCE",
    BoxRole.DESTINATION_ROUTER: "ROUTER TOWARDS DESTINATION",
    BoxRole.SHARED_ROUTER: "ROUTER",
}


# ============================================================
# Primitives
# ============================================================

class Canvas:
    """Column geometry for one drawing."""

    def __init__(self, family: AddressFamily, dual: bool):
        self.interior = family.width
        self.box = self.interior + 2
        self.dual = dual
        self.width = 2 * self.box + GUTTER if dual else self.box

    def offset(self, column: Column) -> int:
        if not self.dual:
            return 0
        if column is Column.LEFT:
            return 0
        if column is Column.RIGHT:
            return self.box + GUTTER
        return (self.width - self.box) // 2

    def bar(self, column: Column) -> int:
        """Position of the vertical connector under a column."""
        return self.offset(column) + self.box // 2

    # --- box lines ---

    def border(self) -> str:
        return "+" + "-" * self.interior + "+"

    def line(self, text: str) -> str:
        body = text[:self.interior - 1].ljust(self.interior - 1)
        return "| " + body + "|"

    def centered(self, text: str) -> str:
        text = text[:self.interior]
        left = (self.interior - len(text)) // 2
        return "|" + (" " * left + text).ljust(self.interior) + "|"

    def stub(self) -> str:
        """A cell with only the passing connector in it."""
        return " " * (self.box // 2) + "|"

    def place(self, text: str, column: Column) -> str:
        return (" " * self.offset(column) + text).rstrip()

    def bars(self, columns) -> str:
        row = [" "] * self.width
        for column in columns:
            row[self.bar(column)] = "|"
        return "".join(row).rstrip()


def box_lines(canvas: Canvas, label: str, ip: str,
              neighbor: Optional[tuple[str, str]] = None) -> list[str]:
    lines = [canvas.border(), canvas.line(label), canvas.line(f"IP: {ip}")]
    if neighbor is not None:
        kind, mac = neighbor
        lines.append(canvas.line(f"{kind}: {mac}"))
    lines.append(canvas.border())
    return lines


# ============================================================
# Directive interpreters
# ============================================================

def _side(role: BoxRole, fields: RoutePair) -> ResolvedRoute:
    return fields.source if role.is_source_side else fields.destination


def _box(canvas: Canvas, d: BoxDirective, fields: RoutePair,
         family: AddressFamily) -> list[str]:
    route = _side(d.role, fields)
    ip = route.gateway if d.role.is_router else route.ip
    neighbor = (family.neighbor_label, route.neighbor_mac) if d.with_neighbor else None
    return box_lines(canvas, BOX_LABELS[d.role], ip, neighbor)


def _device_fields(route: ResolvedRoute) -> list[str]:
    fields = [f"IF: {route.interface}"]
    if route.interface_mac:
        fields.append(f"MAC: {route.interface_mac}")
    fields.append(f"IP: {route.interface_ip}")
    fields.append(f"NET: {route.network}")
    if route.mask:
        fields.append(f"MASK: {route.mask}")
    return fields


def _device(canvas: Canvas, d: DeviceDirective, fields: RoutePair,
            label: str) -> list[str]:
    lines = [canvas.border()]
    lines += [canvas.line(f) for f in _device_fields(fields.source)]
    lines.append(canvas.centered(label))
    if d.split:
        # Lower half faces the destination: mirrored field order
        lines.append(canvas.border())
        lines.append(canvas.centered(label))
        lines += [canvas.line(f) for f in reversed(_device_fields(fields.destination))]
    lines.append(canvas.border())
    return lines


def _row(canvas: Canvas, d: RowDirective, fields: RoutePair,
         family: AddressFamily) -> list[str]:
    cells = []
    for cell in (d.left, d.right):
        cells.append(None if cell is PASS else _box(canvas, cell, fields, family))
    height = max(len(c) for c in cells if c is not None)

    lines = []
    for i in range(height):
        parts = []
        for cell in cells:
            if cell is not None and i < len(cell):
                parts.append(cell[i])
            else:
                parts.append(canvas.stub())
        left, right = parts
        lines.append((left.ljust(canvas.box) + " " * GUTTER + right).rstrip())
    return lines


def _lan(canvas: Canvas) -> str:
    rule = ["-"] * canvas.width
    for column in (Column.LEFT, Column.RIGHT):
        rule[canvas.bar(column)] = "+"
    return "".join(rule)


def render(layout: Layout, fields: RoutePair, family: AddressFamily) -> str:
    """Draw a classified layout. Returns newline-terminated text."""
    canvas = Canvas(family, layout.dual)
    out: list[str] = []

    for d in layout.directives:
        if isinstance(d, BoxDirective):
            out += [canvas.place(l, d.column) for l in _box(canvas, d, fields, family)]
        elif isinstance(d, RowDirective):
            out += _row(canvas, d, fields, family)
        elif isinstance(d, ConnectorDirective):
            out.append(canvas.bars(d.columns))
        elif isinstance(d, LanDirective):
            out.append(_lan(canvas))
        elif isinstance(d, DeviceDirective):
            out += [canvas.place(l, Column.CENTER)
                    for l in _device(canvas, d, fields, layout.label)]
        else:
            raise TypeError(f"Unknown layout directive: {d!r}")

    return "\n".join(out) + "\n"

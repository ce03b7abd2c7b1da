"""Draw a LayoutDescriptor with ReportLab graphics (bevelled node/executor boxes, vCPU cubes)."""
from reportlab.graphics import renderPDF, renderSVG
from reportlab.graphics.shapes import Drawing, Group, Line, Rect, String
from reportlab.lib import colors

from nodeopt.layout import PAD
from nodeopt.models import LayoutDescriptor, NodeBox, SlotBox
from nodeopt.report.constants import (
    EXECUTOR_FILL,
    EXECUTOR_TEXT,
    INFEASIBLE_TEXT,
    INSET_SIZE,
    NODE_FILL,
    NODE_TEXT,
    RESERVED_FILL,
    SHADOW,
    SHADOW_OFFSET,
    VCPU_FREE_FILL,
    VCPU_FREE_STROKE,
    VCPU_USED_FILL,
    VCPU_USED_STROKE,
    darken,
    lighten,
)


def _c(hex_color: str):
    return colors.HexColor(hex_color)


class _Flip:
    """Layout coordinates are top-left based; ReportLab's origin is bottom-left."""

    def __init__(self, height: float):
        self.height = height

    def y(self, top: float, h: float = 0) -> float:
        return self.height - top - h


def bevelled_rect(flip: _Flip, x: float, y: float, w: float, h: float, base: str, style: str = "outset") -> Group:
    g = Group()
    ry = flip.y(y, h)
    if style == "outset":
        g.add(Rect(x + SHADOW_OFFSET, ry - SHADOW_OFFSET, w, h, fillColor=_c(SHADOW), strokeColor=None))
        g.add(Rect(x, ry, w, h, fillColor=_c(lighten(base, 0.02)), strokeColor=_c(darken(base, 0.2)), strokeWidth=1))
        # light top/left edge, dark bottom/right edge
        g.add(Line(x + 1, ry + h - 1, x + w - 1, ry + h - 1, strokeColor=_c(lighten(base, 0.08)), strokeWidth=1))
        g.add(Line(x + 1, ry + 1, x + 1, ry + h - 1, strokeColor=_c(lighten(base, 0.08)), strokeWidth=1))
        g.add(Line(x + 1, ry + 1, x + w - 1, ry + 1, strokeColor=_c(darken(base, 0.06)), strokeWidth=1))
        g.add(Line(x + w - 1, ry + 1, x + w - 1, ry + h - 1, strokeColor=_c(darken(base, 0.06)), strokeWidth=1))
    else:
        g.add(Rect(x, ry, w, h, fillColor=_c(darken(base, 0.03)), strokeColor=_c(darken(base, 0.3)), strokeWidth=1))
        d = max(1, INSET_SIZE)
        g.add(Line(x + 1.5, ry + h - 1.5, x + w - (d + 1), ry + h - 1.5, strokeColor=_c(darken(base, 0.12)), strokeWidth=1))
    return g


def vcpu_cube(flip: _Flip, x: float, y: float, size: float, used: bool) -> Group:
    fill = VCPU_USED_FILL if used else VCPU_FREE_FILL
    stroke = VCPU_USED_STROKE if used else VCPU_FREE_STROKE
    g = Group()
    ry = flip.y(y, size)
    g.add(Rect(x, ry, size, size, fillColor=_c(fill), strokeColor=_c(stroke), strokeWidth=1))
    # chip pins
    g.add(Rect(x + 2, ry + size - 4, size - 4, 2, fillColor=_c(stroke), strokeColor=None))
    g.add(Rect(x + 2, ry + 2, size - 4, 2, fillColor=_c(stroke), strokeColor=None))
    return g


def _draw_slot(flip: _Flip, layout: LayoutDescriptor, slot: SlotBox) -> Group:
    g = Group()
    if slot.used:
        base = RESERVED_FILL if slot.reserved else EXECUTOR_FILL
        g.add(bevelled_rect(flip, slot.x, slot.y, slot.width, slot.height, base, "outset"))
        g.add(String(slot.x + 6, flip.y(slot.y + 12), slot.label, fontName="Helvetica", fontSize=11, fillColor=_c(EXECUTOR_TEXT)))
    cube_x = slot.x + round((slot.width - layout.core_size) / 2)
    for r in range(slot.vcpus):
        cy = slot.y + layout.executor_header_space + r * (layout.core_size + layout.core_space)
        g.add(vcpu_cube(flip, cube_x, cy, layout.core_size, used=r < slot.used_vcpus))
    return g


def _draw_node(flip: _Flip, layout: LayoutDescriptor, node: NodeBox) -> Group:
    g = Group()
    g.add(bevelled_rect(flip, node.x, node.y, node.width, node.height, NODE_FILL, "inset"))
    g.add(String(node.x + 12, flip.y(node.y + 14), node.label, fontName="Helvetica", fontSize=12, fillColor=_c(NODE_TEXT)))
    for slot in node.slots:
        g.add(_draw_slot(flip, layout, slot))
    g.add(String(node.x + 12, flip.y(node.y + node.height - 8), node.footer, fontName="Helvetica", fontSize=12, fillColor=_c(EXECUTOR_TEXT)))
    return g


def draw_layout(layout: LayoutDescriptor) -> Drawing:
    """Build a Drawing sized to the layout canvas."""
    d = Drawing(layout.canvas_width, layout.canvas_height)
    flip = _Flip(layout.canvas_height)
    if layout.infeasible:
        d.add(String(PAD, flip.y(60), layout.message or "", fontName="Helvetica", fontSize=18, fillColor=_c(INFEASIBLE_TEXT)))
        return d
    for node in layout.nodes:
        d.add(_draw_node(flip, layout, node))
    if layout.hidden_nodes:
        note = f"+ {layout.hidden_nodes} more nodes not drawn"
        d.add(String(PAD, flip.y(layout.canvas_height - PAD), note, fontName="Helvetica", fontSize=12, fillColor=_c(NODE_TEXT)))
    return d


def render_svg(layout: LayoutDescriptor) -> str:
    return renderSVG.drawToString(draw_layout(layout))


def render_pdf(layout: LayoutDescriptor) -> bytes:
    return renderPDF.drawToString(draw_layout(layout))

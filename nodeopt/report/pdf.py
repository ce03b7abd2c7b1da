"""PDF plan report rendering with ReportLab (US Letter, margins, diagram scaled to frame width)."""
import io

from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from nodeopt.models import AllocationParams, Distribution, LayoutDescriptor, PlanSummary, SweepRow
from nodeopt.report.constants import (
    REPORT_ACCENT_DARK,
    REPORT_DARK,
    REPORT_GRID,
    REPORT_MUTED,
    REPORT_WARN,
)
from nodeopt.report.diagram import draw_layout
from nodeopt.report.templates import (
    definitions_section,
    inputs_section,
    methodology_section,
    per_node_rows,
    report_metadata,
    summary_section,
    sweep_rows,
)

MARGIN_LR = 0.75 * inch
MARGIN_TOP = 0.85 * inch
MARGIN_BOTTOM = 0.8 * inch
SECTION_SPACER = 0.25 * inch
FRAME_WIDTH = letter[0] - 2 * MARGIN_LR
FRAME_HEIGHT = letter[1] - MARGIN_TOP - MARGIN_BOTTOM


def _styles():
    """Paragraph styles (Helvetica). Plain dict to avoid ReportLab stylesheet name clashes."""
    styles = {}
    styles["NO_Title"] = ParagraphStyle(
        name="NO_Title",
        fontName="Helvetica-Bold",
        fontSize=24,
        textColor=colors.HexColor(REPORT_DARK),
        spaceAfter=12,
    )
    styles["NO_H2"] = ParagraphStyle(
        name="NO_H2",
        fontName="Helvetica-Bold",
        fontSize=12.5,
        textColor=colors.HexColor(REPORT_DARK),
        spaceBefore=14,
        spaceAfter=6,
    )
    styles["NO_Body"] = ParagraphStyle(
        name="NO_Body",
        fontName="Helvetica",
        fontSize=10.5,
        textColor=colors.HexColor(REPORT_DARK),
        spaceAfter=6,
    )
    styles["NO_Small"] = ParagraphStyle(
        name="NO_Small",
        fontName="Helvetica",
        fontSize=9,
        textColor=colors.HexColor(REPORT_MUTED),
        spaceAfter=4,
    )
    styles["NO_Warn"] = ParagraphStyle(
        name="NO_Warn",
        fontName="Helvetica-Bold",
        fontSize=10.5,
        textColor=colors.HexColor(REPORT_WARN),
        spaceAfter=6,
    )
    return styles


def _add_footer(canvas, doc):
    meta = report_metadata()
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.setFillColor(colors.HexColor(REPORT_MUTED))
    y_footer = MARGIN_BOTTOM - 0.25 * inch
    canvas.drawString(MARGIN_LR, y_footer, f"{meta['doc_name_short']} v{meta['report_version']} — {meta['date']}")
    canvas.drawRightString(letter[0] - MARGIN_LR, y_footer, f"Page {doc.page}")
    canvas.restoreState()


def _table_with_header(data, col_widths=None):
    """Table with a dark header row and light grid."""
    t = Table(data, colWidths=col_widths, repeatRows=1)
    t.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(REPORT_ACCENT_DARK)),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("BACKGROUND", (0, 1), (-1, -1), colors.white),
        ("TEXTCOLOR", (0, 1), (-1, -1), colors.HexColor(REPORT_DARK)),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 9.5),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor(REPORT_GRID)),
        ("LEFTPADDING", (0, 0), (-1, -1), 8),
        ("RIGHTPADDING", (0, 0), (-1, -1), 8),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
    ]))
    return t


def fit_drawing(drawing: Drawing, max_width: float = FRAME_WIDTH, max_height: float = FRAME_HEIGHT * 0.9) -> Drawing:
    """Scale a diagram down (never up) so it fits inside the page frame."""
    scale = min(1.0, max_width / drawing.width, max_height / drawing.height)
    if scale < 1.0:
        drawing.scale(scale, scale)
        drawing.width *= scale
        drawing.height *= scale
    return drawing


def generate_plan_pdf(
    params: AllocationParams,
    distribution: Distribution,
    summary: PlanSummary,
    layout: LayoutDescriptor,
    sweep: list[SweepRow] | None = None,
    target_max_nodes: int = 1,
) -> bytes:
    """Generate the plan report; returns PDF bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        leftMargin=MARGIN_LR,
        rightMargin=MARGIN_LR,
        topMargin=MARGIN_TOP,
        bottomMargin=MARGIN_BOTTOM,
    )
    styles = _styles()
    meta = report_metadata()
    story = [
        Paragraph("Executor Placement Plan", styles["NO_Title"]),
        Paragraph(meta["date"], styles["NO_Small"]),
        Spacer(1, SECTION_SPACER),
    ]

    story.append(Paragraph("Summary", styles["NO_H2"]))
    if summary.feasible:
        story.append(Paragraph(summary.text, styles["NO_Body"]))
    else:
        story.append(Paragraph(summary.text, styles["NO_Warn"]))
    story.append(_table_with_header(
        [["Metric", "Value"]] + [list(r) for r in summary_section(distribution, summary)],
        [2.8 * inch, 2.5 * inch],
    ))
    story.append(Spacer(1, SECTION_SPACER))

    story.append(Paragraph("Inputs", styles["NO_H2"]))
    story.append(_table_with_header(
        [["Input", "Value"]] + [list(r) for r in inputs_section(params, target_max_nodes)],
        [2.8 * inch, 2.5 * inch],
    ))
    story.append(Spacer(1, SECTION_SPACER))

    if summary.feasible:
        story.append(Paragraph("Placement", styles["NO_H2"]))
        story.append(fit_drawing(draw_layout(layout)))
        story.append(Spacer(1, SECTION_SPACER))
        story.append(_table_with_header(per_node_rows(distribution, summary)))
        story.append(Spacer(1, SECTION_SPACER))

    if sweep:
        story.append(Paragraph("Optimal Combinations", styles["NO_H2"]))
        story.append(Paragraph(
            f"CPU-first sizing per executor core count for a target of {target_max_nodes} node(s).",
            styles["NO_Small"],
        ))
        story.append(_table_with_header(sweep_rows(sweep)))
        story.append(Spacer(1, SECTION_SPACER))

    story.append(Paragraph("Methodology", styles["NO_H2"]))
    for m in methodology_section():
        story.append(Paragraph(f"<b>{m['title']}</b>", styles["NO_Body"]))
        story.append(Paragraph(m["body"], styles["NO_Body"]))
    story.append(Spacer(1, SECTION_SPACER))

    story.append(Paragraph("Definitions", styles["NO_H2"]))
    def_data = [["Term", "Definition"]]
    for d in definitions_section():
        def_data.append([d["term"], Paragraph(d["definition"], styles["NO_Small"])])
    story.append(_table_with_header(def_data, [1.3 * inch, 5 * inch]))

    doc.build(story, onFirstPage=_add_footer, onLaterPages=_add_footer)
    return buffer.getvalue()

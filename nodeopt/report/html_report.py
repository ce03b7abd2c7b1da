"""HTML plan report (same content as the PDF, with an inline SVG diagram and apply links on sweep rows)."""
from html import escape

from nodeopt.models import AllocationParams, Distribution, LayoutDescriptor, PlanSummary, SweepRow
from nodeopt.report.constants import (
    REPORT_ACCENT,
    REPORT_ACCENT_DARK,
    REPORT_DARK,
    REPORT_GRID,
    REPORT_MUTED,
    REPORT_WARN,
    REPORT_WHITE,
)
from nodeopt.report.diagram import render_svg
from nodeopt.report.templates import (
    SWEEP_HEADER,
    apply_query,
    definitions_section,
    inputs_section,
    methodology_section,
    per_node_rows,
    report_metadata,
    summary_section,
)


def inline_svg(layout: LayoutDescriptor) -> str:
    """SVG markup without the XML prolog, ready to embed in HTML."""
    svg = render_svg(layout)
    start = svg.find("<svg")
    return svg[start:] if start >= 0 else svg


def _kv_table(header: tuple[str, str], rows: list[tuple[str, str]]) -> str:
    body = "".join(f"<tr><td>{escape(k)}</td><td>{escape(v)}</td></tr>" for k, v in rows)
    return f"<table><tbody><tr><th>{escape(header[0])}</th><th>{escape(header[1])}</th></tr>{body}</tbody></table>"


def _grid_table(rows: list[list[str]]) -> str:
    head = "".join(f"<th>{escape(c)}</th>" for c in rows[0])
    body = "".join("<tr>" + "".join(f"<td>{escape(c)}</td>" for c in r) + "</tr>" for r in rows[1:])
    return f"<table><tbody><tr>{head}</tr>{body}</tbody></table>"


def generate_plan_html(
    params: AllocationParams,
    distribution: Distribution,
    summary: PlanSummary,
    layout: LayoutDescriptor,
    sweep: list[SweepRow] | None = None,
    target_max_nodes: int = 1,
    *,
    app_url: str | None = None,
) -> str:
    """
    Generate the HTML plan. Each sweep row links to /v1/report/html with its values applied
    (executor cores, max executor memory, max executors).
    """
    meta = report_metadata()
    base = (app_url or "").rstrip("/")

    css = f"""
    * {{ box-sizing: border-box; }}
    body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; color: {REPORT_DARK}; background: #f8fafc; margin: 0; padding: 24px; line-height: 1.5; }}
    .report {{ max-width: 1000px; margin: 0 auto; background: {REPORT_WHITE}; padding: 40px; border-radius: 12px; box-shadow: 0 1px 3px rgba(0,0,0,.08); }}
    h1 {{ font-size: 1.75rem; margin: 0 0 4px 0; }}
    h2 {{ font-size: 1.15rem; color: {REPORT_ACCENT_DARK}; margin: 24px 0 12px 0; }}
    h3 {{ font-size: 1rem; margin: 16px 0 8px 0; }}
    .subtitle {{ font-size: 0.9rem; color: {REPORT_MUTED}; margin-bottom: 16px; }}
    .summary {{ font-size: 1rem; }}
    .warn {{ color: {REPORT_WARN}; font-weight: 600; }}
    table {{ width: 100%; border-collapse: collapse; margin: 12px 0; font-size: 0.9rem; }}
    th, td {{ border: 1px solid {REPORT_GRID}; padding: 8px 12px; text-align: left; }}
    th {{ background: {REPORT_ACCENT_DARK}; color: white; font-weight: 600; }}
    tr:nth-child(even) {{ background: #f8fafc; }}
    .diagram {{ overflow-x: auto; margin: 12px 0; }}
    a.apply {{ display: inline-block; background: {REPORT_ACCENT}; color: white; padding: 4px 10px; border-radius: 6px; text-decoration: none; font-weight: 600; }}
    .footer {{ margin-top: 32px; padding-top: 16px; border-top: 1px solid {REPORT_GRID}; font-size: 0.8rem; color: {REPORT_MUTED}; }}
    """

    if summary.feasible:
        summary_html = f'<p class="summary">{escape(summary.text)}</p>'
        if summary.unplaced > 0:
            summary_html += f'<p class="warn">{summary.unplaced} executor(s) could not be placed.</p>'
        placement_html = (
            f'<h2>Placement</h2><div class="diagram">{inline_svg(layout)}</div>'
            + _grid_table(per_node_rows(distribution, summary))
        )
    else:
        summary_html = f'<p class="warn">{escape(summary.text)}</p>'
        placement_html = ""

    sweep_html = ""
    if sweep:
        head = "".join(f"<th>{escape(c)}</th>" for c in SWEEP_HEADER) + "<th></th>"
        body = []
        for r in sweep:
            href = f"{base}/v1/report/html?{apply_query(params, r, target_max_nodes)}"
            body.append(
                f"<tr><td>{r.executor_cores}</td><td>{r.unused_vcpus_per_node}</td>"
                f"<td>{r.max_executor_memory_gb}</td><td>{r.max_executors}</td><td>{r.shuffle_partitions}</td>"
                f'<td><a class="apply" href="{escape(href)}">{r.executor_cores} Cores</a></td></tr>'
            )
        sweep_html = (
            "<h2>Optimal Combinations</h2>"
            f'<p class="subtitle">CPU-first sizing per executor core count for a target of {target_max_nodes} node(s).</p>'
            f"<table><tbody><tr>{head}</tr>{''.join(body)}</tbody></table>"
        )

    methodology_html = "".join(
        f"<h3>{escape(m['title'])}</h3><p>{escape(m['body'])}</p>" for m in methodology_section()
    )
    definitions_html = "".join(
        f"<tr><td><strong>{escape(d['term'])}</strong></td><td>{escape(d['definition'])}</td></tr>"
        for d in definitions_section()
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{escape(meta["doc_name_short"])}</title>
<style>{css}</style>
</head>
<body>
<div class="report">
<h1>Executor Placement Plan</h1>
<p class="subtitle">{meta["date"]}</p>
<h2>Summary</h2>
{summary_html}
{_kv_table(("Metric", "Value"), summary_section(distribution, summary))}
<h2>Inputs</h2>
{_kv_table(("Input", "Value"), inputs_section(params, target_max_nodes))}
{placement_html}
{sweep_html}
<h2>Methodology</h2>
{methodology_html}
<h2>Definitions</h2>
<table><tbody><tr><th>Term</th><th>Definition</th></tr>{definitions_html}</tbody></table>
<div class="footer">{escape(meta["doc_name_short"])} v{meta["report_version"]}</div>
</div>
</body>
</html>"""

from __future__ import annotations
"""Report section builders (text/structure shared by the PDF and HTML plan reports)."""
from datetime import date
from urllib.parse import urlencode

from nodeopt.layout import MAX_DRAWN_NODES
from nodeopt.models import AllocationParams, Distribution, PlanSummary, SweepRow

REPORT_VERSION = "1.0"


def report_metadata() -> dict:
    """Doc name and date for header/footer."""
    return {
        "doc_name": "Node Optimizer — Executor Placement Plan",
        "doc_name_short": "Node Optimizer Plan",
        "date": date.today().strftime("%B %d, %Y"),
        "report_version": REPORT_VERSION,
    }


def inputs_section(params: AllocationParams, target_max_nodes: int) -> list[tuple[str, str]]:
    """Input rows (label, value) in display order."""
    rows = [
        ("Executor cores", str(params.executor_cores)),
        ("Executor memory (GB)", f"{params.executor_memory_gb:g}"),
        ("Executor overhead factor", f"{params.executor_overhead_factor:g}" if params.apply_overhead else "off"),
        ("Max executors", str(params.max_executors)),
        ("Reserved executors (AM)", str(params.reserved_executors)),
        ("Node vCPUs", str(params.node_vcpus)),
        ("Node memory (GB)", f"{params.node_memory_gb:g}"),
        ("Node count", f"{params.num_nodes} (fixed)" if params.fixed_nodes_mode else "elastic"),
        ("Target max nodes (sweep)", str(target_max_nodes)),
    ]
    if not params.reconcile_memory:
        rows.append(("CPU/memory reconciliation", "off"))
    return rows


def summary_section(distribution: Distribution, summary: PlanSummary) -> list[tuple[str, str]]:
    if not summary.feasible:
        return [("Result", summary.text)]
    rows = [
        ("Executors per node", str(distribution.slots_per_node)),
        ("Nodes needed", str(summary.nodes_needed)),
        ("Executors requested", f"{distribution.total_requested} (incl. {distribution.reserved_executors} reserved)"),
        ("Executors placed", f"{distribution.placed_user} + {distribution.reserved_seated} reserved"),
        ("Unplaced executors", str(summary.unplaced)),
        ("Unused vCPUs (total)", str(summary.unused_vcpus_total)),
        ("Max calculated executor memory", f"{summary.max_executor_memory_gb} GB"),
    ]
    return rows


def per_node_rows(distribution: Distribution, summary: PlanSummary) -> list[list[str]]:
    """Header plus one row per drawn node: node, executors, reserved, unused vCPUs."""
    rows = [["Node", "Executors", "Reserved", "Unused vCPUs"]]
    seated = 0
    for i, placed in enumerate(distribution.per_node[:MAX_DRAWN_NODES]):
        reserved = min(placed, max(0, distribution.reserved_seated - seated))
        seated += placed
        rows.append([
            str(i + 1),
            f"{placed} / {distribution.slots_per_node}",
            str(reserved),
            str(summary.unused_vcpus_per_node[i]),
        ])
    hidden = len(distribution.per_node) - MAX_DRAWN_NODES
    if hidden > 0:
        rows.append(["…", f"{hidden} more nodes", "", ""])
    return rows


SWEEP_HEADER = ["Cores", "Unused vCPUs", "Max executor memory (GB)", "Max executors", "Shuffle partitions"]


def sweep_rows(rows: list[SweepRow]) -> list[list[str]]:
    out = [list(SWEEP_HEADER)]
    for r in rows:
        out.append([
            str(r.executor_cores),
            str(r.unused_vcpus_per_node),
            str(r.max_executor_memory_gb),
            str(r.max_executors),
            str(r.shuffle_partitions),
        ])
    return out


def apply_query(params: AllocationParams, row: SweepRow, target_max_nodes: int) -> str:
    """Query string that reopens the plan with a sweep row applied."""
    values = params.model_dump()
    values.update({
        "executor_cores": row.executor_cores,
        "executor_memory_gb": max(1, row.max_executor_memory_gb),
        "max_executors": row.max_executors,
        "target_max_nodes": target_max_nodes,
    })
    return urlencode({k: (str(v).lower() if isinstance(v, bool) else v) for k, v in values.items()})


def methodology_section() -> list[dict[str, str]]:
    """How the plan was calculated."""
    return [
        {
            "title": "Executors per node",
            "body": "Slots = min(floor(node_vcpus / executor_cores), floor(node_memory / (executor_memory × (1 + overhead)))). "
            "The CPU term is then lowered until an even split of node memory, minus overhead, still covers the "
            "configured executor memory. Implementation: nodeopt/allocation.py.",
        },
        {
            "title": "Placement",
            "body": "Requested executors plus reserved (AM) executors are placed greedily: node 1 is filled first, "
            "with the AM in its first slot, then node 2, and so on. In elastic mode the node count is "
            "ceil(total / slots); in fixed mode anything beyond slots × nodes is reported as unplaced.",
        },
        {
            "title": "Max calculated executor memory",
            "body": "floor(floor(node_memory / slots) × (1 − overhead)): the largest executor memory that still "
            "lets every slot on a node receive an equal share after overhead.",
        },
        {
            "title": "Optimal combinations",
            "body": "For each executor core count from 2 to the node vCPUs, slots are sized by CPU only. "
            "Max executors = slots × target nodes − reserved; shuffle partitions = cores × executors × 4.",
        },
    ]


def definitions_section() -> list[dict[str, str]]:
    """Glossary of terms for the report."""
    return [
        {"term": "Executor", "definition": "A fixed-size compute unit with a configured core count and memory request."},
        {"term": "Slot", "definition": "One executor-sized unit of per-node capacity."},
        {"term": "Node", "definition": "A compute machine with fixed core and memory capacity."},
        {"term": "AM", "definition": "Reserved coordinator executor occupying the first placement slot(s)."},
        {"term": "Overhead factor", "definition": "Fraction of requested executor memory reserved beyond the base request."},
        {"term": "Elastic mode", "definition": "Node count derived from demand."},
        {"term": "Fixed mode", "definition": "Node count supplied by the user; demand is fit within it."},
    ]

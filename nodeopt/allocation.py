"""Executor placement onto nodes (pure functions, no I/O)."""
import logging
import math

from nodeopt.models import AllocationParams, Distribution, PlanSummary

_LOG = logging.getLogger(__name__)

# Lower bound on per-executor memory once overhead is applied; keeps the memory division finite.
MIN_EXECUTOR_MEMORY_GB = 0.001

INFEASIBLE_MESSAGE = "No executors fit in a node with given parameters."


def effective_executor_memory(params: AllocationParams) -> float:
    """Memory one executor takes from a node: requested memory inflated by overhead."""
    if params.apply_overhead:
        return max(MIN_EXECUTOR_MEMORY_GB, params.executor_memory_gb * (1.0 + params.executor_overhead_factor))
    return max(1.0, params.executor_memory_gb)


def slots_by_cores(params: AllocationParams) -> int:
    return math.floor(params.node_vcpus / max(1, params.executor_cores))


def slots_by_memory(params: AllocationParams) -> int:
    return math.floor(params.node_memory_gb / effective_executor_memory(params))


def reconcile_slots(slots: int, params: AllocationParams) -> int:
    """
    Lower a CPU-derived slot count until an even split of node memory, with overhead
    stripped back out, still covers the configured executor memory.
    share = floor(M / slots); allowed = floor(share * (1 - f)); stop when floor(m) <= allowed.
    """
    requested = math.floor(params.executor_memory_gb)
    keep = 1.0 - params.overhead
    # any slot count above M leaves a zero share
    slots = min(slots, math.floor(params.node_memory_gb))
    while slots > 0:
        share = math.floor(params.node_memory_gb / slots)
        if share > 0 and requested <= math.floor(share * keep):
            break
        slots -= 1
    return slots


def compute_slots_per_node(params: AllocationParams) -> int:
    """
    executors per node = min(cpu slots (reconciled), floor(M / (m * (1 + f))))
    """
    by_cores = slots_by_cores(params)
    if params.reconcile_memory:
        by_cores = reconcile_slots(by_cores, params)
    return max(0, min(by_cores, slots_by_memory(params)))


def _fill(total: int, slots: int, nodes: int) -> list[int]:
    """Greedy left-to-right fill, no gaps."""
    per_node = []
    remaining = total
    for _ in range(nodes):
        take = min(slots, remaining)
        per_node.append(take)
        remaining -= take
    return per_node


def compute_distribution(params: AllocationParams) -> Distribution:
    """
    Place max_executors + reserved_executors onto nodes.
    Elastic mode derives the node count (ceil(total / slots)); fixed mode uses num_nodes
    and leaves anything beyond slots * num_nodes unplaced. Reserved executors take the
    first slot(s) of the first populated node.
    """
    slots = compute_slots_per_node(params)
    requested = params.max_executors
    reserved = params.reserved_executors
    total = requested + reserved

    if slots == 0:
        per_node: list[int] = []
        nodes_needed = params.num_nodes if params.fixed_nodes_mode else 0
    elif params.fixed_nodes_mode:
        nodes_needed = params.num_nodes
        per_node = _fill(min(total, slots * nodes_needed), slots, nodes_needed)
    else:
        nodes_needed = math.ceil(total / slots)
        per_node = _fill(total, slots, nodes_needed)

    placed_total = sum(per_node)
    reserved_seated = min(reserved, placed_total)
    reserved_node_index = None
    if reserved_seated > 0:
        reserved_node_index = next(i for i, n in enumerate(per_node) if n > 0)
    placed_user = max(0, placed_total - reserved_seated)
    unplaced = max(0, requested - placed_user)

    _LOG.debug(
        "distribution computed",
        extra={
            "slots_per_node": slots,
            "nodes_needed": nodes_needed,
            "placed_total": placed_total,
            "unplaced": unplaced,
            "fixed_nodes_mode": params.fixed_nodes_mode,
        },
    )
    return Distribution(
        slots_per_node=slots,
        nodes_needed=nodes_needed,
        per_node=per_node,
        unplaced=unplaced,
        placed_user=placed_user,
        reserved_executors=reserved,
        reserved_seated=reserved_seated,
        reserved_placed=reserved_seated > 0,
        reserved_node_index=reserved_node_index,
        fixed_nodes_mode=params.fixed_nodes_mode,
    )


def unused_vcpus_per_node(distribution: Distribution, params: AllocationParams) -> list[int]:
    return [max(0, params.node_vcpus - placed * params.executor_cores) for placed in distribution.per_node]


def total_unused_vcpus(distribution: Distribution, params: AllocationParams) -> int:
    return sum(unused_vcpus_per_node(distribution, params))


def max_feasible_executor_memory(node_memory_gb: float, slots_per_node: int, overhead_factor: float) -> int:
    """
    Largest raw executor memory that, after overhead, still lets slots_per_node executors
    share the node evenly: floor(floor(M / slots) * (1 - f)). 0 when no slot fits.
    """
    if slots_per_node <= 0:
        return 0
    share = math.floor(node_memory_gb / slots_per_node)
    return max(0, math.floor(share * (1.0 - overhead_factor)))


def summary_text(summary_fields: dict) -> str:
    """One-line summary, e.g. 'Nodes needed: 3 • Unused vCPUs: 4 • Max calculated executor memory: 13 GB'."""
    if not summary_fields["feasible"]:
        return INFEASIBLE_MESSAGE
    parts = [f"Nodes needed: {summary_fields['nodes_needed']}"]
    if summary_fields["unplaced"] > 0:
        parts.append(f"Unplaced executors: {summary_fields['unplaced']}")
    parts.append(f"Unused vCPUs: {summary_fields['unused_vcpus_total']}")
    parts.append(f"Max calculated executor memory: {summary_fields['max_executor_memory_gb']} GB")
    return " • ".join(parts)


def summarize(distribution: Distribution, params: AllocationParams) -> PlanSummary:
    """Derived metrics shown next to the diagram."""
    unused = unused_vcpus_per_node(distribution, params)
    fields = {
        "feasible": distribution.feasible,
        "nodes_needed": distribution.nodes_needed,
        "unplaced": distribution.unplaced,
        "unused_vcpus_per_node": unused,
        "unused_vcpus_total": sum(unused),
        "max_executor_memory_gb": max_feasible_executor_memory(
            params.node_memory_gb, distribution.slots_per_node, params.overhead
        ),
    }
    return PlanSummary(text=summary_text(fields), **fields)

"""Assemble a full plan: distribution, summary, layout and sweep for one input snapshot."""
import os

from nodeopt.allocation import compute_distribution, summarize
from nodeopt.layout import project_layout
from nodeopt.models import AllocationParams, PlanResponse
from nodeopt.sweep import sweep

_DEFAULT_SURFACE_WIDTH = float(os.environ.get("NODEOPT_SURFACE_WIDTH", "960"))
_DEFAULT_TARGET_MAX_NODES = int(os.environ.get("NODEOPT_TARGET_MAX_NODES", "3"))


def get_default_surface_width() -> float:
    return _DEFAULT_SURFACE_WIDTH


def get_default_target_max_nodes() -> int:
    return _DEFAULT_TARGET_MAX_NODES


def build_plan(
    params: AllocationParams,
    target_max_nodes: int | None = None,
    surface_width: float | None = None,
    include_sweep: bool = True,
) -> PlanResponse:
    """Recompute everything from scratch for params; nothing is cached between calls."""
    target = target_max_nodes or get_default_target_max_nodes()
    width = surface_width or get_default_surface_width()
    distribution = compute_distribution(params)
    summary = summarize(distribution, params)
    layout = project_layout(distribution, params.executor_cores, params.node_vcpus, width)
    rows = sweep(params, target) if include_sweep else []
    return PlanResponse(
        params=params,
        distribution=distribution,
        summary=summary,
        layout=layout,
        target_max_nodes=target,
        sweep=rows,
    )

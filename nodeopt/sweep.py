"""Optimal-combinations sweep: what-if rows over candidate executor core counts."""
import math

from nodeopt.allocation import max_feasible_executor_memory
from nodeopt.models import AllocationParams, SweepRow

# Smallest executor size offered by the sweep
MIN_SWEEP_CORES = 2
# Rough tasks-per-core multiplier for spark.sql.shuffle.partitions
SHUFFLE_PARTITIONS_PER_CORE = 4


def sweep_row(params: AllocationParams, cores: int, target_nodes: int) -> SweepRow:
    """
    CPU-first sizing for one candidate core count:
    slots = floor(V / c); max memory from an even split of node memory;
    max executors = slots * target_nodes - reserved; shuffle = c * executors * 4.
    """
    cores = max(1, int(cores))
    target_nodes = max(1, int(target_nodes))
    slots = max(0, math.floor(params.node_vcpus / cores))
    unused = max(0, params.node_vcpus - slots * cores)
    max_mem = max_feasible_executor_memory(params.node_memory_gb, slots, params.overhead)
    max_executors = max(0, slots * target_nodes - params.reserved_executors)
    shuffle = max(1, cores * max_executors * SHUFFLE_PARTITIONS_PER_CORE)
    return SweepRow(
        executor_cores=cores,
        slots_per_node=slots,
        unused_vcpus_per_node=unused,
        max_executor_memory_gb=max_mem,
        max_executors=max_executors,
        shuffle_partitions=shuffle,
    )


def sweep(params: AllocationParams, target_nodes: int) -> list[SweepRow]:
    """One row per executor core count in [2, max(2, node_vcpus)]."""
    top = max(MIN_SWEEP_CORES, params.node_vcpus)
    return [sweep_row(params, cores, target_nodes) for cores in range(MIN_SWEEP_CORES, top + 1)]


def find_row(rows: list[SweepRow], executor_cores: int) -> SweepRow | None:
    for row in rows:
        if row.executor_cores == executor_cores:
            return row
    return None


def apply_row(params: AllocationParams, row: SweepRow) -> AllocationParams:
    """Copy a row's cores, memory and executor count back into the primary inputs."""
    return AllocationParams.model_validate({
        **params.model_dump(),
        "executor_cores": row.executor_cores,
        "executor_memory_gb": float(max(1, row.max_executor_memory_gb)),
        "max_executors": row.max_executors,
    })

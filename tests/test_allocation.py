"""Tests for executor placement."""
import math

from nodeopt.allocation import (
    INFEASIBLE_MESSAGE,
    compute_distribution,
    compute_slots_per_node,
    effective_executor_memory,
    max_feasible_executor_memory,
    reconcile_slots,
    summarize,
    total_unused_vcpus,
    unused_vcpus_per_node,
)
from nodeopt.models import AllocationParams


def test_elastic_fill_with_reserved(scenario_params):
    """CPU: 16/4 = 4, memory: 64/8 = 8 -> 4 slots; 10 + 1 AM over 3 nodes."""
    d = compute_distribution(scenario_params)
    assert d.slots_per_node == 4
    assert d.nodes_needed == 3
    assert d.per_node == [4, 4, 3]
    assert d.unplaced == 0
    assert d.placed_user == 10
    assert d.reserved_placed is True
    assert d.reserved_node_index == 0
    assert d.feasible


def test_executor_larger_than_node_is_infeasible():
    params = AllocationParams(executor_cores=20, node_vcpus=16, max_executors=10)
    d = compute_distribution(params)
    assert d.slots_per_node == 0
    assert d.per_node == []
    assert d.unplaced == 10
    assert d.placed_user == 0
    assert d.nodes_needed == 0
    assert d.reserved_placed is False
    assert d.reserved_node_index is None
    assert not d.feasible


def test_fixed_mode_overflow_is_unplaced(scenario_params):
    """2 nodes x 4 slots = 8 seats for 11 executors -> 3 unplaced."""
    params = scenario_params.model_copy(update={"fixed_nodes_mode": True, "num_nodes": 2})
    d = compute_distribution(params)
    assert d.nodes_needed == 2
    assert d.per_node == [4, 4]
    assert d.unplaced == 3
    assert d.placed_user == 7


def test_fixed_mode_with_spare_capacity(scenario_params):
    params = scenario_params.model_copy(update={"fixed_nodes_mode": True, "num_nodes": 5})
    d = compute_distribution(params)
    assert d.nodes_needed == 5
    assert d.per_node == [4, 4, 3, 0, 0]
    assert d.unplaced == 0


def test_fixed_mode_infeasible_keeps_node_count():
    params = AllocationParams(executor_cores=32, node_vcpus=16, fixed_nodes_mode=True, num_nodes=4)
    d = compute_distribution(params)
    assert d.slots_per_node == 0
    assert d.nodes_needed == 4
    assert d.per_node == []
    assert d.unplaced == params.max_executors


def test_max_feasible_executor_memory():
    """floor(floor(64 / 4) * (1 - 0.1875)) = floor(16 * 0.8125) = 13."""
    assert max_feasible_executor_memory(64, 4, 0.1875) == 13
    assert max_feasible_executor_memory(64, 0, 0.1875) == 0
    assert max_feasible_executor_memory(64, 3, 0) == 21


def test_default_inputs():
    """Defaults: 4 cores, 8 GB, 18.75% overhead on 16 vCPU / 64 GB nodes."""
    params = AllocationParams.defaults()
    d = compute_distribution(params)
    assert effective_executor_memory(params) == 9.5
    assert d.slots_per_node == 4
    assert d.per_node == [4, 4, 3]
    s = summarize(d, params)
    assert s.max_executor_memory_gb == 13


def test_memory_bound():
    """CPU allows 8, memory only 4."""
    params = AllocationParams(
        executor_cores=2, executor_memory_gb=16, executor_overhead_factor=0,
        node_vcpus=16, node_memory_gb=64,
    )
    assert compute_slots_per_node(params) == 4


def test_reconciliation_lowers_slots():
    """Overhead 50%: memory term allows 10, but an even split of 64 GB over 10 leaves 3 GB after overhead."""
    params = AllocationParams(
        executor_cores=1, executor_memory_gb=4, executor_overhead_factor=0.5,
        node_vcpus=16, node_memory_gb=64,
    )
    assert compute_slots_per_node(params) == 8
    relaxed = params.model_copy(update={"reconcile_memory": False})
    assert compute_slots_per_node(relaxed) == 10


def test_reconcile_slots_reaches_zero():
    params = AllocationParams(executor_memory_gb=100, node_memory_gb=64, executor_overhead_factor=0)
    assert reconcile_slots(4, params) == 0
    assert reconcile_slots(0, params) == 0


def test_overhead_disabled():
    params = AllocationParams(
        executor_cores=2, executor_memory_gb=8, executor_overhead_factor=0.1875,
        apply_overhead=False, node_vcpus=16, node_memory_gb=64,
    )
    assert effective_executor_memory(params) == 8
    assert compute_slots_per_node(params) == 8
    assert summarize(compute_distribution(params), params).max_executor_memory_gb == 8


def test_no_reserved_executors(scenario_params):
    params = scenario_params.model_copy(update={"reserved_executors": 0})
    d = compute_distribution(params)
    assert d.per_node == [4, 4, 2]
    assert d.reserved_placed is False
    assert d.reserved_node_index is None
    assert not any(d.is_reserved_slot(0, c) for c in range(4))


def test_reserved_spans_nodes():
    params = AllocationParams(
        executor_cores=8, executor_memory_gb=8, executor_overhead_factor=0,
        node_vcpus=16, node_memory_gb=64, max_executors=2, reserved_executors=3,
    )
    d = compute_distribution(params)
    assert d.per_node == [2, 2, 1]
    assert d.is_reserved_slot(0, 0)
    assert d.is_reserved_slot(0, 1)
    assert d.is_reserved_slot(1, 0)
    assert not d.is_reserved_slot(1, 1)
    assert not d.is_reserved_slot(2, 0)
    assert d.placed_user == 2


def test_reserved_exceeding_capacity():
    """One seat in total: the AM takes it and every user executor is unplaced."""
    params = AllocationParams(
        executor_cores=16, executor_memory_gb=8, executor_overhead_factor=0,
        node_vcpus=16, node_memory_gb=64, max_executors=5, reserved_executors=2,
        fixed_nodes_mode=True, num_nodes=1,
    )
    d = compute_distribution(params)
    assert d.per_node == [1]
    assert d.reserved_seated == 1
    assert d.placed_user == 0
    assert d.unplaced == 5


def test_zero_requested_still_seats_am(scenario_params):
    d = compute_distribution(scenario_params.model_copy(update={"max_executors": 0}))
    assert d.nodes_needed == 1
    assert d.per_node == [1]
    assert d.placed_user == 0
    assert d.unplaced == 0


def test_nothing_to_place(scenario_params):
    d = compute_distribution(scenario_params.model_copy(update={"max_executors": 0, "reserved_executors": 0}))
    assert d.feasible
    assert d.nodes_needed == 0
    assert d.per_node == []


def test_unused_vcpus(scenario_params):
    d = compute_distribution(scenario_params)
    assert unused_vcpus_per_node(d, scenario_params) == [0, 0, 4]
    assert total_unused_vcpus(d, scenario_params) == 4


def test_summary_text(scenario_params):
    s = summarize(compute_distribution(scenario_params), scenario_params)
    assert s.text == "Nodes needed: 3 • Unused vCPUs: 4 • Max calculated executor memory: 16 GB"
    fixed = scenario_params.model_copy(update={"fixed_nodes_mode": True, "num_nodes": 2})
    s = summarize(compute_distribution(fixed), fixed)
    assert "Unplaced executors: 3" in s.text


def test_summary_infeasible():
    params = AllocationParams(executor_cores=20, node_vcpus=16)
    s = summarize(compute_distribution(params), params)
    assert not s.feasible
    assert s.text == INFEASIBLE_MESSAGE
    assert s.max_executor_memory_gb == 0
    assert s.unused_vcpus_total == 0


def test_large_inputs_stay_bounded():
    """One slot per node with the executor ceiling: one entry per node, nothing more."""
    params = AllocationParams(
        executor_cores=16, node_vcpus=2e7, executor_memory_gb=8, node_memory_gb=64, max_executors=5_000_000,
    )
    assert params.node_vcpus == 256
    d = compute_distribution(params)
    assert d.slots_per_node == 6
    assert len(d.per_node) == d.nodes_needed
    assert d.nodes_needed == math.ceil((params.max_executors + 1) / 6)


def test_reconcile_starts_at_node_memory():
    """More slots than whole GB of node memory can never pass the share check."""
    params = AllocationParams(executor_cores=1, node_vcpus=256, executor_memory_gb=0.5, node_memory_gb=4)
    assert reconcile_slots(256, params) == 4

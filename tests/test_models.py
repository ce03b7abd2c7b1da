"""Tests for input coercion at the model boundary."""
import pytest
from pydantic import ValidationError

from nodeopt.models import (
    DEFAULT_OVERHEAD_FACTOR,
    MAX_EXECUTOR_CORES,
    MAX_EXECUTORS,
    MAX_MEMORY_GB,
    MAX_NODE_VCPUS,
    MAX_NUM_NODES,
    MAX_OVERHEAD_FACTOR,
    MAX_RESERVED_EXECUTORS,
    MAX_SURFACE_WIDTH,
    AllocationParams,
    PlanRequest,
    SweepApplyRequest,
)


def test_defaults():
    p = AllocationParams.defaults()
    assert p.executor_cores == 4
    assert p.executor_memory_gb == 8
    assert p.max_executors == 10
    assert p.node_vcpus == 16
    assert p.node_memory_gb == 64
    assert p.num_nodes == 3
    assert p.fixed_nodes_mode is False
    assert p.reserved_executors == 1
    assert p.executor_overhead_factor == DEFAULT_OVERHEAD_FACTOR


def test_sizes_coerced_to_one():
    p = AllocationParams(executor_cores=0, executor_memory_gb=-4, node_vcpus="abc", node_memory_gb=None, num_nodes=-2)
    assert p.executor_cores == 1
    assert p.executor_memory_gb == 1
    assert p.node_vcpus == 1
    assert p.node_memory_gb == 1
    assert p.num_nodes == 1


def test_counts_coerced_to_zero():
    p = AllocationParams(max_executors=-5, reserved_executors="many")
    assert p.max_executors == 0
    assert p.reserved_executors == 0


def test_fractions_floored():
    p = AllocationParams(executor_cores=3.7, node_vcpus="15.9", max_executors=9.99)
    assert p.executor_cores == 3
    assert p.node_vcpus == 15
    assert p.max_executors == 9


def test_fractional_memory_kept():
    assert AllocationParams(executor_memory_gb=0.5).executor_memory_gb == 0.5


def test_overhead_clamped():
    assert AllocationParams(executor_overhead_factor=-0.2).executor_overhead_factor == 0
    assert AllocationParams(executor_overhead_factor=3).executor_overhead_factor == MAX_OVERHEAD_FACTOR
    assert AllocationParams(executor_overhead_factor="x").executor_overhead_factor == DEFAULT_OVERHEAD_FACTOR
    assert AllocationParams(executor_overhead_factor=float("nan")).executor_overhead_factor == DEFAULT_OVERHEAD_FACTOR


def test_overhead_property_respects_flag():
    assert AllocationParams(apply_overhead=False).overhead == 0
    assert AllocationParams(executor_overhead_factor=0.25).overhead == 0.25


def test_flags_from_strings():
    p = AllocationParams(fixed_nodes_mode="true", apply_overhead="0", reconcile_memory="no")
    assert p.fixed_nodes_mode is True
    assert p.apply_overhead is False
    assert p.reconcile_memory is False


def test_params_are_frozen():
    p = AllocationParams()
    with pytest.raises(ValidationError):
        p.executor_cores = 8


def test_plan_request_coercion():
    r = PlanRequest(target_max_nodes="0", surface_width=-10)
    assert r.target_max_nodes == 1
    assert r.surface_width == 1
    assert PlanRequest().target_max_nodes is None


def test_oversized_values_clamped():
    p = AllocationParams(
        executor_cores=10_000,
        node_vcpus=2e7,
        node_memory_gb=1e12,
        executor_memory_gb="1e9",
        max_executors=5_000_000,
        reserved_executors=10**9,
        num_nodes=10**6,
    )
    assert p.executor_cores == MAX_EXECUTOR_CORES
    assert p.node_vcpus == MAX_NODE_VCPUS
    assert p.node_memory_gb == MAX_MEMORY_GB
    assert p.executor_memory_gb == MAX_MEMORY_GB
    assert p.max_executors == MAX_EXECUTORS
    assert p.reserved_executors == MAX_RESERVED_EXECUTORS
    assert p.num_nodes == MAX_NUM_NODES


def test_plan_request_clamped():
    r = PlanRequest(target_max_nodes=10**9, surface_width=1e9)
    assert r.target_max_nodes == MAX_NUM_NODES
    assert r.surface_width == MAX_SURFACE_WIDTH
    assert SweepApplyRequest(target_max_nodes=10**9, executor_cores=4).target_max_nodes == MAX_NUM_NODES

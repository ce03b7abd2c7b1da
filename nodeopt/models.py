"""Input/output types for the node optimizer."""
import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DEFAULT_OVERHEAD_FACTOR = 0.1875
MAX_OVERHEAD_FACTOR = 0.99
_TRUE_STRINGS = ("1", "true", "yes", "on")

# Input ceilings. Larger values are clamped, not rejected.
MAX_EXECUTOR_CORES = 256
MAX_NODE_VCPUS = 256
MAX_MEMORY_GB = 1_000_000.0
MAX_EXECUTORS = 100_000
MAX_RESERVED_EXECUTORS = 1_000
MAX_NUM_NODES = 10_000
MAX_SURFACE_WIDTH = 20_000.0

_CEILINGS = {
    "executor_cores": MAX_EXECUTOR_CORES,
    "node_vcpus": MAX_NODE_VCPUS,
    "num_nodes": MAX_NUM_NODES,
    "max_executors": MAX_EXECUTORS,
    "reserved_executors": MAX_RESERVED_EXECUTORS,
}


def _as_number(value: Any) -> float | None:
    """Return value as a finite float, or None when it is not numeric."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        v = float(value)
    elif isinstance(value, str):
        try:
            v = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def positive_int(value: Any, upper: int | None = None) -> int:
    v = _as_number(value)
    if v is None or v < 1:
        return 1
    if upper is not None and v > upper:
        return upper
    return int(math.floor(v))


def positive_float(value: Any, upper: float | None = None) -> float:
    v = _as_number(value)
    if v is None or v <= 0:
        return 1.0
    if upper is not None and v > upper:
        return upper
    return v


def _count(value: Any, upper: int) -> int:
    v = _as_number(value)
    if v is None or v < 0:
        return 0
    return int(math.floor(min(v, upper)))


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


class AllocationParams(BaseModel):
    """
    Immutable snapshot of the planner inputs.
    Invalid numbers are coerced to safe minimums (1 for sizes, 0 for counts) and
    oversized ones clamped to the ceilings below, instead of rejected.
    """
    model_config = ConfigDict(frozen=True)

    executor_cores: int = Field(4, ge=1, le=MAX_EXECUTOR_CORES, description="Cores consumed by one executor")
    executor_memory_gb: float = Field(
        8.0, gt=0, le=MAX_MEMORY_GB, description="Memory GB requested per executor, before overhead"
    )
    executor_overhead_factor: float = Field(
        DEFAULT_OVERHEAD_FACTOR,
        ge=0,
        le=MAX_OVERHEAD_FACTOR,
        description="Fraction of executor memory reserved as overhead, in [0, 1)",
    )
    max_executors: int = Field(10, ge=0, le=MAX_EXECUTORS, description="Executors to place, excluding reserved executors")
    node_vcpus: int = Field(16, ge=1, le=MAX_NODE_VCPUS, description="vCPUs per node")
    node_memory_gb: float = Field(64.0, gt=0, le=MAX_MEMORY_GB, description="Memory GB per node")
    num_nodes: int = Field(3, ge=1, le=MAX_NUM_NODES, description="Node count ceiling (fixed-node mode only)")
    fixed_nodes_mode: bool = Field(False, description="Use num_nodes instead of deriving the node count")
    reserved_executors: int = Field(
        1, ge=0, le=MAX_RESERVED_EXECUTORS, description="Cluster-wide slots reserved for the AM"
    )
    apply_overhead: bool = Field(True, description="Inflate executor memory by the overhead factor")
    reconcile_memory: bool = Field(True, description="Lower the CPU slot count until every slot gets its memory share")

    @field_validator("executor_cores", "node_vcpus", "num_nodes", mode="before")
    @classmethod
    def _coerce_positive_int(cls, v: Any, info: ValidationInfo) -> int:
        return positive_int(v, _CEILINGS[info.field_name])

    @field_validator("executor_memory_gb", "node_memory_gb", mode="before")
    @classmethod
    def _coerce_positive_float(cls, v: Any) -> float:
        return positive_float(v, MAX_MEMORY_GB)

    @field_validator("max_executors", "reserved_executors", mode="before")
    @classmethod
    def _coerce_count(cls, v: Any, info: ValidationInfo) -> int:
        return _count(v, _CEILINGS[info.field_name])

    @field_validator("executor_overhead_factor", mode="before")
    @classmethod
    def _coerce_overhead(cls, v: Any) -> float:
        f = _as_number(v)
        if f is None:
            return DEFAULT_OVERHEAD_FACTOR
        return min(MAX_OVERHEAD_FACTOR, max(0.0, f))

    @field_validator("fixed_nodes_mode", "apply_overhead", "reconcile_memory", mode="before")
    @classmethod
    def _coerce_flag(cls, v: Any) -> bool:
        return _flag(v)

    @classmethod
    def defaults(cls) -> "AllocationParams":
        """Values restored by the reset action."""
        return cls()

    @property
    def overhead(self) -> float:
        """Overhead factor in effect (0 when overhead accounting is disabled)."""
        return self.executor_overhead_factor if self.apply_overhead else 0.0


class Distribution(BaseModel):
    """Result of placing executors onto nodes."""
    model_config = ConfigDict(frozen=True)

    slots_per_node: int
    nodes_needed: int
    per_node: list[int] = Field(default_factory=list)
    unplaced: int
    placed_user: int
    reserved_executors: int = 0
    reserved_seated: int = 0
    reserved_placed: bool = False
    reserved_node_index: Optional[int] = None
    fixed_nodes_mode: bool = False

    @property
    def feasible(self) -> bool:
        return self.slots_per_node > 0

    @property
    def placed_total(self) -> int:
        return sum(self.per_node)

    @property
    def total_requested(self) -> int:
        return self.placed_user + self.unplaced + self.reserved_executors

    def is_reserved_slot(self, node_index: int, column: int) -> bool:
        """True when the slot at (node_index, column) holds a reserved executor.

        Reserved executors take the first slot positions in fill order: node 0
        left to right, then node 1, and so on.
        """
        if not self.reserved_placed or node_index >= len(self.per_node):
            return False
        if column >= self.per_node[node_index]:
            return False
        position = column
        for placed in self.per_node[:node_index]:
            position += placed
            if position >= self.reserved_seated:
                return False
        return position < self.reserved_seated


class PlanSummary(BaseModel):
    """Human-facing metrics derived from a Distribution."""
    feasible: bool
    nodes_needed: int
    unplaced: int
    unused_vcpus_per_node: list[int] = Field(default_factory=list)
    unused_vcpus_total: int
    max_executor_memory_gb: int
    text: str


class SweepRow(BaseModel):
    """One row of the optimal-combinations table."""
    executor_cores: int
    slots_per_node: int
    unused_vcpus_per_node: int
    max_executor_memory_gb: int
    max_executors: int
    shuffle_partitions: int


class SlotBox(BaseModel):
    """One executor column inside a node box (pixel coordinates, origin top-left)."""
    column: int
    x: float
    y: float
    width: float
    height: float
    used: bool
    reserved: bool
    label: str
    vcpus: int
    used_vcpus: int


class NodeBox(BaseModel):
    """One node in the grid."""
    index: int
    grid_column: int
    grid_row: int
    x: float
    y: float
    width: float
    height: float
    placed: int
    unused_vcpus: int
    label: str
    footer: str
    slots: list[SlotBox] = Field(default_factory=list)


class LayoutDescriptor(BaseModel):
    """Pixel layout of the distribution, sized to fit the surface width."""
    infeasible: bool = False
    message: Optional[str] = None
    surface_width: float
    canvas_width: float
    canvas_height: float
    columns: int = 0
    rows: int = 0
    cols_per_node: int = 0
    node_width: float = 0
    node_height: float = 0
    exec_width: float = 0
    exec_height: float = 0
    spacing_x: float = 0
    offset_x: float = 0
    core_size: float = 0
    core_space: float = 0
    executor_header_space: float = 0
    nodes: list[NodeBox] = Field(default_factory=list)
    hidden_nodes: int = 0


class PlanRequest(BaseModel):
    """Request body for /v1/plan and the render endpoints."""
    params: AllocationParams = Field(default_factory=AllocationParams)
    target_max_nodes: Optional[int] = Field(None, description="Target node count for the sweep table")
    surface_width: Optional[float] = Field(None, description="Drawing surface width in px")
    include_sweep: bool = True

    @field_validator("target_max_nodes", mode="before")
    @classmethod
    def _coerce_target(cls, v: Any) -> int | None:
        if v is None:
            return None
        return positive_int(v, MAX_NUM_NODES)

    @field_validator("surface_width", mode="before")
    @classmethod
    def _coerce_width(cls, v: Any) -> float | None:
        if v is None:
            return None
        return positive_float(v, MAX_SURFACE_WIDTH)


class PlanResponse(BaseModel):
    """Response from /v1/plan."""
    params: AllocationParams
    distribution: Distribution
    summary: PlanSummary
    layout: LayoutDescriptor
    target_max_nodes: int
    sweep: list[SweepRow] = Field(default_factory=list)


class SweepApplyRequest(BaseModel):
    """Request body for /v1/sweep/apply."""
    params: AllocationParams = Field(default_factory=AllocationParams)
    target_max_nodes: Optional[int] = None
    executor_cores: int = Field(..., description="Sweep row to apply, by executor cores")

    @field_validator("target_max_nodes", mode="before")
    @classmethod
    def _coerce_target(cls, v: Any) -> int | None:
        if v is None:
            return None
        return positive_int(v, MAX_NUM_NODES)


class SessionUpdate(BaseModel):
    """Partial input changes for PATCH /v1/session. Unset fields are left untouched."""
    executor_cores: Optional[Any] = None
    executor_memory_gb: Optional[Any] = None
    executor_overhead_factor: Optional[Any] = None
    max_executors: Optional[Any] = None
    node_vcpus: Optional[Any] = None
    node_memory_gb: Optional[Any] = None
    num_nodes: Optional[Any] = None
    fixed_nodes_mode: Optional[Any] = None
    reserved_executors: Optional[Any] = None
    apply_overhead: Optional[Any] = None
    reconcile_memory: Optional[Any] = None
    target_max_nodes: Optional[Any] = None
    surface_width: Optional[Any] = None
    immediate: bool = False

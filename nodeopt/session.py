"""Live planner state: latest input snapshot, latest plan, debounced recomputation."""
import logging
import os
import threading

from nodeopt.models import (
    MAX_NUM_NODES,
    MAX_SURFACE_WIDTH,
    AllocationParams,
    PlanResponse,
    positive_float,
    positive_int,
)
from nodeopt.plan import build_plan, get_default_surface_width, get_default_target_max_nodes
from nodeopt.sweep import apply_row, find_row

_LOG = logging.getLogger(__name__)

_DEBOUNCE_MS = int(os.environ.get("NODEOPT_DEBOUNCE_MS", "120"))

_PARAM_FIELDS = frozenset(AllocationParams.model_fields)


def get_debounce_sec() -> float:
    return _DEBOUNCE_MS / 1000.0


class Debouncer:
    """
    Trailing-edge debounce: only the last call within wait_sec runs.
    Superseded calls are dropped, not queued.
    """

    def __init__(self, wait_sec: float, func, timer_factory=threading.Timer):
        self.wait_sec = wait_sec
        self._func = func
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer = None
        self._pending = None
        self._generation = 0

    def __call__(self, *args, **kwargs) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending = (args, kwargs)
            timer = self._timer_factory(self.wait_sec, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
        timer.start()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def _take(self, generation: int | None = None):
        with self._lock:
            if generation is not None and generation != self._generation:
                return None
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            pending, self._pending = self._pending, None
            return pending

    def _fire(self, generation: int) -> None:
        pending = self._take(generation)
        if pending is not None:
            args, kwargs = pending
            self._func(*args, **kwargs)

    def flush(self) -> bool:
        """Run the pending call now. Returns False when nothing was pending."""
        pending = self._take()
        if pending is None:
            return False
        args, kwargs = pending
        self._func(*args, **kwargs)
        return True

    def cancel(self) -> None:
        self._take()


class PlannerSession:
    """
    Single-writer planner state. update() merges input changes into the snapshot and
    schedules a debounced recompute; reset() and apply_sweep_row() recompute at once.
    """

    def __init__(
        self,
        params: AllocationParams | None = None,
        target_max_nodes: int | None = None,
        surface_width: float | None = None,
        debounce_sec: float | None = None,
        timer_factory=threading.Timer,
    ):
        self._lock = threading.RLock()
        self._inputs = params or AllocationParams.defaults()
        self._target_max_nodes = target_max_nodes or get_default_target_max_nodes()
        self._surface_width = surface_width or get_default_surface_width()
        self._plan: PlanResponse | None = None
        self._revision = 0
        wait = get_debounce_sec() if debounce_sec is None else debounce_sec
        self._debouncer = Debouncer(wait, self.recompute, timer_factory=timer_factory)
        self.recompute()

    @property
    def inputs(self) -> AllocationParams:
        return self._inputs

    @property
    def target_max_nodes(self) -> int:
        return self._target_max_nodes

    @property
    def surface_width(self) -> float:
        return self._surface_width

    @property
    def plan(self) -> PlanResponse:
        return self._plan

    @property
    def revision(self) -> int:
        """Number of recomputations so far."""
        return self._revision

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def recompute(self) -> PlanResponse:
        with self._lock:
            plan = build_plan(self._inputs, self._target_max_nodes, self._surface_width)
            self._plan = plan
            self._revision += 1
        _LOG.debug(
            "session recomputed",
            extra={"revision": self._revision, "feasible": plan.distribution.feasible},
        )
        return plan

    def update(self, immediate: bool = False, **changes) -> None:
        """Merge changes (parameter fields, target_max_nodes, surface_width); None values are ignored."""
        changes = {k: v for k, v in changes.items() if v is not None}
        with self._lock:
            param_changes = {k: v for k, v in changes.items() if k in _PARAM_FIELDS}
            if param_changes:
                values = self._inputs.model_dump()
                values.update(param_changes)
                self._inputs = AllocationParams.model_validate(values)
            if "target_max_nodes" in changes:
                self._target_max_nodes = positive_int(changes["target_max_nodes"], MAX_NUM_NODES)
            if "surface_width" in changes:
                self._surface_width = positive_float(changes["surface_width"], MAX_SURFACE_WIDTH)
        if immediate:
            self._debouncer.cancel()
            self.recompute()
        else:
            self._debouncer()

    def flush(self) -> bool:
        """Run a pending debounced recompute now."""
        return self._debouncer.flush()

    def reset(self) -> PlanResponse:
        """Restore default inputs and recompute."""
        self._debouncer.cancel()
        with self._lock:
            self._inputs = AllocationParams.defaults()
            self._target_max_nodes = get_default_target_max_nodes()
        return self.recompute()

    def apply_sweep_row(self, executor_cores: int) -> PlanResponse:
        """Copy the sweep row for executor_cores into the inputs. KeyError when there is no such row."""
        self._debouncer.flush()
        with self._lock:
            row = find_row(self._plan.sweep, executor_cores)
            if row is None:
                raise KeyError(executor_cores)
            self._inputs = apply_row(self._inputs, row)
        return self.recompute()

    def close(self) -> None:
        self._debouncer.cancel()

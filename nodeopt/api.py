"""FastAPI routes for the node optimizer."""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from pydantic import ValidationError

from nodeopt.allocation import compute_distribution
from nodeopt.models import (
    AllocationParams,
    Distribution,
    PlanRequest,
    PlanResponse,
    SessionUpdate,
    SweepApplyRequest,
    SweepRow,
    positive_int,
)
from nodeopt.observability import RequestLoggingMiddleware, get_metrics_text, record_plan
from nodeopt.plan import build_plan, get_default_target_max_nodes
from nodeopt.report.diagram import render_pdf, render_svg
from nodeopt.report.html_report import generate_plan_html
from nodeopt.report.pdf import generate_plan_pdf
from nodeopt.resilience import get_report_timeout_sec, run_sync_with_timeout
from nodeopt.security import RateLimitMiddleware
from nodeopt.session import PlannerSession
from nodeopt.sweep import apply_row, find_row, sweep

_LOG = logging.getLogger(__name__)

_session: PlannerSession | None = None


def _cors_origins() -> list[str]:
    raw = (os.environ.get("NODEOPT_CORS_ORIGINS") or "").strip()
    if not raw:
        return []
    if raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


def get_session() -> PlannerSession:
    """Process-wide live session (created on first use)."""
    global _session
    if _session is None:
        _session = PlannerSession()
    return _session


def close_session() -> None:
    global _session
    if _session is not None:
        _session.close()
        _session = None


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    close_session()


app = FastAPI(
    title="Node Optimizer",
    description="Executor placement planner: how many executors fit per node and how many nodes are needed",
    version="0.1.0",
    lifespan=lifespan,
)
origins = _cors_origins()
if origins:
    app.add_middleware(CORSMiddleware, allow_origins=origins, allow_credentials=True, allow_methods=["*"], allow_headers=["*"])
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLoggingMiddleware)


def _do_plan(body: PlanRequest) -> PlanResponse:
    plan = build_plan(body.params, body.target_max_nodes, body.surface_width, body.include_sweep)
    record_plan(plan.distribution.feasible)
    return plan


def _query_plan_request(req: Request) -> PlanRequest:
    """PlanRequest from query parameters (used by the sweep-row links in the HTML report)."""
    query = dict(req.query_params)
    params = AllocationParams.model_validate({k: v for k, v in query.items() if k in AllocationParams.model_fields})
    return PlanRequest(
        params=params,
        target_max_nodes=query.get("target_max_nodes"),
        surface_width=query.get("surface_width"),
    )


@app.get("/v1/health")
def health():
    """Health check."""
    return {"status": "ok", "service": "nodeopt"}


@app.get("/v1/metrics")
def metrics():
    """Prometheus-style metrics (request counts, uptime, plans computed)."""
    return PlainTextResponse(get_metrics_text(), media_type="text/plain; charset=utf-8")


@app.get("/v1/defaults", response_model=AllocationParams)
def defaults():
    """Input values restored by the reset action."""
    return AllocationParams.defaults()


@app.post("/v1/distribution", response_model=Distribution)
def distribution(params: AllocationParams):
    """Place executors for the posted inputs; infeasible inputs return slots_per_node = 0."""
    dist = compute_distribution(params)
    record_plan(dist.feasible)
    return dist


@app.post("/v1/plan", response_model=PlanResponse)
def plan(body: PlanRequest):
    """Distribution, summary, layout and optimal-combinations sweep in one response."""
    return _do_plan(body)


@app.post("/v1/sweep", response_model=list[SweepRow])
def sweep_table(body: PlanRequest):
    """Optimal-combinations rows for executor cores 2..node_vcpus."""
    return sweep(body.params, body.target_max_nodes or get_default_target_max_nodes())


@app.post("/v1/sweep/apply", response_model=PlanResponse)
def sweep_apply(body: SweepApplyRequest):
    """Apply a sweep row back to the inputs and return the resulting plan."""
    target = body.target_max_nodes or get_default_target_max_nodes()
    row = find_row(sweep(body.params, target), body.executor_cores)
    if row is None:
        raise HTTPException(status_code=404, detail=f"No sweep row for {body.executor_cores} executor cores.")
    return _do_plan(PlanRequest(params=apply_row(body.params, row), target_max_nodes=target))


@app.post("/v1/diagram.svg")
def diagram_svg(body: PlanRequest):
    """Placement diagram as SVG."""
    result = _do_plan(body.model_copy(update={"include_sweep": False}))
    return Response(content=render_svg(result.layout), media_type="image/svg+xml")


@app.post("/v1/diagram.pdf")
def diagram_pdf(body: PlanRequest):
    """Placement diagram as a single-page PDF."""
    result = _do_plan(body.model_copy(update={"include_sweep": False}))
    return Response(
        content=render_pdf(result.layout),
        media_type="application/pdf",
        headers={"Content-Disposition": "attachment; filename=nodeopt-diagram.pdf"},
    )


def _report_pdf(body: PlanRequest) -> bytes:
    """Generate report PDF (sync, for timeout wrapper)."""
    result = _do_plan(body)
    return generate_plan_pdf(
        result.params,
        result.distribution,
        result.summary,
        result.layout,
        result.sweep,
        result.target_max_nodes,
    )


@app.post("/v1/report")
def report(body: PlanRequest):
    """Generate and return the PDF plan report."""
    try:
        pdf_bytes = run_sync_with_timeout(get_report_timeout_sec(), _report_pdf, body)
    except TimeoutError:
        raise HTTPException(status_code=504, detail="Report generation timed out.")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": "attachment; filename=nodeopt-plan.pdf"},
    )


def _report_html(body: PlanRequest, req: Request) -> HTMLResponse:
    result = _do_plan(body)
    html = generate_plan_html(
        result.params,
        result.distribution,
        result.summary,
        result.layout,
        result.sweep,
        result.target_max_nodes,
        app_url=str(req.base_url).rstrip("/"),
    )
    return HTMLResponse(html)


@app.api_route("/v1/report/html", methods=["GET", "POST"], response_class=HTMLResponse)
async def report_html_route(req: Request):
    """
    GET: inputs from query parameters (missing ones use defaults).
    POST: body = PlanRequest.
    """
    if req.method == "GET":
        return _report_html(_query_plan_request(req), req)
    try:
        body = PlanRequest.model_validate(await req.json())
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid plan request: {e!s}")
    return _report_html(body, req)


@app.get("/v1/session", response_model=PlanResponse)
def session_get(flush: bool = False):
    """Latest plan of the live session. flush=true runs a pending debounced recompute first."""
    s = get_session()
    if flush:
        s.flush()
    return s.plan


@app.patch("/v1/session")
def session_update(body: SessionUpdate):
    """Merge input changes; recomputation is debounced unless immediate=true."""
    s = get_session()
    changes = body.model_dump(exclude={"immediate"}, exclude_none=True)
    s.update(immediate=body.immediate, **changes)
    return {
        "accepted": True,
        "pending": s.pending,
        "revision": s.revision,
        "inputs": s.inputs.model_dump(),
        "target_max_nodes": s.target_max_nodes,
        "surface_width": s.surface_width,
    }


@app.post("/v1/session/reset", response_model=PlanResponse)
def session_reset():
    """Restore default inputs."""
    return get_session().reset()


@app.post("/v1/session/apply", response_model=PlanResponse)
def session_apply(executor_cores: int):
    """Copy a sweep row into the live session inputs."""
    try:
        return get_session().apply_sweep_row(positive_int(executor_cores))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No sweep row for {executor_cores} executor cores.")

"""FastAPI app evaluating bounded lazy pipelines over generated sources."""

import datetime
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from lazy import Lazy
from utils import (
    logger,
    PipelineError,
    PullBudget,
    build_source,
    process_lazy_operations,
    process_pagination,
    process_chunking,
    process_reduction,
    process_element,
    get_performance_summary,
    clear_performance_metrics,
)
from models import (
    PipelineLimits, PipelineRequest, PipelineResponse, PageRequest, PageResponse,
    ChunkRequest, ChunkResponse, ReductionRequest, ReductionResponse,
    ElementRequest, ElementResponse, MetricsResponse, StatusResponse, ErrorResponse
)

__version__ = "0.1.0"

LIMITS = PipelineLimits()

app = FastAPI(title="Lazy Sequences", version=__version__)


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _source_for(request: PipelineRequest) -> Lazy:
    """Build the request's source, capped so unbounded sources terminate"""
    return build_source(request.source.model_dump()).take(LIMITS.max_source_items)


def _operations_for(request: PipelineRequest):
    operations = [op.model_dump() for op in request.operations]
    for op in operations:
        count = op.get("count")
        if count is None:
            continue
        if count > LIMITS.max_operation_count:
            raise PipelineError(f"{op['type'].value} count cannot exceed {LIMITS.max_operation_count}")
        if op["type"] == "repeat_each" and count > LIMITS.max_repeat_each:
            raise PipelineError(f"repeat_each count cannot exceed {LIMITS.max_repeat_each}")
    return operations


def _budget() -> PullBudget:
    return PullBudget(LIMITS.max_pulls)


def _item_cap(request: PipelineRequest) -> int:
    if request.max_items is None:
        return LIMITS.max_items
    return min(request.max_items, LIMITS.max_items)


def _raise_for_error(result: Dict[str, Any]) -> None:
    if "error" not in result:
        return
    status_code = 400 if result.get("error_code") == "PIPELINE_ERROR" else 500
    raise HTTPException(status_code=status_code, detail=result["error"])


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    logger.warning(f"Rejected pipeline on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=str(exc),
            error_code="PIPELINE_ERROR",
            timestamp=_now()
        ).model_dump()
    )


@app.get("/", response_model=StatusResponse)
async def root() -> StatusResponse:
    return StatusResponse(status="running", version=__version__, limits=LIMITS.model_dump())


@app.get("/health", response_model=StatusResponse)
async def health_check() -> StatusResponse:
    return StatusResponse(status="healthy", version=__version__)


# pipeline handlers are plain functions so evaluation runs in the threadpool
@app.post("/pipeline", response_model=PipelineResponse)
def run_pipeline(request: PipelineRequest) -> PipelineResponse:
    """Materialize a pipeline, returning at most max_items elements."""
    result = process_lazy_operations(_source_for(request), _operations_for(request), _item_cap(request), _budget())
    _raise_for_error(result)
    return PipelineResponse(
        items=result["result"],
        count=len(result["result"]),
        operations_applied=result["operations_applied"],
        performance=result["performance"]
    )


@app.post("/pipeline/page", response_model=PageResponse)
def run_page(request: PageRequest) -> PageResponse:
    page_size = request.page_size or LIMITS.default_page_size
    if page_size > LIMITS.max_page_size:
        raise HTTPException(status_code=400, detail=f"page_size cannot exceed {LIMITS.max_page_size}")

    result = process_pagination(_source_for(request), request.page_number, page_size, _operations_for(request), _budget())
    _raise_for_error(result)
    return PageResponse(**result)


@app.post("/pipeline/chunks", response_model=ChunkResponse)
def run_chunks(request: ChunkRequest) -> ChunkResponse:
    result = process_chunking(
        _source_for(request),
        request.chunk_size,
        request.max_chunks,
        _operations_for(request),
        _item_cap(request),
        _budget()
    )
    _raise_for_error(result)
    return ChunkResponse(**result)


@app.post("/pipeline/reduce", response_model=ReductionResponse)
def run_reduction(request: ReductionRequest) -> ReductionResponse:
    result = process_reduction(_source_for(request), request.reduction, _operations_for(request), _item_cap(request), _budget())
    _raise_for_error(result)
    return ReductionResponse(**result)


@app.post("/pipeline/at", response_model=ElementResponse)
def element_at(request: ElementRequest) -> ElementResponse:
    """Positional lookup; a short sequence answers found=False rather than an error."""
    if request.index > LIMITS.max_index:
        raise HTTPException(status_code=400, detail=f"index cannot exceed {LIMITS.max_index}")

    result = process_element(_source_for(request), request.index, _operations_for(request), _budget())
    _raise_for_error(result)
    return ElementResponse(index=result["index"], found=result["found"], value=result["value"])


@app.get("/metrics", response_model=MetricsResponse)
async def get_metrics() -> MetricsResponse:
    return MetricsResponse(**get_performance_summary())


@app.delete("/metrics", response_model=StatusResponse)
async def clear_metrics() -> StatusResponse:
    clear_performance_metrics()
    return StatusResponse(status="metrics cleared", version=__version__)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

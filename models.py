"""Pydantic models for the lazy pipeline API."""

from typing import Any, Dict, List, Optional, Union
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict


class SourceType(str, Enum):
    """Source sequence kinds"""
    RANGE = "range"
    REPEAT = "repeat"
    FIBONACCI = "fibonacci"
    PRIMES = "primes"
    LIST = "list"


class OperationType(str, Enum):
    """Chainable (lazy) operation kinds"""
    MAP = "map"
    FILTER = "filter"
    TAKE = "take"
    SKIP = "skip"
    BATCH = "batch"
    TAKE_WHILE = "take_while"
    REPEAT_EACH = "repeat_each"
    ENUMERATE = "enumerate"
    ZIP_RANGE = "zip_range"


class ReductionType(str, Enum):
    """Terminal reductions"""
    SUM = "sum"
    COUNT = "count"
    MIN = "min"
    MAX = "max"
    FIRST = "first"
    LAST = "last"


MAX_OPERATION_COUNT = 1_000_000
MAX_REPEAT_EACH = 1000


class PipelineLimits(BaseModel):
    """Bounds applied to every served pipeline so infinite sources terminate."""
    max_source_items: int = Field(1_000_000, ge=1, description="Elements pulled from a source at most")
    max_pulls: int = Field(
        2_000_000,
        ge=1,
        description="Elements a pipeline may pull in total, counted at the source and after every expanding stage"
    )
    max_operation_count: int = Field(MAX_OPERATION_COUNT, ge=0, description="Largest take/skip/repeat_each count")
    max_repeat_each: int = Field(MAX_REPEAT_EACH, ge=0, description="Largest repeat_each count")
    max_items: int = Field(10_000, ge=1, description="Elements returned by a pipeline at most")
    default_page_size: int = Field(10, ge=1)
    max_page_size: int = Field(1000, ge=1)
    max_index: int = Field(1_000_000, ge=0, description="Largest index served by positional lookups")

    @model_validator(mode='after')
    def validate_page_sizes(self):
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size cannot exceed max_page_size")
        return self


class SourceSpec(BaseModel):
    """Description of the sequence a pipeline starts from."""
    type: SourceType = Field(SourceType.RANGE, description="Kind of source sequence")
    start: int = Field(0, description="First value of a range")
    end: Optional[int] = Field(None, description="Exclusive end of a range; None for unbounded")
    step: int = Field(1, description="Range step (non-zero)")
    value: Optional[Any] = Field(None, description="Value for a repeat source")
    times: Optional[int] = Field(None, ge=0, description="Repeat count; None for unbounded")
    items: Optional[List[Any]] = Field(None, description="Elements of a list source")

    @field_validator('step')
    @classmethod
    def validate_step(cls, v):
        if v == 0:
            raise ValueError("step must not be zero")
        return v

    @model_validator(mode='after')
    def validate_list_items(self):
        if self.type == SourceType.LIST and self.items is None:
            raise ValueError("list source requires items")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"type": "range", "start": 0, "end": None, "step": 1}
        }
    )


class OperationSpec(BaseModel):
    """One lazy operation in a pipeline."""
    type: OperationType = Field(..., description="Operation kind")
    function: Optional[str] = Field(None, description="Named map function")
    predicate: Optional[str] = Field(None, description="Named filter predicate")
    operand: Optional[Union[int, float]] = Field(None, description="Operand for binary functions/predicates")
    count: Optional[int] = Field(
        None, ge=0, le=MAX_OPERATION_COUNT, description="Count for take/skip/repeat_each"
    )
    size: Optional[int] = Field(None, ge=1, description="Batch size")

    @model_validator(mode='after')
    def validate_required_arguments(self):
        if self.type == OperationType.MAP and not self.function:
            raise ValueError("map requires function")
        if self.type in (OperationType.FILTER, OperationType.TAKE_WHILE) and not self.predicate:
            raise ValueError(f"{self.type.value} requires predicate")
        if self.type in (OperationType.TAKE, OperationType.SKIP, OperationType.REPEAT_EACH) and self.count is None:
            raise ValueError(f"{self.type.value} requires count")
        if self.type == OperationType.REPEAT_EACH and self.count > MAX_REPEAT_EACH:
            raise ValueError(f"repeat_each count cannot exceed {MAX_REPEAT_EACH}")
        if self.type == OperationType.BATCH and self.size is None:
            raise ValueError("batch requires size")
        return self


class PipelineRequest(BaseModel):
    """Source plus ordered operations."""
    source: SourceSpec = Field(default_factory=SourceSpec)
    operations: List[OperationSpec] = Field(default_factory=list)
    max_items: Optional[int] = Field(None, ge=1, description="Cap on returned elements")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "source": {"type": "range", "start": 0},
                "operations": [
                    {"type": "filter", "predicate": "even"},
                    {"type": "map", "function": "square"},
                    {"type": "take", "count": 5}
                ]
            }
        }
    )


class PageRequest(PipelineRequest):
    page_number: int = Field(1, ge=1, description="1-indexed page number")
    page_size: Optional[int] = Field(None, ge=1, description="Elements per page")


class ChunkRequest(PipelineRequest):
    chunk_size: int = Field(..., ge=1, description="Elements per chunk")
    max_chunks: Optional[int] = Field(None, ge=1, description="Maximum chunks to return")


class ReductionRequest(PipelineRequest):
    reduction: ReductionType = Field(..., description="Terminal reduction to apply")


class ElementRequest(PipelineRequest):
    index: int = Field(..., ge=0, description="Zero-based position")


class PerformanceInfo(BaseModel):
    """Timing and pull statistics for one evaluation."""
    processing_time_ms: float = Field(..., ge=0)
    memory_usage_mb: Optional[float] = Field(None, ge=0)
    output_size: Optional[int] = Field(None, ge=0)
    elements_pulled: Optional[int] = Field(None, ge=0, description="Elements pulled from the source")
    operation: str = Field(..., description="Operation label")


class PipelineResponse(BaseModel):
    ok: bool = Field(True)
    items: List[Any] = Field(..., description="Materialized elements")
    count: int = Field(..., ge=0)
    operations_applied: List[str] = Field(default_factory=list)
    performance: PerformanceInfo


class PageResponse(BaseModel):
    ok: bool = Field(True)
    page_data: List[Any]
    current_page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    has_next_page: bool
    has_previous_page: bool
    operations_applied: List[str] = Field(default_factory=list)
    performance: PerformanceInfo


class ChunkResponse(BaseModel):
    ok: bool = Field(True)
    chunks: List[List[Any]]
    total_chunks: int = Field(..., ge=0)
    total_items: int = Field(..., ge=0)
    chunk_size: int = Field(..., ge=1)
    max_chunks: Optional[int] = None
    operations_applied: List[str] = Field(default_factory=list)
    performance: PerformanceInfo


class ReductionResponse(BaseModel):
    ok: bool = Field(True)
    reduction: ReductionType
    result: Optional[Any] = None
    operations_applied: List[str] = Field(default_factory=list)
    performance: PerformanceInfo


class ElementResponse(BaseModel):
    ok: bool = Field(True)
    index: int = Field(..., ge=0)
    found: bool = Field(..., description="False when the sequence is shorter than index + 1")
    value: Optional[Any] = None


class MetricsResponse(BaseModel):
    total_operations: int = Field(..., ge=0)
    total_time_ms: float = Field(..., ge=0)
    total_memory_mb: float = Field(..., ge=0)
    avg_time_ms: float = Field(..., ge=0)
    avg_memory_mb: float = Field(..., ge=0)


class StatusResponse(BaseModel):
    ok: bool = Field(True)
    status: str
    version: Optional[str] = None
    limits: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Standard error envelope."""
    ok: bool = Field(False)
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    timestamp: str = Field(..., description="Error timestamp in ISO format")

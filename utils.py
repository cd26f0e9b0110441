"""
Utility functions for lazy sequence pipelines

Builds sequences from declarative source/operation descriptions, evaluates
them with timing and memory tracking, and keeps running performance metrics.
"""

import gc
import logging
import operator
import sys
import time
import tracemalloc
from typing import Any, Callable, Dict, List, Optional, Tuple

from lazy import Lazy
from generators import lazy_range, lazy_repeat, fibonacci, primes, is_prime


# Configure structured logging
def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Setup structured logging for the pipeline layer"""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    return logging.getLogger('lazy_sequences')

logger = setup_logging()


class PipelineError(ValueError):
    """Raised for pipeline descriptions that cannot be built"""


class PullCounter:
    """Counts elements pulled through a wrapped sequence, across all traversals"""

    def __init__(self):
        self.pulled = 0

    def wrap(self, seq: Lazy) -> Lazy:
        def produce():
            for x in seq:
                self.pulled += 1
                yield x
        return Lazy(produce)


class PullBudget:
    """
    Shared allowance of elements a pipeline may pull. Guarded stages draw from
    it and the first pull past the limit raises PipelineError.
    """

    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0

    def guard(self, seq: Lazy) -> Lazy:
        def produce():
            for x in seq:
                self.used += 1
                if self.used > self.limit:
                    raise PipelineError(f"Pipeline exceeded its budget of {self.limit} pulled elements")
                yield x
        return Lazy(produce)


# ---------- Named functions (no eval of user input) ----------

MAP_FUNCTIONS: Dict[str, Callable[[Any], Any]] = {
    "identity": lambda x: x,
    "double": lambda x: x * 2,
    "square": lambda x: x * x,
    "negate": lambda x: -x,
    "increment": lambda x: x + 1,
}

BINARY_MAP_FUNCTIONS: Dict[str, Callable[[Any, Any], Any]] = {
    "add": operator.add,
    "multiply": operator.mul,
    "mod": operator.mod,
    "floordiv": operator.floordiv,
}

FILTER_PREDICATES: Dict[str, Callable[[Any], bool]] = {
    "even": lambda x: x % 2 == 0,
    "odd": lambda x: x % 2 != 0,
    "prime": is_prime,
    "positive": lambda x: x > 0,
    "negative": lambda x: x < 0,
}

BINARY_FILTER_PREDICATES: Dict[str, Callable[[Any, Any], bool]] = {
    "gt": operator.gt,
    "ge": operator.ge,
    "lt": operator.lt,
    "le": operator.le,
    "eq": operator.eq,
    "ne": operator.ne,
    "divisible_by": lambda x, k: x % k == 0,
}

_DIVIDING = {"mod", "floordiv", "divisible_by"}


def _resolve(name: str, operand: Any, unary: Dict[str, Callable], binary: Dict[str, Callable],
             kind: str) -> Callable:
    if name in unary:
        return unary[name]
    if name in binary:
        if operand is None:
            raise PipelineError(f"{kind} '{name}' requires an operand")
        if name in _DIVIDING and operand == 0:
            raise PipelineError(f"{kind} '{name}' cannot use a zero operand")
        fn = binary[name]
        return lambda x: fn(x, operand)
    raise PipelineError(f"Unknown {kind}: {name}")


def resolve_map_function(name: str, operand: Any = None) -> Callable[[Any], Any]:
    return _resolve(name, operand, MAP_FUNCTIONS, BINARY_MAP_FUNCTIONS, "map function")


def resolve_predicate(name: str, operand: Any = None) -> Callable[[Any], bool]:
    return _resolve(name, operand, FILTER_PREDICATES, BINARY_FILTER_PREDICATES, "predicate")


# ---------- Pipeline construction ----------

def build_source(spec: Dict[str, Any]) -> Lazy:
    """Create the source sequence described by a source spec dict"""
    source_type = spec.get("type", "range")

    if source_type == "range":
        step = spec.get("step", 1)
        if step == 0:
            raise PipelineError("range step must not be zero")
        return lazy_range(spec.get("start", 0), spec.get("end"), step)
    elif source_type == "repeat":
        times = spec.get("times")
        if times is not None and times < 0:
            raise PipelineError("repeat times must be >= 0")
        return lazy_repeat(spec.get("value"), times)
    elif source_type == "fibonacci":
        return fibonacci()
    elif source_type == "primes":
        return primes()
    elif source_type == "list":
        items = spec.get("items")
        if items is None:
            raise PipelineError("list source requires items")
        return Lazy.from_iterable(list(items))
    raise PipelineError(f"Unknown source: {source_type}")


def _arg(op: Dict[str, Any], key: str, default: Any) -> Any:
    value = op.get(key)
    return default if value is None else value


def apply_operations(seq: Lazy, operations: List[Dict[str, Any]],
                     operations_applied: Optional[List[str]] = None,
                     budget: Optional[PullBudget] = None) -> Lazy:
    """
    Chain the described operations onto seq; nothing is pulled here. With a
    budget, the source and every expanding stage draw from it.
    """
    if budget is not None:
        seq = budget.guard(seq)
    for op in operations:
        op_type = op.get("type")
        if operations_applied is not None:
            operations_applied.append(str(getattr(op_type, "value", op_type)))

        if op_type == "map":
            seq = seq.map(resolve_map_function(op.get("function") or "identity", op.get("operand")))

        elif op_type == "filter":
            seq = seq.filter(resolve_predicate(op.get("predicate") or "", op.get("operand")))

        elif op_type == "take_while":
            seq = seq.take_while(resolve_predicate(op.get("predicate") or "", op.get("operand")))

        elif op_type == "take":
            seq = seq.take(_arg(op, "count", 10))

        elif op_type == "skip":
            seq = seq.skip(_arg(op, "count", 0))

        elif op_type == "batch":
            seq = seq.batch(_arg(op, "size", 5))

        elif op_type == "repeat_each":
            times = _arg(op, "count", 1)
            seq = seq.flat_map(lambda x, times=times: lazy_repeat(x, times))
            if budget is not None:
                seq = budget.guard(seq)

        elif op_type == "enumerate":
            seq = seq.enumerate(int(_arg(op, "operand", 0)))

        elif op_type == "zip_range":
            seq = seq.zip(lazy_range(int(_arg(op, "operand", 0))))

        else:
            raise PipelineError(f"Unknown op: {op_type}")
    return seq


# ---------- Performance tracking ----------

# Global performance tracking
_performance_metrics = {
    "operations": [],
    "total_time_ms": 0.0,
    "total_memory_mb": 0.0,
    "operation_count": 0
}


def _record(performance_info: Dict[str, Any]) -> None:
    _performance_metrics["operations"].append(performance_info)
    _performance_metrics["total_time_ms"] += performance_info.get("processing_time_ms", 0.0)
    _performance_metrics["total_memory_mb"] += performance_info.get("memory_usage_mb") or 0.0
    _performance_metrics["operation_count"] += 1


def _traced(func: Callable[[], Any]) -> Tuple[Any, float]:
    """Run func under tracemalloc, returning (result, peak memory in MB)"""
    already_tracing = tracemalloc.is_tracing()
    if not already_tracing:
        tracemalloc.start()
    gc.collect()
    try:
        result = func()
        _, peak = tracemalloc.get_traced_memory()
        return result, peak / 1024 / 1024
    finally:
        if not already_tracing:
            tracemalloc.stop()


def measure_performance(operation_name: str, func, *args, **kwargs) -> Dict[str, Any]:
    """Measure performance of a function call with memory tracking"""
    start_time = time.perf_counter()
    try:
        result, memory_mb = _traced(lambda: func(*args, **kwargs))
    except Exception as e:
        performance_info = {
            "operation": operation_name,
            "processing_time_ms": (time.perf_counter() - start_time) * 1000,
            "memory_usage_mb": None,
            "success": False,
            "error": str(e),
            "timestamp": time.time()
        }
        _record(performance_info)
        logger.error(f"{operation_name} failed: {e}")
        raise

    performance_info = {
        "operation": operation_name,
        "processing_time_ms": (time.perf_counter() - start_time) * 1000,
        "memory_usage_mb": memory_mb,
        "success": True,
        "result_size": len(result) if hasattr(result, "__len__") else None,
        "timestamp": time.time()
    }
    _record(performance_info)
    return performance_info


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all performance metrics"""
    count = _performance_metrics["operation_count"]
    if count == 0:
        return {
            "total_operations": 0,
            "total_time_ms": 0.0,
            "total_memory_mb": 0.0,
            "avg_time_ms": 0.0,
            "avg_memory_mb": 0.0
        }

    return {
        "total_operations": count,
        "total_time_ms": _performance_metrics["total_time_ms"],
        "total_memory_mb": _performance_metrics["total_memory_mb"],
        "avg_time_ms": _performance_metrics["total_time_ms"] / count,
        "avg_memory_mb": _performance_metrics["total_memory_mb"] / count
    }


def clear_performance_metrics():
    """Clear all performance metrics"""
    global _performance_metrics
    _performance_metrics = {
        "operations": [],
        "total_time_ms": 0.0,
        "total_memory_mb": 0.0,
        "operation_count": 0
    }


# ---------- Evaluation ----------

def _failure(operation: str, start_time: float, error: Exception,
             operations_applied: List[str], **extra) -> Dict[str, Any]:
    processing_time_ms = (time.perf_counter() - start_time) * 1000
    error_code = "PIPELINE_ERROR" if isinstance(error, PipelineError) else "PROCESSING_ERROR"
    logger.error(f"{operation} failed after {processing_time_ms:.2f}ms: {error}")
    _record({"operation": operation, "processing_time_ms": processing_time_ms,
             "success": False, "error": str(error), "timestamp": time.time()})
    return {
        "error": str(error),
        "error_code": error_code,
        "operations_applied": operations_applied,
        "performance": {
            "processing_time_ms": processing_time_ms,
            "operation": operation,
            "error": True
        },
        **extra
    }


def _success(operation: str, start_time: float, memory_mb: float,
             output_size: Optional[int], counter: PullCounter) -> Dict[str, Any]:
    processing_time_ms = (time.perf_counter() - start_time) * 1000
    performance = {
        "processing_time_ms": processing_time_ms,
        "memory_usage_mb": memory_mb,
        "output_size": output_size,
        "elements_pulled": counter.pulled,
        "operation": operation
    }
    _record({**performance, "success": True, "timestamp": time.time()})
    logger.info(f"{operation}: {output_size} items, {counter.pulled} pulled, {processing_time_ms:.2f}ms")
    return performance


def process_lazy_operations(source: Lazy, operations: List[Dict],
                            max_items: Optional[int] = None,
                            budget: Optional[PullBudget] = None) -> Dict[str, Any]:
    """Apply operations to source and materialize at most max_items elements"""
    start_time = time.perf_counter()
    operations_applied: List[str] = []
    counter = PullCounter()

    try:
        seq = apply_operations(counter.wrap(source), operations, operations_applied, budget)
        if max_items is not None:
            seq = seq.take(max_items)

        result, memory_mb = _traced(seq.to_list)

        return {
            "result": result,
            "operations_applied": operations_applied,
            "performance": _success("lazy_chain", start_time, memory_mb, len(result), counter)
        }

    except Exception as e:
        return _failure("lazy_chain", start_time, e, operations_applied, result=[])


def process_pagination(source: Lazy, page_number: int, page_size: int,
                       operations: Optional[List[Dict]] = None,
                       budget: Optional[PullBudget] = None) -> Dict[str, Any]:
    """Process pagination with optional operations"""
    start_time = time.perf_counter()
    operations_applied: List[str] = []
    counter = PullCounter()
    operation = f"pagination_page_{page_number}_size_{page_size}"

    try:
        seq = apply_operations(counter.wrap(source), operations or [], operations_applied, budget)

        # one extra element tells whether another page exists
        window = seq.skip((page_number - 1) * page_size).take(page_size + 1)
        fetched, memory_mb = _traced(window.to_list)
        page_data = fetched[:page_size]

        return {
            "page_data": page_data,
            "current_page": page_number,
            "page_size": page_size,
            "has_next_page": len(fetched) > page_size,
            "has_previous_page": page_number > 1,
            "operations_applied": operations_applied,
            "performance": _success(operation, start_time, memory_mb, len(page_data), counter)
        }

    except Exception as e:
        return _failure(operation, start_time, e, operations_applied, page_data=[])


def process_chunking(source: Lazy, chunk_size: int, max_chunks: Optional[int] = None,
                     operations: Optional[List[Dict]] = None,
                     max_items: Optional[int] = None,
                     budget: Optional[PullBudget] = None) -> Dict[str, Any]:
    """Process chunking with optional operations"""
    start_time = time.perf_counter()
    operations_applied: List[str] = []
    counter = PullCounter()
    operation = f"chunking_size_{chunk_size}"

    try:
        seq = apply_operations(counter.wrap(source), operations or [], operations_applied, budget)
        if max_items is not None:
            seq = seq.take(max_items)

        chunked = seq.batch(chunk_size)
        if max_chunks:
            chunked = chunked.take(max_chunks)

        chunks, memory_mb = _traced(chunked.to_list)

        # Convert tuples to lists for JSON serialization
        chunks_as_lists = [list(chunk) for chunk in chunks]
        total_items = sum(len(chunk) for chunk in chunks_as_lists)

        return {
            "chunks": chunks_as_lists,
            "total_chunks": len(chunks_as_lists),
            "total_items": total_items,
            "chunk_size": chunk_size,
            "max_chunks": max_chunks,
            "operations_applied": operations_applied,
            "performance": _success(operation, start_time, memory_mb, total_items, counter)
        }

    except Exception as e:
        return _failure(operation, start_time, e, operations_applied, chunks=[])


def process_reduction(source: Lazy, reduction: str, operations: Optional[List[Dict]] = None,
                      max_items: Optional[int] = None,
                      budget: Optional[PullBudget] = None) -> Dict[str, Any]:
    """Apply operations then a terminal reduction (sum, count, min, max, first, last)"""
    start_time = time.perf_counter()
    operations_applied: List[str] = []
    counter = PullCounter()
    reduction = str(getattr(reduction, "value", reduction))
    operation = f"reduction_{reduction}"

    try:
        seq = apply_operations(counter.wrap(source), operations or [], operations_applied, budget)
        if max_items is not None:
            seq = seq.take(max_items)

        reducers = {
            "sum": seq.sum,
            "count": seq.count,
            "min": lambda: seq.min(default=None),
            "max": lambda: seq.max(default=None),
            "first": seq.first,
            "last": seq.last,
        }
        if reduction not in reducers:
            raise PipelineError(f"Unknown reduction: {reduction}")

        result, memory_mb = _traced(reducers[reduction])

        return {
            "result": result,
            "reduction": reduction,
            "operations_applied": operations_applied,
            "performance": _success(operation, start_time, memory_mb, None, counter)
        }

    except Exception as e:
        return _failure(operation, start_time, e, operations_applied, result=None)


def process_element(source: Lazy, index: int,
                    operations: Optional[List[Dict]] = None,
                    budget: Optional[PullBudget] = None) -> Dict[str, Any]:
    """Positional lookup through the memoized at()"""
    start_time = time.perf_counter()
    operations_applied: List[str] = []
    counter = PullCounter()
    operation = f"element_at_{index}"
    missing = object()

    try:
        seq = apply_operations(counter.wrap(source), operations or [], operations_applied, budget)
        value, memory_mb = _traced(lambda: seq.at(index, missing))
        found = value is not missing

        return {
            "index": index,
            "found": found,
            "value": value if found else None,
            "operations_applied": operations_applied,
            "performance": _success(operation, start_time, memory_mb, int(found), counter)
        }

    except Exception as e:
        return _failure(operation, start_time, e, operations_applied, index=index, found=False)

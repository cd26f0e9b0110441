"""
Lazy sequences built on restartable producers.

A producer is any zero-argument callable returning a fresh iterator (a
generator function is the usual one). Nothing is computed until a consumer
pulls, and every derived sequence re-invokes its source on each traversal.
"""

import logging
import threading
from collections import defaultdict, deque
from functools import reduce as builtin_reduce
from itertools import islice

logger = logging.getLogger(__name__)

_MISSING = object()


class Lazy:
    """
    A chainable, lazy sequence. Combinators wrap the source's iteration in a
    new producer; positional lookups are memoized through one retained cursor.
    """
    def __init__(self, producer):
        if not callable(producer):
            raise TypeError(f"producer must be callable, got {type(producer).__name__}")
        self._producer = producer
        self._cache = []               # memo of elements already pulled via at()
        self._cursor = None            # in-progress cursor feeding the cache
        self._exhausted = False        # memo cursor ran out; cache is complete
        self._lock = threading.RLock()

    @classmethod
    def from_iterable(cls, source):
        """Wrap a re-iterable source (list, range, another Lazy...)."""
        return cls(lambda: iter(source))

    @classmethod
    def empty(cls):
        return cls(lambda: iter(()))

    # --------- iterator protocol ----------
    def __iter__(self):
        # fresh cursor per traversal; never shares the memo cursor
        yield from self._producer()

    # --------- memoized indexed access ----------
    def at(self, index, default=None):
        """
        Return the element at ``index`` or ``default`` if the sequence is
        shorter. Each element is pulled from the producer at most once over
        the lifetime of this value; later lookups are served from the cache.
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"index must be an int, got {type(index).__name__}")
        if index < 0:
            raise IndexError("negative indices are not supported on lazy sequences")

        if index < len(self._cache):
            return self._cache[index]

        with self._lock:
            while len(self._cache) <= index and not self._exhausted:
                try:
                    if self._cursor is None:
                        self._cursor = self._open_memo_cursor()
                    value = next(self._cursor)
                except StopIteration:
                    self._exhausted = True
                    self._cursor = None
                    logger.debug(f"memo cursor exhausted after {len(self._cache)} elements")
                    break
                except Exception:
                    # a failed cursor is dead, not exhausted; the next lookup reopens one
                    self._cursor = None
                    raise
                self._cache.append(value)

            if index < len(self._cache):
                return self._cache[index]
            return default

    def _open_memo_cursor(self):
        cursor = iter(self._producer())
        # skip the prefix already memoized
        for _ in islice(cursor, len(self._cache)):
            pass
        return cursor

    @property
    def cached_count(self):
        """Number of elements memoized so far."""
        return len(self._cache)

    # --------- chainable operators (lazy) ----------
    def map(self, fn):
        source = self

        def produce():
            for x in source:
                yield fn(x)
        return Lazy(produce)

    def filter(self, pred):
        source = self

        def produce():
            for x in source:
                if pred(x):
                    yield x
        return Lazy(produce)

    def take(self, n):
        """First ``n`` elements; element ``n + 1`` is never pulled."""
        n = int(n)
        source = self

        def produce():
            if n <= 0:
                return
            taken = 0
            for x in source:
                yield x
                taken += 1
                if taken >= n:
                    return
        return Lazy(produce)

    def skip(self, n):
        n = int(n)
        source = self

        def produce():
            skipped = 0
            for x in source:
                if skipped < n:
                    skipped += 1
                    continue
                yield x
        return Lazy(produce)

    def take_while(self, pred):
        source = self

        def produce():
            for x in source:
                if not pred(x):
                    return
                yield x
        return Lazy(produce)

    def flat_map(self, fn):
        """Concatenate ``fn(x)`` for every element, source-major order."""
        source = self

        def produce():
            for x in source:
                yield from fn(x)
        return Lazy(produce)

    def zip(self, other):
        """
        Pair elements in lockstep, stopping at the shorter side. The left side
        is pulled first, so a finite left side never over-pulls the right.
        """
        source = self

        def produce():
            left = iter(source)
            right = iter(other)
            for a in left:
                try:
                    b = next(right)
                except StopIteration:
                    return
                yield (a, b)
        return Lazy(produce)

    def enumerate(self, start=0):
        source = self

        def produce():
            yield from enumerate(source, start)
        return Lazy(produce)

    def batch(self, size):
        size = int(size)
        if size < 1:
            raise ValueError("Batch size must be >= 1")
        source = self

        def produce():
            bucket = []
            for x in source:
                bucket.append(x)
                if len(bucket) == size:
                    yield tuple(bucket)
                    bucket = []
            if bucket:
                yield tuple(bucket)
        return Lazy(produce)

    def chunk(self, size):
        """Alias for batch() - groups elements into chunks of specified size"""
        return self.batch(size)

    def page(self, page_number, page_size):
        """Get a specific page of results (1-indexed)"""
        if page_number < 1:
            raise ValueError("Page number must be >= 1")
        if page_size < 1:
            raise ValueError("Page size must be >= 1")
        offset = (page_number - 1) * page_size
        return self.skip(offset).take(page_size)

    def paginate(self, page_size):
        """Return an iterator of pages, each containing up to page_size elements"""
        if page_size < 1:
            raise ValueError("Page size must be >= 1")
        # one traversal for all pages
        return (list(page_data) for page_data in self.batch(page_size))

    # --------- forcing evaluation ----------
    def to_list(self):
        return list(self)

    # --------- reducing operations (force evaluation) ----------
    def reduce(self, fn, initial=_MISSING):
        """Apply a function of two arguments cumulatively to items, from left to right"""
        if initial is _MISSING:
            return builtin_reduce(fn, self)
        return builtin_reduce(fn, self, initial)

    def sum(self, start=0):
        return sum(self, start)

    def count(self):
        """Number of elements; never terminates on an infinite sequence"""
        return sum(1 for _ in self)

    def min(self, default=_MISSING):
        """Return the minimum element"""
        if default is _MISSING:
            return min(self)
        return min(self, default=default)

    def max(self, default=_MISSING):
        """Return the maximum element"""
        if default is _MISSING:
            return max(self)
        return max(self, default=default)

    def first(self, default=None):
        """Pulls a single element"""
        return next(iter(self), default)

    def last(self, default=None):
        tail = deque(self, maxlen=1)
        return tail[0] if tail else default

    def any(self, pred=None):
        """Short-circuits on the first match"""
        return any(self if pred is None else map(pred, self))

    def all(self, pred=None):
        return all(self if pred is None else map(pred, self))

    def find(self, pred, default=None):
        return next(filter(pred, self), default)

    def group_by(self, key_fn):
        """Dict of key to elements in traversal order; drains the sequence"""
        groups = defaultdict(list)
        for item in self:
            groups[key_fn(item)].append(item)
        return dict(groups)

    def __repr__(self):
        # only what at() has already memoized; repr never pulls
        items = [repr(x) for x in self._cache[:10]]
        if len(self._cache) > 10 or not self._exhausted:
            items.append("...")
        return f"Lazy([{', '.join(items)}])"

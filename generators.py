"""
Convenience sequence constructors.

Each one hands a generator function to Lazy, so every traversal starts over
from the logical beginning.
"""

from itertools import count
from lazy import Lazy


def lazy_range(start=0, end=None, step=1):
    """Arithmetic progression from start (inclusive) toward end (exclusive); end=None is infinite."""
    if step == 0:
        raise ValueError("step must not be zero")

    def produce():
        if end is None:
            yield from count(start, step)
            return
        i = start
        if step > 0:
            while i < end:
                yield i
                i += step
        else:
            while i > end:
                yield i
                i += step
    return Lazy(produce)


def lazy_repeat(value, times=None):
    """Yield value `times` times, or forever when times is None."""
    if times is not None and times < 0:
        raise ValueError("times must be >= 0")

    def produce():
        if times is None:
            while True:
                yield value
        for _ in range(times):
            yield value
    return Lazy(produce)


def lazy_iterate(fn, seed):
    """seed, fn(seed), fn(fn(seed)), ..."""
    def produce():
        current = seed
        while True:
            yield current
            current = fn(current)
    return Lazy(produce)


def naturals(start=0):
    return lazy_range(start)


def fibonacci():
    return lazy_iterate(lambda pair: (pair[1], pair[0] + pair[1]), (0, 1)).map(lambda pair: pair[0])


def is_prime(n):
    if n <= 1:
        return False
    if n <= 3:
        return True
    if n % 2 == 0 or n % 3 == 0:
        return False
    i = 5
    while i * i <= n:
        if n % i == 0 or n % (i + 2) == 0:
            return False
        i += 6
    return True


def primes():
    return naturals(2).filter(is_prime)

"""
Pytest configuration for the lazy sequence tests.

Puts the repository root on the Python path so tests can import lazy,
generators, utils, models and app, and provides pull-counting producers.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest

from utils import clear_performance_metrics


class CountingProducer:
    """Infinite (or bounded) counting producer that records every pull and cursor"""

    def __init__(self, limit=None):
        self.limit = limit
        self.pulls = 0
        self.cursors = 0

    def __call__(self):
        self.cursors += 1
        return self._cursor()

    def _cursor(self):
        i = 0
        while self.limit is None or i < self.limit:
            self.pulls += 1
            yield i
            i += 1


@pytest.fixture
def counting_producer():
    return CountingProducer()


@pytest.fixture
def make_counting_producer():
    return CountingProducer


@pytest.fixture(autouse=True)
def reset_metrics():
    """Each test starts with empty performance metrics"""
    clear_performance_metrics()
    yield

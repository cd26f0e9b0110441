import pytest
from lazy import Lazy
from generators import lazy_range, lazy_repeat


class TestComposability:
    """Test combinator composability and method chaining"""

    def test_map_order_preserved(self):
        result = lazy_range(0).take(5).map(lambda x: x * 2).to_list()
        assert result == [0, 2, 4, 6, 8], f"Unexpected result: {result}"

    def test_filter_keeps_order(self):
        result = lazy_range(0).take(10).filter(lambda x: x % 2 == 0).to_list()
        assert result == [0, 2, 4, 6, 8], f"Unexpected result: {result}"

    def test_filter_over_infinite_source(self):
        """filter may pull many source elements per output element"""
        result = lazy_range(0).filter(lambda x: x % 1000 == 0).take(3).to_list()
        assert result == [0, 1000, 2000], f"Unexpected result: {result}"

    def test_flat_map_ordering(self):
        result = lazy_range(0).take(3).flat_map(lambda x: lazy_repeat(x, 2)).to_list()
        assert result == [0, 0, 1, 1, 2, 2], f"Unexpected result: {result}"

    def test_flat_map_accepts_plain_iterables(self):
        result = Lazy.from_iterable([[1, 2], [], [3]]).flat_map(lambda chunk: chunk).to_list()
        assert result == [1, 2, 3]

    def test_flat_map_of_infinite_inner_is_still_lazy(self):
        result = lazy_range(0).flat_map(lambda x: lazy_repeat(x)).take(4).to_list()
        assert result == [0, 0, 0, 0]

    def test_zip_shortest_wins(self):
        pairs = lazy_range(0).take(3).zip(lazy_repeat("a")).to_list()
        assert pairs == [(0, "a"), (1, "a"), (2, "a")], f"Unexpected pairs: {pairs}"

    def test_zip_with_shorter_right_side(self):
        pairs = lazy_range(0).zip(lazy_range(10, 12)).to_list()
        assert pairs == [(0, 10), (1, 11)]

    def test_zip_does_not_overpull_right_side(self, make_counting_producer):
        right = make_counting_producer()
        pairs = lazy_range(0, 3).zip(Lazy(right)).to_list()
        assert len(pairs) == 3
        assert right.pulls == 3, f"Right side pulled {right.pulls} times"

    def test_zip_with_plain_iterable(self):
        assert lazy_range(0).zip(["x", "y"]).to_list() == [(0, "x"), (1, "y")]

    def test_method_chaining(self):
        result = (
            Lazy.from_iterable(range(20))
            .map(lambda x: x * 2)
            .filter(lambda x: x > 10)
            .skip(3)
            .take(5)
            .to_list()
        )
        assert result == [18, 20, 22, 24, 26], f"Unexpected result: {result}"

    def test_skip_and_take_composition(self):
        result = lazy_range(0, 20).skip(5).take(10).skip(2).take(5).to_list()
        assert result == [7, 8, 9, 10, 11], f"Unexpected result: {result}"

    def test_take_while(self):
        assert lazy_range(0).take_while(lambda x: x < 4).to_list() == [0, 1, 2, 3]

    def test_enumerate(self):
        assert lazy_repeat("z", 2).enumerate(1).to_list() == [(1, "z"), (2, "z")]

    def test_composability_with_empty_results(self):
        result = (
            Lazy.from_iterable([1, 2, 3, 4, 5])
            .filter(lambda x: x > 10)
            .map(lambda x: x * 2)
            .take(3)
            .to_list()
        )
        assert result == [], f"Expected empty list, got {result}"

    def test_operation_order_matters(self):
        filtered_first = lazy_range(0, 10).filter(lambda x: x > 5).map(lambda x: x * 2).to_list()
        mapped_first = lazy_range(0, 10).map(lambda x: x * 2).filter(lambda x: x > 5).to_list()
        assert filtered_first == [12, 14, 16, 18]
        assert mapped_first == [6, 8, 10, 12, 14, 16, 18]

    def test_each_stage_pulls_only_what_is_needed(self, counting_producer):
        result = (
            Lazy(counting_producer)
            .map(lambda x: x + 1)
            .filter(lambda x: x % 2 == 0)
            .take(3)
            .to_list()
        )
        assert result == [2, 4, 6]
        # 2, 4, 6 come from source elements 1, 3, 5
        assert counting_producer.pulls == 6

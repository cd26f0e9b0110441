import pytest
from lazy import Lazy
from generators import lazy_range
from utils import process_pagination, process_chunking


class TestPaginationChunking:
    """Test pagination and chunking functionality"""

    def test_page(self):
        data = Lazy.from_iterable(list(range(100)))
        assert data.page(1, 10).to_list() == list(range(0, 10))
        assert data.page(3, 10).to_list() == list(range(20, 30))

    def test_page_over_infinite_source(self):
        assert lazy_range(0).filter(lambda x: x % 2 == 0).page(2, 5).to_list() == [10, 12, 14, 16, 18]

    def test_invalid_page_arguments(self):
        with pytest.raises(ValueError):
            lazy_range(0).page(0, 10)
        with pytest.raises(ValueError):
            lazy_range(0).page(1, 0)

    def test_paginate(self):
        pages = list(lazy_range(0, 7).paginate(3))
        assert pages == [[0, 1, 2], [3, 4, 5], [6]], f"Unexpected pages: {pages}"

    def test_paginate_walks_source_once(self, make_counting_producer):
        producer = make_counting_producer(limit=10)
        pages = list(Lazy(producer).paginate(4))
        assert pages == [[0, 1, 2, 3], [4, 5, 6, 7], [8, 9]]
        assert producer.cursors == 1, f"Expected one traversal, got {producer.cursors}"
        assert producer.pulls == 10

    def test_paginate_rejects_bad_page_size(self):
        with pytest.raises(ValueError):
            lazy_range(0).paginate(0)

    def test_batch(self):
        assert lazy_range(0, 7).batch(3).to_list() == [(0, 1, 2), (3, 4, 5), (6,)]
        assert lazy_range(0, 4).chunk(2).to_list() == [(0, 1), (2, 3)]

    def test_batch_over_infinite_source(self, counting_producer):
        batches = Lazy(counting_producer).batch(4).take(2).to_list()
        assert batches == [(0, 1, 2, 3), (4, 5, 6, 7)]
        assert counting_producer.pulls == 8

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            lazy_range(0).batch(0)

    def test_process_pagination(self):
        result = process_pagination(lazy_range(0), 2, 5, [{"type": "filter", "predicate": "odd"}])
        assert "error" not in result, result.get("error")
        assert result["page_data"] == [11, 13, 15, 17, 19]
        assert result["has_next_page"] is True
        assert result["has_previous_page"] is True
        assert result["operations_applied"] == ["filter"]

    def test_process_pagination_last_page(self):
        result = process_pagination(lazy_range(0, 10), 2, 5)
        assert result["page_data"] == [5, 6, 7, 8, 9]
        assert result["has_next_page"] is False

    def test_process_chunking(self):
        result = process_chunking(lazy_range(0), 3, max_chunks=2)
        assert result["chunks"] == [[0, 1, 2], [3, 4, 5]]
        assert result["total_chunks"] == 2
        assert result["total_items"] == 6
        assert result["performance"]["elements_pulled"] == 6

    def test_process_chunking_respects_item_cap(self):
        result = process_chunking(lazy_range(0), 4, operations=[{"type": "map", "function": "double"}], max_items=6)
        assert result["chunks"] == [[0, 2, 4, 6], [8, 10]]

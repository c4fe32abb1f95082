"""
Unit tests for the in-memory vector search index.
"""

import pytest

from gamepilot_identity.index import VectorSearchIndex


@pytest.fixture
def index():
    idx = VectorSearchIndex()
    idx.add_vector("a", [1.0, 0.0, 0.0], {"title": "A"})
    idx.add_vector("b", [0.9, 0.1, 0.0])
    idx.add_vector("c", [0.0, 1.0, 0.0])
    idx.add_vector("d", [0.0, 0.0, 1.0])
    return idx


class TestVectorSearchIndex:
    """add/remove/search behaviour"""

    def test_search_orders_by_similarity(self, index):
        results = index.search([1.0, 0.0, 0.0], top_k=3)

        assert [r.id for r in results] == ["a", "b", "c"]
        assert results[0].score == pytest.approx(1.0)
        assert results[0].metadata == {"title": "A"}

    def test_ties_break_by_id(self, index):
        results = index.search([0.0, 0.0, 0.0], top_k=4)

        assert [r.id for r in results] == ["a", "b", "c", "d"]
        assert all(r.score == 0.0 for r in results)

    def test_allowed_ids(self, index):
        results = index.search([1.0, 0.0, 0.0], top_k=10, allowed_ids={"c", "d", "missing"})
        assert [r.id for r in results] == ["c", "d"]

    def test_add_replaces_existing(self, index):
        index.add_vector("a", [0.0, 1.0, 0.0])

        assert index.size() == 4
        assert index.search([0.0, 1.0, 0.0], top_k=1)[0].id == "a"

    def test_remove(self, index):
        assert index.remove_vector("a") is True
        assert index.remove_vector("a") is False
        assert "a" not in index
        assert len(index) == 3

    def test_dimension_mismatch_scores_zero(self, index):
        index.add_vector("odd", [1.0, 0.0])
        results = {r.id: r.score for r in index.search([1.0, 0.0, 0.0], top_k=10)}

        assert results["odd"] == 0.0
        assert results["a"] == pytest.approx(1.0)

    def test_non_positive_top_k(self, index):
        assert index.search([1.0, 0.0, 0.0], top_k=0) == []

    def test_clear(self, index):
        index.clear()

        assert len(index) == 0
        assert index.dimension is None
        assert index.search([1.0], top_k=5) == []

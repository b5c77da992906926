"""
Tests for the indexing orchestrator.
"""

import pytest
from sqlalchemy import select, update

from vector_search.exceptions import InvalidInput
from vector_search.models import Product


def record_ids(service) -> dict[str, str]:
    table = service.store.table
    with service.session_factory() as session:
        return dict(session.execute(select(table.c.product_id, table.c.id)).all())


class TestIndexAll:
    """Test cases for full catalog indexing."""

    def test_indexes_every_product(self, service, product_ids, embedding_stub):
        result = service.index_all()

        assert result.total_items == 5
        assert result.indexed == 5
        assert result.skipped == 0
        assert result.errors == 0
        assert result.pages == 3
        assert embedding_stub.batch_sizes == [2, 2, 1]
        assert service.store.count() == 5

    def test_second_run_skips_unchanged(self, service, product_ids, embedding_stub):
        service.index_all()
        embedding_stub.calls.clear()

        result = service.index_all()

        assert result.indexed == 0
        assert result.skipped == 5
        assert embedding_stub.batch_calls() == 0
        assert result.message == "No new products to index"

    def test_changed_product_is_reindexed(self, service, product_ids, embedding_stub):
        service.index_all()
        with service.session_factory.begin() as session:
            session.execute(update(Product).where(Product.id == "p-lamp").values(name="Floor Lamp"))
        embedding_stub.batch_sizes.clear()

        result = service.index_all()

        assert result.indexed == 1
        assert result.skipped == 4
        assert embedding_stub.batch_sizes == [1]
        texts = {r.product_id: r.content_text for r in service.store.read_all()}
        assert texts["p-lamp"].startswith("Floor Lamp")
        assert service.store.count() == 5

    def test_force_reembeds_everything(self, service, product_ids, embedding_stub):
        service.index_all()
        embedding_stub.calls.clear()

        result = service.index_all(force=True)

        assert result.indexed == 5
        assert embedding_stub.batch_calls() == 3
        assert service.store.count() == 5

    def test_force_replaces_records(self, service, product_ids):
        """Forced indexing writes fresh rows, unchanged reindexing keeps them."""
        service.index_all()
        before = record_ids(service)

        with service.session_factory.begin() as session:
            session.execute(update(Product).where(Product.id == "p-lamp").values(name="Floor Lamp"))
        service.index_all()
        assert record_ids(service) == before

        service.index_all(force=True)
        after = record_ids(service)

        assert sorted(after) == sorted(before)
        assert all(after[pid] != before[pid] for pid in before)

    def test_failed_page_does_not_stop_run(self, service, product_ids, embedding_stub):
        embedding_stub.fail_batches = 1

        result = service.index_all()

        assert result.errors == 2
        assert result.indexed == 3
        assert result.pages == 3
        assert result.message == "Indexed 3 products with 2 errors"

        retry = service.index_all()
        assert retry.indexed == 2
        assert retry.skipped == 3
        assert retry.errors == 0

    def test_custom_batch_size(self, service, product_ids, embedding_stub):
        result = service.index_all(batch_size=10)

        assert result.pages == 1
        assert result.batch_size == 10
        assert embedding_stub.batch_sizes == [5]

    @pytest.mark.parametrize("batch_size", [0, -1])
    def test_invalid_batch_size(self, service, product_ids, embedding_stub, batch_size):
        with pytest.raises(InvalidInput, match="at least 1"):
            service.index_all(batch_size=batch_size)

        assert embedding_stub.calls == []
        assert service.store.count() == 0

    def test_empty_catalog(self, service, embedding_stub):
        result = service.index_all()

        assert result.total_items == 0
        assert result.indexed == 0
        assert result.pages == 0
        assert embedding_stub.calls == []

    def test_result_dict(self, service, product_ids):
        data = service.index_all().to_dict()

        assert data["total_products"] == 5
        assert data["indexed"] == 5
        assert data["message"] == "Successfully indexed 5 products"


class TestIndexProducts:
    """Test cases for indexing selected products."""

    def test_indexes_only_requested(self, service, product_ids):
        result = service.index_products(["p-shoe", "p-mug", "p-shoe", "missing"])

        assert result.indexed == 2
        assert result.missing == ["missing"]
        assert sorted(r.product_id for r in service.store.read_all()) == ["p-mug", "p-shoe"]

    def test_skips_unchanged(self, service, product_ids, embedding_stub):
        service.index_products(["p-shoe"])
        embedding_stub.calls.clear()

        result = service.index_products(["p-shoe"])

        assert result.skipped == 1
        assert embedding_stub.calls == []

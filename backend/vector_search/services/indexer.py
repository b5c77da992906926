"""Indexing orchestrator - walks the catalog and keeps embeddings up to date."""

import logging
from dataclasses import dataclass, field

from vector_search.exceptions import InvalidInput, VectorSearchError
from vector_search.services.catalog import Catalog, CatalogItem
from vector_search.services.embedding_store import EmbeddingRecord, EmbeddingStore
from vector_search.services.embeddings import EmbeddingProvider
from vector_search.services.normalizer import build_product_text

logger = logging.getLogger(__name__)


@dataclass
class PendingItem:
    product_id: str
    version_id: str
    text: str
    content_hash: str


@dataclass
class IndexResult:
    """Summary of an indexing run."""
    total_items: int = 0
    indexed: int = 0
    skipped: int = 0
    errors: int = 0
    batch_size: int = 0
    pages: int = 0
    missing: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.errors:
            return f"Indexed {self.indexed} products with {self.errors} errors"
        if not self.indexed:
            return "No new products to index"
        return f"Successfully indexed {self.indexed} products"

    def to_dict(self) -> dict:
        return {
            "total_products": self.total_items,
            "indexed": self.indexed,
            "skipped": self.skipped,
            "errors": self.errors,
            "batch_size": self.batch_size,
            "pages": self.pages,
            "missing": self.missing,
            "message": self.message,
        }


class ProductIndexer:
    """Pages through the catalog, embeds changed products and stores the vectors."""

    def __init__(
        self,
        catalog: Catalog,
        provider: EmbeddingProvider,
        store: EmbeddingStore,
        embedding_model: str,
    ):
        self.catalog = catalog
        self.provider = provider
        self.store = store
        self.embedding_model = embedding_model

    def index_all(self, batch_size: int, force: bool = False) -> IndexResult:
        """
        Index every catalog product.

        Unchanged products (same content hash) are skipped unless ``force``.
        A failed page counts its products as errors and the run moves on.
        """
        if batch_size < 1:
            raise InvalidInput("Batch size must be at least 1")

        logger.info(f"Starting product indexing (batch_size={batch_size}, force={force})")
        result = IndexResult(batch_size=batch_size)

        offset = 0
        while True:
            page = self.catalog.fetch_page(offset, batch_size)
            result.total_items = page.total
            if not page.items:
                break

            result.pages += 1
            self._index_page(page.items, force, result)

            offset += len(page.items)
            if offset >= page.total:
                break

        logger.info(
            f"Product indexing completed: indexed={result.indexed}, skipped={result.skipped}, "
            f"errors={result.errors}, total_products={result.total_items}"
        )
        return result

    def index_products(self, product_ids: list[str], batch_size: int, force: bool = False) -> IndexResult:
        """Index an explicit set of products, e.g. after they were edited."""
        result = IndexResult(batch_size=batch_size)
        unique_ids = list(dict.fromkeys(product_ids))
        items = self.catalog.fetch_items(unique_ids)

        found = {item.id for item in items}
        result.missing = [pid for pid in unique_ids if pid not in found]
        result.total_items = len(items)

        for start in range(0, len(items), batch_size):
            result.pages += 1
            self._index_page(items[start:start + batch_size], force, result)

        return result

    def _index_page(self, items: list[CatalogItem], force: bool, result: IndexResult) -> None:
        pending: list[PendingItem] = []
        for item in items:
            product_text = build_product_text(item)
            try:
                if not force and self.store.exists(item.id, product_text.content_hash):
                    result.skipped += 1
                    continue
            except VectorSearchError as e:
                logger.error(f"Change check failed for product {item.id}: {e}")
                result.errors += 1
                continue
            pending.append(PendingItem(
                product_id=item.id,
                version_id=item.version_id,
                text=product_text.text,
                content_hash=product_text.content_hash,
            ))

        if not pending:
            return

        try:
            embeddings = self.provider.embed_batch([p.text for p in pending])
        except VectorSearchError as e:
            logger.error(f"Batch embedding failed for {len(pending)} products: {e}")
            result.errors += len(pending)
            return

        for entry, embedding in zip(pending, embeddings):
            try:
                if force:
                    self.store.delete(entry.product_id, entry.version_id)
                self.store.upsert(EmbeddingRecord(
                    product_id=entry.product_id,
                    product_version_id=entry.version_id,
                    content_text=entry.text,
                    content_hash=entry.content_hash,
                    embedding=embedding,
                    embedding_model=self.embedding_model,
                ))
                result.indexed += 1
            except VectorSearchError as e:
                logger.error(f"Failed to store embedding for product {entry.product_id}: {e}")
                result.errors += 1

"""
Vector search service.

Entry point used by the API and the CLI: indexing, search, clearing and
status reporting over one catalog, one embedding provider and one store.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from vector_search.config import Settings
from vector_search.database import create_db_engine, create_session_factory, init_db
from vector_search.exceptions import InvalidInput, StorageUnavailable, VectorSearchError
from vector_search.services.catalog import Catalog, SqlCatalog
from vector_search.services.embedding_store import EmbeddingStore, create_store, pgvector_version
from vector_search.services.embeddings import EmbeddingProvider, ProviderHealth, create_provider
from vector_search.services.indexer import IndexResult, ProductIndexer
from vector_search.services.similarity import SearchMatch

logger = logging.getLogger(__name__)


@dataclass
class ServiceStatus:
    provider_healthy: bool
    total_items: int
    indexed_items: int
    backend: str
    embedding_mode: str

    @property
    def coverage_percent(self) -> float:
        if not self.total_items:
            return 0.0
        return round(self.indexed_items / self.total_items * 100, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_healthy": self.provider_healthy,
            "total_products": self.total_items,
            "indexed_products": self.indexed_items,
            "coverage_percent": self.coverage_percent,
            "backend": self.backend,
            "embedding_mode": self.embedding_mode,
        }


class VectorSearchService:
    """Indexes catalog products and answers similarity queries."""

    def __init__(
        self,
        settings: Settings,
        catalog: Catalog,
        provider: EmbeddingProvider,
        store: EmbeddingStore,
        engine: Engine,
    ):
        self.settings = settings
        self.catalog = catalog
        self.provider = provider
        self.store = store
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        self.indexer = ProductIndexer(catalog, provider, store, settings.embedding_model)

        logger.info(
            f"VectorSearchService initialized (backend={store.backend}, "
            f"embedding_mode={provider.mode})"
        )

    @property
    def backend(self) -> str:
        return self.store.backend

    def index_all(self, batch_size: int | None = None, force: bool = False) -> IndexResult:
        """Index all catalog products, skipping unchanged ones unless ``force``."""
        batch_size = batch_size if batch_size is not None else self.settings.batch_size
        return self.indexer.index_all(batch_size, force)

    def index_products(self, product_ids: list[str], force: bool = False) -> IndexResult:
        """Index the given products only."""
        return self.indexer.index_products(product_ids, self.settings.batch_size, force)

    def search(
        self,
        query: str,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[SearchMatch]:
        """
        Search products by semantic similarity to ``query``.

        Args:
            query: Free text query
            limit: Maximum results (defaults to ``max_search_results``)
            threshold: Minimum similarity (defaults to ``default_similarity_threshold``)

        Returns:
            Matches ordered by similarity, best first. If none reach the
            threshold, the best few are returned anyway.

        Raises:
            InvalidInput: Empty query or non-positive limit
            ProviderUnavailable: The query embedding could not be obtained
        """
        if not query or not query.strip():
            raise InvalidInput("Query must not be empty")

        limit = limit if limit is not None else self.settings.max_search_results
        threshold = threshold if threshold is not None else self.settings.default_similarity_threshold
        if limit < 1:
            raise InvalidInput("Limit must be at least 1")

        logger.info(f"Vector search started: query={query!r}, limit={limit}, threshold={threshold}")

        try:
            query_embedding = self.provider.embed(query)
            results = self.store.nearest(query_embedding, limit, threshold)
        except VectorSearchError as e:
            logger.error(f"Vector search failed for query {query!r}: {e}")
            raise

        logger.info(f"Vector search returned {len(results)} results")
        return results

    def clear_all(self) -> int:
        """Delete all embeddings; returns how many were removed."""
        deleted = self.store.delete_all()
        logger.info(f"Cleared {deleted} product embeddings")
        return deleted

    def delete_product(self, product_id: str) -> int:
        """Delete the embeddings of one product."""
        return self.store.delete(product_id)

    def provider_health(self) -> ProviderHealth:
        return self.provider.health()

    def status(self) -> ServiceStatus:
        return ServiceStatus(
            provider_healthy=self.provider_health().healthy,
            total_items=self.catalog.count(),
            indexed_items=self.store.count(),
            backend=self.backend,
            embedding_mode=self.provider.mode,
        )

    def diagnostics(self) -> dict[str, Any]:
        """Database and provider details for troubleshooting."""
        database: dict[str, Any] = {
            "backend": self.backend,
            "dialect": self.engine.dialect.name,
        }
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            version = self.engine.dialect.server_version_info
            database["server_version"] = ".".join(str(v) for v in version) if version else None
            database["connected"] = True
        except SQLAlchemyError as e:
            database["connected"] = False
            database["error"] = str(e)
        database["pgvector_version"] = pgvector_version(self.engine)

        try:
            embedding_count = self.store.count()
        except StorageUnavailable as e:
            embedding_count = None
            database["error"] = str(e)
        database["embeddings"] = embedding_count
        database["dimensions"] = self.store.dimensions

        return {
            "database": database,
            "embedding_provider": self.provider_health().to_dict(),
            "config": self.settings.public_config(),
        }

    def close(self) -> None:
        self.provider.close()


def build_service(
    settings: Settings,
    engine: Engine | None = None,
    http_client: httpx.Client | None = None,
) -> VectorSearchService:
    """
    Wire a service from configuration.

    Detects the storage backend, creates missing tables and builds the
    configured embedding provider.
    """
    engine = engine or create_db_engine(settings.database_url, echo=settings.debug)
    session_factory = create_session_factory(engine)

    store = create_store(
        engine,
        session_factory,
        settings.embedding_dimensions,
        settings.storage_backend,
    )
    try:
        init_db(engine)
    except SQLAlchemyError as e:
        raise StorageUnavailable(f"Failed to create tables: {e}") from e

    return VectorSearchService(
        settings=settings,
        catalog=SqlCatalog(session_factory),
        provider=create_provider(settings, http_client),
        store=store,
        engine=engine,
    )

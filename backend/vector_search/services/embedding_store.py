"""
Persistence of product embeddings.

Two storage encodings share one interface:

- ``NativeVectorStore``: PostgreSQL ``vector(N)`` column (pgvector); ranking
  is pushed down to the ``<=>`` cosine distance operator.
- ``JsonEmbeddingStore``: JSON array column on any engine; ranking is done
  in-process over a full scan.

``create_store`` detects which one the database supports, once, at startup.
"""

import logging
import math
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, Engine, Float, Select, cast, delete, func, insert, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.types import TypeEngine

from vector_search.database import Base
from vector_search.exceptions import DimensionMismatch, StorageUnavailable
from vector_search.models import PRODUCT_EMBEDDINGS_TABLE, product_embeddings_table
from vector_search.services.similarity import (
    FALLBACK_RESULT_COUNT,
    SearchMatch,
    StoredEmbedding,
    rank_candidates,
)

logger = logging.getLogger(__name__)

BACKEND_NATIVE = "native_vector"
BACKEND_JSON = "json_fallback"

READ_BATCH_SIZE = 500


@dataclass
class EmbeddingRecord:
    """One embedding to persist for a product version."""
    product_id: str
    product_version_id: str
    content_text: str
    content_hash: str
    embedding: list[float]
    embedding_model: str


class EmbeddingStore(ABC):
    """Maps ``(product_id, product_version_id)`` to a single embedding row."""

    backend: str

    def __init__(self, session_factory: sessionmaker[Session], dimensions: int):
        self.session_factory = session_factory
        self.dimensions = dimensions
        self.table = product_embeddings_table(Base.metadata, self.embedding_type())

    @abstractmethod
    def embedding_type(self) -> TypeEngine | type[TypeEngine]:
        """Column type used for the ``embedding`` column."""

    @abstractmethod
    def _decode(self, value: Any) -> list[float]:
        """Convert a stored ``embedding`` value back into a list of floats."""

    @abstractmethod
    def nearest(self, query_embedding: Sequence[float], limit: int, threshold: float) -> list[SearchMatch]:
        """Return the products closest to the query, best first."""

    def exists(self, product_id: str, content_hash: str) -> bool:
        """True if the product already has an embedding for exactly this content."""
        query = (
            select(self.table.c.id)
            .where(
                self.table.c.product_id == product_id,
                self.table.c.content_hash == content_hash,
            )
            .limit(1)
        )
        try:
            with self.session_factory() as session:
                return session.execute(query).first() is not None
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Embedding lookup failed: {e}") from e

    def upsert(self, record: EmbeddingRecord) -> None:
        """Insert or replace the embedding for the record's product version in one statement."""
        if len(record.embedding) != self.dimensions:
            raise DimensionMismatch(self.dimensions, len(record.embedding))

        values = {
            "id": uuid.uuid4().hex,
            "product_id": record.product_id,
            "product_version_id": record.product_version_id,
            "embedding": [float(x) for x in record.embedding],
            "content_text": record.content_text,
            "content_hash": record.content_hash,
            "embedding_model": record.embedding_model,
        }
        try:
            with self.session_factory.begin() as session:
                self._write(session, values)
        except SQLAlchemyError as e:
            raise StorageUnavailable(
                f"Failed to store embedding for product {record.product_id}: {e}"
            ) from e

    def _write(self, session: Session, values: dict[str, Any]) -> None:
        dialect = session.get_bind().dialect.name
        if dialect in ("postgresql", "sqlite"):
            stmt = (pg_insert if dialect == "postgresql" else sqlite_insert)(self.table).values(**values)
            # id and created_at stay as first written
            stmt = stmt.on_conflict_do_update(
                index_elements=["product_id", "product_version_id"],
                set_={
                    "embedding": stmt.excluded.embedding,
                    "content_text": stmt.excluded.content_text,
                    "content_hash": stmt.excluded.content_hash,
                    "embedding_model": stmt.excluded.embedding_model,
                    "updated_at": func.now(),
                },
            )
            session.execute(stmt)
            return

        # Generic engines: replace inside the surrounding transaction
        session.execute(
            delete(self.table).where(
                self.table.c.product_id == values["product_id"],
                self.table.c.product_version_id == values["product_version_id"],
            )
        )
        session.execute(insert(self.table).values(**values))

    def delete(self, product_id: str, product_version_id: str | None = None) -> int:
        """Delete the embedding(s) of a product; returns the number of rows removed."""
        stmt = delete(self.table).where(self.table.c.product_id == product_id)
        if product_version_id is not None:
            stmt = stmt.where(self.table.c.product_version_id == product_version_id)
        return self._execute_delete(stmt)

    def delete_all(self) -> int:
        """Delete every embedding; returns the number of rows removed."""
        return self._execute_delete(delete(self.table))

    def _execute_delete(self, stmt) -> int:
        try:
            with self.session_factory.begin() as session:
                return session.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Failed to delete embeddings: {e}") from e

    def count(self) -> int:
        try:
            with self.session_factory() as session:
                return session.execute(
                    select(func.count()).select_from(self.table)
                ).scalar_one()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Failed to count embeddings: {e}") from e

    def read_all(self) -> Iterator[StoredEmbedding]:
        """
        Lazily scan every stored embedding in (created_at, id) order.

        Rows are fetched in batches; each call starts a new scan.
        """
        query = (
            select(self.table.c.product_id, self.table.c.content_text, self.table.c.embedding)
            .order_by(self.table.c.created_at, self.table.c.id)
            .execution_options(yield_per=READ_BATCH_SIZE)
        )
        try:
            with self.session_factory() as session:
                for row in session.execute(query):
                    yield StoredEmbedding(
                        product_id=row.product_id,
                        content_text=row.content_text,
                        embedding=self._decode(row.embedding),
                    )
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Failed to read embeddings: {e}") from e


class JsonEmbeddingStore(EmbeddingStore):
    """Embeddings as JSON arrays; similarity computed in application code."""

    backend = BACKEND_JSON

    def embedding_type(self):
        return JSON

    def _decode(self, value: Any) -> list[float]:
        if not isinstance(value, list):
            return []
        return [float(x) for x in value]

    def nearest(self, query_embedding: Sequence[float], limit: int, threshold: float) -> list[SearchMatch]:
        """Full scan ranked by ``rank_candidates``; O(N) per query."""
        return rank_candidates(query_embedding, self.read_all(), limit, threshold)


class NativeVectorStore(EmbeddingStore):
    """Embeddings in a pgvector column; ranking done by PostgreSQL."""

    backend = BACKEND_NATIVE

    def embedding_type(self):
        return Vector(self.dimensions)

    def _decode(self, value: Any) -> list[float]:
        if value is None:
            return []
        return [float(x) for x in value]

    def nearest(self, query_embedding: Sequence[float], limit: int, threshold: float) -> list[SearchMatch]:
        """
        Order by cosine distance (``<=>``) in SQL, keeping rows within ``1 - threshold``.

        If nothing is within the threshold the closest ``min(limit, 3)`` rows
        are returned, matching the JSON backend.
        """
        # The column has a fixed dimension; other query sizes cannot match
        if len(query_embedding) != self.dimensions:
            logger.warning(
                f"Query has {len(query_embedding)} dimensions, index has {self.dimensions}; no candidates"
            )
            return []

        base, distance = self.ranked_query(query_embedding)

        try:
            with self.session_factory() as session:
                rows = session.execute(
                    base.where(distance <= 1 - threshold).limit(limit)
                ).all()
                if not rows:
                    rows = session.execute(
                        base.limit(min(limit, FALLBACK_RESULT_COUNT))
                    ).all()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Vector search query failed: {e}") from e

        return [self._to_match(row) for row in rows]

    def ranked_query(self, query_embedding: Sequence[float]) -> tuple[Select, Any]:
        """Select all rows by ascending cosine distance; returns the statement and distance expression."""
        query = [float(x) for x in query_embedding]
        # Zero-magnitude vectors give NaN distance in pgvector; rank them as unrelated
        raw = self.table.c.embedding.cosine_distance(query)
        distance = func.coalesce(func.nullif(raw, cast("NaN", Float)), 1.0)
        statement = (
            select(
                self.table.c.product_id,
                self.table.c.content_text,
                distance.label("distance"),
            )
            .order_by(distance, self.table.c.created_at, self.table.c.id)
        )
        return statement, distance

    @staticmethod
    def _to_match(row) -> SearchMatch:
        distance = float(row.distance) if row.distance is not None else math.nan
        # Zero-magnitude vectors give NaN distance in pgvector
        if math.isnan(distance):
            distance = 1.0
        return SearchMatch(
            product_id=row.product_id,
            similarity=1.0 - distance,
            distance=distance,
            content_text=row.content_text,
        )


def pgvector_version(engine: Engine) -> str | None:
    """Enable the pgvector extension if possible and return its version."""
    if engine.dialect.name != "postgresql":
        return None
    try:
        with engine.begin() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            return conn.execute(
                text("SELECT extversion FROM pg_extension WHERE extname = 'vector'")
            ).scalar()
    except SQLAlchemyError as e:
        logger.warning(f"pgvector extension unavailable: {e}")
        return None


def existing_embedding_column(engine: Engine) -> str | None:
    """Type name of an already created ``embedding`` column, if the table exists."""
    if engine.dialect.name != "postgresql":
        return None
    try:
        with engine.connect() as conn:
            return conn.execute(
                text(
                    "SELECT udt_name FROM information_schema.columns "
                    "WHERE table_name = :table AND column_name = 'embedding'"
                ),
                {"table": PRODUCT_EMBEDDINGS_TABLE},
            ).scalar()
    except SQLAlchemyError as e:
        raise StorageUnavailable(f"Cannot inspect embeddings table: {e}") from e


def detect_backend(
    engine: Engine,
    preference: Literal["auto", "native", "json"] = "auto",
) -> str:
    """
    Decide the storage encoding for this database.

    ``auto`` keeps the encoding of an existing table, otherwise uses the
    native vector column when pgvector is available.
    """
    if preference == "json":
        return BACKEND_JSON

    column_type = existing_embedding_column(engine)
    native_available = pgvector_version(engine) is not None

    if preference == "native":
        if not native_available:
            raise StorageUnavailable("Native vector storage requested but pgvector is not available")
        return BACKEND_NATIVE

    if column_type is not None:
        return BACKEND_NATIVE if column_type == "vector" and native_available else BACKEND_JSON
    return BACKEND_NATIVE if native_available else BACKEND_JSON


def create_store(
    engine: Engine,
    session_factory: sessionmaker[Session],
    dimensions: int,
    preference: Literal["auto", "native", "json"] = "auto",
) -> EmbeddingStore:
    """Build the store implementation matching the database's capabilities."""
    backend = detect_backend(engine, preference)
    logger.info(f"Embedding store backend: {backend} (dialect={engine.dialect.name})")
    if backend == BACKEND_NATIVE:
        return NativeVectorStore(session_factory, dimensions)
    return JsonEmbeddingStore(session_factory, dimensions)

"""Embedding storage table for semantic search.

The ``embedding`` column type depends on the storage backend detected at
startup: a pgvector ``vector(N)`` column, or a JSON array fallback. The table
is therefore built by a factory instead of a declarative class.
"""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKeyConstraint,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.types import TypeEngine

PRODUCT_EMBEDDINGS_TABLE = "product_embeddings"


def product_embeddings_table(
    metadata: MetaData,
    embedding_type: TypeEngine | type[TypeEngine] = JSON,
) -> Table:
    """Define ``product_embeddings`` on ``metadata`` with the given embedding column type.

    Any previous definition on the same metadata is replaced, so the backend
    chosen last is the one ``create_all`` builds.
    """
    existing = metadata.tables.get(PRODUCT_EMBEDDINGS_TABLE)
    if existing is not None:
        metadata.remove(existing)

    return Table(
        PRODUCT_EMBEDDINGS_TABLE,
        metadata,
        Column("id", String(32), primary_key=True),
        Column("product_id", String(32), nullable=False),
        Column("product_version_id", String(32), nullable=False),
        Column("embedding", embedding_type, nullable=False),
        Column("content_hash", String(64), nullable=False),  # SHA256 of content_text
        Column("content_text", Text, nullable=False),
        Column("embedding_model", String(100), nullable=False),
        Column("created_at", DateTime, nullable=False, server_default=func.now()),
        Column("updated_at", DateTime, nullable=False, server_default=func.now()),
        UniqueConstraint("product_id", "product_version_id", name="uniq_product_version"),
        ForeignKeyConstraint(
            ["product_id", "product_version_id"],
            ["products.id", "products.version_id"],
            name="fk_product_embeddings_product",
            ondelete="CASCADE",
            onupdate="CASCADE",
        ),
        Index("idx_product_embeddings_content_hash", "content_hash"),
        Index("idx_product_embeddings_model", "embedding_model"),
        Index("idx_product_embeddings_updated", "updated_at"),
    )

"""Request schemas for the vector search endpoints."""

from pydantic import BaseModel, Field


class IndexRequest(BaseModel):
    """Request to index the whole catalog."""
    batch_size: int | None = Field(None, ge=1, le=10000, description="Products per page")
    force: bool = Field(False, description="Re-embed products even if unchanged")


class IndexProductsRequest(BaseModel):
    """Request to index specific products."""
    product_ids: list[str] = Field(..., min_length=1, max_length=1000)
    force: bool = False


class SearchRequest(BaseModel):
    """Request for semantic search."""
    query: str = Field(..., min_length=1, max_length=1000)
    limit: int | None = Field(None, ge=1, le=100)
    threshold: float | None = Field(None, ge=-1.0, le=2.0)

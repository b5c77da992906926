"""Pydantic schemas for API request validation."""

from vector_search.schemas.vector_search import IndexProductsRequest, IndexRequest, SearchRequest

__all__ = [
    "IndexProductsRequest",
    "IndexRequest",
    "SearchRequest",
]

"""SQLAlchemy models."""

from vector_search.models.product import LIVE_VERSION_ID, Manufacturer, Product, new_id
from vector_search.models.category import Category, ProductCategory
from vector_search.models.property import PropertyGroup, PropertyGroupOption, ProductProperty
from vector_search.models.embedding import PRODUCT_EMBEDDINGS_TABLE, product_embeddings_table

__all__ = [
    "LIVE_VERSION_ID",
    "Manufacturer",
    "Product",
    "new_id",
    "Category",
    "ProductCategory",
    "PropertyGroup",
    "PropertyGroupOption",
    "ProductProperty",
    "PRODUCT_EMBEDDINGS_TABLE",
    "product_embeddings_table",
]

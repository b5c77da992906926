"""Read-only access to catalog products for indexing."""

from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from vector_search.exceptions import StorageUnavailable
from vector_search.models import (
    LIVE_VERSION_ID,
    Product,
    ProductCategory,
    ProductProperty,
    PropertyGroupOption,
)


@dataclass(frozen=True)
class PropertyOption:
    name: str
    group: str | None = None


@dataclass(frozen=True)
class CatalogItem:
    """Snapshot of a product with the attributes that feed its embedding text."""
    id: str
    version_id: str
    name: str | None = None
    description: str | None = None
    manufacturer: str | None = None
    categories: tuple[str, ...] = ()
    properties: tuple[PropertyOption, ...] = field(default_factory=tuple)


@dataclass
class CatalogPage:
    items: list[CatalogItem]
    total: int


class Catalog(Protocol):
    """Paginated product source used by the indexer."""

    def fetch_page(self, offset: int, limit: int) -> CatalogPage: ...

    def fetch_items(self, product_ids: list[str]) -> list[CatalogItem]: ...

    def count(self) -> int: ...


def item_from_product(product: Product) -> CatalogItem:
    """Build a CatalogItem from a loaded Product row."""
    return CatalogItem(
        id=product.id,
        version_id=product.version_id,
        name=product.name,
        description=product.description,
        manufacturer=product.manufacturer.name if product.manufacturer else None,
        categories=tuple(pc.category.name for pc in product.product_categories),
        properties=tuple(
            PropertyOption(
                name=pp.option.name,
                group=pp.option.group.name if pp.option.group else None,
            )
            for pp in product.product_properties
        ),
    )


class SqlCatalog:
    """Catalog backed by the ``products`` table and its associations."""

    def __init__(self, session_factory: sessionmaker[Session], version_id: str = LIVE_VERSION_ID):
        self.session_factory = session_factory
        self.version_id = version_id

    def _product_query(self):
        return (
            select(Product)
            .where(Product.version_id == self.version_id)
            .options(
                selectinload(Product.manufacturer),
                selectinload(Product.product_categories).selectinload(ProductCategory.category),
                selectinload(Product.product_properties)
                .selectinload(ProductProperty.option)
                .selectinload(PropertyGroupOption.group),
            )
        )

    def fetch_page(self, offset: int, limit: int) -> CatalogPage:
        """Fetch one page of products in a stable (created_at, id) order."""
        query = (
            self._product_query()
            .order_by(Product.created_at, Product.id)
            .offset(offset)
            .limit(limit)
        )
        try:
            with self.session_factory() as session:
                total = self._count(session)
                products = session.execute(query).scalars().all()
                return CatalogPage(items=[item_from_product(p) for p in products], total=total)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Failed to load catalog page at offset {offset}: {e}") from e

    def fetch_items(self, product_ids: list[str]) -> list[CatalogItem]:
        if not product_ids:
            return []
        query = self._product_query().where(Product.id.in_(product_ids)).order_by(Product.id)
        try:
            with self.session_factory() as session:
                products = session.execute(query).scalars().all()
                return [item_from_product(p) for p in products]
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Failed to load products: {e}") from e

    def count(self) -> int:
        try:
            with self.session_factory() as session:
                return self._count(session)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Failed to count products: {e}") from e

    def _count(self, session: Session) -> int:
        query = select(func.count()).select_from(Product).where(
            Product.version_id == self.version_id
        )
        return session.execute(query).scalar_one()

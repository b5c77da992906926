"""Product model - represents a catalog item that can be embedded."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vector_search.database import Base

if TYPE_CHECKING:
    from vector_search.models.category import ProductCategory
    from vector_search.models.property import ProductProperty


LIVE_VERSION_ID = "0fa91ce3e96a4bc2be4bd9ce752c3425"


def new_id() -> str:
    """Generate a 32-char hex identifier."""
    return uuid.uuid4().hex


class Manufacturer(Base):
    """A product manufacturer."""

    __tablename__ = "manufacturers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    products: Mapped[list["Product"]] = relationship("Product", back_populates="manufacturer")

    def __repr__(self) -> str:
        return f"<Manufacturer(id={self.id}, name='{self.name}')>"


class Product(Base):
    """A product in the catalog.

    Identified by ``(id, version_id)``; only the live version is indexed by default.
    """

    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_name", "name"),
        Index("ix_products_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    version_id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=LIVE_VERSION_ID
    )

    name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    manufacturer_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("manufacturers.id", ondelete="SET NULL"), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    manufacturer: Mapped["Manufacturer | None"] = relationship(
        "Manufacturer", back_populates="products"
    )
    product_categories: Mapped[list["ProductCategory"]] = relationship(
        "ProductCategory",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductCategory.position",
    )
    product_properties: Mapped[list["ProductProperty"]] = relationship(
        "ProductProperty",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductProperty.position",
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, version_id={self.version_id}, name='{self.name}')>"

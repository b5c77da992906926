"""Category models - catalog navigation nodes assigned to products."""

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, ForeignKeyConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vector_search.database import Base
from vector_search.models.product import new_id

if TYPE_CHECKING:
    from vector_search.models.product import Product


class Category(Base):
    """A catalog category."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    product_categories: Mapped[list["ProductCategory"]] = relationship(
        "ProductCategory", back_populates="category", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"


class ProductCategory(Base):
    """Association table for products and categories."""

    __tablename__ = "product_categories"
    __table_args__ = (
        ForeignKeyConstraint(
            ["product_id", "product_version_id"],
            ["products.id", "products.version_id"],
            ondelete="CASCADE",
        ),
    )

    product_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    product_version_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    category_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    product: Mapped["Product"] = relationship("Product", back_populates="product_categories")
    category: Mapped["Category"] = relationship("Category", back_populates="product_categories")

    def __repr__(self) -> str:
        return f"<ProductCategory(product_id={self.product_id}, category_id={self.category_id})>"

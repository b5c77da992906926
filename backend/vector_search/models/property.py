"""Property models - option values (e.g. "Red") grouped under a property (e.g. "Color")."""

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, ForeignKeyConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vector_search.database import Base
from vector_search.models.product import new_id

if TYPE_CHECKING:
    from vector_search.models.product import Product


class PropertyGroup(Base):
    """A property group such as "Color" or "Size"."""

    __tablename__ = "property_groups"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    options: Mapped[list["PropertyGroupOption"]] = relationship(
        "PropertyGroupOption", back_populates="group", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<PropertyGroup(id={self.id}, name='{self.name}')>"


class PropertyGroupOption(Base):
    """A single option within a property group."""

    __tablename__ = "property_group_options"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    group_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("property_groups.id", ondelete="CASCADE"), nullable=True
    )

    group: Mapped["PropertyGroup | None"] = relationship(
        "PropertyGroup", back_populates="options"
    )

    def __repr__(self) -> str:
        return f"<PropertyGroupOption(id={self.id}, name='{self.name}')>"


class ProductProperty(Base):
    """Association table for products and property options."""

    __tablename__ = "product_properties"
    __table_args__ = (
        ForeignKeyConstraint(
            ["product_id", "product_version_id"],
            ["products.id", "products.version_id"],
            ondelete="CASCADE",
        ),
    )

    product_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    product_version_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    option_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("property_group_options.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    product: Mapped["Product"] = relationship("Product", back_populates="product_properties")
    option: Mapped["PropertyGroupOption"] = relationship("PropertyGroupOption")

    def __repr__(self) -> str:
        return f"<ProductProperty(product_id={self.product_id}, option_id={self.option_id})>"

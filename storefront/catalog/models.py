"""SQLAlchemy models for the product catalog.

Defines users (reviewer display data only), categories, shops, products
and reviews.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Account as seen by the catalog: a seller or a reviewer.

    Account management lives elsewhere; the catalog only reads the
    display fields.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    avatar: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<User(id={self.id}, name={self.name})>"


class Category(Base):
    """Catalog category. Categories form a tree through ``parent_id``."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    parent: Mapped["Category | None"] = relationship(
        "Category",
        remote_side="Category.id",
        back_populates="children",
    )
    children: Mapped[list["Category"]] = relationship("Category", back_populates="parent")

    def __repr__(self) -> str:
        """String representation."""
        return f"<Category(id={self.id}, slug={self.slug})>"


class Shop(Base):
    """Shop owned by exactly one seller."""

    __tablename__ = "shops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    seller_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Shop(id={self.id}, seller_id={self.seller_id})>"


class Product(Base):
    """Product listed by a seller in one of their shops.

    Attributes:
        id: Unique product identifier.
        name: Product name.
        description: Free-text description.
        price: Unit price, strictly positive.
        stock: Units on hand, never negative.
        discount: Percentage discount between 0 and 100.
        category_id: Owning category.
        shop_id: Shop the product is listed in.
        seller_id: Owner; immutable after creation.
        images: Ordered public image URLs.
        rating: Mean review rating, 0 when there are no reviews.
        is_active: Inactive products never appear in listings.
        sku: Generated stock keeping unit, unique per shop.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("categories.id"),
        nullable=False,
        index=True,
    )
    shop_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("shops.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    seller_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    # Relationships
    category: Mapped["Category"] = relationship("Category")
    shop: Mapped["Shop"] = relationship("Shop")
    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Review.created_at.desc()",
    )

    __table_args__ = (
        UniqueConstraint("shop_id", "sku", name="uq_products_shop_sku"),
        CheckConstraint("stock >= 0", name="check_stock_non_negative"),
        CheckConstraint("price > 0", name="check_price_positive"),
        CheckConstraint(
            "discount IS NULL OR (discount >= 0 AND discount <= 100)",
            name="check_discount_range",
        ),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, sku={self.sku}, name={self.name[:30]})>"


class Review(Base):
    """Buyer review of a product."""

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    product: Mapped["Product"] = relationship("Product", back_populates="reviews")
    user: Mapped["User"] = relationship("User")

    __table_args__ = (CheckConstraint("rating >= 1 AND rating <= 5", name="check_review_rating"),)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Review(id={self.id}, product_id={self.product_id}, rating={self.rating})>"

# storefront/data/models/product.py
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    price = Column(Numeric(10, 2), nullable=False)
    sale = Column(Integer, nullable=False, default=0)  # percent, 0-100
    deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # order matters: the first color is the default variant
    colors = relationship(
        "ProductColorModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductColorModel.position",
    )
    categories = relationship(
        "CategoryModel",
        secondary="product_categories",
        back_populates="products",
        order_by="CategoryModel.name",
    )

    __table_args__ = (
        CheckConstraint("sale >= 0 AND sale <= 100", name="ck_product_sale_range"),
    )


class ProductColorModel(Base):
    __tablename__ = "product_colors"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    name = Column(String, nullable=False)
    hex = Column(String(16), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    images = Column(JSON, nullable=False, default=list)

    product = relationship("ProductModel", back_populates="colors")

    __table_args__ = (
        UniqueConstraint("product_id", "hex", name="u_product_color_hex"),
        CheckConstraint("quantity >= 0", name="ck_color_stock_non_negative"),
    )

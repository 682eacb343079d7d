from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String

from storefront.data.database import Base


class StoreSettingsModel(Base):
    """Single row, created on the first update."""

    __tablename__ = "store_settings"

    id = Column(Integer, primary_key=True)
    store_name = Column(String, nullable=False, default="")
    default_currency = Column(String(8), nullable=False, default="USD")
    default_language = Column(String(8), nullable=False, default="en")
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class CurrencyModel(Base):
    __tablename__ = "currencies"

    id = Column(Integer, primary_key=True)
    code = Column(String(8), nullable=False, unique=True)
    symbol = Column(String(8), nullable=False)
    name = Column(String, nullable=False)
    exchange_rate = Column(Numeric(12, 6), nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class LanguageModel(Base):
    __tablename__ = "languages"

    id = Column(Integer, primary_key=True)
    code = Column(String(8), nullable=False, unique=True)
    name = Column(String, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class ShippingMethodModel(Base):
    __tablename__ = "shipping_methods"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    cost = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

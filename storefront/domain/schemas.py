# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------- users

class UserCreate(BaseModel):
    """Schema for creating a user."""

    id: int = Field(..., gt=0, description="User ID (must be > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    is_admin: bool = False


class UserRead(BaseModel):
    id: int
    name: str
    is_admin: bool

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- categories

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = None


class CategoryUpdate(BaseModel):
    """Only the fields that are sent are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = None


class CategoryOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    product_count: int
    created_at: datetime


class CategoryListOut(BaseModel):
    categories: List[CategoryOut]
    current_page: int
    total_pages: int
    total_categories: int


class CategoryRef(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- products

class ColorIn(BaseModel):
    name: str = Field(..., min_length=1)
    hex: str = Field(..., min_length=1, max_length=16)
    quantity: int = Field(0, ge=0, description="Units in stock for this color")
    images: List[str] = Field(default_factory=list, description="Image URLs")


class ProductCreate(BaseModel):
    """Schema for creating a product."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    sale: int = Field(0, ge=0, le=100, description="Discount percent")
    colors: List[ColorIn] = Field(default_factory=list)
    category_ids: List[int] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    """
    Partial update. A colors list replaces the variants: colors are matched
    by hex, so sending an existing hex with a new quantity refills its stock.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    sale: Optional[int] = Field(None, ge=0, le=100)
    colors: Optional[List[ColorIn]] = None
    category_ids: Optional[List[int]] = None


class ColorOut(BaseModel):
    name: str
    hex: str
    quantity: int
    images: List[str]

    model_config = ConfigDict(from_attributes=True)


class ProductOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    sale: int
    effective_price: Decimal
    colors: List[ColorOut]
    categories: List[CategoryRef] = Field(default_factory=list)
    created_at: datetime


class ProductListOut(BaseModel):
    total_products: int
    products: List[ProductOut]


class MinPriceOut(BaseModel):
    min_effective_price: Decimal


class MaxPriceOut(BaseModel):
    max_effective_price: Decimal


# ---------------------------------------------------------------- favourites

class FavouriteIn(BaseModel):
    product_id: int = Field(..., gt=0)


class FavouriteOut(BaseModel):
    product_id: int
    name: str
    image: Optional[str] = None


class FavouriteListOut(BaseModel):
    favourites: List[FavouriteOut]


# ---------------------------------------------------------------- store config

class CurrencyIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=8)
    symbol: str = Field(..., min_length=1, max_length=8)
    name: str = Field(..., min_length=1)
    exchange_rate: Decimal = Field(..., gt=0)
    is_default: bool = False
    is_active: bool = True


class CurrencyOut(CurrencyIn):
    id: int

    model_config = ConfigDict(from_attributes=True)


class LanguageIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=8)
    name: str = Field(..., min_length=1)
    is_default: bool = False
    is_active: bool = True


class LanguageOut(LanguageIn):
    id: int

    model_config = ConfigDict(from_attributes=True)


class ShippingMethodIn(BaseModel):
    """Without an id a new method is created."""

    id: Optional[int] = None
    name: str = Field(..., min_length=1)
    cost: Decimal = Field(..., ge=0)
    is_active: bool = True


class ShippingMethodOut(BaseModel):
    id: int
    name: str
    cost: Decimal
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class StoreConfigIn(BaseModel):
    """
    Lists that are sent replace the stored set: entries missing from a list
    are soft-deleted. Lists that are left out are not touched.
    """

    store_name: Optional[str] = None
    default_currency: Optional[str] = Field(None, min_length=1, max_length=8)
    default_language: Optional[str] = Field(None, min_length=1, max_length=8)
    supported_currencies: Optional[List[CurrencyIn]] = None
    supported_languages: Optional[List[LanguageIn]] = None
    shipping_methods: Optional[List[ShippingMethodIn]] = None


class StoreConfigOut(BaseModel):
    store_name: str
    default_currency: str
    default_language: str
    supported_currencies: List[CurrencyOut]
    supported_languages: List[LanguageOut]
    shipping_methods: List[ShippingMethodOut]


# ---------------------------------------------------------------- cart

class CartItemIn(BaseModel):
    """One entry of an add-to-cart request."""

    product_id: int
    quantity: int
    color_hex: Optional[str] = None


class CartItemUpdate(BaseModel):
    """Quantity 0 removes the line."""

    product_id: int
    quantity: int
    color_hex: Optional[str] = None


class ColorRef(BaseModel):
    name: str
    hex: str


class CartLineOut(BaseModel):
    product_id: int
    name: str
    color: ColorRef
    quantity: int
    image: Optional[str] = None
    price: Decimal
    subtotal: Decimal


class CartOut(BaseModel):
    products: List[CartLineOut]
    total_price: Decimal


# ---------------------------------------------------------------- orders

class ShippingAddress(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    zip_code: Optional[str] = None
    country: str = Field(..., min_length=1)


class PlaceOrderIn(BaseModel):
    shipping_address: ShippingAddress
    payment_method: str = Field(..., min_length=1)
    transaction_id: Optional[str] = None


class OrderItemOut(BaseModel):
    product_id: int
    name: str
    quantity: int
    price: Decimal
    subtotal: Decimal
    color: ColorRef


class OrderOut(BaseModel):
    id: int
    order_number: str
    user_id: int
    status: OrderStatus
    items: List[OrderItemOut]
    shipping_address: ShippingAddress
    payment_method: str
    transaction_id: Optional[str] = None
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime


class OrderSummaryOut(BaseModel):
    id: int
    order_number: str
    user_id: int
    status: OrderStatus
    item_count: int
    country: str
    payment_method: str
    total_amount: Decimal
    created_at: datetime


class UserOrderListOut(BaseModel):
    orders: List[OrderSummaryOut]
    total_orders: int


class OrderListOut(BaseModel):
    orders: List[OrderSummaryOut]
    total_orders: int
    current_page: int
    total_pages: int


class OrderStatusIn(BaseModel):
    status: str

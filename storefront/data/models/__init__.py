# import all models so SQLAlchemy registers them in Base.metadata

from storefront.data.models.user import UserModel
from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel, ProductColorModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel, OrderItemModel
from storefront.data.models.store import (
    CurrencyModel,
    LanguageModel,
    ShippingMethodModel,
    StoreSettingsModel,
)

__all__ = [
    "UserModel",
    "CategoryModel",
    "ProductModel",
    "ProductColorModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "StoreSettingsModel",
    "CurrencyModel",
    "LanguageModel",
    "ShippingMethodModel",
]

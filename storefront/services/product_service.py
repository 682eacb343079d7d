# storefront/services/product_service.py
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel, ProductColorModel
from storefront.domain.errors import InvalidInputError, NotFoundError
from storefront.domain.pricing import ZERO, effective_price, to_money
from storefront.domain.schemas import ColorIn, ProductCreate, ProductUpdate
from storefront.repos.category_repo import CategoryRepo
from storefront.repos.product_repo import ProductRepo, SORT_FIELDS
from storefront.services.user_service import UserService
from storefront.utils.settings import PRODUCT_PAGE_SIZE
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def product_to_dict(product: ProductModel) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "sale": product.sale,
        "effective_price": to_money(effective_price(product.price, product.sale)),
        "colors": [
            {
                "name": c.name,
                "hex": c.hex,
                "quantity": c.quantity,
                "images": list(c.images or []),
            }
            for c in product.colors
        ],
        "categories": [{"id": c.id, "name": c.name} for c in product.categories],
        "created_at": product.created_at,
    }


def _check_unique_hexes(colors: List[ColorIn]) -> None:
    hexes = [c.hex for c in colors]
    if len(hexes) != len(set(hexes)):
        raise InvalidInputError("Duplicate color hex in product colors.")


class ProductService:
    def __init__(self, db: Session):
        self.repo = ProductRepo(db)
        self.categories = CategoryRepo(db)
        self.users = UserService(db)

    def create_product(self, admin_id: int, payload: ProductCreate) -> Dict[str, Any]:
        self.users.require_admin(admin_id)
        _check_unique_hexes(payload.colors)

        product = ProductModel(
            name=payload.name,
            description=payload.description,
            price=payload.price,
            sale=payload.sale,
            colors=[
                ProductColorModel(
                    position=index,
                    name=c.name,
                    hex=c.hex,
                    quantity=c.quantity,
                    images=list(c.images),
                )
                for index, c in enumerate(payload.colors)
            ],
            categories=self._resolve_categories(payload.category_ids),
        )
        created = self.repo.create_product(product)
        logger.info(f"Product {created.id} '{created.name}' created by admin {admin_id}")
        return product_to_dict(created)

    def update_product(self, admin_id: int, product_id: int, payload: ProductUpdate) -> Dict[str, Any]:
        """
        Re-price, rename, re-categorise or restock a product.
        Carts pick the new price up on their next read or save; orders keep
        the price they were placed with.
        """
        self.users.require_admin(admin_id)

        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found.")

        changes = payload.model_dump(exclude_unset=True)
        for field in ("name", "price", "sale"):
            if changes.get(field) is not None:
                setattr(product, field, changes[field])
        if "description" in changes:
            product.description = changes["description"]

        if payload.colors is not None:
            _check_unique_hexes(payload.colors)
            self._replace_colors(product, payload.colors)

        if payload.category_ids is not None:
            product.categories = self._resolve_categories(payload.category_ids)

        updated = self.repo.save(product)
        logger.info(f"Product {product_id} updated by admin {admin_id}, fields: {sorted(changes)}")
        return product_to_dict(updated)

    def get_product(self, product_id: int) -> Dict[str, Any]:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found.")
        return product_to_dict(product)

    def list_products(
        self,
        page: int = 1,
        limit: int = PRODUCT_PAGE_SIZE,
        sort_by: str = "date",
        order: str = "desc",
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        category_ids: List[int] | None = None,
    ) -> Dict[str, Any]:
        if page < 1 or limit < 1:
            raise InvalidInputError("Invalid pagination parameters.")
        if sort_by not in SORT_FIELDS:
            sort_by = "date"

        products, total = self.repo.list_products(
            offset=(page - 1) * limit,
            limit=limit,
            sort_by=sort_by,
            descending=order != "asc",
            min_price=min_price,
            max_price=max_price,
            category_ids=category_ids or None,
        )
        return {
            "total_products": total,
            "products": [product_to_dict(p) for p in products],
        }

    def search_products(self, query: str | None) -> List[Dict[str, Any]]:
        query = (query or "").strip()
        if not query:
            raise InvalidInputError("Please enter a search keyword!")

        products = self.repo.search_products(query)
        if not products:
            raise NotFoundError("No products found.")
        return [product_to_dict(p) for p in products]

    def min_effective_price(self) -> Dict[str, Any]:
        low, _ = self.repo.effective_price_bounds()
        return {"min_effective_price": to_money(low) if low is not None else ZERO}

    def max_effective_price(self) -> Dict[str, Any]:
        _, high = self.repo.effective_price_bounds()
        return {"max_effective_price": to_money(high) if high is not None else ZERO}

    def delete_product(self, admin_id: int, product_id: int) -> None:
        self.users.require_admin(admin_id)
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found.")
        self.repo.soft_delete(product)
        logger.info(f"Product {product_id} soft-deleted by admin {admin_id}")

    # helpers
    def _resolve_categories(self, category_ids: List[int]) -> List[CategoryModel]:
        wanted = set(category_ids)
        found = self.categories.get_many(sorted(wanted))
        if len(found) != len(wanted):
            missing = sorted(wanted - {c.id for c in found})
            raise InvalidInputError(f"Invalid category ID(s): {', '.join(map(str, missing))}")
        return found

    @staticmethod
    def _replace_colors(product: ProductModel, colors: List[ColorIn]) -> None:
        # existing variants are kept by hex so their stock rows are updated in place
        existing = {c.hex: c for c in product.colors}
        replaced = []
        for index, c in enumerate(colors):
            color = existing.get(c.hex) or ProductColorModel(hex=c.hex)
            color.position = index
            color.name = c.name
            color.quantity = c.quantity
            color.images = list(c.images)
            replaced.append(color)
        product.colors = replaced

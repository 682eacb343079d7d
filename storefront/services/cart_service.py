from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import ConflictError, InvalidInputError, NotFoundError
from storefront.domain.pricing import (
    CartLine,
    CartTotals,
    ProductLookup,
    ZERO,
    recompute_totals,
    to_money,
)
from storefront.domain.schemas import CartItemIn, CartItemUpdate
from storefront.repos.cart_repo import CartRepo
from storefront.services.catalog import DbProductLookup
from storefront.services.user_service import UserService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def cart_lines(cart: CartModel) -> List[CartLine]:
    return [
        CartLine(product_id=i.product_id, color_hex=i.color_hex, quantity=i.quantity)
        for i in cart.items
    ]


def cart_view(totals: CartTotals) -> Dict[str, Any]:
    return {
        "products": [
            {
                "product_id": line.product_id,
                "name": line.name,
                "color": {"name": line.color_name, "hex": line.color_hex},
                "quantity": line.quantity,
                "image": line.image_url,
                "price": to_money(line.unit_price),
                "subtotal": line.subtotal,
            }
            for line in totals.lines
        ],
        "total_price": totals.total_price,
    }


class CartService:
    """
    Cart use cases, one cart per user.
    commands (add_items, update_item) change state and always go through _save
    query (get_cart) only reads and prices against the live catalog
    """

    def __init__(self, db: Session, catalog: ProductLookup | None = None):
        self.repo = CartRepo(db)
        self.users = UserService(db)
        self.catalog = catalog or DbProductLookup(db)

    # query
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_user(user_id)

        if not cart:
            logger.warning(f"No cart found for user {user_id}")
            raise NotFoundError("Cart not found.")

        # never trust stored subtotals, quantities are capped at current stock
        totals = recompute_totals(cart_lines(cart), self.catalog, clamp_to_stock=True)
        logger.info(f"Cart retrieved for user {user_id}, products: {len(totals.lines)}")
        return cart_view(totals)

    # commands
    def add_items(self, user_id: int, items: List[CartItemIn]) -> Dict[str, Any]:
        if not items:
            raise InvalidInputError("Invalid cart items.")

        # validate everything before touching the cart
        resolved = []
        for item in items:
            if item.product_id <= 0 or item.quantity < 1:
                raise InvalidInputError("Invalid id or quantity.")
            variant = self.catalog.resolve(item.product_id, color_hex=item.color_hex)
            resolved.append((variant, item.quantity))

        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            if not self.users.exists(user_id):
                raise NotFoundError("User not found")
            try:
                cart = self.repo.add_cart(CartModel(user_id=user_id, version=1, total_price=ZERO))
            except IntegrityError as e:
                # another request created the cart first
                self.repo.rollback()
                raise ConflictError("Cart was modified by another request, please retry.") from e
            logger.info(f"Created new cart {cart.id} for user {user_id}")

        for variant, requested in resolved:
            final_quantity = min(requested, variant.available_quantity)

            if final_quantity <= 0:
                logger.warning(
                    f"Product {variant.product_id} ({variant.color_hex}) out of stock, skipped"
                )
                continue

            existing = self._find_item(cart, variant.product_id, variant.color_hex)

            if existing:
                merged = min(existing.quantity + final_quantity, variant.available_quantity)
                logger.info(
                    f"Product {variant.product_id} ({variant.color_hex}) already in cart, "
                    f"quantity {existing.quantity} -> {merged}"
                )
                existing.quantity = merged
            else:
                cart.items.append(
                    CartItemModel(
                        product_id=variant.product_id,
                        color_name=variant.color_name,
                        color_hex=variant.color_hex,
                        quantity=final_quantity,
                        subtotal=ZERO,
                    )
                )

        self._save(cart)
        return self.get_cart(user_id)

    def update_item(self, user_id: int, payload: CartItemUpdate) -> Dict[str, Any]:
        """
        quantity 0 removes the line, anything above replaces it.
        Unlike add_items the new quantity is not capped at stock;
        checkout rejects it if stock does not cover it.
        """
        if payload.product_id <= 0 or payload.quantity < 0:
            raise InvalidInputError("Invalid id or quantity.")

        variant = self.catalog.resolve(payload.product_id)
        color_hex = payload.color_hex or variant.color_hex

        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            raise NotFoundError("Cart not found.")

        item = self._find_item(cart, payload.product_id, color_hex)
        if not item:
            raise NotFoundError("Product not found in cart.")

        if payload.quantity > 0:
            item.quantity = payload.quantity
        else:
            cart.items.remove(item)

        self._save(cart)
        logger.info(
            f"Cart updated for user {user_id}, action: "
            f"{'update' if payload.quantity > 0 else 'remove'}"
        )
        return self.get_cart(user_id)

    # helpers
    @staticmethod
    def _find_item(cart: CartModel, product_id: int, color_hex: str) -> CartItemModel | None:
        return next(
            (i for i in cart.items if i.product_id == product_id and i.color_hex == color_hex),
            None,
        )

    def _save(self, cart: CartModel) -> None:
        """
        Only way a cart reaches the database: totals are recomputed here and
        the write is guarded by the version column.

        A new line that another request inserted first fails on the
        u_cart_product_color constraint during flush; that is the same lost
        race as a version mismatch and is reported the same way.
        """
        old_version = cart.version

        try:
            totals = recompute_totals(cart_lines(cart), self.catalog)

            dropped = {(line.product_id, line.color_hex) for line in totals.dropped}
            priced = {(line.product_id, line.color_hex): line for line in totals.lines}

            for item in list(cart.items):
                key = (item.product_id, item.color_hex)
                if key in dropped:
                    cart.items.remove(item)
                else:
                    item.subtotal = priced[key].subtotal

            # optimistic locking
            # update carts set version = 2 where id = 1 and version = 1
            rowcount = self.repo.update_cart_version(
                cart_id=cart.id,
                old_version=old_version,
                new_data={
                    "version": old_version + 1,
                    "total_price": totals.total_price,
                },
            )
        except IntegrityError as e:
            self.repo.rollback()
            logger.warning(f"Cart {cart.id} save hit a constraint, concurrent update: {e.orig}")
            raise ConflictError("Cart was modified by another request, please retry.") from e

        if rowcount == 0:
            self.repo.rollback()
            raise ConflictError("Cart was modified by another request, please retry.")

        self.repo.commit()
        logger.info(
            f"Cart {cart.id} saved, total {totals.total_price}, version {old_version + 1}"
        )

# storefront/services/checkout_service.py
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel, OrderItemModel
from storefront.domain.errors import ConflictError, InternalError, InvalidStateError
from storefront.domain.pricing import ProductLookup, recompute_totals, to_money
from storefront.domain.schemas import OrderStatus, PlaceOrderIn
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.cart_service import cart_lines
from storefront.services.catalog import DbProductLookup
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import order_to_dict
from storefront.utils.settings import CHECKOUT_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def new_order_number() -> str:
    return f"ORD-{datetime.now(timezone.utc):%Y%m%d}-{uuid4().hex[:8].upper()}"


class CheckoutService:
    """
    Turns the user's cart into an order.

    Order insert, stock decrements and cart delete share one transaction.
    Every decrement is conditional on stock still covering the quantity, so
    two checkouts racing for the last unit cannot both succeed; the loser
    rolls back completely.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        notification_service: NotificationService,
        catalog: ProductLookup | None = None,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.catalog = catalog or DbProductLookup(db)
        self.lock_service = lock_service
        self.notification_service = notification_service

    def place_order(self, user_id: int, payload: PlaceOrderIn) -> Dict[str, Any]:
        token = uuid4().hex

        if not self.lock_service.acquire_checkout_lock(user_id, token, CHECKOUT_LOCK_TTL_SECONDS):
            raise ConflictError("Checkout already in progress for this user.")

        try:
            order = self._place_order(user_id, payload)
        finally:
            self._release_lock(user_id, token)

        self.notification_service.send_order_notification(user_id, order.id, order.order_number)
        return order_to_dict(order)

    def _release_lock(self, user_id: int, token: str) -> None:
        # the key expires on its own, a failed release must not hide the checkout result
        try:
            self.lock_service.release_checkout_lock(user_id, token)
        except RedisError as e:
            logger.error(f"Failed to release checkout lock for user {user_id}: {e}")

    def _place_order(self, user_id: int, payload: PlaceOrderIn) -> OrderModel:
        cart = self.carts.get_cart_by_user(user_id)
        if not cart or not cart.items:
            raise InvalidStateError("Cart is empty")

        totals = recompute_totals(cart_lines(cart), self.catalog)
        if not totals.lines:
            raise InvalidStateError("Cart is empty")

        for line in totals.lines:
            if line.quantity > line.available_quantity:
                raise InvalidStateError(
                    f"Not enough stock for {line.name}. "
                    f"Available: {line.available_quantity} Requested: {line.quantity}"
                )

        order = OrderModel(
            order_number=self._unique_order_number(),
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            shipping_address=payload.shipping_address.model_dump(),
            payment_method=payload.payment_method,
            transaction_id=payload.transaction_id,
            total_amount=totals.total_price,
            items=[
                OrderItemModel(
                    product_id=line.product_id,
                    name=line.name,
                    quantity=line.quantity,
                    price=to_money(line.unit_price),
                    subtotal=line.subtotal,
                    color_name=line.color_name,
                    color_hex=line.color_hex,
                )
                for line in totals.lines
            ],
        )

        try:
            self.orders.add_order(order)

            for line in totals.lines:
                if not self.products.decrement_stock(line.product_id, line.color_hex, line.quantity):
                    logger.warning(
                        f"Stock guard failed for product {line.product_id} ({line.color_hex}), "
                        f"requested {line.quantity}; rolling back order for user {user_id}"
                    )
                    raise InvalidStateError(f"Not enough stock for {line.name}.")

            self.carts.delete_cart(cart)
            self.db.commit()
            # stock changed through bulk UPDATE, drop stale product state
            self.db.expire_all()
        except InvalidStateError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error placing order for user {user_id}: {e}")
            raise InternalError("Failed to place order") from e

        logger.info(
            f"Order {order.order_number} placed by user {user_id}, "
            f"{len(order.items)} items, total {order.total_amount}"
        )
        return order

    def _unique_order_number(self) -> str:
        number = new_order_number()
        while self.orders.order_number_exists(number):
            number = new_order_number()
        return number

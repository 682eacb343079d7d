# storefront/services/order_service.py
import math
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.errors import ForbiddenError, InvalidInputError, NotFoundError
from storefront.domain.schemas import OrderStatus
from storefront.repos.order_repo import OrderRepo, SORT_FIELDS
from storefront.services.user_service import UserService
from storefront.utils.settings import DEFAULT_PAGE_SIZE
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_STATUSES = {s.value for s in OrderStatus}


def order_to_dict(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "status": order.status,
        "items": [
            {
                "product_id": i.product_id,
                "name": i.name,
                "quantity": i.quantity,
                "price": i.price,
                "subtotal": i.subtotal,
                "color": {"name": i.color_name, "hex": i.color_hex},
            }
            for i in order.items
        ],
        "shipping_address": order.shipping_address,
        "payment_method": order.payment_method,
        "transaction_id": order.transaction_id,
        "total_amount": order.total_amount,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def order_summary(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "status": order.status,
        "item_count": sum(i.quantity for i in order.items),
        "country": (order.shipping_address or {}).get("country", ""),
        "payment_method": order.payment_method,
        "total_amount": order.total_amount,
        "created_at": order.created_at,
    }


def _check_pagination(page: int, limit: int) -> None:
    if page < 1 or limit < 1:
        raise InvalidInputError(
            "Invalid pagination parameters. 'limit' and 'page' must be positive numbers."
        )


class OrderService:
    """
    Read side of orders plus the admin status change.
    Orders are created only by CheckoutService.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)
        self.users = UserService(db)

    def list_user_orders(self, user_id: int, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
        _check_pagination(page, limit)

        orders, total = self.repo.list_user_orders(user_id, offset=(page - 1) * limit, limit=limit)
        if not orders:
            raise NotFoundError("No orders found for this user")

        return {
            "orders": [order_summary(o) for o in orders],
            "total_orders": total,
        }

    def get_order_details(self, user_id: int, order_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)

        if not order:
            raise NotFoundError("Order not found")

        if order.user_id != user_id and not self.users.is_admin(user_id):
            raise ForbiddenError("No access to this order")

        return order_to_dict(order)

    def list_all_orders(
        self,
        admin_id: int,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        statuses: Optional[List[str]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
        search: Optional[str] = None,
        user_id: Optional[int] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Dict[str, Any]:
        self.users.require_admin(admin_id)
        _check_pagination(page, limit)

        # zero means "no bound"
        min_amount = min_amount or None
        max_amount = max_amount or None
        if min_amount is not None and max_amount is not None and min_amount >= max_amount:
            raise InvalidInputError("'minAmount' should be less than 'maxAmount'.")

        if sort_by not in SORT_FIELDS:
            raise InvalidInputError(f"Cannot sort orders by '{sort_by}'.")

        orders, total = self.repo.list_orders(
            offset=(page - 1) * limit,
            limit=limit,
            statuses=statuses or None,
            start_date=start_date,
            end_date=end_date,
            min_amount=min_amount,
            max_amount=max_amount,
            search=search,
            user_id=user_id,
            sort_by=sort_by,
            descending=sort_order != "asc",
        )

        return {
            "orders": [order_summary(o) for o in orders],
            "total_orders": total,
            "current_page": page,
            "total_pages": math.ceil(total / limit),
        }

    def update_order_status(self, admin_id: int, order_id: int, status: str) -> Dict[str, Any]:
        self.users.require_admin(admin_id)

        if status not in ORDER_STATUSES:
            raise InvalidInputError(
                f"Invalid status '{status}'. Allowed: {', '.join(sorted(ORDER_STATUSES))}"
            )

        order = self.repo.get_order(order_id)
        if not order:
            logger.warning(f"Order not found: {order_id}")
            raise NotFoundError("Order not found")

        previous = order.status
        updated = self.repo.update_order_status(order, status)
        logger.info(f"Order {order_id} status {previous} -> {status} by admin {admin_id}")
        return order_to_dict(updated)

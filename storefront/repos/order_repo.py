# storefront/repos/order_repo.py
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel

SORT_FIELDS = {
    "createdAt": OrderModel.created_at,
    "totalAmount": OrderModel.total_amount,
    "orderNumber": OrderModel.order_number,
    "status": OrderModel.status,
}


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        # no commit: checkout commits order, stock and cart together
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def order_number_exists(self, order_number: str) -> bool:
        return self.db.execute(
            select(OrderModel.id).where(OrderModel.order_number == order_number)
        ).first() is not None

    def list_user_orders(self, user_id: int, offset: int, limit: int) -> tuple[list[OrderModel], int]:
        total = self.db.execute(
            select(func.count()).select_from(OrderModel).where(OrderModel.user_id == user_id)
        ).scalar_one()
        orders = self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return list(orders), total

    def list_orders(
        self,
        offset: int,
        limit: int,
        statuses: list[str] | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        min_amount=None,
        max_amount=None,
        search: str | None = None,
        user_id: int | None = None,
        sort_by: str = "createdAt",
        descending: bool = True,
    ) -> tuple[list[OrderModel], int]:
        filters = []
        if user_id is not None:
            filters.append(OrderModel.user_id == user_id)
        if search:
            filters.append(OrderModel.order_number.ilike(f"%{search}%"))
        if statuses:
            filters.append(OrderModel.status.in_(statuses))
        if start_date is not None:
            filters.append(OrderModel.created_at >= start_date)
        if end_date is not None:
            filters.append(OrderModel.created_at <= end_date)
        if min_amount is not None:
            filters.append(OrderModel.total_amount >= min_amount)
        if max_amount is not None:
            filters.append(OrderModel.total_amount <= max_amount)

        total = self.db.execute(
            select(func.count()).select_from(OrderModel).where(*filters)
        ).scalar_one()

        column = SORT_FIELDS.get(sort_by, SORT_FIELDS["createdAt"])
        order = column.desc() if descending else column.asc()

        orders = self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(*filters)
            .order_by(order, OrderModel.id)
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return list(orders), total

    def update_order_status(self, order: OrderModel, status: str) -> OrderModel:
        order.status = status
        self.db.commit()
        self.db.refresh(order)
        return order

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

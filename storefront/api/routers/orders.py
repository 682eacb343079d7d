# storefront/api/routers/orders.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import OrderListOut, OrderOut, OrderStatusIn, UserOrderListOut
from storefront.services.order_service import OrderService
from storefront.utils.settings import DEFAULT_PAGE_SIZE

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.get("/", response_model=UserOrderListOut)
def list_my_orders(
    user_id: int = Query(...),
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    svc: OrderService = Depends(get_service),
):
    """
    Orders of the calling user, newest first.
    """
    return svc.list_user_orders(user_id, page=page, limit=limit)


@router.get("/all", response_model=OrderListOut)
def list_all_orders(
    user_id: int = Query(..., description="Admin user ID"),
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    status: Optional[str] = Query(None, description="Comma separated statuses"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    min_amount: Optional[Decimal] = Query(None),
    max_amount: Optional[Decimal] = Query(None),
    search: Optional[str] = Query(None, description="Order number fragment"),
    customer_id: Optional[int] = Query(None),
    sort_by: str = Query("createdAt"),
    sort_order: str = Query("desc"),
    svc: OrderService = Depends(get_service),
):
    statuses = [s.strip() for s in status.split(",") if s.strip()] if status else None
    return svc.list_all_orders(
        admin_id=user_id,
        page=page,
        limit=limit,
        statuses=statuses,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
        search=search,
        user_id=customer_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    """
    Order details, for its owner or an admin.
    """
    return svc.get_order_details(user_id, order_id)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    user_id: int = Query(..., description="Admin user ID"),
    svc: OrderService = Depends(get_service),
):
    return svc.update_order_status(user_id, order_id, payload.status)

# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import get_lock_service, get_notification_service
from storefront.data.database import get_db
from storefront.domain.schemas import OrderOut, PlaceOrderIn
from storefront.services.checkout_service import CheckoutService
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService

router = APIRouter(prefix="/checkout", tags=["checkout"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> CheckoutService:
    return CheckoutService(
        db=db,
        lock_service=lock_service,
        notification_service=notification_service,
    )


@router.post("/", response_model=OrderOut, status_code=201)
def place_order(
    payload: PlaceOrderIn,
    user_id: int = Query(...),
    svc: CheckoutService = Depends(get_service),
):
    """
    Creates an order from the user's cart, decrements stock and deletes the cart.
    Queues the order notification asynchronously.
    """
    return svc.place_order(user_id, payload)

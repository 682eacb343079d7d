#storefront/api/routers/carts.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import (
    CartItemIn,
    CartItemUpdate,
    CartOut,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db)


@router.get("/", response_model=CartOut)
def get_cart(
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    return svc.get_cart(user_id)


@router.post("/items", response_model=CartOut, status_code=201)
def add_items(
    payload: List[CartItemIn],
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    return svc.add_items(user_id, payload)


@router.patch("/items", response_model=CartOut)
def update_item(
    payload: CartItemUpdate,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    return svc.update_item(user_id, payload)

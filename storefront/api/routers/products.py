# storefront/api/routers/products.py
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import InvalidInputError
from storefront.domain.schemas import (
    MaxPriceOut,
    MinPriceOut,
    ProductCreate,
    ProductListOut,
    ProductOut,
    ProductUpdate,
)
from storefront.services.product_service import ProductService
from storefront.utils.settings import PRODUCT_PAGE_SIZE

router = APIRouter(prefix="/products", tags=["products"])


def get_service(db: Session = Depends(get_db)) -> ProductService:
    return ProductService(db)


@router.post("/", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductCreate,
    user_id: int = Query(...),
    svc: ProductService = Depends(get_service),
):
    return svc.create_product(user_id, payload)


@router.get("/", response_model=ProductListOut)
def list_products(
    page: int = Query(1),
    limit: int = Query(PRODUCT_PAGE_SIZE),
    sort_by: str = Query("date"),
    order: str = Query("desc"),
    min_price: Optional[Decimal] = Query(None),
    max_price: Optional[Decimal] = Query(None),
    categories: Optional[str] = Query(None, description="Comma separated category IDs"),
    svc: ProductService = Depends(get_service),
):
    try:
        category_ids = [int(c) for c in categories.split(",") if c.strip()] if categories else None
    except ValueError:
        raise InvalidInputError("Invalid category ID format.")

    return svc.list_products(
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
        min_price=min_price,
        max_price=max_price,
        category_ids=category_ids,
    )


@router.get("/search", response_model=List[ProductOut])
def search_products(
    query: Optional[str] = Query(None, description="Matches product or category name"),
    svc: ProductService = Depends(get_service),
):
    return svc.search_products(query)


@router.get("/min-price", response_model=MinPriceOut)
def min_effective_price(svc: ProductService = Depends(get_service)):
    return svc.min_effective_price()


@router.get("/max-price", response_model=MaxPriceOut)
def max_effective_price(svc: ProductService = Depends(get_service)):
    return svc.max_effective_price()


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, svc: ProductService = Depends(get_service)):
    return svc.get_product(product_id)


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    user_id: int = Query(...),
    svc: ProductService = Depends(get_service),
):
    return svc.update_product(user_id, product_id, payload)


@router.delete("/{product_id}", status_code=204)
def delete_product(
    product_id: int,
    user_id: int = Query(...),
    svc: ProductService = Depends(get_service),
):
    svc.delete_product(user_id, product_id)
    return Response(status_code=204)

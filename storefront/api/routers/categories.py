# storefront/api/routers/categories.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import CategoryCreate, CategoryListOut, CategoryOut, CategoryUpdate
from storefront.services.category_service import CategoryService
from storefront.utils.settings import DEFAULT_PAGE_SIZE

router = APIRouter(prefix="/categories", tags=["categories"])


def get_service(db: Session = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


@router.get("/", response_model=CategoryListOut)
def list_categories(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    sort_by: str = Query("createdAt"),
    sort_order: str = Query("desc"),
    svc: CategoryService = Depends(get_service),
):
    return svc.list_categories(
        page=page, limit=limit, search=search, sort_by=sort_by, sort_order=sort_order
    )


@router.post("/", response_model=CategoryOut, status_code=201)
def create_category(
    payload: CategoryCreate,
    user_id: int = Query(..., description="Admin user ID"),
    svc: CategoryService = Depends(get_service),
):
    return svc.create_category(user_id, payload)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, svc: CategoryService = Depends(get_service)):
    return svc.get_category(category_id)


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    user_id: int = Query(..., description="Admin user ID"),
    svc: CategoryService = Depends(get_service),
):
    return svc.update_category(user_id, category_id, payload)


@router.delete("/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    user_id: int = Query(..., description="Admin user ID"),
    svc: CategoryService = Depends(get_service),
):
    svc.delete_category(user_id, category_id)
    return Response(status_code=204)

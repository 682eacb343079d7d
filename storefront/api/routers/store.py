# storefront/api/routers/store.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import StoreConfigIn, StoreConfigOut
from storefront.services.store_service import StoreService

router = APIRouter(prefix="/store-config", tags=["store"])


def get_service(db: Session = Depends(get_db)) -> StoreService:
    return StoreService(db)


@router.get("/", response_model=StoreConfigOut)
def get_store_config(
    user_id: int = Query(..., description="Admin user ID"),
    svc: StoreService = Depends(get_service),
):
    return svc.get_config(user_id)


@router.put("/", response_model=StoreConfigOut)
def update_store_config(
    payload: StoreConfigIn,
    user_id: int = Query(..., description="Admin user ID"),
    svc: StoreService = Depends(get_service),
):
    return svc.update_config(user_id, payload)

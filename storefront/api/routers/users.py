from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from storefront.data.database import get_db
from storefront.services.user_service import UserService
from storefront.domain.schemas import FavouriteIn, FavouriteListOut, UserCreate, UserRead

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/", response_model=UserRead)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return UserService(db).create_user(payload)

@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return UserService(db).get_user(user_id)

@router.get("/{user_id}/favourites", response_model=FavouriteListOut)
def get_favourites(user_id: int, db: Session = Depends(get_db)):
    return UserService(db).get_favourites(user_id)

@router.post("/{user_id}/favourites", response_model=FavouriteListOut)
def toggle_favourite(user_id: int, payload: FavouriteIn, db: Session = Depends(get_db)):
    """Adds the product, or removes it when it is already a favourite."""
    return UserService(db).toggle_favourite(user_id, payload.product_id)

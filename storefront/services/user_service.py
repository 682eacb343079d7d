# storefront/services/user_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel
from storefront.domain.errors import ForbiddenError, NotFoundError
from storefront.domain.schemas import UserCreate, UserRead
from storefront.repos.product_repo import ProductRepo
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _first_image(product) -> str | None:
    color = product.colors[0] if product.colors else None
    return color.images[0] if color and color.images else None


def favourites_view(user: UserModel) -> Dict[str, Any]:
    # soft-deleted products stay linked but are not shown
    return {
        "favourites": [
            {"product_id": p.id, "name": p.name, "image": _first_image(p)}
            for p in user.favourites
            if not p.deleted
        ]
    }


class UserService:
    """
    Users are created by the identity side of the platform; here they only
    carry the admin flag used by catalog and order administration, and
    the list of favourite products.
    """

    def __init__(self, db: Session):
        self.repo = UserRepo(db)
        self.products = ProductRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        # idempotent on id
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        created = self.repo.create_user(
            UserModel(id=payload.id, name=payload.name, is_admin=payload.is_admin)
        )
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserRead:
        return UserRead.model_validate(self._get_or_404(user_id))

    def exists(self, user_id: int) -> bool:
        return self.repo.exists(user_id)

    def is_admin(self, user_id: int) -> bool:
        return self.repo.is_admin(user_id)

    def require_admin(self, user_id: int) -> None:
        if not self.repo.is_admin(user_id):
            raise ForbiddenError("Admin only")

    def get_favourites(self, user_id: int) -> Dict[str, Any]:
        return favourites_view(self._get_or_404(user_id))

    def toggle_favourite(self, user_id: int, product_id: int) -> Dict[str, Any]:
        """Adds the product to favourites, or removes it when it is already there."""
        user = self._get_or_404(user_id)

        current = next((p for p in user.favourites if p.id == product_id), None)
        if current is not None:
            user.favourites.remove(current)
            action = "removed from"
        else:
            product = self.products.get_product(product_id)
            if not product:
                raise NotFoundError("Product not found.")
            user.favourites.append(product)
            action = "added to"

        self.repo.commit()
        logger.info(f"Product {product_id} {action} favourites of user {user_id}")
        return favourites_view(user)

    def _get_or_404(self, user_id: int) -> UserModel:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

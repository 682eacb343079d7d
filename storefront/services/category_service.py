# storefront/services/category_service.py
import math
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.models.category import CategoryModel
from storefront.domain.errors import InvalidInputError, NotFoundError
from storefront.domain.schemas import CategoryCreate, CategoryUpdate
from storefront.repos.category_repo import CategoryRepo, SORT_FIELDS
from storefront.services.user_service import UserService
from storefront.utils.settings import DEFAULT_PAGE_SIZE
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def category_to_dict(category: CategoryModel, product_count: int) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "image": category.image,
        "product_count": product_count,
        "created_at": category.created_at,
    }


class CategoryService:
    """
    Categories group products for browsing. Listing is public,
    changes are admin only.
    """

    def __init__(self, db: Session):
        self.repo = CategoryRepo(db)
        self.users = UserService(db)

    def list_categories(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: str | None = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Dict[str, Any]:
        if page < 1 or limit < 1:
            raise InvalidInputError("Invalid pagination parameters.")
        if sort_by not in SORT_FIELDS:
            raise InvalidInputError(f"Cannot sort categories by '{sort_by}'.")

        rows, total = self.repo.list_categories(
            offset=(page - 1) * limit,
            limit=limit,
            search=search,
            sort_by=sort_by,
            descending=sort_order != "asc",
        )
        if not rows:
            raise NotFoundError("No categories found.")

        return {
            "categories": [category_to_dict(c, count) for c, count in rows],
            "current_page": page,
            "total_pages": math.ceil(total / limit),
            "total_categories": total,
        }

    def get_category(self, category_id: int) -> Dict[str, Any]:
        category = self._get_or_404(category_id)
        return category_to_dict(category, self.repo.product_count(category_id))

    def create_category(self, admin_id: int, payload: CategoryCreate) -> Dict[str, Any]:
        self.users.require_admin(admin_id)

        if self.repo.get_by_name(payload.name):
            raise InvalidInputError("Category with this name already exists.")

        category = self.repo.add_category(
            CategoryModel(name=payload.name, description=payload.description, image=payload.image)
        )
        logger.info(f"Category {category.id} '{category.name}' created by admin {admin_id}")
        return category_to_dict(category, 0)

    def update_category(self, admin_id: int, category_id: int, payload: CategoryUpdate) -> Dict[str, Any]:
        self.users.require_admin(admin_id)
        category = self._get_or_404(category_id)

        changes = payload.model_dump(exclude_unset=True)
        name = changes.get("name")
        if name is not None and name != category.name:
            if self.repo.get_by_name(name):
                raise InvalidInputError("Category with this name already exists.")
            category.name = name
        if "description" in changes:
            category.description = changes["description"]
        if "image" in changes:
            category.image = changes["image"]

        self.repo.commit()
        logger.info(f"Category {category_id} updated by admin {admin_id}")
        return category_to_dict(category, self.repo.product_count(category_id))

    def delete_category(self, admin_id: int, category_id: int) -> None:
        """Products lose the reference, they are not deleted."""
        self.users.require_admin(admin_id)
        category = self._get_or_404(category_id)
        self.repo.delete_category(category)
        logger.info(f"Category {category_id} deleted by admin {admin_id}")

    def _get_or_404(self, category_id: int) -> CategoryModel:
        category = self.repo.get_category(category_id)
        if not category:
            raise NotFoundError("Category not found.")
        return category

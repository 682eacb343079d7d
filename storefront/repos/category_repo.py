# storefront/repos/category_repo.py
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.data.models.category import CategoryModel, product_categories
from storefront.data.models.product import ProductModel

# non-deleted products per category
PRODUCT_COUNT = (
    select(func.count(product_categories.c.product_id))
    .join(ProductModel, ProductModel.id == product_categories.c.product_id)
    .where(
        product_categories.c.category_id == CategoryModel.id,
        ProductModel.deleted.is_(False),
    )
    .correlate(CategoryModel)
    .scalar_subquery()
)

SORT_FIELDS = {
    "createdAt": CategoryModel.created_at,
    "name": CategoryModel.name,
    "productCount": PRODUCT_COUNT,
}


class CategoryRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_category(self, category_id: int) -> CategoryModel | None:
        return self.db.get(CategoryModel, category_id)

    def get_by_name(self, name: str) -> CategoryModel | None:
        return self.db.execute(
            select(CategoryModel).where(CategoryModel.name == name)
        ).scalar_one_or_none()

    def get_many(self, category_ids: list[int]) -> list[CategoryModel]:
        if not category_ids:
            return []
        return list(self.db.execute(
            select(CategoryModel).where(CategoryModel.id.in_(category_ids))
        ).scalars().all())

    def product_count(self, category_id: int) -> int:
        return self.db.execute(
            select(func.count(product_categories.c.product_id))
            .join(ProductModel, ProductModel.id == product_categories.c.product_id)
            .where(
                product_categories.c.category_id == category_id,
                ProductModel.deleted.is_(False),
            )
        ).scalar_one()

    def list_categories(
        self,
        offset: int,
        limit: int,
        search: str | None = None,
        sort_by: str = "createdAt",
        descending: bool = True,
    ) -> tuple[list[tuple[CategoryModel, int]], int]:
        filters = []
        if search:
            filters.append(CategoryModel.name.icontains(search, autoescape=True))

        total = self.db.execute(
            select(func.count()).select_from(CategoryModel).where(*filters)
        ).scalar_one()

        column = SORT_FIELDS.get(sort_by, SORT_FIELDS["createdAt"])
        order = column.desc() if descending else column.asc()

        rows = self.db.execute(
            select(CategoryModel, PRODUCT_COUNT.label("product_count"))
            .where(*filters)
            .order_by(order, CategoryModel.id)
            .offset(offset)
            .limit(limit)
        ).all()
        return [(row[0], row[1]) for row in rows], total

    def add_category(self, category: CategoryModel) -> CategoryModel:
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete_category(self, category: CategoryModel) -> None:
        self.db.delete(category)
        self.db.commit()

    def commit(self):
        self.db.commit()

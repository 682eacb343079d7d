# storefront/repos/product_repo.py
from decimal import Decimal

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel, ProductColorModel

# post-sale price computed in SQL for filtering and sorting
EFFECTIVE_PRICE = ProductModel.price * (100 - ProductModel.sale) / 100.0

SORT_FIELDS = {
    "name": ProductModel.name,
    "date": ProductModel.created_at,
    "price": EFFECTIVE_PRICE,
}

VISIBLE = ProductModel.deleted.is_(False)


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int, include_deleted: bool = False) -> ProductModel | None:
        product = self.db.get(ProductModel, product_id)
        if product is None or (product.deleted and not include_deleted):
            return None
        return product

    def create_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def save(self, product: ProductModel) -> ProductModel:
        self.db.commit()
        self.db.refresh(product)
        return product

    def soft_delete(self, product: ProductModel) -> None:
        product.deleted = True
        self.db.commit()

    def list_products(
        self,
        offset: int,
        limit: int,
        sort_by: str = "date",
        descending: bool = True,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        category_ids: list[int] | None = None,
    ) -> tuple[list[ProductModel], int]:
        filters = [VISIBLE]
        if min_price is not None:
            filters.append(EFFECTIVE_PRICE >= min_price)
        if max_price is not None:
            filters.append(EFFECTIVE_PRICE <= max_price)
        if category_ids:
            filters.append(ProductModel.categories.any(CategoryModel.id.in_(category_ids)))

        total = self.db.execute(
            select(func.count()).select_from(ProductModel).where(*filters)
        ).scalar_one()

        column = SORT_FIELDS.get(sort_by, SORT_FIELDS["date"])
        order = column.desc() if descending else column.asc()

        products = self.db.execute(
            select(ProductModel)
            .options(selectinload(ProductModel.colors), selectinload(ProductModel.categories))
            .where(*filters)
            .order_by(order, ProductModel.id)
            .offset(offset)
            .limit(limit)
        ).scalars().all()

        return list(products), total

    def search_products(self, query: str) -> list[ProductModel]:
        # name or any category name, case-insensitive substring
        return list(self.db.execute(
            select(ProductModel)
            .options(selectinload(ProductModel.colors), selectinload(ProductModel.categories))
            .where(
                VISIBLE,
                or_(
                    ProductModel.name.icontains(query, autoescape=True),
                    ProductModel.categories.any(CategoryModel.name.icontains(query, autoescape=True)),
                ),
            )
            .order_by(ProductModel.name, ProductModel.id)
        ).scalars().all())

    def effective_price_bounds(self) -> tuple[Decimal | None, Decimal | None]:
        low, high = self.db.execute(
            select(func.min(EFFECTIVE_PRICE), func.max(EFFECTIVE_PRICE)).where(VISIBLE)
        ).one()
        # sqlite hands back floats here
        return (
            Decimal(str(low)) if low is not None else None,
            Decimal(str(high)) if high is not None else None,
        )

    def decrement_stock(self, product_id: int, color_hex: str, quantity: int) -> bool:
        """
        Conditional decrement: only applies while stock covers the quantity.
        Does not commit; the caller owns the transaction.
        """
        result = self.db.execute(
            update(ProductColorModel)
            .where(
                ProductColorModel.product_id == product_id,
                ProductColorModel.hex == color_hex,
                ProductColorModel.quantity >= quantity,
            )
            .values(quantity=ProductColorModel.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

# storefront/services/catalog.py
from sqlalchemy.orm import Session

from storefront.domain.errors import InvalidInputError, NotFoundError
from storefront.domain.pricing import VariantInfo, effective_price
from storefront.repos.product_repo import ProductRepo


class DbProductLookup:
    """ProductLookup backed by the products table."""

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def resolve(self, product_id: int, color_hex: str | None = None, color_name: str | None = None) -> VariantInfo:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found.")

        if not product.colors:
            raise InvalidInputError("Product has no available colors.")

        if color_hex is None and color_name is None:
            color = product.colors[0]
        else:
            color = next(
                (
                    c for c in product.colors
                    if (color_hex is not None and c.hex == color_hex)
                    or (color_hex is None and c.name == color_name)
                ),
                None,
            )
            if color is None:
                raise InvalidInputError(f'Color "{color_hex or color_name}" not available.')

        return VariantInfo(
            product_id=product.id,
            name=product.name,
            color_name=color.name,
            color_hex=color.hex,
            unit_price=effective_price(product.price, product.sale),
            available_quantity=color.quantity or 0,
            image_url=color.images[0] if color.images else None,
        )

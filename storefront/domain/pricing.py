# storefront/domain/pricing.py
"""
Cart pricing.

Everything here is pure: product data comes in through a ``ProductLookup``
and nothing touches the database, so the totals invariant can be tested
against a fake catalog.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Protocol

from storefront.domain.errors import InvalidInputError, NotFoundError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def effective_price(price, sale) -> Decimal:
    """Price after the sale percentage; not rounded."""
    price = Decimal(str(price))
    if sale and sale > 0:
        return price * (1 - Decimal(sale) / 100)
    return price


@dataclass(frozen=True)
class VariantInfo:
    product_id: int
    name: str
    color_name: str
    color_hex: str
    unit_price: Decimal
    available_quantity: int
    image_url: Optional[str] = None


class ProductLookup(Protocol):
    def resolve(
        self,
        product_id: int,
        color_hex: Optional[str] = None,
        color_name: Optional[str] = None,
    ) -> VariantInfo:
        """
        Return the variant for the given color, or the product's first color
        when neither hex nor name is given.

        Raises NotFoundError for unknown products and InvalidInputError when
        the product has no colors or the color does not match a variant.
        """
        ...


@dataclass(frozen=True)
class CartLine:
    product_id: int
    color_hex: str
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    name: str
    color_name: str
    color_hex: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    available_quantity: int
    image_url: Optional[str] = None


@dataclass
class CartTotals:
    lines: List[PricedLine] = field(default_factory=list)
    dropped: List[CartLine] = field(default_factory=list)
    total_price: Decimal = ZERO


def price_line(line: CartLine, variant: VariantInfo, clamp_to_stock: bool = False) -> PricedLine:
    quantity = line.quantity
    if clamp_to_stock:
        quantity = min(quantity, variant.available_quantity)
    return PricedLine(
        product_id=variant.product_id,
        name=variant.name,
        color_name=variant.color_name,
        color_hex=variant.color_hex,
        quantity=quantity,
        unit_price=variant.unit_price,
        subtotal=to_money(quantity * variant.unit_price),
        available_quantity=variant.available_quantity,
        image_url=variant.image_url,
    )


def recompute_totals(lines, lookup: ProductLookup, clamp_to_stock: bool = False) -> CartTotals:
    """
    Re-derive every line subtotal and the cart total from live catalog data.

    Lines whose product (or color) can no longer be resolved are discarded
    with a warning and reported in ``dropped``. The total is the sum of the
    rounded line subtotals, so it always matches the lines returned.
    With ``clamp_to_stock`` each quantity is capped at the variant's current
    stock (the read view); without it the stored quantity is priced as is.
    """
    totals = CartTotals()
    for index, line in enumerate(lines):
        try:
            variant = lookup.resolve(line.product_id, color_hex=line.color_hex)
        except (NotFoundError, InvalidInputError) as e:
            logger.warning(
                f"Line {index} (product {line.product_id}, color {line.color_hex}) "
                f"could not be resolved and was discarded: {e.message}"
            )
            totals.dropped.append(line)
            continue

        priced = price_line(line, variant, clamp_to_stock=clamp_to_stock)
        totals.lines.append(priced)
        totals.total_price += priced.subtotal

    totals.total_price = to_money(totals.total_price)
    return totals

from decimal import Decimal
from typing import Iterable, Mapping

from wholesale_pos.core.schemas import CartLineItem, ContextualPrice, OrderTotals, TaxResult
from wholesale_pos.services.pricing import effective_unit_price
from wholesale_pos.utils.money import ZERO, to_decimal


def product_line_total(item: CartLineItem, pricing: Mapping[str, ContextualPrice]) -> Decimal:
    return effective_unit_price(item, pricing) * item.quantity


def product_subtotal(items: Iterable[CartLineItem], pricing: Mapping[str, ContextualPrice]) -> Decimal:
    return sum((product_line_total(i, pricing) for i in items), ZERO)


def taxable_product_subtotal(items: Iterable[CartLineItem], pricing: Mapping[str, ContextualPrice]) -> Decimal:
    return sum((product_line_total(i, pricing) for i in items if i.taxable), ZERO)


def calculate_totals(
    products: Iterable[CartLineItem],
    pricing: Mapping[str, ContextualPrice],
    delivery_fee,
    surcharge,
    tax: TaxResult,
) -> OrderTotals:
    """
    Aggregates an order. Pure: the same inputs always give the same record.

    In tax-included mode the tax is already inside the product prices and
    fees, so it is reported but not added to the final total.
    """
    subtotal = max(product_subtotal(products, pricing), ZERO)
    delivery_fee = max(to_decimal(delivery_fee), ZERO)
    surcharge = max(to_decimal(surcharge), ZERO)
    final_total = subtotal + delivery_fee + surcharge
    if not tax.is_included:
        final_total += tax.tax_amount + tax.shipping_tax_amount
    return OrderTotals(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        surcharge=surcharge,
        tax_amount=tax.tax_amount,
        shipping_tax_amount=tax.shipping_tax_amount,
        final_total=final_total,
    )

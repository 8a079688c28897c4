"""
Derived checkout values.

Everything here is a function of the session snapshot: classification,
quantity validation, tax and totals are recomputed from scratch on every
call and never written back into the session.
"""
from decimal import Decimal
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from wholesale_pos.core.config import settings
from wholesale_pos.core.schemas import (
    CartLineItem,
    CheckoutSession,
    OrderTotals,
    TaxResult,
    ValidationResult,
)
from wholesale_pos.services import surcharges as sc
from wholesale_pos.services.pricing import quantity_rules
from wholesale_pos.services.quantity_rules import validate_order_minimums, validate_quantity_rules
from wholesale_pos.services.tax import compute_tax_for_location
from wholesale_pos.services.totals import calculate_totals, product_subtotal, taxable_product_subtotal
from wholesale_pos.utils.money import ZERO


class CheckoutSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    products: Tuple[CartLineItem, ...]
    surcharges: Tuple[CartLineItem, ...]
    quantity_validation: ValidationResult
    order_minimums: ValidationResult
    surcharge_total: Decimal
    taxable_surcharge_total: Decimal
    tax: TaxResult
    totals: OrderTotals


def classify_cart(session: CheckoutSession, use_keywords: Optional[bool] = None):
    # zero-quantity lines are placeholders, not order lines
    return sc.classify((i for i in session.cart if i.quantity > 0), use_keywords)


def quantity_validation(session: CheckoutSession, use_keywords: Optional[bool] = None) -> ValidationResult:
    products, _ = classify_cart(session, use_keywords)
    return validate_quantity_rules(products, quantity_rules(session.pricing), session.pricing)


def summarize(session: CheckoutSession, use_keywords: Optional[bool] = None) -> CheckoutSummary:
    products, surcharge_items = classify_cart(session, use_keywords)
    fees = sc.surcharge_totals(surcharge_items, use_keywords)

    custom = max(session.custom_surcharge, ZERO)
    surcharge_total = fees["total"] + custom
    # operator-entered surcharges are taxable like untagged cart surcharges
    taxable_surcharges = fees["taxable"] + custom

    taxable_base = taxable_product_subtotal(products, session.pricing) + taxable_surcharges
    tax = compute_tax_for_location(
        session.location,
        session.store_tax_settings,
        session.tax_exempt,
        taxable_base,
        session.delivery_fee,
    )
    totals = calculate_totals(products, session.pricing, session.delivery_fee, surcharge_total, tax)

    minimums = validate_order_minimums(
        product_subtotal(products, session.pricing),
        products,
        minimum_amount=settings.order_minimum_amount,
        minimum_quantity=settings.order_minimum_quantity,
        minimum_items=settings.order_minimum_items,
    )
    return CheckoutSummary(
        products=products,
        surcharges=surcharge_items,
        quantity_validation=validate_quantity_rules(
            products, quantity_rules(session.pricing), session.pricing
        ),
        order_minimums=minimums,
        surcharge_total=surcharge_total,
        taxable_surcharge_total=taxable_surcharges,
        tax=tax,
        totals=totals,
    )

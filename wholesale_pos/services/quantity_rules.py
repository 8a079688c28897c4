import re
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from wholesale_pos.core.schemas import CartLineItem, ContextualPrice, QuantityRule, ValidationResult
from wholesale_pos.services.pricing import next_price_break
from wholesale_pos.utils.money import ZERO, format_currency

PO_NUMBER_RE = re.compile(r"[A-Z0-9]{3,20}", re.IGNORECASE)


def check_item(item: CartLineItem, rule: QuantityRule) -> list[str]:
    errors = []
    if item.quantity < rule.min_quantity:
        errors.append(f"{item.name}: Minimum quantity is {rule.min_quantity}")
    if rule.max_quantity is not None and item.quantity > rule.max_quantity:
        errors.append(f"{item.name}: Maximum quantity is {rule.max_quantity}")
    # increments count from the minimum, not from zero
    if rule.increment and (item.quantity - rule.min_quantity) % rule.increment != 0:
        errors.append(f"{item.name}: Quantity must be in increments of {rule.increment}")
    return errors


def validate_quantity_rules(
    items: Iterable[CartLineItem],
    rules: Mapping[str, QuantityRule],
    pricing: Optional[Mapping[str, ContextualPrice]] = None,
) -> ValidationResult:
    """
    Checks every product line against its quantity rule.

    Items without a rule always pass. When ``pricing`` is given, lines that
    are one increment short of the next price break get a warning.
    """
    errors: list[str] = []
    warnings: list[str] = []
    for item in items:
        rule = rules.get(item.product_id)
        if rule is None:
            continue
        errors.extend(check_item(item, rule))
        contextual = (pricing or {}).get(item.product_id)
        if contextual is not None:
            brk = next_price_break(contextual, item.quantity)
            step = rule.increment or 1
            if brk is not None and brk.minimum_quantity - item.quantity <= step:
                warnings.append(
                    f"{item.name}: Ordering {brk.minimum_quantity} lowers the unit price to "
                    f"{format_currency(brk.price)}"
                )
    return ValidationResult(is_valid=not errors, errors=tuple(errors), warnings=tuple(warnings))


def validate_order_minimums(
    subtotal: Decimal,
    items: Iterable[CartLineItem],
    minimum_amount: Decimal = ZERO,
    minimum_quantity: int = 0,
    minimum_items: int = 0,
) -> ValidationResult:
    items = list(items)
    errors: list[str] = []
    if minimum_amount and subtotal < minimum_amount:
        errors.append(f"Order minimum is {format_currency(minimum_amount)}")
    if minimum_quantity and sum(i.quantity for i in items) < minimum_quantity:
        errors.append(f"Minimum quantity is {minimum_quantity}")
    if minimum_items and len(items) < minimum_items:
        errors.append(f"Minimum {minimum_items} different items required")
    return ValidationResult(is_valid=not errors, errors=tuple(errors))


def is_valid_po_number(po_number: Optional[str]) -> bool:
    return bool(po_number) and PO_NUMBER_RE.fullmatch(po_number) is not None

"""
Product vs surcharge classification of cart lines.

An explicit ``Type=Surcharge`` attribute always wins. Matching on the item
name is a legacy fallback for carts built before the POS tagged its fee
lines; a real product called "Rush Widget" is misread by it, so it can be
switched off with SURCHARGE_KEYWORD_FALLBACK=false.
"""
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from wholesale_pos.core.config import settings
from wholesale_pos.core.schemas import CartLineItem
from wholesale_pos.utils.money import ZERO

SURCHARGE_MARKER = "Surcharge"
SURCHARGE_KEYWORDS = ("surcharge", "fee", "charge", "delivery", "handling", "rush")

# checked in order, first hit wins
_TYPE_BY_KEYWORD = (
    ("delivery", "Delivery Fee"),
    ("rush", "Rush Order Fee"),
    ("handling", "Handling Fee"),
)
DEFAULT_SURCHARGE_TYPE = "Custom Surcharge"


def _keyword_fallback(use_keywords: Optional[bool]) -> bool:
    return settings.surcharge_keyword_fallback if use_keywords is None else use_keywords


def is_surcharge(item: CartLineItem, use_keywords: Optional[bool] = None) -> bool:
    if item.attributes.get("Type") == SURCHARGE_MARKER:
        return True
    if not _keyword_fallback(use_keywords):
        return False
    name = (item.name or "").lower()
    return any(k in name for k in SURCHARGE_KEYWORDS)


def is_taxable_surcharge(item: CartLineItem, use_keywords: Optional[bool] = None) -> bool:
    if not is_surcharge(item, use_keywords):
        return False
    flag = item.attributes.get("Taxable")
    if flag is not None:
        return flag in ("Yes", "true")
    return True


def get_surcharge_type(item: CartLineItem, use_keywords: Optional[bool] = None) -> Optional[str]:
    if not is_surcharge(item, use_keywords):
        return None
    explicit = item.attributes.get("SurchargeType")
    if explicit:
        return explicit
    type_attr = item.attributes.get("Type")
    if type_attr and type_attr != SURCHARGE_MARKER:
        return type_attr
    name = (item.name or "").lower()
    for keyword, label in _TYPE_BY_KEYWORD:
        if keyword in name:
            return label
    return DEFAULT_SURCHARGE_TYPE


def classify(
    items: Iterable[CartLineItem], use_keywords: Optional[bool] = None
) -> Tuple[Tuple[CartLineItem, ...], Tuple[CartLineItem, ...]]:
    """Returns ``(products, surcharges)``, each in cart order."""
    products, surcharges = [], []
    for item in items:
        (surcharges if is_surcharge(item, use_keywords) else products).append(item)
    return tuple(products), tuple(surcharges)


def surcharge_line_total(item: CartLineItem) -> Decimal:
    return item.unit_price * item.quantity


def surcharge_totals(items: Iterable[CartLineItem], use_keywords: Optional[bool] = None) -> dict:
    total = taxable = ZERO
    for item in items:
        amount = surcharge_line_total(item)
        total += amount
        if is_taxable_surcharge(item, use_keywords):
            taxable += amount
    return {"total": total, "taxable": taxable, "non_taxable": total - taxable}

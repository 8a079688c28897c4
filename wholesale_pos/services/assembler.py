"""
Draft-order line assembly.

Line attributes follow a fixed vocabulary shared with downstream accounting:

    product       SKU, Product ID, Variant ID, B2B Price
    surcharge     Type=Surcharge, SurchargeType, Taxable, Description
    delivery      Type=Delivery Fee, Method, Taxable
    tax           Type=Tax, Rate, Location
    shipping_tax  Type=Shipping Tax, Rate, Location

Each kind has its own attribute model; ``validate_line`` rejects anything
else before a line leaves this module. Assembly is deterministic for a given
session snapshot, so a retried submission sends identical lines.
"""
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from wholesale_pos.core.config import settings
from wholesale_pos.core.errors import AttributeSchemaError
from wholesale_pos.core.schemas import (
    Attribute,
    CheckoutSession,
    CompanyLocation,
    DraftOrderLineItem,
    TaxResult,
)
from wholesale_pos.services import surcharges as sc
from wholesale_pos.services.pricing import effective_unit_price, has_contextual_price
from wholesale_pos.services.summary import CheckoutSummary, summarize
from wholesale_pos.utils.money import ZERO, money, percent_label

ATTRIBUTE_SCHEMAS: Dict[str, Tuple[str, ...]] = {
    "product": ("SKU", "Product ID", "Variant ID", "B2B Price"),
    "surcharge": ("Type", "SurchargeType", "Taxable", "Description"),
    "delivery": ("Type", "Method", "Taxable"),
    "tax": ("Type", "Rate", "Location"),
    "shipping_tax": ("Type", "Rate", "Location"),
}
FIXED_TYPES = {
    "surcharge": "Surcharge",
    "delivery": "Delivery Fee",
    "tax": "Tax",
    "shipping_tax": "Shipping Tax",
}
YES_NO_KEYS = ("B2B Price", "Taxable")

DELIVERY_TITLES = {"economy": "Economy Delivery", "standard": "Standard Delivery"}
CUSTOM_SURCHARGE_TYPE = "Custom Surcharge"
CREATED_BY = "B2B POS"
ORDER_TAGS = ("B2B", "Wholesale", "POS-Extension")


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


class _LineAttributes(BaseModel):
    model_config = ConfigDict(frozen=True)

    def pairs(self) -> List[Tuple[str, str]]:
        raise NotImplementedError

    def to_attributes(self) -> Tuple[Attribute, ...]:
        return tuple(Attribute(key=k, value=v) for k, v in self.pairs())


class ProductAttributes(_LineAttributes):
    sku: str
    product_id: str
    variant_id: str
    b2b_price: bool

    def pairs(self):
        return [
            ("SKU", self.sku or "N/A"),
            ("Product ID", self.product_id),
            ("Variant ID", self.variant_id),
            ("B2B Price", _yes_no(self.b2b_price)),
        ]


class SurchargeAttributes(_LineAttributes):
    surcharge_type: str
    taxable: bool
    description: str

    def pairs(self):
        return [
            ("Type", FIXED_TYPES["surcharge"]),
            ("SurchargeType", self.surcharge_type),
            ("Taxable", _yes_no(self.taxable)),
            ("Description", self.description),
        ]


class DeliveryAttributes(_LineAttributes):
    method: str
    taxable: bool

    def pairs(self):
        return [
            ("Type", FIXED_TYPES["delivery"]),
            ("Method", self.method),
            ("Taxable", _yes_no(self.taxable)),
        ]


class TaxAttributes(_LineAttributes):
    rate: str
    location: str
    shipping: bool = False

    def pairs(self):
        kind = "shipping_tax" if self.shipping else "tax"
        return [("Type", FIXED_TYPES[kind]), ("Rate", self.rate), ("Location", self.location)]


def validate_line(line: DraftOrderLineItem) -> DraftOrderLineItem:
    keys = [a.key for a in line.attributes]
    expected = ATTRIBUTE_SCHEMAS.get(line.kind)
    if expected is None or tuple(keys) != expected:
        raise AttributeSchemaError(line.kind, keys)
    fixed = FIXED_TYPES.get(line.kind)
    if fixed is not None and line.attribute("Type") != fixed:
        raise AttributeSchemaError(line.kind, keys)
    for key in YES_NO_KEYS:
        value = line.attribute(key)
        if value is not None and value not in ("Yes", "No"):
            raise AttributeSchemaError(line.kind, keys)
    if line.quantity < 1 or line.unit_price < 0:
        raise AttributeSchemaError(line.kind, keys)
    return line


def _line(kind: str, title: str, unit_price, quantity: int, attrs: _LineAttributes) -> DraftOrderLineItem:
    return validate_line(
        DraftOrderLineItem(
            kind=kind,
            title=title,
            unit_price=money(unit_price),
            quantity=quantity,
            attributes=attrs.to_attributes(),
        )
    )


def location_label(location: Optional[CompanyLocation]) -> str:
    if location is None:
        return "Unknown Location"
    if location.name:
        return location.name
    parts = [p for p in (location.address.province, location.address.country) if p]
    return ", ".join(parts) or "Unknown Location"


def delivery_title(method: str) -> str:
    return DELIVERY_TITLES.get(method, "Delivery Fee")


def assemble_line_items(
    session: CheckoutSession,
    summary: Optional[CheckoutSummary] = None,
    use_keywords: Optional[bool] = None,
) -> Tuple[DraftOrderLineItem, ...]:
    summary = summary or summarize(session, use_keywords)
    tax: TaxResult = summary.tax
    totals = summary.totals
    lines: List[DraftOrderLineItem] = []

    for item in summary.products:
        lines.append(
            _line(
                "product",
                item.name,
                effective_unit_price(item, session.pricing),
                item.quantity,
                ProductAttributes(
                    sku=item.sku,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    b2b_price=has_contextual_price(item, session.pricing),
                ),
            )
        )

    default_description = session.surcharge_description or settings.default_surcharge_description
    for item in summary.surcharges:
        # one line per surcharge; its price carries the whole cart quantity
        lines.append(
            _line(
                "surcharge",
                item.name,
                sc.surcharge_line_total(item),
                1,
                SurchargeAttributes(
                    surcharge_type=sc.get_surcharge_type(item, use_keywords) or CUSTOM_SURCHARGE_TYPE,
                    taxable=sc.is_taxable_surcharge(item, use_keywords),
                    description=item.attributes.get("Description") or default_description,
                ),
            )
        )

    if session.custom_surcharge > 0:
        lines.append(
            _line(
                "surcharge",
                session.surcharge_description or CUSTOM_SURCHARGE_TYPE,
                session.custom_surcharge,
                1,
                SurchargeAttributes(
                    surcharge_type=CUSTOM_SURCHARGE_TYPE,
                    taxable=True,
                    description=default_description,
                ),
            )
        )

    if totals.delivery_fee > 0:
        lines.append(
            _line(
                "delivery",
                delivery_title(session.delivery_method),
                totals.delivery_fee,
                1,
                DeliveryAttributes(
                    method=session.delivery_method,
                    taxable=tax.shipping_taxable and not session.tax_exempt,
                ),
            )
        )

    # included taxes already sit inside the prices above
    if not session.tax_exempt and not tax.is_included:
        rate = percent_label(tax.rate)
        where = location_label(session.location)
        product_tax = money(tax.tax_amount)
        lines.append(
            _line("tax", tax.title, product_tax, 1, TaxAttributes(rate=rate, location=where))
        )
        if tax.shipping_tax_amount > 0:
            # rounded as the remainder so both tax lines add up to the rounded tax total
            shipping_tax = money(tax.tax_amount + tax.shipping_tax_amount) - product_tax
            lines.append(
                _line(
                    "shipping_tax",
                    f"{tax.title} (Shipping)",
                    max(shipping_tax, ZERO),
                    1,
                    TaxAttributes(rate=rate, location=where, shipping=True),
                )
            )

    return tuple(lines)


def lines_total(lines: Iterable[DraftOrderLineItem]) -> Decimal:
    return sum((line.line_total for line in lines), ZERO)


def build_order_note(session: CheckoutSession) -> str:
    note = f"B2B Wholesale Order - {session.order_number}"
    if session.po_number:
        note += f" | PO: {session.po_number}"
    if session.tax_exempt:
        note += " | Tax exempt"
    return note


def build_draft_order_input(
    session: CheckoutSession,
    lines: Tuple[DraftOrderLineItem, ...],
    payment_terms_template_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Payload for the draft-order gateway's ``create``."""
    tags = list(ORDER_TAGS) + (["TaxExempt"] if session.tax_exempt else [])
    location = session.location
    draft_input: Dict[str, Any] = {
        "note": build_order_note(session),
        "email": session.customer.email if session.customer else None,
        "customerId": session.customer.id if session.customer else None,
        "companyLocationId": location.location_id if location else None,
        "poNumber": session.po_number,
        "tags": tags,
        "taxExempt": session.tax_exempt,
        "lineItems": [
            {
                "title": line.title,
                "originalUnitPrice": str(line.unit_price),
                "quantity": line.quantity,
                "customAttributes": [{"key": a.key, "value": a.value} for a in line.attributes],
            }
            for line in lines
        ],
        "customAttributes": [
            {"key": "Order Number", "value": session.order_number},
            {"key": "Company", "value": (location.company_name if location else "") or "N/A"},
            {"key": "Location", "value": location_label(location)},
            {"key": "Created By", "value": CREATED_BY},
            {"key": "PO Number", "value": session.po_number},
        ],
    }
    if payment_terms_template_id:
        draft_input["paymentTerms"] = {"paymentTermsTemplateId": payment_terms_template_id}
    return draft_input

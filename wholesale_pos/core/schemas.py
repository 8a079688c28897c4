from decimal import Decimal
from enum import Enum
from typing import Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wholesale_pos.utils.money import ZERO, money


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------- Cart / pricing ----------

class CartLineItem(_Frozen):
    product_id: str
    variant_id: str
    name: str
    sku: str = ""
    quantity: int = Field(ge=0)
    unit_price: Decimal = Field(ge=0)
    taxable: bool = True
    attributes: Dict[str, str] = Field(default_factory=dict)

    # prices are held in whole cents so line totals add up to the order total
    @field_validator("unit_price", mode="before")
    @classmethod
    def _to_cents(cls, v):
        return money(v)


class PriceBreak(_Frozen):
    minimum_quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)

    @field_validator("price", mode="before")
    @classmethod
    def _to_cents(cls, v):
        return money(v)


class QuantityRule(_Frozen):
    product_id: str
    min_quantity: int = Field(default=1, ge=1)
    max_quantity: Optional[int] = Field(default=None, ge=1)
    increment: Optional[int] = Field(default=None, ge=1)
    price_breaks: Tuple[PriceBreak, ...] = ()


class ContextualPrice(_Frozen):
    """Unit price and quantity rule negotiated for one company location."""

    product_id: str
    variant_id: str
    price: Decimal = Field(ge=0)
    rule: QuantityRule

    @field_validator("price", mode="before")
    @classmethod
    def _to_cents(cls, v):
        return money(v)


class ValidationResult(_Frozen):
    is_valid: bool
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()


# ---------- Tax / totals ----------

class TaxRegionRate(_Frozen):
    country: str
    province: Optional[str] = None
    rate: Decimal
    title: str


class StoreTaxSettings(_Frozen):
    taxes_included: bool = False
    tax_shipping: bool = False
    country_code: str = "US"


class TaxResult(_Frozen):
    rate: Decimal = ZERO
    title: str = "Tax"
    is_included: bool = False
    shipping_taxable: bool = False
    tax_amount: Decimal = ZERO
    shipping_tax_amount: Decimal = ZERO


class OrderTotals(_Frozen):
    subtotal: Decimal
    delivery_fee: Decimal
    surcharge: Decimal
    tax_amount: Decimal
    shipping_tax_amount: Decimal
    final_total: Decimal


# ---------- Draft order lines ----------

LineKind = Literal["product", "surcharge", "delivery", "tax", "shipping_tax"]


class Attribute(_Frozen):
    key: str
    value: str


class DraftOrderLineItem(_Frozen):
    kind: LineKind
    title: str
    unit_price: Decimal
    quantity: int
    attributes: Tuple[Attribute, ...] = ()

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def attribute(self, key: str) -> Optional[str]:
        for attr in self.attributes:
            if attr.key == key:
                return attr.value
        return None


# ---------- Customer / company ----------

class Customer(_Frozen):
    id: str
    name: str
    email: Optional[str] = None


class Address(_Frozen):
    country: str
    province: Optional[str] = None


class CompanyLocation(_Frozen):
    location_id: str
    company_id: str
    name: str = ""
    company_name: str = ""
    address: Address


class PaymentTermsTemplate(_Frozen):
    id: str
    name: str
    payment_terms_type: str
    due_in_days: Optional[int] = None

    @property
    def label(self) -> str:
        if self.payment_terms_type == "NET" and self.due_in_days:
            return f"Net {self.due_in_days} (due in {self.due_in_days} days)"
        return self.name or "Custom Terms"


# ---------- Session ----------

class Screen(str, Enum):
    CUSTOMER = "customer"
    LOCATION = "location"
    CART = "cart"
    QUANTITY = "quantity"
    PRODUCT_DETAIL = "product-detail"
    DELIVERY = "delivery"
    CONFIRMATION = "confirmation"


DeliveryMethod = Literal["pickup", "economy", "standard", "express", "custom"]
FulfillmentOutcome = Literal["success", "partial", "failed"]


class SubmissionResult(_Frozen):
    draft_order_id: str
    order_name: str
    order_id: Optional[str] = None
    fulfillment: FulfillmentOutcome = "failed"
    notes: Tuple[str, ...] = ()
    payment_terms: Optional[Dict[str, Optional[str]]] = None


class CheckoutSession(_Frozen):
    id: str
    order_number: str
    screen: Screen = Screen.CUSTOMER
    customer: Optional[Customer] = None
    tax_exempt: bool = False
    offered_location: Optional[CompanyLocation] = None
    location: Optional[CompanyLocation] = None
    store_tax_settings: Optional[StoreTaxSettings] = None
    payment_terms_templates: Tuple[PaymentTermsTemplate, ...] = ()
    payment_terms_template_id: Optional[str] = None
    po_number: str = ""
    delivery_method: DeliveryMethod = "pickup"
    custom_delivery_fee: Decimal = ZERO
    custom_surcharge: Decimal = ZERO
    surcharge_description: str = ""
    cart: Tuple[CartLineItem, ...] = ()
    pricing: Dict[str, ContextualPrice] = Field(default_factory=dict)
    detail_variant_id: Optional[str] = None
    detail_source: Optional[Screen] = None
    validation_errors: Tuple[str, ...] = ()
    submission: Optional[SubmissionResult] = None

    @field_validator("custom_delivery_fee", "custom_surcharge", mode="before")
    @classmethod
    def _to_cents(cls, v):
        return money(v)

    @property
    def delivery_fee(self) -> Decimal:
        if self.delivery_method == "pickup":
            return ZERO
        return max(self.custom_delivery_fee, ZERO)

    @property
    def selected_payment_terms(self) -> Optional[PaymentTermsTemplate]:
        for template in self.payment_terms_templates:
            if template.id == self.payment_terms_template_id:
                return template
        return None

"""
Checkout screen flow as a reducer: ``transition(session, action) -> session``.

    customer -> location -> cart -> (delivery | quantity) -> delivery -> confirmation

``cart`` routes to ``quantity`` while any quantity rule is violated and
``quantity`` only lets the operator through once the rules pass.
``product-detail`` opens from ``cart`` or ``quantity`` and returns to where
it was opened. ``confirmation`` is reached only through a successful
submission; going back from it shows the submitted delivery screen, and
``Reset`` starts the next order.

A blocked transition never raises; it returns the session on the same screen
with ``validation_errors`` explaining why.
"""
import random
import string
import time
import uuid
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wholesale_pos.core.config import settings
from wholesale_pos.core.schemas import (
    CartLineItem,
    CheckoutSession,
    CompanyLocation,
    ContextualPrice,
    Customer,
    DeliveryMethod,
    PaymentTermsTemplate,
    Screen,
    StoreTaxSettings,
    SubmissionResult,
)
from wholesale_pos.services.summary import classify_cart, quantity_validation
from wholesale_pos.utils.money import money

_B36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _B36[r] + out
        if n == 0:
            return out


def generate_order_number(prefix: Optional[str] = None) -> str:
    prefix = prefix or settings.order_prefix
    stamp = _base36(int(time.time() * 1000))
    rand = "".join(random.choices(_B36, k=5))
    return f"{prefix}-{stamp}-{rand}".upper()


def new_session(session_id: Optional[str] = None, order_number: Optional[str] = None) -> CheckoutSession:
    return CheckoutSession(
        id=session_id or uuid.uuid4().hex,
        order_number=order_number or generate_order_number(),
    )


# ---------- Actions ----------

class Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class LoadStore(Action):
    store_tax_settings: StoreTaxSettings
    payment_terms_templates: Tuple[PaymentTermsTemplate, ...] = ()


class SelectCustomer(Action):
    customer: Customer
    tax_exempt: bool = False
    location: Optional[CompanyLocation] = None


class SelectLocation(Action):
    location: CompanyLocation


class SetCart(Action):
    items: Tuple[CartLineItem, ...]


class ApplyPricing(Action):
    location_id: str
    product_ids: FrozenSet[str]
    pricing: Dict[str, ContextualPrice]


class SetQuantity(Action):
    variant_id: str
    quantity: int = Field(ge=0)


class SetDelivery(Action):
    po_number: Optional[str] = None
    delivery_method: Optional[DeliveryMethod] = None
    custom_delivery_fee: Optional[Decimal] = Field(default=None, ge=0)
    custom_surcharge: Optional[Decimal] = Field(default=None, ge=0)
    surcharge_description: Optional[str] = None
    payment_terms_template_id: Optional[str] = None

    @field_validator("custom_delivery_fee", "custom_surcharge", mode="before")
    @classmethod
    def _to_cents(cls, v):
        return None if v is None else money(v)


class Next(Action):
    pass


class Back(Action):
    pass


class OpenProductDetail(Action):
    variant_id: str


class CloseProductDetail(Action):
    pass


class SubmissionSucceeded(Action):
    result: SubmissionResult


class SubmissionFailed(Action):
    errors: Tuple[str, ...]


class Reset(Action):
    order_number: Optional[str] = None


# ---------- Helpers ----------

def _update(session: CheckoutSession, **changes) -> CheckoutSession:
    return session.model_copy(update=changes)


def _blocked(session: CheckoutSession, *errors: str) -> CheckoutSession:
    return _update(session, validation_errors=tuple(errors))


def _move(session: CheckoutSession, screen: Screen, **changes) -> CheckoutSession:
    return _update(session, screen=screen, validation_errors=(), **changes)


def _refresh_errors(session: CheckoutSession) -> CheckoutSession:
    # the quantity screen keeps showing live rule violations
    if session.screen == Screen.QUANTITY:
        return _update(session, validation_errors=quantity_validation(session).errors)
    return _update(session, validation_errors=())


def _default_terms(templates: Tuple[PaymentTermsTemplate, ...]) -> Optional[str]:
    for template in templates:
        if template.payment_terms_type == "NET":
            return template.id
    return None


# ---------- Handlers ----------

def _load_store(session: CheckoutSession, action: LoadStore) -> CheckoutSession:
    terms = session.payment_terms_template_id
    if terms is None:
        terms = _default_terms(action.payment_terms_templates)
    return _update(
        session,
        store_tax_settings=action.store_tax_settings,
        payment_terms_templates=action.payment_terms_templates,
        payment_terms_template_id=terms,
    )


def _select_customer(session: CheckoutSession, action: SelectCustomer) -> CheckoutSession:
    if session.screen != Screen.CUSTOMER:
        return _blocked(session, "Customer can only be changed on the customer screen")
    return _move(
        session,
        Screen.LOCATION,
        customer=action.customer,
        tax_exempt=action.tax_exempt,
        offered_location=action.location,
        location=None,
        pricing={},
        submission=None,
    )


def _select_location(session: CheckoutSession, action: SelectLocation) -> CheckoutSession:
    if session.customer is None:
        return _blocked(session, "Please select a customer first")
    if session.screen != Screen.LOCATION:
        return _blocked(session, "Location can only be changed on the location screen")
    offered = session.offered_location
    if offered is not None and offered.location_id != action.location.location_id:
        return _blocked(session, "Location does not belong to the selected customer")
    return _move(session, Screen.CART, location=action.location, pricing={})


def _set_cart(session: CheckoutSession, action: SetCart) -> CheckoutSession:
    if session.submission is not None:
        return _blocked(session, "Order already submitted; reset to start a new one")
    cart = tuple(i for i in action.items if i.quantity > 0)
    return _refresh_errors(_update(session, cart=cart))


def _apply_pricing(session: CheckoutSession, action: ApplyPricing) -> CheckoutSession:
    # results for a location or cart that is no longer current are dropped
    if session.location is None or session.location.location_id != action.location_id:
        return session
    products, _ = classify_cart(session)
    if {p.product_id for p in products} != action.product_ids:
        return session
    if session.submission is not None:
        return session
    return _refresh_errors(_update(session, pricing=dict(action.pricing)))


def _set_quantity(session: CheckoutSession, action: SetQuantity) -> CheckoutSession:
    if session.screen not in (Screen.CART, Screen.QUANTITY, Screen.PRODUCT_DETAIL):
        return _blocked(session, "Quantities can only be changed while reviewing the cart")
    if not any(i.variant_id == action.variant_id for i in session.cart):
        return _blocked(session, f"Item {action.variant_id} is not in the cart")
    cart = []
    for item in session.cart:
        if item.variant_id == action.variant_id:
            if action.quantity == 0:
                continue
            item = item.model_copy(update={"quantity": action.quantity})
        cart.append(item)
    updated = _update(session, cart=tuple(cart))
    if updated.detail_variant_id and not any(i.variant_id == updated.detail_variant_id for i in cart):
        updated = _update(updated, screen=updated.detail_source or Screen.CART, detail_variant_id=None, detail_source=None)
    return _refresh_errors(updated)


def _set_delivery(session: CheckoutSession, action: SetDelivery) -> CheckoutSession:
    if session.submission is not None:
        return _blocked(session, "Order already submitted; reset to start a new one")
    changes = {k: v for k, v in action.model_dump(exclude_none=True).items()}
    if "po_number" in changes:
        changes["po_number"] = changes["po_number"].strip()
    template_id = changes.get("payment_terms_template_id")
    if template_id and not any(t.id == template_id for t in session.payment_terms_templates):
        return _blocked(session, f"Unknown payment terms {template_id}")
    return _update(session, validation_errors=(), **changes)


def _next(session: CheckoutSession, action: Next) -> CheckoutSession:
    screen = session.screen
    if screen == Screen.CUSTOMER:
        if session.customer is None:
            return _blocked(session, "Please select a customer to continue")
        return _move(session, Screen.LOCATION)
    if screen == Screen.LOCATION:
        if session.location is None:
            return _blocked(session, "Please select a company location to continue")
        return _move(session, Screen.CART)
    if screen == Screen.CART:
        products, _ = classify_cart(session)
        if not products:
            return _blocked(session, "Cart has no products")
        validation = quantity_validation(session)
        if validation.is_valid:
            return _move(session, Screen.DELIVERY)
        return _update(session, screen=Screen.QUANTITY, validation_errors=validation.errors)
    if screen == Screen.QUANTITY:
        validation = quantity_validation(session)
        if not validation.is_valid:
            return _blocked(session, *validation.errors)
        return _move(session, Screen.DELIVERY)
    if screen == Screen.DELIVERY:
        if session.submission is None:
            return _blocked(session, "Submit the order to continue")
        return _move(session, Screen.CONFIRMATION)
    return session


def _back(session: CheckoutSession, action: Back) -> CheckoutSession:
    screen = session.screen
    if screen == Screen.LOCATION:
        return _move(session, Screen.CUSTOMER)
    if screen == Screen.CART:
        return _move(session, Screen.LOCATION)
    if screen == Screen.QUANTITY:
        return _move(session, Screen.CART)
    if screen == Screen.DELIVERY:
        if quantity_validation(session).is_valid:
            return _move(session, Screen.CART)
        return _move(session, Screen.QUANTITY)
    if screen == Screen.PRODUCT_DETAIL:
        return _close_detail(session, CloseProductDetail())
    if screen == Screen.CONFIRMATION:
        return _move(session, Screen.DELIVERY)
    return session


def _open_detail(session: CheckoutSession, action: OpenProductDetail) -> CheckoutSession:
    if session.screen not in (Screen.CART, Screen.QUANTITY):
        return _blocked(session, "Product details open from the cart or quantity screen")
    if not any(i.variant_id == action.variant_id for i in session.cart):
        return _blocked(session, f"Item {action.variant_id} is not in the cart")
    return _move(
        session,
        Screen.PRODUCT_DETAIL,
        detail_variant_id=action.variant_id,
        detail_source=session.screen,
    )


def _close_detail(session: CheckoutSession, action: CloseProductDetail) -> CheckoutSession:
    if session.screen != Screen.PRODUCT_DETAIL:
        return session
    source = session.detail_source or Screen.CART
    return _refresh_errors(
        _update(session, screen=source, detail_variant_id=None, detail_source=None)
    )


def _submitted(session: CheckoutSession, action: SubmissionSucceeded) -> CheckoutSession:
    if session.screen != Screen.DELIVERY:
        return _blocked(session, "Orders are submitted from the delivery screen")
    return _move(session, Screen.CONFIRMATION, submission=action.result)


def _submit_failed(session: CheckoutSession, action: SubmissionFailed) -> CheckoutSession:
    return _blocked(session, *action.errors)


def _reset(session: CheckoutSession, action: Reset) -> CheckoutSession:
    fresh = new_session(session.id, action.order_number)
    return _update(
        fresh,
        store_tax_settings=session.store_tax_settings,
        payment_terms_templates=session.payment_terms_templates,
        payment_terms_template_id=_default_terms(session.payment_terms_templates),
    )


_HANDLERS: Dict[Type[Action], Callable[[CheckoutSession, Action], CheckoutSession]] = {
    LoadStore: _load_store,
    SelectCustomer: _select_customer,
    SelectLocation: _select_location,
    SetCart: _set_cart,
    ApplyPricing: _apply_pricing,
    SetQuantity: _set_quantity,
    SetDelivery: _set_delivery,
    Next: _next,
    Back: _back,
    OpenProductDetail: _open_detail,
    CloseProductDetail: _close_detail,
    SubmissionSucceeded: _submitted,
    SubmissionFailed: _submit_failed,
    Reset: _reset,
}


def transition(session: CheckoutSession, action: Action) -> CheckoutSession:
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unsupported checkout action: {type(action).__name__}")
    return handler(session, action)


def detail_item(session: CheckoutSession) -> Optional[CartLineItem]:
    for item in session.cart:
        if item.variant_id == session.detail_variant_id:
            return item
    return None

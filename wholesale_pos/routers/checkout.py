import asyncio
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from wholesale_pos.core.config import settings
from wholesale_pos.core.errors import AttributeSchemaError, NetworkError, ValidationError
from wholesale_pos.core.schemas import CartLineItem, CheckoutSession, DeliveryMethod, DraftOrderLineItem, Screen
from wholesale_pos.gateways.base import CheckoutGateway
from wholesale_pos.gateways.dto import (
    CompanyLocationDTO,
    CustomerDTO,
    PaymentTermsTemplateDTO,
    StoreTaxSettingsDTO,
    parse_payload,
)
from wholesale_pos.gateways.local import LocalGateway
from wholesale_pos.services import checkout as flow
from wholesale_pos.services.assembler import assemble_line_items, lines_total
from wholesale_pos.services.pricing import PricingResolver, product_detail
from wholesale_pos.services.quantity_rules import is_valid_po_number
from wholesale_pos.services.submission import OrderSubmissionPipeline
from wholesale_pos.services.summary import classify_cart, summarize
from wholesale_pos.utils.money import money

router = APIRouter(prefix="/checkout", tags=["checkout"])

# In-memory sessions for one register process; nothing is persisted
_sessions: Dict[str, CheckoutSession] = {}
_submit_locks: Dict[str, asyncio.Lock] = {}
_gateway: Optional[CheckoutGateway] = None


def get_gateway() -> CheckoutGateway:
    global _gateway
    if _gateway is None:
        _gateway = LocalGateway()
    return _gateway


# ---------- Request bodies ----------

class CustomerIn(BaseModel):
    customer_id: str


class LocationIn(BaseModel):
    location_id: Optional[str] = None


class CartItemIn(BaseModel):
    product_id: str
    variant_id: str
    name: str
    sku: str = ""
    quantity: int = Field(ge=0)
    unit_price: Decimal = Field(ge=0)
    taxable: bool = True
    attributes: Dict[str, str] = Field(default_factory=dict)


class CartIn(BaseModel):
    items: List[CartItemIn]


class QuantityIn(BaseModel):
    quantity: int = Field(ge=0)


class DeliveryIn(BaseModel):
    po_number: Optional[str] = None
    delivery_method: Optional[DeliveryMethod] = None
    custom_delivery_fee: Optional[Decimal] = Field(default=None, ge=0)
    custom_surcharge: Optional[Decimal] = Field(default=None, ge=0)
    surcharge_description: Optional[str] = None
    payment_terms_template_id: Optional[str] = None


# ---------- Serialization (amounts rounded to cents on the way out) ----------

def _m(v) -> float:
    return float(money(v))


def _line_out(line: DraftOrderLineItem) -> Dict[str, Any]:
    return {
        "kind": line.kind,
        "title": line.title,
        "unit_price": _m(line.unit_price),
        "quantity": line.quantity,
        "line_total": _m(line.line_total),
        "attributes": [{"key": a.key, "value": a.value} for a in line.attributes],
    }


def _summary_out(session: CheckoutSession) -> Dict[str, Any]:
    summary = summarize(session)
    lines = assemble_line_items(session, summary)
    t = summary.totals
    return {
        "totals": {
            "subtotal": _m(t.subtotal),
            "delivery_fee": _m(t.delivery_fee),
            "surcharge": _m(t.surcharge),
            "tax_amount": _m(t.tax_amount),
            "shipping_tax_amount": _m(t.shipping_tax_amount),
            "final_total": _m(t.final_total),
            "currency": settings.currency,
        },
        "tax": {
            "title": summary.tax.title,
            "rate": float(summary.tax.rate),
            "is_included": summary.tax.is_included,
            "shipping_taxable": summary.tax.shipping_taxable,
        },
        "quantity_validation": {
            "is_valid": summary.quantity_validation.is_valid,
            "errors": list(summary.quantity_validation.errors),
            "warnings": list(summary.quantity_validation.warnings),
        },
        "order_minimums": {
            "is_valid": summary.order_minimums.is_valid,
            "warnings": list(summary.order_minimums.errors),
        },
        "po_number_valid": is_valid_po_number(session.po_number),
        "line_items": [_line_out(line) for line in lines],
        "lines_total": _m(lines_total(lines)),
    }


def _session_out(session: CheckoutSession) -> Dict[str, Any]:
    products, surcharges = classify_cart(session)
    out: Dict[str, Any] = {
        "session_id": session.id,
        "order_number": session.order_number,
        "screen": session.screen.value,
        "customer": session.customer.model_dump() if session.customer else None,
        "tax_exempt": session.tax_exempt,
        "location": session.location.model_dump() if session.location else None,
        "offered_location": session.offered_location.model_dump() if session.offered_location else None,
        "cart": [
            {
                "product_id": i.product_id,
                "variant_id": i.variant_id,
                "name": i.name,
                "sku": i.sku,
                "quantity": i.quantity,
                "unit_price": _m(i.unit_price),
                "surcharge": i in surcharges,
            }
            for i in session.cart
        ],
        "priced_products": sorted(session.pricing),
        "po_number": session.po_number,
        "delivery_method": session.delivery_method,
        "delivery_fee": _m(session.delivery_fee),
        "custom_surcharge": _m(session.custom_surcharge),
        "surcharge_description": session.surcharge_description,
        "payment_terms": [
            {"id": t.id, "label": t.label, "type": t.payment_terms_type}
            for t in session.payment_terms_templates
        ],
        "payment_terms_template_id": session.payment_terms_template_id,
        "validation_errors": list(session.validation_errors),
        "submission": session.submission.model_dump() if session.submission else None,
        "product_count": len(products),
    }
    if session.screen == Screen.PRODUCT_DETAIL:
        item = flow.detail_item(session)
        if item is not None:
            detail = product_detail(item, session.pricing)
            detail["unit_price"] = _m(detail["unit_price"])
            if detail["b2b_price"] is not None:
                detail["b2b_price"] = _m(detail["b2b_price"])
            for brk in detail["price_breaks"]:
                brk["price"] = _m(brk["price"])
            out["product_detail"] = detail
    return out


# ---------- Helpers ----------

def _get(sid: str) -> CheckoutSession:
    session = _sessions.get(sid)
    if session is None:
        raise HTTPException(404, "Checkout session not found")
    return session


def _apply(sid: str, action: flow.Action) -> CheckoutSession:
    session = flow.transition(_get(sid), action)
    _sessions[sid] = session
    return session


def _bad_gateway(e: NetworkError) -> HTTPException:
    return HTTPException(502, {"operation": e.operation, "message": e.message})


async def _refresh_pricing(sid: str, gateway: CheckoutGateway) -> CheckoutSession:
    session = _get(sid)
    if session.location is None:
        return session
    products, _ = classify_cart(session)
    location_id = session.location.location_id
    try:
        pricing = await PricingResolver(gateway).resolve(products, location_id)
    except NetworkError as e:
        raise _bad_gateway(e)
    # the session may have moved on while pricing was in flight
    return _apply(
        sid,
        flow.ApplyPricing(
            location_id=location_id,
            product_ids=frozenset(p.product_id for p in products),
            pricing=pricing,
        ),
    )


# ---------- Endpoints ----------

@router.post("/sessions")
async def start_session(gateway: CheckoutGateway = Depends(get_gateway)):
    try:
        store = parse_payload(
            StoreTaxSettingsDTO, await gateway.fetch_store_tax_settings(), "fetch_store_tax_settings"
        ).to_domain()
        templates = tuple(
            parse_payload(PaymentTermsTemplateDTO, t, "fetch_payment_terms_templates").to_domain()
            for t in await gateway.fetch_payment_terms_templates()
        )
    except NetworkError as e:
        raise _bad_gateway(e)
    session = flow.transition(
        flow.new_session(), flow.LoadStore(store_tax_settings=store, payment_terms_templates=templates)
    )
    _sessions[session.id] = session
    return _session_out(session)


@router.get("/sessions/{sid}")
def get_session(sid: str):
    session = _get(sid)
    return {**_session_out(session), "summary": _summary_out(session)}


@router.post("/sessions/{sid}/customer")
async def select_customer(sid: str, body: CustomerIn, gateway: CheckoutGateway = Depends(get_gateway)):
    _get(sid)
    try:
        raw = await gateway.fetch_customer(body.customer_id)
        if raw is None:
            raise HTTPException(404, "Customer not found")
        customer = parse_payload(CustomerDTO, raw, "fetch_customer").to_domain()
        exempt = bool(await gateway.fetch_customer_tax_exemption(body.customer_id))
        raw_loc = await gateway.fetch_company_location(body.customer_id)
        location = (
            parse_payload(CompanyLocationDTO, raw_loc, "fetch_company_location").to_domain()
            if raw_loc is not None
            else None
        )
    except NetworkError as e:
        raise _bad_gateway(e)
    session = _apply(sid, flow.SelectCustomer(customer=customer, tax_exempt=exempt, location=location))
    return _session_out(session)


@router.post("/sessions/{sid}/location")
async def select_location(sid: str, body: LocationIn, gateway: CheckoutGateway = Depends(get_gateway)):
    offered = _get(sid).offered_location
    if offered is None or (body.location_id and body.location_id != offered.location_id):
        raise HTTPException(404, "Company location not found for this customer")
    session = _apply(sid, flow.SelectLocation(location=offered))
    if session.location is not None and session.cart:
        session = await _refresh_pricing(sid, gateway)
    return _session_out(session)


@router.put("/sessions/{sid}/cart")
async def set_cart(sid: str, body: CartIn, gateway: CheckoutGateway = Depends(get_gateway)):
    items = tuple(CartLineItem(**i.model_dump()) for i in body.items)
    session = _apply(sid, flow.SetCart(items=items))
    if session.location is not None and session.submission is None:
        session = await _refresh_pricing(sid, gateway)
    return _session_out(session)


@router.patch("/sessions/{sid}/cart/{variant_id}")
def set_quantity(sid: str, variant_id: str, body: QuantityIn):
    session = _apply(sid, flow.SetQuantity(variant_id=variant_id, quantity=body.quantity))
    return _session_out(session)


@router.post("/sessions/{sid}/next")
def next_screen(sid: str):
    return _session_out(_apply(sid, flow.Next()))


@router.post("/sessions/{sid}/back")
def previous_screen(sid: str):
    return _session_out(_apply(sid, flow.Back()))


@router.post("/sessions/{sid}/reset")
def reset(sid: str):
    _submit_locks.pop(sid, None)
    return _session_out(_apply(sid, flow.Reset()))


@router.post("/sessions/{sid}/product-detail/close")
def close_product_detail(sid: str):
    return _session_out(_apply(sid, flow.CloseProductDetail()))


@router.post("/sessions/{sid}/product-detail/{variant_id}")
def open_product_detail(sid: str, variant_id: str):
    return _session_out(_apply(sid, flow.OpenProductDetail(variant_id=variant_id)))


@router.put("/sessions/{sid}/delivery")
def set_delivery(sid: str, body: DeliveryIn):
    session = _apply(sid, flow.SetDelivery(**body.model_dump(exclude_none=True)))
    return _session_out(session)


@router.get("/sessions/{sid}/summary")
def get_summary(sid: str):
    try:
        return _summary_out(_get(sid))
    except AttributeSchemaError as e:
        raise HTTPException(500, str(e))


@router.post("/sessions/{sid}/submit")
async def submit(sid: str, gateway: CheckoutGateway = Depends(get_gateway)):
    _get(sid)
    lock = _submit_locks.setdefault(sid, asyncio.Lock())
    async with lock:
        session = _get(sid)
        if session.submission is not None:
            raise HTTPException(409, "Order already submitted; reset to start a new one")
        if session.screen != Screen.DELIVERY:
            raise HTTPException(422, {"errors": ["Orders are submitted from the delivery screen"]})
        try:
            result = await OrderSubmissionPipeline(gateway).submit(session)
        except ValidationError as e:
            _apply(sid, flow.SubmissionFailed(errors=tuple(e.errors)))
            raise HTTPException(422, {"errors": e.errors})
        except NetworkError as e:
            _apply(sid, flow.SubmissionFailed(errors=(str(e),)))
            raise _bad_gateway(e)
        except AttributeSchemaError as e:
            raise HTTPException(500, str(e))
        session = _apply(sid, flow.SubmissionSucceeded(result=result))
    return {
        "draft_order_id": result.draft_order_id,
        "order_name": result.order_name,
        "order_id": result.order_id,
        "fulfillment": result.fulfillment,
        "notes": list(result.notes),
        "payment_terms": result.payment_terms,
        "order_number": session.order_number,
        "final_total": _summary_out(session)["totals"]["final_total"],
        "session": _session_out(session),
    }

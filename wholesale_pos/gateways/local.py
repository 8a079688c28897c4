"""
SQLAlchemy-backed collaborators for development and tests.

Implements every gateway protocol against the tables in
``wholesale_pos.models``. Blocking ORM work runs in Starlette's threadpool so
the event loop stays free. Payloads use the same camelCase shapes a remote
commerce backend would return.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from wholesale_pos.core.config import settings
from wholesale_pos.core.errors import PaymentTermsPermissionError
from wholesale_pos.db import SessionLocal
from wholesale_pos.models.catalog import ContextualPrice, PaymentTermsTemplate
from wholesale_pos.models.company import CompanyLocation
from wholesale_pos.models.customer import Customer
from wholesale_pos.models.draft_order import (
    DraftOrder,
    DraftOrderAttribute,
    DraftOrderLine,
    DraftOrderLineAttribute,
)

logger = logging.getLogger(__name__)


def _parse_draft_id(draft_order_id: str) -> Optional[int]:
    try:
        return int(str(draft_order_id).rsplit("/", 1)[-1])
    except ValueError:
        return None


def _location_payload(loc: CompanyLocation) -> Dict[str, Any]:
    return {
        "locationId": loc.id,
        "companyId": loc.company_id,
        "name": loc.name,
        "companyName": loc.company.name if loc.company else "",
        "address": {"country": loc.country, "province": loc.province},
    }


class LocalGateway:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, allow_payment_terms: Optional[bool] = None):
        self.session_factory = session_factory
        self.allow_payment_terms = (
            settings.allow_payment_terms if allow_payment_terms is None else allow_payment_terms
        )

    async def _run(self, fn, *args):
        def work():
            db = self.session_factory()
            try:
                return fn(db, *args)
            finally:
                db.close()

        return await run_in_threadpool(work)

    # ---------- Pricing ----------

    def _contextual_pricing(self, db: Session, variant_id: str, location_id: str):
        row = db.execute(
            select(ContextualPrice).where(
                ContextualPrice.variant_id == variant_id,
                ContextualPrice.location_id == location_id,
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        return {
            "price": str(row.price),
            "quantityRule": {
                "minimum": row.min_quantity or 1,
                "maximum": row.max_quantity,
                "increment": row.increment,
            },
            "priceBreaks": [
                {"minimumQuantity": b.minimum_quantity, "price": str(b.price)}
                for b in row.price_breaks
            ],
        }

    async def fetch_contextual_pricing(self, variant_id: str, location_id: str):
        return await self._run(self._contextual_pricing, variant_id, location_id)

    # ---------- Store ----------

    async def fetch_store_tax_settings(self):
        return {
            "taxesIncluded": settings.store_taxes_included,
            "taxShipping": settings.store_tax_shipping,
            "countryCode": settings.store_country_code,
        }

    def _templates(self, db: Session) -> List[Dict[str, Any]]:
        rows = db.execute(select(PaymentTermsTemplate).order_by(PaymentTermsTemplate.id)).scalars()
        return [
            {
                "id": t.id,
                "name": t.name,
                "paymentTermsType": t.payment_terms_type,
                "dueInDays": t.due_in_days,
            }
            for t in rows
        ]

    async def fetch_payment_terms_templates(self):
        return await self._run(self._templates)

    # ---------- Customers ----------

    def _customer(self, db: Session, customer_id: str):
        c = db.get(Customer, customer_id)
        if c is None:
            return None
        return {"id": c.id, "name": c.name, "email": c.email}

    async def fetch_customer(self, customer_id: str):
        return await self._run(self._customer, customer_id)

    def _tax_exemption(self, db: Session, customer_id: str) -> bool:
        c = db.get(Customer, customer_id)
        return bool(c and c.tax_exempt)

    async def fetch_customer_tax_exemption(self, customer_id: str) -> bool:
        return await self._run(self._tax_exemption, customer_id)

    def _company_location(self, db: Session, customer_id: str):
        c = db.get(Customer, customer_id)
        if c is None or c.company_location is None:
            return None
        return _location_payload(c.company_location)

    async def fetch_company_location(self, customer_id: str):
        return await self._run(self._company_location, customer_id)

    # ---------- Draft orders ----------

    def _create(self, db: Session, draft_input: Dict[str, Any]):
        terms = draft_input.get("paymentTerms") or {}
        template_id = terms.get("paymentTermsTemplateId")
        if template_id:
            if not self.allow_payment_terms:
                raise PaymentTermsPermissionError()
            if db.get(PaymentTermsTemplate, template_id) is None:
                raise ValueError(f"Unknown payment terms template {template_id}")

        draft = DraftOrder(
            customer_id=draft_input.get("customerId"),
            company_location_id=draft_input.get("companyLocationId"),
            email=draft_input.get("email"),
            po_number=draft_input.get("poNumber"),
            note=draft_input.get("note"),
            tags=",".join(draft_input.get("tags") or []),
            tax_exempt=bool(draft_input.get("taxExempt")),
            payment_terms_template_id=template_id,
        )
        for pos, li in enumerate(draft_input.get("lineItems") or []):
            line = DraftOrderLine(
                position=pos,
                title=li["title"],
                unit_price=Decimal(str(li["originalUnitPrice"])),
                quantity=int(li["quantity"]),
            )
            line.attributes = [
                DraftOrderLineAttribute(key=a["key"], value=a["value"])
                for a in li.get("customAttributes") or []
            ]
            draft.lines.append(line)
        draft.attributes = [
            DraftOrderAttribute(key=a["key"], value=a["value"])
            for a in draft_input.get("customAttributes") or []
        ]
        db.add(draft)
        db.commit()
        db.refresh(draft)
        logger.info("Draft order created", extra={"draft_order_id": draft.id, "lines": len(draft.lines)})
        return {"id": str(draft.id), "name": draft.name}

    async def create(self, draft_input):
        return await self._run(self._create, dict(draft_input))

    def _payment_terms(self, db: Session, draft_order_id: str):
        pk = _parse_draft_id(draft_order_id)
        draft = db.get(DraftOrder, pk) if pk is not None else None
        if draft is None or draft.payment_terms_template is None:
            return None
        t = draft.payment_terms_template
        return {
            "id": f"terms-{draft.id}",
            "paymentTermsType": t.payment_terms_type,
            "paymentTermsName": t.name,
            "dueInDays": t.due_in_days,
        }

    async def fetch_payment_terms(self, draft_order_id: str):
        return await self._run(self._payment_terms, draft_order_id)

    def _complete(self, db: Session, draft_order_id: str):
        pk = _parse_draft_id(draft_order_id)
        draft = db.get(DraftOrder, pk) if pk is not None else None
        if draft is None:
            return None
        if draft.status != "completed":
            draft.status = "completed"
            draft.order_id = f"ORD-{draft.id}"
            draft.completed_at = datetime.utcnow()
            db.commit()
        return {"orderId": draft.order_id}

    async def complete_draft_order(self, draft_order_id: str):
        return await self._run(self._complete, draft_order_id)

    def _fulfill(self, db: Session, order_id: str) -> bool:
        draft = db.execute(select(DraftOrder).where(DraftOrder.order_id == order_id)).scalar_one_or_none()
        if draft is None:
            return False
        if not draft.fulfilled:
            draft.fulfilled = True
            draft.fulfilled_at = datetime.utcnow()
            db.commit()
        return True

    async def create_fulfillment(self, order_id: str) -> bool:
        return await self._run(self._fulfill, order_id)

    # ---------- Read back ----------

    def _draft_order(self, db: Session, draft_order_id: str):
        pk = _parse_draft_id(draft_order_id)
        draft = db.get(DraftOrder, pk) if pk is not None else None
        if draft is None:
            return None
        return {
            "id": str(draft.id),
            "name": draft.name,
            "status": draft.status,
            "orderId": draft.order_id,
            "fulfilled": bool(draft.fulfilled),
            "poNumber": draft.po_number,
            "note": draft.note,
            "tags": [t for t in (draft.tags or "").split(",") if t],
            "taxExempt": bool(draft.tax_exempt),
            "paymentTermsTemplateId": draft.payment_terms_template_id,
            "lineItems": [
                {
                    "title": line.title,
                    "originalUnitPrice": str(line.unit_price),
                    "quantity": line.quantity,
                    "customAttributes": [{"key": a.key, "value": a.value} for a in line.attributes],
                }
                for line in draft.lines
            ],
            "customAttributes": [{"key": a.key, "value": a.value} for a in draft.attributes],
        }

    async def fetch_draft_order(self, draft_order_id: str):
        return await self._run(self._draft_order, draft_order_id)

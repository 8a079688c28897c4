"""
Order submission.

Steps, in order:

1. check preconditions (customer, location, PO number, quantity rules)
2. assemble draft-order lines from the session snapshot
3. create the draft order with the selected payment terms; when the backend
   refuses the terms, create it once more without them
4. read back the applied payment terms (best effort)
5. complete the draft order into an order (best effort)
6. fulfill the order (best effort)

Once step 3 has succeeded the draft order exists and the submission counts
as successful. Failures in steps 4-6 are logged and reported through
``SubmissionResult.notes`` and ``SubmissionResult.fulfillment``.
"""
import logging
from typing import List, Optional, Tuple

from wholesale_pos.core.errors import (
    CheckoutError,
    NetworkError,
    PartialFailureError,
    PaymentTermsPermissionError,
    ValidationError,
)
from wholesale_pos.core.schemas import CheckoutSession, DraftOrderLineItem, SubmissionResult
from wholesale_pos.gateways.base import DraftOrderGateway
from wholesale_pos.gateways.dto import (
    CompletedOrderDTO,
    DraftOrderCreatedDTO,
    PaymentTermsDTO,
    parse_payload,
)
from wholesale_pos.services.assembler import assemble_line_items, build_draft_order_input
from wholesale_pos.services.audit import log_order_operation
from wholesale_pos.services.quantity_rules import is_valid_po_number
from wholesale_pos.services.summary import summarize

PO_NUMBER_ERROR = "PO number must be 3-20 letters or digits"


def check_preconditions(session: CheckoutSession, use_keywords: Optional[bool] = None) -> None:
    errors: List[str] = []
    if session.customer is None or session.location is None:
        errors.append("Customer and company location are required")
    if not is_valid_po_number(session.po_number):
        errors.append(PO_NUMBER_ERROR)
    summary = summarize(session, use_keywords)
    if not summary.products:
        errors.append("Cart has no products")
    errors.extend(summary.quantity_validation.errors)
    if errors:
        raise ValidationError(errors)


class OrderSubmissionPipeline:
    def __init__(self, gateway: DraftOrderGateway, use_keywords: Optional[bool] = None):
        self.gateway = gateway
        self.use_keywords = use_keywords

    async def _call(self, operation: str, coro):
        try:
            return await coro
        except CheckoutError:
            raise
        except Exception as e:
            raise NetworkError(operation, str(e)) from e

    async def _create(self, session: CheckoutSession, lines: Tuple[DraftOrderLineItem, ...]):
        template_id = session.payment_terms_template_id
        try:
            raw = await self._call(
                "create_draft_order",
                self.gateway.create(build_draft_order_input(session, lines, template_id)),
            )
            return parse_payload(DraftOrderCreatedDTO, raw, "create_draft_order"), template_id
        except PaymentTermsPermissionError as e:
            if not template_id:
                raise NetworkError("create_draft_order", e.message) from e
            log_order_operation(
                "payment_terms_refused", session.order_number, logging.WARNING, error=e.message
            )

        try:
            raw = await self._call(
                "create_draft_order",
                self.gateway.create(build_draft_order_input(session, lines, None)),
            )
        except PaymentTermsPermissionError as e:
            raise NetworkError("create_draft_order", e.message) from e
        return parse_payload(DraftOrderCreatedDTO, raw, "create_draft_order"), None

    async def _payment_terms(self, session: CheckoutSession, draft_order_id: str):
        try:
            raw = await self._call("fetch_payment_terms", self.gateway.fetch_payment_terms(draft_order_id))
            if raw is None:
                return None
            terms = parse_payload(PaymentTermsDTO, raw, "fetch_payment_terms")
        except NetworkError as e:
            log_order_operation(
                "payment_terms_unavailable",
                session.order_number,
                logging.WARNING,
                draft_order_id=draft_order_id,
                error=str(e),
            )
            return None
        return {
            "id": terms.id,
            "payment_terms_type": terms.payment_terms_type,
            "payment_terms_name": terms.payment_terms_name,
            "due_in_days": str(terms.due_in_days) if terms.due_in_days is not None else None,
        }

    async def _complete(self, draft_order_id: str) -> str:
        try:
            raw = await self._call("complete_draft_order", self.gateway.complete_draft_order(draft_order_id))
        except NetworkError as e:
            raise PartialFailureError("complete_draft_order", draft_order_id, e.message) from e
        if raw is None:
            raise PartialFailureError("complete_draft_order", draft_order_id, "no order returned")
        try:
            return parse_payload(CompletedOrderDTO, raw, "complete_draft_order").order_id
        except NetworkError as e:
            raise PartialFailureError("complete_draft_order", draft_order_id, e.message) from e

    async def _fulfill(self, draft_order_id: str, order_id: str) -> None:
        try:
            ok = await self._call("create_fulfillment", self.gateway.create_fulfillment(order_id))
        except NetworkError as e:
            raise PartialFailureError("create_fulfillment", draft_order_id, e.message) from e
        if not ok:
            raise PartialFailureError("create_fulfillment", draft_order_id, "fulfillment was not created")

    async def submit(self, session: CheckoutSession) -> SubmissionResult:
        """Raises ValidationError or NetworkError only before the draft order exists."""
        check_preconditions(session, self.use_keywords)
        lines = assemble_line_items(session, use_keywords=self.use_keywords)
        log_order_operation("submit", session.order_number, lines=len(lines))

        created, applied_terms = await self._create(session, lines)
        log_order_operation("draft_order_created", session.order_number, draft_order_id=created.id)

        notes: List[str] = []
        if session.payment_terms_template_id and not applied_terms:
            notes.append("Payment terms were not applied; the order was created without terms")

        payment_terms = None
        if applied_terms:
            payment_terms = await self._payment_terms(session, created.id)

        order_id = None
        fulfillment = "failed"
        try:
            order_id = await self._complete(created.id)
            fulfillment = "partial"
            await self._fulfill(created.id, order_id)
            fulfillment = "success"
        except PartialFailureError as e:
            log_order_operation(
                "partial_failure",
                session.order_number,
                logging.WARNING,
                draft_order_id=created.id,
                step=e.step,
                error=e.message,
            )
            notes.append(str(e))

        log_order_operation(
            "submitted",
            session.order_number,
            draft_order_id=created.id,
            order_id=order_id,
            fulfillment=fulfillment,
        )
        return SubmissionResult(
            draft_order_id=created.id,
            order_name=created.name,
            order_id=order_id,
            fulfillment=fulfillment,
            notes=tuple(notes),
            payment_terms=payment_terms,
        )

"""
Collaborator contracts.

Every method is a coroutine returning the raw payload of the upstream
service (plain dicts/lists). Callers parse payloads through the DTOs in
``wholesale_pos.gateways.dto`` so a shape mismatch surfaces as ParseError at
the boundary instead of deep inside the checkout logic.
"""
from typing import Any, List, Mapping, Optional, Protocol

Payload = Mapping[str, Any]


class PricingGateway(Protocol):
    async def fetch_contextual_pricing(self, variant_id: str, location_id: str) -> Optional[Payload]:
        ...


class StoreGateway(Protocol):
    async def fetch_store_tax_settings(self) -> Payload:
        ...

    async def fetch_payment_terms_templates(self) -> List[Payload]:
        ...


class CustomerGateway(Protocol):
    async def fetch_customer(self, customer_id: str) -> Optional[Payload]:
        ...

    async def fetch_customer_tax_exemption(self, customer_id: str) -> bool:
        ...

    async def fetch_company_location(self, customer_id: str) -> Optional[Payload]:
        ...


class DraftOrderGateway(Protocol):
    async def create(self, draft_input: Payload) -> Payload:
        """Raises PaymentTermsPermissionError when payment terms are refused."""
        ...

    async def fetch_payment_terms(self, draft_order_id: str) -> Optional[Payload]:
        ...

    async def complete_draft_order(self, draft_order_id: str) -> Optional[Payload]:
        ...

    async def create_fulfillment(self, order_id: str) -> bool:
        ...


class CheckoutGateway(PricingGateway, StoreGateway, CustomerGateway, DraftOrderGateway, Protocol):
    """Everything the checkout router needs from one backend."""

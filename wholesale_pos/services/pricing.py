"""
Contextual (company-location) pricing.

``PricingResolver`` asks the pricing gateway for every variant in the cart
and turns the raw payloads into ``ContextualPrice`` records keyed by product
id. Lines without contextual pricing keep their base price.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional

from wholesale_pos.core.errors import NetworkError, ParseError
from wholesale_pos.core.schemas import CartLineItem, ContextualPrice, QuantityRule
from wholesale_pos.gateways.base import PricingGateway
from wholesale_pos.gateways.dto import ContextualPricingDTO, parse_payload

logger = logging.getLogger(__name__)


def price_for_quantity(pricing: ContextualPrice, quantity: int) -> Decimal:
    """Price of the highest break reached by ``quantity``, else the contextual price."""
    price = pricing.price
    for brk in sorted(pricing.rule.price_breaks, key=lambda b: b.minimum_quantity):
        if quantity >= brk.minimum_quantity:
            price = brk.price
        else:
            break
    return price


def effective_unit_price(item: CartLineItem, pricing: Mapping[str, ContextualPrice]) -> Decimal:
    contextual = pricing.get(item.product_id)
    if contextual is None:
        return item.unit_price
    return price_for_quantity(contextual, item.quantity)


def has_contextual_price(item: CartLineItem, pricing: Mapping[str, ContextualPrice]) -> bool:
    return item.product_id in pricing


def quantity_rules(pricing: Mapping[str, ContextualPrice]) -> Dict[str, QuantityRule]:
    return {pid: p.rule for pid, p in pricing.items()}


def next_price_break(pricing: ContextualPrice, quantity: int):
    for brk in sorted(pricing.rule.price_breaks, key=lambda b: b.minimum_quantity):
        if brk.minimum_quantity > quantity:
            return brk
    return None


def product_detail(item: CartLineItem, pricing: Mapping[str, ContextualPrice]) -> dict:
    """Data shown on the product-detail screen for one cart line."""
    contextual = pricing.get(item.product_id)
    rule = contextual.rule if contextual else None
    return {
        "product_id": item.product_id,
        "variant_id": item.variant_id,
        "name": item.name,
        "quantity": item.quantity,
        "b2b_price": contextual.price if contextual else None,
        "unit_price": effective_unit_price(item, pricing),
        "min_quantity": rule.min_quantity if rule else 1,
        "max_quantity": rule.max_quantity if rule else None,
        "increment": rule.increment if rule else 1,
        "price_breaks": [
            {"minimum_quantity": b.minimum_quantity, "price": b.price}
            for b in sorted(rule.price_breaks, key=lambda b: b.minimum_quantity)
        ] if rule else [],
    }


class PricingResolver:
    def __init__(self, gateway: PricingGateway):
        self.gateway = gateway

    async def resolve_item(self, item: CartLineItem, location_id: str) -> Optional[ContextualPrice]:
        try:
            raw = await self.gateway.fetch_contextual_pricing(item.variant_id, location_id)
        except NetworkError:
            raise
        except Exception as e:
            raise NetworkError("fetch_contextual_pricing", str(e)) from e
        if raw is None:
            return None
        dto = parse_payload(ContextualPricingDTO, raw, "fetch_contextual_pricing")
        return dto.to_domain(item.product_id, item.variant_id)

    async def resolve(self, items: Iterable[CartLineItem], location_id: str) -> Dict[str, ContextualPrice]:
        """Fetches pricing for every distinct product in ``items``.

        Calls run one after another; the first failing call aborts the
        refresh with ``NetworkError`` so a half-priced cart is never shown.
        """
        pricing: Dict[str, ContextualPrice] = {}
        for item in items:
            if item.product_id in pricing:
                continue
            try:
                contextual = await self.resolve_item(item, location_id)
            except ParseError:
                logger.warning(
                    "Contextual pricing payload rejected",
                    extra={"variant_id": item.variant_id, "location_id": location_id},
                )
                raise
            if contextual is not None:
                pricing[item.product_id] = contextual
        logger.info(
            "Contextual pricing resolved",
            extra={"location_id": location_id, "priced": len(pricing)},
        )
        return pricing

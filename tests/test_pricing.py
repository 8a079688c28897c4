import asyncio
from decimal import Decimal

import pytest
from factories import contextual, item

from wholesale_pos.core.errors import NetworkError, ParseError
from wholesale_pos.services.pricing import (
    PricingResolver,
    effective_unit_price,
    next_price_break,
    price_for_quantity,
    product_detail,
)
from wholesale_pos.services.totals import calculate_totals
from wholesale_pos.core.schemas import TaxResult

BREAKS = [(24, "9.00"), (48, "8.50")]


@pytest.mark.parametrize("qty,price", [(6, "10.00"), (23, "10.00"), (24, "9.00"), (47, "9.00"), (48, "8.50"), (500, "8.50")])
def test_highest_reached_break_wins(qty, price):
    assert price_for_quantity(contextual(breaks=BREAKS), qty) == Decimal(price)


def test_effective_price_falls_back_to_base():
    assert effective_unit_price(item(price="14.99"), {}) == Decimal("14.99")
    assert effective_unit_price(item(price="14.99"), {"p1": contextual(price="11.00")}) == Decimal("11.00")


def test_next_break():
    assert next_price_break(contextual(breaks=BREAKS), 30).minimum_quantity == 48
    assert next_price_break(contextual(breaks=BREAKS), 48) is None


def test_product_detail():
    detail = product_detail(item(qty=30), {"p1": contextual(min_q=6, max_q=120, inc=6, breaks=BREAKS)})
    assert detail["unit_price"] == Decimal("9.00")
    assert detail["b2b_price"] == Decimal("10.00")
    assert (detail["min_quantity"], detail["max_quantity"], detail["increment"]) == (6, 120, 6)
    assert [b["minimum_quantity"] for b in detail["price_breaks"]] == [24, 48]


def test_totals_are_pure_and_use_contextual_prices():
    products = [item(qty=24)]
    pricing = {"p1": contextual(breaks=BREAKS)}
    tax = TaxResult(rate=Decimal("0.1"), tax_amount=Decimal("21.6"))
    first = calculate_totals(products, pricing, Decimal("10"), Decimal("5"), tax)
    assert first == calculate_totals(products, pricing, Decimal("10"), Decimal("5"), tax)
    assert first.subtotal == Decimal("216.00")
    assert first.final_total == Decimal("252.60")

    included = tax.model_copy(update={"is_included": True})
    assert calculate_totals(products, pricing, Decimal("10"), Decimal("5"), included).final_total == Decimal("231.00")


class FakePricing:
    def __init__(self, payloads, error=None):
        self.payloads = payloads
        self.error = error
        self.requests = []

    async def fetch_contextual_pricing(self, variant_id, location_id):
        self.requests.append((variant_id, location_id))
        if self.error:
            raise self.error
        return self.payloads.get(variant_id)


def test_resolver_parses_payloads_and_dedupes_products():
    gw = FakePricing(
        {
            "v-a": {
                "price": "7.25",
                "quantityRule": {"minimum": 4, "maximum": None, "increment": 4},
                "priceBreaks": [{"minimumQuantity": 40, "price": "6.50"}, {"minimumQuantity": 20, "price": "7.00"}],
            }
        }
    )
    items = [item(pid="a", vid="v-a"), item(pid="a", vid="v-a"), item(pid="b", vid="v-b")]
    pricing = asyncio.run(PricingResolver(gw).resolve(items, "loc-1"))
    assert list(pricing) == ["a"]
    assert pricing["a"].price == Decimal("7.25")
    assert pricing["a"].rule.increment == 4
    assert [b.minimum_quantity for b in pricing["a"].rule.price_breaks] == [20, 40]
    assert gw.requests == [("v-a", "loc-1"), ("v-b", "loc-1")]


def test_resolver_rejects_malformed_payload():
    gw = FakePricing({"v-p1": {"quantityRule": {"minimum": 1}}})
    with pytest.raises(ParseError):
        asyncio.run(PricingResolver(gw).resolve([item()], "loc-1"))


def test_resolver_wraps_transport_errors():
    gw = FakePricing({}, error=ConnectionError("boom"))
    with pytest.raises(NetworkError) as exc:
        asyncio.run(PricingResolver(gw).resolve([item()], "loc-1"))
    assert exc.value.operation == "fetch_contextual_pricing"

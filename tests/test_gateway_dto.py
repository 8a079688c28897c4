import asyncio
from decimal import Decimal

import pytest

from wholesale_pos.core.errors import ParseError, PaymentTermsPermissionError
from wholesale_pos.gateways.dto import (
    CompanyLocationDTO,
    PaymentTermsTemplateDTO,
    StoreTaxSettingsDTO,
    parse_payload,
)
from wholesale_pos.gateways.local import LocalGateway
from wholesale_pos.db import SessionLocal


def test_company_location_dto():
    loc = parse_payload(
        CompanyLocationDTO,
        {
            "locationId": "loc-1",
            "companyId": "co-1",
            "name": "Main",
            "address": {"country": "US", "province": "CA"},
            "unexpected": 1,
        },
        "fetch_company_location",
    ).to_domain()
    assert loc.address.province == "CA"
    assert loc.company_name == ""


def test_parse_error_names_operation_and_field():
    with pytest.raises(ParseError) as exc:
        parse_payload(CompanyLocationDTO, {"locationId": "x"}, "fetch_company_location")
    assert exc.value.operation == "fetch_company_location"
    assert "companyId" in exc.value.detail


def test_store_settings_defaults():
    store = parse_payload(StoreTaxSettingsDTO, {"taxesIncluded": True}, "fetch_store_tax_settings").to_domain()
    assert store.taxes_included is True
    assert store.tax_shipping is False


def test_local_gateway_reads_seed(local_gateway):
    customer = asyncio.run(local_gateway.fetch_customer("cust-1"))
    assert customer["name"] == "Jane Buyer"
    assert asyncio.run(local_gateway.fetch_customer("nobody")) is None
    assert asyncio.run(local_gateway.fetch_customer_tax_exemption("cust-2")) is True

    loc = asyncio.run(local_gateway.fetch_company_location("cust-1"))
    assert loc["address"] == {"country": "US", "province": "CA"}
    assert loc["companyName"] == "Acme Salons"

    templates = [
        parse_payload(PaymentTermsTemplateDTO, t, "fetch_payment_terms_templates")
        for t in asyncio.run(local_gateway.fetch_payment_terms_templates())
    ]
    assert [t.id for t in templates] == ["pt-1", "pt-2", "pt-3"]

    pricing = asyncio.run(local_gateway.fetch_contextual_pricing("var-shampoo", "loc-ca"))
    assert Decimal(pricing["price"]) == Decimal("10.00")
    assert pricing["quantityRule"]["increment"] == 6
    assert [b["minimumQuantity"] for b in pricing["priceBreaks"]] == [24, 48]
    assert asyncio.run(local_gateway.fetch_contextual_pricing("var-shampoo", "loc-bc")) is None


def _draft_input(terms=None):
    payload = {
        "customerId": "cust-1",
        "companyLocationId": "loc-ca",
        "poNumber": "PO1",
        "tags": ["B2B"],
        "lineItems": [
            {
                "title": "Shampoo",
                "originalUnitPrice": "10.00",
                "quantity": 6,
                "customAttributes": [{"key": "SKU", "value": "SH-1"}],
            }
        ],
        "customAttributes": [{"key": "Order Number", "value": "B2B-X"}],
    }
    if terms:
        payload["paymentTerms"] = {"paymentTermsTemplateId": terms}
    return payload


def test_local_gateway_draft_order_lifecycle(local_gateway):
    created = asyncio.run(local_gateway.create(_draft_input("pt-2")))
    terms = asyncio.run(local_gateway.fetch_payment_terms(created["id"]))
    assert terms["paymentTermsName"] == "Net 30"

    completed = asyncio.run(local_gateway.complete_draft_order(created["id"]))
    assert completed["orderId"] == f"ORD-{created['id']}"
    assert asyncio.run(local_gateway.create_fulfillment(completed["orderId"])) is True
    assert asyncio.run(local_gateway.create_fulfillment("ORD-missing")) is False

    stored = asyncio.run(local_gateway.fetch_draft_order(created["id"]))
    assert stored["status"] == "completed"
    assert stored["fulfilled"] is True
    assert stored["lineItems"][0]["customAttributes"] == [{"key": "SKU", "value": "SH-1"}]


def test_local_gateway_refuses_terms_when_not_allowed(seeded):
    gw = LocalGateway(SessionLocal, allow_payment_terms=False)
    with pytest.raises(PaymentTermsPermissionError):
        asyncio.run(gw.create(_draft_input("pt-2")))
    created = asyncio.run(gw.create(_draft_input()))
    assert created["name"].startswith("#D")
    assert asyncio.run(gw.fetch_payment_terms(created["id"])) is None

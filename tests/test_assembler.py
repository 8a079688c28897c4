import random
from decimal import Decimal

import pytest
from factories import contextual, item, location, session, store, surcharge

from wholesale_pos.core.errors import AttributeSchemaError
from wholesale_pos.core.schemas import Attribute, DraftOrderLineItem
from wholesale_pos.services.assembler import (
    assemble_line_items,
    build_draft_order_input,
    lines_total,
    validate_line,
)
from wholesale_pos.services.summary import summarize
from wholesale_pos.utils.money import money


def _keys(line):
    return [a.key for a in line.attributes]


def test_line_order_and_attribute_vocabulary():
    s = session(
        cart=[item(pid="a", name="Shampoo", sku="SH-1"), surcharge(name="Pallet Fee", price="12.00", qty=2)],
        pricing={"a": contextual(pid="a", price="8.00")},
        method="economy",
        fee="20.00",
        custom_surcharge="5.00",
        surcharge_description="Liftgate",
    )
    lines = assemble_line_items(s)
    assert [line.kind for line in lines] == [
        "product", "surcharge", "surcharge", "delivery", "tax", "shipping_tax",
    ]
    product, fee, custom, delivery, tax, shipping_tax = lines

    assert _keys(product) == ["SKU", "Product ID", "Variant ID", "B2B Price"]
    assert product.attribute("B2B Price") == "Yes"
    assert product.unit_price == Decimal("8.00")

    # cart surcharges collapse to one line carrying the whole amount
    assert fee.quantity == 1
    assert fee.unit_price == Decimal("24.00")
    assert _keys(fee) == ["Type", "SurchargeType", "Taxable", "Description"]
    assert fee.attribute("Description") == "Liftgate"

    assert custom.title == "Liftgate"
    assert custom.attribute("SurchargeType") == "Custom Surcharge"

    assert delivery.title == "Economy Delivery"
    assert delivery.attribute("Method") == "economy"
    assert delivery.attribute("Taxable") == "Yes"

    assert tax.attribute("Type") == "Tax"
    assert tax.attribute("Rate") == "8.75%"
    assert tax.attribute("Location") == "Main Store"
    assert shipping_tax.attribute("Type") == "Shipping Tax"


def test_product_without_contextual_price():
    lines = assemble_line_items(session(cart=[item(sku="")]))
    assert lines[0].attribute("B2B Price") == "No"
    assert lines[0].attribute("SKU") == "N/A"


def test_no_tax_lines_when_included_or_exempt():
    included = session(cart=[item()], store_settings=store(included=True), method="standard", fee="10")
    assert "tax" not in [line.kind for line in assemble_line_items(included)]
    exempt = session(cart=[item()], exempt=True)
    assert [line.kind for line in assemble_line_items(exempt)] == ["product"]


def test_pickup_has_no_delivery_line():
    s = session(cart=[item()], method="pickup", fee="40")
    assert "delivery" not in [line.kind for line in assemble_line_items(s)]


def test_assembly_is_idempotent():
    s = session(
        cart=[item(pid="a", qty=7, price="3.33"), surcharge()],
        method="express",
        fee="9.99",
    )
    assert assemble_line_items(s) == assemble_line_items(s)


def test_validate_line_rejects_foreign_attributes():
    bad = DraftOrderLineItem(
        kind="delivery",
        title="Delivery Fee",
        unit_price=Decimal("5"),
        quantity=1,
        attributes=(Attribute(key="Type", value="Delivery Fee"), Attribute(key="SKU", value="x")),
    )
    with pytest.raises(AttributeSchemaError):
        validate_line(bad)


def test_validate_line_rejects_wrong_type_marker():
    bad = DraftOrderLineItem(
        kind="tax",
        title="Tax",
        unit_price=Decimal("1"),
        quantity=1,
        attributes=(
            Attribute(key="Type", value="Surcharge"),
            Attribute(key="Rate", value="5%"),
            Attribute(key="Location", value="x"),
        ),
    )
    with pytest.raises(AttributeSchemaError):
        validate_line(bad)


_REGIONS = [("US", "CA"), ("US", "TX"), ("CA", "QC"), ("CA", "BC"), ("GB", None), ("AU", None), ("US", "OR")]


@pytest.mark.parametrize("seed", range(40))
def test_line_sum_matches_final_total_within_a_cent(seed):
    rng = random.Random(seed)
    country, province = rng.choice(_REGIONS)
    # prices arrive with up to four decimals, like catalog and contract prices do
    def price(high):
        return f"{rng.randint(1, high * 10000) / 10000:.4f}"

    cart = [
        item(pid=f"p{i}", qty=rng.randint(1, 400), price=price(500), taxable=rng.random() > 0.2)
        for i in range(rng.randint(1, 6))
    ]
    pricing = {
        i.product_id: contextual(pid=i.product_id, price=price(50), breaks=[(20, price(40))])
        for i in cart
        if rng.random() > 0.5
    }
    if rng.random() > 0.5:
        cart.append(surcharge(price=price(50), qty=rng.randint(1, 30), Taxable=rng.choice(["Yes", "No"])))
    s = session(
        cart=cart,
        pricing=pricing,
        loc=location(country=country, province=province),
        store_settings=store(included=rng.random() > 0.7, shipping=rng.random() > 0.3),
        exempt=rng.random() > 0.8,
        method=rng.choice(["pickup", "economy", "standard", "express", "custom"]),
        fee=price(100),
        custom_surcharge=rng.choice(["0", "3.50", "12.995"]),
    )
    summary = summarize(s)
    lines = assemble_line_items(s, summary)
    assert abs(lines_total(lines) - summary.totals.final_total) <= Decimal("0.01")
    assert lines_total(lines) == money(summary.totals.final_total)


def test_sub_cent_contract_price_reconciles():
    s = session(cart=[item(qty=100)], pricing={"p1": contextual(price="0.125")})
    summary = summarize(s)
    lines = assemble_line_items(s, summary)
    assert lines[0].unit_price == Decimal("0.13")
    assert summary.totals.subtotal == Decimal("13.00")
    assert lines_total(lines) == money(summary.totals.final_total) == Decimal("14.14")


def test_zero_quantity_lines_are_left_out():
    s = session(cart=[item(pid="a", qty=0), item(pid="b", qty=2), surcharge(qty=0)])
    lines = assemble_line_items(s)
    assert [(line.kind, line.attribute("Product ID")) for line in lines] == [("product", "b"), ("tax", None)]
    assert summarize(s).totals.subtotal == Decimal("20.00")


def test_draft_order_input_shape():
    s = session(cart=[item()], exempt=True, payment_terms_template_id="pt-2")
    lines = assemble_line_items(s)
    draft = build_draft_order_input(s, lines, "pt-2")
    assert draft["note"] == "B2B Wholesale Order - B2B-TEST-00001 | PO: PO12345 | Tax exempt"
    assert draft["tags"] == ["B2B", "Wholesale", "POS-Extension", "TaxExempt"]
    assert draft["paymentTerms"] == {"paymentTermsTemplateId": "pt-2"}
    assert draft["lineItems"][0]["originalUnitPrice"] == "10.00"
    assert {"key": "Created By", "value": "B2B POS"} in draft["customAttributes"]
    assert "paymentTerms" not in build_draft_order_input(s, lines)

from decimal import Decimal

import pytest
from factories import item, location, session, store

from wholesale_pos.services.assembler import assemble_line_items, lines_total
from wholesale_pos.services.summary import summarize
from wholesale_pos.services.tax import compute_tax, excluded_base, lookup_region_rate, tax_portion
from wholesale_pos.utils.money import money


@pytest.mark.parametrize(
    "country,province,rate,title",
    [
        ("US", "CA", "0.0875", "CA Sales Tax"),
        ("US", "OR", "0", "OR Sales Tax"),
        ("US", "NV", "0.07", "US Sales Tax"),
        ("CA", "QC", "0.14975", "QC GST+QST"),
        ("CA", "NS", "0.10", "Canada Tax"),
        ("GB", "ENG", "0.20", "UK VAT"),
        ("AU", None, "0.10", "AU GST"),
        ("MX", "JAL", "0", "Tax"),
    ],
)
def test_region_lookup(country, province, rate, title):
    region = lookup_region_rate(country, province)
    assert region.rate == Decimal(rate)
    assert region.title == title


def test_lookup_is_case_insensitive():
    assert lookup_region_rate("us", "ca").title == "CA Sales Tax"


def test_excluded_mode():
    tax = compute_tax("US", "CA", store(), False, Decimal("100"), Decimal("25"))
    assert tax.tax_amount == Decimal("8.75")
    assert tax.shipping_tax_amount == Decimal("2.1875")
    assert not tax.is_included


def test_shipping_not_taxed_when_store_says_so():
    tax = compute_tax("US", "CA", store(shipping=False), False, Decimal("100"), Decimal("25"))
    assert tax.shipping_tax_amount == 0
    assert not tax.shipping_taxable


@pytest.mark.parametrize("country,province", [("US", "CA"), ("CA", "QC"), ("GB", None), ("ZZ", None)])
def test_exempt_is_zero_everywhere(country, province):
    tax = compute_tax(country, province, store(), True, Decimal("999.99"), Decimal("50"))
    assert tax.tax_amount == 0
    assert tax.shipping_tax_amount == 0
    assert tax.title == "Tax Exempt"


def test_missing_store_settings_charges_nothing():
    tax = compute_tax("US", "CA", None, False, Decimal("100"))
    assert tax.tax_amount == 0


@pytest.mark.parametrize("price,rate", [("100", "0.20"), ("19.99", "0.0875"), ("0.01", "0.14975"), ("1234.56", "0.13")])
def test_included_round_trip(price, rate):
    price, rate = Decimal(price), Decimal(rate)
    assert abs(excluded_base(price, rate) * (1 + rate) - price) < Decimal("1e-20")
    assert abs(excluded_base(price, rate) + tax_portion(price, rate, True) - price) < Decimal("1e-20")


def test_scenario_a_us_ca_excluded():
    s = session(cart=[item(qty=10, price="10.00")], method="standard", fee="25.00")
    summary = summarize(s)
    assert money(summary.totals.subtotal) == Decimal("100.00")
    assert money(summary.tax.tax_amount) == Decimal("8.75")
    assert money(summary.tax.shipping_tax_amount) == Decimal("2.19")
    assert money(summary.totals.final_total) == Decimal("135.94")

    lines = assemble_line_items(s, summary)
    assert [line.kind for line in lines] == ["product", "delivery", "tax", "shipping_tax"]
    assert lines[-1].unit_price == Decimal("2.19")
    assert lines_total(lines) == Decimal("135.94")


def test_scenario_b_exempt():
    s = session(cart=[item(qty=10, price="10.00")], method="standard", fee="25.00", exempt=True)
    summary = summarize(s)
    assert summary.totals.tax_amount == 0
    assert money(summary.totals.final_total) == Decimal("125.00")
    lines = assemble_line_items(s, summary)
    assert [line.kind for line in lines] == ["product", "delivery"]
    assert lines[1].attribute("Taxable") == "No"


def test_scenario_c_uk_included():
    s = session(
        cart=[item(qty=1, price="100.00")],
        loc=location(country="GB", province=None),
        store_settings=store(included=True, country="GB"),
    )
    summary = summarize(s)
    assert summary.tax.title == "UK VAT"
    assert money(summary.tax.tax_amount) == Decimal("16.67")
    assert money(summary.totals.final_total) == Decimal("100.00")
    lines = assemble_line_items(s, summary)
    assert [line.kind for line in lines] == ["product"]
    assert lines_total(lines) == Decimal("100.00")

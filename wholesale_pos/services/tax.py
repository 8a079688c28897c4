"""
Region tax lookup and tax-included / tax-excluded tax math.

Rates are business data. Unknown provinces fall back to the country
default and unknown countries to a zero rate. Amounts are returned
unrounded; callers round at presentation time only.
"""
from decimal import Decimal
from typing import Dict, Optional, Tuple

from wholesale_pos.core.schemas import CompanyLocation, StoreTaxSettings, TaxRegionRate, TaxResult
from wholesale_pos.utils.money import ZERO, to_decimal

EXEMPT_TITLE = "Tax Exempt"
DEFAULT_TITLE = "Tax"


def _r(country: str, province: Optional[str], rate: str, title: str) -> TaxRegionRate:
    return TaxRegionRate(country=country, province=province, rate=Decimal(rate), title=title)


# (country, province) -> rate; province None is the country default
TAX_REGION_RATES: Dict[Tuple[str, Optional[str]], TaxRegionRate] = {
    (r.country, r.province): r
    for r in (
        _r("US", "CA", "0.0875", "CA Sales Tax"),
        _r("US", "NY", "0.08", "NY Sales Tax"),
        _r("US", "TX", "0.0625", "TX Sales Tax"),
        _r("US", "FL", "0.06", "FL Sales Tax"),
        _r("US", "WA", "0.065", "WA Sales Tax"),
        _r("US", "OR", "0", "OR Sales Tax"),
        _r("US", None, "0.07", "US Sales Tax"),
        _r("CA", "BC", "0.12", "BC HST"),
        _r("CA", "ON", "0.13", "ON HST"),
        _r("CA", "AB", "0.05", "AB GST"),
        _r("CA", "QC", "0.14975", "QC GST+QST"),
        _r("CA", None, "0.10", "Canada Tax"),
        _r("GB", None, "0.20", "UK VAT"),
        _r("AU", None, "0.10", "AU GST"),
    )
}


def lookup_region_rate(country: Optional[str], province: Optional[str] = None) -> TaxRegionRate:
    country = (country or "").strip().upper()
    province = (province or "").strip().upper() or None
    hit = TAX_REGION_RATES.get((country, province)) or TAX_REGION_RATES.get((country, None))
    if hit is not None:
        return hit
    return TaxRegionRate(country=country, province=province, rate=ZERO, title=DEFAULT_TITLE)


def exempt_result() -> TaxResult:
    return TaxResult(rate=ZERO, title=EXEMPT_TITLE, is_included=False, shipping_taxable=False)


def tax_portion(amount, rate, included: bool) -> Decimal:
    """Tax contained in (included) or added on top of (excluded) ``amount``."""
    amount = to_decimal(amount)
    rate = to_decimal(rate)
    if included:
        return amount - amount / (1 + rate)
    return amount * rate


def excluded_base(amount, rate) -> Decimal:
    """Pre-tax part of a tax-included ``amount``."""
    return to_decimal(amount) / (1 + to_decimal(rate))


def compute_tax(
    country: Optional[str],
    province: Optional[str],
    store: Optional[StoreTaxSettings],
    exempt: bool,
    taxable_base,
    shipping_amount=ZERO,
) -> TaxResult:
    """Tax on ``taxable_base`` and on the shipping/fee amount.

    A missing store configuration is treated like an exemption: nothing can
    be charged without knowing whether prices already include tax.
    """
    if exempt or store is None:
        return exempt_result()

    region = lookup_region_rate(country, province)
    rate = region.rate
    included = store.taxes_included
    tax = tax_portion(max(to_decimal(taxable_base), ZERO), rate, included)
    shipping_tax = ZERO
    if store.tax_shipping:
        shipping_tax = tax_portion(max(to_decimal(shipping_amount), ZERO), rate, included)

    return TaxResult(
        rate=rate,
        title=region.title,
        is_included=included,
        shipping_taxable=store.tax_shipping,
        tax_amount=tax,
        shipping_tax_amount=shipping_tax,
    )


def compute_tax_for_location(
    location: Optional[CompanyLocation],
    store: Optional[StoreTaxSettings],
    exempt: bool,
    taxable_base,
    shipping_amount=ZERO,
) -> TaxResult:
    if location is None:
        return exempt_result()
    return compute_tax(
        location.address.country,
        location.address.province,
        store,
        exempt,
        taxable_base,
        shipping_amount,
    )

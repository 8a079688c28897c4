from decimal import Decimal

from factories import item, surcharge

from wholesale_pos.services import surcharges as sc


def test_explicit_marker_is_surcharge_even_without_keywords():
    line = surcharge(name="Pallet")
    assert sc.is_surcharge(line, use_keywords=False)
    assert sc.is_surcharge(line, use_keywords=True)


def test_keyword_fallback_can_be_switched_off():
    rush = item(name="Rush Widget")
    assert sc.is_surcharge(rush, use_keywords=True)
    assert not sc.is_surcharge(rush, use_keywords=False)


def test_plain_product_is_not_a_surcharge():
    assert not sc.is_surcharge(item(name="Argan Oil 500ml"), use_keywords=True)
    assert sc.get_surcharge_type(item(name="Argan Oil 500ml")) is None
    assert not sc.is_taxable_surcharge(item(name="Argan Oil 500ml"))


def test_taxable_flag():
    assert sc.is_taxable_surcharge(surcharge())
    assert sc.is_taxable_surcharge(surcharge(Taxable="Yes"))
    assert sc.is_taxable_surcharge(surcharge(Taxable="true"))
    assert not sc.is_taxable_surcharge(surcharge(Taxable="No"))
    assert not sc.is_taxable_surcharge(surcharge(Taxable="maybe"))


def test_surcharge_type_precedence():
    assert sc.get_surcharge_type(surcharge(name="Delivery", SurchargeType="Fuel")) == "Fuel"
    assert sc.get_surcharge_type(item(name="x", Type="Environmental Fee"), use_keywords=True) is None
    assert sc.get_surcharge_type(surcharge(name="Rush handling")) == "Rush Order Fee"
    assert sc.get_surcharge_type(surcharge(name="Delivery zone 2")) == "Delivery Fee"
    assert sc.get_surcharge_type(surcharge(name="Handling")) == "Handling Fee"
    assert sc.get_surcharge_type(surcharge(name="Pallet")) == "Custom Surcharge"


def test_type_attribute_other_than_marker_names_keyword_surcharge():
    line = item(name="Fuel charge", Type="Fuel")
    assert sc.get_surcharge_type(line, use_keywords=True) == "Fuel"


def test_classify_preserves_order():
    a, fee, b = item(pid="a"), surcharge(), item(pid="b")
    products, fees = sc.classify([a, fee, b], use_keywords=False)
    assert products == (a, b)
    assert fees == (fee,)


def test_surcharge_totals_split_taxable():
    fees = [surcharge(price="10.00", qty=2), surcharge(name="Eco", price="5.00", Taxable="No")]
    totals = sc.surcharge_totals(fees)
    assert totals == {
        "total": Decimal("25.00"),
        "taxable": Decimal("20.00"),
        "non_taxable": Decimal("5.00"),
    }

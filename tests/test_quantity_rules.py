from decimal import Decimal

import pytest
from factories import contextual, item, session, surcharge

from wholesale_pos.core.config import settings
from wholesale_pos.services.pricing import quantity_rules
from wholesale_pos.services.quantity_rules import (
    check_item,
    is_valid_po_number,
    validate_order_minimums,
    validate_quantity_rules,
)
from wholesale_pos.services.summary import summarize


def _rule(**kw):
    return contextual(**kw).rule


def test_below_minimum_reports_exact_message():
    errors = check_item(item(name="Shampoo", qty=5), _rule(min_q=6))
    assert errors == ["Shampoo: Minimum quantity is 6"]


def test_above_maximum():
    errors = check_item(item(name="Shampoo", qty=13), _rule(min_q=1, max_q=12))
    assert errors == ["Shampoo: Maximum quantity is 12"]


@pytest.mark.parametrize("qty,ok", [(6, True), (12, True), (18, True), (7, False), (11, False)])
def test_increment_counts_from_minimum(qty, ok):
    errors = check_item(item(qty=qty), _rule(min_q=6, inc=6))
    assert (errors == []) is ok


def test_increment_offset_minimum():
    # min 5, step 10: 5, 15, 25 are allowed
    rule = _rule(min_q=5, inc=10)
    assert check_item(item(qty=15), rule) == []
    assert check_item(item(qty=10), rule) == ["Widget: Quantity must be in increments of 10"]


def test_errors_ordered_by_item_then_check():
    a = item(pid="a", name="A", qty=3)
    b = item(pid="b", name="B", qty=13)
    rules = {"a": _rule(pid="a", min_q=4, inc=4), "b": _rule(pid="b", min_q=1, max_q=10, inc=3)}
    result = validate_quantity_rules([a, b], rules)
    assert not result.is_valid
    assert result.errors == (
        "A: Minimum quantity is 4",
        "A: Quantity must be in increments of 4",
        "B: Maximum quantity is 10",
    )


def test_items_without_rule_pass():
    result = validate_quantity_rules([item(qty=0)], {})
    assert result.is_valid
    assert result.errors == ()


def test_price_break_warning_when_one_step_short():
    pricing = {"p1": contextual(min_q=6, inc=6, breaks=[(24, "9.00")])}
    result = validate_quantity_rules([item(name="Shampoo", qty=18)], quantity_rules(pricing), pricing)
    assert result.is_valid
    assert result.warnings == ("Shampoo: Ordering 24 lowers the unit price to $9.00",)


def test_order_minimums():
    items = [item(qty=2)]
    result = validate_order_minimums(Decimal("20.00"), items, minimum_amount=Decimal("50"), minimum_quantity=5, minimum_items=2)
    assert result.errors == (
        "Order minimum is $50.00",
        "Minimum quantity is 5",
        "Minimum 2 different items required",
    )
    assert validate_order_minimums(Decimal("20.00"), items).is_valid


def test_summary_reports_distinct_item_minimum(monkeypatch):
    monkeypatch.setattr(settings, "order_minimum_items", 3)
    cart = [item(pid="a"), item(pid="b"), item(pid="c", qty=0), surcharge()]
    minimums = summarize(session(cart=cart)).order_minimums
    assert minimums.errors == ("Minimum 3 different items required",)

    cart.append(item(pid="d"))
    assert summarize(session(cart=cart)).order_minimums.is_valid


@pytest.mark.parametrize(
    "po,ok",
    [("PO123", True), ("abc", True), ("A" * 20, True), ("AB", False), ("A" * 21, False),
     ("PO-123", False), ("", False), (None, False), ("PO123\n", False)],
)
def test_po_number(po, ok):
    assert is_valid_po_number(po) is ok

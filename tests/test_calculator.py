"""Tests for sequential price calculation."""
from decimal import Decimal
from itertools import permutations

import pytest

from discount_engine.models import DiscountType
from discount_engine.services.calculator import PriceCalculator


@pytest.fixture
def calculator():
    return PriceCalculator()


def test_empty_rule_list_is_identity(calculator):
    """apply(price, []) leaves the price untouched."""
    for price in (Decimal("0"), Decimal("100"), Decimal("19.99")):
        result = calculator.apply(price, [])
        assert result.final_price == price
        assert result.applied_discounts == []
        assert result.total_savings == 0


def test_percentage_rule(calculator, make_rule):
    result = calculator.apply(Decimal("100"), [make_rule(percentage_value=20)])

    assert result.final_price == Decimal("80")
    assert result.total_savings == Decimal("20")


def test_fixed_amount_rule(calculator, make_rule):
    rule = make_rule(discount_type='fixed_amount', discount_value=15)
    result = calculator.apply(Decimal("100"), [rule])

    assert result.final_price == Decimal("85")
    assert result.total_savings == Decimal("15")


def test_fixed_amount_is_capped_at_current_price(calculator, make_rule):
    """A fixed discount larger than the price takes it to zero, never below."""
    rule = make_rule(discount_type='fixed_amount', discount_value=150)
    result = calculator.apply(Decimal("100"), [rule])

    assert result.final_price == 0
    assert result.total_savings == Decimal("100")
    step = result.applied_discounts[0]
    assert step.savings == Decimal("100")
    assert step.price_after == 0


def test_stacked_sequence_records_audit_trail(calculator, make_rule):
    percent = make_rule(name="Twenty off", percentage_value=20)
    fixed = make_rule(name="Fifteen off", discount_type='fixed_amount', discount_value=15)

    result = calculator.apply(Decimal("100"), [percent, fixed])

    assert result.final_price == Decimal("65")
    assert result.total_savings == Decimal("35")
    first, second = result.applied_discounts
    assert (first.rule_id, first.rule_name) == (percent.id, "Twenty off")
    assert (first.price_before, first.price_after, first.savings) == (Decimal("100"), Decimal("80"), Decimal("20"))
    assert (second.price_before, second.price_after, second.savings) == (Decimal("80"), Decimal("65"), Decimal("15"))
    assert second.discount_type == DiscountType.FIXED_AMOUNT


def test_buy_x_get_y_has_no_price_effect(calculator, make_rule):
    rule = make_rule(discount_type='buy_x_get_y', discount_value=0,
                     percentage_value=None, buy_quantity=2, get_quantity=1)
    result = calculator.apply(Decimal("50"), [rule])

    assert result.final_price == Decimal("50")
    assert result.total_savings == 0
    assert len(result.applied_discounts) == 1
    assert result.applied_discounts[0].savings == 0


def test_applied_discounts_are_immutable(calculator, make_rule):
    result = calculator.apply(Decimal("100"), [make_rule()])
    with pytest.raises(Exception):
        result.applied_discounts[0].savings = Decimal("1")


def test_negative_base_price_is_rejected(calculator):
    with pytest.raises(ValueError):
        calculator.apply(Decimal("-1"), [])


def test_reduction_is_monotonic_and_savings_are_conserved(calculator, make_rule):
    """Every ordering of a mixed rule set stays within [0, base] and conserves savings exactly."""
    rules = [
        make_rule(percentage_value=90),
        make_rule(percentage_value=Decimal("33.3")),
        make_rule(discount_type='fixed_amount', discount_value=Decimal("7.45")),
        make_rule(discount_type='fixed_amount', discount_value=Decimal("1000")),
    ]
    for base in (Decimal("0"), Decimal("0.01"), Decimal("99.99"), Decimal("12345.67")):
        for ordering in permutations(rules, 3):
            result = calculator.apply(base, list(ordering))

            assert 0 <= result.final_price <= base
            assert result.total_savings == base - result.final_price
            assert sum(s.savings for s in result.applied_discounts) == result.total_savings
            assert all(s.savings >= 0 for s in result.applied_discounts)

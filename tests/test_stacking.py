"""Tests for stacking resolution and highest-discount selection."""
from decimal import Decimal

import pytest

from discount_engine.services.calculator import PriceCalculator
from discount_engine.services.stacking import (
    StackingResolver,
    comparison_value,
    select_highest_discount,
)


@pytest.fixture
def resolver():
    return StackingResolver()


def test_empty_candidates(resolver):
    assert resolver.resolve([]) == []


def test_non_stacking_picks_highest_discount(resolver, make_rule):
    """Percentage 20 beats fixed 15 when nothing stacks."""
    percent = make_rule(percentage_value=20)
    fixed = make_rule(discount_type='fixed_amount', discount_value=15)

    ordered = resolver.resolve([fixed, percent])

    assert ordered == [percent]
    result = PriceCalculator().apply(Decimal("100"), ordered)
    assert result.final_price == Decimal("80")
    assert result.total_savings == Decimal("20")
    assert len(result.applied_discounts) == 1


def test_non_stacking_tie_keeps_first_seen(resolver, make_rule):
    first = make_rule(percentage_value=25)
    second = make_rule(percentage_value=25)

    assert resolver.resolve([first, second]) == [first]
    assert resolver.resolve([second, first]) == [second]


def test_percentage_and_fixed_compared_as_raw_numbers(make_rule):
    """A fixed 30 beats a 25% rule regardless of the base price."""
    percent = make_rule(percentage_value=25)
    fixed = make_rule(discount_type='fixed_amount', discount_value=30)

    assert comparison_value(percent) == Decimal("25")
    assert comparison_value(fixed) == Decimal("30")
    assert select_highest_discount([percent, fixed]) is fixed


def test_percentage_comparison_ignores_discount_value(make_rule):
    percent = make_rule(percentage_value=10, discount_value=99)
    fixed = make_rule(discount_type='fixed_amount', discount_value=50)

    assert select_highest_discount([percent, fixed]) is fixed


def test_stacking_orders_by_priority_then_type(resolver, make_rule):
    percent = make_rule(percentage_value=20, priority=2, allow_stacking=True)
    fixed = make_rule(discount_type='fixed_amount', discount_value=15, priority=1, allow_stacking=True)

    ordered = resolver.resolve([fixed, percent])

    assert ordered == [percent, fixed]
    result = PriceCalculator().apply(Decimal("100"), ordered)
    assert [s.price_after for s in result.applied_discounts] == [Decimal("80"), Decimal("65")]
    assert result.total_savings == Decimal("35")


def test_equal_priority_applies_percentage_before_fixed_before_bxgy(resolver, make_rule):
    bxgy = make_rule(discount_type='buy_x_get_y', percentage_value=None, discount_value=0,
                     buy_quantity=1, get_quantity=1, allow_stacking=True)
    fixed = make_rule(discount_type='fixed_amount', discount_value=5, allow_stacking=True)
    percent = make_rule(percentage_value=10, allow_stacking=True)

    assert resolver.resolve([bxgy, fixed, percent]) == [percent, fixed, bxgy]


def test_one_stackable_rule_pulls_in_non_stackable_rules(resolver, make_rule):
    """Once any candidate stacks, every candidate is applied."""
    stackable = make_rule(percentage_value=10, priority=1, allow_stacking=True)
    exclusive = make_rule(discount_type='fixed_amount', discount_value=40,
                          priority=5, allow_stacking=False)

    assert resolver.resolve([stackable, exclusive]) == [exclusive, stackable]


def test_stacking_order_is_deterministic(resolver, make_rule):
    rules = [
        make_rule(priority=1, allow_stacking=True),
        make_rule(discount_type='fixed_amount', discount_value=3, priority=1),
        make_rule(priority=3),
        make_rule(priority=1, allow_stacking=True),
    ]
    first = resolver.resolve(rules)
    for _ in range(5):
        assert resolver.resolve(rules) == first
    # stable among full ties: input order kept
    assert [r.id for r in first] == [rules[2].id, rules[0].id, rules[3].id, rules[1].id]

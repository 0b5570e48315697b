# discount_engine/services/stacking.py
from decimal import Decimal
from typing import Iterable, List, Optional
from ..models.discount import DiscountRule, DiscountType

# Application order among rules of equal priority
TYPE_ORDER = {
    DiscountType.PERCENTAGE: 0,
    DiscountType.FIXED_AMOUNT: 1,
    DiscountType.BUY_X_GET_Y: 2,
}

def comparison_value(rule: DiscountRule) -> Decimal:
    """Magnitude used to pick a single rule: percentage points or currency amount"""
    if rule.discount_type == DiscountType.PERCENTAGE:
        return rule.percentage_value if rule.percentage_value is not None else Decimal(0)
    return rule.discount_value

def select_highest_discount(rules: Iterable[DiscountRule]) -> Optional[DiscountRule]:
    """
    Left fold keeping the running winner.

    A candidate replaces the winner only when its comparison value is
    strictly greater, so on ties the earliest rule wins. Note that a
    percentage and a fixed amount are compared as raw numbers.
    """
    winner = None
    for rule in rules:
        if winner is None or comparison_value(rule) > comparison_value(winner):
            winner = rule
    return winner

def stacking_sort_key(rule: DiscountRule):
    return (-rule.priority, TYPE_ORDER[rule.discount_type])

class StackingResolver:
    """Turns a candidate rule set into the sequence the calculator applies"""

    def resolve(self, candidates: Iterable[DiscountRule]) -> List[DiscountRule]:
        candidates = list(candidates)
        if not candidates:
            return []

        if not any(rule.allow_stacking for rule in candidates):
            return [select_highest_discount(candidates)]

        # Once any rule stacks, every candidate is applied, including
        # rules that individually disallow stacking.
        return sorted(candidates, key=stacking_sort_key)

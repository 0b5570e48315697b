# discount_engine/services/calculator.py
from decimal import Decimal
from typing import Iterable, List
from ..models.discount import DiscountRule, DiscountType
from ..models.pricing import AppliedDiscount, PriceResult

ZERO = Decimal(0)

def step_savings(rule: DiscountRule, current_price: Decimal) -> Decimal:
    """Amount one rule takes off the current price"""
    if rule.discount_type == DiscountType.PERCENTAGE:
        return current_price * (rule.percentage_value or ZERO) / Decimal(100)
    if rule.discount_type == DiscountType.FIXED_AMOUNT:
        return min(rule.discount_value, current_price)
    # buy_x_get_y has no per-unit price effect
    return ZERO

class PriceCalculator:
    """Applies an ordered rule sequence to a base price"""

    def apply(self, base_price: Decimal, ordered_rules: Iterable[DiscountRule]) -> PriceResult:
        base_price = Decimal(base_price)
        if base_price < 0:
            raise ValueError(f"Base price must be non-negative, got {base_price}")

        current_price = base_price
        applied: List[AppliedDiscount] = []
        total_savings = ZERO

        for rule in ordered_rules:
            savings = step_savings(rule, current_price)
            new_price = max(ZERO, current_price - savings)
            # keep savings equal to the actual reduction
            savings = current_price - new_price

            applied.append(AppliedDiscount(
                rule_id=rule.id,
                rule_name=rule.name,
                discount_type=rule.discount_type,
                discount_value=rule.discount_value,
                savings=savings,
                price_before=current_price,
                price_after=new_price
            ))
            total_savings += savings
            current_price = new_price

        return PriceResult(
            final_price=current_price,
            applied_discounts=applied,
            total_savings=total_savings
        )

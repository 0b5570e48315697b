"""Pricing engine services"""
from .applicability import RuleApplicabilityFilter
from .stacking import StackingResolver
from .calculator import PriceCalculator
from .cart_service import CartRevalidator
from .lifecycle import RuleLifecycleManager, determine_status
from .discount_service import DiscountService
from .checkout_service import CheckoutService
from .validation import validate_rule

__all__ = [
    'RuleApplicabilityFilter',
    'StackingResolver',
    'PriceCalculator',
    'CartRevalidator',
    'RuleLifecycleManager',
    'determine_status',
    'DiscountService',
    'CheckoutService',
    'validate_rule'
]

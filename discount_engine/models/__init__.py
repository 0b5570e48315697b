"""Pricing engine data models"""
from .discount import (
    DiscountType,
    ApplicableTo,
    RuleStatus,
    DiscountRule,
    RulePage,
    ReconcileResult
)
from .pricing import (
    AppliedDiscount,
    PriceResult,
    CartLineItem,
    PricedLineItem,
    CartRevalidation,
    AuditRecord
)

__all__ = [
    'DiscountType',
    'ApplicableTo',
    'RuleStatus',
    'DiscountRule',
    'RulePage',
    'ReconcileResult',
    'AppliedDiscount',
    'PriceResult',
    'CartLineItem',
    'PricedLineItem',
    'CartRevalidation',
    'AuditRecord'
]

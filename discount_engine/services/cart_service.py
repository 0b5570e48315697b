# discount_engine/services/cart_service.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional
from .applicability import RuleApplicabilityFilter
from .calculator import PriceCalculator
from .stacking import StackingResolver
from ..models.pricing import CartLineItem, CartRevalidation, PricedLineItem
from ..utils.formatters import format_price
from ..utils.time import ensure_utc, utcnow

class CartRevalidator:
    """Prices every cart line against the rules in force right now"""

    def __init__(self, applicability: RuleApplicabilityFilter,
                 resolver: Optional[StackingResolver] = None,
                 calculator: Optional[PriceCalculator] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.applicability = applicability
        self.resolver = resolver or StackingResolver()
        self.calculator = calculator or PriceCalculator()
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    async def price_item(self, item: CartLineItem, now: datetime) -> PricedLineItem:
        """Filter, resolve and calculate for a single line"""
        rules = await self.applicability.evaluate(item.product_id, item.category_id, now)
        ordered = self.resolver.resolve(rules)
        result = self.calculator.apply(item.unit_price, ordered)

        return PricedLineItem(
            product_id=item.product_id,
            category_id=item.category_id,
            unit_price=item.unit_price,
            quantity=item.quantity,
            original_price=item.unit_price,
            discounted_price=result.final_price,
            applied_discounts=result.applied_discounts,
            savings=result.total_savings
        )

    async def revalidate(self, items: Iterable[CartLineItem],
                         now: Optional[datetime] = None) -> CartRevalidation:
        """
        Re-run the whole pricing pipeline for a cart.

        Nothing computed earlier is reused. A failure on any line aborts
        the whole cart, so checkout never proceeds on a partially
        validated discount total.
        """
        now = ensure_utc(now or self.clock())

        priced = []
        for item in items:
            priced.append(await self.price_item(item, now))

        total_savings = sum((p.savings for p in priced), Decimal(0))
        self.logger.debug(
            f"Revalidated cart of {len(priced)} items, savings {format_price(total_savings)}"
        )
        return CartRevalidation(items=priced, total_savings=total_savings)

# discount_engine/services/checkout_service.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional
from .cart_service import CartRevalidator
from ..config import Config
from ..database.audit_store import AuditRecorder
from ..exceptions import StaleDiscountError
from ..models.pricing import CartLineItem, CartRevalidation
from ..utils.formatters import format_price
from ..utils.time import ensure_utc, utcnow

class CheckoutService:
    """Order placement boundary: revalidate, compare with what was shown, audit"""

    def __init__(self, revalidator: CartRevalidator, audit: AuditRecorder,
                 tolerance: Optional[Decimal] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.revalidator = revalidator
        self.audit = audit
        self.tolerance = Config.STALE_PRICE_TOLERANCE if tolerance is None else tolerance
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def check_displayed_total(self, displayed_total: Decimal, revalidation: CartRevalidation) -> None:
        """Raise StaleDiscountError when the current total moved beyond tolerance"""
        current_total = revalidation.discounted_total
        if abs(Decimal(displayed_total) - current_total) > self.tolerance:
            self.logger.warning(
                f"Stale cart price: displayed {format_price(displayed_total)}, "
                f"current {format_price(current_total)}"
            )
            raise StaleDiscountError(Decimal(displayed_total), current_total)

    async def place_order(self, order_id: str, items: Iterable[CartLineItem],
                          displayed_total: Optional[Decimal] = None,
                          now: Optional[datetime] = None) -> CartRevalidation:
        """
        Price the order with the rules in force now and record the discount trail.

        The client's totals are never trusted: the cart is revalidated from
        scratch and the audit trail is only written once pricing succeeded
        and, when a displayed total is supplied, matched it.
        """
        now = ensure_utc(now or self.clock())
        revalidation = await self.revalidator.revalidate(list(items), now)

        if displayed_total is not None:
            self.check_displayed_total(displayed_total, revalidation)

        await self.audit.record(order_id, revalidation.items, now)
        self.logger.info(
            f"Order {order_id} priced at {format_price(revalidation.discounted_total)} "
            f"(savings {format_price(revalidation.total_savings)} per unit)"
        )
        return revalidation

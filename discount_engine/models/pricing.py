from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from .discount import DiscountType

class AppliedDiscount(BaseModel):
    """One rule applied to one line item; never mutated after creation"""
    rule_id: str
    rule_name: str
    discount_type: DiscountType
    discount_value: Decimal
    savings: Decimal
    price_before: Decimal
    price_after: Decimal

    model_config = ConfigDict(frozen=True)

class PriceResult(BaseModel):
    """Outcome of applying an ordered rule sequence to a base price"""
    final_price: Decimal
    applied_discounts: List[AppliedDiscount] = []
    total_savings: Decimal = Decimal(0)

    model_config = ConfigDict(frozen=True)

class CartLineItem(BaseModel):
    """Cart line as supplied by the caller; prices are per unit"""
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)

class PricedLineItem(CartLineItem):
    original_price: Decimal
    discounted_price: Decimal
    applied_discounts: List[AppliedDiscount] = []
    savings: Decimal = Decimal(0)

    @property
    def line_total(self) -> Decimal:
        return self.discounted_price * self.quantity

class CartRevalidation(BaseModel):
    """Checkout-time pricing of a whole cart"""
    items: List[PricedLineItem]
    total_savings: Decimal = Decimal(0)  # per-unit savings, not scaled by quantity

    @property
    def original_total(self) -> Decimal:
        return sum((item.original_price * item.quantity for item in self.items), Decimal(0))

    @property
    def discounted_total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal(0))

class AuditRecord(BaseModel):
    """Persisted trail of one applied discount on a placed order"""
    order_id: str
    product_id: Optional[str] = None
    rule_id: str
    discount_type: DiscountType
    discount_value: Decimal
    original_price: Decimal
    discounted_price: Decimal
    savings_amount: Decimal
    applied_at: datetime

    model_config = ConfigDict(frozen=True, from_attributes=True)

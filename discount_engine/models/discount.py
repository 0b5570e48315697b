from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Set
from pydantic import BaseModel, ConfigDict, Field, field_validator
from .base import TimeStampedModel
from ..utils.time import ensure_utc

class DiscountType(str, Enum):
    """Kinds of price effect a rule can have"""
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    BUY_X_GET_Y = "buy_x_get_y"

class ApplicableTo(str, Enum):
    """Scope of products a rule targets"""
    ALL_PRODUCTS = "all_products"
    SPECIFIC_CATEGORIES = "specific_categories"
    SPECIFIC_PRODUCTS = "specific_products"

class RuleStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    EXPIRED = "expired"

class DiscountRule(TimeStampedModel):
    """Promotional rule as stored by the rule store"""
    id: str
    name: str
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal = Decimal(0)
    percentage_value: Optional[Decimal] = None  # percentage rules only
    buy_quantity: Optional[int] = None  # buy_x_get_y only
    get_quantity: Optional[int] = None  # buy_x_get_y only
    applicable_to: ApplicableTo = ApplicableTo.ALL_PRODUCTS
    category_ids: Set[str] = Field(default_factory=set)
    product_ids: Set[str] = Field(default_factory=set)
    start_date: datetime
    end_date: datetime
    status: RuleStatus = RuleStatus.SCHEDULED  # cached, see RuleLifecycleManager
    allow_stacking: bool = False
    priority: int = 0

    # Usage limits, not used by the price math
    max_uses_per_customer: Optional[int] = None
    max_total_uses: Optional[int] = None
    current_total_uses: int = 0
    min_purchase_amount: Optional[Decimal] = None

    created_by: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("category_ids", "product_ids", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return set() if value is None else value

    def is_within_window(self, now: datetime) -> bool:
        """Half-open validity window [start_date, end_date)"""
        return self.start_date <= ensure_utc(now) < self.end_date

class RulePage(BaseModel):
    """One page of the admin rule listing"""
    items: List[DiscountRule]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

class ReconcileResult(BaseModel):
    """Outcome of one status reconciliation pass"""
    expired_count: int = 0
    activated_count: int = 0
    expired_ids: List[str] = []
    activated_ids: List[str] = []

    model_config = ConfigDict(frozen=True)

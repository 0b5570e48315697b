# discount_engine/services/discount_service.py
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
import pydantic
from .applicability import RuleApplicabilityFilter
from .calculator import PriceCalculator
from .lifecycle import determine_status
from .stacking import StackingResolver
from .validation import TYPE_SPECIFIC_FIELDS, ensure_valid_rule
from ..database.rule_store import RuleStore
from ..exceptions import FieldError, RuleNotFoundError, ValidationError
from ..models.discount import DiscountRule, RulePage, RuleStatus
from ..models.pricing import PriceResult
from ..utils.time import ensure_utc, utcnow

# Fields an administrator may set; status and usage counters are engine-owned
ADMIN_FIELDS = frozenset({
    'name', 'description', 'discount_type', 'discount_value', 'percentage_value',
    'buy_quantity', 'get_quantity', 'applicable_to', 'category_ids', 'product_ids',
    'start_date', 'end_date', 'allow_stacking', 'priority',
    'max_uses_per_customer', 'max_total_uses', 'min_purchase_amount',
})

class DiscountService:
    """Administration and display-time pricing of discount rules"""

    def __init__(self, store: RuleStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock
        self.applicability = RuleApplicabilityFilter(store)
        self.resolver = StackingResolver()
        self.calculator = PriceCalculator()
        self.logger = logging.getLogger(__name__)

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now or self.clock())

    @staticmethod
    def _reject_unknown_fields(data: Dict[str, Any]) -> None:
        unknown = sorted(set(data) - ADMIN_FIELDS)
        if unknown:
            raise ValidationError([FieldError(f, f'Unknown field: {f}') for f in unknown])

    @staticmethod
    def _build_rule(data: Dict[str, Any]) -> DiscountRule:
        """Construct the model, reporting type errors as field errors"""
        try:
            return DiscountRule.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError([
                FieldError(".".join(str(part) for part in err["loc"]) or "rule", err["msg"])
                for err in e.errors()
            ]) from e

    @staticmethod
    def _fields_left_by_type_change(merged: Dict[str, Any], patch: Dict[str, Any]) -> List[str]:
        """Type-specific fields of the old discount type that the patch does not set"""
        if 'discount_type' not in patch:
            return []
        new_type = getattr(patch['discount_type'], 'value', patch['discount_type'])
        return [
            field for field, (owner, _, _) in TYPE_SPECIFIC_FIELDS.items()
            if owner.value != new_type and field not in patch and merged.get(field) is not None
        ]

    async def create_rule(self, rule_data: Dict[str, Any], created_by: Optional[str] = None,
                          now: Optional[datetime] = None) -> DiscountRule:
        """Validate and store a new rule with its initial status"""
        self._reject_unknown_fields(rule_data)
        ensure_valid_rule(rule_data)
        now = self._now(now)

        rule = self._build_rule({
            'allow_stacking': False,
            'priority': 0,
            **{k: v for k, v in rule_data.items() if v is not None},
            'id': str(uuid.uuid4()),
            'current_total_uses': 0,
            'created_by': created_by,
            'created_at': now,
        })
        rule = rule.model_copy(update={
            'status': determine_status(rule.start_date, rule.end_date, now)
        })

        created = await self.store.insert(rule)
        self.logger.info(f"Created discount rule {created.id} ({created.name}) as {created.status.value}")
        return created

    async def update_rule(self, rule_id: str, patch: Dict[str, Any],
                          now: Optional[datetime] = None) -> DiscountRule:
        """Merge a partial update, re-validate the whole rule and store only the changes"""
        self._reject_unknown_fields(patch)
        existing = await self.store.find_by_id(rule_id)
        if existing is None:
            raise RuleNotFoundError(rule_id)

        merged = {**existing.model_dump(), **patch}
        cleared = self._fields_left_by_type_change(merged, patch)
        for field in cleared:
            merged[field] = None
        ensure_valid_rule(merged)
        now = self._now(now)

        candidate = self._build_rule(merged)
        changes = {key: getattr(candidate, key) for key in (*patch, *cleared)}
        if 'start_date' in patch or 'end_date' in patch:
            changes['status'] = determine_status(candidate.start_date, candidate.end_date, now)
        changes['updated_at'] = now

        updated = await self.store.update(rule_id, changes)
        if updated is None:
            raise RuleNotFoundError(rule_id)

        self.logger.info(f"Updated discount rule {rule_id}: {', '.join(sorted(patch)) or 'no fields'}")
        return updated

    async def delete_rule(self, rule_id: str) -> None:
        if not await self.store.delete(rule_id):
            raise RuleNotFoundError(rule_id)
        self.logger.info(f"Deleted discount rule {rule_id}")

    async def get_rule(self, rule_id: str) -> DiscountRule:
        rule = await self.store.find_by_id(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)
        return rule

    async def list_rules(self, status: Optional[RuleStatus] = None,
                         page: int = 1, limit: int = 20) -> RulePage:
        """Paged admin listing, newest first"""
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")
        offset = (page - 1) * limit
        items = await self.store.find_all(status=status, offset=offset, limit=limit)
        total = await self.store.count(status=status)
        return RulePage(items=items, total=total, page=page, limit=limit)

    async def get_active_discount_rules(self, now: Optional[datetime] = None) -> List[DiscountRule]:
        """Rules in force for public display, highest priority first"""
        now = self._now(now)
        rules = await self.store.find_active_rules_at(now)
        rules = [r for r in rules if r.status == RuleStatus.ACTIVE and r.is_within_window(now)]
        return sorted(rules, key=lambda r: -r.priority)

    async def calculate_product_price(self, product_id: Optional[str], category_id: Optional[str],
                                      price: Decimal, now: Optional[datetime] = None) -> PriceResult:
        """Display-time price of one item; checkout must revalidate independently"""
        rules = await self.applicability.evaluate(product_id, category_id, self._now(now))
        return self.calculator.apply(price, self.resolver.resolve(rules))

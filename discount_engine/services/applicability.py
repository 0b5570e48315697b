# discount_engine/services/applicability.py
from datetime import datetime
from typing import List, Optional
from ..database.rule_store import RuleStore
from ..models.discount import ApplicableTo, DiscountRule, RuleStatus
from ..utils.time import ensure_utc

def rule_applies_to(rule: DiscountRule, product_id: Optional[str],
                    category_id: Optional[str]) -> bool:
    """Whether the rule's scope matches the item; absent ids only match all_products"""
    if rule.applicable_to == ApplicableTo.ALL_PRODUCTS:
        return True
    if rule.applicable_to == ApplicableTo.SPECIFIC_CATEGORIES:
        return category_id is not None and category_id in rule.category_ids
    if rule.applicable_to == ApplicableTo.SPECIFIC_PRODUCTS:
        return product_id is not None and product_id in rule.product_ids
    return False

class RuleApplicabilityFilter:
    """Finds the currently active rules that apply to one item"""

    def __init__(self, store: RuleStore):
        self.store = store

    async def evaluate(self, product_id: Optional[str], category_id: Optional[str],
                       now: datetime) -> List[DiscountRule]:
        """
        Active rules applying to the item at now, in store order.

        Store errors propagate unchanged. Rules are keyed by id, so the
        result holds each rule at most once.
        """
        now = ensure_utc(now)
        candidates = await self.store.find_active_rules_at(now)

        applicable = []
        seen = set()
        for rule in candidates:
            if rule.id in seen:
                continue
            if rule.status != RuleStatus.ACTIVE or not rule.is_within_window(now):
                continue
            if rule_applies_to(rule, product_id, category_id):
                seen.add(rule.id)
                applicable.append(rule)
        return applicable

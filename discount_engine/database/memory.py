# discount_engine/database/memory.py
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .audit_store import AuditRecorder
from .rule_store import RuleStore, UPDATABLE_COLUMNS
from ..models.discount import DiscountRule, RuleStatus
from ..models.pricing import AuditRecord
from ..utils.time import ensure_utc


class InMemoryRuleStore(RuleStore):
    """
    Process-local rule store.

    Returned rules are copies, so callers cannot change stored state
    without going through update().
    """

    def __init__(self) -> None:
        self.rules: Dict[str, DiscountRule] = {}

    # Seed helper for tests and the demo command
    def add_rule(self, rule: DiscountRule) -> DiscountRule:
        self.rules[rule.id] = rule.model_copy(deep=True)
        return rule

    async def find_active_rules_at(self, now: datetime) -> List[DiscountRule]:
        now = ensure_utc(now)
        found = [
            rule for rule in self.rules.values()
            if rule.status == RuleStatus.ACTIVE and rule.is_within_window(now)
        ]
        found.sort(key=lambda r: (-r.priority, r.created_at))
        return [r.model_copy(deep=True) for r in found]

    async def find_by_id(self, rule_id: str) -> Optional[DiscountRule]:
        rule = self.rules.get(rule_id)
        return rule.model_copy(deep=True) if rule else None

    async def find_all(self, status: Optional[RuleStatus] = None,
                       offset: int = 0, limit: Optional[int] = None) -> List[DiscountRule]:
        found = [r for r in self.rules.values() if status is None or r.status == status]
        found.sort(key=lambda r: r.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return [r.model_copy(deep=True) for r in found[offset:end]]

    async def count(self, status: Optional[RuleStatus] = None) -> int:
        return sum(1 for r in self.rules.values() if status is None or r.status == status)

    async def insert(self, rule: DiscountRule) -> DiscountRule:
        if rule.id in self.rules:
            raise ValueError(f"Discount rule {rule.id} already exists")
        self.rules[rule.id] = rule.model_copy(deep=True)
        return rule.model_copy(deep=True)

    async def update(self, rule_id: str, patch: Dict[str, Any]) -> Optional[DiscountRule]:
        unknown = set(patch) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")
        rule = self.rules.get(rule_id)
        if rule is None:
            return None
        updated = DiscountRule.model_validate({**rule.model_dump(), **patch})
        self.rules[rule_id] = updated
        return updated.model_copy(deep=True)

    async def delete(self, rule_id: str) -> bool:
        return self.rules.pop(rule_id, None) is not None

    async def bulk_update_status(self, rule_ids: Sequence[str], status: RuleStatus,
                                 now: datetime) -> int:
        changed = 0
        for rule_id in rule_ids:
            rule = self.rules.get(rule_id)
            if rule is None:
                continue
            self.rules[rule_id] = rule.model_copy(update={"status": status, "updated_at": now})
            changed += 1
        return changed

    async def find_drifted(self, now: datetime) -> List[DiscountRule]:
        now = ensure_utc(now)
        drifted = []
        for rule in self.rules.values():
            if rule.status in (RuleStatus.ACTIVE, RuleStatus.SCHEDULED) and rule.end_date <= now:
                drifted.append(rule)
            elif rule.status == RuleStatus.SCHEDULED and rule.is_within_window(now):
                drifted.append(rule)
        return [r.model_copy(deep=True) for r in drifted]


class InMemoryAuditRecorder(AuditRecorder):
    """Keeps audit records in a list"""

    def __init__(self) -> None:
        super().__init__()
        self.records: List[AuditRecord] = []

    async def save(self, records: List[AuditRecord]) -> None:
        self.records.extend(records)

    async def list_records(self, order_id: Optional[str] = None,
                           start: Optional[datetime] = None,
                           end: Optional[datetime] = None) -> List[AuditRecord]:
        return [
            r for r in self.records
            if (order_id is None or r.order_id == order_id)
            and (start is None or r.applied_at >= ensure_utc(start))
            and (end is None or r.applied_at <= ensure_utc(end))
        ]

"""Pytest fixtures for the pricing engine (in-memory stores, fixed clock)."""
from datetime import datetime, timedelta
from decimal import Decimal
from itertools import count

import pytest
import pytz

from discount_engine.database import InMemoryAuditRecorder, InMemoryRuleStore
from discount_engine.exceptions import StoreUnavailable
from discount_engine.models import DiscountRule, RuleStatus

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=pytz.utc)


class UnavailableRuleStore(InMemoryRuleStore):
    """Rule store whose reads fail after a number of successful calls"""

    def __init__(self, fail_after: int = 0):
        super().__init__()
        self.fail_after = fail_after
        self.calls = 0

    async def find_active_rules_at(self, now):
        self.calls += 1
        if self.calls > self.fail_after:
            raise StoreUnavailable("find_active_rules_at", "connection refused")
        return await super().find_active_rules_at(now)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def make_rule():
    """Build a DiscountRule with sensible defaults: 20% off everything, active around NOW"""
    ids = count(1)

    def _make(**overrides) -> DiscountRule:
        n = next(ids)
        data = {
            'id': f"rule-{n}",
            'name': f"Rule {n}",
            'discount_type': 'percentage',
            'discount_value': Decimal("20"),
            'percentage_value': Decimal("20"),
            'applicable_to': 'all_products',
            'start_date': NOW - timedelta(days=1),
            'end_date': NOW + timedelta(days=1),
            'status': RuleStatus.ACTIVE,
            'created_at': NOW - timedelta(days=2) + timedelta(seconds=n),
        }
        if overrides.get('discount_type') == 'fixed_amount':
            data['percentage_value'] = None
        data.update(overrides)
        return DiscountRule.model_validate(data)

    return _make


@pytest.fixture
def store() -> InMemoryRuleStore:
    return InMemoryRuleStore()


@pytest.fixture
def audit() -> InMemoryAuditRecorder:
    return InMemoryAuditRecorder()

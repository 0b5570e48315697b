"""Tests for the asyncpg rule store against a recording connection."""
from contextlib import asynccontextmanager
from datetime import timedelta
from types import SimpleNamespace

import asyncpg
import pytest

from discount_engine.database.rule_store import PostgresRuleStore
from discount_engine.exceptions import RuleInUseError, StoreUnavailable, ValidationError
from discount_engine.models import RuleStatus

from conftest import NOW

pytestmark = pytest.mark.asyncio


class RecordingConnection:
    """Stands in for an asyncpg connection, remembering every statement"""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def _run(self, query, args):
        self.calls.append((" ".join(query.split()), args))
        if self.error is not None:
            raise self.error
        return self.result

    async def fetch(self, query, *args):
        return await self._run(query, args)

    async def execute(self, query, *args):
        return await self._run(query, args)


def _store(conn):
    @asynccontextmanager
    async def acquire():
        yield conn
    return PostgresRuleStore(SimpleNamespace(pool=SimpleNamespace(acquire=acquire)))


async def test_find_drifted_uses_half_open_window(make_rule):
    rule = make_rule(status=RuleStatus.ACTIVE, end_date=NOW)
    conn = RecordingConnection(result=[rule.model_dump()])

    drifted = await _store(conn).find_drifted(NOW)

    query, args = conn.calls[0]
    assert "(status IN ('active', 'scheduled') AND end_date <= $1)" in query
    assert "(status = 'scheduled' AND start_date <= $1 AND end_date > $1)" in query
    assert args == (NOW,)
    assert [r.id for r in drifted] == [rule.id]


async def test_find_active_rules_at_queries_active_window():
    conn = RecordingConnection(result=[])

    await _store(conn).find_active_rules_at(NOW)

    query, args = conn.calls[0]
    assert "WHERE status = $1 AND start_date <= $2 AND end_date > $2" in query
    assert "ORDER BY priority DESC, created_at" in query
    assert args == ('active', NOW)


async def test_bulk_update_status_reports_changed_rows():
    conn = RecordingConnection(result="UPDATE 2")
    later = NOW + timedelta(minutes=1)

    changed = await _store(conn).bulk_update_status(('a', 'b'), RuleStatus.EXPIRED, later)

    query, args = conn.calls[0]
    assert changed == 2
    assert "WHERE id = ANY($3::text[])" in query
    assert args == ('expired', later, ['a', 'b'])


async def test_bulk_update_status_skips_empty_batch():
    conn = RecordingConnection(result="UPDATE 0")

    assert await _store(conn).bulk_update_status([], RuleStatus.ACTIVE, NOW) == 0
    assert conn.calls == []


async def test_delete_reports_whether_a_row_went():
    assert await _store(RecordingConnection(result="DELETE 1")).delete('rule-1') is True
    assert await _store(RecordingConnection(result="DELETE 0")).delete('rule-1') is False


async def test_delete_of_audited_rule_is_refused_not_unavailable():
    conn = RecordingConnection(error=asyncpg.ForeignKeyViolationError(
        'update or delete on table "discount_rules" violates foreign key constraint'))

    with pytest.raises(RuleInUseError) as exc_info:
        await _store(conn).delete('rule-1')

    assert isinstance(exc_info.value, ValidationError)
    assert not isinstance(exc_info.value, StoreUnavailable)
    assert exc_info.value.rule_id == 'rule-1'
    assert exc_info.value.as_dict() == {'id': ['Rule is referenced by order audit records']}


async def test_connection_failure_becomes_store_unavailable():
    conn = RecordingConnection(error=ConnectionRefusedError("connection refused"))

    with pytest.raises(StoreUnavailable) as exc_info:
        await _store(conn).find_active_rules_at(NOW)

    assert exc_info.value.operation == 'find_active_rules_at'


async def test_disconnected_database_is_unavailable():
    store = PostgresRuleStore(SimpleNamespace(pool=None))

    with pytest.raises(StoreUnavailable):
        await store.find_by_id('rule-1')

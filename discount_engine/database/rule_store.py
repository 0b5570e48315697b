# discount_engine/database/rule_store.py
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import asyncpg

from ..exceptions import RuleInUseError, StoreUnavailable
from ..models.discount import DiscountRule, RuleStatus

RULE_COLUMNS = (
    "id", "name", "description", "discount_type", "discount_value",
    "percentage_value", "buy_quantity", "get_quantity", "applicable_to",
    "category_ids", "product_ids", "start_date", "end_date", "status",
    "allow_stacking", "priority", "max_uses_per_customer", "max_total_uses",
    "current_total_uses", "min_purchase_amount", "created_by",
    "created_at", "updated_at",
)

# id and created_at are immutable
UPDATABLE_COLUMNS = frozenset(RULE_COLUMNS) - {"id", "created_at"}


class RuleStore(ABC):
    """Queryable collection of discount rules"""

    @abstractmethod
    async def find_active_rules_at(self, now: datetime) -> List[DiscountRule]:
        """Rules persisted as active whose window contains now"""

    @abstractmethod
    async def find_by_id(self, rule_id: str) -> Optional[DiscountRule]: ...

    @abstractmethod
    async def find_all(self, status: Optional[RuleStatus] = None,
                       offset: int = 0, limit: Optional[int] = None) -> List[DiscountRule]:
        """Newest first"""

    @abstractmethod
    async def count(self, status: Optional[RuleStatus] = None) -> int: ...

    @abstractmethod
    async def insert(self, rule: DiscountRule) -> DiscountRule: ...

    @abstractmethod
    async def update(self, rule_id: str, patch: Dict[str, Any]) -> Optional[DiscountRule]:
        """Apply a partial update, None if the rule does not exist"""

    @abstractmethod
    async def delete(self, rule_id: str) -> bool: ...

    @abstractmethod
    async def bulk_update_status(self, rule_ids: Sequence[str], status: RuleStatus,
                                 now: datetime) -> int:
        """Set status on many rules at once, returns the number changed"""

    @abstractmethod
    async def find_drifted(self, now: datetime) -> List[DiscountRule]:
        """Scheduled/active rules whose dates say they should have moved on"""


def _to_db(value: Any) -> Any:
    """Convert model values to what asyncpg expects"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return value


class PostgresRuleStore(RuleStore):
    """asyncpg-backed rule store over the discount_rules table"""

    def __init__(self, db):
        self.db = db
        self.logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def _connection(self, operation: str):
        if self.db.pool is None:
            raise StoreUnavailable(operation, "database is not connected")
        try:
            async with self.db.pool.acquire() as conn:
                yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            self.logger.error(f"Rule store {operation} failed: {e}")
            raise StoreUnavailable(operation, str(e)) from e

    @staticmethod
    def _to_rule(row) -> DiscountRule:
        return DiscountRule.model_validate(dict(row))

    async def find_active_rules_at(self, now: datetime) -> List[DiscountRule]:
        async with self._connection("find_active_rules_at") as conn:
            rows = await conn.fetch("""
                SELECT *
                FROM discount_rules
                WHERE status = $1
                AND start_date <= $2
                AND end_date > $2
                ORDER BY priority DESC, created_at
            """, RuleStatus.ACTIVE.value, now)
            return [self._to_rule(r) for r in rows]

    async def find_by_id(self, rule_id: str) -> Optional[DiscountRule]:
        async with self._connection("find_by_id") as conn:
            row = await conn.fetchrow("""
                SELECT *
                FROM discount_rules
                WHERE id = $1
            """, rule_id)
            return self._to_rule(row) if row else None

    async def find_all(self, status: Optional[RuleStatus] = None,
                       offset: int = 0, limit: Optional[int] = None) -> List[DiscountRule]:
        query = "SELECT * FROM discount_rules WHERE 1=1"
        params = []
        param_index = 1

        if status is not None:
            query += f" AND status = ${param_index}"
            params.append(_to_db(status))
            param_index += 1

        query += " ORDER BY created_at DESC"

        if limit is not None:
            query += f" LIMIT ${param_index}"
            params.append(limit)
            param_index += 1

        if offset:
            query += f" OFFSET ${param_index}"
            params.append(offset)

        async with self._connection("find_all") as conn:
            rows = await conn.fetch(query, *params)
            return [self._to_rule(r) for r in rows]

    async def count(self, status: Optional[RuleStatus] = None) -> int:
        async with self._connection("count") as conn:
            if status is None:
                total = await conn.fetchval("SELECT COUNT(*) FROM discount_rules")
            else:
                total = await conn.fetchval(
                    "SELECT COUNT(*) FROM discount_rules WHERE status = $1",
                    _to_db(status)
                )
            return total or 0

    async def insert(self, rule: DiscountRule) -> DiscountRule:
        data = rule.model_dump()
        placeholders = ", ".join(f"${i}" for i in range(1, len(RULE_COLUMNS) + 1))
        query = f"""
            INSERT INTO discount_rules ({', '.join(RULE_COLUMNS)})
            VALUES ({placeholders})
            RETURNING *
        """
        async with self._connection("insert") as conn:
            row = await conn.fetchrow(query, *(_to_db(data[c]) for c in RULE_COLUMNS))
            return self._to_rule(row)

    async def update(self, rule_id: str, patch: Dict[str, Any]) -> Optional[DiscountRule]:
        unknown = set(patch) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")
        if not patch:
            return await self.find_by_id(rule_id)

        query_parts = []
        params = []
        param_count = 1

        for key, value in patch.items():
            query_parts.append(f"{key} = ${param_count}")
            params.append(_to_db(value))
            param_count += 1

        params.append(rule_id)
        query = f"""
            UPDATE discount_rules
            SET {', '.join(query_parts)}
            WHERE id = ${param_count}
            RETURNING *
        """

        async with self._connection("update") as conn:
            row = await conn.fetchrow(query, *params)
            return self._to_rule(row) if row else None

    async def delete(self, rule_id: str) -> bool:
        async with self._connection("delete") as conn:
            try:
                result = await conn.execute("""
                    DELETE FROM discount_rules
                    WHERE id = $1
                """, rule_id)
            except asyncpg.ForeignKeyViolationError as e:
                self.logger.warning(f"Refused to delete rule {rule_id}: {e}")
                raise RuleInUseError(rule_id) from e
            return result == "DELETE 1"

    async def bulk_update_status(self, rule_ids: Sequence[str], status: RuleStatus,
                                 now: datetime) -> int:
        if not rule_ids:
            return 0
        async with self._connection("bulk_update_status") as conn:
            result = await conn.execute("""
                UPDATE discount_rules
                SET status = $1, updated_at = $2
                WHERE id = ANY($3::text[])
            """, _to_db(status), now, list(rule_ids))
            # asyncpg returns the command tag, e.g. "UPDATE 3"
            return int(result.split()[-1])

    async def find_drifted(self, now: datetime) -> List[DiscountRule]:
        async with self._connection("find_drifted") as conn:
            rows = await conn.fetch("""
                SELECT *
                FROM discount_rules
                WHERE (status IN ('active', 'scheduled') AND end_date <= $1)
                OR (status = 'scheduled' AND start_date <= $1 AND end_date > $1)
            """, now)
            return [self._to_rule(r) for r in rows]


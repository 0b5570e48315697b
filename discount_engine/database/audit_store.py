# discount_engine/database/audit_store.py
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Iterable, List, Optional

import asyncpg

from ..exceptions import StoreUnavailable
from ..models.pricing import AuditRecord, PricedLineItem


class AuditRecorder(ABC):
    """Sink for the applied-discount trail of placed orders"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def record(self, order_id: str, items: Iterable[PricedLineItem],
                     applied_at: datetime) -> List[AuditRecord]:
        """Flatten the applied discounts of every item and persist them in one batch"""
        records = [
            AuditRecord(
                order_id=order_id,
                product_id=item.product_id,
                rule_id=discount.rule_id,
                discount_type=discount.discount_type,
                discount_value=discount.discount_value,
                original_price=discount.price_before,
                discounted_price=discount.price_after,
                savings_amount=discount.savings,
                applied_at=applied_at
            )
            for item in items
            for discount in item.applied_discounts
        ]

        if records:
            await self.save(records)
            self.logger.info(f"Recorded {len(records)} applied discounts for order {order_id}")

        return records

    @abstractmethod
    async def save(self, records: List[AuditRecord]) -> None: ...

    @abstractmethod
    async def list_records(self, order_id: Optional[str] = None,
                           start: Optional[datetime] = None,
                           end: Optional[datetime] = None) -> List[AuditRecord]:
        """Read-only access for analytics, oldest first"""


class PostgresAuditRecorder(AuditRecorder):
    """Writes to the applied_discounts table"""

    def __init__(self, db):
        super().__init__()
        self.db = db

    @asynccontextmanager
    async def _connection(self, operation: str):
        if self.db.pool is None:
            raise StoreUnavailable(operation, "database is not connected")
        try:
            async with self.db.pool.acquire() as conn:
                yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            self.logger.error(f"Audit store {operation} failed: {e}")
            raise StoreUnavailable(operation, str(e)) from e

    async def save(self, records: List[AuditRecord]) -> None:
        async with self._connection("save_audit") as conn:
            async with conn.transaction():
                await conn.executemany("""
                    INSERT INTO applied_discounts (
                        order_id, product_id, discount_rule_id, discount_type,
                        discount_value, original_price, discounted_price,
                        savings_amount, applied_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                """, [
                    (
                        r.order_id, r.product_id, r.rule_id, r.discount_type.value,
                        r.discount_value, r.original_price, r.discounted_price,
                        r.savings_amount, r.applied_at
                    )
                    for r in records
                ])

    async def list_records(self, order_id: Optional[str] = None,
                           start: Optional[datetime] = None,
                           end: Optional[datetime] = None) -> List[AuditRecord]:
        query = """
            SELECT order_id, product_id, discount_rule_id AS rule_id, discount_type,
                discount_value, original_price, discounted_price,
                savings_amount, applied_at
            FROM applied_discounts
            WHERE 1=1
        """
        params = []
        param_index = 1

        if order_id is not None:
            query += f" AND order_id = ${param_index}"
            params.append(order_id)
            param_index += 1

        if start is not None:
            query += f" AND applied_at >= ${param_index}"
            params.append(start)
            param_index += 1

        if end is not None:
            query += f" AND applied_at <= ${param_index}"
            params.append(end)
            param_index += 1

        query += " ORDER BY applied_at, id"

        async with self._connection("list_audit") as conn:
            rows = await conn.fetch(query, *params)
            return [AuditRecord.model_validate(dict(r)) for r in rows]

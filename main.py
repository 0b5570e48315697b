# main.py
import argparse
import asyncio
import logging
import signal
from datetime import timedelta
from decimal import Decimal

from discount_engine.config import Config, setup_logging
from discount_engine.database import Database, InMemoryRuleStore, PostgresRuleStore
from discount_engine.models import CartLineItem
from discount_engine.services import (
    CartRevalidator,
    DiscountService,
    RuleApplicabilityFilter,
    RuleLifecycleManager
)
from discount_engine.utils.formatters import format_price, savings_percentage
from discount_engine.utils.time import utcnow

async def reconcile_once():
    async with Database() as db:
        result = await RuleLifecycleManager(PostgresRuleStore(db)).reconcile()
        print(f"expired={result.expired_count} activated={result.activated_count}")

async def serve_reconciler(interval: float):
    logger = logging.getLogger(__name__)
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    async with Database() as db:
        manager = RuleLifecycleManager(PostgresRuleStore(db))
        logger.info(f"Reconciling rule statuses every {interval}s")
        await manager.run_forever(interval, stop_event)

async def demo():
    """Price a sample cart against a handful of in-memory rules"""
    now = utcnow()
    store = InMemoryRuleStore()
    service = DiscountService(store, clock=lambda: now)
    window = {'start_date': now - timedelta(days=1), 'end_date': now + timedelta(days=7)}

    await service.create_rule({
        'name': 'Summer sale', 'discount_type': 'percentage',
        'discount_value': 20, 'percentage_value': 20,
        'applicable_to': 'all_products', 'allow_stacking': True, 'priority': 2, **window
    })
    await service.create_rule({
        'name': 'Books 15 off', 'discount_type': 'fixed_amount', 'discount_value': 15,
        'applicable_to': 'specific_categories', 'category_ids': ['books'],
        'allow_stacking': True, 'priority': 1, **window
    })

    revalidator = CartRevalidator(RuleApplicabilityFilter(store), clock=lambda: now)
    cart = await revalidator.revalidate([
        CartLineItem(product_id='p-1', category_id='books', unit_price=Decimal('100')),
        CartLineItem(product_id='p-2', category_id='toys', unit_price=Decimal('40'), quantity=2),
    ])

    for item in cart.items:
        print(
            f"{item.product_id}: {format_price(item.original_price)} -> "
            f"{format_price(item.discounted_price)} "
            f"(-{savings_percentage(item.original_price, item.discounted_price)}%)"
        )
        for applied in item.applied_discounts:
            print(f"    {applied.rule_name}: -{format_price(applied.savings)}")
    print(f"total savings per unit: {format_price(cart.total_savings)}")

def main():
    parser = argparse.ArgumentParser(description="Discount rule engine maintenance commands")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("reconcile", help="Run one rule status reconciliation pass")
    serve = sub.add_parser("serve-reconciler", help="Reconcile rule statuses periodically")
    serve.add_argument("--interval", type=float, default=Config.RECONCILE_INTERVAL_SECONDS)
    sub.add_parser("demo", help="Price a sample cart with in-memory rules")
    args = parser.parse_args()

    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        if args.command == "reconcile":
            asyncio.run(reconcile_once())
        elif args.command == "serve-reconciler":
            asyncio.run(serve_reconciler(args.interval))
        else:
            asyncio.run(demo())
    except Exception as e:
        logger.error(f"Command {args.command} failed: {e}", exc_info=True)
        raise

if __name__ == "__main__":
    main()

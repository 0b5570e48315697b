# discount_engine/utils/formatters.py
from datetime import datetime
import pytz
from decimal import Decimal, ROUND_HALF_UP
from ..config import Config

CENT = Decimal("0.01")

def round_money(amount: Decimal) -> Decimal:
    """Round to cents for display; the engine itself never rounds"""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)

def format_price(amount: Decimal) -> str:
    """Format a price for logs and display"""
    return f"{round_money(amount):,.2f}"

def format_datetime(dt: datetime) -> str:
    """Format a datetime in the configured display timezone"""
    display_tz = pytz.timezone(Config.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(display_tz).strftime("%Y-%m-%d %H:%M:%S")

def savings_percentage(original: Decimal, final: Decimal) -> int:
    """Whole-number percentage saved, 0 for free items"""
    if original <= 0:
        return 0
    ratio = (original - final) / original * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

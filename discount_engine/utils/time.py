# discount_engine/utils/time.py
from datetime import datetime
import pytz

def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(pytz.utc)

def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones to UTC"""
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)

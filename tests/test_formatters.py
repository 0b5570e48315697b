"""Tests for display helpers."""
from datetime import datetime
from decimal import Decimal

from discount_engine.config import Config
from discount_engine.utils.formatters import format_datetime, format_price, round_money, savings_percentage


def test_round_money_half_up():
    assert round_money(Decimal("26.665")) == Decimal("26.67")
    assert round_money(Decimal("0.004")) == Decimal("0.00")


def test_format_price():
    assert format_price(Decimal("1234.5")) == "1,234.50"


def test_savings_percentage():
    assert savings_percentage(Decimal("100"), Decimal("65")) == 35
    assert savings_percentage(Decimal("30"), Decimal("20")) == 33
    assert savings_percentage(Decimal("0"), Decimal("0")) == 0


def test_format_datetime_uses_display_timezone(monkeypatch):
    monkeypatch.setattr(Config, "TIMEZONE", "Asia/Tehran")
    assert format_datetime(datetime(2026, 1, 1, 12, 0)) == "2026-01-01 15:30:00"

"""Presentation helpers for tool payloads."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal


def money(amount: Decimal | float | int, currency: str | None = None) -> str:
    """Format ``amount`` as ``$12.50`` or ``$12.50 USD`` when ``currency`` is given."""

    text = f"${Decimal(str(amount)):.2f}"
    return f"{text} {currency}" if currency else text


def calendar_date(value: dt.datetime | None) -> str | None:
    """``Tue Oct 20 2026``."""

    if value is None:
        return None
    return value.strftime("%a %b %d %Y")


def short_date(value: dt.datetime) -> str:
    """``Oct 20, 2026``."""

    return f"{value:%b} {value.day}, {value.year}"


def long_date(value: dt.datetime) -> str:
    """``Tuesday, October 20, 2026``."""

    return f"{value:%A, %B} {value.day}, {value.year}"

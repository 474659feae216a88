"""Tests for the demo data seeding helpers."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import func, select

from seed import _build_database_url, _load_config, _safe_url, seed_demo_data
from supportdesk.models import Conversation, Faq, Message, Order, Payment


def _count(factory, model) -> int:
    with factory() as session:
        return session.scalar(select(func.count()).select_from(model))


def test_seed_inserts_demo_rows(session_factory):
    counts = seed_demo_data(session_factory)
    assert counts == {"orders": 4, "payments": 5, "faqs": 6, "conversations": 1}
    assert _count(session_factory, Order) == 4
    assert _count(session_factory, Payment) == 5
    assert _count(session_factory, Faq) == 6
    assert _count(session_factory, Message) == 2


def test_seed_is_repeatable(session_factory):
    seed_demo_data(session_factory)
    seed_demo_data(session_factory)
    assert _count(session_factory, Order) == 4
    assert _count(session_factory, Conversation) == 1


def test_seed_links_payments_and_dates(session_factory):
    now = dt.datetime(2026, 10, 19, 12, 0, tzinfo=dt.timezone.utc)
    seed_demo_data(session_factory, now=now)
    with session_factory() as session:
        order = session.scalars(select(Order).where(Order.order_number == "ORD-001")).one()
        payment = session.scalars(
            select(Payment).where(Payment.payment_number == "PAY-001")
        ).one()
        subscription = session.scalars(
            select(Payment).where(Payment.payment_number == "PAY-SUB-001")
        ).one()
    assert payment.order_id == order.id
    assert subscription.order_id is None
    assert order.estimated_delivery.replace(tzinfo=None) == dt.datetime(2026, 10, 21, 12, 0)


def test_database_url_from_pg_variables(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("PGHOST", "db")
    monkeypatch.setenv("PGDATABASE", "support")
    monkeypatch.setenv("PGUSER", "app")
    monkeypatch.setenv("PGPASSWORD", "pw")

    assert _build_database_url() == "postgresql://app:pw@db:5432/support"
    config = _load_config()
    assert config.sqlalchemy_url == "postgresql+psycopg://app:pw@db:5432/support"
    assert config.user_id == "user_demo"
    assert "pw" not in _safe_url(config.db_url)

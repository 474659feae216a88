"""Order, payment and FAQ records consulted by the lookup tools.

The service never writes these tables during a chat turn; they are populated
by ``seed.py`` or by an upstream commerce system.
"""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base
from .chat import _utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(length=36), primary_key=True, default=_new_id)
    order_number: Mapped[str] = mapped_column(String(length=64), unique=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String(length=255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(length=32), nullable=False, default="pending")
    tracking_number: Mapped[Optional[str]] = mapped_column(
        String(length=64), unique=True, nullable=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(length=3), nullable=False, default="USD")
    items: Mapped[List[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    shipping_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    estimated_delivery: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    delivered_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    payments: Mapped[List["Payment"]] = relationship(back_populates="order")


class Payment(Base):
    """A charge against a user, optionally tied to an order.

    ``refund_status`` is one of ``none``, ``requested``, ``processing`` or
    ``completed``.
    """

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(length=36), primary_key=True, default=_new_id)
    payment_number: Mapped[str] = mapped_column(String(length=64), unique=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String(length=255), nullable=False, index=True)
    order_id: Mapped[Optional[str]] = mapped_column(
        String(length=36), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(length=3), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(String(length=32), nullable=False)
    method: Mapped[str] = mapped_column(String(length=32), nullable=False)
    invoice_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refund_status: Mapped[str] = mapped_column(String(length=32), nullable=False, default="none")
    refund_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    refund_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    order: Mapped[Optional[Order]] = relationship(back_populates="payments")


class Faq(Base):
    __tablename__ = "faqs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(length=32), nullable=False, index=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

"""SQLAlchemy declarative base and support desk models.

A single declarative ``Base`` is shared by every model so that
``Base.metadata.create_all`` provisions the whole schema. Conversation models
live in :mod:`.chat`; the read-only commerce data consulted by lookup tools
lives in :mod:`.commerce`.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


# Re-export models so callers can write ``from supportdesk.models import Order``.
from .chat import Conversation, Message
from .commerce import Faq, Order, Payment


__all__ = [
    "Base",
    "Conversation",
    "Faq",
    "Message",
    "Order",
    "Payment",
]

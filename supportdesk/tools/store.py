"""Read-only queries backing the lookup tools."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, sessionmaker

from ..models import Faq, Order, Payment

FAQ_RESULT_LIMIT = 3


def query_words(query: str) -> list[str]:
    """Lower-cased query tokens longer than two characters."""

    return [word for word in query.lower().split(" ") if len(word) > 2]


def faq_matches(faq: Faq, query: str) -> bool:
    """Match on question text, answer text or any shared tag token."""

    needle = query.lower()
    if needle in faq.question.lower() or needle in faq.answer.lower():
        return True
    tags = {str(tag).lower() for tag in faq.tags or []}
    return any(word in tags for word in query_words(query))


class LookupStore:
    """Order, payment and FAQ lookups; returned rows are detached snapshots."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    # Orders --------------------------------------------------------------------
    def find_order(self, identifier: str) -> Optional[Order]:
        with self._session_factory() as session:
            return session.scalars(
                select(Order)
                .where(or_(Order.order_number == identifier, Order.id == identifier))
                .limit(1)
            ).first()

    def find_order_by_tracking(self, tracking_number: str) -> Optional[Order]:
        with self._session_factory() as session:
            return session.scalars(
                select(Order).where(Order.tracking_number == tracking_number).limit(1)
            ).first()

    def list_orders(self, user_id: str, status: str | None = None) -> list[Order]:
        stmt = select(Order).where(Order.user_id == user_id)
        if status and status != "all":
            stmt = stmt.where(Order.status == status)
        with self._session_factory() as session:
            return list(session.scalars(stmt.order_by(Order.created_at.desc())).all())

    # Payments ------------------------------------------------------------------
    def find_payment(self, identifier: str, *, match_order_id: bool = True) -> Optional[Payment]:
        """Find a payment by number or id, then by order id, then by order number."""

        clauses = [Payment.payment_number == identifier, Payment.id == identifier]
        if match_order_id:
            clauses.append(Payment.order_id == identifier)
        with self._session_factory() as session:
            payment = session.scalars(select(Payment).where(or_(*clauses)).limit(1)).first()
            if payment is not None:
                return payment
            order_id = session.scalar(
                select(Order.id).where(Order.order_number == identifier).limit(1)
            )
            if order_id is None:
                return None
            return session.scalars(
                select(Payment).where(Payment.order_id == order_id).limit(1)
            ).first()

    def list_payments(self, user_id: str) -> list[Payment]:
        with self._session_factory() as session:
            return list(
                session.scalars(
                    select(Payment)
                    .where(Payment.user_id == user_id)
                    .order_by(Payment.created_at.desc())
                ).all()
            )

    # Knowledge base ------------------------------------------------------------
    def search_faqs(
        self, query: str, category: str | None = None, limit: int = FAQ_RESULT_LIMIT
    ) -> list[Faq]:
        stmt = select(Faq).order_by(Faq.id)
        if category and category != "all":
            stmt = stmt.where(Faq.category == category)
        with self._session_factory() as session:
            candidates: Iterable[Faq] = session.scalars(stmt).all()
        return [faq for faq in candidates if faq_matches(faq, query)][:limit]

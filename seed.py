"""Utility script to bootstrap the database with demo orders, payments and FAQs."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
import os
import time
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv
from sqlalchemy import delete
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from supportdesk.config import DEFAULT_DATABASE_URL, as_sqlalchemy_url
from supportdesk.models import Conversation, Faq, Message, Order, Payment
from supportdesk.models.session import create_schema, get_sessionmaker, ping

logger = logging.getLogger("seed")

DEMO_USER_ID = "user_demo"
SHIPPING_ADDRESS = "123 Main St, San Francisco, CA 94105"


@dataclass(slots=True)
class SeedConfig:
    """Configuration derived from the environment for the seed process."""

    db_url: str
    sqlalchemy_url: str
    user_id: str


def _safe_url(db_url: str) -> str:
    """Return a version of ``db_url`` with any password redacted."""

    try:
        parsed = make_url(db_url)
    except Exception:  # pragma: no cover - unparsable URLs are logged verbatim
        return db_url
    if parsed.password is None:
        return db_url
    redacted = parsed.set(password="***")
    return redacted.render_as_string(hide_password=False)


def _build_database_url() -> str:
    """Compute the database URL from ``DATABASE_URL`` or ``PG*`` variables."""

    direct = os.getenv("DATABASE_URL")
    if direct:
        return direct

    host = os.getenv("PGHOST")
    database = os.getenv("PGDATABASE")
    user = os.getenv("PGUSER")
    if not all([host, database, user]):
        logger.info("No database configured; using %s", DEFAULT_DATABASE_URL)
        return DEFAULT_DATABASE_URL

    port = os.getenv("PGPORT", "5432")
    password = os.getenv("PGPASSWORD")
    auth = f"{user}:{password}" if password else user
    return f"postgresql://{auth}@{host}:{port}/{database}"


def _load_config() -> SeedConfig:
    db_url = _build_database_url()
    return SeedConfig(
        db_url=db_url,
        sqlalchemy_url=as_sqlalchemy_url(db_url),
        user_id=os.getenv("SEED_USER_ID", DEMO_USER_ID).strip() or DEMO_USER_ID,
    )


def wait_for_database(
    factory: sessionmaker[Session], max_attempts: int = 10, delay: float = 3.0
) -> None:
    """Poll the database with ``SELECT 1`` until it answers."""

    for attempt in range(1, max_attempts + 1):
        if ping(factory):
            logger.info("Database connection established after %d attempt(s)", attempt)
            return
        logger.info(
            "Database not ready (attempt %d/%d); retrying in %.1fs",
            attempt,
            max_attempts,
            delay,
        )
        time.sleep(delay)
    raise RuntimeError("Database did not become ready in time")


def _clear_existing(session: Session) -> None:
    for model in (Message, Conversation, Payment, Order, Faq):
        session.execute(delete(model))


def _build_orders(user_id: str, now: dt.datetime) -> list[Order]:
    day = dt.timedelta(days=1)
    return [
        Order(
            order_number="ORD-001",
            user_id=user_id,
            status="shipped",
            tracking_number="TRK-9876543210",
            total_amount=Decimal("299.99"),
            currency="USD",
            items=[
                {"name": "Wireless Noise-Canceling Headphones", "quantity": 1, "price": 249.99},
                {"name": "USB-C Cable Pack", "quantity": 2, "price": 24.99},
            ],
            shipping_address=SHIPPING_ADDRESS,
            estimated_delivery=now + 2 * day,
        ),
        Order(
            order_number="ORD-002",
            user_id=user_id,
            status="delivered",
            tracking_number="TRK-1234567890",
            total_amount=Decimal("89.50"),
            currency="USD",
            items=[{"name": "Mechanical Keyboard", "quantity": 1, "price": 89.50}],
            shipping_address=SHIPPING_ADDRESS,
            estimated_delivery=now - 5 * day,
            delivered_at=now - 3 * day,
        ),
        Order(
            order_number="ORD-003",
            user_id=user_id,
            status="pending",
            total_amount=Decimal("49.99"),
            currency="USD",
            items=[
                {"name": "Phone Case", "quantity": 1, "price": 29.99},
                {"name": "Screen Protector Pack", "quantity": 1, "price": 19.99},
            ],
            shipping_address=SHIPPING_ADDRESS,
            estimated_delivery=now + 7 * day,
        ),
        Order(
            order_number="ORD-004",
            user_id=user_id,
            status="cancelled",
            total_amount=Decimal("150.00"),
            currency="USD",
            items=[{"name": "Smart Watch", "quantity": 1, "price": 150.00}],
            shipping_address=SHIPPING_ADDRESS,
        ),
    ]


def _build_payments(user_id: str, orders: list[Order]) -> list[Payment]:
    return [
        Payment(
            payment_number="PAY-001",
            user_id=user_id,
            order_id=orders[0].id,
            amount=Decimal("299.99"),
            status="completed",
            method="credit_card",
            invoice_url="https://example.com/invoices/PAY-001.pdf",
        ),
        Payment(
            payment_number="PAY-002",
            user_id=user_id,
            order_id=orders[1].id,
            amount=Decimal("89.50"),
            status="completed",
            method="paypal",
            invoice_url="https://example.com/invoices/PAY-002.pdf",
        ),
        Payment(
            payment_number="PAY-003",
            user_id=user_id,
            order_id=orders[2].id,
            amount=Decimal("49.99"),
            status="pending",
            method="credit_card",
        ),
        Payment(
            payment_number="PAY-004",
            user_id=user_id,
            order_id=orders[3].id,
            amount=Decimal("150.00"),
            status="refunded",
            method="credit_card",
            invoice_url="https://example.com/invoices/PAY-004.pdf",
            refund_status="completed",
            refund_amount=Decimal("150.00"),
            refund_reason="Order cancelled by customer",
        ),
        Payment(
            payment_number="PAY-SUB-001",
            user_id=user_id,
            amount=Decimal("19.99"),
            status="completed",
            method="credit_card",
            invoice_url="https://example.com/invoices/PAY-SUB-001.pdf",
        ),
    ]


FAQS: list[dict[str, object]] = [
    {
        "category": "shipping",
        "question": "How long does standard shipping take?",
        "answer": (
            "Standard shipping typically takes 5-7 business days. Express shipping is "
            "available for 2-3 business days, and overnight shipping for next-day delivery."
        ),
        "tags": ["shipping", "delivery", "time"],
    },
    {
        "category": "returns",
        "question": "What is your return policy?",
        "answer": (
            "We offer a 30-day return policy for all items. Products must be in original "
            "condition and packaging. To initiate a return, contact our support team with "
            "your order number."
        ),
        "tags": ["returns", "refund", "policy"],
    },
    {
        "category": "account",
        "question": "How do I reset my password?",
        "answer": (
            'To reset your password, click "Forgot Password" on the login page, enter your '
            "email address, and follow the instructions in the reset email. The link "
            "expires after 24 hours."
        ),
        "tags": ["password", "account", "login", "reset"],
    },
    {
        "category": "product",
        "question": "Do your electronics come with a warranty?",
        "answer": (
            "Yes! All electronics come with a 1-year manufacturer warranty. We also offer "
            "extended warranty plans for 2 or 3 years at checkout."
        ),
        "tags": ["warranty", "electronics", "product"],
    },
    {
        "category": "shipping",
        "question": "Do you offer international shipping?",
        "answer": (
            "Yes, we ship to over 50 countries. International shipping takes 10-21 business "
            "days. Import duties and taxes may apply."
        ),
        "tags": ["international", "shipping", "global"],
    },
    {
        "category": "returns",
        "question": "How do I track my refund?",
        "answer": (
            "Once your return is received and inspected, refunds are processed within 3-5 "
            "business days. Funds will appear in your account within 5-10 business days "
            "depending on your bank."
        ),
        "tags": ["refund", "return", "tracking"],
    },
]


def seed_demo_data(
    factory: sessionmaker[Session],
    user_id: str = DEMO_USER_ID,
    now: dt.datetime | None = None,
) -> dict[str, int]:
    """Replace all demo rows and return per-table insert counts."""

    now = now or dt.datetime.now(dt.timezone.utc)
    with factory.begin() as session:
        _clear_existing(session)

        orders = _build_orders(user_id, now)
        session.add_all(orders)
        session.flush()

        payments = _build_payments(user_id, orders)
        session.add_all(payments)

        faqs = [Faq(**entry) for entry in FAQS]
        session.add_all(faqs)

        conversation = Conversation(user_id=user_id, title="Order Status Inquiry")
        session.add(conversation)
        session.flush()
        session.add_all(
            [
                Message(
                    conversation_id=conversation.id,
                    role="user",
                    content="Where is my order ORD-001?",
                    created_at=now,
                ),
                Message(
                    conversation_id=conversation.id,
                    role="assistant",
                    content=(
                        "Your order ORD-001 has been shipped! Tracking number: "
                        "TRK-9876543210. Estimated delivery in 2 days."
                    ),
                    agent_type="order",
                    routing_reason="Query references order number",
                    created_at=now + dt.timedelta(seconds=1),
                ),
            ]
        )

    counts = {
        "orders": len(orders),
        "payments": len(payments),
        "faqs": len(faqs),
        "conversations": 1,
    }
    logger.info("Seeded demo data for %s: %s", user_id, counts)
    return counts


async def main() -> None:
    """Entrypoint for the seeding workflow."""

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    config = _load_config()
    logger.info("Starting seed process using %s", _safe_url(config.db_url))

    session_factory = get_sessionmaker(database_url=config.sqlalchemy_url)
    await asyncio.to_thread(wait_for_database, session_factory)
    await asyncio.to_thread(create_schema, session_factory)
    logger.info("Schema ensured successfully.")

    await asyncio.to_thread(seed_demo_data, session_factory, config.user_id)

    logger.info("Demo user: %s", config.user_id)
    logger.info(
        "Orders: ORD-001 (shipped), ORD-002 (delivered), ORD-003 (pending), ORD-004 (cancelled)"
    )
    logger.info("Tracking: TRK-9876543210 (for ORD-001)")
    logger.info("Payments: PAY-001 through PAY-SUB-001")


if __name__ == "__main__":
    asyncio.run(main())

"""Invoice, refund and payment-history lookups for the billing agent."""

from __future__ import annotations

from decimal import Decimal
from functools import partial

from pydantic import BaseModel, Field

from ..models import Payment
from .base import Tool, ToolResult, not_found
from .formatting import long_date, money, short_date
from .store import LookupStore

REFUND_MESSAGES = {
    "none": "No refund has been requested for this payment.",
    "requested": (
        "Your refund request has been received and is awaiting review. "
        "This typically takes 1-2 business days."
    ),
    "processing": (
        "Your refund is being processed. Funds will be returned within 3-5 business days."
    ),
}


class PaymentLookupArgs(BaseModel):
    identifier: str = Field(
        ...,
        min_length=1,
        description="Payment number (PAY-001), order number (ORD-001), or payment ID",
    )


class ListPaymentsArgs(BaseModel):
    user_id: str = Field(..., min_length=1, description="The user ID to fetch payments for")


def refund_status_message(payment: Payment) -> str:
    if payment.refund_status == "completed":
        refunded = payment.refund_amount if payment.refund_amount else payment.amount
        return (
            f"Your refund of {money(refunded)} has been completed. It may take 5-10 "
            "business days to appear in your account depending on your bank."
        )
    return REFUND_MESSAGES.get(payment.refund_status, "Unknown refund status.")


def get_invoice_details(store: LookupStore, args: PaymentLookupArgs) -> ToolResult:
    payment = store.find_payment(args.identifier)
    if payment is None:
        return not_found(
            f'No invoice found for "{args.identifier}". '
            "Please check the order or payment number."
        )
    return {
        "found": True,
        "invoice": {
            "paymentNumber": payment.payment_number,
            "amount": money(payment.amount, payment.currency),
            "status": payment.status,
            "paymentMethod": payment.method,
            "date": long_date(payment.created_at),
            "invoiceUrl": payment.invoice_url or None,
            "refundStatus": payment.refund_status,
        },
    }


def check_refund_status(store: LookupStore, args: PaymentLookupArgs) -> ToolResult:
    payment = store.find_payment(args.identifier, match_order_id=False)
    if payment is None:
        return not_found(f'No payment found for "{args.identifier}".')
    return {
        "found": True,
        "paymentNumber": payment.payment_number,
        "originalAmount": money(payment.amount, payment.currency),
        "refundStatus": payment.refund_status,
        "refundAmount": money(payment.refund_amount) if payment.refund_amount else None,
        "refundReason": payment.refund_reason or None,
        "statusMessage": refund_status_message(payment),
        "paymentMethod": payment.method,
    }


def list_user_payments(store: LookupStore, args: ListPaymentsArgs) -> ToolResult:
    payments = store.list_payments(args.user_id)
    if not payments:
        return not_found("No payment history found for this account.")
    total_spent = sum(
        (Decimal(str(p.amount)) for p in payments if p.status == "completed"),
        Decimal("0"),
    )
    return {
        "found": True,
        "totalTransactions": len(payments),
        "totalSpent": money(total_spent),
        "payments": [
            {
                "paymentNumber": p.payment_number,
                "amount": money(p.amount, p.currency),
                "status": p.status,
                "method": p.method,
                "date": short_date(p.created_at),
                "invoiceUrl": p.invoice_url or "N/A",
                "refundStatus": p.refund_status if p.refund_status != "none" else None,
            }
            for p in payments
        ],
    }


def build_billing_tools(store: LookupStore) -> list[Tool]:
    return [
        Tool(
            "get_invoice_details",
            "Fetch details of a payment or invoice by payment number or order number. "
            "Use when customer asks about charges, receipts, or invoices.",
            PaymentLookupArgs,
            partial(get_invoice_details, store),
            failure_message="Failed to retrieve invoice details.",
        ),
        Tool(
            "check_refund_status",
            "Check the status of a refund request. Use when customer asks about their refund.",
            PaymentLookupArgs,
            partial(check_refund_status, store),
            failure_message="Failed to retrieve refund status.",
        ),
        Tool(
            "list_user_payments",
            "List all payments and transactions for the current user. "
            "Use when customer asks about billing history or charges.",
            ListPaymentsArgs,
            partial(list_user_payments, store),
            failure_message="Failed to retrieve payment history.",
        ),
    ]

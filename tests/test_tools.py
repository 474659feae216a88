import asyncio
import datetime as dt
from decimal import Decimal

import pytest

from supportdesk.conversations.repository import SqlAlchemyConversationRepository
from supportdesk.tools import LookupStore, ToolSet, build_billing_tools, build_order_tools
from supportdesk.tools.base import Tool
from supportdesk.tools.billing import (
    ListPaymentsArgs,
    PaymentLookupArgs,
    check_refund_status,
    get_invoice_details,
    list_user_payments,
)
from supportdesk.tools.formatting import calendar_date, long_date, money, short_date
from supportdesk.tools.order import (
    DeliveryStatusArgs,
    ListOrdersArgs,
    OrderDetailsArgs,
    check_delivery_status,
    get_order_details,
    list_user_orders,
)
from supportdesk.tools.support import (
    ConversationContextArgs,
    NoArgs,
    SearchFaqArgs,
    build_support_tools,
    get_conversation_context,
    get_support_categories,
    search_faq,
)


@pytest.fixture
def store(seeded):
    return LookupStore(seeded)


def test_formatting_helpers():
    day = dt.datetime(2026, 10, 20, 9, 30)
    assert money(Decimal("12.5")) == "$12.50"
    assert money(10, "USD") == "$10.00 USD"
    assert calendar_date(day) == "Tue Oct 20 2026"
    assert calendar_date(None) is None
    assert short_date(day) == "Oct 20, 2026"
    assert long_date(day) == "Tuesday, October 20, 2026"


# Orders ----------------------------------------------------------------------
def test_get_order_details_found(store):
    result = get_order_details(store, OrderDetailsArgs(identifier="ORD-001"))
    assert result["found"] is True
    order = result["order"]
    assert order["status"] == "shipped"
    assert order["trackingNumber"] == "TRK-9876543210"
    assert order["totalAmount"] == "$299.99 USD"
    assert len(order["items"]) == 2
    assert order["deliveredAt"] is None


def test_get_order_details_placeholders(store):
    order = get_order_details(store, OrderDetailsArgs(identifier="ORD-004"))["order"]
    assert order["trackingNumber"] == "Not yet assigned"
    assert order["estimatedDelivery"] == "Not available"


def test_get_order_details_not_found(store):
    result = get_order_details(store, OrderDetailsArgs(identifier="ORD-999"))
    assert result == {
        "found": False,
        "message": 'No order found for "ORD-999". Please check the order number.',
    }


def test_check_delivery_status(store):
    result = check_delivery_status(store, DeliveryStatusArgs(tracking_number="TRK-9876543210"))
    assert result["found"] is True
    assert result["tracking"]["orderNumber"] == "ORD-001"
    assert result["tracking"]["currentLocation"] == "In transit - Regional Distribution Center"

    delivered = check_delivery_status(store, DeliveryStatusArgs(tracking_number="TRK-1234567890"))
    assert delivered["tracking"]["currentLocation"] == "Delivered to destination"
    assert delivered["tracking"]["deliveredAt"] is not None

    missing = check_delivery_status(store, DeliveryStatusArgs(tracking_number="TRK-0"))
    assert missing["found"] is False
    assert "TRK-0" in missing["message"]


def test_list_user_orders(store):
    result = list_user_orders(store, ListOrdersArgs(user_id="user_demo"))
    assert result["found"] is True
    assert result["totalOrders"] == 4
    numbers = {o["orderNumber"] for o in result["orders"]}
    assert numbers == {"ORD-001", "ORD-002", "ORD-003", "ORD-004"}
    pending = next(o for o in result["orders"] if o["orderNumber"] == "ORD-003")
    assert pending["trackingNumber"] == "N/A"
    assert pending["itemCount"] == 2
    assert pending["totalAmount"] == "$49.99"

    shipped = list_user_orders(store, ListOrdersArgs(user_id="user_demo", status="shipped"))
    assert [o["orderNumber"] for o in shipped["orders"]] == ["ORD-001"]

    everything = list_user_orders(store, ListOrdersArgs(user_id="user_demo", status="all"))
    assert everything["totalOrders"] == 4


def test_list_user_orders_empty(store):
    result = list_user_orders(store, ListOrdersArgs(user_id="nobody"))
    assert result == {"found": False, "message": "No orders found for this account."}


# Billing ---------------------------------------------------------------------
def test_get_invoice_details_by_payment_and_order_number(store):
    invoice = get_invoice_details(store, PaymentLookupArgs(identifier="PAY-001"))["invoice"]
    assert invoice["amount"] == "$299.99 USD"
    assert invoice["paymentMethod"] == "credit_card"
    assert invoice["invoiceUrl"] == "https://example.com/invoices/PAY-001.pdf"

    by_order = get_invoice_details(store, PaymentLookupArgs(identifier="ORD-002"))
    assert by_order["invoice"]["paymentNumber"] == "PAY-002"

    pending = get_invoice_details(store, PaymentLookupArgs(identifier="PAY-003"))
    assert pending["invoice"]["invoiceUrl"] is None


def test_get_invoice_details_not_found(store):
    result = get_invoice_details(store, PaymentLookupArgs(identifier="PAY-404"))
    assert result["found"] is False
    assert result["message"].startswith('No invoice found for "PAY-404"')


def test_check_refund_status_messages(store):
    refunded = check_refund_status(store, PaymentLookupArgs(identifier="PAY-004"))
    assert refunded["refundStatus"] == "completed"
    assert refunded["refundAmount"] == "$150.00"
    assert refunded["refundReason"] == "Order cancelled by customer"
    assert refunded["statusMessage"].startswith("Your refund of $150.00 has been completed.")

    none = check_refund_status(store, PaymentLookupArgs(identifier="PAY-001"))
    assert none["refundAmount"] is None
    assert none["statusMessage"] == "No refund has been requested for this payment."

    by_order = check_refund_status(store, PaymentLookupArgs(identifier="ORD-004"))
    assert by_order["paymentNumber"] == "PAY-004"

    missing = check_refund_status(store, PaymentLookupArgs(identifier="nope"))
    assert missing == {"found": False, "message": 'No payment found for "nope".'}


def test_list_user_payments_totals(store):
    result = list_user_payments(store, ListPaymentsArgs(user_id="user_demo"))
    assert result["found"] is True
    assert result["totalTransactions"] == 5
    # Only completed payments count: 299.99 + 89.50 + 19.99
    assert result["totalSpent"] == "$409.48"
    refunds = {p["paymentNumber"]: p["refundStatus"] for p in result["payments"]}
    assert refunds["PAY-004"] == "completed"
    assert refunds["PAY-001"] is None

    empty = list_user_payments(store, ListPaymentsArgs(user_id="nobody"))
    assert empty == {"found": False, "message": "No payment history found for this account."}


# Support ---------------------------------------------------------------------
def test_search_faq_text_and_tag_matching(store):
    result = search_faq(store, SearchFaqArgs(query="warranty"))
    assert result["found"] is True
    assert result["results"][0]["category"] == "product"

    by_tag = search_faq(store, SearchFaqArgs(query="global delivery"))
    questions = [r["question"] for r in by_tag["results"]]
    assert "Do you offer international shipping?" in questions


def test_search_faq_limits_and_category(store):
    capped = search_faq(store, SearchFaqArgs(query="a"))
    assert len(capped["results"]) == 3

    scoped = search_faq(store, SearchFaqArgs(query="refund", category="shipping"))
    assert scoped["found"] is False
    assert scoped["message"] == 'No FAQ found for "refund". Answering from general knowledge.'


def test_get_conversation_context(seeded):
    repo = SqlAlchemyConversationRepository(seeded)
    conversation = repo.list_conversations("user_demo")[0]

    result = get_conversation_context(
        repo, ConversationContextArgs(conversation_id=str(conversation.id))
    )
    assert result["found"] is True
    assert result["messageCount"] == 2
    assert [m["agentType"] for m in result["messages"]] == ["user", "order"]

    bad = get_conversation_context(repo, ConversationContextArgs(conversation_id="not-a-uuid"))
    assert bad == {"found": False, "message": "No previous messages in this conversation."}


def test_get_support_categories():
    result = get_support_categories(NoArgs())
    assert result["found"] is True
    assert len(result["categories"]) == 5
    assert result["categories"][0]["name"] == "Shipping & Delivery"


# Tool plumbing ---------------------------------------------------------------
def test_tool_schemas_expose_snake_case_names(store, seeded):
    tools = ToolSet(
        build_order_tools(store)
        + build_billing_tools(store)
        + build_support_tools(store, SqlAlchemyConversationRepository(seeded))
    )
    assert len(tools) == 9
    schema = tools.schemas()[0]
    assert schema["type"] == "function"
    assert schema["function"]["name"] == "get_order_details"
    assert "identifier" in schema["function"]["parameters"]["properties"]


def test_tool_invoke_rejects_bad_arguments(store):
    tools = ToolSet(build_order_tools(store))
    result = asyncio.run(tools.invoke("get_order_details", '{"identifier": ""}'))
    assert result == {"found": False, "message": "Invalid arguments for get_order_details."}

    ok = asyncio.run(tools.invoke("get_order_details", '{"identifier": "ORD-002"}'))
    assert ok["order"]["status"] == "delivered"

    unknown = asyncio.run(tools.invoke("drop_tables", "{}"))
    assert unknown["found"] is False


def test_tool_invoke_absorbs_handler_failures(caplog):
    def explode(args):
        raise RuntimeError("database is down")

    tool = Tool(
        "get_order_details",
        "broken",
        OrderDetailsArgs,
        explode,
        failure_message="Failed to retrieve order details.",
    )
    result = asyncio.run(tool.invoke({"identifier": "ORD-001"}))
    assert result == {"found": False, "message": "Failed to retrieve order details."}
    assert "Tool get_order_details failed" in caplog.text

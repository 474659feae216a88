"""Order lookups for the order agent."""

from __future__ import annotations

from functools import partial
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .base import Tool, ToolResult, not_found
from .formatting import calendar_date, money
from .store import LookupStore

STATUS_LOCATIONS = {
    "pending": "Awaiting processing at warehouse",
    "processing": "Being prepared at fulfillment center",
    "shipped": "In transit - Regional Distribution Center",
    "delivered": "Delivered to destination",
    "cancelled": "Order cancelled",
}


class OrderDetailsArgs(BaseModel):
    identifier: str = Field(..., min_length=1, description="Order number like ORD-001 or order ID")


class DeliveryStatusArgs(BaseModel):
    tracking_number: str = Field(..., min_length=1, description="Tracking number e.g. TRK-9876543210")


class ListOrdersArgs(BaseModel):
    user_id: str = Field(..., min_length=1, description="User ID to fetch orders for")
    status: Optional[
        Literal["pending", "processing", "shipped", "delivered", "cancelled", "all"]
    ] = None


def get_order_details(store: LookupStore, args: OrderDetailsArgs) -> ToolResult:
    order = store.find_order(args.identifier)
    if order is None:
        return not_found(
            f'No order found for "{args.identifier}". Please check the order number.'
        )
    return {
        "found": True,
        "order": {
            "orderNumber": order.order_number,
            "status": order.status,
            "trackingNumber": order.tracking_number or "Not yet assigned",
            "totalAmount": money(order.total_amount, order.currency),
            "items": order.items,
            "shippingAddress": order.shipping_address or "Not specified",
            "estimatedDelivery": calendar_date(order.estimated_delivery) or "Not available",
            "deliveredAt": calendar_date(order.delivered_at),
            "placedOn": calendar_date(order.created_at),
        },
    }


def check_delivery_status(store: LookupStore, args: DeliveryStatusArgs) -> ToolResult:
    order = store.find_order_by_tracking(args.tracking_number)
    if order is None:
        return not_found(f'No shipment found for tracking number "{args.tracking_number}".')
    return {
        "found": True,
        "tracking": {
            "trackingNumber": args.tracking_number,
            "orderNumber": order.order_number,
            "currentStatus": order.status,
            "currentLocation": STATUS_LOCATIONS.get(order.status, "Unknown"),
            "estimatedDelivery": calendar_date(order.estimated_delivery) or "Not available",
            "deliveredAt": calendar_date(order.delivered_at),
        },
    }


def list_user_orders(store: LookupStore, args: ListOrdersArgs) -> ToolResult:
    orders = store.list_orders(args.user_id, args.status)
    if not orders:
        return not_found("No orders found for this account.")
    return {
        "found": True,
        "totalOrders": len(orders),
        "orders": [
            {
                "orderNumber": order.order_number,
                "status": order.status,
                "totalAmount": money(order.total_amount),
                "itemCount": len(order.items) if isinstance(order.items, list) else 0,
                "placedOn": calendar_date(order.created_at),
                "trackingNumber": order.tracking_number or "N/A",
            }
            for order in orders
        ],
    }


def build_order_tools(store: LookupStore) -> list[Tool]:
    return [
        Tool(
            "get_order_details",
            "Fetch full details of a customer order by order number (e.g. ORD-001) or order ID.",
            OrderDetailsArgs,
            partial(get_order_details, store),
            failure_message="Failed to retrieve order details.",
        ),
        Tool(
            "check_delivery_status",
            "Check delivery and tracking status using a tracking number like TRK-9876543210.",
            DeliveryStatusArgs,
            partial(check_delivery_status, store),
            failure_message="Failed to retrieve tracking info.",
        ),
        Tool(
            "list_user_orders",
            "List all orders for the current user. Use when asked about order history.",
            ListOrdersArgs,
            partial(list_user_orders, store),
            failure_message="Failed to retrieve orders.",
        ),
    ]

"""Read-only lookup tools available to the specialist agents."""

from .base import Tool, ToolResult, ToolSet, not_found
from .billing import build_billing_tools
from .order import build_order_tools
from .store import LookupStore
from .support import build_support_tools

__all__ = [
    "LookupStore",
    "Tool",
    "ToolResult",
    "ToolSet",
    "build_billing_tools",
    "build_order_tools",
    "build_support_tools",
    "not_found",
]

# app/models/enums.py
#
# Enums restrict data to specific values. This prevents "typo" bugs in the data.

from enum import Enum


class UserRole(str, Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


class SenderRole(str, Enum):
    """Who wrote a chat message (display role)."""
    CUSTOMER = "customer"
    AUTOMATED_AGENT = "automated-agent"
    STAFF = "staff"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    # Declaration order IS the lifecycle order; the engine relies on it.
    PENDING = "PENDING"
    PICKING_UP = "PICKING_UP"
    WASHING = "WASHING"
    DELIVERY = "DELIVERY"
    DELIVERED = "DELIVERED"


class ThreadControl(str, Enum):
    AI_OWNED = "AI_OWNED"
    HUMAN_OWNED = "HUMAN_OWNED"


# The fixed forward sequence. No skipping, no going backward.
ORDER_FLOW = list(OrderStatus)

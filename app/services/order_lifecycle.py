# app/services/order_lifecycle.py
#
# The order status state machine.
#
#   PENDING → PICKING_UP → WASHING → DELIVERY → DELIVERED
#
# - advance() moves exactly ONE step forward, never skips, never goes back.
# - The first three steps each post one notice into the customer's chat.
# - DELIVERED is terminal; advancing it is a silent no-op.
#
# confirm_delivery() is the one sanctioned exception: the customer's
# confirmation at the door forces DELIVERED from ANY status.

import logging
import random
import secrets
import string
from datetime import datetime
from typing import Iterable, List, Optional, Union

from app.models.enums import ORDER_FLOW, OrderStatus
from app.models.schemas import OrderItem, OrderRecord, UserRecord
from app.services.chat_arbiter import ChatOwnershipArbiter
from app.store.repository import RecordStore

logger = logging.getLogger(__name__)

# Customer-facing notice for each transition that has one.
TRANSITION_NOTICES = {
    (OrderStatus.PENDING, OrderStatus.PICKING_UP):
        "🚀 Your order #{order_id} has been accepted! Our rider is now heading to your location for pickup.",
    (OrderStatus.PICKING_UP, OrderStatus.WASHING):
        "🫧 Update: Order #{order_id} has arrived at our facility and the washing process has started!",
    (OrderStatus.WASHING, OrderStatus.DELIVERY):
        "🚚 Fresh and Clean! Order #{order_id} is out for delivery. "
        "Please have your verification code {delivery_code} ready.",
}

ID_ALPHABET = string.ascii_uppercase + string.digits


def new_order_id() -> str:
    return "RD-" + "".join(secrets.choice(ID_ALPHABET) for _ in range(6))


def new_delivery_code() -> str:
    return str(random.randint(1000, 9999))


def next_status(status: OrderStatus) -> Optional[OrderStatus]:
    """The single next state, or None for the terminal one."""
    idx = ORDER_FLOW.index(status)
    if idx < len(ORDER_FLOW) - 1:
        return ORDER_FLOW[idx + 1]
    return None


class OrderLifecycleEngine:
    """
    Args:
        store:   the shared record store
        arbiter: the write path for the customer notices
    """

    def __init__(self, store: RecordStore, arbiter: ChatOwnershipArbiter):
        self.store = store
        self.arbiter = arbiter

    # =========================================================================
    # Creation
    # =========================================================================
    def place_order(
        self,
        customer: UserRecord,
        items: Iterable[Union[OrderItem, dict]],
        pickup_address: Optional[str] = None,
    ) -> OrderRecord:
        """
        Creates a PENDING order. The total is computed here, once, and never again.
        """
        line_items = []
        for idx, item in enumerate(items, start=1):
            if isinstance(item, dict):
                item = OrderItem(**{"id": str(idx), **item})
            line_items.append(item)

        order = OrderRecord(
            id=new_order_id(),
            customer_id=customer.id,
            customer_name=customer.full_name,
            items=line_items,
            total_amount=sum(i.price * i.quantity for i in line_items),
            status=OrderStatus.PENDING,
            created_at=datetime.utcnow(),
            pickup_address=pickup_address,
            delivery_code=new_delivery_code(),
        )
        self.store.save_order(order)
        logger.info("🧺 Order %s placed by %s (Ksh %g)", order.id, customer.id, order.total_amount)
        return order

    # =========================================================================
    # Transitions
    # =========================================================================
    def advance(self, order_id: str, staff: UserRecord) -> Optional[OrderRecord]:
        """
        Moves the order one step forward and records who did it.

        Returns the updated order, the unchanged order if it was already
        DELIVERED, or None if no such order exists. Never raises.
        """
        order = self.store.get_order(order_id)
        if order is None:
            return None

        target = next_status(order.status)
        if target is None:
            logger.info("⏹️ Order %s is already %s, nothing to advance", order.id, order.status.value)
            return order

        updates = {"status": target, "staff_id": staff.id}
        if target == OrderStatus.DELIVERED:
            updates["completed_at"] = datetime.utcnow()

        updated = self.store.update_order(order.id, **updates)
        logger.info("➡️ Order %s: %s → %s (by %s)", order.id, order.status.value, target.value, staff.id)

        template = TRANSITION_NOTICES.get((order.status, target))
        if template:
            self.arbiter.post_notice(
                order.customer_id,
                template.format(order_id=order.id, delivery_code=order.delivery_code),
                sender=staff,
            )
        return updated

    def confirm_delivery(self, order_id: str) -> Optional[OrderRecord]:
        """
        Override: the customer confirms the hand-over (after reading the
        delivery code to the rider). Forces DELIVERED from any status.
        """
        order = self.store.get_order(order_id)
        if order is None:
            return None

        if order.status != OrderStatus.DELIVERY:
            logger.warning("⚠️ Order %s confirmed by customer while %s", order.id, order.status.value)

        return self.store.update_order(
            order.id,
            confirmed_by_customer=True,
            status=OrderStatus.DELIVERED,
            completed_at=datetime.utcnow(),
        )

    # =========================================================================
    # Queries
    # =========================================================================
    def get_order(self, order_id: str) -> Optional[OrderRecord]:
        return self.store.get_order(order_id)

    def orders_for_customer(self, customer_id: str) -> List[OrderRecord]:
        return self.store.get_orders(customer_id=customer_id)

    def active_order(self, customer_id: str) -> Optional[OrderRecord]:
        """The customer's order that is still moving, if any."""
        # Oldest first: the order the customer has been waiting on longest
        for order in reversed(self.orders_for_customer(customer_id)):
            if order.status != OrderStatus.DELIVERED:
                return order
        return None

    def order_history(self, customer_id: str) -> List[OrderRecord]:
        return [o for o in self.orders_for_customer(customer_id) if o.status == OrderStatus.DELIVERED]

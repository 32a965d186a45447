# app/agent/tools.py
#
# The "hands" of the support agent: the actions it can physically take.
#
# The LLM cannot touch the record store directly. It decides WHICH tool to
# call and with WHAT arguments; LangGraph executes the function and feeds the
# result back to the LLM.
#
# Flow:
#   Customer: "Where is my laundry? Order RD-7QK2ZD"
#   LLM thinks: "I should call check_order_status(order_id='RD-7QK2ZD')"
#   Tool returns: "Order RD-7QK2ZD is WASHING ..."
#   LLM replies: "Good news! Your clothes are in the wash right now 🫧"
#
# Tools are READ-ONLY. Only staff move an order forward.

from langchain_core.runnables import RunnableConfig
from langchain_core.tools import tool

from app.core.container import get_store
from app.models.enums import OrderStatus

STATUS_DESCRIPTIONS = {
    OrderStatus.PENDING: "waiting for a staff member to accept it",
    OrderStatus.PICKING_UP: "accepted, a rider is on the way to pick it up",
    OrderStatus.WASHING: "at our facility being washed",
    OrderStatus.DELIVERY: "out for delivery",
    OrderStatus.DELIVERED: "delivered",
}


@tool
def check_order_status(order_id: str, config: RunnableConfig) -> str:
    """
    Look up the current status of one of the customer's laundry orders.
    Use this when the customer asks where their order is or when it will arrive.

    Args:
        order_id: The order id, e.g. 'RD-7QK2ZD'

    Returns:
        A one-line status summary, or a message if the order can't be found.
    """
    customer_id = config.get("configurable", {}).get("customer_id")
    order = get_store().get_order(order_id.strip().upper())

    # The customer may only look at their own orders
    if order is None or (customer_id and order.customer_id != customer_id):
        return f"No order {order_id} found for this customer."

    return (
        f"Order {order.id} is {order.status.value}: {STATUS_DESCRIPTIONS[order.status]}. "
        f"Total: Ksh {order.total_amount:g}."
    )


@tool
def list_my_orders(config: RunnableConfig) -> str:
    """
    List the customer's orders with their current status.
    Use this when the customer asks about their orders without giving an id.
    """
    customer_id = config.get("configurable", {}).get("customer_id")
    if not customer_id:
        return "No customer is attached to this conversation."

    orders = get_store().get_orders(customer_id=customer_id)
    if not orders:
        return "This customer has no orders yet."

    lines = [f"Found {len(orders)} order(s):"]
    for order in orders[:5]:
        lines.append(f"  • {order.id} | {order.status.value} | Ksh {order.total_amount:g}")
    return "\n".join(lines)


ALL_TOOLS = [check_order_status, list_my_orders]

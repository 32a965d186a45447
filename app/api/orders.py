# app/api/orders.py
#
# Order routes. Thin on purpose: every rule lives in OrderLifecycleEngine.

from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from app.api.dependencies import CurrentUser, EngineDep, Operator, StoreDep
from app.models.enums import UserRole
from app.models.schemas import OrderRecord, UserRecord

router = APIRouter(prefix="/orders", tags=["orders"])


class LineItemIn(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    quantity: int = Field(default=1, ge=1)


class OrderCreate(BaseModel):
    items: List[LineItemIn] = Field(min_length=1)
    pickup_address: Optional[str] = None


def _visible_order(engine, user: UserRecord, order_id: str) -> OrderRecord:
    order = engine.get_order(order_id)
    # A customer asking for someone else's order gets the same 404
    if not order or (user.role == UserRole.CUSTOMER and order.customer_id != user.id):
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.post("", response_model=OrderRecord, status_code=201)
def place_order(body: OrderCreate, user: CurrentUser, engine: EngineDep):
    if user.role != UserRole.CUSTOMER:
        raise HTTPException(status_code=403, detail="Only customers place orders")
    return engine.place_order(
        user,
        [item.model_dump() for item in body.items],
        pickup_address=body.pickup_address,
    )


@router.get("", response_model=List[OrderRecord])
def list_orders(user: CurrentUser, store: StoreDep):
    if user.role == UserRole.CUSTOMER:
        return store.get_orders(customer_id=user.id)
    return store.get_orders()


@router.get("/{order_id}", response_model=OrderRecord)
def get_order(order_id: str, user: CurrentUser, engine: EngineDep):
    return _visible_order(engine, user, order_id)


@router.post("/{order_id}/advance", response_model=OrderRecord)
def advance_order(order_id: str, staff: Operator, engine: EngineDep):
    """
    Moves the order one step forward.
    Advancing a DELIVERED order returns it unchanged (no error).
    """
    order = engine.advance(order_id, staff)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.post("/{order_id}/confirm", response_model=OrderRecord)
def confirm_delivery(order_id: str, user: CurrentUser, engine: EngineDep):
    """The customer confirms the hand-over at the door."""
    order = _visible_order(engine, user, order_id)
    if order.customer_id != user.id:
        raise HTTPException(status_code=403, detail="Only the customer can confirm delivery")
    return engine.confirm_delivery(order_id)

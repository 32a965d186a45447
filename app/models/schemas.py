# app/models/schemas.py
#
# Pydantic snapshots of the store records.
#
# The record store never hands out live ORM rows. Every read returns one of
# these immutable copies, taken after the write that produced it committed,
# so a dashboard can never observe a half-written order or thread.

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import OrderStatus, SenderRole, ThreadControl, UserRole


class Snapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)


class UserRecord(Snapshot):
    id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER
    password: Optional[str] = None


class OrderItem(Snapshot):
    id: str
    name: str
    price: float
    quantity: int = 1


class OrderRecord(Snapshot):
    id: str
    customer_id: str
    customer_name: str
    items: List[OrderItem]
    total_amount: float
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
    completed_at: Optional[datetime] = None
    staff_id: Optional[str] = None
    pickup_address: Optional[str] = None
    delivery_code: str
    confirmed_by_customer: bool = False


class MessageRecord(Snapshot):
    id: str
    sender_id: str
    sender_name: str
    sender_role: SenderRole
    text: str
    timestamp: datetime
    is_automated: bool = False
    needs_human_attention: bool = False
    is_human_owned: bool = False


class ThreadRecord(Snapshot):
    """A customer's whole conversation plus its control state."""
    customer_id: str
    messages: List[MessageRecord] = Field(default_factory=list)
    human_owned: bool = False
    revision: int = 0
    ownership_epoch: int = 0

    @property
    def control(self) -> ThreadControl:
        return ThreadControl.HUMAN_OWNED if self.human_owned else ThreadControl.AI_OWNED

    @property
    def last_message(self) -> Optional[MessageRecord]:
        return self.messages[-1] if self.messages else None


class DiscountRecord(Snapshot):
    id: str
    user_id: str
    amount: float
    message: str
    claimed: bool = False

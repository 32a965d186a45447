# app/models/models.py
#
# This file defines the "shape" of the record store tables using SQLAlchemy.
# Think of each class here as a blueprint for one table.
#
# We have 5 tables:
#   1. User          : customers, staff and admins
#   2. Order         : one laundry order and its lifecycle status
#   3. ChatThread    : per-customer control state (who owns the conversation)
#   4. ChatMessage   : the messages of every thread, in append order
#   5. DiscountOffer : rewards granted by the admin

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Boolean, Enum, JSON, ForeignKey, Text
)
from sqlalchemy.orm import relationship
from datetime import datetime

from app.models.database import Base
from app.models.enums import OrderStatus, SenderRole, UserRole


# =============================================================================
# TABLE 1: User
# Out of core scope beyond attribution: who placed an order, who advanced it,
# who replied in a chat.
# =============================================================================
class User(Base):
    __tablename__ = "users"

    id        = Column(String, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email     = Column(String, unique=True, index=True, nullable=False)
    phone     = Column(String, nullable=True)
    role      = Column(Enum(UserRole), nullable=False, default=UserRole.CUSTOMER)
    password  = Column(String, nullable=True)
    # Stored as-is. Credential handling is not this backend's concern.

    def __repr__(self):
        return f"<User {self.id} | {self.email} | {self.role.value}>"


# =============================================================================
# TABLE 2: Order
# Created by the customer (status = PENDING), moved forward by staff,
# closed by the customer's delivery confirmation. Never deleted.
# =============================================================================
class Order(Base):
    __tablename__ = "orders"

    id            = Column(String, primary_key=True, index=True)
    # e.g. "RD-7QK2ZD"

    customer_id   = Column(String, index=True, nullable=False)
    customer_name = Column(String, nullable=False)

    items         = Column(JSON, nullable=False, default=list)
    # [{"id": "1", "name": "Wash, Dry & Fold", "price": 90, "quantity": 1}]

    total_amount  = Column(Float, nullable=False)
    # Snapshot of sum(price × quantity) at creation. Never recomputed.

    status        = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    created_at    = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at  = Column(DateTime, nullable=True)
    staff_id      = Column(String, nullable=True)
    pickup_address = Column(String, nullable=True)

    delivery_code = Column(String(4), nullable=False)
    # Shown to staff and customer for verbal confirmation at the door

    confirmed_by_customer = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Order {self.id} | {self.customer_id} | {self.status.value}>"


# =============================================================================
# TABLE 3: ChatThread
# One row per customer. Holds the thread-level control state.
#
# revision        → bumped on EVERY write to the thread
# ownership_epoch → bumped only when ownership changes (takeover / release)
#
# The automated reply is appended with compare-and-append on ownership_epoch,
# so a reply computed before a takeover cannot land after it.
# =============================================================================
class ChatThread(Base):
    __tablename__ = "chat_threads"

    customer_id     = Column(String, primary_key=True, index=True)
    human_owned     = Column(Boolean, default=False, nullable=False)
    revision        = Column(Integer, default=0, nullable=False)
    ownership_epoch = Column(Integer, default=0, nullable=False)
    updated_at      = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    messages = relationship(
        "ChatMessage",
        back_populates="thread",
        order_by="ChatMessage.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        owner = "HUMAN" if self.human_owned else "AI"
        return f"<ChatThread {self.customer_id} | {owner} | rev {self.revision}>"


# =============================================================================
# TABLE 4: ChatMessage
# is_human_owned is denormalised: it is rewritten on the WHOLE history every
# time the thread changes hands, not only on new messages.
# =============================================================================
class ChatMessage(Base):
    __tablename__ = "chat_messages"

    pk          = Column(Integer, primary_key=True, autoincrement=True)
    id          = Column(String, index=True, nullable=False)
    customer_id = Column(String, ForeignKey("chat_threads.customer_id"), index=True, nullable=False)
    position    = Column(Integer, nullable=False)
    # 0-based index inside the thread (append order)

    sender_id   = Column(String, nullable=False)
    sender_name = Column(String, nullable=False)
    sender_role = Column(Enum(SenderRole), nullable=False)
    text        = Column(Text, nullable=False)
    timestamp   = Column(DateTime, default=datetime.utcnow, nullable=False)

    is_automated          = Column(Boolean, default=False, nullable=False)
    needs_human_attention = Column(Boolean, default=False, nullable=False)
    is_human_owned        = Column(Boolean, default=False, nullable=False)

    thread = relationship("ChatThread", back_populates="messages")

    def __repr__(self):
        return f"<ChatMessage {self.id} | {self.customer_id}#{self.position} | {self.sender_role.value}>"


# =============================================================================
# TABLE 5: DiscountOffer
# A simple record, no state machine beyond claimed / unclaimed.
# =============================================================================
class DiscountOffer(Base):
    __tablename__ = "discount_offers"

    id      = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    amount  = Column(Float, nullable=False)
    message = Column(String, nullable=False)
    claimed = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<DiscountOffer {self.id} | {self.user_id} | {self.amount} | claimed={self.claimed}>"

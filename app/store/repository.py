# app/store/repository.py
#
# The Record Store: the ONE shared mutable resource of the system.
#
# Every dashboard and every service goes through this class. It has one small
# group of methods per collection (users, orders, chat threads, discounts).
# Each write is a single transaction followed by notifier.publish().
#
# What it deliberately does NOT do:
#   - no ownership partitioning (anyone may write anything)
#   - no locking across calls: a read-modify-write done by a caller can be
#     overwritten by another caller's later write (last writer wins)
#
# The only conditional write is append_message(expected_epoch=...), the
# compare-and-append used to stop a stale automated reply from landing
# after a human took the thread over.

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select

from app.models.enums import UserRole
from app.models.models import ChatMessage, ChatThread, DiscountOffer, Order, User
from app.models.schemas import (
    DiscountRecord, MessageRecord, OrderItem, OrderRecord, ThreadRecord, UserRecord
)
from app.store.notifier import ChangeNotifier

logger = logging.getLogger(__name__)

# Fixed at creation: total_amount is never recomputed, the code never changes.
IMMUTABLE_ORDER_FIELDS = {"id", "customer_id", "items", "total_amount", "created_at", "delivery_code"}


def _user_snapshot(row: User) -> UserRecord:
    return UserRecord.model_validate(row)


def _order_snapshot(row: Order) -> OrderRecord:
    return OrderRecord(
        id=row.id,
        customer_id=row.customer_id,
        customer_name=row.customer_name,
        items=[OrderItem(**item) for item in (row.items or [])],
        total_amount=row.total_amount,
        status=row.status,
        created_at=row.created_at,
        completed_at=row.completed_at,
        staff_id=row.staff_id,
        pickup_address=row.pickup_address,
        delivery_code=row.delivery_code,
        confirmed_by_customer=row.confirmed_by_customer,
    )


def _message_snapshot(row: ChatMessage) -> MessageRecord:
    return MessageRecord.model_validate(row)


def _thread_snapshot(customer_id: str, row: Optional[ChatThread]) -> ThreadRecord:
    if row is None:
        # Threads are created lazily; an unknown customer simply has no history
        return ThreadRecord(customer_id=customer_id)
    return ThreadRecord(
        customer_id=row.customer_id,
        messages=[_message_snapshot(m) for m in row.messages],
        human_owned=row.human_owned,
        revision=row.revision,
        ownership_epoch=row.ownership_epoch,
    )


def _message_row(customer_id: str, position: int, msg: MessageRecord) -> ChatMessage:
    return ChatMessage(
        id=msg.id,
        customer_id=customer_id,
        position=position,
        sender_id=msg.sender_id,
        sender_name=msg.sender_name,
        sender_role=msg.sender_role,
        text=msg.text,
        timestamp=msg.timestamp,
        is_automated=msg.is_automated,
        needs_human_attention=msg.needs_human_attention,
        is_human_owned=msg.is_human_owned,
    )


class RecordStore:
    """
    Repository over the SQLAlchemy tables.

    Args:
        session_factory: a sessionmaker (SessionLocal in production,
                         an in-memory one in tests)
        notifier:        where "store changed" is published after each write
    """

    def __init__(self, session_factory, notifier: Optional[ChangeNotifier] = None):
        self._session_factory = session_factory
        self.notifier = notifier or ChangeNotifier()

    def _changed(self):
        self.notifier.publish()

    # =========================================================================
    # Users
    # =========================================================================
    def get_users(self, role: Optional[UserRole] = None) -> List[UserRecord]:
        db = self._session_factory()
        try:
            query = select(User)
            if role is not None:
                query = query.where(User.role == role)
            return [_user_snapshot(u) for u in db.scalars(query).all()]
        finally:
            db.close()

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        db = self._session_factory()
        try:
            row = db.get(User, user_id)
            return _user_snapshot(row) if row else None
        finally:
            db.close()

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        db = self._session_factory()
        try:
            row = db.scalars(select(User).where(User.email == email)).first()
            return _user_snapshot(row) if row else None
        finally:
            db.close()

    def save_user(self, user: UserRecord) -> UserRecord:
        db = self._session_factory()
        try:
            db.add(User(**user.model_dump()))
            db.commit()
        finally:
            db.close()
        self._changed()
        return user

    def update_user(self, user_id: str, **fields) -> bool:
        db = self._session_factory()
        try:
            row = db.get(User, user_id)
            if row is None:
                return False
            for key, value in fields.items():
                if key != "id":
                    setattr(row, key, value)
            db.commit()
        finally:
            db.close()
        self._changed()
        return True

    # =========================================================================
    # Orders
    # =========================================================================
    def get_orders(self, customer_id: Optional[str] = None) -> List[OrderRecord]:
        db = self._session_factory()
        try:
            query = select(Order).order_by(Order.created_at.desc())
            if customer_id is not None:
                query = query.where(Order.customer_id == customer_id)
            return [_order_snapshot(o) for o in db.scalars(query).all()]
        finally:
            db.close()

    def get_order(self, order_id: str) -> Optional[OrderRecord]:
        db = self._session_factory()
        try:
            row = db.get(Order, order_id)
            return _order_snapshot(row) if row else None
        finally:
            db.close()

    def save_order(self, order: OrderRecord) -> OrderRecord:
        data = order.model_dump()
        data["items"] = [item.model_dump() for item in order.items]
        db = self._session_factory()
        try:
            db.add(Order(**data))
            db.commit()
        finally:
            db.close()
        self._changed()
        return order

    def update_order(self, order_id: str, **fields) -> Optional[OrderRecord]:
        """
        Merges the given fields into the order (partial update).
        Returns the new snapshot, or None if the order doesn't exist.
        """
        db = self._session_factory()
        try:
            row = db.get(Order, order_id)
            if row is None:
                return None
            for key, value in fields.items():
                if key in IMMUTABLE_ORDER_FIELDS:
                    logger.warning("⚠️ Ignoring write to immutable order field '%s' on %s", key, order_id)
                    continue
                setattr(row, key, value)
            db.commit()
            db.refresh(row)
            snapshot = _order_snapshot(row)
        finally:
            db.close()
        self._changed()
        return snapshot

    # =========================================================================
    # Chat threads
    # =========================================================================
    def _thread_row(self, db, customer_id: str) -> ChatThread:
        row = db.get(ChatThread, customer_id)
        if row is None:
            row = ChatThread(customer_id=customer_id, human_owned=False, revision=0, ownership_epoch=0)
            db.add(row)
            db.flush()
        return row

    def get_chat_thread(self, customer_id: str) -> ThreadRecord:
        db = self._session_factory()
        try:
            return _thread_snapshot(customer_id, db.get(ChatThread, customer_id))
        finally:
            db.close()

    def get_thread_ids(self) -> List[str]:
        db = self._session_factory()
        try:
            return list(db.scalars(select(ChatThread.customer_id)).all())
        finally:
            db.close()

    def append_message(
        self,
        customer_id: str,
        message: MessageRecord,
        expected_epoch: Optional[int] = None,
    ) -> Optional[ThreadRecord]:
        """
        Appends one message to the end of the customer's thread.

        The message is written with the thread's CURRENT ownership flag, and
        its timestamp is clamped so it never sorts before the previous one.

        If expected_epoch is given, this is a compare-and-append: the write
        only happens if nobody changed ownership since that epoch was read and
        the thread is still AI-owned. Otherwise nothing is written and None is
        returned.
        """
        db = self._session_factory()
        try:
            thread = self._thread_row(db, customer_id)

            if expected_epoch is not None and (
                thread.ownership_epoch != expected_epoch or thread.human_owned
            ):
                db.rollback()
                logger.info(
                    "🚫 Dropped stale write to thread %s (epoch %s, expected %s)",
                    customer_id, thread.ownership_epoch, expected_epoch,
                )
                return None

            timestamp = message.timestamp
            if thread.messages and thread.messages[-1].timestamp > timestamp:
                timestamp = thread.messages[-1].timestamp

            stamped = message.model_copy(update={
                "timestamp": timestamp,
                "is_human_owned": thread.human_owned,
            })
            thread.messages.append(_message_row(customer_id, len(thread.messages), stamped))
            thread.revision += 1
            db.commit()
            db.refresh(thread)
            snapshot = _thread_snapshot(customer_id, thread)
        finally:
            db.close()
        self._changed()
        return snapshot

    def replace_thread_history(
        self,
        customer_id: str,
        messages: Iterable[MessageRecord],
        human_owned: Optional[bool] = None,
    ) -> ThreadRecord:
        """
        Overwrites the whole thread with the given messages in one write.

        If human_owned is given, the thread-level control state is set in the
        same transaction, and ownership_epoch moves on when it actually
        changes hands.

        This is a blind overwrite: messages appended by someone else since the
        caller read the thread are lost.
        """
        messages = list(messages)
        db = self._session_factory()
        try:
            thread = self._thread_row(db, customer_id)
            thread.messages = [
                _message_row(customer_id, position, msg)
                for position, msg in enumerate(messages)
            ]
            if human_owned is not None and human_owned != thread.human_owned:
                thread.human_owned = human_owned
                thread.ownership_epoch += 1
            thread.revision += 1
            thread.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(thread)
            snapshot = _thread_snapshot(customer_id, thread)
        finally:
            db.close()
        self._changed()
        return snapshot

    # =========================================================================
    # Discount offers
    # =========================================================================
    def get_discounts(self, user_id: Optional[str] = None) -> List[DiscountRecord]:
        db = self._session_factory()
        try:
            query = select(DiscountOffer)
            if user_id is not None:
                query = query.where(DiscountOffer.user_id == user_id)
            return [DiscountRecord.model_validate(d) for d in db.scalars(query).all()]
        finally:
            db.close()

    def save_discount(self, discount: DiscountRecord) -> DiscountRecord:
        db = self._session_factory()
        try:
            db.add(DiscountOffer(**discount.model_dump()))
            db.commit()
        finally:
            db.close()
        self._changed()
        return discount

    def update_discount(self, discount_id: str, **fields) -> Optional[DiscountRecord]:
        db = self._session_factory()
        try:
            row = db.get(DiscountOffer, discount_id)
            if row is None:
                return None
            for key, value in fields.items():
                if key != "id":
                    setattr(row, key, value)
            db.commit()
            db.refresh(row)
            snapshot = DiscountRecord.model_validate(row)
        finally:
            db.close()
        self._changed()
        return snapshot

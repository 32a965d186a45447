# app/services/chat_arbiter.py
#
# Decides WHO currently answers a customer's support thread: the automated
# agent (AI_OWNED) or a person (HUMAN_OWNED).
#
#   AI_OWNED ──(generator says "requires human" | take_over | operator reply)──→ HUMAN_OWNED
#   HUMAN_OWNED ──(release)──→ AI_OWNED
#
# Ownership is stored twice, on purpose:
#   - thread.human_owned             → the thread-level control state
#   - message.is_human_owned (every) → rewritten on the WHOLE history at each
#                                      change of hands, existing dashboards
#                                      read it from the messages
#
# The arbitration rules are the same for staff and admin. The role only
# changes the sender name on the message.

import logging
import threading
import uuid
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Set

from app.agent.state import ConversationTurn, GeneratedReply, fallback_reply
from app.models.enums import SenderRole, UserRole
from app.models.schemas import MessageRecord, ThreadRecord, UserRecord
from app.store.repository import RecordStore

logger = logging.getLogger(__name__)

ResponseGenerator = Callable[..., Awaitable[GeneratedReply]]

AUTOMATED_SENDER_ID = "ai"
AUTOMATED_SENDER_NAME = "Support"

OPERATOR_NAMES = {
    UserRole.STAFF: "Staff Support",
    UserRole.ADMIN: "Admin",
}


def new_message(
    sender_id: str,
    sender_name: str,
    sender_role: SenderRole,
    text: str,
    is_automated: bool = False,
    needs_human_attention: bool = False,
    is_human_owned: bool = False,
) -> MessageRecord:
    return MessageRecord(
        id=uuid.uuid4().hex,
        sender_id=sender_id,
        sender_name=sender_name,
        sender_role=sender_role,
        text=text,
        timestamp=datetime.utcnow(),
        is_automated=is_automated,
        needs_human_attention=needs_human_attention,
        is_human_owned=is_human_owned,
    )


def to_turns(messages: Sequence[MessageRecord]) -> List[ConversationTurn]:
    return [
        ConversationTurn(
            role="customer" if m.sender_role == SenderRole.CUSTOMER else "support",
            text=m.text,
        )
        for m in messages
    ]


class OperatorViewers:
    """
    In-memory registry of which operators currently have a thread open.
    A human-owned thread nobody is looking at still needs attention.
    """

    def __init__(self):
        self._viewers: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def open(self, customer_id: str, operator_id: str) -> None:
        with self._lock:
            self._viewers.setdefault(customer_id, set()).add(operator_id)

    def close(self, customer_id: str, operator_id: str) -> None:
        with self._lock:
            viewers = self._viewers.get(customer_id)
            if viewers:
                viewers.discard(operator_id)
                if not viewers:
                    del self._viewers[customer_id]

    def is_viewed(self, customer_id: str) -> bool:
        with self._lock:
            return bool(self._viewers.get(customer_id))


class ChatOwnershipArbiter:
    """
    Args:
        store:              the shared record store
        generator:          async callable (message, history, customer_id=...) → GeneratedReply
        viewers:            who has which thread open (for the attention list)
        drop_stale_replies: drop an automated reply if the thread changed hands
                            while it was being generated
    """

    def __init__(
        self,
        store: RecordStore,
        generator: ResponseGenerator,
        viewers: Optional[OperatorViewers] = None,
        drop_stale_replies: bool = True,
    ):
        self.store = store
        self.generator = generator
        self.viewers = viewers or OperatorViewers()
        self.drop_stale_replies = drop_stale_replies
        self._responding: Set[str] = set()
        self._responding_lock = threading.Lock()

    # =========================================================================
    # Queries
    # =========================================================================
    def get_thread(self, customer_id: str) -> ThreadRecord:
        return self.store.get_chat_thread(customer_id)

    def is_responding(self, customer_id: str) -> bool:
        """True while an automated reply is being generated for this thread."""
        with self._responding_lock:
            return customer_id in self._responding

    def needs_attention(self, thread: ThreadRecord) -> bool:
        last = thread.last_message
        if last is not None and last.needs_human_attention:
            return True
        return thread.human_owned and not self.viewers.is_viewed(thread.customer_id)

    def threads_needing_attention(self) -> List[ThreadRecord]:
        threads = [self.store.get_chat_thread(cid) for cid in self.store.get_thread_ids()]
        return [t for t in threads if t.messages and self.needs_attention(t)]

    # =========================================================================
    # Ownership transitions
    # =========================================================================
    def take_over(self, customer_id: str) -> ThreadRecord:
        """Explicit escalation: a person now owns the thread."""
        thread = self.store.get_chat_thread(customer_id)
        history = [m.model_copy(update={"is_human_owned": True}) for m in thread.messages]
        logger.info("🙋 Thread %s taken over by a human", customer_id)
        return self.store.replace_thread_history(customer_id, history, human_owned=True)

    escalate = take_over

    def release(self, customer_id: str) -> ThreadRecord:
        """
        Hands the thread back to the automated agent and clears every
        "needs attention" flag, so the next customer message is answered
        automatically again.
        """
        thread = self.store.get_chat_thread(customer_id)
        history = [
            m.model_copy(update={"is_human_owned": False, "needs_human_attention": False})
            for m in thread.messages
        ]
        logger.info("🤖 Thread %s released back to the automated agent", customer_id)
        return self.store.replace_thread_history(customer_id, history, human_owned=False)

    # =========================================================================
    # Writing into a thread
    # =========================================================================
    def send_operator_reply(self, customer_id: str, text: str, operator: UserRecord) -> ThreadRecord:
        """
        A staff/admin reply. Implicitly takes the thread over: the new message
        and the human-owned flag on the whole history go out in ONE write.
        """
        if not text.strip():
            return self.store.get_chat_thread(customer_id)

        if operator.role not in OPERATOR_NAMES:
            logger.warning(
                "⚠️ %s (%s) is not an operator, reply to %s ignored",
                operator.id, operator.role.value, customer_id,
            )
            return self.store.get_chat_thread(customer_id)

        thread = self.store.get_chat_thread(customer_id)
        history = [m.model_copy(update={"is_human_owned": True}) for m in thread.messages]
        history.append(new_message(
            sender_id=operator.id,
            sender_name=OPERATOR_NAMES[operator.role],
            sender_role=SenderRole(operator.role.value),
            text=text,
            is_human_owned=True,
        ))
        logger.info("💬 %s replied in thread %s", operator.role.value, customer_id)
        return self.store.replace_thread_history(customer_id, history, human_owned=True)

    def post_notice(self, customer_id: str, text: str, sender: UserRecord) -> ThreadRecord:
        """
        A system notice (order update, discount) written on behalf of a staff
        member or admin. It does NOT change who owns the thread.
        """
        message = new_message(
            sender_id=sender.id,
            sender_name=OPERATOR_NAMES.get(sender.role, sender.full_name),
            sender_role=SenderRole(sender.role.value),
            text=text,
        )
        return self.store.append_message(customer_id, message)

    async def send_customer_message(self, customer: UserRecord, text: str) -> ThreadRecord:
        """
        The customer-facing flow:
          1. store the customer message
          2. human-owned thread → stop, a person will answer
          3. otherwise ask the generator (message + full prior history)
          4. store its reply with the generator's "needs attention" flag
          5. "requires human" → escalate the thread
        """
        customer_id = customer.id
        if not text.strip():
            return self.store.get_chat_thread(customer_id)

        thread = self.store.append_message(
            customer_id,
            new_message(customer.id, customer.full_name, SenderRole.CUSTOMER, text),
        )

        if thread.human_owned:
            logger.info("⏸️ Thread %s is human-owned, no automated reply", customer_id)
            return thread

        with self._responding_lock:
            if customer_id in self._responding:
                # One automated reply in flight per thread, this message waits for it
                return thread
            self._responding.add(customer_id)

        try:
            epoch = thread.ownership_epoch
            history = to_turns(thread.messages[:-1])
            try:
                reply = await self.generator(text, history, customer_id=customer_id)
            except Exception as e:
                logger.error("❌ Response generator failed: %s: %s", type(e).__name__, e)
                reply = fallback_reply()

            automated = new_message(
                sender_id=AUTOMATED_SENDER_ID,
                sender_name=AUTOMATED_SENDER_NAME,
                sender_role=SenderRole.AUTOMATED_AGENT,
                text=reply.text,
                is_automated=True,
                needs_human_attention=reply.requires_human,
            )
            expected_epoch = epoch if self.drop_stale_replies else None
            written = self.store.append_message(customer_id, automated, expected_epoch=expected_epoch)
        finally:
            with self._responding_lock:
                self._responding.discard(customer_id)

        if written is None:
            logger.info("🚫 Automated reply for %s dropped, a human took over meanwhile", customer_id)
            return self.store.get_chat_thread(customer_id)

        if reply.requires_human and not written.human_owned:
            return self.escalate(customer_id)
        return written

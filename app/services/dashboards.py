# app/services/dashboards.py
#
# Read-only views for the three dashboards (customer, staff, admin).
# No business rules live here, only grouping, searching and paging of what
# the engine, the arbiter and the store already expose.

import math
from typing import List, Optional

from pydantic import BaseModel

from app.core.config import settings
from app.models.enums import OrderStatus, UserRole
from app.models.schemas import MessageRecord, OrderRecord, ThreadRecord, UserRecord
from app.services.chat_arbiter import ChatOwnershipArbiter
from app.services.discounts import DiscountService
from app.services.order_lifecycle import OrderLifecycleEngine


class ThreadView(BaseModel):
    customer_id: str
    messages: List[MessageRecord]
    human_owned: bool
    agent_responding: bool
    needs_attention: bool


class ChatSummary(BaseModel):
    customer_id: str
    customer_name: str
    last_message: MessageRecord
    needs_attention: bool
    human_owned: bool


class CustomerBoard(BaseModel):
    active_order: Optional[OrderRecord]
    history: List[OrderRecord]
    thread: ThreadView


class StaffBoard(BaseModel):
    pending: List[OrderRecord]
    picking_up: List[OrderRecord]
    in_progress: List[OrderRecord]
    chats: List[ChatSummary]


class UserRow(BaseModel):
    id: str
    full_name: str
    email: str
    phone: Optional[str]
    role: UserRole
    discount_status: str


class AdminBoard(BaseModel):
    total_revenue: float
    completed_orders: List[OrderRecord]
    page: int
    total_pages: int
    users: List[UserRow]
    alerting: List[str]


class DashboardQueries:
    def __init__(
        self,
        engine: OrderLifecycleEngine,
        arbiter: ChatOwnershipArbiter,
        discounts: DiscountService,
    ):
        self.engine = engine
        self.arbiter = arbiter
        self.discounts = discounts
        self.store = engine.store

    def thread_view(self, customer_id: str) -> ThreadView:
        thread = self.arbiter.get_thread(customer_id)
        return self._thread_view(thread)

    def _thread_view(self, thread: ThreadRecord) -> ThreadView:
        return ThreadView(
            customer_id=thread.customer_id,
            messages=thread.messages,
            human_owned=thread.human_owned,
            agent_responding=self.arbiter.is_responding(thread.customer_id),
            needs_attention=self.arbiter.needs_attention(thread),
        )

    def _chat_summaries(self) -> List[ChatSummary]:
        summaries = []
        for user in self.store.get_users(role=UserRole.CUSTOMER):
            thread = self.arbiter.get_thread(user.id)
            if not thread.messages:
                continue
            summaries.append(ChatSummary(
                customer_id=user.id,
                customer_name=user.full_name,
                last_message=thread.last_message,
                needs_attention=self.arbiter.needs_attention(thread),
                human_owned=thread.human_owned,
            ))
        return summaries

    # =========================================================================
    # Customer
    # =========================================================================
    def customer_board(self, customer: UserRecord) -> CustomerBoard:
        return CustomerBoard(
            active_order=self.engine.active_order(customer.id),
            history=self.engine.order_history(customer.id),
            thread=self.thread_view(customer.id),
        )

    # =========================================================================
    # Staff
    # =========================================================================
    def staff_board(self) -> StaffBoard:
        orders = self.store.get_orders()
        return StaffBoard(
            pending=[o for o in orders if o.status == OrderStatus.PENDING],
            picking_up=[o for o in orders if o.status == OrderStatus.PICKING_UP],
            in_progress=[o for o in orders if o.status in (OrderStatus.WASHING, OrderStatus.DELIVERY)],
            chats=self._chat_summaries(),
        )

    # =========================================================================
    # Admin
    # =========================================================================
    def admin_board(self, order_search: str = "", page: int = 1, user_search: str = "") -> AdminBoard:
        orders = self.store.get_orders()
        delivered = [o for o in orders if o.status == OrderStatus.DELIVERED]

        completed = sorted(delivered, key=lambda o: o.completed_at or o.created_at, reverse=True)
        needle = order_search.lower()
        if needle:
            completed = [
                o for o in completed
                if needle in o.customer_name.lower() or needle in o.id.lower()
            ]

        page_size = settings.completed_orders_page_size
        total_pages = math.ceil(len(completed) / page_size)
        page = max(1, min(page, total_pages or 1))
        start = (page - 1) * page_size

        return AdminBoard(
            total_revenue=sum(o.total_amount for o in delivered),
            completed_orders=completed[start:start + page_size],
            page=page,
            total_pages=total_pages,
            users=self._user_rows(user_search),
            alerting=[s.customer_id for s in self._chat_summaries() if s.needs_attention],
        )

    def _user_rows(self, search: str) -> List[UserRow]:
        needle = search.lower()
        rows = []
        for user in self.store.get_users():
            if needle and not (
                needle in user.full_name.lower()
                or needle in user.email.lower()
                or (user.phone and search in user.phone)
            ):
                continue
            rows.append(UserRow(
                id=user.id,
                full_name=user.full_name,
                email=user.email,
                phone=user.phone,
                role=user.role,
                discount_status=self.discounts.status_for(user.id),
            ))
        return rows

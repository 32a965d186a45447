# app/core/container.py
#
# Builds the long-lived objects ONCE and hands them out.
#
#   SessionLocal ─→ RecordStore ─→ ChatOwnershipArbiter ─→ OrderLifecycleEngine
#        ChangeNotifier ─┘              └─ generate_reply (LangGraph)
#
# FastAPI reaches these through Depends(...) in app/api/dependencies.py,
# so tests can swap any of them with app.dependency_overrides.

from functools import lru_cache

from app.core.config import settings
from app.models.database import SessionLocal
from app.services.chat_arbiter import ChatOwnershipArbiter
from app.services.dashboards import DashboardQueries
from app.services.discounts import DiscountService
from app.services.order_lifecycle import OrderLifecycleEngine
from app.store.notifier import ChangeNotifier
from app.store.repository import RecordStore


@lru_cache
def get_notifier() -> ChangeNotifier:
    return ChangeNotifier()


@lru_cache
def get_store() -> RecordStore:
    return RecordStore(SessionLocal, get_notifier())


@lru_cache
def get_chat_arbiter() -> ChatOwnershipArbiter:
    # Imported here: the agent's tools import get_store() from this module
    from app.agent.runner import generate_reply

    return ChatOwnershipArbiter(
        get_store(),
        generate_reply,
        drop_stale_replies=settings.drop_stale_automated_replies,
    )


@lru_cache
def get_order_engine() -> OrderLifecycleEngine:
    return OrderLifecycleEngine(get_store(), get_chat_arbiter())


@lru_cache
def get_discount_service() -> DiscountService:
    return DiscountService(get_store(), get_chat_arbiter())


@lru_cache
def get_dashboards() -> DashboardQueries:
    return DashboardQueries(get_order_engine(), get_chat_arbiter(), get_discount_service())

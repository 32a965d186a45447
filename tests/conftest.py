import os

# Keep the app's default engine off the disk while tests import it
os.environ.setdefault("STORE_DB_URL", "sqlite://")

import pytest
from sqlalchemy.orm import sessionmaker

from app.agent.state import GeneratedReply
from app.models.database import init_db, make_engine
from app.models.enums import UserRole
from app.models.schemas import UserRecord
from app.services.chat_arbiter import ChatOwnershipArbiter
from app.services.dashboards import DashboardQueries
from app.services.discounts import DiscountService
from app.services.order_lifecycle import OrderLifecycleEngine
from app.store.notifier import ChangeNotifier
from app.store.repository import RecordStore


class ScriptedGenerator:
    """
    Stands in for the LangGraph runner.

    replies:      queued GeneratedReply objects (default reply when empty)
    error:        raised instead of replying, if set
    before_reply: called while the "generation" is in flight
    """

    def __init__(self):
        self.replies = []
        self.calls = []
        self.error = None
        self.before_reply = None

    async def __call__(self, message, history, customer_id=None):
        self.calls.append({"message": message, "history": list(history), "customer_id": customer_id})
        if self.before_reply:
            self.before_reply()
        if self.error:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return GeneratedReply(text="Happy to help! 🧺", requires_human=False)


@pytest.fixture
def store():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return RecordStore(factory, ChangeNotifier())


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def arbiter(store, generator):
    return ChatOwnershipArbiter(store, generator, drop_stale_replies=True)


@pytest.fixture
def engine(store, arbiter):
    return OrderLifecycleEngine(store, arbiter)


@pytest.fixture
def discounts(store, arbiter):
    return DiscountService(store, arbiter)


@pytest.fixture
def dashboards(engine, arbiter, discounts):
    return DashboardQueries(engine, arbiter, discounts)


@pytest.fixture
def customer(store):
    return store.save_user(UserRecord(
        id="cust-1", full_name="Wanjiku Kamau", email="wanjiku@example.com",
        phone="0711000111", role=UserRole.CUSTOMER,
    ))


@pytest.fixture
def other_customer(store):
    return store.save_user(UserRecord(
        id="cust-2", full_name="Otieno Odhiambo", email="otieno@example.com",
        phone="0722000222", role=UserRole.CUSTOMER,
    ))


@pytest.fixture
def staff(store):
    return store.save_user(UserRecord(
        id="staff-1", full_name="Ray Staff", email="staff@rayslaund.com", role=UserRole.STAFF,
    ))


@pytest.fixture
def admin(store):
    return store.save_user(UserRecord(
        id="admin-1", full_name="Ray Admin", email="admin@rayslaund.com", role=UserRole.ADMIN,
    ))

import asyncio
from datetime import datetime, timedelta
from unittest.mock import Mock

from app.models.enums import OrderStatus, SenderRole
from app.models.schemas import MessageRecord, OrderItem, OrderRecord
from app.store.notifier import ChangeNotifier


def make_message(text, minutes=0, role=SenderRole.CUSTOMER):
    return MessageRecord(
        id=f"m-{text}",
        sender_id="cust-1",
        sender_name="Wanjiku Kamau",
        sender_role=role,
        text=text,
        timestamp=datetime(2026, 1, 1, 9, 0) + timedelta(minutes=minutes),
    )


def make_order(order_id="RD-TEST01"):
    return OrderRecord(
        id=order_id,
        customer_id="cust-1",
        customer_name="Wanjiku Kamau",
        items=[OrderItem(id="1", name="Wash", price=90, quantity=1)],
        total_amount=90,
        created_at=datetime(2026, 1, 1, 8, 0),
        delivery_code="4821",
    )


class TestChangeNotification:

    def test_listener_sees_the_committed_write(self, store):
        seen = []
        store.notifier.subscribe(lambda: seen.append(store.get_order("RD-TEST01")))

        store.save_order(make_order())

        assert seen[0] is not None
        assert seen[0].status == OrderStatus.PENDING

    def test_every_write_publishes_once(self, store):
        listener = Mock()
        store.notifier.subscribe(listener)

        store.save_order(make_order())
        store.update_order("RD-TEST01", status=OrderStatus.PICKING_UP)
        store.append_message("cust-1", make_message("hi"))
        store.replace_thread_history("cust-1", [])

        assert listener.call_count == 4

    def test_reads_do_not_publish(self, store):
        listener = Mock()
        store.notifier.subscribe(listener)

        store.get_orders()
        store.get_chat_thread("cust-1")

        listener.assert_not_called()

    def test_unsubscribe_stops_notifications(self):
        notifier = ChangeNotifier()
        listener = Mock()
        unsubscribe = notifier.subscribe(listener)

        unsubscribe()
        notifier.publish()

        listener.assert_not_called()
        assert notifier.subscriber_count == 0

    def test_broken_listener_does_not_block_others(self):
        notifier = ChangeNotifier()
        good = Mock()
        notifier.subscribe(Mock(side_effect=RuntimeError("dashboard crashed")))
        notifier.subscribe(good)

        notifier.publish()

        good.assert_called_once()

    def test_stream_yields_heartbeats_between_changes(self):
        notifier = ChangeNotifier()

        async def consume():
            changes = notifier.stream(heartbeat=0.01)
            idle = await changes.__anext__()
            notifier.publish()
            changed = await changes.__anext__()
            subscribed = notifier.subscriber_count
            await changes.aclose()
            return idle, changed, subscribed

        idle, changed, subscribed = asyncio.run(consume())

        assert idle is False
        assert changed is True
        assert subscribed == 1
        assert notifier.subscriber_count == 0


class TestOrders:

    def test_update_unknown_order_returns_none(self, store):
        assert store.update_order("RD-NOPE00", status=OrderStatus.WASHING) is None

    def test_customer_filter(self, store):
        store.save_order(make_order("RD-AAAAAA"))

        assert [o.id for o in store.get_orders(customer_id="cust-1")] == ["RD-AAAAAA"]
        assert store.get_orders(customer_id="cust-2") == []

    def test_delivery_code_is_immutable(self, store):
        store.save_order(make_order())

        updated = store.update_order("RD-TEST01", delivery_code="0000")

        assert updated.delivery_code == "4821"


class TestChatThreads:

    def test_unknown_thread_is_empty_and_ai_owned(self, store):
        thread = store.get_chat_thread("nobody")

        assert thread.messages == []
        assert thread.human_owned is False
        assert thread.revision == 0

    def test_append_keeps_order_and_bumps_revision(self, store):
        store.append_message("cust-1", make_message("one"))
        thread = store.append_message("cust-1", make_message("two", minutes=1))

        assert [m.text for m in thread.messages] == ["one", "two"]
        assert thread.revision == 2

    def test_append_clamps_a_timestamp_from_the_past(self, store):
        store.append_message("cust-1", make_message("late", minutes=5))
        thread = store.append_message("cust-1", make_message("early", minutes=0))

        assert thread.messages[1].timestamp == thread.messages[0].timestamp

    def test_append_stamps_current_ownership(self, store):
        store.replace_thread_history("cust-1", [], human_owned=True)

        thread = store.append_message("cust-1", make_message("hi"))

        assert thread.messages[0].is_human_owned is True

    def test_compare_and_append_rejects_stale_epoch(self, store):
        store.append_message("cust-1", make_message("hi"))
        store.replace_thread_history("cust-1", store.get_chat_thread("cust-1").messages, human_owned=True)
        listener = Mock()
        store.notifier.subscribe(listener)

        result = store.append_message("cust-1", make_message("bot", role=SenderRole.AUTOMATED_AGENT), expected_epoch=0)

        assert result is None
        assert len(store.get_chat_thread("cust-1").messages) == 1
        listener.assert_not_called()

    def test_compare_and_append_accepts_current_epoch(self, store):
        thread = store.append_message("cust-1", make_message("hi"))

        result = store.append_message(
            "cust-1", make_message("bot", role=SenderRole.AUTOMATED_AGENT), expected_epoch=thread.ownership_epoch,
        )

        assert [m.text for m in result.messages] == ["hi", "bot"]

    def test_replace_is_last_writer_wins(self, store):
        store.append_message("cust-1", make_message("hi"))
        first_read = store.get_chat_thread("cust-1")
        second_read = store.get_chat_thread("cust-1")

        store.replace_thread_history("cust-1", first_read.messages + [make_message("fast", minutes=1)])
        store.replace_thread_history("cust-1", second_read.messages + [make_message("slow", minutes=2)])

        assert [m.text for m in store.get_chat_thread("cust-1").messages] == ["hi", "slow"]

    def test_thread_ids(self, store):
        store.append_message("cust-1", make_message("hi"))
        store.append_message("cust-2", make_message("hello"))

        assert sorted(store.get_thread_ids()) == ["cust-1", "cust-2"]

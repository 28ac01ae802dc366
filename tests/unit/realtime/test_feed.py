"""Tests for the row change feed."""

from __future__ import annotations

from sidera_sync.models.events import ChangeEvent, ChangeType
from sidera_sync.realtime.feed import ChangeFeed, RowFilter


def _update(new: dict, old: dict | None = None) -> ChangeEvent:
    return ChangeEvent(table="characters", type=ChangeType.UPDATE, new=new, old=old)


class TestRowFilter:
    def test_matches(self) -> None:
        row_filter = RowFilter("room_id", "r-1")
        assert row_filter.matches({"room_id": "r-1"})
        assert not row_filter.matches({"room_id": "r-2"})
        assert not row_filter.matches(None)

    def test_str(self) -> None:
        assert str(RowFilter("id", "c-1")) == "id=eq.c-1"


class TestChangeFeed:
    """Tests for subscription scoping and delivery."""

    def test_scoped_by_table_and_type(self) -> None:
        feed = ChangeFeed()
        received: list[ChangeEvent] = []
        feed.subscribe("characters", received.append, events={ChangeType.INSERT})

        feed.publish(_update({"id": "c-1"}))
        feed.publish(ChangeEvent(table="rooms", type=ChangeType.INSERT, new={"id": "r"}))
        feed.publish(ChangeEvent(table="characters", type=ChangeType.INSERT, new={"id": "c-2"}))

        assert [event.row["id"] for event in received] == ["c-2"]

    def test_filtered_by_column(self) -> None:
        feed = ChangeFeed()
        received: list[ChangeEvent] = []
        feed.subscribe("characters", received.append, row_filter=RowFilter("id", "c-1"))

        delivered = feed.publish(_update({"id": "c-2"}))
        feed.publish(_update({"id": "c-1"}))

        assert delivered == 0
        assert len(received) == 1

    def test_update_leaving_filter_is_delivered(self) -> None:
        """Test a row moving out of a room still reaches room subscribers."""
        feed = ChangeFeed()
        received: list[ChangeEvent] = []
        feed.subscribe("characters", received.append, row_filter=RowFilter("room_id", "r-1"))

        feed.publish(_update({"id": "c-1", "room_id": None}, old={"id": "c-1", "room_id": "r-1"}))

        assert len(received) == 1

    def test_delete_matched_on_old_row(self) -> None:
        feed = ChangeFeed()
        received: list[ChangeEvent] = []
        feed.subscribe("characters", received.append, row_filter=RowFilter("room_id", "r-1"))

        feed.publish(ChangeEvent(table="characters", type=ChangeType.DELETE, old={"id": "c", "room_id": "r-1"}))

        assert len(received) == 1

    def test_closed_subscription_stops_delivery(self) -> None:
        feed = ChangeFeed()
        received: list[ChangeEvent] = []
        subscription = feed.subscribe("characters", received.append)

        subscription.close()
        subscription.close()
        feed.publish(_update({"id": "c-1"}))

        assert received == []
        assert feed.subscriber_count == 0
        assert not subscription.active

    def test_failing_handler_does_not_block_others(self) -> None:
        feed = ChangeFeed()
        received: list[ChangeEvent] = []

        def broken(event: ChangeEvent) -> None:
            raise RuntimeError("boom")

        feed.subscribe("characters", broken)
        feed.subscribe("characters", received.append)

        assert feed.publish(_update({"id": "c-1"})) == 1
        assert len(received) == 1

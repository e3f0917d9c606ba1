"""
Tests for the incident store and change events
"""
import dataclasses
import pytest
from datetime import datetime, timezone

import sys
sys.path.insert(0, '.')

from smartsafety.core.exceptions import MalformedEvent
from smartsafety.incidents.models import ChangeEvent, ChangeKind, Incident
from smartsafety.incidents.store import IncidentStore


def _payload(kind, **row):
    return {"kind": kind, "record": row}


class TestChangeEvent:
    """Test parsing of change-feed payloads."""

    def test_short_payload(self):
        """Test the kind/record payload shape."""
        event = ChangeEvent.from_payload(_payload("insert", id="a", title="T", description="D"))

        assert event.kind == ChangeKind.INSERT
        assert event.record.id == "a"
        assert event.record.status == "pending"

    def test_realtime_payload(self):
        """Test the eventType/new/old payload shape."""
        event = ChangeEvent.from_payload({
            "eventType": "UPDATE",
            "new": {
                "id": "a", "title": "T", "description": "D",
                "latitude": "40.5", "longitude": -75,
                "created_at": "2026-01-01T08:00:00Z",
            },
            "old": {},
        })

        assert event.kind == ChangeKind.UPDATE
        assert event.record.latitude == 40.5
        assert event.record.created_at == datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_enum_kind(self):
        """Test a ChangeKind member is accepted as the kind."""
        event = ChangeEvent.from_payload({"kind": ChangeKind.INSERT, "record": {"id": "b", "title": "T"}})

        assert event.kind == ChangeKind.INSERT
        assert event.record.id == "b"

    def test_delete_uses_old_row(self):
        """Test delete payloads carry the row in 'old'."""
        event = ChangeEvent.from_payload({"eventType": "DELETE", "new": {}, "old": {"id": "a"}})

        assert event.kind == ChangeKind.DELETE
        assert event.record.id == "a"

    @pytest.mark.parametrize("payload", [
        {"record": {"id": "a"}},
        {"kind": "insert", "record": {"title": "no id"}},
        {"kind": "insert", "record": {"id": ""}},
        {"kind": "upsert", "record": {"id": "a"}},
        {"kind": "insert"},
        {"kind": "insert", "record": {"id": "a", "latitude": "north"}},
        ["not", "a", "mapping"],
    ])
    def test_malformed_payloads(self, payload):
        """Test payloads without id or kind are rejected."""
        with pytest.raises(MalformedEvent):
            ChangeEvent.from_payload(payload)

    def test_to_payload_shape(self, make_incident):
        """Test serialization to the realtime shape."""
        incident = make_incident("a", 40.0, -75.0)

        insert = ChangeEvent(ChangeKind.INSERT, incident).to_payload()
        delete = ChangeEvent(ChangeKind.DELETE, incident).to_payload()

        assert insert["eventType"] == "INSERT"
        assert insert["new"]["id"] == "a"
        assert delete["new"] == {}
        assert delete["old"]["id"] == "a"


class TestIncidentStore:
    """Test suite for the merged incident store."""

    def setup_method(self):
        """Setup test fixtures."""
        self.rejected = []
        self.store = IncidentStore(on_rejected=self.rejected.append)

    def test_bulk_load_then_update_overwrites(self):
        """Test bulk load followed by an update keeps one record per id."""
        self.store.bulk_load([Incident(id="a", title="Pothole", description="Deep", status="pending")])

        self.store.apply_payload(_payload(
            "update", id="a", title="Pothole", description="Deep", status="resolved"
        ))

        snapshot = self.store.snapshot()
        assert len(snapshot) == 1
        assert snapshot[0].status == "resolved"

    def test_redelivered_insert_does_not_duplicate(self, make_incident):
        """Test an insert for an already loaded id overwrites it."""
        self.store.bulk_load([make_incident("a"), make_incident("b")])

        self.store.apply_change(ChangeEvent(ChangeKind.INSERT, make_incident("a", title="New title")))

        assert len(self.store) == 2
        assert self.store.get("a").title == "New title"

    def test_delete_absent_is_noop(self, make_incident):
        """Test deleting an unknown id leaves the store unchanged."""
        self.store.bulk_load([make_incident("a")])
        before = self.store.snapshot()
        notifications = []
        self.store.subscribe(notifications.append)

        changed = self.store.apply_payload(_payload("delete", id="zzz"))

        assert changed is False
        assert self.store.snapshot() == before
        assert notifications == []

    def test_delete_present(self, make_incident):
        """Test deleting a known id removes it."""
        self.store.bulk_load([make_incident("a"), make_incident("b")])

        assert self.store.apply_payload(_payload("delete", id="a")) is True
        assert "a" not in self.store
        assert len(self.store) == 1

    def test_malformed_payload_rejected(self, make_incident):
        """Test malformed payloads are counted and reported, not applied."""
        self.store.bulk_load([make_incident("a")])

        assert self.store.apply_payload({"record": {"id": "b"}}) is False
        assert self.store.apply_payload({"kind": "insert", "record": {}}) is False

        assert self.store.rejected_count == 2
        assert len(self.rejected) == 2
        assert all(isinstance(e, MalformedEvent) for e in self.rejected)
        assert [i.id for i in self.store.snapshot()] == ["a"]

    def test_bulk_load_replaces_everything(self, make_incident):
        """Test bulk load discards previous contents."""
        self.store.bulk_load([make_incident("a"), make_incident("b")])
        self.store.bulk_load([make_incident("c")])

        assert [i.id for i in self.store.snapshot()] == ["c"]
        assert self.store.loaded is True

    def test_snapshot_is_immutable(self, make_incident):
        """Test callers cannot mutate store state through a snapshot."""
        self.store.bulk_load([make_incident("a")])
        snapshot = self.store.snapshot()

        assert isinstance(snapshot, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot[0].status = "resolved"
        assert self.store.get("a").status == "pending"

    def test_ordered_newest_first(self, make_incident):
        """Test ordered accessor sorts by created_at descending."""
        self.store.bulk_load([
            make_incident("old", created_at=datetime(2026, 1, 1, tzinfo=timezone.utc)),
            make_incident("undated"),
            make_incident("new", created_at=datetime(2026, 3, 1, tzinfo=timezone.utc)),
        ])

        assert [i.id for i in self.store.ordered()] == ["new", "old", "undated"]

    def test_enum_kind_payload_applied(self):
        """Test payloads carrying ChangeKind members are merged, not rejected."""
        changed = self.store.apply_payload({"kind": ChangeKind.INSERT, "record": {"id": "b", "title": "T"}})

        assert changed is True
        assert self.store.rejected_count == 0
        assert "b" in self.store

    def test_ordered_with_naive_timestamps(self, make_incident):
        """Test records built with naive datetimes sort alongside aware ones."""
        self.store.bulk_load([
            make_incident("naive", created_at=datetime(2026, 2, 1)),
            make_incident("aware", created_at=datetime(2026, 1, 1, tzinfo=timezone.utc)),
            make_incident("undated"),
        ])

        assert [i.id for i in self.store.ordered()] == ["naive", "aware", "undated"]
        assert self.store.get("naive").created_at.tzinfo == timezone.utc

    def test_subscribers_receive_snapshots(self, make_incident):
        """Test listeners are notified after each mutation."""
        received = []
        unsubscribe = self.store.subscribe(received.append)

        self.store.bulk_load([make_incident("a")])
        self.store.apply_change(ChangeEvent(ChangeKind.INSERT, make_incident("b")))
        unsubscribe()
        self.store.apply_change(ChangeEvent(ChangeKind.INSERT, make_incident("c")))

        assert len(received) == 2
        assert [i.id for i in received[-1]] == ["a", "b"]

    def test_stale_update_applied_without_guard(self, make_incident):
        """Test updates replace records regardless of age by default."""
        newer = datetime(2026, 2, 1, tzinfo=timezone.utc)
        older = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.store.bulk_load([make_incident("a", status="resolved", updated_at=newer)])

        self.store.apply_change(ChangeEvent(
            ChangeKind.UPDATE, make_incident("a", status="pending", updated_at=older)
        ))

        assert self.store.get("a").status == "pending"

    def test_stale_update_ignored_with_guard(self, make_incident):
        """Test the stale guard keeps the newer record."""
        store = IncidentStore(stale_guard=True)
        newer = datetime(2026, 2, 1, tzinfo=timezone.utc)
        older = datetime(2026, 1, 1, tzinfo=timezone.utc)
        store.bulk_load([make_incident("a", status="resolved", updated_at=newer)])

        applied = store.apply_change(ChangeEvent(
            ChangeKind.UPDATE, make_incident("a", status="pending", updated_at=older)
        ))

        assert applied is False
        assert store.stale_count == 1
        assert store.get("a").status == "resolved"


class TestIncidentModel:
    """Test Incident presentation helpers."""

    def test_location_label(self, make_incident):
        """Test location label formatting."""
        assert make_incident("a", 40.0, -75.12346).location_label == "Location: 40.0000, -75.1235"
        assert make_incident("b").location_label == "Location: N/A"

    def test_zero_coordinates_are_a_location(self, make_incident):
        """Test (0, 0) counts as a real coordinate."""
        incident = make_incident("a", 0.0, 0.0)

        assert incident.has_location is True
        assert incident.coordinate is not None

    def test_display_title(self, make_incident):
        """Test title with status."""
        assert make_incident("a", title="Pothole").display_title == "Pothole (pending)"

    def test_naive_timestamp_is_utc(self):
        """Test naive timestamps are read as UTC."""
        incident = Incident.from_dict({"id": "a", "created_at": "2026-01-01T08:00:00"})

        assert incident.created_at.tzinfo == timezone.utc

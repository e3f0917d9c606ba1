"""
Local merged view of the incident repository.

The store is driven from outside: a bulk load at startup, then one change
event at a time from the change feed. It performs no I/O itself.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from smartsafety.core.exceptions import MalformedEvent
from smartsafety.incidents.models import ChangeEvent, ChangeKind, Incident
from smartsafety.incidents.observable import ObservableValue

logger = logging.getLogger(__name__)

Snapshot = Tuple[Incident, ...]

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class IncidentStore:
    """
    Mapping of incident id to the latest known record.

    Holds exactly one record per id: inserts and updates overwrite, deletes
    remove, and deleting an absent id changes nothing. Listeners registered
    with ``subscribe`` receive a fresh immutable snapshot after each mutation.
    """

    def __init__(
        self,
        stale_guard: bool = False,
        on_rejected: Optional[Callable[[MalformedEvent], None]] = None,
    ):
        """
        Initialize the store.

        Args:
            stale_guard: Ignore updates whose ``updated_at`` is older than the
                stored record's
            on_rejected: Hook called with every rejected malformed payload
        """
        self.stale_guard = stale_guard
        self.on_rejected = on_rejected

        self._records: Dict[str, Incident] = {}
        self._snapshot: ObservableValue[Snapshot] = ObservableValue(())

        self.loaded = False
        self.rejected_count = 0
        self.stale_count = 0

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, incident_id: object) -> bool:
        return incident_id in self._records

    def get(self, incident_id: str) -> Optional[Incident]:
        return self._records.get(incident_id)

    def bulk_load(self, records: Iterable[Incident]) -> None:
        """Replace the whole local set, keeping the given order."""
        self._records = {record.id: record for record in records}
        self.loaded = True
        logger.info(f"Bulk loaded {len(self._records)} incidents")
        self._publish()

    def apply_change(self, event: ChangeEvent) -> bool:
        """
        Merge one change event.

        Returns:
            True if the store contents changed
        """
        record = event.record

        if event.kind == ChangeKind.DELETE:
            if self._records.pop(record.id, None) is None:
                logger.debug(f"Delete for unknown incident {record.id} ignored")
                return False
            self._publish()
            return True

        existing = self._records.get(record.id)
        if self.stale_guard and existing is not None and self._is_stale(record, existing):
            self.stale_count += 1
            logger.warning(
                f"Stale {event.kind.value} for incident {record.id} ignored "
                f"({record.updated_at} < {existing.updated_at})"
            )
            return False

        self._records[record.id] = record
        self._publish()
        return True

    def apply_payload(self, payload: Mapping[str, Any]) -> bool:
        """
        Parse and merge a raw change-feed payload.

        Malformed payloads are counted, logged and reported to ``on_rejected``;
        they never raise.
        """
        try:
            event = ChangeEvent.from_payload(payload)
        except MalformedEvent as e:
            self._reject(e)
            return False
        return self.apply_change(event)

    def snapshot(self) -> Snapshot:
        """Current records as an immutable tuple."""
        return self._snapshot.value

    def ordered(self) -> Snapshot:
        """Records newest first by ``created_at``; undated records last."""
        return tuple(sorted(
            self._records.values(),
            key=lambda r: r.created_at or _OLDEST,
            reverse=True,
        ))

    def subscribe(self, listener: Callable[[Snapshot], None]) -> Callable[[], None]:
        return self._snapshot.subscribe(listener)

    def clear(self) -> None:
        self._records = {}
        self.loaded = False
        self._publish()

    def _is_stale(self, incoming: Incident, existing: Incident) -> bool:
        if incoming.updated_at is None or existing.updated_at is None:
            return False
        return incoming.updated_at < existing.updated_at

    def _reject(self, error: MalformedEvent) -> None:
        self.rejected_count += 1
        logger.warning(f"Dropped change event: {error.reason}")
        if self.on_rejected:
            self.on_rejected(error)

    def _publish(self) -> None:
        self._snapshot.set(tuple(self._records.values()))

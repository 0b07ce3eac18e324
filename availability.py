# availability.py

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

STATUSES = ('available', 'unavailable', 'maybe')


class AvailabilityStore:
    """Local projection of the ``availabilities`` collection, keyed by (userId, date)."""

    def __init__(self, docs=()):
        self._by_key = {}
        self.apply_snapshot(docs)

    def apply_snapshot(self, docs):
        by_key = {}
        for doc in docs:
            by_key[(doc['userId'], doc['date'])] = doc
        self._by_key = by_key

    def sync(self, subscription):
        snapshot = subscription.latest()
        if snapshot is None: return False
        self.apply_snapshot(snapshot)
        return True

    def lookup(self, person_id, day):
        return self._by_key.get((person_id, day))

    def records_for(self, person_id):
        return sorted((doc for (uid, _), doc in self._by_key.items() if uid == person_id), key=lambda d: d['date'])

    def __len__(self):
        return len(self._by_key)


@dataclass
class ReconcileResult:
    created: list = field(default_factory=list)
    updated: list = field(default_factory=list)
    deleted: list = field(default_factory=list)
    failed: list = field(default_factory=list)

    def to_dict(self):
        return {"created": self.created, "updated": self.updated, "deleted": self.deleted, "failed": self.failed}


def reconcile(store, writer, person_id, status, day_keys):
    """Makes the records for ``person_id`` match ``status`` on exactly ``day_keys``.

    A day with no record gets one, a day with a different status is updated in place,
    and a day already holding ``status`` is cleared (toggle-off). Days are written
    independently: a failed write is logged and reported in ``failed`` while the
    remaining days still go through, and nothing already written is rolled back.
    """
    if status not in STATUSES: raise ValueError(f"Unknown status '{status}'")
    result = ReconcileResult()
    for day in sorted(set(day_keys)):
        existing = store.lookup(person_id, day)
        try:
            if existing is None:
                writer.create_availability(person_id, day, status)
                result.created.append(day)
            elif existing['status'] != status:
                writer.update_availability(existing['id'], status)
                result.updated.append(day)
            else:
                writer.delete_availability(existing['id'])
                result.deleted.append(day)
        except Exception as e:
            logger.error(f"Availability write failed for {person_id} on {day}: {e}", exc_info=True)
            result.failed.append(day)
    return result

# selection.py

from threading import Lock

from availability import STATUSES
from date_range import expand, to_day


class SelectionLocked(Exception):
    """Raised when the acting person or mode is changed in the middle of a drag."""


class DragSelection:
    """Turns press/enter/release events over calendar days into one reconciliation call.

    Idle until a day is pressed with an acting person set, then Dragging(anchor, current)
    until the pointer is released or leaves the calendar, both of which commit.
    """

    def __init__(self, on_commit, tz=None):
        self.on_commit = on_commit
        self.tz = tz
        self.person_id = None
        self.mode = 'available'
        self.anchor = None
        self.current = None
        # Requests for the same user are served on separate threads.
        self.lock = Lock()

    @property
    def dragging(self):
        return self.anchor is not None

    @property
    def state(self):
        return 'dragging' if self.dragging else 'idle'

    def set_acting_person(self, person_id):
        with self.lock:
            if self.dragging: raise SelectionLocked("Cannot change the acting person while dragging.")
            self.person_id = person_id

    def set_mode(self, mode):
        if mode not in STATUSES: raise ValueError(f"Unknown mode '{mode}'")
        with self.lock:
            if self.dragging: raise SelectionLocked("Cannot change the mode while dragging.")
            self.mode = mode

    def press(self, day):
        day = to_day(day, self.tz)
        with self.lock:
            if not self.person_id: return False
            self.anchor = self.current = day
            return True

    def enter(self, day):
        day = to_day(day, self.tz)
        with self.lock:
            if not self.dragging or day == self.current: return False
            self.current = day
            return True

    def release(self):
        with self.lock:
            if not self.dragging: return None
            days = expand(self.anchor, self.current, self.tz)
            person_id, mode = self.person_id, self.mode
            self.anchor = self.current = None
        return self.on_commit(person_id, mode, days)

    # Leaving the calendar surface commits exactly like a release.
    leave = release

    def highlighted(self):
        with self.lock:
            if not self.dragging: return []
            return expand(self.anchor, self.current, self.tz)

    def to_dict(self):
        with self.lock:
            anchor, current = self.anchor, self.current
        return {
            "state": 'dragging' if anchor else 'idle',
            "personId": self.person_id,
            "mode": self.mode,
            "anchor": anchor.isoformat() if anchor else None,
            "current": current.isoformat() if current else None,
            "days": expand(anchor, current, self.tz) if anchor else [],
        }


class SelectionRegistry:
    """One DragSelection per signed-in user."""

    def __init__(self, on_commit, tz=None):
        self.on_commit = on_commit
        self.tz = tz
        self._selections = {}
        self._lock = Lock()

    def get(self, user_id):
        with self._lock:
            selection = self._selections.get(user_id)
            if selection is None:
                selection = self._selections[user_id] = DragSelection(self.on_commit, self.tz)
            return selection

    def clear(self):
        with self._lock:
            self._selections.clear()

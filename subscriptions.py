# subscriptions.py

import logging
import queue
from threading import Lock

logger = logging.getLogger(__name__)

_CANCELLED = object()


class Subscription:
    """A live query over one collection. Every change delivers the full filtered snapshot."""

    def __init__(self, hub, collection, filters):
        self.hub = hub
        self.collection = collection
        self.filters = dict(filters or {})
        self.cancelled = False
        self._queue = queue.Queue()

    def push(self, snapshot):
        if not self.cancelled: self._queue.put(snapshot)

    def latest(self):
        """Returns the newest pending snapshot without blocking, or None."""
        if self.cancelled: return None
        snapshot = None
        while True:
            try: item = self._queue.get_nowait()
            except queue.Empty: return snapshot
            if item is _CANCELLED: return snapshot
            snapshot = item

    def snapshots(self, timeout=None):
        """Yields snapshots until cancelled. Yields None on timeout so callers can send keepalives."""
        while not self.cancelled:
            try: item = self._queue.get(timeout=timeout)
            except queue.Empty:
                yield None
                continue
            if item is _CANCELLED: return
            yield item

    def cancel(self):
        if self.cancelled: return
        self.cancelled = True
        self.hub._remove(self)
        self._queue.put(_CANCELLED)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.cancel()


class SubscriptionHub:
    def __init__(self, loader):
        self.loader = loader
        self._subscriptions = []
        self._lock = Lock()

    def subscribe(self, collection, filters=None):
        subscription = Subscription(self, collection, filters)
        subscription.push(self.loader(collection, subscription.filters))
        with self._lock: self._subscriptions.append(subscription)
        logger.info(f"Subscribed to '{collection}' with filters {subscription.filters}")
        return subscription

    def publish(self, collection):
        with self._lock: targets = [s for s in self._subscriptions if s.collection == collection]
        for subscription in targets:
            subscription.push(self.loader(collection, subscription.filters))

    def _remove(self, subscription):
        with self._lock:
            if subscription in self._subscriptions: self._subscriptions.remove(subscription)

    def __len__(self):
        with self._lock: return len(self._subscriptions)

    def close(self):
        with self._lock: targets = list(self._subscriptions)
        for subscription in targets: subscription.cancel()

"""In-memory item store shared between the ingest consumer and readers."""

import threading
from contextlib import contextmanager

from hn_poller.models import Item


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Writer-preferring: once a writer is waiting, new readers queue behind it.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ItemStore:
    """Mapping of item id to Item.

    Only the ingest consumer calls put(); any number of threads may read.
    Never pruned.
    """

    def __init__(self):
        self._items: dict[int, Item] = {}
        self._lock = ReadWriteLock()

    def snapshot(self) -> dict[int, Item]:
        """Shallow copy of the current mapping, safe to iterate while puts continue."""
        with self._lock.read():
            return dict(self._items)

    def put(self, item: Item):
        with self._lock.write():
            self._items[item.id] = item

    def contains(self, item_id: int) -> bool:
        with self._lock.read():
            return item_id in self._items

    def __contains__(self, item_id) -> bool:
        return self.contains(item_id)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._items)

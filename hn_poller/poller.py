"""
Polls the HN listing endpoint and keeps the item store up to date.

Three kinds of asyncio task cooperate:

- the poller loop (run) fetches the listing every ``poll_interval`` seconds,
  picks the new ids with the dedup policy and spawns one fetch task per id;
- fetch tasks download and decode one item each and push it onto the ingest
  queue, blocking while the queue is full;
- the ingest consumer (ingest) is the only writer to the store.

With ``track_in_flight`` on, ids whose fetch has not been ingested yet count as
known, so an id listed on two consecutive cycles is dispatched once.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

from hn_poller.config import (
    CHANNEL_CAPACITY,
    HN_ITEM,
    HN_NEW_STORIES,
    POLL_INTERVAL,
    Settings,
)
from hn_poller.dedup import DedupPolicy, MonotonicPrefixPolicy, get_policy
from hn_poller.dispatch import TaskSpawner
from hn_poller.errors import DecodeError, PollerError
from hn_poller.fetcher import Fetcher
from hn_poller.models import Item, decode_ids, decode_item
from hn_poller.store import ItemStore

log = logging.getLogger("hn_poller")


class Poller:
    def __init__(
        self,
        fetcher: Fetcher,
        store: Optional[ItemStore] = None,
        *,
        listing_url: str = HN_NEW_STORIES,
        item_url: str = HN_ITEM,
        poll_interval: float = POLL_INTERVAL,
        fetch_limit: int = 0,
        channel_capacity: int = CHANNEL_CAPACITY,
        policy: Optional[DedupPolicy] = None,
        spawner: Optional[TaskSpawner] = None,
        track_in_flight: bool = True,
    ):
        self.fetcher = fetcher
        self.store = store if store is not None else ItemStore()
        self.listing_url = listing_url
        self.item_url = item_url
        self.poll_interval = poll_interval
        self.fetch_limit = fetch_limit
        self.policy = policy or MonotonicPrefixPolicy()
        self.spawner = spawner or TaskSpawner()
        self.track_in_flight = track_in_flight

        self._queue: asyncio.Queue[tuple[int, Item]] = asyncio.Queue(
            maxsize=channel_capacity
        )
        self._pending: set[int] = set()
        self._stop_event: Optional[asyncio.Event] = None
        self._tasks: list[asyncio.Task] = []

        self.cycles = 0
        self.ingested = 0
        self.last_poll: Optional[float] = None
        self.last_error: Optional[str] = None

    @classmethod
    def from_settings(
        cls, settings: Settings, client: Optional[httpx.AsyncClient] = None
    ) -> "Poller":
        return cls(
            Fetcher(client, timeout=settings.fetch_timeout),
            listing_url=settings.listing_url,
            item_url=settings.item_url,
            poll_interval=settings.poll_interval,
            fetch_limit=settings.fetch_limit,
            channel_capacity=settings.channel_capacity,
            policy=get_policy(settings.dedup_policy),
            spawner=TaskSpawner(settings.max_concurrent_fetches),
            track_in_flight=settings.track_in_flight,
        )

    # --- Read side ---

    def items(self) -> dict[int, Item]:
        return self.store.snapshot()

    @property
    def pending(self) -> frozenset[int]:
        return frozenset(self._pending)

    def status(self) -> dict:
        return {
            "cycles": self.cycles,
            "last_poll": self.last_poll,
            "last_error": self.last_error,
            "items": len(self.store),
            "ingested": self.ingested,
            "pending": len(self._pending),
            "fetching": self.spawner.running,
            "queued": self._queue.qsize(),
            "poll_interval": self.poll_interval,
        }

    # --- Polling ---

    def _known(self, item_id: int) -> bool:
        if self.track_in_flight and item_id in self._pending:
            return True
        return self.store.contains(item_id)

    async def poll_once(self) -> list[int]:
        """Run one polling cycle and return the ids dispatched for fetching.

        Raises NetworkError/ReadError if the listing cannot be fetched and
        DecodeError if it is not a JSON array of ids; nothing is dispatched then.
        """
        body = await self.fetcher.fetch(self.listing_url)
        ids = decode_ids(body, self.listing_url)

        if self.fetch_limit > 0:
            ids = ids[: self.fetch_limit]

        new_ids = self.policy.compute_new_ids(ids, self._known)

        dispatched = []
        for item_id in new_ids:
            if self.track_in_flight:
                if item_id in self._pending:
                    continue
                self._pending.add(item_id)
            dispatched.append(item_id)

        self.cycles += 1
        self.last_poll = time.time()
        self.last_error = None
        log.info(f"[poller] {len(dispatched)} new ids")

        for instance, item_id in enumerate(dispatched):
            self.spawner.spawn(
                self._fetch_item(instance, item_id), name=f"fetch-{item_id}"
            )
        return dispatched

    async def _fetch_item(self, instance: int, item_id: int):
        pushed = False
        try:
            try:
                url = self.item_url.format(id=item_id)
                body = await self.fetcher.fetch(url)
            except PollerError as e:
                log.error(f"[fetch-{instance}] item {item_id}: {e}")
                return
            except Exception as e:
                log.exception(f"[fetch-{instance}] item {item_id}: unexpected error: {e}")
                return

            try:
                item, bad_fields = decode_item(body, item_id, url)
            except DecodeError as e:
                # Still stored, with zero values, so the id is not refetched
                log.error(f"[fetch-{instance}] item {item_id}: error decoding JSON: {e}")
                item = Item(id=item_id)
            else:
                if bad_fields:
                    log.warning(
                        f"[fetch-{instance}] item {item_id}: malformed fields {', '.join(bad_fields)}"
                    )

            log.debug(f"[fetch-{instance}] item {item.id} got: {item.score}")
            await self._queue.put((item_id, item))
            pushed = True
        finally:
            if not pushed:
                self._pending.discard(item_id)

    async def run(self, stop_event: asyncio.Event):
        """Poll forever, sleeping ``poll_interval`` between cycles, until stop_event is set."""
        log.info(f"[poller] started (interval: {self.poll_interval}s)")

        while not stop_event.is_set():
            try:
                await self.poll_once()
            except PollerError as e:
                self.last_error = str(e)
                log.error(f"[poller] cycle failed: {e}")
            except Exception as e:
                self.last_error = str(e)
                log.exception(f"[poller] unexpected error: {e}")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
                break  # Stop event was set
            except asyncio.TimeoutError:
                pass  # Time to poll again

        log.info("[poller] stopped")

    # --- Ingest ---

    async def ingest(self):
        """Drain the ingest queue into the store. Runs until cancelled."""
        log.info("[ingest] started")
        while True:
            item_id, item = await self._queue.get()
            try:
                self.store.put(item)
                self.ingested += 1
            except Exception as e:
                log.exception(f"[ingest] failed to store item {item.id}: {e}")
            finally:
                self._pending.discard(item_id)
                self._queue.task_done()

    # --- Lifecycle ---

    async def start(self, poll: bool = True):
        """Start the ingest consumer and, unless ``poll`` is False, the poller loop."""
        if self._tasks:
            return
        self._stop_event = asyncio.Event()
        self._tasks.append(asyncio.create_task(self.ingest(), name="ingest"))
        if poll:
            self._tasks.append(
                asyncio.create_task(self.run(self._stop_event), name="poller")
            )

    async def drain(self):
        """Wait for all dispatched fetches to finish and the queue to be ingested."""
        await self.spawner.join()
        await self._queue.join()

    async def stop(self):
        if self._stop_event is not None:
            self._stop_event.set()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.spawner.cancel_all()
        await self.fetcher.aclose()

import asyncio
import json
import re

import httpx
import pytest
import pytest_asyncio

from hn_poller.fetcher import Fetcher
from hn_poller.poller import Poller

LISTING_URL = "https://hn.test/v0/newstories.json"
ITEM_URL = "https://hn.test/v0/item/{id}.json"
ITEM_PATH = re.compile(r"/v0/item/(\d+)\.json$")


class FakeHN:
    """In-process stand-in for the HN Firebase API.

    ``listing`` is returned by the listing endpoint. ``items`` maps an id to
    either a dict (served as JSON) or raw bytes. Ids in ``fail`` raise a
    connection error, ids in ``hold`` wait until ``release()`` is called.
    """

    def __init__(self, listing=None, items=None):
        self.listing = listing if listing is not None else []
        self.listing_body = None
        self.items = items if items is not None else {}
        self.fail = set()
        self.hold = set()
        self._released = asyncio.Event()
        self.listing_calls = 0
        self.item_calls = []

    def release(self):
        self._released.set()

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/newstories.json"):
            self.listing_calls += 1
            if self.listing_body is not None:
                return httpx.Response(200, content=self.listing_body)
            return httpx.Response(200, json=self.listing)

        match = ITEM_PATH.search(request.url.path)
        if not match:
            return httpx.Response(404, content=b"null")
        item_id = int(match.group(1))
        self.item_calls.append(item_id)

        if item_id in self.fail:
            raise httpx.ConnectError("connection refused", request=request)
        if item_id in self.hold:
            await self._released.wait()

        payload = self.items.get(item_id)
        if payload is None:
            return httpx.Response(200, content=b"null")
        if isinstance(payload, bytes):
            return httpx.Response(200, content=payload)
        return httpx.Response(200, content=json.dumps(payload).encode())


def story(item_id, **fields):
    data = {
        "by": f"user{item_id}",
        "descendants": 0,
        "id": item_id,
        "kids": [],
        "time": 1_700_000_000 + item_id,
        "score": item_id * 10,
        "title": f"Story {item_id}",
        "type": "story",
        "url": f"https://example.com/{item_id}",
    }
    data.update(fields)
    return data


@pytest.fixture
def upstream():
    return FakeHN()


@pytest_asyncio.fixture
async def client(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as c:
        yield c


@pytest.fixture
def make_poller(client):
    """Factory for pollers talking to the fake upstream; ingest is started by the test."""

    def _make(**kwargs):
        kwargs.setdefault("listing_url", LISTING_URL)
        kwargs.setdefault("item_url", ITEM_URL)
        kwargs.setdefault("poll_interval", 0.01)
        return Poller(Fetcher(client), **kwargs)

    return _make


@pytest_asyncio.fixture
async def poller(make_poller, upstream):
    """A poller with its ingest consumer running (no background polling)."""
    p = make_poller()
    await p.start(poll=False)
    yield p
    upstream.release()
    await p.stop()


async def wait_until(predicate, timeout=2.0):
    """Yield to the loop until predicate() is true."""
    async def _wait():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_wait(), timeout)

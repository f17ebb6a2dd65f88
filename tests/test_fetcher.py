import httpx
import pytest

from hn_poller.errors import NetworkError, ReadError
from hn_poller.fetcher import Fetcher


class BrokenStream(httpx.AsyncByteStream):
    closed = False

    async def __aiter__(self):
        yield b'{"partial": '
        raise httpx.ReadError("connection reset")

    async def aclose(self):
        self.closed = True


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_returns_raw_body():
    async with mock_client(lambda request: httpx.Response(200, content=b"[1,2]")) as c:
        assert await Fetcher(c).fetch("https://hn.test/x") == b"[1,2]"


@pytest.mark.asyncio
async def test_fetch_does_not_check_status_codes():
    async with mock_client(lambda request: httpx.Response(503, content=b"busy")) as c:
        assert await Fetcher(c).fetch("https://hn.test/x") == b"busy"


@pytest.mark.asyncio
async def test_connection_failure_is_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async with mock_client(handler) as c:
        with pytest.raises(NetworkError) as exc:
            await Fetcher(c).fetch("https://hn.test/x")
    assert exc.value.url == "https://hn.test/x"


@pytest.mark.asyncio
async def test_timeout_is_network_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    async with mock_client(handler) as c:
        with pytest.raises(NetworkError):
            await Fetcher(c).fetch("https://hn.test/x")


@pytest.mark.asyncio
async def test_body_read_failure_is_read_error():
    stream = BrokenStream()
    async with mock_client(lambda request: httpx.Response(200, stream=stream)) as c:
        with pytest.raises(ReadError):
            await Fetcher(c).fetch("https://hn.test/x")
    assert stream.closed


@pytest.mark.asyncio
async def test_aclose_only_closes_owned_client():
    async with mock_client(lambda request: httpx.Response(200)) as c:
        fetcher = Fetcher(c)
        await fetcher.aclose()
        assert not c.is_closed

    owned = Fetcher()
    await owned.aclose()
    assert owned._client.is_closed

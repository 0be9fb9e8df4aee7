"""
Unit tests for the channel relay server.

The health endpoint goes through FastAPI's TestClient. Socket tests run the
app under uvicorn on an ephemeral port in the test's own event loop, since
every member socket must live on the loop that broadcasts to it.
"""

import asyncio
import json

import httpx
import pytest
import pytest_asyncio
import uvicorn
import websockets
from fastapi.testclient import TestClient

from orbit import __version__
from orbit.bus import EventBus, WebSocketTransport
from orbit.bus.server import ChannelRelay, create_app
from orbit.core.models import ClearEvent, TranscriptEvent

RECV_TIMEOUT = 2.0


@pytest.fixture
def relay():
    return ChannelRelay()


@pytest.fixture
def client(relay):
    return TestClient(create_app(relay))


@pytest_asyncio.fixture
async def server_port(relay):
    """Serve the relay app on 127.0.0.1 and yield the bound port."""
    config = uvicorn.Config(
        create_app(relay), host="127.0.0.1", port=0, log_level="warning", lifespan="off"
    )
    server = uvicorn.Server(config)
    task = asyncio.create_task(server.serve())

    while not server.started:
        if task.done():
            task.result()
        await asyncio.sleep(0.01)

    yield server.servers[0].sockets[0].getsockname()[1]

    server.should_exit = True
    await task


@pytest.fixture
def channel_url(server_port):
    return f"ws://127.0.0.1:{server_port}"


async def wait_for_members(relay, name, count):
    async def _wait():
        while relay.member_count(name) != count:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_wait(), RECV_TIMEOUT)


async def receive(ws):
    return await asyncio.wait_for(ws.recv(), RECV_TIMEOUT)


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        """Health reports status and version."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == __version__
        assert data["channels"] == {}


class TestChannelSocket:
    """Tests for the /channel/{name} rebroadcast."""

    @pytest.mark.asyncio
    async def test_message_reaches_other_member(self, relay, channel_url):
        """A message from one socket reaches the other."""
        message = TranscriptEvent.partial("hello", "en-US", timestamp=1).to_json()

        async with websockets.connect(f"{channel_url}/channel/room") as sender, \
                websockets.connect(f"{channel_url}/channel/room") as receiver:
            await wait_for_members(relay, "room", 2)
            await sender.send(message)
            assert await receive(receiver) == message

    @pytest.mark.asyncio
    async def test_sender_gets_no_echo(self, relay, channel_url):
        """The sender does not receive its own message back."""
        first = ClearEvent().to_json()
        second = TranscriptEvent.partial("x", "en-US", timestamp=2).to_json()

        async with websockets.connect(f"{channel_url}/channel/room") as a, \
                websockets.connect(f"{channel_url}/channel/room") as b:
            await wait_for_members(relay, "room", 2)
            await a.send(first)
            assert await receive(b) == first
            await b.send(second)
            # Next frame a sees is b's message, not its own
            assert await receive(a) == second

    @pytest.mark.asyncio
    async def test_malformed_message_rejected(self, relay, channel_url):
        """Invalid messages are not rebroadcast."""
        valid = ClearEvent().to_json()

        async with websockets.connect(f"{channel_url}/channel/room") as a, \
                websockets.connect(f"{channel_url}/channel/room") as b:
            await wait_for_members(relay, "room", 2)
            await a.send("garbage")
            await a.send(json.dumps({"kind": "nope"}))
            await a.send(valid)
            assert await receive(b) == valid

    @pytest.mark.asyncio
    async def test_channels_isolated(self, relay, channel_url):
        """Messages stay within their channel name."""
        message = ClearEvent().to_json()

        async with websockets.connect(f"{channel_url}/channel/one") as a, \
                websockets.connect(f"{channel_url}/channel/two") as other, \
                websockets.connect(f"{channel_url}/channel/one") as b:
            await wait_for_members(relay, "one", 2)
            await wait_for_members(relay, "two", 1)
            await a.send(message)
            assert await receive(b) == message

            with pytest.raises(TimeoutError):
                await asyncio.wait_for(other.recv(), 0.1)

    @pytest.mark.asyncio
    async def test_members_tracked(self, relay, channel_url, server_port):
        """Attach and detach update member counts and the health report."""
        async with websockets.connect(f"{channel_url}/channel/room"), \
                websockets.connect(f"{channel_url}/channel/room"):
            await wait_for_members(relay, "room", 2)
            async with httpx.AsyncClient() as http:
                response = await http.get(f"http://127.0.0.1:{server_port}/health")
            assert response.json()["channels"] == {"room": 2}

        await wait_for_members(relay, "room", 0)
        assert relay.channels == {}


class TestBusOverRelay:
    """Two EventBus instances exchanging events through the running relay."""

    @pytest.mark.asyncio
    async def test_final_delivered_between_buses(self, relay, channel_url):
        """A final published on one bus arrives intact on the other."""
        event = TranscriptEvent.final("Good morning", "en-US", timestamp=1700000000000)
        received = []
        arrived = asyncio.Event()

        def on_event(e):
            received.append(e)
            arrived.set()

        publisher = EventBus("room", WebSocketTransport("room", url=channel_url))
        subscriber = EventBus("room", WebSocketTransport("room", url=channel_url))
        subscriber.subscribe(on_event)

        async with publisher, subscriber:
            await wait_for_members(relay, "room", 2)
            publisher.publish(event)
            await asyncio.wait_for(arrived.wait(), RECV_TIMEOUT)

        assert received == [event]

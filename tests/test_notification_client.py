"""Tests for the combined realtime client."""

from __future__ import annotations

import asyncio

import pytest

from app.client import (
    ClientConnectionManager,
    NotificationClient,
    NotificationReconciler,
    StoreAccessError,
)
from app.client.scheduling import ScheduledTask
from app.client.transport import TransportClosed
from app.domain.entities import Identity
from app.schemas.frames import AuthSuccessFrame, NewNotificationFrame, encode_frame


class StubScheduler:
    def __init__(self) -> None:
        self.tasks: list[ScheduledTask] = []

    def call_later(self, delay, callback):
        task = ScheduledTask(delay)
        self.tasks.append(task)
        return task


class QueueTransport:
    def __init__(self) -> None:
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.closed = []

    async def send(self, text: str) -> None:
        pass

    async def receive(self) -> str:
        item = await self.incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed.append(code)


class CountingStore:
    def __init__(self, count: int) -> None:
        self.count = count
        self.fail = False

    async def count_unread(self) -> int:
        if self.fail:
            raise StoreAccessError("offline")
        return self.count


async def settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


def build_client(store, transport, **kwargs):
    async def factory(url):
        return transport

    connection = ClientConnectionManager(
        "ws://localhost/ws",
        identity=Identity(recipient_id="u-1", role="client"),
        transport_factory=factory,
        scheduler=StubScheduler(),
        **kwargs,
    )
    return NotificationClient(connection, NotificationReconciler(store))


@pytest.mark.anyio
async def test_start_primes_count_and_applies_pushed_frames():
    store, transport = CountingStore(2), QueueTransport()
    client = build_client(store, transport)

    await client.start()
    await settle()
    assert client.reconciler.cache.unread_count == 2

    store.count = 3
    transport.incoming.put_nowait(encode_frame(AuthSuccessFrame()))
    transport.incoming.put_nowait(
        encode_frame(NewNotificationFrame(notification={"id": 3}, count=3))
    )
    await settle()

    assert client.live_updates_available is True
    assert client.reconciler.cache.unread_count == 3
    await client.stop()
    assert transport.closed == [1000]


@pytest.mark.anyio
async def test_rejected_identity_disables_live_updates():
    store, transport = CountingStore(0), QueueTransport()
    client = build_client(store, transport)

    await client.start()
    await settle()
    transport.incoming.put_nowait(TransportClosed(1008, "Authentication failed"))
    await settle()

    assert client.live_updates_available is False
    await client.stop()


@pytest.mark.anyio
async def test_start_tolerates_unavailable_store():
    store, transport = CountingStore(0), QueueTransport()
    store.fail = True
    client = build_client(store, transport)

    await client.start()

    assert client.reconciler.cache.unread_count is None
    await client.stop()

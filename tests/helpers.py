"""In-memory stand-ins for the parts of `redis.asyncio` the storage uses.

`FakeRedisServer.factory` has the `ClientFactory` signature, so several
storages built on the same server share data and the broadcast channel
the way separate processes share one redis.
"""
import asyncio
from typing import Any, Dict, List, Optional, Union

from configstore_lib.config.descriptor import ConnectionDescriptor
from configstore_lib.config.provider import StaticConfigurationProvider
from configstore_lib.storage.redis_backend import RedisConfigurationStorage


class FakePubSub:
    def __init__(self, server: "FakeRedisServer", decode_responses: bool = True) -> None:
        self.server = server
        self.decode_responses = decode_responses
        self.queue: asyncio.Queue = asyncio.Queue()
        self.channels: List[str] = []
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        if self.server.fail_subscribe is not None:
            raise self.server.fail_subscribe
        for channel in channels:
            self.server.channels.setdefault(channel, []).append(self)
            self.channels.append(channel)

    async def listen(self):
        while True:
            message = await self.queue.get()
            if isinstance(message, Exception):
                raise message
            if self.decode_responses:
                # redis-py decodes strictly, a bad payload raises inside listen()
                message = {**message, "data": message["data"].decode("utf-8")}
            yield message

    def break_connection(self, error: Optional[Exception] = None) -> None:
        self.queue.put_nowait(error or ConnectionError("Connection closed by server."))

    async def aclose(self) -> None:
        self.closed = True
        for channel in self.channels:
            subscribers = self.server.channels.get(channel, [])
            if self in subscribers:
                subscribers.remove(self)


class FakeRedis:
    def __init__(self, server: "FakeRedisServer", descriptor: ConnectionDescriptor, decode_responses: bool = True) -> None:
        self.server = server
        self.descriptor = descriptor
        self.decode_responses = decode_responses
        self.closed = False
        self.pubsubs: List[FakePubSub] = []

    async def ping(self) -> bool:
        if self.server.fail_connect is not None:
            raise self.server.fail_connect
        return True

    def _command(self, name: str) -> None:
        self.server.commands.append(name)
        if self.server.fail_commands is not None:
            raise self.server.fail_commands

    async def mget(self, keys: List[str]) -> List[Optional[str]]:
        self._command("MGET")
        return [self.server.data.get(k) for k in keys]

    async def mset(self, mapping: Dict[str, str]) -> bool:
        self._command("MSET")
        self.server.data.update(mapping)
        return True

    async def delete(self, *keys: str) -> int:
        self._command("DEL")
        return sum(1 for k in keys if self.server.data.pop(k, None) is not None)

    async def publish(self, channel: str, message: Union[str, bytes]) -> int:
        self.server.published.append((channel, message))
        if self.server.fail_publish is not None:
            raise self.server.fail_publish
        data = message.encode("utf-8") if isinstance(message, str) else message
        subscribers = list(self.server.channels.get(channel, []))
        for pubsub in subscribers:
            pubsub.queue.put_nowait({"type": "message", "pattern": None, "channel": channel, "data": data})
        return len(subscribers)

    def pubsub(self, ignore_subscribe_messages: bool = False) -> FakePubSub:
        pubsub = FakePubSub(self.server, self.decode_responses)
        self.pubsubs.append(pubsub)
        return pubsub

    async def aclose(self) -> None:
        self.closed = True


class FakeRedisServer:
    def __init__(self) -> None:
        self.data: Dict[str, str] = {}
        self.channels: Dict[str, List[FakePubSub]] = {}
        self.clients: List[FakeRedis] = []
        self.commands: List[str] = []
        self.published: List[Any] = []
        self.fail_connect: Optional[Exception] = None
        self.fail_subscribe: Optional[Exception] = None
        self.fail_commands: Optional[Exception] = None
        self.fail_publish: Optional[Exception] = None

    def factory(self, descriptor: ConnectionDescriptor, decode_responses: bool = True) -> FakeRedis:
        client = FakeRedis(self, descriptor, decode_responses)
        self.clients.append(client)
        return client


async def settle() -> None:
    """Let the subscription listener tasks drain their queues."""
    for _ in range(5):
        await asyncio.sleep(0)


async def connected_storage(server: FakeRedisServer, **overrides: Any):
    """Return ``(storage, provider)`` with the storage connected to `server`."""
    storage = RedisConfigurationStorage(client_factory=server.factory)
    provider = StaticConfigurationProvider(**overrides)
    await storage.init(provider)
    return storage, provider

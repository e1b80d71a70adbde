"""Redis connections used by `RedisConfigurationStorage`.

Two connections are kept per storage: a command connection for reads,
writes and PUBLISH, and a subscription connection that stays subscribed to
the broadcast channel. A subscribed redis connection cannot issue regular
commands, so the two are never merged. They are created and destroyed
together as a `ConnectionPair`.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff

from configstore_lib.config.descriptor import ConnectionDescriptor

from .errors import NotConnectedError, StorageConnectionError

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Any], None]
ClientFactory = Callable[..., Redis]


def create_redis_client(descriptor: ConnectionDescriptor, decode_responses: bool = True) -> Redis:
    """Build a client that tries each connection exactly once.

    The subscription client is built with ``decode_responses=False``:
    broadcast payloads arrive as bytes and are validated by the dispatcher,
    so a payload that is not UTF-8 cannot break the ``listen()`` loop.
    """
    return Redis(
        host=descriptor.host,
        port=descriptor.port,
        password=descriptor.password,
        decode_responses=decode_responses,
        retry=Retry(NoBackoff(), 0),
    )


async def _close_all(*resources: Any) -> None:
    for resource in resources:
        if resource is None:
            continue
        try:
            await resource.aclose()
        except Exception as e:
            logger.warning("Error while closing %r: %s", resource, e)


async def _wait_ready(*steps: Awaitable[Any]) -> None:
    """Run `steps` concurrently and raise the first error any of them raises."""
    tasks = [asyncio.ensure_future(s) for s in steps]
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        pending = [t for t in tasks if not t.done()]
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
    # read every result so no failed task is reported as never retrieved
    errors = [t.exception() for t in tasks if t.done() and not t.cancelled()]
    for error in errors:
        if error is not None:
            raise error


class ConnectionPair:
    """The command and subscription connections for one descriptor."""

    def __init__(self, descriptor: ConnectionDescriptor, command: Redis, subscriber: Redis, pubsub: Any) -> None:
        self.descriptor = descriptor
        self.command = command
        self.subscriber = subscriber
        self.pubsub = pubsub
        self._listener: Optional[asyncio.Task] = None

    @classmethod
    async def open(
        cls,
        descriptor: ConnectionDescriptor,
        on_message: MessageHandler,
        client_factory: ClientFactory = create_redis_client,
    ) -> "ConnectionPair":
        """Connect both clients and subscribe to the broadcast channel.

        Returns once both connections are ready. The first failure closes
        whatever was opened and is raised as `StorageConnectionError`.
        """
        command = subscriber = pubsub = None
        try:
            command = client_factory(descriptor)
            subscriber = client_factory(descriptor, decode_responses=False)
            pubsub = subscriber.pubsub(ignore_subscribe_messages=True)
            await _wait_ready(command.ping(), cls._subscribe(subscriber, pubsub, descriptor.channel))
        except Exception as e:
            await _close_all(pubsub, subscriber, command)
            raise StorageConnectionError(
                f"Cannot connect to redis at {descriptor.host}:{descriptor.port}: {e}"
            ) from e

        pair = cls(descriptor, command, subscriber, pubsub)
        pair._listener = asyncio.create_task(pair._listen(on_message))
        return pair

    @staticmethod
    async def _subscribe(subscriber: Redis, pubsub: Any, channel: str) -> None:
        await subscriber.ping()
        await pubsub.subscribe(channel)

    async def _listen(self, on_message: MessageHandler) -> None:
        try:
            async for message in self.pubsub.listen():
                if message.get("type") == "message":
                    on_message(message["data"])
        except Exception as e:
            logger.error("Lost subscription to %s on %s:%s: %s",
                         self.descriptor.channel, self.descriptor.host, self.descriptor.port, e)

    @property
    def listening(self) -> bool:
        """False once the subscription has been lost."""
        return self._listener is not None and not self._listener.done()

    async def close(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            await asyncio.gather(self._listener, return_exceptions=True)
            self._listener = None
        await _close_all(self.pubsub, self.subscriber, self.command)


class ConnectionManager:
    """Owns the live `ConnectionPair` and swaps it when parameters change."""

    def __init__(self, on_message: MessageHandler, client_factory: Optional[ClientFactory] = None) -> None:
        self._on_message = on_message
        self._client_factory = client_factory or create_redis_client
        self._pair: Optional[ConnectionPair] = None
        # serialises reconfigurations; commands are not queued behind it
        self._lock = asyncio.Lock()

    @property
    def connections(self) -> ConnectionPair:
        if self._pair is None:
            raise NotConnectedError("No redis connection established")
        return self._pair

    @property
    def is_connected(self) -> bool:
        """True while a pair is installed and its subscription is alive."""
        return self._pair is not None and self._pair.listening

    @property
    def has_pair(self) -> bool:
        return self._pair is not None

    @property
    def descriptor(self) -> Optional[ConnectionDescriptor]:
        return self._pair.descriptor if self._pair is not None else None

    async def apply_parameters(
        self,
        stale: Optional[ConnectionDescriptor],
        fresh: Optional[ConnectionDescriptor],
    ) -> None:
        """Tear down the current pair, then connect with `fresh` if given.

        Raises `StorageConnectionError` once if either new connection fails;
        the manager is then left disconnected.
        """
        async with self._lock:
            if self._pair is not None and (stale is not None or fresh is not None):
                await self._close_pair()
            if fresh is None:
                return
            self._pair = await ConnectionPair.open(fresh, self._on_message, self._client_factory)
            logger.info("Connected to redis at %s:%s, listening on %s", fresh.host, fresh.port, fresh.channel)

    async def close(self) -> None:
        async with self._lock:
            if self._pair is not None:
                await self._close_pair()

    async def _close_pair(self) -> None:
        pair, self._pair = self._pair, None
        logger.info("Closing redis connections to %s:%s", pair.descriptor.host, pair.descriptor.port)
        await pair.close()

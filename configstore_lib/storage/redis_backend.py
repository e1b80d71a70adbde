"""Redis-backed watchable configuration storage.

Values live in redis under ``<namespace>.<key>``. After every write or
remove a JSON change event is published on the broadcast channel; every
`RedisConfigurationStorage` subscribed to that channel, in this process or
another, routes it to its own listeners.

Usage::

    storage = RedisConfigurationStorage()
    await storage.init(StaticConfigurationProvider(host="redis"))
    storage.watch("app", ["timeout"], on_change)
    await storage.write("app", {"timeout": "30"})
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, Mapping, Optional

from configstore_lib.config.descriptor import ConnectionDescriptor, default_parameters
from configstore_lib.config.provider import ConfigurationProvider

from .base import ChangeCallback, ConfigurationStorage
from .connection import ClientFactory, ConnectionManager
from .errors import NotConnectedError
from .gateway import CommandGateway
from .lifecycle import ConfigurationLifecycle
from .notifications import ChangeDispatcher, RedisChangePublisher
from .registry import ListenerRegistry

logger = logging.getLogger(__name__)


class RedisConfigurationStorage(ConfigurationStorage):
    def __init__(self, client_factory: Optional[ClientFactory] = None) -> None:
        self._listeners = ListenerRegistry()
        self._dispatcher = ChangeDispatcher(self._listeners)
        self._connections = ConnectionManager(self._dispatcher.handle_message, client_factory)
        self._gateway = CommandGateway(self._connections, RedisChangePublisher(self._connections))
        self._lifecycle = ConfigurationLifecycle(self._connections)

    @property
    def is_connected(self) -> bool:
        return self._connections.is_connected

    @property
    def parameters(self) -> Optional[ConnectionDescriptor]:
        return self._connections.descriptor

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def init(self, provider: ConfigurationProvider) -> None:
        await provider.register(default_parameters(type(self).__name__), self.apply_parameters)

    async def apply_parameters(
        self,
        stale: Optional[ConnectionDescriptor],
        fresh: Optional[ConnectionDescriptor],
    ) -> None:
        """Reconnect with `fresh`. Called by the provider on every change."""
        await self._lifecycle.on_parameters_changed(stale, fresh)

    async def dispose(self) -> None:
        if not self._connections.has_pair:
            raise NotConnectedError(f"{type(self).__name__} was not connected")
        await self._connections.close()
        logger.info("Disposed %s with %d listeners", type(self).__name__, len(self._listeners))
        await self.unwatch(None, None)

    async def read(self, namespace: str, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        return await self._gateway.read(namespace, keys)

    async def write(self, namespace: str, properties: Mapping[str, str]) -> None:
        await self._gateway.write(namespace, properties)

    async def remove(self, namespace: str, keys: Iterable[str]) -> None:
        await self._gateway.remove(namespace, keys)

    def watch(self, namespace: str, keys: Iterable[str], callback: ChangeCallback) -> None:
        self._listeners.add(namespace, keys, callback)

    async def unwatch(
        self,
        namespace: Optional[str],
        keys: Optional[Iterable[str]],
        callback: Optional[ChangeCallback] = None,
    ) -> None:
        if keys is None:
            self._listeners.clear()
            return
        self._listeners.remove(namespace, keys, callback)

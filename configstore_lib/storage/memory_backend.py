"""Simple memory-backed configuration storage

This storage keeps values in a single dict keyed by ``<namespace>.<key>``
and notifies listeners of the same instance directly. Nothing is shared
between processes; it is meant for single-process use and tests.
"""
from threading import RLock
from typing import Any, Dict, Iterable, Mapping, Optional

from .base import ChangeCallback, ConfigurationStorage
from .errors import NotConnectedError
from .keys import interleave, to_storage_key, to_storage_keys
from .notifications import ChangeDispatcher, ChangeEvent, LocalChangePublisher
from .registry import ListenerRegistry


class MemoryConfigurationStorage(ConfigurationStorage):
    def __init__(self):
        self._lock = RLock()
        self._store: Dict[str, str] = {}
        self._connected = False
        self._listeners = ListenerRegistry()
        self._publisher = LocalChangePublisher(ChangeDispatcher(self._listeners))

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def init(self, provider: Any = None) -> None:
        # No connection parameters needed; `provider` is accepted for
        # interface compatibility and ignored.
        self._connected = True

    async def dispose(self) -> None:
        if not self._connected:
            raise NotConnectedError(f"{type(self).__name__} was not connected")
        self._connected = False
        await self.unwatch(None, None)

    def _check(self) -> None:
        if not self._connected:
            raise NotConnectedError(f"{type(self).__name__} is not initialised")

    async def read(self, namespace: str, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        self._check()
        with self._lock:
            return {k: self._store.get(to_storage_key(namespace, k)) for k in keys}

    async def write(self, namespace: str, properties: Mapping[str, str]) -> None:
        self._check()
        properties = dict(properties)
        if not properties:
            return
        with self._lock:
            self._store.update(interleave(namespace, properties))
        await self._publisher.publish(ChangeEvent(namespace=namespace, changes=properties))

    async def remove(self, namespace: str, keys: Iterable[str]) -> None:
        self._check()
        keys = list(keys)
        if not keys:
            return
        with self._lock:
            for storage_key in to_storage_keys(namespace, keys):
                self._store.pop(storage_key, None)
        await self._publisher.publish(ChangeEvent(namespace=namespace, changes=dict.fromkeys(keys)))

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

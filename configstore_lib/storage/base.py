"""Configuration storage interface definitions.

Defines the ConfigurationStorage abstract class shared by the Redis and
in-memory implementations. Values are opaque strings; an absent key is
reported as ``None`` by `read` and in change notifications, never as an
empty string.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, Mapping, Optional

ChangeCallback = Callable[[Dict[str, Optional[str]]], None]


class ConfigurationStorage(ABC):
    """Abstract watchable configuration storage.

    All methods except `watch` are coroutines and must be awaited on the
    event loop that owns the storage. Callers are responsible for not
    issuing commands while a reconfiguration is in progress.
    """

    @abstractmethod
    async def init(self, provider) -> None:
        """Obtain connection parameters from `provider` and connect.

        Returns once the first parameters have been applied.
        """

    @abstractmethod
    async def dispose(self) -> None:
        """Close connections and drop every listener.

        Raises `NotConnectedError` if the storage was never connected.
        """

    @abstractmethod
    async def read(self, namespace: str, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        """Return ``{key: value}`` for `keys`; missing keys map to ``None``."""

    @abstractmethod
    async def write(self, namespace: str, properties: Mapping[str, str]) -> None:
        """Store every item of `properties` and notify watchers."""

    @abstractmethod
    async def remove(self, namespace: str, keys: Iterable[str]) -> None:
        """Delete `keys`. Deleting a missing key is not an error."""

    @abstractmethod
    def watch(self, namespace: str, keys: Iterable[str], callback: ChangeCallback) -> None:
        """Call `callback` with the changed subset of `keys` on every change."""

    @abstractmethod
    async def unwatch(
        self,
        namespace: Optional[str],
        keys: Optional[Iterable[str]],
        callback: Optional[ChangeCallback] = None,
    ) -> None:
        """Remove a registration made by `watch`.

        ``keys=None`` removes every listener. Otherwise exactly one listener
        must match or `ListenerNotFoundError` is raised.
        """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """True while the storage can serve commands and receive changes."""

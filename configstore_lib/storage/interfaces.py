from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, runtime_checkable

from .base import ChangeCallback


@runtime_checkable
class ConfigurationStorageProtocol(Protocol):
    """Storage protocol mirroring `configstore_lib.storage.ConfigurationStorage`.

    Implementations should follow the semantics documented on the abstract
    base class in `configstore_lib.storage.base` (``None`` for missing keys,
    idempotent removal, exactly-one-match `unwatch`, etc.).
    """

    async def init(self, provider: Any) -> None: ...

    async def dispose(self) -> None: ...

    async def read(self, namespace: str, keys: Iterable[str]) -> Dict[str, Optional[str]]: ...

    async def write(self, namespace: str, properties: Mapping[str, str]) -> None: ...

    async def remove(self, namespace: str, keys: Iterable[str]) -> None: ...

    def watch(self, namespace: str, keys: Iterable[str], callback: ChangeCallback) -> None: ...

    async def unwatch(
        self,
        namespace: Optional[str],
        keys: Optional[Iterable[str]],
        callback: Optional[ChangeCallback] = None,
    ) -> None: ...

    @property
    def is_connected(self) -> bool: ...

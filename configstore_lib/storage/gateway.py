"""Batched redis commands for namespaced configuration keys."""
from __future__ import annotations
import logging
from typing import Dict, Iterable, Mapping, Optional

from .connection import ConnectionManager
from .keys import interleave, to_storage_keys
from .notifications import ChangeEvent, ChangePublisher

logger = logging.getLogger(__name__)


class CommandGateway:
    """Issue MGET/MSET/DEL on the command connection.

    Writes and removals publish a `ChangeEvent` after redis acknowledged
    them; a failed command raises before anything is published.
    """

    def __init__(self, manager: ConnectionManager, publisher: ChangePublisher) -> None:
        self._manager = manager
        self._publisher = publisher

    async def read(self, namespace: str, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        keys = list(keys)
        if not keys:
            return {}
        values = await self._manager.connections.command.mget(to_storage_keys(namespace, keys))
        logger.debug("Read %s %s", namespace, keys)
        return dict(zip(keys, values))

    async def write(self, namespace: str, properties: Mapping[str, str]) -> None:
        properties = dict(properties)
        if not properties:
            return
        await self._manager.connections.command.mset(interleave(namespace, properties))
        logger.debug("Wrote %s %s", namespace, list(properties))
        await self._publisher.publish(ChangeEvent(namespace=namespace, changes=properties))

    async def remove(self, namespace: str, keys: Iterable[str]) -> None:
        keys = list(keys)
        if not keys:
            return
        await self._manager.connections.command.delete(*to_storage_keys(namespace, keys))
        logger.debug("Removed %s %s", namespace, keys)
        # every requested key is reported as removed, whether it existed or not
        await self._publisher.publish(ChangeEvent(namespace=namespace, changes=dict.fromkeys(keys)))

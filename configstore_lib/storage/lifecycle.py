import logging
from typing import Optional

from configstore_lib.config.descriptor import ConnectionDescriptor

from .connection import ConnectionManager

logger = logging.getLogger(__name__)


class ConfigurationLifecycle:
    """Forward parameter changes from a provider to a `ConnectionManager`."""

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager

    async def on_parameters_changed(
        self,
        stale: Optional[ConnectionDescriptor],
        fresh: Optional[ConnectionDescriptor],
    ) -> None:
        if stale is None and fresh is not None:
            logger.info("Applying initial redis parameters %s:%s", fresh.host, fresh.port)
        elif fresh is None:
            logger.info("Redis parameters withdrawn; disconnecting")
        else:
            logger.info("Redis parameters changed; reconnecting to %s:%s", fresh.host, fresh.port)
        await self._manager.apply_parameters(stale, fresh)

"""Change events: wire format, publishing and dispatch to listeners.

Every successful write or remove publishes one `ChangeEvent` on the
broadcast channel. Each storage instance subscribed to that channel feeds
incoming payloads to its `ChangeDispatcher`, which forwards to every
listener the subset of changed keys it watches. Delivery is best effort:
publish failures and malformed payloads are logged and dropped.
"""
from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Dict, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .keys import to_storage_key
from .registry import ListenerRegistry

if TYPE_CHECKING:
    from .connection import ConnectionManager

logger = logging.getLogger(__name__)


class ChangeEvent(BaseModel):
    """Changes made by a single write or remove call.

    Serialized as ``{"prefix": <namespace>, "properties": {<key>: <value or null>}}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    namespace: str = Field(alias="prefix")
    changes: Dict[str, Optional[str]] = Field(alias="properties")

    def storage_changes(self) -> Dict[str, Optional[str]]:
        return {to_storage_key(self.namespace, k): v for k, v in self.changes.items()}

    def to_payload(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_payload(cls, data: Union[str, bytes]) -> "ChangeEvent":
        return cls.model_validate_json(data)


class ChangePublisher(Protocol):
    async def publish(self, event: ChangeEvent) -> None: ...


class RedisChangePublisher:
    """Publish events on the broadcast channel through the command connection.

    Fire-and-forget: a failed PUBLISH is logged and never retried or
    reported to the writer.
    """

    def __init__(self, manager: "ConnectionManager") -> None:
        self._manager = manager

    async def publish(self, event: ChangeEvent) -> None:
        try:
            pair = self._manager.connections
            receivers = await pair.command.publish(pair.descriptor.channel, event.to_payload())
        except Exception as e:
            logger.warning("Failed to publish change of %s %s: %s", event.namespace, list(event.changes), e)
            return
        logger.debug("Published change of %s %s to %s receivers", event.namespace, list(event.changes), receivers)


class LocalChangePublisher:
    """Hand events straight to a dispatcher in the same process."""

    def __init__(self, dispatcher: "ChangeDispatcher") -> None:
        self._dispatcher = dispatcher

    async def publish(self, event: ChangeEvent) -> None:
        self._dispatcher.dispatch(event)


class ChangeDispatcher:
    def __init__(self, registry: ListenerRegistry) -> None:
        self._registry = registry

    def handle_message(self, data: Union[str, bytes]) -> None:
        """Decode a broadcast payload and dispatch it. Invalid payloads are dropped."""
        try:
            event = ChangeEvent.from_payload(data)
        except ValidationError as e:
            logger.warning("Invalid message on change channel: %r (%s)", data, e)
            return
        self.dispatch(event)

    def dispatch(self, event: ChangeEvent) -> None:
        changed = event.storage_changes()
        for listener in self._registry:
            matched = {
                key: changed[storage_key]
                for storage_key, key in listener.storage_keys.items()
                if storage_key in changed
            }
            if not matched:
                continue
            try:
                listener.callback(matched)
            except Exception:
                logger.exception("Listener on %s %s failed", listener.namespace, list(listener.keys))

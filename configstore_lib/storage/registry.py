"""Registry of active watch registrations."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .base import ChangeCallback
from .errors import ListenerNotFoundError
from .keys import reverse_mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Listener:
    namespace: str
    keys: Tuple[str, ...]
    # storage key -> logical key
    storage_keys: Dict[str, str]
    callback: ChangeCallback

    def matches(self, storage_keys: Iterable[str], callback: Optional[ChangeCallback]) -> bool:
        return self.callback == callback and set(self.storage_keys) == set(storage_keys)


class ListenerRegistry:
    """Ordered collection of listeners owned by a single storage instance.

    Iteration walks a snapshot, so callbacks may call `add` or `remove`
    while a change is being dispatched.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def add(self, namespace: str, keys: Iterable[str], callback: ChangeCallback) -> Listener:
        keys = tuple(keys)
        listener = Listener(
            namespace=namespace,
            keys=keys,
            storage_keys=reverse_mapping(namespace, keys),
            callback=callback,
        )
        self._listeners.append(listener)
        logger.debug("Watching %s keys %s", namespace, list(keys))
        return listener

    def remove(self, namespace: str, keys: Iterable[str], callback: Optional[ChangeCallback]) -> int:
        """Remove listeners registered with the same keys and callback.

        Raises `ListenerNotFoundError` unless exactly one listener was removed.
        """
        wanted = reverse_mapping(namespace, keys)
        kept = [listener for listener in self._listeners if not listener.matches(wanted, callback)]
        removed = len(self._listeners) - len(kept)
        self._listeners = kept
        if removed != 1:
            raise ListenerNotFoundError(
                f"Listener not found: {removed} listeners matched {namespace} {list(wanted.values())}"
            )
        logger.debug("Unwatched %s keys %s", namespace, list(wanted.values()))
        return removed

    def clear(self) -> None:
        self._listeners = []

    def __iter__(self) -> Iterator[Listener]:
        return iter(list(self._listeners))

    def __len__(self) -> int:
        return len(self._listeners)

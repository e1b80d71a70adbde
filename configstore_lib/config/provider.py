"""Connection parameter providers.

A provider is handed the storage's default `ConnectionDescriptor` and a
coroutine to call with ``(stale, fresh)`` whenever parameters become
available or change. `register` delivers the first parameters before it
returns, so `ConfigurationStorage.init` completes connected.
"""
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

import yaml

from .descriptor import ConnectionDescriptor

logger = logging.getLogger(__name__)

ParametersCallback = Callable[
    [Optional[ConnectionDescriptor], Optional[ConnectionDescriptor]], Awaitable[None]
]

DEFAULT_CONFIG_PATH = Path("data/config/redis.yml")


class ConfigurationProvider(Protocol):
    async def register(self, defaults: ConnectionDescriptor, on_change: ParametersCallback) -> None: ...


class BaseConfigurationProvider(ABC):
    """Shared bookkeeping: remember the callback and the last pushed descriptor."""

    def __init__(self) -> None:
        self.defaults: Optional[ConnectionDescriptor] = None
        self.current: Optional[ConnectionDescriptor] = None
        self._on_change: Optional[ParametersCallback] = None

    @abstractmethod
    def _overrides(self) -> Dict[str, Any]:
        """Values that replace the storage defaults."""

    def _resolve(self) -> ConnectionDescriptor:
        if self.defaults is None:
            raise RuntimeError(f"{type(self).__name__} has no registered storage")
        return ConnectionDescriptor.model_validate({**self.defaults.model_dump(), **self._overrides()})

    async def register(self, defaults: ConnectionDescriptor, on_change: ParametersCallback) -> None:
        self.defaults = defaults
        self._on_change = on_change
        await self._push(self._resolve())

    async def withdraw(self) -> None:
        """Tell the registered storage that no parameters are available any more."""
        await self._push(None)

    async def _push(self, fresh: Optional[ConnectionDescriptor]) -> None:
        if self._on_change is None:
            raise RuntimeError(f"{type(self).__name__} has no registered storage")
        # `current` moves only after the storage accepted `fresh`
        await self._on_change(self.current, fresh)
        self.current = fresh


class StaticConfigurationProvider(BaseConfigurationProvider):
    """Parameters given in code, e.g. ``StaticConfigurationProvider(host="redis")``."""

    def __init__(self, **overrides: Any) -> None:
        super().__init__()
        self.overrides: Dict[str, Any] = dict(overrides)

    def _overrides(self) -> Dict[str, Any]:
        return self.overrides

    async def update(self, **overrides: Any) -> None:
        """Merge `overrides` and push the result, even if nothing changed."""
        self.overrides = {**self.overrides, **overrides}
        await self._push(self._resolve())


class YamlConfigurationProvider(BaseConfigurationProvider):
    """Read parameters from one section of a YAML file.

    A missing file or section yields the defaults. Example::

        redis:
          host: redis.internal
          port: 6380
          password: s3cret
    """

    def __init__(self, path: str | Path = DEFAULT_CONFIG_PATH, section: str = "redis") -> None:
        super().__init__()
        self.path = Path(path)
        self.section = section

    def _overrides(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.debug("%s missing; using default redis parameters", self.path)
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            try:
                cfg = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"invalid config format: {self.path}: parse error") from e
        if not isinstance(cfg, dict):
            raise ValueError(f"invalid config format: {self.path}: expected mapping")
        section = cfg.get(self.section) or {}
        if not isinstance(section, dict):
            raise ValueError(f"invalid config format: {self.path}: '{self.section}' must be a mapping")
        return section

    async def reload(self) -> bool:
        """Re-read the file; push and return True only if the parameters changed."""
        fresh = self._resolve()
        if fresh == self.current:
            return False
        await self._push(fresh)
        return True

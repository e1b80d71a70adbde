"""Storage abstraction package for configstore."""

from configstore_lib.config.descriptor import ConnectionDescriptor

from .base import ConfigurationStorage
from .errors import (
    ConfigurationStorageError,
    ListenerNotFoundError,
    NotConnectedError,
    StorageConnectionError,
)
from .memory_backend import MemoryConfigurationStorage
from .redis_backend import RedisConfigurationStorage

__all__ = [
    "ConfigurationStorage",
    "ConnectionDescriptor",
    "ConfigurationStorageError",
    "ListenerNotFoundError",
    "NotConnectedError",
    "StorageConnectionError",
    "MemoryConfigurationStorage",
    "RedisConfigurationStorage",
]

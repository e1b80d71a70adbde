"""Errors raised by configuration storages."""


class ConfigurationStorageError(Exception):
    """Base class for storage errors."""


class StorageConnectionError(ConfigurationStorageError):
    """Opening the command or subscription connection failed."""


class NotConnectedError(ConfigurationStorageError):
    """An operation needs live connections but none are established."""


class ListenerNotFoundError(ConfigurationStorageError):
    """`unwatch` did not match exactly one registered listener."""

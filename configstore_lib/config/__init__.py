"""Connection parameters and the providers that supply them."""

from .descriptor import ConnectionDescriptor, default_parameters
from .provider import (
    ConfigurationProvider,
    StaticConfigurationProvider,
    YamlConfigurationProvider,
)

__all__ = [
    "ConnectionDescriptor",
    "ConfigurationProvider",
    "StaticConfigurationProvider",
    "YamlConfigurationProvider",
    "default_parameters",
]

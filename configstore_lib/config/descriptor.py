from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ConnectionDescriptor(BaseModel):
    """Parameters of one redis deployment. Replaced wholesale on change."""

    model_config = ConfigDict(frozen=True)

    port: int = 6379
    host: str = "127.0.0.1"
    password: Optional[str] = Field(default=None, repr=False)
    channel: str


def default_parameters(component_name: str) -> ConnectionDescriptor:
    """Defaults: 127.0.0.1:6379, no password, channel ``<component_name>:changed``."""
    return ConnectionDescriptor(channel=f"{component_name}:changed")

"""
Configuration of the runtime client and its engine connection.
"""
from typing import Optional
from pydantic import BaseModel, Field

class ClientConfig(BaseModel):
    """
    Settings for connecting to the engine and pacing long-running operations.

    ``base_url`` left unset means the engine location is taken from the
    environment (DOCKER_HOST and friends).
    """
    base_url: Optional[str] = None
    api_version: str = "auto"
    timeout: int = Field(default=60, gt=0)
    tls: bool = False

    # Seconds slept between two status polls of an interruptible run.
    poll_interval: float = Field(default=0.5, ge=0.0)
    # Grace period handed to the engine when the stock handler stops a container.
    stop_timeout: int = Field(default=10, ge=0)

    # Layer count at which native commits start warning. The engine's real
    # ceiling differs between storage drivers, so there is no default.
    layer_limit: Optional[int] = Field(default=None, gt=0)

    # Force-remove the container when a run fails after creation.
    remove_on_failure: bool = False

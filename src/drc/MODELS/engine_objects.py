"""
Models for the objects the engine reports back from list and create calls.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

class ImageSummary(BaseModel):
    """
    A single entry of the engine's image listing.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    repo_tags: List[str] = []

class ContainerSummary(BaseModel):
    """
    A single entry of the engine's container listing.

    ``status`` is the machine-readable state (e.g. 'created', 'running', 'exited').
    """
    model_config = ConfigDict(frozen=True)

    id: str
    status: str

class NetworkSummary(BaseModel):
    """
    A single entry of the engine's network listing.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None

class ContainerCreation(BaseModel):
    """
    Response of a container creation request. The id may be missing
    when the engine misbehaves.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    warnings: List[str] = []

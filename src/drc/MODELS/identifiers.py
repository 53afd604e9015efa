"""
Opaque identifiers handed out by the container engine.
"""
from typing import NewType

ImageId = NewType("ImageId", str)
ContainerId = NewType("ContainerId", str)
NetworkId = NewType("NetworkId", str)

# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Capability surface of the container engine consumed by the runtime client.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

from ..MODELS.engine_objects import (
    ContainerCreation,
    ContainerSummary,
    ImageSummary,
    NetworkSummary,
)


@dataclass
class RegistryAuth:
    """Authentication credentials for a registry."""

    username: Optional[str] = None
    password: Optional[str] = None
    host: Optional[str] = None

    def as_auth_config(self) -> dict:
        """Render the credentials in the engine's auth config format."""
        config = {"username": self.username, "password": self.password}
        if self.host:
            config["serveraddress"] = self.host
        return config


class EngineGateway(ABC):
    """
    Thin handle on a container engine.

    Implementations translate every engine fault into the client taxonomy
    (see ``drc.ENGINE.errors``). A handle owns the registry credentials set
    by ``authenticate`` until ``close`` is called. It is not safe to mutate
    the same container from two operations concurrently.
    """

    def __init__(self):
        self._credentials: Optional[RegistryAuth] = None

    @property
    def credentials(self) -> Optional[RegistryAuth]:
        """Credentials of the last successful login on this handle."""
        return self._credentials

    # Listings

    @abstractmethod
    def list_images(self) -> List[ImageSummary]:
        """List all images with their repo tags."""

    @abstractmethod
    def list_containers(self) -> List[ContainerSummary]:
        """List all containers, including stopped ones."""

    @abstractmethod
    def list_networks(self) -> List[NetworkSummary]:
        """List all networks."""

    # Container lifecycle

    @abstractmethod
    def create_container(
        self, image: str, command: List[str], env: List[str]
    ) -> ContainerCreation:
        """Create a container; ``env`` holds KEY=VALUE strings."""

    @abstractmethod
    def start_container(self, container_id: str) -> None:
        """Start a created container."""

    @abstractmethod
    def stop_container(self, container_id: str, timeout: Optional[int] = None) -> None:
        """Stop a running container."""

    @abstractmethod
    def connect_to_network(self, container_id: str, network_id: str) -> None:
        """Attach a container to a network."""

    @abstractmethod
    def remove_container(self, container_id: str, force: bool = False) -> None:
        """Remove a container."""

    @abstractmethod
    def wait_for_exit(self, container_id: str) -> int:
        """Block until the container exits and return its exit code."""

    @abstractmethod
    def read_logs(self, container_id: str, stream: str) -> bytes:
        """Read the whole 'stdout' or 'stderr' log of a container."""

    # Filesystem transfer

    @abstractmethod
    def export_filesystem(self, container_id: str) -> Iterator[bytes]:
        """Stream the container's whole filesystem as a tar archive."""

    @abstractmethod
    def import_filesystem(self, repo_tag: str, data: Iterable[bytes]) -> None:
        """Import a tar stream as a new single-layer image tagged ``repo_tag``."""

    @abstractmethod
    def read_archive(self, container_id: str, path: str) -> Iterator[bytes]:
        """Stream a tar archive of ``path`` out of the container."""

    @abstractmethod
    def copy_into_container(self, data: Iterable[bytes], container_id: str, dest_dir: str) -> None:
        """Extract a streamed tar archive into ``dest_dir`` of the container."""

    # Images

    @abstractmethod
    def commit_container(
        self,
        container_id: str,
        repository: str,
        tag: str,
        comment: Optional[str] = None,
        author: Optional[str] = None,
    ) -> None:
        """Commit the container's state to ``repository:tag``."""

    @abstractmethod
    def count_layers(self, image: str) -> int:
        """Number of filesystem layers of an image."""

    @abstractmethod
    def pull_image(self, repo_tag: str) -> None:
        """Pull an image from its registry."""

    @abstractmethod
    def push_image(self, repo_tag: str) -> None:
        """Push an image to its registry."""

    @abstractmethod
    def tag_image(self, image: str, repository: str, tag: str) -> None:
        """Add ``repository:tag`` to an existing image."""

    # Session

    @abstractmethod
    def authenticate(self, username: str, password: str, host: Optional[str] = None) -> int:
        """
        Log in to a registry and return the engine's status code (200 on success).
        Successful credentials are kept on this handle.
        """

    def close(self) -> None:
        """Release the handle and forget the stored credentials."""
        self._credentials = None

    def __enter__(self) -> "EngineGateway":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

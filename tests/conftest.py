"""
Shared fixtures: an in-memory engine standing in for the Docker daemon.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pytest

from drc.ENGINE.errors import NoSuchContainerError, NoSuchImageError, RuntimeClientError
from drc.ENGINE.gateway import EngineGateway, RegistryAuth
from drc.MODELS.engine_objects import (
    ContainerCreation,
    ContainerSummary,
    ImageSummary,
    NetworkSummary,
)


@dataclass
class Program:
    """What a container of a given image does once started."""
    exit_code: int = 0
    stdout: bytes = b""
    stderr: bytes = b""
    # Number of status polls after which the container exits by itself;
    # None means it runs until waited for or stopped.
    polls_until_exit: Optional[int] = None
    files: Dict[str, bytes] = field(default_factory=dict)


@dataclass
class FakeContainer:
    id: str
    image: str
    command: List[str]
    env: List[str]
    program: Program
    status: str = "created"
    exit_code: Optional[int] = None
    networks: List[str] = field(default_factory=list)
    copied: List[Tuple[str, bytes]] = field(default_factory=list)
    polls: int = 0


class FakeEngineGateway(EngineGateway):
    """
    Engine double keeping images, containers and networks in memory and
    recording every call in ``calls``.
    """

    STOP_EXIT_CODE = 143

    def __init__(self):
        super().__init__()
        self.images: List[ImageSummary] = []
        self.networks: List[NetworkSummary] = []
        self.containers: Dict[str, FakeContainer] = {}
        self.programs: Dict[str, Program] = {}
        self.registry: Dict[str, str] = {}
        self.layers: Dict[str, int] = {}
        self.commits: List[dict] = []
        self.pushed: List[str] = []
        # Archive objects handed to copy_into_container, before consumption
        self.copy_sources: List[object] = []
        self.calls: List[tuple] = []
        self.warnings: List[str] = []
        self.omit_container_id = False
        self.closed = False
        self._counter = 0

    # Setup helpers

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter:062x}"

    def add_image(self, image_id: str, *repo_tags: str) -> str:
        self.images.append(ImageSummary(id=image_id, repo_tags=list(repo_tags)))
        return image_id

    def add_network(self, network_id: str, name: Optional[str] = None) -> str:
        self.networks.append(NetworkSummary(id=network_id, name=name))
        return network_id

    def program(self, image: str, **kwargs) -> Program:
        self.programs[image] = Program(**kwargs)
        return self.programs[image]

    def _image_known(self, image: str) -> bool:
        return any(image == i.id or image in i.repo_tags for i in self.images)

    def _container(self, container_id: str) -> FakeContainer:
        if container_id not in self.containers:
            raise NoSuchContainerError(f"No such container: {container_id}", container_id=container_id)
        return self.containers[container_id]

    def _set_tag(self, image_id: str, repo_tag: str) -> None:
        updated = []
        for image in self.images:
            tags = [t for t in image.repo_tags if t != repo_tag]
            if image.id == image_id:
                tags.append(repo_tag)
            updated.append(ImageSummary(id=image.id, repo_tags=tags))
        if image_id not in {i.id for i in self.images}:
            updated.append(ImageSummary(id=image_id, repo_tags=[repo_tag]))
        self.images = updated

    # Listings

    def list_images(self):
        self.calls.append(("list_images",))
        return list(self.images)

    def list_containers(self):
        self.calls.append(("list_containers",))
        for container in self.containers.values():
            if container.status != "running":
                continue
            container.polls += 1
            limit = container.program.polls_until_exit
            if limit is not None and container.polls >= limit:
                container.status = "exited"
                container.exit_code = container.program.exit_code
        return [ContainerSummary(id=c.id, status=c.status) for c in self.containers.values()]

    def list_networks(self):
        self.calls.append(("list_networks",))
        return list(self.networks)

    # Container lifecycle

    def create_container(self, image, command, env):
        self.calls.append(("create_container", image, list(command), list(env)))
        if not self._image_known(image):
            raise NoSuchImageError(f"No such image: {image}", image=image)
        container_id = self._next_id("c0")
        self.containers[container_id] = FakeContainer(
            id=container_id,
            image=image,
            command=list(command),
            env=list(env),
            program=self.programs.get(image, Program()),
        )
        return ContainerCreation(
            id=None if self.omit_container_id else container_id,
            warnings=list(self.warnings),
        )

    def start_container(self, container_id):
        self.calls.append(("start_container", container_id))
        self._container(container_id).status = "running"

    def stop_container(self, container_id, timeout=None):
        self.calls.append(("stop_container", container_id))
        container = self._container(container_id)
        if container.status == "running":
            container.status = "exited"
            container.exit_code = self.STOP_EXIT_CODE

    def connect_to_network(self, container_id, network_id):
        self.calls.append(("connect_to_network", container_id, network_id))
        self._container(container_id).networks.append(network_id)

    def remove_container(self, container_id, force=False):
        self.calls.append(("remove_container", container_id, force))
        self._container(container_id)
        del self.containers[container_id]

    def wait_for_exit(self, container_id):
        self.calls.append(("wait_for_exit", container_id))
        container = self._container(container_id)
        if container.status != "exited":
            container.status = "exited"
            container.exit_code = container.program.exit_code
        return container.exit_code

    def read_logs(self, container_id, stream):
        self.calls.append(("read_logs", container_id, stream))
        container = self._container(container_id)
        return container.program.stdout if stream == "stdout" else container.program.stderr

    # Filesystem transfer

    def export_filesystem(self, container_id):
        self.calls.append(("export_filesystem", container_id))
        self._container(container_id)
        return iter([b"layer-", b"tar"])

    def import_filesystem(self, repo_tag, data):
        payload = b"".join(data)
        self.calls.append(("import_filesystem", repo_tag, payload))
        self._set_tag(self._next_id("i0"), repo_tag)

    def read_archive(self, container_id, path):
        self.calls.append(("read_archive", container_id, path))
        container = self._container(container_id)
        if path not in container.program.files:
            raise RuntimeClientError(f"Could not find the file {path} in container {container_id}")
        data = container.program.files[path]
        return iter([data[:1], data[1:]])

    def copy_into_container(self, data, container_id, dest_dir):
        self.calls.append(("copy_into_container", container_id, dest_dir))
        self.copy_sources.append(data)
        self._container(container_id).copied.append((dest_dir, b"".join(data)))

    # Images

    def commit_container(self, container_id, repository, tag, comment=None, author=None):
        self.calls.append(("commit_container", container_id, repository, tag))
        self._container(container_id)
        image_id = self._next_id("i0")
        self._set_tag(image_id, f"{repository}:{tag}")
        self.commits.append({"container_id": container_id, "image_id": image_id,
                             "comment": comment, "author": author})

    def count_layers(self, image):
        return self.layers.get(image, 1)

    def pull_image(self, repo_tag):
        self.calls.append(("pull_image", repo_tag, self.credentials))
        if repo_tag not in self.registry:
            raise NoSuchImageError(f"manifest for {repo_tag} not found", image=repo_tag)
        self._set_tag(self.registry[repo_tag], repo_tag)

    def push_image(self, repo_tag):
        self.calls.append(("push_image", repo_tag, self.credentials))
        if not self._image_known(repo_tag):
            raise NoSuchImageError(f"An image does not exist locally with the tag: {repo_tag}",
                                   image=repo_tag)
        self.pushed.append(repo_tag)

    def tag_image(self, image, repository, tag):
        self.calls.append(("tag_image", image, repository, tag))
        matches = [i.id for i in self.images if image == i.id or image in i.repo_tags]
        if not matches:
            raise NoSuchImageError(f"No such image: {image}", image=image)
        self._set_tag(matches[0], f"{repository}:{tag}")

    # Session

    def authenticate(self, username, password, host=None):
        self.calls.append(("authenticate", username, host))
        if password != "secret":
            return 401
        self._credentials = RegistryAuth(username=username, password=password, host=host)
        return 200

    def close(self):
        super().close()
        self.closed = True

    # Assertions

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def engine():
    """An empty in-memory engine."""
    return FakeEngineGateway()


@pytest.fixture
def alpine(engine):
    """Engine holding a single 'alpine:latest' image; yields its id."""
    return engine.add_image("sha256:" + "a" * 64, "alpine:latest")

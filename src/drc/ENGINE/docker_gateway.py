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
Engine gateway backed by the docker SDK's low-level API client.

Requirements:
    - docker package (pip install docker)
    - Docker daemon running and accessible
"""

import json
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

import docker
from docker.utils import kwargs_from_env
import requests
from docker import errors as docker_errors

from ..MODELS.client_config import ClientConfig
from ..MODELS.engine_objects import (
    ContainerCreation,
    ContainerSummary,
    ImageSummary,
    NetworkSummary,
)
from ..REGISTRY.image_reference import split_repo_tag
from .errors import (
    ArgumentError,
    NoSuchImageError,
    RuntimeClientError,
    translate_engine_error,
    translate_errors,
)
from .gateway import EngineGateway, RegistryAuth

logger = logging.getLogger(__name__)

# Placeholder the engine lists for untagged images
UNTAGGED = "<none>:<none>"

LOG_STREAMS = ("stdout", "stderr")


class DockerEngineGateway(EngineGateway):
    """
    Gateway talking to a Docker daemon through ``docker.APIClient``.

    Attributes:
        _config: Connection settings
        _api: Low-level docker API client
    """

    def __init__(self, config: Optional[ClientConfig] = None, api_client: Any = None):
        """
        Connect to the Docker daemon.

        Args:
            config: Connection settings. Defaults to the environment's daemon.
            api_client: Pre-built ``docker.APIClient`` to use instead of connecting.

        Raises:
            RuntimeClientError: If the daemon cannot be reached
        """
        super().__init__()
        self._config = config or ClientConfig()
        self._api = api_client if api_client is not None else self._connect()

    def _connect(self) -> Any:
        if self._config.base_url:
            kwargs: Dict[str, Any] = {"base_url": self._config.base_url, "tls": self._config.tls}
        else:
            kwargs = kwargs_from_env()

        with translate_errors():
            api = docker.APIClient(
                version=self._config.api_version,
                timeout=self._config.timeout,
                **kwargs,
            )
        logger.debug(f"Connected to Docker daemon at {api.base_url} (API {api.api_version})")
        return api

    @staticmethod
    def _translated_stream(chunks: Iterable[bytes], **keys: Optional[str]) -> Iterator[bytes]:
        """Re-raise faults that surface while a streamed response is consumed."""
        with translate_errors(**keys):
            for chunk in chunks:
                yield chunk

    @staticmethod
    def _check_progress(events: Iterable[Any], repo_tag: str, not_found_is_image: bool = False) -> None:
        """
        Drain a progress stream and raise on the first error it reports.
        The engine signals pull/push/import failures inside a 200 response.
        """
        for event in events:
            if isinstance(event, (str, bytes)):
                lines = event.splitlines() if event else []
                decoded = []
                for line in lines:
                    try:
                        decoded.append(json.loads(line))
                    except ValueError:
                        continue
            else:
                decoded = [event]

            for item in decoded:
                if not isinstance(item, dict) or "error" not in item:
                    continue
                message = str(item.get("error"))
                if not_found_is_image and "not found" in message.lower():
                    raise NoSuchImageError(message, image=repo_tag)
                raise RuntimeClientError(message, {"repo_tag": repo_tag})

    # Listings

    def list_images(self) -> List[ImageSummary]:
        with translate_errors():
            images = self._api.images()
        return [
            ImageSummary(
                id=image["Id"],
                repo_tags=[t for t in (image.get("RepoTags") or []) if t != UNTAGGED],
            )
            for image in images
        ]

    def list_containers(self) -> List[ContainerSummary]:
        with translate_errors():
            containers = self._api.containers(all=True)
        return [
            ContainerSummary(id=c["Id"], status=c.get("State") or "")
            for c in containers
        ]

    def list_networks(self) -> List[NetworkSummary]:
        with translate_errors():
            networks = self._api.networks()
        return [NetworkSummary(id=n["Id"], name=n.get("Name")) for n in networks]

    # Container lifecycle

    def create_container(self, image: str, command: List[str], env: List[str]) -> ContainerCreation:
        logger.debug(f"Creating container from {image} with command {command}")
        with translate_errors(image=image):
            response = self._api.create_container(
                image=image,
                command=command or None,
                environment=env,
            )
        return ContainerCreation(
            id=response.get("Id") or None,
            warnings=response.get("Warnings") or [],
        )

    def start_container(self, container_id: str) -> None:
        with translate_errors(container_id=container_id):
            self._api.start(container_id)

    def stop_container(self, container_id: str, timeout: Optional[int] = None) -> None:
        with translate_errors(container_id=container_id):
            self._api.stop(container_id, timeout=timeout)

    def connect_to_network(self, container_id: str, network_id: str) -> None:
        with translate_errors(container_id=container_id, network_id=network_id):
            self._api.connect_container_to_network(container_id, network_id)

    def remove_container(self, container_id: str, force: bool = False) -> None:
        with translate_errors(container_id=container_id):
            self._api.remove_container(container_id, force=force)

    def wait_for_exit(self, container_id: str) -> int:
        with translate_errors(container_id=container_id):
            response = self._api.wait(container_id)
        # Pre-3.0 SDKs returned the bare status code
        if isinstance(response, dict):
            return int(response["StatusCode"])
        return int(response)

    def read_logs(self, container_id: str, stream: str) -> bytes:
        if stream not in LOG_STREAMS:
            raise ArgumentError(f"Unknown log stream '{stream}'", argument="stream")
        with translate_errors(container_id=container_id):
            return self._api.logs(
                container_id,
                stdout=(stream == "stdout"),
                stderr=(stream == "stderr"),
            )

    # Filesystem transfer

    def export_filesystem(self, container_id: str) -> Iterator[bytes]:
        with translate_errors(container_id=container_id):
            chunks = self._api.export(container_id)
        return self._translated_stream(chunks, container_id=container_id)

    def import_filesystem(self, repo_tag: str, data: Iterable[bytes]) -> None:
        repository, tag = split_repo_tag(repo_tag)
        with translate_errors(image=repo_tag):
            result = self._api.import_image(
                src=data, repository=repository, tag=tag, stream_src=True
            )
        self._check_progress([result], repo_tag)

    def read_archive(self, container_id: str, path: str) -> Iterator[bytes]:
        with translate_errors(container_id=container_id):
            chunks, stat = self._api.get_archive(container_id, path)
        logger.debug(f"Archiving {path} from {container_id[:12]} ({stat.get('size', '?')} bytes)")
        return self._translated_stream(chunks, container_id=container_id)

    def copy_into_container(self, data: Iterable[bytes], container_id: str, dest_dir: str) -> None:
        # The body is sent chunked as the iterable is consumed
        with translate_errors(container_id=container_id):
            accepted = self._api.put_archive(container_id, dest_dir, data)
        if not accepted:
            raise RuntimeClientError(
                f"Engine rejected archive for {dest_dir}",
                {"container_id": container_id},
            )

    # Images

    def commit_container(
        self,
        container_id: str,
        repository: str,
        tag: str,
        comment: Optional[str] = None,
        author: Optional[str] = None,
    ) -> None:
        with translate_errors(container_id=container_id):
            self._api.commit(
                container_id,
                repository=repository,
                tag=tag,
                message=comment,
                author=author,
            )

    def count_layers(self, image: str) -> int:
        with translate_errors(image=image):
            info = self._api.inspect_image(image)
        return len((info.get("RootFS") or {}).get("Layers") or [])

    def _auth_config(self) -> Optional[Dict[str, Any]]:
        return self._credentials.as_auth_config() if self._credentials else None

    def pull_image(self, repo_tag: str) -> None:
        repository, tag = split_repo_tag(repo_tag)
        with translate_errors(image=repo_tag):
            events = self._api.pull(
                repository, tag=tag, stream=True, decode=True, auth_config=self._auth_config()
            )
            self._check_progress(events, repo_tag, not_found_is_image=True)

    def push_image(self, repo_tag: str) -> None:
        repository, tag = split_repo_tag(repo_tag)
        with translate_errors(image=repo_tag):
            events = self._api.push(
                repository, tag=tag, stream=True, decode=True, auth_config=self._auth_config()
            )
            self._check_progress(events, repo_tag)

    def tag_image(self, image: str, repository: str, tag: str) -> None:
        with translate_errors(image=image):
            accepted = self._api.tag(image, repository, tag=tag)
        if not accepted:
            raise RuntimeClientError(f"Engine refused to tag {image} as {repository}:{tag}")

    # Session

    def authenticate(self, username: str, password: str, host: Optional[str] = None) -> int:
        try:
            self._api.login(username=username, password=password, registry=host)
        except docker_errors.APIError as e:
            if e.status_code == 401:
                logger.info(f"Login rejected for {username} at {host or 'default registry'}")
                return 401
            raise translate_engine_error(e) from e
        except (docker_errors.DockerException, requests.exceptions.RequestException) as e:
            raise translate_engine_error(e) from e
        self._credentials = RegistryAuth(username=username, password=password, host=host)
        return 200

    def close(self) -> None:
        super().close()
        with translate_errors():
            self._api.close()

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
Entry point bundling the engine gateway with resolution, running and rebasing.
"""
import logging
from typing import List, Optional

from ..BUILDERS.rebase_committer import RebaseCommitter
from ..ENGINE.docker_gateway import DockerEngineGateway
from ..ENGINE.gateway import EngineGateway
from ..MODELS.client_config import ClientConfig
from ..MODELS.identifiers import ImageId
from ..MODELS.rebase_spec import RebaseSpec
from ..MODELS.run_spec import RunResult, RunSpec
from ..REGISTRY.image_reference import ImageReference, resolve_repo_tag
from ..REGISTRY.image_resolver import ImageResolver
from ..RUNNERS.interrupt import StopContainerHandler
from ..RUNNERS.run_orchestrator import RunOrchestrator

logger = logging.getLogger(__name__)

class RuntimeClient:
    """
    Client for one engine handle. Registry credentials set by ``login`` live
    on the handle and are dropped by ``close``.
    """
    def __init__(self,
                 config: Optional[ClientConfig] = None,
                 gateway: Optional[EngineGateway] = None):
        """
        Initializes the client.

        :param config: Client settings. Defaults apply when omitted.
        :param gateway: Engine handle; a Docker gateway is connected when omitted.
        """
        self.config = config or ClientConfig()
        self.gateway = gateway if gateway is not None else DockerEngineGateway(self.config)
        self.resolver = ImageResolver(self.gateway)
        self.orchestrator = RunOrchestrator(self.gateway, self.config)
        self.committer = RebaseCommitter(self.gateway, self.resolver)

    def resolve(self, repo_tag: str) -> ImageId:
        """
        Returns the id of the single image tagged with the canonical repo tag.
        """
        return self.resolver.resolve(repo_tag)

    def run(self, spec: RunSpec) -> RunResult:
        """
        Runs a container to completion, see ``RunOrchestrator.run``.
        """
        return self.orchestrator.run(spec)

    def commit_by_rebase(self, spec: RebaseSpec) -> ImageId:
        """
        Commits selected files of a container onto a new base image,
        see ``RebaseCommitter.commit_by_rebase``.
        """
        return self.committer.commit_by_rebase(spec)

    def interrupt_handler(self) -> StopContainerHandler:
        """
        Returns a handler that stops interrupted containers on this client's engine.
        """
        return StopContainerHandler(self.gateway, timeout=self.config.stop_timeout)

    def commit(self,
               container_id: str,
               repository: str,
               tag: str = ImageReference.DEFAULT_TAG,
               host: Optional[str] = None,
               author: Optional[str] = None,
               comment: Optional[str] = None) -> ImageId:
        """
        Commits a container with the engine's native commit.

        Each native commit adds a layer on top of the container's image. When
        ``layer_limit`` is configured a warning is logged once the new image
        reaches it.

        :return: Id of the committed image.
        """
        target = ImageReference(repository=repository, tag=tag, host=host)
        self.gateway.commit_container(container_id, target.name, target.tag,
                                      comment=comment, author=author)
        image_id = self.resolver.resolve(target.repo_tag)
        logger.info(f"Committed {container_id[:12]} as {target.repo_tag}")

        if self.config.layer_limit is not None:
            layers = self.gateway.count_layers(image_id)
            if layers >= self.config.layer_limit:
                logger.warning(
                    f"{target.repo_tag} has {layers} layers (limit {self.config.layer_limit}), "
                    f"use commit_by_rebase to start a fresh lineage"
                )
        return image_id

    def flatten(self,
                container_id: str,
                repository: str,
                tag: str = ImageReference.DEFAULT_TAG,
                host: Optional[str] = None) -> ImageId:
        """
        Exports the container's complete filesystem and imports it as a
        single-layer image. Image metadata such as CMD and ENV is not carried over.

        :return: Id of the imported image.
        """
        repo_tag = resolve_repo_tag(repository, tag, host)
        self.gateway.import_filesystem(repo_tag, self.gateway.export_filesystem(container_id))
        logger.info(f"Flattened {container_id[:12]} into {repo_tag}")
        return self.resolver.resolve(repo_tag)

    def images(self) -> List[ImageId]:
        """
        Returns the ids of all images known to the engine.
        """
        return [ImageId(image.id) for image in self.gateway.list_images()]

    def pull(self,
             repository: str,
             tag: str = ImageReference.DEFAULT_TAG,
             host: Optional[str] = None,
             port: Optional[int] = None) -> ImageId:
        """
        Pulls an image and returns its id.
        """
        repo_tag = resolve_repo_tag(repository, tag, host, port)
        logger.info(f"Pulling {repo_tag}")
        self.gateway.pull_image(repo_tag)
        return self.resolver.resolve(repo_tag)

    def push(self,
             repository: str,
             tag: str = ImageReference.DEFAULT_TAG,
             host: Optional[str] = None,
             port: Optional[int] = None) -> None:
        """
        Pushes an image to its registry.
        """
        repo_tag = resolve_repo_tag(repository, tag, host, port)
        logger.info(f"Pushing {repo_tag}")
        self.gateway.push_image(repo_tag)

    def tag(self,
            image: str,
            repository: str,
            tag: str = ImageReference.DEFAULT_TAG,
            host: Optional[str] = None) -> ImageId:
        """
        Adds a repo tag to an image and returns the tagged image's id.
        """
        target = ImageReference(repository=repository, tag=tag, host=host)
        self.gateway.tag_image(image, target.name, target.tag)
        return self.resolver.resolve(target.repo_tag)

    def rm(self, container_id: str) -> None:
        """
        Removes a container.
        """
        self.gateway.remove_container(container_id)

    def login(self, username: str, password: str, host: Optional[str] = None) -> bool:
        """
        Logs in to a registry. Later pulls and pushes on this client use the credentials.

        :return: True if the registry accepted the credentials.
        """
        return self.gateway.authenticate(username, password, host) == 200

    def close(self):
        """
        Closes the engine handle and forgets stored credentials.
        """
        self.gateway.close()

    def __enter__(self) -> "RuntimeClient":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

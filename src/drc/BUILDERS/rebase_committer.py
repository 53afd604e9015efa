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
Builds images from selected files of a container layered onto a fresh base.

Native commits stack one layer per commit on top of the container's own
image, and engines cap how many layers an image may carry. Rebasing copies
only the requested files into a container of an unrelated base image and
commits that, so the new image's lineage starts over at the base.
"""

import logging
import posixpath

from ..ENGINE.errors import ArgumentError, CreateContainerFailedError
from ..ENGINE.gateway import EngineGateway
from ..MODELS.identifiers import ContainerId, ImageId
from ..MODELS.rebase_spec import RebaseSpec
from ..REGISTRY.image_reference import ImageReference
from ..REGISTRY.image_resolver import ImageResolver

logger = logging.getLogger(__name__)


class RebaseCommitter:
    """
    Commits files of one container on top of another base image.
    """

    def __init__(self, gateway: EngineGateway, resolver: ImageResolver = None):
        """
        Initializes the RebaseCommitter.

        :param gateway: Engine handle to build on.
        :param resolver: Resolver for the committed repo tag.
        """
        self.gateway = gateway
        self.resolver = resolver or ImageResolver(gateway)

    def commit_by_rebase(self, spec: RebaseSpec) -> ImageId:
        """
        Creates a container from ``spec.base_image``, copies every requested
        path out of the source container into it and commits the result.

        The intermediate container is left in place; removing it is up to
        the caller.

        :param spec: Source container, paths, base image and target.
        :return: Id of the committed image.
        :raises ArgumentError: A path is not absolute (before any engine call).
        """
        for path in spec.paths:
            if not posixpath.isabs(path):
                raise ArgumentError(f"Path '{path}' is not absolute", argument="paths")
        target = ImageReference(repository=spec.repository, tag=spec.tag, host=spec.host)

        logger.info(
            f"Rebasing {len(spec.paths)} path(s) of {spec.source_container_id[:12]} "
            f"onto {spec.base_image} as {target.repo_tag}"
        )
        container_id = self._create_base_container(spec.base_image)

        for path in spec.paths:
            self._transfer(spec.source_container_id, container_id, path)

        self.gateway.commit_container(
            container_id,
            target.name,
            target.tag,
            comment=spec.comment,
            author=spec.author,
        )
        return self.resolver.resolve(target.repo_tag)

    def _create_base_container(self, base_image: str) -> ContainerId:
        creation = self.gateway.create_container(base_image, [], [])
        if not creation.id:
            raise CreateContainerFailedError(
                "Engine did not make the container id available", {"image": base_image}
            )
        logger.debug(f"Created rebase container {creation.id[:12]} from {base_image}")
        return ContainerId(creation.id)

    def _transfer(self, source_id: str, target_id: str, path: str) -> None:
        """
        Copies one path; the archive is rooted at the path's basename and
        streamed from source to target without being held in memory.
        """
        normalized = posixpath.normpath(path)
        dest_dir = posixpath.dirname(normalized) or "/"
        archive = self.gateway.read_archive(source_id, normalized)
        self.gateway.copy_into_container(archive, target_id, dest_dir)
        logger.debug(f"Copied {normalized} into {target_id[:12]}:{dest_dir}")

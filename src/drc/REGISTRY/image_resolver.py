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
Resolution of canonical repo tags to the single image the engine holds for them.
"""

import logging

from ..ENGINE.errors import ImageResolutionError
from ..ENGINE.gateway import EngineGateway
from ..MODELS.identifiers import ImageId

logger = logging.getLogger(__name__)


class ImageResolver:
    """
    Looks up the image id behind a repo tag in the engine's current image set.
    Read-only against the engine.
    """

    def __init__(self, gateway: EngineGateway):
        """
        Args:
            gateway: Engine handle used for the image listing.
        """
        self.gateway = gateway

    def resolve(self, repo_tag: str) -> ImageId:
        """
        Resolve a canonical repo tag to its image id.

        Args:
            repo_tag: Canonical '[host/]repository:tag' string

        Returns:
            Id of the only image carrying exactly this repo tag.

        Raises:
            ImageResolutionError: If zero or several images carry the tag
        """
        matches = [
            image.id for image in self.gateway.list_images() if repo_tag in image.repo_tags
        ]
        if len(matches) != 1:
            raise ImageResolutionError(repo_tag, matches)

        logger.debug(f"Resolved {repo_tag} to {matches[0]}")
        return ImageId(matches[0])

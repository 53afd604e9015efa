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
Image reference parsing and repo tag canonicalization.

The canonical repo tag ``[host/]repository:tag`` is the key the engine uses
in its image listing, e.g. 'alpine:latest' or 'registry.local:5000/team/app:v1'.
"""

import re
from typing import Optional, Tuple
from dataclasses import dataclass

from ..ENGINE.errors import ArgumentError

_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")
_HOST = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?(?::[0-9]+)?$")


@dataclass
class ImageReference:
    """
    Reference to a pullable/pushable image.

    The host is normalized on construction: trailing separators are dropped
    and the default registry is folded into ``None``, because the engine lists
    images of the default registry without a host prefix.

    Examples:
        - alpine -> alpine:latest
        - docker.io/library/nginx:1.21 -> nginx:1.21
        - localhost:5000/myimage:v1 -> localhost:5000/myimage:v1
        - gcr.io/project/image@sha256:abc123... -> gcr.io/project/image@sha256:abc123...
    """

    repository: str
    tag: Optional[str] = None
    host: Optional[str] = None
    digest: Optional[str] = None

    DEFAULT_REGISTRIES = ("docker.io", "index.docker.io", "registry-1.docker.io")
    DEFAULT_TAG = "latest"
    SEP = "/"

    def __post_init__(self):
        if self.host is not None:
            self.host = self.host.strip().rstrip(self.SEP) or None
        if self.host in self.DEFAULT_REGISTRIES:
            self.host = None
        if self.host is not None and not _HOST.match(self.host):
            raise ArgumentError(f"Invalid registry host '{self.host}'", argument="host")

        if not self.repository:
            raise ArgumentError("Empty repository name", argument="repository")
        self.repository = self.repository.strip(self.SEP)
        # Official images are listed without their 'library/' namespace
        if self.host is None and self.repository.startswith("library/"):
            self.repository = self.repository[len("library/"):]
        for component in self.repository.split(self.SEP):
            if not _COMPONENT.match(component):
                raise ArgumentError(
                    f"Invalid repository name '{self.repository}'", argument="repository"
                )

        if not self.tag and not self.digest:
            self.tag = self.DEFAULT_TAG
        if self.tag is not None and not _TAG.match(self.tag):
            raise ArgumentError(f"Invalid tag '{self.tag}'", argument="tag")

    @classmethod
    def parse(cls, reference: str) -> "ImageReference":
        """
        Parse an image reference string.

        Args:
            reference: Image reference string (e.g., 'nginx:latest', 'myuser/myimage:v1')

        Returns:
            Parsed ImageReference object.
        """
        if not reference:
            raise ArgumentError("Empty image reference", argument="reference")

        # Handle digest format (image@sha256:...)
        digest = None
        if "@" in reference:
            reference, digest = reference.rsplit("@", 1)

        name, tag = split_repo_tag(reference)

        parts = name.split(cls.SEP)
        host = None
        if len(parts) > 1:
            first_part = parts[0]
            if "." in first_part or ":" in first_part or first_part == "localhost":
                host = first_part
                name = cls.SEP.join(parts[1:])

        return cls(repository=name, tag=tag, host=host, digest=digest)

    @property
    def name(self) -> str:
        """Repository name including the host prefix, without tag."""
        if self.host:
            return f"{self.host}{self.SEP}{self.repository}"
        return self.repository

    @property
    def repo_tag(self) -> str:
        """Canonical key joined against the engine's repo tag listing."""
        if self.digest:
            return f"{self.name}@{self.digest}"
        return f"{self.name}:{self.tag}"

    def __str__(self) -> str:
        return self.repo_tag

    def __repr__(self) -> str:
        return f"ImageReference({self.repo_tag})"


def resolve_repo_tag(
    repository: str,
    tag: str = ImageReference.DEFAULT_TAG,
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> str:
    """
    Build the canonical repo tag of a repository/tag/host triple.

    >>> resolve_repo_tag("alpine", "latest")
    'alpine:latest'
    >>> resolve_repo_tag("team/app", "v1", host="registry.local/", port=5000)
    'registry.local:5000/team/app:v1'
    """
    if port is not None:
        if not host:
            raise ArgumentError("A port requires a host", argument="port")
        host = f"{host.strip().rstrip(ImageReference.SEP)}:{port}"
    return ImageReference(repository=repository, tag=tag, host=host).repo_tag


def split_repo_tag(repo_tag: str) -> Tuple[str, Optional[str]]:
    """
    Split 'name:tag' into its name and tag. A colon that belongs to a
    registry port ('localhost:5000/image') is not mistaken for a tag.
    """
    last_colon = repo_tag.rfind(":")
    if last_colon == -1 or ImageReference.SEP in repo_tag[last_colon + 1:]:
        return repo_tag, None
    return repo_tag[:last_colon], repo_tag[last_colon + 1:]

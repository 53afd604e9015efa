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
Error taxonomy of the runtime client and translation of engine faults into it.

Exception Hierarchy:
    RuntimeClientError (any other engine fault)
    ├── NoSuchImageError - referenced image does not exist
    ├── NoSuchContainerError - referenced container does not exist
    ├── NoSuchNetworkError - referenced network does not exist
    └── CreateContainerFailedError - creation succeeded without a container id
    ImageResolutionError - repo tag did not match exactly one image
    ArgumentError - caller-supplied precondition violated

No docker SDK or transport exception leaves the engine gateway: every call is
wrapped in ``translate_errors``.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import requests
from docker import errors as docker_errors

logger = logging.getLogger(__name__)


class RuntimeClientError(Exception):
    """
    Base exception for engine faults.

    Attributes:
        message: Human-readable error description
        details: Identifying keys of the entities involved
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for logging or CLI output."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class NoSuchImageError(RuntimeClientError):
    """Raised when the referenced image is unknown to the engine."""

    def __init__(self, message: str, image: Optional[str] = None):
        super().__init__(message, {"image": image} if image else None)
        self.image = image


class NoSuchContainerError(RuntimeClientError):
    """
    Raised when the referenced container does not exist, for instance because
    another actor removed it between two steps of a run.
    """

    def __init__(self, message: str, container_id: Optional[str] = None):
        super().__init__(message, {"container_id": container_id} if container_id else None)
        self.container_id = container_id


class NoSuchNetworkError(RuntimeClientError):
    """Raised when the referenced network is not in the engine's network list."""

    def __init__(self, message: str, network_id: Optional[str] = None):
        super().__init__(message, {"network_id": network_id} if network_id else None)
        self.network_id = network_id


class CreateContainerFailedError(RuntimeClientError):
    """
    Raised when the engine acknowledged a creation request but did not hand
    out a container id. Never retried.
    """

    pass


class ImageResolutionError(RuntimeError):
    """
    Raised when a repo tag matches zero or several images.

    This is an invariant violation, not a lookup miss: resolution only runs
    after a pull, commit or import claimed to have produced the tag.
    """

    def __init__(self, repo_tag: str, matches: List[str]):
        if matches:
            message = f"Multiple images with repo tag '{repo_tag}' found: {', '.join(matches)}"
        else:
            message = f"No image with repo tag '{repo_tag}' found"
        super().__init__(message)
        self.message = message
        self.repo_tag = repo_tag
        self.matches = list(matches)


class ArgumentError(ValueError):
    """Raised when a caller-supplied argument violates a precondition."""

    def __init__(self, message: str, argument: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.argument = argument


def _explanation(exc: docker_errors.APIError) -> str:
    text = exc.explanation
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    return str(text or exc)


def translate_engine_error(
    exc: Exception,
    image: Optional[str] = None,
    container_id: Optional[str] = None,
    network_id: Optional[str] = None,
) -> RuntimeClientError:
    """
    Map a docker SDK or transport exception to the client taxonomy.

    The keys name what the failing call was about, and a 404 is only
    classified as missing one of those entities. The engine's message is
    matched on its prefix, since it may quote user paths containing words
    like 'image' or 'network'. Any other 404 is a generic fault.
    """
    if isinstance(exc, docker_errors.NotFound):
        explanation = _explanation(exc)
        lowered = explanation.lower()
        if container_id and lowered.startswith("no such container"):
            return NoSuchContainerError(explanation, container_id=container_id)
        if network_id and lowered.startswith("network "):
            return NoSuchNetworkError(explanation, network_id=network_id)
        if image and not container_id:
            return NoSuchImageError(explanation, image=image)
        if isinstance(exc, docker_errors.ImageNotFound) and lowered.startswith("no such image"):
            return NoSuchImageError(explanation, image=image)
        return RuntimeClientError(explanation)

    if isinstance(exc, docker_errors.APIError):
        return RuntimeClientError(_explanation(exc))

    if isinstance(exc, docker_errors.DockerException):
        return RuntimeClientError(str(exc))

    if isinstance(exc, requests.exceptions.RequestException):
        return RuntimeClientError(f"Engine connection failed: {exc}")

    return RuntimeClientError(str(exc))


@contextmanager
def translate_errors(
    image: Optional[str] = None,
    container_id: Optional[str] = None,
    network_id: Optional[str] = None,
) -> Iterator[None]:
    """
    Context manager that re-raises engine faults as client errors.

    Usage:
        >>> with translate_errors(container_id=cid):
        ...     api.start(cid)
    """
    try:
        yield
    except (docker_errors.DockerException, requests.exceptions.RequestException) as e:
        translated = translate_engine_error(
            e, image=image, container_id=container_id, network_id=network_id
        )
        logger.debug(f"Engine fault translated to {type(translated).__name__}: {e}")
        raise translated from e

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
DRC - Docker Runtime Client

Drives a container engine over its control socket: resolves images, runs
containers with interruptible waiting, and builds images by rebasing a
container's files onto a fresh base image.
"""

from .ENGINE.errors import (
    ArgumentError,
    CreateContainerFailedError,
    ImageResolutionError,
    NoSuchContainerError,
    NoSuchImageError,
    NoSuchNetworkError,
    RuntimeClientError,
)
from .MANAGERS.runtime_client import RuntimeClient
from .MODELS.client_config import ClientConfig
from .MODELS.rebase_spec import RebaseSpec
from .MODELS.run_spec import RunResult, RunSpec

__version__ = "0.1.0"
__author__ = "Michael Maillet, Damien Davison, Sacha Davison"
__license__ = "Apache-2.0"

__all__ = [
    "ArgumentError",
    "ClientConfig",
    "CreateContainerFailedError",
    "ImageResolutionError",
    "NoSuchContainerError",
    "NoSuchImageError",
    "NoSuchNetworkError",
    "RebaseSpec",
    "RunResult",
    "RunSpec",
    "RuntimeClient",
    "RuntimeClientError",
]

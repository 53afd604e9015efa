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
Lifecycle of a single container invocation: create, attach, start, wait,
collect output and clean up.
"""

import logging
import time
from typing import Callable, List, Optional, Tuple

from ..ENGINE.errors import (
    CreateContainerFailedError,
    NoSuchContainerError,
    NoSuchNetworkError,
    RuntimeClientError,
)
from ..ENGINE.gateway import EngineGateway
from ..MODELS.client_config import ClientConfig
from ..MODELS.identifiers import ContainerId
from ..MODELS.run_spec import RunResult, RunSpec
from .interrupt import InterruptHandler, InterruptSignaler

logger = logging.getLogger(__name__)


class RunOrchestrator:
    """
    Drives one container through create -> attach -> start -> wait ->
    collect output -> remove. The steps run strictly in this order and
    the first failing step aborts the run.

    Containers are only left behind by failures after creation, and only
    when ``remove_on_failure`` is off.
    """

    # Listing states after which the container will not run again
    TERMINAL_STATUSES = ("exited", "dead")

    def __init__(
        self,
        gateway: EngineGateway,
        config: Optional[ClientConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initializes the orchestrator.

        :param gateway: Engine handle the run is carried out on.
        :param config: Client settings (poll pacing, failure cleanup).
        :param sleep: Function used to pause between status polls.
        """
        self.gateway = gateway
        self.config = config or ClientConfig()
        self._sleep = sleep

    def run(self, spec: RunSpec) -> RunResult:
        """
        Runs a container to completion.

        :param spec: Description of the invocation.
        :return: Exit code, captured streams and creation warnings.
        :raises NoSuchNetworkError: The requested network does not exist.
        :raises NoSuchImageError: The image does not exist.
        :raises NoSuchContainerError: The container vanished during the run.
        :raises CreateContainerFailedError: The engine returned no container id.
        :raises RuntimeClientError: Any other engine fault.
        """
        # 1. Validate network before anything is created
        if spec.network_id is not None:
            self._check_network(spec.network_id)

        # 2. Create
        container_id, warnings = self._create(spec)

        try:
            exit_code, stdout, stderr = self._drive(container_id, spec)
        except Exception:
            if self.config.remove_on_failure:
                self._discard(container_id)
            raise

        return RunResult(
            container_id=container_id,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            warnings=warnings,
        )

    def _check_network(self, network_id: str) -> None:
        known = {network.id for network in self.gateway.list_networks()}
        if network_id not in known:
            raise NoSuchNetworkError(
                f"Docker network with id {network_id} does not exist", network_id=network_id
            )

    def _create(self, spec: RunSpec) -> Tuple[ContainerId, List[str]]:
        creation = self.gateway.create_container(
            spec.image_id, list(spec.command), spec.environment_list()
        )
        warnings = list(creation.warnings)
        for warning in warnings:
            logger.warning(f"Engine warning on create: {warning}")

        if not creation.id:
            raise CreateContainerFailedError(
                "Engine did not make the container id available",
                {"image": spec.image_id},
            )
        logger.debug(f"Created container {creation.id[:12]} from {spec.image_id}")
        return ContainerId(creation.id), warnings

    def _drive(self, container_id: str, spec: RunSpec) -> Tuple[int, bytes, bytes]:
        # 3. Attach before start, so the first instruction already sees the network
        if spec.network_id is not None:
            self.gateway.connect_to_network(container_id, spec.network_id)

        # 4. Start
        self.gateway.start_container(container_id)
        logger.debug(f"Started container {container_id[:12]}")

        # 5. Wait
        if spec.interruptible:
            exit_code = self._wait_with_interrupt(
                container_id, spec.interrupt_signaler, spec.interrupt_handler
            )
        else:
            exit_code = self.gateway.wait_for_exit(container_id)
        logger.debug(f"Container {container_id[:12]} exited with {exit_code}")

        # 6. Collect output; removal would invalidate the logs
        stdout = self.gateway.read_logs(container_id, "stdout")
        stderr = self.gateway.read_logs(container_id, "stderr")

        # 7. Cleanup
        if spec.remove:
            self.gateway.remove_container(container_id)
            logger.debug(f"Removed container {container_id[:12]}")

        return exit_code, stdout, stderr

    def _wait_with_interrupt(
        self,
        container_id: str,
        signaler: InterruptSignaler,
        handler: InterruptHandler,
    ) -> int:
        """
        Polls the container status until it has exited, consulting the
        signaler on every poll where it has not. A container the engine
        marks 'dead' (e.g. after a failed stop) counts as exited.
        """
        while self._status(container_id) not in self.TERMINAL_STATUSES:
            if signaler.was_interrupted(container_id):
                logger.debug(f"Interrupt requested for {container_id[:12]}")
                handler.handle_interrupt(container_id)
            if self.config.poll_interval:
                self._sleep(self.config.poll_interval)

        # Returns immediately, the container has already terminated
        return self.gateway.wait_for_exit(container_id)

    def _status(self, container_id: str) -> str:
        for container in self.gateway.list_containers():
            if container.id == container_id:
                return container.status
        raise NoSuchContainerError(
            "Container disappeared while waiting for it to exit", container_id=container_id
        )

    def _discard(self, container_id: str) -> None:
        try:
            self.gateway.remove_container(container_id, force=True)
            logger.info(f"Removed container {container_id[:12]} after failed run")
        except RuntimeClientError as e:
            logger.warning(f"Could not remove container {container_id[:12]}: {e}")

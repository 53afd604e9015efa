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
Cooperative cancellation of container runs.

A run that receives both a signaler and a handler polls the container's status
instead of blocking on the engine. On every poll where the container has not
exited, the signaler is asked whether an interrupt was requested, and if so the
handler acts on it. Check and act are not atomic: the container may exit in
between.
"""

import logging
import signal
import threading
from typing import Optional, Protocol, Set, runtime_checkable

from ..ENGINE.errors import NoSuchContainerError
from ..ENGINE.gateway import EngineGateway

logger = logging.getLogger(__name__)


@runtime_checkable
class InterruptSignaler(Protocol):
    """Answers whether an interrupt was requested for a container."""

    def was_interrupted(self, container_id: str) -> bool:
        ...


@runtime_checkable
class InterruptHandler(Protocol):
    """Carries out an interrupt, e.g. by stopping the container."""

    def handle_interrupt(self, container_id: str) -> None:
        ...


class FlagInterruptSignaler:
    """
    Signaler driven by explicit requests, e.g. from another thread.
    """

    def __init__(self):
        self._requested: Set[str] = set()
        self._all = threading.Event()
        self._lock = threading.Lock()

    def request(self, container_id: Optional[str] = None) -> None:
        """
        Request an interrupt for one container, or for every container when
        no id is given.
        """
        if container_id is None:
            self._all.set()
            return
        with self._lock:
            self._requested.add(container_id)

    def was_interrupted(self, container_id: str) -> bool:
        if self._all.is_set():
            return True
        with self._lock:
            return container_id in self._requested


class SignalInterruptSignaler(FlagInterruptSignaler):
    """
    Signaler that reports an interrupt once the process received SIGINT.

    Install it around a run; the previous handler is restored on exit.
    Only usable from the main thread.
    """

    def __init__(self, signum: int = signal.SIGINT):
        super().__init__()
        self.signum = signum
        self._previous = None

    def _on_signal(self, signum, frame):
        logger.info("Interrupt received, stopping container...")
        self.request()

    def __enter__(self) -> "SignalInterruptSignaler":
        self._previous = signal.signal(self.signum, self._on_signal)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        signal.signal(self.signum, self._previous)


class StopContainerHandler:
    """
    Handler that asks the engine to stop the interrupted container.

    A stop is issued at most once per container, so repeated polls while the
    engine winds the container down do not pile up stop requests.
    """

    def __init__(self, gateway: EngineGateway, timeout: Optional[int] = None):
        """
        :param gateway: Engine handle used to stop the container.
        :param timeout: Grace period in seconds before the engine kills it.
        """
        self.gateway = gateway
        self.timeout = timeout
        self.stopped: Set[str] = set()

    def handle_interrupt(self, container_id: str) -> None:
        if container_id in self.stopped:
            return
        logger.info(f"Stopping container {container_id[:12]}")
        try:
            self.gateway.stop_container(container_id, timeout=self.timeout)
        except NoSuchContainerError:
            logger.debug(f"Container {container_id[:12]} vanished before it could be stopped")
        self.stopped.add(container_id)

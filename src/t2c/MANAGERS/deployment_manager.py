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
Deployment of compiled descriptors through the container orchestrator,
with a single status register for the current deployment.
"""
import logging
import os
import threading
from typing import Optional

from ..CONVERTERS.to_compose import ComposeConverter
from ..MODELS.deployment_descriptor import DeploymentDescriptor
from ..MODELS.deployment_status import DeploymentStatus
from ..RUNNERS.compose_runner import COMPOSE_FILENAME, ComposeCommandError, ComposeRunner
from ..RUNNERS.dependency_resolver import CircularDependencyError, DependencyResolver
from ..UTILS.settings import Settings

logger = logging.getLogger(__name__)


class DeploymentError(Exception):
    """
    Raised when a deploy or stop request fails. The status register is left
    in the error state.
    """


class DeploymentManager:
    """
    Applies deployment descriptors and tracks the current deployment.

    The status register moves between idle, deploying, running and error,
    and only `apply`, `stop` and `refresh` change it. At most one of them
    runs at a time; a later request waits for the one in flight and then
    overwrites the status. `current_status` never waits for an operation.
    """

    def __init__(self, work_dir: str = ".t2c", runner: Optional[ComposeRunner] = None):
        """
        Initializes the deployment manager.

        :param work_dir: Directory where the compose file and nginx configs are rendered.
        :param runner: Compose command runner, defaults to one bound to work_dir.
        """
        self.work_dir = os.path.abspath(work_dir)
        self.runner = runner or ComposeRunner(self.work_dir)
        self.resolver = DependencyResolver()
        self._operation_lock = threading.Lock()
        self._status_lock = threading.Lock()
        self._status = DeploymentStatus.idle()

    @classmethod
    def from_settings(cls, settings: Settings) -> "DeploymentManager":
        """
        Builds a manager from runtime settings.
        """
        work_dir = os.path.abspath(settings.work_dir)
        runner = ComposeRunner(
            work_dir,
            compose_command=settings.compose_command,
            project_name=settings.project_name,
            timeout=settings.command_timeout,
        )
        return cls(work_dir, runner=runner)

    def current_status(self) -> DeploymentStatus:
        """
        Returns the latest committed status.
        """
        with self._status_lock:
            return self._status

    def _commit(self, status: DeploymentStatus):
        with self._status_lock:
            self._status = status
        logger.debug("Deployment status: %s", status.state.value)

    def _fail(self, message: str) -> DeploymentError:
        logger.error(message)
        self._commit(DeploymentStatus.error(message))
        return DeploymentError(message)

    def apply(self, descriptor: DeploymentDescriptor) -> DeploymentStatus:
        """
        Replaces the current deployment with the given descriptor.

        :param descriptor: The compiled deployment descriptor.
        :return: The running status with the orchestrator's service list.
        :raises DeploymentError: If rendering, tear-down of the new stack, or start-up fails.
        """
        with self._operation_lock:
            self._commit(DeploymentStatus.deploying())
            try:
                order = self.resolver.resolve_order(descriptor)
                logger.info("Starting services in order: %s", ", ".join(order))
                ComposeConverter(descriptor).convert(self.work_dir)
            except (CircularDependencyError, OSError) as e:
                raise self._fail(f"Cannot render deployment: {e}") from e

            try:
                self.runner.run("down", "--remove-orphans")
            except ComposeCommandError as e:
                # Nothing was running
                logger.info("Tear-down before deploy failed: %s", e)

            try:
                self.runner.up()
                services = self.runner.ps()
            except (ComposeCommandError, ValueError) as e:
                raise self._fail(f"Deployment failed: {e}") from e

            status = DeploymentStatus.running(services)
            self._commit(status)
            logger.info("Deployment running with %d services", len(services))
            return status

    def stop(self) -> DeploymentStatus:
        """
        Tears the current deployment down.

        :return: The idle status.
        :raises DeploymentError: If the orchestrator fails to stop the deployment.
        """
        with self._operation_lock:
            try:
                self.runner.down()
            except ComposeCommandError as e:
                raise self._fail(f"Failed to stop deployment: {e}") from e
            status = DeploymentStatus.idle("Deployment stopped")
            self._commit(status)
            return status

    def refresh(self) -> DeploymentStatus:
        """
        Polls the orchestrator for the services of the deployment in the work
        directory and commits what it reports.

        :return: Running when services are reported, idle otherwise.
        :raises DeploymentError: If the orchestrator cannot be queried.
        """
        with self._operation_lock:
            if not os.path.exists(os.path.join(self.work_dir, COMPOSE_FILENAME)):
                status = DeploymentStatus.idle()
            else:
                try:
                    services = self.runner.ps()
                except (ComposeCommandError, ValueError) as e:
                    raise self._fail(f"Failed to read deployment status: {e}") from e
                status = DeploymentStatus.running(services, message="Deployment status refreshed") if services \
                    else DeploymentStatus.idle()
            self._commit(status)
            return status

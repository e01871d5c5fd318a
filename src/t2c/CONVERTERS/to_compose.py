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
Converters for rendering a deployment descriptor as a Docker Compose file.
"""
import logging
import os
from typing import Any, Dict
import yaml
from ..MODELS.deployment_descriptor import DeploymentDescriptor, ServiceSpec
from ..RUNNERS.compose_runner import COMPOSE_FILENAME
from ..RUNNERS.dependency_resolver import CircularDependencyError, DependencyResolver
from .to_nginx import NginxConfigConverter

logger = logging.getLogger(__name__)

COMPOSE_HEADER = (
    "# Generated by t2c.\n"
    "# depends_on: each service starts after the targets of its outbound edges.\n"
)


class ComposeConverter:
    """
    Converts a deployment descriptor into a docker-compose.yml document.
    """

    def __init__(self, descriptor: DeploymentDescriptor):
        """
        Initializes the compose converter.

        :param descriptor: The compiled deployment descriptor.
        """
        self.descriptor = descriptor

    def to_dict(self) -> Dict[str, Any]:
        """
        Builds the compose document. Services are listed in startup order,
        or in descriptor order when their dependencies form a cycle.

        :return: The compose document as plain data.
        """
        try:
            order = DependencyResolver().resolve_order(self.descriptor)
        except CircularDependencyError as e:
            logger.warning("%s; keeping descriptor order", e)
            order = list(self.descriptor.services)

        return {
            "services": {name: self._service(self.descriptor.services[name]) for name in order},
            "networks": {name: {"driver": driver} for name, driver in self.descriptor.networks.items()},
        }

    @staticmethod
    def _service(svc: ServiceSpec) -> Dict[str, Any]:
        """
        Maps a service spec to compose keys, leaving out empty settings.
        """
        service = {
            "image": svc.image,
            "command": svc.command,
            "ports": list(svc.ports),
            "expose": list(svc.expose),
            "environment": dict(svc.environment),
            "depends_on": list(svc.depends_on),
            "volumes": list(svc.volumes),
            "networks": list(svc.networks),
            "restart": svc.restart_policy,
            "mem_limit": svc.mem_limit,
            "cpus": svc.cpus,
            "labels": dict(svc.labels),
        }
        return {k: v for k, v in service.items() if v not in (None, [], {})}

    def to_yaml(self) -> str:
        """
        Renders the compose document as YAML.
        """
        return COMPOSE_HEADER + yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)

    def convert(self, output_dir: str) -> str:
        """
        Writes the compose file and the load balancers' nginx configurations.

        :param output_dir: The directory where files will be created.
        :return: The path to the compose file.
        """
        os.makedirs(output_dir, exist_ok=True)
        compose_path = os.path.join(output_dir, COMPOSE_FILENAME)
        with open(compose_path, "w") as f:
            f.write(self.to_yaml())
        NginxConfigConverter(self.descriptor).convert(output_dir)

        logger.info("Compose file generated in %s", output_dir)
        return compose_path

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
Compilation of a service topology into a deployment descriptor.
"""
import html
import logging
import re
from typing import Callable, Dict, List, Optional

from ..MODELS.deployment_descriptor import NODE_ID_LABEL, NODE_TYPE_LABEL, DeploymentDescriptor, ServiceSpec
from ..MODELS.topology import (
    AppServerConfig,
    BaseNodeConfig,
    CacheConfig,
    DatabaseConfig,
    Node,
    NodeType,
    Topology,
)
from ..RULES.rule_tables import (
    DEFAULT_CONFIGS,
    DEFAULT_ENVIRONMENT,
    DEFAULT_IMAGES,
    DEFAULT_NETWORK,
    DEFAULT_NETWORK_DRIVER,
    DEFAULT_PORTS,
    DEFAULT_RESTART_POLICY,
    VOLUME_TEMPLATES,
    safe_id,
    service_name,
)

logger = logging.getLogger(__name__)

APP_SERVER_HTML = "<html><body><h1>Hello from app server</h1><p>Server ID: {node_id}</p></body></html>"
APP_SERVER_JS = (
    "const http = require('http'); const fs = require('fs'); "
    "const server = http.createServer((req, res) => { "
    "res.writeHead(200, {'Content-Type': 'text/html'}); "
    "res.end(fs.readFileSync('/app/index.html')); }); "
    "server.listen({port}, '0.0.0.0', () => console.log('Server running on port {port}'));"
)

_MEMORY_SIZE = re.compile(r"^\s*(\d+)\s*([kmgKMG])(?:i?[bB])?\s*$")


def _shell_safe_text(value: str) -> str:
    """
    Escapes text for use inside a double-quoted sh string holding HTML.
    """
    text = html.escape(value, quote=True)
    return text.replace("\\", "&#92;").replace("$", "&#36;").replace("`", "&#96;")


def redis_memory(value: str) -> str:
    """
    Converts a memory size such as '256M' to redis notation ('256mb').
    Values that are not a plain size are passed through unchanged.
    """
    match = _MEMORY_SIZE.match(value)
    if not match:
        return value.strip()
    return f"{match.group(1)}{match.group(2).lower()}b"


def _load_balancer_command(node: Node, config: BaseNodeConfig) -> Optional[List[str]]:
    return ["nginx", "-g", "daemon off;"]


def _app_server_command(node: Node, config: AppServerConfig) -> Optional[List[str]]:
    port = config.port or DEFAULT_CONFIGS[NodeType.APP_SERVER].port
    page = APP_SERVER_HTML.format(node_id=_shell_safe_text(node.id))
    script = APP_SERVER_JS.replace("{port}", str(port))
    return [
        "sh",
        "-c",
        f'mkdir -p /app && echo "{page}" > /app/index.html && node -e "{script}"',
    ]


def _cache_command(node: Node, config: CacheConfig) -> Optional[List[str]]:
    if not config.max_memory:
        return None
    return ["redis-server", "--maxmemory", redis_memory(config.max_memory)]


def _no_command(node: Node, config: BaseNodeConfig) -> Optional[List[str]]:
    return None


COMMAND_BUILDERS: Dict[NodeType, Callable[[Node, BaseNodeConfig], Optional[List[str]]]] = {
    NodeType.LOAD_BALANCER: _load_balancer_command,
    NodeType.APP_SERVER: _app_server_command,
    NodeType.DATABASE: _no_command,
    NodeType.CACHE: _cache_command,
    NodeType.MESSAGE_QUEUE: _no_command,
}


class DescriptorCompiler:
    """
    Maps a topology to per-service container configuration.

    The compiler does not validate. A node without a usable configuration is
    compiled with its type's default configuration, and edges pointing at
    unknown nodes are skipped, so compiling an invalid topology never fails.
    Every service depends on the services compiled from the targets of its
    node's outbound edges.
    """

    def compile(self, topology: Topology) -> DeploymentDescriptor:
        """
        Compiles a topology.

        :param topology: The topology to compile. It is not modified.
        :return: A new deployment descriptor.
        """
        nodes: Dict[str, Node] = {}
        for node in topology.nodes:
            nodes.setdefault(node.id, node)

        outbound: Dict[str, List[str]] = {}
        for edge in topology.edges:
            target = nodes.get(edge.target)
            if edge.source not in nodes or target is None:
                continue
            deps = outbound.setdefault(edge.source, [])
            name = service_name(target.type, target.id)
            if name not in deps:
                deps.append(name)

        services: Dict[str, ServiceSpec] = {}
        for node in topology.nodes:
            name = service_name(node.type, node.id)
            if name in services:
                logger.warning("Skipping duplicate node %s while compiling", node.id)
                continue
            services[name] = self._compile_node(node, outbound.get(node.id, []))

        logger.debug("Compiled %d services", len(services))
        return DeploymentDescriptor(
            services=services,
            networks={DEFAULT_NETWORK: DEFAULT_NETWORK_DRIVER},
        )

    def _compile_node(self, node: Node, depends_on: List[str]) -> ServiceSpec:
        """
        Builds the service spec of a single node.

        :param node: The node to compile.
        :param depends_on: Service names of the node's outbound targets.
        :return: The service spec.
        """
        config = self._effective_config(node)
        volume = VOLUME_TEMPLATES[node.type]

        spec = {
            "image": DEFAULT_IMAGES[node.type],
            "ports": self._published_ports(node.type, config),
            "environment": self._environment(node.type, self._own_config(node)),
            "depends_on": list(depends_on),
            "volumes": [volume.format(node_id=safe_id(node.id))] if volume else [],
            "networks": [DEFAULT_NETWORK],
            "command": COMMAND_BUILDERS[node.type](node, config),
            "restart_policy": DEFAULT_RESTART_POLICY,
            "labels": {NODE_ID_LABEL: node.id, NODE_TYPE_LABEL: node.type.value},
        }

        if node.type == NodeType.APP_SERVER:
            # Reachable only through a load balancer on the internal network
            spec["expose"] = [str(config.port or DEFAULT_CONFIGS[NodeType.APP_SERVER].port)]
            spec["mem_limit"] = config.memory_limit
            spec["cpus"] = config.cpu_limit

        return ServiceSpec(**spec)

    @staticmethod
    def _own_config(node: Node) -> Optional[BaseNodeConfig]:
        """
        Returns the node's configuration when it matches the node type.
        """
        if node.config is None or node.config.type != node.type.value:
            return None
        return node.config

    def _effective_config(self, node: Node) -> BaseNodeConfig:
        """
        Returns the node's configuration, or its type's default when the
        configuration is missing or of another type.
        """
        config = self._own_config(node)
        if config is None:
            logger.debug("Node %s has no usable %s config, using defaults", node.id, node.type.value)
            return DEFAULT_CONFIGS[node.type]
        return config

    @staticmethod
    def _published_ports(node_type: NodeType, config: BaseNodeConfig) -> List[str]:
        """
        Returns the type's default port mappings with the host side of the
        first mapping replaced by the configured port.
        """
        ports = list(DEFAULT_PORTS[node_type])
        if ports and config.port:
            container = ports[0].split(":")[-1]
            ports[0] = f"{config.port}:{container}"
        return ports

    @staticmethod
    def _environment(node_type: NodeType, config: Optional[BaseNodeConfig]) -> Dict[str, str]:
        """
        Returns the type's default environment with the credentials of the
        node's own database config applied. Fallback configs never override it.
        """
        environment = dict(DEFAULT_ENVIRONMENT[node_type])
        if isinstance(config, DatabaseConfig):
            overrides = {
                "POSTGRES_USER": config.username,
                "POSTGRES_PASSWORD": config.password,
                "POSTGRES_DB": config.database_name,
            }
            environment.update({k: v for k, v in overrides.items() if v})
        return environment


def compile_topology(topology: Topology) -> DeploymentDescriptor:
    """
    Compiles a topology with the default compiler.
    Run the validator first; an invalid topology compiles to an unspecified
    but well-formed descriptor.

    :param topology: The topology to compile.
    :return: The deployment descriptor.
    """
    return DescriptorCompiler().compile(topology)

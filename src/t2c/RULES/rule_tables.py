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
Static rule and default tables, one row per node type.

The validator and compiler look everything type-specific up here instead of
branching on the node type. Every table must cover every NodeType exactly;
this is checked when the module is imported.
"""
import re
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from ..MODELS.topology import (
    AppServerConfig,
    BaseNodeConfig,
    CacheConfig,
    DatabaseConfig,
    LoadBalancerConfig,
    MessageQueueConfig,
    NodeType,
)

LB = NodeType.LOAD_BALANCER
APP = NodeType.APP_SERVER
DB = NodeType.DATABASE
CACHE = NodeType.CACHE
MQ = NodeType.MESSAGE_QUEUE

DEFAULT_NETWORK = "app_network"
DEFAULT_NETWORK_DRIVER = "bridge"
DEFAULT_RESTART_POLICY = "unless-stopped"

# Node ids usable as-is in service names and file names.
NODE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")
_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


class RuleTableError(Exception):
    """
    Raised when a rule table does not cover every node type.
    """


# Peer types a node should have at least one outbound edge toward.
# Tuples keep the order used when naming missing peers.
REQUIRED_PEER_TYPES: Mapping[NodeType, Tuple[NodeType, ...]] = MappingProxyType({
    LB: (APP,),
    APP: (DB, CACHE),
    DB: (),
    CACHE: (),
    MQ: (),
})

# Peer types a node must never have an outbound edge toward.
FORBIDDEN_PEER_TYPES: Mapping[NodeType, FrozenSet[NodeType]] = MappingProxyType({
    LB: frozenset({LB, DB, CACHE, MQ}),
    APP: frozenset({LB, APP}),
    DB: frozenset({LB, DB, CACHE, MQ}),
    CACHE: frozenset({LB, DB, CACHE, MQ}),
    MQ: frozenset({LB, DB, CACHE, MQ}),
})

DEFAULT_IMAGES: Mapping[NodeType, str] = MappingProxyType({
    LB: "nginx:alpine",
    APP: "node:18-alpine",
    DB: "postgres:15-alpine",
    CACHE: "redis:alpine",
    MQ: "rabbitmq:3-management-alpine",
})

# Published ports, "host:container".
DEFAULT_PORTS: Mapping[NodeType, Tuple[str, ...]] = MappingProxyType({
    LB: ("8080:80",),
    APP: (),
    DB: ("5432:5432",),
    CACHE: ("6379:6379",),
    MQ: ("5672:5672", "15672:15672"),
})

DEFAULT_ENVIRONMENT: Mapping[NodeType, Mapping[str, str]] = MappingProxyType({
    LB: MappingProxyType({}),
    APP: MappingProxyType({"NODE_ENV": "production"}),
    DB: MappingProxyType({
        "POSTGRES_USER": "postgres",
        "POSTGRES_PASSWORD": "postgres",
        "POSTGRES_DB": "app",
    }),
    CACHE: MappingProxyType({}),
    MQ: MappingProxyType({
        "RABBITMQ_DEFAULT_USER": "guest",
        "RABBITMQ_DEFAULT_PASS": "guest",
    }),
})

# Editor defaults, used by the compiler in place of a missing config.
DEFAULT_CONFIGS: Mapping[NodeType, BaseNodeConfig] = MappingProxyType({
    LB: LoadBalancerConfig(port=8080, health_check_path="/health"),
    APP: AppServerConfig(port=3000, health_check_path="/health", memory_limit="512M", cpu_limit="0.5"),
    DB: DatabaseConfig(username="admin", password="password", database_name="app", port=5432),
    CACHE: CacheConfig(max_memory="256M", port=6379),
    MQ: MessageQueueConfig(queue_names=["default"], port=5672),
})

NGINX_CONFIG_FILENAME = "nginx-{node_id}.conf"

# Volume mounted into each node's container, completed with the node id.
# None means the service is stateless.
VOLUME_TEMPLATES: Mapping[NodeType, Optional[str]] = MappingProxyType({
    LB: "./" + NGINX_CONFIG_FILENAME + ":/etc/nginx/nginx.conf:ro",
    APP: None,
    DB: "./postgres-data-{node_id}:/var/lib/postgresql/data",
    CACHE: "./redis-data-{node_id}:/data",
    MQ: "./rabbitmq-data-{node_id}:/var/lib/rabbitmq",
})

RULE_TABLES: Dict[str, Mapping] = {
    "REQUIRED_PEER_TYPES": REQUIRED_PEER_TYPES,
    "FORBIDDEN_PEER_TYPES": FORBIDDEN_PEER_TYPES,
    "DEFAULT_IMAGES": DEFAULT_IMAGES,
    "DEFAULT_PORTS": DEFAULT_PORTS,
    "DEFAULT_ENVIRONMENT": DEFAULT_ENVIRONMENT,
    "DEFAULT_CONFIGS": DEFAULT_CONFIGS,
    "VOLUME_TEMPLATES": VOLUME_TEMPLATES,
}


def safe_id(node_id: str) -> str:
    """
    Replaces every character outside [a-zA-Z0-9_.-] with an underscore, so the
    id can be embedded in a service name or a file name in the work dir.
    """
    return _UNSAFE_ID_CHARS.sub("_", node_id)


def service_name(node_type: NodeType, node_id: str) -> str:
    """
    Builds the compiled service name of a node.
    Characters unsafe for compose are replaced, see `safe_id`.

    :param node_type: The node's type.
    :param node_id: The node's id.
    :return: The service name, e.g. 'load-balancer-1'.
    """
    return f"{NodeType(node_type).value}-{safe_id(node_id)}"


def type_label(node_type: NodeType) -> str:
    """
    Human readable name of a node type, e.g. 'App server'.
    """
    return NodeType(node_type).value.replace("-", " ").capitalize()


def check_rule_tables(tables: Mapping[str, Mapping] = RULE_TABLES) -> None:
    """
    Verifies that every table has exactly one row per node type.

    :param tables: Tables keyed by name.
    :raises RuleTableError: If a table misses a node type or has extra keys.
    """
    expected = set(NodeType)
    for name, table in tables.items():
        keys = set(table.keys())
        missing = expected - keys
        extra = keys - expected
        if missing or extra:
            raise RuleTableError(
                f"{name} must cover every node type exactly "
                f"(missing: {sorted(t.value for t in missing)}, extra: {sorted(map(str, extra))})"
            )
    for node_type, config in DEFAULT_CONFIGS.items():
        if config.type != node_type.value:
            raise RuleTableError(f"DEFAULT_CONFIGS[{node_type.value}] has config type {config.type}")


check_rule_tables()

"""
Models for the service topology: typed nodes, their configuration, and the
directed edges between them.
"""
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    """
    Role of a node in the topology.
    """
    LOAD_BALANCER = "load-balancer"
    APP_SERVER = "app-server"
    DATABASE = "database"
    CACHE = "cache"
    MESSAGE_QUEUE = "message-queue"


class TopologyModel(BaseModel):
    """
    Base for topology models. Accepts the editor's camelCase keys as well as
    snake_case field names, and is immutable once built.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Position(TopologyModel):
    """
    Canvas coordinate of a node. Not used by validation or compilation.
    """
    x: float = 0.0
    y: float = 0.0


class BaseNodeConfig(TopologyModel):
    """
    Settings shared by every node type.
    """
    port: Optional[int] = None
    health_check_path: Optional[str] = None
    memory_limit: Optional[str] = None
    cpu_limit: Optional[Union[str, float]] = None


class LoadBalancerConfig(BaseNodeConfig):
    type: Literal["load-balancer"] = "load-balancer"


class AppServerConfig(BaseNodeConfig):
    type: Literal["app-server"] = "app-server"


class DatabaseConfig(BaseNodeConfig):
    type: Literal["database"] = "database"
    username: Optional[str] = None
    password: Optional[str] = None
    database_name: Optional[str] = None


class CacheConfig(BaseNodeConfig):
    type: Literal["cache"] = "cache"
    max_memory: Optional[str] = None


class MessageQueueConfig(BaseNodeConfig):
    type: Literal["message-queue"] = "message-queue"
    queue_names: List[str] = []


NodeConfig = Annotated[
    Union[LoadBalancerConfig, AppServerConfig, DatabaseConfig, CacheConfig, MessageQueueConfig],
    Field(discriminator="type"),
]


class Node(TopologyModel):
    """
    A single service instance in the topology.
    """
    id: str
    type: NodeType
    position: Position = Field(default_factory=Position)
    config: Optional[NodeConfig] = None
    data: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def _inherit_config_type(cls, data: Any) -> Any:
        """
        Fills in the config discriminant from the node type when the config
        does not name one.
        """
        if not isinstance(data, dict):
            return data
        config = data.get("config")
        node_type = data.get("type")
        if isinstance(config, dict) and "type" not in config and node_type is not None:
            if isinstance(node_type, NodeType):
                node_type = node_type.value
            data = {**data, "config": {**config, "type": node_type}}
        return data


class Edge(TopologyModel):
    """
    A directed connection from the `source` node to the `target` node.
    """
    id: str
    source: str
    target: str
    data: Optional[Dict[str, Any]] = None


class Topology(TopologyModel):
    """
    The full graph submitted for validation and compilation.
    Node and edge order is preserved for display only.
    """
    nodes: List[Node] = []
    edges: List[Edge] = []

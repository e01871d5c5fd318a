"""
Models for the compiled deployment descriptor.
Equivalent to a docker-compose.yml document.
"""
from typing import Dict, List, Optional, Union
from pydantic import Field

from .topology import TopologyModel

NODE_ID_LABEL = "t2c.node-id"
NODE_TYPE_LABEL = "t2c.node-type"


class ServiceSpec(TopologyModel):
    """
    Runtime parameters of one compiled service.

    `depends_on` lists the services compiled from the targets of this
    node's outbound edges, in edge order: a service starts after
    everything it points to.
    """
    image: str
    ports: List[str] = []  # "host:container"
    expose: List[str] = []
    environment: Dict[str, str] = {}
    depends_on: List[str] = []
    volumes: List[str] = []
    networks: List[str] = []
    command: Optional[List[str]] = None
    restart_policy: Optional[str] = None

    # Resources
    mem_limit: Optional[str] = None
    cpus: Optional[Union[str, float]] = None

    # Metadata
    labels: Dict[str, str] = {}

    @property
    def node_id(self) -> Optional[str]:
        return self.labels.get(NODE_ID_LABEL)

    @property
    def node_type(self) -> Optional[str]:
        return self.labels.get(NODE_TYPE_LABEL)


class DeploymentDescriptor(TopologyModel):
    """
    Complete compiled stack: services keyed by service name, and networks
    keyed by name with their driver.
    """
    services: Dict[str, ServiceSpec] = Field(default_factory=dict)
    networks: Dict[str, str] = Field(default_factory=dict)

    def services_of_type(self, node_type: str) -> Dict[str, ServiceSpec]:
        """
        Returns the services compiled from nodes of one type.

        :param node_type: A NodeType value, e.g. 'app-server'.
        :return: Matching services keyed by name.
        """
        return {name: svc for name, svc in self.services.items() if svc.node_type == node_type}

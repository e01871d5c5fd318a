"""
Models for the state of the current deployment.
"""
from enum import Enum
from typing import List, Optional

from .topology import TopologyModel


class DeploymentState(str, Enum):
    IDLE = "idle"
    DEPLOYING = "deploying"
    RUNNING = "running"
    ERROR = "error"


class ServiceStatus(TopologyModel):
    """
    Status of one running service as reported by the orchestrator.
    """
    name: str
    status: str
    ports: List[str] = []


class DeploymentStatus(TopologyModel):
    """
    Snapshot of the deployment status register.
    """
    state: DeploymentState = DeploymentState.IDLE
    message: Optional[str] = None
    services: List[ServiceStatus] = []

    @classmethod
    def idle(cls, message: Optional[str] = None) -> "DeploymentStatus":
        return cls(state=DeploymentState.IDLE, message=message)

    @classmethod
    def deploying(cls, message: str = "Starting deployment...") -> "DeploymentStatus":
        return cls(state=DeploymentState.DEPLOYING, message=message)

    @classmethod
    def running(cls, services: List[ServiceStatus], message: str = "Deployment successful") -> "DeploymentStatus":
        return cls(state=DeploymentState.RUNNING, message=message, services=services)

    @classmethod
    def error(cls, message: str) -> "DeploymentStatus":
        return cls(state=DeploymentState.ERROR, message=message)

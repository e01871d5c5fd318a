"""
Dependency resolution for compiled services to determine startup and shutdown order.
"""
from typing import Dict, List, Set
from ..MODELS.deployment_descriptor import DeploymentDescriptor


class CircularDependencyError(Exception):
    """
    Raised when services depend on each other in a cycle.
    """
    def __init__(self, service: str):
        self.service = service
        super().__init__(f"Circular dependency detected involving {service}")


class DependencyResolver:
    """
    Resolves the startup and shutdown order of services based on their dependencies.
    """
    def resolve_order(self, descriptor: DeploymentDescriptor) -> List[str]:
        """
        Determines the correct order to start services using topological sort.
        Ties keep the descriptor's service order.

        :param descriptor: The compiled deployment descriptor.
        :return: Service names in the order they should be started.
        :raises CircularDependencyError: If a circular dependency is detected.
        """
        services = descriptor.services
        dependencies: Dict[str, List[str]] = {name: svc.depends_on for name, svc in services.items()}

        ordered: List[str] = []
        visited: Set[str] = set()
        processing: Set[str] = set()

        for root in services:
            if root in visited:
                continue
            # Depth-first over an explicit stack of (service, remaining dependencies)
            processing.add(root)
            stack = [(root, iter(dependencies[root]))]
            while stack:
                name, pending = stack[-1]
                for dep in pending:
                    if dep not in services or dep in visited:  # Only depend on services defined in the descriptor
                        continue
                    if dep in processing:
                        raise CircularDependencyError(dep)
                    processing.add(dep)
                    stack.append((dep, iter(dependencies[dep])))
                    break
                else:
                    stack.pop()
                    processing.remove(name)
                    visited.add(name)
                    ordered.append(name)

        return ordered

    def shutdown_order(self, descriptor: DeploymentDescriptor) -> List[str]:
        """
        Returns service names in the order they should be stopped.
        """
        return list(reversed(self.resolve_order(descriptor)))

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
HTTP request layer exposing validation, compilation and deployment.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException

from .. import __version__
from ..COMPILERS.descriptor_compiler import compile_topology
from ..CONVERTERS.to_compose import ComposeConverter
from ..MANAGERS.deployment_manager import DeploymentError, DeploymentManager
from ..MODELS.topology import Topology
from ..MODELS.validation_result import ValidationResult
from ..UTILS.settings import Settings
from ..VALIDATORS.topology_validator import validate

logger = logging.getLogger(__name__)


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


class TopologyAPI:
    """REST API for topology validation, compilation and deployment."""

    def __init__(self, manager: DeploymentManager):
        """Initialize API with the deployment manager."""
        if manager is None:
            raise ValueError("manager is required")
        self._manager = manager

    @staticmethod
    def _require_valid(result: ValidationResult):
        if not result.is_valid:
            raise HTTPException(
                status_code=400,
                detail={
                    "message": "Invalid topology configuration",
                    "issues": _dump(result)["issues"],
                },
            )

    def create_app(self) -> FastAPI:
        """Create FastAPI application."""
        app = FastAPI(
            title="Topology API",
            description="Validates service topologies and compiles them into compose deployments",
            version=__version__,
        )

        @app.get("/health")
        def health() -> Dict[str, str]:
            return {"status": "ok"}

        @app.post("/topology:validate")
        def validate_topology(topology: Topology) -> Dict[str, Any]:
            """
            Validate a topology.

            Issues come in check order: node ids and configs, duplicate ids,
            dangling edges, forbidden connections, missing required
            connections, then one `dependency-cycle` warning for each edge that
            closes a cycle, such as a database pointing back at its app server.
            Only errors make `isValid` false.
            """
            return _dump(validate(topology))

        @app.post("/topology:compile")
        def compile_topology_route(topology: Topology) -> Dict[str, Any]:
            """
            Validate a topology and compile it when it has no errors.

            `validation` holds every issue, `dependency-cycle` warnings included;
            a cycle never blocks compilation.
            """
            result = validate(topology)
            self._require_valid(result)
            descriptor = compile_topology(topology)
            return {
                "message": "Topology configuration is valid",
                "descriptor": _dump(descriptor),
                "composeYml": ComposeConverter(descriptor).to_yaml(),
                "validation": _dump(result),
            }

        @app.post("/deployments")
        def deploy(topology: Topology) -> Dict[str, Any]:
            """Validate, compile and deploy a topology."""
            self._require_valid(validate(topology))
            try:
                status = self._manager.apply(compile_topology(topology))
            except DeploymentError as e:
                raise HTTPException(status_code=500, detail=str(e))
            return _dump(status)

        @app.delete("/deployments")
        def stop() -> Dict[str, Any]:
            """Stop the current deployment."""
            try:
                status = self._manager.stop()
            except DeploymentError as e:
                raise HTTPException(status_code=500, detail=str(e))
            return _dump(status)

        @app.get("/deployments/status")
        def status() -> Dict[str, Any]:
            """Get the current deployment status."""
            return _dump(self._manager.current_status())

        return app


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Builds the application with a deployment manager from settings.

    :param settings: Runtime settings, read from the environment when omitted.
    """
    settings = settings or Settings.from_env()
    return TopologyAPI(DeploymentManager.from_settings(settings)).create_app()

"""
Unit tests for the topology models.
"""
import pytest
from pydantic import ValidationError
from t2c.MODELS.topology import (
    AppServerConfig,
    DatabaseConfig,
    LoadBalancerConfig,
    MessageQueueConfig,
    Node,
    NodeType,
    Topology,
)


class TestNode:
    """Tests for Node parsing."""

    def test_config_inherits_node_type(self):
        """A config without a type takes the node's type."""
        node = Node.model_validate({"id": "1", "type": "load-balancer", "config": {"port": 8080}})
        assert isinstance(node.config, LoadBalancerConfig)
        assert node.config.port == 8080

    def test_camel_case_fields(self):
        """Editor keys are camelCase."""
        node = Node.model_validate({
            "id": "db",
            "type": "database",
            "config": {"username": "u", "password": "p", "databaseName": "app"},
        })
        assert isinstance(node.config, DatabaseConfig)
        assert node.config.database_name == "app"

    def test_snake_case_fields(self):
        node = Node(id="2", type=NodeType.APP_SERVER, config={"port": 3000, "memory_limit": "512M"})
        assert isinstance(node.config, AppServerConfig)
        assert node.config.memory_limit == "512M"

    def test_mismatched_config_type_still_parses(self):
        """A config naming another type is kept for the validator to report."""
        node = Node.model_validate({"id": "1", "type": "cache", "config": {"type": "database"}})
        assert node.type == NodeType.CACHE
        assert node.config.type == "database"

    def test_missing_config(self):
        node = Node.model_validate({"id": "1", "type": "cache"})
        assert node.config is None
        assert node.position.x == 0.0

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Node.model_validate({"id": "1", "type": "mainframe"})

    def test_cpu_limit_accepts_number(self):
        node = Node.model_validate({"id": "2", "type": "app-server", "config": {"cpuLimit": 0.5}})
        assert node.config.cpu_limit == 0.5

    def test_queue_names_default_empty(self):
        node = Node.model_validate({"id": "q", "type": "message-queue", "config": {}})
        assert isinstance(node.config, MessageQueueConfig)
        assert node.config.queue_names == []


class TestTopology:
    """Tests for Topology."""

    def test_empty(self):
        topology = Topology()
        assert topology.nodes == []
        assert topology.edges == []

    def test_frozen(self):
        topology = Topology()
        with pytest.raises(ValidationError):
            topology.nodes = []

    def test_dump_uses_editor_keys(self):
        topology = Topology.model_validate({
            "nodes": [{"id": "1", "type": "app-server", "position": {"x": 1, "y": 2},
                       "config": {"port": 3000, "healthCheckPath": "/health"}}],
            "edges": [],
        })
        data = topology.model_dump(mode="json", by_alias=True, exclude_none=True)
        assert data["nodes"][0]["config"]["healthCheckPath"] == "/health"
        assert data["nodes"][0]["config"]["type"] == "app-server"
        assert data["nodes"][0]["position"] == {"x": 1.0, "y": 2.0}

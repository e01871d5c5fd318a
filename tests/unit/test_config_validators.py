"""
Unit tests for per-type config validation.
"""
import pytest
from t2c.MODELS.topology import Node, NodeType
from t2c.MODELS.validation_result import IssueCode, IssueKind
from t2c.VALIDATORS.config_validators import CONFIG_VALIDATORS, validate_node_config, validate_node_id


def make_node(node_type, config):
    return Node.model_validate({"id": "n1", "type": node_type, "config": config})


def test_every_type_has_a_validator():
    assert set(CONFIG_VALIDATORS) == set(NodeType)


@pytest.mark.parametrize("node_type", ["load-balancer", "app-server"])
def test_port_required(node_type):
    issues = validate_node_config(make_node(node_type, {"memoryLimit": "1G"}))
    errors = [i for i in issues if i.kind == IssueKind.ERROR]
    assert len(errors) == 1
    assert errors[0].code == IssueCode.INVALID_CONFIG_FIELD
    assert "requires a port" in errors[0].message


def test_port_out_of_range():
    issues = validate_node_config(make_node("load-balancer", {"port": 70000}))
    assert len(issues) == 1
    assert issues[0].kind == IssueKind.ERROR
    assert "70000" in issues[0].message


def test_app_server_memory_limit_is_soft():
    issues = validate_node_config(make_node("app-server", {"port": 3000}))
    assert [(i.kind, i.message) for i in issues] == [
        (IssueKind.WARNING, "App server should have a memory limit"),
    ]


@pytest.mark.parametrize("missing", ["username", "password", "databaseName"])
def test_database_credentials_required(missing):
    config = {"username": "u", "password": "p", "databaseName": "d"}
    del config[missing]
    issues = validate_node_config(make_node("database", config))
    assert len(issues) == 1
    assert issues[0].kind == IssueKind.ERROR
    assert issues[0].message == "Database requires username, password, and database name"


def test_database_with_empty_password():
    issues = validate_node_config(make_node("database", {"username": "u", "password": "", "databaseName": "d"}))
    assert len(issues) == 1


def test_cache_max_memory_is_soft():
    issues = validate_node_config(make_node("cache", {}))
    assert [i.kind for i in issues] == [IssueKind.WARNING]


def test_message_queue_needs_a_queue_name():
    assert len(validate_node_config(make_node("message-queue", {"queueNames": []}))) == 1
    assert len(validate_node_config(make_node("message-queue", {"queueNames": [""]}))) == 1
    assert validate_node_config(make_node("message-queue", {"queueNames": ["jobs"]})) == []


def test_missing_config():
    node = Node.model_validate({"id": "n1", "type": "database"})
    issues = validate_node_config(node)
    assert issues[0].code == IssueCode.MISSING_CONFIG
    assert issues[0].node_id == "n1"


def test_config_of_another_type_is_an_error():
    node = Node.model_validate({"id": "n1", "type": "cache", "config": {"type": "load-balancer", "port": 80}})
    issues = validate_node_config(node)
    assert len(issues) == 1
    assert issues[0].kind == IssueKind.ERROR
    assert issues[0].code == IssueCode.INVALID_CONFIG_FIELD
    assert "does not match" in issues[0].message


def test_complete_configs_have_no_issues():
    assert validate_node_config(make_node("load-balancer", {"port": 8080})) == []
    assert validate_node_config(make_node("app-server", {"port": 3000, "memoryLimit": "512M"})) == []
    assert validate_node_config(make_node("cache", {"maxMemory": "256M"})) == []


@pytest.mark.parametrize("node_id", ["1", "lb", "app_server.2", "db-primary", "A9"])
def test_usable_node_ids(node_id):
    node = Node.model_validate({"id": node_id, "type": "cache", "config": {"maxMemory": "1G"}})
    assert validate_node_id(node) == []


@pytest.mark.parametrize("node_id", ["../escaped", "x/../../escaped", "a b", "", "-lead", ".hidden", "id\n"])
def test_unusable_node_ids(node_id):
    node = Node.model_validate({"id": node_id, "type": "cache", "config": {"maxMemory": "1G"}})
    issues = validate_node_id(node)
    assert len(issues) == 1
    assert issues[0].kind == IssueKind.ERROR
    assert issues[0].code == IssueCode.INVALID_CONFIG_FIELD
    assert issues[0].node_id == node_id

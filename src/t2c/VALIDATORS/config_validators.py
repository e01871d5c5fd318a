"""
Per-type validation of node configurations.

Each NodeType has one validation function; `validate_node_config` dispatches
on the node's declared type.
"""
from typing import Callable, Dict, List, Optional

from ..MODELS.topology import (
    AppServerConfig,
    BaseNodeConfig,
    CacheConfig,
    DatabaseConfig,
    LoadBalancerConfig,
    MessageQueueConfig,
    Node,
    NodeType,
)
from ..MODELS.validation_result import IssueCode, IssueKind, ValidationIssue
from ..RULES.rule_tables import NODE_ID_PATTERN, type_label

MIN_PORT = 1
MAX_PORT = 65535

ConfigValidator = Callable[[Node, BaseNodeConfig], List[ValidationIssue]]


def _error(node: Node, message: str, code: IssueCode = IssueCode.INVALID_CONFIG_FIELD) -> ValidationIssue:
    return ValidationIssue(kind=IssueKind.ERROR, code=code, message=message, node_id=node.id)


def _warning(node: Node, message: str) -> ValidationIssue:
    return ValidationIssue(kind=IssueKind.WARNING, code=IssueCode.INVALID_CONFIG_FIELD, message=message, node_id=node.id)


def _check_port(node: Node, port: Optional[int], required: bool) -> List[ValidationIssue]:
    if port is None:
        if required:
            return [_error(node, f"{type_label(node.type)} requires a port")]
        return []
    if not MIN_PORT <= port <= MAX_PORT:
        return [_error(node, f"{type_label(node.type)} port {port} is outside {MIN_PORT}-{MAX_PORT}")]
    return []


def validate_load_balancer(node: Node, config: LoadBalancerConfig) -> List[ValidationIssue]:
    return _check_port(node, config.port, required=True)


def validate_app_server(node: Node, config: AppServerConfig) -> List[ValidationIssue]:
    issues = _check_port(node, config.port, required=True)
    if not config.memory_limit:
        issues.append(_warning(node, "App server should have a memory limit"))
    return issues


def validate_database(node: Node, config: DatabaseConfig) -> List[ValidationIssue]:
    issues = _check_port(node, config.port, required=False)
    if not (config.username and config.password and config.database_name):
        issues.append(_error(node, "Database requires username, password, and database name"))
    return issues


def validate_cache(node: Node, config: CacheConfig) -> List[ValidationIssue]:
    issues = _check_port(node, config.port, required=False)
    if not config.max_memory:
        issues.append(_warning(node, "Cache should have a maximum memory limit"))
    return issues


def validate_message_queue(node: Node, config: MessageQueueConfig) -> List[ValidationIssue]:
    issues = _check_port(node, config.port, required=False)
    if not [name for name in config.queue_names if name]:
        issues.append(_warning(node, "Message queue should have at least one queue name"))
    return issues


CONFIG_VALIDATORS: Dict[NodeType, ConfigValidator] = {
    NodeType.LOAD_BALANCER: validate_load_balancer,
    NodeType.APP_SERVER: validate_app_server,
    NodeType.DATABASE: validate_database,
    NodeType.CACHE: validate_cache,
    NodeType.MESSAGE_QUEUE: validate_message_queue,
}


def validate_node_id(node: Node) -> List[ValidationIssue]:
    """
    Checks that a node id can name a compose service and the node's files
    in the work dir: a letter or digit followed by letters, digits, `_`, `.`
    or `-`.
    """
    if NODE_ID_PATTERN.fullmatch(node.id):
        return []
    return [_error(node, f"Invalid node ID {node.id!r}: use letters, digits, '_', '.' or '-'")]


def validate_node_config(node: Node) -> List[ValidationIssue]:
    """
    Checks that a node carries a configuration of its own type with every
    required field set.

    :param node: The node to check.
    :return: Issues found, empty when the configuration is complete.
    """
    if node.config is None:
        return [_error(node, f"Missing configuration for {node.type.value}", code=IssueCode.MISSING_CONFIG)]
    if node.config.type != node.type.value:
        return [_error(
            node,
            f"Configuration of type {node.config.type} does not match node type {node.type.value}",
        )]
    return CONFIG_VALIDATORS[node.type](node, node.config)

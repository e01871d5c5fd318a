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
Structural and semantic validation of a service topology.
"""
import logging
from collections import Counter
from typing import Dict, List, Set

from ..MODELS.topology import Edge, Node, NodeType, Topology
from ..MODELS.validation_result import IssueCode, IssueKind, ValidationIssue, ValidationResult
from ..RULES.rule_tables import FORBIDDEN_PEER_TYPES, REQUIRED_PEER_TYPES
from .config_validators import validate_node_config, validate_node_id

logger = logging.getLogger(__name__)


class TopologyValidator:
    """
    Checks a topology and reports every defect it finds in a single pass.

    Checks run in a fixed order and never short-circuit: node ids and configs,
    duplicate ids, dangling edges, forbidden connections, required
    connections, then dependency cycles. The validator never raises for a
    parsed topology; problems are returned as issues.
    """

    def validate(self, topology: Topology) -> ValidationResult:
        """
        Validates a topology.

        :param topology: The topology to check. It is not modified.
        :return: The issues found, in check order.
        """
        issues: List[ValidationIssue] = []

        for node in topology.nodes:
            issues.extend(validate_node_id(node))
            issues.extend(validate_node_config(node))

        issues.extend(self._check_duplicate_ids(topology))

        nodes = self._index_nodes(topology.nodes)
        connected: List[Edge] = []
        for edge in topology.edges:
            missing = [ref for ref in (edge.source, edge.target) if ref not in nodes]
            if missing:
                issues.append(ValidationIssue(
                    kind=IssueKind.ERROR,
                    code=IssueCode.DANGLING_EDGE_REFERENCE,
                    message=f"Edge {edge.id} references non-existent node(s): {', '.join(dict.fromkeys(missing))}",
                    edge_id=edge.id,
                ))
            else:
                connected.append(edge)

        for edge in connected:
            source_type = nodes[edge.source].type
            target_type = nodes[edge.target].type
            if target_type in FORBIDDEN_PEER_TYPES[source_type]:
                issues.append(ValidationIssue(
                    kind=IssueKind.ERROR,
                    code=IssueCode.FORBIDDEN_CONNECTION,
                    message=f"Invalid connection: {source_type.value} cannot connect to {target_type.value}",
                    edge_id=edge.id,
                ))

        issues.extend(self._check_required_connections(topology.nodes, nodes, connected))
        issues.extend(self._check_dependency_cycles(topology.nodes, connected))

        result = ValidationResult(issues=issues)
        logger.debug(
            "Validated topology with %d nodes and %d edges: %d errors, %d warnings",
            len(topology.nodes), len(topology.edges), len(result.errors), len(result.warnings),
        )
        return result

    @staticmethod
    def _index_nodes(nodes: List[Node]) -> Dict[str, Node]:
        """
        Maps node ids to nodes. The first node wins when an id is duplicated.
        """
        index: Dict[str, Node] = {}
        for node in nodes:
            index.setdefault(node.id, node)
        return index

    @staticmethod
    def _check_duplicate_ids(topology: Topology) -> List[ValidationIssue]:
        issues = []
        node_counts = Counter(node.id for node in topology.nodes)
        for node in topology.nodes:
            if node_counts[node.id] > 1:
                issues.append(ValidationIssue(
                    kind=IssueKind.ERROR,
                    code=IssueCode.DUPLICATE_ID,
                    message=f"Duplicate node ID: {node.id}",
                    node_id=node.id,
                ))
        edge_counts = Counter(edge.id for edge in topology.edges)
        for edge in topology.edges:
            if edge_counts[edge.id] > 1:
                issues.append(ValidationIssue(
                    kind=IssueKind.ERROR,
                    code=IssueCode.DUPLICATE_ID,
                    message=f"Duplicate edge ID: {edge.id}",
                    edge_id=edge.id,
                ))
        return issues

    @staticmethod
    def _check_required_connections(nodes: List[Node],
                                    index: Dict[str, Node],
                                    edges: List[Edge]) -> List[ValidationIssue]:
        """
        Emits one warning per node naming every required peer type it has no
        outbound edge toward.
        """
        outbound: Dict[str, Set[NodeType]] = {}
        for edge in edges:
            outbound.setdefault(edge.source, set()).add(index[edge.target].type)

        issues = []
        for node in nodes:
            required = REQUIRED_PEER_TYPES[node.type]
            if not required:
                continue
            reached = outbound.get(node.id, set())
            missing = [peer.value for peer in required if peer not in reached]
            if missing:
                issues.append(ValidationIssue(
                    kind=IssueKind.WARNING,
                    code=IssueCode.MISSING_REQUIRED_CONNECTION,
                    message=f"{node.type.value} should connect to: {', '.join(missing)}",
                    node_id=node.id,
                ))
        return issues

    @staticmethod
    def _check_dependency_cycles(nodes: List[Node], edges: List[Edge]) -> List[ValidationIssue]:
        """
        Warns about edges that close a directed cycle. Every node starts after
        its outbound targets, so a cycle has no valid startup order.
        """
        adjacency: Dict[str, List[Edge]] = {}
        for edge in edges:
            adjacency.setdefault(edge.source, []).append(edge)

        done: Set[str] = set()
        issues = []
        for root in dict.fromkeys(node.id for node in nodes):
            if root in done:
                continue
            on_path: Set[str] = {root}
            stack = [(root, iter(adjacency.get(root, [])))]
            while stack:
                current, pending = stack[-1]
                edge = next(pending, None)
                if edge is None:
                    stack.pop()
                    on_path.discard(current)
                    done.add(current)
                    continue
                if edge.target in on_path:
                    issues.append(ValidationIssue(
                        kind=IssueKind.WARNING,
                        code=IssueCode.DEPENDENCY_CYCLE,
                        message=f"Edge {edge.id} closes a dependency cycle through node {edge.target}",
                        node_id=current,
                        edge_id=edge.id,
                    ))
                elif edge.target not in done:
                    on_path.add(edge.target)
                    stack.append((edge.target, iter(adjacency.get(edge.target, []))))
        return issues


def validate(topology: Topology) -> ValidationResult:
    """
    Validates a topology with the default validator.

    :param topology: The topology to check.
    :return: The validation result; `is_valid` is False when any error was found.
    """
    return TopologyValidator().validate(topology)

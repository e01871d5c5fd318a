"""
Models for the outcome of topology validation.
"""
from enum import Enum
from typing import List, Optional
from pydantic import computed_field

from .topology import TopologyModel


class IssueKind(str, Enum):
    """
    Severity of a validation issue. Only errors block deployment.
    """
    ERROR = "error"
    WARNING = "warning"


class IssueCode(str, Enum):
    """
    Category of a validation issue.
    """
    MISSING_CONFIG = "missing-config"
    INVALID_CONFIG_FIELD = "invalid-config-field"
    DUPLICATE_ID = "duplicate-id"
    DANGLING_EDGE_REFERENCE = "dangling-edge-reference"
    FORBIDDEN_CONNECTION = "forbidden-connection"
    MISSING_REQUIRED_CONNECTION = "missing-required-connection"
    DEPENDENCY_CYCLE = "dependency-cycle"


class ValidationIssue(TopologyModel):
    """
    A single defect found in a topology.
    """
    kind: IssueKind
    code: IssueCode
    message: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None


class ValidationResult(TopologyModel):
    """
    All issues found in one validation pass, in the order they were found.
    """
    issues: List[ValidationIssue] = []

    @computed_field(alias="isValid")
    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.kind == IssueKind.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.kind == IssueKind.WARNING]

    def issues_with_code(self, code: IssueCode) -> List[ValidationIssue]:
        """
        Returns the issues of one category.

        :param code: The issue category.
        :return: Matching issues in report order.
        """
        return [i for i in self.issues if i.code == code]

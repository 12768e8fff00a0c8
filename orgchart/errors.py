"""Error taxonomy shared by every storage strategy"""
from dataclasses import dataclass, field
from typing import List, Optional

from orgchart.models.base import ModelValidationError


class PersistenceError(Exception):
    """Base class for errors raised by codecs before they reach the strategy boundary."""


class FormatError(PersistenceError):
    """Wrong or corrupt byte signature, missing section or table, truncated content."""


class StructuralViolation(ModelValidationError, PersistenceError):
    """
    One or more hard structural violations in a loaded graph.

    Attributes:
        errors (list): one message per violation.
    """


@dataclass
class UnresolvedReference:
    """A record dropped because one of its references could not be resolved."""

    kind: str
    record: str
    detail: str

    def __str__(self):
        return f"{self.kind} {self.record}: {self.detail}"


@dataclass
class StructuralWarning:
    """A soft structural issue; the record is kept as-is."""

    message: str

    def __str__(self):
        return self.message


@dataclass
class OperationReport:
    """Outcome of the latest save or load of a strategy."""

    operation: str = ''
    success: bool = False
    reason: Optional[str] = None
    references: List[UnresolvedReference] = field(default_factory=list)
    warnings: List[StructuralWarning] = field(default_factory=list)
    root_rule: Optional[str] = None
    fallback_reason: Optional[str] = None

    def fail(self, reason: str):
        self.success = False
        self.reason = reason

    def succeed(self, reason: Optional[str] = None):
        self.success = True
        self.reason = reason

    def add_reference(self, kind: str, record: str, detail: str) -> UnresolvedReference:
        issue = UnresolvedReference(kind=kind, record=record, detail=detail)
        self.references.append(issue)
        return issue

    def add_warning(self, message: str) -> StructuralWarning:
        warning = StructuralWarning(message)
        self.warnings.append(warning)
        return warning

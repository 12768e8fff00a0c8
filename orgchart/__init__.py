"""
orgchart: persistence of organizational charts in document, tabular,
relational and binary formats.
"""
from .config import StorageConfig, StorageFormat
from .errors import FormatError, OperationReport, PersistenceError, StructuralViolation
from .models import Employee, Role, RoleType, Unit, UnitKind, assign, unassign
from .persistence import storage_factory

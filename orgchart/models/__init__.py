"""
Models for orgchart
"""

from .base import ModelValidationError, get_uuid_hex
from .enums import RoleType, UnitKind
from .employee import Employee, assign, unassign
from .role import Role
from .unit import Unit

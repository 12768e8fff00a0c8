"""
Employee model
"""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List

from .base import get_uuid_hex

if TYPE_CHECKING:
    from .role import Role
    from .unit import Unit


@dataclass(eq=False, repr=False)
class Employee:
    """A person linked to roles across units."""

    name: str
    entity_id: str = field(default_factory=get_uuid_hex)
    roles: List['Role'] = field(default_factory=list)

    @property
    def units(self) -> List['Unit']:
        """Units the employee participates in, derived from the owning units of their roles."""
        units = []
        for role in self.roles:
            unit = role.unit
            if unit is not None and not any(existing is unit for existing in units):
                units.append(unit)
        return units

    def has_role(self, role: 'Role') -> bool:
        return any(existing is role for existing in self.roles)

    def __eq__(self, other):
        if not isinstance(other, Employee):
            return NotImplemented
        return self.entity_id == other.entity_id

    def __hash__(self):
        return hash(self.entity_id)

    def __repr__(self) -> str:
        return f"Employee(entity_id={self.entity_id!r}, name={self.name!r}, roles={len(self.roles)})"


def assign(employee: Employee, role: 'Role') -> bool:
    """
    Link an employee and a role on both sides.

    Returns False when the link already existed.
    """
    linked = False
    if not role.has_employee(employee):
        role.employees.append(employee)
        linked = True
    if not employee.has_role(role):
        employee.roles.append(role)
        linked = True
    return linked


def unassign(employee: Employee, role: 'Role') -> bool:
    """Remove the link between an employee and a role on both sides."""
    before = len(role.employees) + len(employee.roles)
    role.employees[:] = [existing for existing in role.employees if existing is not employee]
    employee.roles[:] = [existing for existing in employee.roles if existing is not role]
    return len(role.employees) + len(employee.roles) != before

"""Flat record forms used while encoding to the tabular and relational formats"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from orgchart.models import Unit

from . import identity


@dataclass
class UnitRecord:
    external_id: str
    kind: str
    name: str
    description: str
    parent_external_id: Optional[str] = None


@dataclass
class RoleRecord:
    unit_external_id: str
    name: str
    description: str

    @property
    def external_id(self) -> str:
        return f"{self.unit_external_id}/{self.name}"


@dataclass
class EmployeeRecord:
    external_id: str
    name: str


@dataclass
class AssignmentRecord:
    employee_external_id: str
    role_name: str
    unit_external_id: str

    @property
    def role_external_id(self) -> str:
        return f"{self.unit_external_id}/{self.role_name}"


@dataclass
class FlatGraph:
    units: List[UnitRecord] = field(default_factory=list)
    roles: List[RoleRecord] = field(default_factory=list)
    employees: List[EmployeeRecord] = field(default_factory=list)
    assignments: List[AssignmentRecord] = field(default_factory=list)


def flatten(root: Unit) -> FlatGraph:
    """
    Walk the tree once, pre-order, and emit the four record lists.

    Parents always precede their children; employees appear once, in order of
    first appearance.
    """
    flat = FlatGraph()
    seen_employees: Dict[str, bool] = {}
    ids: Dict[int, str] = {}

    for unit in root.walk():
        external_id = identity.unit_id(unit)
        ids[id(unit)] = external_id
        parent = unit.parent if unit is not root else None
        flat.units.append(UnitRecord(
            external_id=external_id,
            kind=unit.kind.value,
            name=unit.name,
            description=unit.description or "",
            parent_external_id=ids.get(id(parent)) if parent is not None else None,
        ))
        for role in unit.roles:
            flat.roles.append(RoleRecord(external_id, role.name, role.description or ""))
            for employee in role.employees:
                employee_id = identity.employee_id(employee)
                if employee_id not in seen_employees:
                    seen_employees[employee_id] = True
                    flat.employees.append(EmployeeRecord(employee_id, employee.name))
                flat.assignments.append(AssignmentRecord(employee_id, role.name, external_id))
    return flat

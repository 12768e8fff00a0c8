"""
Graph reconstruction shared by the decoders.

Entities live in an arena keyed by their external ids; the adjacency index
(unit -> roles, role -> employees, employee -> roles) is kept alongside and the
object references are only ever set through ``assign`` so both sides agree.
"""
import logging
from typing import Dict, List, Optional, Tuple

from orgchart.models import Employee, Role, Unit, UnitKind, assign, unassign
from orgchart.models.base import get_uuid_hex

from orgchart.errors import OperationReport

logger = logging.getLogger(__name__)

RoleKey = Tuple[str, str]


class GraphBuilder:
    """Rebuilds an organizational graph from flat records, reporting every link it cannot make."""

    def __init__(self, report: OperationReport):
        self.report = report
        self.units: Dict[str, Unit] = {}
        self.employees: Dict[str, Employee] = {}
        self.unit_roles: Dict[str, Dict[str, Role]] = {}
        self.role_employees: Dict[RoleKey, List[str]] = {}
        self.employee_roles: Dict[str, List[RoleKey]] = {}

    def _unresolved(self, kind: str, record: str, detail: str):
        issue = self.report.add_reference(kind, record, detail)
        logger.warning("Skipping %s", issue)

    def add_unit(self, unit_id: str, kind: UnitKind, name: str, description: str = "") -> Optional[Unit]:
        if unit_id in self.units:
            self._unresolved('unit', unit_id, "duplicate unit id, record ignored")
            return None
        unit = Unit(name=name, kind=kind, description=description or "")
        self.units[unit_id] = unit
        self.unit_roles[unit_id] = {}
        logger.debug("Created %s %r [%s]", kind.value, name, unit_id)
        return unit

    def attach(self, child_id: str, parent_id: str) -> bool:
        """Second pass link of a unit to its parent."""
        child = self.units.get(child_id)
        parent = self.units.get(parent_id)
        if child is None:
            self._unresolved('unit', child_id, f"unknown unit cannot be attached to {parent_id}")
            return False
        if parent is None:
            self._unresolved('unit', child_id, f"parent {parent_id} not found")
            return False
        if parent is child or self._is_descendant(parent, child):
            self._unresolved('unit', child_id, f"attaching to {parent_id} would create a cycle")
            return False
        parent.add_child(child)
        return True

    @staticmethod
    def _is_descendant(candidate: Unit, ancestor: Unit) -> bool:
        current = candidate.parent
        while current is not None:
            if current is ancestor:
                return True
            current = current.parent
        return False

    def add_role(self, unit_id: str, name: str, description: str = "") -> Optional[Role]:
        unit = self.units.get(unit_id)
        if unit is None:
            self._unresolved('role', f"{unit_id}/{name}", f"unit {unit_id} not found")
            return None
        roles = self.unit_roles[unit_id]
        if name in roles:
            self._unresolved('role', f"{unit_id}/{name}", "duplicate role in unit, record ignored")
            return None
        role = unit.add_role(Role(name=name, description=description or ""))
        roles[name] = role
        self.role_employees[(unit_id, name)] = []
        return role

    def add_employee(self, employee_id: Optional[str], name: str) -> Employee:
        """Return the employee stored under ``employee_id``, creating it on first sight."""
        if not employee_id:
            employee_id = get_uuid_hex()
        employee = self.employees.get(employee_id)
        if employee is None:
            employee = Employee(name=name, entity_id=employee_id)
            self.employees[employee_id] = employee
            self.employee_roles[employee_id] = []
        elif employee.name != name:
            logger.debug("Employee %s already known as %r, ignoring name %r", employee_id, employee.name, name)
        return employee

    def assign(self, employee_id: str, unit_id: str, role_name: str) -> bool:
        record = f"{employee_id}/{role_name}/{unit_id}"
        employee = self.employees.get(employee_id)
        if employee is None:
            self._unresolved('assignment', record, f"employee {employee_id} not found")
            return False
        if unit_id not in self.units:
            self._unresolved('assignment', record, f"unit {unit_id} not found")
            return False
        role = self.unit_roles[unit_id].get(role_name)
        if role is None:
            self._unresolved('assignment', record, f"role {role_name!r} not found in unit {unit_id}")
            return False
        if assign(employee, role):
            self.role_employees[(unit_id, role_name)].append(employee_id)
            self.employee_roles[employee_id].append((unit_id, role_name))
        return True

    def parentless(self) -> List[Unit]:
        return [unit for unit in self.units.values() if unit.parent is None]

    def finish(self, root: Unit) -> Unit:
        """Report what is not reachable from the chosen root."""
        reachable = {id(unit) for unit in root.walk()}
        for unit_id, unit in self.units.items():
            if id(unit) in reachable:
                continue
            if unit.parent is None:
                self.report.add_warning(f"Unit {unit.name!r} [{unit_id}] is not reachable from root "
                                        f"{root.name!r} and was dropped")
                logger.warning("Dropping unreachable unit %r [%s]", unit.name, unit_id)
            self._release_roles(unit_id)
        for employee_id, role_keys in self.employee_roles.items():
            if not role_keys:
                self.report.add_warning(f"Employee {self.employees[employee_id].name!r} [{employee_id}] "
                                        "holds no role and was dropped")
        return root

    def _release_roles(self, unit_id: str):
        for role_name, role in self.unit_roles[unit_id].items():
            for employee in list(role.employees):
                unassign(employee, role)
                self.employee_roles[employee.entity_id].remove((unit_id, role_name))
            self.role_employees[(unit_id, role_name)] = []

    def verify(self) -> List[str]:
        """Compare the adjacency index with the object references; returns mismatches."""
        problems = []
        for (unit_id, role_name), employee_ids in self.role_employees.items():
            role = self.unit_roles[unit_id][role_name]
            actual = [employee.entity_id for employee in role.employees]
            if actual != employee_ids:
                problems.append(f"role {unit_id}/{role_name} lists {actual}, index has {employee_ids}")
        for employee_id, role_keys in self.employee_roles.items():
            employee = self.employees[employee_id]
            if len(employee.roles) != len(role_keys):
                problems.append(f"employee {employee_id} holds {len(employee.roles)} roles, "
                                f"index has {len(role_keys)}")
        return problems

"""
Structural checks applied to every graph a codec produces.

Hard violations abort a load; warnings are logged and the record is kept.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from orgchart.models import RoleType, Unit, UnitKind
from orgchart.errors import StructuralViolation, StructuralWarning

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    violations: List[str] = field(default_factory=list)
    warnings: List[StructuralWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations


class StructuralValidator:
    """
    Validates hierarchy, uniqueness and role compatibility of a tree.

    With ``load_time`` set, an incompatible role attached directly to a root
    Board is only a warning, so legacy data can still be opened.
    """

    def __init__(self, load_time: bool = True):
        self.load_time = load_time

    def validate(self, root: Unit) -> ValidationResult:
        result = ValidationResult()
        self._check_unit(root, root, result)
        return result

    def check(self, root: Unit) -> ValidationResult:
        """Validate, log the warnings and raise StructuralViolation on any hard violation."""
        result = self.validate(root)
        for warning in result.warnings:
            logger.warning("Structural warning: %s", warning)
        if not result.ok:
            raise StructuralViolation(result.violations)
        return result

    def _check_unit(self, unit: Unit, root: Unit, result: ValidationResult):
        label = f"{unit.kind.value} '{unit.name}'"

        if unit.kind is UnitKind.GROUP and unit.children:
            result.violations.append(
                f"{label} has {len(unit.children)} sub-unit(s); groups cannot contain sub-units.")
        if unit.kind is UnitKind.BOARD and unit is not root:
            result.violations.append(
                f"{label} is not the root; boards can only exist at the root of the organization chart.")

        seen_names = set()
        for child in unit.children:
            if child.name in seen_names:
                result.violations.append(
                    f"Unit name '{child.name}' appears more than once under {label}; "
                    "names must be unique within the same parent.")
            seen_names.add(child.name)
            if child.parent is not unit:
                result.violations.append(f"{child.kind.value} '{child.name}' does not reference {label} as parent.")

        self._check_roles(unit, root, label, result)

        for child in unit.children:
            self._check_unit(child, root, result)

    def _check_roles(self, unit: Unit, root: Unit, label: str, result: ValidationResult):
        role_names = set()
        for role in unit.roles:
            if role.name in role_names:
                result.violations.append(f"Role '{role.name}' already exists in {label}.")
            role_names.add(role.name)
            if role.unit is not unit:
                result.violations.append(f"Role '{role.name}' of {label} does not reference its unit.")

            role_type = RoleType.find(role.name)
            if role_type is None:
                result.warnings.append(StructuralWarning(
                    f"Role '{role.name}' in {label} is not a recognized role; valid roles for "
                    f"{unit.kind.value}: {', '.join(RoleType.names_for(unit.kind))}"))
            elif not role_type.is_valid_for(unit.kind):
                message = f"Role '{role_type.role_name}' cannot be assigned to a {unit.kind.value} ({label})."
                if self.load_time and unit is root and unit.kind is UnitKind.BOARD:
                    result.warnings.append(StructuralWarning(message))
                else:
                    result.violations.append(message)

            for employee in role.employees:
                if not employee.has_role(role):
                    result.violations.append(
                        f"Employee '{employee.name}' [{employee.entity_id}] is listed by role "
                        f"'{role.name}' in {label} but does not hold it.")
            seen_employees = set()
            for employee in role.employees:
                if employee.entity_id in seen_employees:
                    result.violations.append(
                        f"Employee '{employee.name}' [{employee.entity_id}] is listed twice by role "
                        f"'{role.name}' in {label}.")
                seen_employees.add(employee.entity_id)
                for held in employee.roles:
                    if not held.has_employee(employee):
                        result.violations.append(
                            f"Employee '{employee.name}' [{employee.entity_id}] holds role "
                            f"'{held.name}' which does not list them.")

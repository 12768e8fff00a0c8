"""
Tests for the structural validator.
"""
import pytest

from orgchart.errors import StructuralViolation
from orgchart.models import Employee, Role, Unit, UnitKind
from orgchart.validation import StructuralValidator


@pytest.fixture
def validator():
    return StructuralValidator(load_time=True)


def test_acme_is_valid(validator, acme):
    result = validator.validate(acme)
    assert result.ok
    assert result.violations == []
    assert result.warnings == []


def test_group_with_children(validator, acme):
    core = acme.children[0].children[0]
    core.add_child(Unit(name="Nested"))
    result = validator.validate(acme)
    assert not result.ok
    assert any("Group 'Core'" in violation for violation in result.violations)


def test_board_below_root(validator, acme):
    acme.children[0].add_child(Unit(name="Advisory", kind=UnitKind.BOARD))
    result = validator.validate(acme)
    assert any("Board 'Advisory' is not the root" in violation for violation in result.violations)


def test_duplicate_sibling_names(validator, acme):
    acme.add_child(Unit(name="Engineering"))
    result = validator.validate(acme)
    assert any("Engineering" in violation and "more than once" in violation for violation in result.violations)


def test_same_name_under_different_parents_is_fine(validator, acme):
    acme.add_child(Unit(name="Finance")).add_child(Unit(name="Core", kind=UnitKind.GROUP))
    assert validator.validate(acme).ok


def test_duplicate_role_names(validator, acme):
    acme.children[0].add_role(Role(name="Direttore"))
    result = validator.validate(acme)
    assert any("Role 'Direttore' already exists" in violation for violation in result.violations)


def test_incompatible_role_in_department(validator, acme):
    acme.children[0].add_role(Role(name="Presidente"))
    result = validator.validate(acme)
    assert any("Presidente" in violation for violation in result.violations)


def test_incompatible_role_on_root_board(acme):
    acme.add_role(Role(name="Direttore"))

    relaxed = StructuralValidator(load_time=True).validate(acme)
    assert relaxed.ok
    assert any("Direttore" in str(warning) for warning in relaxed.warnings)

    strict = StructuralValidator(load_time=False).validate(acme)
    assert not strict.ok


def test_unknown_role_is_a_warning(validator, acme):
    acme.children[0].add_role(Role(name="Astronaut"))
    result = validator.validate(acme)
    assert result.ok
    assert "Direttore" in str(result.warnings[0])


def test_asymmetric_employee_link(validator, acme):
    role = acme.children[0].roles[0]
    role.employees.append(Employee(name="Ghost"))
    result = validator.validate(acme)
    assert any("Ghost" in violation for violation in result.violations)


def test_employee_listed_twice(validator, acme):
    role = acme.children[0].roles[0]
    role.employees.append(role.employees[0])
    result = validator.validate(acme)
    assert any("listed twice" in violation for violation in result.violations)


def test_check_raises(validator, acme):
    acme.children[0].children[0].add_child(Unit(name="Nested"))
    with pytest.raises(StructuralViolation) as info:
        validator.check(acme)
    assert info.value.errors
    assert "Group 'Core'" in str(info.value)


def test_check_returns_result(validator, acme):
    assert validator.check(acme).ok

"""
Tests for the arena based graph builder shared by the decoders.
"""
import pytest

from orgchart.errors import OperationReport
from orgchart.models import UnitKind
from orgchart.persistence import GraphBuilder


@pytest.fixture
def builder():
    builder = GraphBuilder(OperationReport())
    builder.add_unit("u1", UnitKind.BOARD, "Acme")
    builder.add_unit("u2", UnitKind.DEPARTMENT, "Engineering")
    builder.attach("u2", "u1")
    builder.add_role("u2", "Direttore")
    builder.add_employee("e1", "Alice")
    return builder


def test_links_are_bidirectional(builder):
    assert builder.assign("e1", "u2", "Direttore")
    role = builder.unit_roles["u2"]["Direttore"]
    alice = builder.employees["e1"]
    assert role.employees == [alice]
    assert alice.roles == [role]
    assert builder.role_employees[("u2", "Direttore")] == ["e1"]
    assert builder.employee_roles["e1"] == [("u2", "Direttore")]
    assert builder.verify() == []


def test_duplicate_assignment_is_ignored(builder):
    builder.assign("e1", "u2", "Direttore")
    builder.assign("e1", "u2", "Direttore")
    assert builder.role_employees[("u2", "Direttore")] == ["e1"]
    assert builder.report.references == []


@pytest.mark.parametrize("employee_id, unit_id, role_name", [
    ("ghost", "u2", "Direttore"),
    ("e1", "u9", "Direttore"),
    ("e1", "u2", "Analista"),
])
def test_unresolved_assignment_is_reported_once(builder, employee_id, unit_id, role_name):
    assert not builder.assign(employee_id, unit_id, role_name)
    assert len(builder.report.references) == 1
    assert builder.report.references[0].kind == "assignment"


def test_duplicate_unit_and_role(builder):
    assert builder.add_unit("u1", UnitKind.GROUP, "Again") is None
    assert builder.add_role("u2", "Direttore") is None
    assert [issue.kind for issue in builder.report.references] == ["unit", "role"]


def test_attach_refuses_unknown_and_cycles(builder):
    assert not builder.attach("u1", "u2")
    assert not builder.attach("u9", "u1")
    assert not builder.attach("u2", "u9")
    assert not builder.attach("u1", "u1")
    assert len(builder.report.references) == 4


def test_same_employee_id_is_one_object(builder):
    assert builder.add_employee("e1", "Alice B.") is builder.employees["e1"]
    assert builder.employees["e1"].name == "Alice"


def test_finish_drops_unreachable_units(builder):
    builder.add_unit("u3", UnitKind.DEPARTMENT, "Orphan")
    builder.add_role("u3", "Analista")
    builder.assign("e1", "u3", "Analista")

    root = builder.finish(builder.units["u1"])

    assert [unit.name for unit in root.walk()] == ["Acme", "Engineering"]
    alice = builder.employees["e1"]
    assert alice.roles == []
    assert any("Orphan" in str(warning) for warning in builder.report.warnings)
    assert any("Alice" in str(warning) for warning in builder.report.warnings)
    assert builder.verify() == []


def test_parentless(builder):
    builder.add_unit("u3", UnitKind.DEPARTMENT, "Orphan")
    assert [unit.name for unit in builder.parentless()] == ["Acme", "Orphan"]


def test_verify_detects_mismatch(builder):
    builder.assign("e1", "u2", "Direttore")
    builder.unit_roles["u2"]["Direttore"].employees.clear()
    assert builder.verify()

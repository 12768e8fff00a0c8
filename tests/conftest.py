"""
Shared fixtures: the Acme chart and a scratch directory.

Parents are held through weak references, so tests keep the root returned by
the fixture alive for as long as they use any unit below it.
"""
import pytest

from orgchart.config import StorageConfig
from orgchart.models import Employee, Role, Unit, UnitKind, assign


def build_acme():
    acme = Unit(name="Acme", kind=UnitKind.BOARD, description="Holding")
    acme.add_role(Role(name="Presidente", description="Chair of the board"))

    engineering = acme.add_child(Unit(name="Engineering", kind=UnitKind.DEPARTMENT, description="R&D"))
    direttore = engineering.add_role(Role(name="Direttore"))

    core = engineering.add_child(Unit(name="Core", kind=UnitKind.GROUP, description="Platform, \"core\" team"))
    membro = core.add_role(Role(name="Membro"))

    assign(Employee(name="Alice", entity_id="emp-alice"), direttore)
    assign(Employee(name="Bob", entity_id="emp-bob"), membro)
    return acme


@pytest.fixture
def acme():
    return build_acme()


@pytest.fixture
def config():
    return StorageConfig()


@pytest.fixture
def make_acme():
    return build_acme


@pytest.fixture
def describe():
    """Format-independent view of a chart used to compare round trips."""
    def unit_view(unit):
        return (
            unit.kind.value,
            unit.name,
            unit.description,
            [(role.name, role.description, [(e.entity_id, e.name) for e in role.employees]) for role in unit.roles],
            [unit_view(child) for child in unit.children],
        )
    return unit_view

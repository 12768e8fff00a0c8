"""
Tests for the flat multi-section format.
"""
import pickle

import pytest

from orgchart.config import StorageConfig
from orgchart.errors import FormatError, StructuralViolation
from orgchart.models import Role, Unit, UnitKind, assign, Employee
from orgchart.persistence import TabularStorage
from orgchart.persistence.root_inference import RULE_KEYWORD, RULE_SINGLE
from orgchart.persistence.tabular import SECTION_MARKER

UNITS_HEADER = "#SECTION: UNITS\nTYPE,ID,NAME,DESCRIPTION,PARENT_ID\n"
ROLES_HEADER = "#SECTION: ROLES\nUNIT_ID,NAME,DESCRIPTION\n"
EMPLOYEES_HEADER = "#SECTION: EMPLOYEES\nID,NAME\n"
ASSIGNMENTS_HEADER = "#SECTION: ASSIGNMENTS\nEMPLOYEE_ID,ROLE_NAME,UNIT_ID\n"


def tabular(units="", roles="", employees="", assignments=""):
    return UNITS_HEADER + units + ROLES_HEADER + roles + EMPLOYEES_HEADER + employees + ASSIGNMENTS_HEADER + assignments


ACME_ROWS = dict(
    units="Board,u1,Acme,,\nDepartment,u2,Engineering,,u1\nGroup,u3,Core,,u2\n",
    roles="u1,Presidente,\nu2,Direttore,\nu3,Membro,\n",
    employees="e1,Alice\ne2,Bob\n",
    assignments="e1,Direttore,u2\ne2,Membro,u3\n",
)


@pytest.fixture
def storage():
    return TabularStorage(StorageConfig())


class TestEncode:

    def test_sections_in_order(self, storage, acme):
        text = storage.encode(acme)
        markers = [line for line in text.splitlines() if line.startswith(SECTION_MARKER)]
        assert markers == ["#SECTION: UNITS", "#SECTION: ROLES", "#SECTION: EMPLOYEES", "#SECTION: ASSIGNMENTS"]
        assert "TYPE,ID,NAME,DESCRIPTION,PARENT_ID" in text.splitlines()

    def test_fields_are_quoted_when_needed(self, storage, acme):
        text = storage.encode(acme)
        assert '"Platform, ""core"" team"' in text

    def test_leading_hash_is_quoted(self, storage):
        root = Unit(name="Acme", kind=UnitKind.BOARD)
        root.add_role(Role(name="Presidente"))
        assign(Employee(name="#SECTION: ROLES", entity_id="#1"), root.roles[0])

        text = storage.encode(root)
        assert '"#1","#SECTION: ROLES"' in text
        decoded = storage.decode(text)
        assert decoded.roles[0].employees[0].name == "#SECTION: ROLES"

    def test_employees_deduplicated(self, storage, acme):
        alice = acme.children[0].roles[0].employees[0]
        assign(alice, acme.children[0].children[0].roles[0])
        text = storage.encode(acme)
        employees = text.split("#SECTION: EMPLOYEES\n")[1].split("#SECTION:")[0].splitlines()
        assert employees == ["ID,NAME", "emp-alice,Alice", "emp-bob,Bob"]


class TestRoundTrip:

    def test_acme(self, storage, acme, describe):
        root = storage.decode(storage.encode(acme))
        assert describe(root) == describe(acme)
        assert storage.last_report.root_rule == RULE_SINGLE
        alice = root.children[0].roles[0].employees[0]
        assert alice.units == [root.children[0]]

    def test_multiline_description(self, storage, describe):
        root = Unit(name="Acme", kind=UnitKind.BOARD, description="line one\n#SECTION: ROLES\nline three")
        root.add_role(Role(name="Presidente", description="a, b"))
        decoded = storage.decode(storage.encode(root))
        assert describe(decoded) == describe(root)

    def test_file(self, storage, acme, describe, tmp_path):
        path = str(tmp_path / "acme.csv")
        assert storage.save(acme, path)
        root = storage.load(path)
        assert describe(root) == describe(acme)

    def test_idempotent_resave(self, storage, acme, tmp_path):
        first, second = tmp_path / "first.csv", tmp_path / "second.csv"
        storage.save(acme, str(first))
        storage.save(acme, str(second))
        assert first.read_bytes() == second.read_bytes()


class TestReferences:

    def test_dangling_employee_in_assignment(self, storage):
        rows = dict(ACME_ROWS, assignments="e1,Direttore,u2\ne2,Membro,u3\nghost,Membro,u3\n")
        root = storage.decode(tabular(**rows))

        assert root.name == "Acme"
        assert len(storage.last_report.references) == 1
        issue = storage.last_report.references[0]
        assert issue.kind == "assignment"
        assert "ghost" in issue.record
        core = root.children[0].children[0]
        assert [employee.name for employee in core.roles[0].employees] == ["Bob"]

    def test_unknown_parent_leaves_unit_parentless(self, storage):
        rows = dict(ACME_ROWS, units="Board,u1,Acme,,\nDepartment,u2,Engineering,,u1\nGroup,u3,Core,,u9\n")
        root = storage.decode(tabular(**rows))

        assert root.name == "Acme"
        assert storage.last_report.root_rule == RULE_KEYWORD
        kinds = {issue.kind for issue in storage.last_report.references}
        assert kinds == {"unit"}
        assert any("Core" in str(warning) for warning in storage.last_report.warnings)
        assert [unit.name for unit in root.walk()] == ["Acme", "Engineering"]

    def test_unknown_role_and_unit(self, storage):
        rows = dict(ACME_ROWS, roles=ACME_ROWS["roles"] + "u9,Analista,\n",
                    assignments=ACME_ROWS["assignments"] + "e1,Analista,u2\n")
        storage.decode(tabular(**rows))
        assert [issue.kind for issue in storage.last_report.references] == ["role", "assignment"]

    def test_short_rows_are_skipped(self, storage):
        rows = dict(ACME_ROWS, employees="e1,Alice\ne2\ne2,Bob\n")
        root = storage.decode(tabular(**rows))
        assert [issue.kind for issue in storage.last_report.references] == ["row"]
        assert root.children[0].children[0].roles[0].employees[0].name == "Bob"

    def test_employee_without_role_is_reported(self, storage):
        rows = dict(ACME_ROWS, employees=ACME_ROWS["employees"] + "e3,Carla\n")
        storage.decode(tabular(**rows))
        assert any("Carla" in str(warning) for warning in storage.last_report.warnings)

    def test_cycle_is_refused(self, storage):
        units = "Board,u1,Acme,,\nDepartment,u2,Engineering,,u4\nDepartment,u4,Ops,,u2\n"
        root = storage.decode(tabular(units=units, roles="u1,Presidente,\n"))
        assert root.name == "Acme"
        assert root.children == []
        assert any("cycle" in issue.detail for issue in storage.last_report.references)


class TestStructure:

    def test_group_with_child_fails_load(self, storage, tmp_path):
        rows = dict(ACME_ROWS, units=ACME_ROWS["units"] + "Department,u4,Nested,,u3\n")
        path = tmp_path / "bad.csv"
        path.write_text(tabular(**rows), encoding="utf-8")

        assert storage.load(str(path)) is None
        assert "Group 'Core'" in storage.last_report.reason

    def test_group_with_child_raises_on_decode(self, storage):
        rows = dict(ACME_ROWS, units=ACME_ROWS["units"] + "Department,u4,Nested,,u3\n")
        with pytest.raises(StructuralViolation, match="Group 'Core'"):
            storage.decode(tabular(**rows))

    def test_incompatible_role_on_root_board_is_tolerated(self, storage):
        rows = dict(ACME_ROWS, roles=ACME_ROWS["roles"] + "u1,Direttore,\n")
        root = storage.decode(tabular(**rows))
        assert root.find_role("Direttore") is not None
        assert any("Direttore" in str(warning) for warning in storage.last_report.warnings)

    def test_validation_can_be_disabled(self):
        storage = TabularStorage(StorageConfig(VALIDATE_ON_LOAD=False))
        rows = dict(ACME_ROWS, units=ACME_ROWS["units"] + "Department,u4,Nested,,u3\n")
        root = storage.decode(tabular(**rows))
        assert root.children[0].children[0].children[0].name == "Nested"


class TestSniffing:

    def test_binary_payloads(self, storage, acme):
        with pytest.raises(FormatError, match="binary"):
            storage.decode(pickle.dumps(acme))
        with pytest.raises(FormatError, match="binary"):
            storage.decode(b"#SECTION: UNITS\x00\x01")
        with pytest.raises(FormatError, match="binary"):
            storage.decode(bytes(range(1, 9)) + tabular(**ACME_ROWS).encode())

    def test_no_marker(self, storage):
        with pytest.raises(FormatError, match="marker"):
            storage.decode("TYPE,ID,NAME,DESCRIPTION,PARENT_ID\nBoard,u1,Acme,,\n")

    def test_no_header(self, storage):
        with pytest.raises(FormatError, match="header"):
            storage.decode("#SECTION: UNITS\nBoard,u1,Acme,,\n")

    def test_missing_section(self, storage):
        text = UNITS_HEADER + ACME_ROWS["units"] + ROLES_HEADER + EMPLOYEES_HEADER
        with pytest.raises(FormatError, match="ASSIGNMENTS"):
            storage.decode(text)

    def test_section_without_its_header(self, storage):
        text = tabular(**ACME_ROWS).replace("ID,NAME\n", "", 1)
        with pytest.raises(FormatError, match="EMPLOYEES"):
            storage.decode(text)

    def test_empty(self, storage):
        with pytest.raises(FormatError):
            storage.decode(b"")

    def test_windows_line_endings_and_bom(self, storage):
        text = tabular(**ACME_ROWS).replace("\n", "\r\n")
        root = storage.decode(b"\xef\xbb\xbf" + text.encode("utf-8"))
        assert [unit.name for unit in root.walk()] == ["Acme", "Engineering", "Core"]


class TestQuotes:

    def test_quote_inside_unquoted_field_is_literal(self, storage):
        rows = dict(ACME_ROWS, units='Board,u1,Acme,5" screen,\nDepartment,u2,Engineering,,u1\nGroup,u3,Core,,u2\n')
        root = storage.decode(tabular(**rows))

        assert root.description == '5" screen'
        assert [unit.name for unit in root.walk()] == ["Acme", "Engineering", "Core"]
        assert storage.last_report.references == []

    def test_odd_quote_does_not_hide_later_sections(self, storage, tmp_path):
        rows = dict(ACME_ROWS, roles='u1,Presidente,the 12" chair\nu2,Direttore,\nu3,Membro,\n')
        path = tmp_path / "quotes.csv"
        path.write_text(tabular(**rows), encoding="utf-8")

        root = storage.load(str(path))
        assert root is not None, storage.last_report.reason
        assert root.roles[0].name == "Presidente"
        assert root.roles[0].description == 'the 12" chair'
        assert root.children[0].roles[0].employees[0].name == "Alice"

    def test_line_numbers_follow_multiline_records(self, storage):
        units = 'Board,u1,Acme,"two\nlines",\nDepartment,u2,Engineering,,u1\nGroup,u3,Core,,u2\n'
        rows = dict(ACME_ROWS, units=units, employees="e1,Alice\ne2\ne2,Bob\n")
        storage.decode(tabular(**rows))
        # The quoted description spans lines 3-4, so the short employee row is on line 15
        assert storage.last_report.references[0].record == "EMPLOYEES:15"

"""
Single-file relational store (SQLite).

Saves upsert into a copy of the destination and replace it only after the
copy passes the consistency and integrity checks. Loads open the file
read-only and fall back to a minimal default chart when the file is not a
usable database.
"""
import logging
import os
import shutil
import tempfile
from collections import defaultdict
from itertools import count
from typing import Dict, List, Optional

from orgchart.config import StorageFormat
from orgchart.data import SqliteAdapter, has_sqlite_header
from orgchart.data.sqlite import SQLITE_HEADER
from orgchart.errors import FormatError, OperationReport, PersistenceError
from orgchart.models import Role, Unit, UnitKind

from . import files
from .base import StorageStrategy
from .builder import GraphBuilder
from .identity import numeric_key
from .records import flatten

logger = logging.getLogger(__name__)

TABLES = ('units', 'roles', 'employees', 'employee_roles')

SCHEMA = [
    """CREATE TABLE IF NOT EXISTS units (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        kind TEXT NOT NULL,
        parent_id INTEGER NULL REFERENCES units(id) DEFERRABLE INITIALLY DEFERRED,
        position INTEGER NOT NULL DEFAULT 0
    )""",
    """CREATE TABLE IF NOT EXISTS roles (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        unit_id INTEGER NOT NULL REFERENCES units(id) DEFERRABLE INITIALLY DEFERRED,
        position INTEGER NOT NULL DEFAULT 0
    )""",
    """CREATE TABLE IF NOT EXISTS employees (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS employee_roles (
        employee_id TEXT NOT NULL REFERENCES employees(id) DEFERRABLE INITIALLY DEFERRED,
        role_id INTEGER NOT NULL REFERENCES roles(id) DEFERRABLE INITIALLY DEFERRED,
        position INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (employee_id, role_id)
    )""",
]

SCRATCH_NAME = "chart.db"

# Tables that keep an explicit order; older files may lack the column
ORDERED_TABLES = ('units', 'roles', 'employee_roles')
POSITION_COLUMN = 'position'

DEFAULT_ROOT_NAME = "Root Board"
DEFAULT_ROOT_ROLE = "Presidente"
DEFAULT_ROOT_ROLE_DESCRIPTION = "Board President"

EMPTY_ROOT_NAME = "Root Department"
EMPTY_ROOT_ROLE = "Manager"
EMPTY_ROOT_ROLE_DESCRIPTION = "Department Manager"


def default_structure() -> Unit:
    """The chart handed back when a database cannot be read."""
    return Unit(name=DEFAULT_ROOT_NAME, kind=UnitKind.BOARD,
                roles=[Role(name=DEFAULT_ROOT_ROLE, description=DEFAULT_ROOT_ROLE_DESCRIPTION)])


def empty_structure() -> Unit:
    """The chart handed back for a database whose tables hold no units."""
    return Unit(name=EMPTY_ROOT_NAME, kind=UnitKind.DEPARTMENT,
                roles=[Role(name=EMPTY_ROOT_ROLE, description=EMPTY_ROOT_ROLE_DESCRIPTION)])


class RelationalStorage(StorageStrategy):
    FORMAT = StorageFormat.RELATIONAL
    EXTENSIONS = ('.db', '.sqlite')

    def adapter(self, path: str, read_only: bool = False) -> SqliteAdapter:
        return SqliteAdapter(path, read_only=read_only)

    # Saving

    def _encode(self, root: Unit) -> bytes:
        """The bytes of a fresh database holding ``root``."""
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, SCRATCH_NAME)
            self.write_database(root, path)
            return files.read_bytes(path)

    def _save(self, root: Unit, destination: str):
        if not isinstance(root, Unit):
            raise TypeError(f"Expected a Unit to save, got {type(root).__name__}")
        with files.replacing(destination) as temp_path:
            if self._is_database(destination):
                shutil.copyfile(destination, temp_path)
            self.write_database(root, temp_path)

    @staticmethod
    def _is_database(path: str) -> bool:
        return os.path.isfile(path) and os.path.getsize(path) > 0 and has_sqlite_header(path)

    def write_database(self, root: Unit, path: str):
        """Upsert ``root`` into the database at ``path``, prune stale rows and check the result."""
        flat = flatten(root)
        # Order among siblings, roles of a unit and holders of a role
        positions = defaultdict(count)
        unit_rows = [{
            'id': numeric_key(unit.external_id),
            'name': unit.name,
            'description': unit.description,
            'kind': unit.kind,
            'parent_id': numeric_key(unit.parent_external_id) if unit.parent_external_id else None,
            'position': next(positions[('units', unit.parent_external_id)]),
        } for unit in flat.units]
        role_rows = [{
            'id': numeric_key(role.external_id),
            'name': role.name,
            'description': role.description,
            'unit_id': numeric_key(role.unit_external_id),
            'position': next(positions[('roles', role.unit_external_id)]),
        } for role in flat.roles]
        employee_rows = [{'id': employee.external_id, 'name': employee.name} for employee in flat.employees]
        link_rows = [{
            'employee_id': item.employee_external_id,
            'role_id': numeric_key(item.role_external_id),
            'position': next(positions[('assignments', item.role_external_id)]),
        } for item in flat.assignments]

        with self.adapter(path) as db:
            for statement in SCHEMA:
                db.execute_query(statement)
            for table in ORDERED_TABLES:
                if POSITION_COLUMN not in db.get_columns(table):
                    db.execute_query(f"ALTER TABLE {table} ADD COLUMN {POSITION_COLUMN} INTEGER NOT NULL DEFAULT 0")

            queries = []
            # Parents come first in pre-order, so units are written after their parent
            queries += [db.get_upsert_query('units', row, ['id']) for row in unit_rows]
            queries += [db.get_upsert_query('roles', row, ['id']) for row in role_rows]
            queries += [db.get_upsert_query('employees', row, ['id']) for row in employee_rows]
            queries += [db.get_upsert_query('employee_roles', row, ['employee_id', 'role_id']) for row in link_rows]
            queries += self._prune_queries(db, unit_rows, role_rows, employee_rows, link_rows)
            db.run_transaction(queries)

            expected = {
                'units': len(unit_rows),
                'roles': len(role_rows),
                'employees': len(employee_rows),
                'employee_roles': len(link_rows),
            }
            self._check(db, expected)
        logger.debug("Wrote %d units, %d roles, %d employees to %s",
                     len(unit_rows), len(role_rows), len(employee_rows), path)

    @staticmethod
    def _prune_queries(db: SqliteAdapter, unit_rows, role_rows, employee_rows, link_rows) -> list:
        """Delete rows left over from an earlier save that are no longer in the chart."""
        queries = []
        current_links = {(row['employee_id'], row['role_id']) for row in link_rows}
        for row in db.get_many('employee_roles', ['employee_id', 'role_id']):
            if (row['employee_id'], row['role_id']) not in current_links:
                queries.append(db.get_delete_query('employee_roles', row))

        for table, rows in (('roles', role_rows), ('employees', employee_rows), ('units', unit_rows)):
            current = {row['id'] for row in rows}
            for row in db.get_many(table, ['id']):
                if row['id'] not in current:
                    queries.append(db.get_delete_query(table, {'id': row['id']}))
        return queries

    @staticmethod
    def _check(db: SqliteAdapter, expected: Dict[str, int]):
        for table, count in expected.items():
            actual = db.get_count(table)
            if actual != count:
                raise PersistenceError(f"Consistency check failed: table {table} has {actual} rows, expected {count}")
        messages = db.integrity_check()
        if messages != ['ok']:
            raise PersistenceError(f"Integrity check failed: {'; '.join(messages)}")
        violations = db.foreign_key_check()
        if violations:
            raise PersistenceError(f"Foreign key check failed on {len(violations)} row(s)")

    # Loading

    def _decode(self, payload: bytes, report: OperationReport) -> Unit:
        if not payload.startswith(SQLITE_HEADER):
            raise FormatError("Not a SQLite database (bad header)")
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, SCRATCH_NAME)
            with open(path, "wb") as file:
                file.write(payload)
            return self._load(path, report)

    def _load(self, source: str, report: OperationReport) -> Unit:
        reason = self._unusable(source)
        if reason is None:
            with self.adapter(source, read_only=True) as db:
                missing = [table for table in TABLES if not db.table_exists(table)]
                if missing:
                    reason = f"missing tables: {', '.join(missing)}"
                elif db.get_count('units') == 0:
                    logger.warning("No units in %s, using the empty structure", source)
                    report.fallback_reason = "Default structure used: database holds no units"
                    return empty_structure()
                else:
                    return self._read(db, report)
        logger.warning("Cannot read %s as a chart database (%s), using the default structure", source, reason)
        report.fallback_reason = f"Default structure used: {reason}"
        return default_structure()

    def _unusable(self, source: str) -> Optional[str]:
        if not os.path.isfile(source):
            return "file not found"
        if os.path.getsize(source) == 0:
            return "empty file"
        if not has_sqlite_header(source):
            return "not a SQLite database (bad header)"
        return None

    @staticmethod
    def _ordered(db: SqliteAdapter, table: str) -> List[Dict]:
        """Rows by stored position, or in storage order when the table has no position column."""
        if POSITION_COLUMN in db.get_columns(table):
            return db.get_many(table, sort=[(POSITION_COLUMN, 'ASC')])
        logger.debug("Table %s has no %s column, keeping storage order", table, POSITION_COLUMN)
        return db.get_many(table)

    def _read(self, db: SqliteAdapter, report: OperationReport) -> Unit:
        units = self._ordered(db, 'units')
        roles = self._ordered(db, 'roles')
        employees = db.get_many('employees')
        links = self._ordered(db, 'employee_roles')

        builder = GraphBuilder(report)
        for row in units:
            kind = UnitKind.parse(row['kind'], UnitKind.DEPARTMENT)
            builder.add_unit(str(row['id']), kind, row['name'] or "", row['description'] or "")
        for row in units:
            if row['parent_id'] is not None:
                builder.attach(str(row['id']), str(row['parent_id']))

        role_keys: Dict[int, List[str]] = {}
        for row in roles:
            unit_id = str(row['unit_id'])
            if builder.add_role(unit_id, row['name'], row['description'] or "") is not None:
                role_keys[row['id']] = [unit_id, row['name']]

        for row in employees:
            builder.add_employee(row['id'], row['name'] or "")

        for row in links:
            key = role_keys.get(row['role_id'])
            if key is None:
                issue = report.add_reference(
                    'assignment', f"{row['employee_id']}/{row['role_id']}", f"role {row['role_id']} not found")
                logger.warning("Skipping %s", issue)
                continue
            unit_id, role_name = key
            builder.assign(row['employee_id'], unit_id, role_name)

        return self._complete(builder, report)


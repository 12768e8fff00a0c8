"""
Flat multi-section format.

Each section starts with a marker line and its header row::

    #SECTION: UNITS
    TYPE,ID,NAME,DESCRIPTION,PARENT_ID
    Board,boa_acme_1a2b3c4d_0,Acme,,
    ...

Quoted fields may span several physical lines; a marker is only recognized
at the start of a record.
"""
import csv
import io
import logging
from collections import OrderedDict
from typing import Dict, Iterator, List, Optional, Tuple

from orgchart.config import StorageFormat
from orgchart.errors import FormatError, OperationReport
from orgchart.models import Unit, UnitKind

from .base import StorageStrategy
from .binary import has_pickle_signature
from .builder import GraphBuilder
from .document import JAVA_SERIALIZATION_MAGIC, UTF8_BOM
from .records import flatten

logger = logging.getLogger(__name__)

SECTION_MARKER = '#SECTION:'

UNITS = 'UNITS'
ROLES = 'ROLES'
EMPLOYEES = 'EMPLOYEES'
ASSIGNMENTS = 'ASSIGNMENTS'

HEADERS = OrderedDict([
    (UNITS, ['TYPE', 'ID', 'NAME', 'DESCRIPTION', 'PARENT_ID']),
    (ROLES, ['UNIT_ID', 'NAME', 'DESCRIPTION']),
    (EMPLOYEES, ['ID', 'NAME']),
    (ASSIGNMENTS, ['EMPLOYEE_ID', 'ROLE_NAME', 'UNIT_ID']),
])

# Fields a row needs before it can be used; trailing DESCRIPTION/PARENT_ID may be absent
MIN_FIELDS = {UNITS: 3, ROLES: 2, EMPLOYEES: 2, ASSIGNMENTS: 3}
# Positions that must not be blank
KEY_FIELDS = {UNITS: (1,), ROLES: (0, 1), EMPLOYEES: (0,), ASSIGNMENTS: (0, 1, 2)}

SNIFF_LENGTH = 400
MAX_CONTROL_BYTES = 5
_TEXT_CONTROLS = frozenset(b'\t\n\r')

Row = Tuple[int, List[str]]


def looks_binary(payload: bytes) -> bool:
    head = payload[:SNIFF_LENGTH]
    if b'\x00' in head:
        return True
    controls = sum(1 for byte in head if byte < 0x20 and byte not in _TEXT_CONTROLS)
    return controls > MAX_CONTROL_BYTES


def _field(row: List[str], index: int, strip: bool = True) -> str:
    """Field at `index`, empty when the row is short; identifiers are stripped, display text is not."""
    if index >= len(row):
        return ""
    return row[index].strip() if strip else row[index]


def _is_header(row: List[str], section: str) -> bool:
    header = HEADERS[section]
    return [value.strip().upper() for value in row[:len(header)]] == header


class TabularStorage(StorageStrategy):
    FORMAT = StorageFormat.TABULAR
    EXTENSIONS = ('.csv',)

    def _encode(self, root: Unit) -> str:
        flat = flatten(root)
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator='\n')
        guarded = csv.writer(buffer, lineterminator='\n', quoting=csv.QUOTE_ALL)

        def section(name: str, rows: List[List[str]]):
            buffer.write(f"{SECTION_MARKER} {name}\n")
            writer.writerow(HEADERS[name])
            for row in rows:
                # A leading '#' is quoted so the row cannot read back as a marker
                (guarded if row and row[0].startswith('#') else writer).writerow(row)

        section(UNITS, [[unit.kind, unit.external_id, unit.name, unit.description, unit.parent_external_id or ""]
                        for unit in flat.units])
        section(ROLES, [[role.unit_external_id, role.name, role.description] for role in flat.roles])
        section(EMPLOYEES, [[employee.external_id, employee.name] for employee in flat.employees])
        section(ASSIGNMENTS, [[item.employee_external_id, item.role_name, item.unit_external_id]
                              for item in flat.assignments])
        return buffer.getvalue()

    def sniff(self, payload: bytes) -> str:
        if not payload or not payload.strip():
            raise FormatError("Empty tabular file")
        if has_pickle_signature(payload) or payload.startswith(JAVA_SERIALIZATION_MAGIC) or looks_binary(payload):
            raise FormatError("File appears to be binary, not a tabular chart")
        if payload.startswith(UTF8_BOM):
            payload = payload[len(UTF8_BOM):]
        try:
            text = payload.decode('utf-8')
        except UnicodeDecodeError as ex:
            raise FormatError(f"Tabular file is not valid UTF-8: {ex}") from ex
        text = text.replace('\r\n', '\n')

        lines = [line.strip() for line in text.split('\n')]
        if not any(line.startswith(SECTION_MARKER) for line in lines):
            raise FormatError(f"No '{SECTION_MARKER}' marker found")
        headers = {','.join(header) for header in HEADERS.values()}
        if not any(line.upper().replace(' ', '') in headers for line in lines):
            raise FormatError("No recognized section header found")
        return text

    @staticmethod
    def _records(text: str) -> Iterator[Tuple[int, str, Optional[List[str]], Optional[str]]]:
        """
        Yield (line number, first physical line, row, error) per record.

        Records are split by the csv reader, so quoted fields may span lines and
        a quote inside an unquoted field is an ordinary character.
        """
        consumed: List[str] = []

        def lines():
            for line in io.StringIO(text):
                consumed.append(line)
                yield line

        reader = csv.reader(lines())
        number = 1
        while True:
            try:
                row, error = next(reader), None
            except StopIteration:
                return
            except csv.Error as ex:
                row, error = None, str(ex)
            first = consumed[0] if consumed else ''
            yield number, first, row, error
            number = reader.line_num + 1
            consumed.clear()

    def split_sections(self, text: str, report: OperationReport) -> Dict[str, List[Row]]:
        sections: Dict[str, List[Row]] = {}
        current: Optional[List[Row]] = None
        current_name = None
        for number, first, row, error in self._records(text):
            if first.lstrip().startswith(SECTION_MARKER):
                current_name = first.strip()[len(SECTION_MARKER):].strip().upper()
                if current_name in sections:
                    raise FormatError(f"Section {current_name} appears more than once")
                if current_name not in HEADERS:
                    report.add_warning(f"Unknown section {current_name!r} at line {number} ignored")
                    logger.warning("Ignoring unknown section %r at line %d", current_name, number)
                    current = []
                else:
                    current = sections[current_name] = []
                continue
            if row is not None and len(row) <= 1 and not ''.join(row).strip():
                continue
            if current is None:
                report.add_warning(f"Content before the first section at line {number} ignored")
                continue
            if error is not None:
                report.add_reference('row', f"{current_name}:{number}", f"malformed row: {error}")
                logger.warning("Skipping malformed row at line %d: %s", number, error)
                continue
            current.append((number, row))

        for name in HEADERS:
            if name not in sections:
                raise FormatError(f"Required section {name} is missing")
            rows = sections[name]
            if not rows or not _is_header(rows[0][1], name):
                raise FormatError(f"Section {name} does not start with header {','.join(HEADERS[name])}")
            sections[name] = rows[1:]
        return sections

    def _usable(self, section: str, rows: List[Row], report: OperationReport) -> Iterator[Row]:
        needed = MIN_FIELDS[section]
        for number, row in rows:
            if len(row) < needed or not all(row[index].strip() for index in KEY_FIELDS[section]):
                issue = report.add_reference(
                    'row', f"{section}:{number}", f"expected at least {needed} fields with identifiers, got {row!r}")
                logger.warning("Skipping %s", issue)
                continue
            yield number, row

    def _decode(self, payload: bytes, report: OperationReport) -> Unit:
        sections = self.split_sections(self.sniff(payload), report)
        builder = GraphBuilder(report)

        parents = []
        for _, row in self._usable(UNITS, sections[UNITS], report):
            kind = UnitKind.parse(_field(row, 0), UnitKind.DEPARTMENT)
            unit_id, parent_id = _field(row, 1), _field(row, 4)
            if builder.add_unit(unit_id, kind, _field(row, 2, False), _field(row, 3, False)) is not None and parent_id:
                parents.append((unit_id, parent_id))
        for unit_id, parent_id in parents:
            builder.attach(unit_id, parent_id)

        for _, row in self._usable(ROLES, sections[ROLES], report):
            builder.add_role(_field(row, 0), _field(row, 1, False), _field(row, 2, False))

        for _, row in self._usable(EMPLOYEES, sections[EMPLOYEES], report):
            builder.add_employee(_field(row, 0), _field(row, 1, False))

        for _, row in self._usable(ASSIGNMENTS, sections[ASSIGNMENTS], report):
            builder.assign(_field(row, 0), _field(row, 2), _field(row, 1, False))

        logger.debug("Read %d units, %d employees", len(builder.units), len(builder.employees))
        return self._complete(builder, report)

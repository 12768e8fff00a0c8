"""
Nested document format: every unit contains its roles and sub-units.

::

    {"type": "Board", "name": "Acme", "description": "",
     "roles": [{"name": "Presidente", "description": "",
                "employees": [{"id": "...", "name": "..."}]}],
     "subUnits": [...]}
"""
import json
import logging
from itertools import count
from typing import Any, Dict, List, Optional

from orgchart.config import StorageFormat
from orgchart.errors import FormatError, OperationReport
from orgchart.models import Role, Unit, UnitKind

from .base import StorageStrategy
from .binary import BinaryStorage, has_pickle_signature
from .builder import GraphBuilder
from .reader import read_document

logger = logging.getLogger(__name__)

UTF8_BOM = b'\xef\xbb\xbf'
JAVA_SERIALIZATION_MAGIC = b'\xac\xed'
BOARD_NAME_HINTS = ('board', 'comitato')


def kind_from_document(value: Any, name: str) -> UnitKind:
    """Stored kind, else a guess from the unit name; Department when nothing matches."""
    kind = UnitKind.parse(value if isinstance(value, str) else None)
    if kind is not None:
        return kind
    lowered = (name or '').lower()
    if any(hint in lowered for hint in BOARD_NAME_HINTS):
        return UnitKind.BOARD
    return UnitKind.DEPARTMENT


def _text(node: Dict[str, Any], key: str) -> str:
    value = node.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _objects(node: Dict[str, Any], key: str, where: str) -> List[Dict[str, Any]]:
    value = node.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise FormatError(f"Field {key!r} of {where} is not an array")
    items = []
    for item in value:
        if not isinstance(item, dict):
            raise FormatError(f"Field {key!r} of {where} contains a non-object element")
        items.append(item)
    return items


class DocumentStorage(StorageStrategy):
    FORMAT = StorageFormat.DOCUMENT
    EXTENSIONS = ('.json',)

    def _encode(self, root: Unit) -> str:
        return json.dumps(self._unit_to_dict(root), indent=2, ensure_ascii=False) + '\n'

    def _unit_to_dict(self, unit: Unit) -> Dict[str, Any]:
        return {
            'type': unit.kind.value,
            'name': unit.name,
            'description': unit.description or "",
            'roles': [self._role_to_dict(role) for role in unit.roles],
            'subUnits': [self._unit_to_dict(child) for child in unit.children],
        }

    @staticmethod
    def _role_to_dict(role: Role) -> Dict[str, Any]:
        return {
            'name': role.name,
            'description': role.description or "",
            'employees': [{'id': employee.entity_id, 'name': employee.name} for employee in role.employees],
        }

    def sniff(self, payload: bytes) -> bytes:
        """Return the text bytes to parse; raise FormatError for anything that is not a document."""
        if not payload or not payload.strip():
            raise FormatError("Empty document")
        if payload.startswith(JAVA_SERIALIZATION_MAGIC):
            raise FormatError("Foreign binary serialization stream, not a document")
        if payload.startswith(UTF8_BOM):
            payload = payload[len(UTF8_BOM):]
        first = payload.lstrip()[:1]
        if first != b'{':
            raise FormatError(f"Not a document: expected '{{' but found {first!r}")
        return payload

    def _decode(self, payload: bytes, report: OperationReport) -> Unit:
        if has_pickle_signature(payload):
            return self._binary_fallback(payload, report)
        try:
            text = self.sniff(payload).decode('utf-8')
        except UnicodeDecodeError as ex:
            raise FormatError(f"Document is not valid UTF-8: {ex}") from ex

        tree = read_document(text)
        if not isinstance(tree, dict):
            raise FormatError("Document root is not an object")

        builder = GraphBuilder(report)
        keys = count(1)
        root = self._build_unit(tree, None, builder, keys, path='root')
        return self._complete(builder, report, root=root)

    def _binary_fallback(self, payload: bytes, report: OperationReport) -> Unit:
        if not self.config.BINARY_FALLBACK:
            raise FormatError("Binary chart found where a document was expected")
        logger.warning("Document payload carries a binary serialization header, trying the binary format")
        report.fallback_reason = "binary serialization header, decoded with the binary format"
        return BinaryStorage(self.config)._decode(payload, report)

    def _build_unit(self, node: Dict[str, Any], parent_key: Optional[str], builder: GraphBuilder,
                    keys, path: str) -> Unit:
        key = f"u{next(keys)}"
        name = _text(node, 'name')
        unit = builder.add_unit(key, kind_from_document(node.get('type'), name), name, _text(node, 'description'))
        if parent_key is not None:
            builder.attach(key, parent_key)

        for role_node in _objects(node, 'roles', path):
            role_name = _text(role_node, 'name')
            if builder.add_role(key, role_name, _text(role_node, 'description')) is None:
                continue
            for employee_node in _objects(role_node, 'employees', f"{path}/{role_name}"):
                employee = builder.add_employee(_text(employee_node, 'id') or None, _text(employee_node, 'name'))
                builder.assign(employee.entity_id, key, role_name)

        for index, child in enumerate(_objects(node, 'subUnits', path), start=1):
            self._build_unit(child, key, builder, keys, path=f"{path}/{index}")
        return unit

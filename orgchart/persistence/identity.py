"""
External identifiers used to resolve cross-references inside one artifact.

Identifiers are derived from the graph itself and are recomputed on every
call, so saving an unmodified graph twice yields the same ids.
"""
import hashlib
import re

from orgchart.models import Employee, Role, Unit

_WHITESPACE = re.compile(r'\s+')
_NON_WORD = re.compile(r'[^\w]')

HASH_LENGTH = 8
NUMERIC_KEY_LENGTH = 15


def normalize_name(name: str) -> str:
    """Lower-case, whitespace runs replaced with ``_``, other punctuation dropped."""
    collapsed = _WHITESPACE.sub('_', (name or '').strip().lower())
    return _NON_WORD.sub('', collapsed) or 'unnamed'


def _digest(text: str) -> str:
    return hashlib.sha1(text.encode('utf-8')).hexdigest()


def structural_path(unit: Unit) -> str:
    """Kind, name and sibling index of every unit from the root down to ``unit``."""
    segments = []
    current = unit
    while current is not None:
        segments.append(f"{current.kind.value}:{current.name}:{current.sibling_index()}")
        current = current.parent
    return '/'.join(reversed(segments))


def unit_id(unit: Unit) -> str:
    structural_hash = _digest(structural_path(unit))[:HASH_LENGTH]
    return f"{unit.kind.short_code}_{normalize_name(unit.name)}_{structural_hash}_{unit.sibling_index()}"


def role_id(role: Role, owner_id: str = None) -> str:
    """Roles are unique per unit only, so their id is the owner's id plus the role name."""
    if owner_id is None:
        unit = role.unit
        if unit is None:
            raise ValueError(f"Role {role.name!r} is not attached to a unit")
        owner_id = unit_id(unit)
    return f"{owner_id}/{role.name}"


def employee_id(employee: Employee) -> str:
    return employee.entity_id


def numeric_key(external_id: str) -> int:
    """Stable positive integer for an external id, small enough for a 64-bit column."""
    return int(_digest(external_id)[:NUMERIC_KEY_LENGTH], 16)

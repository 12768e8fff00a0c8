"""Unit kinds and the closed catalog of role names"""
from enum import Enum
from typing import List, Optional, Tuple


class UnitKind(str, Enum):
    """Kind of an organizational unit"""
    BOARD = 'Board'
    DEPARTMENT = 'Department'
    GROUP = 'Group'

    def __str__(self):
        return str(self.value)

    def __reduce_ex__(self, proto):
        # Pickled by value so unpickling only needs the class itself
        return self.__class__, (self.value,)

    @property
    def short_code(self) -> str:
        return self.value[:3].lower()

    @classmethod
    def parse(cls, text: Optional[str], default: Optional['UnitKind'] = None) -> Optional['UnitKind']:
        """
        Resolve a stored kind name.

        Exact names match case-insensitively; otherwise a kind whose name is
        contained in the text wins (``"GROUP_UNIT"`` is a Group). Anything else
        yields ``default``.
        """
        if not text:
            return default
        normalized = text.strip().upper()
        for kind in cls:
            if kind.name == normalized:
                return kind
        for kind in cls:
            if kind.name in normalized:
                return kind
        return default


class RoleType(Enum):
    """Role names a unit may define, tagged with the unit kinds they are valid for."""
    DIRETTORE = ("Direttore", (UnitKind.DEPARTMENT,))
    COORDINATORE = ("Coordinatore", (UnitKind.GROUP,))
    CONSIGLIERE = ("Consigliere", (UnitKind.DEPARTMENT, UnitKind.GROUP))

    PRESIDENTE = ("Presidente", (UnitKind.BOARD,))
    VICE_PRESIDENTE = ("Vicepresidente", (UnitKind.BOARD,))
    SEGRETARIO = ("Segretario", (UnitKind.BOARD,))

    RESPONSABILE_AMMINISTRATIVO = ("Responsabile Amministrativo", (UnitKind.DEPARTMENT,))
    REFERENTE_TECNICO = ("Referente Tecnico", (UnitKind.DEPARTMENT,))
    RESPONSABILE_COMMERCIALE = ("Responsabile Commerciale", (UnitKind.DEPARTMENT,))
    RESPONSABILE_RISORSE_UMANE = ("Responsabile Risorse Umane", (UnitKind.DEPARTMENT,))
    RESPONSABILE_LOGISTICA = ("Responsabile Logistica", (UnitKind.DEPARTMENT,))
    ANALISTA = ("Analista", (UnitKind.DEPARTMENT,))
    CONSULENTE = ("Consulente", (UnitKind.DEPARTMENT,))

    TEAM_LEADER = ("Team Leader", (UnitKind.GROUP,))
    TUTOR = ("Tutor", (UnitKind.GROUP,))
    COLLABORATORE = ("Collaboratore", (UnitKind.GROUP,))
    MEMBRO = ("Membro", (UnitKind.GROUP,))
    STAGISTA = ("Stagista", (UnitKind.GROUP,))

    DPO = ("Data Protection Officer", (UnitKind.DEPARTMENT,))
    CFO = ("Chief Financial Officer", (UnitKind.DEPARTMENT,))
    CTO = ("Chief Technology Officer", (UnitKind.DEPARTMENT,))
    HR_SPECIALIST = ("HR Specialist", (UnitKind.DEPARTMENT,))
    QA_MANAGER = ("Quality Assurance Manager", (UnitKind.DEPARTMENT,))

    def __init__(self, role_name: str, valid_kinds: Tuple[UnitKind, ...]):
        self.role_name = role_name
        self.valid_kinds = valid_kinds

    def __str__(self):
        return self.role_name

    def is_valid_for(self, kind: UnitKind) -> bool:
        return kind in self.valid_kinds

    @classmethod
    def find(cls, name: Optional[str]) -> Optional['RoleType']:
        """Case-insensitive lookup by role name; None when the name is not in the catalog."""
        if not name:
            return None
        wanted = name.strip().lower()
        for role_type in cls:
            if role_type.role_name.lower() == wanted:
                return role_type
        return None

    @classmethod
    def names_for(cls, kind: UnitKind) -> List[str]:
        return [role_type.role_name for role_type in cls if role_type.is_valid_for(kind)]

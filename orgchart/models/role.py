"""
Role model
"""
import weakref
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from .enums import RoleType

if TYPE_CHECKING:
    from .employee import Employee
    from .unit import Unit


@dataclass(eq=False, repr=False)
class Role:
    """A named position scoped to one unit."""

    name: str
    description: str = ""
    employees: List['Employee'] = field(default_factory=list)
    _unit: Optional[weakref.ref] = field(default=None, init=False)

    @property
    def unit(self) -> Optional['Unit']:
        """The owning unit, or None when the role is detached."""
        return self._unit() if self._unit is not None else None

    def _set_unit(self, unit: Optional['Unit']):
        self._unit = weakref.ref(unit) if unit is not None else None

    @property
    def role_type(self) -> Optional[RoleType]:
        return RoleType.find(self.name)

    def has_employee(self, employee: 'Employee') -> bool:
        return any(existing is employee for existing in self.employees)

    def __getstate__(self):
        state = self.__dict__.copy()
        state.pop('_unit', None)
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        # The owning unit restores the reference once it is rebuilt.
        self.__dict__.setdefault('_unit', None)

    def __repr__(self) -> str:
        unit = self.unit
        return (f"Role(name={self.name!r}, unit={unit.name if unit else None!r}, "
                f"employees={len(self.employees)})")

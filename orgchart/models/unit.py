"""
Unit model
"""
import weakref
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from .employee import Employee
from .enums import UnitKind
from .role import Role


@dataclass(eq=False, repr=False)
class Unit:
    """
    A node of the organizational tree.

    Children and roles are owned by the unit; the parent is held through a
    weak reference and is only set by ``add_child``.
    """

    name: str
    kind: UnitKind = UnitKind.DEPARTMENT
    description: str = ""
    children: List['Unit'] = field(default_factory=list)
    roles: List[Role] = field(default_factory=list)
    _parent: Optional[weakref.ref] = field(default=None, init=False)

    def __post_init__(self):
        if not isinstance(self.kind, UnitKind):
            raise ValueError(f"Unknown unit kind: {self.kind!r}")
        for child in self.children:
            child._parent = weakref.ref(self)
        for role in self.roles:
            role._set_unit(self)

    def __setattr__(self, name, value):
        if name == 'kind' and 'kind' in self.__dict__:
            raise AttributeError("Unit kind cannot be changed after creation.")
        object.__setattr__(self, name, value)

    @property
    def parent(self) -> Optional['Unit']:
        return self._parent() if self._parent is not None else None

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def add_child(self, child: 'Unit') -> 'Unit':
        current = child.parent
        if current is not None:
            current.remove_child(child)
        self.children.append(child)
        child._parent = weakref.ref(self)
        return child

    def remove_child(self, child: 'Unit') -> bool:
        for index, existing in enumerate(self.children):
            if existing is child:
                del self.children[index]
                child._parent = None
                return True
        return False

    def add_role(self, role: Role) -> Role:
        self.roles.append(role)
        role._set_unit(self)
        return role

    def remove_role(self, role: Role) -> bool:
        for index, existing in enumerate(self.roles):
            if existing is role:
                del self.roles[index]
                role._set_unit(None)
                return True
        return False

    def find_role(self, name: str) -> Optional[Role]:
        for role in self.roles:
            if role.name == name:
                return role
        return None

    def sibling_index(self) -> int:
        """1-based position among the parent's children, 0 for a root."""
        parent = self.parent
        if parent is None:
            return 0
        for index, sibling in enumerate(parent.children, start=1):
            if sibling is self:
                return index
        return 0

    def walk(self) -> Iterator['Unit']:
        """Pre-order traversal of this unit and its descendants."""
        yield self
        for child in self.children:
            yield from child.walk()

    def descendant_count(self) -> int:
        return sum(1 for _ in self.walk()) - 1

    def employees(self) -> List[Employee]:
        """Distinct employees holding a role in this unit, in role order."""
        seen = {}
        for role in self.roles:
            for employee in role.employees:
                seen.setdefault(employee.entity_id, employee)
        return list(seen.values())

    def __getstate__(self):
        state = self.__dict__.copy()
        state.pop('_parent', None)
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        self.__dict__.setdefault('_parent', None)
        for child in self.children:
            child.__dict__['_parent'] = weakref.ref(self)
        for role in self.roles:
            role.__dict__['_unit'] = weakref.ref(self)

    def __repr__(self) -> str:
        return (f"Unit(kind={self.kind.value!r}, name={self.name!r}, "
                f"roles={len(self.roles)}, children={len(self.children)})")

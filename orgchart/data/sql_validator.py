"""
Identifier checks for SQL built from strings.

Values always go through ``?`` placeholders; table names, column names and
sort directions cannot be parameterized and are validated here instead.
"""

import re
from typing import List, Tuple

_IDENTIFIER = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')


class SqlValidator:
    """Static checks raising ValueError with a descriptive message."""

    # Keywords that may not appear as a whole identifier or as one of its
    # underscore-separated segments
    DANGEROUS_KEYWORDS = {
        'SELECT', 'INSERT', 'UPDATE', 'DELETE', 'DROP', 'CREATE', 'ALTER',
        'UNION', 'WHERE', 'FROM', 'JOIN', 'EXEC', 'EXECUTE', 'ATTACH',
        'DETACH', 'PRAGMA', 'VACUUM',
    }
    MAX_LENGTH = 64

    @staticmethod
    def validate_identifier(name: str, context: str = "identifier") -> str:
        """
        Validate a table or column name and return it unchanged.

        Examples:
            >>> SqlValidator.validate_identifier("units", "table name")
            'units'
            >>> SqlValidator.validate_identifier("parent-id", "column")
            ValueError: Invalid column: 'parent-id'. ...
        """
        if not isinstance(name, str):
            raise ValueError(f"Invalid {context}: must be a string, got {type(name).__name__}")
        if not name:
            raise ValueError(f"Invalid {context}: cannot be empty")
        if not _IDENTIFIER.match(name):
            raise ValueError(
                f"Invalid {context}: '{name}'. Must start with letter or underscore and contain only "
                f"alphanumeric characters and underscores.")
        if len(name) > SqlValidator.MAX_LENGTH:
            raise ValueError(f"Invalid {context}: '{name}' exceeds {SqlValidator.MAX_LENGTH} character limit")

        segments = name.upper().split('_')
        for keyword in SqlValidator.DANGEROUS_KEYWORDS:
            if keyword in segments:
                raise ValueError(f"Invalid {context}: '{name}' contains SQL keyword '{keyword}'")
        return name

    @staticmethod
    def validate_sort_direction(direction: str) -> str:
        if not isinstance(direction, str) or direction.upper() not in ('ASC', 'DESC'):
            raise ValueError(f"Invalid sort direction: {direction!r}. Must be 'ASC' or 'DESC'")
        return direction.upper()

    @staticmethod
    def validate_sort_list(sort: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
        return [(SqlValidator.validate_identifier(column, "sort column"),
                 SqlValidator.validate_sort_direction(direction))
                for column, direction in sort]

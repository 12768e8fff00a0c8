from .base import DbAdapter
from .sqlite import SqliteAdapter, has_sqlite_header
from .sql_validator import SqlValidator

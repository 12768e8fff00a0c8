import logging
import sqlite3
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from orgchart.data.base import DbAdapter
from orgchart.data.sql_validator import SqlValidator

logger = logging.getLogger(__name__)

# Every SQLite database file starts with these 16 bytes
SQLITE_HEADER = b'SQLite format 3\x00'

_ROW_RETURNING = ('SELECT', 'PRAGMA', 'WITH')


def has_sqlite_header(path: str) -> bool:
    with open(path, 'rb') as file:
        return file.read(len(SQLITE_HEADER)) == SQLITE_HEADER


class SqliteAdapter(DbAdapter):
    """SQLite adapter over a single database file."""

    def __init__(self, database: str, read_only: bool = False,
                 connection_resolver: Optional[Callable] = None, connection_closer: Optional[Callable] = None):
        self._database = database
        self._read_only = read_only
        self._connection = None
        self._cursor = None

        if connection_resolver is None:
            self._connection_resolver = sqlite3.connect
        else:
            self._connection_resolver = connection_resolver

        self._connection_closer = connection_closer

    def __enter__(self):
        """Context manager entry point for creating DB connection."""
        self._connection = self.connect
        self._cursor = self._connection.cursor()
        self._call_cursor('execute', 'PRAGMA foreign_keys = ON')
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        """Context manager exit point for closing DB connection."""
        self.close_connection()

    def close_connection(self):
        """Closes the connection and cursor."""
        if self._connection_closer:
            self._connection_closer(self)
        else:
            if self._cursor is not None:
                self._cursor.close()
                self._cursor = None

            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @property
    def database_uri(self) -> str:
        uri = Path(self._database).absolute().as_uri()
        return f"{uri}?mode=ro" if self._read_only else uri

    @property
    def connect(self):
        # Transactions are opened explicitly by run_transaction
        return self._connection_resolver(self.database_uri, uri=True, isolation_level=None)

    def _call_cursor(self, function_name, *args, **kwargs):
        """Calls a function specified by function_name argument in the SQLite cursor."""
        if not self._cursor:
            raise sqlite3.ProgrammingError("No cursor is available.")
        return getattr(self._cursor, function_name)(*args, **kwargs)

    def execute_query(self, sql, _vars=None):
        """Executes a query; statements that return rows give a list of dicts."""
        if _vars is None:
            _vars = ()

        self._call_cursor('execute', sql, _vars)

        if sql.strip().upper().startswith(_ROW_RETURNING):
            column_names = [desc[0] for desc in self._cursor.description or ()]
            return [dict(zip(column_names, row)) for row in self._call_cursor('fetchall')]
        return None

    def run_transaction(self, queries_list):
        """Executes a list of queries in a single transaction, rolling back on any failure."""
        self._call_cursor('execute', 'BEGIN')
        try:
            for query in queries_list:
                if type(query) is tuple:
                    query, values = query
                else:
                    values = ()
                self._cursor.execute(query, values)
            self._call_cursor('execute', 'COMMIT')
        except sqlite3.Error:
            logger.error("Transaction failed, rolling back")
            self._call_cursor('execute', 'ROLLBACK')
            raise

    def get_many(self, table: str, columns: List[str] = None,
                 sort: List[Tuple[str, str]] = None) -> List[Dict[str, Any]]:
        SqlValidator.validate_identifier(table, "table name")
        fields = '*'
        if columns:
            fields = ', '.join(SqlValidator.validate_identifier(column, "column name") for column in columns)
        query = f"SELECT {fields} FROM {table}"
        if sort:
            sort = SqlValidator.validate_sort_list(sort)
            query += f" ORDER BY {', '.join(f'{column} {direction}' for column, direction in sort)}"
        return self.execute_query(query)

    def get_upsert_query(self, table: str, data: Dict[str, Any], key_columns: List[str]):
        """Returns an INSERT ... ON CONFLICT DO UPDATE query and its values."""
        SqlValidator.validate_identifier(table, "table name")
        columns = [SqlValidator.validate_identifier(column, "column name") for column in data]
        keys = [SqlValidator.validate_identifier(column, "key column") for column in key_columns]
        placeholders = ', '.join(['?'] * len(columns))
        updates = [f"{column} = excluded.{column}" for column in columns if column not in keys]

        query = (f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
                 f"ON CONFLICT ({', '.join(keys)}) ")
        query += f"DO UPDATE SET {', '.join(updates)}" if updates else "DO NOTHING"
        return query, tuple(data.values())

    def get_delete_query(self, table: str, conditions: Dict[str, Any]):
        SqlValidator.validate_identifier(table, "table name")
        clauses = [f"{SqlValidator.validate_identifier(column, 'column name')} = ?" for column in conditions]
        return f"DELETE FROM {table} WHERE {' AND '.join(clauses)}", tuple(conditions.values())

    def get_count(self, table: str) -> int:
        SqlValidator.validate_identifier(table, "table name")
        rows = self.execute_query(f"SELECT COUNT(*) AS count FROM {table}")
        return rows[0]['count']

    def table_exists(self, table: str) -> bool:
        rows = self.execute_query(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (table,))
        return bool(rows)

    def get_columns(self, table: str) -> List[str]:
        """Column names of ``table`` in declaration order, empty when it does not exist."""
        table = SqlValidator.validate_identifier(table, "table name")
        return [row['name'] for row in self.execute_query(f'PRAGMA table_info({table})')]

    def integrity_check(self) -> List[str]:
        """Messages of ``PRAGMA integrity_check``; ``['ok']`` for a sound file."""
        return [list(row.values())[0] for row in self.execute_query('PRAGMA integrity_check')]

    def foreign_key_check(self) -> List[Dict[str, Any]]:
        return self.execute_query('PRAGMA foreign_key_check')

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence, Union


class DbAdapter(ABC):
    """Abstract base class for database adapters."""

    @abstractmethod
    def __enter__(self) -> 'DbAdapter':
        """Context manager entry point for preparing DB connection."""
        pass

    @abstractmethod
    def __exit__(self, exc_type, exc_value, traceback):
        """Context manager exit point for closing DB connection."""
        pass

    @abstractmethod
    def run_transaction(self, operations_list: List[Any]):
        """Execute a list of queries / operations as a transaction."""
        pass

    @abstractmethod
    def execute_query(self, sql: str, _vars: Union[Sequence[Any], Dict[str, Any]] = None) -> Any:
        """Executes a raw SQL query against the DB."""
        pass

    @abstractmethod
    def get_many(self, table: str, columns: List[str] = None) -> List[Dict[str, Any]]:
        """Fetches every record of the specified table."""
        pass

    @abstractmethod
    def get_upsert_query(self, table: str, data: Dict[str, Any], key_columns: List[str]):
        """Returns query to insert a record or update it when its key already exists."""
        pass

    @abstractmethod
    def get_count(self, table: str) -> int:
        """Returns the number of rows in the table."""
        pass

    @abstractmethod
    def table_exists(self, table: str) -> bool:
        pass

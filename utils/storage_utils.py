from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Sequence
import sqlite3
import os


class StorageError(RuntimeError):
    """Raised when the local database cannot complete an operation."""


@dataclass
class TableSchema:
    name: str
    columns: List[Dict[str, str]]  # List of {name: str, type: str} dicts
    indexes: Optional[List[str]] = None


class StorageProvider(ABC):
    @abstractmethod
    def init_tables(self, schemas: List[TableSchema]) -> None:
        pass

    @abstractmethod
    def execute(self, query: str, params: Sequence[Any] = ()) -> List[tuple]:
        pass

    @abstractmethod
    def execute_write(self, query: str, params: Sequence[Any] = ()) -> int:
        """
        Execute an INSERT/UPDATE/DELETE and return the number of affected rows.
        """
        pass


class SQLiteProvider(StorageProvider):
    def __init__(self, db_path: str, logger: Optional[Any] = None):
        self.db_path = os.path.expanduser(db_path)
        self.logger = logger
        parent = os.path.dirname(self.db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _fail(self, what: str, exc: sqlite3.Error) -> StorageError:
        if self.logger:
            self.logger.error(f'storage.{what}', exc)
        return StorageError(f"Database error {what}: {exc}")

    def init_tables(self, schemas: List[TableSchema]) -> None:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                for schema in schemas:
                    cols = [f"{col['name']} {col['type']}" for col in schema.columns]
                    query = f"CREATE TABLE IF NOT EXISTS {schema.name} ({', '.join(cols)})"
                    cursor.execute(query)

                    if schema.indexes:
                        for idx in schema.indexes:
                            cursor.execute(f"CREATE INDEX IF NOT EXISTS idx_{schema.name}_{idx} ON {schema.name}({idx})")
        except sqlite3.Error as e:
            raise self._fail('creating tables', e) from e

    def execute(self, query: str, params: Sequence[Any] = ()) -> List[tuple]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(query, tuple(params))
                return cursor.fetchall()
        except sqlite3.Error as e:
            raise self._fail('executing query', e) from e

    def execute_write(self, query: str, params: Sequence[Any] = ()) -> int:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(query, tuple(params))
                conn.commit()
                return cursor.rowcount
        except sqlite3.Error as e:
            raise self._fail('executing write', e) from e

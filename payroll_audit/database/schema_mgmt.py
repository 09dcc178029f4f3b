"""
Schema management operations for the payroll database.

Installs and removes the payroll schema (tables, constraints, indexes,
the salary audit trigger, stored functions and views) and provides
catalog introspection.
"""

from typing import Any, Dict, List, Sequence

import psycopg
from psycopg import sql

from payroll_audit.database import ddl
from payroll_audit.database.connection import DatabaseConnectionPool
from payroll_audit.observability.logger import get_logger, log_operation

logger = get_logger(__name__)


class SchemaManager:
    """
    Manages the payroll schema.

    Handles:
    - Installing and dropping all schema objects
    - Emptying tables between runs
    - Listing and describing tables
    - Creating, dropping and listing indexes
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize schema manager.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def create_schema(self) -> None:
        """
        Install every schema object in a single transaction.

        Safe to run repeatedly: tables and indexes use IF NOT EXISTS,
        functions and views are replaced and triggers are recreated.

        Raises:
            psycopg.DatabaseError: If any statement fails (nothing is installed)
        """
        with log_operation("Installing payroll schema", logger=logger, database=self.pool.database):
            with self.pool.transaction() as conn:
                for statement in ddl.CREATE_STATEMENTS:
                    conn.execute(statement)

    def drop_schema(self) -> None:
        """
        Drop every schema object, including all data and audit history.
        """
        with log_operation("Dropping payroll schema", logger=logger, database=self.pool.database):
            with self.pool.transaction() as conn:
                for statement in ddl.DROP_STATEMENTS:
                    conn.execute(statement)

    def truncate_tables(self) -> None:
        """
        Remove all rows from every payroll table and reset identities.

        TRUNCATE does not fire row triggers, so this also empties the
        otherwise append-only salary_audit table.
        """
        query = sql.SQL("TRUNCATE TABLE {} RESTART IDENTITY CASCADE").format(
            sql.SQL(", ").join(sql.Identifier(t) for t in ddl.TABLES)
        )
        self.pool.execute_command(query)
        logger.info(f"Truncated tables: {', '.join(ddl.TABLES)}")

    def trigger_installed(self, trigger_name: str = ddl.AUDIT_TRIGGER_NAME) -> bool:
        """
        Check whether a trigger exists.

        Args:
            trigger_name: Trigger to look for (defaults to the salary audit trigger)

        Returns:
            True when the trigger is installed
        """
        query = """
            SELECT EXISTS (
                SELECT 1 FROM pg_trigger
                WHERE tgname = %s AND NOT tgisinternal
            ) AS installed
        """
        result = self.pool.execute_query(query, (trigger_name,))
        return bool(result[0]["installed"])

    def list_tables(self) -> List[str]:
        """
        List base tables in the current schema.

        Returns:
            Table names in alphabetical order
        """
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = current_schema() AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        return [row["table_name"] for row in self.pool.execute_query(query)]

    def describe_table(self, table_name: str) -> List[Dict[str, Any]]:
        """
        Describe the columns of a table.

        Args:
            table_name: Table to describe

        Returns:
            One dictionary per column with column_name, data_type,
            is_nullable, column_default and character_maximum_length

        Raises:
            ValueError: If the table does not exist
        """
        query = """
            SELECT column_name, data_type, is_nullable,
                   column_default, character_maximum_length
            FROM information_schema.columns
            WHERE table_schema = current_schema() AND table_name = %s
            ORDER BY ordinal_position
        """
        columns = self.pool.execute_query(query, (table_name,))
        if not columns:
            raise ValueError(f"Table not found: {table_name}")
        return columns

    def list_indexes(self, table_name: str) -> List[Dict[str, Any]]:
        """
        List indexes defined on a table.

        Args:
            table_name: Table to inspect

        Returns:
            Dictionaries with indexname and indexdef, ordered by name
        """
        query = """
            SELECT indexname, indexdef
            FROM pg_indexes
            WHERE schemaname = current_schema() AND tablename = %s
            ORDER BY indexname
        """
        return self.pool.execute_query(query, (table_name,))

    def create_index(
        self,
        index_name: str,
        table_name: str,
        columns: Sequence[str],
        unique: bool = False
    ) -> None:
        """
        Create a B-tree index if it does not already exist.

        Args:
            index_name: Name of the new index
            table_name: Table to index
            columns: Column names, in index order
            unique: Create a UNIQUE index

        Raises:
            ValueError: If no columns are given
            psycopg.DatabaseError: If the table or a column does not exist
        """
        if not columns:
            raise ValueError("At least one column is required to create an index")

        query = sql.SQL("CREATE {unique}INDEX IF NOT EXISTS {index} ON {table} ({columns})").format(
            unique=sql.SQL("UNIQUE " if unique else ""),
            index=sql.Identifier(index_name),
            table=sql.Identifier(table_name),
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        )

        try:
            self.pool.execute_command(query)
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to create index {index_name} on {table_name}: {e}")
            raise

        logger.info(f"Created index {index_name} on {table_name} ({', '.join(columns)})")

    def drop_index(self, index_name: str) -> None:
        """
        Drop an index if it exists.

        Args:
            index_name: Index to drop
        """
        query = sql.SQL("DROP INDEX IF EXISTS {}").format(sql.Identifier(index_name))
        self.pool.execute_command(query)
        logger.info(f"Dropped index {index_name}")

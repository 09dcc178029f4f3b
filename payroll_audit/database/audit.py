"""
Salary audit log queries.

The salary_audit table is written only by the before_salary_update
trigger and rejects UPDATE and DELETE, so this module is read-only.
"""

from datetime import datetime
from typing import Any

import psycopg

from payroll_audit.core.models import SalaryAuditEntry
from payroll_audit.database.connection import DatabaseConnectionPool
from payroll_audit.observability.logger import get_logger

logger = get_logger(__name__)

_AUDIT_COLUMNS = "audit_id, employee_id, old_salary, new_salary, change_date"


def query_salary_audit_by_employee(
    pool: DatabaseConnectionPool,
    employee_id: int,
    limit: int = 100
) -> list[SalaryAuditEntry]:
    """
    Query the salary history of one employee.

    Args:
        pool: Database connection pool
        employee_id: Employee to query
        limit: Maximum number of entries to return

    Returns:
        Audit entries, newest first

    Raises:
        psycopg.DatabaseError: If query fails
    """
    query_sql = f"""
        SELECT {_AUDIT_COLUMNS}
        FROM salary_audit
        WHERE employee_id = %(employee_id)s
        ORDER BY change_date DESC, audit_id DESC
        LIMIT %(limit)s;
    """

    try:
        results = pool.execute_query(query_sql, {"employee_id": employee_id, "limit": limit})
    except psycopg.DatabaseError as e:
        logger.error(f"Failed to query salary audit for employee {employee_id}: {e}")
        raise

    logger.debug(f"Found {len(results)} salary audit entries for employee_id={employee_id}")
    return [SalaryAuditEntry(**row) for row in results]


def query_recent_salary_audit(
    pool: DatabaseConnectionPool,
    since: datetime | None = None,
    limit: int = 100,
    employee_id: int | None = None
) -> list[SalaryAuditEntry]:
    """
    Query the most recent salary changes.

    Args:
        pool: Database connection pool
        since: Only return changes at or after this time (optional)
        limit: Maximum number of entries to return
        employee_id: Only return changes for this employee (optional)

    Returns:
        Audit entries, newest first

    Raises:
        psycopg.DatabaseError: If query fails
    """
    conditions = []
    params: dict[str, Any] = {"limit": limit}

    if since is not None:
        conditions.append("change_date >= %(since)s")
        params["since"] = since
    if employee_id is not None:
        conditions.append("employee_id = %(employee_id)s")
        params["employee_id"] = employee_id

    query_sql = f"SELECT {_AUDIT_COLUMNS} FROM salary_audit"
    if conditions:
        query_sql += " WHERE " + " AND ".join(conditions)
    query_sql += " ORDER BY change_date DESC, audit_id DESC LIMIT %(limit)s"

    try:
        results = pool.execute_query(query_sql, params)
    except psycopg.DatabaseError as e:
        logger.error(f"Failed to query recent salary audit: {e}")
        raise

    return [SalaryAuditEntry(**row) for row in results]


def count_salary_audit_entries(
    pool: DatabaseConnectionPool,
    employee_id: int | None = None
) -> int:
    """
    Count audit entries, optionally for a single employee.

    Args:
        pool: Database connection pool
        employee_id: Employee to count for (optional)

    Returns:
        Number of audit entries
    """
    query_sql = "SELECT COUNT(*) AS entries FROM salary_audit"
    params: tuple = ()

    if employee_id is not None:
        query_sql += " WHERE employee_id = %s"
        params = (employee_id,)

    return pool.execute_query(query_sql, params)[0]["entries"]


def get_salary_audit_summary(
    pool: DatabaseConnectionPool,
    employee_id: int | None = None
) -> dict[str, Any]:
    """
    Get summary statistics from the salary audit log.

    Args:
        pool: Database connection pool
        employee_id: Optional employee to filter

    Returns:
        Dictionary with summary statistics:
        - total_changes
        - employees_affected
        - raises / cuts (number of increases and decreases)
        - total_raised / total_cut (summed absolute amounts)
        - first_change / last_change (timestamps, None when empty)

    Raises:
        psycopg.DatabaseError: If query fails
    """
    query_sql = """
        SELECT
            COUNT(*) AS total_changes,
            COUNT(DISTINCT employee_id) AS employees_affected,
            COUNT(*) FILTER (WHERE new_salary > old_salary) AS raises,
            COUNT(*) FILTER (WHERE new_salary < old_salary) AS cuts,
            COALESCE(SUM(new_salary - old_salary) FILTER (WHERE new_salary > old_salary), 0)
                AS total_raised,
            COALESCE(SUM(old_salary - new_salary) FILTER (WHERE new_salary < old_salary), 0)
                AS total_cut,
            MIN(change_date) AS first_change,
            MAX(change_date) AS last_change
        FROM salary_audit
    """
    params: dict[str, Any] = {}

    if employee_id is not None:
        query_sql += " WHERE employee_id = %(employee_id)s"
        params["employee_id"] = employee_id

    try:
        summary = pool.execute_query(query_sql, params)[0]
    except psycopg.DatabaseError as e:
        logger.error(f"Failed to get salary audit summary: {e}")
        raise

    logger.info(
        f"Salary audit summary: {summary['total_changes']} changes "
        f"across {summary['employees_affected']} employees"
    )
    return summary

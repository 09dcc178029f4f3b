"""
Transaction control helpers.

Builds on DatabaseConnectionPool.transaction() for operations whose
point is the transaction boundary itself.
"""

from typing import Any, Dict, List

from psycopg import IsolationLevel

from payroll_audit.core.models import SalaryChange
from payroll_audit.database.connection import DatabaseConnectionPool, get_isolation_level
from payroll_audit.database.repository import EmployeeRepository
from payroll_audit.observability.logger import get_logger

logger = get_logger(__name__)


class _PreviewRollback(Exception):
    """Raised inside a preview transaction to force its rollback"""


def preview_department_raise(
    pool: DatabaseConnectionPool,
    dept_id: int,
    delta: int,
    isolation_level: IsolationLevel | str | None = None
) -> Dict[str, Any]:
    """
    Apply a department-wide salary adjustment, read it back, then roll it back.

    Inside the transaction the changes and their audit entries are
    visible; after it nothing remains, not even the audit entries.

    Args:
        pool: Database connection pool
        dept_id: Department to adjust
        delta: Amount to add to each salary
        isolation_level: Isolation level for the preview transaction

    Returns:
        Dictionary with:
        - changes: SalaryChange per affected employee
        - uncommitted_salaries: name/salary rows seen inside the transaction
        - audit_entries_seen: audit rows visible inside the transaction
        - isolation_level: level reported by the server during the preview
    """
    employees = EmployeeRepository(pool)
    preview: Dict[str, Any] = {}

    try:
        with pool.transaction(isolation_level) as conn:
            changes: List[SalaryChange] = employees.adjust_department_salaries(
                dept_id, delta, conn=conn
            )
            preview["changes"] = changes
            preview["isolation_level"] = get_isolation_level(conn)
            preview["uncommitted_salaries"] = conn.execute(
                "SELECT name, salary FROM employees WHERE dept_id = %s ORDER BY emp_id",
                (dept_id,),
            ).fetchall()
            preview["audit_entries_seen"] = conn.execute(
                "SELECT COUNT(*) AS entries FROM salary_audit WHERE employee_id = ANY(%s)",
                ([c.emp_id for c in changes],),
            ).fetchone()["entries"]
            raise _PreviewRollback()
    except _PreviewRollback:
        pass

    logger.info(
        f"Previewed raise of {delta} for department {dept_id}: "
        f"{len(preview['changes'])} salaries, rolled back"
    )
    return preview

"""
Payroll reporting queries.

Read-only analytics over employees and departments: ordering,
aggregates, subqueries, grouping with HAVING, the calculate_bonus
stored function, temporary tables, the department_payroll view and
EXPLAIN plans.
"""

from typing import Any, Dict, List

from psycopg import ClientCursor, sql

from payroll_audit.core.models import DepartmentPayroll, PayrollSummary
from payroll_audit.database.connection import DatabaseConnectionPool
from payroll_audit.observability.logger import get_logger

logger = get_logger(__name__)


class PayrollReports:
    """
    Reporting queries over the payroll schema.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize payroll reports.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def salary_roster(self) -> List[Dict[str, Any]]:
        """
        All employees, highest salary first, ties broken by name.

        Returns:
            Rows with name, salary and dept_id
        """
        query = """
            SELECT name, salary, dept_id
            FROM employees
            ORDER BY salary DESC NULLS LAST, name ASC
        """
        return self.pool.execute_query(query)

    def payroll_summary(self) -> PayrollSummary:
        """
        Company-wide COUNT, SUM, MIN, MAX and AVG of salaries.
        """
        query = """
            SELECT
                COUNT(*) AS total_employees,
                SUM(salary) AS total_payroll,
                MIN(salary) AS lowest_salary,
                MAX(salary) AS highest_salary,
                AVG(salary) AS average_salary
            FROM employees
        """
        return PayrollSummary(**self.pool.execute_query(query)[0])

    def above_average_earners(self) -> List[Dict[str, Any]]:
        """
        Employees earning more than the company-wide average.
        """
        query = """
            SELECT name, salary
            FROM employees
            WHERE salary > (SELECT AVG(salary) FROM employees)
            ORDER BY salary DESC, name
        """
        return self.pool.execute_query(query)

    def above_department_average(self) -> List[Dict[str, Any]]:
        """
        Employees earning more than the average of their own department.

        Uses a correlated subquery evaluated per outer row.
        """
        query = """
            SELECT e.name, e.salary, e.dept_id
            FROM employees e
            WHERE e.salary > (
                SELECT AVG(inner_e.salary)
                FROM employees inner_e
                WHERE inner_e.dept_id = e.dept_id
            )
            ORDER BY e.dept_id, e.salary DESC
        """
        return self.pool.execute_query(query)

    def nth_highest_salary(self, n: int = 2) -> Dict[str, Any] | None:
        """
        The employee at position n when ordered by salary descending.

        Args:
            n: 1-based position (2 gives the second-highest earner)

        Returns:
            Row with emp_id, name and salary, or None if there are fewer
            than n salaried employees

        Raises:
            ValueError: If n is less than 1
        """
        if n < 1:
            raise ValueError(f"n must be at least 1, got {n}")

        query = """
            SELECT emp_id, name, salary
            FROM employees
            WHERE salary IS NOT NULL
            ORDER BY salary DESC, emp_id
            LIMIT 1 OFFSET %s
        """
        result = self.pool.execute_query(query, (n - 1,))
        return result[0] if result else None

    def department_headcounts(self, min_average_salary: int | None = None) -> List[Dict[str, Any]]:
        """
        Headcount and average salary per department.

        Args:
            min_average_salary: Keep only departments whose average salary
                exceeds this value (HAVING filter, optional)

        Returns:
            Rows with dept_id, dept_name, headcount and average_salary
        """
        query = """
            SELECT d.dept_id, d.dept_name,
                   COUNT(*) AS headcount,
                   AVG(e.salary) AS average_salary
            FROM employees e
            INNER JOIN departments d ON d.dept_id = e.dept_id
            GROUP BY d.dept_id, d.dept_name
        """
        params: tuple = ()
        if min_average_salary is not None:
            query += " HAVING AVG(e.salary) > %s"
            params = (min_average_salary,)
        query += " ORDER BY d.dept_id"

        return self.pool.execute_query(query, params)

    def bonuses(self) -> List[Dict[str, Any]]:
        """
        Each employee's bonus as computed by the calculate_bonus stored function.
        """
        query = """
            SELECT name, salary, calculate_bonus(salary) AS bonus_amount
            FROM employees
            ORDER BY emp_id
        """
        return self.pool.execute_query(query)

    def department_payroll(self) -> List[DepartmentPayroll]:
        """
        Rows of the department_payroll view, including empty departments.
        """
        rows = self.pool.execute_query(
            "SELECT * FROM department_payroll ORDER BY dept_id"
        )
        return [DepartmentPayroll(**row) for row in rows]

    def high_earners_snapshot(self, threshold: int = 80000) -> List[Dict[str, Any]]:
        """
        Materialize high earners into a session temporary table and read it back.

        The table is created ON COMMIT DROP, so it disappears with the
        transaction that created it.

        Args:
            threshold: Minimum salary (exclusive)

        Returns:
            Rows with name and salary, highest first
        """
        with self.pool.transaction() as conn:
            # CREATE TABLE AS takes no bind parameters, so the threshold is inlined
            conn.execute(
                sql.SQL(
                    "CREATE TEMPORARY TABLE high_earners ON COMMIT DROP AS "
                    "SELECT name, salary FROM employees WHERE salary > {}"
                ).format(sql.Literal(threshold))
            )
            cur = conn.execute("SELECT name, salary FROM high_earners ORDER BY salary DESC, name")
            return cur.fetchall()

    def explain(self, query: str, params: tuple | None = None, analyze: bool = False) -> List[str]:
        """
        Return the execution plan PostgreSQL chooses for a query.

        With analyze=True the query is actually executed, so the call runs
        in a transaction that is always rolled back.

        Args:
            query: SQL statement to explain
            params: Query parameters (optional)
            analyze: Use EXPLAIN ANALYZE

        Returns:
            Plan lines
        """
        explain_sql = sql.SQL("EXPLAIN {options} {query}").format(
            options=sql.SQL("(ANALYZE, BUFFERS)" if analyze else "(COSTS)"),
            query=sql.SQL(query),
        )

        with self.pool.get_connection() as conn:
            try:
                with ClientCursor(conn) as cur:
                    cur.execute(explain_sql, params)
                    plan = [row["QUERY PLAN"] for row in cur.fetchall()]
            finally:
                conn.rollback()

        logger.debug(f"Explained query ({len(plan)} plan lines)")
        return plan

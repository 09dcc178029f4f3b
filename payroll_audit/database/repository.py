"""
Data manipulation for departments, employees and articles.

Salary changes made through EmployeeRepository are recorded in
salary_audit by the before_salary_update trigger; nothing here writes
to the audit table directly.
"""

from typing import Iterable

import psycopg
from psycopg.rows import dict_row

from payroll_audit.core.models import Article, Department, Employee, SalaryChange
from payroll_audit.database.connection import DatabaseConnectionPool
from payroll_audit.observability.logger import get_logger
from payroll_audit.observability.metrics import (
    record_department_deleted,
    record_salary_update,
    track_duration,
)

logger = get_logger(__name__)


class RecordNotFoundError(LookupError):
    """Raised when an operation targets a row that does not exist"""

    def __init__(self, entity: str, key: int):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class DepartmentRepository:
    """
    Departments: the parent side of the employees foreign key.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def create(self, department: Department) -> Department:
        """
        Insert a department.

        Raises:
            psycopg.errors.UniqueViolation: If the id or name is taken
        """
        query = """
            INSERT INTO departments (dept_id, dept_name)
            VALUES (%(dept_id)s, %(dept_name)s)
            RETURNING dept_id, dept_name
        """
        try:
            rows = self.pool.execute_query(query, department.model_dump())
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to create department {department.dept_id}: {e}")
            raise

        logger.debug(f"Created department {department.dept_id} ({department.dept_name})")
        return Department(**rows[0])

    def create_many(self, departments: Iterable[Department]) -> int:
        """
        Insert several departments in one transaction.

        Returns:
            Number of departments inserted
        """
        params = [d.model_dump() for d in departments]
        if not params:
            return 0

        self.pool.execute_batch(
            "INSERT INTO departments (dept_id, dept_name) VALUES (%(dept_id)s, %(dept_name)s)",
            params,
        )
        logger.info(f"Inserted {len(params)} departments")
        return len(params)

    def get(self, dept_id: int) -> Department:
        """
        Raises:
            RecordNotFoundError: If the department does not exist
        """
        rows = self.pool.execute_query(
            "SELECT dept_id, dept_name FROM departments WHERE dept_id = %s", (dept_id,)
        )
        if not rows:
            raise RecordNotFoundError("Department", dept_id)
        return Department(**rows[0])

    def list_departments(self) -> list[Department]:
        rows = self.pool.execute_query(
            "SELECT dept_id, dept_name FROM departments ORDER BY dept_id"
        )
        return [Department(**row) for row in rows]

    def rename(self, dept_id: int, dept_name: str) -> Department:
        """
        Change a department's name.

        Raises:
            RecordNotFoundError: If the department does not exist
            psycopg.errors.UniqueViolation: If the name is taken
        """
        rows = self.pool.execute_query(
            """
            UPDATE departments SET dept_name = %s
            WHERE dept_id = %s
            RETURNING dept_id, dept_name
            """,
            (dept_name, dept_id),
        )
        if not rows:
            raise RecordNotFoundError("Department", dept_id)
        return Department(**rows[0])

    def renumber(self, dept_id: int, new_dept_id: int) -> int:
        """
        Change a department's primary key.

        ON UPDATE CASCADE moves its employees to the new id; salaries are
        untouched, so no audit entries are written.

        Returns:
            Number of employees now referencing new_dept_id

        Raises:
            RecordNotFoundError: If the department does not exist
        """
        with self.pool.transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE departments SET dept_id = %s WHERE dept_id = %s",
                    (new_dept_id, dept_id),
                )
                if cur.rowcount == 0:
                    raise RecordNotFoundError("Department", dept_id)

                cur.execute(
                    "SELECT COUNT(*) AS moved FROM employees WHERE dept_id = %s",
                    (new_dept_id,),
                )
                moved = cur.fetchone()["moved"]

        logger.info(f"Renumbered department {dept_id} -> {new_dept_id} ({moved} employees followed)")
        return moved

    def delete(self, dept_id: int) -> int:
        """
        Delete a department and, through ON DELETE CASCADE, its employees.

        The department row is locked first, which blocks concurrent inserts
        of employees into it (their FK check needs a KEY SHARE lock), so the
        headcount matches what the cascade removes.

        Returns:
            Number of employees removed by the cascade

        Raises:
            RecordNotFoundError: If the department does not exist
        """
        with track_duration("delete_department"):
            with self.pool.transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "SELECT dept_id FROM departments WHERE dept_id = %s FOR UPDATE",
                        (dept_id,),
                    )
                    if cur.fetchone() is None:
                        raise RecordNotFoundError("Department", dept_id)

                    cur.execute(
                        "SELECT COUNT(*) AS headcount FROM employees WHERE dept_id = %s",
                        (dept_id,),
                    )
                    headcount = cur.fetchone()["headcount"]

                    cur.execute("DELETE FROM departments WHERE dept_id = %s", (dept_id,))

        record_department_deleted(headcount)
        logger.info(f"Deleted department {dept_id}, cascaded to {headcount} employees")
        return headcount


class EmployeeRepository:
    """
    Employees: the monitored records whose salary changes are audited.
    """

    _COLUMNS = "emp_id, name, salary, dept_id"

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def create(self, employee: Employee) -> Employee:
        """
        Insert an employee and return it with its generated emp_id.

        Raises:
            psycopg.errors.ForeignKeyViolation: If dept_id has no department
            psycopg.errors.CheckViolation: If salary is negative
        """
        query = f"""
            INSERT INTO employees (name, salary, dept_id)
            VALUES (%(name)s, %(salary)s, %(dept_id)s)
            RETURNING {self._COLUMNS}
        """
        try:
            rows = self.pool.execute_query(
                query, employee.model_dump(include={"name", "salary", "dept_id"})
            )
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to create employee {employee.name}: {e}")
            raise

        created = Employee(**rows[0])
        logger.debug(f"Created employee {created.emp_id} ({created.name})")
        return created

    def create_many(self, employees: Iterable[Employee]) -> list[Employee]:
        """
        Insert several employees in one transaction.

        Returns:
            The inserted employees with their generated ids, in input order
        """
        created: list[Employee] = []
        with self.pool.transaction() as conn:
            with conn.cursor() as cur:
                for employee in employees:
                    cur.execute(
                        f"""
                        INSERT INTO employees (name, salary, dept_id)
                        VALUES (%(name)s, %(salary)s, %(dept_id)s)
                        RETURNING {self._COLUMNS}
                        """,
                        employee.model_dump(include={"name", "salary", "dept_id"}),
                    )
                    created.append(Employee(**cur.fetchone()))

        logger.info(f"Inserted {len(created)} employees")
        return created

    def get(self, emp_id: int) -> Employee:
        """
        Look an employee up through the employee_by_id stored function.

        Raises:
            RecordNotFoundError: If the employee does not exist
        """
        rows = self.pool.execute_query(
            f"SELECT {self._COLUMNS} FROM employee_by_id(%s)", (emp_id,)
        )
        if not rows:
            raise RecordNotFoundError("Employee", emp_id)
        return Employee(**rows[0])

    def list_employees(self, dept_id: int | None = None) -> list[Employee]:
        """
        List employees by emp_id, optionally restricted to one department.
        """
        query = f"SELECT {self._COLUMNS} FROM employees"
        params: tuple = ()
        if dept_id is not None:
            query += " WHERE dept_id = %s"
            params = (dept_id,)
        query += " ORDER BY emp_id"

        return [Employee(**row) for row in self.pool.execute_query(query, params)]

    def update_salary(
        self,
        emp_id: int,
        salary: int | None,
        conn: psycopg.Connection | None = None
    ) -> SalaryChange:
        """
        Set an employee's salary.

        The previous value is read under a row lock in the same statement,
        so the returned SalaryChange matches what the audit trigger saw.
        When the salary differs, exactly one salary_audit entry is written
        in the same transaction; otherwise none is.

        Args:
            emp_id: Employee to update
            salary: New salary (None clears it)
            conn: Run inside this caller-managed transaction instead of
                a new one (not counted in the salary update metric)

        Returns:
            SalaryChange with old and new salary

        Raises:
            ValueError: If salary is negative
            RecordNotFoundError: If the employee does not exist
        """
        if salary is not None and salary < 0:
            raise ValueError(f"Salary must be non-negative, got {salary}")

        if conn is None:
            with self.pool.transaction() as own_conn:
                change = self.update_salary(emp_id, salary, conn=own_conn)
            # Counted once committed; caller-managed transactions are not counted
            record_salary_update(change.changed)
            return change

        query = """
            UPDATE employees e
            SET salary = %(salary)s
            FROM (
                SELECT emp_id, salary FROM employees
                WHERE emp_id = %(emp_id)s
                FOR UPDATE
            ) prev
            WHERE e.emp_id = prev.emp_id
            RETURNING e.emp_id, prev.salary AS old_salary, e.salary AS new_salary
        """

        with track_duration("update_salary"):
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, {"emp_id": emp_id, "salary": salary})
                row = cur.fetchone()

        if row is None:
            raise RecordNotFoundError("Employee", emp_id)

        change = SalaryChange(**row)
        logger.info(
            f"Salary update for employee {emp_id}: {change.old_salary} -> {change.new_salary}",
            extra={"emp_id": emp_id, "changed": change.changed},
        )
        return change

    def adjust_department_salaries(
        self,
        dept_id: int,
        delta: int,
        conn: psycopg.Connection | None = None
    ) -> list[SalaryChange]:
        """
        Add delta to the salary of every employee in a department.

        Each affected employee gets its own audit entry (none when delta
        is 0). Employees with a NULL salary are left unchanged.

        Args:
            dept_id: Department whose employees to adjust
            delta: Amount to add (negative for a cut)
            conn: Run inside this caller-managed transaction instead of
                a new one (not counted in the salary update metric)

        Returns:
            One SalaryChange per employee with a salary, ordered by emp_id
        """
        if conn is None:
            with self.pool.transaction() as own_conn:
                changes = self.adjust_department_salaries(dept_id, delta, conn=own_conn)
            for change in changes:
                record_salary_update(change.changed)
            return changes

        query = """
            UPDATE employees e
            SET salary = prev.salary + %(delta)s
            FROM (
                SELECT emp_id, salary FROM employees
                WHERE dept_id = %(dept_id)s AND salary IS NOT NULL
                FOR UPDATE
            ) prev
            WHERE e.emp_id = prev.emp_id
            RETURNING e.emp_id, prev.salary AS old_salary, e.salary AS new_salary
        """

        with track_duration("adjust_department_salaries"):
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, {"dept_id": dept_id, "delta": delta})
                rows = cur.fetchall()

        changes = sorted((SalaryChange(**row) for row in rows), key=lambda c: c.emp_id)
        logger.info(f"Adjusted {len(changes)} salaries in department {dept_id} by {delta}")
        return changes

    def transfer(self, emp_id: int, dept_id: int) -> Employee:
        """
        Move an employee to another department.

        Raises:
            RecordNotFoundError: If the employee does not exist
            psycopg.errors.ForeignKeyViolation: If the department does not exist
        """
        rows = self.pool.execute_query(
            f"UPDATE employees SET dept_id = %s WHERE emp_id = %s RETURNING {self._COLUMNS}",
            (dept_id, emp_id),
        )
        if not rows:
            raise RecordNotFoundError("Employee", emp_id)
        return Employee(**rows[0])

    def delete(self, emp_id: int) -> None:
        """
        Delete an employee. Its salary history stays in salary_audit.

        Raises:
            RecordNotFoundError: If the employee does not exist
        """
        if self.pool.execute_command("DELETE FROM employees WHERE emp_id = %s", (emp_id,)) == 0:
            raise RecordNotFoundError("Employee", emp_id)


class ArticleRepository:
    """
    Articles with a full-text index on the body.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def create(self, article: Article) -> Article:
        rows = self.pool.execute_query(
            """
            INSERT INTO articles (title, body) VALUES (%s, %s)
            RETURNING id, title, body
            """,
            (article.title, article.body),
        )
        return Article(**rows[0])

    def search(self, terms: str, limit: int = 10) -> list[Article]:
        """
        Full-text search over article bodies, most relevant first.

        Args:
            terms: Free-text search terms (web search syntax)
            limit: Maximum number of results

        Returns:
            Matching articles with score set
        """
        query = """
            SELECT id, title, body,
                   ts_rank(body_tsv, websearch_to_tsquery('english', %(terms)s))::float8 AS score
            FROM articles
            WHERE body_tsv @@ websearch_to_tsquery('english', %(terms)s)
            ORDER BY score DESC, id
            LIMIT %(limit)s
        """
        rows = self.pool.execute_query(query, {"terms": terms, "limit": limit})
        return [Article(**row) for row in rows]

    def match_body(self, pattern: str) -> list[Article]:
        """
        Articles whose body matches a case-insensitive POSIX regular expression.

        Raises:
            psycopg.errors.InvalidRegularExpression: If the pattern is invalid
        """
        rows = self.pool.execute_query(
            "SELECT id, title, body FROM articles WHERE body ~* %s ORDER BY id",
            (pattern,),
        )
        return [Article(**row) for row in rows]

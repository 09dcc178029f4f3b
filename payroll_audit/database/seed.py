"""
Sample data for a fresh payroll schema.
"""

from typing import Dict

from payroll_audit.core.models import Article, Department, Employee
from payroll_audit.database.connection import DatabaseConnectionPool
from payroll_audit.database.repository import (
    ArticleRepository,
    DepartmentRepository,
    EmployeeRepository,
)
from payroll_audit.observability.logger import get_logger, log_operation

logger = get_logger(__name__)

SAMPLE_DEPARTMENTS = [
    Department(dept_id=10, dept_name="Sales"),
    Department(dept_id=20, dept_name="IT"),
    Department(dept_id=30, dept_name="HR"),
]

SAMPLE_EMPLOYEES = [
    Employee(name="Alice", salary=60000, dept_id=10),
    Employee(name="Bob", salary=75000, dept_id=20),
    Employee(name="Charlie", salary=60000, dept_id=10),
    Employee(name="Diana", salary=90000, dept_id=20),
    Employee(name="Eve", salary=75000, dept_id=30),
    Employee(name="Frank", salary=120000, dept_id=20),
]

SAMPLE_ARTICLES = [
    Article(
        title="SQL Basics",
        body="Learn about SELECT, INSERT, UPDATE, and DELETE commands.",
    ),
    Article(
        title="Advanced SQL",
        body="Correlated subqueries and the powerful EXPLAIN plan.",
    ),
    Article(
        title="Triggers and Procedures",
        body="How to use triggers for auditing and stored procedures for complex logic.",
    ),
]


def seed_sample_data(pool: DatabaseConnectionPool) -> Dict[str, int]:
    """
    Insert the sample departments, employees and articles.

    Inserts do not fire the salary audit trigger, so the audit log stays
    empty.

    Args:
        pool: Database connection pool

    Returns:
        Number of rows inserted per table

    Raises:
        psycopg.errors.UniqueViolation: If the sample departments already exist
    """
    with log_operation("Seeding sample data", logger=logger):
        departments = DepartmentRepository(pool).create_many(SAMPLE_DEPARTMENTS)
        employees = EmployeeRepository(pool).create_many(SAMPLE_EMPLOYEES)

        articles = ArticleRepository(pool)
        for article in SAMPLE_ARTICLES:
            articles.create(article)

    return {
        "departments": departments,
        "employees": len(employees),
        "articles": len(SAMPLE_ARTICLES),
    }

"""
Core data models for the payroll database.

All models use Pydantic for runtime validation and type safety.
"""

from .article import Article
from .department import Department
from .employee import Employee, SalaryChange
from .payroll_summary import DepartmentPayroll, PayrollSummary
from .salary_audit import SalaryAuditEntry

__all__ = [
    "Department",
    "Employee",
    "SalaryChange",
    "SalaryAuditEntry",
    "Article",
    "PayrollSummary",
    "DepartmentPayroll",
]

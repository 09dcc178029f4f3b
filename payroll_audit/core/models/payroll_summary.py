"""
Aggregate payroll report models.
"""

from decimal import Decimal

from pydantic import BaseModel


class PayrollSummary(BaseModel):
    """
    Company-wide salary aggregates.

    Attributes:
        total_employees: COUNT(*)
        total_payroll: SUM(salary)
        lowest_salary: MIN(salary)
        highest_salary: MAX(salary)
        average_salary: AVG(salary)
    """

    total_employees: int = 0
    total_payroll: int | None = None
    lowest_salary: int | None = None
    highest_salary: int | None = None
    average_salary: Decimal | None = None


class DepartmentPayroll(BaseModel):
    """One row of the department_payroll view"""

    dept_id: int
    dept_name: str
    headcount: int = 0
    total_salary: int | None = None
    average_salary: Decimal | None = None

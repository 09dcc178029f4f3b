"""
Employee model and the result of a salary update.
"""

from pydantic import BaseModel, Field


class Employee(BaseModel):
    """
    An employee row.

    Attributes:
        emp_id: Identity primary key (None until inserted)
        name: Employee name
        salary: Monthly or yearly salary in whole currency units; monitored by
            the salary audit trigger
        dept_id: Department the employee belongs to (FK to departments)
    """

    emp_id: int | None = None
    name: str = Field(..., min_length=1, max_length=100)
    salary: int | None = Field(default=None, ge=0)
    dept_id: int | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "emp_id": 6,
                "name": "Frank",
                "salary": 120000,
                "dept_id": 20
            }
        }


class SalaryChange(BaseModel):
    """
    Outcome of a single salary update.

    Attributes:
        emp_id: Updated employee
        old_salary: Salary before the update
        new_salary: Salary after the update
    """

    emp_id: int
    old_salary: int | None = None
    new_salary: int | None = None

    @property
    def changed(self) -> bool:
        """True when the update produced a salary audit entry"""
        return self.old_salary != self.new_salary

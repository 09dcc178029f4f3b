"""
SalaryAuditEntry model for the append-only salary audit log.
"""

from datetime import datetime

from pydantic import BaseModel


class SalaryAuditEntry(BaseModel):
    """
    One salary change captured by the before_salary_update trigger.

    Entries are written only by the trigger and are never updated or
    deleted, so the model is frozen.

    Attributes:
        audit_id: Identity primary key
        employee_id: Employee whose salary changed (no FK, history outlives the row)
        old_salary: Salary before the change
        new_salary: Salary after the change
        change_date: Transaction timestamp of the change
    """

    audit_id: int
    employee_id: int
    old_salary: int | None = None
    new_salary: int | None = None
    change_date: datetime

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "audit_id": 1,
                "employee_id": 6,
                "old_salary": 120000,
                "new_salary": 130000,
                "change_date": "2024-03-01T12:00:00+00:00"
            }
        }

    @property
    def delta(self) -> int | None:
        """Signed salary difference, None when either side is NULL"""
        if self.old_salary is None or self.new_salary is None:
            return None
        return self.new_salary - self.old_salary

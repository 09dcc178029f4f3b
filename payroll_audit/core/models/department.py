"""
Department model representing a group that employees belong to.
"""

from pydantic import BaseModel, Field


class Department(BaseModel):
    """
    A department. Must exist before any employee references it; deleting it
    cascades to its employees.

    Attributes:
        dept_id: Caller-assigned primary key
        dept_name: Unique department name
    """

    dept_id: int = Field(..., gt=0)
    dept_name: str = Field(..., min_length=1, max_length=50)

    class Config:
        json_schema_extra = {
            "example": {
                "dept_id": 10,
                "dept_name": "Sales"
            }
        }

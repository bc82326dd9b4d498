"""
Pydantic schemas for dashboard API.
"""

from pydantic import BaseModel, ConfigDict, Field


class CallStats(BaseModel):
    """Aggregate call counts."""

    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(ge=0, description="Number of stored calls")
    answered: int = Field(ge=0, description="Calls whose status is completed or answered")
    failed: int = Field(
        ge=0,
        description="Calls whose status is failed, busy, no-answer or canceled",
    )
    by_department: dict[str, int] = Field(
        default_factory=dict,
        alias="byDepartment",
        description="Call count per department; departments without calls are absent",
    )

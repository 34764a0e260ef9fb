from pydantic import Field, field_validator

from feasibility.models.base import CamelModel

NOT_SPECIFIED = "Not specified"


class AnalysisRequest(CamelModel):
    business_idea: str = Field(..., description="Free-text description of the proposed business")
    location: str = Field(NOT_SPECIFIED, description="City, neighborhood or region in India")
    budget: str = Field(NOT_SPECIFIED, description="Budget in Indian shorthand, e.g. '15 lakhs', '2.5 Cr', '50k'")

    @field_validator("business_idea")
    @classmethod
    def _check_idea(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 10:
            raise ValueError("Business idea must be at least 10 characters")
        if len(v) > 2000:
            raise ValueError("Business idea must be less than 2000 characters")
        return v

    @field_validator("location", mode="before")
    @classmethod
    def _check_location(cls, v):
        return _optional_text(v, 200, "Location")

    @field_validator("budget", mode="before")
    @classmethod
    def _check_budget(cls, v):
        return _optional_text(v, 100, "Budget")


def _optional_text(value, max_len: int, label: str):
    """Trim an optional field and replace blanks with the NOT_SPECIFIED sentinel."""
    if value is None:
        return NOT_SPECIFIED
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string")
    value = value.strip()
    if len(value) > max_len:
        raise ValueError(f"{label} must be less than {max_len} characters")
    return value or NOT_SPECIFIED

"""Pydantic schemas for the course catalog."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from learnhub.core.schemas import CamelModel


def _clean_modules(modules: list[str] | None) -> list[str] | None:
    if modules is None:
        return None
    cleaned = [m.strip() for m in modules]
    if any(not m for m in cleaned):
        msg = "Module names cannot be empty"
        raise ValueError(msg)
    return cleaned


class CreateCourseRequest(CamelModel):
    """Course creation request."""

    title: str = Field(..., min_length=1, max_length=200, description="Course title")
    description: str = Field(
        ..., min_length=1, max_length=5000, description="Course description"
    )
    modules: list[str] = Field(
        default_factory=list, description="Ordered module names"
    )

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Field cannot be blank"
            raise ValueError(msg)
        return v

    @field_validator("modules")
    @classmethod
    def validate_modules(cls, v: list[str]) -> list[str]:
        return _clean_modules(v) or []


class UpdateCourseRequest(CamelModel):
    """Partial course update request."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=5000)
    modules: list[str] | None = None
    is_active: bool | None = None

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            msg = "Field cannot be blank"
            raise ValueError(msg)
        return v

    @field_validator("modules")
    @classmethod
    def validate_modules(cls, v: list[str] | None) -> list[str] | None:
        return _clean_modules(v)


class CourseResponse(CamelModel):
    """Course response."""

    id: UUID
    title: str
    description: str
    modules: list[str] = Field(default_factory=list)
    is_active: bool = True
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None


class CourseListResponse(CamelModel):
    """Course list response."""

    items: list[CourseResponse]
    total: int


class CourseSummary(CamelModel):
    """Course display fields embedded in enrollment responses."""

    id: UUID
    title: str
    description: str
    modules: list[str] = Field(default_factory=list)

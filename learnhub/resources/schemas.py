"""Pydantic schemas for course resources."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from learnhub.core.schemas import CQL_INT_MAX, CQL_INT_MIN, CamelModel
from learnhub.resources.models import ResourceType


class ResourceInput(CamelModel):
    """Fields of one resource inside a bulk create request."""

    title: str = Field(..., min_length=1, max_length=300)
    url: str = Field(..., min_length=1, max_length=2000)
    type: ResourceType
    description: str = ""
    module_index: int = Field(0, ge=0, le=CQL_INT_MAX)
    order: int = Field(0, ge=CQL_INT_MIN, le=CQL_INT_MAX)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Title cannot be blank"
            raise ValueError(msg)
        return v


class CreateResourceRequest(ResourceInput):
    """Create a single resource."""

    course_id: UUID


class BulkCreateResourcesRequest(CamelModel):
    """Create several resources for one course (admin)."""

    course_id: UUID
    resources: list[ResourceInput] = Field(..., min_length=1)


class UpdateResourceRequest(CamelModel):
    """Partial resource update."""

    title: str | None = Field(None, min_length=1, max_length=300)
    url: str | None = Field(None, min_length=1, max_length=2000)
    type: ResourceType | None = None
    description: str | None = None
    module_index: int | None = Field(None, ge=0, le=CQL_INT_MAX)
    order: int | None = Field(None, ge=CQL_INT_MIN, le=CQL_INT_MAX)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            msg = "Title cannot be blank"
            raise ValueError(msg)
        return v


class ResourceCourse(CamelModel):
    """Course reference embedded in a resource."""

    id: UUID
    title: str


class ResourceResponse(CamelModel):
    """Resource response."""

    id: UUID
    course_id: UUID
    course: ResourceCourse | None = None
    title: str
    url: str
    type: ResourceType
    description: str = ""
    module_index: int = 0
    order: int = 0
    is_active: bool = True
    created_at: datetime
    updated_at: datetime | None = None

"""Pydantic schemas for enrollments.

Request and response models for:
- Enrollment creation
- Progress updates (module completion and explicit progress)
- Administrative status changes
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from learnhub.core.schemas import CQL_INT_MAX, CamelModel
from learnhub.courses.schemas import CourseSummary
from learnhub.enrollments.models import EnrollmentStatus


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateEnrollmentRequest(CamelModel):
    """Enroll a student in a course.

    ``studentId`` defaults to the authenticated user.
    """

    student_id: UUID | None = None
    course_id: UUID


class UpdateEnrollmentRequest(CamelModel):
    """Combined progress update; both parts are optional."""

    enrollment_id: UUID
    module_index: int | None = Field(
        None, ge=0, le=CQL_INT_MAX, description="Module to complete"
    )
    progress: float | None = Field(
        None,
        allow_inf_nan=False,
        description="Progress percentage, clamped into 0..100",
    )


class AdminStatus(str, Enum):
    """Statuses an administrator may set directly."""

    ACTIVE = "active"
    PAUSED = "paused"


class UpdateEnrollmentStatusRequest(CamelModel):
    """Administrative status change."""

    status: AdminStatus


# ==============================================================================
# Response Schemas
# ==============================================================================


class CompletedModuleResponse(CamelModel):
    """A completed module record."""

    module_index: int
    completed_at: datetime


class StudentSummary(CamelModel):
    """Student display fields embedded in enrollment responses."""

    id: UUID
    name: str
    email: str


class EnrollmentResponse(CamelModel):
    """Enrollment with its progress state."""

    id: UUID
    student_id: UUID
    course_id: UUID
    progress: int = Field(..., ge=0, le=100)
    completed_modules: list[CompletedModuleResponse] = Field(default_factory=list)
    status: EnrollmentStatus
    enrolled_at: datetime
    updated_at: datetime | None = None
    course: CourseSummary | None = None
    student: StudentSummary | None = None

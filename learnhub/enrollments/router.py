"""Enrollment API endpoints.

Provides routes for:
- Enrolling in a course
- Combined progress updates (module completion and explicit progress)
- Enrollment queries with course and student display fields
- Administrative status changes and removal
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from learnhub.auth.dependencies import CurrentActor
from learnhub.core.schemas import MessageResponse
from learnhub.enrollments.dependencies import (
    EnrollmentServiceDep,
    handle_enrollment_error,
)
from learnhub.enrollments.schemas import (
    CreateEnrollmentRequest,
    EnrollmentResponse,
    UpdateEnrollmentRequest,
    UpdateEnrollmentStatusRequest,
)
from learnhub.enrollments.service import EnrollmentError


router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@router.get("", response_model=list[EnrollmentResponse])
async def list_enrollments(
    actor: CurrentActor,
    enrollment_service: EnrollmentServiceDep,
    student_id: Annotated[UUID | None, Query(alias="studentId")] = None,
    course_id: Annotated[UUID | None, Query(alias="courseId")] = None,
) -> list[EnrollmentResponse]:
    """List enrollments filtered by student and/or course.

    Students always get their own enrollments only.
    """
    try:
        enrollments = await enrollment_service.list_enrollments(
            actor, student_id=student_id, course_id=course_id
        )
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return await enrollment_service.to_responses(enrollments)


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_enrollment(
    data: CreateEnrollmentRequest,
    actor: CurrentActor,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    """Enroll a student (the caller by default) in a course."""
    try:
        enrollment = await enrollment_service.enroll(
            data.course_id, actor, student_id=data.student_id
        )
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return (await enrollment_service.to_responses([enrollment]))[0]


@router.put("", response_model=EnrollmentResponse)
async def update_enrollment(
    data: UpdateEnrollmentRequest,
    actor: CurrentActor,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    """Complete a module and/or set progress in one write."""
    try:
        enrollment = await enrollment_service.update_enrollment(
            data.enrollment_id,
            actor,
            module_index=data.module_index,
            progress=data.progress,
        )
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return (await enrollment_service.to_responses([enrollment]))[0]


@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    enrollment_id: UUID,
    actor: CurrentActor,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    """Get a single enrollment."""
    try:
        enrollment = await enrollment_service.get_enrollment(enrollment_id, actor)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return (await enrollment_service.to_responses([enrollment]))[0]


@router.patch("/{enrollment_id}/status", response_model=EnrollmentResponse)
async def update_enrollment_status(
    enrollment_id: UUID,
    data: UpdateEnrollmentStatusRequest,
    actor: CurrentActor,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    """Pause or reactivate an enrollment (ADMIN only)."""
    try:
        enrollment = await enrollment_service.set_status(
            enrollment_id, data.status.value, actor
        )
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return (await enrollment_service.to_responses([enrollment]))[0]


@router.delete("/{enrollment_id}", response_model=MessageResponse)
async def delete_enrollment(
    enrollment_id: UUID,
    actor: CurrentActor,
    enrollment_service: EnrollmentServiceDep,
) -> MessageResponse:
    """Remove an enrollment (ADMIN only)."""
    try:
        await enrollment_service.delete_enrollment(enrollment_id, actor)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return MessageResponse(message="Enrollment deleted successfully")

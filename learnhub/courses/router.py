"""Course catalog API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from learnhub.auth.dependencies import AdminUser
from learnhub.core.schemas import MessageResponse
from learnhub.courses.dependencies import CourseServiceDep, handle_course_error
from learnhub.courses.schemas import (
    CourseListResponse,
    CourseResponse,
    CreateCourseRequest,
    UpdateCourseRequest,
)
from learnhub.courses.service import CourseError, CourseNotFoundError


router = APIRouter(prefix="/v1/courses", tags=["courses"])


@router.get(
    "",
    response_model=CourseListResponse,
    summary="List active courses",
)
async def list_courses(course_service: CourseServiceDep) -> CourseListResponse:
    """List active courses, newest first (public)."""
    courses = await course_service.list_courses()
    return CourseListResponse(
        items=[course_service.to_response(c) for c in courses],
        total=len(courses),
    )


@router.get(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Get course",
)
async def get_course(
    course_id: UUID,
    course_service: CourseServiceDep,
) -> CourseResponse:
    """Get a single course."""
    course = await course_service.get_course(course_id)
    if not course:
        raise handle_course_error(CourseNotFoundError())
    return course_service.to_response(course)


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest,
    course_service: CourseServiceDep,
    admin: AdminUser,
) -> CourseResponse:
    """Create a new course (ADMIN only)."""
    course = await course_service.create_course(data, created_by=admin.id)
    return course_service.to_response(course)


@router.put(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Update course",
)
async def update_course(
    course_id: UUID,
    data: UpdateCourseRequest,
    course_service: CourseServiceDep,
    _admin: AdminUser,
) -> CourseResponse:
    """Partially update a course (ADMIN only)."""
    try:
        course = await course_service.update_course(course_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return course_service.to_response(course)


@router.delete(
    "/{course_id}",
    response_model=MessageResponse,
    summary="Delete course",
)
async def delete_course(
    course_id: UUID,
    course_service: CourseServiceDep,
    _admin: AdminUser,
) -> MessageResponse:
    """Soft delete a course (ADMIN only)."""
    try:
        await course_service.delete_course(course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    return MessageResponse(message="Course deleted successfully")

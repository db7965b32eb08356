"""FastAPI dependencies for the course catalog."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from learnhub.courses.service import CourseError, CourseService


# ==============================================================================
# Service Getter (set by main.py)
# ==============================================================================

_course_service_getter: Callable[[], CourseService] | None = None


def set_course_service_getter(getter: Callable[[], CourseService]) -> None:
    """Set the course service getter function."""
    global _course_service_getter  # noqa: PLW0603 - Required for DI pattern
    _course_service_getter = getter


def get_course_service() -> CourseService:
    """Get CourseService instance from app state."""
    if _course_service_getter is None:
        msg = "CourseService not configured"
        raise RuntimeError(msg)
    return _course_service_getter()


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]


# ==============================================================================
# Error Handlers
# ==============================================================================


def handle_course_error(error: CourseError) -> HTTPException:
    """Convert course errors to HTTPException."""
    status_map = {
        "not_found": status.HTTP_404_NOT_FOUND,
        "validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )

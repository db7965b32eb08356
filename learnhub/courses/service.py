"""Course catalog service layer.

Business logic for course CRUD. Deletion is soft: the course is flagged
inactive so existing enrollments keep their reference.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.courses.models import Course
from learnhub.courses.schemas import (
    CourseResponse,
    CourseSummary,
    CreateCourseRequest,
    UpdateCourseRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    """Course not found."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "not_found")


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for course catalog operations."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, description, modules, is_active, created_by,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._list_courses = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses"
        )
        self._update_course = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET title = ?, description = ?, modules = ?, is_active = ?,
                updated_at = ?
            WHERE id = ?
        """)

    async def _save(self, course: Course) -> None:
        await self.session.aexecute(
            self._insert_course,
            [
                course.id,
                course.title,
                course.description,
                course.modules,
                course.is_active,
                course.created_by,
                course.created_at,
                course.updated_at,
            ],
        )

    async def create_course(
        self, data: CreateCourseRequest, created_by: UUID
    ) -> Course:
        """Create a new course owned by the acting admin."""
        course = Course(
            title=data.title,
            description=data.description,
            modules=data.modules,
            is_active=True,
            created_by=created_by,
        )
        await self._save(course)
        logger.info(
            "course_created",
            course_id=str(course.id),
            modules=course.module_count,
            created_by=str(created_by),
        )
        return course

    async def get_course(self, course_id: UUID) -> Course | None:
        """Get course by ID, including inactive ones."""
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def get_active_course(self, course_id: UUID) -> Course:
        """Get an active course or raise CourseNotFoundError."""
        course = await self.get_course(course_id)
        if not course or not course.is_active:
            raise CourseNotFoundError
        return course

    async def list_courses(self, include_inactive: bool = False) -> list[Course]:
        """List courses, newest first."""
        rows = await self.session.aexecute(self._list_courses)
        courses = [Course.from_row(row) for row in rows]
        if not include_inactive:
            courses = [c for c in courses if c.is_active]
        courses.sort(key=lambda c: c.created_at, reverse=True)
        return courses

    async def get_courses_map(self) -> dict[UUID, Course]:
        """All courses keyed by id, used to populate enrollment listings."""
        courses = await self.list_courses(include_inactive=True)
        return {c.id: c for c in courses}

    async def update_course(
        self, course_id: UUID, data: UpdateCourseRequest
    ) -> Course:
        """Apply a partial update.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        course = await self.get_course(course_id)
        if not course:
            raise CourseNotFoundError

        if data.title is not None:
            course.title = data.title
        if data.description is not None:
            course.description = data.description
        if data.modules is not None:
            course.modules = data.modules
        if data.is_active is not None:
            course.is_active = data.is_active
        course.updated_at = datetime.now(UTC)

        await self.session.aexecute(
            self._update_course,
            [
                course.title,
                course.description,
                course.modules,
                course.is_active,
                course.updated_at,
                course.id,
            ],
        )
        logger.info("course_updated", course_id=str(course.id))
        return course

    async def delete_course(self, course_id: UUID) -> None:
        """Soft delete a course.

        Raises:
            CourseNotFoundError: If course doesn't exist or is already inactive
        """
        course = await self.get_active_course(course_id)
        course.is_active = False
        course.updated_at = datetime.now(UTC)

        await self.session.aexecute(
            self._update_course,
            [
                course.title,
                course.description,
                course.modules,
                course.is_active,
                course.updated_at,
                course.id,
            ],
        )
        logger.info("course_deleted", course_id=str(course.id))

    def to_response(self, course: Course) -> CourseResponse:
        """Convert Course entity to response schema."""
        return CourseResponse(
            id=course.id,
            title=course.title,
            description=course.description,
            modules=course.modules,
            is_active=course.is_active,
            created_by=course.created_by,
            created_at=course.created_at,
            updated_at=course.updated_at,
        )

    @staticmethod
    def to_summary(course: Course) -> CourseSummary:
        """Display fields embedded in other responses."""
        return CourseSummary(
            id=course.id,
            title=course.title,
            description=course.description,
            modules=course.modules,
        )

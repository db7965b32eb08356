"""Enrollment service layer.

Business logic for:
- Enrolling a student in a course (one enrollment per pair)
- Module completion and progress updates with optimistic concurrency
- Administrative status changes and removal
- Listing enrollments with course and student display fields

Every operation receives the acting user explicitly; students may only read
and update their own enrollments.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.auth.permissions import Actor
from learnhub.config.settings import Settings, get_settings
from learnhub.courses.models import Course
from learnhub.courses.service import CourseService
from learnhub.enrollments import tracker
from learnhub.enrollments.models import Enrollment, EnrollmentStatus
from learnhub.enrollments.schemas import (
    CompletedModuleResponse,
    EnrollmentResponse,
    StudentSummary,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.auth.models import User
    from learnhub.auth.service import AuthService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EnrollmentError(Exception):
    """Base enrollment error."""

    def __init__(self, message: str, code: str = "enrollment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class EnrollmentNotFoundError(EnrollmentError):
    """Enrollment, course or student not found."""

    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "not_found")


class EnrollmentConflictError(EnrollmentError):
    """Duplicate enrollment or lost concurrent update."""

    def __init__(self, message: str = "Student is already enrolled in this course"):
        super().__init__(message, "conflict")


class EnrollmentValidationError(EnrollmentError):
    """Request is well-formed but violates an enrollment rule."""

    def __init__(self, message: str = "Invalid enrollment update"):
        super().__init__(message, "validation_error")


class EnrollmentForbiddenError(EnrollmentError):
    """Actor may not act on this enrollment."""

    def __init__(self, message: str = "Not allowed to access this enrollment"):
        super().__init__(message, "forbidden")


# ==============================================================================
# Enrollment Service
# ==============================================================================


class EnrollmentService:
    """Service for enrollment lifecycle and progress tracking."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: CourseService,
        auth_service: "AuthService",
        settings: Settings | None = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.auth_service = auth_service
        self.settings = settings or get_settings()
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._claim_pair = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollment_pairs
            (student_id, course_id, enrollment_id, created_at)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._release_pair = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollment_pairs
            WHERE student_id = ? AND course_id = ?
        """)
        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (id, student_id, course_id, progress, completed_modules, status,
             enrolled_at, updated_at, version)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_enrollment = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE id = ?"
        )
        self._get_enrollments_by_student = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE student_id = ?"
        )
        self._get_enrollments_by_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE course_id = ?"
        )
        self._list_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments"
        )
        self._update_enrollment = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET progress = ?, completed_modules = ?, status = ?,
                updated_at = ?, version = ?
            WHERE id = ?
            IF version = ?
        """)
        self._delete_enrollment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments
            WHERE id = ?
            IF EXISTS
        """)

    # ==========================================================================
    # Creation
    # ==========================================================================

    async def enroll(
        self,
        course_id: UUID,
        actor: Actor,
        student_id: UUID | None = None,
    ) -> Enrollment:
        """Enroll a student in a course.

        Args:
            course_id: Course to enroll in
            actor: Authenticated user making the request
            student_id: Student to enroll (defaults to the actor)

        Raises:
            EnrollmentForbiddenError: Student enrolling someone else
            EnrollmentNotFoundError: Unknown student or course
            EnrollmentConflictError: Pair already enrolled
        """
        student_id = student_id or actor.id
        if not actor.can_access_student(student_id):
            raise EnrollmentForbiddenError("Students can only enroll themselves")

        student = await self.auth_service.get_user_by_id(student_id)
        if not student:
            raise EnrollmentNotFoundError("Student not found")

        course = await self.course_service.get_course(course_id)
        if not course or not course.is_active:
            raise EnrollmentNotFoundError("Course not found")

        enrollment = Enrollment(student_id=student.id, course_id=course.id)
        await self.save_new(enrollment)

        logger.info(
            "enrollment_created",
            enrollment_id=str(enrollment.id),
            student_id=str(student.id),
            course_id=str(course.id),
            actor_id=str(actor.id),
        )
        return enrollment

    async def save_new(self, enrollment: Enrollment) -> None:
        """Claim the (student, course) pair, then insert the enrollment.

        Raises:
            EnrollmentConflictError: Pair already enrolled
        """
        claim = await self.session.aexecute(
            self._claim_pair,
            [
                enrollment.student_id,
                enrollment.course_id,
                enrollment.id,
                enrollment.enrolled_at,
            ],
        )
        if not claim.was_applied:
            logger.info(
                "enrollment_duplicate_rejected",
                student_id=str(enrollment.student_id),
                course_id=str(enrollment.course_id),
            )
            raise EnrollmentConflictError

        try:
            await self._insert(enrollment)
        except Exception:
            try:
                await self.session.aexecute(
                    self._release_pair, [enrollment.student_id, enrollment.course_id]
                )
            except Exception as release_error:
                logger.exception(
                    "enrollment_pair_release_failed",
                    student_id=str(enrollment.student_id),
                    course_id=str(enrollment.course_id),
                    error=str(release_error),
                )
            raise

    async def _insert(self, enrollment: Enrollment) -> None:
        await self.session.aexecute(
            self._insert_enrollment,
            [
                enrollment.id,
                enrollment.student_id,
                enrollment.course_id,
                enrollment.progress,
                enrollment.completed_modules,
                enrollment.status,
                enrollment.enrolled_at,
                enrollment.updated_at,
                enrollment.version,
            ],
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def _load(self, enrollment_id: UUID) -> Enrollment:
        result = await self.session.aexecute(self._get_enrollment, [enrollment_id])
        row = result.one()
        if not row:
            raise EnrollmentNotFoundError
        return Enrollment.from_row(row)

    @staticmethod
    def _check_access(enrollment: Enrollment, actor: Actor) -> None:
        if not actor.can_access_student(enrollment.student_id):
            raise EnrollmentForbiddenError

    async def get_enrollment(self, enrollment_id: UUID, actor: Actor) -> Enrollment:
        """Get a single enrollment.

        Raises:
            EnrollmentNotFoundError: If it doesn't exist
            EnrollmentForbiddenError: If it belongs to another student
        """
        enrollment = await self._load(enrollment_id)
        self._check_access(enrollment, actor)
        return enrollment

    async def list_enrollments(
        self,
        actor: Actor,
        student_id: UUID | None = None,
        course_id: UUID | None = None,
    ) -> list[Enrollment]:
        """List enrollments, newest first.

        Students only see their own records; a student filter naming another
        student is rejected.
        """
        if not actor.is_admin:
            if student_id is not None and not actor.can_access_student(student_id):
                raise EnrollmentForbiddenError
            student_id = actor.id

        if student_id is not None:
            rows = await self.session.aexecute(
                self._get_enrollments_by_student, [student_id]
            )
        elif course_id is not None:
            rows = await self.session.aexecute(
                self._get_enrollments_by_course, [course_id]
            )
        else:
            rows = await self.session.aexecute(self._list_enrollments)

        enrollments = [Enrollment.from_row(row) for row in rows]
        if course_id is not None:
            enrollments = [e for e in enrollments if e.course_id == course_id]
        enrollments.sort(key=lambda e: e.enrolled_at, reverse=True)
        return enrollments

    async def list_all_enrollments(self) -> list[Enrollment]:
        """Every enrollment, newest first (statistics)."""
        rows = await self.session.aexecute(self._list_enrollments)
        enrollments = [Enrollment.from_row(row) for row in rows]
        enrollments.sort(key=lambda e: e.enrolled_at, reverse=True)
        return enrollments

    # ==========================================================================
    # Progress Updates
    # ==========================================================================

    async def complete_module(
        self, enrollment_id: UUID, module_index: int, actor: Actor
    ) -> Enrollment:
        """Mark a module as completed (idempotent, progress untouched)."""
        return await self.update_enrollment(
            enrollment_id, actor, module_index=module_index
        )

    async def set_progress(
        self, enrollment_id: UUID, progress: float, actor: Actor
    ) -> Enrollment:
        """Set the clamped progress and derive the status."""
        return await self.update_enrollment(enrollment_id, actor, progress=progress)

    async def update_enrollment(
        self,
        enrollment_id: UUID,
        actor: Actor,
        module_index: int | None = None,
        progress: float | None = None,
    ) -> Enrollment:
        """Combined update persisted in one conditional write.

        Raises:
            EnrollmentNotFoundError: If the enrollment doesn't exist
            EnrollmentForbiddenError: If it belongs to another student
            EnrollmentValidationError: Module index out of range (when enabled)
            EnrollmentConflictError: Concurrent writers exhausted the retries
        """
        if module_index is not None and module_index < 0:
            raise EnrollmentValidationError("Module index must be non-negative")

        def mutate(enrollment: Enrollment) -> None:
            tracker.apply_update(enrollment, module_index=module_index, progress=progress)

        enrollment = await self._write_with_retry(
            enrollment_id, actor, mutate, module_index=module_index
        )
        if module_index is not None:
            logger.info(
                "module_completed",
                enrollment_id=str(enrollment.id),
                module_index=module_index,
                completed_modules=len(enrollment.completed_modules),
            )
        if progress is not None:
            logger.info(
                "enrollment_progress_set",
                enrollment_id=str(enrollment.id),
                requested=progress,
                progress=enrollment.progress,
                status=enrollment.status,
            )
        return enrollment

    async def _validate_module_index(
        self, enrollment: Enrollment, module_index: int
    ) -> None:
        course = await self.course_service.get_course(enrollment.course_id)
        if not course:
            raise EnrollmentNotFoundError("Course not found")
        if module_index >= course.module_count:
            msg = (
                f"Module index {module_index} is out of range for a course "
                f"with {course.module_count} modules"
            )
            raise EnrollmentValidationError(msg)

    async def _write_with_retry(
        self,
        enrollment_id: UUID,
        actor: Actor,
        mutate: Callable[[Enrollment], None],
        module_index: int | None = None,
    ) -> Enrollment:
        """Read, mutate and conditionally write until the version matches."""
        max_attempts = self.settings.enrollment_update_max_retries

        for attempt in range(1, max_attempts + 1):
            enrollment = await self._load(enrollment_id)
            self._check_access(enrollment, actor)

            if (
                attempt == 1
                and module_index is not None
                and self.settings.enrollment_validate_module_index
            ):
                await self._validate_module_index(enrollment, module_index)

            expected_version = enrollment.version
            mutate(enrollment)
            enrollment.version = expected_version + 1
            enrollment.updated_at = datetime.now(UTC)

            result = await self.session.aexecute(
                self._update_enrollment,
                [
                    enrollment.progress,
                    enrollment.completed_modules,
                    enrollment.status,
                    enrollment.updated_at,
                    enrollment.version,
                    enrollment.id,
                    expected_version,
                ],
            )
            if result.was_applied:
                return enrollment

            logger.warning(
                "enrollment_update_conflict",
                enrollment_id=str(enrollment_id),
                attempt=attempt,
                max_attempts=max_attempts,
            )

        raise EnrollmentConflictError(
            "Enrollment was modified concurrently, please retry"
        )

    # ==========================================================================
    # Administrative Operations
    # ==========================================================================

    async def set_status(
        self, enrollment_id: UUID, status: str, actor: Actor
    ) -> Enrollment:
        """Set status directly (admin only); the only way to pause."""
        if not actor.is_admin:
            raise EnrollmentForbiddenError("Only administrators can change status")
        if status not in (EnrollmentStatus.ACTIVE.value, EnrollmentStatus.PAUSED.value):
            raise EnrollmentValidationError(f"Status cannot be set to {status!r}")

        def mutate(enrollment: Enrollment) -> None:
            if status == EnrollmentStatus.PAUSED.value:
                enrollment.status = status
            else:
                # Resuming lands on whatever the recorded progress implies
                enrollment.status = tracker.derive_status(
                    enrollment.progress, EnrollmentStatus.ACTIVE.value
                )

        enrollment = await self._write_with_retry(enrollment_id, actor, mutate)
        logger.info(
            "enrollment_status_changed",
            enrollment_id=str(enrollment.id),
            status=enrollment.status,
            actor_id=str(actor.id),
        )
        return enrollment

    async def delete_enrollment(self, enrollment_id: UUID, actor: Actor) -> None:
        """Remove an enrollment and free its (student, course) pair."""
        if not actor.is_admin:
            raise EnrollmentForbiddenError("Only administrators can remove enrollments")

        enrollment = await self._load(enrollment_id)
        result = await self.session.aexecute(self._delete_enrollment, [enrollment.id])
        if not result.was_applied:
            raise EnrollmentNotFoundError
        await self.session.aexecute(
            self._release_pair, [enrollment.student_id, enrollment.course_id]
        )
        logger.info(
            "enrollment_deleted",
            enrollment_id=str(enrollment.id),
            actor_id=str(actor.id),
        )

    # ==========================================================================
    # Serialization
    # ==========================================================================

    async def to_responses(
        self, enrollments: list[Enrollment], populate: bool = True
    ) -> list[EnrollmentResponse]:
        """Convert enrollments, optionally populating course and student."""
        if not populate or not enrollments:
            return [self.to_response(e) for e in enrollments]

        courses = await self.course_service.get_courses_map()
        students: dict[UUID, User | None] = {}
        for student_id in {e.student_id for e in enrollments}:
            students[student_id] = await self.auth_service.get_user_by_id(student_id)

        return [
            self.to_response(e, courses.get(e.course_id), students.get(e.student_id))
            for e in enrollments
        ]

    def to_response(
        self,
        enrollment: Enrollment,
        course: Course | None = None,
        student: "User | None" = None,
    ) -> EnrollmentResponse:
        """Convert Enrollment entity to response schema."""
        return EnrollmentResponse(
            id=enrollment.id,
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            progress=enrollment.progress,
            completed_modules=[
                CompletedModuleResponse(
                    module_index=record.module_index,
                    completed_at=record.completed_at,
                )
                for record in enrollment.completed_module_records
            ],
            status=enrollment.status,
            enrolled_at=enrollment.enrolled_at,
            updated_at=enrollment.updated_at,
            course=CourseService.to_summary(course) if course else None,
            student=StudentSummary(id=student.id, name=student.name, email=student.email)
            if student
            else None,
        )

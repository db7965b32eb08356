"""Tests for EnrollmentService against a mocked Cassandra session."""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from learnhub.auth.models import User
from learnhub.config.settings import Settings
from learnhub.courses.models import Course
from learnhub.enrollments.models import Enrollment
from learnhub.enrollments.service import (
    EnrollmentConflictError,
    EnrollmentForbiddenError,
    EnrollmentNotFoundError,
    EnrollmentService,
    EnrollmentValidationError,
)


def enrollment_row(
    student_id: UUID,
    course_id: UUID | None = None,
    version: int = 1,
    progress: int = 0,
    completed_modules: dict | None = None,
    status: str = "active",
    enrolled_at: datetime | None = None,
) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        student_id=student_id,
        course_id=course_id or uuid4(),
        progress=progress,
        completed_modules=completed_modules,
        status=status,
        enrolled_at=enrolled_at or datetime(2024, 1, 1),
        updated_at=None,
        version=version,
    )


@pytest.fixture
def course() -> Course:
    return Course(
        title="JavaScript Fundamentals",
        description="Basics",
        modules=["Variables", "Functions", "Objects"],
    )


@pytest.fixture
def student(student_id: UUID) -> User:
    return User(id=student_id, email="student@test.com", name="Test Student")


@pytest.fixture
def course_service(course: Course) -> MagicMock:
    service = MagicMock()
    service.get_course = AsyncMock(return_value=course)
    service.get_courses_map = AsyncMock(return_value={course.id: course})
    return service


@pytest.fixture
def auth_service(student: User) -> MagicMock:
    service = MagicMock()
    service.get_user_by_id = AsyncMock(return_value=student)
    return service


@pytest.fixture
def settings() -> Settings:
    return Settings(enrollment_update_max_retries=3)


@pytest.fixture
def enrollment_service(
    mock_session, course_service, auth_service, settings
) -> EnrollmentService:
    return EnrollmentService(
        session=mock_session,
        keyspace="learnhub_test",
        course_service=course_service,
        auth_service=auth_service,
        settings=settings,
    )


def executed_statements(mock_session: MagicMock) -> list:
    return [c.args[0] for c in mock_session.aexecute.await_args_list]


class TestEnroll:
    @pytest.mark.asyncio
    async def test_student_enrolls_self(
        self, enrollment_service, mock_session, student_actor, course, lwt_result
    ) -> None:
        mock_session.aexecute.side_effect = [lwt_result(True), None]

        enrollment = await enrollment_service.enroll(course.id, student_actor)

        assert enrollment.student_id == student_actor.id
        assert enrollment.course_id == course.id
        assert enrollment.progress == 0
        assert enrollment.completed_modules == {}
        assert enrollment.status == "active"
        assert executed_statements(mock_session) == [
            enrollment_service._claim_pair,
            enrollment_service._insert_enrollment,
        ]

    @pytest.mark.asyncio
    async def test_duplicate_pair_conflicts(
        self, enrollment_service, mock_session, student_actor, course, lwt_result
    ) -> None:
        mock_session.aexecute.side_effect = [lwt_result(False)]

        with pytest.raises(EnrollmentConflictError):
            await enrollment_service.enroll(course.id, student_actor)

        # Nothing written beyond the rejected claim
        assert executed_statements(mock_session) == [enrollment_service._claim_pair]

    @pytest.mark.asyncio
    async def test_student_cannot_enroll_someone_else(
        self, enrollment_service, mock_session, student_actor, course
    ) -> None:
        with pytest.raises(EnrollmentForbiddenError):
            await enrollment_service.enroll(course.id, student_actor, student_id=uuid4())
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_enrolls_student(
        self, enrollment_service, mock_session, admin_actor, student, course, lwt_result
    ) -> None:
        mock_session.aexecute.side_effect = [lwt_result(True), None]

        enrollment = await enrollment_service.enroll(
            course.id, admin_actor, student_id=student.id
        )

        assert enrollment.student_id == student.id

    @pytest.mark.asyncio
    async def test_unknown_student(
        self, enrollment_service, auth_service, admin_actor, course
    ) -> None:
        auth_service.get_user_by_id.return_value = None

        with pytest.raises(EnrollmentNotFoundError, match="Student"):
            await enrollment_service.enroll(course.id, admin_actor, student_id=uuid4())

    @pytest.mark.asyncio
    async def test_unknown_course(
        self, enrollment_service, course_service, student_actor
    ) -> None:
        course_service.get_course.return_value = None

        with pytest.raises(EnrollmentNotFoundError, match="Course"):
            await enrollment_service.enroll(uuid4(), student_actor)

    @pytest.mark.asyncio
    async def test_inactive_course(
        self, enrollment_service, course, student_actor
    ) -> None:
        course.is_active = False

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.enroll(course.id, student_actor)

    @pytest.mark.asyncio
    async def test_failed_insert_releases_pair(
        self, enrollment_service, mock_session, student_actor, course, lwt_result
    ) -> None:
        mock_session.aexecute.side_effect = [
            lwt_result(True),
            RuntimeError("write timeout"),
            None,
        ]

        with pytest.raises(RuntimeError):
            await enrollment_service.enroll(course.id, student_actor)

        assert executed_statements(mock_session)[-1] is enrollment_service._release_pair

    @pytest.mark.asyncio
    async def test_failed_release_keeps_original_error(
        self, enrollment_service, mock_session, student_actor, course, lwt_result
    ) -> None:
        mock_session.aexecute.side_effect = [
            lwt_result(True),
            RuntimeError("write timeout"),
            ConnectionError("node down"),
        ]

        with pytest.raises(RuntimeError, match="write timeout"):
            await enrollment_service.enroll(course.id, student_actor)

        assert executed_statements(mock_session)[-1] is enrollment_service._release_pair


class TestUpdateEnrollment:
    @pytest.mark.asyncio
    async def test_complete_module_keeps_progress(
        self, enrollment_service, mock_session, student_actor, rows_result, lwt_result
    ) -> None:
        row = enrollment_row(student_actor.id, progress=20)
        mock_session.aexecute.side_effect = [rows_result([row]), lwt_result(True)]

        enrollment = await enrollment_service.complete_module(row.id, 0, student_actor)

        assert enrollment.has_completed_module(0)
        assert enrollment.progress == 20
        assert enrollment.version == 2
        assert enrollment.updated_at is not None

        update_args = mock_session.aexecute.await_args_list[-1].args[1]
        # (progress, completed_modules, status, updated_at, version, id, expected)
        assert update_args[0] == 20
        assert list(update_args[1]) == [0]
        assert update_args[4] == 2
        assert update_args[5] == row.id
        assert update_args[6] == 1

    @pytest.mark.asyncio
    async def test_set_progress_clamps_and_completes(
        self, enrollment_service, mock_session, student_actor, rows_result, lwt_result
    ) -> None:
        row = enrollment_row(student_actor.id)
        mock_session.aexecute.side_effect = [rows_result([row]), lwt_result(True)]

        enrollment = await enrollment_service.set_progress(row.id, 150, student_actor)

        assert enrollment.progress == 100
        assert enrollment.status == "completed"

    @pytest.mark.asyncio
    async def test_combined_update(
        self, enrollment_service, mock_session, student_actor, rows_result, lwt_result
    ) -> None:
        done_at = datetime(2024, 1, 2)
        row = enrollment_row(student_actor.id, completed_modules={0: done_at})
        mock_session.aexecute.side_effect = [rows_result([row]), lwt_result(True)]

        enrollment = await enrollment_service.update_enrollment(
            row.id, student_actor, module_index=1, progress=67
        )

        assert sorted(enrollment.completed_modules) == [0, 1]
        assert enrollment.completed_modules[0] == done_at.replace(tzinfo=UTC)
        assert enrollment.progress == 67
        assert enrollment.status == "active"

    @pytest.mark.asyncio
    async def test_missing_enrollment(
        self, enrollment_service, mock_session, student_actor, rows_result
    ) -> None:
        mock_session.aexecute.return_value = rows_result([])

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.set_progress(uuid4(), 50, student_actor)

    @pytest.mark.asyncio
    async def test_other_students_enrollment_forbidden(
        self, enrollment_service, mock_session, student_actor, rows_result
    ) -> None:
        row = enrollment_row(uuid4())
        mock_session.aexecute.return_value = rows_result([row])

        with pytest.raises(EnrollmentForbiddenError):
            await enrollment_service.set_progress(row.id, 50, student_actor)
        assert mock_session.aexecute.await_count == 1

    @pytest.mark.asyncio
    async def test_negative_module_index(
        self, enrollment_service, mock_session, student_actor
    ) -> None:
        with pytest.raises(EnrollmentValidationError):
            await enrollment_service.complete_module(uuid4(), -1, student_actor)
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_out_of_range_index_allowed_by_default(
        self, enrollment_service, mock_session, student_actor, rows_result, lwt_result
    ) -> None:
        row = enrollment_row(student_actor.id)
        mock_session.aexecute.side_effect = [rows_result([row]), lwt_result(True)]

        enrollment = await enrollment_service.complete_module(row.id, 42, student_actor)

        assert enrollment.has_completed_module(42)

    @pytest.mark.asyncio
    async def test_out_of_range_index_rejected_when_enabled(
        self,
        mock_session,
        course_service,
        auth_service,
        student_actor,
        rows_result,
    ) -> None:
        service = EnrollmentService(
            session=mock_session,
            keyspace="learnhub_test",
            course_service=course_service,
            auth_service=auth_service,
            settings=Settings(enrollment_validate_module_index=True),
        )
        row = enrollment_row(student_actor.id)
        mock_session.aexecute.return_value = rows_result([row])

        with pytest.raises(EnrollmentValidationError, match="out of range"):
            await service.complete_module(row.id, 3, student_actor)


class TestOptimisticConcurrency:
    @pytest.mark.asyncio
    async def test_retries_after_lost_race(
        self, enrollment_service, mock_session, student_actor, rows_result, lwt_result
    ) -> None:
        first = enrollment_row(student_actor.id, version=1)
        # Another writer completed module 0 in between
        second = SimpleNamespace(
            **{
                **vars(first),
                "version": 2,
                "completed_modules": {0: datetime(2024, 1, 3)},
            }
        )
        mock_session.aexecute.side_effect = [
            rows_result([first]),
            lwt_result(False),
            rows_result([second]),
            lwt_result(True),
        ]

        enrollment = await enrollment_service.complete_module(
            first.id, 1, student_actor
        )

        assert sorted(enrollment.completed_modules) == [0, 1]
        assert enrollment.version == 3
        assert mock_session.aexecute.await_args_list[-1].args[1][6] == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(
        self, enrollment_service, mock_session, student_actor, rows_result, lwt_result
    ) -> None:
        row = enrollment_row(student_actor.id)
        mock_session.aexecute.side_effect = [rows_result([row]), lwt_result(False)] * 3

        with pytest.raises(EnrollmentConflictError, match="concurrently"):
            await enrollment_service.set_progress(row.id, 50, student_actor)
        assert mock_session.aexecute.await_count == 6


class TestListEnrollments:
    @pytest.mark.asyncio
    async def test_student_sees_own_only(
        self, enrollment_service, mock_session, student_actor, rows_result
    ) -> None:
        older = enrollment_row(student_actor.id, enrolled_at=datetime(2024, 1, 1))
        newer = enrollment_row(student_actor.id, enrolled_at=datetime(2024, 2, 1))
        mock_session.aexecute.return_value = rows_result([older, newer])

        enrollments = await enrollment_service.list_enrollments(student_actor)

        assert [e.id for e in enrollments] == [newer.id, older.id]
        call = mock_session.aexecute.await_args
        assert call.args[0] is enrollment_service._get_enrollments_by_student
        assert call.args[1] == [student_actor.id]

    @pytest.mark.asyncio
    async def test_student_filtering_other_student_forbidden(
        self, enrollment_service, student_actor
    ) -> None:
        with pytest.raises(EnrollmentForbiddenError):
            await enrollment_service.list_enrollments(student_actor, student_id=uuid4())

    @pytest.mark.asyncio
    async def test_admin_filters_by_course(
        self, enrollment_service, mock_session, admin_actor, rows_result
    ) -> None:
        course_id = uuid4()
        mock_session.aexecute.return_value = rows_result(
            [enrollment_row(uuid4(), course_id), enrollment_row(uuid4(), course_id)]
        )

        enrollments = await enrollment_service.list_enrollments(
            admin_actor, course_id=course_id
        )

        assert len(enrollments) == 2
        assert (
            mock_session.aexecute.await_args.args[0]
            is enrollment_service._get_enrollments_by_course
        )

    @pytest.mark.asyncio
    async def test_student_and_course_filters_combine(
        self, enrollment_service, mock_session, student_actor, rows_result
    ) -> None:
        wanted = uuid4()
        mock_session.aexecute.return_value = rows_result(
            [
                enrollment_row(student_actor.id, wanted),
                enrollment_row(student_actor.id, uuid4()),
            ]
        )

        enrollments = await enrollment_service.list_enrollments(
            student_actor, course_id=wanted
        )

        assert [e.course_id for e in enrollments] == [wanted]


class TestAdministration:
    @pytest.mark.asyncio
    async def test_student_cannot_change_status(
        self, enrollment_service, student_actor
    ) -> None:
        with pytest.raises(EnrollmentForbiddenError):
            await enrollment_service.set_status(uuid4(), "paused", student_actor)

    @pytest.mark.asyncio
    async def test_admin_pauses(
        self, enrollment_service, mock_session, admin_actor, rows_result, lwt_result
    ) -> None:
        row = enrollment_row(uuid4(), progress=30)
        mock_session.aexecute.side_effect = [rows_result([row]), lwt_result(True)]

        enrollment = await enrollment_service.set_status(row.id, "paused", admin_actor)

        assert enrollment.status == "paused"
        assert enrollment.progress == 30

    @pytest.mark.asyncio
    async def test_resuming_finished_enrollment_stays_completed(
        self, enrollment_service, mock_session, admin_actor, rows_result, lwt_result
    ) -> None:
        row = enrollment_row(uuid4(), progress=100, status="completed")
        mock_session.aexecute.side_effect = [rows_result([row]), lwt_result(True)]

        enrollment = await enrollment_service.set_status(row.id, "active", admin_actor)

        assert enrollment.progress == 100
        assert enrollment.status == "completed"

    @pytest.mark.asyncio
    async def test_resuming_paused_enrollment(
        self, enrollment_service, mock_session, admin_actor, rows_result, lwt_result
    ) -> None:
        row = enrollment_row(uuid4(), progress=40, status="paused")
        mock_session.aexecute.side_effect = [rows_result([row]), lwt_result(True)]

        enrollment = await enrollment_service.set_status(row.id, "active", admin_actor)

        assert enrollment.status == "active"

    @pytest.mark.asyncio
    async def test_completed_cannot_be_set_directly(
        self, enrollment_service, admin_actor
    ) -> None:
        with pytest.raises(EnrollmentValidationError):
            await enrollment_service.set_status(uuid4(), "completed", admin_actor)

    @pytest.mark.asyncio
    async def test_delete_frees_pair(
        self, enrollment_service, mock_session, admin_actor, rows_result, lwt_result
    ) -> None:
        row = enrollment_row(uuid4())
        mock_session.aexecute.side_effect = [
            rows_result([row]),
            lwt_result(True),
            None,
        ]

        await enrollment_service.delete_enrollment(row.id, admin_actor)

        release = mock_session.aexecute.await_args_list[-1]
        assert release.args[0] is enrollment_service._release_pair
        assert release.args[1] == [row.student_id, row.course_id]

    @pytest.mark.asyncio
    async def test_student_cannot_delete(
        self, enrollment_service, mock_session, student_actor
    ) -> None:
        with pytest.raises(EnrollmentForbiddenError):
            await enrollment_service.delete_enrollment(uuid4(), student_actor)
        mock_session.aexecute.assert_not_awaited()


class TestResponses:
    @pytest.mark.asyncio
    async def test_populates_course_and_student(
        self, enrollment_service, course, student
    ) -> None:
        enrollment = Enrollment(student_id=student.id, course_id=course.id)
        enrollment.completed_modules = {
            2: datetime(2024, 1, 3, tzinfo=UTC),
            0: datetime(2024, 1, 1, tzinfo=UTC),
        }

        [response] = await enrollment_service.to_responses([enrollment])

        assert response.course.title == "JavaScript Fundamentals"
        assert response.student.email == "student@test.com"
        assert [m.module_index for m in response.completed_modules] == [0, 2]

        dumped = response.model_dump(by_alias=True, mode="json")
        assert dumped["completedModules"][0]["moduleIndex"] == 0
        assert "enrolledAt" in dumped
        assert dumped["course"]["title"] == "JavaScript Fundamentals"

    @pytest.mark.asyncio
    async def test_missing_course_left_empty(
        self, enrollment_service, course_service, student
    ) -> None:
        course_service.get_courses_map.return_value = {}
        enrollment = Enrollment(student_id=student.id, course_id=uuid4())

        [response] = await enrollment_service.to_responses([enrollment])

        assert response.course is None
        assert response.student is not None

    def test_to_response_without_populate(self, enrollment_service) -> None:
        enrollment = Enrollment(
            student_id=uuid4(),
            course_id=uuid4(),
            enrolled_at=datetime.now(UTC) - timedelta(days=1),
        )

        response = enrollment_service.to_response(enrollment)

        assert response.progress == 0
        assert response.completed_modules == []
        assert response.course is None

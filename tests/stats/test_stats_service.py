"""Tests for dashboard and admin statistics aggregation."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from learnhub.auth.models import User
from learnhub.config.settings import Settings
from learnhub.courses.models import Course
from learnhub.enrollments.models import Enrollment
from learnhub.enrollments.service import EnrollmentService
from learnhub.stats.service import (
    StatsService,
    StudentNotFoundError,
    average_progress,
    round_half_up,
)


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


class TestRounding:
    @pytest.mark.parametrize(
        "value,digits,expected",
        [
            (2.5, 0, 3.0),
            (3.5, 0, 4.0),
            (66.65, 1, 66.7),
            (33.333, 1, 33.3),
            (0, 0, 0.0),
        ],
    )
    def test_round_half_up(self, value: float, digits: int, expected: float) -> None:
        assert round_half_up(value, digits) == expected

    def test_average_progress(self) -> None:
        enrollments = [
            Enrollment(student_id=uuid4(), course_id=uuid4(), progress=p)
            for p in (75, 45, 20)
        ]
        # 140 / 3 = 46.67
        assert average_progress(enrollments) == 47

    def test_average_of_nothing(self) -> None:
        assert average_progress([]) == 0


@pytest.fixture
def courses() -> list[Course]:
    return [
        Course(title="JavaScript Fundamentals", description="JS", modules=["a"] * 5),
        Course(title="React Development", description="React", modules=["a"] * 5),
        Course(
            title="Retired", description="Old", modules=["a"], is_active=False
        ),
    ]


@pytest.fixture
def student(student_id) -> User:
    return User(id=student_id, email="student@test.com", name="Demo Student")


@pytest.fixture
def enrollments(student: User, courses: list[Course]) -> list[Enrollment]:
    js, react, retired = courses
    other = uuid4()
    return [
        Enrollment(
            student_id=student.id,
            course_id=js.id,
            progress=100,
            status="completed",
            enrolled_at=NOW - timedelta(days=1),
        ),
        Enrollment(
            student_id=student.id,
            course_id=react.id,
            progress=45,
            enrolled_at=NOW - timedelta(days=1, hours=2),
        ),
        Enrollment(
            student_id=student.id,
            course_id=retired.id,
            progress=10,
            enrolled_at=NOW - timedelta(days=3),
        ),
        Enrollment(
            student_id=other,
            course_id=js.id,
            progress=20,
            enrolled_at=NOW - timedelta(days=30),
        ),
    ]


@pytest.fixture
def stats_service(courses, student, enrollments) -> StatsService:
    courses_map = {c.id: c for c in courses}

    course_service = MagicMock()
    course_service.get_courses_map = AsyncMock(return_value=courses_map)

    auth_service = MagicMock()
    auth_service.get_user_by_id = AsyncMock(return_value=student)
    auth_service.list_users = AsyncMock(
        return_value=[
            student,
            User(email="other@test.com", name="Other"),
            User(email="admin@test.com", name="Admin", role="admin"),
        ]
    )

    enrollment_service = MagicMock()
    enrollment_service.list_enrollments = AsyncMock(
        return_value=[e for e in enrollments if e.student_id == student.id]
    )
    enrollment_service.list_all_enrollments = AsyncMock(return_value=enrollments)
    enrollment_service.to_responses = AsyncMock(return_value=[])

    def to_response(enrollment, course=None, student=None):
        return EnrollmentService.to_response(
            enrollment_service, enrollment, course, student
        )

    enrollment_service.to_response = MagicMock(side_effect=to_response)

    resource_service = MagicMock()
    resource_service.count_active_resources = AsyncMock(return_value=9)

    return StatsService(
        enrollment_service=enrollment_service,
        course_service=course_service,
        auth_service=auth_service,
        resource_service=resource_service,
        settings=Settings(stats_cache_ttl_seconds=60),
    )


class TestDashboard:
    @pytest.mark.asyncio
    async def test_inactive_courses_left_out(
        self, stats_service: StatsService, student_actor
    ) -> None:
        dashboard = await stats_service.get_dashboard(student_actor)

        assert dashboard.student.name == "Demo Student"
        assert [e.course.title for e in dashboard.enrollments] == [
            "JavaScript Fundamentals",
            "React Development",
        ]
        assert dashboard.stats.total_courses == 2
        assert dashboard.stats.completed_courses == 1
        # (100 + 45) / 2 = 72.5
        assert dashboard.stats.average_progress == 73

    @pytest.mark.asyncio
    async def test_dashboard_uses_actor_identity(
        self, stats_service: StatsService, student_actor
    ) -> None:
        await stats_service.get_dashboard(student_actor)

        stats_service.enrollment_service.list_enrollments.assert_awaited_once_with(
            student_actor, student_id=student_actor.id
        )

    @pytest.mark.asyncio
    async def test_unknown_student(
        self, stats_service: StatsService, student_actor
    ) -> None:
        stats_service.auth_service.get_user_by_id.return_value = None

        with pytest.raises(StudentNotFoundError):
            await stats_service.get_dashboard(student_actor)


class TestAdminStats:
    @pytest.mark.asyncio
    async def test_overview(self, stats_service: StatsService) -> None:
        stats = await stats_service.compute_admin_stats(now=NOW)

        overview = stats.overview
        assert overview.total_users == 3
        assert overview.total_students == 2
        assert overview.total_courses == 2
        assert overview.total_enrollments == 4
        assert overview.total_resources == 9
        # (100 + 45 + 10 + 20) / 4 = 43.75
        assert overview.average_progress == 44
        assert overview.overall_completion_rate == 25
        assert stats.last_updated == NOW

    @pytest.mark.asyncio
    async def test_course_stats_sorted_by_enrollments(
        self, stats_service: StatsService, courses
    ) -> None:
        stats = await stats_service.compute_admin_stats(now=NOW)

        titles = [c.course_title for c in stats.course_stats]
        assert titles[0] == "JavaScript Fundamentals"
        js = stats.course_stats[0]
        assert js.enrollment_count == 2
        assert js.completed_count == 1
        assert js.completion_rate == 50.0
        assert js.average_progress == 60

    @pytest.mark.asyncio
    async def test_recent_activity_window(self, stats_service: StatsService) -> None:
        stats = await stats_service.compute_admin_stats(now=NOW)

        activity = {a.date: a.count for a in stats.recent_activity}
        assert activity == {"2024-06-12": 1, "2024-06-14": 2}

    @pytest.mark.asyncio
    async def test_no_enrollments(self, stats_service: StatsService) -> None:
        stats_service.enrollment_service.list_all_enrollments.return_value = []

        stats = await stats_service.compute_admin_stats(now=NOW)

        assert stats.overview.average_progress == 0
        assert stats.overview.overall_completion_rate == 0
        assert stats.course_stats == []
        assert stats.recent_activity == []


class TestStatsCache:
    @pytest.mark.asyncio
    async def test_cached_payload_served(self, stats_service: StatsService) -> None:
        fresh = await stats_service.compute_admin_stats(now=NOW)
        stats_service.redis = MagicMock()
        stats_service.redis.get = AsyncMock(
            return_value=fresh.model_dump_json(by_alias=True)
        )

        stats = await stats_service.get_admin_stats()

        assert stats.overview.total_enrollments == 4
        stats_service.enrollment_service.list_all_enrollments.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_miss_computes_and_stores(self, stats_service: StatsService) -> None:
        stats_service.redis = MagicMock()
        stats_service.redis.get = AsyncMock(return_value=None)
        stats_service.redis.set = AsyncMock()

        await stats_service.get_admin_stats()

        key, payload = stats_service.redis.set.await_args.args
        assert key == "stats:admin:overview"
        assert '"totalEnrollments":4' in payload
        assert stats_service.redis.set.await_args.kwargs == {"ex": 60}

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self, stats_service: StatsService) -> None:
        stats_service.redis = MagicMock()
        stats_service.redis.get = AsyncMock()
        stats_service.redis.set = AsyncMock()

        await stats_service.get_admin_stats(refresh=True)

        stats_service.redis.get.assert_not_awaited()
        stats_service.redis.set.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redis_failure_is_not_fatal(self, stats_service: StatsService) -> None:
        stats_service.redis = MagicMock()
        stats_service.redis.get = AsyncMock(side_effect=RedisConnectionError("down"))
        stats_service.redis.set = AsyncMock(side_effect=RedisConnectionError("down"))

        stats = await stats_service.get_admin_stats()

        assert stats.overview.total_enrollments == 4

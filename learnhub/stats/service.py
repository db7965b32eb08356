"""Dashboard and statistics service.

Aggregates enrollments, courses, users and resources into the student
dashboard and the admin statistics payload. The admin payload is cached in
Redis when a client is available.
"""

from collections import Counter, defaultdict
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from redis.exceptions import RedisError

from learnhub.auth.permissions import Actor, UserRole
from learnhub.config.settings import Settings, get_settings
from learnhub.core.redis import admin_stats_cache_key
from learnhub.enrollments.models import Enrollment, EnrollmentStatus
from learnhub.enrollments.schemas import StudentSummary
from learnhub.stats.schemas import (
    AdminStatsResponse,
    CourseStats,
    DailyActivity,
    DashboardResponse,
    DashboardStats,
    StatsOverview,
)


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from learnhub.auth.service import AuthService
    from learnhub.courses.service import CourseService
    from learnhub.enrollments.service import EnrollmentService
    from learnhub.resources.service import ResourceService

logger = structlog.get_logger(__name__)

RECENT_ENROLLMENTS_LIMIT = 10
ACTIVITY_WINDOW_DAYS = 7


class StatsError(Exception):
    """Base statistics error."""

    def __init__(self, message: str, code: str = "stats_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class StudentNotFoundError(StatsError):
    """Dashboard requested for a user that no longer exists."""

    def __init__(self, message: str = "Student not found"):
        super().__init__(message, "not_found")


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a spreadsheet: halves go away from zero."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def average_progress(enrollments: list[Enrollment]) -> int:
    """Rounded mean progress, 0 for no enrollments."""
    if not enrollments:
        return 0
    total = sum(e.progress for e in enrollments)
    return int(round_half_up(total / len(enrollments)))


class StatsService:
    """Read-only aggregations over the other domains."""

    def __init__(
        self,
        enrollment_service: "EnrollmentService",
        course_service: "CourseService",
        auth_service: "AuthService",
        resource_service: "ResourceService",
        redis: "Redis | None" = None,
        settings: Settings | None = None,
    ):
        self.enrollment_service = enrollment_service
        self.course_service = course_service
        self.auth_service = auth_service
        self.resource_service = resource_service
        self.redis = redis
        self.settings = settings or get_settings()

    # ==========================================================================
    # Student Dashboard
    # ==========================================================================

    async def get_dashboard(self, actor: Actor) -> DashboardResponse:
        """Dashboard of the acting user.

        Enrollments whose course is missing or inactive are left out of both
        the listing and the aggregates.
        """
        student = await self.auth_service.get_user_by_id(actor.id)
        if not student:
            raise StudentNotFoundError

        enrollments = await self.enrollment_service.list_enrollments(
            actor, student_id=actor.id
        )
        courses = await self.course_service.get_courses_map()
        visible = [
            e
            for e in enrollments
            if e.course_id in courses and courses[e.course_id].is_active
        ]

        return DashboardResponse(
            student=StudentSummary(id=student.id, name=student.name, email=student.email),
            enrollments=[
                self.enrollment_service.to_response(e, courses[e.course_id], student)
                for e in visible
            ],
            stats=DashboardStats(
                total_courses=len(visible),
                completed_courses=sum(1 for e in visible if e.is_completed),
                average_progress=average_progress(visible),
            ),
        )

    # ==========================================================================
    # Admin Statistics
    # ==========================================================================

    async def get_admin_stats(self, refresh: bool = False) -> AdminStatsResponse:
        """Admin statistics, served from cache when fresh unless refreshed."""
        if not refresh:
            cached = await self._get_cached()
            if cached is not None:
                return cached

        stats = await self.compute_admin_stats()
        await self._set_cached(stats)
        return stats

    async def compute_admin_stats(self, now: datetime | None = None) -> AdminStatsResponse:
        """Compute the admin statistics payload from scratch."""
        now = now or datetime.now(UTC)

        users = await self.auth_service.list_users()
        courses = await self.course_service.get_courses_map()
        enrollments = await self.enrollment_service.list_all_enrollments()
        total_resources = await self.resource_service.count_active_resources()

        completed = sum(1 for e in enrollments if e.is_completed)
        overview = StatsOverview(
            total_users=len(users),
            total_students=sum(1 for u in users if u.role != UserRole.ADMIN.value),
            total_courses=sum(1 for c in courses.values() if c.is_active),
            total_enrollments=len(enrollments),
            total_resources=total_resources,
            average_progress=average_progress(enrollments),
            overall_completion_rate=int(round_half_up(completed / len(enrollments) * 100))
            if enrollments
            else 0,
        )

        recent = enrollments[:RECENT_ENROLLMENTS_LIMIT]

        return AdminStatsResponse(
            overview=overview,
            course_stats=self._course_stats(enrollments, courses),
            recent_enrollments=await self.enrollment_service.to_responses(recent),
            recent_activity=self._recent_activity(enrollments, now),
            last_updated=now,
        )

    @staticmethod
    def _course_stats(enrollments: list[Enrollment], courses: dict) -> list[CourseStats]:
        by_course: dict[UUID, list[Enrollment]] = defaultdict(list)
        for enrollment in enrollments:
            by_course[enrollment.course_id].append(enrollment)

        stats = []
        for course_id, items in by_course.items():
            course = courses.get(course_id)
            if course is None:
                continue
            completed = sum(
                1 for e in items if e.status == EnrollmentStatus.COMPLETED.value
            )
            stats.append(
                CourseStats(
                    course_id=course_id,
                    course_title=course.title,
                    enrollment_count=len(items),
                    average_progress=average_progress(items),
                    completed_count=completed,
                    completion_rate=round_half_up(completed / len(items) * 100, 1),
                )
            )

        stats.sort(key=lambda s: s.enrollment_count, reverse=True)
        return stats

    @staticmethod
    def _recent_activity(
        enrollments: list[Enrollment], now: datetime
    ) -> list[DailyActivity]:
        since = now - timedelta(days=ACTIVITY_WINDOW_DAYS)
        per_day = Counter(
            e.enrolled_at.astimezone(UTC).strftime("%Y-%m-%d")
            for e in enrollments
            if e.enrolled_at >= since
        )
        return [DailyActivity(date=day, count=per_day[day]) for day in sorted(per_day)]

    # ==========================================================================
    # Cache
    # ==========================================================================

    async def _get_cached(self) -> AdminStatsResponse | None:
        if not self.redis:
            return None
        try:
            raw = await self.redis.get(admin_stats_cache_key())
        except RedisError as e:
            logger.warning("stats_cache_read_failed", error=str(e))
            return None
        if raw is None:
            return None
        logger.debug("stats_cache_hit")
        return AdminStatsResponse.model_validate_json(raw)

    async def _set_cached(self, stats: AdminStatsResponse) -> None:
        if not self.redis:
            return
        try:
            await self.redis.set(
                admin_stats_cache_key(),
                stats.model_dump_json(by_alias=True),
                ex=self.settings.stats_cache_ttl_seconds,
            )
        except RedisError as e:
            logger.warning("stats_cache_write_failed", error=str(e))


"""Pydantic schemas for dashboards and statistics."""

from datetime import datetime
from uuid import UUID

from learnhub.core.schemas import CamelModel
from learnhub.enrollments.schemas import EnrollmentResponse, StudentSummary


# ==============================================================================
# Student Dashboard
# ==============================================================================


class DashboardStats(CamelModel):
    """Aggregates over the student's enrollments."""

    total_courses: int
    completed_courses: int
    average_progress: int


class DashboardResponse(CamelModel):
    """Current student's dashboard."""

    student: StudentSummary
    enrollments: list[EnrollmentResponse]
    stats: DashboardStats


# ==============================================================================
# Admin Statistics
# ==============================================================================


class StatsOverview(CamelModel):
    """Platform-wide counters."""

    total_users: int
    total_students: int
    total_courses: int
    total_enrollments: int
    total_resources: int
    average_progress: int
    overall_completion_rate: int


class CourseStats(CamelModel):
    """Per-course enrollment aggregates."""

    course_id: UUID
    course_title: str
    enrollment_count: int
    average_progress: int
    completed_count: int
    completion_rate: float


class DailyActivity(CamelModel):
    """Enrollments created on one day."""

    date: str
    count: int


class AdminStatsResponse(CamelModel):
    """Admin statistics payload."""

    overview: StatsOverview
    course_stats: list[CourseStats]
    recent_enrollments: list[EnrollmentResponse]
    recent_activity: list[DailyActivity]
    last_updated: datetime

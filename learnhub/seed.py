"""Development demo data.

Creates an admin, a demo student, three demo courses with resources and the
student's enrollments in them. Runs only in the development environment and
only when the catalog is still empty.

Usage:
    python -m learnhub.seed
"""

import asyncio
import math
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID

import structlog

from learnhub.auth.models import User
from learnhub.auth.permissions import UserRole
from learnhub.auth.schemas import AdminCreateUserRequest
from learnhub.auth.service import AuthService
from learnhub.config.settings import Settings, get_settings
from learnhub.core.database import init_async_cassandra, shutdown_async_cassandra
from learnhub.core.logging import configure_structlog
from learnhub.courses.schemas import CreateCourseRequest
from learnhub.courses.service import CourseService
from learnhub.enrollments import tracker
from learnhub.enrollments.models import Enrollment
from learnhub.enrollments.service import EnrollmentService
from learnhub.resources.models import ResourceType
from learnhub.resources.schemas import ResourceInput
from learnhub.resources.service import ResourceService


logger = structlog.get_logger(__name__)


DEMO_COURSES = [
    {
        "title": "JavaScript Fundamentals",
        "description": "Learn the basics of JavaScript programming language",
        "modules": [
            "Variables & Data Types",
            "Functions",
            "Objects & Arrays",
            "DOM Manipulation",
            "Event Handling",
        ],
    },
    {
        "title": "React Development",
        "description": "Build modern web applications with React framework",
        "modules": [
            "Components",
            "State Management",
            "React Hooks",
            "Routing",
            "Context API",
        ],
    },
    {
        "title": "Node.js Backend",
        "description": "Create server-side applications with Node.js",
        "modules": [
            "Express Setup",
            "Database Integration",
            "API Development",
            "Authentication",
            "Deployment",
        ],
    },
]

DEMO_PROGRESS = [75, 45, 20]

# Modules of each course that get sample resources
DEMO_RESOURCE_MODULES = 3


class SeedNotAllowedError(Exception):
    """Seeding requested outside the development environment."""


def completed_module_count(progress: int, module_count: int) -> int:
    """Modules a demo enrollment at ``progress`` percent has completed."""
    return math.floor(progress / 100 * module_count)


def build_demo_enrollment(
    student_id: UUID,
    course_id: UUID,
    module_count: int,
    progress: int,
    weeks_ago: int,
    now: datetime,
) -> Enrollment:
    """Demo enrollment whose completions are spaced one day apart."""
    enrollment = Enrollment(
        student_id=student_id,
        course_id=course_id,
        enrolled_at=now - timedelta(weeks=weeks_ago),
    )
    completed = completed_module_count(progress, module_count)
    for index in range(completed):
        tracker.complete_module(
            enrollment, index, now=now - timedelta(days=completed - index)
        )
    tracker.set_progress(enrollment, progress)
    return enrollment


def demo_resources(module_titles: list[str]) -> list[ResourceInput]:
    """Video, PDF and link resources for the first modules of a course."""
    resources = []
    for index, title in enumerate(module_titles[:DEMO_RESOURCE_MODULES]):
        slug = title.lower().replace(" & ", "-").replace(" ", "-")
        resources.extend(
            [
                ResourceInput(
                    title=f"{title} - Video Lesson",
                    url=f"https://videos.learnhub.dev/{slug}",
                    type=ResourceType.VIDEO,
                    description=f"Walkthrough of {title}",
                    module_index=index,
                    order=0,
                ),
                ResourceInput(
                    title=f"{title} - Slides",
                    url=f"https://files.learnhub.dev/{slug}.pdf",
                    type=ResourceType.PDF,
                    description=f"Slides for {title}",
                    module_index=index,
                    order=1,
                ),
                ResourceInput(
                    title=f"{title} - Further Reading",
                    url=f"https://learnhub.dev/reading/{slug}",
                    type=ResourceType.LINK,
                    description=f"Extra reading about {title}",
                    module_index=index,
                    order=2,
                ),
            ]
        )
    return resources


async def _ensure_user(
    auth_service: AuthService,
    email: str,
    name: str,
    password: str,
    role: UserRole,
) -> User:
    user = await auth_service.get_user_by_email(email)
    if user:
        return user
    return await auth_service.admin_create_user(
        AdminCreateUserRequest(email=email, name=name, password=password, role=role)
    )


async def seed_demo_data(
    session,
    keyspace: str,
    settings: Settings | None = None,
) -> bool:
    """Create demo data if the catalog is empty.

    Returns:
        True when data was created, False when courses already existed

    Raises:
        SeedNotAllowedError: Outside the development environment
    """
    settings = settings or get_settings()
    if not settings.is_development:
        raise SeedNotAllowedError(
            f"Demo data is only created in development, not {settings.environment}"
        )

    auth_service = AuthService(session=session, keyspace=keyspace)
    course_service = CourseService(session=session, keyspace=keyspace)
    resource_service = ResourceService(
        session=session, keyspace=keyspace, course_service=course_service
    )
    enrollment_service = EnrollmentService(
        session=session,
        keyspace=keyspace,
        course_service=course_service,
        auth_service=auth_service,
        settings=settings,
    )

    if await course_service.list_courses(include_inactive=True):
        logger.info("seed_skipped", reason="courses_exist")
        return False

    admin = await _ensure_user(
        auth_service,
        settings.seed_admin_email,
        "Demo Admin",
        settings.seed_admin_password,
        UserRole.ADMIN,
    )
    student = await _ensure_user(
        auth_service,
        settings.seed_student_email,
        "Demo Student",
        settings.seed_student_password,
        UserRole.STUDENT,
    )

    now = datetime.now(UTC)
    course_count = len(DEMO_COURSES)
    demo = zip(DEMO_COURSES, DEMO_PROGRESS, strict=True)
    for i, (course_data, progress) in enumerate(demo):
        course = await course_service.create_course(
            CreateCourseRequest(**course_data), created_by=admin.id
        )
        await resource_service.bulk_create_resources(
            course.id, demo_resources(course.modules)
        )
        enrollment = build_demo_enrollment(
            student.id,
            course.id,
            course.module_count,
            progress,
            weeks_ago=course_count - i,
            now=now,
        )
        await enrollment_service.save_new(enrollment)

    logger.info(
        "seed_completed",
        courses=course_count,
        admin=admin.email,
        student=student.email,
    )
    return True


async def run_seed() -> int:
    """Connect, seed, disconnect. Returns a process exit code."""
    settings = get_settings()
    if not settings.is_development:
        logger.error("seed_refused", environment=settings.environment)
        return 1

    session = await init_async_cassandra()
    try:
        await seed_demo_data(session, settings.cassandra_keyspace, settings)
    finally:
        await shutdown_async_cassandra()
    return 0


def main() -> None:
    settings = get_settings()
    configure_structlog(settings, log_dir=Path(settings.log_dir))
    sys.exit(asyncio.run(run_seed()))


if __name__ == "__main__":
    main()

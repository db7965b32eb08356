"""Database models for course enrollments.

Cassandra table definitions for:
- Enrollments: one student's progress in one course
- Enrollment pairs: claim table enforcing one enrollment per (student, course)

Enrollment writes are conditional on ``version`` so that concurrent
read-modify-write cycles cannot silently overwrite each other.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EnrollmentStatus(str, Enum):
    """Course enrollment status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"  # Only reachable through the admin status endpoint


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# completed_modules: module index -> completion time
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    id UUID PRIMARY KEY,
    student_id UUID,
    course_id UUID,
    progress INT,
    completed_modules MAP<INT, TIMESTAMP>,
    status TEXT,
    enrolled_at TIMESTAMP,
    updated_at TIMESTAMP,
    version INT
)
"""

ENROLLMENTS_STUDENT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS enrollments_student_id_idx
ON {keyspace}.enrollments (student_id)
"""

ENROLLMENTS_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS enrollments_course_id_idx
ON {keyspace}.enrollments (course_id)
"""

# Claimed with INSERT ... IF NOT EXISTS before an enrollment is created
ENROLLMENT_PAIRS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollment_pairs (
    student_id UUID,
    course_id UUID,
    enrollment_id UUID,
    created_at TIMESTAMP,
    PRIMARY KEY ((student_id, course_id))
)
"""

ENROLLMENTS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_STUDENT_INDEX_CQL,
    ENROLLMENTS_COURSE_INDEX_CQL,
    ENROLLMENT_PAIRS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class CompletedModule:
    """A (module index, completion time) record."""

    def __init__(self, module_index: int, completed_at: datetime):
        self.module_index = module_index
        self.completed_at = ensure_utc_aware(completed_at)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompletedModule):
            return NotImplemented
        return (self.module_index, self.completed_at) == (
            other.module_index,
            other.completed_at,
        )

    def __hash__(self) -> int:
        return hash((self.module_index, self.completed_at))

    def __repr__(self) -> str:
        return f"<CompletedModule {self.module_index} at {self.completed_at}>"


class Enrollment:
    """Course enrollment entity.

    Attributes:
        id: Unique identifier (UUID)
        student_id: Enrolled user
        course_id: Course being followed
        progress: Integer percentage, always within 0..100
        completed_modules: Module index -> completion timestamp
        status: active, completed or paused
        enrolled_at: Creation timestamp, never changes
        updated_at: Last write timestamp
        version: Incremented on every write, guards conditional updates
    """

    def __init__(
        self,
        student_id: UUID,
        course_id: UUID,
        id: UUID | None = None,
        progress: int = 0,
        completed_modules: dict[int, datetime] | None = None,
        status: str = EnrollmentStatus.ACTIVE.value,
        enrolled_at: datetime | None = None,
        updated_at: datetime | None = None,
        version: int = 1,
    ):
        self.id = id or uuid4()
        self.student_id = student_id
        self.course_id = course_id
        self.progress = progress
        self.completed_modules = {
            int(index): ensure_utc_aware(at)
            for index, at in (completed_modules or {}).items()
        }
        self.status = status
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)
        self.version = version

    @property
    def is_completed(self) -> bool:
        """Check if course is completed."""
        return self.status == EnrollmentStatus.COMPLETED.value

    @property
    def completed_module_records(self) -> list[CompletedModule]:
        """Completion records ordered by module index."""
        return [
            CompletedModule(index, at)
            for index, at in sorted(self.completed_modules.items())
        ]

    def has_completed_module(self, module_index: int) -> bool:
        return module_index in self.completed_modules

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            id=row.id,
            student_id=row.student_id,
            course_id=row.course_id,
            progress=row.progress or 0,
            # Cassandra returns None for an empty map
            completed_modules=dict(row.completed_modules or {}),
            status=row.status or EnrollmentStatus.ACTIVE.value,
            enrolled_at=row.enrolled_at,
            updated_at=row.updated_at,
            version=row.version or 1,
        )

    def __repr__(self) -> str:
        return (
            f"<Enrollment {self.id} student={self.student_id} "
            f"course={self.course_id} {self.progress}% {self.status}>"
        )

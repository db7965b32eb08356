"""Database models for course resources.

Resources are links (videos, PDFs, documents ...) attached to one module of a
course, ordered within the module by ``order``.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class ResourceType(str, Enum):
    """Kind of linked material."""

    VIDEO = "video"
    PDF = "pdf"
    LINK = "link"
    DOCUMENT = "document"
    IMAGE = "image"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

RESOURCE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.resources (
    id UUID PRIMARY KEY,
    course_id UUID,
    title TEXT,
    url TEXT,
    type TEXT,
    description TEXT,
    module_index INT,
    sort_order INT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

RESOURCE_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS resources_course_id_idx
ON {keyspace}.resources (course_id)
"""

RESOURCES_TABLES_CQL = [
    RESOURCE_TABLE_CQL,
    RESOURCE_COURSE_INDEX_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Resource:
    """Resource entity.

    ``order`` is stored in the ``sort_order`` column since ORDER is reserved
    in CQL.
    """

    def __init__(
        self,
        id: UUID | None = None,
        course_id: UUID | None = None,
        title: str = "",
        url: str = "",
        type: str = ResourceType.LINK.value,
        description: str = "",
        module_index: int = 0,
        order: int = 0,
        is_active: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.title = title.strip()
        self.url = url
        self.type = type
        self.description = description or ""
        self.module_index = module_index or 0
        self.order = order or 0
        self.is_active = is_active
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    @classmethod
    def from_row(cls, row: Any) -> "Resource":
        """Create Resource instance from Cassandra row."""
        return cls(
            id=row.id,
            course_id=row.course_id,
            title=row.title or "",
            url=row.url or "",
            type=row.type or ResourceType.LINK.value,
            description=row.description or "",
            module_index=row.module_index or 0,
            order=row.sort_order or 0,
            is_active=row.is_active if row.is_active is not None else True,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Resource {self.title!r} module={self.module_index}>"

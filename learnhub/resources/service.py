"""Course resource service layer.

Business logic for:
- Listing active resources of a course or module
- Single and bulk creation (course must exist)
- Soft delete (public API) and hard delete (admin API)
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.courses.models import Course
from learnhub.resources.models import Resource
from learnhub.resources.schemas import (
    CreateResourceRequest,
    ResourceCourse,
    ResourceInput,
    ResourceResponse,
    UpdateResourceRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.courses.service import CourseService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ResourceError(Exception):
    """Base resource error."""

    def __init__(self, message: str, code: str = "resource_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ResourceNotFoundError(ResourceError):
    """Resource not found."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, "not_found")


class ResourceCourseNotFoundError(ResourceError):
    """Referenced course does not exist."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "not_found")


# ==============================================================================
# Resource Service
# ==============================================================================


class ResourceService:
    """Service for course resource links."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert_resource = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.resources
            (id, course_id, title, url, type, description, module_index,
             sort_order, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_resource = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.resources WHERE id = ?"
        )
        self._get_resources_by_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.resources WHERE course_id = ?"
        )
        self._list_resources = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.resources"
        )
        self._deactivate_resource = self.session.prepare(f"""
            UPDATE {self.keyspace}.resources
            SET is_active = ?, updated_at = ?
            WHERE id = ?
        """)
        self._delete_resource = self.session.prepare(
            f"DELETE FROM {self.keyspace}.resources WHERE id = ?"
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_resource(self, resource_id: UUID) -> Resource | None:
        """Get resource by ID."""
        result = await self.session.aexecute(self._get_resource, [resource_id])
        row = result.one()
        return Resource.from_row(row) if row else None

    async def list_resources(
        self,
        course_id: UUID | None = None,
        module_index: int | None = None,
    ) -> list[Resource]:
        """List active resources sorted by (module index, order)."""
        if course_id is not None:
            rows = await self.session.aexecute(
                self._get_resources_by_course, [course_id]
            )
        else:
            rows = await self.session.aexecute(self._list_resources)

        resources = [Resource.from_row(row) for row in rows]
        resources = [
            r
            for r in resources
            if r.is_active and (module_index is None or r.module_index == module_index)
        ]
        resources.sort(key=lambda r: (r.module_index, r.order))
        return resources

    async def list_all_resources(self) -> list[Resource]:
        """List every resource, active or not, newest first (admin)."""
        rows = await self.session.aexecute(self._list_resources)
        resources = [Resource.from_row(row) for row in rows]
        resources.sort(key=lambda r: r.created_at, reverse=True)
        return resources

    async def count_active_resources(self) -> int:
        rows = await self.session.aexecute(self._list_resources)
        return sum(1 for row in rows if Resource.from_row(row).is_active)

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def _require_course(self, course_id: UUID) -> Course:
        course = await self.course_service.get_course(course_id)
        if not course:
            raise ResourceCourseNotFoundError
        return course

    async def _insert(self, resource: Resource) -> None:
        await self.session.aexecute(
            self._insert_resource,
            [
                resource.id,
                resource.course_id,
                resource.title,
                resource.url,
                resource.type,
                resource.description,
                resource.module_index,
                resource.order,
                resource.is_active,
                resource.created_at,
                resource.updated_at,
            ],
        )

    @staticmethod
    def _build(course_id: UUID, data: ResourceInput) -> Resource:
        return Resource(
            course_id=course_id,
            title=data.title,
            url=data.url,
            type=data.type.value,
            description=data.description,
            module_index=data.module_index,
            order=data.order,
        )

    async def create_resource(self, data: CreateResourceRequest) -> Resource:
        """Create a resource.

        Raises:
            ResourceCourseNotFoundError: If the course doesn't exist
        """
        await self._require_course(data.course_id)
        resource = self._build(data.course_id, data)
        await self._insert(resource)
        logger.info(
            "resource_created",
            resource_id=str(resource.id),
            course_id=str(resource.course_id),
            module_index=resource.module_index,
        )
        return resource

    async def bulk_create_resources(
        self, course_id: UUID, items: list[ResourceInput]
    ) -> list[Resource]:
        """Create several resources for one course.

        Raises:
            ResourceCourseNotFoundError: If the course doesn't exist
        """
        await self._require_course(course_id)
        created = []
        for item in items:
            resource = self._build(course_id, item)
            await self._insert(resource)
            created.append(resource)
        logger.info(
            "resources_bulk_created", course_id=str(course_id), count=len(created)
        )
        return created

    async def update_resource(
        self, resource_id: UUID, data: UpdateResourceRequest
    ) -> Resource:
        """Apply a partial update.

        Raises:
            ResourceNotFoundError: If resource doesn't exist
        """
        resource = await self.get_resource(resource_id)
        if not resource:
            raise ResourceNotFoundError

        if data.title is not None:
            resource.title = data.title
        if data.url is not None:
            resource.url = data.url
        if data.type is not None:
            resource.type = data.type.value
        if data.description is not None:
            resource.description = data.description
        if data.module_index is not None:
            resource.module_index = data.module_index
        if data.order is not None:
            resource.order = data.order
        resource.updated_at = datetime.now(UTC)

        await self._insert(resource)
        logger.info("resource_updated", resource_id=str(resource.id))
        return resource

    async def delete_resource(self, resource_id: UUID) -> None:
        """Soft delete a resource.

        Raises:
            ResourceNotFoundError: If resource doesn't exist
        """
        resource = await self.get_resource(resource_id)
        if not resource:
            raise ResourceNotFoundError

        await self.session.aexecute(
            self._deactivate_resource,
            [False, datetime.now(UTC), resource_id],
        )
        logger.info("resource_deactivated", resource_id=str(resource_id))

    async def hard_delete_resource(self, resource_id: UUID) -> None:
        """Permanently delete a resource (admin).

        Raises:
            ResourceNotFoundError: If resource doesn't exist
        """
        resource = await self.get_resource(resource_id)
        if not resource:
            raise ResourceNotFoundError

        await self.session.aexecute(self._delete_resource, [resource_id])
        logger.info("resource_deleted", resource_id=str(resource_id))

    # ==========================================================================
    # Serialization
    # ==========================================================================

    async def to_responses(self, resources: list[Resource]) -> list[ResourceResponse]:
        """Convert resources to responses with the course title populated."""
        courses = await self.course_service.get_courses_map() if resources else {}
        return [self.to_response(r, courses.get(r.course_id)) for r in resources]

    @staticmethod
    def to_response(
        resource: Resource, course: Course | None = None
    ) -> ResourceResponse:
        """Convert Resource entity to response schema."""
        return ResourceResponse(
            id=resource.id,
            course_id=resource.course_id,
            course=ResourceCourse(id=course.id, title=course.title) if course else None,
            title=resource.title,
            url=resource.url,
            type=resource.type,
            description=resource.description,
            module_index=resource.module_index,
            order=resource.order,
            is_active=resource.is_active,
            created_at=resource.created_at,
            updated_at=resource.updated_at,
        )

"""Course resource API endpoints.

Provides routes for:
- Listing resources of a course or module (authenticated)
- Create, update, soft delete (admin)
- Admin listing, bulk creation and hard delete under /v1/admin/resources
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from learnhub.auth.dependencies import AdminUser, CurrentUser
from learnhub.core.schemas import MessageResponse
from learnhub.resources.dependencies import ResourceServiceDep, handle_resource_error
from learnhub.resources.schemas import (
    BulkCreateResourcesRequest,
    CreateResourceRequest,
    ResourceResponse,
    UpdateResourceRequest,
)
from learnhub.resources.service import ResourceError


router = APIRouter(prefix="/v1/resources", tags=["resources"])
admin_router = APIRouter(prefix="/v1/admin/resources", tags=["admin", "resources"])


@router.get("", response_model=list[ResourceResponse])
async def list_resources(
    _user: CurrentUser,
    resource_service: ResourceServiceDep,
    course_id: Annotated[UUID | None, Query(alias="courseId")] = None,
    module_index: Annotated[int | None, Query(alias="moduleIndex", ge=0)] = None,
) -> list[ResourceResponse]:
    """List active resources, ordered by module and position."""
    resources = await resource_service.list_resources(course_id, module_index)
    return await resource_service.to_responses(resources)


@router.post(
    "",
    response_model=ResourceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_resource(
    data: CreateResourceRequest,
    _admin: AdminUser,
    resource_service: ResourceServiceDep,
) -> ResourceResponse:
    """Create a resource (ADMIN only)."""
    try:
        resource = await resource_service.create_resource(data)
    except ResourceError as e:
        raise handle_resource_error(e) from e
    return (await resource_service.to_responses([resource]))[0]


@router.put("/{resource_id}", response_model=ResourceResponse)
async def update_resource(
    resource_id: UUID,
    data: UpdateResourceRequest,
    _admin: AdminUser,
    resource_service: ResourceServiceDep,
) -> ResourceResponse:
    """Update a resource (ADMIN only)."""
    try:
        resource = await resource_service.update_resource(resource_id, data)
    except ResourceError as e:
        raise handle_resource_error(e) from e
    return (await resource_service.to_responses([resource]))[0]


@router.delete("/{resource_id}", response_model=MessageResponse)
async def delete_resource(
    resource_id: UUID,
    _admin: AdminUser,
    resource_service: ResourceServiceDep,
) -> MessageResponse:
    """Soft delete a resource (ADMIN only)."""
    try:
        await resource_service.delete_resource(resource_id)
    except ResourceError as e:
        raise handle_resource_error(e) from e
    return MessageResponse(message="Resource deleted successfully")


# ==============================================================================
# Admin Endpoints
# ==============================================================================


@admin_router.get("", response_model=list[ResourceResponse])
async def admin_list_resources(
    _admin: AdminUser,
    resource_service: ResourceServiceDep,
) -> list[ResourceResponse]:
    """List every resource, including inactive ones, newest first."""
    resources = await resource_service.list_all_resources()
    return await resource_service.to_responses(resources)


@admin_router.post(
    "",
    response_model=list[ResourceResponse],
    status_code=status.HTTP_201_CREATED,
)
async def admin_bulk_create_resources(
    data: BulkCreateResourcesRequest,
    _admin: AdminUser,
    resource_service: ResourceServiceDep,
) -> list[ResourceResponse]:
    """Create several resources for a course in one call."""
    try:
        resources = await resource_service.bulk_create_resources(
            data.course_id, data.resources
        )
    except ResourceError as e:
        raise handle_resource_error(e) from e
    return await resource_service.to_responses(resources)


@admin_router.delete("/{resource_id}", response_model=MessageResponse)
async def admin_delete_resource(
    resource_id: UUID,
    _admin: AdminUser,
    resource_service: ResourceServiceDep,
) -> MessageResponse:
    """Permanently delete a resource."""
    try:
        await resource_service.hard_delete_resource(resource_id)
    except ResourceError as e:
        raise handle_resource_error(e) from e
    return MessageResponse(message="Resource deleted successfully")

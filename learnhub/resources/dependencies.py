"""FastAPI dependencies for course resources."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from learnhub.resources.service import ResourceError, ResourceService


_resource_service_getter: Callable[[], ResourceService] | None = None


def set_resource_service_getter(getter: Callable[[], ResourceService]) -> None:
    """Set the resource service getter function."""
    global _resource_service_getter  # noqa: PLW0603 - Required for DI pattern
    _resource_service_getter = getter


def get_resource_service() -> ResourceService:
    """Get ResourceService instance from app state."""
    if _resource_service_getter is None:
        msg = "ResourceService not configured"
        raise RuntimeError(msg)
    return _resource_service_getter()


ResourceServiceDep = Annotated[ResourceService, Depends(get_resource_service)]


def handle_resource_error(error: ResourceError) -> HTTPException:
    """Convert resource errors to HTTP exceptions."""
    status_map = {
        "not_found": status.HTTP_404_NOT_FOUND,
        "validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )

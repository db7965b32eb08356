"""FastAPI dependencies for dashboards and statistics."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from learnhub.stats.service import StatsError, StatsService


_stats_service_getter: Callable[[], StatsService] | None = None


def set_stats_service_getter(getter: Callable[[], StatsService]) -> None:
    """Set the stats service getter function."""
    global _stats_service_getter  # noqa: PLW0603 - Required for DI pattern
    _stats_service_getter = getter


def get_stats_service() -> StatsService:
    """Get StatsService instance from app state."""
    if _stats_service_getter is None:
        msg = "StatsService not configured"
        raise RuntimeError(msg)
    return _stats_service_getter()


StatsServiceDep = Annotated[StatsService, Depends(get_stats_service)]


def handle_stats_error(error: StatsError) -> HTTPException:
    """Convert stats errors to HTTP exceptions."""
    status_map = {
        "not_found": status.HTTP_404_NOT_FOUND,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )

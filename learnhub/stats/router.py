"""Dashboard and statistics API endpoints."""

from fastapi import APIRouter

from learnhub.auth.dependencies import AdminUser, CurrentActor
from learnhub.stats.dependencies import StatsServiceDep, handle_stats_error
from learnhub.stats.schemas import AdminStatsResponse, DashboardResponse
from learnhub.stats.service import StatsError


router = APIRouter(prefix="/v1", tags=["stats"])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    actor: CurrentActor,
    stats_service: StatsServiceDep,
) -> DashboardResponse:
    """Enrollments and progress summary of the current student."""
    try:
        return await stats_service.get_dashboard(actor)
    except StatsError as e:
        raise handle_stats_error(e) from e


@router.get("/admin/stats", response_model=AdminStatsResponse)
async def get_admin_stats(
    _admin: AdminUser,
    stats_service: StatsServiceDep,
    refresh: bool = False,
) -> AdminStatsResponse:
    """Platform statistics (ADMIN only).

    Served from cache when available; ``refresh=true`` recomputes.
    """
    return await stats_service.get_admin_stats(refresh=refresh)

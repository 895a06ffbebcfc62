"""
Aggregates router — admin-only rollup maintenance.

POST /api/analytics/aggregates/backfill  — recompute rollups for a date range
POST /api/analytics/aggregates/sweep     — roll up activity since the last watermark

Both act on the caller's organization and drop its cached analytics.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.dependencies import get_analytics_cache, require_admin
from app.models.user import User
from app.schemas.common import ERROR_RESPONSES
from app.schemas.aggregation import (
    BackfillRequest,
    BackfillResponse,
    SweepOrganizationResult,
    SweepResponse,
)
from app.services.aggregation import backfill, periodic_sweep
from app.services.cache import AnalyticsCache

router = APIRouter(prefix="/api/analytics/aggregates", tags=["aggregates"], responses=ERROR_RESPONSES)


@router.post(
    "/backfill",
    response_model=BackfillResponse,
    summary="Recompute daily rollups for a date range",
)
def run_backfill(
    payload: BackfillRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_analytics_cache),
):
    result = backfill(db, admin.organization_id, payload.from_date, payload.to_date)
    invalidated = cache.invalidate_organization(admin.organization_id)
    return BackfillResponse(
        organization_id=result.organization_id,
        user_days=result.user_days,
        batches=result.batches,
        invalidated_cache_entries=invalidated,
    )


@router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Incremental rollup sweep",
)
def run_sweep(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_analytics_cache),
):
    """
    Processes the caller's organization if it had any check-in or shoutout
    in the last day; otherwise returns an empty list.
    """
    results = periodic_sweep(db, organization_id=admin.organization_id)
    invalidated = sum(cache.invalidate_organization(r.organization_id) for r in results)
    return SweepResponse(
        organizations=[
            SweepOrganizationResult(organization_id=r.organization_id, user_days=r.user_days)
            for r in results
        ],
        invalidated_cache_entries=invalidated,
    )

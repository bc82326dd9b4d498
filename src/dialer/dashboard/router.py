"""
Dashboard API router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dialer.dashboard.schemas import CallStats
from dialer.dashboard.service import StatsAggregator
from dialer.shared.database import get_db_session

router = APIRouter(tags=["dashboard"])


def get_stats_aggregator(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> StatsAggregator:
    return StatsAggregator(session)


@router.get(
    "/stats",
    response_model=CallStats,
    summary="Get call statistics",
    description="Total, answered and failed call counts plus a per-department breakdown.",
)
async def get_stats(
    aggregator: Annotated[StatsAggregator, Depends(get_stats_aggregator)],
) -> CallStats:
    return await aggregator.compute_stats()

"""
Dashboard statistics service.

Counts are taken from one grouped query so the total, the status classes
and the department breakdown describe the same snapshot of the table.
"""

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dialer.calls.models import CallRecord
from dialer.dashboard.schemas import CallStats
from dialer.shared.exceptions import StorageError
from dialer.shared.logging import get_logger

logger = get_logger(__name__)

ANSWERED_STATUSES = frozenset({"completed", "answered"})
FAILED_STATUSES = frozenset({"failed", "busy", "no-answer", "canceled"})


def _count_in(statuses: frozenset[str]):
    return func.coalesce(
        func.sum(case((CallRecord.status.in_(sorted(statuses)), 1), else_=0)),
        0,
    )


class StatsAggregator:
    """Computes summary statistics over the call table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def compute_stats(self) -> CallStats:
        """Compute totals, status-class counts and the per-department breakdown.

        Records without a department count toward the totals but are left
        out of by_department.

        Raises:
            StorageError: If the query fails.
        """
        query = select(
            CallRecord.department,
            func.count(CallRecord.id).label("total"),
            _count_in(ANSWERED_STATUSES).label("answered"),
            _count_in(FAILED_STATUSES).label("failed"),
        ).group_by(CallRecord.department)

        try:
            rows = (await self._session.execute(query)).all()
        except SQLAlchemyError as exc:
            raise StorageError(
                message="compute_stats failed",
                operation="compute_stats",
            ) from exc

        total = answered = failed = 0
        by_department: dict[str, int] = {}
        for row in rows:
            total += row.total
            answered += row.answered
            failed += row.failed
            if row.department is not None and row.total > 0:
                by_department[row.department] = row.total

        logger.debug(
            "Computed call stats",
            extra={"total": total, "answered": answered, "failed": failed},
        )
        return CallStats(
            total=total,
            answered=answered,
            failed=failed,
            by_department=by_department,
        )

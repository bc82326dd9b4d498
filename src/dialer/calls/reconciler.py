"""
Merge policy for folding provider webhook events into a call record.

Webhook events are partial, unordered and may be delivered more than once.
Each mergeable field has one rule:

    phone_number      KEEP_KNOWN   replace when the event carries a value
    status            LATEST_WINS  the last event applied by the store wins
    duration_seconds  KEEP_KNOWN
    recording_url     KEEP_KNOWN
    ivr_selection     KEEP_KNOWN

Identity fields (call_sid, customer_name, department, created_at) are
IMMUTABLE with respect to events; only a resubmitted initiation rewrites
customer_name and department.

An absent value never overwrites a known one, whatever the rule.

LATEST_WINS has no provider sequence number to order by, so the final
status is whichever event the store applied last. Status callbacks for a
call travel over a single provider connection in call-progress order, which
makes this a workable approximation rather than a guarantee.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from sqlalchemy import func
from sqlalchemy.sql.elements import ColumnElement


class MergeRule(str, Enum):
    """How an incoming field value combines with the stored one."""

    LATEST_WINS = "latest_wins"
    KEEP_KNOWN = "keep_known"
    IMMUTABLE = "immutable"


MERGE_POLICY: dict[str, MergeRule] = {
    "phone_number": MergeRule.KEEP_KNOWN,
    "status": MergeRule.LATEST_WINS,
    "duration_seconds": MergeRule.KEEP_KNOWN,
    "recording_url": MergeRule.KEEP_KNOWN,
    "ivr_selection": MergeRule.KEEP_KNOWN,
}

IMMUTABLE_FIELDS: tuple[str, ...] = (
    "call_sid",
    "customer_name",
    "department",
    "created_at",
)


def normalize_text(value: Any) -> str | None:
    """Return a stripped string, or None when the value carries no information."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_duration(value: Any) -> int | None:
    """Parse a provider duration; anything but a non-negative integer is unknown."""
    text = normalize_text(value)
    if text is None:
        return None
    try:
        seconds = int(text)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


@dataclass(frozen=True)
class CallEventFields:
    """Subset of call record fields known at one point of the call lifecycle.

    None means "this event carries no information for the field".
    """

    phone_number: str | None = None
    status: str | None = None
    duration_seconds: int | None = None
    recording_url: str | None = None
    ivr_selection: str | None = None

    @classmethod
    def from_raw(
        cls,
        *,
        phone_number: Any = None,
        status: Any = None,
        duration: Any = None,
        recording_url: Any = None,
        ivr_selection: Any = None,
    ) -> "CallEventFields":
        """Build an event from untrusted provider values."""
        return cls(
            phone_number=normalize_text(phone_number),
            status=normalize_text(status),
            duration_seconds=parse_duration(duration),
            recording_url=normalize_text(recording_url),
            ivr_selection=normalize_text(ivr_selection),
        )

    def known_fields(self) -> dict[str, Any]:
        """Fields this event actually sets."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def is_empty(self) -> bool:
        return not self.known_fields()


def merge_value(rule: MergeRule, current: Any, incoming: Any) -> Any:
    """Apply one merge rule to a single field."""
    if rule is MergeRule.IMMUTABLE:
        return current
    if incoming is None:
        return current
    return incoming


def reconcile(
    current: Mapping[str, Any] | None,
    event: CallEventFields,
) -> dict[str, Any]:
    """Compute the merged state of a record after applying event.

    Args:
        current: Stored field values, or None when no record exists yet.
        event: Partial event to fold in.

    Returns:
        Merged values for every mergeable and identity field.
    """
    current = current or {}
    incoming = asdict(event)

    merged: dict[str, Any] = {name: current.get(name) for name in IMMUTABLE_FIELDS}
    for name, rule in MERGE_POLICY.items():
        merged[name] = merge_value(rule, current.get(name), incoming[name])
    return merged


def merge_assignments(incoming: Any, current: Any) -> dict[str, ColumnElement[Any]]:
    """SQL SET clause implementing MERGE_POLICY inside an upsert.

    Args:
        incoming: Column namespace of the proposed row (e.g. ``stmt.excluded``).
        current: Column namespace of the stored row (the mapped table).

    Returns:
        Mapping of column name to SQL expression.
    """
    assignments: dict[str, ColumnElement[Any]] = {}
    for name in MERGE_POLICY:
        # Without an ordering field both rules reduce to COALESCE(incoming, current).
        assignments[name] = func.coalesce(getattr(incoming, name), getattr(current, name))
    return assignments

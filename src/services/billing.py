"""
Billing date advancement

Rolls a past-due ``next_billing_date`` forward to the first occurrence on or
after the start of "today" in the reminder zone.
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Optional

from dateutil.relativedelta import relativedelta

from src.core.clock import DateLike, start_of_day, to_local_datetime
from src.core.config import settings
from src.schemas.enums import BillingCycle


logger = logging.getLogger(__name__)

_CYCLE_STEPS = {
    BillingCycle.WEEKLY.value: relativedelta(weeks=1),
    BillingCycle.MONTHLY.value: relativedelta(months=1),
    BillingCycle.YEARLY.value: relativedelta(years=1),
}
_DEFAULT_STEP = _CYCLE_STEPS[BillingCycle.MONTHLY.value]


@dataclass(frozen=True)
class AdvanceResult:
    next_date: Optional[dt.datetime]
    cleared: bool = False
    snapped: bool = False
    steps: int = 0


def cycle_step(billing_cycle: Optional[str]) -> relativedelta:
    """Step for a billing cycle; unknown or corrupt values fall back to monthly."""

    step = _CYCLE_STEPS.get(billing_cycle or "")
    if step is None:
        logger.warning(f"Unknown billing cycle {billing_cycle!r}; stepping monthly")
        return _DEFAULT_STEP
    return step


def advance(
    billing_cycle: Optional[str],
    next_billing_date: DateLike,
    today: dt.date,
    max_iterations: Optional[int] = None,
) -> AdvanceResult:
    """
    Compute the next occurrence at or after the start of ``today``.

    One-time charges are cleared instead of advanced. Occurrence ``n`` is
    ``original + n * step`` so month-end anchors do not drift (Jan 31 gives
    Feb 29 then Mar 31). When ``max_iterations`` steps are not enough the
    result is snapped to the start of ``today``.
    """
    if billing_cycle == BillingCycle.ONE_TIME.value:
        return AdvanceResult(next_date=None, cleared=True)

    limit = max_iterations if max_iterations is not None else settings.reminders.advance_max_iterations
    step = cycle_step(billing_cycle)
    original = to_local_datetime(next_billing_date)
    floor = start_of_day(today)

    candidate = original
    steps = 0
    while candidate < floor and steps < limit:
        steps += 1
        candidate = original + step * steps

    if candidate < floor:
        logger.warning(
            f"Advancement of {original.isoformat()} hit the {limit} step cap; snapping to {today}"
        )
        return AdvanceResult(next_date=floor, snapped=True, steps=steps)

    return AdvanceResult(next_date=candidate, steps=steps)


def advance_subscription(subscription, today: dt.date) -> AdvanceResult:
    """:func:`advance` applied to a :class:`~src.db.models.subscription.Subscription`."""

    if subscription.next_billing_date is None:
        raise ValueError(f"Subscription {subscription.id} has no billing date to advance")
    return advance(subscription.billing_cycle, subscription.next_billing_date, today)

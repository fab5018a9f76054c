from ..exceptions import FailedPrecondition
from ..models import Period, PeriodLock
from ..models.period import BLOCKING_STATUSES
from .validation import to_date_only

"""
    Two independent sources can block a date: explicit PeriodLock rows
    and financial Periods that are closed/locked. Either one is enough.
    Must run inside the transaction that does the write.
"""


def assert_period_unlocked(tx, entry_date):
    day = to_date_only(entry_date)

    for lock in tx.scoped(PeriodLock).only(
        "start_date", "end_date", "is_locked", "status"
    ):
        if lock.is_effective and lock.covers(day):
            raise FailedPrecondition(
                f"Entry date {day.isoformat()} is in a locked financial period."
            )

    closed = tx.scoped(Period).filter(
        status__in=BLOCKING_STATUSES,
        start_date__lte=day,
        end_date__gte=day,
    )
    if closed.exists():
        raise FailedPrecondition(
            f"Entry date {day.isoformat()} is in a closed financial period."
        )
    return day

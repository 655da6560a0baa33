"""
Open accounting period.

Revenue and expense accounts accumulate from the day after the most recent
year-end close.  Books that were never closed start at the configured epoch.
"""

from datetime import date, timedelta

from ledger_kernel.selectors.ledger_selector import LedgerSelector

DEFAULT_EPOCH = date(2000, 1, 1)


def open_period_start(
    ledger: LedgerSelector,
    as_of: date,
    epoch: date = DEFAULT_EPOCH,
) -> tuple[date, date | None]:
    """
    First day of the period still open on ``as_of``.

    Returns:
        (period start, date of the last close on or before ``as_of`` or None)
    """
    last_close = ledger.last_close_date(on_or_before=as_of)
    if last_close is None:
        return epoch, None
    return last_close + timedelta(days=1), last_close

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, timedelta
import calendar
from typing import Iterable, Mapping, Sequence

from .recurring import (
    CalendarOccurrence,
    Frequency,
    RecurringTransaction,
    TransactionType,
)


def last_day_of_month(year: int, month: int) -> int:
    # calendar month, 1-12
    return calendar.monthrange(year, month)[1]


def month_days(year: int, month: int) -> list[date]:
    """All calendar days of ``month`` (0-11, January=0), first through last."""
    if not 0 <= month <= 11:
        raise ValueError(f"month must be in 0-11, got {month}")
    return [
        date(year, month + 1, day)
        for day in range(1, last_day_of_month(year, month + 1) + 1)
    ]


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    # month is 0-11
    m = month + delta
    return year + m // 12, m % 12


def anchor_day_of_month(transaction: RecurringTransaction) -> int:
    if transaction.day_of_month is not None:
        return transaction.day_of_month
    return transaction.start_date.day


def anchor_month(transaction: RecurringTransaction) -> int:
    # legacy month_of_year is 0-11
    if transaction.month_of_year is not None:
        return transaction.month_of_year + 1
    return transaction.start_date.month


def occurs_on(transaction: RecurringTransaction, day: date) -> bool:
    """Return ``True`` when ``transaction`` falls due on ``day``.

    Days outside ``[start_date, end_date]`` never match. Monthly and annual
    anchors past the end of a short month are clamped to its last day, so the
    transaction still fires once per period.
    """

    start = transaction.start_date
    if day < start:
        return False
    if transaction.end_date is not None and day > transaction.end_date:
        return False

    freq = transaction.frequency
    if freq is Frequency.DAILY:
        return True
    if freq is Frequency.WEEKLY:
        return day.weekday() == start.weekday()
    if freq is Frequency.BI_WEEKLY:
        diff = (day - start).days
        return diff >= 0 and diff % 14 == 0
    if freq is Frequency.MONTHLY:
        last = last_day_of_month(day.year, day.month)
        return day.day == min(anchor_day_of_month(transaction), last)
    if freq is Frequency.ANNUALLY:
        if day.month != anchor_month(transaction):
            return False
        last = last_day_of_month(day.year, day.month)
        return day.day == min(anchor_day_of_month(transaction), last)
    return False


def _overlapping(
    transactions: Iterable[RecurringTransaction], start: date, end: date
) -> list[RecurringTransaction]:
    # keeps input order
    return [
        t
        for t in transactions
        if t.start_date <= end and (t.end_date is None or t.end_date >= start)
    ]


def occurrences_for_month(
    transactions: Iterable[RecurringTransaction], year: int, month: int
) -> dict[str, list[CalendarOccurrence]]:
    """Index the occurrences of ``transactions`` within ``month`` (0-11) of ``year``.

    Keys are ISO ``YYYY-MM-DD`` strings in calendar order; each list follows
    the order of ``transactions``. Days without occurrences have no key.
    """

    days = month_days(year, month)
    active = _overlapping(transactions, days[0], days[-1])
    index: dict[str, list[CalendarOccurrence]] = {}
    for day in days:
        for transaction in active:
            if occurs_on(transaction, day):
                index.setdefault(day.isoformat(), []).append(
                    CalendarOccurrence(transaction=transaction, date=day)
                )
    return index


def occurrences_between(
    transactions: Iterable[RecurringTransaction], start: date, end: date
) -> list[CalendarOccurrence]:
    """Occurrences in ``[start, end]`` ordered by day, then input order."""
    if start > end:
        return []
    active = _overlapping(transactions, start, end)
    result = []
    d = start
    while d <= end:
        for transaction in active:
            if occurs_on(transaction, d):
                result.append(CalendarOccurrence(transaction=transaction, date=d))
        d += timedelta(days=1)
    return result


def next_occurrence(
    transaction: RecurringTransaction, after: date, horizon_days: int = 366
) -> date | None:
    """First day strictly after ``after`` on which ``transaction`` occurs.

    The search starts at the later of ``after + 1`` and ``start_date`` and
    gives up ``horizon_days`` days later or at ``end_date``.
    """

    d = max(after + timedelta(days=1), transaction.start_date)
    stop = d + timedelta(days=horizon_days)
    if transaction.end_date is not None:
        stop = min(stop, transaction.end_date)
    while d <= stop:
        if occurs_on(transaction, d):
            return d
        d += timedelta(days=1)
    return None


@dataclass(frozen=True)
class MonthSummary:
    income: float
    expense: float

    @property
    def net(self) -> float:
        return self.income - self.expense


def month_totals(index: Mapping[str, Sequence[CalendarOccurrence]]) -> MonthSummary:
    income = expense = 0.0
    for occurrences in index.values():
        for occ in occurrences:
            if occ.transaction.type is TransactionType.INCOME:
                income += occ.transaction.amount
            else:
                expense += occ.transaction.amount
    return MonthSummary(income=income, expense=expense)

from datetime import date

import pytest

from tests.helpers import make_transaction
from fincal.recurring import Frequency, TransactionType
from fincal.services import (
    month_days,
    month_totals,
    next_occurrence,
    occurrences_between,
    occurrences_for_month,
    occurs_on,
    shift_month,
)


def days_of(index):
    return sorted(index)


def test_month_days_covers_whole_month():
    days = month_days(2024, 1)
    assert days[0] == date(2024, 2, 1)
    assert days[-1] == date(2024, 2, 29)
    assert len(days) == 29


@pytest.mark.parametrize("month", [-1, 12])
def test_month_out_of_range(month):
    with pytest.raises(ValueError):
        occurrences_for_month([], 2024, month)


def test_month_index_is_zero_based():
    tx = make_transaction(frequency=Frequency.MONTHLY, start=date(2024, 1, 15))
    assert days_of(occurrences_for_month([tx], 2024, 0)) == ["2024-01-15"]
    assert days_of(occurrences_for_month([tx], 2024, 1)) == ["2024-02-15"]
    assert days_of(occurrences_for_month([tx], 2024, 11)) == ["2024-12-15"]


def test_daily_fills_every_day_from_start():
    tx = make_transaction(frequency=Frequency.DAILY, start=date(2024, 3, 10))
    index = occurrences_for_month([tx], 2024, 2)
    assert days_of(index) == [f"2024-03-{d:02d}" for d in range(10, 32)]
    later = occurrences_for_month([tx], 2025, 5)
    assert len(later) == 30


def test_monthly_clamps_to_short_months():
    tx = make_transaction(frequency=Frequency.MONTHLY, start=date(2024, 1, 31))
    assert days_of(occurrences_for_month([tx], 2024, 1)) == ["2024-02-29"]
    assert days_of(occurrences_for_month([tx], 2024, 3)) == ["2024-04-30"]
    assert days_of(occurrences_for_month([tx], 2025, 1)) == ["2025-02-28"]
    assert days_of(occurrences_for_month([tx], 2024, 4)) == ["2024-05-31"]


def test_biweekly_every_fourteen_days():
    tx = make_transaction(frequency=Frequency.BI_WEEKLY, start=date(2024, 1, 1))
    assert days_of(occurrences_for_month([tx], 2024, 0)) == [
        "2024-01-01",
        "2024-01-15",
        "2024-01-29",
    ]
    assert days_of(occurrences_for_month([tx], 2024, 1)) == ["2024-02-12", "2024-02-26"]


def test_weekly_only_matches_start_weekday():
    monday = date(2024, 1, 1)
    tx = make_transaction(frequency=Frequency.WEEKLY, start=monday)
    for month in range(12):
        for key, occs in occurrences_for_month([tx], 2024, month).items():
            assert date.fromisoformat(key).weekday() == 0
            assert occs[0].date.weekday() == 0
    assert len(occurrences_for_month([tx], 2024, 3)) == 5


def test_annually_matches_anchor_month_and_clamps_leap_day():
    tx = make_transaction(frequency=Frequency.ANNUALLY, start=date(2024, 2, 29))
    assert days_of(occurrences_for_month([tx], 2025, 1)) == ["2025-02-28"]
    assert days_of(occurrences_for_month([tx], 2028, 1)) == ["2028-02-29"]
    assert occurrences_for_month([tx], 2025, 2) == {}


def test_legacy_anchors_override_start_date():
    tx = make_transaction(
        frequency=Frequency.ANNUALLY,
        start=date(2024, 1, 10),
        day_of_month=31,
        month_of_year=3,  # April
    )
    assert days_of(occurrences_for_month([tx], 2024, 3)) == ["2024-04-30"]
    monthly = make_transaction(
        frequency=Frequency.MONTHLY, start=date(2024, 1, 10), day_of_month=20
    )
    assert days_of(occurrences_for_month([monthly], 2024, 0)) == ["2024-01-20"]


def test_end_date_is_inclusive():
    tx = make_transaction(
        frequency=Frequency.WEEKLY, start=date(2024, 1, 1), end_date=date(2024, 1, 15)
    )
    assert days_of(occurrences_for_month([tx], 2024, 0)) == [
        "2024-01-01",
        "2024-01-08",
        "2024-01-15",
    ]
    daily = make_transaction(
        frequency=Frequency.DAILY, start=date(2024, 1, 1), end_date=date(2024, 1, 15)
    )
    assert occurs_on(daily, date(2024, 1, 15))
    assert not occurs_on(daily, date(2024, 1, 16))


def test_month_before_start_is_empty():
    tx = make_transaction(frequency=Frequency.DAILY, start=date(2024, 5, 1))
    assert occurrences_for_month([tx], 2024, 3) == {}
    assert occurrences_for_month([tx], 2023, 11) == {}


def test_same_day_keeps_input_order():
    rent = make_transaction(name="Rent", start=date(2024, 1, 1))
    gym = make_transaction(name="Gym", start=date(2023, 6, 1))
    index = occurrences_for_month([rent, gym], 2024, 2)
    assert [o.transaction.name for o in index["2024-03-01"]] == ["Rent", "Gym"]
    index = occurrences_for_month([gym, rent], 2024, 2)
    assert [o.transaction.name for o in index["2024-03-01"]] == ["Gym", "Rent"]


def test_occurrence_date_matches_key():
    tx = make_transaction(frequency=Frequency.BI_WEEKLY, start=date(2024, 1, 1))
    for key, occs in occurrences_for_month([tx], 2024, 2).items():
        assert all(o.key == key and o.transaction is tx for o in occs)


def test_occurrences_between_orders_by_day():
    weekly = make_transaction(name="W", frequency=Frequency.WEEKLY, start=date(2024, 1, 3))
    monthly = make_transaction(name="M", start=date(2024, 1, 1))
    occs = occurrences_between([weekly, monthly], date(2024, 1, 30), date(2024, 2, 7))
    assert [(o.date.isoformat(), o.transaction.name) for o in occs] == [
        ("2024-01-31", "W"),
        ("2024-02-01", "M"),
        ("2024-02-07", "W"),
    ]
    assert occurrences_between([weekly], date(2024, 2, 1), date(2024, 1, 1)) == []


def test_next_occurrence():
    tx = make_transaction(start=date(2024, 1, 31))
    assert next_occurrence(tx, date(2024, 2, 1)) == date(2024, 2, 29)
    assert next_occurrence(tx, date(2023, 1, 1)) == date(2024, 1, 31)
    ended = make_transaction(start=date(2024, 1, 31), end_date=date(2024, 2, 28))
    assert next_occurrence(ended, date(2024, 2, 1)) is None
    yearly = make_transaction(frequency=Frequency.ANNUALLY, start=date(2024, 1, 1))
    assert next_occurrence(yearly, date(2024, 1, 1)) == date(2025, 1, 1)


def test_month_totals():
    salary = make_transaction(
        name="Salary", type=TransactionType.INCOME, amount=1000.0, start=date(2024, 1, 15)
    )
    rent = make_transaction(name="Rent", amount=400.0, start=date(2024, 1, 1))
    coffee = make_transaction(
        name="Coffee", amount=2.5, frequency=Frequency.DAILY, start=date(2024, 2, 1)
    )
    totals = month_totals(occurrences_for_month([salary, rent, coffee], 2024, 1))
    assert totals.income == 1000.0
    assert totals.expense == pytest.approx(400.0 + 29 * 2.5)
    assert totals.net == pytest.approx(1000.0 - 400.0 - 72.5)


@pytest.mark.parametrize(
    "year, month, delta, expected",
    [(2024, 0, -1, (2023, 11)), (2024, 11, 1, (2025, 0)), (2024, 4, 14, (2025, 6))],
)
def test_shift_month(year, month, delta, expected):
    assert shift_month(year, month, delta) == expected


def test_generator_input_is_accepted():
    txs = (make_transaction(name=n, start=date(2024, 1, 1)) for n in ("A", "B"))
    index = occurrences_for_month(txs, 2024, 0)
    assert len(index["2024-01-01"]) == 2


def test_daily_long_range_property():
    start = date(2024, 1, 20)
    tx = make_transaction(frequency=Frequency.DAILY, start=start)
    for year, month in [(2024, 0), (2024, 1), (2025, 11)]:
        index = occurrences_for_month([tx], year, month)
        days = [d for d in month_days(year, month) if d >= start]
        assert days_of(index) == [d.isoformat() for d in days]

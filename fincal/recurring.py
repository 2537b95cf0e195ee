"""Recurring transaction records and their migration to the canonical shape.

Persisted records come in two shapes. Older records carry ``recurrence``
(``weekly`` | ``monthly`` | ``yearly``) together with explicit ``dayOfWeek``,
``dayOfMonth`` and ``monthOfYear`` anchors. Current records carry
``frequency`` and derive their anchors from ``startDate``. Both are decoded
here by :func:`canonicalize`; nothing past this module sees the legacy shape.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, fields as dataclass_fields, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Iterable, Literal, Mapping

from .errors import RecordError, ValidationError


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    ANNUALLY = "annually"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


CALENDAR_CATEGORIES = (
    "Salary",
    "Rent/Mortgage",
    "Utilities",
    "Subscriptions",
    "Insurance",
    "Loan Payment",
    "Other",
)

CALENDAR_COLORS = {
    "Salary": "#16a34a",
    "Rent/Mortgage": "#dc2626",
    "Utilities": "#f59e0b",
    "Subscriptions": "#8b5cf6",
    "Insurance": "#0ea5e9",
    "Loan Payment": "#ef4444",
    "Other": "#6b7280",
}

DEFAULT_CATEGORY = "Other"
DEFAULT_COLOR = "#6b7280"

# legacy ``recurrence`` -> frequency; anything else falls back to monthly
LEGACY_RECURRENCE = {
    "yearly": Frequency.ANNUALLY,
    "weekly": Frequency.WEEKLY,
    "monthly": Frequency.MONTHLY,
}

# (attribute, wire key, inclusive range)
_ANCHOR_FIELDS = (
    ("day_of_week", "dayOfWeek", (0, 6)),
    ("day_of_month", "dayOfMonth", (1, 31)),
    ("month_of_year", "monthOfYear", (0, 11)),
)

RecordShape = Literal["canonical", "legacy"]


@dataclass(frozen=True)
class RecurringTransaction:
    """A bill or income entry that repeats on a calendar schedule."""

    id: str
    name: str
    amount: float
    type: TransactionType
    frequency: Frequency
    start_date: date
    created_at: datetime
    end_date: date | None = None
    category: str = DEFAULT_CATEGORY
    color: str | None = None
    day_of_week: int | None = None  # 0-6, Sunday=0
    day_of_month: int | None = None  # 1-31
    month_of_year: int | None = None  # 0-11

    @property
    def display_color(self) -> str:
        if self.color:
            return self.color
        return CALENDAR_COLORS.get(self.category, DEFAULT_COLOR)

    @property
    def signed_amount(self) -> float:
        return self.amount if self.type is TransactionType.INCOME else -self.amount

    def to_record(self) -> dict[str, Any]:
        """Serialize to the canonical wire shape (camelCase, ISO dates)."""

        record: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "amount": self.amount,
            "type": self.type.value,
            "frequency": self.frequency.value,
            "startDate": self.start_date.isoformat(),
            "category": self.category,
            "createdAt": self.created_at.isoformat(),
        }
        if self.end_date is not None:
            record["endDate"] = self.end_date.isoformat()
        if self.color is not None:
            record["color"] = self.color
        for attr, key, _ in _ANCHOR_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                record[key] = value
        return record


_FIELD_NAMES = frozenset(f.name for f in dataclass_fields(RecurringTransaction))
# supplied by the caller when a transaction is created
_REQUIRED_FIELDS = ("name", "amount", "type", "frequency", "start_date")


@dataclass(frozen=True)
class CalendarOccurrence:
    """A transaction falling due on a specific day."""

    transaction: RecurringTransaction
    date: date

    @property
    def key(self) -> str:
        return self.date.isoformat()


def _parse_iso(value: str) -> date | datetime:
    value = value.strip()
    if len(value) == 10:
        return date.fromisoformat(value)
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def parse_day(value: Any, field: str = "date") -> date:
    """Return the calendar day for a serialized date or timestamp.

    Timestamps are truncated to the day written in them; the time of day and
    any UTC offset are discarded rather than converted.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = _parse_iso(value)
        except ValueError as exc:
            raise RecordError(f"invalid {field}: {value!r}") from exc
        return parsed.date() if isinstance(parsed, datetime) else parsed
    raise RecordError(f"invalid {field}: {value!r}")


def parse_timestamp(value: Any, field: str = "timestamp") -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        try:
            parsed = _parse_iso(value)
        except ValueError as exc:
            raise RecordError(f"invalid {field}: {value!r}") from exc
        if isinstance(parsed, datetime):
            return parsed
        return datetime.combine(parsed, time.min)
    raise RecordError(f"invalid {field}: {value!r}")


def record_shape(raw: Mapping[str, Any]) -> RecordShape:
    """Tell a current record from a legacy ``recurrence`` record."""
    return "canonical" if raw.get("frequency") is not None else "legacy"


def _required(raw: Mapping[str, Any], key: str) -> Any:
    value = raw.get(key)
    if value is None:
        raise RecordError(f"missing {key}")
    return value


def _enum(enum_cls, value: Any, field: str):
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise RecordError(f"invalid {field}: {value!r}") from exc


def _amount(value: Any) -> float:
    if isinstance(value, bool):
        raise RecordError(f"invalid amount: {value!r}")
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise RecordError(f"invalid amount: {value!r}") from exc
    if not math.isfinite(amount):
        raise RecordError(f"invalid amount: {value!r}")
    return amount


def _anchor(raw: Mapping[str, Any], key: str, bounds: tuple[int, int]) -> int | None:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecordError(f"invalid {key}: {value!r}")
    # JSON decoders accept Infinity and NaN
    if isinstance(value, float) and (not math.isfinite(value) or not value.is_integer()):
        raise RecordError(f"invalid {key}: {value!r}")
    value = int(value)
    lo, hi = bounds
    if not lo <= value <= hi:
        raise RecordError(f"{key} out of range {lo}-{hi}: {value}")
    return value


def canonicalize(raw: Mapping[str, Any] | RecurringTransaction) -> RecurringTransaction:
    """Decode a stored record of either shape into a canonical transaction.

    Raises :class:`RecordError` for missing required fields, unparseable
    dates or unknown enum values. Already canonical transactions are
    returned unchanged.
    """

    if isinstance(raw, RecurringTransaction):
        return raw
    if not isinstance(raw, Mapping):
        raise RecordError(f"expected a mapping, got {type(raw).__name__}")

    if record_shape(raw) == "canonical":
        frequency = _enum(Frequency, raw["frequency"], "frequency")
    else:
        recurrence = raw.get("recurrence")
        if isinstance(recurrence, str):
            frequency = LEGACY_RECURRENCE.get(recurrence, Frequency.MONTHLY)
        else:
            frequency = Frequency.MONTHLY

    end_raw = raw.get("endDate") or None
    anchors = {
        attr: _anchor(raw, key, bounds) for attr, key, bounds in _ANCHOR_FIELDS
    }
    return RecurringTransaction(
        id=str(_required(raw, "id")),
        name=str(_required(raw, "name")),
        amount=_amount(_required(raw, "amount")),
        type=_enum(TransactionType, _required(raw, "type"), "type"),
        frequency=frequency,
        start_date=parse_day(_required(raw, "startDate"), "startDate"),
        end_date=parse_day(end_raw, "endDate") if end_raw is not None else None,
        category=str(raw.get("category") or DEFAULT_CATEGORY),
        color=raw.get("color") or None,
        created_at=parse_timestamp(_required(raw, "createdAt"), "createdAt"),
        **anchors,
    )


def canonicalize_all(raws: Iterable[Mapping[str, Any]]) -> list[RecurringTransaction]:
    """Canonicalize every record, failing on the first malformed one."""

    result = []
    for idx, raw in enumerate(raws):
        try:
            result.append(canonicalize(raw))
        except RecordError as exc:
            raise RecordError(f"record {idx}: {exc}") from exc
    return result


def _coerce_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Normalise user-supplied field values to the canonical types."""

    for name in fields:
        if name not in _FIELD_NAMES:
            raise ValidationError(f"unknown field: {name}")
    out = dict(fields)
    try:
        if "type" in out:
            out["type"] = TransactionType(out["type"])
        if "frequency" in out:
            out["frequency"] = Frequency(out["frequency"])
        if "amount" in out:
            out["amount"] = _amount(out["amount"])
        if "start_date" in out:
            out["start_date"] = parse_day(out["start_date"], "start_date")
        if out.get("end_date") is not None:
            out["end_date"] = parse_day(out["end_date"], "end_date")
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return out


def new_transaction(
    transaction_id: str, created_at: datetime, /, **fields: Any
) -> RecurringTransaction:
    """Build a fresh transaction with an assigned id and creation time."""

    fields = _coerce_fields(fields)
    fields.pop("id", None)
    fields.pop("created_at", None)
    missing = [name for name in _REQUIRED_FIELDS if fields.get(name) is None]
    if missing:
        raise ValidationError(f"missing field: {', '.join(missing)}")
    return RecurringTransaction(id=transaction_id, created_at=created_at, **fields)


def apply_patch(
    transaction: RecurringTransaction, changes: Mapping[str, Any]
) -> RecurringTransaction:
    """Return ``transaction`` with ``changes`` applied; id and created_at stay put.

    Raises :class:`ValidationError` for a field the transaction does not have.
    """

    changes = _coerce_fields(changes)
    changes.pop("id", None)
    changes.pop("created_at", None)
    return replace(transaction, **changes)


def validate_fields(
    name: str | None,
    amount: str | float | None,
    start_date: str | date | None,
    end_date: str | date | None = None,
) -> dict[str, Any]:
    """Validate raw form input and return cleaned values.

    Raises :class:`ValidationError` with a user-facing message.
    """

    name = (name or "").strip()
    if not name:
        raise ValidationError("Name cannot be empty.")

    if amount is None or (isinstance(amount, str) and not amount.strip()):
        raise ValidationError("Amount is required.")
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a number.") from None
    if not math.isfinite(amount):
        raise ValidationError("Amount must be a number.")
    if amount < 0:
        raise ValidationError("Amount cannot be negative.")

    if start_date is None or (isinstance(start_date, str) and not start_date.strip()):
        raise ValidationError("Start date is required.")
    try:
        start = parse_day(start_date, "start date")
    except RecordError:
        raise ValidationError("Invalid start date.") from None

    end = None
    if end_date is not None and not (isinstance(end_date, str) and not end_date.strip()):
        try:
            end = parse_day(end_date, "end date")
        except RecordError:
            raise ValidationError("Invalid end date.") from None
        if end < start:
            raise ValidationError("End date cannot be before start date.")

    return {"name": name, "amount": amount, "start_date": start, "end_date": end}

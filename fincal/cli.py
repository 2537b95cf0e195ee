"""Command line interface for the recurring-transaction calendar."""
from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta

import questionary

from . import config
from .database import SessionLocal, init_db
from .errors import ValidationError
from .recurring import (
    CALENDAR_CATEGORIES,
    DEFAULT_CATEGORY,
    Frequency,
    RecurringTransaction,
    TransactionType,
    validate_fields,
)
from .services import month_totals, next_occurrence, occurrences_between, shift_month
from .storage import LocalStore
from .store import RecurringTransactionStore
from .sync import CloudClient

FREQUENCIES = [f.value for f in Frequency]
TYPES = [t.value for t in TransactionType]

UPCOMING_DAYS = 30


def select(message, choices, default=None):
    """Ask the user to pick one of ``choices`` and return its value.

    ``choices`` may be a list of strings or ``(title, value)`` pairs. Returns
    ``None`` if the prompt is aborted.
    """

    items = []
    for choice in choices:
        if isinstance(choice, tuple):
            title, value = choice
            items.append(questionary.Choice(title, value=value))
        else:
            items.append(choice)
    kwargs = {"default": default} if default is not None else {}
    return questionary.select(message, choices=items, **kwargs).ask()


def text(message, default=None):
    resp = questionary.text(message, default=default or "").ask()
    if resp is None:
        return None
    return default if resp == "" and default is not None else resp


def confirm(message: str) -> bool:
    return questionary.confirm(message, default=False).ask() is True


def transaction_form(fields: dict) -> dict | None:
    """Interactive form for editing recurring transaction fields.

    ``fields`` holds display strings for ``name``, ``amount``, ``start_date``
    and ``end_date`` plus ``type``, ``frequency`` and ``category``. Returns
    the validated values if saved, otherwise ``None``.
    """

    fields = dict(fields)
    while True:
        choice = select(
            "Select field to edit",
            choices=[
                (f"Name: {fields['name']}", "name"),
                (f"Amount: {fields['amount']}", "amount"),
                (f"Type: {fields['type']}", "type"),
                (f"Frequency: {fields['frequency']}", "frequency"),
                (f"Start date: {fields['start_date']}", "start_date"),
                (f"End date: {fields['end_date'] or 'none'}", "end_date"),
                (f"Category: {fields['category']}", "category"),
                ("Save", "save"),
                ("Cancel", "cancel"),
            ],
        )

        if choice in ("name", "amount"):
            value = text(choice.capitalize(), default=fields[choice] or None)
            if value is not None:
                fields[choice] = value
        elif choice == "start_date":
            value = text("Start date (YYYY-MM-DD)", default=fields["start_date"] or None)
            if value is not None:
                fields["start_date"] = value
        elif choice == "end_date":
            value = text("End date (YYYY-MM-DD, blank for none)")
            if value is not None:
                fields["end_date"] = value.strip()
        elif choice == "type":
            value = select("Type", TYPES, default=fields["type"])
            if value is not None:
                fields["type"] = value
        elif choice == "frequency":
            value = select("Frequency", FREQUENCIES, default=fields["frequency"])
            if value is not None:
                fields["frequency"] = value
        elif choice == "category":
            value = select("Category", list(CALENDAR_CATEGORIES), default=fields["category"])
            if value is not None:
                fields["category"] = value
        elif choice == "save":
            try:
                cleaned = validate_fields(
                    fields["name"], fields["amount"], fields["start_date"], fields["end_date"]
                )
            except ValidationError as exc:
                print(f"{exc}\n")
                continue
            cleaned.update(
                type=fields["type"],
                frequency=fields["frequency"],
                category=fields["category"],
            )
            return cleaned
        else:
            return None


def _form_defaults(existing: RecurringTransaction | None) -> dict:
    if existing is None:
        return {
            "name": "",
            "amount": "",
            "type": TransactionType.EXPENSE.value,
            "frequency": Frequency.MONTHLY.value,
            "start_date": date.today().isoformat(),
            "end_date": "",
            "category": DEFAULT_CATEGORY,
        }
    return {
        "name": existing.name,
        "amount": str(existing.amount),
        "type": existing.type.value,
        "frequency": existing.frequency.value,
        "start_date": existing.start_date.isoformat(),
        "end_date": existing.end_date.isoformat() if existing.end_date else "",
        "category": existing.category,
    }


def add_recurring(store: RecurringTransactionStore) -> RecurringTransaction | None:
    """Prompt for a new recurring transaction and add it to ``store``."""
    form = transaction_form(_form_defaults(None))
    if form is None:
        return None
    return store.add(**form)


def edit_recurring(store: RecurringTransactionStore, existing: RecurringTransaction) -> None:
    form = transaction_form(_form_defaults(existing))
    if form is None:
        return
    store.update(existing.id, **form)


def recurring_entries(transactions, today: date) -> list[str]:
    """One aligned line per transaction with its next occurrence."""

    name_w = max((len(t.name) for t in transactions), default=0)
    freq_w = max((len(t.frequency.value) for t in transactions), default=0)
    amt_w = max((len(f"{t.signed_amount:.2f}") for t in transactions), default=0)
    entries = []
    for t in transactions:
        nxt = next_occurrence(t, today - timedelta(days=1))
        next_str = nxt.isoformat() if nxt else "n/a"
        entries.append(
            f"{t.start_date.isoformat()} | {t.name:<{name_w}} | {t.frequency.value:<{freq_w}} | {t.signed_amount:>{amt_w}.2f} | Next occurrence: {next_str}"
        )
    return entries


def list_recurring(store: RecurringTransactionStore) -> None:
    """List recurring transactions and allow editing or deleting them."""

    while True:
        transactions = store.transactions
        entries = recurring_entries(transactions, date.today())
        choices = [(entry, idx) for idx, entry in enumerate(entries)]
        choices.append(("Back", "back"))
        idx = select("Recurring transactions", choices)
        if idx is None or idx == "back":
            break
        rec = transactions[idx]
        action = select(rec.name, ["Edit", "Delete", "Back"])
        if action == "Edit":
            edit_recurring(store, rec)
        elif action == "Delete":
            if confirm("Delete this item?"):
                store.delete(rec.id)


def format_month(index, year: int, month: int) -> list[str]:
    """Render the occurrence index of ``month`` (0-11) as printable lines."""

    lines = [f"{calendar.month_name[month + 1]} {year}"]
    for day in sorted(index):
        for occ in index[day]:
            t = occ.transaction
            sign = "+" if t.type is TransactionType.INCOME else "-"
            lines.append(f"  {day}  {sign} {t.name:<20} {t.amount:>10.2f}  [{t.category}]")
    if len(lines) == 1:
        lines.append("  No recurring transactions this month.")
    totals = month_totals(index)
    lines.append(
        f"Income: {totals.income:.2f}  Expense: {totals.expense:.2f}  Net: {totals.net:.2f}"
    )
    return lines


def month_view(store: RecurringTransactionStore, year: int, month: int) -> None:
    while True:
        index = store.get_transactions_for_month(year, month)
        print("\n".join(format_month(index, year, month)))
        print()
        choice = select("Navigate", ["Previous month", "Next month", "Back"])
        if choice == "Previous month":
            year, month = shift_month(year, month, -1)
        elif choice == "Next month":
            year, month = shift_month(year, month, 1)
        else:
            break


def upcoming(store: RecurringTransactionStore, today: date, days: int = UPCOMING_DAYS) -> list[str]:
    end = today + timedelta(days=days)
    return [
        f"{occ.date.isoformat()}  {occ.transaction.name}: {occ.transaction.signed_amount:.2f}"
        for occ in occurrences_between(store.transactions, today, end)
    ]


def build_store() -> RecurringTransactionStore:
    init_db()
    store = RecurringTransactionStore(LocalStore(SessionLocal), cloud=CloudClient.from_config())
    store.load()
    store.sync_from_remote()
    return store


def main() -> None:
    """Entry point for the calendar CLI."""
    logging.basicConfig(level=config.LOG_LEVEL)
    store = build_store()
    try:
        while True:
            choice = select(
                "Choose an option:",
                choices=[
                    "Add recurring transaction",
                    "List recurring transactions",
                    "Show month",
                    "Upcoming",
                    "Sync now",
                    "Quit",
                ],
            )
            if choice == "Add recurring transaction":
                if add_recurring(store) is not None:
                    print("Recurring transaction saved.\n")
            elif choice == "List recurring transactions":
                if not store.transactions:
                    print("No recurring transactions recorded.\n")
                else:
                    list_recurring(store)
            elif choice == "Show month":
                today = date.today()
                month_view(store, today.year, today.month - 1)
            elif choice == "Upcoming":
                lines = upcoming(store, date.today())
                print("\n".join(lines) if lines else "Nothing due in the next 30 days.")
                print()
            elif choice == "Sync now":
                if store.sync_from_remote():
                    print("Calendar updated from cloud.\n")
                else:
                    print("Cloud sync unavailable; using local data.\n")
            else:
                break
    finally:
        store.close()


if __name__ == "__main__":
    main()

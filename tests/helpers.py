import os
import sys
import tempfile
from concurrent.futures import Executor, Future
from datetime import date, datetime
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure the project root is on the Python path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from fincal import database, models  # noqa: F401  # register tables
from fincal.recurring import Frequency, RecurringTransaction, TransactionType


def get_temp_session():
    db_fd, db_path = tempfile.mkstemp()
    os.close(db_fd)
    engine = create_engine(f"sqlite:///{db_path}", future=True)
    TestingSession = sessionmaker(bind=engine)
    database.Base.metadata.create_all(engine)
    return TestingSession, Path(db_path)


def make_prompt(responses):
    iterator = iter(responses)

    def _prompt(*args, **kwargs):
        return next(iterator)

    return _prompt


def make_transaction(
    name="Rent",
    start=date(2024, 1, 1),
    frequency=Frequency.MONTHLY,
    id=None,
    **kwargs,
):
    kwargs.setdefault("amount", 100.0)
    kwargs.setdefault("type", TransactionType.EXPENSE)
    kwargs.setdefault("created_at", datetime(2023, 12, 1, 9, 30))
    return RecurringTransaction(
        id=id or name.lower(),
        name=name,
        frequency=frequency,
        start_date=start,
        **kwargs,
    )


class ImmediateExecutor(Executor):
    """Runs submitted work inline so tests can observe it synchronously."""

    def __init__(self):
        self.submitted = []

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        self.submitted.append(future)
        return future


class FakeCloud:
    """Stands in for :class:`fincal.sync.CloudClient`."""

    def __init__(self, document=None, fetch_error=None, push_error=None):
        self.document = document
        self.fetch_error = fetch_error
        self.push_error = push_error
        self.pushed = []

    def fetch(self):
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.document

    def push(self, calendar_events):
        if self.push_error is not None:
            raise self.push_error
        self.pushed.append(calendar_events)

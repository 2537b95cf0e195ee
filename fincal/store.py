"""Service object owning the canonical recurring-transaction collection."""
from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import datetime
import logging
from typing import Any, Callable
import uuid

import requests

from .config import cloud_sync_allowed
from .recurring import (
    CalendarOccurrence,
    RecurringTransaction,
    apply_patch,
    canonicalize_all,
    new_transaction,
)
from .services import occurrences_for_month
from .storage import CALENDAR_KEY, LocalStore
from .sync import CloudClient

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _log_push_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Failed to sync calendar to cloud: %s", exc)


class RecurringTransactionStore:
    """Owns the recurring transactions and keeps their persistence in step.

    Every mutation is written wholesale to ``local`` before returning. When
    ``sync_allowed()`` is true the same snapshot is also pushed to ``cloud``
    on ``executor``: at most once, best effort, never retried. A failed push
    is logged and does not affect the local state.
    """

    def __init__(
        self,
        local: LocalStore,
        cloud: CloudClient | None = None,
        sync_allowed: Callable[[], bool] = cloud_sync_allowed,
        executor: Executor | None = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._local = local
        self._cloud = cloud
        self._sync_allowed = sync_allowed
        self._executor = executor
        self._owns_executor = False
        self._clock = clock
        self._id_factory = id_factory
        self._transactions: list[RecurringTransaction] = []
        self._month_cache: dict[tuple[int, int], dict[str, list[CalendarOccurrence]]] = {}

    @property
    def transactions(self) -> tuple[RecurringTransaction, ...]:
        return tuple(self._transactions)

    def get(self, transaction_id: str) -> RecurringTransaction | None:
        for t in self._transactions:
            if t.id == transaction_id:
                return t
        return None

    def load(self) -> tuple[RecurringTransaction, ...]:
        """Load and migrate the locally stored records.

        A malformed record raises :class:`~fincal.errors.RecordError` and
        leaves the current collection untouched.
        """

        records = self._local.read(CALENDAR_KEY)
        self._replace(canonicalize_all(records or []))
        logger.info("Loaded %d recurring transactions", len(self._transactions))
        return self.transactions

    def sync_from_remote(self) -> bool:
        """Replace local state with the cloud copy when one is available.

        Returns ``True`` if the collection was replaced. Network errors,
        non-OK responses and malformed payloads are logged and ignored.
        """

        if self._cloud is None or not self._sync_allowed():
            return False
        try:
            data = self._cloud.fetch()
            if data is None:
                return False
            events = data.get("calendarEvents")
            if not isinstance(events, list):
                return False
            transactions = canonicalize_all(events)
        except (requests.RequestException, ValueError) as exc:
            logger.error("Error fetching calendar cloud data: %s", exc)
            return False
        self._replace(transactions)
        self._local.write(t.to_record() for t in transactions)
        logger.info("Replaced calendar with %d cloud events", len(transactions))
        return True

    def add(self, **fields: Any) -> RecurringTransaction:
        transaction = new_transaction(self._id_factory(), self._clock(), **fields)
        self._commit([*self._transactions, transaction])
        logger.info("Added recurring transaction %s (%s)", transaction.id, transaction.name)
        return transaction

    def update(self, transaction_id: str, **changes: Any) -> RecurringTransaction | None:
        """Apply a partial update; unknown ids are ignored."""

        for idx, existing in enumerate(self._transactions):
            if existing.id == transaction_id:
                updated = apply_patch(existing, changes)
                transactions = list(self._transactions)
                transactions[idx] = updated
                self._commit(transactions)
                logger.info("Updated recurring transaction %s", transaction_id)
                return updated
        logger.debug("Update ignored, no transaction %s", transaction_id)
        return None

    def delete(self, transaction_id: str) -> bool:
        remaining = [t for t in self._transactions if t.id != transaction_id]
        if len(remaining) == len(self._transactions):
            logger.debug("Delete ignored, no transaction %s", transaction_id)
            return False
        self._commit(remaining)
        logger.info("Deleted recurring transaction %s", transaction_id)
        return True

    def get_transactions_for_month(
        self, year: int, month: int
    ) -> dict[str, list[CalendarOccurrence]]:
        """Day-keyed occurrences for ``month`` (0-11, January=0) of ``year``."""

        key = (year, month)
        index = self._month_cache.get(key)
        if index is None:
            index = occurrences_for_month(self._transactions, year, month)
            self._month_cache[key] = index
        return {day: list(occs) for day, occs in index.items()}

    def close(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
            self._owns_executor = False

    def _replace(self, transactions: list[RecurringTransaction]) -> None:
        self._transactions = transactions
        self._month_cache.clear()

    def _commit(self, transactions: list[RecurringTransaction]) -> None:
        self._replace(transactions)
        records = [t.to_record() for t in transactions]
        self._local.write(records)
        self._push_remote(records)

    def _push_remote(self, records: list[dict[str, Any]]) -> Future | None:
        if self._cloud is None or not self._sync_allowed():
            return None
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="fincal-sync"
            )
            self._owns_executor = True
        future = self._executor.submit(self._cloud.push, records)
        future.add_done_callback(_log_push_failure)
        return future

"""Local persistence: one JSON array per key in the SQLite database."""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from . import database
from .errors import RecordError
from .models import StoredDocument

logger = logging.getLogger(__name__)

CALENDAR_KEY = "finance-calendar"


class LocalStore:
    """Read and write whole record arrays through a SQLAlchemy session factory."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory

    def _session(self):
        factory = self._session_factory or database.SessionLocal
        return factory()

    def read(self, key: str = CALENDAR_KEY) -> list[dict[str, Any]] | None:
        with self._session() as session:
            doc = session.get(StoredDocument, key)
            if doc is None:
                return None
            payload = doc.payload
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise RecordError(f"stored {key!r} is not valid JSON") from exc
        if not isinstance(data, list):
            raise RecordError(f"stored {key!r} is not a list")
        logger.debug("Read %d records from %s", len(data), key)
        return data

    def write(self, records: Iterable[dict[str, Any]], key: str = CALENDAR_KEY) -> None:
        records = list(records)
        payload = json.dumps(records)
        with self._session() as session:
            doc = session.get(StoredDocument, key)
            if doc is None:
                session.add(StoredDocument(key=key, payload=payload))
            else:
                doc.payload = payload
            session.commit()
        logger.debug("Wrote %d records to %s", len(records), key)

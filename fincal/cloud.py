from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from .models import UserData

logger = logging.getLogger(__name__)


def _find(session: Session, user_id: str) -> UserData | None:
    return (
        session.query(UserData)
        .filter(UserData.user_id == user_id)
        .one_or_none()
    )


def get_user_cloud_data(session: Session, user_id: str) -> dict[str, list[Any]] | None:
    """Return the user's document, or ``None`` if nothing was ever saved."""

    doc = _find(session, user_id)
    if doc is None:
        return None
    return {
        "accounts": doc.accounts or [],
        "balances": doc.balances or [],
        "calendarEvents": doc.calendar_events or [],
    }


def save_user_cloud_data(
    session: Session,
    user_id: str,
    accounts: list[Any] | None = None,
    balances: list[Any] | None = None,
    calendar_events: list[Any] | None = None,
) -> None:
    """Upsert the user's document, replacing only the fields provided."""

    fields = {}
    if accounts is not None:
        fields["accounts"] = accounts
    if balances is not None:
        fields["balances"] = balances
    if calendar_events is not None:
        fields["calendar_events"] = calendar_events
    if not fields:
        return

    doc = _find(session, user_id)
    if doc is None:
        doc = UserData(user_id=user_id)
        session.add(doc)
    for name, value in fields.items():
        setattr(doc, name, value)
    session.commit()
    logger.debug("Saved %s for user %s", ", ".join(sorted(fields)), user_id)


def delete_user_cloud_data(session: Session, user_id: str) -> None:
    session.query(UserData).filter(UserData.user_id == user_id).delete()
    session.commit()

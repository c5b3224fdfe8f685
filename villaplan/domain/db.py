"""Unit-of-work helper shared by the services."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from villaplan.errors import ConcurrentUpdateError
from villaplan.logging_setup import get_logger

logger = get_logger(__name__)


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """
    Run a unit of work: commit on success, roll back on any exception.

    A version mismatch on a versioned row (planning month, slot, absence or
    counter) means another writer committed first; it is re-raised as
    ConcurrentUpdateError so the caller can reload and retry.
    """
    try:
        yield session
        session.commit()
    except StaleDataError as exc:
        session.rollback()
        logger.warning("Concurrent update detected, rolled back: %s", exc)
        raise ConcurrentUpdateError(
            "The record was modified by someone else; reload and retry"
        ) from exc
    except Exception:
        session.rollback()
        raise

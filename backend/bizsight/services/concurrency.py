# Overview: Row locking and retry for stock-changing writes.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


logger = logging.getLogger(__name__)

# Lock timeouts and deadlocks surface as OperationalError; a concurrent
# bump of Product.version_id surfaces as StaleDataError.
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """SELECT ... FOR UPDATE. A no-op on SQLite."""
    return query.with_for_update()


def run_with_retry(unit_of_work, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call unit_of_work until it succeeds or attempts run out.

    The session is rolled back before each retry, so unit_of_work must
    re-read whatever it changes. The last failure propagates.
    """
    attempt = 1
    while True:
        try:
            return unit_of_work()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts:
                raise
            logger.warning("Write conflict (%s), retry %d of %d", type(exc).__name__, attempt, attempts - 1)
            time.sleep(backoff_base * 2 ** (attempt - 1))
            attempt += 1

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fishtrade.core.errors import FishtradeError, PersistenceFailureError
from fishtrade.core.observability import actor_id_ctx, get_request_id

logger = logging.getLogger("fishtrade.db")


def lock_for_update(stmt):
    """
    Apply row-level locking to a select.

    SQLite ignores SELECT ... FOR UPDATE; there writers are serialised by the
    BEGIN IMMEDIATE configured on the engine instead.
    """
    return stmt.with_for_update()


@contextmanager
def atomic(db: Session, *, operation: str) -> Iterator[Session]:
    """
    Run one core operation as a single unit of work.

    Commits when the block exits cleanly. Any exception rolls back everything
    the block flushed. Store-level failures (lock timeouts, deadlocks,
    serialisation and optimistic-concurrency conflicts, racing unique inserts)
    surface as PersistenceFailureError, which is safe for the caller to retry.
    No retry happens here.
    """
    try:
        yield db
        db.commit()
    except FishtradeError as exc:
        db.rollback()
        _log_rollback(operation, exc.code, str(exc))
        raise
    except (DBAPIError, StaleDataError) as exc:
        db.rollback()
        detail = str(getattr(exc, "orig", None) or exc)
        _log_rollback(operation, PersistenceFailureError.code, detail)
        raise PersistenceFailureError(
            f"Storage failure during {operation}; no changes were applied",
            operation=operation,
        ) from exc
    except Exception as exc:
        db.rollback()
        _log_rollback(operation, "internal_error", str(exc))
        raise


def _log_rollback(operation: str, code: str, detail: str) -> None:
    logger.warning(
        json.dumps(
            {
                "event": "transaction.rollback",
                "request_id": get_request_id(),
                "operation": operation,
                "actor_id": actor_id_ctx.get(),
                "code": code,
                "detail": detail[:500],
            }
        )
    )

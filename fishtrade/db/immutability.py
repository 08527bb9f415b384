"""
ORM guards that keep the inventory log append-only.

Every quantity change writes a new InventoryLogEntry; existing entries are
never edited or removed. These listeners fire before SQLAlchemy emits the
UPDATE/DELETE, so the flush fails and the surrounding transaction rolls back
without touching the table.

Bulk ``query.update()`` / ``query.delete()`` and raw SQL bypass mapper events
and are not covered here.
"""

import json
import logging

from sqlalchemy import event

from fishtrade.core.errors import ImmutableRecordError

logger = logging.getLogger("fishtrade.db")

_registered = False


def _block_log_update(mapper, connection, target):
    _reject("update", target)


def _block_log_delete(mapper, connection, target):
    _reject("delete", target)


def _reject(action: str, target) -> None:
    logger.error(
        json.dumps(
            {
                "event": "inventory_log.immutability_violation",
                "action": action,
                "entry_id": target.id,
                "product_id": target.product_id,
            }
        )
    )
    raise ImmutableRecordError("InventoryLogEntry", target.id)


def register_immutability_listeners() -> None:
    """Install the listeners once per process. Safe to call repeatedly."""
    global _registered
    if _registered:
        return
    # Imported here; the models package calls this function while it loads.
    from fishtrade.models.inventory import InventoryLogEntry

    event.listen(InventoryLogEntry, "before_update", _block_log_update)
    event.listen(InventoryLogEntry, "before_delete", _block_log_delete)
    _registered = True


from decimal import Decimal

import pytest
from sqlalchemy import func, select, text

from fishtrade.core.errors import (
    ImmutableRecordError,
    InsufficientStockError,
    NotFoundError,
    OrderValidationError,
)
from fishtrade.models.inventory import (
    LOG_TYPE_ADJUSTMENT,
    LOG_TYPE_LOSS,
    REF_INITIAL_STOCK,
    REF_MANUAL_ADJUSTMENT,
    REF_STOCK_COUNT,
    InventoryLogEntry,
    InventoryRecord,
)
from fishtrade.schemas.product import ProductCreate
from fishtrade.services import catalog_service, inventory_service, report_service


def _product(db, name: str, *, stock: int = 0, min_stock: int = 0):
    product, _ = catalog_service.create_product(
        db,
        payload=ProductCreate(name=name, initial_stock=stock, min_stock=min_stock, cost_price=2),
        actor_id="tester",
    )
    return product.id


def _entries(db, product_id: str) -> list[InventoryLogEntry]:
    return list(
        db.execute(
            select(InventoryLogEntry)
            .where(InventoryLogEntry.product_id == product_id)
            .order_by(InventoryLogEntry.sequence.asc())
        ).scalars()
    )


def test_initial_stock_is_booked_through_the_ledger(db_session):
    product_id = _product(db_session, "Koi Kohaku", stock=10)

    record = db_session.get(InventoryRecord, product_id)
    assert record.quantity == Decimal("10")
    assert record.version == 1

    entries = _entries(db_session, product_id)
    assert len(entries) == 1
    assert entries[0].sequence == 1
    assert entries[0].type == LOG_TYPE_ADJUSTMENT
    assert entries[0].reference_type == REF_INITIAL_STOCK
    assert entries[0].quantity_before == Decimal("0")
    assert entries[0].quantity_after == Decimal("10")
    assert entries[0].actor_id == "tester"


def test_product_without_initial_stock_has_no_record(db_session):
    product_id = _product(db_session, "Neon Tetra")

    assert inventory_service.get_inventory_record(db_session, product_id) is None
    assert inventory_service.get_stock(db_session, product_id) == Decimal("0")
    assert _entries(db_session, product_id) == []


def test_adjust_add_and_reduce_chain_entries(db_session):
    product_id = _product(db_session, "Goldfish", stock=10)

    added = inventory_service.adjust_stock(
        db_session, product_id=product_id, direction="add", quantity=5, actor_id="clerk-1", note="found box"
    )
    assert added.quantity_before == Decimal("10")
    assert added.quantity_after == Decimal("15")
    assert added.changed

    reduced = inventory_service.adjust_stock(
        db_session, product_id=product_id, direction="reduce", quantity=4, actor_id="clerk-2"
    )
    assert reduced.quantity_after == Decimal("11")

    entries = _entries(db_session, product_id)
    assert [entry.sequence for entry in entries] == [1, 2, 3]
    assert [entry.quantity_change for entry in entries] == [Decimal("10"), Decimal("5"), Decimal("-4")]
    assert entries[1].reference_type == REF_MANUAL_ADJUSTMENT
    assert entries[1].note == "found box"
    assert entries[2].actor_id == "clerk-2"
    for previous, current in zip(entries, entries[1:]):
        assert current.quantity_before == previous.quantity_after

    record = db_session.get(InventoryRecord, product_id)
    assert record.version == 3
    assert inventory_service.get_stock(db_session, product_id) == Decimal("11")


def test_reduce_below_zero_is_rejected_without_writing(db_session):
    product_id = _product(db_session, "Betta", stock=3)

    with pytest.raises(InsufficientStockError) as exc_info:
        inventory_service.adjust_stock(
            db_session, product_id=product_id, direction="reduce", quantity=5, actor_id="clerk"
        )

    assert exc_info.value.available == Decimal("3")
    assert exc_info.value.requested == Decimal("5")
    assert "available 3, requested 5" in str(exc_info.value)
    assert inventory_service.get_stock(db_session, product_id) == Decimal("3")
    assert len(_entries(db_session, product_id)) == 1


def test_set_level_writes_the_difference_and_skips_no_change(db_session):
    product_id = _product(db_session, "Guppy", stock=10)

    unchanged = inventory_service.adjust_stock(
        db_session, product_id=product_id, direction="set", quantity=10, actor_id="counter"
    )
    assert not unchanged.changed
    assert unchanged.quantity_change == Decimal("0")
    assert len(_entries(db_session, product_id)) == 1

    counted = inventory_service.adjust_stock(
        db_session, product_id=product_id, direction="set", quantity=4, actor_id="counter"
    )
    assert counted.quantity_change == Decimal("-6")

    entries = _entries(db_session, product_id)
    assert len(entries) == 2
    assert entries[-1].reference_type == REF_STOCK_COUNT
    assert entries[-1].quantity_after == Decimal("4")


def test_set_level_creates_a_record_for_untracked_product(db_session):
    product_id = _product(db_session, "Angelfish")

    counted = inventory_service.adjust_stock(
        db_session, product_id=product_id, direction="set", quantity=7, actor_id="counter"
    )

    assert counted.quantity_before == Decimal("0")
    assert counted.quantity_after == Decimal("7")
    assert db_session.get(InventoryRecord, product_id).version == 1


def test_record_loss_writes_a_loss_entry(db_session):
    product_id = _product(db_session, "Discus", stock=8)

    loss = inventory_service.record_loss(
        db_session, product_id=product_id, quantity=2, loss_reason="  died in transit ", actor_id="clerk"
    )

    assert loss.quantity_after == Decimal("6")
    entry = _entries(db_session, product_id)[-1]
    assert entry.type == LOG_TYPE_LOSS
    assert entry.loss_reason == "died in transit"
    assert entry.quantity_change == Decimal("-2")


def test_record_loss_requires_a_reason(db_session):
    product_id = _product(db_session, "Oscar", stock=8)

    with pytest.raises(OrderValidationError):
        inventory_service.record_loss(
            db_session, product_id=product_id, quantity=1, loss_reason=" ", actor_id="clerk"
        )
    assert inventory_service.get_stock(db_session, product_id) == Decimal("8")


def test_zero_change_and_unknown_type_are_rejected(db_session):
    product_id = _product(db_session, "Molly", stock=1)

    with pytest.raises(OrderValidationError):
        inventory_service.apply_stock_change(
            db_session, product_id=product_id, delta=0, log_type=LOG_TYPE_ADJUSTMENT, actor_id="clerk"
        )
    with pytest.raises(OrderValidationError):
        inventory_service.apply_stock_change(
            db_session, product_id=product_id, delta=1, log_type="gift", actor_id="clerk"
        )
    with pytest.raises(OrderValidationError):
        inventory_service.apply_stock_change(
            db_session, product_id=product_id, delta=1, log_type=LOG_TYPE_ADJUSTMENT, actor_id=""
        )
    db_session.rollback()


def test_quantities_beyond_column_precision_are_rejected(db_session):
    product_id = _product(db_session, "Arowana", stock=5)

    with pytest.raises(OrderValidationError) as exc_info:
        inventory_service.adjust_stock(
            db_session,
            product_id=product_id,
            direction="add",
            quantity=Decimal("1234567890123.457"),
            actor_id="clerk",
        )
    assert exc_info.value.field == "quantity"
    with pytest.raises(OrderValidationError):
        inventory_service.adjust_stock(
            db_session,
            product_id=product_id,
            direction="set",
            quantity=Decimal("12345678901234567.891"),
            actor_id="clerk",
        )
    with pytest.raises(OrderValidationError):
        inventory_service.record_loss(
            db_session,
            product_id=product_id,
            quantity=Decimal("1e12"),
            loss_reason="died",
            actor_id="clerk",
        )

    assert inventory_service.get_stock(db_session, product_id) == Decimal("5")
    assert len(_entries(db_session, product_id)) == 1


def test_change_that_would_overflow_the_record_is_rejected(db_session):
    product_id = _product(db_session, "Arowana", stock=999999999)

    with pytest.raises(OrderValidationError):
        inventory_service.adjust_stock(
            db_session, product_id=product_id, direction="add", quantity=1, actor_id="clerk"
        )

    assert inventory_service.get_stock(db_session, product_id) == Decimal("999999999")
    assert len(_entries(db_session, product_id)) == 1
    assert report_service.check_reconciliation(db_session, product_id=product_id).ok


def test_unknown_product_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        inventory_service.get_stock(db_session, "missing-product")
    with pytest.raises(NotFoundError):
        inventory_service.adjust_stock(
            db_session, product_id="missing-product", direction="add", quantity=1, actor_id="clerk"
        )


def test_log_entries_cannot_be_updated(db_session):
    product_id = _product(db_session, "Pleco", stock=5)
    entry = _entries(db_session, product_id)[0]

    entry.note = "rewritten history"
    with pytest.raises(ImmutableRecordError):
        db_session.flush()
    db_session.rollback()

    assert _entries(db_session, product_id)[0].note == "Initial stock"


def test_log_entries_cannot_be_deleted(db_session):
    product_id = _product(db_session, "Corydoras", stock=5)
    entry = _entries(db_session, product_id)[0]

    db_session.delete(entry)
    with pytest.raises(ImmutableRecordError):
        db_session.flush()
    db_session.rollback()

    assert len(_entries(db_session, product_id)) == 1


def test_reconciliation_holds_after_mixed_activity(db_session):
    first = _product(db_session, "Arowana", stock=12)
    second = _product(db_session, "Rasbora", stock=30)
    _product(db_session, "Loach")

    inventory_service.adjust_stock(db_session, product_id=first, direction="add", quantity=3, actor_id="a")
    inventory_service.record_loss(db_session, product_id=first, quantity=1, loss_reason="disease", actor_id="a")
    inventory_service.adjust_stock(db_session, product_id=second, direction="set", quantity=25, actor_id="a")

    report = report_service.check_reconciliation(db_session)
    assert report.ok
    assert report.checked_products == 2

    total = db_session.execute(
        select(func.sum(InventoryLogEntry.quantity_change)).where(InventoryLogEntry.product_id == first)
    ).scalar_one()
    assert Decimal(str(total)) == inventory_service.get_stock(db_session, first)


def test_reconciliation_flags_a_record_changed_outside_the_ledger(db_session):
    product_id = _product(db_session, "Cichlid", stock=6)
    db_session.execute(
        text("UPDATE inventory_records SET quantity = 9 WHERE product_id = :product_id"),
        {"product_id": product_id},
    )
    db_session.commit()

    report = report_service.check_reconciliation(db_session, product_id=product_id)

    assert not report.ok
    mismatch = report.mismatches[0]
    assert mismatch.product_id == product_id
    assert mismatch.record_quantity == Decimal("9")
    assert mismatch.log_total == Decimal("6")
    assert mismatch.latest_quantity_after == Decimal("6")

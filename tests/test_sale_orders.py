from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from fishtrade.models.customer import Customer
from fishtrade.models.sale_order import SaleOrder, SaleOrderItem
from fishtrade.services import sale_order_service

ACTOR = {"X-Actor-Id": "clerk-1"}


def _create_product(client, name: str, *, stock: float, min_stock: float = 0) -> str:
    response = client.post(
        "/products",
        json={"name": name, "initial_stock": stock, "min_stock": min_stock, "cost_price": 4, "retail_price": 9},
        headers=ACTOR,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _stock(client, product_id: str) -> float:
    response = client.get(f"/inventory/{product_id}")
    assert response.status_code == 200, response.text
    return response.json()["quantity"]


def _logs(client, **params) -> list[dict]:
    response = client.get("/inventory/logs", params=params)
    assert response.status_code == 200, response.text
    return response.json()["items"]


def _create_order(client, items: list[tuple[str, float]], **extra):
    payload = {
        "items": [
            {"product_id": product_id, "quantity": quantity, "unit_price": 10}
            for product_id, quantity in items
        ],
        **extra,
    }
    return client.post("/sale-orders", json=payload, headers=ACTOR)


def _set_status(client, order_id: str, status: str):
    return client.patch(f"/sale-orders/{order_id}/status", json={"status": status}, headers=ACTOR)


def test_sale_deducts_stock_and_rejects_oversell(test_context):
    client, _ = test_context
    product_id = _create_product(client, "Koi Showa", stock=10, min_stock=5)

    created = _create_order(client, [(product_id, 7)])
    assert created.status_code == 201, created.text
    order = created.json()
    assert order["status"] == "pending"
    assert order["order_number"].startswith("INV-")
    assert order["subtotal"] == 70.0
    assert order["total_amount"] == 70.0
    assert _stock(client, product_id) == 3.0

    sales = _logs(client, product_id=product_id, type="sale")
    assert len(sales) == 1
    assert sales[0]["quantity_change"] == -7.0
    assert sales[0]["reference_id"] == order["id"]
    assert sales[0]["actor_id"] == "clerk-1"

    low = client.get("/inventory", params={"stock_status": "Low Stock"})
    assert low.status_code == 200, low.text
    assert [item["product_id"] for item in low.json()["items"]] == [product_id]

    rejected = _create_order(client, [(product_id, 5)])
    assert rejected.status_code == 409, rejected.text
    error = rejected.json()["error"]
    assert error["code"] == "insufficient_stock"
    assert "available 3, requested 5" in error["message"]
    assert error["details"][0]["product_id"] == product_id
    assert _stock(client, product_id) == 3.0


def test_order_with_one_short_item_writes_nothing(test_context):
    client, session_local = test_context
    koi = _create_product(client, "Koi", stock=10)
    tetra = _create_product(client, "Tetra", stock=2)
    log_count_before = len(_logs(client))

    rejected = _create_order(client, [(koi, 4), (tetra, 3)], customer_name="New Buyer")
    assert rejected.status_code == 409, rejected.text

    assert _stock(client, koi) == 10.0
    assert _stock(client, tetra) == 2.0
    assert len(_logs(client)) == log_count_before
    with session_local() as db:
        assert db.execute(select(func.count()).select_from(SaleOrder)).scalar_one() == 0
        assert db.execute(select(func.count()).select_from(SaleOrderItem)).scalar_one() == 0
        assert db.execute(select(func.count()).select_from(Customer)).scalar_one() == 0


def test_cancel_restores_exactly_what_was_deducted(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)
    tetra = _create_product(client, "Tetra", stock=20)

    order = _create_order(client, [(koi, 7), (tetra, 5)]).json()
    assert _stock(client, koi) == 3.0

    cancelled = client.post(f"/sale-orders/{order['id']}/cancel", headers=ACTOR)
    assert cancelled.status_code == 200, cancelled.text
    assert cancelled.json()["status"] == "cancelled"
    assert _stock(client, koi) == 10.0
    assert _stock(client, tetra) == 20.0

    restores = _logs(client, reference_type="sale_order_cancel", reference_id=order["id"])
    assert sorted((entry["product_id"], entry["quantity_change"]) for entry in restores) == sorted(
        [(koi, 7.0), (tetra, 5.0)]
    )
    assert all(entry["type"] == "adjustment" for entry in restores)

    again = client.post(f"/sale-orders/{order['id']}/cancel", headers=ACTOR)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "invalid_transition"
    assert _stock(client, koi) == 10.0


def test_status_cancelled_goes_through_the_cancel_path(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)
    order = _create_order(client, [(koi, 4)], status="completed").json()
    assert order["status"] == "completed"

    response = _set_status(client, order["id"], "cancelled")
    assert response.status_code == 200, response.text
    assert _stock(client, koi) == 10.0


def test_reactivation_rechecks_stock(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)

    first = _create_order(client, [(koi, 7)]).json()
    client.post(f"/sale-orders/{first['id']}/cancel", headers=ACTOR)
    assert _create_order(client, [(koi, 6)]).status_code == 201
    assert _stock(client, koi) == 4.0

    blocked = _set_status(client, first["id"], "pending")
    assert blocked.status_code == 409, blocked.text
    assert blocked.json()["error"]["code"] == "insufficient_stock"
    assert client.get(f"/sale-orders/{first['id']}").json()["status"] == "cancelled"
    assert _stock(client, koi) == 4.0

    client.post(
        "/inventory/adjust",
        json={"product_id": koi, "direction": "add", "quantity": 10},
        headers=ACTOR,
    )
    reactivated = _set_status(client, first["id"], "completed")
    assert reactivated.status_code == 200, reactivated.text
    assert reactivated.json()["status"] == "completed"
    assert _stock(client, koi) == 7.0

    sales = _logs(client, type="sale", reference_id=first["id"])
    assert len(sales) == 2


def test_forward_moves_do_not_touch_stock(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)
    order = _create_order(client, [(koi, 2)]).json()
    entries_before = len(_logs(client, product_id=koi))

    assert _set_status(client, order["id"], "pending").status_code == 200
    assert _set_status(client, order["id"], "processing").status_code == 200
    assert _set_status(client, order["id"], "completed").status_code == 200

    assert len(_logs(client, product_id=koi)) == entries_before
    assert _stock(client, koi) == 8.0


def test_invalid_status_changes_are_rejected(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)
    order = _create_order(client, [(koi, 1)], status="completed").json()

    backwards = _set_status(client, order["id"], "pending")
    assert backwards.status_code == 409
    details = backwards.json()["error"]["details"][0]
    assert details["current_status"] == "completed"
    assert details["requested_status"] == "pending"

    unknown = _set_status(client, order["id"], "shipped")
    assert unknown.status_code == 422
    assert unknown.json()["error"]["code"] == "validation_error"

    missing = _set_status(client, "no-such-order", "completed")
    assert missing.status_code == 404


def test_create_rejects_bad_input(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)

    as_cancelled = _create_order(client, [(koi, 1)], status="cancelled")
    assert as_cancelled.status_code == 422

    too_much_discount = _create_order(client, [(koi, 1)], discount_amount=50)
    assert too_much_discount.status_code == 422
    assert too_much_discount.json()["error"]["details"][0]["field"] == "discount_amount"

    no_items = client.post("/sale-orders", json={"items": []}, headers=ACTOR)
    assert no_items.status_code == 422

    unknown_product = _create_order(client, [("missing", 1)])
    assert unknown_product.status_code == 404

    assert _stock(client, koi) == 10.0


def test_discount_is_applied_to_total(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)

    order = _create_order(client, [(koi, 3)], discount_amount=5, sale_type="wholesale").json()

    assert order["subtotal"] == 30.0
    assert order["discount_amount"] == 5.0
    assert order["total_amount"] == 25.0
    assert order["sale_type"] == "wholesale"


def test_customer_is_resolved_by_name_or_walk_in(test_context):
    client, session_local = test_context
    koi = _create_product(client, "Koi", stock=10)

    walk_in = _create_order(client, [(koi, 1)]).json()
    assert walk_in["customer_id"] is None
    assert walk_in["customer_name"] == "Walk-in Customer"

    first = _create_order(client, [(koi, 1)], customer_name="Ada Fisher").json()
    second = _create_order(client, [(koi, 1)], customer_name="Ada Fisher").json()
    assert first["customer_id"] is not None
    assert first["customer_id"] == second["customer_id"]
    assert second["customer_name"] == "Ada Fisher"

    explicit = _create_order(client, [(koi, 1)], customer_id=first["customer_id"]).json()
    assert explicit["customer_name"] == "Ada Fisher"

    unknown = _create_order(client, [(koi, 1)], customer_id="nobody")
    assert unknown.status_code == 404

    with session_local() as db:
        assert db.execute(select(func.count()).select_from(Customer)).scalar_one() == 1
    assert _stock(client, koi) == 6.0


def test_update_fields_has_no_stock_effect(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)
    order = _create_order(client, [(koi, 2)]).json()

    updated = client.patch(
        f"/sale-orders/{order['id']}",
        json={"notes": "Deliver Friday", "payment_method": "transfer", "customer_name": "Bo Trader"},
        headers=ACTOR,
    )
    assert updated.status_code == 200, updated.text
    body = updated.json()
    assert body["notes"] == "Deliver Friday"
    assert body["payment_method"] == "transfer"
    assert body["customer_name"] == "Bo Trader"
    assert _stock(client, koi) == 8.0

    both = client.patch(
        f"/sale-orders/{order['id']}",
        json={"customer_id": body["customer_id"], "customer_name": "Someone"},
        headers=ACTOR,
    )
    assert both.status_code == 422


def test_replacing_items_moves_only_the_difference(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)
    tetra = _create_product(client, "Tetra", stock=10)
    order = _create_order(client, [(koi, 2)]).json()

    replaced = client.put(
        f"/sale-orders/{order['id']}/items",
        json={
            "items": [
                {"product_id": koi, "quantity": 5, "unit_price": 10},
                {"product_id": tetra, "quantity": 1, "unit_price": 3},
            ]
        },
        headers=ACTOR,
    )
    assert replaced.status_code == 200, replaced.text
    body = replaced.json()
    assert [item["product_id"] for item in body["items"]] == [koi, tetra]
    assert body["subtotal"] == 53.0
    assert _stock(client, koi) == 5.0
    assert _stock(client, tetra) == 9.0

    edit_entries = _logs(client, reference_id=order["id"], reference_type="sale_order_edit")
    assert sorted(entry["quantity_change"] for entry in edit_entries) == [-5.0, -1.0, 2.0]

    report = client.get("/inventory/reconciliation").json()
    assert report["ok"] is True


def test_replacing_items_beyond_stock_keeps_the_order(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)
    order = _create_order(client, [(koi, 2)]).json()

    rejected = client.put(
        f"/sale-orders/{order['id']}/items",
        json={"items": [{"product_id": koi, "quantity": 11, "unit_price": 10}]},
        headers=ACTOR,
    )
    assert rejected.status_code == 409, rejected.text

    current = client.get(f"/sale-orders/{order['id']}").json()
    assert current["items"][0]["quantity"] == 2.0
    assert _stock(client, koi) == 8.0


def test_replacing_items_of_cancelled_order_moves_no_stock(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)
    order = _create_order(client, [(koi, 2)]).json()
    client.post(f"/sale-orders/{order['id']}/cancel", headers=ACTOR)

    replaced = client.put(
        f"/sale-orders/{order['id']}/items",
        json={"items": [{"product_id": koi, "quantity": 9, "unit_price": 10}]},
        headers=ACTOR,
    )
    assert replaced.status_code == 200, replaced.text
    assert _stock(client, koi) == 10.0


def test_completed_order_items_cannot_be_replaced(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)
    completed = _create_order(client, [(koi, 2)], status="completed").json()

    rejected = client.put(
        f"/sale-orders/{completed['id']}/items",
        json={"items": [{"product_id": koi, "quantity": 4, "unit_price": 10}]},
        headers=ACTOR,
    )
    assert rejected.status_code == 409, rejected.text
    error = rejected.json()["error"]
    assert error["code"] == "invalid_transition"
    assert error["details"][0]["current_status"] == "completed"
    assert client.get(f"/sale-orders/{completed['id']}").json()["items"][0]["quantity"] == 2.0
    assert _stock(client, koi) == 8.0

    processing = _create_order(client, [(koi, 1)], status="processing").json()
    replaced = client.put(
        f"/sale-orders/{processing['id']}/items",
        json={"items": [{"product_id": koi, "quantity": 3, "unit_price": 10}]},
        headers=ACTOR,
    )
    assert replaced.status_code == 200, replaced.text
    assert _stock(client, koi) == 5.0


def test_line_total_beyond_money_precision_is_rejected(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)

    response = client.post(
        "/sale-orders",
        json={"items": [{"product_id": koi, "quantity": 5, "unit_price": "9999999999.99"}]},
        headers=ACTOR,
    )

    assert response.status_code == 422, response.text
    error = response.json()["error"]
    assert error["code"] == "validation_error"
    assert error["details"][0]["field"] == "items.quantity"
    assert _stock(client, koi) == 10.0
    assert client.get("/sale-orders").json()["pagination"]["total"] == 0


def test_delete_restores_stock_for_pending_orders_only(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=10)
    pending = _create_order(client, [(koi, 3)]).json()
    completed = _create_order(client, [(koi, 2)], status="completed").json()

    deleted = client.delete(f"/sale-orders/{pending['id']}", headers=ACTOR)
    assert deleted.status_code == 204
    assert client.get(f"/sale-orders/{pending['id']}").status_code == 404
    assert _stock(client, koi) == 8.0
    assert len(_logs(client, reference_type="sale_order_delete", reference_id=pending["id"])) == 1

    refused = client.delete(f"/sale-orders/{completed['id']}", headers=ACTOR)
    assert refused.status_code == 409
    assert _stock(client, koi) == 8.0


def test_list_sale_orders_filters_and_paginates(test_context):
    client, _ = test_context
    koi = _create_product(client, "Koi", stock=20)
    _create_order(client, [(koi, 1)])
    _create_order(client, [(koi, 1)])
    _create_order(client, [(koi, 1)], status="completed")

    pending = client.get("/sale-orders", params={"status": "pending", "limit": 1})
    assert pending.status_code == 200, pending.text
    body = pending.json()
    assert len(body["items"]) == 1
    assert body["pagination"]["total"] == 2
    assert body["pagination"]["has_next"] is True


def test_storage_failure_mid_order_rolls_everything_back(test_context, monkeypatch):
    client, session_local = test_context
    koi = _create_product(client, "Koi", stock=10)
    tetra = _create_product(client, "Tetra", stock=10)
    log_count_before = len(_logs(client))

    real_apply = sale_order_service.apply_stock_change
    calls = {"count": 0}

    def flaky_apply(db, **kwargs):
        calls["count"] += 1
        if calls["count"] == 2:
            raise StaleDataError("inventory_records row changed underneath us")
        return real_apply(db, **kwargs)

    monkeypatch.setattr(sale_order_service, "apply_stock_change", flaky_apply)

    response = _create_order(client, [(koi, 3), (tetra, 4)])
    assert response.status_code == 503, response.text
    assert response.headers["Retry-After"] == "1"
    assert response.json()["error"]["code"] == "persistence_failure"
    assert response.json()["error"]["retryable"] is True

    monkeypatch.undo()
    assert calls["count"] == 2
    assert _stock(client, koi) == 10.0
    assert _stock(client, tetra) == 10.0
    assert len(_logs(client)) == log_count_before
    with session_local() as db:
        assert db.execute(select(func.count()).select_from(SaleOrder)).scalar_one() == 0

ACTOR = {"X-Actor-Id": "buyer-1"}


def _create_product(client, name: str, *, stock: float = 0) -> str:
    response = client.post("/products", json={"name": name, "initial_stock": stock}, headers=ACTOR)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _create_supplier(client, name: str = "Mekong Hatchery") -> str:
    response = client.post(
        "/suppliers",
        json={"name": name, "contact_person": "Linh", "email": "orders@mekonghatchery.vn"},
        headers=ACTOR,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _create_import(client, supplier_id: str, items: list[tuple[str, float, float]], **extra):
    payload = {
        "supplier_id": supplier_id,
        "items": [
            {"product_id": product_id, "quantity": quantity, "unit_price": unit_price}
            for product_id, quantity, unit_price in items
        ],
        **extra,
    }
    return client.post("/import-orders", json=payload, headers=ACTOR)


def _stock(client, product_id: str) -> float:
    return client.get(f"/inventory/{product_id}").json()["quantity"]


def _set_status(client, order_id: str, status: str, **extra):
    return client.patch(
        f"/import-orders/{order_id}/status", json={"status": status, **extra}, headers=ACTOR
    )


def test_delivery_credits_stock_once(test_context):
    client, _ = test_context
    supplier_id = _create_supplier(client)
    koi = _create_product(client, "Koi")

    created = _create_import(client, supplier_id, [(koi, 20, 5)])
    assert created.status_code == 201, created.text
    order = created.json()
    assert order["status"] == "pending"
    assert order["order_number"].startswith("IMP-")
    assert order["total_amount"] == 100.0
    assert order["supplier_name"] == "Mekong Hatchery"
    assert order["delivery_date"] is None
    assert order["items"][0]["batch_id"].startswith("B-")
    assert _stock(client, koi) == 0.0

    delivered = _set_status(client, order["id"], "delivered", delivery_date="2026-10-18")
    assert delivered.status_code == 200, delivered.text
    assert delivered.json()["status"] == "delivered"
    assert delivered.json()["delivery_date"] == "2026-10-18"
    assert _stock(client, koi) == 20.0

    entries = client.get("/inventory/logs", params={"product_id": koi}).json()["items"]
    assert len(entries) == 1
    assert entries[0]["type"] == "import"
    assert entries[0]["quantity_change"] == 20.0
    assert entries[0]["reference_type"] == "import_order"
    assert entries[0]["reference_id"] == order["id"]

    again = _set_status(client, order["id"], "delivered")
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "invalid_transition"
    assert _stock(client, koi) == 20.0


def test_delivery_sums_every_line(test_context):
    client, _ = test_context
    supplier_id = _create_supplier(client)
    koi = _create_product(client, "Koi", stock=3)
    tetra = _create_product(client, "Tetra")

    order = _create_import(client, supplier_id, [(koi, 10, 5), (tetra, 50, 0.4), (koi, 2, 5)]).json()
    assert _set_status(client, order["id"], "confirmed").status_code == 200
    assert _stock(client, koi) == 3.0

    delivered = _set_status(client, order["id"], "delivered", total_amount=95.5)
    assert delivered.status_code == 200, delivered.text
    assert delivered.json()["total_amount"] == 95.5
    assert delivered.json()["delivery_date"] is not None
    assert _stock(client, koi) == 15.0
    assert _stock(client, tetra) == 50.0
    assert client.get("/inventory/reconciliation").json()["ok"] is True


def test_terminal_statuses_cannot_move(test_context):
    client, _ = test_context
    supplier_id = _create_supplier(client)
    koi = _create_product(client, "Koi")
    order = _create_import(client, supplier_id, [(koi, 5, 1)]).json()

    assert _set_status(client, order["id"], "cancelled").status_code == 200
    reopened = _set_status(client, order["id"], "pending")
    assert reopened.status_code == 409
    delivered = _set_status(client, order["id"], "delivered")
    assert delivered.status_code == 409
    assert _stock(client, koi) == 0.0


def test_delivery_fields_only_allowed_when_delivering(test_context):
    client, _ = test_context
    supplier_id = _create_supplier(client)
    koi = _create_product(client, "Koi")
    order = _create_import(client, supplier_id, [(koi, 5, 1)]).json()

    response = _set_status(client, order["id"], "confirmed", delivery_date="2026-10-01")
    assert response.status_code == 422
    assert client.get(f"/import-orders/{order['id']}").json()["status"] == "pending"


def test_invoiced_total_must_fit_the_money_column(test_context):
    client, _ = test_context
    supplier_id = _create_supplier(client)
    koi = _create_product(client, "Koi")

    oversized = _create_import(client, supplier_id, [(koi, 5, 1)], total_amount="12345678901.00")
    assert oversized.status_code == 422, oversized.text

    order = _create_import(client, supplier_id, [(koi, 5, 1)]).json()
    response = _set_status(client, order["id"], "delivered", total_amount="4.999")
    assert response.status_code == 422, response.text
    assert response.json()["error"]["retryable"] is False
    assert client.get(f"/import-orders/{order['id']}").json()["status"] == "pending"
    assert _stock(client, koi) == 0.0


def test_pending_orders_can_be_edited_and_deleted(test_context):
    client, _ = test_context
    supplier_id = _create_supplier(client)
    koi = _create_product(client, "Koi")
    tetra = _create_product(client, "Tetra")
    order = _create_import(client, supplier_id, [(koi, 5, 2)]).json()

    replaced = client.put(
        f"/import-orders/{order['id']}/items",
        json={"items": [{"product_id": tetra, "quantity": 30, "unit_price": 0.5}]},
        headers=ACTOR,
    )
    assert replaced.status_code == 200, replaced.text
    body = replaced.json()
    assert [item["product_id"] for item in body["items"]] == [tetra]
    assert body["total_amount"] == 15.0

    deleted = client.delete(f"/import-orders/{order['id']}", headers=ACTOR)
    assert deleted.status_code == 204
    assert client.get(f"/import-orders/{order['id']}").status_code == 404
    assert _stock(client, tetra) == 0.0


def test_delivered_orders_cannot_be_edited_or_deleted(test_context):
    client, _ = test_context
    supplier_id = _create_supplier(client)
    koi = _create_product(client, "Koi")
    order = _create_import(client, supplier_id, [(koi, 5, 2)]).json()
    _set_status(client, order["id"], "delivered")

    edit = client.put(
        f"/import-orders/{order['id']}/items",
        json={"items": [{"product_id": koi, "quantity": 50, "unit_price": 2}]},
        headers=ACTOR,
    )
    assert edit.status_code == 409
    delete = client.delete(f"/import-orders/{order['id']}", headers=ACTOR)
    assert delete.status_code == 409
    assert _stock(client, koi) == 5.0


def test_create_validates_supplier_and_products(test_context):
    client, _ = test_context
    supplier_id = _create_supplier(client)
    koi = _create_product(client, "Koi")

    assert _create_import(client, "missing", [(koi, 1, 1)]).status_code == 404
    assert _create_import(client, supplier_id, [("missing", 1, 1)]).status_code == 404
    bad_dates = _create_import(
        client, supplier_id, [(koi, 1, 1)], order_date="2026-10-10", expected_delivery="2026-10-01"
    )
    assert bad_dates.status_code == 422

    listing = client.get("/import-orders").json()
    assert listing["pagination"]["total"] == 0


def test_list_import_orders_by_status(test_context):
    client, _ = test_context
    supplier_id = _create_supplier(client)
    koi = _create_product(client, "Koi")
    first = _create_import(client, supplier_id, [(koi, 1, 1)]).json()
    _create_import(client, supplier_id, [(koi, 2, 1)])
    _set_status(client, first["id"], "delivered")

    delivered = client.get("/import-orders", params={"status": "delivered"}).json()
    assert [order["id"] for order in delivered["items"]] == [first["id"]]
    pending = client.get("/import-orders", params={"supplier_id": supplier_id, "status": "pending"}).json()
    assert pending["pagination"]["total"] == 1

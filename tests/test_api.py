from fishtrade.db.base import SCHEMA_REVISION

ACTOR = {"X-Actor-Id": "owner-1"}


def test_health_reports_schema_revision(test_context):
    client, _ = test_context

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json() == {"ok": True, "schema_revision": SCHEMA_REVISION}

    root = client.get("/")
    assert root.json()["docs"] == "/docs"

    ready = client.get("/ready")
    assert ready.status_code == 200
    assert ready.json()["ok"] is True


def test_request_id_is_echoed(test_context):
    client, _ = test_context

    response = client.get("/health", headers={"X-Request-ID": "trace-123"})

    assert response.headers["X-Request-ID"] == "trace-123"
    assert "X-API-Timeout-Hint-Ms" in response.headers


def test_mutations_require_actor_header(test_context):
    client, session_local = test_context

    response = client.post("/products", json={"name": "Koi", "initial_stock": 5})

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "validation_error"
    assert any("X-Actor-Id" in detail["field"] for detail in error["details"])
    assert client.get("/products").json()["pagination"]["total"] == 0


def test_domain_errors_use_the_error_envelope(test_context):
    client, _ = test_context

    missing = client.get("/products/unknown-id", headers={"X-Request-ID": "req-404"})

    assert missing.status_code == 404
    error = missing.json()["error"]
    assert error["code"] == "not_found"
    assert error["message"] == "Product not found: unknown-id"
    assert error["request_id"] == "req-404"
    assert error["path"] == "/products/unknown-id"
    assert error["details"] == [{"entity_type": "product", "entity_id": "unknown-id"}]


def test_insufficient_stock_names_product_and_quantities(test_context):
    client, _ = test_context
    product = client.post("/products", json={"name": "Koi Showa", "initial_stock": 3}, headers=ACTOR).json()

    response = client.post(
        "/inventory/adjust",
        json={"product_id": product["id"], "direction": "reduce", "quantity": 5},
        headers=ACTOR,
    )

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "insufficient_stock"
    assert error["message"] == "Insufficient stock for Koi Showa: available 3, requested 5"
    assert error["details"][0]["available"] == 3.0
    assert error["details"][0]["requested"] == 5.0


def test_quantities_and_prices_must_fit_their_columns(test_context):
    client, _ = test_context
    product = client.post("/products", json={"name": "Arowana", "initial_stock": 1}, headers=ACTOR).json()

    for quantity in ("1234567890123.457", "1.2345"):
        response = client.post(
            "/inventory/adjust",
            json={"product_id": product["id"], "direction": "add", "quantity": quantity},
            headers=ACTOR,
        )
        assert response.status_code == 422, response.text
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert error["retryable"] is False
        assert error["details"][0]["field"] == "quantity"

    over_priced = client.post(
        "/sale-orders",
        json={"items": [{"product_id": product["id"], "quantity": 1, "unit_price": "10.005"}]},
        headers=ACTOR,
    )
    assert over_priced.status_code == 422, over_priced.text

    bad_product = client.post(
        "/products", json={"name": "Whale Shark", "cost_price": "12345678901.00"}, headers=ACTOR
    )
    assert bad_product.status_code == 422, bad_product.text

    assert client.get(f"/inventory/{product['id']}").json()["quantity"] == 1.0
    logs = client.get("/inventory/logs", params={"product_id": product["id"]}).json()["items"]
    assert len(logs) == 1


def test_catalog_products_and_categories(test_context):
    client, _ = test_context

    category = client.post("/categories", json={"name": "Koi", "description": "Carp"}, headers=ACTOR)
    assert category.status_code == 201, category.text
    duplicate = client.post("/categories", json={"name": "koi"}, headers=ACTOR)
    assert duplicate.status_code == 422
    assert [item["name"] for item in client.get("/categories").json()["items"]] == ["Koi"]

    explicit = client.post(
        "/products",
        json={"name": "Kohaku", "sku": "koi-kh-01", "category_id": category.json()["id"], "initial_stock": 4},
        headers=ACTOR,
    )
    assert explicit.status_code == 201, explicit.text
    assert explicit.json()["sku"] == "KOI-KH-01"
    assert explicit.json()["quantity"] == 4.0

    taken = client.post("/products", json={"name": "Other", "sku": "KOI-KH-01"}, headers=ACTOR)
    assert taken.status_code == 422

    generated = client.post("/products", json={"name": "Neon Tetra"}, headers=ACTOR)
    assert generated.status_code == 201, generated.text
    assert generated.json()["sku"].startswith("NEONTETR-")
    assert generated.json()["quantity"] == 0.0

    unknown_category = client.post(
        "/products", json={"name": "Ghost", "category_id": "nope"}, headers=ACTOR
    )
    assert unknown_category.status_code == 404

    search = client.get("/products", params={"q": "kohaku"}).json()
    assert [item["id"] for item in search["items"]] == [explicit.json()["id"]]
    assert client.get(f"/products/{explicit.json()['id']}").json()["quantity"] == 4.0


def test_inventory_record_endpoint(test_context):
    client, _ = test_context
    untracked = client.post("/products", json={"name": "Guppy"}, headers=ACTOR).json()

    empty = client.get(f"/inventory/{untracked['id']}").json()
    assert empty == {"product_id": untracked["id"], "quantity": 0.0, "version": 0, "last_updated": None}

    counted = client.post(
        "/inventory/adjust",
        json={"product_id": untracked["id"], "direction": "set", "quantity": 12, "note": "weekly count"},
        headers=ACTOR,
    )
    assert counted.status_code == 200, counted.text
    assert counted.json()["quantity_before"] == 0.0
    assert counted.json()["quantity_after"] == 12.0
    assert counted.json()["log_entry_id"] is not None

    record = client.get(f"/inventory/{untracked['id']}").json()
    assert record["quantity"] == 12.0
    assert record["version"] == 1

    zero_reduce = client.post(
        "/inventory/adjust",
        json={"product_id": untracked["id"], "direction": "reduce", "quantity": 0},
        headers=ACTOR,
    )
    assert zero_reduce.status_code == 422


def test_customers_and_suppliers(test_context):
    client, _ = test_context

    customer = client.post(
        "/customers",
        json={"name": "Ada Fisher", "phone": "0900000000", "email": "ada@fishmail.vn"},
        headers=ACTOR,
    )
    assert customer.status_code == 201, customer.text
    client.post("/customers", json={"name": "Bo Trader"}, headers=ACTOR)

    found = client.get("/customers", params={"q": "ada"}).json()
    assert [item["name"] for item in found["items"]] == ["Ada Fisher"]
    assert client.get("/customers").json()["pagination"]["total"] == 2

    bad_email = client.post("/customers", json={"name": "X", "email": "not-an-email"}, headers=ACTOR)
    assert bad_email.status_code == 422

    supplier = client.post("/suppliers", json={"name": "Delta Farms"}, headers=ACTOR)
    assert supplier.status_code == 201, supplier.text
    assert client.get("/suppliers").json()["items"][0]["name"] == "Delta Farms"

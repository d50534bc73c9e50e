# Overview: Pytest coverage for the JSON API through the Flask test client.

import pytest

from tillpoint.services.terminal_service import TerminalSession


class TestCashierRequired:
    @pytest.mark.parametrize("method, path", [
        ("post", "/api/pos/t1/cart/lines"),
        ("post", "/api/pos/t1/checkout/commit"),
        ("put", "/api/sales/1"),
        ("delete", "/api/sales/1"),
        ("post", "/api/inventory/adjust"),
    ])
    def test_requires_cashier(self, client, method, path):
        response = getattr(client, method)(path, json={})
        assert response.status_code == 401
        assert response.get_json()["code"] == "AUTH_REQUIRED"


class TestCheckoutFlow:
    def test_sell_edit_delete(self, app, client, cashier_headers, product, stock_of):
        response = client.post("/api/pos/t1/cart/lines", json={"product_id": product.id}, headers=cashier_headers)
        assert response.status_code == 201
        client.post(f"/api/pos/t1/cart/lines/{product.id}/quantity", json={"delta": 1}, headers=cashier_headers)

        response = client.post("/api/pos/t1/checkout", headers=cashier_headers)
        assert response.get_json()["terminal"]["draft"]["amount_paid"] == "3000.00"

        response = client.patch(
            "/api/pos/t1/checkout",
            json={"amount_paid": "4000", "payment_method": "Cash", "customer_name": "Jane"},
            headers=cashier_headers,
        )
        assert response.status_code == 200

        response = client.post("/api/pos/t1/checkout/commit", json={}, headers=cashier_headers)
        assert response.status_code == 201
        sale = response.get_json()["sale"]
        assert sale["total"] == "3000.00"
        assert sale["change_due"] == "1000.00"
        assert sale["cashier_name"] == "alice"
        assert sale["customer_name"] == "Jane"
        assert response.get_json()["terminal"]["cart"]["lines"] == []
        assert stock_of(product.id) == 8

        response = client.put(
            f"/api/sales/{sale['id']}",
            json={"items": [{"product_id": product.id, "quantity": 5, "price": "1500"}]},
            headers=cashier_headers,
        )
        assert response.status_code == 200
        assert response.get_json()["reconciliation"]["stock_changes"] == {str(product.id): -3}
        assert stock_of(product.id) == 5

        response = client.delete(f"/api/sales/{sale['id']}", headers=cashier_headers)
        assert response.status_code == 200
        assert stock_of(product.id) == 10
        assert client.get("/api/sales/").get_json()["sales"] == []

    def test_insufficient_payment(self, client, cashier_headers, product):
        client.post("/api/pos/t1/cart/lines", json={"product_id": product.id}, headers=cashier_headers)
        client.post("/api/pos/t1/checkout", headers=cashier_headers)
        response = client.post("/api/pos/t1/checkout/commit", json={"amount_paid": "100"}, headers=cashier_headers)
        assert response.status_code == 400
        assert response.get_json()["code"] == "INSUFFICIENT_PAYMENT"

    def test_out_of_stock(self, client, cashier_headers, make_product):
        empty = make_product(stock_quantity=0)
        response = client.post("/api/pos/t1/cart/lines", json={"product_id": empty.id}, headers=cashier_headers)
        assert response.status_code == 409
        assert response.get_json()["code"] == "OUT_OF_STOCK"

    def test_unknown_product(self, client, cashier_headers):
        response = client.post("/api/pos/t1/cart/lines", json={"product_id": 999}, headers=cashier_headers)
        assert response.status_code == 404

    def test_negotiate_and_switch_mode(self, client, cashier_headers, product):
        client.post("/api/pos/t1/cart/lines", json={"product_id": product.id}, headers=cashier_headers)
        response = client.post(
            "/api/pos/t1/cart/negotiate",
            json={"index": 0, "price": "1100", "quantity": 1},
            headers=cashier_headers,
        )
        assert response.get_json()["code"] == "PRICE_BELOW_FLOOR"

        response = client.put("/api/pos/t1/mode", json={"mode": "Wholesale"}, headers=cashier_headers)
        assert response.get_json()["terminal"]["cart"]["lines"][0]["price"] == "1000.00"

        response = client.post(
            "/api/pos/t1/cart/negotiate",
            json={"index": 0, "price": "1300", "quantity": 1},
            headers=cashier_headers,
        )
        assert response.get_json()["code"] == "NEGOTIATION_NOT_ALLOWED"

    def test_negotiated_price_is_rounded_to_cents(self, client, cashier_headers, product, make_product):
        other = make_product()
        client.post("/api/pos/t1/cart/lines", json={"product_id": product.id}, headers=cashier_headers)
        client.post("/api/pos/t1/cart/lines", json={"product_id": other.id}, headers=cashier_headers)
        for index in (0, 1):
            response = client.post(
                "/api/pos/t1/cart/negotiate",
                json={"index": index, "price": "1300.005", "quantity": 1},
                headers=cashier_headers,
            )
            assert response.status_code == 200
            assert response.get_json()["line"]["price"] == "1300.01"

        client.post("/api/pos/t1/checkout", headers=cashier_headers)
        response = client.post("/api/pos/t1/checkout/commit", json={"amount_paid": "2600.02"}, headers=cashier_headers)
        assert response.status_code == 201
        sale = response.get_json()["sale"]
        assert sale["subtotal"] == "2600.02"
        assert [item["total"] for item in sale["items"]] == ["1300.01", "1300.01"]

    def test_bad_quantity_is_rejected(self, client, cashier_headers, product):
        client.post("/api/pos/t1/cart/lines", json={"product_id": product.id}, headers=cashier_headers)
        response = client.post(
            f"/api/pos/t1/cart/lines/{product.id}/quantity",
            json={"delta": "1.5"},
            headers=cashier_headers,
        )
        assert response.status_code == 400


class TestUnexpectedErrors:
    @pytest.mark.parametrize("method, path, attribute", [
        ("delete", "/api/pos/t1/cart", "clear_cart"),
        ("delete", "/api/pos/t1/checkout", "cancel_checkout"),
        ("delete", "/api/pos/t1/cart/lines/1", "remove_line"),
        ("post", "/api/pos/t1/cart/lines/1/quantity", "change_quantity"),
    ])
    def test_unexpected_error_returns_500(self, client, cashier_headers, monkeypatch, method, path, attribute):
        def broken(*args, **kwargs):
            raise RuntimeError("terminal state corrupted")

        monkeypatch.setattr(TerminalSession, attribute, broken)
        response = getattr(client, method)(path, json={"delta": 1}, headers=cashier_headers)
        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}


class TestHoldRoutes:
    def test_hold_resume_conflict(self, client, cashier_headers, product, make_product):
        other = make_product()
        client.post("/api/pos/t1/cart/lines", json={"product_id": product.id}, headers=cashier_headers)
        response = client.post("/api/pos/t1/holds", json={"note": "wait"}, headers=cashier_headers)
        assert response.status_code == 201
        held_id = response.get_json()["held_sale"]["id"]

        assert [h["id"] for h in client.get("/api/pos/t1/holds").get_json()["held_sales"]] == [held_id]

        client.post("/api/pos/t1/cart/lines", json={"product_id": other.id}, headers=cashier_headers)
        response = client.post(f"/api/pos/t1/holds/{held_id}/resume", json={}, headers=cashier_headers)
        assert response.status_code == 409

        response = client.post(
            f"/api/pos/t1/holds/{held_id}/resume", json={"confirm_discard": True}, headers=cashier_headers,
        )
        assert response.status_code == 200
        lines = response.get_json()["terminal"]["cart"]["lines"]
        assert [l["product_id"] for l in lines] == [product.id]

        response = client.delete(f"/api/pos/t1/holds/{held_id}", headers=cashier_headers)
        assert response.status_code == 200
        assert client.get("/api/pos/t1/holds").get_json()["held_sales"] == []


class TestInventoryAndReports:
    def test_adjust_receive_and_log(self, client, cashier_headers, product):
        response = client.post(
            "/api/inventory/adjust",
            json={"product_id": product.id, "new_quantity": 12, "reason": "Restock"},
            headers=cashier_headers,
        )
        assert response.get_json()["product"]["stock_quantity"] == 12

        response = client.post(
            "/api/inventory/receive",
            json={"supplier_name": "Acme", "items": [{"product_id": product.id, "quantity": 3, "unit_cost": "900"}]},
            headers=cashier_headers,
        )
        assert response.status_code == 201
        assert response.get_json()["purchase"]["total_amount"] == "2700.00"

        entries = client.get(f"/api/inventory/stock-log?product_id={product.id}").get_json()["entries"]
        assert [e["change_amount"] for e in entries] == [3, 2]

    def test_product_search_and_low_stock(self, client, make_product):
        make_product(name="Dish Soap", stock_quantity=2)
        make_product(name="Pen", stock_quantity=50)
        names = [p["name"] for p in client.get("/api/inventory/products?q=soap").get_json()["products"]]
        assert names == ["Dish Soap"]
        low = [p["name"] for p in client.get("/api/inventory/low-stock").get_json()["products"]]
        assert low == ["Dish Soap"]

    def test_sales_report(self, client, cashier_headers, product):
        client.post("/api/pos/t1/cart/lines", json={"product_id": product.id}, headers=cashier_headers)
        client.post("/api/pos/t1/checkout", headers=cashier_headers)
        client.post("/api/pos/t1/checkout/commit", json={}, headers=cashier_headers)

        report = client.get("/api/reports/sales?cashier=alice").get_json()
        assert report["summary"]["count"] == 1
        assert report["summary"]["revenue"] == "1500.00"
        assert report["metrics"]["cost"] == "1000.00"

        assert client.get("/api/reports/sales?start=yesterday").status_code == 400

    def test_clear_sales_requires_confirm(self, client, cashier_headers):
        assert client.delete("/api/sales/", json={}, headers=cashier_headers).status_code == 400
        response = client.delete("/api/sales/", json={"confirm": True}, headers=cashier_headers)
        assert response.get_json()["removed"] == 0

# Overview: Pytest coverage for per-user data isolation.

"""
Per-User Isolation Tests

Every product, sale and import belongs to one user. These tests prove that
user A can neither see nor change user B's data, and that foreign ids are
answered exactly like missing ones (404, not 403).
"""

from bizsight.extensions import db
from bizsight.models import Product
from conftest import auth_headers, csv_file, make_product


class TestProductIsolation:

    def test_list_only_shows_own_products(self, client, db_session, user_a, user_b, token_a):
        make_product(db_session, user_a, name="Mine")
        make_product(db_session, user_b, name="Theirs")

        items = client.get("/api/inventory", headers=auth_headers(token_a)).get_json()["items"]
        assert [p["name"] for p in items] == ["Mine"]

    def test_foreign_product_is_404_for_read_update_delete(self, client, db_session, user_b, token_a):
        theirs = make_product(db_session, user_b, name="Theirs", stock=5)
        url = f"/api/inventory/{theirs.id}"

        assert client.get(url, headers=auth_headers(token_a)).status_code == 404
        assert client.put(url, json={"stock": 0}, headers=auth_headers(token_a)).status_code == 404
        assert client.delete(url, headers=auth_headers(token_a)).status_code == 404

        db.session.refresh(theirs)
        assert theirs.stock == 5

    def test_same_name_allowed_for_different_users(self, client, db_session, user_b, token_a):
        make_product(db_session, user_b, name="Widget")
        resp = client.post(
            "/api/inventory",
            json={"name": "Widget", "price": 1, "stock": 1},
            headers=auth_headers(token_a),
        )
        assert resp.status_code == 201
        assert db.session.query(Product).filter_by(name="Widget").count() == 2


class TestSalesIsolation:

    def test_sales_list_is_per_user(self, client, db_session, user_a, user_b, token_a, token_b):
        mine = make_product(db_session, user_a, name="Widget", stock=5)
        client.post("/api/sales/manual-entry", json={"productId": mine.id, "quantity": 1}, headers=auth_headers(token_a))

        assert client.get("/api/sales", headers=auth_headers(token_a)).get_json()["count"] == 1
        assert client.get("/api/sales", headers=auth_headers(token_b)).get_json()["count"] == 0

    def test_manual_sale_on_foreign_product_is_404(self, client, db_session, user_b, token_a):
        theirs = make_product(db_session, user_b, stock=5)
        resp = client.post(
            "/api/sales/manual-entry",
            json={"productId": theirs.id, "quantity": 1},
            headers=auth_headers(token_a),
        )
        assert resp.status_code == 404

    def test_sales_upload_cannot_sell_foreign_stock(self, client, db_session, user_b, token_a):
        theirs = make_product(db_session, user_b, name="Widget", stock=5)
        resp = client.post(
            "/api/sales/upload",
            data={"salesFile": csv_file("productName,quantity\nWidget,1\n")},
            headers=auth_headers(token_a),
            content_type="multipart/form-data",
        )

        assert resp.status_code == 207
        db.session.refresh(theirs)
        assert theirs.stock == 5

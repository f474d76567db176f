# Overview: Pytest coverage for settings, data reset and raw data export.

import pytest

from bizsight.extensions import db
from bizsight.models import Product, Sale, SaleLine
from bizsight.services import sales_service, settings_service
from bizsight.validation import ValidationError
from conftest import auth_headers, csv_file, make_product


class TestSettingsService:

    def test_update_settings(self, user_a):
        settings = settings_service.update_settings(
            user_id=user_a.id,
            payload={"company_name": "Acme", "low_stock_threshold": 5, "daily_sales_goal": "1,250.50"},
        )
        assert settings.company_name == "Acme"
        assert settings.low_stock_threshold == 5
        assert settings.daily_sales_goal_cents == 125050

    @pytest.mark.parametrize("payload", [
        {"company_name": ""},
        {"low_stock_threshold": -1},
        {"low_stock_threshold": "many"},
        {"daily_sales_goal": "-5"},
        {"theme": "dark"},
    ])
    def test_update_settings_rejects(self, user_a, payload):
        with pytest.raises(ValidationError):
            settings_service.update_settings(user_id=user_a.id, payload=payload)

    def test_settings_created_on_demand(self, db_session, user_a):
        db.session.delete(user_a.app_settings)
        db.session.commit()
        settings = settings_service.get_or_create_settings(user_id=user_a.id)
        assert settings.low_stock_threshold == 10


class TestDataManagement:

    def test_reset_only_touches_callers_data(self, db_session, user_a, user_b):
        mine = make_product(db_session, user_a, name="Mine", stock=5)
        theirs = make_product(db_session, user_b, name="Theirs", stock=5)
        sales_service.record_manual_sale(user_id=user_a.id, product_id=mine.id, quantity=1)
        sales_service.record_manual_sale(user_id=user_b.id, product_id=theirs.id, quantity=1)

        counts = settings_service.reset_user_data(user_id=user_a.id)

        assert counts == {"products_deleted": 1, "sales_deleted": 1}
        assert db.session.query(Product).filter_by(user_id=user_a.id).count() == 0
        assert db.session.query(Sale).filter_by(user_id=user_a.id).count() == 0
        assert db.session.query(Product).filter_by(user_id=user_b.id).count() == 1
        assert db.session.query(SaleLine).count() == 1

    def test_export_raw_data(self, db_session, user_a):
        p = make_product(db_session, user_a, name="Widget", price_cents=999, stock=5, category="Electronics")
        sales_service.record_manual_sale(user_id=user_a.id, product_id=p.id, quantity=2)

        text = settings_service.export_raw_data(user_id=user_a.id)
        lines = text.splitlines()

        assert lines[0] == "name,price,stock,category"
        assert lines[1] == "Widget,9.99,3,Electronics"
        assert lines[3] == "totalAmount,saleDate,items"
        assert lines[4].startswith("19.98,")
        assert lines[4].endswith("Widget x2")


class TestSettingsRoutes:

    def test_get_and_put(self, client, token_a):
        resp = client.put("/api/settings", json={"report_footer_text": "Thanks"}, headers=auth_headers(token_a))
        assert resp.status_code == 200

        resp = client.get("/api/settings", headers=auth_headers(token_a))
        assert resp.get_json()["report_footer_text"] == "Thanks"

    def test_put_invalid_is_400(self, client, token_a):
        resp = client.put("/api/settings", json={"low_stock_threshold": -3}, headers=auth_headers(token_a))
        assert resp.status_code == 400

    def test_reset_data_route(self, client, db_session, user_a, token_a):
        make_product(db_session, user_a)
        resp = client.post("/api/settings/reset-data", headers=auth_headers(token_a))
        assert resp.status_code == 200
        assert resp.get_json()["products_deleted"] == 1

    def test_download_raw_data_is_csv_attachment(self, client, db_session, user_a, token_a):
        make_product(db_session, user_a)
        resp = client.get("/api/settings/download-raw-data", headers=auth_headers(token_a))

        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "attachment" in resp.headers["Content-Disposition"]
        assert resp.get_data(as_text=True).startswith("name,price,stock,category")

    def test_exported_products_can_be_reimported(self, client, db_session, user_a, token_a):
        make_product(db_session, user_a, name="Widget", price_cents=999, stock=5)
        text = client.get("/api/settings/download-raw-data", headers=auth_headers(token_a)).get_data(as_text=True)
        product_section = text.split("\n\n")[0] + "\n"

        resp = client.post(
            "/api/inventory/upload-csv",
            data={"productsFile": csv_file(product_section)},
            headers=auth_headers(token_a),
            content_type="multipart/form-data",
        )

        assert resp.status_code == 200
        assert resp.get_json()["updated_count"] == 1

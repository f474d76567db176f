# Overview: Pytest coverage for inventory CSV import and reconciliation.

"""
Inventory CSV Import Tests

Verifies:
1. New names create products, existing names are updated in place
2. Duplicate names within one file resolve last-write-wins
3. Any invalid row rejects the whole file before anything is written
4. Re-uploading the same file is idempotent
5. A row failing during reconciliation does not stop later rows
6. The staged temp file is always removed
"""

import os

import pytest

from bizsight.extensions import db
from bizsight.models import Product
from bizsight.services.csv_extractor import CsvStreamError
from bizsight.services import import_service
from bizsight.services.import_service import import_inventory_csv
from bizsight.services.products_service import DUPLICATE_NAME_MESSAGE
from conftest import csv_stream, make_product


HEADER = "name,price,stock,category\n"


def _products(user):
    return db.session.query(Product).filter_by(user_id=user.id).order_by(Product.name).all()


class TestInventoryReconciliation:

    def test_new_name_creates_one_product(self, user_a):
        outcome = import_inventory_csv(
            user_id=user_a.id,
            stream=csv_stream(HEADER + "Widget,9.99,50,Electronics\n"),
        )

        assert outcome.outcome == "full_success"
        assert outcome.http_status == 200
        assert outcome.created_count == 1
        products = _products(user_a)
        assert len(products) == 1
        assert (products[0].name, products[0].price_cents, products[0].stock, products[0].category) == (
            "Widget", 999, 50, "Electronics"
        )

    def test_existing_name_is_updated_in_place(self, db_session, user_a):
        existing = make_product(db_session, user_a, name="Widget", price_cents=100, stock=1, category="Other")
        existing_id = existing.id

        outcome = import_inventory_csv(
            user_id=user_a.id,
            stream=csv_stream(HEADER + "Widget,12.00,40,Electronics\n"),
        )

        assert outcome.updated_count == 1
        assert outcome.created_count == 0
        products = _products(user_a)
        assert len(products) == 1
        assert products[0].id == existing_id
        assert (products[0].price_cents, products[0].stock, products[0].category) == (1200, 40, "Electronics")

    def test_duplicate_name_in_one_file_is_last_write_wins(self, user_a):
        outcome = import_inventory_csv(
            user_id=user_a.id,
            stream=csv_stream(HEADER + "Widget,9.99,50,Electronics\nWidget,12.00,40,Electronics\n"),
        )

        assert outcome.outcome == "full_success"
        assert outcome.processed_count == 2
        assert outcome.created_count == 1
        assert outcome.updated_count == 1
        products = _products(user_a)
        assert len(products) == 1
        assert products[0].price_cents == 1200
        assert products[0].stock == 40

    def test_reupload_is_idempotent(self, user_a):
        content = HEADER + "Widget,9.99,50,Electronics\nBook,5,3,Books\n"

        import_inventory_csv(user_id=user_a.id, stream=csv_stream(content))
        second = import_inventory_csv(user_id=user_a.id, stream=csv_stream(content))

        assert second.created_count == 0
        assert second.updated_count == 2
        assert [p.name for p in _products(user_a)] == ["Book", "Widget"]

    def test_names_match_case_sensitively(self, db_session, user_a):
        make_product(db_session, user_a, name="Widget")

        import_inventory_csv(user_id=user_a.id, stream=csv_stream(HEADER + "widget,1,1,Other\n"))

        assert [p.name for p in _products(user_a)] == ["Widget", "widget"]

    def test_header_synonyms(self, user_a):
        outcome = import_inventory_csv(
            user_id=user_a.id,
            stream=csv_stream("Product Name,Price,Stock,Category\nLamp,20,2,Home Goods\n"),
        )
        assert outcome.processed_count == 1
        assert _products(user_a)[0].name == "Lamp"

    def test_products_are_scoped_to_the_importing_user(self, db_session, user_a, user_b):
        theirs = make_product(db_session, user_b, name="Widget", price_cents=100, stock=5)

        import_inventory_csv(user_id=user_a.id, stream=csv_stream(HEADER + "Widget,9.99,50,Electronics\n"))

        db.session.refresh(theirs)
        assert theirs.price_cents == 100
        assert theirs.stock == 5
        assert len(_products(user_a)) == 1


class TestInventoryRejection:

    def test_invalid_category_rejects_whole_file(self, db_session, user_a):
        make_product(db_session, user_a, name="Widget", price_cents=100, stock=1)
        content = HEADER + (
            "Widget,9.99,50,Electronics\n"
            "Gadget,5,5,Toys\n"
            "Lamp,20,2,Home Goods\n"
            "Doohickey,1,1,Gizmos\n"
        )

        outcome = import_inventory_csv(user_id=user_a.id, stream=csv_stream(content))

        assert outcome.outcome == "full_rejection"
        assert outcome.http_status == 400
        assert outcome.processed_count == 0
        assert [e.row_number for e in outcome.errors] == [3, 5]
        assert all(e.stage == "validation" for e in outcome.errors)
        products = _products(user_a)
        assert [p.name for p in products] == ["Widget"]
        assert products[0].price_cents == 100

    def test_missing_field_rejects_whole_file(self, user_a):
        outcome = import_inventory_csv(
            user_id=user_a.id,
            stream=csv_stream(HEADER + "Widget,9.99,50,Electronics\nGadget,5,,Other\n"),
        )

        assert outcome.outcome == "full_rejection"
        assert outcome.errors[0].stage == "parse"
        assert outcome.errors[0].data == {"name": "Gadget", "price": "5", "category": "Other"}
        assert _products(user_a) == []

    def test_rejection_payload_shape(self, user_a):
        outcome = import_inventory_csv(user_id=user_a.id, stream=csv_stream(HEADER + "A,x,1,Other\n"))
        payload = outcome.to_dict()

        assert payload["outcome"] == "full_rejection"
        assert payload["failed_count"] == 1
        assert payload["attempted_count"] == 1
        assert payload["errors"][0]["row"] == 2
        assert payload["errors"][0]["stage"] == "validation"
        assert "Invalid price" in payload["errors"][0]["reason"]

    def test_header_only_file_is_an_empty_success(self, user_a):
        outcome = import_inventory_csv(user_id=user_a.id, stream=csv_stream(HEADER))
        assert outcome.outcome == "full_success"
        assert outcome.processed_count == 0


class TestInventoryRowFailures:

    def test_failed_row_does_not_stop_later_rows(self, db_session, user_a, monkeypatch):
        make_product(db_session, user_a, name="B", price_cents=500, stock=5)
        real_lookup = import_service.find_product_by_name

        def lookup_misses_b(*, user_id, name):
            # "B" appears between this upload's lookup and its insert
            return None if name == "B" else real_lookup(user_id=user_id, name=name)

        monkeypatch.setattr(import_service, "find_product_by_name", lookup_misses_b)

        outcome = import_inventory_csv(
            user_id=user_a.id,
            stream=csv_stream(HEADER + "A,1,1,Other\nB,10,1,Other\nC,2,2,Other\n"),
        )

        assert outcome.outcome == "partial_success"
        assert outcome.http_status == 207
        assert outcome.processed_count == 2
        assert outcome.created_count == 2
        [error] = outcome.errors
        assert (error.row_number, error.stage, error.reason) == (3, "processing", DUPLICATE_NAME_MESSAGE)
        products = {p.name: p for p in _products(user_a)}
        assert sorted(products) == ["A", "B", "C"]
        assert products["B"].price_cents == 500

    def test_unexpected_error_is_recorded_for_that_row_only(self, user_a, monkeypatch):
        real_apply = import_service.apply_product_patch

        def apply(product, patch):
            if patch.get("name") == "B":
                raise OverflowError("Python int too large to convert to SQLite INTEGER")
            real_apply(product, patch)

        monkeypatch.setattr(import_service, "apply_product_patch", apply)

        outcome = import_inventory_csv(
            user_id=user_a.id,
            stream=csv_stream(HEADER + "A,1,1,Other\nB,1,1,Other\nC,2,2,Other\n"),
        )

        assert outcome.outcome == "partial_success"
        assert outcome.processed_count == 2
        assert [(e.row_number, e.stage, e.reason) for e in outcome.errors] == [
            (3, "processing", "Unexpected error: OverflowError")
        ]
        assert [p.name for p in _products(user_a)] == ["A", "C"]

    def test_out_of_range_values_reject_the_file(self, user_a):
        outcome = import_inventory_csv(
            user_id=user_a.id,
            stream=csv_stream(
                HEADER + "A,1,1,Other\nWidget,1e50,1,Other\nB,1,99999999999999999999,Other\n"
            ),
        )

        assert outcome.outcome == "full_rejection"
        assert [(e.row_number, e.stage) for e in outcome.errors] == [(3, "validation"), (4, "validation")]
        assert _products(user_a) == []


class TestTempFileCleanup:

    def test_removed_after_success(self, user_a, upload_folder):
        import_inventory_csv(user_id=user_a.id, stream=csv_stream(HEADER + "A,1,1,Other\n"))
        assert os.listdir(upload_folder) == []

    def test_removed_after_rejection(self, user_a, upload_folder):
        import_inventory_csv(user_id=user_a.id, stream=csv_stream(HEADER + "A,1,1,Toys\n"))
        assert os.listdir(upload_folder) == []

    def test_removed_after_stream_error(self, user_a, upload_folder):
        with pytest.raises(CsvStreamError):
            import_inventory_csv(user_id=user_a.id, stream=csv_stream(b"name,price\n\xff\xfe,1\n"))
        assert os.listdir(upload_folder) == []
        assert _products(user_a) == []

# Overview: Pytest coverage for CSV row screening (parse and validation stages).

from datetime import datetime

import pytest

from bizsight.services.csv_extractor import ExtractedRow
from bizsight.services.import_schemas import InventorySchema, SalesSchema
from bizsight.validation import AmountOutOfRangeError, parse_money_to_cents


def _row(n, **data):
    return ExtractedRow(row_number=n, data=data)


class TestInventorySchema:

    def test_valid_row_is_typed(self):
        result = InventorySchema().screen([_row(2, name="Widget", price="9.99", stock="50", category="Electronics")])

        assert result.attempted == 1
        assert result.rejected == []
        row = result.accepted[0]
        assert (row.name, row.price_cents, row.stock, row.category) == ("Widget", 999, 50, "Electronics")

    def test_missing_field_is_a_parse_error(self):
        result = InventorySchema().screen([_row(2, name="Widget", price="1", stock="1")])

        error = result.rejected[0]
        assert error.stage == "parse"
        assert error.reason == "Missing required fields (name, price, stock, category)."
        assert error.row_number == 2

    def test_invalid_values_are_validation_errors(self):
        rows = [
            _row(2, name="A", price="abc", stock="1", category="Other"),
            _row(3, name="B", price="-1", stock="1", category="Other"),
            _row(4, name="C", price="1", stock="1.5", category="Other"),
            _row(5, name="D", price="1", stock="-2", category="Other"),
            _row(6, name="E", price="1", stock="1", category="Toys"),
            _row(7, name="x" * 101, price="1", stock="1", category="Other"),
        ]
        result = InventorySchema().screen(rows)

        assert result.accepted == []
        assert [e.row_number for e in result.rejected] == [2, 3, 4, 5, 6, 7]
        assert all(e.stage == "validation" for e in result.rejected)
        assert "Invalid price" in result.rejected[0].reason
        assert "Invalid price" in result.rejected[1].reason
        assert "Invalid stock" in result.rejected[2].reason
        assert "Invalid stock" in result.rejected[3].reason
        assert 'Invalid category: "Toys"' in result.rejected[4].reason
        assert "Electronics" in result.rejected[4].reason

    def test_category_is_case_sensitive(self):
        result = InventorySchema().screen([_row(2, name="A", price="1", stock="1", category="electronics")])
        assert result.rejected[0].stage == "validation"

    def test_zero_price_and_stock_are_valid(self):
        result = InventorySchema().screen([_row(2, name="Freebie", price="0", stock="0", category="Other")])
        assert result.accepted[0].price_cents == 0
        assert result.accepted[0].stock == 0

    def test_every_row_is_screened_in_order(self):
        rows = [
            _row(2, name="A", price="1", stock="1", category="Other"),
            _row(3, name="B", price="1", stock="1", category="Nope"),
            _row(4, name="C", price="1", stock="1", category="Other"),
        ]
        result = InventorySchema().screen(rows)
        assert [r.name for r in result.accepted] == ["A", "C"]
        assert [e.row_number for e in result.rejected] == [3]

    def test_out_of_range_numbers_are_validation_errors(self):
        rows = [
            _row(2, name="A", price="1e50", stock="1", category="Other"),
            _row(3, name="B", price="10000000", stock="1", category="Other"),
            _row(4, name="C", price="1", stock="99999999999999999999", category="Other"),
        ]
        result = InventorySchema().screen(rows)

        assert result.accepted == []
        assert [e.stage for e in result.rejected] == ["validation"] * 3
        assert result.rejected[0].reason == "Price cannot exceed 9,999,999.99."
        assert result.rejected[1].reason == "Price cannot exceed 9,999,999.99."
        assert result.rejected[2].reason == "Stock cannot exceed 2,147,483,647."


class TestSalesSchema:

    def test_missing_product_or_quantity_is_a_parse_error(self):
        result = SalesSchema().screen([_row(2, productName="Widget"), _row(3, quantity="2")])

        assert [e.stage for e in result.rejected] == ["parse", "parse"]

    def test_quantity_must_be_positive_integer(self):
        rows = [
            _row(2, productName="W", quantity="0"),
            _row(3, productName="W", quantity="-1"),
            _row(4, productName="W", quantity="two"),
            _row(5, productName="W", quantity="1.5"),
        ]
        result = SalesSchema().screen(rows)

        assert len(result.rejected) == 4
        assert all(e.stage == "validation" for e in result.rejected)
        assert all("Invalid quantity" in e.reason for e in result.rejected)

    def test_missing_or_unparsable_price_means_catalog_price(self):
        rows = [
            _row(2, productName="W", quantity="1"),
            _row(3, productName="W", quantity="1", priceAtSale="free"),
            _row(4, productName="W", quantity="1", priceAtSale="4.50"),
        ]
        result = SalesSchema().screen(rows)

        assert [r.price_at_sale_cents for r in result.accepted] == [None, None, 450]

    def test_negative_price_is_a_validation_error(self):
        result = SalesSchema().screen([_row(2, productName="W", quantity="1", priceAtSale="-3")])
        assert result.rejected[0].stage == "validation"

    def test_sale_date_parsing(self):
        rows = [
            _row(2, productName="W", quantity="1", saleDate="2024-03-01"),
            _row(3, productName="W", quantity="1"),
            _row(4, productName="W", quantity="1", saleDate="yesterday"),
        ]
        result = SalesSchema().screen(rows)

        assert result.accepted[0].sale_date == datetime(2024, 3, 1)
        assert result.accepted[1].sale_date is None
        assert result.rejected[0].row_number == 4
        assert "saleDate" in result.rejected[0].reason

    def test_out_of_range_numbers_are_validation_errors(self):
        rows = [
            _row(2, productName="W", quantity="1", priceAtSale="1e50"),
            _row(3, productName="W", quantity="10", priceAtSale="99999999999999999"),
            _row(4, productName="W", quantity="99999999999999999999"),
        ]
        result = SalesSchema().screen(rows)

        assert result.accepted == []
        assert [e.stage for e in result.rejected] == ["validation"] * 3
        assert "Invalid priceAtSale" in result.rejected[0].reason
        assert "Invalid priceAtSale" in result.rejected[1].reason
        assert "Invalid quantity" in result.rejected[2].reason


class TestMoneyParsing:

    @pytest.mark.parametrize("raw, cents", [("12.50", 1250), ("$1,200", 120000), (3, 300), ("0.005", 0)])
    def test_amounts_become_cents(self, raw, cents):
        assert parse_money_to_cents(raw) == cents

    @pytest.mark.parametrize("raw", ["1e50", "9" * 40, "1e999999"])
    def test_huge_numbers_raise_value_error(self, raw):
        with pytest.raises(AmountOutOfRangeError):
            parse_money_to_cents(raw)
        with pytest.raises(ValueError):
            parse_money_to_cents(raw)

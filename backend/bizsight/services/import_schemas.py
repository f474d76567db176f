from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from ..validation import (
    MAX_PRICE_CENTS,
    MAX_PRODUCT_NAME_LENGTH,
    MAX_STOCK,
    PRICE_LIMIT_MESSAGE,
    PRODUCT_CATEGORIES,
    STOCK_LIMIT_MESSAGE,
    AmountOutOfRangeError,
    parse_money_to_cents,
    parse_whole_number,
)
from bizsight.time_utils import parse_iso_datetime
from .csv_extractor import ExtractedRow, HeaderSchema
from .import_outcome import STAGE_PARSE, STAGE_VALIDATION, RowError


INVENTORY_HEADERS = HeaderSchema(
    fields=("name", "price", "stock", "category"),
    synonyms={
        "name": "name",
        "productname": "name",
        "product_name": "name",
        "product name": "name",
        "price": "price",
        "stock": "stock",
        "category": "category",
    },
)

SALES_HEADERS = HeaderSchema(
    fields=("productName", "quantity", "priceAtSale", "saleDate"),
    synonyms={
        "productname": "productName",
        "product_name": "productName",
        "product name": "productName",
        "product": "productName",
        "name": "productName",
        "quantity": "quantity",
        "qty": "quantity",
        "priceatsale": "priceAtSale",
        "price_at_sale": "priceAtSale",
        "price": "priceAtSale",
        "saledate": "saleDate",
        "sale_date": "saleDate",
        "date": "saleDate",
    },
)


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


@dataclass
class InventoryRow:
    row_number: int
    name: str
    price_cents: int
    stock: int
    category: str
    data: dict[str, Any]


@dataclass
class SalesRow:
    row_number: int
    product_name: str
    quantity: int
    # None means "use the product's current catalog price"
    price_at_sale_cents: int | None
    # None means "now"
    sale_date: datetime | None
    data: dict[str, Any]


@dataclass
class ScreenedRows:
    attempted: int = 0
    accepted: list = field(default_factory=list)
    rejected: list[RowError] = field(default_factory=list)


class BaseImportSchema:
    import_type: str
    headers: HeaderSchema
    required_fields: tuple[str, ...]
    missing_fields_message: str
    # Stages whose errors reject the whole batch before anything is written
    vetoing_stages: frozenset[str]

    def normalize_row(self, row: ExtractedRow) -> Any:
        raise NotImplementedError

    def validate_row(self, row: ExtractedRow) -> list[str]:
        raise NotImplementedError

    def missing_fields(self, row: ExtractedRow) -> list[str]:
        return [f for f in self.required_fields if not _to_text(row.data.get(f))]

    def screen(self, rows: Iterable[ExtractedRow]) -> ScreenedRows:
        """
        Run the parse and validation stages over every extracted row.

        Each row ends up either accepted (typed, in file order) or rejected
        with the stage that rejected it. Consumes rows exactly once.
        """
        result = ScreenedRows()
        for row in rows:
            result.attempted += 1
            if self.missing_fields(row):
                result.rejected.append(
                    RowError(row.row_number, STAGE_PARSE, self.missing_fields_message, row.data)
                )
                continue

            errors = self.validate_row(row)
            if errors:
                result.rejected.append(
                    RowError(row.row_number, STAGE_VALIDATION, " ".join(errors), row.data)
                )
                continue

            result.accepted.append(self.normalize_row(row))
        return result


class InventorySchema(BaseImportSchema):
    import_type = "inventory"
    headers = INVENTORY_HEADERS
    required_fields = ("name", "price", "stock", "category")
    missing_fields_message = "Missing required fields (name, price, stock, category)."
    vetoing_stages = frozenset({STAGE_PARSE, STAGE_VALIDATION})

    def validate_row(self, row: ExtractedRow) -> list[str]:
        errors: list[str] = []
        data = row.data

        if len(data["name"]) > MAX_PRODUCT_NAME_LENGTH:
            errors.append(f"Name can not be more than {MAX_PRODUCT_NAME_LENGTH} characters.")

        try:
            price = parse_money_to_cents(data["price"])
        except AmountOutOfRangeError:
            errors.append(f"{PRICE_LIMIT_MESSAGE}.")
        except ValueError:
            errors.append("Invalid price. Must be a non-negative number.")
        else:
            if price < 0:
                errors.append("Invalid price. Must be a non-negative number.")
            elif price > MAX_PRICE_CENTS:
                errors.append(f"{PRICE_LIMIT_MESSAGE}.")

        try:
            stock = parse_whole_number(data["stock"])
        except ValueError:
            errors.append("Invalid stock. Must be a non-negative integer.")
        else:
            if stock < 0:
                errors.append("Invalid stock. Must be a non-negative integer.")
            elif stock > MAX_STOCK:
                errors.append(f"{STOCK_LIMIT_MESSAGE}.")

        if data["category"] not in PRODUCT_CATEGORIES:
            errors.append(
                f'Invalid category: "{data["category"]}". Must be one of: {", ".join(PRODUCT_CATEGORIES)}.'
            )
        return errors

    def normalize_row(self, row: ExtractedRow) -> InventoryRow:
        data = row.data
        return InventoryRow(
            row_number=row.row_number,
            name=data["name"],
            price_cents=parse_money_to_cents(data["price"]),
            stock=parse_whole_number(data["stock"]),
            category=data["category"],
            data=dict(data),
        )


class SalesSchema(BaseImportSchema):
    import_type = "sales"
    headers = SALES_HEADERS
    required_fields = ("productName", "quantity")
    missing_fields_message = "Missing required fields (productName, quantity)."
    vetoing_stages = frozenset({STAGE_PARSE})

    def validate_row(self, row: ExtractedRow) -> list[str]:
        errors: list[str] = []
        data = row.data

        try:
            quantity = parse_whole_number(data["quantity"])
        except ValueError:
            errors.append("Invalid quantity. Must be a positive integer.")
        else:
            if quantity <= 0:
                errors.append("Invalid quantity. Must be a positive integer.")
            elif quantity > MAX_STOCK:
                errors.append(f"Invalid quantity. Must not exceed {MAX_STOCK:,}.")

        try:
            price = self._price_cents(data)
        except AmountOutOfRangeError:
            errors.append(f"Invalid priceAtSale. Must not exceed {MAX_PRICE_CENTS / 100:,.2f}.")
        else:
            if price is not None and price < 0:
                errors.append("Invalid priceAtSale. Must be a non-negative number.")
            elif price is not None and price > MAX_PRICE_CENTS:
                errors.append(f"Invalid priceAtSale. Must not exceed {MAX_PRICE_CENTS / 100:,.2f}.")

        try:
            parse_iso_datetime(data.get("saleDate"))
        except ValueError:
            errors.append("Invalid saleDate. Must be an ISO-8601 date (YYYY-MM-DD).")
        return errors

    def normalize_row(self, row: ExtractedRow) -> SalesRow:
        data = row.data
        return SalesRow(
            row_number=row.row_number,
            product_name=data["productName"],
            quantity=parse_whole_number(data["quantity"]),
            price_at_sale_cents=self._price_cents(data),
            sale_date=parse_iso_datetime(data.get("saleDate")),
            data=dict(data),
        )

    @staticmethod
    def _price_cents(data: dict[str, Any]) -> int | None:
        # Unparsable prices fall back to the catalog price rather than failing
        # the row; numbers too large to convert still raise
        raw = data.get("priceAtSale")
        if raw is None:
            return None
        try:
            return parse_money_to_cents(raw)
        except AmountOutOfRangeError:
            raise
        except ValueError:
            return None


SCHEMAS = {
    InventorySchema.import_type: InventorySchema,
    SalesSchema.import_type: SalesSchema,
}

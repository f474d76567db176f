# Overview: Bulk CSV import pipeline for inventory and sales; encapsulates reconciliation against the database.

"""
CSV Import Service

PIPELINE (one upload):
1. Stage the upload to a temp file and extract records lazily
2. Screen every record (parse stage, then validation stage)
3. If a vetoing stage produced any error, stop: nothing is written
4. Otherwise reconcile accepted rows one at a time, each in its own unit
   of work (commit on success, rollback and record on failure)

POLICIES:
- Inventory is all-or-nothing at parse/validation time: one bad row
  rejects the batch, listing every bad row.
- Sales rejects the batch only on parse errors. Rows with invalid values
  are reported and the remaining rows are still recorded.
- Reconciliation failures never veto; they make the import a partial success.

The temp file is gone before reconciliation starts.
"""

from __future__ import annotations

from typing import BinaryIO, Callable

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Product
from ..validation import ValidationError, enforce_rules_product
from .concurrency import lock_for_update, run_with_retry
from .csv_extractor import extract_rows, staged_upload
from .import_outcome import STAGE_PROCESSING, ImportOutcome, RowError
from .import_schemas import (
    SCHEMAS,
    BaseImportSchema,
    InventoryRow,
    InventorySchema,
    SalesRow,
    SalesSchema,
)
from .products_service import DUPLICATE_NAME_MESSAGE, apply_product_patch, find_product_by_name
from .sales_service import SOURCE_CSV, ProductNotFoundError, SaleError, record_sale


class UnknownImportTypeError(ValueError):
    pass


def product_not_found_message(name: str) -> str:
    return f'Product "{name}" not found in your inventory.'


def _screen_upload(
    schema: BaseImportSchema,
    stream: BinaryIO,
    *,
    upload_dir: str,
    positional_fallback: bool,
) -> tuple[ImportOutcome, list]:
    outcome = ImportOutcome(import_type=schema.import_type, vetoing_stages=schema.vetoing_stages)
    with staged_upload(stream, upload_dir) as path:
        screened = schema.screen(
            extract_rows(path, schema.headers, positional_fallback=positional_fallback)
        )
    outcome.attempted_count = screened.attempted
    for error in screened.rejected:
        outcome.add_error(error)
    return outcome, screened.accepted


def _record_processing_failure(outcome: ImportOutcome, row, reason: str) -> None:
    db.session.rollback()
    outcome.add_error(RowError(row.row_number, STAGE_PROCESSING, reason, row.data))
    current_app.logger.warning(
        "%s import row %s failed: %s", outcome.import_type, row.row_number, reason
    )


def _upsert_inventory_row(user_id: int, row: InventoryRow) -> bool:
    """Create or overwrite the user's product named row.name. Returns True if created."""
    patch = {"price_cents": row.price_cents, "stock": row.stock, "category": row.category}
    product = find_product_by_name(user_id=user_id, name=row.name)
    created = product is None
    if created:
        patch["name"] = row.name
    enforce_rules_product(patch)

    if created:
        product = Product(user_id=user_id)
        db.session.add(product)
    apply_product_patch(product, patch)
    db.session.commit()
    return created


def _reconcile_inventory(user_id: int, rows: list[InventoryRow], outcome: ImportOutcome) -> None:
    # File order matters: a repeated name is created by its first row and
    # overwritten by each later one.
    for row in rows:
        try:
            created = run_with_retry(lambda: _upsert_inventory_row(user_id, row))
        except ValidationError as exc:
            _record_processing_failure(outcome, row, str(exc))
        except IntegrityError:
            _record_processing_failure(outcome, row, DUPLICATE_NAME_MESSAGE)
        except SQLAlchemyError as exc:
            current_app.logger.exception("Failed to save imported product row %s", row.row_number)
            _record_processing_failure(outcome, row, f"Database error: {exc.__class__.__name__}")
        except Exception as exc:
            current_app.logger.exception("Unexpected error on imported product row %s", row.row_number)
            _record_processing_failure(outcome, row, f"Unexpected error: {exc.__class__.__name__}")
        else:
            outcome.record_processed(created=created)


def _record_sales_row(user_id: int, row: SalesRow) -> None:
    product = lock_for_update(
        db.session.query(Product).filter_by(user_id=user_id, name=row.product_name)
    ).first()
    if not product:
        raise ProductNotFoundError(product_not_found_message(row.product_name))

    record_sale(
        user_id=user_id,
        product=product,
        quantity=row.quantity,
        price_at_sale_cents=row.price_at_sale_cents,
        sale_date=row.sale_date,
        source=SOURCE_CSV,
    )
    db.session.commit()


def _reconcile_sales(user_id: int, rows: list[SalesRow], outcome: ImportOutcome) -> None:
    for row in rows:
        try:
            run_with_retry(lambda: _record_sales_row(user_id, row))
        except SaleError as exc:
            _record_processing_failure(outcome, row, str(exc))
        except SQLAlchemyError as exc:
            current_app.logger.exception("Failed to save imported sale row %s", row.row_number)
            _record_processing_failure(outcome, row, f"Database error: {exc.__class__.__name__}")
        except Exception as exc:
            current_app.logger.exception("Unexpected error on imported sale row %s", row.row_number)
            _record_processing_failure(outcome, row, f"Unexpected error: {exc.__class__.__name__}")
        else:
            outcome.record_processed()


_RECONCILERS: dict[str, Callable[[int, list, ImportOutcome], None]] = {
    InventorySchema.import_type: _reconcile_inventory,
    SalesSchema.import_type: _reconcile_sales,
}


def run_import(
    import_type: str,
    *,
    user_id: int,
    stream: BinaryIO,
    upload_dir: str | None = None,
    positional_fallback: bool | None = None,
) -> ImportOutcome:
    """
    Import one CSV upload for user_id.

    upload_dir and positional_fallback default to the app's UPLOAD_FOLDER
    and CSV_POSITIONAL_HEADER_FALLBACK settings.

    Raises:
        UnknownImportTypeError: import_type is not "inventory" or "sales"
        CsvStreamError: the upload is not readable CSV (nothing is written)
    """
    schema_cls = SCHEMAS.get(import_type)
    if schema_cls is None:
        raise UnknownImportTypeError(f"Unknown import type: {import_type}")

    config = current_app.config
    if upload_dir is None:
        upload_dir = config["UPLOAD_FOLDER"]
    if positional_fallback is None:
        positional_fallback = config.get("CSV_POSITIONAL_HEADER_FALLBACK", True)

    outcome, accepted = _screen_upload(
        schema_cls(),
        stream,
        upload_dir=upload_dir,
        positional_fallback=positional_fallback,
    )

    if not outcome.vetoed:
        _RECONCILERS[import_type](user_id, accepted, outcome)

    current_app.logger.info(
        "%s import for user %s: outcome=%s attempted=%s processed=%s failed=%s",
        import_type,
        user_id,
        outcome.outcome,
        outcome.attempted_count,
        outcome.processed_count,
        outcome.failed_count,
    )
    return outcome


def import_inventory_csv(*, user_id: int, stream: BinaryIO, **kwargs) -> ImportOutcome:
    return run_import(InventorySchema.import_type, user_id=user_id, stream=stream, **kwargs)


def import_sales_csv(*, user_id: int, stream: BinaryIO, **kwargs) -> ImportOutcome:
    return run_import(SalesSchema.import_type, user_id=user_id, stream=stream, **kwargs)

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


STAGE_PARSE = "parse"
STAGE_VALIDATION = "validation"
STAGE_PROCESSING = "processing"

OUTCOME_FULL_SUCCESS = "full_success"
OUTCOME_PARTIAL_SUCCESS = "partial_success"
OUTCOME_FULL_REJECTION = "full_rejection"

HTTP_STATUS_BY_OUTCOME = {
    OUTCOME_FULL_SUCCESS: 200,
    OUTCOME_PARTIAL_SUCCESS: 207,
    OUTCOME_FULL_REJECTION: 400,
}

_MESSAGES = {
    "inventory": {
        OUTCOME_FULL_REJECTION: "CSV parsing completed with errors. {failed} rows were skipped or invalid.",
        OUTCOME_PARTIAL_SUCCESS: "CSV processed. {processed} products successfully added/updated, but {failed} failed.",
        OUTCOME_FULL_SUCCESS: "{processed} products processed successfully from CSV!",
    },
    "sales": {
        OUTCOME_FULL_REJECTION: "Sales CSV parsing completed with errors. {failed} rows were skipped or invalid.",
        OUTCOME_PARTIAL_SUCCESS: "Sales CSV processed. {processed} sales recorded, {failed} failed.",
        OUTCOME_FULL_SUCCESS: "{processed} sales recorded successfully from CSV!",
    },
}


@dataclass
class RowError:
    row_number: int
    stage: str
    reason: str
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row_number,
            "stage": self.stage,
            "reason": self.reason,
            "data": dict(self.data),
        }


@dataclass
class ImportOutcome:
    """
    Accumulated result of one import.

    Errors are kept per stage. Any error in a vetoing stage rejects the whole
    batch; errors in other stages only make it a partial success.
    """
    import_type: str
    vetoing_stages: frozenset[str]
    attempted_count: int = 0
    processed_count: int = 0
    created_count: int = 0
    updated_count: int = 0
    parse_errors: list[RowError] = field(default_factory=list)
    validation_errors: list[RowError] = field(default_factory=list)
    processing_errors: list[RowError] = field(default_factory=list)

    def add_error(self, error: RowError) -> None:
        bucket = {
            STAGE_PARSE: self.parse_errors,
            STAGE_VALIDATION: self.validation_errors,
            STAGE_PROCESSING: self.processing_errors,
        }[error.stage]
        bucket.append(error)

    def record_processed(self, *, created: bool | None = None) -> None:
        self.processed_count += 1
        if created is True:
            self.created_count += 1
        elif created is False:
            self.updated_count += 1

    @property
    def errors(self) -> list[RowError]:
        combined = self.parse_errors + self.validation_errors + self.processing_errors
        return sorted(combined, key=lambda e: e.row_number)

    @property
    def failed_count(self) -> int:
        return len(self.parse_errors) + len(self.validation_errors) + len(self.processing_errors)

    @property
    def vetoed(self) -> bool:
        return any(error.stage in self.vetoing_stages for error in self.errors)

    @property
    def outcome(self) -> str:
        if self.vetoed:
            return OUTCOME_FULL_REJECTION
        if self.failed_count:
            return OUTCOME_PARTIAL_SUCCESS
        return OUTCOME_FULL_SUCCESS

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_OUTCOME[self.outcome]

    @property
    def message(self) -> str:
        template = _MESSAGES[self.import_type][self.outcome]
        return template.format(processed=self.processed_count, failed=self.failed_count)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "outcome": self.outcome,
            "message": self.message,
            "attempted_count": self.attempted_count,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "errors": [e.to_dict() for e in self.errors],
        }
        if self.import_type == "inventory":
            payload["created_count"] = self.created_count
            payload["updated_count"] = self.updated_count
        return payload

from decimal import Decimal

import pytest
from pydantic import TypeAdapter, ValidationError

from app.db.models import PriceDefinitionOrm
from app.models.enums import ImportErrorType, ImportResultType, PriceDefinitionType
from app.models.schemas import (
    ImportFailed,
    ImportReport,
    ImportResult,
    ImportRolledBack,
    ImportSucceeded,
    ImportSummary,
    PreviewResult,
    PreviewSucceeded,
    PriceCsvRow,
    PriceDefinitionModel,
)


def test_price_csv_row_strips_whitespace_and_is_frozen():
    row = PriceCsvRow(category_code="  A ", price=" 25.50")

    assert row.category_code == "A"
    assert row.price == "25.50"
    assert row.season_name == ""
    with pytest.raises(ValidationError):
        row.category_code = "B"


def test_price_definition_model_from_orm():
    orm = PriceDefinitionOrm(
        id=7,
        name="Scooters",
        type=1,
        season_definition_id=3,
        units_management_value_days_list="1,2",
    )

    model = PriceDefinitionModel.model_validate(orm)

    assert model.type == PriceDefinitionType.SEASONAL
    assert model.units_management_value_days_list == "1,2"
    assert model.units_management_value_hours_list is None


def test_import_result_is_discriminated_by_result_type():
    adapter = TypeAdapter(ImportResult)

    failed = adapter.validate_python({
        "result_type": "import_failed",
        "message": "boom",
        "error_type": "transient-contention",
        "attempts": 4,
    })
    rolled_back = adapter.validate_python({
        "result_type": "import_rolled_back",
        "message": "cancelled",
        "error_rate": 0.75,
        "report": {"summary": {"total_rows": 4, "failed_rows": 3, "successful_rows": 1}},
    })

    assert isinstance(failed, ImportFailed)
    assert failed.error_type == ImportErrorType.TRANSIENT_CONTENTION
    assert isinstance(rolled_back, ImportRolledBack)
    assert rolled_back.error_count == 3


def test_preview_result_rejects_import_variants():
    with pytest.raises(ValidationError):
        TypeAdapter(PreviewResult).validate_python({"result_type": "import_success", "message": "x", "report": {}})


def test_success_is_derived_and_serialized():
    report = ImportReport(summary=ImportSummary(total_rows=2, successful_rows=2, created_prices=1, updated_prices=1))
    succeeded = ImportSucceeded(message="ok", report=report)
    preview = PreviewSucceeded(message="ok", report=report)
    failed = ImportFailed(message="no", error_type=ImportErrorType.UNEXPECTED_ERROR)

    assert succeeded.model_dump()["success"] is True
    assert preview.success is True
    assert failed.model_dump(mode="json") == {
        "message": "no",
        "result_type": ImportResultType.IMPORT_FAILED.value,
        "error_type": "unexpected-error",
        "attempts": 1,
        "success": False,
    }
    assert succeeded.created_count == 1
    assert succeeded.updated_count == 1
    assert succeeded.processed_count == 2


def test_report_timestamp_is_serialized():
    data = ImportReport(summary=ImportSummary()).model_dump(mode="json")

    assert data["summary"]["success_rate"] == 0.0
    assert isinstance(data["timestamp"], str)

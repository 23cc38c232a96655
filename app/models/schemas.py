from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.models.enums import (
    ImportErrorType,
    ImportResultType,
    PriceDefinitionType,
    TimeMeasurement,
    UpsertAction,
)


# --- Row records ---

class PriceCsvRow(BaseModel):
    """One CSV data row after header mapping; every value is a trimmed string."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    category_code: str = ""
    rental_location_name: str = ""
    rate_type_name: str = ""
    season_name: str = ""
    time_measurement: str = ""
    units: str = ""
    price: str = ""
    included_km: str = ""
    extra_km_price: str = ""


class ValidatedPriceRow(BaseModel):
    """Typed values produced by the field validator for one row."""
    row: PriceCsvRow
    time_measurement: TimeMeasurement
    units: int
    price: Optional[Decimal] = None


class PriceDefinitionModel(BaseModel):
    """Snapshot of a price definition as seen by the business rules."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: PriceDefinitionType
    season_definition_id: Optional[int] = None
    units_management_value_days_list: Optional[str] = None
    units_management_value_hours_list: Optional[str] = None
    units_management_value_minutes_list: Optional[str] = None


class UpsertResult(BaseModel):
    action: UpsertAction
    price_id: int


class RowOutcome(BaseModel):
    line: int
    success: bool
    data: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None
    error_type: Optional[ImportErrorType] = None
    result: Optional[UpsertResult] = None
    price_definition: Optional[str] = None


class ErrorDetailModel(BaseModel):
    row_number: Optional[int] = None
    field_name: Optional[str] = None
    error_message: str
    error_type: ImportErrorType = ImportErrorType.UNEXPECTED_ERROR
    offending_value: Optional[str] = None


# --- Aggregate report ---

class ImportSummary(BaseModel):
    total_rows: int = 0
    successful_rows: int = 0
    failed_rows: int = 0
    created_prices: int = 0
    updated_prices: int = 0
    success_rate: float = 0.0


class DetailedError(BaseModel):
    line: int
    error: str
    error_type: ImportErrorType
    data: Dict[str, str] = Field(default_factory=dict)
    suggestions: List[str] = Field(default_factory=list)


class ImportReport(BaseModel):
    summary: ImportSummary
    errors_by_type: Dict[str, int] = Field(default_factory=dict)
    detailed_errors: List[DetailedError] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# --- Run results (discriminated by result_type) ---

class _RunResultBase(BaseModel):
    message: str

    @computed_field
    @property
    def success(self) -> bool:
        return self.result_type.is_success()


class _ReportedRunMixin(BaseModel):
    report: ImportReport

    @property
    def processed_count(self) -> int:
        return self.report.summary.successful_rows

    @property
    def error_count(self) -> int:
        return self.report.summary.failed_rows

    @property
    def created_count(self) -> int:
        return self.report.summary.created_prices

    @property
    def updated_count(self) -> int:
        return self.report.summary.updated_prices


class ImportSucceeded(_ReportedRunMixin, _RunResultBase):
    result_type: Literal[ImportResultType.IMPORT_SUCCESS] = ImportResultType.IMPORT_SUCCESS


class ImportCompletedWithErrors(_ReportedRunMixin, _RunResultBase):
    result_type: Literal[ImportResultType.IMPORT_COMPLETED_WITH_ERRORS] = (
        ImportResultType.IMPORT_COMPLETED_WITH_ERRORS
    )


class ImportRolledBack(_ReportedRunMixin, _RunResultBase):
    result_type: Literal[ImportResultType.IMPORT_ROLLED_BACK] = ImportResultType.IMPORT_ROLLED_BACK
    error_rate: float


class ImportRejected(_RunResultBase):
    result_type: Literal[ImportResultType.IMPORT_REJECTED] = ImportResultType.IMPORT_REJECTED
    errors: List[ErrorDetailModel] = Field(default_factory=list)


class ImportFailed(_RunResultBase):
    result_type: Literal[ImportResultType.IMPORT_FAILED] = ImportResultType.IMPORT_FAILED
    error_type: ImportErrorType
    attempts: int = 1


ImportResult = Annotated[
    Union[ImportSucceeded, ImportCompletedWithErrors, ImportRolledBack, ImportRejected, ImportFailed],
    Field(discriminator="result_type"),
]


class PreviewSucceeded(_ReportedRunMixin, _RunResultBase):
    result_type: Literal[ImportResultType.PREVIEW_SUCCESS] = ImportResultType.PREVIEW_SUCCESS
    sample_rows: List[RowOutcome] = Field(default_factory=list)
    total_sample_size: int = 0
    estimated_issues: int = 0


class PreviewRejected(_RunResultBase):
    result_type: Literal[ImportResultType.PREVIEW_REJECTED] = ImportResultType.PREVIEW_REJECTED
    errors: List[ErrorDetailModel] = Field(default_factory=list)


class PreviewFailed(_RunResultBase):
    result_type: Literal[ImportResultType.PREVIEW_FAILED] = ImportResultType.PREVIEW_FAILED
    error_type: ImportErrorType


PreviewResult = Annotated[
    Union[PreviewSucceeded, PreviewRejected, PreviewFailed],
    Field(discriminator="result_type"),
]


class ResolvedPriceRow(BaseModel):
    """A row that passed every business rule and is ready for upsert."""
    price_definition: PriceDefinitionModel
    season_id: Optional[int] = None
    time_measurement: TimeMeasurement
    units: int
    price: Decimal

# app/models/__init__.py

from .enums import (
    ImportErrorType,
    ImportResultType,
    PriceDefinitionType,
    TimeMeasurement,
    TransactionState,
    UpsertAction,
)
from .schemas import (
    DetailedError,
    ErrorDetailModel,
    ImportReport,
    ImportResult,
    ImportSummary,
    PreviewResult,
    PriceCsvRow,
    PriceDefinitionModel,
    ResolvedPriceRow,
    RowOutcome,
    UpsertResult,
    ValidatedPriceRow,
)


__all__ = [
    "ImportErrorType",
    "ImportResultType",
    "PriceDefinitionType",
    "TimeMeasurement",
    "TransactionState",
    "UpsertAction",
    "DetailedError",
    "ErrorDetailModel",
    "ImportReport",
    "ImportResult",
    "ImportSummary",
    "PreviewResult",
    "PriceCsvRow",
    "PriceDefinitionModel",
    "ResolvedPriceRow",
    "RowOutcome",
    "UpsertResult",
    "ValidatedPriceRow",
]

from typing import Any, List, Optional, TYPE_CHECKING

from app.models.enums import ImportErrorType

if TYPE_CHECKING:
    from app.models.schemas import RowOutcome


class PriceImportError(Exception):
    """
    Base for every error raised by the price import pipeline.

    Carries a machine-readable ``error_type`` so callers (report builder,
    suggestion engine, HTTP layer) never have to branch on the class name.
    """
    default_error_type = ImportErrorType.UNEXPECTED_ERROR

    def __init__(
        self,
        message: str,
        error_type: Optional[ImportErrorType] = None,
        field_name: Optional[str] = None,
        offending_value: Optional[Any] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type or self.default_error_type
        self.field_name = field_name
        self.offending_value = str(offending_value)[:255] if offending_value is not None else None  # Truncate
        self.original_exception = original_exception

    def __str__(self):
        return self.message

    def describe(self) -> str:
        return f"{type(self).__name__} ({self.error_type.value}): {self.message}" \
               f"{f' | Field: {self.field_name}' if self.field_name else ''}" \
               f"{f' | Value: {self.offending_value}' if self.offending_value is not None else ''}" \
               f"{f' | Original: {type(self.original_exception).__name__}: {self.original_exception}' if self.original_exception else ''}"


# --- Row-scoped errors: recorded per row, iteration continues ---

class RowError(PriceImportError):
    """Marker base for errors caught at the row boundary."""


class RowDataError(RowError):
    default_error_type = ImportErrorType.MISSING_REQUIRED_FIELD


class PriceDefinitionNotFoundError(RowError):
    default_error_type = ImportErrorType.PRICE_DEFINITION_NOT_FOUND

    def __init__(self, category_code: str, rental_location_name: str, rate_type_name: str):
        super().__init__(
            f"No price definition found for {category_code} / {rental_location_name} / {rate_type_name}",
            field_name="category_code",
            offending_value=f"{category_code} / {rental_location_name} / {rate_type_name}",
        )
        self.category_code = category_code
        self.rental_location_name = rental_location_name
        self.rate_type_name = rate_type_name


class InvalidSeasonError(RowError):
    default_error_type = ImportErrorType.INVALID_SEASON

    def __init__(self, message: str, season_name: Optional[str] = None):
        super().__init__(message, field_name="season_name", offending_value=season_name or None)


class InvalidUnitsError(RowError):
    default_error_type = ImportErrorType.UNITS_NOT_ALLOWED

    def __init__(self, message: str, units: Optional[int] = None, allowed: Optional[List[int]] = None):
        super().__init__(message, field_name="units", offending_value=units)
        self.units = units
        self.allowed = list(allowed or [])


# --- File-scoped errors: abort the whole run ---

class HeaderError(PriceImportError):
    default_error_type = ImportErrorType.INVALID_HEADER

    def __init__(self, message: str, missing_columns: Optional[List[str]] = None):
        super().__init__(message, field_name="header", offending_value=", ".join(missing_columns or []) or None)
        self.missing_columns = list(missing_columns or [])


class ImportFileError(PriceImportError):
    default_error_type = ImportErrorType.INVALID_FILE


class TransientContentionError(PriceImportError):
    default_error_type = ImportErrorType.TRANSIENT_CONTENTION

    def __init__(self, message: str, attempts: int = 0, original_exception: Optional[Exception] = None):
        super().__init__(message, original_exception=original_exception)
        self.attempts = attempts


class RollbackThresholdExceeded(PriceImportError):
    default_error_type = ImportErrorType.ROLLBACK_THRESHOLD_EXCEEDED

    def __init__(self, error_rate: float, threshold: float, outcomes: "List[RowOutcome]"):
        super().__init__(
            f"Error rate {error_rate:.1%} exceeds rollback threshold {threshold:.0%}; no prices were saved"
        )
        self.error_rate = error_rate
        self.threshold = threshold
        self.outcomes = outcomes


class UnexpectedError(PriceImportError):
    default_error_type = ImportErrorType.UNEXPECTED_ERROR

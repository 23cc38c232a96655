from enum import Enum, IntEnum


class TimeMeasurement(str, Enum):
    """
    Canonical time units a price line can be expressed in.
    """
    DAYS = "days"
    HOURS = "hours"
    MINUTES = "minutes"
    MONTHS = "months"


# Accepted spellings (lower-cased) in the CSV, English and Spanish.
TIME_MEASUREMENT_SYNONYMS = {
    "days": TimeMeasurement.DAYS,
    "día": TimeMeasurement.DAYS,
    "días": TimeMeasurement.DAYS,
    "dia": TimeMeasurement.DAYS,
    "dias": TimeMeasurement.DAYS,
    "hours": TimeMeasurement.HOURS,
    "hora": TimeMeasurement.HOURS,
    "horas": TimeMeasurement.HOURS,
    "minutes": TimeMeasurement.MINUTES,
    "minuto": TimeMeasurement.MINUTES,
    "minutos": TimeMeasurement.MINUTES,
    "months": TimeMeasurement.MONTHS,
    "mes": TimeMeasurement.MONTHS,
    "meses": TimeMeasurement.MONTHS,
}


class PriceDefinitionType(IntEnum):
    SEASONAL = 1
    NON_SEASONAL = 2


class ImportErrorType(str, Enum):
    """
    Machine-readable failure categories surfaced in import reports.
    """
    MISSING_REQUIRED_FIELD = "missing-required-field"
    INVALID_PRICE_FORMAT = "invalid-price-format"
    INVALID_UNITS_FORMAT = "invalid-units-format"
    INVALID_TIME_MEASUREMENT = "invalid-time-measurement"
    PRICE_DEFINITION_NOT_FOUND = "price-definition-not-found"
    INVALID_SEASON = "invalid-season"
    UNITS_NOT_ALLOWED = "units-not-allowed"
    UNEXPECTED_ERROR = "unexpected-error"

    # File-scoped categories, never counted per row.
    INVALID_HEADER = "invalid-header"
    INVALID_FILE = "invalid-file"
    TRANSIENT_CONTENTION = "transient-contention"
    ROLLBACK_THRESHOLD_EXCEEDED = "rollback-threshold-exceeded"


class UpsertAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


class TransactionState(str, Enum):
    IDLE = "idle"
    IN_TRANSACTION = "in_transaction"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        return self in (
            TransactionState.COMMITTED,
            TransactionState.ROLLED_BACK,
            TransactionState.FAILED,
        )


class ImportResultType(str, Enum):
    IMPORT_SUCCESS = "import_success"
    IMPORT_COMPLETED_WITH_ERRORS = "import_completed_with_errors"
    IMPORT_ROLLED_BACK = "import_rolled_back"
    IMPORT_REJECTED = "import_rejected"
    IMPORT_FAILED = "import_failed"

    PREVIEW_SUCCESS = "preview_success"
    PREVIEW_REJECTED = "preview_rejected"
    PREVIEW_FAILED = "preview_failed"

    def is_success(self) -> bool:
        return self in (
            ImportResultType.IMPORT_SUCCESS,
            ImportResultType.PREVIEW_SUCCESS,
        )

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from app.core.logging import ImportLogger
from app.exceptions import RowDataError
from app.models.enums import ImportErrorType, TimeMeasurement, TIME_MEASUREMENT_SYNONYMS
from app.models.schemas import PriceCsvRow, ValidatedPriceRow

REQUIRED_FIELDS = (
    "category_code",
    "rental_location_name",
    "rate_type_name",
    "time_measurement",
    "units",
    "price",
)

# Whitespace and currency symbols are dropped before parsing.
_PRICE_NOISE = re.compile(r"[\s€$£¥]")

# Prices are stored with two decimal places.
PRICE_DECIMAL_PLACES = 2


def _ungroup(digits: str, separator: str) -> str:
    """Drop thousands separators, accepting them only between groups of three digits."""
    if separator not in digits:
        return digits
    if not re.fullmatch(rf"\d{{1,3}}(?:{re.escape(separator)}\d{{3}})+", digits):
        raise ValueError(f"misplaced thousands separator in {digits!r}")
    return digits.replace(separator, "")


def normalize_price_text(value: str) -> str:
    """
    Turn a human-entered amount into a plain ``[-]digits[.digits]`` string.

    When both ``,`` and ``.`` appear the right-most one is the decimal
    separator. A single ``,`` is a decimal comma; repeated ``,`` or ``.`` are
    thousands separators and must split the integer part into groups of
    three digits. Raises ValueError for anything else.
    """
    cleaned = _PRICE_NOISE.sub("", value)
    sign = ""
    if cleaned[:1] in ("-", "+"):
        sign, cleaned = cleaned[0], cleaned[1:]

    commas, dots = cleaned.count(","), cleaned.count(".")
    fraction = ""
    if commas and dots:
        decimal_separator = "," if cleaned.rfind(",") > cleaned.rfind(".") else "."
        thousands_separator = "." if decimal_separator == "," else ","
        integer, _, fraction = cleaned.rpartition(decimal_separator)
        integer = _ungroup(integer, thousands_separator)
    elif commas == 1 or dots == 1:
        integer, _, fraction = cleaned.partition("," if commas else ".")
    elif commas > 1:
        integer = _ungroup(cleaned, ",")
    elif dots > 1:
        integer = _ungroup(cleaned, ".")
    else:
        integer = cleaned

    if fraction and not integer:
        integer = "0"
    if not re.fullmatch(r"\d+", integer) or (fraction and not re.fullmatch(r"\d+", fraction)):
        raise ValueError(f"not a number: {value!r}")
    return f"{sign}{integer}.{fraction}" if fraction else f"{sign}{integer}"


class FieldValidator:
    """Database-independent checks on a single CSV row."""

    def __init__(self, logger: ImportLogger):
        self.logger = logger

    def validate_required(self, row: PriceCsvRow) -> None:
        for field_name in REQUIRED_FIELDS:
            if not getattr(row, field_name):
                raise RowDataError(
                    f"missing field: {field_name}",
                    error_type=ImportErrorType.MISSING_REQUIRED_FIELD,
                    field_name=field_name,
                )

    def parse_price(self, value: Optional[str]) -> Optional[Decimal]:
        """Empty means "no price"; callers that need one check presence first."""
        raw = (value or "").strip()
        if not raw:
            return None
        try:
            amount = Decimal(normalize_price_text(raw))
        except (ValueError, InvalidOperation):
            raise RowDataError(
                f"Invalid price format: {raw}",
                error_type=ImportErrorType.INVALID_PRICE_FORMAT,
                field_name="price",
                offending_value=raw,
            )
        if amount < 0:
            raise RowDataError(
                f"Price cannot be negative: {raw}",
                error_type=ImportErrorType.INVALID_PRICE_FORMAT,
                field_name="price",
                offending_value=raw,
            )
        if amount.normalize().as_tuple().exponent < -PRICE_DECIMAL_PLACES:
            raise RowDataError(
                f"Price has more than {PRICE_DECIMAL_PLACES} decimal places: {raw}",
                error_type=ImportErrorType.INVALID_PRICE_FORMAT,
                field_name="price",
                offending_value=raw,
            )
        return amount

    def parse_units(self, value: Optional[str]) -> int:
        raw = (value or "").strip()
        try:
            units = int(raw)
        except ValueError:
            raise RowDataError(
                f"Invalid units format: {raw}",
                error_type=ImportErrorType.INVALID_UNITS_FORMAT,
                field_name="units",
                offending_value=raw,
            )
        if units <= 0:
            raise RowDataError(
                f"Units must be a positive integer: {raw}",
                error_type=ImportErrorType.INVALID_UNITS_FORMAT,
                field_name="units",
                offending_value=raw,
            )
        return units

    def parse_time_measurement(self, value: Optional[str]) -> TimeMeasurement:
        raw = (value or "").strip()
        measurement = TIME_MEASUREMENT_SYNONYMS.get(raw.lower())
        if measurement is None:
            raise RowDataError(
                f"Invalid time measurement: {raw}. Valid values: {', '.join(TIME_MEASUREMENT_SYNONYMS)}",
                error_type=ImportErrorType.INVALID_TIME_MEASUREMENT,
                field_name="time_measurement",
                offending_value=raw,
            )
        return measurement

    def validate(self, row: PriceCsvRow) -> ValidatedPriceRow:
        self.validate_required(row)
        price = self.parse_price(row.price)
        units = self.parse_units(row.units)
        time_measurement = self.parse_time_measurement(row.time_measurement)
        self.logger.event(
            "pricing_validation",
            "Row fields valid",
            category_code=row.category_code,
            time_measurement=time_measurement.value,
            units=units,
        )
        return ValidatedPriceRow(row=row, time_measurement=time_measurement, units=units, price=price)

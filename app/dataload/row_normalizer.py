"""
Header mapping and row extraction for price import CSV files.

The header is matched case-insensitively after trimming; unknown columns are
ignored. Every recognised cell is trimmed and absent optional columns come
back as empty strings.
"""
import csv
from typing import Dict, Iterator, List, Sequence, Tuple

from app.exceptions import HeaderError, ImportFileError
from app.models.schemas import PriceCsvRow

REQUIRED_COLUMNS = (
    "category_code",
    "rental_location_name",
    "rate_type_name",
    "season_name",
    "time_measurement",
    "units",
    "price",
)

OPTIONAL_COLUMNS = (
    "included_km",
    "extra_km_price",
)

# Header is line 1, so the first data row is line 2.
FIRST_DATA_LINE = 2


def normalize_header(name: str) -> str:
    return (name or "").strip().lower()


def build_column_mapping(header: Sequence[str]) -> Dict[str, int]:
    """
    Map each normalised header name to its column index.
    Raises HeaderError listing every required column that is missing.
    """
    mapping: Dict[str, int] = {}
    for index, name in enumerate(header):
        mapping.setdefault(normalize_header(name), index)

    missing = [column for column in REQUIRED_COLUMNS if column not in mapping]
    if missing:
        raise HeaderError(f"Missing required columns: {', '.join(missing)}", missing_columns=missing)
    return mapping


def extract_row(row: Sequence[str], mapping: Dict[str, int]) -> PriceCsvRow:
    values = {}
    for column in REQUIRED_COLUMNS + OPTIONAL_COLUMNS:
        index = mapping.get(column)
        if index is None or index >= len(row):
            values[column] = ""
        else:
            values[column] = (row[index] or "").strip()
    return PriceCsvRow(**values)


def is_blank_row(row: Sequence[str]) -> bool:
    return all(not (cell or "").strip() for cell in row)


def iter_price_rows(file_path: str) -> Iterator[Tuple[int, PriceCsvRow]]:
    """
    Yield ``(line_number, row)`` for every non-blank data row of ``file_path``.

    The header is validated before the first row is yielded, so a HeaderError
    always surfaces before any row work starts. A UTF-8 byte-order marker is
    accepted.
    """
    try:
        with open(file_path, mode="r", encoding="utf-8-sig", newline="") as csvfile:
            reader = csv.reader(csvfile)
            header = next(reader, None)
            if header is None:
                raise HeaderError(
                    f"Missing required columns: {', '.join(REQUIRED_COLUMNS)}",
                    missing_columns=list(REQUIRED_COLUMNS),
                )
            mapping = build_column_mapping(header)

            for line_number, row in enumerate(reader, start=FIRST_DATA_LINE):
                if is_blank_row(row):
                    continue
                yield line_number, extract_row(row, mapping)
    except UnicodeDecodeError as e:
        raise ImportFileError("File is not valid UTF-8 text", original_exception=e) from e
    except csv.Error as e:
        raise ImportFileError(f"Malformed CSV file: {e}", original_exception=e) from e


def read_price_rows(file_path: str) -> List[Tuple[int, PriceCsvRow]]:
    return list(iter_price_rows(file_path))

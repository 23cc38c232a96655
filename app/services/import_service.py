"""
Import orchestration: file checks, row iteration through the validation
chain, upserts inside the transaction controller, and the final report.
"""
from itertools import islice
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.logging import ImportLogger
from app.dataload.row_normalizer import iter_price_rows
from app.db.repositories import PriceRepository, ReferenceDataRepository
from app.exceptions import (
    HeaderError,
    ImportFileError,
    PriceImportError,
    RollbackThresholdExceeded,
    RowError,
    TransientContentionError,
    UnexpectedError,
)
from app.models.enums import ImportErrorType
from app.models.schemas import (
    ErrorDetailModel,
    ImportCompletedWithErrors,
    ImportFailed,
    ImportRejected,
    ImportResult,
    ImportRolledBack,
    ImportSucceeded,
    PreviewFailed,
    PreviewRejected,
    PreviewResult,
    PreviewSucceeded,
    PriceCsvRow,
    RowOutcome,
)
from app.services.business_rules import BusinessRuleResolver
from app.services.field_validator import FieldValidator
from app.services.price_upsert import PriceUpsertEngine
from app.services.report import ReportBuilder
from app.services.transaction import ImportTransactionController

NumberedRow = Tuple[int, PriceCsvRow]
PathLike = Union[str, Path]


def rejection_details(error: PriceImportError) -> List[ErrorDetailModel]:
    return [
        ErrorDetailModel(
            field_name=error.field_name,
            error_message=error.message,
            error_type=error.error_type,
            offending_value=error.offending_value,
        )
    ]


class PriceImportService:
    def __init__(
        self,
        store,
        field_validator: FieldValidator,
        report_builder: ReportBuilder,
        controller_factory: Callable[[], ImportTransactionController],
        logger: ImportLogger,
        resolver_factory: Callable[..., BusinessRuleResolver] = BusinessRuleResolver,
        upsert_factory: Callable[..., PriceUpsertEngine] = PriceUpsertEngine,
        max_file_size_bytes: int = 10 * 1024 * 1024,
        allowed_extension: str = ".csv",
        preview_default_max_rows: int = 10,
    ):
        self.store = store
        self.field_validator = field_validator
        self.report_builder = report_builder
        self.controller_factory = controller_factory
        self.logger = logger
        self.resolver_factory = resolver_factory
        self.upsert_factory = upsert_factory
        self.max_file_size_bytes = max_file_size_bytes
        self.allowed_extension = allowed_extension.lower()
        self.preview_default_max_rows = preview_default_max_rows

    # --- file checks ---

    def validate_file(self, csv_path: PathLike) -> Path:
        path = Path(csv_path)
        if not path.is_file():
            raise ImportFileError(f"CSV file not found: {csv_path}", field_name="file", offending_value=csv_path)
        if path.suffix.lower() != self.allowed_extension:
            raise ImportFileError(
                f"File must have a {self.allowed_extension} extension",
                field_name="file",
                offending_value=path.name,
            )
        size = path.stat().st_size
        if size > self.max_file_size_bytes:
            raise ImportFileError(
                f"File too large: {size} bytes. Maximum allowed: {self.max_file_size_bytes} bytes",
                field_name="file",
                offending_value=size,
            )
        return path

    # --- entry points ---

    def import_prices(self, csv_path: PathLike) -> ImportResult:
        run_logger = self.logger.bind(file_path=str(csv_path))
        run_logger.event("pricing_import", "Starting price import")

        try:
            path = self.validate_file(csv_path)
            rows = list(iter_price_rows(str(path)))
        except (ImportFileError, HeaderError) as e:
            run_logger.event("pricing_error", "Import rejected", error_type=e.error_type.value, error=e.message)
            return ImportRejected(message=e.message, errors=rejection_details(e))

        controller = self.controller_factory()
        try:
            with run_logger.timed("price_import_execution", row_count=len(rows)):
                outcomes = controller.run(lambda session: self._process_rows(session, rows, persist=True))
        except RollbackThresholdExceeded as e:
            report = self.report_builder.build(e.outcomes)
            return ImportRolledBack(
                message=(
                    f"Import cancelled: too many errors ({report.summary.failed_rows} of "
                    f"{report.summary.total_rows} rows failed); no prices were saved"
                ),
                report=report,
                error_rate=e.error_rate,
            )
        except TransientContentionError as e:
            return ImportFailed(message=e.message, error_type=e.error_type, attempts=e.attempts)
        except UnexpectedError as e:
            return ImportFailed(message=e.message, error_type=e.error_type, attempts=controller.attempts)

        report = self.report_builder.build(outcomes)
        summary = report.summary
        run_logger.event(
            "pricing_import",
            "Import completed",
            processed=summary.successful_rows,
            errors=summary.failed_rows,
            created=summary.created_prices,
            updated=summary.updated_prices,
            attempts=controller.attempts,
        )

        if summary.failed_rows == 0:
            return ImportSucceeded(
                message=f"Import successful: {summary.successful_rows} prices processed",
                report=report,
            )
        return ImportCompletedWithErrors(
            message=f"Import completed with errors: {summary.failed_rows} errors found",
            report=report,
        )

    def preview(self, csv_path: PathLike, max_rows: Optional[int] = None) -> PreviewResult:
        """Validate up to ``max_rows`` rows without writing anything."""
        max_rows = self.preview_default_max_rows if max_rows is None else max_rows
        if max_rows < 1:
            raise ValueError("max_rows must be a positive integer")

        run_logger = self.logger.bind(file_path=str(csv_path), max_rows=max_rows)
        run_logger.event("pricing_import", "Starting import preview")

        try:
            path = self.validate_file(csv_path)
            rows = list(islice(iter_price_rows(str(path)), max_rows))
        except (ImportFileError, HeaderError) as e:
            run_logger.event("pricing_error", "Preview rejected", error_type=e.error_type.value, error=e.message)
            return PreviewRejected(message=e.message, errors=rejection_details(e))

        try:
            with run_logger.timed("import_preview", row_count=len(rows)):
                outcomes = self.store.read_only(lambda session: self._process_rows(session, rows, persist=False))
        except SQLAlchemyError as e:
            return PreviewFailed(
                message=f"Preview failed: {e}",
                error_type=ImportErrorType.UNEXPECTED_ERROR,
            )

        report = self.report_builder.build(outcomes)
        estimated_issues = report.summary.failed_rows
        run_logger.event(
            "pricing_import",
            "Preview completed",
            sample_size=len(outcomes),
            estimated_issues=estimated_issues,
        )
        return PreviewSucceeded(
            message="Preview generated successfully",
            sample_rows=outcomes,
            total_sample_size=len(outcomes),
            estimated_issues=estimated_issues,
            report=report,
        )

    # --- row processing ---

    def _process_rows(self, session: Session, rows: List[NumberedRow], persist: bool) -> List[RowOutcome]:
        resolver = self.resolver_factory(ReferenceDataRepository(session), self.logger)
        upsert = self.upsert_factory(PriceRepository(session), self.logger) if persist else None
        return [self._process_row(line, row, resolver, upsert) for line, row in rows]

    def _process_row(
        self,
        line: int,
        row: PriceCsvRow,
        resolver: BusinessRuleResolver,
        upsert: Optional[PriceUpsertEngine],
    ) -> RowOutcome:
        data = row.model_dump()
        try:
            validated = self.field_validator.validate(row)
            resolved = resolver.resolve(validated)
            result = upsert.upsert(resolved) if upsert is not None else None
        except RowError as e:
            self.logger.warning("Validation error at line %s: %s", line, e.message)
            return RowOutcome(line=line, success=False, data=data, error=e.message, error_type=e.error_type)
        except SQLAlchemyError:
            # The session is unusable; let the transaction controller decide.
            raise
        except Exception as e:
            self.logger.error("Unexpected error at line %s: %s", line, e, exc_info=True)
            return RowOutcome(
                line=line,
                success=False,
                data=data,
                error=f"Unexpected error: {e}",
                error_type=ImportErrorType.UNEXPECTED_ERROR,
            )

        self.logger.debug("Price row imported: %s (line %s)", row.category_code, line)
        return RowOutcome(
            line=line,
            success=True,
            data=data,
            result=result,
            price_definition=resolved.price_definition.name,
        )

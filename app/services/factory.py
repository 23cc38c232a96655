"""
Composition root: the only place in the service layer that reads settings.
"""
import time
from functools import partial
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from app.core.config import Settings, settings
from app.core.logging import get_import_logger
from app.db.connection import get_session_factory
from app.db.repositories import SqlAlchemyTransactionalStore
from app.services.field_validator import FieldValidator
from app.services.import_service import PriceImportService
from app.services.report import ReportBuilder
from app.services.suggestions import SuggestionEngine
from app.services.transaction import ImportTransactionController


def build_store(session_factory: Optional[sessionmaker] = None, config: Settings = settings):
    return SqlAlchemyTransactionalStore(
        session_factory or get_session_factory(),
        get_import_logger("app.db.repositories"),
        transient_error_patterns=config.TRANSIENT_ERROR_PATTERNS,
    )


def build_suggestion_engine(session_factory: Optional[sessionmaker] = None, config: Settings = settings):
    return SuggestionEngine(build_store(session_factory, config), get_import_logger("app.services.suggestions"))


def build_import_service(
    session_factory: Optional[sessionmaker] = None,
    config: Settings = settings,
    sleep: Callable[[float], None] = time.sleep,
) -> PriceImportService:
    store = build_store(session_factory, config)
    suggestion_engine = SuggestionEngine(store, get_import_logger("app.services.suggestions"))
    controller_factory = partial(
        ImportTransactionController,
        store,
        get_import_logger("app.services.transaction"),
        rollback_error_rate=config.IMPORT_ROLLBACK_ERROR_RATE,
        max_retries=config.IMPORT_MAX_RETRIES,
        backoff_seconds=config.IMPORT_RETRY_BACKOFF_SECONDS,
        isolation_level=config.IMPORT_ISOLATION_LEVEL,
        sleep=sleep,
    )
    return PriceImportService(
        store=store,
        field_validator=FieldValidator(get_import_logger("app.services.field_validator")),
        report_builder=ReportBuilder(suggestion_engine, detailed_errors_limit=config.IMPORT_DETAILED_ERRORS_LIMIT),
        controller_factory=controller_factory,
        logger=get_import_logger("app.services.import_service"),
        max_file_size_bytes=config.IMPORT_MAX_FILE_SIZE_BYTES,
        allowed_extension=config.IMPORT_ALLOWED_EXTENSION,
        preview_default_max_rows=config.PREVIEW_DEFAULT_MAX_ROWS,
    )

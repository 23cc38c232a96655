from functools import lru_cache

from app.services.factory import build_import_service, build_suggestion_engine
from app.services.import_service import PriceImportService
from app.services.suggestions import SuggestionEngine


@lru_cache()
def get_import_service() -> PriceImportService:
    return build_import_service()


@lru_cache()
def get_suggestion_engine() -> SuggestionEngine:
    return build_suggestion_engine()

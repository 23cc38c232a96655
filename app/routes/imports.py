import logging
import os
import shutil
import tempfile
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.dependencies.services import get_import_service, get_suggestion_engine
from app.models.enums import ImportResultType
from app.services.import_service import PriceImportService
from app.services.suggestions import SuggestionEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/prices/import")

STATUS_BY_RESULT_TYPE = {
    ImportResultType.IMPORT_SUCCESS: 200,
    ImportResultType.IMPORT_COMPLETED_WITH_ERRORS: 200,
    ImportResultType.IMPORT_ROLLED_BACK: 200,
    ImportResultType.IMPORT_REJECTED: 400,
    ImportResultType.IMPORT_FAILED: 500,
    ImportResultType.PREVIEW_SUCCESS: 200,
    ImportResultType.PREVIEW_REJECTED: 400,
    ImportResultType.PREVIEW_FAILED: 500,
}


def spool_upload(file_obj, suffix: str = ".csv") -> str:
    """Copy an uploaded stream to a named temp file and return its path."""
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        file_obj.seek(0)
        shutil.copyfileobj(file_obj, tmp, length=1024 * 1024)
        tmp_path = tmp.name
    logger.debug("Upload spooled to %s", tmp_path)
    return tmp_path


def remove_spooled_file(tmp_path: Optional[str]) -> None:
    if not tmp_path:
        return
    try:
        os.remove(tmp_path)
    except FileNotFoundError:
        pass


def ensure_csv_upload(file: UploadFile) -> None:
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(400, "Only CSV files allowed.")


def result_response(result) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_RESULT_TYPE[result.result_type],
        content=result.model_dump(mode="json"),
    )


@router.post("", summary="Import prices from a CSV file")
async def import_prices(
    file: UploadFile = File(...),
    service: PriceImportService = Depends(get_import_service),
):
    ensure_csv_upload(file)
    tmp_path = None
    try:
        tmp_path = await run_in_threadpool(spool_upload, file.file)
        result = await run_in_threadpool(service.import_prices, tmp_path)
    finally:
        await run_in_threadpool(remove_spooled_file, tmp_path)

    logger.info("Import of '%s' finished: %s", file.filename, result.result_type.value)
    return result_response(result)


@router.post("/preview", summary="Validate a sample of a CSV file without saving")
async def preview_import(
    file: UploadFile = File(...),
    max_rows: Optional[int] = Query(None, ge=1, le=1000),
    service: PriceImportService = Depends(get_import_service),
):
    ensure_csv_upload(file)
    tmp_path = None
    try:
        tmp_path = await run_in_threadpool(spool_upload, file.file)
        result = await run_in_threadpool(service.preview, tmp_path, max_rows)
    finally:
        await run_in_threadpool(remove_spooled_file, tmp_path)

    return result_response(result)


@router.get("/options", summary="Valid values for every import column")
async def import_options(engine: SuggestionEngine = Depends(get_suggestion_engine)) -> Dict[str, Any]:
    try:
        return await run_in_threadpool(engine.get_valid_options)
    except SQLAlchemyError as e:
        logger.error("Could not load import options: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Could not load import options")

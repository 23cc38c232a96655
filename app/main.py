from fastapi import FastAPI
import logging

from app.core.config import settings
from app.core.logging import configure_logging

# --- Logging Configuration ---
configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
logger = logging.getLogger(__name__)
logger.info(f"Logging configured with level: {settings.LOG_LEVEL}")

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description=(
        "Imports rental prices from CSV files into the price catalog. "
        "Failed rows are counted per category in `errors_by_type`; besides the format, "
        "lookup and season categories this includes `units-not-allowed` for unit counts "
        "that the price definition does not permit."
    ),
    version="1.0.0",
)

logger.info(f"FastAPI application startup... Environment: {settings.ENVIRONMENT}")

# --- Include REST API routers ---
from app.routes.imports import router as imports_api_router

app.include_router(imports_api_router, prefix=settings.API_PREFIX, tags=["Price import"])


@app.get("/", tags=["Root"])
async def read_root():
    return {"message": "Welcome to the Price Catalog Import Service REST API."}

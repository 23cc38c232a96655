import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.dependencies.services import get_import_service, get_suggestion_engine
from app.main import app
from app.models.enums import ImportErrorType
from app.models.schemas import ImportFailed
from app.services.factory import build_suggestion_engine

CSV_HEADER = b"category_code,rental_location_name,rate_type_name,season_name,time_measurement,units,price\n"
GOOD_CSV = CSV_HEADER + "A,Barcelona,Estándar,Alta,days,2,25.50\nA,Barcelona,Estándar,Baja,days,4,30\n".encode()


@pytest.fixture
def client(import_service, session_factory):
    app.dependency_overrides[get_import_service] = lambda: import_service
    app.dependency_overrides[get_suggestion_engine] = lambda: build_suggestion_engine(session_factory)
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload(content: bytes, filename: str = "prices.csv"):
    return {"file": (filename, content, "text/csv")}


def test_import_success(client, all_prices):
    response = client.post("/api/v1/prices/import", files=upload(GOOD_CSV))

    assert response.status_code == 200
    body = response.json()
    assert body["result_type"] == "import_success"
    assert body["success"] is True
    assert body["report"]["summary"]["created_prices"] == 2
    assert len(all_prices()) == 2


def test_import_with_row_errors_is_still_200(client):
    content = GOOD_CSV + "Z,Barcelona,Estándar,Alta,days,2,25.50\n".encode()

    response = client.post("/api/v1/prices/import", files=upload(content))

    assert response.status_code == 200
    body = response.json()
    assert body["result_type"] == "import_completed_with_errors"
    assert body["success"] is False
    assert body["report"]["errors_by_type"] == {"price-definition-not-found": 1}


def test_non_csv_upload_is_refused(client):
    response = client.post("/api/v1/prices/import", files=upload(GOOD_CSV, filename="prices.xlsx"))

    assert response.status_code == 400
    assert response.json()["detail"] == "Only CSV files allowed."


def test_bad_header_is_rejected(client):
    response = client.post("/api/v1/prices/import", files=upload(b"category_code,price\nA,1\n"))

    assert response.status_code == 400
    body = response.json()
    assert body["result_type"] == "import_rejected"
    assert body["errors"][0]["error_type"] == "invalid-header"


def test_failed_import_maps_to_500():
    service = MagicMock()
    service.import_prices.return_value = ImportFailed(
        message="Import failed after 4 attempts",
        error_type=ImportErrorType.TRANSIENT_CONTENTION,
        attempts=4,
    )
    app.dependency_overrides[get_import_service] = lambda: service
    try:
        response = TestClient(app).post("/api/v1/prices/import", files=upload(GOOD_CSV))
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error_type"] == "transient-contention"
    assert response.json()["attempts"] == 4


def test_spooled_upload_is_removed():
    seen = {}

    def fake_import(path):
        seen["path"] = path
        assert os.path.exists(path)
        return ImportFailed(message="boom", error_type=ImportErrorType.UNEXPECTED_ERROR)

    service = MagicMock()
    service.import_prices.side_effect = fake_import
    app.dependency_overrides[get_import_service] = lambda: service
    try:
        TestClient(app).post("/api/v1/prices/import", files=upload(GOOD_CSV))
    finally:
        app.dependency_overrides.clear()

    assert not os.path.exists(seen["path"])


def test_preview_respects_max_rows(client, all_prices):
    response = client.post("/api/v1/prices/import/preview", params={"max_rows": 1}, files=upload(GOOD_CSV))

    assert response.status_code == 200
    body = response.json()
    assert body["result_type"] == "preview_success"
    assert body["total_sample_size"] == 1
    assert body["sample_rows"][0]["price_definition"] == "Scooters por temporada"
    assert all_prices() == []


def test_preview_rejects_out_of_range_max_rows(client):
    response = client.post("/api/v1/prices/import/preview", params={"max_rows": 0}, files=upload(GOOD_CSV))

    assert response.status_code == 422


def test_options(client):
    response = client.get("/api/v1/prices/import/options")

    assert response.status_code == 200
    body = response.json()
    assert body["rental_locations"] == ["Barcelona", "Menorca"]
    assert body["units"]["A"]["days"] == [1, 2, 4, 15]


def test_options_database_error_is_500():
    engine = MagicMock()
    engine.get_valid_options.side_effect = OperationalError("SELECT", {}, Exception("no such table"))
    app.dependency_overrides[get_suggestion_engine] = lambda: engine
    try:
        response = TestClient(app).get("/api/v1/prices/import/options")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["detail"] == "Could not load import options"


def test_api_description_lists_units_not_allowed_category():
    schema = TestClient(app).get("/openapi.json").json()

    assert "units-not-allowed" in schema["info"]["description"]

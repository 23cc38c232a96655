from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.db.models import PriceOrm
from app.db.repositories import PriceRepository
from app.models.enums import TimeMeasurement, UpsertAction
from app.services.price_upsert import PriceUpsertEngine


@pytest.fixture
def engine_and_session(db_session, catalog):
    return PriceUpsertEngine(PriceRepository(db_session), MagicMock()), db_session


def test_creates_when_natural_key_is_new(engine_and_session, catalog):
    upsert, session = engine_and_session

    result = upsert.upsert_price(catalog.seasonal_id, catalog.alta_id, TimeMeasurement.DAYS, 2, Decimal("25.50"))

    assert result.action == UpsertAction.CREATED
    stored = session.get(PriceOrm, result.price_id)
    assert stored.price == Decimal("25.50")
    assert stored.time_measurement == "days"
    assert stored.units == 2
    assert stored.season_id == catalog.alta_id


def test_updates_existing_row_with_same_natural_key(engine_and_session, catalog):
    upsert, session = engine_and_session
    first = upsert.upsert_price(catalog.seasonal_id, catalog.alta_id, "days", 2, Decimal("25.50"))

    second = upsert.upsert_price(catalog.seasonal_id, catalog.alta_id, "days", 2, Decimal("30.00"))

    assert second.action == UpsertAction.UPDATED
    assert second.price_id == first.price_id
    assert session.get(PriceOrm, first.price_id).price == Decimal("30.00")
    assert PriceRepository(session).count() == 1


def test_no_season_is_a_distinct_key_value(engine_and_session, catalog):
    upsert, session = engine_and_session

    flat = upsert.upsert_price(catalog.flat_id, None, "days", 1, Decimal("50"))
    flat_again = upsert.upsert_price(catalog.flat_id, None, "days", 1, Decimal("55"))
    seasonal = upsert.upsert_price(catalog.seasonal_id, catalog.alta_id, "days", 1, Decimal("20"))
    other_season = upsert.upsert_price(catalog.seasonal_id, catalog.baja_id, "days", 1, Decimal("15"))

    assert flat.action == UpsertAction.CREATED
    assert flat_again.action == UpsertAction.UPDATED
    assert seasonal.action == UpsertAction.CREATED
    assert other_season.action == UpsertAction.CREATED
    assert PriceRepository(session).count() == 3


def test_km_fields_are_reset_to_zero_on_update(engine_and_session, catalog):
    upsert, session = engine_and_session
    existing = PriceOrm(
        price_definition_id=catalog.flat_id,
        season_id=None,
        time_measurement="days",
        units=3,
        price=Decimal("90"),
        included_km=200,
        extra_km_price=Decimal("0.25"),
    )
    session.add(existing)
    session.flush()

    result = upsert.upsert_price(catalog.flat_id, None, "days", 3, Decimal("95"))

    assert result.action == UpsertAction.UPDATED
    refreshed = session.get(PriceOrm, existing.id)
    assert refreshed.price == Decimal("95")
    assert refreshed.included_km == 0
    assert refreshed.extra_km_price == Decimal("0")


def test_created_row_is_visible_to_next_lookup_in_same_session(engine_and_session, catalog):
    upsert, session = engine_and_session
    created = upsert.upsert_price(catalog.seasonal_id, catalog.baja_id, "hours", 4, Decimal("8"))

    found = PriceRepository(session).find_by_natural_key(catalog.seasonal_id, catalog.baja_id, "hours", 4)

    assert found is not None
    assert found.id == created.price_id


def test_update_of_missing_price_raises_lookup_error(db_session):
    with pytest.raises(LookupError):
        PriceRepository(db_session).update(9999, {"price": Decimal("1")})

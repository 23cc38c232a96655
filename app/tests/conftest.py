import csv
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.core.logging import get_import_logger
from app.db import Base
from app.db.connection import get_session_factory
from app.db.models import (
    CategoryOrm,
    CategoryRentalLocationRateTypeOrm,
    PriceDefinitionOrm,
    PriceOrm,
    RateTypeOrm,
    RentalLocationOrm,
    SeasonDefinitionOrm,
    SeasonOrm,
)
from app.db.repositories import SqlAlchemyTransactionalStore
from app.models.enums import PriceDefinitionType
from app.services.factory import build_import_service

PRICE_HEADER = [
    "category_code",
    "rental_location_name",
    "rate_type_name",
    "season_name",
    "time_measurement",
    "units",
    "price",
]

TEST_TRANSIENT_PATTERNS = ["deadlock", "lock wait timeout", "database is locked"]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog(session_factory):
    """
    Reference data shared by the pipeline tests:
      A / Barcelona / Estándar  -> seasonal (Temporadas scooters: Alta, Baja), days 1,2,4,15
      A / Menorca / Estándar    -> same seasonal definition
      B / Barcelona / Premium   -> non-seasonal, days 1,2,3,7
    """
    session = session_factory()
    try:
        cat_a = CategoryOrm(code="A", name="Scooter 125cc")
        cat_b = CategoryOrm(code="B", name="Compact car")
        barcelona = RentalLocationOrm(name="Barcelona")
        menorca = RentalLocationOrm(name="Menorca")
        standard = RateTypeOrm(name="Estándar")
        premium = RateTypeOrm(name="Premium")

        scooter_seasons = SeasonDefinitionOrm(name="Temporadas scooters")
        alta = SeasonOrm(name="Alta", season_definition=scooter_seasons)
        baja = SeasonOrm(name="Baja", season_definition=scooter_seasons)
        summer_seasons = SeasonDefinitionOrm(name="Temporadas verano")
        verano = SeasonOrm(name="Verano", season_definition=summer_seasons)

        seasonal = PriceDefinitionOrm(
            name="Scooters por temporada",
            type=int(PriceDefinitionType.SEASONAL),
            season_definition=scooter_seasons,
            units_management_value_days_list="1,2,4,15",
            units_management_value_hours_list="1,2,4",
            units_management_value_minutes_list=None,
        )
        flat = PriceDefinitionOrm(
            name="Coches sin temporada",
            type=int(PriceDefinitionType.NON_SEASONAL),
            season_definition=None,
            units_management_value_days_list="1,2,3,7",
        )

        session.add_all([
            cat_a, cat_b, barcelona, menorca, standard, premium,
            scooter_seasons, alta, baja, summer_seasons, verano, seasonal, flat,
        ])
        session.flush()
        session.add_all([
            CategoryRentalLocationRateTypeOrm(
                category=cat_a, rental_location=barcelona, rate_type=standard, price_definition=seasonal
            ),
            CategoryRentalLocationRateTypeOrm(
                category=cat_a, rental_location=menorca, rate_type=standard, price_definition=seasonal
            ),
            CategoryRentalLocationRateTypeOrm(
                category=cat_b, rental_location=barcelona, rate_type=premium, price_definition=flat
            ),
        ])
        session.commit()

        return SimpleNamespace(
            seasonal_id=seasonal.id,
            flat_id=flat.id,
            scooter_seasons_id=scooter_seasons.id,
            summer_seasons_id=summer_seasons.id,
            alta_id=alta.id,
            baja_id=baja.id,
            verano_id=verano.id,
        )
    finally:
        session.close()


@pytest.fixture
def import_logger():
    return get_import_logger("app.tests")


@pytest.fixture
def store(session_factory, import_logger):
    return SqlAlchemyTransactionalStore(session_factory, import_logger, TEST_TRANSIENT_PATTERNS)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def import_service(session_factory, catalog, sleeps):
    return build_import_service(session_factory, sleep=sleeps.append)


@pytest.fixture
def write_csv(tmp_path):
    """Write rows (lists of cells) to a CSV under tmp_path and return its path as a string."""
    def _write(rows, header=None, name="prices.csv", bom=False):
        path = tmp_path / name
        encoding = "utf-8-sig" if bom else "utf-8"
        with open(path, "w", encoding=encoding, newline="") as f:
            writer = csv.writer(f)
            writer.writerow(PRICE_HEADER if header is None else header)
            for row in rows:
                writer.writerow(row)
        return str(path)
    return _write


@pytest.fixture
def all_prices(session_factory):
    def _all():
        session = session_factory()
        try:
            return session.query(PriceOrm).order_by(PriceOrm.id).all()
        finally:
            session.close()
    return _all

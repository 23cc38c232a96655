"""
SQLAlchemy implementations of the storage contracts the import pipeline consumes:
reference data lookups, price reads/writes, and the transactional store.
"""
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from app.core.logging import ImportLogger
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
from app.models.schemas import PriceDefinitionModel

T = TypeVar("T")

PRICE_WRITABLE_FIELDS = (
    "price_definition_id",
    "season_id",
    "time_measurement",
    "units",
    "price",
    "included_km",
    "extra_km_price",
)


class ReferenceDataRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_all_categories(self) -> List[CategoryOrm]:
        return list(self.session.scalars(select(CategoryOrm).order_by(CategoryOrm.code)))

    def find_all_rental_locations(self) -> List[RentalLocationOrm]:
        return list(self.session.scalars(select(RentalLocationOrm).order_by(RentalLocationOrm.name)))

    def find_all_rate_types(self) -> List[RateTypeOrm]:
        return list(self.session.scalars(select(RateTypeOrm).order_by(RateTypeOrm.name)))

    def find_all_season_definitions(self) -> List[SeasonDefinitionOrm]:
        return list(self.session.scalars(select(SeasonDefinitionOrm).order_by(SeasonDefinitionOrm.id)))

    def find_seasons_by_definition(self, season_definition_id: int) -> List[SeasonOrm]:
        stmt = (
            select(SeasonOrm)
            .where(SeasonOrm.season_definition_id == season_definition_id)
            .order_by(SeasonOrm.id)
        )
        return list(self.session.scalars(stmt))

    def find_price_definition_by_business_keys(
        self, category_code: str, rental_location_name: str, rate_type_name: str
    ) -> Optional[PriceDefinitionModel]:
        """Exact (case-sensitive) match on the category/location/rate-type triple."""
        stmt = (
            select(PriceDefinitionOrm)
            .join(
                CategoryRentalLocationRateTypeOrm,
                CategoryRentalLocationRateTypeOrm.price_definition_id == PriceDefinitionOrm.id,
            )
            .join(CategoryOrm, CategoryOrm.id == CategoryRentalLocationRateTypeOrm.category_id)
            .join(RentalLocationOrm, RentalLocationOrm.id == CategoryRentalLocationRateTypeOrm.rental_location_id)
            .join(RateTypeOrm, RateTypeOrm.id == CategoryRentalLocationRateTypeOrm.rate_type_id)
            .where(
                CategoryOrm.code == category_code,
                RentalLocationOrm.name == rental_location_name,
                RateTypeOrm.name == rate_type_name,
            )
            .limit(1)
        )
        definition = self.session.scalars(stmt).first()
        if definition is None:
            return None
        return PriceDefinitionModel.model_validate(definition)

    def find_links_for_category(self, category_code: str) -> List[Dict[str, Any]]:
        return [link for link in self.find_all_links() if link["category_code"] == category_code]

    def find_all_links(self) -> List[Dict[str, Any]]:
        stmt = (
            select(
                CategoryOrm.code,
                CategoryOrm.name,
                RentalLocationOrm.name,
                RateTypeOrm.name,
                PriceDefinitionOrm,
            )
            .select_from(CategoryRentalLocationRateTypeOrm)
            .join(CategoryOrm, CategoryOrm.id == CategoryRentalLocationRateTypeOrm.category_id)
            .join(RentalLocationOrm, RentalLocationOrm.id == CategoryRentalLocationRateTypeOrm.rental_location_id)
            .join(RateTypeOrm, RateTypeOrm.id == CategoryRentalLocationRateTypeOrm.rate_type_id)
            .join(PriceDefinitionOrm, PriceDefinitionOrm.id == CategoryRentalLocationRateTypeOrm.price_definition_id)
            .order_by(CategoryOrm.code, RentalLocationOrm.name, RateTypeOrm.name)
        )
        links = []
        for code, category_name, location_name, rate_type_name, definition in self.session.execute(stmt):
            links.append({
                "category_code": code,
                "category_name": category_name,
                "rental_location_name": location_name,
                "rate_type_name": rate_type_name,
                "price_definition": PriceDefinitionModel.model_validate(definition),
            })
        return links


class PriceRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_natural_key(
        self,
        price_definition_id: int,
        season_id: Optional[int],
        time_measurement: str,
        units: int,
    ) -> Optional[PriceOrm]:
        # "No season" is its own key value: NULL never equals a concrete season id.
        season_clause = PriceOrm.season_id.is_(None) if season_id is None else PriceOrm.season_id == season_id
        stmt = select(PriceOrm).where(
            PriceOrm.price_definition_id == price_definition_id,
            season_clause,
            PriceOrm.time_measurement == time_measurement,
            PriceOrm.units == units,
        )
        return self.session.scalars(stmt).first()

    def create(self, fields: Dict[str, Any]) -> PriceOrm:
        price = PriceOrm(**_writable(fields))
        self.session.add(price)
        # Later rows in the same transaction must see this row.
        self.session.flush()
        return price

    def update(self, price_id: int, fields: Dict[str, Any]) -> PriceOrm:
        price = self.session.get(PriceOrm, price_id)
        if price is None:
            raise LookupError(f"Price {price_id} does not exist")
        for key, value in _writable(fields).items():
            setattr(price, key, value)
        self.session.flush()
        return price

    def count(self) -> int:
        return self.session.scalar(select(func.count(PriceOrm.id))) or 0


def _writable(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if k in PRICE_WRITABLE_FIELDS}


class SqlAlchemyTransactionalStore:
    """
    Runs each unit of work in its own session and keeps no per-run state, so one
    instance can serve concurrent runs. ``with_transaction`` commits when the
    callable returns and rolls back (re-raising) on any exception.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        logger: ImportLogger,
        transient_error_patterns: Iterable[str] = (),
    ):
        self.session_factory = session_factory
        self.logger = logger
        self.transient_error_patterns = [p.lower() for p in transient_error_patterns]

    def with_transaction(self, isolation_level: Optional[str], fn: Callable[[Session], T]) -> T:
        session = self.session_factory()
        try:
            if isolation_level:
                session.connection(execution_options={"isolation_level": isolation_level})
            result = fn(session)
            session.commit()
            return result
        except Exception:
            self.logger.debug("Rolling back import transaction")
            session.rollback()
            raise
        finally:
            session.close()

    def read_only(self, fn: Callable[[Session], T]) -> T:
        session = self.session_factory()
        try:
            return fn(session)
        finally:
            session.rollback()
            session.close()

    def is_transient_contention(self, error: BaseException) -> bool:
        texts = [str(error)]
        orig = getattr(error, "orig", None)
        if orig is not None:
            texts.append(str(orig))
        haystack = " ".join(texts).lower()
        return any(pattern in haystack for pattern in self.transient_error_patterns)

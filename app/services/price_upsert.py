from decimal import Decimal
from typing import Optional, Union

from app.core.logging import ImportLogger
from app.db.repositories import PriceRepository
from app.models.enums import TimeMeasurement, UpsertAction
from app.models.schemas import ResolvedPriceRow, UpsertResult


class PriceUpsertEngine:
    """
    Create-or-update of a single Price row keyed by
    (price_definition_id, season_id, time_measurement, units).
    """

    def __init__(self, prices: PriceRepository, logger: ImportLogger):
        self.prices = prices
        self.logger = logger

    def upsert_price(
        self,
        price_definition_id: int,
        season_id: Optional[int],
        time_measurement: Union[TimeMeasurement, str],
        units: int,
        price_value: Decimal,
    ) -> UpsertResult:
        measurement = TimeMeasurement(time_measurement).value
        fields = {
            "price_definition_id": price_definition_id,
            "season_id": season_id,
            "time_measurement": measurement,
            "units": units,
            "price": price_value,
            # Row km values are not forwarded; both fields are reset on every write.
            "included_km": 0,
            "extra_km_price": Decimal("0"),
        }

        existing = self.prices.find_by_natural_key(price_definition_id, season_id, measurement, units)
        if existing is not None:
            self.prices.update(existing.id, fields)
            result = UpsertResult(action=UpsertAction.UPDATED, price_id=existing.id)
        else:
            created = self.prices.create(fields)
            result = UpsertResult(action=UpsertAction.CREATED, price_id=created.id)

        self.logger.debug(
            "Price %s (id=%s) definition=%s season=%s %s x%s",
            result.action.value, result.price_id, price_definition_id, season_id, measurement, units,
        )
        return result

    def upsert(self, resolved: ResolvedPriceRow) -> UpsertResult:
        return self.upsert_price(
            resolved.price_definition.id,
            resolved.season_id,
            resolved.time_measurement,
            resolved.units,
            resolved.price,
        )

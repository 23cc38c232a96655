"""
Business rules resolved against catalog reference data.

Every check fails fast with a row-scoped error; the resolver itself never
writes. It is built per session, so the small lookup caches it keeps live
only as long as one transaction.
"""
from typing import Dict, List, Optional, Tuple, Union

from app.core.logging import ImportLogger
from app.db.repositories import ReferenceDataRepository
from app.exceptions import InvalidSeasonError, InvalidUnitsError, PriceDefinitionNotFoundError
from app.models.enums import PriceDefinitionType, TimeMeasurement
from app.models.schemas import PriceDefinitionModel, ResolvedPriceRow, ValidatedPriceRow

# Months have no configurable list; the only permitted unit count is 1.
MONTHS_ALLOWED_UNITS = [1]


def parse_units_list(value: Optional[str]) -> List[int]:
    """
    Parse a comma-separated unit list such as ``"1,2,4,15"``.
    A blank list means ``[1]``; tokens that are not integers are ignored.
    """
    if not value or not value.strip():
        return [1]
    units = []
    for token in value.split(","):
        token = token.strip()
        try:
            units.append(int(token))
        except ValueError:
            continue
    return sorted(units) or [1]


def allowed_units_for(
    price_definition: PriceDefinitionModel,
    time_measurement: TimeMeasurement,
) -> List[int]:
    if time_measurement == TimeMeasurement.DAYS:
        return parse_units_list(price_definition.units_management_value_days_list)
    if time_measurement == TimeMeasurement.HOURS:
        return parse_units_list(price_definition.units_management_value_hours_list)
    if time_measurement == TimeMeasurement.MINUTES:
        return parse_units_list(price_definition.units_management_value_minutes_list)
    if time_measurement == TimeMeasurement.MONTHS:
        return list(MONTHS_ALLOWED_UNITS)
    raise InvalidUnitsError(f"Invalid time measurement: {time_measurement}")


class BusinessRuleResolver:
    def __init__(self, reference_data: ReferenceDataRepository, logger: ImportLogger):
        self.reference_data = reference_data
        self.logger = logger
        self._definitions: Dict[Tuple[str, str, str], Optional[PriceDefinitionModel]] = {}
        self._seasons: Dict[int, list] = {}

    def resolve_price_definition(
        self, category_code: str, rental_location_name: str, rate_type_name: str
    ) -> PriceDefinitionModel:
        key = (category_code, rental_location_name, rate_type_name)
        if key not in self._definitions:
            self._definitions[key] = self.reference_data.find_price_definition_by_business_keys(*key)
        definition = self._definitions[key]
        if definition is None:
            raise PriceDefinitionNotFoundError(category_code, rental_location_name, rate_type_name)
        return definition

    def validate_season_compatibility(
        self, price_definition: PriceDefinitionModel, season_name: Optional[str]
    ) -> Optional[int]:
        """Return the resolved season id, or None for non-seasonal definitions."""
        season_name = (season_name or "").strip()

        if price_definition.type == PriceDefinitionType.NON_SEASONAL:
            if season_name:
                raise InvalidSeasonError(
                    f"Price definition '{price_definition.name}' does not accept seasons",
                    season_name=season_name,
                )
            return None

        if not season_name:
            raise InvalidSeasonError(f"Price definition '{price_definition.name}' requires a season")

        wanted = season_name.casefold()
        for season in self._seasons_for(price_definition.season_definition_id):
            if season.name.casefold() == wanted:
                return season.id

        raise InvalidSeasonError(
            f"Season '{season_name}' is not valid for this definition ('{price_definition.name}')",
            season_name=season_name,
        )

    def validate_units_allowed(
        self,
        price_definition: PriceDefinitionModel,
        time_measurement: Union[TimeMeasurement, str],
        units: int,
    ) -> int:
        try:
            measurement = TimeMeasurement(time_measurement)
        except ValueError:
            raise InvalidUnitsError(f"Invalid time measurement: {time_measurement}", units=units)

        allowed = allowed_units_for(price_definition, measurement)
        # Exact membership only: a definition listing 1,2,4,15 rejects 30.
        if units not in allowed:
            raise InvalidUnitsError(
                f"Units {units} {measurement.value} not allowed. "
                f"Valid units: {', '.join(str(u) for u in allowed)}",
                units=units,
                allowed=allowed,
            )
        return units

    def resolve(self, validated: ValidatedPriceRow) -> ResolvedPriceRow:
        row = validated.row
        definition = self.resolve_price_definition(
            row.category_code, row.rental_location_name, row.rate_type_name
        )
        season_id = self.validate_season_compatibility(definition, row.season_name)
        units = self.validate_units_allowed(definition, validated.time_measurement, validated.units)
        self.logger.event(
            "pricing_validation",
            "Business rules satisfied",
            price_definition=definition.name,
            season_id=season_id,
            units=units,
        )
        return ResolvedPriceRow(
            price_definition=definition,
            season_id=season_id,
            time_measurement=validated.time_measurement,
            units=units,
            price=validated.price,
        )

    def _seasons_for(self, season_definition_id: Optional[int]) -> list:
        if season_definition_id is None:
            return []
        if season_definition_id not in self._seasons:
            self._seasons[season_definition_id] = self.reference_data.find_seasons_by_definition(
                season_definition_id
            )
        return self._seasons[season_definition_id]

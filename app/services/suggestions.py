"""
Correction hints for failed rows, built from the current reference data.

The engine never raises: if reference data cannot be loaded it falls back to
a generic "verify inputs" hint.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.core.logging import ImportLogger
from app.db.repositories import ReferenceDataRepository
from app.models.enums import ImportErrorType, PriceDefinitionType, TimeMeasurement, TIME_MEASUREMENT_SYNONYMS
from app.models.schemas import PriceDefinitionModel
from app.services.business_rules import allowed_units_for
from app.services.field_validator import REQUIRED_FIELDS

GENERIC_SUGGESTIONS = [
    "Verify that every field holds a valid value",
    "Check the valid options for categories, locations, rate types and seasons",
]


@dataclass
class ReferenceSnapshot:
    categories: List[Dict[str, str]] = field(default_factory=list)
    rental_locations: List[str] = field(default_factory=list)
    rate_types: List[str] = field(default_factory=list)
    seasons_by_definition: Dict[str, List[str]] = field(default_factory=dict)
    season_definition_names: Dict[int, str] = field(default_factory=dict)
    seasons_by_definition_id: Dict[int, List[str]] = field(default_factory=dict)
    links: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def load(cls, reference_data: ReferenceDataRepository) -> "ReferenceSnapshot":
        snapshot = cls(
            categories=[{"code": c.code, "name": c.name} for c in reference_data.find_all_categories()],
            rental_locations=[loc.name for loc in reference_data.find_all_rental_locations()],
            rate_types=[rt.name for rt in reference_data.find_all_rate_types()],
            links=reference_data.find_all_links(),
        )
        for definition in reference_data.find_all_season_definitions():
            names = [s.name for s in reference_data.find_seasons_by_definition(definition.id)]
            snapshot.season_definition_names[definition.id] = definition.name
            snapshot.seasons_by_definition_id[definition.id] = names
            snapshot.seasons_by_definition[definition.name] = names
        return snapshot

    @property
    def category_codes(self) -> List[str]:
        return [c["code"] for c in self.categories]

    def links_for_category(self, category_code: str) -> List[Dict[str, Any]]:
        return [link for link in self.links if link["category_code"] == category_code]

    def definition_for(self, data: Dict[str, str]) -> Optional[PriceDefinitionModel]:
        """The definition linked to the row's triple, else the first one linked to its category."""
        candidates = self.links_for_category(data.get("category_code", ""))
        for link in candidates:
            if (link["rental_location_name"] == data.get("rental_location_name")
                    and link["rate_type_name"] == data.get("rate_type_name")):
                return link["price_definition"]
        return candidates[0]["price_definition"] if candidates else None


def nearest_unit(target: int, allowed: Sequence[int]) -> Optional[int]:
    """Closest allowed value by absolute distance; ties go to the smaller value."""
    if not allowed:
        return None
    return min(sorted(allowed), key=lambda unit: abs(unit - target))


def canonical_time_measurement(value: Optional[str]) -> Optional[TimeMeasurement]:
    return TIME_MEASUREMENT_SYNONYMS.get((value or "").strip().lower())


class SuggestionEngine:
    def __init__(
        self,
        store,
        logger: ImportLogger,
        repository_factory: Callable[[Session], ReferenceDataRepository] = ReferenceDataRepository,
    ):
        self.store = store
        self.logger = logger
        self.repository_factory = repository_factory
        self._handlers: Dict[ImportErrorType, Callable[[ReferenceSnapshot, Dict[str, str]], List[str]]] = {
            ImportErrorType.MISSING_REQUIRED_FIELD: self._missing_field,
            ImportErrorType.INVALID_PRICE_FORMAT: self._price_format,
            ImportErrorType.INVALID_UNITS_FORMAT: self._units_format,
            ImportErrorType.INVALID_TIME_MEASUREMENT: self._time_measurement,
            ImportErrorType.PRICE_DEFINITION_NOT_FOUND: self._price_definition,
            ImportErrorType.INVALID_SEASON: self._season,
            ImportErrorType.UNITS_NOT_ALLOWED: self._units_allowed,
            ImportErrorType.UNEXPECTED_ERROR: self._general,
            ImportErrorType.INVALID_HEADER: self._general,
            ImportErrorType.INVALID_FILE: self._general,
            ImportErrorType.TRANSIENT_CONTENTION: self._general,
            ImportErrorType.ROLLBACK_THRESHOLD_EXCEEDED: self._general,
        }

    # --- public API ---

    def suggest(self, error_type: ImportErrorType, data: Dict[str, str]) -> List[str]:
        return self.suggest_many([(error_type, data)])[0]

    def suggest_many(self, failures: Sequence[Tuple[ImportErrorType, Dict[str, str]]]) -> List[List[str]]:
        """Suggestions for several failed rows, loading reference data once."""
        if not failures:
            return []
        try:
            snapshot = self.load_snapshot()
        except Exception as e:
            self.logger.warning("Reference data unavailable for suggestions: %s", e, exc_info=True)
            return [list(GENERIC_SUGGESTIONS) for _ in failures]
        return [self._suggest_with(snapshot, error_type, data) for error_type, data in failures]

    def get_valid_options(self) -> Dict[str, Any]:
        snapshot = self.load_snapshot()
        units: Dict[str, Dict[str, List[int]]] = {}
        for link in snapshot.links:
            per_measurement = units.setdefault(link["category_code"], {tm.value: [] for tm in TimeMeasurement})
            for measurement in TimeMeasurement:
                merged = set(per_measurement[measurement.value])
                merged.update(allowed_units_for(link["price_definition"], measurement))
                per_measurement[measurement.value] = sorted(merged)
        return {
            "categories": snapshot.categories,
            "rental_locations": snapshot.rental_locations,
            "rate_types": snapshot.rate_types,
            "seasons": snapshot.seasons_by_definition,
            "units": units,
            "time_measurements": [tm.value for tm in TimeMeasurement],
        }

    def get_valid_combinations(self, category_code: str) -> List[Dict[str, str]]:
        snapshot = self.load_snapshot()
        return self._combinations(snapshot, category_code)

    def load_snapshot(self) -> ReferenceSnapshot:
        return self.store.read_only(lambda session: ReferenceSnapshot.load(self.repository_factory(session)))

    # --- dispatch ---

    def _suggest_with(
        self, snapshot: ReferenceSnapshot, error_type: Optional[ImportErrorType], data: Dict[str, str]
    ) -> List[str]:
        handler = self._handlers.get(error_type, self._general)
        try:
            return handler(snapshot, data or {})
        except Exception as e:
            self.logger.warning("Could not build suggestions for %s: %s", error_type, e, exc_info=True)
            return list(GENERIC_SUGGESTIONS)

    @staticmethod
    def _combinations(snapshot: ReferenceSnapshot, category_code: str) -> List[Dict[str, str]]:
        return [
            {
                "rental_location_name": link["rental_location_name"],
                "rate_type_name": link["rate_type_name"],
                "price_definition": link["price_definition"].name,
            }
            for link in snapshot.links_for_category(category_code)
        ]

    # --- handlers ---

    def _missing_field(self, snapshot: ReferenceSnapshot, data: Dict[str, str]) -> List[str]:
        missing = [name for name in REQUIRED_FIELDS if not (data.get(name) or "").strip()]
        suggestions = [f"Fill in the required field '{name}'" for name in missing]
        if "category_code" in missing and snapshot.category_codes:
            suggestions.append(f"Valid categories: {', '.join(snapshot.category_codes)}")
        if "rental_location_name" in missing and snapshot.rental_locations:
            suggestions.append(f"Valid rental locations: {', '.join(snapshot.rental_locations)}")
        if "rate_type_name" in missing and snapshot.rate_types:
            suggestions.append(f"Valid rate types: {', '.join(snapshot.rate_types)}")
        return suggestions or list(GENERIC_SUGGESTIONS)

    def _price_format(self, snapshot: ReferenceSnapshot, data: Dict[str, str]) -> List[str]:
        suggestions = [
            "Price must be a non-negative number",
            "Use a single decimal separator, e.g. 25.50 or 25,50",
            "Remove letters and other symbols from the price",
        ]
        if data.get("price"):
            suggestions.append(f"Check value: '{data['price']}'")
        return suggestions

    def _units_format(self, snapshot: ReferenceSnapshot, data: Dict[str, str]) -> List[str]:
        suggestions = ["Units must be a positive whole number, e.g. 1, 2 or 4"]
        if data.get("units"):
            suggestions.append(f"Check value: '{data['units']}'")
        return suggestions

    def _time_measurement(self, snapshot: ReferenceSnapshot, data: Dict[str, str]) -> List[str]:
        return [
            f"Use one of: {', '.join(tm.value for tm in TimeMeasurement)}",
            f"Accepted spellings: {', '.join(TIME_MEASUREMENT_SYNONYMS)}",
        ]

    def _price_definition(self, snapshot: ReferenceSnapshot, data: Dict[str, str]) -> List[str]:
        category = data.get("category_code", "")
        location = data.get("rental_location_name", "")
        rate_type = data.get("rate_type_name", "")

        suggestions = []
        if category not in snapshot.category_codes:
            suggestions.append(f"Category '{category}' does not exist. Valid: {', '.join(snapshot.category_codes)}")
        if location not in snapshot.rental_locations:
            suggestions.append(
                f"Rental location '{location}' does not exist. Valid: {', '.join(snapshot.rental_locations)}"
            )
        if rate_type not in snapshot.rate_types:
            suggestions.append(f"Rate type '{rate_type}' does not exist. Valid: {', '.join(snapshot.rate_types)}")

        # Every value exists on its own, so the combination is what is missing.
        if not suggestions:
            suggestions.append(f"Combination {category} / {location} / {rate_type} is not configured")

        combinations = self._combinations(snapshot, category)
        if combinations:
            suggestions.append(f"Valid combinations for category {category}:")
            suggestions.extend(
                f"  {combo['rental_location_name']} / {combo['rate_type_name']}" for combo in combinations
            )
        return suggestions

    def _season(self, snapshot: ReferenceSnapshot, data: Dict[str, str]) -> List[str]:
        definition = snapshot.definition_for(data)
        if definition is None:
            suggestions = ["Available seasons:"]
            suggestions.extend(
                f"  {name}: {', '.join(seasons)}" for name, seasons in snapshot.seasons_by_definition.items()
            )
            return suggestions

        if definition.type == PriceDefinitionType.NON_SEASONAL:
            return [f"Price definition '{definition.name}' does not use seasons: leave season_name empty"]

        seasons = snapshot.seasons_by_definition_id.get(definition.season_definition_id, [])
        definition_name = snapshot.season_definition_names.get(definition.season_definition_id, definition.name)
        suggestions = []
        if data.get("season_name"):
            suggestions.append(f"Season '{data['season_name']}' is not part of {definition_name}")
        else:
            suggestions.append(f"Price definition '{definition.name}' requires a season")
        suggestions.append(f"Valid seasons ({definition_name}): {', '.join(seasons)}")
        return suggestions

    def _units_allowed(self, snapshot: ReferenceSnapshot, data: Dict[str, str]) -> List[str]:
        definition = snapshot.definition_for(data)
        measurement = canonical_time_measurement(data.get("time_measurement"))
        if definition is None or measurement is None:
            return ["Check the permitted units configured for this category"]

        allowed = allowed_units_for(definition, measurement)
        suggestions = [
            f"Valid units for {measurement.value} in '{definition.name}': {', '.join(str(u) for u in allowed)}"
        ]
        try:
            requested = int((data.get("units") or "").strip())
        except ValueError:
            return suggestions
        closest = nearest_unit(requested, allowed)
        if closest is not None and closest != requested:
            suggestions.append(f"Closest allowed value: {closest} (instead of {requested})")
        return suggestions

    def _general(self, snapshot: ReferenceSnapshot, data: Dict[str, str]) -> List[str]:
        return list(GENERIC_SUGGESTIONS)

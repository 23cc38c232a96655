from unittest.mock import MagicMock

import pytest

from app.models.enums import ImportErrorType, TimeMeasurement
from app.services.suggestions import GENERIC_SUGGESTIONS, SuggestionEngine, canonical_time_measurement, nearest_unit


@pytest.fixture
def suggestion_engine(store, import_logger, catalog):
    return SuggestionEngine(store, import_logger)


def row(**overrides):
    data = {
        "category_code": "A",
        "rental_location_name": "Barcelona",
        "rate_type_name": "Estándar",
        "season_name": "Alta",
        "time_measurement": "days",
        "units": "2",
        "price": "25.50",
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize("target, allowed, expected", [
    (30, [1, 2, 4, 15], 15),
    (3, [1, 2, 4, 15], 2),
    (3, [4, 2], 2),
    (0, [1, 2], 1),
    (5, [], None),
])
def test_nearest_unit(target, allowed, expected):
    assert nearest_unit(target, allowed) == expected


def test_canonical_time_measurement():
    assert canonical_time_measurement(" Días ") == TimeMeasurement.DAYS
    assert canonical_time_measurement("weeks") is None
    assert canonical_time_measurement(None) is None


def test_every_error_type_has_a_handler(suggestion_engine):
    assert set(suggestion_engine._handlers) == set(ImportErrorType)


def test_unknown_category_lists_valid_codes(suggestion_engine):
    suggestions = suggestion_engine.suggest(ImportErrorType.PRICE_DEFINITION_NOT_FOUND, row(category_code="Z"))

    assert suggestions == ["Category 'Z' does not exist. Valid: A, B"]


def test_unconfigured_combination_lists_valid_ones(suggestion_engine):
    suggestions = suggestion_engine.suggest(
        ImportErrorType.PRICE_DEFINITION_NOT_FOUND,
        row(rental_location_name="Menorca", rate_type_name="Premium"),
    )

    assert suggestions == [
        "Combination A / Menorca / Premium is not configured",
        "Valid combinations for category A:",
        "  Barcelona / Estándar",
        "  Menorca / Estándar",
    ]


def test_season_on_non_seasonal_definition(suggestion_engine):
    suggestions = suggestion_engine.suggest(
        ImportErrorType.INVALID_SEASON,
        row(category_code="B", rate_type_name="Premium", season_name="Alta"),
    )

    assert suggestions == ["Price definition 'Coches sin temporada' does not use seasons: leave season_name empty"]


def test_unknown_season_lists_the_definition_seasons(suggestion_engine):
    suggestions = suggestion_engine.suggest(ImportErrorType.INVALID_SEASON, row(season_name="Verano"))

    assert suggestions == [
        "Season 'Verano' is not part of Temporadas scooters",
        "Valid seasons (Temporadas scooters): Alta, Baja",
    ]


def test_missing_season_on_seasonal_definition(suggestion_engine):
    suggestions = suggestion_engine.suggest(ImportErrorType.INVALID_SEASON, row(season_name=""))

    assert suggestions[0] == "Price definition 'Scooters por temporada' requires a season"


def test_units_not_allowed_suggests_closest_value(suggestion_engine):
    suggestions = suggestion_engine.suggest(ImportErrorType.UNITS_NOT_ALLOWED, row(units="30"))

    assert suggestions == [
        "Valid units for days in 'Scooters por temporada': 1, 2, 4, 15",
        "Closest allowed value: 15 (instead of 30)",
    ]


def test_units_not_allowed_with_unknown_measurement(suggestion_engine):
    suggestions = suggestion_engine.suggest(ImportErrorType.UNITS_NOT_ALLOWED, row(time_measurement="weeks"))

    assert suggestions == ["Check the permitted units configured for this category"]


def test_missing_field_names_each_empty_field(suggestion_engine):
    suggestions = suggestion_engine.suggest(ImportErrorType.MISSING_REQUIRED_FIELD, row(category_code="", price=""))

    assert "Fill in the required field 'category_code'" in suggestions
    assert "Fill in the required field 'price'" in suggestions
    assert "Valid categories: A, B" in suggestions


def test_price_format_echoes_value(suggestion_engine):
    suggestions = suggestion_engine.suggest(ImportErrorType.INVALID_PRICE_FORMAT, row(price="abc"))

    assert "Check value: 'abc'" in suggestions


def test_unexpected_error_gets_generic_hints(suggestion_engine):
    assert suggestion_engine.suggest(ImportErrorType.UNEXPECTED_ERROR, row()) == GENERIC_SUGGESTIONS


def test_unavailable_reference_data_degrades_to_generic(import_logger):
    store = MagicMock()
    store.read_only.side_effect = RuntimeError("connection refused")
    engine = SuggestionEngine(store, import_logger)

    result = engine.suggest_many([
        (ImportErrorType.UNITS_NOT_ALLOWED, row(units="30")),
        (ImportErrorType.INVALID_SEASON, row()),
    ])

    assert result == [GENERIC_SUGGESTIONS, GENERIC_SUGGESTIONS]


def test_suggest_many_loads_reference_data_once(store, import_logger, catalog, mocker):
    engine = SuggestionEngine(store, import_logger)
    spy = mocker.spy(store, "read_only")

    engine.suggest_many([
        (ImportErrorType.UNITS_NOT_ALLOWED, row(units="30")),
        (ImportErrorType.PRICE_DEFINITION_NOT_FOUND, row(category_code="Z")),
    ])

    assert spy.call_count == 1


def test_get_valid_options(suggestion_engine):
    options = suggestion_engine.get_valid_options()

    assert options["categories"] == [
        {"code": "A", "name": "Scooter 125cc"},
        {"code": "B", "name": "Compact car"},
    ]
    assert options["rental_locations"] == ["Barcelona", "Menorca"]
    assert options["rate_types"] == ["Estándar", "Premium"]
    assert options["seasons"] == {"Temporadas scooters": ["Alta", "Baja"], "Temporadas verano": ["Verano"]}
    assert options["units"]["A"] == {"days": [1, 2, 4, 15], "hours": [1, 2, 4], "minutes": [1], "months": [1]}
    assert options["units"]["B"]["days"] == [1, 2, 3, 7]
    assert options["time_measurements"] == ["days", "hours", "minutes", "months"]


def test_get_valid_combinations(suggestion_engine):
    assert suggestion_engine.get_valid_combinations("B") == [
        {
            "rental_location_name": "Barcelona",
            "rate_type_name": "Premium",
            "price_definition": "Coches sin temporada",
        }
    ]
    assert suggestion_engine.get_valid_combinations("Z") == []

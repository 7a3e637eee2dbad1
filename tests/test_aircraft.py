import pytest

from loadplan.aircraft import (
    AIRCRAFT_3D_MODELS,
    AIRCRAFT_SPECS,
    CARGO_HOLD_SPECS,
    DEFAULT_AIRCRAFT_TYPE,
    get_aircraft_model,
    get_aircraft_spec,
    get_cargo_hold,
    is_known_aircraft_type,
    resolve_aircraft_type,
)


@pytest.mark.parametrize(
    "requested, expected",
    [
        ("Airbus A330-300", "Airbus A330-300"),
        ("  Boeing 737-900ER  ", "Boeing 737-900ER"),
        ("airbus a330-200", "Airbus A330-200"),
        ("Cessna 172", DEFAULT_AIRCRAFT_TYPE),
        ("", DEFAULT_AIRCRAFT_TYPE),
        (None, DEFAULT_AIRCRAFT_TYPE),
    ],
)
def test_resolve_aircraft_type(requested, expected):
    assert resolve_aircraft_type(requested) == expected


def test_lookup_tables_cover_the_same_aircraft():
    assert set(AIRCRAFT_SPECS) == set(CARGO_HOLD_SPECS) == set(AIRCRAFT_3D_MODELS)


def test_unknown_type_falls_back_to_default_tables():
    assert get_aircraft_spec("Cessna 172").aircraft_type == DEFAULT_AIRCRAFT_TYPE
    assert get_cargo_hold("Cessna 172").max_weight == 2000
    assert [s.id for s in get_aircraft_model("Cessna 172").sections] == ["fwd", "aft"]


def test_widebody_models_have_three_sections_in_order():
    for aircraft_type in ("Airbus A330-200", "Airbus A330-300"):
        assert [s.id for s in get_aircraft_model(aircraft_type).sections] == ["fwd", "mid", "aft"]


def test_hold_section_limits_sum_to_hold_capacity():
    for hold in CARGO_HOLD_SPECS.values():
        assert sum(section.max_weight for section in hold.sections) == hold.max_weight


@pytest.mark.parametrize(
    "aircraft_type, expected",
    [
        ("Boeing 737-800", True),
        ("boeing 737-800", True),
        ("  AIRBUS A330-300 ", True),
        ("Cessna 172", False),
        ("", False),
        (None, False),
    ],
)
def test_is_known_aircraft_type_follows_resolution(aircraft_type, expected):
    assert is_known_aircraft_type(aircraft_type) is expected

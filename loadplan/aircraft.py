"""Static aircraft specification tables and aircraft-type resolution.

Every lookup in this module tolerates unknown aircraft types by substituting
:data:`DEFAULT_AIRCRAFT_TYPE`; nothing here raises for an unrecognised key.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .schemas import (
    AircraftModel3D,
    AircraftSpec,
    CargoHoldSpec,
    Dimensions,
    Position,
    Section,
)


DEFAULT_AIRCRAFT_TYPE = "Boeing 737-800"

# Renderer units per metre for hold-section coordinates.
SCALE_FACTOR = 0.4

FWD_COLOR = "#00fff5"
MID_COLOR = "#39ff14"
AFT_COLOR = "#ff00ff"


AIRCRAFT_SPECS: Dict[str, AircraftSpec] = {
    "Boeing 737-800": AircraftSpec(
        aircraft_type="Boeing 737-800",
        max_cargo_weight=2000,
        max_cargo_volume=45,
        max_total_payload=20000,
        max_fuel=21000,
    ),
    "Boeing 737-900ER": AircraftSpec(
        aircraft_type="Boeing 737-900ER",
        max_cargo_weight=2500,
        max_cargo_volume=52,
        max_total_payload=23000,
        max_fuel=24000,
    ),
    "Airbus A330-200": AircraftSpec(
        aircraft_type="Airbus A330-200",
        max_cargo_weight=15000,
        max_cargo_volume=120,
        max_total_payload=45000,
        max_fuel=140000,
    ),
    "Airbus A330-300": AircraftSpec(
        aircraft_type="Airbus A330-300",
        max_cargo_weight=18000,
        max_cargo_volume=140,
        max_total_payload=52000,
        max_fuel=140000,
    ),
}


def _hold_section(section_id: str, name: str, z: float, width: float, height: float, depth: float, max_weight: float) -> Section:
    return Section(
        id=section_id,
        name=name,
        position=Position(0, 0, z),
        dimensions=Dimensions(width, height, depth),
        max_weight=max_weight,
    )


CARGO_HOLD_SPECS: Dict[str, CargoHoldSpec] = {
    "Boeing 737-800": CargoHoldSpec(
        aircraft_type="Boeing 737-800",
        width=3.5,
        height=1.2,
        depth=8.0,
        max_weight=2000,
        sections=(
            _hold_section("fwd", "Forward Hold", 0, 3.5, 1.2, 3.5, 900),
            _hold_section("aft", "Aft Hold", 4.5, 3.5, 1.2, 3.5, 1100),
        ),
    ),
    "Boeing 737-900ER": CargoHoldSpec(
        aircraft_type="Boeing 737-900ER",
        width=3.5,
        height=1.2,
        depth=10.0,
        max_weight=2500,
        sections=(
            _hold_section("fwd", "Forward Hold", 0, 3.5, 1.2, 4.0, 1000),
            _hold_section("aft", "Aft Hold", 5.0, 3.5, 1.2, 5.0, 1500),
        ),
    ),
    "Airbus A330-200": CargoHoldSpec(
        aircraft_type="Airbus A330-200",
        width=5.3,
        height=1.7,
        depth=20.0,
        max_weight=15000,
        sections=(
            _hold_section("fwd", "Forward Hold", 0, 5.3, 1.7, 8.0, 6000),
            _hold_section("mid", "Middle Hold", 8.5, 5.3, 1.7, 5.0, 4000),
            _hold_section("aft", "Aft Hold", 14.0, 5.3, 1.7, 6.0, 5000),
        ),
    ),
    "Airbus A330-300": CargoHoldSpec(
        aircraft_type="Airbus A330-300",
        width=5.3,
        height=1.7,
        depth=24.0,
        max_weight=18000,
        sections=(
            _hold_section("fwd", "Forward Hold", 0, 5.3, 1.7, 9.0, 7000),
            _hold_section("mid", "Middle Hold", 9.5, 5.3, 1.7, 7.0, 5000),
            _hold_section("aft", "Aft Hold", 17.0, 5.3, 1.7, 7.0, 6000),
        ),
    ),
}


AIRCRAFT_3D_MODELS: Dict[str, AircraftModel3D] = {
    "Boeing 737-800": AircraftModel3D(
        aircraft_type="Boeing 737-800",
        fuselage_length=6,
        fuselage_width=2.8,
        fuselage_height=1.6,
        sections=(
            Section("fwd", "Forward Hold", Position(0, -0.4, -1.2), Dimensions(2.4, 0.8, 2.0), 900, FWD_COLOR),
            Section("aft", "Aft Hold", Position(0, -0.4, 1.5), Dimensions(2.4, 0.8, 2.2), 1100, AFT_COLOR),
        ),
    ),
    "Boeing 737-900ER": AircraftModel3D(
        aircraft_type="Boeing 737-900ER",
        fuselage_length=7,
        fuselage_width=2.8,
        fuselage_height=1.6,
        sections=(
            Section("fwd", "Forward Hold", Position(0, -0.4, -1.5), Dimensions(2.4, 0.8, 2.2), 1000, FWD_COLOR),
            Section("aft", "Aft Hold", Position(0, -0.4, 1.8), Dimensions(2.4, 0.8, 2.5), 1500, AFT_COLOR),
        ),
    ),
    "Airbus A330-200": AircraftModel3D(
        aircraft_type="Airbus A330-200",
        fuselage_length=10,
        fuselage_width=4.0,
        fuselage_height=2.0,
        sections=(
            Section("fwd", "Forward Hold", Position(0, -0.5, -3.0), Dimensions(3.5, 1.0, 2.8), 6000, FWD_COLOR),
            Section("mid", "Middle Hold", Position(0, -0.5, 0), Dimensions(3.5, 1.0, 2.4), 4000, MID_COLOR),
            Section("aft", "Aft Hold", Position(0, -0.5, 3.0), Dimensions(3.5, 1.0, 2.8), 5000, AFT_COLOR),
        ),
    ),
    "Airbus A330-300": AircraftModel3D(
        aircraft_type="Airbus A330-300",
        fuselage_length=12,
        fuselage_width=4.0,
        fuselage_height=2.0,
        sections=(
            Section("fwd", "Forward Hold", Position(0, -0.5, -3.5), Dimensions(3.5, 1.0, 3.0), 7000, FWD_COLOR),
            Section("mid", "Middle Hold", Position(0, -0.5, 0), Dimensions(3.5, 1.0, 3.0), 5000, MID_COLOR),
            Section("aft", "Aft Hold", Position(0, -0.5, 3.5), Dimensions(3.5, 1.0, 3.0), 6000, AFT_COLOR),
        ),
    ),
}


def known_aircraft_types() -> List[str]:
    return list(AIRCRAFT_3D_MODELS.keys())


def _match_aircraft_type(aircraft_type: Optional[str]) -> Optional[str]:
    requested = (aircraft_type or "").strip()
    known = known_aircraft_types()
    for candidate in known:
        if candidate == requested:
            return candidate
    lowered = requested.lower()
    for candidate in known:
        if candidate.lower() == lowered:
            return candidate
    return None


def resolve_aircraft_type(aircraft_type: Optional[str]) -> str:
    """Return the registered type name matching ``aircraft_type``.

    Exact match first, then a case-insensitive match, then the default type.
    """

    return _match_aircraft_type(aircraft_type) or DEFAULT_AIRCRAFT_TYPE


def is_known_aircraft_type(aircraft_type: Optional[str]) -> bool:
    """True when ``aircraft_type`` resolves without falling back to the default."""

    return _match_aircraft_type(aircraft_type) is not None


def get_aircraft_spec(aircraft_type: Optional[str]) -> AircraftSpec:
    return AIRCRAFT_SPECS[resolve_aircraft_type(aircraft_type)]


def get_cargo_hold(aircraft_type: Optional[str]) -> CargoHoldSpec:
    return CARGO_HOLD_SPECS[resolve_aircraft_type(aircraft_type)]


def get_aircraft_model(aircraft_type: Optional[str]) -> AircraftModel3D:
    return AIRCRAFT_3D_MODELS[resolve_aircraft_type(aircraft_type)]

"""Per-flight weight analysis and fleet dashboard aggregation.

All functions here are pure so the Streamlit pages only deal with
presentation while the arithmetic stays unit tested.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .aircraft import AIRCRAFT_SPECS, get_aircraft_spec, is_known_aircraft_type, resolve_aircraft_type
from .schemas import (
    AircraftStats,
    DashboardStats,
    FlightLoadSummary,
    FlightRecord,
    RouteStats,
    StatusLevel,
    WeightAnalysis,
)


WARNING_THRESHOLD_PCT = 85.0
DANGER_THRESHOLD_PCT = 100.0

# Average passenger weight including carry-on (IATA standard), kg.
AVG_PASSENGER_WEIGHT = 90.0
DEFAULT_MAX_PAYLOAD = 20000.0

STATUS_FILTERS = ("all", "safe", "warning", "danger")
SORT_FIELDS = ("flight_number", "flight_date", "cargo_weight_utilization", "cargo_volume_utilization")


def classify_utilization(percentage: float) -> StatusLevel:
    """Return the status tier for a utilization percentage.

    Both thresholds are inclusive: exactly 85 % is ``warning`` and exactly
    100 % is ``danger``.
    """

    if percentage >= DANGER_THRESHOLD_PCT:
        return "danger"
    if percentage >= WARNING_THRESHOLD_PCT:
        return "warning"
    return "safe"


def analyze_flight_weight(flight: FlightRecord) -> WeightAnalysis:
    """Compare a flight's cargo against its aircraft limits.

    Unknown aircraft types are measured against the default aircraft so an
    unregistered type can still surface as overweight; ``spec_found`` records
    that the substitution happened.
    """

    resolved_type = resolve_aircraft_type(flight.aircraft_type)
    spec = get_aircraft_spec(resolved_type)

    weight_utilization = flight.gross_weight_cargo_kg / spec.max_cargo_weight * 100
    volume_utilization = flight.gross_volume_cargo_m3 / spec.max_cargo_volume * 100

    cargo_revenue = flight.gross_weight_cargo_kg * flight.cargo_price_per_kg
    fuel_cost = flight.fuel_weight_kg * flight.fuel_price_per_kg

    return WeightAnalysis(
        flight=flight,
        cargo_weight_utilization=weight_utilization,
        cargo_volume_utilization=volume_utilization,
        is_overweight=flight.gross_weight_cargo_kg > spec.max_cargo_weight,
        is_over_volume=flight.gross_volume_cargo_m3 > spec.max_cargo_volume,
        weight_status=classify_utilization(weight_utilization),
        volume_status=classify_utilization(volume_utilization),
        cargo_revenue=cargo_revenue,
        fuel_cost=fuel_cost,
        profit_margin=cargo_revenue - fuel_cost,
        resolved_aircraft_type=resolved_type,
        spec_found=is_known_aircraft_type(flight.aircraft_type),
    )


def analyze_all_flights(flights: Iterable[FlightRecord]) -> List[WeightAnalysis]:
    return [analyze_flight_weight(flight) for flight in flights]


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def _group_in_order(analyses: Iterable[WeightAnalysis], key: Callable[[WeightAnalysis], object]) -> Dict[object, List[WeightAnalysis]]:
    groups: Dict[object, List[WeightAnalysis]] = {}
    for analysis in analyses:
        groups.setdefault(key(analysis), []).append(analysis)
    return groups


def calculate_dashboard_stats(analyses: Sequence[WeightAnalysis]) -> DashboardStats:
    """Fold per-flight analyses into fleet, route and aircraft statistics."""

    total_flights = len(analyses)
    if total_flights == 0:
        return DashboardStats()

    route_groups = _group_in_order(analyses, lambda a: (a.flight.origin, a.flight.destination))
    route_breakdown = []
    for (origin, destination), items in route_groups.items():
        route_breakdown.append(
            RouteStats(
                origin=origin,
                destination=destination,
                flight_count=len(items),
                avg_weight_utilization=_mean([a.cargo_weight_utilization for a in items]),
                overweight_count=sum(1 for a in items if a.is_overweight),
            )
        )

    aircraft_groups = _group_in_order(analyses, lambda a: a.flight.aircraft_type)
    aircraft_breakdown = []
    for aircraft_type, items in aircraft_groups.items():
        aircraft_breakdown.append(
            AircraftStats(
                aircraft_type=str(aircraft_type),
                flight_count=len(items),
                avg_weight_utilization=_mean([a.cargo_weight_utilization for a in items]),
                avg_volume_utilization=_mean([a.cargo_volume_utilization for a in items]),
                overweight_count=sum(1 for a in items if a.is_overweight),
            )
        )

    return DashboardStats(
        total_flights=total_flights,
        overweight_count=sum(1 for a in analyses if a.is_overweight),
        over_volume_count=sum(1 for a in analyses if a.is_over_volume),
        avg_weight_utilization=_mean([a.cargo_weight_utilization for a in analyses]),
        avg_volume_utilization=_mean([a.cargo_volume_utilization for a in analyses]),
        total_cargo_revenue=sum(a.cargo_revenue for a in analyses),
        total_fuel_cost=sum(a.fuel_cost for a in analyses),
        route_breakdown=route_breakdown,
        aircraft_breakdown=aircraft_breakdown,
    )


def find_overweight_alerts(analyses: Iterable[WeightAnalysis]) -> List[WeightAnalysis]:
    """Flights over weight or volume, heaviest utilization first."""

    flagged = [a for a in analyses if a.is_overweight or a.is_over_volume]
    return sorted(flagged, key=lambda a: a.cargo_weight_utilization, reverse=True)


def filter_analyses(
    analyses: Iterable[WeightAnalysis],
    *,
    search: str = "",
    status: str = "all",
) -> List[WeightAnalysis]:
    term = (search or "").strip().lower()
    if status not in STATUS_FILTERS:
        raise ValueError(f"Unknown status filter: {status!r}")

    results = []
    for analysis in analyses:
        flight = analysis.flight
        if term and not (
            term in flight.flight_number.lower()
            or term in flight.origin.lower()
            or term in flight.destination.lower()
        ):
            continue
        if status != "all" and status not in (analysis.weight_status, analysis.volume_status):
            continue
        results.append(analysis)
    return results


def _parse_date(value: str) -> Optional[pd.Timestamp]:
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed


def sort_analyses(
    analyses: Iterable[WeightAnalysis],
    *,
    field: str = "flight_date",
    descending: bool = True,
) -> List[WeightAnalysis]:
    """Sort analyses the way the flight table does; unparseable dates sort last."""

    items = list(analyses)
    if field == "flight_number":
        return sorted(items, key=lambda a: a.flight.flight_number, reverse=descending)
    if field == "flight_date":
        keyed = [(_parse_date(a.flight.flight_date), a) for a in items]
        dated = [(stamp, a) for stamp, a in keyed if stamp is not None]
        undated = [a for stamp, a in keyed if stamp is None]
        dated.sort(key=lambda pair: pair[0], reverse=descending)
        return [a for _, a in dated] + undated
    if field == "cargo_weight_utilization":
        return sorted(items, key=lambda a: a.cargo_weight_utilization, reverse=descending)
    if field == "cargo_volume_utilization":
        return sorted(items, key=lambda a: a.cargo_volume_utilization, reverse=descending)
    raise ValueError(f"Unknown sort field: {field!r}")


def summarize_flight_load(flight: FlightRecord, cargo_weight: Optional[float] = None) -> FlightLoadSummary:
    """Passenger, baggage and fuel load plus cargo profitability for one flight.

    ``cargo_weight`` defaults to the flight's gross cargo weight.
    """

    cargo = flight.gross_weight_cargo_kg if cargo_weight is None else float(cargo_weight)
    spec = AIRCRAFT_SPECS.get(flight.aircraft_type)
    max_payload = spec.max_total_payload if spec else DEFAULT_MAX_PAYLOAD

    passenger_weight = flight.passenger_count * AVG_PASSENGER_WEIGHT
    baggage_weight = flight.baggage_weight_kg
    fuel_weight = flight.fuel_weight_kg
    available = max(0.0, max_payload - passenger_weight - baggage_weight)

    fuel_cost = fuel_weight * flight.fuel_price_per_kg
    cargo_revenue = cargo * flight.cargo_price_per_kg
    break_even = fuel_cost / flight.cargo_price_per_kg if flight.cargo_price_per_kg else None

    if available > 0:
        utilization = cargo / available * 100
    else:
        utilization = 0.0 if cargo == 0 else float("inf")

    return FlightLoadSummary(
        passenger_weight=passenger_weight,
        baggage_weight=baggage_weight,
        fuel_weight=fuel_weight,
        fixed_load=passenger_weight + baggage_weight + fuel_weight,
        available_for_cargo=available,
        cargo_weight=cargo,
        fuel_cost=fuel_cost,
        cargo_revenue=cargo_revenue,
        profit_loss=cargo_revenue - fuel_cost,
        break_even_cargo=break_even,
        cargo_utilization=utilization,
        is_overweight=cargo > available,
    )


def analyses_to_frame(analyses: Iterable[WeightAnalysis]) -> pd.DataFrame:
    rows = []
    for analysis in analyses:
        flight = analysis.flight
        rows.append(
            {
                "Flight": flight.flight_number,
                "Date": flight.flight_date,
                "Route": flight.route,
                "Aircraft": flight.aircraft_type,
                "Tail": flight.tail_number,
                "Cargo (kg)": flight.gross_weight_cargo_kg,
                "Weight %": round(analysis.cargo_weight_utilization, 1),
                "Weight Status": analysis.weight_status,
                "Cargo (m³)": flight.gross_volume_cargo_m3,
                "Volume %": round(analysis.cargo_volume_utilization, 1),
                "Volume Status": analysis.volume_status,
                "Revenue": round(analysis.cargo_revenue, 2),
                "Fuel Cost": round(analysis.fuel_cost, 2),
                "Margin": round(analysis.profit_margin, 2),
            }
        )
    return pd.DataFrame(rows)

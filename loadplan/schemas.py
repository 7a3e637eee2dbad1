"""Shared dataclasses for the cargo load planning tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

StatusLevel = Literal["safe", "warning", "danger"]

OVERFLOW_SECTION = "overflow"


def format_number(value: float) -> Any:
    """Return ``value`` as an ``int`` when it has no fractional part."""

    number = float(value)
    if number.is_integer():
        return int(number)
    return round(number, 2)


@dataclass(frozen=True)
class FlightRecord:
    """One row of the uploaded flight CSV."""

    flight_number: str = ""
    flight_date: str = ""
    origin: str = ""
    destination: str = ""
    tail_number: str = ""
    aircraft_type: str = ""
    gross_weight_cargo_kg: float = 0.0
    gross_volume_cargo_m3: float = 0.0
    passenger_count: int = 0
    baggage_weight_kg: float = 0.0
    fuel_weight_kg: float = 0.0
    fuel_price_per_kg: float = 0.0
    cargo_price_per_kg: float = 0.0

    @property
    def route(self) -> str:
        return f"{self.origin}-{self.destination}"

    def as_dict(self) -> Dict[str, object]:
        return {
            "flight_number": self.flight_number,
            "flight_date": self.flight_date,
            "origin": self.origin,
            "destination": self.destination,
            "tail_number": self.tail_number,
            "aircraft_type": self.aircraft_type,
            "gross_weight_cargo_kg": self.gross_weight_cargo_kg,
            "gross_volume_cargo_m3": self.gross_volume_cargo_m3,
            "passenger_count": self.passenger_count,
            "baggage_weight_kg": self.baggage_weight_kg,
            "fuel_weight_kg": self.fuel_weight_kg,
            "fuel_price_per_kg": self.fuel_price_per_kg,
            "cargo_price_per_kg": self.cargo_price_per_kg,
        }


@dataclass(frozen=True)
class AircraftSpec:
    """Payload limits for one aircraft type."""

    aircraft_type: str
    max_cargo_weight: float
    max_cargo_volume: float
    max_total_payload: float
    max_fuel: float


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}


@dataclass(frozen=True)
class Dimensions:
    width: float
    height: float
    depth: float

    @property
    def volume(self) -> float:
        return self.width * self.height * self.depth

    def as_dict(self) -> Dict[str, float]:
        return {"width": self.width, "height": self.height, "depth": self.depth}


@dataclass(frozen=True)
class Section:
    """A compartment of an aircraft's belly hold.

    Sections are stored in the order containers are distributed over them.
    """

    id: str
    name: str
    position: Position
    dimensions: Dimensions
    max_weight: float
    color: str = ""

    def as_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position.as_dict(),
            "dimensions": self.dimensions.as_dict(),
            "maxWeight": self.max_weight,
        }


@dataclass(frozen=True)
class CargoHoldSpec:
    """Hold envelope and capacity, in hold-frame metres."""

    aircraft_type: str
    width: float
    height: float
    depth: float
    max_weight: float
    sections: Tuple[Section, ...] = ()

    @property
    def volume(self) -> float:
        return self.width * self.height * self.depth

    def as_dict(self) -> Dict[str, object]:
        return {
            "aircraftType": self.aircraft_type,
            "width": self.width,
            "height": self.height,
            "depth": self.depth,
            "maxWeight": self.max_weight,
            "sections": [section.as_dict() for section in self.sections],
        }


@dataclass(frozen=True)
class AircraftModel3D:
    """Renderer-frame layout of the hold used for the 3D view and grid placement."""

    aircraft_type: str
    fuselage_length: float
    fuselage_width: float
    fuselage_height: float
    sections: Tuple[Section, ...] = ()


@dataclass(frozen=True)
class Container:
    """A unit of cargo (ULD, pallet or bulk) waiting to be placed."""

    id: str
    name: str
    weight: float
    volume: float
    width: float
    height: float
    depth: float
    color: Optional[str] = None
    type_id: Optional[str] = None

    def as_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "id": self.id,
            "name": self.name,
            "weight": self.weight,
            "volume": self.volume,
            "width": self.width,
            "height": self.height,
            "depth": self.depth,
        }
        if self.color is not None:
            payload["color"] = self.color
        if self.type_id is not None:
            payload["typeId"] = self.type_id
        return payload


@dataclass(frozen=True)
class PlacedContainer:
    """A container together with the slot it was assigned to."""

    container: Container
    section: str
    placed: bool
    position: Position = field(default_factory=Position)

    @property
    def id(self) -> str:
        return self.container.id

    @property
    def weight(self) -> float:
        return self.container.weight

    def as_dict(self) -> Dict[str, object]:
        payload = self.container.as_dict()
        payload.update(
            {
                "section": self.section,
                "placed": self.placed,
                "position": self.position.as_dict(),
            }
        )
        return payload


@dataclass
class PlacementResult:
    """Output of a placement run, grid or AI."""

    containers: List[PlacedContainer]
    balance_score: int
    forward_weight: float
    aft_weight: float
    suggestions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    aircraft_type: Optional[str] = None
    max_capacity: Optional[float] = None
    source: str = "grid"

    @property
    def placed_containers(self) -> List[PlacedContainer]:
        return [item for item in self.containers if item.placed]

    @property
    def unplaced_containers(self) -> List[PlacedContainer]:
        return [item for item in self.containers if not item.placed]

    @property
    def total_placed_weight(self) -> float:
        return sum(item.weight for item in self.placed_containers)

    def as_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "containers": [item.as_dict() for item in self.containers],
            "balanceScore": self.balance_score,
            "forwardWeight": self.forward_weight,
            "aftWeight": self.aft_weight,
            "suggestions": list(self.suggestions),
            "warnings": list(self.warnings),
        }
        if self.aircraft_type is not None:
            payload["aircraftType"] = self.aircraft_type
        if self.max_capacity is not None:
            payload["maxCapacity"] = self.max_capacity
        return payload


@dataclass(frozen=True)
class WeightAnalysis:
    """Utilization and profitability summary for one flight."""

    flight: FlightRecord
    cargo_weight_utilization: float
    cargo_volume_utilization: float
    is_overweight: bool
    is_over_volume: bool
    weight_status: StatusLevel
    volume_status: StatusLevel
    cargo_revenue: float
    fuel_cost: float
    profit_margin: float
    resolved_aircraft_type: str = ""
    spec_found: bool = True

    def as_dict(self) -> Dict[str, object]:
        return {
            "flight": self.flight.as_dict(),
            "cargoWeightUtilization": self.cargo_weight_utilization,
            "cargoVolumeUtilization": self.cargo_volume_utilization,
            "isOverweight": self.is_overweight,
            "isOverVolume": self.is_over_volume,
            "weightStatus": self.weight_status,
            "volumeStatus": self.volume_status,
            "cargoRevenue": self.cargo_revenue,
            "fuelCost": self.fuel_cost,
            "profitMargin": self.profit_margin,
            "resolvedAircraftType": self.resolved_aircraft_type,
            "specFound": self.spec_found,
        }


@dataclass(frozen=True)
class RouteStats:
    origin: str
    destination: str
    flight_count: int
    avg_weight_utilization: float
    overweight_count: int

    def as_dict(self) -> Dict[str, object]:
        return {
            "origin": self.origin,
            "destination": self.destination,
            "flightCount": self.flight_count,
            "avgWeightUtilization": self.avg_weight_utilization,
            "overweightCount": self.overweight_count,
        }


@dataclass(frozen=True)
class AircraftStats:
    aircraft_type: str
    flight_count: int
    avg_weight_utilization: float
    avg_volume_utilization: float
    overweight_count: int

    def as_dict(self) -> Dict[str, object]:
        return {
            "aircraftType": self.aircraft_type,
            "flightCount": self.flight_count,
            "avgWeightUtilization": self.avg_weight_utilization,
            "avgVolumeUtilization": self.avg_volume_utilization,
            "overweightCount": self.overweight_count,
        }


@dataclass(frozen=True)
class DashboardStats:
    """Fleet-wide statistics shown on the dashboard."""

    total_flights: int = 0
    overweight_count: int = 0
    over_volume_count: int = 0
    avg_weight_utilization: float = 0.0
    avg_volume_utilization: float = 0.0
    total_cargo_revenue: float = 0.0
    total_fuel_cost: float = 0.0
    route_breakdown: List[RouteStats] = field(default_factory=list)
    aircraft_breakdown: List[AircraftStats] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {
            "totalFlights": self.total_flights,
            "overweightCount": self.overweight_count,
            "overVolumeCount": self.over_volume_count,
            "avgWeightUtilization": self.avg_weight_utilization,
            "avgVolumeUtilization": self.avg_volume_utilization,
            "totalCargoRevenue": self.total_cargo_revenue,
            "totalFuelCost": self.total_fuel_cost,
            "routeBreakdown": [item.as_dict() for item in self.route_breakdown],
            "aircraftBreakdown": [item.as_dict() for item in self.aircraft_breakdown],
        }


@dataclass(frozen=True)
class FlightLoadSummary:
    """Fixed load, cargo capacity and break-even figures for a single flight."""

    passenger_weight: float
    baggage_weight: float
    fuel_weight: float
    fixed_load: float
    available_for_cargo: float
    cargo_weight: float
    fuel_cost: float
    cargo_revenue: float
    profit_loss: float
    break_even_cargo: Optional[float]
    cargo_utilization: float
    is_overweight: bool

    @property
    def is_profitable(self) -> bool:
        return self.profit_loss >= 0

    @property
    def above_break_even(self) -> bool:
        if self.break_even_cargo is None:
            return False
        return self.cargo_weight >= self.break_even_cargo


@dataclass(frozen=True)
class AnalysisRequest:
    """Flight summary sent to the analysis adapter."""

    flight_number: str
    aircraft_type: str
    cargo_weight: float = 0.0
    cargo_volume: float = 0.0
    passenger_count: int = 0
    baggage_weight: float = 0.0
    origin: str = ""
    destination: str = ""

    @classmethod
    def from_flight(cls, flight: FlightRecord) -> "AnalysisRequest":
        return cls(
            flight_number=flight.flight_number,
            aircraft_type=flight.aircraft_type,
            cargo_weight=flight.gross_weight_cargo_kg,
            cargo_volume=flight.gross_volume_cargo_m3,
            passenger_count=flight.passenger_count,
            baggage_weight=flight.baggage_weight_kg,
            origin=flight.origin,
            destination=flight.destination,
        )


@dataclass(frozen=True)
class Efficiency:
    current: float
    optimized: float
    improvement: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "current": self.current,
            "optimized": self.optimized,
            "improvement": self.improvement,
        }


@dataclass
class AnalysisPlacement:
    flight_number: str
    aircraft_type: str
    containers: List[PlacedContainer]
    total_weight: float
    total_volume: float
    weight_utilization: float
    volume_utilization: float
    balance_score: int
    suggestions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {
            "flightNumber": self.flight_number,
            "aircraftType": self.aircraft_type,
            "containers": [item.as_dict() for item in self.containers],
            "totalWeight": self.total_weight,
            "totalVolume": self.total_volume,
            "weightUtilization": self.weight_utilization,
            "volumeUtilization": self.volume_utilization,
            "balanceScore": self.balance_score,
            "suggestions": list(self.suggestions),
            "warnings": list(self.warnings),
        }


@dataclass
class AnalysisResult:
    """Response of the cargo analysis panel, AI-backed or fallback."""

    placement: AnalysisPlacement
    analysis: str
    recommendations: List[str]
    efficiency: Efficiency
    source: str = "fallback"

    def as_dict(self) -> Dict[str, object]:
        return {
            "placement": self.placement.as_dict(),
            "analysis": self.analysis,
            "recommendations": list(self.recommendations),
            "efficiency": self.efficiency.as_dict(),
        }

"""Cargo load planning package."""

from .aircraft import get_aircraft_model, get_aircraft_spec, get_cargo_hold, resolve_aircraft_type
from .analysis import analyze_all_flights, analyze_flight_weight, calculate_dashboard_stats
from .csv_loader import CsvUploadError, load_flights_from_upload, parse_flights_csv
from .engine import PlacementRequest, analyze_cargo, build_export_document, place_cargo
from .placement import auto_generate_containers, build_container, generate_grid_placement
from .schemas import Container, FlightRecord, PlacedContainer, PlacementResult, WeightAnalysis

__all__ = [
    "Container",
    "CsvUploadError",
    "FlightRecord",
    "PlacedContainer",
    "PlacementRequest",
    "PlacementResult",
    "WeightAnalysis",
    "analyze_all_flights",
    "analyze_cargo",
    "analyze_flight_weight",
    "auto_generate_containers",
    "build_container",
    "build_export_document",
    "calculate_dashboard_stats",
    "generate_grid_placement",
    "get_aircraft_model",
    "get_aircraft_spec",
    "get_cargo_hold",
    "load_flights_from_upload",
    "parse_flights_csv",
    "place_cargo",
    "resolve_aircraft_type",
]

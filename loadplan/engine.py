"""Request orchestration: AI first when enabled, deterministic fallback otherwise."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import anthropic

from .ai_adapter import (
    AiAnalysisReply,
    LlmApiConfig,
    analyze_with_ai,
    build_analysis_result,
    fallback_analysis,
    place_with_ai,
)
from .placement import generate_grid_placement
from .schemas import AnalysisRequest, AnalysisResult, Container, Efficiency, PlacementResult


logger = logging.getLogger(__name__)

OPTIMIZED_EFFICIENCY_PCT = 90
EFFICIENCY_IMPROVEMENT_PCT = 15


@dataclass
class PlacementRequest:
    flight_number: str
    aircraft_type: str
    containers: List[Container] = field(default_factory=list)


def place_cargo(
    request: PlacementRequest,
    *,
    config: Optional[LlmApiConfig] = None,
    client: Optional[anthropic.Anthropic] = None,
) -> PlacementResult:
    """Place a flight's containers.

    The AI collaborator is only consulted when the config enables it; any
    ``None`` from it falls through to the grid placement.
    """

    if config is not None and config.enable_ai_placement:
        result = place_with_ai(request.containers, request.aircraft_type, config, client=client)
        if result is not None:
            return result
        logger.info("Falling back to grid placement for %s", request.flight_number)

    return generate_grid_placement(request.containers, request.aircraft_type)


def analyze_cargo(
    request: AnalysisRequest,
    *,
    config: Optional[LlmApiConfig] = None,
    client: Optional[anthropic.Anthropic] = None,
) -> AnalysisResult:
    if config is not None:
        result = analyze_with_ai(request, config, client=client)
        if result is not None:
            return result

    reply: AiAnalysisReply = fallback_analysis(request)
    return build_analysis_result(request, reply, source="fallback")


def compute_efficiency(placement: PlacementResult, capacity: float) -> Efficiency:
    current = placement.total_placed_weight / capacity * 100 if capacity else 0.0
    return Efficiency(
        current=current,
        optimized=OPTIMIZED_EFFICIENCY_PCT,
        improvement=EFFICIENCY_IMPROVEMENT_PCT,
    )


def _epoch_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def build_export_document(
    flight: Dict[str, Any],
    placement: PlacementResult,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """The downloadable loading plan: flight, placement and export timestamp."""

    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return {
        "flight": dict(flight),
        "placement": placement.as_dict(),
        "exportedAt": moment.isoformat(),
    }


def export_filename(flight_number: str, now: Optional[datetime] = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return f"loading-plan-{flight_number}-{_epoch_millis(moment)}.json"

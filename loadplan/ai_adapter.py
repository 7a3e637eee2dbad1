"""Optional hosted-LLM collaborator for cargo placement and analysis.

The model is asked for JSON; its reply is validated into typed records and
any failure (no key, transport error, no JSON, wrong shape) surfaces as
``None`` so callers fall back to the deterministic grid placement or the
static analysis.
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar, Union

import anthropic
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, ValidationError

from .aircraft import get_aircraft_model, get_cargo_hold
from .placement import CONTAINER_TYPES
from .schemas import (
    AircraftModel3D,
    AnalysisPlacement,
    AnalysisRequest,
    AnalysisResult,
    CargoHoldSpec,
    Container,
    Efficiency,
    PlacedContainer,
    PlacementResult,
    Position,
)


logger = logging.getLogger(__name__)

DEFAULT_LLM_MODEL = "claude-sonnet-4-20250514"


class LlmUnavailableError(RuntimeError):
    """Raised when the hosted model cannot be reached or returns no text."""


class AiResponseError(ValueError):
    """Raised when a model reply holds no usable, well-formed JSON."""


@dataclass(frozen=True)
class LlmApiConfig:
    """Configuration for the hosted Messages API client."""

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = DEFAULT_LLM_MODEL
    placement_max_tokens: int = 2048
    analysis_max_tokens: int = 4096
    timeout: int = 60
    max_retries: int = 2
    enable_ai_placement: bool = False

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_client(self) -> anthropic.Anthropic:
        return anthropic.Anthropic(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=self.max_retries,
        )


def build_llm_config(
    settings: Optional[Mapping[str, Any]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> LlmApiConfig:
    """Build a config from a secrets table, falling back to environment variables."""

    settings = dict(settings or {})
    env = os.environ if environ is None else environ

    def _coerce_bool(value: Any, default: bool) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return default

    def _coerce_int(value: Any, default: int) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    api_key = settings.get("api_key") or env.get("ANTHROPIC_API_KEY")
    enable_placement = settings.get("enable_ai_placement")
    if enable_placement is None:
        enable_placement = env.get("SKYLOAD_ENABLE_AI_PLACEMENT")
    base_url = settings.get("base_url")

    return LlmApiConfig(
        api_key=str(api_key) if api_key else None,
        base_url=str(base_url) if base_url else None,
        model=str(settings.get("model") or env.get("SKYLOAD_LLM_MODEL") or DEFAULT_LLM_MODEL),
        placement_max_tokens=_coerce_int(settings.get("placement_max_tokens"), 2048),
        analysis_max_tokens=_coerce_int(settings.get("analysis_max_tokens"), 4096),
        timeout=_coerce_int(settings.get("timeout"), 60),
        max_retries=_coerce_int(settings.get("max_retries"), 2),
        enable_ai_placement=_coerce_bool(enable_placement, False),
    )


def request_completion(
    config: LlmApiConfig,
    *,
    system: str,
    user: str,
    max_tokens: int,
    client: Optional[anthropic.Anthropic] = None,
) -> str:
    """Send one Messages API request and return the first text block."""

    if not config.is_configured:
        raise LlmUnavailableError("No API key configured")

    llm = client or config.build_client()
    try:
        message = llm.messages.create(
            model=config.model,
            max_tokens=max_tokens,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
    except anthropic.APIError as exc:
        raise LlmUnavailableError(f"LLM request failed: {exc}") from exc
    finally:
        if client is None:
            llm.close()

    for block in message.content or []:
        if getattr(block, "type", None) == "text":
            return str(block.text or "")
    raise LlmUnavailableError("No text response from model")


def extract_json_object(text: str) -> Dict[str, Any]:
    """Return the first well-formed JSON object embedded in ``text``."""

    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    raise AiResponseError("No JSON object found in model reply")


# --------------------------------------------------------------------------
# Reply contracts
# --------------------------------------------------------------------------

# Strict types so a string "85" or a JSON ``true`` is rejected, not coerced.
ReplyNumber = Union[StrictInt, StrictFloat]
ReplyId = Union[StrictStr, StrictInt]


class _ReplyModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)


class ReplyPosition(_ReplyModel):
    x: Optional[ReplyNumber] = None
    y: Optional[ReplyNumber] = None
    z: Optional[ReplyNumber] = None

    def to_position(self) -> Position:
        return Position(float(self.x or 0.0), float(self.y or 0.0), float(self.z or 0.0))


class _PlacedEntry(_ReplyModel):
    placed: Any = None

    @property
    def is_placed(self) -> bool:
        # Anything other than an explicit ``false`` counts as placed.
        return self.placed is not False


class ReplyPlacement(_PlacedEntry):
    container_id: Optional[ReplyId] = Field(default=None, alias="containerId")
    section: Optional[StrictStr] = None
    position: Optional[ReplyPosition] = None


class PlacementReplyModel(_ReplyModel):
    """Wire shape of the placement reply."""

    placements: Optional[List[ReplyPlacement]] = None
    balance_score: Optional[ReplyNumber] = Field(default=None, alias="balanceScore")
    forward_weight: Optional[ReplyNumber] = Field(default=None, alias="forwardWeight")
    aft_weight: Optional[ReplyNumber] = Field(default=None, alias="aftWeight")
    suggestions: Optional[List[StrictStr]] = None
    warnings: Optional[List[StrictStr]] = None


class ReplyContainer(_PlacedEntry):
    id: Optional[ReplyId] = None
    name: Optional[StrictStr] = None
    weight: Optional[ReplyNumber] = None
    volume: Optional[ReplyNumber] = None
    width: Optional[ReplyNumber] = None
    height: Optional[ReplyNumber] = None
    depth: Optional[ReplyNumber] = None
    section: Optional[StrictStr] = None
    position: Optional[ReplyPosition] = None


class ReplyEfficiency(_ReplyModel):
    current: Optional[ReplyNumber] = None
    optimized: Optional[ReplyNumber] = None
    improvement: Optional[ReplyNumber] = None


class AnalysisReplyModel(_ReplyModel):
    """Wire shape of the analysis reply."""

    containers: Optional[List[ReplyContainer]] = None
    balance_score: Optional[ReplyNumber] = Field(default=None, alias="balanceScore")
    suggestions: Optional[List[StrictStr]] = None
    warnings: Optional[List[StrictStr]] = None
    analysis: Optional[StrictStr] = None
    recommendations: Optional[List[StrictStr]] = None
    efficiency: Optional[ReplyEfficiency] = None


ReplyModelT = TypeVar("ReplyModelT", bound=_ReplyModel)


def _validate_reply(model_cls: Type[ReplyModelT], payload: Any) -> ReplyModelT:
    try:
        return model_cls.model_validate(payload)
    except ValidationError as exc:
        raise AiResponseError(f"Malformed {model_cls.__name__}: {exc}") from exc


def _float_or_none(value: Optional[float]) -> Optional[float]:
    return None if value is None else float(value)


@dataclass(frozen=True)
class AiPlacement:
    container_id: Optional[str]
    section: Optional[str]
    placed: bool
    position: Optional[Position]


@dataclass
class AiPlacementReply:
    placements: List[AiPlacement] = field(default_factory=list)
    balance_score: Optional[float] = None
    forward_weight: Optional[float] = None
    aft_weight: Optional[float] = None
    suggestions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def parse_placement_reply(payload: Mapping[str, Any]) -> AiPlacementReply:
    reply = _validate_reply(PlacementReplyModel, payload)

    placements = [
        AiPlacement(
            container_id=None if entry.container_id is None else str(entry.container_id),
            section=entry.section,
            placed=entry.is_placed,
            position=entry.position.to_position() if entry.position is not None else None,
        )
        for entry in reply.placements or []
    ]
    return AiPlacementReply(
        placements=placements,
        balance_score=_float_or_none(reply.balance_score),
        forward_weight=_float_or_none(reply.forward_weight),
        aft_weight=_float_or_none(reply.aft_weight),
        suggestions=list(reply.suggestions or []),
        warnings=list(reply.warnings or []),
    )


@dataclass
class AiAnalysisReply:
    containers: List[PlacedContainer] = field(default_factory=list)
    balance_score: Optional[float] = None
    suggestions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    analysis: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)
    efficiency: Optional[Efficiency] = None


def parse_analysis_reply(payload: Mapping[str, Any], model: AircraftModel3D) -> AiAnalysisReply:
    """Validate an analysis reply; missing container fields take display defaults."""

    reply = _validate_reply(AnalysisReplyModel, payload)

    sections = model.sections
    containers: List[PlacedContainer] = []
    for index, entry in enumerate(reply.containers or []):
        container = Container(
            id=str(entry.id) if entry.id not in (None, "") else f"CNT-{index + 1:03d}",
            name=entry.name or f"Container #{index + 1}",
            weight=entry.weight or 500,
            volume=entry.volume or 3,
            width=entry.width or 1.2,
            height=entry.height or 0.85,
            depth=entry.depth or 1.2,
        )
        if entry.position is not None:
            position = entry.position.to_position()
        else:
            position = Position(0, -0.3, sections[index % len(sections)].position.z)
        containers.append(
            PlacedContainer(
                container=container,
                section=entry.section or "fwd",
                placed=entry.is_placed,
                position=position,
            )
        )

    efficiency = None
    if reply.efficiency is not None:
        efficiency = Efficiency(
            current=float(reply.efficiency.current or 0.0),
            optimized=float(reply.efficiency.optimized or 0.0),
            improvement=float(reply.efficiency.improvement or 0.0),
        )

    return AiAnalysisReply(
        containers=containers,
        balance_score=_float_or_none(reply.balance_score),
        suggestions=list(reply.suggestions or []),
        warnings=list(reply.warnings or []),
        analysis=reply.analysis,
        recommendations=list(reply.recommendations or []),
        efficiency=efficiency,
    )


# --------------------------------------------------------------------------
# Placement
# --------------------------------------------------------------------------

def merge_ai_placements(
    containers: Sequence[Container],
    reply: AiPlacementReply,
    capacity: float,
) -> List[PlacedContainer]:
    """Attach the model's placements to the input containers.

    Matches by container id first, then by list position. Containers the
    model skipped still appear, placed only if the whole load fits.
    """

    total_weight = sum(container.weight for container in containers)
    by_id = {}
    for placement in reply.placements:
        if placement.container_id is not None and placement.container_id not in by_id:
            by_id[placement.container_id] = placement

    merged: List[PlacedContainer] = []
    for index, container in enumerate(containers):
        placement = by_id.get(container.id)
        if placement is None and index < len(reply.placements):
            placement = reply.placements[index]

        if placement is not None:
            merged.append(
                PlacedContainer(
                    container=container,
                    section=placement.section or "fwd",
                    placed=placement.placed,
                    position=placement.position or Position(0, 0.2, 0),
                )
            )
            continue

        merged.append(
            PlacedContainer(
                container=container,
                section="fwd",
                placed=total_weight <= capacity,
                position=Position(-0.3 if index % 2 == 0 else 0.3, 0.2, -1.5 + index * 0.5),
            )
        )
    return merged


def build_placement_prompts(
    containers: Sequence[Container],
    aircraft_type: str,
    hold: CargoHoldSpec,
    model: AircraftModel3D,
) -> Tuple[str, str]:
    section_info = [section.as_dict() for section in model.sections]
    container_list = [
        {"index": index, "id": c.id, "name": c.name, "weight": c.weight, "volume": c.volume}
        for index, c in enumerate(containers)
    ]
    total_weight = sum(c.weight for c in containers)
    has_capacity = total_weight <= hold.max_weight

    if has_capacity:
        placed_rule = "ALL containers should fit - mark ALL as placed:true"
    else:
        placed_rule = "Mark containers that fit as placed:true, overflow as placed:false"

    system = f"""You are an expert cargo loading AI. Place containers into aircraft cargo hold.

Aircraft: {aircraft_type}
Total Cargo Hold Capacity: {hold.max_weight}kg
Total Containers Weight: {total_weight}kg
Fits in hold: {"YES" if has_capacity else "NO - some will overflow"}

Cargo Sections:
{json.dumps(section_info, indent=2)}

Containers to place (use EXACT IDs from this list):
{json.dumps(container_list, indent=2)}

IMPORTANT RULES:
1. Use the EXACT container IDs from the list above
2. {placed_rule}
3. Distribute weight evenly between sections
4. Position containers at different x/z coordinates within each section

Respond with ONLY valid JSON:
{{
  "placements": [
    {{"containerId": "exact-id-from-list", "section": "fwd", "placed": true, "position": {{"x": -0.3, "y": 0.2, "z": -1.5}}}}
  ],
  "balanceScore": 85,
  "forwardWeight": 2500,
  "aftWeight": 2300,
  "suggestions": ["Suggestion"],
  "warnings": []
}}"""

    user = (
        f"Place these containers. Total weight {total_weight}kg fits in {hold.max_weight}kg capacity.\n"
        "Return JSON with placements array using the exact container IDs provided."
    )
    return system, user


def place_with_ai(
    containers: Sequence[Container],
    aircraft_type: str,
    config: LlmApiConfig,
    *,
    client: Optional[anthropic.Anthropic] = None,
) -> Optional[PlacementResult]:
    """Ask the model for a placement; ``None`` means use the grid fallback."""

    if not config.is_configured:
        logger.info("No LLM API key configured; skipping AI placement")
        return None

    hold = get_cargo_hold(aircraft_type)
    model = get_aircraft_model(aircraft_type)
    system, user = build_placement_prompts(containers, aircraft_type, hold, model)

    try:
        text = request_completion(
            config,
            system=system,
            user=user,
            max_tokens=config.placement_max_tokens,
            client=client,
        )
        reply = parse_placement_reply(extract_json_object(text))
    except (LlmUnavailableError, AiResponseError) as exc:
        logger.warning("AI placement failed, using grid fallback: %s", exc)
        return None

    merged = merge_ai_placements(containers, reply, hold.max_weight)
    placed_count = sum(1 for item in merged if item.placed)
    total_weight = sum(c.weight for c in containers)
    logger.debug("AI placement result placed=%d total=%d", placed_count, len(merged))

    if placed_count == 0 and total_weight <= hold.max_weight:
        logger.warning("AI placed nothing although the load fits; using grid fallback")
        return None

    return PlacementResult(
        containers=merged,
        balance_score=int(reply.balance_score or 70),
        forward_weight=reply.forward_weight or 0,
        aft_weight=reply.aft_weight or 0,
        suggestions=reply.suggestions,
        warnings=reply.warnings,
        aircraft_type=hold.aircraft_type,
        max_capacity=hold.max_weight,
        source="ai",
    )


# --------------------------------------------------------------------------
# Analysis
# --------------------------------------------------------------------------

def _uld_reference() -> List[Dict[str, object]]:
    return [
        {
            "id": item.id,
            "name": item.name,
            "weight": 0,
            "volume": item.volume,
            "width": item.width,
            "height": item.height,
            "depth": item.depth,
            "color": item.color,
        }
        for key, item in CONTAINER_TYPES.items()
        if key != "BULK"
    ]


def build_analysis_prompts(
    request: AnalysisRequest,
    hold: CargoHoldSpec,
    model: AircraftModel3D,
) -> Tuple[str, str]:
    section_info = [section.as_dict() for section in model.sections]
    container_range = "8-12" if len(model.sections) >= 3 else "4-8"

    system = f"""You are an expert cargo loading optimization AI for aircraft. Analyze flight cargo data and provide cargo placement suggestions with 3D coordinates.

ULD container types:
{json.dumps(_uld_reference(), indent=2)}

Cargo hold specification for {request.aircraft_type}:
{json.dumps(hold.as_dict(), indent=2)}

3D section positions:
{json.dumps(section_info, indent=2)}

POSITIONING RULES:
- Use the section positions above for z coordinates
- Y position should be around -0.3 (cargo hold floor level)
- Spread containers across x within each section

When analyzing cargo placement:
1. Split the total cargo weight into {container_range} realistic ULD containers
2. Each container should be 400-2500kg depending on type
3. Distribute containers across ALL sections for balance
4. Mark containers as "placed": true if they fit, "placed": false if overflow

Respond with a JSON object with keys "containers" (id, name, weight, volume, width, height, depth, section, placed, position), "balanceScore", "suggestions", "warnings", "analysis", "recommendations" and "efficiency" (current, optimized, improvement)."""

    user = f"""Analyze this flight and provide optimal cargo placement:

Flight: {request.flight_number}
Route: {request.origin} → {request.destination}
Aircraft: {request.aircraft_type}
Cargo Weight: {request.cargo_weight} kg
Cargo Volume: {request.cargo_volume} m³
Passengers: {request.passenger_count}
Baggage: {request.baggage_weight} kg

Maximum cargo capacity: {hold.max_weight} kg
Available volume: {hold.volume} m³
Number of sections: {len(hold.sections)}"""
    return system, user


def fallback_analysis(request: AnalysisRequest, hold: Optional[CargoHoldSpec] = None) -> AiAnalysisReply:
    """The static analysis shown when no model reply is available."""

    hold = hold or get_cargo_hold(request.aircraft_type)
    current = request.cargo_weight / hold.max_weight * 100
    warnings = ["Cargo weight exceeds capacity"] if request.cargo_weight > hold.max_weight else []
    return AiAnalysisReply(
        containers=[],
        balance_score=75,
        suggestions=[
            "Distribute cargo evenly across sections",
            "Place heavy items near center of gravity",
        ],
        warnings=warnings,
        analysis="Fallback analysis - cargo distributed based on weight optimization",
        recommendations=["Consider using LD3 containers for optimal space usage"],
        efficiency=Efficiency(current=current, optimized=min(current + 15, 95), improvement=15),
    )


def generate_fallback_containers(request: AnalysisRequest, model: Optional[AircraftModel3D] = None) -> List[PlacedContainer]:
    """Evenly split the flight's cargo weight into LD3 containers across sections."""

    model = model or get_aircraft_model(request.aircraft_type)
    sections = model.sections
    container_count = 10 if len(sections) >= 3 else 6
    weight_per_container = math.floor(request.cargo_weight / container_count)
    per_section = math.ceil(container_count / len(sections))

    containers: List[PlacedContainer] = []
    for section in sections:
        for i in range(per_section):
            if len(containers) >= container_count:
                break
            number = len(containers) + 1
            x_offset = -0.5 if i % 2 == 0 else 0.5
            z_offset = (i // 2) * 0.8
            containers.append(
                PlacedContainer(
                    container=Container(
                        id=f"CNT-{number:03d}",
                        name=f"LD3 Container #{number}",
                        weight=weight_per_container,
                        volume=4.2,
                        width=1.2,
                        height=0.85,
                        depth=1.2,
                    ),
                    section=section.id,
                    placed=True,
                    position=Position(
                        section.position.x + x_offset,
                        section.position.y + 0.1,
                        section.position.z + z_offset - section.dimensions.depth / 4,
                    ),
                )
            )
    return containers


def build_analysis_result(
    request: AnalysisRequest,
    reply: AiAnalysisReply,
    *,
    source: str,
) -> AnalysisResult:
    hold = get_cargo_hold(request.aircraft_type)
    model = get_aircraft_model(request.aircraft_type)

    containers = list(reply.containers)
    if len(containers) < 2:
        logger.debug("Generating fallback containers for %s", request.flight_number)
        containers = generate_fallback_containers(request, model)

    weight_utilization = request.cargo_weight / hold.max_weight * 100
    placement = AnalysisPlacement(
        flight_number=request.flight_number,
        aircraft_type=request.aircraft_type,
        containers=containers,
        total_weight=request.cargo_weight,
        total_volume=request.cargo_volume,
        weight_utilization=weight_utilization,
        volume_utilization=request.cargo_volume / hold.volume * 100,
        balance_score=int(reply.balance_score or 70),
        suggestions=list(reply.suggestions),
        warnings=list(reply.warnings),
    )
    efficiency = reply.efficiency or Efficiency(current=weight_utilization, optimized=85, improvement=10)
    return AnalysisResult(
        placement=placement,
        analysis=reply.analysis or "Analysis completed",
        recommendations=list(reply.recommendations),
        efficiency=efficiency,
        source=source,
    )


def analyze_with_ai(
    request: AnalysisRequest,
    config: LlmApiConfig,
    *,
    client: Optional[anthropic.Anthropic] = None,
) -> Optional[AnalysisResult]:
    """Ask the model for a cargo analysis; ``None`` means use the fallback."""

    if not config.is_configured:
        logger.info("No LLM API key configured; using fallback analysis")
        return None

    hold = get_cargo_hold(request.aircraft_type)
    model = get_aircraft_model(request.aircraft_type)
    system, user = build_analysis_prompts(request, hold, model)

    try:
        text = request_completion(
            config,
            system=system,
            user=user,
            max_tokens=config.analysis_max_tokens,
            client=client,
        )
        reply = parse_analysis_reply(extract_json_object(text), model)
    except (LlmUnavailableError, AiResponseError) as exc:
        logger.warning("AI analysis failed, using fallback: %s", exc)
        return None

    return build_analysis_result(request, reply, source="ai")

"""FastAPI endpoints for cargo placement and analysis."""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from loadplan.ai_adapter import LlmApiConfig, build_llm_config
from loadplan.engine import PlacementRequest, analyze_cargo, place_cargo
from loadplan.schemas import AnalysisRequest, Container


logger = logging.getLogger(__name__)


class ContainerInput(BaseModel):
    """Container as sent by the optimizer client."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    weight: float = Field(ge=0)
    volume: float = 0.0
    width: float = 0.0
    height: float = 0.0
    depth: float = 0.0
    color: Optional[str] = None
    type_id: Optional[str] = Field(default=None, alias="typeId")

    def to_container(self) -> Container:
        return Container(
            id=self.id,
            name=self.name,
            weight=self.weight,
            volume=self.volume,
            width=self.width,
            height=self.height,
            depth=self.depth,
            color=self.color,
            type_id=self.type_id,
        )


class PlaceRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    flight_number: str = Field(default="", alias="flightNumber")
    aircraft_type: str = Field(alias="aircraftType")
    containers: List[ContainerInput] = Field(default_factory=list)


class AnalyzeRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    flight_number: str = Field(alias="flightNumber")
    aircraft_type: str = Field(alias="aircraftType")
    cargo_weight: float = Field(default=0.0, alias="cargoWeight")
    cargo_volume: float = Field(default=0.0, alias="cargoVolume")
    passenger_count: int = Field(default=0, alias="passengerCount")
    baggage_weight: float = Field(default=0.0, alias="baggageWeight")
    origin: str = ""
    destination: str = ""

    def to_request(self) -> AnalysisRequest:
        return AnalysisRequest(
            flight_number=self.flight_number,
            aircraft_type=self.aircraft_type,
            cargo_weight=self.cargo_weight,
            cargo_volume=self.cargo_volume,
            passenger_count=self.passenger_count,
            baggage_weight=self.baggage_weight,
            origin=self.origin,
            destination=self.destination,
        )


app = FastAPI(
    title="SkyLoad Cargo API",
    description="Cargo placement and load analysis for belly-hold freight",
)


def get_llm_config() -> LlmApiConfig:
    return build_llm_config(environ=os.environ)


@app.post("/api/ai-place")
def ai_place(body: PlaceRequestBody, config: LlmApiConfig = Depends(get_llm_config)):
    logger.info(
        "ai-place flight=%s aircraft=%s containers=%d total_weight=%s",
        body.flight_number,
        body.aircraft_type,
        len(body.containers),
        sum(item.weight for item in body.containers),
    )
    try:
        request = PlacementRequest(
            flight_number=body.flight_number,
            aircraft_type=body.aircraft_type,
            containers=[item.to_container() for item in body.containers],
        )
        result = place_cargo(request, config=config)
        return result.as_dict()
    except Exception as e:
        logger.error("AI Place error: %s", e, exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e) or "Failed to place cargo"})


@app.post("/api/ai-analyze")
def ai_analyze(body: AnalyzeRequestBody, config: LlmApiConfig = Depends(get_llm_config)):
    try:
        result = analyze_cargo(body.to_request(), config=config)
        return result.as_dict()
    except Exception as e:
        logger.error("AI Analysis error: %s", e, exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e) or "Failed to analyze cargo"})


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=os.environ.get("HOST", "127.0.0.1"), port=int(os.environ.get("PORT", "8000")))

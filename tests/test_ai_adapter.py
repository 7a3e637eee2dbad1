import json
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from loadplan.ai_adapter import (
    AiPlacement,
    AiPlacementReply,
    AiResponseError,
    LlmApiConfig,
    LlmUnavailableError,
    analyze_with_ai,
    build_llm_config,
    extract_json_object,
    fallback_analysis,
    generate_fallback_containers,
    merge_ai_placements,
    parse_analysis_reply,
    parse_placement_reply,
    place_with_ai,
    request_completion,
)
from loadplan.aircraft import get_aircraft_model
from loadplan.schemas import AnalysisRequest, Container, Position


MESSAGES_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


class FakeMessages:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if not self.replies:
            raise RuntimeError("No reply queued")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeClient:
    def __init__(self, replies):
        self.messages = FakeMessages(replies)

    @property
    def calls(self):
        return self.messages.calls


def _message(*blocks) -> SimpleNamespace:
    return SimpleNamespace(content=list(blocks))


def _text_reply(text: str) -> SimpleNamespace:
    return _message(SimpleNamespace(type="text", text=text))


def _config(**overrides) -> LlmApiConfig:
    values = dict(api_key="test-key", enable_ai_placement=True)
    values.update(overrides)
    return LlmApiConfig(**values)


def _box(identifier: str, weight: float) -> Container:
    return Container(id=identifier, name=identifier, weight=weight, volume=4.5, width=1.56, height=1.14, depth=1.53)


def test_build_llm_config_reads_settings_then_environment():
    config = build_llm_config({}, environ={"ANTHROPIC_API_KEY": "env-key"})

    assert config.api_key == "env-key"
    assert config.is_configured
    assert config.enable_ai_placement is False
    assert config.model == "claude-sonnet-4-20250514"

    config = build_llm_config(
        {"api_key": "secret-key", "enable_ai_placement": "true", "timeout": "15"},
        environ={"ANTHROPIC_API_KEY": "env-key"},
    )
    assert config.api_key == "secret-key"
    assert config.enable_ai_placement is True
    assert config.timeout == 15


def test_build_llm_config_without_key_is_not_configured():
    config = build_llm_config(None, environ={})

    assert config.api_key is None
    assert config.base_url is None
    assert not config.is_configured


def test_build_client_uses_configured_key_and_retries():
    client = _config(max_retries=4).build_client()

    try:
        assert isinstance(client, anthropic.Anthropic)
        assert client.api_key == "test-key"
        assert client.max_retries == 4
    finally:
        client.close()


def test_request_completion_sends_messages_request():
    client = FakeClient([_text_reply("hello")])

    text = request_completion(_config(), system="sys", user="hi", max_tokens=123, client=client)

    assert text == "hello"
    call = client.calls[0]
    assert call["model"] == "claude-sonnet-4-20250514"
    assert call["max_tokens"] == 123
    assert call["system"] == "sys"
    assert call["messages"] == [{"role": "user", "content": "hi"}]


def test_request_completion_skips_non_text_blocks():
    client = FakeClient([_message(SimpleNamespace(type="thinking", thinking="..."), SimpleNamespace(type="text", text="{}"))])

    assert request_completion(_config(), system="s", user="u", max_tokens=1, client=client) == "{}"


def test_request_completion_requires_key():
    client = FakeClient([])

    with pytest.raises(LlmUnavailableError):
        request_completion(LlmApiConfig(), system="s", user="u", max_tokens=1, client=client)
    assert client.calls == []


@pytest.mark.parametrize(
    "reply",
    [
        anthropic.APIConnectionError(request=MESSAGES_REQUEST),
        anthropic.APITimeoutError(request=MESSAGES_REQUEST),
        anthropic.InternalServerError(
            "overloaded",
            response=httpx.Response(529, request=MESSAGES_REQUEST),
            body={"type": "error", "error": {"type": "overloaded_error"}},
        ),
        _message(SimpleNamespace(type="tool_use", id="tool-1", name="place", input={})),
        _message(),
    ],
)
def test_request_completion_failures_raise_unavailable(reply):
    with pytest.raises(LlmUnavailableError):
        request_completion(_config(), system="s", user="u", max_tokens=1, client=FakeClient([reply]))


@pytest.mark.parametrize(
    "text, expected",
    [
        ('Here you go: {"a": 1} hope it helps', {"a": 1}),
        ('{"outer": {"inner": [1, 2]}}', {"outer": {"inner": [1, 2]}}),
        ('{not json} then {"b": 2}', {"b": 2}),
        ('```json\n{"c": "}"}\n```', {"c": "}"}),
    ],
)
def test_extract_json_object(text, expected):
    assert extract_json_object(text) == expected


@pytest.mark.parametrize("text", ["no json here", "[1, 2, 3]", "{broken"])
def test_extract_json_object_without_object_raises(text):
    with pytest.raises(AiResponseError):
        extract_json_object(text)


def test_parse_placement_reply_validates_types():
    reply = parse_placement_reply(
        {
            "placements": [{"containerId": "A", "section": "aft", "placed": False, "position": {"x": 0.3}}],
            "balanceScore": 88,
            "suggestions": ["Keep it level"],
        }
    )

    assert reply.placements == [AiPlacement("A", "aft", False, Position(0.3, 0.0, 0.0))]
    assert reply.balance_score == 88
    assert reply.forward_weight is None
    assert reply.suggestions == ["Keep it level"]
    assert reply.warnings == []

    with pytest.raises(AiResponseError):
        parse_placement_reply({"balanceScore": "high"})
    with pytest.raises(AiResponseError):
        parse_placement_reply({"placements": "all of them"})
    with pytest.raises(AiResponseError):
        parse_placement_reply({"suggestions": [1, 2]})


@pytest.mark.parametrize(
    "payload",
    [
        {"balanceScore": "85"},
        {"forwardWeight": True},
        {"aftWeight": float("nan")},
        {"warnings": None, "suggestions": ["ok", None]},
        {"placements": [{"containerId": "A", "position": {"x": "0.3"}}]},
        {"placements": [{"containerId": "A", "section": 2}]},
        {"placements": [{"containerId": ["A"]}]},
        ["not", "an", "object"],
    ],
)
def test_parse_placement_reply_rejects_coercible_values(payload):
    with pytest.raises(AiResponseError):
        parse_placement_reply(payload)


def test_parse_placement_reply_accepts_camel_case_and_numeric_ids():
    reply = parse_placement_reply(
        {
            "placements": [{"containerId": 7, "placed": "yes"}],
            "forwardWeight": 1200,
            "aftWeight": 950.5,
            "unexpected": "ignored",
        }
    )

    assert reply.placements == [AiPlacement("7", None, True, None)]
    assert reply.forward_weight == 1200.0
    assert reply.aft_weight == 950.5


def test_merge_ai_placements_matches_by_id_then_index_then_default():
    containers = [_box("A", 100), _box("B", 100), _box("C", 100)]
    reply = AiPlacementReply(
        placements=[
            AiPlacement("C", "aft", True, Position(1, 2, 3)),
            AiPlacement("unknown", "mid", True, None),
        ]
    )

    merged = merge_ai_placements(containers, reply, capacity=2000)

    assert [item.id for item in merged] == ["A", "B", "C"]
    assert merged[0].section == "aft"
    assert merged[1].section == "mid"
    assert merged[1].position == Position(0, 0.2, 0)
    assert merged[2].position == Position(1, 2, 3)


def test_merge_ai_placements_defaults_for_skipped_containers():
    containers = [_box("A", 1500), _box("B", 300), _box("C", 300)]
    reply = AiPlacementReply(placements=[AiPlacement("A", "fwd", True, None)])

    merged = merge_ai_placements(containers, reply, capacity=2000)

    assert merged[1].section == "fwd"
    assert merged[1].placed is False
    assert merged[1].position == Position(0.3, 0.2, -1.0)
    assert merged[2].position == Position(-0.3, 0.2, -0.5)


def test_place_with_ai_without_key_makes_no_request():
    client = FakeClient([])

    assert place_with_ai([_box("A", 100)], "Boeing 737-800", LlmApiConfig(), client=client) is None
    assert client.calls == []


def test_place_with_ai_builds_result_from_reply():
    body = {
        "placements": [
            {"containerId": "A", "section": "fwd", "placed": True, "position": {"x": -0.3, "y": 0.2, "z": -1.5}},
            {"containerId": "B", "section": "aft", "placed": True, "position": {"x": 0.3, "y": 0.2, "z": 1.0}},
        ],
        "balanceScore": 92,
        "forwardWeight": 500,
        "aftWeight": 700,
        "suggestions": ["Balanced"],
        "warnings": [],
    }
    client = FakeClient([_text_reply("Sure!\n" + json.dumps(body))])

    result = place_with_ai([_box("A", 500), _box("B", 700)], "Boeing 737-800", _config(), client=client)

    assert result is not None
    assert result.source == "ai"
    assert result.balance_score == 92
    assert result.forward_weight == 500
    assert result.aft_weight == 700
    assert result.max_capacity == 2000
    assert [item.section for item in result.containers] == ["fwd", "aft"]
    assert "Boeing 737-800" in client.calls[0]["system"]


@pytest.mark.parametrize(
    "text",
    [
        "I cannot help with that.",
        json.dumps({"placements": [{"containerId": "A", "placed": False}, {"containerId": "B", "placed": False}]}),
        json.dumps({"balanceScore": "excellent"}),
    ],
)
def test_place_with_ai_falls_back_on_unusable_reply(text):
    client = FakeClient([_text_reply(text)])

    assert place_with_ai([_box("A", 500), _box("B", 700)], "Boeing 737-800", _config(), client=client) is None


def test_place_with_ai_defaults_missing_scores():
    client = FakeClient([_text_reply(json.dumps({"placements": [{"containerId": "A"}]}))])

    result = place_with_ai([_box("A", 500)], "Boeing 737-800", _config(), client=client)

    assert result.balance_score == 70
    assert result.forward_weight == 0
    assert result.aft_weight == 0
    assert result.containers[0].placed is True


def _request(**overrides) -> AnalysisRequest:
    values = dict(
        flight_number="AB100",
        aircraft_type="Boeing 737-800",
        cargo_weight=1000,
        cargo_volume=12,
        passenger_count=120,
        baggage_weight=1800,
        origin="YYZ",
        destination="YVR",
    )
    values.update(overrides)
    return AnalysisRequest(**values)


def test_fallback_analysis_values():
    reply = fallback_analysis(_request())

    assert reply.balance_score == 75
    assert reply.warnings == []
    assert reply.efficiency.current == pytest.approx(50)
    assert reply.efficiency.optimized == pytest.approx(65)
    assert reply.efficiency.improvement == 15
    assert reply.recommendations == ["Consider using LD3 containers for optimal space usage"]


def test_fallback_analysis_warns_when_over_capacity():
    reply = fallback_analysis(_request(cargo_weight=2500))

    assert reply.warnings == ["Cargo weight exceeds capacity"]
    assert reply.efficiency.optimized == 95


def test_generate_fallback_containers_narrowbody():
    containers = generate_fallback_containers(_request())

    assert len(containers) == 6
    assert [item.section for item in containers] == ["fwd"] * 3 + ["aft"] * 3
    assert all(item.weight == 166 for item in containers)
    assert containers[0].id == "CNT-001"
    assert containers[0].position.x == -0.5
    assert containers[0].position.y == pytest.approx(-0.3)
    assert containers[0].position.z == pytest.approx(-1.7)
    assert containers[1].position.x == 0.5
    assert containers[2].position.z == pytest.approx(-1.2 + 0.8 - 0.5)


def test_generate_fallback_containers_widebody():
    containers = generate_fallback_containers(_request(aircraft_type="Airbus A330-300", cargo_weight=10000))

    assert len(containers) == 10
    assert [item.section for item in containers] == ["fwd"] * 4 + ["mid"] * 4 + ["aft"] * 2
    assert containers[-1].id == "CNT-010"


def test_parse_analysis_reply_fills_container_defaults():
    model = get_aircraft_model("Boeing 737-800")

    reply = parse_analysis_reply({"containers": [{}, {"id": "X", "weight": 800, "placed": False}]}, model)

    first, second = reply.containers
    assert first.id == "CNT-001"
    assert first.container.name == "Container #1"
    assert first.weight == 500
    assert first.section == "fwd"
    assert first.placed is True
    assert first.position == Position(0, -0.3, -1.2)
    assert second.id == "X"
    assert second.placed is False
    assert second.position == Position(0, -0.3, 1.5)


@pytest.mark.parametrize(
    "payload",
    [
        {"containers": [{"weight": "800"}]},
        {"containers": [{"placed": True, "depth": False}]},
        {"analysis": 42},
        {"efficiency": {"current": "50"}},
        {"recommendations": "Load LD3s"},
    ],
)
def test_parse_analysis_reply_rejects_wrong_types(payload):
    with pytest.raises(AiResponseError):
        parse_analysis_reply(payload, get_aircraft_model("Boeing 737-800"))


def test_analyze_with_ai_falls_back_on_string_numbers():
    body = {"containers": [{"id": "A", "weight": "900"}, {"id": "B"}], "balanceScore": 90}
    client = FakeClient([_text_reply(json.dumps(body))])

    assert analyze_with_ai(_request(), _config(), client=client) is None


def test_analyze_with_ai_generates_containers_for_sparse_reply():
    body = {"containers": [{"id": "only"}], "analysis": "Looks fine", "recommendations": ["Load LD3s"]}
    client = FakeClient([_text_reply(json.dumps(body))])

    result = analyze_with_ai(_request(), _config(), client=client)

    assert result.source == "ai"
    assert result.analysis == "Looks fine"
    assert len(result.placement.containers) == 6
    assert result.placement.balance_score == 70
    assert result.efficiency.optimized == 85
    assert result.efficiency.improvement == 10
    assert result.placement.weight_utilization == pytest.approx(50)
    assert result.placement.volume_utilization == pytest.approx(12 / (3.5 * 1.2 * 8.0) * 100)


def test_analyze_with_ai_returns_none_on_failure():
    client = FakeClient([anthropic.APIConnectionError(request=MESSAGES_REQUEST)])

    assert analyze_with_ai(_request(), _config(), client=client) is None

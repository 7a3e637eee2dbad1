import math

import pytest

from loadplan.analysis import (
    analyses_to_frame,
    analyze_all_flights,
    analyze_flight_weight,
    calculate_dashboard_stats,
    classify_utilization,
    filter_analyses,
    find_overweight_alerts,
    sort_analyses,
    summarize_flight_load,
)
from loadplan.schemas import DashboardStats, FlightRecord


def _flight(**overrides) -> FlightRecord:
    values = dict(
        flight_number="AB100",
        flight_date="2024-03-01",
        origin="YYZ",
        destination="YVR",
        tail_number="C-FABC",
        aircraft_type="Boeing 737-800",
        gross_weight_cargo_kg=1000,
        gross_volume_cargo_m3=20,
        passenger_count=100,
        baggage_weight_kg=1500,
        fuel_weight_kg=10000,
        fuel_price_per_kg=0.8,
        cargo_price_per_kg=4.0,
    )
    values.update(overrides)
    return FlightRecord(**values)


@pytest.mark.parametrize(
    "percentage, expected",
    [
        (0, "safe"),
        (84.99, "safe"),
        (85, "warning"),
        (99.99, "warning"),
        (100, "danger"),
        (150, "danger"),
    ],
)
def test_classify_utilization_thresholds_are_inclusive(percentage, expected):
    assert classify_utilization(percentage) == expected


def test_analyze_flight_weight_reports_utilization_and_profit():
    analysis = analyze_flight_weight(_flight(gross_weight_cargo_kg=1700, gross_volume_cargo_m3=9))

    assert analysis.cargo_weight_utilization == pytest.approx(85.0)
    assert analysis.cargo_volume_utilization == pytest.approx(20.0)
    assert analysis.weight_status == "warning"
    assert analysis.volume_status == "safe"
    assert not analysis.is_overweight
    assert analysis.cargo_revenue == pytest.approx(6800)
    assert analysis.fuel_cost == pytest.approx(8000)
    assert analysis.profit_margin == pytest.approx(-1200)
    assert analysis.spec_found


def test_exactly_at_capacity_is_danger_but_not_overweight():
    analysis = analyze_flight_weight(_flight(gross_weight_cargo_kg=2000))

    assert analysis.weight_status == "danger"
    assert not analysis.is_overweight


def test_unknown_aircraft_is_measured_against_default_spec():
    analysis = analyze_flight_weight(_flight(aircraft_type="Cessna 172", gross_weight_cargo_kg=2500))

    assert analysis.resolved_aircraft_type == "Boeing 737-800"
    assert analysis.spec_found is False
    assert analysis.cargo_weight_utilization == pytest.approx(125.0)
    assert analysis.is_overweight
    assert analysis.weight_status == "danger"


def test_case_insensitive_aircraft_type_uses_its_own_spec():
    analysis = analyze_flight_weight(_flight(aircraft_type="airbus a330-300", gross_weight_cargo_kg=17000))

    assert analysis.resolved_aircraft_type == "Airbus A330-300"
    assert analysis.spec_found is True
    assert analysis.cargo_weight_utilization == pytest.approx(17000 / 18000 * 100)
    assert analysis.weight_status == "warning"
    assert not analysis.is_overweight


def test_dashboard_stats_for_no_flights_are_zero():
    stats = calculate_dashboard_stats([])

    assert stats == DashboardStats()
    assert stats.total_flights == 0
    assert stats.avg_weight_utilization == 0
    assert stats.route_breakdown == []
    assert stats.aircraft_breakdown == []


def test_dashboard_stats_group_routes_and_aircraft_in_first_seen_order():
    flights = [
        _flight(flight_number="A1", origin="YVR", destination="YYC", gross_weight_cargo_kg=1000),
        _flight(flight_number="A2", origin="YYZ", destination="YVR", gross_weight_cargo_kg=2400),
        _flight(
            flight_number="A3",
            origin="YVR",
            destination="YYC",
            aircraft_type="Airbus A330-200",
            gross_weight_cargo_kg=3000,
            gross_volume_cargo_m3=150,
        ),
    ]

    stats = calculate_dashboard_stats(analyze_all_flights(flights))

    assert stats.total_flights == 3
    assert stats.overweight_count == 1
    assert stats.over_volume_count == 1
    assert stats.avg_weight_utilization == pytest.approx((50 + 120 + 20) / 3)

    routes = [(r.origin, r.destination, r.flight_count) for r in stats.route_breakdown]
    assert routes == [("YVR", "YYC", 2), ("YYZ", "YVR", 1)]
    assert stats.route_breakdown[0].avg_weight_utilization == pytest.approx(35.0)

    aircraft = [(a.aircraft_type, a.flight_count, a.overweight_count) for a in stats.aircraft_breakdown]
    assert aircraft == [("Boeing 737-800", 2, 1), ("Airbus A330-200", 1, 0)]


def test_find_overweight_alerts_sorts_heaviest_first():
    analyses = analyze_all_flights(
        [
            _flight(flight_number="OK", gross_weight_cargo_kg=500),
            _flight(flight_number="HEAVY", gross_weight_cargo_kg=2100),
            _flight(flight_number="HEAVIER", gross_weight_cargo_kg=3000),
            _flight(flight_number="BULKY", gross_weight_cargo_kg=100, gross_volume_cargo_m3=50),
        ]
    )

    alerts = find_overweight_alerts(analyses)

    assert [a.flight.flight_number for a in alerts] == ["HEAVIER", "HEAVY", "BULKY"]


def test_filter_analyses_by_search_and_status():
    analyses = analyze_all_flights(
        [
            _flight(flight_number="AB1", origin="YYZ", gross_weight_cargo_kg=500),
            _flight(flight_number="AB2", origin="YUL", gross_weight_cargo_kg=1800),
            _flight(flight_number="CD3", origin="YUL", gross_weight_cargo_kg=2200),
        ]
    )

    assert [a.flight.flight_number for a in filter_analyses(analyses, search="yul")] == ["AB2", "CD3"]
    assert [a.flight.flight_number for a in filter_analyses(analyses, status="warning")] == ["AB2"]
    assert [a.flight.flight_number for a in filter_analyses(analyses, search="ab", status="danger")] == []
    assert len(filter_analyses(analyses)) == 3

    with pytest.raises(ValueError):
        filter_analyses(analyses, status="critical")


def test_sort_analyses_by_date_puts_undated_last():
    analyses = analyze_all_flights(
        [
            _flight(flight_number="OLD", flight_date="2024-01-01"),
            _flight(flight_number="NONE", flight_date="not a date"),
            _flight(flight_number="NEW", flight_date="2024-06-01"),
        ]
    )

    newest_first = sort_analyses(analyses, field="flight_date", descending=True)
    oldest_first = sort_analyses(analyses, field="flight_date", descending=False)

    assert [a.flight.flight_number for a in newest_first] == ["NEW", "OLD", "NONE"]
    assert [a.flight.flight_number for a in oldest_first] == ["OLD", "NEW", "NONE"]


def test_sort_analyses_by_utilization_and_unknown_field():
    analyses = analyze_all_flights(
        [
            _flight(flight_number="B", gross_weight_cargo_kg=100),
            _flight(flight_number="A", gross_weight_cargo_kg=1500),
        ]
    )

    ordered = sort_analyses(analyses, field="cargo_weight_utilization", descending=True)
    assert [a.flight.flight_number for a in ordered] == ["A", "B"]
    assert [a.flight.flight_number for a in sort_analyses(analyses, field="flight_number", descending=False)] == ["A", "B"]

    with pytest.raises(ValueError):
        sort_analyses(analyses, field="tail_number")


def test_summarize_flight_load_profit_and_break_even():
    summary = summarize_flight_load(_flight())

    assert summary.passenger_weight == 9000
    assert summary.fixed_load == 9000 + 1500 + 10000
    assert summary.available_for_cargo == 20000 - 9000 - 1500
    assert summary.fuel_cost == pytest.approx(8000)
    assert summary.cargo_revenue == pytest.approx(4000)
    assert summary.profit_loss == pytest.approx(-4000)
    assert summary.break_even_cargo == pytest.approx(2000)
    assert not summary.is_profitable
    assert not summary.above_break_even
    assert summary.cargo_utilization == pytest.approx(1000 / 9500 * 100)


def test_summarize_flight_load_uses_override_weight_and_default_payload():
    summary = summarize_flight_load(_flight(aircraft_type="Unknown", cargo_price_per_kg=0), cargo_weight=500)

    assert summary.cargo_weight == 500
    assert summary.available_for_cargo == 20000 - 9000 - 1500
    assert summary.break_even_cargo is None
    assert not summary.above_break_even


def test_summarize_flight_load_with_no_room_for_cargo():
    summary = summarize_flight_load(_flight(passenger_count=300))

    assert summary.available_for_cargo == 0
    assert math.isinf(summary.cargo_utilization)
    assert summary.is_overweight


def test_analyses_to_frame_has_one_row_per_flight():
    frame = analyses_to_frame(analyze_all_flights([_flight(), _flight(flight_number="AB200")]))

    assert list(frame["Flight"]) == ["AB100", "AB200"]
    assert list(frame["Weight Status"]) == ["safe", "safe"]

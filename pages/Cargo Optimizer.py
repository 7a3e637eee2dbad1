import json

import pandas as pd
import streamlit as st

from Home import (
    SELECTED_FLIGHT_STATE_KEY,
    configure_page,
    get_llm_config,
    get_loaded_flights,
    render_sidebar,
)
from loadplan.aircraft import get_cargo_hold, is_known_aircraft_type, known_aircraft_types, resolve_aircraft_type
from loadplan.analysis import summarize_flight_load
from loadplan.engine import (
    PlacementRequest,
    build_export_document,
    compute_efficiency,
    export_filename,
    place_cargo,
)
from loadplan.placement import CONTAINER_TYPES, auto_generate_containers, build_container, summarize_cargo
from loadplan.schemas import FlightRecord
from loadplan.visualization import build_cargo_figure

configure_page(page_title="Cargo Optimizer")
render_sidebar()


# ============================================================
# State
# ============================================================
CONTAINERS_KEY = "optimizer_containers"
PLACEMENT_KEY = "optimizer_placement"
FLIGHT_KEY = "optimizer_flight_number"
COUNTER_KEY = "optimizer_container_counter"

if CONTAINERS_KEY not in st.session_state:
    st.session_state[CONTAINERS_KEY] = []
if PLACEMENT_KEY not in st.session_state:
    st.session_state[PLACEMENT_KEY] = None


def _reset_for_flight(flight: FlightRecord) -> None:
    st.session_state[FLIGHT_KEY] = flight.flight_number
    st.session_state[CONTAINERS_KEY] = auto_generate_containers(flight.gross_weight_cargo_kg)
    st.session_state[COUNTER_KEY] = len(st.session_state[CONTAINERS_KEY])
    st.session_state[PLACEMENT_KEY] = None


def _next_index() -> int:
    # Monotonic so ids stay unique after removals.
    index = st.session_state.get(COUNTER_KEY, len(st.session_state[CONTAINERS_KEY]))
    st.session_state[COUNTER_KEY] = index + 1
    return index


# ============================================================
# Flight selection
# ============================================================
st.title("📦 Cargo Optimizer")

flights = get_loaded_flights()
if not flights:
    st.info("Upload a flight CSV on the dashboard first.")
    st.stop()

flight_numbers = [flight.flight_number for flight in flights]
preferred = st.session_state.get(SELECTED_FLIGHT_STATE_KEY)
default_index = flight_numbers.index(preferred) if preferred in flight_numbers else 0

choice = st.selectbox(
    "Flight",
    range(len(flights)),
    index=default_index,
    format_func=lambda i: f"{flights[i].flight_number} · {flights[i].route} · {flights[i].flight_date}",
)
flight = flights[choice]
if st.session_state.get(FLIGHT_KEY) != flight.flight_number:
    _reset_for_flight(flight)

aircraft_type = resolve_aircraft_type(flight.aircraft_type)
hold = get_cargo_hold(aircraft_type)
if not is_known_aircraft_type(flight.aircraft_type):
    st.warning(f"Aircraft type '{flight.aircraft_type}' is not recognised; using {aircraft_type} layout.")
st.caption(f"Aircraft: {aircraft_type} · Hold capacity {hold.max_weight:,.0f} kg · Known types: {', '.join(known_aircraft_types())}")


# ============================================================
# Flight load summary
# ============================================================
containers = st.session_state[CONTAINERS_KEY]
cargo_weight = sum(container.weight for container in containers)
summary = summarize_flight_load(flight, cargo_weight)

with st.expander("Flight load summary", expanded=True):
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Passengers", f"{summary.passenger_weight:,.0f} kg", f"{flight.passenger_count} pax", delta_color="off")
    c2.metric("Baggage", f"{summary.baggage_weight:,.0f} kg")
    c3.metric("Fuel", f"{summary.fuel_weight:,.0f} kg")
    c4.metric("Available for cargo", f"{summary.available_for_cargo:,.0f} kg")

    c5, c6, c7, c8 = st.columns(4)
    c5.metric("Cargo", f"{summary.cargo_weight:,.0f} kg", f"{summary.cargo_utilization:.1f}% of available", delta_color="off")
    c6.metric("Cargo revenue", f"${summary.cargo_revenue:,.0f}")
    c7.metric("Fuel cost", f"${summary.fuel_cost:,.0f}")
    c8.metric("Profit / loss", f"${summary.profit_loss:,.0f}")

    if summary.break_even_cargo is None:
        st.caption("Break-even cargo weight unavailable (no cargo price).")
    elif summary.above_break_even:
        st.success(f"Above break-even ({summary.break_even_cargo:,.0f} kg).")
    else:
        st.warning(f"Below break-even: {summary.break_even_cargo:,.0f} kg of cargo needed to cover fuel.")
    if summary.is_overweight:
        st.error("Cargo exceeds the payload available after passengers and baggage.")


# ============================================================
# Containers
# ============================================================
st.write("### Containers")
colA, colB, colC = st.columns([2, 1, 1])
with colA:
    type_id = st.selectbox(
        "Container type",
        list(CONTAINER_TYPES),
        format_func=lambda key: f"{CONTAINER_TYPES[key].name} (max {CONTAINER_TYPES[key].max_weight:,.0f} kg)",
    )
    if st.button("Add container"):
        st.session_state[CONTAINERS_KEY].append(build_container(type_id, _next_index()))
        st.session_state[PLACEMENT_KEY] = None
        st.rerun()
with colB:
    if st.button("Auto-generate from flight"):
        _reset_for_flight(flight)
        st.rerun()
with colC:
    if st.button("Clear containers"):
        st.session_state[CONTAINERS_KEY] = []
        st.session_state[PLACEMENT_KEY] = None
        st.rerun()

for idx, container in enumerate(containers):
    col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
    col1.write(f"**{container.name}**")
    col2.write(f"{container.weight:,.0f} kg")
    col3.write(f"{container.volume:g} m³")
    if col4.button("❌", key=f"remove_{container.id}_{idx}"):
        st.session_state[CONTAINERS_KEY].pop(idx)
        st.session_state[PLACEMENT_KEY] = None
        st.rerun()

if not containers:
    st.info("No containers yet. Add one or auto-generate from the flight's cargo weight.")
    st.stop()


# ============================================================
# Placement
# ============================================================
if st.button("Place cargo", type="primary"):
    request = PlacementRequest(
        flight_number=flight.flight_number,
        aircraft_type=flight.aircraft_type,
        containers=list(containers),
    )
    st.session_state[PLACEMENT_KEY] = place_cargo(request, config=get_llm_config())

placement = st.session_state[PLACEMENT_KEY]
if placement is None:
    st.stop()

totals = summarize_cargo(placement)
efficiency = compute_efficiency(placement, placement.max_capacity or hold.max_weight)

m1, m2, m3, m4 = st.columns(4)
m1.metric("Placed", f"{totals['placed_count']} / {len(placement.containers)}")
m2.metric("Placed weight", f"{totals['placed_weight']:,.0f} kg")
m3.metric("Balance score", placement.balance_score)
m4.metric("Hold utilization", f"{efficiency.current:.1f}%")

st.write("### Cargo Load Visualization")
st.plotly_chart(build_cargo_figure(placement), width="stretch")

left, right = st.columns(2)
with left:
    st.write("### Recommendations")
    for suggestion in placement.suggestions:
        st.write(f"• {suggestion}")
    for warning in placement.warnings:
        st.warning(warning)
with right:
    st.write("### Unplaceable cargo")
    unplaced = placement.unplaced_containers
    if not unplaced:
        st.success("All containers fit in the hold.")
    else:
        st.error(
            f"{totals['unplaced_count']} container(s), {totals['unplaced_weight']:,.0f} kg / "
            f"{totals['unplaced_volume']:g} m³ could not be loaded."
        )
        st.table(pd.DataFrame([{"Container": item.container.name, "Weight (kg)": item.weight} for item in unplaced]))

rows = [
    {
        "Container": item.container.name,
        "Section": item.section,
        "Weight (kg)": item.weight,
        "Placed": "✅" if item.placed else "❌",
        "Position (x,y,z)": f"{item.position.x:.2f}, {item.position.y:.2f}, {item.position.z:.2f}",
    }
    for item in placement.containers
]
st.dataframe(pd.DataFrame(rows), hide_index=True, width="stretch")

document = build_export_document(flight.as_dict(), placement)
st.download_button(
    label="⬇️ Export loading plan",
    data=json.dumps(document, indent=2),
    file_name=export_filename(flight.flight_number),
    mime="application/json",
)

with st.expander("🔎 Debug data (raw placement)"):
    st.json(placement.as_dict())

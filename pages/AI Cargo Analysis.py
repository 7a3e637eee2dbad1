import pandas as pd
import streamlit as st

from Home import configure_page, get_llm_config, get_loaded_flights, render_sidebar
from loadplan.engine import analyze_cargo
from loadplan.schemas import AnalysisRequest, PlacementResult
from loadplan.visualization import build_cargo_figure

configure_page(page_title="AI Cargo Analysis")
render_sidebar()

st.title("🧠 AI Cargo Analysis")

flights = get_loaded_flights()
if not flights:
    st.info("Upload a flight CSV on the dashboard first.")
    st.stop()

config = get_llm_config()
if not config.is_configured:
    st.caption("No LLM API key configured; a static fallback analysis is shown.")

choice = st.selectbox(
    "Flight",
    range(len(flights)),
    format_func=lambda i: f"{flights[i].flight_number} · {flights[i].route} · {flights[i].aircraft_type}",
)
flight = flights[choice]

if st.button("Analyze cargo", type="primary"):
    with st.spinner("Analyzing cargo placement…"):
        st.session_state["analysis_result"] = analyze_cargo(AnalysisRequest.from_flight(flight), config=config)
    st.session_state["analysis_flight"] = flight.flight_number

result = st.session_state.get("analysis_result")
if result is None or st.session_state.get("analysis_flight") != flight.flight_number:
    st.stop()

placement = result.placement
source_label = "AI" if result.source == "ai" else "Fallback"
st.write(f"### Analysis ({source_label})")
st.write(result.analysis)

m1, m2, m3, m4 = st.columns(4)
m1.metric("Weight utilization", f"{placement.weight_utilization:.1f}%")
m2.metric("Volume utilization", f"{placement.volume_utilization:.1f}%")
m3.metric("Balance score", placement.balance_score)
m4.metric(
    "Efficiency",
    f"{result.efficiency.current:.1f}% → {result.efficiency.optimized:.1f}%",
    f"+{result.efficiency.improvement:g}%",
)

scene = PlacementResult(
    containers=placement.containers,
    balance_score=placement.balance_score,
    forward_weight=0,
    aft_weight=0,
    aircraft_type=placement.aircraft_type,
)
st.plotly_chart(build_cargo_figure(scene), width="stretch")

left, right = st.columns(2)
with left:
    st.write("### Suggestions")
    for suggestion in placement.suggestions:
        st.write(f"• {suggestion}")
    for warning in placement.warnings:
        st.warning(warning)
with right:
    st.write("### Recommendations")
    for recommendation in result.recommendations:
        st.write(f"• {recommendation}")

st.dataframe(
    pd.DataFrame(
        [
            {
                "Container": item.container.name,
                "Section": item.section,
                "Weight (kg)": item.weight,
                "Volume (m³)": item.container.volume,
                "Placed": "✅" if item.placed else "❌",
            }
            for item in placement.containers
        ]
    ),
    hide_index=True,
    width="stretch",
)

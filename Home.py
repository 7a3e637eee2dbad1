from __future__ import annotations

import hashlib
import time
from typing import Any, List, Tuple

import pandas as pd
import streamlit as st

from loadplan.ai_adapter import LlmApiConfig, build_llm_config
from loadplan.analysis import (
    STATUS_FILTERS,
    analyses_to_frame,
    analyze_all_flights,
    calculate_dashboard_stats,
    filter_analyses,
    find_overweight_alerts,
    sort_analyses,
)
from loadplan.csv_loader import CsvUploadError, load_flights_from_upload
from loadplan.schemas import FlightRecord


_SECRET_RETRY_PREFIX = "_secret_retry__"
_SECRET_RETRY_MAX = 6
_SECRET_RETRY_DELAY_SECONDS = 0.2
_MISSING = object()
_PAGE_CONFIGURED_KEY = "_page_configured"
_DEFAULT_PAGE_TITLE = "SkyLoad Cargo Tools"
_DEFAULT_PAGE_ICON = "✈️"

FLIGHTS_STATE_KEY = "flights"
SELECTED_FLIGHT_STATE_KEY = "selected_flight_number"

_SORT_LABELS = {
    "Date": "flight_date",
    "Flight": "flight_number",
    "Weight %": "cargo_weight_utilization",
    "Volume %": "cargo_volume_utilization",
}


def _secret_retry_key(name: str) -> str:
    return f"{_SECRET_RETRY_PREFIX}{name}"


def _fetch_secret(key: str, *, default: Any = _MISSING) -> Any:
    """Fetch a secret, retrying briefly if the secrets store isn't ready yet."""

    try:
        if key in st.secrets:
            value = st.secrets[key]
            st.session_state.pop(_secret_retry_key(key), None)
            return value
    except FileNotFoundError:
        # No secrets.toml at all: nothing to wait for.
        return None if default is _MISSING else default
    except Exception:
        # ``st.secrets`` can raise while the runtime is still initialising.
        pass
    else:
        return None if default is _MISSING else default

    retry_key = _secret_retry_key(key)
    attempts = int(st.session_state.get(retry_key, 0))
    if attempts < _SECRET_RETRY_MAX:
        st.session_state[retry_key] = attempts + 1
        time.sleep(_SECRET_RETRY_DELAY_SECONDS)
        st.rerun()

    return None if default is _MISSING else default


def get_secret(key: str, default: Any | None = None) -> Any:
    """Return a secret value if available, otherwise the provided default."""

    sentinel = _MISSING if default is None else default
    return _fetch_secret(key, default=sentinel)


def get_llm_config() -> LlmApiConfig:
    """LLM settings from the ``[llm]`` secrets table, else the environment."""

    settings = get_secret("llm", {}) or {}
    return build_llm_config(dict(settings))


def configure_page(*, page_title: str | None = None) -> None:
    """Set the Streamlit page configuration once per run."""

    if not st.session_state.get(_PAGE_CONFIGURED_KEY):
        st.set_page_config(
            page_title=page_title or _DEFAULT_PAGE_TITLE,
            page_icon=_DEFAULT_PAGE_ICON,
            layout="wide",
        )
        st.session_state[_PAGE_CONFIGURED_KEY] = True


def _sidebar_links() -> list[dict[str, str]]:
    return [
        {"path": "Home.py", "label": "📊 Flight Dashboard"},
        {"path": "pages/Cargo Optimizer.py", "label": "📦 Cargo Optimizer"},
        {"path": "pages/AI Cargo Analysis.py", "label": "🧠 AI Cargo Analysis"},
    ]


def render_sidebar() -> None:
    st.sidebar.title("🧭 Navigation")
    for link in _sidebar_links():
        st.sidebar.page_link(link["path"], label=link["label"])

    flights = get_loaded_flights()
    st.sidebar.markdown("---")
    st.sidebar.caption(f"{len(flights)} flight(s) loaded")


def get_loaded_flights() -> List[FlightRecord]:
    return list(st.session_state.get(FLIGHTS_STATE_KEY, []))


def upload_token(name: str, content: bytes) -> Tuple[str, str]:
    """Identify an upload by name and content so an edited re-upload is reparsed."""

    return name, hashlib.sha256(content).hexdigest()


def _render_upload() -> None:
    uploaded = st.file_uploader("Upload flight CSV", type=None, key="flight_csv_upload")
    if uploaded is None:
        return

    content = uploaded.getvalue()
    token = upload_token(uploaded.name, content)
    if st.session_state.get("_last_upload") == token:
        return

    try:
        flights = load_flights_from_upload(uploaded.name, content)
    except CsvUploadError as exc:
        st.error(f"Upload failed: {exc}")
        return

    st.session_state[FLIGHTS_STATE_KEY] = flights
    st.session_state["_last_upload"] = token
    st.success(f"Loaded {len(flights)} flight(s) from {uploaded.name}")


def _status_badge(status: str) -> str:
    return {"safe": "🟢 safe", "warning": "🟠 warning", "danger": "🔴 danger"}.get(status, status)


def main() -> None:
    configure_page()
    render_sidebar()

    st.title("✈️ Cargo Load Dashboard")
    st.caption("Weight and volume utilization of belly-hold cargo per flight.")

    _render_upload()

    flights = get_loaded_flights()
    if not flights:
        st.info("Upload a flight CSV to see cargo utilization across the fleet.")
        return

    analyses = analyze_all_flights(flights)
    stats = calculate_dashboard_stats(analyses)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Flights", stats.total_flights)
    col2.metric("Overweight", stats.overweight_count)
    col3.metric("Avg Weight Utilization", f"{stats.avg_weight_utilization:.1f}%")
    col4.metric("Avg Volume Utilization", f"{stats.avg_volume_utilization:.1f}%")

    col5, col6, col7 = st.columns(3)
    col5.metric("Over Volume", stats.over_volume_count)
    col6.metric("Cargo Revenue", f"${stats.total_cargo_revenue:,.0f}")
    col7.metric("Fuel Cost", f"${stats.total_fuel_cost:,.0f}")

    substituted = sorted({a.flight.aircraft_type for a in analyses if not a.spec_found})
    if substituted:
        st.warning(
            "Unrecognised aircraft type(s) measured against the default aircraft: "
            + ", ".join(t or "(blank)" for t in substituted)
        )

    st.subheader("🚨 Alerts")
    alerts = find_overweight_alerts(analyses)
    if not alerts:
        st.success("No flights exceed their cargo weight or volume limits.")
    for alert in alerts:
        flight = alert.flight
        issues = []
        if alert.is_overweight:
            issues.append(f"weight {alert.cargo_weight_utilization:.1f}%")
        if alert.is_over_volume:
            issues.append(f"volume {alert.cargo_volume_utilization:.1f}%")
        st.error(f"**{flight.flight_number}** {flight.route} ({flight.aircraft_type}): " + ", ".join(issues))

    route_col, aircraft_col = st.columns(2)
    with route_col:
        st.subheader("Routes")
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "Route": f"{r.origin}-{r.destination}",
                        "Flights": r.flight_count,
                        "Avg Weight %": round(r.avg_weight_utilization, 1),
                        "Overweight": r.overweight_count,
                    }
                    for r in stats.route_breakdown
                ]
            ),
            hide_index=True,
            width="stretch",
        )
    with aircraft_col:
        st.subheader("Aircraft")
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "Aircraft": a.aircraft_type,
                        "Flights": a.flight_count,
                        "Avg Weight %": round(a.avg_weight_utilization, 1),
                        "Avg Volume %": round(a.avg_volume_utilization, 1),
                        "Overweight": a.overweight_count,
                    }
                    for a in stats.aircraft_breakdown
                ]
            ),
            hide_index=True,
            width="stretch",
        )

    st.subheader("Flights")
    search_col, status_col, sort_col, order_col = st.columns([3, 1, 1, 1])
    search = search_col.text_input("Search flight or airport", "")
    status = status_col.selectbox("Status", list(STATUS_FILTERS))
    sort_label = sort_col.selectbox("Sort by", list(_SORT_LABELS))
    descending = order_col.toggle("Descending", value=True)

    visible = sort_analyses(
        filter_analyses(analyses, search=search, status=status),
        field=_SORT_LABELS[sort_label],
        descending=descending,
    )
    frame = analyses_to_frame(visible)
    if frame.empty:
        st.info("No flights match the current filters.")
        return

    frame["Weight Status"] = frame["Weight Status"].map(_status_badge)
    frame["Volume Status"] = frame["Volume Status"].map(_status_badge)
    st.dataframe(frame, hide_index=True, width="stretch")

    selected = st.selectbox("Open in Cargo Optimizer", [a.flight.flight_number for a in visible])
    if st.button("Optimize cargo for this flight"):
        st.session_state[SELECTED_FLIGHT_STATE_KEY] = selected
        st.switch_page("pages/Cargo Optimizer.py")


if __name__ == "__main__":
    main()

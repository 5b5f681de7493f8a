"""Streamlit map explorer for the earthquake catalog."""

from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from quake_explorer.config import ExplorerConfig
from quake_explorer.explorer import Explorer
from quake_explorer.filters import DEPTH_BOUNDS, MAGNITUDE_BOUNDS, DisplayMode, FilterState
from quake_explorer.geo import iter_outlines
from quake_explorer.loader import CatalogError, load_boundary_set, load_catalog
from quake_explorer.models import METRIC_LABELS, Metric
from quake_explorer.regions import REGIONS
from quake_explorer.symbols import COLORS, LEGEND_DEPTHS
from quake_explorer.timeline import ALL_TIMES, ALL_TIMES_LABEL, Granularity

NAVY_BG = "#0a1128"
LAND_COLOR = "#e5e7eb"
PLATE_COLOR = "#ef4444"
SETTLE_MS = 1000

# --- Page config ---
st.set_page_config(
    page_title="Quake Explorer",
    page_icon="🌍",
    layout="wide",
    initial_sidebar_state="expanded",
)


# --- Data loading ---
@st.cache_data
def load_events(path: str):
    return load_catalog(path)


@st.cache_data
def load_boundaries(paths: tuple[tuple[str, str], ...]) -> dict:
    return load_boundary_set(dict(paths))


def get_explorer() -> Explorer:
    if "explorer" not in st.session_state:
        config = ExplorerConfig.from_env()
        events = load_events(config.catalog_path)
        boundaries = load_boundaries(tuple(sorted(config.boundary_paths().items())))
        st.session_state.explorer = Explorer(events, boundaries, config)
    return st.session_state.explorer


def _rgba(hex_color: str, alpha: float) -> str:
    h = hex_color.lstrip("#")
    if len(h) == 3:
        h = "".join(c * 2 for c in h)
    r, g, b = (int(h[i:i + 2], 16) for i in (0, 2, 4))
    return f"rgba({r},{g},{b},{alpha})"


def _outline_trace(explorer: Explorer, feature: dict | None, color: str, width: float) -> go.Scatter:
    """GeoJSON outlines as one line trace, rings separated by None."""
    region = explorer.controller.region
    t = explorer.controller.transform
    xs: list = []
    ys: list = []
    for ring in iter_outlines(feature):
        for lon, lat in ring:
            x, y = t.apply(*region.projection(lon, lat))
            xs.append(x)
            ys.append(y)
        xs.append(None)
        ys.append(None)
    return go.Scatter(
        x=xs, y=ys, mode="lines", hoverinfo="skip", showlegend=False,
        line=dict(color=color, width=width),
    )


def _tooltip(explorer: Explorer, key: str) -> str:
    d = explorer.describe(key).as_dict()

    def fmt(name: str, digits: int = 1) -> str:
        value = d[name]
        return "—" if value is None else f"{value:.{digits}f}"

    return (
        f"<b>{d['place'] or 'Earthquake'}</b> ({d['year'] or '—'})<br>"
        f"M {fmt('mag')} | depth {fmt('depth', 0)} km<br>"
        f"CDI {fmt('cdi')} | MMI {fmt('mmi')} | sig {fmt('sig', 0)}<br>"
        f"nearest station {fmt('nearest_station_km', 0)} km"
        + ("<br><b>Tsunami</b>" if d["tsunami"] else "")
    )


def _ring_traces(explorer: Explorer) -> list[go.Scatter]:
    """One trace per ring key, so each ring layer keeps its own styling."""
    k = explorer.controller.transform.k
    layers: dict[str, dict] = {}
    for node in explorer.symbols.visible():
        sx, sy = explorer.controller.transform.apply(node.x, node.y)
        for ring in node.rings:
            spec = ring.spec
            layer = layers.setdefault(spec.key, {"x": [], "y": [], "size": [], "text": [], "spec": spec, "width": []})
            layer["x"].append(sx)
            layer["y"].append(sy)
            layer["size"].append(2 * ring.radius * k)
            layer["width"].append(spec.stroke_width or 0.5)
            layer["text"].append(_tooltip(explorer, node.key))

    traces = []
    for key, layer in layers.items():
        spec = layer["spec"]
        fill = "rgba(0,0,0,0)" if spec.fill == "none" else _rgba(spec.fill, spec.fill_opacity)
        traces.append(go.Scatter(
            x=layer["x"], y=layer["y"], mode="markers", name=key,
            hovertext=layer["text"], hoverinfo="text",
            marker=dict(
                size=layer["size"], sizemode="diameter", color=fill,
                line=dict(color=_rgba(spec.stroke, spec.stroke_opacity), width=layer["width"]),
            ),
            showlegend=False,
        ))
    return traces


def _highlight_trace(explorer: Explorer) -> list[go.Scatter]:
    node = explorer.highlight.node
    if node is None:
        return []
    k = explorer.controller.transform.k
    sx, sy = explorer.controller.transform.apply(node.x, node.y)
    ring = node.rings[0]
    return [go.Scatter(
        x=[sx], y=[sy], mode="markers", hoverinfo="skip", showlegend=False,
        marker=dict(size=2 * ring.radius * k, color="rgba(0,0,0,0)",
                    line=dict(color="#ff4d4d", width=2)),
    )]


def build_map(explorer: Explorer) -> go.Figure:
    c = explorer.controller
    fig = go.Figure([
        _outline_trace(explorer, c.region.feature, LAND_COLOR, 0.6),
        _outline_trace(explorer, explorer.boundaries.get("plates"), PLATE_COLOR, 1.2),
        *_ring_traces(explorer), *_highlight_trace(explorer)])
    fig.update_layout(
        height=c.height, margin=dict(l=0, r=0, t=0, b=0),
        paper_bgcolor=NAVY_BG, plot_bgcolor=NAVY_BG,
        xaxis=dict(range=[0, c.width], visible=False, fixedrange=True),
        yaxis=dict(range=[c.height, 0], visible=False, fixedrange=True, scaleanchor="x"),
    )
    return fig


try:
    explorer = get_explorer()
except CatalogError as exc:
    st.error(f"Could not load the catalog: {exc}")
    st.stop()
fs = explorer.filter_state

# --- Sidebar ---
with st.sidebar:
    st.title("🌍 Quake Explorer")
    st.markdown("---")

    region_names = list(REGIONS)
    region = st.selectbox(
        "Region", region_names,
        index=region_names.index(explorer.controller.region.name),
        format_func=lambda n: REGIONS[n].label,
    )
    if region != explorer.controller.region.name and not explorer.set_region(region):
        st.caption("The guided tour controls the view until it ends.")

    z1, z2, z3 = st.columns(3)
    if z1.button("＋", disabled=explorer.controller.at_max):
        explorer.zoom_in()
    if z2.button("－", disabled=explorer.controller.at_min):
        explorer.zoom_out()
    if z3.button("Reset", disabled=explorer.controller.at_min):
        explorer.reset_zoom()

    st.markdown("---")
    window = st.radio("Time window", [g.value for g in Granularity], horizontal=True,
                      index=[g.value for g in Granularity].index(explorer.timeline.granularity.value))
    if window != explorer.timeline.granularity.value:
        explorer.set_granularity(window)

    if explorer.timeline.navigable:
        labels = [ALL_TIMES_LABEL] + [b.label for b in explorer.timeline.buckets]
        chosen = st.select_slider("Time", options=labels, value=explorer.timeline.label)
        index = ALL_TIMES if chosen == ALL_TIMES_LABEL else labels.index(chosen) - 1
        if index != explorer.timeline.index:
            explorer.set_bucket(index)
    else:
        st.caption(f"Time: {ALL_TIMES_LABEL}")

    st.markdown("---")
    mode = st.radio("Symbol size", [m.value for m in DisplayMode],
                    format_func=lambda v: "Overall impact" if v == DisplayMode.COMPOSITE.value else "Combination",
                    index=[m.value for m in DisplayMode].index(fs.display_mode.value))
    active = set()
    if mode == DisplayMode.COMBINATION.value:
        for metric in (Metric.MAG, Metric.CDI, Metric.MMI):
            if st.checkbox(METRIC_LABELS[metric], value=metric in fs.active_metrics):
                active.add(metric)
    if DisplayMode(mode) != fs.display_mode or (mode == DisplayMode.COMBINATION.value and active != set(fs.active_metrics)):
        explorer.set_display_mode(mode, active)

    st.markdown("---")
    depth = st.slider("Depth (km)", *DEPTH_BOUNDS, value=explorer.filter_state.depth_range)
    mag = st.slider("Magnitude", *MAGNITUDE_BOUNDS, value=explorer.filter_state.metric_range, step=0.1)
    tsunami_only = st.checkbox("Show only tsunami events", value=explorer.filter_state.tsunami_only)
    wanted = FilterState(
        depth_range=depth, metric_range=mag, tsunami_only=tsunami_only,
        display_mode=explorer.filter_state.display_mode,
        active_metrics=explorer.filter_state.active_metrics,
    )
    if wanted != explorer.filter_state:
        explorer.set_filter(wanted)
    if st.button("Clear filters"):
        explorer.clear_filters()
        st.rerun()

# Let fades and zoom transitions reach their end state before drawing
explorer.scheduler.advance(SETTLE_MS)

# --- Header ---
st.title("Global Earthquake & Tsunami Explorer")
st.caption(
    f"{explorer.timeline.label} | {len(explorer.filtered):,} events shown | "
    f"zoom {explorer.controller.transform.k:.1f}×"
)

col_map, col_legend = st.columns([4, 1])

with col_map:
    st.plotly_chart(build_map(explorer), use_container_width=True)

with col_legend:
    st.subheader("Legend")
    for entry in explorer.legend():
        st.markdown(f"<span style='color:{entry.color}'>●</span> **{entry.label}**", unsafe_allow_html=True)
        st.caption("  ".join(f"{v:.0f} → {r:.0f}px" for v, r in entry.ticks))
    st.markdown(f"<span style='color:{COLORS['depth']}'>◯</span> Depth ring width", unsafe_allow_html=True)
    st.caption("  ".join(f"{d} km → {explorer.scales.depth_stroke_width(d):.1f}px" for d in LEGEND_DEPTHS))
    st.markdown(f"<span style='color:{COLORS['tsunami']}'>◯</span> Tsunami occurred", unsafe_allow_html=True)

st.markdown("---")

# --- Events per bucket ---
if explorer.timeline.buckets:
    counts = pd.DataFrame(
        [(b.label, len(b)) for b in explorer.timeline.buckets],
        columns=["Bucket", "Events"],
    )
    fig_counts = px.bar(
        counts, x="Bucket", y="Events",
        title=f"Events per {explorer.timeline.granularity.value}",
        color_discrete_sequence=["#4ecdc4"],
        template="plotly_dark",
    )
    fig_counts.update_layout(height=300, margin=dict(t=40, b=30))
    st.plotly_chart(fig_counts, use_container_width=True)
else:
    st.info("No dated events in this catalog.")

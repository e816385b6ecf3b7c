# ================================
# FILE: geogrid/grid_view.py
# PURPOSE:
# - Saved GeoGrid results list
# - Detailed view: metrics, ranking map, competitors (business or clicked cell), history, exports, delete
# - Grid preview for a new center / size / spacing
# ================================

from __future__ import annotations

import logging
from typing import List, Optional

import pandas as pd
import streamlit as st
from streamlit_folium import st_folium

from geogrid.app_config import AppSettings
from geogrid.competitors import (
    SORT_KEYS,
    competitors_from_places,
    filter_competitors,
    primary_business_type,
    sort_competitors,
)
from geogrid.csv_export import display_date, export_filename, grid_csv, grid_dataframe
from geogrid.geogrid_store import GeoGridStore
from geogrid.grid_assembly import build_grid, grid_config_from_result, nearest_point
from geogrid.grid_lib import Coordinate, GridConfig, GridInputError, compute_grid, spacing_to_km
from geogrid.map_generator import build_grid_map, build_preview_map, render_map_png
from geogrid.models import Competitor, GridResult
from geogrid.pdf_export import ExportOptions, build_report_pdf
from geogrid.places_client import PlacesApiError, PlacesClient
from geogrid.ranking import get_palette

logger = logging.getLogger(__name__)


def _competitor_frame(items: List[Competitor]) -> pd.DataFrame:
    return pd.DataFrame([{
        "#": c.ranking,
        "Name": c.name,
        "Rating": c.rating,
        "Reviews": c.user_ratings_total,
        "Distance (km)": round(c.distance_km, 1),
        "Category": c.category,
        "Address": c.address,
    } for c in items])


def results_list(store: GeoGridStore) -> Optional[GridResult]:
    st.subheader("Saved GeoGrids")
    results = store.get_grid_results()
    if not results:
        st.info("No GeoGrid results saved yet.")
        return None

    st.dataframe(pd.DataFrame([{
        "Business": r.business_info.name,
        "Search term": r.search_term,
        "Date": display_date(r.created_at),
        "Grid": f"{r.grid_size}x{r.grid_size}",
        "AGR": round(r.metrics.agr, 1),
        "ATGR": round(r.metrics.atgr, 2),
        "SoLV": r.metrics.solv,
    } for r in results]), use_container_width=True, hide_index=True)

    selected = st.selectbox(
        "Open result",
        options=results,
        format_func=lambda r: f"{r.business_info.name} — {r.search_term} ({display_date(r.created_at)})",
    )
    if st.button("Open", type="primary"):
        return selected
    return None


def fetch_competitors(places: PlacesClient, result: GridResult, origin: Coordinate) -> List[Competitor]:
    business_type = None
    if result.business_info.place_id:
        try:
            details = places.place_details(result.business_info.place_id, fields="types")
            business_type = primary_business_type((details.get("result") or {}).get("types"))
        except PlacesApiError as e:
            logger.warning("Error fetching business type: %s", e)
    query = business_type or result.search_term
    places_found = places.nearby_search(query, origin, place_type=business_type, rank_by="distance")
    return competitors_from_places(places_found, origin)


def competitors_key(result: GridResult, origin: Coordinate) -> str:
    return f"competitors_{result.id}_{origin.lat:.6f}_{origin.lng:.6f}"


def report_competitors(places: Optional[PlacesClient], result: GridResult, cache) -> Optional[List[Competitor]]:
    """Business competitors for the report, fetched into the cache when the tab was never opened."""
    key = competitors_key(result, result.business_info.location)
    if key not in cache and places is not None:
        cache[key] = fetch_competitors(places, result, result.business_info.location)
    return cache.get(key)


def _competitors_section(result: GridResult, places: Optional[PlacesClient], origin: Coordinate, label: str):
    st.markdown(f"#### Competitors near {label}")
    if places is None:
        st.warning("Set GOOGLE_PLACES_API_KEY to look up competitors.")
        return
    key = competitors_key(result, origin)
    if key not in st.session_state:
        try:
            with st.spinner("Loading competitors…"):
                st.session_state[key] = fetch_competitors(places, result, origin)
        except PlacesApiError as e:
            st.error(f"Error fetching competitors: {e}")
            return
    items: List[Competitor] = st.session_state[key]

    c1, c2, c3 = st.columns([3, 2, 1])
    with c1:
        query = st.text_input("Search competitors", key=f"{key}_q")
    with c2:
        sort_key = st.selectbox("Sort by", SORT_KEYS, index=1, key=f"{key}_sort")
    with c3:
        desc = st.checkbox("Desc", key=f"{key}_desc")
    shown = sort_competitors(filter_competitors(items, query), sort_key, desc)
    if not shown:
        st.caption("No competitors found.")
        return
    st.dataframe(_competitor_frame(shown), use_container_width=True, hide_index=True)


def detailed_grid_view(result: GridResult, store: GeoGridStore, places: Optional[PlacesClient],
                       settings: AppSettings) -> bool:
    """Render one saved result; returns True once the result has been deleted."""
    palette = get_palette(settings.palette)
    config = grid_config_from_result(result, settings.default_grid_size, settings.default_distance_km)
    try:
        points = build_grid(config, result.grid_data, palette)
    except GridInputError as e:
        st.error(f"Cannot draw this grid: {e}")
        return False

    biz = result.business_info
    st.subheader(biz.name)
    st.caption(f"{biz.address} · “{result.search_term}” · {display_date(result.created_at)} · "
               f"{config.size}x{config.size} @ {config.spacing_km} km")

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("AGR", f"{result.metrics.agr:.1f}")
    m2.metric("ATGR", f"{result.metrics.atgr:.2f}")
    m3.metric("SoLV", result.metrics.solv)
    m4.metric("Visibility", f"{result.metrics.visibility_percentage:.0f}%")

    tab_map, tab_comp, tab_hist, tab_export = st.tabs(["Ranking Map", "Competitors", "Historical Data", "Export"])

    with tab_map:
        fmap = build_grid_map(points, config, business_name=biz.name, search_term=result.search_term,
                              palette=palette)
        state = st_folium(fmap, width=900, height=600, key=f"map_{result.id}")
        clicked = (state or {}).get("last_object_clicked")
        if clicked and clicked.get("lat") is not None:
            cell = nearest_point(points, Coordinate(clicked["lat"], clicked["lng"]))
            if cell is not None:
                st.session_state[f"cell_{result.id}"] = cell
        with st.expander("Grid data"):
            st.dataframe(grid_dataframe(points), use_container_width=True, hide_index=True)

    with tab_comp:
        cell = st.session_state.get(f"cell_{result.id}")
        if cell is not None and st.button("Show business competitors instead"):
            st.session_state.pop(f"cell_{result.id}")
            cell = None
        if cell is not None:
            label = f"grid point ({cell.row + 1}, {cell.col + 1}), rank {cell.style.label if cell.style else '—'}"
            _competitors_section(result, places, cell.coordinate, label)
        else:
            _competitors_section(result, places, biz.location, biz.name)

    with tab_hist:
        history = store.get_history(result)
        if not history:
            st.caption("No earlier runs for this business and search term.")
        else:
            st.line_chart(pd.DataFrame(
                [{"Date": h.created_at, "AGR": h.metrics.agr, "ATGR": h.metrics.atgr} for h in history + [result]]
            ).set_index("Date"))

    with tab_export:
        st.download_button("Download CSV", data=grid_csv(result, points).encode("utf-8"),
                           file_name=export_filename(result), mime="text/csv")

        opts = ExportOptions(
            include_ranking_map=st.checkbox("Ranking Map Visualization", value=True),
            include_competitive_analysis=st.checkbox("Competitive Analysis", value=True),
            include_historical_data=st.checkbox("Historical Data", value=True),
        )
        if st.button("Build PDF report"):
            try:
                with st.spinner("Rendering report…"):
                    map_png = render_map_png(fmap) if opts.include_ranking_map else None
                    competitors = None
                    if opts.include_competitive_analysis:
                        try:
                            competitors = report_competitors(places, result, st.session_state)
                        except PlacesApiError as e:
                            logger.warning("Competitors unavailable for report: %s", e)
                        if not competitors:
                            st.caption("Competitive Analysis skipped: no competitor data available.")
                    st.session_state[f"pdf_{result.id}"] = build_report_pdf(
                        result, points, competitors=competitors, history=store.get_history(result),
                        map_png=map_png, options=opts, palette=palette)
                    st.session_state[f"png_{result.id}"] = map_png
            except Exception as e:
                logger.exception("Report export failed")
                st.error(f"Report export failed: {e}")
        if st.session_state.get(f"pdf_{result.id}"):
            st.download_button("Download PDF", data=st.session_state[f"pdf_{result.id}"],
                               file_name=export_filename(result).replace(".csv", ".pdf"), mime="application/pdf")
        if st.session_state.get(f"png_{result.id}"):
            st.download_button("Download map PNG", data=st.session_state[f"png_{result.id}"],
                               file_name=export_filename(result).replace(".csv", ".png"), mime="image/png")

    st.divider()
    if st.button("Delete this result", type="secondary"):
        if store.delete_grid_result(result.id):
            st.success("Deleted.")
            return True
        st.error("Failed to delete grid result.")
    return False


def grid_preview(settings: AppSettings):
    st.subheader("Grid Preview")
    c1, c2 = st.columns(2)
    with c1:
        lat = st.number_input("Center latitude", value=40.7128, min_value=-89.999, max_value=89.999, format="%.6f")
        size = st.number_input("Grid size", value=settings.default_grid_size, min_value=1, max_value=21, step=2)
    with c2:
        lng = st.number_input("Center longitude", value=-74.0060, min_value=-180.0, max_value=180.0, format="%.6f")
        spacing = st.number_input("Point spacing", value=float(settings.default_distance_km), min_value=0.1, step=0.1)
    unit = st.radio("Spacing unit", ["km", "mi"], horizontal=True)

    if int(size) % 2 == 0:
        st.warning("Even grid sizes have no middle cell; the business marker will sit off the middle of the grid.")
    try:
        config = GridConfig(Coordinate(lat, lng), int(size), spacing_to_km(spacing, unit))
        points = [p for row in compute_grid(config.center, config.size, config.spacing_km) for p in row]
    except GridInputError as e:
        st.error(str(e))
        return
    st.caption(f"{len(points)} points, {config.spacing_km:.3f} km apart")
    st_folium(build_preview_map(points, config), width=900, height=600, key="preview_map")

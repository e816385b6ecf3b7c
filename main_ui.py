# ================================
# FILE: main_ui.py
# PURPOSE:
# - GeoGrid dashboard: saved results list -> detailed grid view
# - Grid preview page for trying a center / size / spacing before a run
# ================================

"""
GeoGrid dashboard

FLAGS / ENVs TO KNOW
- SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY: required; results are read from `grid_results` + `businesses`.
- GOOGLE_PLACES_API_KEY: needed for competitor lookups (map still renders without it).
- GEOGRID_DEFAULT_SIZE / GEOGRID_DEFAULT_DISTANCE_KM: fallbacks for results saved with an unusable size/distance.
- GEOGRID_PALETTE=dashboard|map: marker colors.

Run with `streamlit run main_ui.py`. The Places proxy routes live in `api_server.py`.
"""

from __future__ import annotations

import streamlit as st

from geogrid.app_config import get_places_client, get_supabase, load_settings, setup_logging
from geogrid.geogrid_store import GeoGridStore
from geogrid.grid_view import detailed_grid_view, grid_preview, results_list

# ---------------------------------
# App bootstrap
# ---------------------------------
settings = load_settings()
setup_logging(settings.log_level)
st.set_page_config(page_title="GeoGrid Ranking Dashboard", layout="wide")
st.title("GeoGrid Ranking Dashboard")

if "selected_result" not in st.session_state:
    st.session_state.selected_result = None

page = st.sidebar.radio("View", ["Dashboard", "Grid Preview"])

if page == "Grid Preview":
    grid_preview(settings)
    st.stop()

try:
    store = GeoGridStore(get_supabase(settings))
except RuntimeError as e:
    st.error(str(e))
    st.stop()

if not store.init_database():
    st.warning("Some tables are missing. Please run the database migrations.")

places = get_places_client(settings)

# ---------------------------------
# Results list / detail
# ---------------------------------
if st.session_state.selected_result is None:
    chosen = results_list(store)
    if chosen:
        st.session_state.selected_result = chosen
        st.rerun()
else:
    if st.button("⬅️ Back to results"):
        st.session_state.selected_result = None
        st.rerun()
    deleted = detailed_grid_view(st.session_state.selected_result, store, places, settings)
    if deleted:
        st.session_state.selected_result = None
        st.rerun()

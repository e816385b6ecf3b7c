# --- File: geogrid/map_generator.py ---
# Folium maps for a GeoGrid (ranked markers + preview) and headless PNG capture.

from __future__ import annotations

import logging
import os
import tempfile
import time
from string import Template
from typing import Dict, List, Optional, Sequence, Tuple

import folium
from branca.element import Element
from geopy.distance import geodesic

from geogrid.grid_lib import Coordinate, GridConfig, GridPoint
from geogrid.ranking import TIER_LABELS, TIER_ORDER, DEFAULT_PALETTE

logger = logging.getLogger(__name__)

POSI_TILE_URL = "https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png"
POSI_TILE_ATTR = "© OpenStreetMap contributors © CARTO"
WINDOW_DEFAULT = (1200, 800)
TILE_WAIT_HARD_TIMEOUT_SEC = 12.0
TILE_POLL_INTERVAL_SEC = 0.25
MARKER_PX = 30
# leaflet stacks by pixel position first; scale z-order well past map height
Z_SCALE = 1000

MARKER_SVG = Template(
    """<svg xmlns="http://www.w3.org/2000/svg" width="$size" height="$size">"""
    """<circle cx="$half" cy="$half" r="$r" fill="$color" stroke="white" stroke-width="2" />"""
    """<text x="$half" y="$ty" font-family="Arial" font-size="11" font-weight="bold" fill="white" """
    """text-anchor="middle">$label</text></svg>"""
)


def rank_marker_html(color: str, label: str, size: int = MARKER_PX) -> str:
    half = size // 2
    return MARKER_SVG.substitute(size=size, half=half, r=half - 3, ty=half + 5, color=color, label=label)


def _grid_radius_m(center: Coordinate, points: Sequence[GridPoint]) -> int:
    if not points:
        return 200
    return max(200, int(max(geodesic(center.as_tuple(), p.coordinate.as_tuple()).km for p in points) * 1000))


def _bounds(points: Sequence[GridPoint]) -> List[List[float]]:
    lats = [p.coordinate.lat for p in points]
    lngs = [p.coordinate.lng for p in points]
    return [[min(lats), min(lngs)], [max(lats), max(lngs)]]


def _base_map(center: Coordinate, window: Tuple[int, int]) -> folium.Map:
    m = folium.Map(
        location=[center.lat, center.lng],
        zoom_start=12,
        tiles=None,
        control_scale=True,
        max_zoom=19,
        width=window[0],
        height=window[1],
    )
    folium.TileLayer(POSI_TILE_URL, name="Positron", attr=POSI_TILE_ATTR, control=False).add_to(m)
    return m


def _legend(palette: Dict[str, str]) -> Element:
    rows = "".join(
        f"<div><span style='display:inline-block;width:12px;height:12px;border:2px solid #fff;"
        f"background:{palette[t]};border-radius:50%;margin-right:6px;'></span>{TIER_LABELS[t]}</div>"
        for t in TIER_ORDER
    )
    return Element(
        "<div style='position: fixed; bottom: 12px; right: 12px; z-index: 9999; background: rgba(255,255,255,0.96); "
        "border: 1px solid #d0d0d0; border-radius: 6px; padding: 10px 12px; font-size: 13px; line-height: 1.5;'>"
        f"<div style='font-weight:600; margin-bottom:4px;'>Ranking</div>{rows}</div>"
    )


def build_grid_map(points: Sequence[GridPoint], config: GridConfig, *, business_name: str = "",
                   search_term: str = "", palette: Optional[Dict[str, str]] = None,
                   window: Tuple[int, int] = WINDOW_DEFAULT) -> folium.Map:
    """Ranked markers for every styled cell, plus the business pin and the grid extent ring."""
    palette = palette or DEFAULT_PALETTE
    center = config.center
    m = _base_map(center, window)

    folium.Circle(
        location=[center.lat, center.lng],
        radius=_grid_radius_m(center, points),
        color="#4285F4",
        fill=True,
        fill_opacity=0.05,
        weight=1.2,
        opacity=0.8,
        dash_array="6 6",
    ).add_to(m)

    for p in points:
        if p.style is None:
            continue
        title = f'Ranking: {p.style.label} for "{search_term}"' if search_term else f"Ranking: {p.style.label}"
        folium.Marker(
            location=[p.coordinate.lat, p.coordinate.lng],
            icon=folium.DivIcon(
                html=rank_marker_html(p.style.color, p.style.label),
                icon_size=(MARKER_PX, MARKER_PX),
                icon_anchor=(MARKER_PX // 2, MARKER_PX // 2),
            ),
            tooltip=title,
            z_index_offset=p.style.z_order * Z_SCALE,
        ).add_to(m)

    folium.Marker(
        location=[center.lat, center.lng],
        tooltip=business_name or "Business location",
        icon=folium.Icon(color="blue", icon="star"),
        z_index_offset=100 * Z_SCALE,
    ).add_to(m)

    m.get_root().html.add_child(_legend(palette))
    if points:
        m.fit_bounds(_bounds(points))
    return m


def build_preview_map(points: Sequence[GridPoint], config: GridConfig,
                      window: Tuple[int, int] = WINDOW_DEFAULT) -> folium.Map:
    """Unranked grid layout; the center cell is drawn larger."""
    m = _base_map(config.center, window)
    mid = config.offset * config.size + config.offset
    for index, p in enumerate(points):
        is_center = index == mid
        folium.CircleMarker(
            location=[p.coordinate.lat, p.coordinate.lng],
            radius=8 if is_center else 4,
            weight=2,
            color="#ffffff",
            fill=True,
            fill_color="#ef4444" if is_center else "#4285F4",
            fill_opacity=0.95,
            tooltip="Center Point" if is_center else f"Grid Point {index}",
        ).add_to(m)
    if points:
        m.fit_bounds(_bounds(points))
    return m


def _set_exact_viewport(driver, width: int, height: int):
    """Force Chrome's viewport to the exact size using CDP; works in headless."""
    try:
        driver.set_window_size(width, height)
    except Exception as e:
        logger.warning("[MAP QA] set_window_size failed: %s", e)
    try:
        driver.execute_cdp_cmd(
            "Emulation.setDeviceMetricsOverride",
            {
                "width": int(width),
                "height": int(height),
                "deviceScaleFactor": 1,
                "mobile": False,
                "screenWidth": int(width),
                "screenHeight": int(height),
            },
        )
    except Exception as e:
        logger.warning("[MAP QA] CDP viewport override failed: %s", e)


def save_html_and_png(m: folium.Map, html_path: str, png_path: str, window: Tuple[int, int] = WINDOW_DEFAULT):
    from selenium import webdriver
    from selenium.common.exceptions import JavascriptException
    from selenium.webdriver.chrome.options import Options
    from selenium.webdriver.common.by import By

    m.save(html_path)

    options = Options()
    options.add_argument("--headless=new")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--force-device-scale-factor=1")
    options.add_argument(f"--window-size={window[0]},{window[1]}")

    driver = webdriver.Chrome(options=options)
    try:
        _set_exact_viewport(driver, window[0], window[1])
        driver.get("file://" + os.path.abspath(html_path))
        _set_exact_viewport(driver, window[0], window[1])

        # Wait until tiles are loaded
        deadline = time.time() + TILE_WAIT_HARD_TIMEOUT_SEC
        while time.time() < deadline:
            try:
                loading = driver.execute_script("return document.querySelectorAll('.leaflet-tile-loading').length")
                tiles_seen = driver.execute_script("return document.querySelectorAll('.leaflet-tile-loaded').length")
            except JavascriptException:
                loading, tiles_seen = 0, 0
            if int(loading) == 0 and int(tiles_seen) > 0:
                time.sleep(0.4)
                break
            time.sleep(TILE_POLL_INTERVAL_SEC)
        else:
            logger.warning("[MAP QA] tiles still loading after %.0fs; capturing anyway", TILE_WAIT_HARD_TIMEOUT_SEC)

        driver.find_element(By.ID, m.get_name()).screenshot(png_path)
    finally:
        driver.quit()

    try:
        from PIL import Image
        with Image.open(png_path) as im:
            w, h = im.size
        logger.info("[MAP QA] final_png=%sx%s expected=%sx%s", w, h, window[0], window[1])
    except OSError as e:
        logger.warning("[MAP QA] could not read PNG for QA: %s", e)


def render_map_png(m: folium.Map, window: Tuple[int, int] = WINDOW_DEFAULT) -> bytes:
    """PNG bytes of the map element, captured in headless Chrome."""
    with tempfile.TemporaryDirectory() as tmpdir:
        html_path = os.path.join(tmpdir, "grid_map.html")
        png_path = os.path.join(tmpdir, "grid_map.png")
        save_html_and_png(m, html_path, png_path, window=window)
        with open(png_path, "rb") as f:
            return f.read()

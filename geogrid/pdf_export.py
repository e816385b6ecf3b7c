from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from geogrid.csv_export import display_date
from geogrid.grid_assembly import rank_summary
from geogrid.grid_lib import GridPoint
from geogrid.models import Competitor, GridResult
from geogrid.ranking import DEFAULT_PALETTE, TIER_LABELS, TIER_ORDER

logger = logging.getLogger(__name__)

FONT = "Helvetica"


@dataclass
class ExportOptions:
    include_ranking_map: bool = True
    include_competitive_analysis: bool = True
    include_historical_data: bool = True


def _latin1(text) -> str:
    # core PDF fonts are latin-1 only
    return str(text).encode("latin-1", "replace").decode("latin-1")


def rank_distribution_png(summary: Dict[str, int], palette: Optional[Dict[str, str]] = None) -> bytes:
    palette = palette or DEFAULT_PALETTE
    labels = [TIER_LABELS[t] for t in TIER_ORDER]
    values = [summary.get(t, 0) for t in TIER_ORDER]
    fig, ax = plt.subplots(figsize=(6, 3))
    bars = ax.bar(labels, values, color=[palette[t] for t in TIER_ORDER])
    ax.set_title("Grid points by ranking")
    for bar in bars:
        height = bar.get_height()
        ax.annotate(f"{height:,.0f}", xy=(bar.get_x() + bar.get_width() / 2, height),
                    xytext=(0, 3), textcoords="offset points", ha="center", va="bottom")
    plt.tight_layout()
    buf = io.BytesIO()
    fig.savefig(buf, format="png")
    plt.close(fig)
    return buf.getvalue()


def _heading(pdf: FPDF, text: str, size: int = 13):
    pdf.set_font(FONT, "B", size)
    pdf.cell(0, 9, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font(FONT, size=10)


def _row(pdf: FPDF, widths: Sequence[float], values: Sequence, bold: bool = False):
    pdf.set_font(FONT, "B" if bold else "", 9)
    for w, v in zip(widths, values):
        pdf.cell(w, 6, _latin1(v)[:60], border=1)
    pdf.ln(6)


def build_report_pdf(result: GridResult, points: Sequence[GridPoint], *,
                     competitors: Optional[List[Competitor]] = None,
                     history: Optional[List[GridResult]] = None,
                     map_png: Optional[bytes] = None,
                     options: Optional[ExportOptions] = None,
                     palette: Optional[Dict[str, str]] = None) -> bytes:
    options = options or ExportOptions()
    biz = result.business_info

    pdf = FPDF(orientation="P", unit="mm", format="Letter")
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()
    pdf.set_font(FONT, "B", 16)
    pdf.cell(0, 10, _latin1(f"GeoGrid Report: {biz.name}"), align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font(FONT, size=10)
    pdf.cell(0, 6, _latin1(biz.address), align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(0, 6, _latin1(f"Search term: {result.search_term}  |  {display_date(result.created_at)}"),
             align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)

    _heading(pdf, "Metrics")
    m = result.metrics
    for label, value in (
        ("AGR (Average Grid Ranking)", f"{m.agr:.1f}"),
        ("ATGR (Average Top Grid Ranking)", f"{m.atgr:.2f}"),
        ("SoLV (Share of Local Voice)", m.solv),
        ("Visibility", f"{m.visibility_percentage:.1f}%"),
    ):
        pdf.cell(90, 6, _latin1(label))
        pdf.cell(0, 6, _latin1(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(3)

    if options.include_ranking_map and map_png:
        _heading(pdf, "Ranking Map")
        pdf.image(io.BytesIO(map_png), w=190)
        pdf.ln(3)

    chart = rank_distribution_png(rank_summary(points), palette)
    pdf.image(io.BytesIO(chart), w=150)

    if options.include_competitive_analysis and competitors:
        pdf.add_page()
        _heading(pdf, "Competitive Analysis")
        widths = (12, 70, 20, 22, 22, 40)
        _row(pdf, widths, ("#", "Name", "Rating", "Reviews", "Dist (km)", "Category"), bold=True)
        for c in competitors:
            _row(pdf, widths, (c.ranking, c.name, c.rating if c.rating is not None else "-",
                               c.user_ratings_total, f"{c.distance_km:.1f}", c.category))

    if options.include_historical_data and history:
        pdf.ln(4)
        _heading(pdf, "Historical Data")
        widths = (60, 30, 30, 30)
        _row(pdf, widths, ("Date", "AGR", "ATGR", "SoLV"), bold=True)
        for h in history + [result]:
            _row(pdf, widths, (display_date(h.created_at), f"{h.metrics.agr:.1f}",
                               f"{h.metrics.atgr:.2f}", h.metrics.solv))

    logger.info("Built PDF report for %s (%d grid points)", biz.name, len(points))
    return bytes(pdf.output())

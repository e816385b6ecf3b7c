from __future__ import annotations

import csv
import io
import re
import time
from datetime import datetime
from typing import Iterable, List, Optional

import pandas as pd

from geogrid.grid_lib import GridPoint
from geogrid.models import GridResult

CSV_HEADER = ["Row", "Column", "Latitude", "Longitude", "Ranking"]


def _quoted(text: str) -> str:
    return '"' + str(text).replace('"', '""') + '"'


def display_date(created_at: str) -> str:
    try:
        dt = datetime.fromisoformat(str(created_at).replace("Z", "+00:00"))
    except ValueError:
        return str(created_at)
    return dt.strftime("%m/%d/%Y, %I:%M:%S %p")


def export_filename(result: GridResult, now_ms: Optional[int] = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    name = re.sub(r"\s+", "-", result.business_info.name)
    return f"geogrid-{name}-{stamp}.csv"


def grid_csv(result: GridResult, points: Iterable[GridPoint]) -> str:
    """CSV export: preamble, one row per grid cell (row-major, rank verbatim), metrics trailer."""
    buf = io.StringIO()
    buf.write(_quoted(f"GeoGrid Results for {result.business_info.name}") + "\n")
    buf.write(_quoted(f"Search Term: {result.search_term}") + "\n")
    buf.write(_quoted(f"Date: {display_date(result.created_at)}") + "\n\n")

    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for p in points:
        rank = p.rank if p.rank is not None else ""
        writer.writerow([p.row + 1, p.col + 1, f"{p.coordinate.lat:.6f}", f"{p.coordinate.lng:.6f}", rank])

    m = result.metrics
    buf.write("\n" + _quoted("Metrics:") + "\n")
    buf.write(f"{_quoted('AGR (Average Grid Ranking)')},{float(m.agr or 0):.1f}\n")
    buf.write(f"{_quoted('ATGR (Average Top Grid Ranking)')},{float(m.atgr or 0):.2f}\n")
    buf.write(f"{_quoted('SoLV (Share of Local Voice)')},{m.solv or 0}\n")
    return buf.getvalue()


def parse_grid_csv(text: str) -> List[List[dict]]:
    """Read the cell block of an exported CSV back into a row-major matrix of cells."""
    rows: List[List[dict]] = []
    in_block = False
    for record in csv.reader(io.StringIO(text)):
        if not in_block:
            in_block = record == CSV_HEADER
            continue
        if not record or not record[0].strip():
            break
        r, c = int(record[0]) - 1, int(record[1]) - 1
        while len(rows) <= r:
            rows.append([])
        if c != len(rows[r]):
            raise ValueError(f"Out-of-order cell ({r + 1},{c + 1}) in grid CSV")
        rank = record[4].strip()
        rows[r].append({
            "lat": float(record[2]),
            "lng": float(record[3]),
            "rank": int(rank) if rank else None,
        })
    if not in_block:
        raise ValueError("No grid header found in CSV")
    return rows


def grid_dataframe(points: Iterable[GridPoint]) -> pd.DataFrame:
    records = [
        {
            "Row": p.row + 1,
            "Column": p.col + 1,
            "Latitude": p.coordinate.lat,
            "Longitude": p.coordinate.lng,
            "Ranking": p.rank,
            "Label": p.style.label if p.style else "",
        }
        for p in points
    ]
    return pd.DataFrame(records, columns=CSV_HEADER + ["Label"])

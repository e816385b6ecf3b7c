# ================================
# FILE: geogrid/geogrid_store.py
# PURPOSE: Supabase persistence for businesses, grid_results and competitors
# ================================

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from postgrest.exceptions import APIError
from supabase import Client

from geogrid.models import Competitor, GridResult

logger = logging.getLogger(__name__)

GRID_RESULT_COLUMNS = """
        id,
        search_term,
        created_at,
        grid_size,
        grid_data,
        metrics,
        google_region,
        distance_km,
        businesses!inner (*)
"""
REQUIRED_TABLES = ("businesses", "grid_results", "business_reviews")


class StoreError(RuntimeError):
    pass


def _first_id(resp, what: str):
    rows = getattr(resp, "data", None) or []
    if not rows or rows[0].get("id") is None:
        raise StoreError(f"Failed to get {what} ID after insertion")
    return rows[0]["id"]


class GeoGridStore:
    def __init__(self, client: Client):
        self.client = client

    def init_database(self) -> bool:
        """True when every table the dashboard reads exists."""
        missing = []
        for table in REQUIRED_TABLES:
            try:
                self.client.table(table).select("id").limit(1).execute()
            except APIError as e:
                logger.debug("Table check failed for %s: %s", table, e)
                missing.append(table)
        if missing:
            logger.warning("Some tables are missing (%s). Please run the database migrations.", ", ".join(missing))
            return False
        return True

    def save_grid_result(self, result: GridResult) -> GridResult:
        try:
            resp = self.client.table("businesses").insert(result.business_info.to_row()).execute()
            business_id = _first_id(resp, "business")
            resp = self.client.table("grid_results").insert(result.to_row(business_id)).execute()
            grid_id = _first_id(resp, "grid result")
        except APIError as e:
            logger.error("Error saving grid result to database: %s", e)
            raise StoreError(str(e)) from e
        result.id = str(grid_id)
        return result

    def get_grid_results(self) -> List[GridResult]:
        try:
            resp = (
                self.client.table("grid_results")
                .select(GRID_RESULT_COLUMNS)
                .order("created_at", desc=True)
                .execute()
            )
        except APIError as e:
            logger.error("Error fetching grid results: %s", e)
            raise StoreError(str(e)) from e
        return [GridResult.from_row(row) for row in resp.data or []]

    def get_grid_result_by_id(self, result_id: str) -> Optional[GridResult]:
        try:
            resp = (
                self.client.table("grid_results")
                .select(GRID_RESULT_COLUMNS)
                .eq("id", result_id)
                .limit(1)
                .execute()
            )
        except APIError as e:
            logger.error("Error fetching grid result by ID %s: %s", result_id, e)
            return None
        rows = resp.data or []
        return GridResult.from_row(rows[0]) if rows else None

    def get_history(self, result: GridResult) -> List[GridResult]:
        """Earlier runs of the same business + search term, oldest first."""
        try:
            resp = (
                self.client.table("grid_results")
                .select(GRID_RESULT_COLUMNS)
                .eq("search_term", result.search_term)
                .eq("businesses.name", result.business_info.name)
                .order("created_at", desc=False)
                .execute()
            )
        except APIError as e:
            logger.error("Error fetching history for %s: %s", result.id, e)
            return []
        history = [GridResult.from_row(row) for row in resp.data or []]
        return [h for h in history if h.id != result.id and h.created_at <= result.created_at]

    def delete_grid_result(self, result_id: str) -> bool:
        try:
            self.client.table("grid_results").delete().eq("id", result_id).execute()
        except APIError as e:
            logger.error("Error deleting grid result %s: %s", result_id, e)
            return False
        return True

    def save_competitors(self, grid_result_id: str, competitors: Iterable[Competitor]) -> bool:
        rows = [c.to_row(grid_result_id) for c in competitors]
        if not rows:
            return True
        try:
            self.client.table("competitors").insert(rows).execute()
        except APIError as e:
            logger.error("Error saving competitors: %s", e)
            return False
        return True

    def get_competitors(self, grid_result_id: str) -> List[Competitor]:
        try:
            resp = self.client.table("competitors").select("*").eq("grid_result_id", grid_result_id).execute()
        except APIError as e:
            logger.error("Error fetching competitors: %s", e)
            return []
        return [Competitor.from_row(row, ranking=i + 1) for i, row in enumerate(resp.data or [])]

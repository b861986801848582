"""Export service — render current matches as an Excel workbook."""

import io
import logging

import pandas as pd

from core.repository import DEFAULT_MATCH_LIMIT, ScreenerRepository

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "matched_at", "query", "market_ticker", "event_ticker", "title", "subtitle",
    "category", "yes_bid", "yes_ask", "no_bid", "no_ask", "volume", "seen",
    "watchlist_id", "id",
]


class ExportService:
    def __init__(self, repo: ScreenerRepository):
        self.repo = repo

    async def matches_frame(self, limit: int = DEFAULT_MATCH_LIMIT) -> pd.DataFrame:
        """Current matches as a DataFrame with a stable column order."""
        matches = await self.repo.get_matches(limit=limit)
        if not matches:
            return pd.DataFrame(columns=EXPORT_COLUMNS)

        df = pd.DataFrame([m.model_dump() for m in matches])
        # Excel cannot store timezone-aware datetimes
        df["matched_at"] = pd.to_datetime(df["matched_at"], utc=True).dt.tz_localize(None)
        cols = [c for c in EXPORT_COLUMNS if c in df.columns]
        cols += [c for c in df.columns if c not in cols]
        return df[cols]

    async def export_matches_xlsx(self, limit: int = DEFAULT_MATCH_LIMIT) -> io.BytesIO:
        """Write current matches to an in-memory XLSX file."""
        df = await self.matches_frame(limit=limit)
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Matches")
        output.seek(0)
        logger.info("Exported %d matches to XLSX", len(df))
        return output

"""Client for reading events from a Google Sheets gviz endpoint."""
import logging
from typing import List, Optional

import requests

from processor.errors import NetworkError
from processor.models import EventRecord
from processor.response_decoder import decode_response
from processor.row_normalizer import RowNormalizer
from storage.sheet_cache import SheetCache

logger = logging.getLogger(__name__)


class SheetClient:
    """Fail-soft reader for spreadsheet-backed events."""

    QUERY_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq"

    def __init__(
        self,
        cache: SheetCache,
        normalizer: Optional[RowNormalizer] = None,
        timeout: int = 30,
        by_label: bool = False
    ):
        """
        Initialize the sheet client.

        Args:
            cache: Shared sheet cache
            normalizer: Row normalizer (default: RowNormalizer())
            timeout: HTTP request timeout in seconds (default: 30)
            by_label: Normalize rows by column label instead of position
        """
        self.cache = cache
        self.normalizer = normalizer or RowNormalizer()
        self.timeout = timeout
        self.by_label = by_label

    def build_url(self, sheet_id: str, tab_id: str = '0') -> str:
        return (
            f"{self.QUERY_URL.format(sheet_id=sheet_id)}"
            f"?tqx=out:json&gid={tab_id}"
        )

    def fetch(self, sheet_id: str, tab_id: str = '0') -> List[EventRecord]:
        """
        Fetch and normalize events for a sheet tab.

        A live fetch is always attempted. On any failure the last cached
        rows for the key are returned, or an empty list; errors are logged
        and never raised.

        Args:
            sheet_id: Spreadsheet ID
            tab_id: Grid ID of the tab (default: '0')

        Returns:
            List of EventRecord objects
        """
        key = self.cache.make_key(sheet_id, tab_id)
        should_refresh = key not in self.cache or self.cache.is_stale()
        logger.debug(f"Cache check for {key}: should_refresh={should_refresh}")

        try:
            text = self._fetch_text(sheet_id, tab_id)
            table = decode_response(text)
            records = self.normalizer.normalize_table(table, by_label=self.by_label)
        except Exception as e:
            logger.error(
                f"Error fetching Google Sheet data for {key}: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            entry = self.cache.get(key)
            if entry is not None:
                logger.info(f"Serving cached data for {key} (version {entry.version})")
                return entry.rows
            return []

        entry = self.cache.set(key, records)
        logger.info(
            f"Fetched {len(records)} events for {key} (version {entry.version})"
        )
        return records

    def invalidate(self, sheet_id: str, tab_id: str = '0', refetch: bool = True) -> List[EventRecord]:
        """
        Drop the cached entry for a sheet tab, optionally fetching it again.

        Returns:
            Freshly fetched events, or an empty list when refetch is False
        """
        self.cache.invalidate(self.cache.make_key(sheet_id, tab_id))
        if not refetch:
            return []
        return self.fetch(sheet_id, tab_id)

    def _fetch_text(self, sheet_id: str, tab_id: str) -> str:
        """
        Fetch the raw gviz response body.

        Raises:
            NetworkError: If the request fails, times out, or returns an error status
        """
        url = self.build_url(sheet_id, tab_id)
        logger.info(f"Fetching Google Sheet from: {url}")

        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(f"Failed to fetch {url}: {e}") from e

        return response.text

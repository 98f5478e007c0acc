"""Data models for sheet ingestion and scrape-merge processing."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional


@dataclass
class SheetColumn:
    """Column descriptor from a decoded gviz table."""
    id: str
    label: str
    type: str = 'string'


@dataclass
class SheetCell:
    """Typed cell: raw value `v` and optional formatted string `f`."""
    v: Any = None
    f: Optional[str] = None


@dataclass
class SheetTable:
    """Decoded spreadsheet table."""
    columns: List[SheetColumn]
    rows: List[List[Optional[SheetCell]]]


@dataclass
class EventRecord:
    """Canonical, normalized event."""
    name: str
    tags: List[str] = field(default_factory=list)
    # A datetime, or the raw cell value when no date format matches
    start_time: Any = None
    end_time: Any = None
    location: str = ''
    description: str = ''
    image_url: str = ''
    registration_link: Optional[str] = None
    date: Optional[datetime] = None
    time: Optional[str] = None


@dataclass
class ScrapedEvent:
    """Event extracted from the agenda page."""
    name: str
    start_time: datetime
    end_time: datetime
    location: str
    description: str
    image_url: str
    tags: List[str] = field(default_factory=list)
    registration_link: Optional[str] = None


@dataclass
class CacheEntry:
    """Cached rows for one (sheet, tab) key."""
    rows: list
    fetched_at: float
    version: int


@dataclass
class SyncResult:
    """Result of one scrape-merge-write cycle."""
    scraped: int
    existing: int
    added: int

"""Row normalizer for converting raw sheet rows into event records."""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from processor.errors import ParseError
from processor.models import EventRecord, SheetCell, SheetColumn, SheetTable
from processor.response_decoder import column_key

logger = logging.getLogger(__name__)

DRIVE_PREFIXES = (
    'https://drive.google.com/',
    'https://docs.google.com/',
)
DRIVE_FILE_ID_RE = re.compile(r'[/=]([A-Za-z0-9_-]{25,})')
DRIVE_CONTENT_URL = 'https://lh3.googleusercontent.com/d/{file_id}'
IMAGES_DIR = '/images'
FALLBACK_IMAGE = '/images/astro-post.jpg'

DATE_LITERAL_RE = re.compile(
    r'^Date\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)'
    r'(?:\s*,\s*(\d+))?(?:\s*,\s*(\d+))?(?:\s*,\s*(\d+))?(?:\s*,\s*\d+)?\s*\)$'
)
CLOCK_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})$')


def transform_image_url(ref: Optional[str]) -> str:
    """
    Resolve a flyer reference into an image URL.

    Drive-hosted links are rewritten to a direct-content URL, absolute URLs
    and paths pass through, bare filenames resolve under the images
    directory, and a missing reference yields the fallback image.

    Args:
        ref: Raw flyer cell value

    Returns:
        Image URL or path
    """
    if ref is None or not str(ref).strip():
        return FALLBACK_IMAGE

    ref = str(ref).strip()

    if ref.startswith(DRIVE_PREFIXES):
        match = DRIVE_FILE_ID_RE.search(ref)
        if match:
            return DRIVE_CONTENT_URL.format(file_id=match.group(1))
        logger.warning(f"Drive link without a file id: {ref}")
        return ref

    if ref.startswith(('http://', 'https://', '/')):
        return ref

    return f"{IMAGES_DIR}/{ref}"


class RowNormalizer:
    """Normalizer mapping raw sheet rows to EventRecord objects."""

    # Positional layout of the display tab
    NAME_COL = 0
    DATE_COL = 1
    TIME_COL = 2
    LOCATION_COL = 3
    TYPE_COL = 4
    URL_COL = 5
    FLYER_COL = 6

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the normalizer.

        Args:
            clock: Returns the current UTC datetime; used when a bare time
                is merged onto today's date
        """
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def normalize_table(self, table: SheetTable, by_label: bool = False) -> List[EventRecord]:
        """
        Normalize every row of a decoded table.

        Args:
            table: Decoded sheet table
            by_label: Map cells by column label instead of position

        Returns:
            List of EventRecord objects; rows without a name are skipped
        """
        records = []

        for index, cells in enumerate(table.rows):
            try:
                if by_label:
                    record = self.normalize_labeled_row(table.columns, cells)
                else:
                    record = self.normalize_row(cells)
            except Exception as e:
                logger.warning(f"Failed to normalize row {index}: {e}")
                continue

            if record is None:
                logger.warning(f"Skipping row {index} without an event name")
                continue
            records.append(record)

        logger.info(
            f"Normalized {len(records)} events out of {len(table.rows)} rows"
        )
        return records

    def normalize_row(self, cells: List[Optional[SheetCell]]) -> Optional[EventRecord]:
        """
        Normalize a row using the fixed positional column layout.

        Args:
            cells: Row cells in column order

        Returns:
            EventRecord, or None when the name cell is blank
        """
        name = _cell_text(_cell_at(cells, self.NAME_COL))
        if not name:
            return None

        date_text = _cell_text(_cell_at(cells, self.DATE_COL))
        time_text = _cell_text(_cell_at(cells, self.TIME_COL))

        date = self.parse_date(date_text) if date_text else None
        if date_text and date is None:
            logger.warning(f"Invalid date format for event '{name}': {date_text}")

        time = self.parse_time(time_text) if time_text else None
        if time_text and time is None:
            logger.warning(f"Invalid time format for event '{name}': {time_text}")

        start_time = None
        if date is not None:
            start_time = date
            if time is not None:
                hours, minutes = time.split(':')
                start_time = date.replace(hour=int(hours), minute=int(minutes))

        url = _cell_text(_cell_at(cells, self.URL_COL))

        return EventRecord(
            name=name,
            tags=_split_tags(_cell_text(_cell_at(cells, self.TYPE_COL))),
            start_time=start_time,
            end_time=None,
            location=_cell_text(_cell_at(cells, self.LOCATION_COL)),
            description='',
            image_url=transform_image_url(_cell_text(_cell_at(cells, self.FLYER_COL))),
            registration_link=url or None,
            date=date,
            time=time
        )

    def normalize_labeled_row(
        self,
        columns: List[SheetColumn],
        cells: List[Optional[SheetCell]]
    ) -> Optional[EventRecord]:
        """
        Normalize a row of the canonical tab by column label.

        Args:
            columns: Table column descriptors
            cells: Row cells in column order

        Returns:
            EventRecord, or None when the name cell is blank
        """
        by_key: Dict[str, Optional[SheetCell]] = {
            column_key(column.label): _cell_at(cells, index)
            for index, column in enumerate(columns)
        }

        name = _cell_text(by_key.get('evento'))
        if not name:
            return None

        start_time = self.parse_cell_datetime(by_key.get('horário_de_início'))
        end_time = self.parse_cell_datetime(by_key.get('horário_de_término'))
        link = _cell_text(by_key.get('link_de_inscrição'))

        date = None
        time = None
        if isinstance(start_time, datetime):
            date = start_time.replace(hour=0, minute=0, second=0, microsecond=0)
            time = start_time.strftime('%H:%M')

        return EventRecord(
            name=name,
            tags=_split_tags(_cell_text(by_key.get('tipo_de_evento'))),
            start_time=start_time,
            end_time=end_time,
            location=_cell_text(by_key.get('local')),
            description=_cell_text(by_key.get('descrição')),
            image_url=transform_image_url(_cell_text(by_key.get('flyer'))),
            registration_link=link or None,
            date=date,
            time=time
        )

    def parse_date(self, date_str: str) -> Optional[datetime]:
        """
        Parse a DD/MM/YYYY date as UTC midnight.

        Args:
            date_str: Date string

        Returns:
            Timezone-aware datetime or None if any component is invalid
        """
        parts = date_str.strip().split('/')
        if len(parts) < 3:
            return None

        try:
            day, month, year = (int(part) for part in parts[:3])
            return datetime(year, month, day, tzinfo=timezone.utc)
        except ValueError:
            return None

    def parse_time(self, time_str: str) -> Optional[str]:
        """
        Parse an HH:MM time into a zero-padded string.

        Args:
            time_str: Time string; trailing seconds are ignored

        Returns:
            'HH:MM' string or None if invalid
        """
        parts = time_str.strip().split(':')
        if len(parts) < 2:
            return None

        try:
            hours, minutes = int(parts[0]), int(parts[1])
        except ValueError:
            return None

        if not (0 <= hours <= 23 and 0 <= minutes <= 59):
            return None

        return f"{hours:02d}:{minutes:02d}"

    def parse_cell_datetime(self, cell: Optional[SheetCell]) -> Any:
        """
        Parse a date/time cell through the fallback chain.

        Stages, in order: the formatted 'DD/MM/YYYY HH:MM:SS' string, the
        Date(y,m,d,h,mi,s) literal, an ISO-8601 string, a bare HH:MM merged
        onto today's date, and finally the raw value unchanged.

        Args:
            cell: Sheet cell or None

        Returns:
            UTC datetime from the first stage that succeeds, otherwise the
            raw cell value; None for an empty cell
        """
        if cell is None or not _cell_text(cell):
            return None

        raw = cell.v if cell.v is not None else cell.f

        stages: List[Tuple[str, Callable[[], datetime]]] = []
        if cell.f:
            stages.append(('formatted', lambda: self._parse_formatted(cell.f)))
        stages.extend([
            ('date_literal', lambda: self._parse_date_literal(raw)),
            ('iso', lambda: self._parse_iso(raw)),
            ('clock_time', lambda: self._parse_clock_time(raw)),
        ])

        for stage_name, stage in stages:
            try:
                return stage()
            except ParseError as e:
                logger.debug(f"Date stage '{stage_name}' failed: {e}")

        logger.warning(f"Unrecognized date value, keeping raw: {raw!r}")
        return raw

    def _parse_formatted(self, text: str) -> datetime:
        try:
            parsed = datetime.strptime(text.strip(), '%d/%m/%Y %H:%M:%S')
        except ValueError as e:
            raise ParseError(f"Not a formatted datetime: {text!r}") from e
        return parsed.replace(tzinfo=timezone.utc)

    def _parse_date_literal(self, value: Any) -> datetime:
        match = DATE_LITERAL_RE.match(value.strip()) if isinstance(value, str) else None
        if not match:
            raise ParseError(f"Not a Date() literal: {value!r}")

        year, month, day, hour, minute, second = (
            int(group) if group is not None else 0
            for group in match.groups()
        )
        try:
            return datetime(year, month + 1, day, hour, minute, second, tzinfo=timezone.utc)
        except ValueError as e:
            raise ParseError(f"Invalid Date() literal: {value!r}") from e

    def _parse_iso(self, value: Any) -> datetime:
        if not isinstance(value, str) or not value.strip():
            raise ParseError(f"Not an ISO string: {value!r}")

        text = value.strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ParseError(f"Not an ISO string: {value!r}") from e

        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    def _parse_clock_time(self, value: Any) -> datetime:
        match = CLOCK_TIME_RE.match(value.strip()) if isinstance(value, str) else None
        if not match:
            raise ParseError(f"Not an HH:MM time: {value!r}")

        hours, minutes = int(match.group(1)), int(match.group(2))
        if not (0 <= hours <= 23 and 0 <= minutes <= 59):
            raise ParseError(f"Time out of range: {value!r}")

        today = self.clock().astimezone(timezone.utc)
        return today.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def _cell_at(cells: List[Optional[SheetCell]], index: int) -> Optional[SheetCell]:
    if index < len(cells):
        return cells[index]
    return None


def _cell_text(cell: Optional[SheetCell]) -> str:
    """Formatted value when present, otherwise the raw value, as a string."""
    if cell is None:
        return ''
    if cell.f is not None:
        return str(cell.f).strip()
    if cell.v is None:
        return ''
    return str(cell.v).strip()


def _split_tags(text: str) -> List[str]:
    return [tag.strip() for tag in text.split(',') if tag.strip()]

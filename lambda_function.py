"""AWS Lambda handlers for the cultural events sheet sync."""
import json
import logging
import os
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict

from processor.merge_engine import compute_delta, normalize_timestamp, records_from_rows
from processor.models import EventRecord, SyncResult
from processor.row_normalizer import RowNormalizer
from scraper.agenda_scraper import AgendaScraper
from scraper.sheet_client import SheetClient
from storage.sheet_cache import SheetCache
from storage.sheet_writer import DynamoDBSheetWriter, LoggingSheetWriter

# Shared by every invocation served by this process
SHEET_CACHE = SheetCache()


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@dataclass
class Settings:
    """Runtime configuration read from environment variables."""
    sheet_id: str
    events_tab_id: str
    canonical_tab_id: str
    scrape_url: str
    writeback_table: str
    log_level: str
    timeout_seconds: int


def load_settings() -> Settings:
    return Settings(
        sheet_id=os.environ.get('SHEET_ID', '1184qmC-7mpZtpg15R--il4K3tVxSTAcJUZxpWf9KFAs'),
        events_tab_id=os.environ.get('EVENTS_TAB_ID', '0'),
        canonical_tab_id=os.environ.get('CANONICAL_TAB_ID', '2043142206'),
        scrape_url=os.environ.get('SCRAPE_URL', AgendaScraper.TARGET_URL),
        writeback_table=os.environ.get('WRITEBACK_TABLE', ''),
        log_level=os.environ.get('LOG_LEVEL', 'INFO'),
        timeout_seconds=int(os.environ.get('TIMEOUT_SECONDS', '30'))
    )


def scrape_and_update_events(
    scraper: AgendaScraper,
    sheet_client: SheetClient,
    writer,
    sheet_id: str,
    tab_id: str
) -> SyncResult:
    """
    Run one scrape-merge-write cycle.

    Scrape and write errors propagate to the caller; the canonical read is
    fail-soft and yields an empty list when the sheet is unavailable.

    Args:
        scraper: Agenda page scraper
        sheet_client: Client reading the canonical tab by column label
        writer: Writer with append_rows(sheet_id, rows) and get_rows(sheet_id)
        sheet_id: Canonical spreadsheet ID
        tab_id: Canonical tab grid ID

    Returns:
        SyncResult with scrape, existing and added counts
    """
    logger = logging.getLogger(__name__)

    logger.info("Scraping events from website")
    scraped = scraper.scrape()
    logger.info(f"Scraped {len(scraped)} events")

    logger.info("Fetching existing data from Google Sheet")
    existing = sheet_client.fetch(sheet_id, tab_id)
    logger.info(f"Existing data count: {len(existing)}")

    appended = records_from_rows(writer.get_rows(sheet_id))
    logger.info(f"Previously appended count: {len(appended)}")

    new_rows = compute_delta(scraped, list(existing) + appended)

    if new_rows:
        logger.info(f"Adding {len(new_rows)} new events to the sheet")
        writer.append_rows(sheet_id, new_rows)
    else:
        logger.info("No new events to add")

    return SyncResult(scraped=len(scraped), existing=len(existing), added=len(new_rows))


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    On-demand trigger running the full scrape-merge-write cycle.

    Args:
        event: API Gateway or EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and a JSON body reporting success
        and the number of new events, or the error
    """
    settings = load_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        "Lambda execution started",
        extra={
            'sheet_id': settings.sheet_id,
            'canonical_tab_id': settings.canonical_tab_id,
            'timeout_seconds': settings.timeout_seconds
        }
    )

    try:
        scraper = AgendaScraper(url=settings.scrape_url, timeout=settings.timeout_seconds)
        sheet_client = SheetClient(
            SHEET_CACHE,
            RowNormalizer(),
            timeout=settings.timeout_seconds,
            by_label=True
        )
        if settings.writeback_table:
            writer = DynamoDBSheetWriter(table_name=settings.writeback_table)
        else:
            writer = LoggingSheetWriter()

        result = scrape_and_update_events(
            scraper,
            sheet_client,
            writer,
            settings.sheet_id,
            settings.canonical_tab_id
        )

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Error in scrape_and_update_events: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _json_response(500, {
            'success': False,
            'error': str(e) or 'Unknown error',
            'errorType': type(e).__name__
        })

    duration = time.time() - start_time
    logger.info(
        "Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'events_scraped': result.scraped,
            'events_existing': result.existing,
            'events_added': result.added
        }
    )

    return _json_response(200, {
        'success': True,
        'newEvents': result.added
    })


def events_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Read handler used by page rendering.

    Always responds 200; an unavailable sheet yields cached or empty events.
    """
    settings = load_settings()
    setup_logging(settings.log_level)

    params = (event or {}).get('queryStringParameters') or {}
    tab_id = params.get('gid', settings.events_tab_id)

    sheet_client = SheetClient(SHEET_CACHE, RowNormalizer(), timeout=settings.timeout_seconds)
    records = sheet_client.fetch(settings.sheet_id, tab_id)

    return _json_response(200, {
        'events': [serialize_record(record) for record in records]
    })


def webhook_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Invalidate the cached tab named in the payload and fetch it again."""
    settings = load_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    params = (event or {}).get('queryStringParameters') or {}
    sheet_id = params.get('sheetId', settings.sheet_id)
    tab_id = params.get('gid', settings.events_tab_id)

    key = SHEET_CACHE.make_key(sheet_id, tab_id)
    invalidated = key in SHEET_CACHE
    logger.info(f"Webhook update received for {key}")

    sheet_client = SheetClient(SHEET_CACHE, RowNormalizer(), timeout=settings.timeout_seconds)
    records = sheet_client.invalidate(sheet_id, tab_id)

    return _json_response(200, {
        'invalidated': invalidated,
        'events': len(records),
        'version': SHEET_CACHE.version
    })


def serialize_record(record: EventRecord) -> Dict[str, Any]:
    """Convert an EventRecord into a JSON-safe dictionary."""
    data = asdict(record)
    for field_name in ('start_time', 'end_time', 'date'):
        if data[field_name] is not None:
            data[field_name] = normalize_timestamp(data[field_name])
    return data


def _json_response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body, ensure_ascii=False)
    }

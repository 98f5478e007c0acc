"""Dedup of scraped events against the canonical sheet."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from processor.models import EventRecord, ScrapedEvent

logger = logging.getLogger(__name__)


def compute_delta(
    scraped: Iterable[ScrapedEvent],
    canonical: Iterable[EventRecord]
) -> List[Dict[str, str]]:
    """
    Compute the scraped events missing from the canonical store.

    An event is a duplicate when its name matches exactly and both start
    times resolve to the same UTC instant. Start times are compared as
    normalized ISO strings so that a datetime on one side matches the ISO
    text of the same instant on the other.

    Args:
        scraped: Events from the agenda page
        canonical: Events already in the canonical sheet

    Returns:
        Rows in the canonical sheet schema, ready to append
    """
    seen: Set[Tuple[str, Optional[str]]] = {
        dedup_key(record.name, record.start_time) for record in canonical
    }

    delta = []
    scraped_count = 0
    for event in scraped:
        scraped_count += 1
        key = dedup_key(event.name, event.start_time)
        if key in seen:
            logger.debug(f"Skipping existing event '{event.name}' at {key[1]}")
            continue
        seen.add(key)
        delta.append(to_sheet_row(event))

    logger.info(f"Found {len(delta)} new events out of {scraped_count} scraped")
    return delta


def dedup_key(name: str, start_time: Any) -> Tuple[str, Optional[str]]:
    return name, normalize_timestamp(start_time)


def normalize_timestamp(value: Any) -> Optional[str]:
    """
    Normalize a timestamp to a UTC ISO-8601 string ending in 'Z'.

    Datetimes and parseable ISO strings are converted; naive values are
    taken as UTC. Anything else is returned as stripped text.
    """
    if value is None:
        return None

    if isinstance(value, str):
        text = value.strip()
        try:
            value = datetime.fromisoformat(text[:-1] + '+00:00' if text.endswith('Z') else text)
        except ValueError:
            return text

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')

    return str(value)


def to_sheet_row(event: ScrapedEvent) -> Dict[str, str]:
    """Map a scraped event onto the canonical sheet columns."""
    return {
        'evento': event.name,
        'tipo_de_evento': ', '.join(event.tags),
        'horário_de_início': normalize_timestamp(event.start_time) or '',
        'horário_de_término': normalize_timestamp(event.end_time) or '',
        'local': event.location,
        'descrição': event.description,
        'flyer': event.image_url,
        'link_de_inscrição': event.registration_link or '',
    }


def records_from_rows(rows: Iterable[Dict[str, Any]]) -> List[EventRecord]:
    """Map rows in the canonical sheet schema back to EventRecord objects."""
    return [
        EventRecord(
            name=row.get('evento', ''),
            tags=[tag.strip() for tag in (row.get('tipo_de_evento') or '').split(',') if tag.strip()],
            start_time=row.get('horário_de_início') or None,
            end_time=row.get('horário_de_término') or None,
            location=row.get('local', ''),
            description=row.get('descrição', ''),
            image_url=row.get('flyer', ''),
            registration_link=row.get('link_de_inscrição') or None
        )
        for row in rows
    ]

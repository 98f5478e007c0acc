"""Decoder for the gviz query endpoint's wrapped-JSON responses."""
import json
import logging
import re
from typing import Any, Dict

from processor.errors import DecodeError
from processor.models import SheetCell, SheetColumn, SheetTable

logger = logging.getLogger(__name__)

RESPONSE_PREFIX = "/*O_o*/\ngoogle.visualization.Query.setResponse("
RESPONSE_SUFFIX = ");"


def decode_response(text: str) -> SheetTable:
    """
    Strip the fixed gviz framing and parse the JSON payload into a table.

    Args:
        text: Raw response body from the query endpoint

    Returns:
        SheetTable with column descriptors and typed cells

    Raises:
        DecodeError: If the framing, JSON, or table payload is invalid
    """
    if text is None:
        raise DecodeError("Empty response")

    body = text.rstrip()
    if not body.startswith(RESPONSE_PREFIX) or not body.endswith(RESPONSE_SUFFIX):
        raise DecodeError(
            f"Response does not match gviz framing: {body[:60]!r}"
        )

    payload_text = body[len(RESPONSE_PREFIX):-len(RESPONSE_SUFFIX)]
    try:
        payload = json.loads(payload_text)
    except ValueError as e:
        raise DecodeError(f"Invalid JSON payload: {e}") from e

    if not isinstance(payload, dict):
        raise DecodeError("JSON payload is not an object")

    if payload.get('status') == 'error':
        messages = [
            err.get('detailed_message') or err.get('message') or err.get('reason', '')
            for err in payload.get('errors', [])
        ]
        raise DecodeError(f"Query returned error: {'; '.join(messages)}")

    table = payload.get('table')
    if not isinstance(table, dict):
        raise DecodeError("JSON payload has no table")

    return _build_table(table)


def _build_table(table: Dict[str, Any]) -> SheetTable:
    columns = [
        SheetColumn(
            id=col.get('id', ''),
            label=str(col.get('label') or ''),
            type=col.get('type', 'string')
        )
        for col in table.get('cols', [])
    ]

    rows = []
    for row in table.get('rows', []):
        cells = []
        for cell in (row or {}).get('c') or []:
            if cell is None:
                cells.append(None)
            else:
                cells.append(SheetCell(v=cell.get('v'), f=cell.get('f')))
        rows.append(cells)

    logger.debug(f"Decoded table with {len(columns)} columns and {len(rows)} rows")
    return SheetTable(columns=columns, rows=rows)


def column_key(label: str) -> str:
    """Lowercase a column label and replace whitespace runs with underscores."""
    return re.sub(r'\s+', '_', (label or '').lower())

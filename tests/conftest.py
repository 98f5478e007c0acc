"""Shared fixtures for the test suite."""
import os

import pytest

from processor.models import SheetCell, SheetColumn, SheetTable
from processor.response_decoder import RESPONSE_PREFIX, RESPONSE_SUFFIX


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches real accounts."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


def _wrap(payload_json: str) -> str:
    """Frame a JSON payload the way the gviz endpoint does."""
    return f"{RESPONSE_PREFIX}{payload_json}{RESPONSE_SUFFIX}"


@pytest.fixture
def gviz_payload():
    """Three-row display tab payload; the second row has a malformed date."""
    return """{"version":"0.6","reqId":"0","status":"ok","table":{
        "cols":[
            {"id":"A","label":"Evento","type":"string"},
            {"id":"B","label":"Data","type":"string"},
            {"id":"C","label":"Hora","type":"string"},
            {"id":"D","label":"Local","type":"string"},
            {"id":"E","label":"Tipo de Evento","type":"string"},
            {"id":"F","label":"URL","type":"string"},
            {"id":"G","label":"Flyer","type":"string"}
        ],
        "rows":[
            {"c":[{"v":"Samba de Roda"},{"v":"25/12/2024"},{"v":"20:00"},
                  {"v":"El Cabong"},{"v":"Música"},{"v":"https://example.com/samba"},
                  {"v":"https://drive.google.com/file/d/1AbCdEfGhIjKlMnOpQrStUvWxYz_-123/view"}]},
            {"c":[{"v":"Sarau Poético"},{"v":"dia 3 de janeiro"},{"v":"19:30"},
                  {"v":"Casa de Cultura"},{"v":"Literatura"},{"v":"https://example.com/sarau"},
                  {"v":"sarau.jpg"}]},
            {"c":[{"v":"Cine Clube"},{"v":"05/01/2025"},{"v":"18:00"},
                  {"v":"Cinemateca"},{"v":"Cinema, Debate"},{"v":"https://example.com/cine"},
                  null]}
        ]}}"""


@pytest.fixture
def canonical_table():
    """Canonical tab table with the label layout used by the merge flow."""
    labels = [
        'Evento', 'Tipo de Evento', 'Horário de Início', 'Horário de Término',
        'Local', 'Descrição', 'Flyer', 'Link de Inscrição'
    ]
    columns = [
        SheetColumn(id=chr(ord('A') + i), label=label)
        for i, label in enumerate(labels)
    ]
    rows = [
        [
            SheetCell(v='Show X'),
            SheetCell(v='Música'),
            SheetCell(v='Date(2024,0,1,20,0,0)', f='01/01/2024 20:00:00'),
            SheetCell(v='Date(2024,0,1,23,0,0)', f='01/01/2024 23:00:00'),
            SheetCell(v='El Cabong'),
            SheetCell(v='Show de abertura'),
            SheetCell(v='show-x.png'),
            None,
        ],
    ]
    return SheetTable(columns=columns, rows=rows)


@pytest.fixture
def wrap_gviz():
    """Return a helper that frames JSON the way the gviz endpoint does."""
    return _wrap

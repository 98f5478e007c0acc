"""Unit tests for the gviz response decoder."""
import pytest

from processor.errors import DecodeError
from processor.response_decoder import column_key, decode_response


class TestDecodeResponse:
    """Test cases for decode_response."""

    def test_decode_valid_response(self, gviz_payload, wrap_gviz):
        """Test decoding a framed payload into columns and rows."""
        table = decode_response(wrap_gviz(gviz_payload))

        assert [col.label for col in table.columns] == [
            'Evento', 'Data', 'Hora', 'Local', 'Tipo de Evento', 'URL', 'Flyer'
        ]
        assert len(table.rows) == 3
        assert table.rows[0][0].v == 'Samba de Roda'
        assert table.rows[0][0].f is None
        assert table.rows[2][6] is None

    def test_decode_keeps_formatted_values(self, wrap_gviz):
        """Test that formatted 'f' values are preserved next to 'v'."""
        payload = (
            '{"status":"ok","table":{"cols":[{"id":"A","label":"Início","type":"datetime"}],'
            '"rows":[{"c":[{"v":"Date(2024,0,1,20,0,0)","f":"01/01/2024 20:00:00"}]}]}}'
        )
        table = decode_response(wrap_gviz(payload))

        cell = table.rows[0][0]
        assert cell.v == 'Date(2024,0,1,20,0,0)'
        assert cell.f == '01/01/2024 20:00:00'
        assert table.columns[0].type == 'datetime'

    def test_decode_ignores_trailing_whitespace(self, gviz_payload, wrap_gviz):
        """Test that a trailing newline after the suffix is tolerated."""
        table = decode_response(wrap_gviz(gviz_payload) + '\n')
        assert len(table.rows) == 3

    def test_decode_html_error_page(self):
        """Test that an HTML error page raises DecodeError."""
        html = '<!DOCTYPE html><html><body>Sorry, unable to open the file.</body></html>'

        with pytest.raises(DecodeError):
            decode_response(html)

    def test_decode_invalid_json(self, wrap_gviz):
        """Test that correct framing around invalid JSON raises DecodeError."""
        with pytest.raises(DecodeError, match='Invalid JSON'):
            decode_response(wrap_gviz('{"table": '))

    def test_decode_error_status(self, wrap_gviz):
        """Test that a gviz error payload raises DecodeError with its message."""
        payload = (
            '{"status":"error","errors":[{"reason":"access_denied",'
            '"message":"Access denied","detailed_message":"Sheet is private"}]}'
        )

        with pytest.raises(DecodeError, match='Sheet is private'):
            decode_response(wrap_gviz(payload))

    def test_decode_missing_table(self, wrap_gviz):
        """Test that a payload without a table raises DecodeError."""
        with pytest.raises(DecodeError, match='no table'):
            decode_response(wrap_gviz('{"status":"ok"}'))

    def test_decode_empty_rows(self, wrap_gviz):
        """Test decoding a table with columns but no rows."""
        payload = '{"status":"ok","table":{"cols":[{"id":"A","label":"Evento"}],"rows":[]}}'
        table = decode_response(wrap_gviz(payload))

        assert len(table.columns) == 1
        assert table.rows == []


class TestColumnKey:
    """Test cases for column_key."""

    def test_column_key_lowercases_and_joins(self):
        assert column_key('Horário de  Início') == 'horário_de_início'

    def test_column_key_empty_label(self):
        assert column_key('') == ''

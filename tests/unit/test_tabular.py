from pathlib import Path

import pytest

from esg_pipeline.common.errors import DecodeError
from esg_pipeline.common.tabular import decode_rows, read_table


def test_decode_rows_maps_header_to_cells_and_skips_blank_lines():
    text = "Name, Value \nA,1\n\n,\nB,\"2,000\"\n"

    rows = decode_rows(text)

    assert rows == [
        {"Name": "A", "Value": "1"},
        {"Name": "B", "Value": "2,000"},
    ]


def test_decode_rows_pads_short_rows_and_handles_bom_bytes():
    raw = "\ufeffA,B,C\nx\n".encode("utf-8")

    assert decode_rows(raw) == [{"A": "x", "B": "", "C": ""}]


def test_decode_rows_empty_input_returns_no_rows():
    assert decode_rows("") == []
    assert decode_rows("A,B\n") == []


def test_decode_rows_rejects_undecodable_bytes():
    with pytest.raises(DecodeError):
        decode_rows(b"A,B\n\xff\xfe\xfa,1\n")


def test_decode_rows_rejects_malformed_quoting():
    with pytest.raises(DecodeError):
        decode_rows('A,B\n"unterminated,1\n')


def test_read_table_missing_file_is_decode_error(tmp_path: Path):
    with pytest.raises(DecodeError):
        read_table(tmp_path / "missing.csv")


def test_read_table_reads_local_file(tmp_path: Path):
    path = tmp_path / "t.csv"
    path.write_text("A,B\n1,2\n", encoding="utf-8")

    assert read_table(path) == [{"A": "1", "B": "2"}]


def test_read_table_fetches_urls_through_http_client():
    class FakeHttpClient:
        def __init__(self):
            self.urls = []

        def get_bytes(self, url, **_kwargs):
            self.urls.append(url)
            return b"A\nremote\n"

        def close(self):
            return None

    client = FakeHttpClient()
    rows = read_table("https://example.test/esg_data.csv", http_client=client)

    assert rows == [{"A": "remote"}]
    assert client.urls == ["https://example.test/esg_data.csv"]

"""Delimited-text decoding shared by the metric and office datasets."""

from __future__ import annotations

import csv
import io
from pathlib import Path

from esg_pipeline.common.errors import DecodeError
from esg_pipeline.common.http import HttpClient, HttpRequestError, TimeoutConfig


def _as_text(raw: bytes | str) -> str:
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"Source is not valid UTF-8 text: {exc}") from exc


def _is_blank(row: dict[str, str]) -> bool:
    return all(value == "" for value in row.values())


def decode_rows(raw: bytes | str) -> list[dict[str, str]]:
    """Decode header-led CSV text into row mappings.

    Header names and cells are whitespace-trimmed, short rows are padded with
    empty strings and rows whose cells are all blank are dropped.
    """
    text = _as_text(raw).lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    try:
        header_row = next(reader, None)
        if header_row is None:
            return []
        header = [name.strip() for name in header_row]

        rows: list[dict[str, str]] = []
        for cells in reader:
            if not cells:
                continue
            row = {}
            for idx, name in enumerate(header):
                if not name:
                    continue
                row[name] = cells[idx].strip() if idx < len(cells) else ""
            if _is_blank(row):
                continue
            rows.append(row)
    except csv.Error as exc:
        raise DecodeError(f"Malformed delimited text at line {reader.line_num}: {exc}") from exc
    return rows


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def read_table(location: str | Path, http_client: HttpClient | None = None) -> list[dict[str, str]]:
    """Load a local file or http(s) resource and decode it with ``decode_rows``."""
    location_str = str(location)
    if _is_url(location_str):
        owns_client = http_client is None
        client = http_client or HttpClient()
        try:
            raw = client.get_bytes(location_str, timeout=TimeoutConfig(connect=10, read=60))
        except HttpRequestError as exc:
            raise DecodeError(f"Failed to fetch {location_str}: {exc}") from exc
        finally:
            if owns_client:
                client.close()
    else:
        path = Path(location_str)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise DecodeError(f"Failed to read {path}: {exc}") from exc
    return decode_rows(raw)

"""Durable office-name to coordinate cache backed by a JSON file."""

from __future__ import annotations

import json
from pathlib import Path

from esg_pipeline.common.fs import read_json, write_json
from esg_pipeline.common.models import Coordinates

CACHE_UNREADABLE = "GEOCODE_CACHE_UNREADABLE"
CACHE_WRITE_FAILED = "GEOCODE_CACHE_WRITE_FAILED"


class GeocodeCache:
    """Read once at construction, atomically rewritten after every ``put``.

    Assumes a single writer process. Keys are raw office names.
    """

    def __init__(self, path: Path | None) -> None:
        self.path = path
        self.warnings: list[str] = []
        self._entries: dict[str, Coordinates] = self._load()

    def _load(self) -> dict[str, Coordinates]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            payload = read_json(self.path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            self._warn(CACHE_UNREADABLE)
            return {}
        if not isinstance(payload, dict):
            self._warn(CACHE_UNREADABLE)
            return {}

        entries: dict[str, Coordinates] = {}
        for name, value in payload.items():
            coords = Coordinates.from_dict(value)
            if coords is None:
                self._warn(CACHE_UNREADABLE)
                continue
            entries[name] = coords
        return entries

    def _warn(self, code: str) -> None:
        if code not in self.warnings:
            self.warnings.append(code)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def get(self, name: str) -> Coordinates | None:
        return self._entries.get(name)

    def put(self, name: str, coords: Coordinates) -> None:
        self._entries[name] = coords
        self._flush()

    def as_dict(self) -> dict[str, dict[str, float]]:
        return {name: coords.to_dict() for name, coords in self._entries.items()}

    def _flush(self) -> None:
        if self.path is None:
            return
        try:
            write_json(self.path, self.as_dict())
        except OSError:
            self._warn(CACHE_WRITE_FAILED)

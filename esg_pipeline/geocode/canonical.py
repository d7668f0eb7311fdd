"""Site-name cleanup applied to geocoding queries."""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_PREFIX = "PW-"
DEFAULT_FRAGMENTS = (
    "150",
    "Georgia Str",
    "Spring Street",
    "11th ave",
    "9th ave",
    "Fort Ward",
)
DEFAULT_GREEDY_FRAGMENTS = ("Georgia Str",)

_NN_SUFFIX = re.compile(r"\sNN$")
_FLOOR_SUFFIX = re.compile(r"\s*-?\s*\d+(?:th|st|nd|rd)?\s*Floor.*$", re.IGNORECASE)


@dataclass(frozen=True)
class CanonicalRules:
    """Greedy fragments drop everything after them; the rest must end the name."""

    prefix: str = DEFAULT_PREFIX
    fragments: tuple[str, ...] = DEFAULT_FRAGMENTS
    greedy_fragments: tuple[str, ...] = DEFAULT_GREEDY_FRAGMENTS

    def ordered_fragments(self) -> list[tuple[str, bool]]:
        greedy = {fragment.casefold() for fragment in self.greedy_fragments}
        return [(fragment, fragment.casefold() in greedy) for fragment in self.fragments]


def _fragment_pattern(fragment: str, greedy: bool) -> re.Pattern[str]:
    # Abbreviated fragments match their long form: "Georgia Str" matches "Georgia Street".
    tail = r".*$" if greedy else r"\w*\.?$"
    return re.compile(rf"\s*-?\s*{re.escape(fragment)}{tail}", re.IGNORECASE)


def canonicalize_office_name(name: str, rules: CanonicalRules | None = None) -> str:
    """Strip naming conventions that confuse the lookup service.

    The name stored on the record and used as the cache key is never changed;
    only the outgoing query is.
    """
    rules = rules or CanonicalRules()
    cleaned = name
    if rules.prefix and cleaned.startswith(rules.prefix):
        cleaned = cleaned[len(rules.prefix) :]

    cleaned = _NN_SUFFIX.sub("", cleaned)
    cleaned = _FLOOR_SUFFIX.sub("", cleaned)
    for fragment, greedy in rules.ordered_fragments():
        cleaned = _fragment_pattern(fragment, greedy).sub("", cleaned)

    return cleaned.strip()

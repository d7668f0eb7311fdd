"""Percentage-reduction target extraction."""

from __future__ import annotations

import re

REDUCTION_PATTERN = re.compile(r"(\d+(?:\.\d+)?)%\s*(?:energy\s*)?reduction", re.IGNORECASE)


def derive_target(target_text: str | None, baseline: float | None) -> float | None:
    """Resolve text such as "60% energy reduction from 2022 baseline" against a baseline.

    Only reduction phrasing is recognised. Increase targets, absolute targets
    and a missing or zero baseline all yield None.
    """
    if not target_text or not baseline:
        return None
    match = REDUCTION_PATTERN.search(target_text)
    if match is None:
        return None
    percentage = float(match.group(1))
    return baseline * (1 - percentage / 100)

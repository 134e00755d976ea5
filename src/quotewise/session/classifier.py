"""Keyword heuristic that routes a message to building analysis or chat."""

from __future__ import annotations

import re

__all__ = ["BUILDING_KEYWORDS", "REQUIREMENT_KEYWORDS", "is_building_analysis_request", "contains_script_markup"]

BUILDING_KEYWORDS: tuple[str, ...] = (
    "floor",
    "building",
    "office",
    "house",
    "home",
    "retail",
    "store",
    "access control",
    "cctv",
    "security",
    "entrance",
    "door",
    "users",
    "staff",
    "employees",
    "people",
    "cabling",
    "network",
    "camera",
)
REQUIREMENT_KEYWORDS: tuple[str, ...] = ("need", "want", "require", "looking for", "planning", "design")

_SCRIPT_MARKUP_RE = re.compile(r"<script|onload|onerror", re.IGNORECASE)


def is_building_analysis_request(message: str) -> bool:
    """Return ``True`` when ``message`` describes building requirements.

    Both a building keyword and a requirement keyword must appear.
    """

    lowered = (message or "").lower()
    if not lowered.strip():
        return False
    has_building = any(keyword in lowered for keyword in BUILDING_KEYWORDS)
    has_requirement = any(keyword in lowered for keyword in REQUIREMENT_KEYWORDS)
    return has_building and has_requirement


def contains_script_markup(message: str) -> bool:
    """Return ``True`` when ``message`` carries script-injection markers."""

    return bool(_SCRIPT_MARKUP_RE.search(message or ""))

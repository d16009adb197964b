"""Loader for the people-search site guide catalog."""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Optional

from ..config import settings
from ..errors import InvalidRecord
from ..models.domain import Guide

CATALOG_TABLE = "guides"


@functools.lru_cache(maxsize=1)
def load_guides(source: Optional[Path] = None) -> tuple[Guide, ...]:
    """Load guides from the configured JSON catalog.

    A missing catalog file yields an empty catalog: with no guides to
    complete, guide completion counts as vacuously complete. A catalog that
    exists but cannot be parsed raises :class:`InvalidRecord`.
    """

    json_path = source or settings.guide_catalog_file
    if not json_path.exists():
        logging.warning(f"Guide catalog not found at {json_path}; treating catalog as empty")
        return tuple()

    try:
        with json_path.open(mode="r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidRecord(CATALOG_TABLE, f"catalog '{json_path}' is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise InvalidRecord(CATALOG_TABLE, f"catalog '{json_path}' must contain a JSON array")

    guides: list[Guide] = []
    seen: set[str] = set()
    for position, entry in enumerate(payload):
        if not isinstance(entry, dict):
            raise InvalidRecord(CATALOG_TABLE, f"entry {position} in '{json_path}' is not an object: {entry!r}")
        site_id = str(entry.get("site_id") or entry.get("id") or "").strip()
        if not site_id:
            raise InvalidRecord(CATALOG_TABLE, f"entry {position} in '{json_path}' has no site_id")
        if site_id in seen:
            continue
        seen.add(site_id)
        raw_steps = entry.get("steps") or []
        if not isinstance(raw_steps, list):
            raise InvalidRecord(CATALOG_TABLE, f"steps of guide '{site_id}' must be a list")
        steps = tuple(str(step) for step in raw_steps if str(step).strip())
        guides.append(
            Guide(
                site_id=site_id,
                site_name=str(entry.get("site_name") or site_id),
                url=entry.get("url"),
                steps=steps,
            )
        )
    return tuple(guides)

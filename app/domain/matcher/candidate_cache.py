"""
Candidate loading and caching.

Playdates only change when the content sync runs, so grouped teaser-tier
candidates are cached in Redis for CANDIDATE_CACHE_TTL seconds. Without
Redis every request reads the database.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...cache import cache
from .repository import MatcherRepository

logger = logging.getLogger(__name__)

CANDIDATE_CACHE_KEY = "matcher:candidates:v1"


def energy_level(friction_dial: Optional[int]) -> Optional[str]:
    """Translate the friction dial to a parent-friendly energy level"""
    if friction_dial is None:
        return None
    if friction_dial <= 2:
        return "calm"
    if friction_dial == 3:
        return "moderate"
    return "active"


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def group_candidates(rows: list[dict], material_rows: list[dict]) -> list[dict]:
    """Attach each playdate's materials and normalize its list columns"""
    materials: dict[str, list[dict]] = {}
    for m in material_rows:
        materials.setdefault(m["playdate_id"], []).append(
            {"id": m["id"], "title": m["title"], "form_primary": m["form_primary"]}
        )

    candidates = []
    for row in rows:
        candidate = dict(row)
        for key in ("arc_emphasis", "context_tags", "required_forms", "slots_optional"):
            candidate[key] = _as_list(candidate.get(key))
        candidate["has_find_again"] = bool(candidate.get("has_find_again"))
        candidate["energy_level"] = energy_level(candidate.get("friction_dial"))
        candidate["materials"] = materials.get(row["id"], [])
        candidates.append(candidate)
    return candidates


def load_candidates(db: Session) -> list[dict]:
    rows = MatcherRepository.get_candidate_rows(db)
    material_rows = MatcherRepository.get_candidate_materials(db, [r["id"] for r in rows])
    return group_candidates(rows, material_rows)


def get_candidates(db: Session) -> list[dict]:
    cached = cache.get(CANDIDATE_CACHE_KEY)
    if cached is not None:
        return cached

    candidates = load_candidates(db)
    cache.set(CANDIDATE_CACHE_KEY, candidates, ttl=config.CANDIDATE_CACHE_TTL)
    logger.debug(f"Loaded {len(candidates)} matcher candidates from the database")
    return candidates


def invalidate_candidate_cache() -> None:
    """Call after a content sync"""
    cache.delete(CANDIDATE_CACHE_KEY)

"""
Database compatibility helpers.

Some selector columns arrive with later migrations. Queries drop them from
their projection until the live table has them, instead of failing.
Column presence is checked once per table per process; a failed check is
retried on the next query.
"""

import logging
from threading import Lock
from typing import Union

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from .column_selectors import EntityType, resolve_entity

logger = logging.getLogger(__name__)

TABLE_NAMES = {
    EntityType.PLAYDATE: "playdates_cache",
    EntityType.MATERIAL: "materials_cache",
}

# Columns that may be missing until their migration has run
OPTIONAL_COLUMNS = {
    EntityType.PLAYDATE: frozenset({"cover_url", "gallery_visible_fields"}),
    EntityType.MATERIAL: frozenset(),
}

_present_columns: dict[str, frozenset[str]] = {}
_cache_lock = Lock()


def _table_columns(db: Session, table: str) -> frozenset[str]:
    cached = _present_columns.get(table)
    if cached is not None:
        return cached

    with _cache_lock:
        if table not in _present_columns:
            try:
                names = frozenset(c["name"] for c in inspect(db.get_bind()).get_columns(table))
            except Exception as e:
                # Not cached: the next request inspects again
                logger.warning(f"⚠️ Could not inspect columns of {table}, treating optional columns as absent: {e}")
                return frozenset()
            _present_columns[table] = names
    return _present_columns[table]


def safe_columns(db: Session, entity: Union[EntityType, str], columns: list[str]) -> list[str]:
    """Drop optional columns the table does not have yet, keeping order"""
    entity = resolve_entity(entity)
    optional = OPTIONAL_COLUMNS.get(entity, frozenset())
    if not optional.intersection(columns):
        return list(columns)

    present = _table_columns(db, TABLE_NAMES[entity])
    kept = [c for c in columns if c not in optional or c in present]
    if len(kept) != len(columns):
        dropped = [c for c in columns if c not in kept]
        logger.debug(f"Skipping unmigrated columns on {TABLE_NAMES[entity]}: {dropped}")
    return kept


def reset_column_cache() -> None:
    with _cache_lock:
        _present_columns.clear()

"""
Development / staging guard that scans response rows for fields that
should never reach the client at a given tier.

Usage (in repositories and routers):
    assert_no_leaked_fields(rows, Tier.TEASER)

In production this is a no-op.
"""

from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any, Union

from .. import config
from .column_selectors import Tier, all_entities, columns_for_tier, resolve_tier


class LeakedFieldError(RuntimeError):
    def __init__(self, field: str, tier: Tier):
        self.field = field
        self.tier = tier
        super().__init__(
            f'[security] leaked field "{field}" in {tier.label}-tier response. '
            "Check your column selector."
        )


@lru_cache(maxsize=None)
def forbidden_fields(tier: Tier) -> frozenset[str]:
    """
    Field names that only become visible above ``tier``.

    Names that some entity already exposes at ``tier`` (``context_tags`` on
    both playdates and materials, say) are never forbidden there.
    """
    above: set[str] = set()
    visible: set[str] = set()
    for entity in all_entities():
        visible.update(columns_for_tier(entity, tier))
        top = columns_for_tier(entity, Tier.INTERNAL)
        above.update(c for c in top if c not in columns_for_tier(entity, tier))
    return frozenset(above - visible)


def _keys(row: Any) -> Iterable[str]:
    if isinstance(row, Mapping):
        return row.keys()
    # SQLAlchemy Row objects
    mapping = getattr(row, "_mapping", None)
    if mapping is not None:
        return mapping.keys()
    return vars(row).keys()


def assert_no_leaked_fields(rows: Iterable[Any], tier: Union[Tier, str]) -> None:
    if config.is_production():
        return

    tier = resolve_tier(tier)
    forbidden = forbidden_fields(tier)
    if not forbidden:
        return

    for row in rows:
        for key in _keys(row):
            if key in forbidden:
                raise LeakedFieldError(key, tier)

"""
Column selection for the tiered anti-leak model.

Every query that returns playdate or material data to a client projects
through one of these column lists, so fields above the caller's tier are
never fetched in the first place.

Tiers are cumulative: each tier sees the tier below plus its own increment.
"""

import logging
from enum import Enum, IntEnum
from typing import Optional, Union

logger = logging.getLogger(__name__)


class TierConfigurationError(LookupError):
    """Raised when an entity/tier pair has no column set defined"""


class Tier(IntEnum):
    TEASER = 0  # public sampler, anonymous visitors
    ENTITLED = 1  # org owns a pack containing the entity
    COLLECTIVE = 2  # internal collaborators (design notes)
    INTERNAL = 3  # admin dashboard, everything

    @property
    def label(self) -> str:
        return self.name.lower()


class EntityType(str, Enum):
    PLAYDATE = "playdate"
    MATERIAL = "material"


# Columns each tier adds on top of the tier below it
_TIER_INCREMENTS: dict[EntityType, dict[Tier, tuple[str, ...]]] = {
    EntityType.PLAYDATE: {
        Tier.TEASER: (
            "id",
            "slug",
            "title",
            "headline",
            "release_channel",
            "status",
            "primary_function",
            "arc_emphasis",
            "context_tags",
            "friction_dial",
            "start_in_120s",
            "required_forms",
            "slots_optional",
            "age_range",
            "tinkering_tier",
            "cover_url",
            "gallery_visible_fields",
        ),
        Tier.ENTITLED: (
            "slots_notes",
            "rails_sentence",
            "find",
            "fold",
            "unfold",
            "find_again_mode",
            "find_again_prompt",
            "substitutions_notes",
        ),
        Tier.COLLECTIVE: (
            "design_rationale",
            "developmental_notes",
            "author_notes",
        ),
        Tier.INTERNAL: (
            "ip_tier",
            "notion_id",
            "notion_last_edited",
            "synced_at",
        ),
    },
    EntityType.MATERIAL: {
        Tier.TEASER: (
            "id",
            "title",
            "form_primary",
            "functions",
            "context_tags",
        ),
        Tier.ENTITLED: (
            "connector_modes",
            "shareability",
            "min_qty_size",
            "examples_notes",
            "source",
        ),
        Tier.COLLECTIVE: (
            "generation_notes",
            "generation_prompts",
        ),
        Tier.INTERNAL: (
            "do_not_use",
            "do_not_use_reason",
            "notion_id",
            "notion_last_edited",
            "synced_at",
        ),
    },
}


def _build_column_sets() -> dict[EntityType, dict[Tier, tuple[str, ...]]]:
    column_sets: dict[EntityType, dict[Tier, tuple[str, ...]]] = {}
    for entity, increments in _TIER_INCREMENTS.items():
        cumulative: tuple[str, ...] = ()
        column_sets[entity] = {}
        for tier in sorted(increments):
            cumulative = cumulative + increments[tier]
            column_sets[entity][tier] = cumulative
    return column_sets


_COLUMN_SETS = _build_column_sets()


def validate_column_sets() -> None:
    """
    Check every entity's tier table.

    Each entity must define every tier, every increment must be non-empty,
    and no column may appear twice within a tier's list.
    """
    for entity, tiers in _COLUMN_SETS.items():
        previous: Optional[tuple[str, ...]] = None
        for tier in Tier:
            if tier not in tiers:
                raise TierConfigurationError(f"{entity.value}: no column set for tier '{tier.label}'")
            columns = tiers[tier]
            if len(set(columns)) != len(columns):
                duplicates = sorted({c for c in columns if columns.count(c) > 1})
                raise TierConfigurationError(
                    f"{entity.value}/{tier.label}: duplicate columns {duplicates}"
                )
            if previous is not None and not set(columns) > set(previous):
                raise TierConfigurationError(
                    f"{entity.value}/{tier.label}: must strictly extend the tier below"
                )
            previous = columns


def resolve_tier(tier: Union[Tier, str]) -> Tier:
    if isinstance(tier, Tier):
        return tier
    try:
        return Tier[str(tier).upper()]
    except KeyError as e:
        raise TierConfigurationError(f"Unknown tier: {tier!r}") from e


def resolve_entity(entity: Union[EntityType, str]) -> EntityType:
    try:
        return EntityType(entity)
    except ValueError as e:
        raise TierConfigurationError(f"Unknown entity type: {entity!r}") from e


def columns_for_tier(entity: Union[EntityType, str], tier: Union[Tier, str]) -> list[str]:
    """Ordered column names visible for ``entity`` at ``tier``"""
    entity = resolve_entity(entity)
    tier = resolve_tier(tier)
    tiers = _COLUMN_SETS.get(entity, {})
    if tier not in tiers:
        raise TierConfigurationError(f"{entity.value}: no column set for tier '{tier.label}'")
    return list(tiers[tier])


def tier_increment(entity: Union[EntityType, str], tier: Union[Tier, str]) -> list[str]:
    """Columns that ``tier`` reveals on top of the tier below it"""
    entity = resolve_entity(entity)
    tier = resolve_tier(tier)
    try:
        return list(_TIER_INCREMENTS[entity][tier])
    except KeyError as e:
        raise TierConfigurationError(f"{entity.value}: no column set for tier '{tier.label}'") from e


def all_entities() -> list[EntityType]:
    return list(_COLUMN_SETS)


validate_column_sets()

"""Matcher repository - candidate and enrichment queries"""

from sqlalchemy.orm import Session

from ...models import Material, Pack, PackPlaydate, Playdate, PlaydateMaterial
from ...security.column_selectors import EntityType, Tier, columns_for_tier
from ...security.db_compat import safe_columns
from ...security.leak_guard import assert_no_leaked_fields

MATCHABLE_CHANNELS = ("sampler", "pack-only")


def _playdate_columns(db: Session, tier: Tier) -> list:
    names = safe_columns(db, EntityType.PLAYDATE, columns_for_tier(EntityType.PLAYDATE, tier))
    return [getattr(Playdate, name) for name in names]


class MatcherRepository:
    """Read-only queries used by the matcher"""

    @staticmethod
    def get_candidate_rows(db: Session) -> list[dict]:
        """Ready public playdates at teaser tier, plus a derived has_find_again flag"""
        rows = (
            db.query(
                *_playdate_columns(db, Tier.TEASER),
                Playdate.find_again_mode.isnot(None).label("has_find_again"),
            )
            .filter(Playdate.status == "ready", Playdate.release_channel.in_(MATCHABLE_CHANNELS))
            .order_by(Playdate.id)
            .all()
        )
        result = [row._asdict() for row in rows]
        assert_no_leaked_fields(result, Tier.TEASER)
        return result

    @staticmethod
    def get_candidate_materials(db: Session, playdate_ids: list[str]) -> list[dict]:
        """Teaser material columns per playdate, excluding do-not-use materials"""
        if not playdate_ids:
            return []
        rows = (
            db.query(
                PlaydateMaterial.playdate_id,
                Material.id,
                Material.title,
                Material.form_primary,
            )
            .join(Material, Material.id == PlaydateMaterial.material_id)
            .filter(PlaydateMaterial.playdate_id.in_(playdate_ids), Material.do_not_use.is_(False))
            .order_by(PlaydateMaterial.playdate_id, Material.title)
            .all()
        )
        return [row._asdict() for row in rows]

    @staticmethod
    def get_entitled_rows(db: Session, playdate_ids: list[str]) -> dict[str, dict]:
        """Entitled-tier columns for the given playdates. Caller must verify entitlement."""
        if not playdate_ids:
            return {}
        rows = (
            db.query(*_playdate_columns(db, Tier.ENTITLED))
            .filter(Playdate.id.in_(playdate_ids), Playdate.status == "ready")
            .all()
        )
        result = [row._asdict() for row in rows]
        assert_no_leaked_fields(result, Tier.ENTITLED)
        return {row["id"]: row for row in result}

    @staticmethod
    def get_pack_slugs(db: Session, playdate_ids: list[str]) -> dict[str, list[str]]:
        """Slugs of ready packs containing each playdate"""
        if not playdate_ids:
            return {}
        rows = (
            db.query(PackPlaydate.playdate_id, Pack.slug)
            .join(Pack, Pack.id == PackPlaydate.pack_id)
            .filter(Pack.status == "ready", PackPlaydate.playdate_id.in_(playdate_ids))
            .order_by(PackPlaydate.playdate_id, Pack.slug)
            .all()
        )
        slugs: dict[str, list[str]] = {}
        for playdate_id, slug in rows:
            slugs.setdefault(playdate_id, []).append(slug)
        return slugs

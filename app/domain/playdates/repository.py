"""Playdate repository - tier-projected content queries"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Material, Playdate, PlaydateMaterial
from ...security.column_selectors import EntityType, Tier, columns_for_tier
from ...security.db_compat import safe_columns
from ...security.leak_guard import assert_no_leaked_fields


def _columns(db: Session, entity: EntityType, model, tier: Tier) -> list:
    names = safe_columns(db, entity, columns_for_tier(entity, tier))
    return [getattr(model, name) for name in names]


class PlaydateRepository:
    """Every method projects through a column selector and checks its rows"""

    @staticmethod
    def list_teaser(db: Session, sampler_only: bool = True) -> list[dict]:
        """Ready playdates at teaser tier, sampler channel unless ``sampler_only`` is False"""
        query = db.query(
            *_columns(db, EntityType.PLAYDATE, Playdate, Tier.TEASER),
            Playdate.find_again_mode.isnot(None).label("has_find_again"),
        ).filter(Playdate.status == "ready")
        if sampler_only:
            query = query.filter(Playdate.release_channel == "sampler")
        rows = [r._asdict() for r in query.order_by(Playdate.title.asc(), Playdate.id.asc()).all()]
        assert_no_leaked_fields(rows, Tier.TEASER)
        return rows

    @staticmethod
    def list_internal(db: Session) -> list[dict]:
        """Every playdate, every column. Admin dashboard only."""
        rows = [
            r._asdict()
            for r in db.query(*_columns(db, EntityType.PLAYDATE, Playdate, Tier.INTERNAL))
            .order_by(Playdate.title.asc(), Playdate.id.asc())
            .all()
        ]
        assert_no_leaked_fields(rows, Tier.INTERNAL)
        return rows

    @staticmethod
    def get_reference(db: Session, slug: str) -> Optional[tuple[str, str, Optional[str]]]:
        """(id, status, release_channel) for a slug, without any content columns"""
        row = (
            db.query(Playdate.id, Playdate.status, Playdate.release_channel)
            .filter(Playdate.slug == slug)
            .first()
        )
        return tuple(row) if row else None

    @staticmethod
    def get_by_slug(db: Session, slug: str, tier: Tier) -> Optional[dict]:
        """
        Teaser: ready sampler playdates only.
        Entitled: any ready playdate (caller must verify entitlement).
        Collective and above: drafts included (caller must verify access).
        """
        query = db.query(*_columns(db, EntityType.PLAYDATE, Playdate, tier)).filter(Playdate.slug == slug)
        if tier == Tier.TEASER:
            query = query.add_columns(Playdate.find_again_mode.isnot(None).label("has_find_again")).filter(
                Playdate.status == "ready", Playdate.release_channel == "sampler"
            )
        elif tier == Tier.ENTITLED:
            query = query.filter(Playdate.status == "ready")

        row = query.first()
        if row is None:
            return None
        result = row._asdict()
        assert_no_leaked_fields([result], tier)
        return result

    @staticmethod
    def get_materials(db: Session, playdate_id: str, tier: Tier) -> list[dict]:
        rows = [
            r._asdict()
            for r in db.query(*_columns(db, EntityType.MATERIAL, Material, tier))
            .join(PlaydateMaterial, PlaydateMaterial.material_id == Material.id)
            .filter(PlaydateMaterial.playdate_id == playdate_id, Material.do_not_use.is_(False))
            .order_by(Material.title.asc())
            .all()
        ]
        assert_no_leaked_fields(rows, tier)
        return rows

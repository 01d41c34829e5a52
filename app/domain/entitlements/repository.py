"""Entitlement repository - Database operations for pack entitlements"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Entitlement, Organisation, Pack, PackPlaydate


class EntitlementRepository:
    """Repository for entitlement database operations"""

    @staticmethod
    def _active(query, now: datetime):
        return query.filter(
            Entitlement.revoked_at.is_(None),
            or_(Entitlement.expires_at.is_(None), Entitlement.expires_at > now),
        )

    @staticmethod
    def has_active_entitlement(db: Session, org_id: str, pack_id: str, now: datetime) -> bool:
        query = db.query(Entitlement.id).filter(
            Entitlement.org_id == org_id, Entitlement.pack_cache_id == pack_id
        )
        return EntitlementRepository._active(query, now).first() is not None

    @staticmethod
    def get_entitlement(db: Session, org_id: str, pack_id: str) -> Optional[Entitlement]:
        return (
            db.query(Entitlement)
            .filter(Entitlement.org_id == org_id, Entitlement.pack_cache_id == pack_id)
            .first()
        )

    @staticmethod
    def get_pack(db: Session, pack_id: str) -> Optional[Pack]:
        return db.query(Pack).filter(Pack.id == pack_id).first()

    @staticmethod
    def get_organisation(db: Session, org_id: str) -> Optional[Organisation]:
        return db.query(Organisation).filter(Organisation.id == org_id).first()

    @staticmethod
    def save(db: Session, entitlement: Entitlement) -> Entitlement:
        db.add(entitlement)
        db.commit()
        db.refresh(entitlement)
        return entitlement

    @staticmethod
    def list_active_for_org(db: Session, org_id: str, now: datetime) -> list[Entitlement]:
        query = (
            db.query(Entitlement)
            .options(joinedload(Entitlement.pack))
            .filter(Entitlement.org_id == org_id)
        )
        return EntitlementRepository._active(query, now).order_by(Entitlement.granted_at.desc()).all()

    @staticmethod
    def list_all(db: Session) -> list[Entitlement]:
        return (
            db.query(Entitlement)
            .options(joinedload(Entitlement.pack), joinedload(Entitlement.organisation))
            .order_by(Entitlement.granted_at.desc())
            .all()
        )

    @staticmethod
    def get_pack_ids_by_playdate(db: Session, playdate_ids: list[str]) -> dict[str, list[str]]:
        """Map playdate id -> ids of every pack containing it"""
        if not playdate_ids:
            return {}
        rows = (
            db.query(PackPlaydate.playdate_id, PackPlaydate.pack_id)
            .filter(PackPlaydate.playdate_id.in_(playdate_ids))
            .order_by(PackPlaydate.playdate_id, PackPlaydate.pack_id)
            .all()
        )
        packs: dict[str, list[str]] = {}
        for playdate_id, pack_id in rows:
            packs.setdefault(playdate_id, []).append(pack_id)
        return packs

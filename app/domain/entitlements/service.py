"""Entitlement service - check, grant, list, revoke pack entitlements"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Entitlement, utcnow
from .repository import EntitlementRepository

logger = logging.getLogger(__name__)


class EntitlementService:
    """Service layer for entitlements. Active = granted, not revoked, not expired."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = EntitlementRepository()

    def check_entitlement(self, org_id: Optional[str], pack_id: str) -> bool:
        if not org_id:
            return False
        return self.repo.has_active_entitlement(self.db, org_id, pack_id, utcnow())

    def entitled_pack_ids(self, org_id: Optional[str], pack_ids: Iterable[str]) -> set[str]:
        """
        Check each pack independently.
        A failed check counts as not entitled and does not affect the other packs.
        """
        if not org_id:
            return set()

        entitled = set()
        for pack_id in dict.fromkeys(pack_ids):
            try:
                if self.check_entitlement(org_id, pack_id):
                    entitled.add(pack_id)
            except Exception as e:
                logger.error(f"❌ Entitlement check failed for org {org_id}, pack {pack_id}: {e}")
                self.db.rollback()
        return entitled

    def packs_by_playdate(self, playdate_ids: list[str]) -> dict[str, list[str]]:
        return self.repo.get_pack_ids_by_playdate(self.db, playdate_ids)

    def entitled_playdate_ids(self, org_id: Optional[str], playdate_ids: list[str]) -> set[str]:
        """Playdates the org can open through any pack containing them"""
        if not org_id or not playdate_ids:
            return set()

        packs = self.packs_by_playdate(playdate_ids)
        owned = self.entitled_pack_ids(org_id, (p for pack_ids in packs.values() for p in pack_ids))
        return {pid for pid, pack_ids in packs.items() if owned.intersection(pack_ids)}

    def grant_entitlement(
        self,
        org_id: str,
        pack_id: str,
        purchase_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> Entitlement:
        """
        Grant (or re-grant) a pack to an organisation.
        Re-granting clears revoked_at, keeps the original grant time and any earlier purchase id.
        """
        if not self.repo.get_organisation(self.db, org_id):
            raise HTTPException(status_code=404, detail="Organisation not found")
        if not self.repo.get_pack(self.db, pack_id):
            raise HTTPException(status_code=404, detail="Pack not found")

        entitlement = self.repo.get_entitlement(self.db, org_id, pack_id)
        if entitlement is None:
            entitlement = Entitlement(org_id=org_id, pack_cache_id=pack_id)

        entitlement.revoked_at = None
        entitlement.purchase_id = purchase_id or entitlement.purchase_id
        entitlement.granted_at = entitlement.granted_at or utcnow()
        entitlement.expires_at = expires_at

        logger.info(f"🎟️ Granting pack {pack_id} to org {org_id} (expires: {expires_at})")
        return self.repo.save(self.db, entitlement)

    def revoke_entitlement(self, org_id: str, pack_id: str) -> bool:
        """Soft delete. Returns False when there was nothing active to revoke."""
        entitlement = self.repo.get_entitlement(self.db, org_id, pack_id)
        if entitlement is None or entitlement.revoked_at is not None:
            return False

        entitlement.revoked_at = utcnow()
        self.repo.save(self.db, entitlement)
        logger.info(f"🚫 Revoked pack {pack_id} from org {org_id}")
        return True

    def list_org_entitlements(self, org_id: str) -> list[dict]:
        return [
            {
                "id": e.id,
                "pack_cache_id": e.pack_cache_id,
                "pack_title": e.pack.title if e.pack else None,
                "pack_slug": e.pack.slug if e.pack else None,
                "granted_at": e.granted_at,
                "expires_at": e.expires_at,
            }
            for e in self.repo.list_active_for_org(self.db, org_id, utcnow())
        ]

    def list_all_entitlements(self) -> list[dict]:
        return [
            {
                "id": e.id,
                "org_id": e.org_id,
                "org_name": e.organisation.name if e.organisation else None,
                "pack_cache_id": e.pack_cache_id,
                "pack_title": e.pack.title if e.pack else None,
                "granted_at": e.granted_at,
                "expires_at": e.expires_at,
                "revoked_at": e.revoked_at,
            }
            for e in self.repo.list_all(self.db)
        ]

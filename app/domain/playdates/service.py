"""Playdate service - resolve the caller's tier and serve content at it"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import CWSession
from ...security.column_selectors import Tier
from ..entitlements.service import EntitlementService
from .repository import PlaydateRepository

logger = logging.getLogger(__name__)


class PlaydateService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = PlaydateRepository()
        self.entitlements = EntitlementService(db)

    def list_playdates(self, session: Optional[CWSession]) -> list[dict]:
        # Internal callers also see pack-only playdates, still at teaser tier
        sampler_only = not (session and session.is_internal)
        return self.repo.list_teaser(self.db, sampler_only=sampler_only)

    def list_internal(self) -> list[dict]:
        return self.repo.list_internal(self.db)

    def resolve_tier(self, session: Optional[CWSession], playdate_id: str) -> Tier:
        if session is None:
            return Tier.TEASER
        if session.is_internal:
            return Tier.COLLECTIVE
        if session.org_id and playdate_id in self.entitlements.entitled_playdate_ids(
            session.org_id, [playdate_id]
        ):
            return Tier.ENTITLED
        return Tier.TEASER

    def get_playdate(self, slug: str, session: Optional[CWSession]) -> tuple[dict, Tier]:
        reference = self.repo.get_reference(self.db, slug)
        if reference is None:
            raise HTTPException(status_code=404, detail="Playdate not found")

        playdate_id = reference[0]
        tier = self.resolve_tier(session, playdate_id)
        playdate = self.repo.get_by_slug(self.db, slug, tier)
        if playdate is None:
            raise HTTPException(status_code=404, detail="Playdate not found")

        logger.debug(f"Serving playdate {slug} at {tier.label} tier")
        return playdate, tier

    def get_materials(self, slug: str, session: Optional[CWSession]) -> tuple[list[dict], Tier]:
        playdate, tier = self.get_playdate(slug, session)
        # Materials have no collective view for clients; cap at entitled
        material_tier = min(tier, Tier.ENTITLED)
        return self.repo.get_materials(self.db, playdate["id"], material_tier), material_tier

"""Playdate router - sampler, detail and admin content endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import CWSession, get_optional_session, require_admin
from ...database import get_db
from ...security.column_selectors import EntityType, Tier, tier_increment
from ..audit.service import client_ip, safe_log_access
from .service import PlaydateService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Playdates"])

AUDITED_TIERS = {Tier.ENTITLED: "view_entitled", Tier.COLLECTIVE: "view_collective"}


def get_playdate_service(db: Session = Depends(get_db)) -> PlaydateService:
    """Dependency injection for PlaydateService"""
    return PlaydateService(db)


@router.get("/playdates")
async def list_playdates(
    session: Optional[CWSession] = Depends(get_optional_session),
    service: PlaydateService = Depends(get_playdate_service),
):
    """Sampler grid (teaser tier)"""
    return {"playdates": service.list_playdates(session)}


@router.get("/playdates/{slug}")
async def get_playdate(
    slug: str,
    request: Request,
    session: Optional[CWSession] = Depends(get_optional_session),
    service: PlaydateService = Depends(get_playdate_service),
):
    """A single playdate at the highest tier the caller holds"""
    playdate, tier = service.get_playdate(slug, session)

    if session is not None and tier in AUDITED_TIERS:
        fields = [
            column
            for t in Tier
            if Tier.TEASER < t <= tier
            for column in tier_increment(EntityType.PLAYDATE, t)
        ]
        safe_log_access(
            service.db,
            session.user_id,
            session.org_id,
            playdate["id"],
            None,
            AUDITED_TIERS[tier],
            client_ip(request),
            fields,
        )

    return {"playdate": playdate, "tier": tier.label}


@router.get("/playdates/{slug}/materials")
async def get_playdate_materials(
    slug: str,
    session: Optional[CWSession] = Depends(get_optional_session),
    service: PlaydateService = Depends(get_playdate_service),
):
    materials, tier = service.get_materials(slug, session)
    return {"materials": materials, "tier": tier.label}


@router.get("/admin/playdates")
async def list_playdates_internal(
    _admin: CWSession = Depends(require_admin),
    service: PlaydateService = Depends(get_playdate_service),
):
    """Every playdate with internal fields (sync ids, IP tier)"""
    return {"playdates": service.list_internal(), "tier": Tier.INTERNAL.label}

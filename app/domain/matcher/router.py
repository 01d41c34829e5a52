"""
Matcher router - public playdate matching endpoint.

Anyone may search; signed-in callers whose organisation owns the relevant
pack also receive the entitled guide fields.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ...auth import CWSession, get_optional_session
from ...database import get_db
from ..audit.service import client_ip, safe_log_access
from .schemas import EMPTY_FILTER_MESSAGE, FACETS, MatcherRequest
from .service import MatcherService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matcher", tags=["Matcher"])


def get_matcher_service(db: Session = Depends(get_db)) -> MatcherService:
    """Dependency injection for MatcherService"""
    return MatcherService(db)


@router.post("")
async def match_playdates(
    data: MatcherRequest,
    request: Request,
    session: Optional[CWSession] = Depends(get_optional_session),
    service: MatcherService = Depends(get_matcher_service),
):
    """Rank playdates against materials, forms, slots, contexts and energy levels"""
    matcher_input = data.to_input()
    if matcher_input.is_empty():
        raise HTTPException(status_code=400, detail=EMPTY_FILTER_MESSAGE)

    result = service.perform_matching(matcher_input, session, limit=data.limit)

    if session is not None:
        safe_log_access(
            service.db,
            session.user_id,
            session.org_id,
            None,
            None,
            "matcher_search",
            client_ip(request),
            [FACETS[f] for f in matcher_input.populated_facets()],
        )

    return result


@router.get("/pickers")
async def get_picker_options(service: MatcherService = Depends(get_matcher_service)):
    """Filter values available to the matcher form"""
    return service.get_picker_options()

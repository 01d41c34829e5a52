"""Entitlement router - org listing and admin grant/revoke endpoints"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ...auth import CWSession, require_admin, require_session
from ...database import get_db
from ..audit.service import client_ip, safe_log_access
from .schemas import EntitlementResponse, GrantEntitlementRequest
from .service import EntitlementService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Entitlements"])


def get_entitlement_service(db: Session = Depends(get_db)) -> EntitlementService:
    """Dependency injection for EntitlementService"""
    return EntitlementService(db)


@router.get("/entitlements")
async def list_my_entitlements(
    session: CWSession = Depends(require_session),
    service: EntitlementService = Depends(get_entitlement_service),
):
    """Active entitlements of the caller's organisation"""
    if not session.org_id:
        return {"entitlements": []}
    return {"entitlements": service.list_org_entitlements(session.org_id)}


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/admin/entitlements")
async def list_all_entitlements(
    _admin: CWSession = Depends(require_admin),
    service: EntitlementService = Depends(get_entitlement_service),
):
    return {"entitlements": service.list_all_entitlements()}


@router.post("/admin/entitlements", response_model=EntitlementResponse, status_code=201)
async def grant_entitlement(
    data: GrantEntitlementRequest,
    request: Request,
    admin: CWSession = Depends(require_admin),
    service: EntitlementService = Depends(get_entitlement_service),
):
    entitlement = service.grant_entitlement(data.orgId, data.packId, data.purchaseId, data.expiresAt)

    safe_log_access(
        service.db,
        admin.user_id,
        admin.org_id,
        None,
        data.packId,
        "admin_grant_entitlement",
        client_ip(request),
        ["org_id", "pack_cache_id", "purchase_id", "expires_at"],
        metadata={"target_org": data.orgId},
    )

    return EntitlementResponse(
        id=entitlement.id,
        org_id=entitlement.org_id,
        pack_cache_id=entitlement.pack_cache_id,
        purchase_id=entitlement.purchase_id,
        granted_at=entitlement.granted_at,
        expires_at=entitlement.expires_at,
        revoked_at=entitlement.revoked_at,
    )


@router.delete("/admin/entitlements/{org_id}/{pack_id}")
async def revoke_entitlement(
    org_id: str,
    pack_id: str,
    request: Request,
    admin: CWSession = Depends(require_admin),
    service: EntitlementService = Depends(get_entitlement_service),
):
    if not service.revoke_entitlement(org_id, pack_id):
        raise HTTPException(status_code=404, detail="No active entitlement for this organisation and pack")

    safe_log_access(
        service.db,
        admin.user_id,
        admin.org_id,
        None,
        pack_id,
        "admin_revoke_entitlement",
        client_ip(request),
        ["revoked_at"],
        metadata={"target_org": org_id},
    )
    return {"message": "Entitlement revoked"}

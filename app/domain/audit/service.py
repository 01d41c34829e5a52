"""
Access audit logging.

Every access to entitled content, every matcher search by a signed-in
caller, and every admin entitlement change writes one row.

``fields_accessed`` holds column or facet names, never values. Optional
metadata is appended as a single ``meta:<json>`` element.
"""

import json
import logging
from typing import Optional, Union

from fastapi import Request
from sqlalchemy.orm import Session

from .repository import AuditRepository

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> Optional[str]:
    """First hop of X-Forwarded-For, falling back to the socket peer"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


def log_access(
    db: Session,
    user_id: str,
    org_id: Optional[str],
    playdate_id: Optional[str],
    pack_id: Optional[str],
    action: str,
    ip_address: Optional[str],
    fields_accessed: list[str],
    metadata: Optional[dict[str, Union[str, int]]] = None,
) -> None:
    fields = list(fields_accessed)
    if metadata:
        fields.append(f"meta:{json.dumps(metadata, sort_keys=True)}")

    AuditRepository.create_log(db, user_id, org_id, playdate_id, pack_id, action, ip_address, fields)


def safe_log_access(db: Session, *args, **kwargs) -> bool:
    """
    Best-effort ``log_access``.
    A failed audit write is logged and never fails the request it belongs to.
    """
    try:
        log_access(db, *args, **kwargs)
        return True
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to write audit log: {e}")
        return False

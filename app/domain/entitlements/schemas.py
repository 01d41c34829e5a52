"""Entitlement domain schemas - Pydantic models for validation"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator


class GrantEntitlementRequest(BaseModel):
    """Schema for an admin grant"""

    orgId: str
    packId: str
    purchaseId: Optional[str] = None
    expiresAt: Optional[datetime] = None

    @field_validator("orgId", "packId")
    @classmethod
    def not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("expiresAt")
    @classmethod
    def naive_utc(cls, v):
        # Stored as naive UTC
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class EntitlementResponse(BaseModel):
    id: str
    org_id: str
    pack_cache_id: str
    purchase_id: Optional[str] = None
    granted_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None

import logging
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from . import config
from .database import get_db
from .models import OrgMembership, User

logger = logging.getLogger(__name__)

# auto_error=False: most content routes are public and only enrich for signed-in callers
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CWSession:
    user_id: str
    email: str
    org_id: Optional[str] = None
    org_name: Optional[str] = None
    org_role: Optional[str] = None
    is_admin: bool = False
    # Admin or internal-domain email: may see collective-tier content
    is_internal: bool = False


def is_internal_email(email: str) -> bool:
    """True if the email belongs to the internal domain"""
    _, _, domain = email.partition("@")
    return bool(domain) and domain.strip().lower() == config.INTERNAL_EMAIL_DOMAIN


def issue_session_token(user_id: str, ttl_seconds: int = 3600) -> str:
    """
    Sign a session token for ``user_id``.
    Production tokens come from the auth provider; this is for local tooling and tests.
    """
    now = int(time.time())
    payload = {"sub": user_id, "iat": now, "exp": now + ttl_seconds}
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_session_token(token: str) -> Optional[dict]:
    """Verify signature and expiry. Returns the claims, or None if invalid."""
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"ℹ️ Rejected session token: {e}")
        return None


def load_session(db: Session, user_id: str) -> Optional[CWSession]:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️ Session token for unknown user {user_id}")
        return None

    membership = (
        db.query(OrgMembership)
        .filter(OrgMembership.user_id == user.id)
        .order_by(OrgMembership.joined_at.asc(), OrgMembership.id.asc())
        .first()
    )

    return CWSession(
        user_id=user.id,
        email=user.email,
        org_id=membership.org_id if membership else None,
        org_name=membership.organisation.name if membership else None,
        org_role=membership.role if membership else None,
        is_admin=bool(user.is_admin),
        is_internal=bool(user.is_admin) or is_internal_email(user.email),
    )


async def get_optional_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[CWSession]:
    """Resolve the caller's session, or None for anonymous callers"""
    if not credentials:
        return None

    claims = decode_session_token(credentials.credentials)
    if not claims or not claims.get("sub"):
        return None

    return load_session(db, str(claims["sub"]))


async def require_session(
    session: Optional[CWSession] = Depends(get_optional_session),
) -> CWSession:
    if session is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )
    return session


async def require_admin(session: CWSession = Depends(require_session)) -> CWSession:
    if not session.is_admin:
        logger.warning(f"⚠️ Non-admin {session.email} attempted to access an admin route")
        raise HTTPException(status_code=403, detail="Admin access required")
    return session

"""Audit repository - Database operations for the access audit trail"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import AccessAuditLog


class AuditRepository:
    """Repository for access_audit_logs"""

    @staticmethod
    def create_log(
        db: Session,
        user_id: str,
        org_id: Optional[str],
        playdate_id: Optional[str],
        pack_id: Optional[str],
        action: str,
        ip_address: Optional[str],
        fields_accessed: list[str],
    ) -> AccessAuditLog:
        log = AccessAuditLog(
            user_id=user_id,
            org_id=org_id,
            playdate_id=playdate_id,
            pack_id=pack_id,
            action=action,
            ip_address=ip_address,
            fields_accessed=fields_accessed,
        )
        db.add(log)
        db.commit()
        return log

    @staticmethod
    def get_logs_for_user(db: Session, user_id: str, action: Optional[str] = None) -> list[AccessAuditLog]:
        query = db.query(AccessAuditLog).filter(AccessAuditLog.user_id == user_id)
        if action:
            query = query.filter(AccessAuditLog.action == action)
        return query.order_by(AccessAuditLog.created_at.desc(), AccessAuditLog.id.desc()).all()

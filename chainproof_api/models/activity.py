"""Audit activity log model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String

from chainproof_api.db.base import Base


class ActivityLog(Base):
    """Audit trail of owner-visible actions (revocations, issuance)."""

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(36), ForeignKey("creators.id"), nullable=False, index=True)
    action = Column(String(100), nullable=False, index=True)  # asset_revoked, certificate_revoked, ...
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(255), nullable=False, index=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

"""Creator (subject) and API key models."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from chainproof_api.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Creator(Base):
    """A content owner submitting files for protection."""

    __tablename__ = "creators"

    id = Column(String(36), primary_key=True, default=_uuid)
    display_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True, index=True)
    status = Column(String(50), default="active", nullable=False)  # active, suspended, deleted
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    api_keys = relationship("APIKey", back_populates="creator", cascade="all, delete-orphan")
    assets = relationship("Asset", back_populates="owner")


class APIKey(Base):
    """API key model for creator authentication."""

    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    creator_id = Column(String(36), ForeignKey("creators.id"), nullable=False, index=True)
    prefix = Column(String(8), nullable=False, index=True)
    digest = Column(String(64), nullable=False)  # HMAC-SHA256 of the raw key
    label = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    creator = relationship("Creator", back_populates="api_keys")

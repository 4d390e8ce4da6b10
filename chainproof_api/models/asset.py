"""Protected asset model."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from chainproof_api.db.base import Base
from chainproof_api.errors import AlreadyRevoked


class AssetStatus:
    """Asset lifecycle states."""

    DRAFT = "draft"
    PROCESSING = "processing"
    PROTECTED = "protected"
    FAILED = "failed"
    REVOKED = "revoked"


ALLOWED_TRANSITIONS = {
    AssetStatus.DRAFT: {AssetStatus.PROCESSING, AssetStatus.PROTECTED, AssetStatus.FAILED},
    AssetStatus.PROCESSING: {AssetStatus.PROTECTED, AssetStatus.FAILED},
    AssetStatus.PROTECTED: {AssetStatus.REVOKED},
    AssetStatus.FAILED: {AssetStatus.REVOKED},
    AssetStatus.REVOKED: set(),
}


class Asset(Base):
    """One uploaded file under protection and its derived protection state.

    `content_hash` is the single canonical location of the file digest.
    """

    __tablename__ = "assets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), ForeignKey("creators.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False)  # art, video, music, document, other
    visibility = Column(String(50), default="private", nullable=False)
    tags = Column(JSON, nullable=True)
    original_name = Column(String(500), nullable=False)
    mime_type = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    content_hash = Column(String(64), nullable=False, index=True)

    # Storage
    storage_path = Column(Text, nullable=False)
    ipfs_hash = Column(String(255), nullable=True, index=True)
    ipfs_url = Column(Text, nullable=True)

    # Ledger anchor
    ledger_tx_ref = Column(String(255), nullable=True, index=True)
    ledger_block_ref = Column(Integer, nullable=True)
    ledger_timestamp = Column(DateTime, nullable=True)
    ledger_subject_address = Column(String(255), nullable=True)
    ledger_network = Column(String(100), nullable=True)

    protection_score = Column(Integer, nullable=False, default=0)  # 0-100
    status = Column(String(20), default=AssetStatus.DRAFT, nullable=False, index=True)
    metadata_json = Column(JSON, nullable=True)  # dimensions, extraction details
    revocation_reason = Column(Text, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    owner = relationship("Creator", back_populates="assets")
    certificates = relationship("Certificate", back_populates="asset")

    def transition_to(self, new_status: str, at: Optional[datetime] = None) -> None:
        """Move to `new_status`, enforcing the lifecycle."""
        if self.status == AssetStatus.REVOKED:
            raise AlreadyRevoked(f"Asset {self.id} is already revoked")
        if new_status not in ALLOWED_TRANSITIONS.get(self.status, set()):
            raise ValueError(f"Invalid asset transition {self.status} -> {new_status}")
        self.status = new_status
        self.updated_at = at or datetime.utcnow()

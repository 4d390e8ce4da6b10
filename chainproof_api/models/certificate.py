"""Certificate model."""

from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from chainproof_api.db.base import Base


class CertificateStatus:
    """Certificate states. `revoked` is terminal."""

    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


class Certificate(Base):
    """Verifiable claim bound to a snapshot of one asset's protection state.

    Snapshot columns are written once at issuance and never follow later
    changes to the source asset.
    """

    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, index=True)
    certificate_id = Column(String(64), nullable=False, unique=True, index=True)
    owner_id = Column(String(36), ForeignKey("creators.id"), nullable=False, index=True)
    asset_id = Column(String(36), ForeignKey("assets.id"), nullable=True, index=True)

    # Snapshot
    owner_name = Column(String(255), nullable=False)
    asset_title = Column(String(500), nullable=False)
    content_hash = Column(String(64), nullable=False, index=True)
    protection_date = Column(DateTime, nullable=False)
    ledger_tx_ref = Column(String(255), nullable=True)
    ledger_block_ref = Column(Integer, nullable=True)
    ledger_timestamp = Column(DateTime, nullable=True)
    ledger_subject_address = Column(String(255), nullable=True)
    ledger_network = Column(String(100), nullable=True)
    ipfs_hash = Column(String(255), nullable=True)
    ipfs_url = Column(Text, nullable=True)
    asset_type = Column(String(255), nullable=True)
    file_size = Column(BigInteger, nullable=True)
    protection_score = Column(Integer, nullable=True)

    # Artifact
    storage_key = Column(Text, nullable=False)
    download_url = Column(Text, nullable=False)
    ipfs_uri = Column(Text, nullable=True)
    file_name = Column(String(255), nullable=False)
    artifact_size = Column(Integer, nullable=False)

    # Verification
    verification_url = Column(Text, nullable=False)
    qr_payload = Column(JSON, nullable=False)
    signature = Column(Text, nullable=True)
    key_id = Column(String(100), nullable=True)
    alg = Column(String(20), default="PS256", nullable=False)
    status = Column(String(20), default=CertificateStatus.ACTIVE, nullable=False, index=True)
    verification_count = Column(Integer, default=0, nullable=False)
    last_verified_at = Column(DateTime, nullable=True)
    revocation_reason = Column(Text, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    asset = relationship("Asset", back_populates="certificates")

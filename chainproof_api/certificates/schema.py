"""Certificate request, result and view models."""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from chainproof_api.models import Certificate
from chainproof_api.protection.schema import DistributedLocation, LedgerRecord, ledger_record_for
from chainproof_api.utils.formatting import days_since, format_file_size

SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


class CertificateRequest(BaseModel):
    """Snapshot of a protected asset to certify."""

    owner_name: str
    asset_title: str
    content_hash: str
    protection_date: datetime
    ledger_record: Optional[LedgerRecord] = None
    distributed_ref: Optional[DistributedLocation] = None
    asset_id: Optional[str] = None
    asset_type: Optional[str] = None
    file_size: Optional[int] = None
    protection_score: Optional[int] = None

    @field_validator("content_hash")
    @classmethod
    def normalize_content_hash(cls, value: str) -> str:
        """Lowercase hex SHA-256. Blank values are left for the issuer to reject."""
        value = value.strip().lower()
        if value and not SHA256_HEX.match(value):
            raise ValueError("content_hash must be a 64-character hex SHA-256 digest")
        return value


class ArtifactMetadata(BaseModel):
    file_name: str
    file_size: int
    created_at: datetime


class CertificateResult(BaseModel):
    """Outcome of a completed issuance. `artifact` is the rendered PDF."""

    certificate_id: str
    artifact: Optional[bytes] = Field(default=None, exclude=True, repr=False)
    download_url: str
    ipfs_uri: Optional[str] = None
    verification_url: str
    qr_payload: dict
    signature: Optional[str] = None
    key_id: Optional[str] = None
    metadata: ArtifactMetadata


class CertificateView(BaseModel):
    """Stored certificate as shown to owners and verifiers."""

    certificate_id: str
    asset_id: Optional[str] = None
    owner_name: str
    asset_title: str
    content_hash: str
    protection_date: datetime
    ledger_record: Optional[LedgerRecord] = None
    distributed: Optional[DistributedLocation] = None
    asset_type: Optional[str] = None
    file_size: Optional[int] = None
    protection_score: Optional[int] = None
    verification_url: str
    download_url: str
    ipfs_uri: Optional[str] = None
    file_name: str
    status: str
    verification_count: int
    last_verified_at: Optional[datetime] = None
    revocation_reason: Optional[str] = None
    revoked_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime

    # Derived
    size_formatted: str
    is_blockchain_verified: bool
    is_ipfs_stored: bool
    days_since_issued: int


class VerificationResult(BaseModel):
    valid: bool
    certificate: Optional[CertificateView] = None
    error: Optional[str] = None


def certificate_view(certificate: Certificate) -> CertificateView:
    distributed = None
    if certificate.ipfs_hash:
        distributed = DistributedLocation(
            network_hash=certificate.ipfs_hash,
            gateway_url=certificate.ipfs_url or "",
        )
    return CertificateView(
        certificate_id=certificate.certificate_id,
        asset_id=certificate.asset_id,
        owner_name=certificate.owner_name,
        asset_title=certificate.asset_title,
        content_hash=certificate.content_hash,
        protection_date=certificate.protection_date,
        ledger_record=ledger_record_for(certificate),
        distributed=distributed,
        asset_type=certificate.asset_type,
        file_size=certificate.file_size,
        protection_score=certificate.protection_score,
        verification_url=certificate.verification_url,
        download_url=certificate.download_url,
        ipfs_uri=certificate.ipfs_uri,
        file_name=certificate.file_name,
        status=certificate.status,
        verification_count=certificate.verification_count,
        last_verified_at=certificate.last_verified_at,
        revocation_reason=certificate.revocation_reason,
        revoked_at=certificate.revoked_at,
        expires_at=certificate.expires_at,
        created_at=certificate.created_at,
        size_formatted=format_file_size(certificate.artifact_size),
        is_blockchain_verified=bool(certificate.ledger_tx_ref),
        is_ipfs_stored=bool(certificate.ipfs_uri or certificate.ipfs_hash),
        days_since_issued=days_since(certificate.created_at),
    )

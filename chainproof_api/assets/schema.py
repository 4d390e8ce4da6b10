"""Asset views and revocation models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from chainproof_api.models import Asset
from chainproof_api.protection.schema import LedgerRecord, StorageLocation, ledger_record_for, storage_location_for
from chainproof_api.protection.scoring import protection_level
from chainproof_api.utils.formatting import format_file_size


class AssetView(BaseModel):
    id: str
    owner_id: str
    title: str
    description: Optional[str] = None
    category: str
    visibility: str
    tags: List[str] = Field(default_factory=list)
    original_name: str
    mime_type: str
    file_size: int
    content_hash: str
    storage_location: StorageLocation
    ledger_record: Optional[LedgerRecord] = None
    protection_score: int
    status: str
    metadata: dict = Field(default_factory=dict)
    revocation_reason: Optional[str] = None
    revoked_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    # Derived
    size_formatted: str
    protection_level: str
    is_blockchain_verified: bool
    is_ipfs_stored: bool


def asset_view(asset: Asset) -> AssetView:
    return AssetView(
        id=asset.id,
        owner_id=asset.owner_id,
        title=asset.title,
        description=asset.description,
        category=asset.category,
        visibility=asset.visibility,
        tags=asset.tags or [],
        original_name=asset.original_name,
        mime_type=asset.mime_type,
        file_size=asset.file_size,
        content_hash=asset.content_hash,
        storage_location=storage_location_for(asset),
        ledger_record=ledger_record_for(asset),
        protection_score=asset.protection_score,
        status=asset.status,
        metadata=asset.metadata_json or {},
        revocation_reason=asset.revocation_reason,
        revoked_at=asset.revoked_at,
        created_at=asset.created_at,
        updated_at=asset.updated_at,
        size_formatted=format_file_size(asset.file_size),
        protection_level=protection_level(asset.protection_score),
        is_blockchain_verified=bool(asset.ledger_tx_ref),
        is_ipfs_stored=bool(asset.ipfs_hash),
    )


class RevocationRequest(BaseModel):
    reason: Optional[str] = None
    notify_owner: bool = False


class RevocationResult(BaseModel):
    asset_id: str
    status: str
    previous_status: str
    reason: str
    revoked_at: datetime
    certificates_revoked: int
    blockchain_update_required: bool
    ipfs_removal_required: bool
    owner_notified: bool

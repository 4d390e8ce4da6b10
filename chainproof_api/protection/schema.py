"""Request and result models for the protection pipeline."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from chainproof_api.models import Asset


class Subject(BaseModel):
    """Authenticated submitter."""

    id: str
    display_name: Optional[str] = None


class ProtectionOptions(BaseModel):
    """Optional stages to attempt for one protection request."""

    enable_distributed_storage: bool = False
    enable_ledger: bool = False


class AssetMetadata(BaseModel):
    """Describes the uploaded file and the owner's catalogue fields."""

    file_name: str
    content_type: str
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    visibility: Literal["public", "private", "organization"] = "private"
    tags: List[str] = Field(default_factory=list)


class ObjectLocation(BaseModel):
    kind: Literal["object"] = "object"
    path: str
    public_url: Optional[str] = None


class DistributedLocation(BaseModel):
    kind: Literal["distributed"] = "distributed"
    network_hash: str
    gateway_url: str


class StorageLocation(BaseModel):
    """Primary object location plus the distributed copy when one exists."""

    primary: ObjectLocation
    distributed: Optional[DistributedLocation] = None


class LedgerRecord(BaseModel):
    transaction_ref: str
    block_ref: int
    timestamp: datetime
    subject_address: str
    network: Optional[str] = None


class ProtectionResult(BaseModel):
    """Outcome of a completed protection request."""

    asset_id: str
    content_hash: str
    storage_location: StorageLocation
    ledger_record: Optional[LedgerRecord] = None
    protection_score: int
    status: str


def storage_location_for(asset: Asset, public_url: Optional[str] = None) -> StorageLocation:
    """Rebuild the storage location union from an asset row."""
    distributed = None
    if asset.ipfs_hash:
        distributed = DistributedLocation(network_hash=asset.ipfs_hash, gateway_url=asset.ipfs_url or "")
    return StorageLocation(
        primary=ObjectLocation(path=asset.storage_path, public_url=public_url),
        distributed=distributed,
    )


def ledger_record_for(asset) -> Optional[LedgerRecord]:
    """Ledger record of an asset or certificate snapshot, if anchored."""
    if not asset.ledger_tx_ref:
        return None
    return LedgerRecord(
        transaction_ref=asset.ledger_tx_ref,
        block_ref=asset.ledger_block_ref,
        timestamp=asset.ledger_timestamp,
        subject_address=asset.ledger_subject_address,
        network=asset.ledger_network,
    )

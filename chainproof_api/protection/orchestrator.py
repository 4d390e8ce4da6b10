"""Protection orchestrator.

Sequences one protection request through a fixed stage table:

    authenticate -> validate -> hash -> primary_store
        -> distributed_store (optional) -> ledger_anchor (optional) -> persist

Nothing is written to the catalog before `persist`, so a failure in any
mandatory stage leaves no asset row. Objects already uploaded to primary
storage when a later mandatory stage fails are left in place.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chainproof_api.auth.subject import SubjectProvider
from chainproof_api.distributed.ipfs import DistributedStorage
from chainproof_api.errors import ChainProofError, StorageError
from chainproof_api.ledger.client import LedgerClient
from chainproof_api.models import Asset, AssetStatus
from chainproof_api.protection.hashing import HashService
from chainproof_api.protection.metadata import determine_category, extract_file_metadata
from chainproof_api.protection.naming import build_object_key
from chainproof_api.protection.schema import (
    AssetMetadata,
    DistributedLocation,
    LedgerRecord,
    ObjectLocation,
    ProtectionOptions,
    ProtectionResult,
    StorageLocation,
)
from chainproof_api.protection.scoring import protection_score
from chainproof_api.protection.stages import PipelineContext, Stage, run_stages
from chainproof_api.protection.validation import UploadValidator
from chainproof_api.storage.service import ObjectStore
from chainproof_api.utils.metrics import (
    active_protections,
    protection_duration,
    protection_requests,
)

logger = logging.getLogger(__name__)


class ProtectionOrchestrator:
    """Turns one uploaded file into one protected asset record."""

    def __init__(
        self,
        db: Session,
        subject_provider: SubjectProvider,
        object_store: ObjectStore,
        distributed_storage: Optional[DistributedStorage] = None,
        ledger: Optional[LedgerClient] = None,
        hash_service: Optional[HashService] = None,
        validator: Optional[UploadValidator] = None,
    ):
        self.db = db
        self.subject_provider = subject_provider
        self.object_store = object_store
        self.distributed_storage = distributed_storage
        self.ledger = ledger
        self.hash_service = hash_service or HashService()
        self.validator = validator or UploadValidator()

    def stages(self) -> List[Stage]:
        return [
            Stage("authenticate", self._authenticate),
            Stage("validate", self._validate),
            Stage("hash", self._hash),
            Stage("primary_store", self._store_primary),
            Stage(
                "distributed_store",
                self._publish_distributed,
                mandatory=False,
                enabled=self._distributed_enabled,
            ),
            Stage(
                "ledger_anchor",
                self._anchor,
                mandatory=False,
                enabled=self._ledger_enabled,
            ),
            Stage("persist", self._persist),
        ]

    def protect(
        self,
        data: bytes,
        metadata: AssetMetadata,
        options: Optional[ProtectionOptions] = None,
    ) -> ProtectionResult:
        """Run the pipeline for one file.

        Raises:
            Unauthenticated: No valid subject
            ValidationError: Size or type constraint violated
            InputError: The bytes could not be read
            StorageError: Primary storage or the catalog write failed
        """
        ctx = PipelineContext(data=data, metadata=metadata, options=options or ProtectionOptions())

        active_protections.inc()
        try:
            with protection_duration.time():
                run_stages(self.stages(), ctx)
        except ChainProofError as e:
            protection_requests.labels(outcome=type(e).__name__).inc()
            raise
        finally:
            active_protections.dec()

        asset = ctx.outcomes["persist"].value
        protection_requests.labels(outcome="protected").inc()
        logger.info(
            "Asset protected",
            extra={
                "asset_id": asset.id,
                "protection_score": asset.protection_score,
                "stages": ctx.stage_states(),
            },
        )
        return self._result(ctx, asset)

    # Stage enablement

    def _distributed_enabled(self, ctx: PipelineContext) -> bool:
        return ctx.options.enable_distributed_storage and self.distributed_storage is not None

    def _ledger_enabled(self, ctx: PipelineContext) -> bool:
        # An anchor references the distributed hash, so it needs a successful publish.
        return (
            ctx.options.enable_ledger
            and self.ledger is not None
            and ctx.succeeded("distributed_store")
        )

    # Stages

    def _authenticate(self, ctx: PipelineContext):
        ctx.subject = self.subject_provider.get_current_subject()
        return ctx.subject

    def _validate(self, ctx: PipelineContext):
        self.validator.validate(len(ctx.data), ctx.metadata.content_type)

    def _hash(self, ctx: PipelineContext):
        ctx.content_hash = self.hash_service.digest(ctx.data)
        return ctx.content_hash

    def _store_primary(self, ctx: PipelineContext):
        ctx.object_key = build_object_key(ctx.subject.id, ctx.metadata.file_name)
        try:
            stored = self.object_store.put(ctx.object_key, ctx.data, ctx.metadata.content_type)
            ctx.object_path = stored["path"]
            ctx.public_url = self.object_store.public_url(ctx.object_key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Storage upload failed: {e}") from e
        return ctx.object_path

    def _publish_distributed(self, ctx: PipelineContext):
        ctx.distributed = self.distributed_storage.publish(ctx.data, file_name=ctx.metadata.file_name)
        return ctx.distributed

    def _anchor(self, ctx: PipelineContext):
        ctx.anchor = self.ledger.anchor(ctx.subject.id, ctx.content_hash, ctx.distributed.network_hash)
        return ctx.anchor

    def _persist(self, ctx: PipelineContext) -> Asset:
        metadata = ctx.metadata
        distributed_ok = ctx.succeeded("distributed_store")
        ledger_ok = ctx.succeeded("ledger_anchor")

        file_metadata = extract_file_metadata(ctx.data, metadata.content_type, metadata.file_name)
        file_metadata["stages"] = ctx.stage_states()

        asset = Asset(
            owner_id=ctx.subject.id,
            title=metadata.title or metadata.file_name,
            description=metadata.description,
            category=metadata.category or determine_category(metadata.content_type),
            visibility=metadata.visibility,
            tags=list(metadata.tags),
            original_name=metadata.file_name,
            mime_type=metadata.content_type,
            file_size=len(ctx.data),
            content_hash=ctx.content_hash,
            storage_path=ctx.object_path,
            protection_score=protection_score(distributed_ok, ledger_ok),
            status=AssetStatus.DRAFT,
            metadata_json=file_metadata,
        )
        if distributed_ok:
            asset.ipfs_hash = ctx.distributed.network_hash
            asset.ipfs_url = ctx.distributed.gateway_url
        if ledger_ok:
            asset.ledger_tx_ref = ctx.anchor.transaction_ref
            asset.ledger_block_ref = ctx.anchor.block_ref
            asset.ledger_timestamp = ctx.anchor.timestamp
            asset.ledger_subject_address = ctx.anchor.subject_address
            asset.ledger_network = ctx.anchor.network
        asset.transition_to(AssetStatus.PROTECTED, at=datetime.utcnow())

        try:
            self.db.add(asset)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to save asset record: {e}") from e
        return asset

    def _result(self, ctx: PipelineContext, asset: Asset) -> ProtectionResult:
        distributed = None
        if asset.ipfs_hash:
            distributed = DistributedLocation(network_hash=asset.ipfs_hash, gateway_url=asset.ipfs_url)

        ledger_record = None
        if ctx.anchor is not None and asset.ledger_tx_ref:
            ledger_record = LedgerRecord(**ctx.anchor.model_dump())

        return ProtectionResult(
            asset_id=asset.id,
            content_hash=asset.content_hash,
            storage_location=StorageLocation(
                primary=ObjectLocation(path=asset.storage_path, public_url=ctx.public_url),
                distributed=distributed,
            ),
            ledger_record=ledger_record,
            protection_score=asset.protection_score,
            status=asset.status,
        )

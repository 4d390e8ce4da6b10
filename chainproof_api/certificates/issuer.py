"""Certificate issuance."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chainproof_api.certificates.payload import (
    build_qr_payload,
    build_verification_url,
    encode_qr_content,
    generate_certificate_id,
    sign_payload,
)
from chainproof_api.certificates.renderer import CertificateRenderer
from chainproof_api.certificates.schema import (
    ArtifactMetadata,
    CertificateRequest,
    CertificateResult,
)
from chainproof_api.distributed.ipfs import DistributedStorage
from chainproof_api.errors import NotFoundError, StorageError, ValidationError
from chainproof_api.ledger.signer import Signer, get_signer
from chainproof_api.models import ActivityLog, Asset, AssetStatus, Certificate, CertificateStatus
from chainproof_api.protection.naming import sanitize_filename
from chainproof_api.protection.schema import Subject, ledger_record_for, storage_location_for
from chainproof_api.settings import get_settings
from chainproof_api.storage.service import ObjectStore
from chainproof_api.utils.metrics import certificates_issued

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("owner_name", "asset_title", "content_hash")


class CertificateIssuer:
    """Render, store and record verifiable certificates."""

    def __init__(
        self,
        db: Session,
        object_store: ObjectStore,
        distributed_storage: Optional[DistributedStorage] = None,
        signer: Optional[Signer] = None,
        renderer: Optional[CertificateRenderer] = None,
        verification_base_url: Optional[str] = None,
        ttl_days: Optional[int] = None,
    ):
        settings = get_settings()
        self.db = db
        self.object_store = object_store
        self.distributed_storage = distributed_storage
        self.signer = signer or get_signer()
        self.renderer = renderer or CertificateRenderer()
        self.verification_base_url = verification_base_url or settings.verification_base_url
        self.ttl_days = ttl_days if ttl_days is not None else settings.certificate_ttl_days

    def issue(self, request: CertificateRequest, subject: Subject) -> CertificateResult:
        """Issue a certificate for `request` owned by `subject`.

        Raises:
            ValidationError: A required field is blank
            RenderError: The document could not be built
            StorageError: The artifact or the certificate record could not be saved
        """
        for field_name in REQUIRED_FIELDS:
            if not (getattr(request, field_name) or "").strip():
                raise ValidationError(f"{field_name} is required")

        certificate_id = generate_certificate_id()
        verification_url = build_verification_url(
            self.verification_base_url, certificate_id, request.content_hash
        )
        qr_payload = build_qr_payload(certificate_id, verification_url, request)
        signature = sign_payload(qr_payload, self.signer)
        key_id = self.signer.get_key_id()

        created_at = datetime.utcnow()
        artifact = self.renderer.render(
            certificate_id,
            request,
            verification_url,
            encode_qr_content(qr_payload, signature, key_id),
            generated_at=created_at,
        )

        file_name = f"chainproof-certificate-{certificate_id}.pdf"
        storage_key = f"{sanitize_filename(subject.id)}/{certificate_id}.pdf"
        try:
            self.object_store.put(storage_key, artifact, "application/pdf")
            download_url = self.object_store.public_url(storage_key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Certificate upload failed: {e}") from e

        ipfs_uri = self._publish_artifact(certificate_id, artifact, file_name)

        certificate = Certificate(
            certificate_id=certificate_id,
            owner_id=subject.id,
            asset_id=request.asset_id,
            owner_name=request.owner_name,
            asset_title=request.asset_title,
            content_hash=request.content_hash,
            protection_date=request.protection_date,
            asset_type=request.asset_type,
            file_size=request.file_size,
            protection_score=request.protection_score,
            storage_key=storage_key,
            download_url=download_url,
            ipfs_uri=ipfs_uri,
            file_name=file_name,
            artifact_size=len(artifact),
            verification_url=verification_url,
            qr_payload=qr_payload,
            signature=signature,
            key_id=key_id,
            alg=self.signer.algorithm,
            status=CertificateStatus.ACTIVE,
            verification_count=0,
            expires_at=created_at + timedelta(days=self.ttl_days) if self.ttl_days else None,
            created_at=created_at,
        )
        if request.ledger_record:
            certificate.ledger_tx_ref = request.ledger_record.transaction_ref
            certificate.ledger_block_ref = request.ledger_record.block_ref
            certificate.ledger_timestamp = request.ledger_record.timestamp
            certificate.ledger_subject_address = request.ledger_record.subject_address
            certificate.ledger_network = request.ledger_record.network
        if request.distributed_ref:
            certificate.ipfs_hash = request.distributed_ref.network_hash
            certificate.ipfs_url = request.distributed_ref.gateway_url

        try:
            self.db.add(certificate)
            self.db.add(
                ActivityLog(
                    owner_id=subject.id,
                    action="certificate_issued",
                    resource_type="certificate",
                    resource_id=certificate_id,
                    details={"asset_title": request.asset_title, "content_hash": request.content_hash},
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to save certificate record: {e}") from e

        certificates_issued.inc()
        logger.info(
            "Certificate issued",
            extra={"certificate_id": certificate_id, "owner_id": subject.id},
        )

        return CertificateResult(
            certificate_id=certificate_id,
            artifact=artifact,
            download_url=download_url,
            ipfs_uri=ipfs_uri,
            verification_url=verification_url,
            qr_payload=qr_payload,
            signature=signature,
            key_id=key_id,
            metadata=ArtifactMetadata(file_name=file_name, file_size=len(artifact), created_at=created_at),
        )

    def issue_for_asset(self, subject: Subject, asset_id: str, owner_name: Optional[str] = None) -> CertificateResult:
        """Issue a certificate from a stored asset owned by `subject`."""
        asset = (
            self.db.query(Asset)
            .filter(Asset.id == asset_id, Asset.owner_id == subject.id)
            .first()
        )
        if asset is None:
            raise NotFoundError("Asset not found")
        if asset.status != AssetStatus.PROTECTED:
            raise ValidationError(f"Cannot certify an asset with status {asset.status}")

        location = storage_location_for(asset)
        request = CertificateRequest(
            owner_name=owner_name or subject.display_name or subject.id,
            asset_title=asset.title,
            content_hash=asset.content_hash,
            protection_date=asset.created_at,
            ledger_record=ledger_record_for(asset),
            distributed_ref=location.distributed,
            asset_id=asset.id,
            asset_type=asset.mime_type,
            file_size=asset.file_size,
            protection_score=asset.protection_score,
        )
        return self.issue(request, subject)

    def _publish_artifact(self, certificate_id: str, artifact: bytes, file_name: str) -> Optional[str]:
        if self.distributed_storage is None:
            return None
        try:
            receipt = self.distributed_storage.publish(artifact, file_name=file_name)
        except Exception as e:
            logger.warning(
                f"Certificate IPFS publish failed, continuing without it: {e}",
                extra={"certificate_id": certificate_id},
            )
            return None
        return f"ipfs://{receipt.network_hash}"

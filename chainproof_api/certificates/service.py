"""Certificate verification, revocation and catalogue queries."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from chainproof_api.certificates.schema import VerificationResult, certificate_view
from chainproof_api.errors import NotFoundError
from chainproof_api.models import ActivityLog, Certificate, CertificateStatus
from chainproof_api.storage.service import ObjectStore
from chainproof_api.utils.metrics import certificate_verifications, revocations

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class CertificateService:
    """Operations on issued certificates."""

    def __init__(self, db: Session):
        self.db = db

    def _get(self, certificate_id: str) -> Optional[Certificate]:
        return self.db.query(Certificate).filter(Certificate.certificate_id == certificate_id).first()

    def get_owned(self, owner_id: str, certificate_id: str) -> Certificate:
        certificate = self._get(certificate_id)
        if certificate is None or certificate.owner_id != owner_id:
            raise NotFoundError("Certificate not found")
        return certificate

    def verify(self, certificate_id: str, content_hash: Optional[str] = None) -> VerificationResult:
        """Check a certificate by id, optionally against a content hash.

        A database lookup only. Unknown ids return ``valid=False`` rather
        than raising. Successful checks bump `verification_count` with a
        single UPDATE so concurrent verifications are all counted.
        """
        certificate = self._get(certificate_id)
        if certificate is None:
            certificate_verifications.labels(result="not_found").inc()
            return VerificationResult(valid=False, error="Certificate not found")

        now = datetime.utcnow()
        if certificate.status == CertificateStatus.REVOKED:
            certificate_verifications.labels(result="revoked").inc()
            return VerificationResult(
                valid=False, certificate=certificate_view(certificate), error="Certificate revoked"
            )

        if certificate.status == CertificateStatus.EXPIRED or (
            certificate.expires_at is not None and certificate.expires_at <= now
        ):
            if certificate.status != CertificateStatus.EXPIRED:
                certificate.status = CertificateStatus.EXPIRED
                self.db.commit()
            certificate_verifications.labels(result="expired").inc()
            return VerificationResult(
                valid=False, certificate=certificate_view(certificate), error="Certificate expired"
            )

        if content_hash and content_hash.strip().lower() != certificate.content_hash.lower():
            certificate_verifications.labels(result="hash_mismatch").inc()
            return VerificationResult(
                valid=False, certificate=certificate_view(certificate), error="Content hash mismatch"
            )

        self.db.query(Certificate).filter(Certificate.id == certificate.id).update(
            {
                Certificate.verification_count: Certificate.verification_count + 1,
                Certificate.last_verified_at: now,
            },
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(certificate)

        certificate_verifications.labels(result="valid").inc()
        logger.info("Certificate verified", extra={"certificate_id": certificate_id})
        return VerificationResult(valid=True, certificate=certificate_view(certificate))

    def revoke(self, certificate_id: str, reason: str, owner_id: Optional[str] = None) -> bool:
        """Revoke one certificate. Returns False if it was already revoked.

        Raises:
            NotFoundError: Unknown id, or not owned by `owner_id` when given
        """
        certificate = self._get(certificate_id)
        if certificate is None or (owner_id is not None and certificate.owner_id != owner_id):
            raise NotFoundError("Certificate not found")
        if certificate.status == CertificateStatus.REVOKED:
            return False

        now = datetime.utcnow()
        certificate.status = CertificateStatus.REVOKED
        certificate.revocation_reason = reason
        certificate.revoked_at = now
        self.db.add(
            ActivityLog(
                owner_id=certificate.owner_id,
                action="certificate_revoked",
                resource_type="certificate",
                resource_id=certificate_id,
                details={"reason": reason, "revoked_at": now.isoformat()},
            )
        )
        self.db.commit()

        revocations.labels(resource_type="certificate").inc()
        logger.info("Certificate revoked", extra={"certificate_id": certificate_id})
        return True

    def list_certificates(
        self,
        owner_id: str,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> dict:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        query = self.db.query(Certificate).filter(Certificate.owner_id == owner_id)
        if status:
            query = query.filter(Certificate.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Certificate.asset_title.ilike(pattern),
                    Certificate.certificate_id.ilike(pattern),
                    Certificate.owner_name.ilike(pattern),
                )
            )

        total = query.count()
        certificates = (
            query.order_by(Certificate.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return {
            "certificates": [certificate_view(c) for c in certificates],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "has_next": page * limit < total,
                "has_prev": page > 1,
            },
            "summary": self._summary(owner_id),
        }

    def _summary(self, owner_id: str) -> dict:
        owned = Certificate.owner_id == owner_id
        total, verifications, average_score = (
            self.db.query(
                func.count(Certificate.id),
                func.coalesce(func.sum(Certificate.verification_count), 0),
                func.avg(Certificate.protection_score),
            )
            .filter(owned)
            .one()
        )

        def count(*criteria) -> int:
            return self.db.query(func.count(Certificate.id)).filter(owned, *criteria).scalar()

        return {
            "total_certificates": total,
            "active_certificates": count(Certificate.status == CertificateStatus.ACTIVE),
            "revoked_certificates": count(Certificate.status == CertificateStatus.REVOKED),
            "total_verifications": int(verifications),
            "average_protection_score": round(float(average_score)) if average_score is not None else 0,
            "blockchain_verified_count": count(Certificate.ledger_tx_ref.isnot(None)),
        }

    def download(self, owner_id: str, certificate_id: str, object_store: ObjectStore) -> tuple[bytes, str]:
        """Return the stored PDF and its file name."""
        certificate = self.get_owned(owner_id, certificate_id)
        return object_store.get(certificate.storage_key), certificate.file_name

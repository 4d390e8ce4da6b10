"""Asset catalogue queries and revocation."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from chainproof_api.assets.schema import RevocationResult, asset_view
from chainproof_api.errors import AlreadyRevoked, NotFoundError
from chainproof_api.models import ActivityLog, Asset, AssetStatus, Certificate, CertificateStatus
from chainproof_api.utils.metrics import revocations

logger = logging.getLogger(__name__)

DEFAULT_REVOCATION_REASON = "User requested revocation"
CASCADE_REVOCATION_REASON = "source asset revoked"
MAX_PAGE_SIZE = 100
SORTABLE_FIELDS = {
    "created_at": Asset.created_at,
    "updated_at": Asset.updated_at,
    "title": Asset.title,
    "file_size": Asset.file_size,
    "protection_score": Asset.protection_score,
}


class AssetService:
    """Owner-scoped operations on protected assets."""

    def __init__(self, db: Session):
        self.db = db

    def get_asset(self, owner_id: str, asset_id: str) -> Asset:
        asset = (
            self.db.query(Asset)
            .filter(Asset.id == asset_id, Asset.owner_id == owner_id)
            .first()
        )
        if asset is None:
            raise NotFoundError("Asset not found")
        return asset

    def list_assets(
        self,
        owner_id: str,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> dict:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        query = self.db.query(Asset).filter(Asset.owner_id == owner_id)
        if status:
            query = query.filter(Asset.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Asset.title.ilike(pattern),
                    Asset.description.ilike(pattern),
                    Asset.original_name.ilike(pattern),
                )
            )

        sort_column = SORTABLE_FIELDS.get(sort_by, Asset.created_at)
        order = sort_column.asc() if sort_order.lower() == "asc" else sort_column.desc()

        total = query.count()
        assets = query.order_by(order).offset((page - 1) * limit).limit(limit).all()

        return {
            "assets": [asset_view(a) for a in assets],
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
        owned = Asset.owner_id == owner_id
        total, average_score = (
            self.db.query(func.count(Asset.id), func.avg(Asset.protection_score)).filter(owned).one()
        )

        def count(*criteria) -> int:
            return self.db.query(func.count(Asset.id)).filter(owned, *criteria).scalar()

        return {
            "total_assets": total,
            "protected_assets": count(Asset.status == AssetStatus.PROTECTED),
            "blockchain_verified": count(Asset.ledger_tx_ref.isnot(None)),
            "average_protection_score": round(float(average_score)) if average_score is not None else 0,
        }

    def revoke_asset(
        self,
        owner_id: str,
        asset_id: str,
        reason: Optional[str] = None,
        notify_owner: bool = False,
    ) -> RevocationResult:
        """Revoke an asset and every active certificate issued for its content.

        Raises:
            NotFoundError: Unknown asset or not owned by `owner_id`
            AlreadyRevoked: The asset is already revoked; nothing changes
        """
        asset = self.get_asset(owner_id, asset_id)
        if asset.status == AssetStatus.REVOKED:
            raise AlreadyRevoked("Asset is already revoked")

        now = datetime.utcnow()
        previous_status = asset.status
        asset_reason = reason or DEFAULT_REVOCATION_REASON

        asset.transition_to(AssetStatus.REVOKED, at=now)
        asset.revocation_reason = asset_reason
        asset.revoked_at = now

        certificates = (
            self.db.query(Certificate)
            .filter(
                Certificate.owner_id == owner_id,
                Certificate.content_hash == asset.content_hash,
                Certificate.status == CertificateStatus.ACTIVE,
            )
            .all()
        )
        for certificate in certificates:
            certificate.status = CertificateStatus.REVOKED
            certificate.revocation_reason = reason or CASCADE_REVOCATION_REASON
            certificate.revoked_at = now

        self.db.add(
            ActivityLog(
                owner_id=owner_id,
                action="asset_revoked",
                resource_type="asset",
                resource_id=asset.id,
                details={
                    "asset_title": asset.title,
                    "previous_status": previous_status,
                    "reason": asset_reason,
                    "certificates_revoked": len(certificates),
                    "revoked_at": now.isoformat(),
                },
            )
        )
        self.db.commit()

        revocations.labels(resource_type="asset").inc()
        logger.info(
            "Asset revoked",
            extra={"asset_id": asset.id, "certificates_revoked": len(certificates)},
        )
        if notify_owner:
            # There is no delivery channel; the request is only logged.
            logger.info("Owner notification queued", extra={"asset_id": asset.id, "owner_id": owner_id})

        return RevocationResult(
            asset_id=asset.id,
            status=asset.status,
            previous_status=previous_status,
            reason=asset_reason,
            revoked_at=now,
            certificates_revoked=len(certificates),
            blockchain_update_required=bool(asset.ledger_tx_ref),
            ipfs_removal_required=bool(asset.ipfs_hash),
            owner_notified=notify_owner,
        )

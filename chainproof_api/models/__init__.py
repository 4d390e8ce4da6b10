"""Database models - import all models here for metadata discovery."""

from chainproof_api.models.activity import ActivityLog
from chainproof_api.models.asset import Asset, AssetStatus
from chainproof_api.models.certificate import Certificate, CertificateStatus
from chainproof_api.models.creator import APIKey, Creator
from chainproof_api.models.ledger import LedgerEvent

__all__ = [
    "Creator",
    "APIKey",
    "Asset",
    "AssetStatus",
    "Certificate",
    "CertificateStatus",
    "LedgerEvent",
    "ActivityLog",
]

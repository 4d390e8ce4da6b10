"""FastAPI dependency factories wiring services to their collaborators."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from chainproof_api.assets.service import AssetService
from chainproof_api.auth.subject import APIKeySubjectProvider, SubjectProvider
from chainproof_api.certificates.issuer import CertificateIssuer
from chainproof_api.certificates.service import CertificateService
from chainproof_api.db.session import SessionLocal, get_db
from chainproof_api.distributed.ipfs import DistributedStorage, IPFSClient
from chainproof_api.ledger.chain import HashChainLedger
from chainproof_api.ledger.client import LedgerClient
from chainproof_api.ledger.signer import Signer, get_signer
from chainproof_api.protection.orchestrator import ProtectionOrchestrator
from chainproof_api.protection.schema import Subject
from chainproof_api.settings import get_settings
from chainproof_api.storage.service import MinioObjectStore, ObjectStore

api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)


def get_subject_provider(
    x_api_key: Optional[str] = Security(api_key_header),
    db: Session = Depends(get_db),
) -> SubjectProvider:
    return APIKeySubjectProvider(db, x_api_key)


def get_current_subject(provider: SubjectProvider = Depends(get_subject_provider)) -> Subject:
    return provider.get_current_subject()


@lru_cache()
def get_content_store() -> ObjectStore:
    return MinioObjectStore(get_settings().content_bucket)


@lru_cache()
def get_certificate_store() -> ObjectStore:
    return MinioObjectStore(get_settings().certificate_bucket)


def get_distributed_storage() -> Optional[DistributedStorage]:
    return IPFSClient()


def get_ledger() -> Optional[LedgerClient]:
    return HashChainLedger(SessionLocal)


def get_request_signer() -> Signer:
    return get_signer()


def get_orchestrator(
    db: Session = Depends(get_db),
    subject_provider: SubjectProvider = Depends(get_subject_provider),
    object_store: ObjectStore = Depends(get_content_store),
    distributed_storage: Optional[DistributedStorage] = Depends(get_distributed_storage),
    ledger: Optional[LedgerClient] = Depends(get_ledger),
) -> ProtectionOrchestrator:
    return ProtectionOrchestrator(
        db,
        subject_provider,
        object_store,
        distributed_storage=distributed_storage,
        ledger=ledger,
    )


def get_certificate_issuer(
    db: Session = Depends(get_db),
    object_store: ObjectStore = Depends(get_certificate_store),
    distributed_storage: Optional[DistributedStorage] = Depends(get_distributed_storage),
    signer: Signer = Depends(get_request_signer),
) -> CertificateIssuer:
    return CertificateIssuer(db, object_store, distributed_storage=distributed_storage, signer=signer)


def get_certificate_service(db: Session = Depends(get_db)) -> CertificateService:
    return CertificateService(db)


def get_asset_service(db: Session = Depends(get_db)) -> AssetService:
    return AssetService(db)

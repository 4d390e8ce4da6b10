"""Certificate issuance and management endpoints."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status
from pydantic import BaseModel

from chainproof_api.certificates.issuer import CertificateIssuer
from chainproof_api.certificates.schema import (
    CertificateRequest,
    CertificateResult,
    CertificateView,
    certificate_view,
)
from chainproof_api.certificates.service import CertificateService
from chainproof_api.dependencies import (
    get_certificate_issuer,
    get_certificate_service,
    get_certificate_store,
    get_current_subject,
)
from chainproof_api.protection.schema import Subject
from chainproof_api.storage.service import ObjectStore

router = APIRouter(prefix="/v1", tags=["certificates"])

DEFAULT_CERTIFICATE_REVOCATION_REASON = "Revoked by owner"


class CertificateRevokeRequest(BaseModel):
    reason: Optional[str] = None


class CertificateRevokeResponse(BaseModel):
    certificate_id: str
    revoked: bool


@router.post("/certificates", response_model=CertificateResult, status_code=status.HTTP_201_CREATED)
def issue_certificate(
    request_data: CertificateRequest,
    subject: Subject = Depends(get_current_subject),
    issuer: CertificateIssuer = Depends(get_certificate_issuer),
):
    return issuer.issue(request_data, subject)


@router.get("/certificates")
def list_certificates(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    subject: Subject = Depends(get_current_subject),
    service: CertificateService = Depends(get_certificate_service),
):
    return service.list_certificates(subject.id, page=page, limit=limit, status=status_filter, search=search)


@router.get("/certificates/{certificate_id}", response_model=CertificateView)
def get_certificate(
    certificate_id: str,
    subject: Subject = Depends(get_current_subject),
    service: CertificateService = Depends(get_certificate_service),
):
    return certificate_view(service.get_owned(subject.id, certificate_id))


@router.get("/certificates/{certificate_id}/download")
def download_certificate(
    certificate_id: str,
    subject: Subject = Depends(get_current_subject),
    service: CertificateService = Depends(get_certificate_service),
    object_store: ObjectStore = Depends(get_certificate_store),
):
    """Download the certificate PDF."""
    content, file_name = service.download(subject.id, certificate_id, object_store)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@router.post("/certificates/{certificate_id}/revoke", response_model=CertificateRevokeResponse)
def revoke_certificate(
    certificate_id: str,
    revoke_request: Optional[CertificateRevokeRequest] = Body(None),
    subject: Subject = Depends(get_current_subject),
    service: CertificateService = Depends(get_certificate_service),
):
    reason = (revoke_request.reason if revoke_request else None) or DEFAULT_CERTIFICATE_REVOCATION_REASON
    revoked = service.revoke(certificate_id, reason, owner_id=subject.id)
    return CertificateRevokeResponse(certificate_id=certificate_id, revoked=revoked)

"""Public certificate verification."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from chainproof_api.certificates.schema import VerificationResult
from chainproof_api.certificates.service import CertificateService
from chainproof_api.dependencies import get_certificate_service

router = APIRouter(prefix="/v1", tags=["verify"])


@router.get("/verify/{certificate_id}", response_model=VerificationResult)
def verify_certificate(
    certificate_id: str,
    content_hash: Optional[str] = Query(None, alias="hash"),
    service: CertificateService = Depends(get_certificate_service),
):
    """Verify a certificate. No API key required."""
    return service.verify(certificate_id, content_hash=content_hash)

"""Asset protection and catalogue endpoints."""

from typing import Literal, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel

from chainproof_api.assets.schema import AssetView, RevocationRequest, RevocationResult, asset_view
from chainproof_api.assets.service import AssetService
from chainproof_api.certificates.issuer import CertificateIssuer
from chainproof_api.certificates.schema import CertificateResult
from chainproof_api.dependencies import (
    get_asset_service,
    get_certificate_issuer,
    get_current_subject,
    get_orchestrator,
)
from chainproof_api.protection.orchestrator import ProtectionOrchestrator
from chainproof_api.protection.schema import AssetMetadata, ProtectionOptions, ProtectionResult, Subject

router = APIRouter(prefix="/v1", tags=["assets"])


class IssueFromAssetRequest(BaseModel):
    owner_name: Optional[str] = None


def parse_tags(tags: Optional[str]) -> list[str]:
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


@router.post("/assets", response_model=ProtectionResult, status_code=status.HTTP_201_CREATED)
def protect_asset(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    visibility: Literal["public", "private", "organization"] = Form("private"),
    tags: Optional[str] = Form(None, description="Comma separated"),
    enable_distributed_storage: bool = Form(False),
    enable_ledger: bool = Form(False),
    orchestrator: ProtectionOrchestrator = Depends(get_orchestrator),
):
    """Upload a file and run it through the protection pipeline."""
    # One byte past the ceiling is enough for validation to reject the upload.
    data = file.file.read(orchestrator.validator.max_bytes + 1)
    metadata = AssetMetadata(
        file_name=file.filename or "file",
        content_type=file.content_type or "",
        title=title,
        description=description,
        category=category,
        visibility=visibility,
        tags=parse_tags(tags),
    )
    options = ProtectionOptions(
        enable_distributed_storage=enable_distributed_storage,
        enable_ledger=enable_ledger,
    )
    return orchestrator.protect(data, metadata, options)


@router.get("/assets")
def list_assets(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    subject: Subject = Depends(get_current_subject),
    service: AssetService = Depends(get_asset_service),
):
    return service.list_assets(
        subject.id,
        page=page,
        limit=limit,
        status=status_filter,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/assets/{asset_id}", response_model=AssetView)
def get_asset(
    asset_id: str,
    subject: Subject = Depends(get_current_subject),
    service: AssetService = Depends(get_asset_service),
):
    return asset_view(service.get_asset(subject.id, asset_id))


@router.delete("/assets/{asset_id}", response_model=RevocationResult)
def revoke_asset(
    asset_id: str,
    revocation: Optional[RevocationRequest] = Body(None),
    subject: Subject = Depends(get_current_subject),
    service: AssetService = Depends(get_asset_service),
):
    """Revoke an asset and cascade to its active certificates."""
    revocation = revocation or RevocationRequest()
    return service.revoke_asset(
        subject.id,
        asset_id,
        reason=revocation.reason,
        notify_owner=revocation.notify_owner,
    )


@router.post(
    "/assets/{asset_id}/certificates",
    response_model=CertificateResult,
    status_code=status.HTTP_201_CREATED,
)
def issue_certificate_for_asset(
    asset_id: str,
    issue_request: Optional[IssueFromAssetRequest] = Body(None),
    subject: Subject = Depends(get_current_subject),
    issuer: CertificateIssuer = Depends(get_certificate_issuer),
):
    owner_name = issue_request.owner_name if issue_request else None
    return issuer.issue_for_asset(subject, asset_id, owner_name=owner_name)

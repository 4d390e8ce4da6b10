"""Tests for certificate verification."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from chainproof_api.certificates.issuer import CertificateIssuer
from chainproof_api.certificates.schema import CertificateRequest
from chainproof_api.certificates.service import CertificateService
from chainproof_api.db.base import Base
from chainproof_api.models import Certificate, CertificateStatus
from chainproof_api.protection.schema import Subject

from conftest import InMemoryObjectStore, protect_sample

HASH = "9c" * 32


def issue(issuer, subject, content_hash=HASH):
    return issuer.issue(
        CertificateRequest(
            owner_name="Ada Artist",
            asset_title="Night Study",
            content_hash=content_hash,
            protection_date=datetime(2024, 5, 1, 8, 0, 0),
        ),
        subject,
    )


def test_unknown_certificate(db):
    """Unknown ids report invalid instead of raising."""
    result = CertificateService(db).verify("CERT-DOES-NOT-EXIST")
    assert result.valid is False
    assert result.error == "Certificate not found"
    assert result.certificate is None


def test_valid_certificate_increments_counter(db, subject, issuer):
    issued = issue(issuer, subject)
    service = CertificateService(db)

    first = service.verify(issued.certificate_id)
    second = service.verify(issued.certificate_id)

    assert first.valid is True
    assert first.certificate.verification_count == 1
    assert second.certificate.verification_count == 2
    assert second.certificate.last_verified_at is not None
    assert second.certificate.content_hash == HASH


def test_matching_hash_is_valid(db, subject, issuer):
    issued = issue(issuer, subject)
    result = CertificateService(db).verify(issued.certificate_id, content_hash=HASH.upper())
    assert result.valid is True


def test_hash_mismatch(db, subject, issuer):
    issued = issue(issuer, subject)
    result = CertificateService(db).verify(issued.certificate_id, content_hash="00" * 32)

    assert result.valid is False
    assert result.error == "Content hash mismatch"
    assert result.certificate.verification_count == 0


def test_revoked_certificate_is_invalid(db, subject, issuer):
    issued = issue(issuer, subject)
    service = CertificateService(db)
    service.revoke(issued.certificate_id, "license ended")

    result = service.verify(issued.certificate_id)
    assert result.valid is False
    assert result.error == "Certificate revoked"
    assert result.certificate.status == CertificateStatus.REVOKED
    assert result.certificate.verification_count == 0


def test_expired_certificate_marked_expired(db, subject, issuer):
    issued = issue(issuer, subject)
    certificate = db.query(Certificate).filter_by(certificate_id=issued.certificate_id).one()
    certificate.expires_at = datetime.utcnow() - timedelta(minutes=1)
    db.commit()

    result = CertificateService(db).verify(issued.certificate_id)

    assert result.valid is False
    assert result.error == "Certificate expired"
    db.refresh(certificate)
    assert certificate.status == CertificateStatus.EXPIRED


def test_snapshot_isolated_from_asset_changes(db, subject, issuer):
    """Verification reports the hash given at issuance even after the asset changes."""
    asset = protect_sample(db, subject)
    issued = issuer.issue_for_asset(subject, asset.id)
    original_hash = asset.content_hash

    asset.content_hash = "ee" * 32
    asset.title = "Renamed"
    db.commit()

    result = CertificateService(db).verify(issued.certificate_id)
    assert result.valid is True
    assert result.certificate.content_hash == original_hash
    assert result.certificate.asset_title == "Sample Work"


def test_concurrent_verifications_are_all_counted(tmp_path, signer):
    """N concurrent verify calls leave verification_count == N."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'verify.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    SessionFactory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = SessionFactory()
    issued = issue(
        CertificateIssuer(setup, InMemoryObjectStore(), signer=signer, ttl_days=0),
        Subject(id="creator-1", display_name="Ada"),
    )
    setup.close()

    def verify_once(_):
        session = SessionFactory()
        try:
            return CertificateService(session).verify(issued.certificate_id).valid
        finally:
            session.close()

    n = 16
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(verify_once, range(n)))

    assert all(results)
    check = SessionFactory()
    certificate = check.query(Certificate).filter_by(certificate_id=issued.certificate_id).one()
    assert certificate.verification_count == n
    check.close()
    engine.dispose()


def test_list_certificates_summary(db, subject, issuer):
    first = issue(issuer, subject)
    issue(issuer, subject, content_hash="11" * 32)
    service = CertificateService(db)
    service.verify(first.certificate_id)
    service.revoke(first.certificate_id, "superseded")

    listing = service.list_certificates(subject.id, page=1, limit=1)

    assert len(listing["certificates"]) == 1
    assert listing["pagination"] == {"total": 2, "page": 1, "limit": 1, "has_next": True, "has_prev": False}
    summary = listing["summary"]
    assert summary["total_certificates"] == 2
    assert summary["active_certificates"] == 1
    assert summary["revoked_certificates"] == 1
    assert summary["total_verifications"] == 1


def test_list_certificates_scoped_to_owner(db, subject, issuer):
    issue(issuer, subject)
    assert CertificateService(db).list_certificates("someone-else")["pagination"]["total"] == 0


def test_download_returns_artifact(db, subject, issuer, certificate_store):
    issued = issue(issuer, subject)
    content, file_name = CertificateService(db).download(subject.id, issued.certificate_id, certificate_store)
    assert content == issued.artifact
    assert file_name.endswith(".pdf")

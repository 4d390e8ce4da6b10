"""Tests for certificate issuance."""

from datetime import datetime

import pytest
from pydantic import ValidationError as RequestValidationError

from chainproof_api.certificates import renderer as renderer_module
from chainproof_api.certificates.issuer import CertificateIssuer
from chainproof_api.certificates.payload import (
    build_verification_url,
    encode_qr_content,
    generate_certificate_id,
    verify_qr_content,
)
from chainproof_api.certificates.renderer import CertificateRenderer
from chainproof_api.certificates.schema import CertificateRequest
from chainproof_api.errors import NotFoundError, RenderError, StorageError, ValidationError
from chainproof_api.models import ActivityLog, Certificate, CertificateStatus
from chainproof_api.protection.schema import DistributedLocation, LedgerRecord

from conftest import FakeDistributedStorage, InMemoryObjectStore, protect_sample

HASH = "3f" * 32


def make_request(**overrides) -> CertificateRequest:
    fields = {
        "owner_name": "Ada Artist",
        "asset_title": "Sunrise Over Lisbon",
        "content_hash": HASH,
        "protection_date": datetime(2024, 1, 15, 9, 30, 0),
    }
    fields.update(overrides)
    return CertificateRequest(**fields)


class TestCertificateIds:
    def test_id_format(self):
        certificate_id = generate_certificate_id(timestamp_ms=1700000000000)
        prefix, timestamp, suffix = certificate_id.split("-")
        assert prefix == "CERT"
        assert int(timestamp, 36) == 1700000000000
        assert len(suffix) == 9
        assert certificate_id == certificate_id.upper()

    def test_ids_are_unique(self):
        ids = {generate_certificate_id(timestamp_ms=1) for _ in range(200)}
        assert len(ids) == 200

    def test_verification_url_quotes_hash(self):
        url = build_verification_url("https://chainproof.io/verify/", "CERT-1", "a&b #c")
        assert url == "https://chainproof.io/verify/CERT-1?hash=a%26b%20%23c"


class TestContentHash:
    def test_uppercase_hash_is_lowercased(self):
        assert make_request(content_hash=HASH.upper()).content_hash == HASH

    def test_surrounding_whitespace_is_stripped(self):
        assert make_request(content_hash=f"  {HASH}\n").content_hash == HASH

    @pytest.mark.parametrize(
        "value",
        [HASH[:-1], HASH + "0", "zz" * 32, HASH[:32] + "&" + HASH[33:]],
    )
    def test_malformed_hash_rejected(self, value):
        with pytest.raises(RequestValidationError, match="64-character hex"):
            make_request(content_hash=value)

    def test_issued_certificate_stores_normalized_hash(self, db, subject, issuer):
        result = issuer.issue(make_request(content_hash=HASH.upper()), subject)

        certificate = db.query(Certificate).filter_by(certificate_id=result.certificate_id).one()
        assert certificate.content_hash == HASH
        assert result.verification_url.endswith(f"hash={HASH}")


class TestIssue:
    def test_issue_returns_artifact_and_urls(self, db, subject, issuer, certificate_store):
        result = issuer.issue(make_request(), subject)

        assert result.certificate_id.startswith("CERT-")
        assert result.artifact.startswith(b"%PDF")
        assert result.metadata.file_size == len(result.artifact)
        assert result.metadata.file_name == f"chainproof-certificate-{result.certificate_id}.pdf"
        assert result.verification_url == (
            f"https://chainproof.io/verify/{result.certificate_id}?hash={HASH}"
        )
        assert result.ipfs_uri.startswith("ipfs://Qm")

        stored = certificate_store.objects
        assert len(stored) == 1
        (key, (data, content_type)), = stored.items()
        assert key.endswith(f"/{result.certificate_id}.pdf")
        assert data == result.artifact
        assert content_type == "application/pdf"

    def test_hash_bound_in_payload_and_url(self, db, subject, issuer):
        """The snapshot hash, QR payload hash and URL hash all agree."""
        result = issuer.issue(make_request(), subject)
        certificate = db.query(Certificate).filter_by(certificate_id=result.certificate_id).one()

        assert certificate.content_hash == HASH
        assert result.qr_payload["hash"] == HASH
        assert result.qr_payload["url"] == result.verification_url
        assert result.verification_url.endswith(f"hash={HASH}")

    def test_metadata_persisted(self, db, subject, issuer):
        request = make_request(
            ledger_record=LedgerRecord(
                transaction_ref="0x" + "ab" * 32,
                block_ref=7,
                timestamp=datetime(2024, 1, 15, 9, 31, 0),
                subject_address="0x" + "cd" * 20,
                network="polygon-mumbai",
            ),
            distributed_ref=DistributedLocation(network_hash="QmAsset", gateway_url="https://ipfs.io/ipfs/QmAsset"),
            asset_type="image/jpeg",
            file_size=2048,
            protection_score=100,
        )
        result = issuer.issue(request, subject)
        certificate = db.query(Certificate).filter_by(certificate_id=result.certificate_id).one()

        assert certificate.status == CertificateStatus.ACTIVE
        assert certificate.verification_count == 0
        assert certificate.owner_id == subject.id
        assert certificate.ledger_block_ref == 7
        assert certificate.ipfs_hash == "QmAsset"
        assert certificate.protection_score == 100
        assert certificate.expires_at is None
        assert result.qr_payload["ledger"]["block_ref"] == 7
        assert result.qr_payload["distributed"]["hash"] == "QmAsset"
        assert db.query(ActivityLog).filter_by(action="certificate_issued").count() == 1

    def test_signature_verifies(self, subject, issuer, signer):
        result = issuer.issue(make_request(), subject)
        content = encode_qr_content(result.qr_payload, result.signature, result.key_id)
        assert verify_qr_content(content, signer)
        assert result.key_id == "test-key-1"

    @pytest.mark.parametrize("field", ["owner_name", "asset_title", "content_hash"])
    def test_missing_required_field(self, db, subject, issuer, certificate_store, field):
        with pytest.raises(ValidationError, match=f"{field} is required"):
            issuer.issue(make_request(**{field: "  "}), subject)
        assert certificate_store.objects == {}
        assert db.query(Certificate).count() == 0

    def test_distributed_failure_is_not_fatal(self, db, subject, signer):
        issuer = CertificateIssuer(
            db,
            InMemoryObjectStore(),
            distributed_storage=FakeDistributedStorage(fail=True),
            signer=signer,
        )
        result = issuer.issue(make_request(), subject)

        assert result.ipfs_uri is None
        assert db.query(Certificate).count() == 1

    def test_storage_failure_is_fatal(self, db, subject, signer):
        issuer = CertificateIssuer(db, InMemoryObjectStore(fail=True), signer=signer)
        with pytest.raises(StorageError):
            issuer.issue(make_request(), subject)
        assert db.query(Certificate).count() == 0

    def test_render_failure_is_fatal(self, db, subject, issuer, certificate_store, monkeypatch):
        def broken_qr(content, size=renderer_module.QR_SIZE):
            raise ValueError("payload too large for QR code")

        monkeypatch.setattr(renderer_module, "qr_drawing", broken_qr)
        with pytest.raises(RenderError):
            issuer.issue(make_request(), subject)
        assert certificate_store.objects == {}
        assert db.query(Certificate).count() == 0

    def test_ttl_sets_expiry(self, db, subject, signer):
        issuer = CertificateIssuer(db, InMemoryObjectStore(), signer=signer, ttl_days=30)
        result = issuer.issue(make_request(), subject)
        certificate = db.query(Certificate).filter_by(certificate_id=result.certificate_id).one()
        assert (certificate.expires_at - certificate.created_at).days == 30


class TestIssueForAsset:
    def test_builds_request_from_asset(self, db, subject, issuer):
        asset = protect_sample(db, subject, distributed=True, ledger=True)
        result = issuer.issue_for_asset(subject, asset.id)
        certificate = db.query(Certificate).filter_by(certificate_id=result.certificate_id).one()

        assert certificate.asset_id == asset.id
        assert certificate.content_hash == asset.content_hash
        assert certificate.owner_name == "Ada Artist"
        assert certificate.asset_title == "Sample Work"
        assert certificate.protection_score == 100
        assert certificate.ledger_tx_ref == asset.ledger_tx_ref
        assert certificate.ipfs_hash == asset.ipfs_hash

    def test_unknown_asset(self, subject, issuer):
        with pytest.raises(NotFoundError):
            issuer.issue_for_asset(subject, "missing")

    def test_revoked_asset_refused(self, db, subject, issuer):
        from chainproof_api.assets.service import AssetService

        asset = protect_sample(db, subject)
        AssetService(db).revoke_asset(subject.id, asset.id)
        with pytest.raises(ValidationError):
            issuer.issue_for_asset(subject, asset.id)


class TestRenderer:
    def test_rendering_is_deterministic(self):
        renderer = CertificateRenderer()
        generated_at = datetime(2024, 2, 1, 12, 0, 0)
        args = ("CERT-TEST-123456789", make_request(), "https://chainproof.io/verify/CERT-TEST", '{"hash":"x"}')

        first = renderer.render(*args, generated_at=generated_at)
        second = renderer.render(*args, generated_at=generated_at)

        assert first.startswith(b"%PDF")
        assert first == second

    def test_markup_in_user_text_is_escaped(self):
        request = make_request(owner_name="<b>Ada & Co</b>", asset_title="Title <i>")
        pdf = CertificateRenderer().render("CERT-X", request, "https://x/verify", "{}")
        assert pdf.startswith(b"%PDF")

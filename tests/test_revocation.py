"""Tests for asset and certificate revocation."""

from datetime import datetime

import pytest

from chainproof_api.assets.service import AssetService
from chainproof_api.certificates.schema import CertificateRequest
from chainproof_api.certificates.service import CertificateService
from chainproof_api.errors import AlreadyRevoked, NotFoundError
from chainproof_api.models import ActivityLog, Asset, AssetStatus, Certificate, CertificateStatus
from chainproof_api.protection.schema import Subject

from conftest import protect_sample


def certificates_for(db, content_hash):
    return db.query(Certificate).filter(Certificate.content_hash == content_hash).all()


class TestAssetRevocation:
    def test_cascades_to_matching_certificates(self, db, subject, issuer):
        """Revoking an asset with N active certificates revokes exactly those N."""
        asset = protect_sample(db, subject)
        other = protect_sample(db, subject, data=b"%PDF-1.4 a different file")
        for _ in range(3):
            issuer.issue_for_asset(subject, asset.id)
        untouched = issuer.issue_for_asset(subject, other.id)

        result = AssetService(db).revoke_asset(subject.id, asset.id, reason="infringement")

        assert result.certificates_revoked == 3
        assert result.status == AssetStatus.REVOKED
        assert result.previous_status == AssetStatus.PROTECTED
        for certificate in certificates_for(db, asset.content_hash):
            assert certificate.status == CertificateStatus.REVOKED
            assert certificate.revocation_reason == "infringement"
            assert certificate.revoked_at is not None
        other_certificate = db.query(Certificate).filter_by(certificate_id=untouched.certificate_id).one()
        assert other_certificate.status == CertificateStatus.ACTIVE

    def test_cascade_matches_uppercase_submitted_hash(self, db, subject, issuer):
        asset = protect_sample(db, subject)
        issued = issuer.issue(
            CertificateRequest(
                owner_name="Ada Artist",
                asset_title="Sample Work",
                content_hash=asset.content_hash.upper(),
                protection_date=datetime(2024, 3, 1),
            ),
            subject,
        )

        result = AssetService(db).revoke_asset(subject.id, asset.id, reason="infringement")

        assert result.certificates_revoked == 1
        certificate = db.query(Certificate).filter_by(certificate_id=issued.certificate_id).one()
        assert certificate.status == CertificateStatus.REVOKED

    def test_default_reasons(self, db, subject, issuer):
        asset = protect_sample(db, subject)
        issuer.issue_for_asset(subject, asset.id)

        result = AssetService(db).revoke_asset(subject.id, asset.id)

        assert result.reason == "User requested revocation"
        db.refresh(asset)
        assert asset.revocation_reason == "User requested revocation"
        (certificate,) = certificates_for(db, asset.content_hash)
        assert certificate.revocation_reason == "source asset revoked"

    def test_already_revoked_certificates_not_counted(self, db, subject, issuer):
        asset = protect_sample(db, subject)
        first = issuer.issue_for_asset(subject, asset.id)
        issuer.issue_for_asset(subject, asset.id)
        CertificateService(db).revoke(first.certificate_id, "manual")

        result = AssetService(db).revoke_asset(subject.id, asset.id, reason="takedown")

        assert result.certificates_revoked == 1
        revoked_first = db.query(Certificate).filter_by(certificate_id=first.certificate_id).one()
        assert revoked_first.revocation_reason == "manual"

    def test_other_owners_certificates_untouched(self, db, subject, issuer):
        asset = protect_sample(db, subject)
        stranger = Subject(id="stranger", display_name="Someone Else")
        foreign = issuer.issue_for_asset(subject, asset.id)
        db.query(Certificate).filter_by(certificate_id=foreign.certificate_id).update({"owner_id": stranger.id})
        db.commit()

        result = AssetService(db).revoke_asset(subject.id, asset.id)

        assert result.certificates_revoked == 0
        certificate = db.query(Certificate).filter_by(certificate_id=foreign.certificate_id).one()
        assert certificate.status == CertificateStatus.ACTIVE

    def test_second_revoke_raises_and_leaves_state(self, db, subject, issuer):
        asset = protect_sample(db, subject)
        issuer.issue_for_asset(subject, asset.id)
        service = AssetService(db)
        service.revoke_asset(subject.id, asset.id, reason="first")
        db.refresh(asset)
        revoked_at = asset.revoked_at

        with pytest.raises(AlreadyRevoked):
            service.revoke_asset(subject.id, asset.id, reason="second")

        db.refresh(asset)
        assert asset.revocation_reason == "first"
        assert asset.revoked_at == revoked_at
        assert db.query(ActivityLog).filter_by(action="asset_revoked").count() == 1

    def test_foreign_asset_not_found(self, db, subject):
        asset = protect_sample(db, subject)
        with pytest.raises(NotFoundError):
            AssetService(db).revoke_asset("someone-else", asset.id)
        db.refresh(asset)
        assert asset.status == AssetStatus.PROTECTED

    def test_cleanup_flags(self, db, subject):
        plain = protect_sample(db, subject)
        anchored = protect_sample(db, subject, data=b"%PDF anchored", distributed=True, ledger=True)
        service = AssetService(db)

        plain_result = service.revoke_asset(subject.id, plain.id)
        anchored_result = service.revoke_asset(subject.id, anchored.id, notify_owner=True)

        assert plain_result.blockchain_update_required is False
        assert plain_result.ipfs_removal_required is False
        assert anchored_result.blockchain_update_required is True
        assert anchored_result.ipfs_removal_required is True
        assert anchored_result.owner_notified is True

    def test_audit_log_entry(self, db, subject, issuer):
        asset = protect_sample(db, subject)
        issuer.issue_for_asset(subject, asset.id)

        AssetService(db).revoke_asset(subject.id, asset.id, reason="infringement")

        entry = db.query(ActivityLog).filter_by(action="asset_revoked").one()
        assert entry.resource_type == "asset"
        assert entry.resource_id == asset.id
        assert entry.details["previous_status"] == "protected"
        assert entry.details["reason"] == "infringement"
        assert entry.details["certificates_revoked"] == 1


class TestCertificateRevocation:
    def test_revoke_then_repeat(self, db, subject, issuer):
        asset = protect_sample(db, subject)
        issued = issuer.issue_for_asset(subject, asset.id)
        service = CertificateService(db)

        assert service.revoke(issued.certificate_id, "mistake") is True
        assert service.revoke(issued.certificate_id, "again") is False

        certificate = db.query(Certificate).filter_by(certificate_id=issued.certificate_id).one()
        assert certificate.revocation_reason == "mistake"
        assert db.query(ActivityLog).filter_by(action="certificate_revoked").count() == 1
        db.refresh(asset)
        assert asset.status == AssetStatus.PROTECTED

    def test_unknown_certificate(self, db):
        with pytest.raises(NotFoundError):
            CertificateService(db).revoke("CERT-NOPE", "reason")

    def test_owner_scoped_revoke(self, db, subject, issuer):
        asset = protect_sample(db, subject)
        issued = issuer.issue_for_asset(subject, asset.id)
        with pytest.raises(NotFoundError):
            CertificateService(db).revoke(issued.certificate_id, "reason", owner_id="someone-else")


class TestAssetQueries:
    def test_list_assets_with_summary(self, db, subject):
        protect_sample(db, subject)
        protect_sample(db, subject, data=b"%PDF two", distributed=True, ledger=True)
        revoked = protect_sample(db, subject, data=b"%PDF three")
        service = AssetService(db)
        service.revoke_asset(subject.id, revoked.id)

        listing = service.list_assets(subject.id, sort_by="protection_score", sort_order="desc")

        assert listing["pagination"]["total"] == 3
        assert listing["assets"][0].protection_score == 100
        assert listing["assets"][0].protection_level == "high"
        assert listing["assets"][0].is_blockchain_verified is True
        summary = listing["summary"]
        assert summary == {
            "total_assets": 3,
            "protected_assets": 2,
            "blockchain_verified": 1,
            "average_protection_score": 67,
        }

    def test_status_filter_and_search(self, db, subject):
        protect_sample(db, subject)
        service = AssetService(db)
        assert service.list_assets(subject.id, status="revoked")["pagination"]["total"] == 0
        assert service.list_assets(subject.id, search="sample")["pagination"]["total"] == 1
        assert service.list_assets(subject.id, search="nothing")["pagination"]["total"] == 0

    def test_get_asset_scoped_to_owner(self, db, subject):
        asset = protect_sample(db, subject)
        assert AssetService(db).get_asset(subject.id, asset.id).id == asset.id
        with pytest.raises(NotFoundError):
            AssetService(db).get_asset("someone-else", asset.id)

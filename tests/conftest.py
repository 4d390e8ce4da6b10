"""Pytest configuration and fixtures."""

import hashlib
import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from chainproof_api.db.base import Base
from chainproof_api.distributed.ipfs import DistributedStorage, PublishReceipt
from chainproof_api.errors import AnchorError, NotFoundError, PublishError, StorageError
from chainproof_api.ledger.client import AnchorReceipt, LedgerClient
from chainproof_api.ledger.signer import LocalSigner
from chainproof_api.models import Creator
from chainproof_api.protection.schema import Subject
from chainproof_api.storage.service import ObjectStore

# Use test database URL from environment or default to SQLite in-memory
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")

JPEG_HEADER = b"\xff\xd8\xff\xe0\x00\x10JFIF"


class InMemoryObjectStore(ObjectStore):
    """Object store keeping blobs in a dict."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.objects = {}

    def put(self, key, data, content_type="application/octet-stream"):
        if self.fail:
            raise StorageError("Storage upload failed: simulated outage")
        self.objects[key] = (bytes(data), content_type)
        return {"path": key}

    def public_url(self, key):
        return f"memory://content/{key}"

    def get(self, key):
        if key not in self.objects:
            raise NotFoundError(f"Object not found: {key}")
        return self.objects[key][0]


class FakeDistributedStorage(DistributedStorage):
    """Content-addressed store that derives a fake CID from the bytes."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published = []

    def publish(self, data, file_name="blob"):
        self.published.append(file_name)
        if self.fail:
            raise PublishError("IPFS publish failed: simulated outage")
        network_hash = "Qm" + hashlib.sha256(data).hexdigest()[:44]
        return PublishReceipt(
            network_hash=network_hash,
            size_bytes=len(data),
            gateway_url=f"https://ipfs.io/ipfs/{network_hash}",
        )


class FakeLedger(LedgerClient):
    """Ledger that records anchor calls."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def anchor(self, subject_id, content_hash, aux_hash):
        self.calls.append((subject_id, content_hash, aux_hash))
        if self.fail:
            raise AnchorError("Ledger anchoring failed: simulated outage")
        return AnchorReceipt(
            transaction_ref="0x" + hashlib.sha256(content_hash.encode()).hexdigest(),
            block_ref=len(self.calls),
            timestamp=datetime(2024, 1, 15, 12, 0, 0),
            subject_address="0x" + "ab" * 20,
            network="test-net",
        )


@pytest.fixture(scope="function")
def engine():
    """Database engine with a fresh schema."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        # SQLite in-memory for fast unit tests
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        # PostgreSQL for integration tests
        engine = create_engine(TEST_DATABASE_URL)

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def creator(db: Session) -> Creator:
    """Create a test creator."""
    creator = Creator(display_name="Ada Artist", email="ada@example.com", status="active")
    db.add(creator)
    db.commit()
    return creator


@pytest.fixture
def subject(creator: Creator) -> Subject:
    return Subject(id=creator.id, display_name=creator.display_name)


@pytest.fixture(scope="session")
def signer() -> LocalSigner:
    """In-memory signing key shared by the test session."""
    return LocalSigner(key_id="test-key-1", persist=False)


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def jpeg_bytes() -> bytes:
    """2MB payload with a JPEG header."""
    return JPEG_HEADER + b"\x00" * (2 * 1024 * 1024 - len(JPEG_HEADER))


def protect_sample(db, subject, data=b"%PDF-1.4 sample", distributed=False, ledger=False):
    """Run the pipeline with in-memory collaborators and return the stored asset."""
    from chainproof_api.auth.subject import StaticSubjectProvider
    from chainproof_api.models import Asset
    from chainproof_api.protection.orchestrator import ProtectionOrchestrator
    from chainproof_api.protection.schema import AssetMetadata, ProtectionOptions

    result = ProtectionOrchestrator(
        db,
        StaticSubjectProvider(subject),
        InMemoryObjectStore(),
        distributed_storage=FakeDistributedStorage(),
        ledger=FakeLedger(),
    ).protect(
        data,
        AssetMetadata(file_name="sample.pdf", content_type="application/pdf", title="Sample Work"),
        ProtectionOptions(enable_distributed_storage=distributed, enable_ledger=ledger),
    )
    return db.query(Asset).filter(Asset.id == result.asset_id).one()


@pytest.fixture
def certificate_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def issuer(db, certificate_store, signer):
    from chainproof_api.certificates.issuer import CertificateIssuer

    return CertificateIssuer(
        db,
        certificate_store,
        distributed_storage=FakeDistributedStorage(),
        signer=signer,
        verification_base_url="https://chainproof.io/verify",
        ttl_days=0,
    )

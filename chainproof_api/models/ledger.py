"""Append-only ledger models."""

from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, Integer, JSON, String, UniqueConstraint

from chainproof_api.db.base import Base


class LedgerEvent(Base):
    """Append-only anchor ledger with hash chaining.

    `id` doubles as the block reference returned to callers. `sequence`
    counts events per network; the unique constraint rejects a second event
    claiming the same position in a chain.
    """

    __tablename__ = "ledger_events"
    __table_args__ = (UniqueConstraint("network", "sequence", name="uq_ledger_network_sequence"),)

    id = Column(Integer, primary_key=True, index=True)
    sequence = Column(BigInteger, nullable=False, index=True)
    event_hash = Column(String(255), nullable=False, unique=True, index=True)
    previous_event_hash = Column(String(255), nullable=True, index=True)  # NULL for first event
    network = Column(String(100), nullable=False, index=True)
    event_type = Column(String(100), nullable=False, index=True)  # content.anchor
    subject_address = Column(String(255), nullable=False, index=True)
    payload_json = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

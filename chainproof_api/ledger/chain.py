"""Hash-chained anchor ledger.

Each event stores the SHA-256 of its canonical JSON, which includes the
previous event's hash, so editing or removing any event breaks every later
link. Events are committed through their own session: an anchor is
independent of the catalog transaction that references it.
"""

import hashlib
import json
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chainproof_api.errors import AnchorError
from chainproof_api.ledger.client import AnchorReceipt, LedgerClient
from chainproof_api.models import LedgerEvent
from chainproof_api.settings import get_settings

logger = logging.getLogger(__name__)

ANCHOR_EVENT = "content.anchor"


def subject_address(subject_id: str) -> str:
    """Deterministic 20-byte hex address for a subject id."""
    return "0x" + hashlib.sha256(subject_id.encode()).hexdigest()[:40]


class HashChainLedger(LedgerClient):
    """Tamper-evident ledger kept in the ``ledger_events`` table."""

    def __init__(self, session_factory: Callable[[], Session], network: Optional[str] = None):
        """Initialize ledger with a session factory."""
        self.session_factory = session_factory
        self.network = network or get_settings().ledger_network

    def _hash_event(self, event_data: dict) -> str:
        """Compute hash of event data."""
        event_str = json.dumps(event_data, sort_keys=True)
        return hashlib.sha256(event_str.encode()).hexdigest()

    def _event_data(
        self,
        event_type: str,
        address: str,
        payload: dict,
        previous_hash: Optional[str],
        created_at: datetime,
    ) -> dict:
        return {
            "network": self.network,
            "event_type": event_type,
            "subject_address": address,
            "payload": payload,
            "previous_hash": previous_hash,
            "timestamp": created_at.isoformat(),
        }

    def _get_chain_head(self, db: Session) -> Optional[LedgerEvent]:
        """Latest event on this network, row-locked where the database supports it."""
        return (
            db.query(LedgerEvent)
            .filter(LedgerEvent.network == self.network)
            .order_by(LedgerEvent.sequence.desc())
            .with_for_update()
            .first()
        )

    def append_event(self, db: Session, event_type: str, address: str, payload: dict) -> LedgerEvent:
        """Append event to ledger with hash chaining.

        Two writers that read the same head both claim the same sequence
        number; the second insert fails on ``uq_ledger_network_sequence``
        instead of forking the chain.
        """
        head = self._get_chain_head(db)
        previous_hash = head.event_hash if head else None
        sequence = head.sequence + 1 if head else 1
        created_at = datetime.utcnow()
        event_data = self._event_data(event_type, address, payload, previous_hash, created_at)

        ledger_event = LedgerEvent(
            sequence=sequence,
            event_hash=self._hash_event(event_data),
            previous_event_hash=previous_hash,
            network=self.network,
            event_type=event_type,
            subject_address=address,
            payload_json=payload,
            created_at=created_at,
        )
        db.add(ledger_event)
        db.flush()
        return ledger_event

    def anchor(self, subject_id: str, content_hash: str, aux_hash: str) -> AnchorReceipt:
        address = subject_address(subject_id)
        payload = {
            "subject_id": subject_id,
            "content_hash": content_hash,
            "aux_hash": aux_hash,
        }
        db = self.session_factory()
        try:
            event = self.append_event(db, ANCHOR_EVENT, address, payload)
            db.commit()
            receipt = AnchorReceipt(
                transaction_ref=f"0x{event.event_hash}",
                block_ref=event.id,
                timestamp=event.created_at,
                subject_address=address,
                network=self.network,
            )
        except SQLAlchemyError as e:
            db.rollback()
            raise AnchorError(f"Ledger anchoring failed: {e}") from e
        finally:
            db.close()

        logger.info(
            "Anchored content hash",
            extra={"transaction_ref": receipt.transaction_ref, "block_ref": receipt.block_ref},
        )
        return receipt

    def find_anchor(self, transaction_ref: str) -> Optional[LedgerEvent]:
        """Look up an anchor event by its transaction reference."""
        event_hash = transaction_ref[2:] if transaction_ref.startswith("0x") else transaction_ref
        db = self.session_factory()
        try:
            return db.query(LedgerEvent).filter(LedgerEvent.event_hash == event_hash).first()
        finally:
            db.close()

    def verify_chain(self) -> tuple[bool, Optional[str]]:
        """Verify hash chain integrity for this network."""
        db = self.session_factory()
        try:
            events = (
                db.query(LedgerEvent)
                .filter(LedgerEvent.network == self.network)
                .order_by(LedgerEvent.sequence.asc())
                .all()
            )

            previous_hash = None
            for event in events:
                if event.previous_event_hash != previous_hash:
                    return False, f"Event {event.id} does not link to its predecessor"

                event_data = self._event_data(
                    event.event_type,
                    event.subject_address,
                    event.payload_json,
                    event.previous_event_hash,
                    event.created_at,
                )
                if self._hash_event(event_data) != event.event_hash:
                    return False, f"Event {event.id} hash mismatch"

                previous_hash = event.event_hash

            return True, None
        finally:
            db.close()

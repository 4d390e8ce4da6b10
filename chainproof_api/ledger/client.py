"""Ledger client interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AnchorReceipt(BaseModel):
    """Proof that a content hash was registered on the ledger."""

    transaction_ref: str
    block_ref: int
    timestamp: datetime
    subject_address: str
    network: Optional[str] = None


class LedgerClient(ABC):
    """Append-only public ledger."""

    @abstractmethod
    def anchor(self, subject_id: str, content_hash: str, aux_hash: str) -> AnchorReceipt:
        """Register ``(subject_id, content_hash, aux_hash)``.

        `aux_hash` is the distributed-storage hash of the same content.

        Raises:
            AnchorError: If the registration was not accepted
        """

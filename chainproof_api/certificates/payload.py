"""Certificate ids, verification URLs and the signed QR payload.

The QR code carries the canonical JSON of the payload plus its signature
(``sig``) and signing key id (``kid``), so a scanned code can be checked
against the published JWKS without contacting the service.
"""

import base64
import json
import secrets
import string
import time
from typing import Optional
from urllib.parse import quote

from chainproof_api.certificates.schema import CertificateRequest
from chainproof_api.ledger.signer import Signer

BASE36_ALPHABET = string.digits + string.ascii_lowercase
RANDOM_SUFFIX_LENGTH = 9


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_certificate_id(timestamp_ms: Optional[int] = None) -> str:
    """``CERT-<base36 epoch-ms>-<9 random base36 chars>``, uppercased."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(RANDOM_SUFFIX_LENGTH))
    return f"CERT-{to_base36(timestamp_ms)}-{suffix}".upper()


def build_verification_url(base_url: str, certificate_id: str, content_hash: str) -> str:
    return f"{base_url.rstrip('/')}/{certificate_id}?hash={quote(content_hash, safe='')}"


def build_qr_payload(certificate_id: str, verification_url: str, request: CertificateRequest) -> dict:
    payload = {
        "url": verification_url,
        "certificate_id": certificate_id,
        "title": request.asset_title,
        "hash": request.content_hash,
        "date": request.protection_date.isoformat(),
    }
    if request.ledger_record:
        payload["ledger"] = {
            "transaction_ref": request.ledger_record.transaction_ref,
            "block_ref": request.ledger_record.block_ref,
            "network": request.ledger_record.network,
            "timestamp": request.ledger_record.timestamp.isoformat(),
        }
    if request.distributed_ref:
        payload["distributed"] = {
            "hash": request.distributed_ref.network_hash,
            "url": request.distributed_ref.gateway_url,
        }
    return payload


def canonical_json(payload: dict) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()


def sign_payload(payload: dict, signer: Signer) -> str:
    return base64.b64encode(signer.sign(canonical_json(payload))).decode()


def encode_qr_content(payload: dict, signature: str, key_id: str) -> str:
    return canonical_json({**payload, "sig": signature, "kid": key_id}).decode()


def verify_qr_content(content: str, signer: Signer) -> bool:
    """Check a scanned QR string against `signer`'s public key."""
    data = json.loads(content)
    signature = data.pop("sig", None)
    data.pop("kid", None)
    if not signature:
        return False
    return signer.verify(canonical_json(data), base64.b64decode(signature))

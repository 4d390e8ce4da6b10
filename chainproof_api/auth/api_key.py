"""API key authentication with scalable prefix+digest lookup."""

import hashlib
import hmac
import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from chainproof_api.models import APIKey, Creator
from chainproof_api.settings import get_settings

KEY_PREFIX = "cp_"


def generate_api_key() -> str:
    """Generate a new raw API key. Only its prefix and digest are stored."""
    return KEY_PREFIX + secrets.token_urlsafe(32)


def compute_key_prefix(raw_key: str) -> str:
    """Compute prefix (first 8 chars) of API key."""
    return raw_key[:8] if len(raw_key) >= 8 else raw_key


def compute_key_digest(raw_key: str) -> str:
    """Compute HMAC-SHA256 digest of API key."""
    secret = get_settings().secret_key.encode()
    return hmac.new(secret, raw_key.encode(), hashlib.sha256).hexdigest()


def issue_api_key(db: Session, creator: Creator, label: Optional[str] = None) -> str:
    """Create an API key row for `creator` and return the raw key."""
    raw_key = generate_api_key()
    db.add(
        APIKey(
            creator_id=creator.id,
            prefix=compute_key_prefix(raw_key),
            digest=compute_key_digest(raw_key),
            label=label,
        )
    )
    db.flush()
    return raw_key


def get_creator_by_api_key(db: Session, api_key: str) -> Optional[Creator]:
    """Get creator by API key using prefix+digest lookup."""
    if not api_key or len(api_key) < 8:
        return None

    prefix = compute_key_prefix(api_key)
    digest = compute_key_digest(api_key)

    candidates = (
        db.query(APIKey)
        .filter(
            APIKey.prefix == prefix,
            APIKey.is_active == True,  # noqa: E712
            APIKey.revoked_at.is_(None),
        )
        .all()
    )

    for api_key_obj in candidates:
        # Constant-time comparison of digest
        if hmac.compare_digest(api_key_obj.digest, digest):
            api_key_obj.last_used_at = datetime.utcnow()
            db.flush()
            creator = api_key_obj.creator
            if creator is None or creator.status != "active":
                return None
            return creator

    return None

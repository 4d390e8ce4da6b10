"""Seed data for development and testing."""

from typing import Optional

from sqlalchemy.orm import Session

from chainproof_api.auth.api_key import issue_api_key
from chainproof_api.models import Creator

DEMO_CREATOR_EMAIL = "demo@chainproof.io"


def seed_demo_creator(db: Session) -> tuple[Creator, Optional[str]]:
    """Create the demo creator with one API key.

    Returns the creator and the raw key, or None for the key when the
    creator already existed.
    """
    creator = db.query(Creator).filter(Creator.email == DEMO_CREATOR_EMAIL).first()
    if creator:
        return creator, None

    creator = Creator(display_name="Demo Creator", email=DEMO_CREATOR_EMAIL, status="active")
    db.add(creator)
    db.flush()
    raw_key = issue_api_key(db, creator, label="Default API Key")
    db.commit()
    return creator, raw_key


def seed_all(db: Session) -> Optional[str]:
    """Seed all demo data. Returns the new demo API key, if one was created."""
    _, raw_key = seed_demo_creator(db)
    return raw_key

"""Subject providers resolve who is submitting a request."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.orm import Session

from chainproof_api.auth.api_key import get_creator_by_api_key
from chainproof_api.errors import Unauthenticated
from chainproof_api.protection.schema import Subject

logger = logging.getLogger(__name__)


class SubjectProvider(ABC):
    """Source of the authenticated subject for the current request."""

    @abstractmethod
    def get_current_subject(self) -> Subject:
        """Return the subject or raise Unauthenticated."""


class StaticSubjectProvider(SubjectProvider):
    """Fixed subject, for the CLI and tests. ``None`` means unauthenticated."""

    def __init__(self, subject: Optional[Subject]):
        self.subject = subject

    def get_current_subject(self) -> Subject:
        if self.subject is None:
            raise Unauthenticated("Authentication required")
        return self.subject


class APIKeySubjectProvider(SubjectProvider):
    """Resolves the subject from an ``x-api-key`` value."""

    def __init__(self, db: Session, raw_key: Optional[str]):
        self.db = db
        self.raw_key = raw_key
        self._subject: Optional[Subject] = None

    def get_current_subject(self) -> Subject:
        if self._subject is not None:
            return self._subject
        if not self.raw_key:
            raise Unauthenticated("Missing API key. Provide x-api-key header.")

        creator = get_creator_by_api_key(self.db, self.raw_key)
        if creator is None:
            logger.warning("Rejected API key", extra={"prefix": self.raw_key[:8]})
            raise Unauthenticated("Invalid or revoked API key.")

        self._subject = Subject(id=creator.id, display_name=creator.display_name)
        return self._subject

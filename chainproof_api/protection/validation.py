"""Upload validation."""

from typing import Iterable, Optional

from chainproof_api.errors import ValidationError
from chainproof_api.settings import get_settings


class UploadValidator:
    """Enforce the upload size ceiling and MIME allow-list."""

    def __init__(
        self,
        max_bytes: Optional[int] = None,
        allowed_types: Optional[Iterable[str]] = None,
    ):
        settings = get_settings()
        self.max_bytes = max_bytes if max_bytes is not None else settings.max_upload_bytes
        self.allowed_types = frozenset(
            t.lower() for t in (allowed_types if allowed_types is not None else settings.allowed_mime_types)
        )

    @property
    def max_megabytes(self) -> int:
        return self.max_bytes // (1024 * 1024)

    def validate(self, size: int, content_type: Optional[str]) -> None:
        """Raise ValidationError naming the first violated constraint."""
        if size <= 0:
            raise ValidationError("File is empty")
        if size > self.max_bytes:
            raise ValidationError(f"File size exceeds {self.max_megabytes}MB limit")
        if not content_type or content_type.lower() not in self.allowed_types:
            raise ValidationError(f"File type {content_type or 'unknown'} is not supported")

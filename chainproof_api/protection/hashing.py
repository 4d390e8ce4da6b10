"""Content fingerprinting."""

import hashlib
from typing import BinaryIO, Union

from chainproof_api.errors import InputError

Readable = Union[bytes, bytearray, memoryview, BinaryIO]


class HashService:
    """Deterministic SHA-256 fingerprint of a byte blob or binary stream."""

    algorithm = "sha256"
    chunk_size = 1024 * 1024

    def digest(self, data: Readable) -> str:
        """Return the hex digest of `data`.

        Raises:
            InputError: If the input is not bytes or the stream cannot be read
        """
        sha256_hash = hashlib.sha256()
        if isinstance(data, (bytes, bytearray, memoryview)):
            sha256_hash.update(data)
            return sha256_hash.hexdigest()

        read = getattr(data, "read", None)
        if read is None:
            raise InputError(f"Cannot hash input of type {type(data).__name__}")
        try:
            for chunk in iter(lambda: read(self.chunk_size), b""):
                sha256_hash.update(chunk)
        except (OSError, ValueError, TypeError) as e:
            raise InputError(f"File could not be read: {e}") from e
        return sha256_hash.hexdigest()

    def matches(self, data: Readable, content_hash: str) -> bool:
        """Check `data` against a previously computed digest."""
        return self.digest(data) == content_hash.lower()

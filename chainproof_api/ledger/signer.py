"""Certificate signing and public key publication."""

import base64
import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from chainproof_api.settings import get_settings

logger = logging.getLogger(__name__)

PSS_PADDING = padding.PSS(
    mgf=padding.MGF1(hashes.SHA256()),
    salt_length=padding.PSS.MAX_LENGTH,
)


def int_to_base64url(value: int) -> str:
    byte_length = (value.bit_length() + 7) // 8
    bytes_value = value.to_bytes(byte_length, "big")
    return base64.urlsafe_b64encode(bytes_value).decode("utf-8").rstrip("=")


class Signer(ABC):
    """Abstract signer interface."""

    algorithm = "PS256"

    @abstractmethod
    def sign(self, data: bytes) -> bytes:
        """Sign data and return signature bytes."""
        pass

    @abstractmethod
    def verify(self, data: bytes, signature: bytes) -> bool:
        """Check a signature produced by `sign`."""
        pass

    @abstractmethod
    def get_public_jwk(self) -> dict:
        """Get public key in JWK format."""
        pass

    @abstractmethod
    def get_key_id(self) -> str:
        """Get key identifier."""
        pass


class LocalSigner(Signer):
    """RSA-PSS signer backed by a PEM keypair on disk.

    With ``persist=False`` a fresh keypair is kept in memory only.
    """

    def __init__(self, key_path: Optional[str] = None, key_id: Optional[str] = None, persist: bool = True):
        settings = get_settings()
        self.key_path = Path(key_path or settings.signing_key_path)
        self._key_id = key_id or settings.signing_key_id
        self._private_key = None
        self._public_key = None
        self._load_or_generate_key(persist)

    def _load_or_generate_key(self, persist: bool):
        """Load or generate RSA keypair."""
        if persist and self.key_path.exists():
            with open(self.key_path, "rb") as f:
                self._private_key = serialization.load_pem_private_key(f.read(), password=None)
        else:
            self._private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
            if persist:
                self.key_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.key_path, "wb") as f:
                    f.write(
                        self._private_key.private_bytes(
                            encoding=serialization.Encoding.PEM,
                            format=serialization.PrivateFormat.PKCS8,
                            encryption_algorithm=serialization.NoEncryption(),
                        )
                    )
                logger.info(f"Generated signing key at {self.key_path}")

        self._public_key = self._private_key.public_key()

    def sign(self, data: bytes) -> bytes:
        """Sign data with RSA-PSS."""
        return self._private_key.sign(data, PSS_PADDING, hashes.SHA256())

    def verify(self, data: bytes, signature: bytes) -> bool:
        try:
            self._public_key.verify(signature, data, PSS_PADDING, hashes.SHA256())
        except InvalidSignature:
            return False
        return True

    def get_public_jwk(self) -> dict:
        """Get public key in JWK format."""
        public_numbers = self._public_key.public_numbers()
        return {
            "kty": "RSA",
            "kid": self._key_id,
            "use": "sig",
            "alg": self.algorithm,
            "n": int_to_base64url(public_numbers.n),
            "e": int_to_base64url(public_numbers.e),
        }

    def get_key_id(self) -> str:
        """Get key identifier."""
        return self._key_id


@lru_cache()
def get_signer() -> Signer:
    """Get signer instance based on settings."""
    provider = get_settings().signing_key_provider.lower()

    if provider == "local":
        return LocalSigner()
    raise ValueError(f"Unknown signing provider: {provider}")

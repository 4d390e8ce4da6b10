"""Application settings and configuration."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_MIME_TYPES = [
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/webm",
    "video/avi",
    "video/mov",
    "audio/mp3",
    "audio/mpeg",
    "audio/wav",
    "audio/ogg",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
]

SIGNING_KEY_PROVIDERS = ("local",)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: Optional[str] = None
    postgres_user: str = "chainproof"
    postgres_password: str = "chainproof_dev_password"
    postgres_db: str = "chainproof"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    # MinIO / S3
    minio_endpoint: str = "localhost:9000"
    minio_access_key: Optional[str] = None  # Required in non-dev
    minio_secret_key: Optional[str] = None  # Required in non-dev
    minio_use_ssl: bool = False
    content_bucket: str = "content"
    certificate_bucket: str = "certificates"
    storage_public_base_url: Optional[str] = None  # e.g. https://cdn.example.com
    signed_url_ttl_seconds: int = 3600

    # IPFS
    ipfs_api_url: str = "http://127.0.0.1:5001"
    ipfs_gateway_url: str = "https://ipfs.io"
    ipfs_timeout_seconds: float = 30.0

    # Ledger
    ledger_network: str = "polygon-mumbai"

    # Uploads
    max_upload_bytes: int = 100 * 1024 * 1024  # 100MB
    allowed_mime_types: list[str] = DEFAULT_ALLOWED_MIME_TYPES

    # Certificates
    verification_base_url: str = "https://chainproof.io/verify"
    certificate_ttl_days: Optional[int] = None  # Certificates don't expire by default
    signing_key_path: str = "./secrets/chainproof_signing_key.pem"
    signing_key_id: str = "chainproof-local-key-1"
    signing_key_provider: str = "local"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    secret_key: str = "dev-secret-key-change-in-production"
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @property
    def database_url_computed(self) -> str:
        """Compute database URL if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    def validate_production_settings(self):
        """Validate settings for production environment."""
        env = self.environment.lower()
        if env not in ("development", "test", "dev"):
            if not self.minio_access_key or not self.minio_secret_key:
                raise ValueError(
                    "MINIO_ACCESS_KEY and MINIO_SECRET_KEY are required in production. "
                    "Do not use default credentials."
                )
            if self.secret_key == "dev-secret-key-change-in-production":
                raise ValueError("SECRET_KEY must be set outside development.")
            if self.signing_key_provider.lower() not in SIGNING_KEY_PROVIDERS:
                raise ValueError(f"Unknown SIGNING_KEY_PROVIDER: {self.signing_key_provider}")
            if not Path(self.signing_key_path).is_file():
                raise ValueError(
                    f"SIGNING_KEY_PATH ({self.signing_key_path}) must point to an existing key "
                    "outside development. Create one with `chainproof generate-signing-key`."
                )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

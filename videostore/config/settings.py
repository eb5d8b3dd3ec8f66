"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode (STORAGE_BACKEND=mock) enables local development without a bucket.
"""

import tempfile
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

FIVE_GIB = 5 * 1024 * 1024 * 1024


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Video Store API"
    api_version: str = "0.1.0"
    host: str = Field(
        default="0.0.0.0",
        description="Interface uvicorn binds to"
    )
    port: int = Field(
        default=3000,
        description="Port uvicorn listens on"
    )

    # Storage backend selection
    storage_backend: Literal["gcs", "s3", "mock"] = Field(
        default="gcs",
        description="Which object storage provider to use: gcs, s3 or mock (in-memory)."
    )
    bucket_name: str = Field(
        default="",
        description="Bucket holding the uploaded videos"
    )
    public_base_url: Optional[str] = Field(
        default=None,
        description="Base of the public object URLs. Derived from the backend if not provided."
    )

    # Google Cloud Storage
    gcs_credentials_file: Optional[str] = Field(
        default=None,
        description="Path to a service account key file. Application default credentials otherwise."
    )
    gcs_project: Optional[str] = Field(
        default=None,
        description="GCP project owning the bucket (optional)"
    )

    # S3-compatible storage (AWS, R2, MinIO)
    s3_access_key_id: str = Field(
        default="",
        description="S3 access key ID. Falls back to the boto3 credential chain when empty."
    )
    s3_secret_access_key: str = Field(
        default="",
        description="S3 secret access key"
    )
    s3_region: str = Field(
        default="us-east-1",
        description="S3 region. R2 uses 'auto'."
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom endpoint for S3-compatible services (R2, MinIO)"
    )

    # Backend call behavior
    backend_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound on a single backend call before answering 504."
    )
    backend_upload_timeout_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Upper bound on forwarding one upload. Large files need far longer than a listing."
    )
    backend_max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries for transient backend failures. Not-found is never retried."
    )

    # Upload staging
    staging_dir: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory holding uploads while they are forwarded to the bucket"
    )
    max_upload_size_bytes: int = Field(
        default=FIVE_GIB,
        gt=0,
        description="Largest accepted upload. Larger uploads get 413."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def resolved_public_base_url(self) -> str:
        """
        Base URL public object links are built from.

        Patterns by backend:
        - GCS: https://storage.googleapis.com/{bucket}
        - S3-compatible with custom endpoint: {endpoint}/{bucket}
        - AWS S3: https://{bucket}.s3.{region}.amazonaws.com
        """
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        if self.storage_backend == "gcs":
            return f"https://storage.googleapis.com/{self.bucket_name}"
        if self.storage_backend == "s3":
            if self.s3_endpoint_url:
                return f"{self.s3_endpoint_url.rstrip('/')}/{self.bucket_name}"
            return f"https://{self.bucket_name}.s3.{self.s3_region}.amazonaws.com"
        return f"mock://storage/{self.bucket_name or 'videos'}"

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set for the selected backend.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on which backend is selected.
        """
        missing = []

        if self.storage_backend == "mock":
            return missing

        if not self.bucket_name:
            missing.append("BUCKET_NAME")

        # S3 credentials are all-or-nothing; empty means the default chain
        if self.storage_backend == "s3":
            if self.s3_access_key_id and not self.s3_secret_access_key:
                missing.append("S3_SECRET_ACCESS_KEY")
            if self.s3_secret_access_key and not self.s3_access_key_id:
                missing.append("S3_ACCESS_KEY_ID")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from docrelay.core.exceptions import ConfigurationError

StorageBackend = Literal["s3", "airtable", "blob"]

_MIB = 1024 * 1024

# Form fields and multipart boundaries on top of the three files.
_FORM_OVERHEAD_BYTES = 1 * _MIB

def request_ceiling(max_file_bytes: int) -> int:
    """Largest multipart body worth parsing for a given per-file limit."""
    return 3 * max_file_bytes + _FORM_OVERHEAD_BYTES

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "Document Relay"
    app_env: str = "development"
    cors_allow_origins: list[str] = ["*"]

    storage_backend: StorageBackend = "s3"

    # Object store (S3)
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_region: str = "us-east-1"
    aws_s3_bucket: str | None = None
    s3_key_prefix: str = ""
    s3_public_base_url: str | None = None

    # Record store (Airtable); the attachment-API backend shares the token and base
    airtable_api_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AIRTABLE_API_TOKEN", "AIRTABLE_API_KEY", "airtable_api_token"),
    )
    airtable_base_id: str | None = None
    airtable_table_id: str | None = None
    airtable_api_url: str = "https://api.airtable.com/v0"
    airtable_upload_url: str = "https://api.airtable.com/v0/bases/{base_id}/attachments/upload"

    # Blob store
    blob_read_write_token: str | None = None
    blob_api_url: str = "https://blob.vercel-storage.com"

    notification_webhook_url: str | None = None

    # Per-backend file ceilings (MiB)
    object_store_max_file_mb: int = 10
    attachment_api_max_file_mb: int = 5
    blob_store_max_file_mb: int = 10

    http_timeout_seconds: float = 30.0
    notification_timeout_seconds: float = 10.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
        "extra": "ignore",
    }

    @property
    def max_file_bytes(self) -> int:
        """Per-file ceiling of the active storage backend."""
        limits = {
            "s3": self.object_store_max_file_mb,
            "airtable": self.attachment_api_max_file_mb,
            "blob": self.blob_store_max_file_mb,
        }
        return limits[self.storage_backend] * _MIB

    @property
    def max_request_bytes(self) -> int:
        return request_ceiling(self.max_file_bytes)

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.notification_webhook_url)

    def missing_settings(self) -> list[str]:
        """Environment names required by the active backend and the record store but unset."""
        required: dict[str, str | None] = {
            "AIRTABLE_API_TOKEN": self.airtable_api_token,
            "AIRTABLE_BASE_ID": self.airtable_base_id,
            "AIRTABLE_TABLE_ID": self.airtable_table_id,
        }
        if self.storage_backend == "s3":
            required.update(
                {
                    "AWS_ACCESS_KEY_ID": self.aws_access_key_id,
                    "AWS_SECRET_ACCESS_KEY": self.aws_secret_access_key,
                    "AWS_S3_BUCKET": self.aws_s3_bucket,
                }
            )
        elif self.storage_backend == "blob":
            required["BLOB_READ_WRITE_TOKEN"] = self.blob_read_write_token
        return [name for name, value in required.items() if not (value or "").strip()]

    def require_complete(self) -> None:
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(
                f"Storage backend '{self.storage_backend}' is not configured. "
                f"Missing environment variables: {', '.join(missing)}"
            )

settings = Settings()

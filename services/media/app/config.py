from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── AWS ───────────────────────────────────────────────────────────────────
    # Empty keys fall through to the default credential chain (Lambda role, profile).
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "us-east-1"
    s3_endpoint_url: str = ""
    s3_bucket_images: str = "cinedex-user-images"

    # Every store call is bounded; a timeout is a retryable storage error.
    s3_timeout_seconds: float = 10.0
    s3_connect_timeout_seconds: float = 5.0
    s3_max_attempts: int = 3

    # ── Upload ────────────────────────────────────────────────────────────────
    max_upload_bytes: int = 10 * 1024 * 1024  # 10 MB
    upload_rate_limit: str = "30/minute"

    # ── Resize worker ─────────────────────────────────────────────────────────
    resize_width: int = 100
    resize_height: int = 100
    resize_backup_bucket: str = ""

    # ── CORS ─────────────────────────────────────────────────────────────────
    env_name: str = "development"
    cors_origins: str = "*"

    @property
    def cors_origins_list(self) -> list[str]:
        return [x.strip() for x in self.cors_origins.split(",") if x.strip()]

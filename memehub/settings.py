from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEV_JWT_SECRET = "supersecretkey"
_DEFAULT_ASSETS_DIR = str(Path(__file__).resolve().parent.parent / "assets")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="APP_ENV")
    port: int = Field(default=7894, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # CORS / Frontend
    frontend_url: str = Field(default="http://localhost:5173", validation_alias="FRONTEND_URL")
    frontend_urls: str | None = Field(default=None, validation_alias="FRONTEND_URLS")

    # AWS / data
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    ddb_table_name: str | None = Field(default=None, validation_alias="DDB_TABLE_NAME")
    # Local development against DynamoDB Local (e.g. http://localhost:8000)
    ddb_endpoint_url: str | None = Field(default=None, validation_alias="DDB_ENDPOINT_URL")

    # Auth
    jwt_secret: str = Field(default=_DEV_JWT_SECRET, validation_alias="JWT_SECRET")
    jwt_expires_hours: int = Field(default=24, validation_alias="JWT_EXPIRES_HOURS")
    password_reset_ttl_seconds: int = Field(
        default=60 * 60, validation_alias="PASSWORD_RESET_TTL_SECONDS"
    )

    # Uploads / static assets
    assets_dir: str = Field(default=_DEFAULT_ASSETS_DIR, validation_alias="ASSETS_DIR")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, validation_alias="MAX_UPLOAD_BYTES")

    # Image generation (OpenAI Images API)
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_image_model: str = Field(default="dall-e-3", validation_alias="OPENAI_IMAGE_MODEL")
    openai_image_size: str = Field(default="1024x1024", validation_alias="OPENAI_IMAGE_SIZE")

    # Email (SES). Password reset mails are skipped when unset in development.
    email_from: str | None = Field(default=None, validation_alias="EMAIL_FROM")

    # Video thumbnails
    ffmpeg_path: str = Field(default="ffmpeg", validation_alias="FFMPEG_PATH")
    ffprobe_path: str = Field(default="ffprobe", validation_alias="FFPROBE_PATH")

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        if v in ("test", "testing"):
            return "test"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    @property
    def is_development(self) -> bool:
        return self.normalized_environment == "development"

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Development/test may run with partial config for local work,
        but production must be fully configured.
        """
        if not self.is_production:
            return

        missing: list[str] = []
        if not self.ddb_table_name:
            missing.append("DDB_TABLE_NAME")
        if not self.jwt_secret or self.jwt_secret == _DEV_JWT_SECRET:
            missing.append("JWT_SECRET")
        if not self.email_from:
            missing.append("EMAIL_FROM")

        if missing:
            raise RuntimeError(
                "Missing required production environment variables: "
                + ", ".join(missing)
            )

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs / diagnostics.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "log_level": self.log_level,
            "frontend": {
                "frontend_url": self.frontend_url,
                "frontend_urls": self.frontend_urls,
            },
            "aws": {
                "aws_region": self.aws_region,
                "ddb_table_name": self.ddb_table_name,
                "ddb_endpoint_url": self.ddb_endpoint_url,
            },
            "auth": {
                "jwt_secret_configured": _has(self.jwt_secret) and self.jwt_secret != _DEV_JWT_SECRET,
                "jwt_expires_hours": self.jwt_expires_hours,
            },
            "assets": {
                "assets_dir": self.assets_dir,
                "max_upload_bytes": self.max_upload_bytes,
            },
            "integrations": {
                "openai_api_key_configured": _has(self.openai_api_key),
                "openai_image_model": self.openai_image_model,
                "email_from_configured": _has(self.email_from),
                "ffmpeg_path": self.ffmpeg_path,
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s


# Backwards-compatible module-level singleton.
settings = get_settings()

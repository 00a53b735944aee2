"""
Core configuration using Pydantic Settings.
Loads from environment variables.
"""

from typing import Annotated, Literal
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from core.pipeline import DEFAULT_INTERVIEWERS


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    app_name: str = Field(default="arcadia-gate", alias="APP_NAME")
    app_env: Literal["development", "staging", "production"] = Field(
        default="development", alias="APP_ENV"
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    # API
    api_v1_prefix: str = "/api/v1"
    allowed_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        alias="ALLOWED_ORIGINS",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./arcadia.db", alias="DATABASE_URL"
    )

    # Auth
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=480, alias="ACCESS_TOKEN_EXPIRE_MINUTES"
    )
    admin_emails: Annotated[list[str], NoDecode] = Field(
        default_factory=list, alias="ADMIN_EMAILS"
    )

    # Logging
    log_request_body: bool = Field(default=False, alias="LOG_REQUEST_BODY")
    log_response_body: bool = Field(default=False, alias="LOG_RESPONSE_BODY")
    log_max_body_size: int = Field(default=1024, alias="LOG_MAX_BODY_SIZE")
    json_logs: bool = Field(default=True, alias="JSON_LOGS")

    # Access gate
    target_latitude: float = Field(default=22.3193, alias="TARGET_LATITUDE")
    target_longitude: float = Field(default=114.2057, alias="TARGET_LONGITUDE")
    access_radius_km: float = Field(default=1.0, gt=0, alias="ACCESS_RADIUS_KM")
    session_validity_days: int = Field(default=3, gt=0, alias="SESSION_VALIDITY_DAYS")
    location_timeout_seconds: float = Field(
        default=10.0, gt=0, alias="LOCATION_TIMEOUT_SECONDS"
    )
    poll_interval_seconds: float = Field(default=2.0, gt=0, alias="POLL_INTERVAL_SECONDS")
    message_rotation_seconds: float = Field(
        default=3.0, gt=0, alias="MESSAGE_ROTATION_SECONDS"
    )
    approval_redirect_delay_seconds: float = Field(
        default=2.0, ge=0, alias="APPROVAL_REDIRECT_DELAY_SECONDS"
    )

    # Applicant pipeline
    interviewers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_INTERVIEWERS), alias="INTERVIEWERS"
    )
    application_form_url: str = Field(
        default="https://tally.so/r/w2g76D", alias="APPLICATION_FORM_URL"
    )
    online_test_url: str = Field(
        default="https://www.autoproctor.co/tests/3m2EI3BXwn/load",
        alias="ONLINE_TEST_URL",
    )

    # Blob storage
    storage_backend: Literal["local", "s3"] = Field(default="local", alias="STORAGE_BACKEND")
    storage_path: str = Field(default="./storage", alias="STORAGE_PATH")
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")
    aws_region: str = Field(default="us-east-1", alias="AWS_REGION")
    aws_s3_bucket: str | None = Field(default=None, alias="AWS_S3_BUCKET")

    # Face verification
    face_match_threshold: float = Field(
        default=0.8, ge=0, le=1, alias="FACE_MATCH_THRESHOLD"
    )

    @field_validator("allowed_origins", "admin_emails", "interviewers", mode="before")
    @classmethod
    def split_comma_separated(cls, v):
        """Accept comma-separated strings for list settings."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("admin_emails")
    @classmethod
    def normalize_admin_emails(cls, v: list[str]) -> list[str]:
        """Lower-case allowlisted emails."""
        return [email.lower() for email in v]


# Global settings instance
settings = Settings()

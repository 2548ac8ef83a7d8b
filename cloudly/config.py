# Filename: cloudly/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Literal, Optional


class Settings(BaseSettings):
    # Core
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    app_name: str = "Cloudly"
    app_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 3001

    database_url: str = Field(..., description="Database connection string")

    # Identity provider: session token verification + user lookup API
    identity_jwt_key: str = Field(..., description="Key used to verify session tokens - required")
    jwt_algorithm: str = "RS256"
    identity_issuer: Optional[str] = None
    identity_api_url: str = "https://api.clerk.com/v1"
    identity_secret_key: str = ""
    identity_timeout_seconds: float = 10.0
    session_cookie_name: str = "__session"

    # Object storage
    aws_region: str = "ap-south-1"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    s3_bucket_name: str = "cloudly-docs"
    s3_endpoint_url: Optional[str] = None

    upload_url_expire_seconds: int = 3600
    owner_download_expire_seconds: int = 604800
    shared_download_expire_seconds: int = 300
    stream_chunk_size: int = 64 * 1024

    default_storage_limit_gb: int = 15

    frontend_url: str = "http://localhost:3000"

    cors_allow_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = True
    cors_allow_methods: str = "*"
    cors_allow_headers: str = "*"

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CLOUDLY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def default_storage_limit_bytes(self) -> int:
        return self.default_storage_limit_gb * 1024 * 1024 * 1024


settings = Settings()

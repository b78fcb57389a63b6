"""
Configuration for Dossier Backend
=================================

Environment variables:
- DATABASE_URL: SQLAlchemy URL (default: sqlite:///./dossier.db)
- STORAGE_BACKEND: local|s3 (default: local)
- LOCAL_STORAGE_PATH / LOCAL_STORAGE_URL: filesystem storage root and public URL prefix
- S3_BUCKET, S3_ENDPOINT, S3_REGION, S3_ACCESS_KEY_ID, S3_SECRET_ACCESS_KEY, S3_PUBLIC_URL
- JWT_SECRET_KEY: secret for session tokens
- SESSION_COOKIE_NAME: cookie carrying the session token (default: dossier_session)
- OWNER_EMAIL / OWNER_PASSWORD / OWNER_NAME: admin account ensured at startup
- CORS_ALLOW_ORIGINS: comma separated list of allowed origins
"""

from typing import Optional, List
from pydantic_settings import BaseSettings
from functools import lru_cache

DEFAULT_JWT_SECRET = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Database
    database_url: str = "sqlite:///./dossier.db"
    sql_echo: bool = False
    db_connect_timeout: int = 5

    # Object storage
    storage_backend: str = "local"  # local | s3
    local_storage_path: str = "./storage"
    local_storage_url: str = "/storage"
    s3_bucket: Optional[str] = None
    s3_endpoint: Optional[str] = None
    s3_region: str = "us-east-1"
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_public_url: Optional[str] = None

    # Sessions
    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 12
    session_cookie_name: str = "dossier_session"
    cookie_secure: bool = False

    # Owner account (admin) ensured on startup
    owner_email: Optional[str] = None
    owner_password: Optional[str] = None
    owner_name: str = "Administrator"

    # HTTP
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:8000"
    enforce_https: bool = False

    # Audit
    audit_list_limit: int = 1000

    # Service info
    service_version: str = "1.0.0"

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def cors_origins(self) -> List[str]:
        origins: List[str] = []
        for item in self.cors_allow_origins.split(","):
            origin = item.strip().strip('"').strip("'").rstrip("/")
            if origin:
                origins.append(origin)
        return origins

    def validate_config(self) -> List[str]:
        """Validate configuration, return list of warnings"""
        warnings = []

        backend = self.storage_backend.strip().lower()
        if backend == "s3":
            if not self.s3_bucket:
                warnings.append("STORAGE_BACKEND=s3 but S3_BUCKET not set")
            if not self.s3_access_key_id and not self.s3_endpoint:
                warnings.append("STORAGE_BACKEND=s3 without explicit credentials (relying on AWS default chain)")
        elif backend != "local":
            warnings.append(f"Unknown STORAGE_BACKEND={self.storage_backend!r}, falling back to local")

        if self.jwt_secret_key == DEFAULT_JWT_SECRET:
            warnings.append("JWT_SECRET_KEY is the development default")

        if self.owner_email and not self.owner_password:
            warnings.append("OWNER_EMAIL set without OWNER_PASSWORD (owner cannot log in with a password)")

        return warnings


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
